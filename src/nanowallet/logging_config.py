import logging
import logging.config
import os
import sys

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FILE = os.getenv("NANOWALLET_LOG_FILE")


def build_logging_config(level: str = LOG_LEVEL, log_file: str | None = LOG_FILE) -> dict:
    handlers = ["console"]
    handler_defs = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "default",
            "stream": sys.stdout,
        },
    }
    if log_file:
        handlers.append("file")
        handler_defs["file"] = {
            "class": "logging.FileHandler",
            "formatter": "default",
            "filename": log_file,
            "mode": "a",
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s %(levelname)-6s %(name)8s:%(lineno)d %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": handler_defs,
        "loggers": {
            "nanowallet": {
                "level": level,
                "handlers": handlers,
                "propagate": False, # Don't pass 'nanowallet' logs up to the root logger
            },
            # Shut the log levels for libraries up
            "httpx": {
                "level": "WARNING", # one INFO line per request otherwise
                "handlers": handlers,
                "propagate": False,
            },
            "websockets": {
                "level": "WARNING",
                "handlers": handlers,
                "propagate": False,
            },
            "uvicorn.access": {
                "level": "WARNING",
                "handlers": handlers,
                "propagate": False,
            },
        },
        # Default for all other loggers
        "root": {
            "level": "WARNING",
            "handlers": handlers,
        },
    }


def setup_logging(level: str = LOG_LEVEL, log_file: str | None = LOG_FILE):
    """ Apply the logging configuration. """
    logging.config.dictConfig(build_logging_config(level, log_file))
    os.environ.setdefault("PYTHONUNBUFFERED", "1")
