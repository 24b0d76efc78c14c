from enum import StrEnum
from typing import Final

DEFAULT_PREFIX: Final = "nano_"
DEFAULT_DECIMAL_PLACES: Final = 30

# Frontier used for the open block of an account that has no chain yet
ZERO_FRONTIER: Final = "0" * 64

# Only pending blocks of at least this many raw are listed
RECEIVABLE_THRESHOLD: Final = "1"

SEED_PATTERN: Final = r"^[0-9A-Fa-f]{64}$"
RAW_AMOUNT_PATTERN: Final = r"^\d+$"

MIN_ACCOUNT_COUNT: Final = 1
MAX_ACCOUNT_COUNT: Final = 100

MAX_PENDING: Final = 1000
PROCESSED_HASH_TTL: Final = 60.0

RPC_TIMEOUT: Final = 30.0

RECONNECT_MIN: Final = 1.0
RECONNECT_MAX: Final = 10.0
RECONNECT_RETRIES: Final = 10
RECONNECT_MIN_UPTIME: Final = 5.0
FEED_QUEUE_SIZE: Final = 1000


class Action(StrEnum):
    ACCOUNT_INFO  = "account_info"
    WORK_GENERATE = "work_generate"
    PENDING       = "pending"
    PROCESS       = "process"


class Subtype(StrEnum):
    SEND    = "send"
    RECEIVE = "receive"


class Topic(StrEnum):
    CONFIRMATION = "confirmation"


class FeedState(StrEnum):
    DISCONNECTED = "DISCONNECTED"
    CONNECTING   = "CONNECTING"
    OPEN         = "OPEN"


__all__ = [
    "DEFAULT_DECIMAL_PLACES",
    "DEFAULT_PREFIX",
    "FEED_QUEUE_SIZE",
    "MAX_ACCOUNT_COUNT",
    "MAX_PENDING",
    "MIN_ACCOUNT_COUNT",
    "PROCESSED_HASH_TTL",
    "RAW_AMOUNT_PATTERN",
    "RECEIVABLE_THRESHOLD",
    "RECONNECT_MAX",
    "RECONNECT_MIN",
    "RECONNECT_MIN_UPTIME",
    "RECONNECT_RETRIES",
    "RPC_TIMEOUT",
    "SEED_PATTERN",
    "ZERO_FRONTIER",

    ######
    "Action",
    "FeedState",
    "Subtype",
    "Topic",
]
