import os
import re
import tomllib
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

import nanowallet.constants as C
from nanowallet.errors import ConfigurationError, InvalidSeedError, MissingConfigurationError

pkg_root = Path(__file__).parent
config_file = Path(os.getenv("NANOWALLET_CONFIG", pkg_root / "config.toml"))

# env var -> (config key, is a comma separated list)
ENV_OVERRIDES = {
    "NANOWALLET_RPC_URLS": ("rpc_urls", True),
    "NANOWALLET_WORK_URLS": ("work_urls", True),
    "NANOWALLET_WS_URL": ("ws_url", False),
    "NANOWALLET_SEED": ("seed", False),
    "NANOWALLET_DEFAULT_REP": ("default_rep", False),
}


class WalletConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    rpc_urls: list[str] = Field(default_factory=list)
    work_urls: list[str] = Field(default_factory=list)
    ws_url: str | None = None
    seed: str | None = None
    default_rep: str | None = None
    auto_receive: bool | None = None
    subscribe_all: bool = False
    address_prefix: str = C.DEFAULT_PREFIX
    decimal_places: int = Field(default=C.DEFAULT_DECIMAL_PLACES, ge=0)
    custom_headers: dict[str, str] = Field(default_factory=dict)
    max_pending: int = Field(default=C.MAX_PENDING, gt=0)
    signer: str | None = None

    @field_validator("rpc_urls", "work_urls", mode="before")
    @classmethod
    def _one_or_many(cls, v: Any) -> Any:
        if isinstance(v, str):
            return [v]
        return v

    @property
    def auto_receive_enabled(self) -> bool:
        """Auto-receive defaults to on whenever a live feed is configured."""
        if self.auto_receive is None:
            return bool(self.ws_url)
        return self.auto_receive and bool(self.ws_url)

    def validate_required(self) -> None:
        if not self.rpc_urls or not self.work_urls:
            raise MissingConfigurationError("rpc_urls and work_urls")
        if self.seed is not None:
            validate_seed(self.seed)


def validate_seed(seed: str) -> str:
    if not re.fullmatch(C.SEED_PATTERN, seed):
        raise InvalidSeedError()
    return seed


def build_config(data: dict[str, Any]) -> WalletConfig:
    try:
        cfg = WalletConfig.model_validate(data)
    except PydanticValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
    cfg.validate_required()
    return cfg


def load_config(path: str | Path | None = None, *, environ: dict[str, str] | None = None) -> WalletConfig:
    """Read the ``[wallet]`` table of a TOML file and apply environment overrides."""
    env = os.environ if environ is None else environ
    path = Path(path) if path is not None else config_file

    data: dict[str, Any] = {}
    if path.is_file():
        cfg = tomllib.loads(path.read_text())
        data.update(cfg.get("wallet", {}))

    for var, (key, is_list) in ENV_OVERRIDES.items():
        value = env.get(var)
        if not value:
            continue
        data[key] = [u.strip() for u in value.split(",") if u.strip()] if is_list else value

    return build_config(data)
