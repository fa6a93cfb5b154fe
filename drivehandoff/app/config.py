"""
Runtime configuration, read from DH_* environment variables and an optional .env file.
"""
import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from .models.contracts import TransferOptions
from ..utils.errors import ConfigurationError

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off", ""}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}", setting=name)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}", setting=name)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUTHY:
        return True
    if value in _FALSY:
        return False
    raise ConfigurationError(f"{name} must be a boolean, got {raw!r}", setting=name)


class Settings(BaseModel):
    token_path: str = Field("token.json", description="Cached authorized-user token")
    credentials_path: str = Field("credentials.json", description="OAuth client secrets")
    oauth_port: int = Field(0, ge=0, description="Local port for the consent redirect, 0 picks a free one")
    token_encryption_key: Optional[str] = None
    lookup_attempts: int = Field(1, ge=1)
    lookup_backoff: float = Field(1.0, ge=0.0)
    lookup_backoff_max: float = Field(10.0, ge=0.0)
    revoke_on_failure: bool = False
    log_level: str = "INFO"
    log_format: str = "console"

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "Settings":
        if dotenv:
            load_dotenv()
        cwd = os.getcwd()
        log_format = os.getenv("DH_LOG_FORMAT", "console").lower()
        if log_format not in {"console", "json"}:
            raise ConfigurationError("DH_LOG_FORMAT must be 'console' or 'json'", setting="DH_LOG_FORMAT")
        try:
            return cls(
                token_path=os.getenv("DH_TOKEN_PATH") or os.path.join(cwd, "token.json"),
                credentials_path=os.getenv("DH_CREDENTIALS_PATH") or os.path.join(cwd, "credentials.json"),
                oauth_port=_env_int("DH_OAUTH_PORT", 0),
                token_encryption_key=os.getenv("DH_TOKEN_ENCRYPTION_KEY") or None,
                lookup_attempts=_env_int("DH_LOOKUP_ATTEMPTS", 1),
                lookup_backoff=_env_float("DH_LOOKUP_BACKOFF", 1.0),
                lookup_backoff_max=_env_float("DH_LOOKUP_BACKOFF_MAX", 10.0),
                revoke_on_failure=_env_bool("DH_REVOKE_ON_FAILURE", False),
                log_level=os.getenv("DH_LOG_LEVEL", "INFO").upper(),
                log_format=log_format,
            )
        except PydanticValidationError as exc:
            raise ConfigurationError(f"Invalid configuration: {exc}") from exc

    def transfer_options(self) -> TransferOptions:
        return TransferOptions(
            lookup_attempts=self.lookup_attempts,
            lookup_backoff=self.lookup_backoff,
            lookup_backoff_max=self.lookup_backoff_max,
            revoke_on_failure=self.revoke_on_failure,
        )
