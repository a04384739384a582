"""Environment-driven settings for the detector connection and cache tuning."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

from linguard.exceptions import ConfigError

DEFAULT_ORACLE_URL = "https://localhost:25032"
DEFAULT_MAX_BUFFER_SIZE = 100_000

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    """Runtime settings, normally built with :meth:`from_env`."""

    oracle_url: str = DEFAULT_ORACLE_URL
    oracle_token: str = ""
    oracle_verify_tls: bool = True
    oracle_timeout: float = 30.0
    oracle_max_attempts: int = 10
    oracle_retry_delay: float = 0.05
    oracle_batch_size: int = 25
    max_buffer_size: int = DEFAULT_MAX_BUFFER_SIZE
    resort_interval: int = 100

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """Read settings from ``LINGUARD_*`` environment variables.

        Empty values fall back to the defaults, matching how the detector
        deployment leaves unset variables blank.
        """
        env = os.environ if environ is None else environ
        return cls(
            oracle_url=_env_str(env, "LINGUARD_ORACLE_URL", DEFAULT_ORACLE_URL),
            oracle_token=_env_str(env, "LINGUARD_ORACLE_TOKEN", ""),
            oracle_verify_tls=_env_bool(env, "LINGUARD_ORACLE_VERIFY_TLS", True),
            oracle_timeout=_env_float(env, "LINGUARD_ORACLE_TIMEOUT", 30.0),
            oracle_max_attempts=_env_int(env, "LINGUARD_ORACLE_MAX_ATTEMPTS", 10),
            oracle_retry_delay=_env_float(env, "LINGUARD_ORACLE_RETRY_DELAY", 0.05),
            oracle_batch_size=_env_int(env, "LINGUARD_ORACLE_BATCH_SIZE", 25),
            max_buffer_size=_env_int(env, "LINGUARD_MAX_BUFFER_SIZE", DEFAULT_MAX_BUFFER_SIZE),
            resort_interval=_env_int(env, "LINGUARD_RESORT_INTERVAL", 100),
        )


def _env_str(env: Mapping[str, str], key: str, default: str) -> str:
    return env.get(key) or default


def _env_int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{key} must be an integer, got {raw!r}") from None
    if value <= 0:
        raise ConfigError(f"{key} must be positive, got {value}")
    return value


def _env_float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key)
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigError(f"{key} must be a number, got {raw!r}") from None
    if value < 0:
        raise ConfigError(f"{key} must not be negative, got {value}")
    return value


def _env_bool(env: Mapping[str, str], key: str, default: bool) -> bool:
    raw = env.get(key)
    if not raw:
        return default
    lowered = raw.strip().lower()
    if lowered in _TRUTHY:
        return True
    if lowered in _FALSY:
        return False
    raise ConfigError(f"{key} must be a boolean, got {raw!r}")
