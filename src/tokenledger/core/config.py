"""
tokenledger configuration

All settings come from environment variables so the same code runs under
tests, the CLI and embedding applications without config files.

    TOKENLEDGER_ENVIRONMENT       deployment name stamped on JSON logs
    TOKENLEDGER_LOG_LEVEL         DEBUG, INFO, WARNING, ERROR or CRITICAL
    TOKENLEDGER_LOG_FILE          optional rotating JSON log file
    TOKENLEDGER_METRICS_ENABLED   "1" to record Prometheus metrics, "0" to skip
    TOKENLEDGER_DEFAULT_DECIMALS  decimals used when a deployment omits them
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping

from .constants import DEFAULT_DECIMALS, MAX_DECIMALS

logger = logging.getLogger(__name__)

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""
    pass


@dataclass(frozen=True)
class Settings:
    environment: str = "development"
    log_level: str = "INFO"
    log_file: str | None = None
    metrics_enabled: bool = True
    default_decimals: int = DEFAULT_DECIMALS


def _get_flag(env: Mapping[str, str], name: str, default: str) -> bool:
    raw = env.get(name, default).strip()
    if raw not in ("0", "1"):
        raise ConfigurationError(f"{name} must be 0 or 1, got {raw!r}")
    return raw == "1"


def load_settings(env: Mapping[str, str] | None = None) -> Settings:
    """Build :class:`Settings` from the process environment (or a given mapping)."""
    env = os.environ if env is None else env

    log_level = env.get("TOKENLEDGER_LOG_LEVEL", "INFO").strip().upper()
    if log_level not in VALID_LOG_LEVELS:
        raise ConfigurationError(
            f"TOKENLEDGER_LOG_LEVEL must be one of {', '.join(VALID_LOG_LEVELS)}, got {log_level!r}"
        )

    raw_decimals = env.get("TOKENLEDGER_DEFAULT_DECIMALS", str(DEFAULT_DECIMALS)).strip()
    try:
        default_decimals = int(raw_decimals)
    except ValueError as exc:
        raise ConfigurationError(
            f"TOKENLEDGER_DEFAULT_DECIMALS must be an integer, got {raw_decimals!r}"
        ) from exc
    if not 0 <= default_decimals <= MAX_DECIMALS:
        raise ConfigurationError(
            f"TOKENLEDGER_DEFAULT_DECIMALS must be between 0 and {MAX_DECIMALS}"
        )

    settings = Settings(
        environment=env.get("TOKENLEDGER_ENVIRONMENT", "development").strip() or "development",
        log_level=log_level,
        log_file=env.get("TOKENLEDGER_LOG_FILE", "").strip() or None,
        metrics_enabled=_get_flag(env, "TOKENLEDGER_METRICS_ENABLED", "1"),
        default_decimals=default_decimals,
    )
    logger.debug(
        "Settings loaded",
        extra={"event": "config.loaded", "environment": settings.environment},
    )
    return settings


SETTINGS = load_settings()
