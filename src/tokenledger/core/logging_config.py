"""
tokenledger - Structured Logging Configuration

Configures structured JSON logging:
- JSON format for easy parsing and aggregation
- Log rotation to prevent disk space issues
- Console and optional file handlers

Contracts log through ``logging.getLogger(__name__)`` and attach context with
``extra={"event": "token.transfer", ...}``; this module only decides where
those records go and how they are rendered.

Usage:
    from tokenledger.core.logging_config import setup_logging

    logger = setup_logging(name="tokenledger", level="DEBUG")
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional, Dict, Any

from pythonjsonlogger.json import JsonFormatter

from .config import SETTINGS


class LedgerJsonFormatter(JsonFormatter):
    """
    JSON formatter for contract logs.

    Every record carries ``timestamp`` (UTC), ``level``, ``name``,
    ``message``, the static ``environment``/``service`` pair and a ``source``
    location; ``extra`` context such as ``event`` is merged at top level.
    """

    def __init__(self, environment: Optional[str] = None, service_name: str = "tokenledger"):
        super().__init__(
            "%(levelname)s %(name)s %(message)s",
            rename_fields={"levelname": "level"},
            static_fields={
                "environment": environment or SETTINGS.environment,
                "service": service_name,
            },
            timestamp=True,
        )

    def add_fields(
        self,
        log_record: Dict[str, Any],
        record: logging.LogRecord,
        message_dict: Dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["level"] = record.levelname.lower()
        log_record["source"] = {
            "function": record.funcName,
            "module": record.module,
            "line": record.lineno,
        }


def setup_logging(
    name: str = "tokenledger",
    log_file: Optional[str] = None,
    level: Optional[str] = None,
    environment: Optional[str] = None,
    enable_console: bool = True,
    max_bytes: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5,
) -> logging.Logger:
    """
    Setup structured JSON logging.

    Args:
        name: Logger name (``tokenledger`` covers every module)
        log_file: Path to JSON log file; defaults to TOKENLEDGER_LOG_FILE
        level: Logging level; defaults to TOKENLEDGER_LOG_LEVEL
        environment: Environment identifier; defaults to TOKENLEDGER_ENVIRONMENT
        enable_console: Whether to log to stderr
        max_bytes: Maximum log file size before rotation
        backup_count: Number of backup files to keep

    Returns:
        Configured logger instance
    """
    level = (level or SETTINGS.log_level).upper()
    log_file = log_file or SETTINGS.log_file

    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level))

    # Remove existing handlers to avoid duplicates
    logger.handlers = []

    formatter = LedgerJsonFormatter(
        environment=environment or SETTINGS.environment,
        service_name=name.split(".")[0],
    )

    if enable_console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(getattr(logging, level))
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if log_file:
        try:
            log_path = Path(log_file)
            log_path.parent.mkdir(parents=True, exist_ok=True)

            file_handler = logging.handlers.RotatingFileHandler(
                filename=log_file,
                maxBytes=max_bytes,
                backupCount=backup_count,
            )
            file_handler.setLevel(getattr(logging, level))
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)
        except OSError as e:
            logger.warning(f"Could not create file handler for {log_file}: {e}")

    return logger
