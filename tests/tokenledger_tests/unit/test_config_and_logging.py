"""
Tests for environment-variable settings, the JSON log formatter and error context.
"""

from __future__ import annotations

import json
import logging
import warnings

import pytest

from tokenledger.core.config import ConfigurationError, Settings, load_settings
from tokenledger.core.exceptions import (
    ExternalCallFailed,
    InsufficientBalance,
    NothingToRelease,
    get_error_context,
    is_recoverable_error,
)
from tokenledger.core.logging_config import LedgerJsonFormatter, setup_logging


class TestSettings:
    def test_defaults(self):
        settings = load_settings({})
        assert settings == Settings()

    def test_reads_environment_variables(self):
        settings = load_settings(
            {
                "TOKENLEDGER_ENVIRONMENT": "staging",
                "TOKENLEDGER_LOG_LEVEL": "debug",
                "TOKENLEDGER_LOG_FILE": "/tmp/tokenledger.log",
                "TOKENLEDGER_METRICS_ENABLED": "0",
                "TOKENLEDGER_DEFAULT_DECIMALS": "6",
            }
        )
        assert settings.environment == "staging"
        assert settings.log_level == "DEBUG"
        assert settings.log_file == "/tmp/tokenledger.log"
        assert settings.metrics_enabled is False
        assert settings.default_decimals == 6

    @pytest.mark.parametrize(
        "env",
        [
            {"TOKENLEDGER_LOG_LEVEL": "chatty"},
            {"TOKENLEDGER_METRICS_ENABLED": "yes"},
            {"TOKENLEDGER_DEFAULT_DECIMALS": "eighteen"},
            {"TOKENLEDGER_DEFAULT_DECIMALS": "256"},
        ],
    )
    def test_invalid_values(self, env):
        with pytest.raises(ConfigurationError):
            load_settings(env)


class TestJsonLogging:
    def test_formatter_adds_context(self):
        formatter = LedgerJsonFormatter(environment="test", service_name="tokenledger")
        record = logging.LogRecord(
            name="tokenledger.core.ledger",
            level=logging.INFO,
            pathname=__file__,
            lineno=10,
            msg="Token transfer",
            args=(),
            exc_info=None,
        )
        record.event = "ledger.transfer"

        payload = json.loads(formatter.format(record))

        assert payload["message"] == "Token transfer"
        assert payload["event"] == "ledger.transfer"
        assert payload["environment"] == "test"
        assert payload["service"] == "tokenledger"
        assert payload["level"] == "info"
        assert payload["source"]["line"] == 10
        assert "timestamp" in payload

    def test_formatter_uses_current_json_logger_api(self):
        with warnings.catch_warnings():
            warnings.simplefilter("error", DeprecationWarning)
            formatter = LedgerJsonFormatter(environment="test")
            record = logging.makeLogRecord({"msg": "Mint", "levelno": logging.INFO, "levelname": "INFO"})
            payload = json.loads(formatter.format(record))

        assert payload["level"] == "info"
        assert payload["service"] == "tokenledger"

    def test_setup_logging_writes_rotating_file(self, tmp_path):
        log_file = tmp_path / "logs" / "tokenledger.json"
        logger = setup_logging(
            name="tokenledger.test_file",
            log_file=str(log_file),
            level="INFO",
            enable_console=False,
        )
        logger.info("hello", extra={"event": "test.hello"})
        for handler in logger.handlers:
            handler.flush()

        line = log_file.read_text().strip().splitlines()[-1]
        assert json.loads(line)["event"] == "test.hello"


class TestErrorContext:
    def test_token_error_context(self):
        exc = InsufficientBalance("short", details={"amount": 5})
        context = get_error_context(exc)
        assert context == {
            "error_type": "InsufficientBalance",
            "error_message": "short",
            "recoverable": False,
            "details": {"amount": 5},
        }

    def test_external_call_context_names_token(self):
        exc = ExternalCallFailed("failed", token="0xabc")
        assert get_error_context(exc)["token"] == "0xabc"

    def test_recoverable(self):
        assert is_recoverable_error(NothingToRelease())
        assert not is_recoverable_error(InsufficientBalance("x"))
        assert not is_recoverable_error(ValueError("x"))
