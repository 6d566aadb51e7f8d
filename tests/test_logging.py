# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Tests for sigv4client/logging.py."""

import logging
import sys

import pytest

from sigv4client.logging import (
    DEFAULT_FORMAT,
    SecretFilter,
    configure_logging,
    get_logger,
)


def _record(msg: str, args: tuple = ()) -> logging.LogRecord:
    return logging.LogRecord(
        name="test",
        level=logging.INFO,
        pathname="",
        lineno=0,
        msg=msg,
        args=args,
        exc_info=None,
    )


class TestSecretFilter:
    """Tests for SecretFilter class."""

    def test_filter_returns_true(self) -> None:
        """Filter never suppresses records."""
        assert SecretFilter().filter(_record("message")) is True

    def test_no_secrets_no_redaction(self) -> None:
        """Without registered secrets, messages pass through unchanged."""
        record = _record("key AKIAEXAMPLE")
        SecretFilter().filter(record)
        assert record.msg == "key AKIAEXAMPLE"

    def test_redacts_registered_secret(self) -> None:
        """Registered secrets are redacted from messages."""
        SecretFilter.register_secret("wJalrXUtnFEMI")
        record = _record("Signing with wJalrXUtnFEMI")
        SecretFilter().filter(record)
        assert record.msg == "Signing with [REDACTED]"

    def test_redacts_in_args(self) -> None:
        """Secrets in string args are redacted; other args are kept."""
        SecretFilter.register_secret("wJalrXUtnFEMI")
        record = _record("%s %d", ("wJalrXUtnFEMI", 5))
        SecretFilter().filter(record)
        assert record.args == ("[REDACTED]", 5)

    def test_overlapping_secrets_redact_fully(self) -> None:
        """The longest secret wins when secrets overlap."""
        SecretFilter.register_secret("abc")
        SecretFilter.register_secret("abcdef")
        record = _record("value abcdef")
        SecretFilter().filter(record)
        assert record.msg == "value [REDACTED]"

    def test_special_regex_chars(self) -> None:
        """Secrets containing regex metacharacters are escaped."""
        SecretFilter.register_secret("a+b/c.*")
        record = _record("secret a+b/c.*")
        SecretFilter().filter(record)
        assert record.msg == "secret [REDACTED]"

    def test_ignores_empty_secret(self) -> None:
        """Empty strings are not registered."""
        SecretFilter.register_secret("")
        assert len(SecretFilter._secrets) == 0
        assert SecretFilter._pattern is None

    def test_clear_secrets(self) -> None:
        """clear_secrets removes everything."""
        SecretFilter.register_secret("one")
        SecretFilter.clear_secrets()
        assert len(SecretFilter._secrets) == 0
        assert SecretFilter._pattern is None


class TestConfigureLogging:
    """Tests for configure_logging function."""

    def teardown_method(self) -> None:
        """Reset logging after each test."""
        root = logging.getLogger()
        root.handlers.clear()
        root.setLevel(logging.WARNING)

    def test_sets_log_level(self) -> None:
        """The root logger level is set."""
        configure_logging(level=logging.DEBUG)
        assert logging.getLogger().level == logging.DEBUG

    def test_single_handler_after_repeated_calls(self) -> None:
        """Calling configure_logging twice does not duplicate handlers."""
        configure_logging()
        configure_logging()
        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0], logging.StreamHandler)

    def test_defaults_to_warning_on_stderr(self) -> None:
        """Default setup logs warnings to stderr in the CLI format."""
        configure_logging()
        root = logging.getLogger()
        handler = root.handlers[0]
        assert root.level == logging.WARNING
        assert isinstance(handler, logging.StreamHandler)
        assert handler.stream is sys.stderr
        assert handler.formatter is not None
        assert handler.formatter._fmt == DEFAULT_FORMAT

    def test_redacts_through_handler(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Registered secrets never reach the formatted output."""
        configure_logging(level=logging.INFO)
        SecretFilter.register_secret("wJalrXUtnFEMI")
        logging.getLogger("sigv4client.test").info("key=%s", "wJalrXUtnFEMI")

        err = capsys.readouterr().err
        assert "key=[REDACTED]" in err
        assert "wJalrXUtnFEMI" not in err

    def test_custom_format(self) -> None:
        """A custom format string is used."""
        configure_logging(format_string="%(message)s")
        formatter = logging.getLogger().handlers[0].formatter
        assert formatter is not None
        assert formatter._fmt == "%(message)s"

    def test_secret_filter_toggle(self) -> None:
        """The secret filter is added by default and can be disabled."""
        configure_logging()
        filters = logging.getLogger().handlers[0].filters
        assert any(isinstance(f, SecretFilter) for f in filters)

        configure_logging(add_secret_filter=False)
        filters = logging.getLogger().handlers[0].filters
        assert not any(isinstance(f, SecretFilter) for f in filters)


class TestGetLogger:
    """Tests for get_logger function."""

    def test_returns_named_logger(self) -> None:
        """get_logger returns the standard named logger."""
        logger = get_logger("sigv4client.test")
        assert logger is logging.getLogger("sigv4client.test")
