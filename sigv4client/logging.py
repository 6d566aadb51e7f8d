# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Logging setup for the client and CLI.

Signing logs canonical requests and strings to sign at debug level, and
``AWSClient`` registers its secret access key with :class:`SecretFilter`
on construction, so ``-v`` output never shows the key.  Handlers write
to stderr; stdout is reserved for CLI output such as ``sign`` heads.
"""

import logging
import re
import sys
from typing import ClassVar


#: Default record format for CLI runs.
DEFAULT_FORMAT = "%(levelname)s %(name)s: %(message)s"


class SecretFilter(logging.Filter):
    """Replaces registered secrets with ``[REDACTED]``.

    Secrets are held at class level so every handler carrying the filter
    sees keys registered by any client.
    """

    _secrets: ClassVar[set[str]] = set()
    _pattern: ClassVar[re.Pattern[str] | None] = None

    def filter(self, record: logging.LogRecord) -> bool:
        """Redact registered secrets in the message and string args.

        Returns:
            Always True (records are modified, never suppressed).
        """
        if self._pattern is not None:
            record.msg = self._pattern.sub("[REDACTED]", str(record.msg))
            if record.args:
                record.args = tuple(
                    self._pattern.sub("[REDACTED]", str(arg))
                    if isinstance(arg, str)
                    else arg
                    for arg in record.args
                )
        return True

    @classmethod
    def register_secret(cls, secret: str) -> None:
        """Register a secret to be redacted.  Empty strings are ignored."""
        if secret:
            cls._secrets.add(secret)
            cls._rebuild_pattern()

    @classmethod
    def clear_secrets(cls) -> None:
        """Clear all registered secrets. Primarily for testing."""
        cls._secrets.clear()
        cls._pattern = None

    @classmethod
    def _rebuild_pattern(cls) -> None:
        if cls._secrets:
            # Longest first so overlapping secrets redact fully.
            by_length = sorted(cls._secrets, key=len, reverse=True)
            escaped = [re.escape(s) for s in by_length]
            cls._pattern = re.compile("|".join(escaped))
        else:
            cls._pattern = None


def configure_logging(
    level: int = logging.WARNING,
    format_string: str = DEFAULT_FORMAT,
    add_secret_filter: bool = True,
) -> None:
    """Replace the root logger's handlers with a single stderr handler.

    Args:
        level: Root logger level.
        format_string: Record format.
        add_secret_filter: Attach :class:`SecretFilter` to the handler.
    """
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(format_string))
    if add_secret_filter:
        handler.addFilter(SecretFilter())

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for existing_handler in root_logger.handlers[:]:
        root_logger.removeHandler(existing_handler)
    root_logger.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
