# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Response capture policy.

Reads a response from a connected transport and keeps only the parts the
caller asked for.  Content-Type and Content-Length are always extracted;
the raw header block and body are retained according to a CaptureMask.
A body that is not retained is still drained so the connection can be
released cleanly.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Flag, auto
from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from sigv4client.transport import Transport


logger = logging.getLogger(__name__)

#: Status code of synthetic responses for failures before any request.
FAILURE_STATUS = 500

_STATUS_LINE_RE = re.compile(r"^HTTP/\d\.\d (?P<code>\d{3})(?:\s|$)")


class CaptureMask(Flag):
    """Which parts of a response to retain.

    Flags combine freely.  ``CaptureMask(0)`` keeps only the status and
    the extracted Content-Type/Content-Length.
    """

    HEADERS = auto()
    BODY = auto()
    BODY_ON_ERROR = auto()

    @classmethod
    def default(cls) -> CaptureMask:
        """Keep the body of error responses only."""
        return cls.BODY_ON_ERROR

    def keeps_body(self, status: int) -> bool:
        """Whether a body with *status* is retained under this mask."""
        if CaptureMask.BODY in self:
            return True
        return CaptureMask.BODY_ON_ERROR in self and status >= 400


@dataclass(frozen=True)
class SignedResponse:
    """Result of a signed request.

    Always returned, including for connection and identity failures
    (status 500 with a diagnostic body).

    Attributes:
        status: HTTP status code, or 0 if the status line was malformed.
        content_type: Content-Type header value, empty if absent.
        content_length: Content-Length header value, 0 if absent.
        headers: Raw header block, empty unless captured.
        body: Response body, empty unless captured.
    """

    status: int
    content_type: str = ""
    content_length: int = 0
    headers: str = ""
    body: bytes = b""

    @property
    def text(self) -> str:
        """Body decoded as UTF-8."""
        return self.body.decode("utf-8", errors="replace")

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 400


def failure_response(message: str) -> SignedResponse:
    """Synthetic response for a request that was never sent."""
    return SignedResponse(status=FAILURE_STATUS, body=message.encode("utf-8"))


def parse_status_line(line: str) -> int:
    """Extract the 3-digit status code from an HTTP status line.

    Returns:
        The status code, or 0 if the line is not a valid status line.
    """
    m = _STATUS_LINE_RE.match(line.strip("\r\n"))
    if not m:
        return 0
    return int(m.group("code"))


def _parse_content_length(value: str) -> int | None:
    try:
        length = int(value.strip())
    except ValueError:
        return None
    return length if length >= 0 else None


def capture_response(
    transport: Transport, mask: CaptureMask | None = None
) -> SignedResponse:
    """Read one response from *transport* and filter it through *mask*.

    Args:
        transport: Connected transport positioned at the status line.
        mask: Capture mask.  Defaults to ``CaptureMask.default()``.

    Returns:
        SignedResponse with the retained parts.
    """
    if mask is None:
        mask = CaptureMask.default()

    status_line = transport.read_line()
    status = parse_status_line(status_line)
    if not status:
        logger.warning("Malformed status line: %r", status_line)

    content_type = ""
    content_length: int | None = None
    header_lines: list[str] = []
    if not status and status_line.strip():
        header_lines.append(status_line)

    while True:
        line = transport.read_line()
        if not line or line in ("\r\n", "\n"):
            break
        header_lines.append(line)
        name, sep, value = line.partition(":")
        if not sep:
            continue
        name = name.strip().lower()
        if name == "content-type":
            content_type = value.strip()
        elif name == "content-length":
            content_length = _parse_content_length(value)

    keep_body = mask.keeps_body(status)
    body = bytearray()
    received = 0
    while content_length is None or received < content_length:
        if not (transport.is_connected() or transport.bytes_available()):
            break
        chunk = transport.read_available()
        if not chunk:
            break
        received += len(chunk)
        if keep_body:
            body.extend(chunk)

    if content_length is not None and len(body) > content_length:
        del body[content_length:]

    logger.debug(
        "Response %d: %d body bytes read, %s",
        status,
        received,
        "kept" if keep_body else "discarded",
    )

    return SignedResponse(
        status=status,
        content_type=content_type,
        content_length=content_length or 0,
        headers="".join(header_lines) if CaptureMask.HEADERS in mask else "",
        body=bytes(body),
    )
