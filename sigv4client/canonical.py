# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Canonical request construction.

The signed header set is fixed: every request signs exactly
``content-type``, ``host``, ``x-amz-content-sha256`` and ``x-amz-date``,
in that order.

The query string is used verbatim unless the caller opts into standard
SigV4 query canonicalization (percent-encoding plus sort), in which case
the caller must also send the canonical form on the wire.
"""

from __future__ import annotations

import urllib.parse
from dataclasses import dataclass

from sigv4client.types import Timestamp


#: Signed header names, lowercase, in canonical order.
SIGNED_HEADERS = ("content-type", "host", "x-amz-content-sha256", "x-amz-date")

#: Semicolon-joined form used in the canonical request and Authorization.
SIGNED_HEADERS_STR = ";".join(SIGNED_HEADERS)

_AWS_UNRESERVED = frozenset(
    "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_.~"
)


@dataclass(frozen=True)
class CanonicalRequest:
    """Canonical request components.

    Attributes:
        method: HTTP method.
        path: Canonical URI path.
        query: Canonical query string (no leading ``?``).
        headers: Canonical header block, one ``name:value\\n`` per header.
        signed_headers: Semicolon-separated signed header names.
        payload_hash: Hex SHA-256 of the payload.
    """

    method: str
    path: str
    query: str
    headers: str
    signed_headers: str
    payload_hash: str

    def render(self) -> str:
        """Render the newline-joined canonical request string."""
        return "\n".join(
            [
                self.method,
                self.path,
                self.query,
                self.headers,
                self.signed_headers,
                self.payload_hash,
            ]
        )

    def __str__(self) -> str:
        return self.render()


def _uri_encode(value: str) -> str:
    """URI-encode a value using AWS's unreserved set.

    Everything outside ``A-Z a-z 0-9 - _ . ~`` is percent-encoded with
    uppercase hex, byte by byte of the UTF-8 encoding.
    """
    result: list[str] = []
    for byte in value.encode("utf-8"):
        ch = chr(byte)
        if ch in _AWS_UNRESERVED:
            result.append(ch)
        else:
            result.append(f"%{byte:02X}")
    return "".join(result)


def canonical_query_string(query: str) -> str:
    """Build a standard SigV4 canonical query string.

    Args:
        query: Raw query string (without leading ``?``).

    Returns:
        Parameters URI-encoded and sorted by encoded name, then value.
    """
    if not query:
        return ""

    params = urllib.parse.parse_qsl(query, keep_blank_values=True)

    encoded = [(_uri_encode(k), _uri_encode(v)) for k, v in params]
    encoded.sort()

    return "&".join(f"{k}={v}" for k, v in encoded)


def canonical_headers_string(
    content_type: str, host: str, payload_hash: str, timestamp: Timestamp
) -> str:
    """Render the fixed canonical header block.

    Values are trimmed and internal whitespace runs collapsed to a single
    space.
    """
    values = (content_type, host, payload_hash, timestamp.amz_date)
    return "".join(
        f"{name}:{' '.join(value.split())}\n"
        for name, value in zip(SIGNED_HEADERS, values, strict=True)
    )


def build_canonical_request(
    method: str,
    path: str,
    query: str,
    content_type: str,
    host: str,
    payload_hash: str,
    timestamp: Timestamp,
    *,
    canonicalize_query: bool = False,
) -> CanonicalRequest:
    """Build the canonical request.

    Args:
        method: HTTP method.
        path: Request path.  Used verbatim; empty becomes ``/``.
        query: Query string without leading ``?``.
        content_type: Value of the ``Content-Type`` header.
        host: Endpoint FQDN sent in the ``Host`` header.
        payload_hash: Hex SHA-256 of the payload.
        timestamp: Request timestamp.
        canonicalize_query: Sort and percent-encode the query instead of
            passing it through.

    Returns:
        CanonicalRequest value.
    """
    if canonicalize_query:
        query = canonical_query_string(query)

    return CanonicalRequest(
        method=method,
        path=path or "/",
        query=query,
        headers=canonical_headers_string(
            content_type, host, payload_hash, timestamp
        ),
        signed_headers=SIGNED_HEADERS_STR,
        payload_hash=payload_hash,
    )
