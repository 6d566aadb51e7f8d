# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""SHA-256 and HMAC-SHA256 primitives used by the signing pipeline."""

from __future__ import annotations

import hashlib
import hmac


def _to_bytes(data: str | bytes) -> bytes:
    if isinstance(data, str):
        return data.encode("utf-8")
    return data


def sha256(data: str | bytes) -> bytes:
    """Return the 32-byte SHA-256 digest of *data*.

    Strings are UTF-8 encoded.  Empty input is valid and yields the
    digest of the empty string.
    """
    return hashlib.sha256(_to_bytes(data)).digest()


def hmac_sha256(key: bytes, msg: str | bytes) -> bytes:
    """Return the 32-byte HMAC-SHA256 of *msg* under *key*."""
    return hmac.new(key, _to_bytes(msg), hashlib.sha256).digest()


def hex_encode(digest: bytes) -> str:
    """Encode a digest as lowercase hex."""
    return digest.hex()


def hex_sha256(data: str | bytes) -> str:
    """Hex-encoded SHA-256 of *data*."""
    return hex_encode(sha256(data))


#: SHA-256 of the empty payload.
EMPTY_PAYLOAD_HASH = hex_sha256(b"")
