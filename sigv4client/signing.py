# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""AWS SigV4 request signing.

Derives the per-request signing key, builds the string to sign, and
assembles a complete HTTP/1.1 request head ready for a transport.
Nothing here performs network I/O, and nothing computed for one request
is kept for the next.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from sigv4client.canonical import (
    SIGNED_HEADERS_STR,
    CanonicalRequest,
    build_canonical_request,
)
from sigv4client.hashing import hex_encode, hex_sha256, hmac_sha256
from sigv4client.types import Credentials, Timestamp, system_clock


logger = logging.getLogger(__name__)

ALGORITHM = "AWS4-HMAC-SHA256"

#: Terminator of the credential scope and final key-derivation stage.
SCOPE_TERMINATOR = "aws4_request"

DEFAULT_CONTENT_TYPE = "application/json"

Clock = Callable[[], datetime]


def credential_scope(date: str, region: str, service: str) -> str:
    """Build ``date/region/service/aws4_request``."""
    return f"{date}/{region}/{service}/{SCOPE_TERMINATOR}"


def derive_signing_key(
    secret_key: str, date: str, region: str, service: str
) -> bytes:
    """Derive the SigV4 signing key.

    Each stage keys the next one, so the order is significant.

    Args:
        secret_key: Secret access key.
        date: Date string (YYYYMMDD).
        region: Region name.
        service: Service name.

    Returns:
        32-byte signing key.
    """
    k_date = hmac_sha256(("AWS4" + secret_key).encode("utf-8"), date)
    k_region = hmac_sha256(k_date, region)
    k_service = hmac_sha256(k_region, service)
    return hmac_sha256(k_service, SCOPE_TERMINATOR)


def _check_head_values(**values: str) -> None:
    for name, value in values.items():
        if "\r" in value or "\n" in value:
            raise ValueError(f"{name} must not contain CR or LF: {value!r}")


def sign(signing_key: bytes, string_to_sign: str) -> str:
    """Compute the hex SigV4 signature of *string_to_sign*."""
    return hex_encode(hmac_sha256(signing_key, string_to_sign))


@dataclass(frozen=True)
class StringToSign:
    """SigV4 string to sign.

    Attributes:
        amz_date: ``YYYYMMDDTHHMMSSZ`` timestamp.
        scope: Credential scope.
        canonical_request_hash: Hex SHA-256 of the canonical request.
        algorithm: Signing algorithm tag.
    """

    amz_date: str
    scope: str
    canonical_request_hash: str
    algorithm: str = ALGORITHM

    @classmethod
    def build(
        cls,
        canonical_request: CanonicalRequest,
        timestamp: Timestamp,
        region: str,
        service: str,
    ) -> StringToSign:
        """Hash *canonical_request* and wrap it with its scope."""
        return cls(
            amz_date=timestamp.amz_date,
            scope=credential_scope(timestamp.date, region, service),
            canonical_request_hash=hex_sha256(canonical_request.render()),
        )

    def render(self) -> str:
        """Render the newline-joined string to sign."""
        return "\n".join(
            [
                self.algorithm,
                self.amz_date,
                self.scope,
                self.canonical_request_hash,
            ]
        )

    def __str__(self) -> str:
        return self.render()


@dataclass(frozen=True)
class SignedRequest:
    """A fully signed request, ready for a transport.

    Attributes:
        head: Request line and headers, terminated by an empty line.
        payload: Request body bytes.
        fqdn: Endpoint the request is addressed to.
        authorization: Value of the ``Authorization`` header.
        signature: Hex signature.
        canonical_request: Canonical request string that was signed.
        string_to_sign: String to sign.
    """

    head: str
    payload: bytes
    fqdn: str
    authorization: str
    signature: str
    canonical_request: str
    string_to_sign: str

    def to_bytes(self) -> bytes:
        """Exact bytes to write to the connection."""
        return self.head.encode("utf-8") + self.payload


class RequestSigner:
    """Builds SigV4-signed requests for one set of credentials.

    The signer holds only immutable configuration.  Every call to
    :meth:`build_request` reads the clock at most once and computes its
    canonical request, string to sign and signing key as locals.
    """

    def __init__(
        self,
        credentials: Credentials,
        *,
        clock: Clock = system_clock,
        canonicalize_query: bool = False,
    ) -> None:
        self._credentials = credentials
        self._clock = clock
        self._canonicalize_query = canonicalize_query

    @property
    def credentials(self) -> Credentials:
        return self._credentials

    def build_request(
        self,
        method: str,
        path: str,
        payload: str | bytes = b"",
        content_type: str = DEFAULT_CONTENT_TYPE,
        query: str = "",
        now: datetime | None = None,
        *,
        fqdn: str | None = None,
    ) -> SignedRequest:
        """Sign a request.

        Args:
            method: HTTP method (e.g. ``GET``).
            path: Request path, e.g. ``/items``.
            payload: Request body; strings are UTF-8 encoded.
            content_type: ``Content-Type`` header value.
            query: Query string without leading ``?``.
            now: Request time.  The injected clock is used when omitted.
            fqdn: Endpoint override.  Defaults to the derived FQDN.

        Returns:
            SignedRequest with the request head and payload.

        Raises:
            ValueError: If *method* is empty, or if any value written to
                the request head contains CR or LF.
        """
        if not method:
            raise ValueError("HTTP method must not be empty")
        method = method.upper()
        if isinstance(payload, str):
            payload = payload.encode("utf-8")

        creds = self._credentials
        host = fqdn or creds.fqdn
        _check_head_values(
            method=method,
            path=path,
            query=query,
            content_type=content_type,
            host=host,
        )
        timestamp = Timestamp.from_datetime(
            now if now is not None else self._clock()
        )

        payload_hash = hex_sha256(payload)
        canonical_request = build_canonical_request(
            method,
            path,
            query,
            content_type,
            host,
            payload_hash,
            timestamp,
            canonicalize_query=self._canonicalize_query,
        )
        string_to_sign = StringToSign.build(
            canonical_request, timestamp, creds.region, creds.service
        )
        creq_text = canonical_request.render()
        sts_text = string_to_sign.render()
        logger.debug("Canonical request:\n%s", creq_text)
        logger.debug("String to sign:\n%s", sts_text)

        signing_key = derive_signing_key(
            creds.secret_key, timestamp.date, creds.region, creds.service
        )
        signature = sign(signing_key, sts_text)

        authorization = (
            f"{ALGORITHM} "
            f"Credential={creds.access_key}/{string_to_sign.scope},"
            f"SignedHeaders={SIGNED_HEADERS_STR},"
            f"Signature={signature}"
        )

        target = f"https://{host}{canonical_request.path}"
        if canonical_request.query:
            target += f"?{canonical_request.query}"

        head = "".join(
            [
                f"{method} {target} HTTP/1.1\r\n",
                f"Content-Type: {content_type}\r\n",
                "Connection: close\r\n",
                f"Content-Length: {len(payload)}\r\n",
                f"Host: {host}\r\n",
                f"x-amz-content-sha256: {payload_hash}\r\n",
                f"x-amz-date: {timestamp.amz_date}\r\n",
                f"Authorization: {authorization}\r\n",
                "\r\n",
            ]
        )

        return SignedRequest(
            head=head,
            payload=payload,
            fqdn=host,
            authorization=authorization,
            signature=signature,
            canonical_request=creq_text,
            string_to_sign=sts_text,
        )
