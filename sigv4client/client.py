# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""SigV4 API client.

``AWSClient`` signs requests with a :class:`RequestSigner`, sends them
over an injected :class:`Transport`, and filters the response through a
:class:`CaptureMask`.  Every outcome, including connection and identity
failures, is returned as a :class:`SignedResponse`; nothing is raised for
request-level failures and nothing is retried.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from sigv4client.logging import SecretFilter
from sigv4client.response import (
    CaptureMask,
    SignedResponse,
    capture_response,
    failure_response,
)
from sigv4client.signing import (
    DEFAULT_CONTENT_TYPE,
    Clock,
    RequestSigner,
    SignedRequest,
)
from sigv4client.transport import SocketTransport, Transport
from sigv4client.types import Credentials, system_clock


if TYPE_CHECKING:
    from sigv4client.config import ClientConfig


logger = logging.getLogger(__name__)

DEFAULT_PORT = 443


class AWSClient:
    """Client for a single SigV4-authenticated endpoint.

    Args:
        credentials: Account credentials and endpoint coordinates.
        transport: Connection used to send requests.  Defaults to a
            :class:`SocketTransport`.
        clock: Time source for request timestamps.
        port: Endpoint port.
        canonicalize_query: Use standard SigV4 query canonicalization
            instead of passing query strings through verbatim.
    """

    def __init__(
        self,
        credentials: Credentials,
        *,
        transport: Transport | None = None,
        clock: Clock = system_clock,
        port: int = DEFAULT_PORT,
        canonicalize_query: bool = False,
    ) -> None:
        self._signer = RequestSigner(
            credentials, clock=clock, canonicalize_query=canonicalize_query
        )
        self._transport: Transport = transport or SocketTransport()
        self._port = port
        self._custom_fqdn = ""
        self._fingerprint = ""
        self._capture_mask = CaptureMask.default()
        SecretFilter.register_secret(credentials.secret_key)

    @classmethod
    def from_config(
        cls,
        config: ClientConfig,
        *,
        transport: Transport | None = None,
        clock: Clock = system_clock,
    ) -> AWSClient:
        """Build a client from loaded configuration."""
        if transport is None:
            transport = SocketTransport(
                timeout=config.timeout,
                verify_certificates=config.verify_certificates,
            )
        client = cls(
            config.credentials,
            transport=transport,
            clock=clock,
            port=config.port,
            canonicalize_query=config.canonicalize_query,
        )
        client.set_custom_fqdn(config.custom_fqdn)
        client.set_fingerprint(config.fingerprint)
        client.set_capture_mask(config.capture_mask)
        return client

    @property
    def credentials(self) -> Credentials:
        return self._signer.credentials

    @property
    def fqdn(self) -> str:
        """Effective endpoint: the custom FQDN if set, else the derived one."""
        return self._custom_fqdn or self.credentials.fqdn

    @property
    def capture_mask(self) -> CaptureMask:
        return self._capture_mask

    def set_custom_fqdn(self, fqdn: str | None) -> None:
        """Override the derived FQDN.  Empty or None restores it."""
        self._custom_fqdn = fqdn or ""

    def set_fingerprint(self, fingerprint: str | None) -> None:
        """Pin the server certificate fingerprint.  Empty disables pinning."""
        self._fingerprint = fingerprint or ""

    def set_capture_mask(self, mask: CaptureMask) -> None:
        self._capture_mask = mask

    def create_request(
        self,
        method: str,
        path: str,
        payload: str | bytes = b"",
        content_type: str = DEFAULT_CONTENT_TYPE,
        query: str = "",
        now: datetime | None = None,
    ) -> SignedRequest:
        """Sign a request for the current endpoint without sending it."""
        return self._signer.build_request(
            method,
            path,
            payload,
            content_type,
            query,
            now,
            fqdn=self.fqdn,
        )

    def request(
        self,
        method: str,
        path: str,
        payload: str | bytes = b"",
        content_type: str = DEFAULT_CONTENT_TYPE,
        query: str = "",
    ) -> SignedResponse:
        """Sign and send a request."""
        return self.send(
            self.create_request(method, path, payload, content_type, query)
        )

    def get(self, path: str, query: str = "") -> SignedResponse:
        return self.request("GET", path, query=query)

    def post(
        self,
        path: str,
        payload: str | bytes,
        content_type: str = DEFAULT_CONTENT_TYPE,
        query: str = "",
    ) -> SignedResponse:
        return self.request("POST", path, payload, content_type, query)

    def send(self, signed: SignedRequest) -> SignedResponse:
        """Send a signed request and capture the response.

        The connection is closed before returning on every path.  If a
        fingerprint is pinned and does not match, no bytes are written.
        """
        transport = self._transport
        host = signed.fqdn
        try:
            if not transport.connect(host, self._port):
                logger.warning("Connection to %s:%d failed", host, self._port)
                return failure_response("Connection failure")

            if self._fingerprint and not transport.verify_identity(
                self._fingerprint, host
            ):
                logger.warning("Identity verification failed for %s", host)
                return failure_response("Fingerprint mismatch")

            transport.write(signed.to_bytes())
            response = capture_response(transport, self._capture_mask)
        except (OSError, ValueError) as exc:
            logger.warning("Transport error talking to %s: %s", host, exc)
            return failure_response(f"Transport error: {exc}")
        finally:
            transport.close()

        logger.info(
            "%s %s -> %d",
            signed.head.split(" ", 1)[0],
            host,
            response.status,
        )
        return response
