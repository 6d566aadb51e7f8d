# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Transport capability consumed by the client, plus a TLS socket transport.

The client only depends on the ``Transport`` protocol.  ``SocketTransport``
is the default implementation: blocking TCP with TLS, optional pinning of
the server certificate fingerprint, and buffered line/chunk reads.
"""

from __future__ import annotations

import fnmatch
import logging
import re
import socket
import ssl
from typing import Protocol

from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.x509.oid import ExtensionOID


logger = logging.getLogger(__name__)

_RECV_SIZE = 65536

_FINGERPRINT_SEPARATORS_RE = re.compile(r"[\s:]")
_HEX_RE = re.compile(r"^[0-9a-f]+$")


class Transport(Protocol):
    """Byte-level connection used to send a signed request."""

    def connect(self, host: str, port: int) -> bool:
        """Open a session to *host*:*port*.  Returns False on failure."""
        ...

    def verify_identity(self, fingerprint: str, host: str) -> bool:
        """Check the peer certificate against a pinned fingerprint."""
        ...

    def write(self, data: bytes) -> None:
        """Send all of *data*."""
        ...

    def read_line(self) -> str:
        """Read one line including its terminator; ``""`` at close."""
        ...

    def bytes_available(self) -> int:
        """Number of bytes readable without blocking."""
        ...

    def read_available(self) -> bytes:
        """Read the next chunk of data; ``b""`` at close."""
        ...

    def is_connected(self) -> bool: ...

    def close(self) -> None:
        """Release the connection.  Safe to call repeatedly."""
        ...


def normalize_fingerprint(fingerprint: str) -> str:
    """Normalize a hex fingerprint to lowercase without separators.

    Accepts ``AB:CD:...``, ``ab cd ...`` and plain hex.

    Raises:
        ValueError: If the result is not a 40-char (SHA-1) or 64-char
            (SHA-256) hex string.
    """
    value = _FINGERPRINT_SEPARATORS_RE.sub("", fingerprint).lower()
    if len(value) not in (40, 64) or not _HEX_RE.match(value):
        raise ValueError(
            f"Fingerprint must be SHA-1 or SHA-256 hex, got {fingerprint!r}"
        )
    return value


def certificate_fingerprint(der: bytes, algorithm: str = "sha256") -> str:
    """Hex fingerprint of a DER-encoded certificate."""
    cert = x509.load_der_x509_certificate(der)
    hash_alg = hashes.SHA1() if algorithm == "sha1" else hashes.SHA256()
    return cert.fingerprint(hash_alg).hex()


def certificate_dns_names(der: bytes) -> list[str]:
    """DNS names from the certificate's subjectAltName extension."""
    cert = x509.load_der_x509_certificate(der)
    try:
        ext = cert.extensions.get_extension_for_oid(
            ExtensionOID.SUBJECT_ALTERNATIVE_NAME
        )
    except x509.ExtensionNotFound:
        return []
    return ext.value.get_values_for_type(x509.DNSName)


def _host_matches(host: str, names: list[str]) -> bool:
    host = host.lower()
    return any(fnmatch.fnmatch(host, name.lower()) for name in names)


class SocketTransport:
    """Blocking TLS transport over a TCP socket.

    When ``verify_certificates`` is False the certificate chain is not
    validated; pinning a fingerprint is then the only identity check.
    """

    def __init__(
        self,
        *,
        timeout: float | None = 30.0,
        verify_certificates: bool = True,
        ssl_context: ssl.SSLContext | None = None,
    ) -> None:
        self._timeout = timeout
        if ssl_context is None:
            ssl_context = ssl.create_default_context()
            if not verify_certificates:
                ssl_context.check_hostname = False
                ssl_context.verify_mode = ssl.CERT_NONE
        self._context = ssl_context
        self._sock: ssl.SSLSocket | None = None
        self._buffer = bytearray()
        self._eof = False

    def connect(self, host: str, port: int) -> bool:
        self.close()
        try:
            raw = socket.create_connection((host, port), timeout=self._timeout)
        except OSError as exc:
            logger.warning("Connection to %s:%d failed: %s", host, port, exc)
            return False
        try:
            self._sock = self._context.wrap_socket(raw, server_hostname=host)
        except (OSError, ssl.SSLError) as exc:
            raw.close()
            logger.warning("TLS handshake with %s failed: %s", host, exc)
            return False
        self._buffer.clear()
        self._eof = False
        logger.debug("Connected to %s:%d", host, port)
        return True

    def verify_identity(self, fingerprint: str, host: str) -> bool:
        if self._sock is None:
            return False
        der = self._sock.getpeercert(binary_form=True)
        if not der:
            logger.warning("No peer certificate presented by %s", host)
            return False

        try:
            expected = normalize_fingerprint(fingerprint)
        except ValueError as exc:
            logger.warning("%s", exc)
            return False
        algorithm = "sha1" if len(expected) == 40 else "sha256"
        try:
            actual = certificate_fingerprint(der, algorithm)
            names = certificate_dns_names(der)
        except ValueError as exc:
            logger.warning("Cannot parse certificate from %s: %s", host, exc)
            return False
        if actual != expected:
            logger.warning(
                "Certificate fingerprint mismatch for %s: got %s", host, actual
            )
            return False

        if names and not _host_matches(host, names):
            logger.warning(
                "Certificate for %s does not cover host (names: %s)",
                host,
                ", ".join(names),
            )
            return False
        return True

    def write(self, data: bytes) -> None:
        if self._sock is None:
            raise ConnectionError("Transport is not connected")
        self._sock.sendall(data)

    def _fill(self) -> bool:
        """Receive more data into the buffer.  Returns False at EOF."""
        if self._sock is None or self._eof:
            return False
        chunk = self._sock.recv(_RECV_SIZE)
        if not chunk:
            self._eof = True
            return False
        self._buffer.extend(chunk)
        return True

    def read_line(self) -> str:
        while b"\n" not in self._buffer:
            if not self._fill():
                break
        end = self._buffer.find(b"\n")
        end = len(self._buffer) if end == -1 else end + 1
        line = bytes(self._buffer[:end])
        del self._buffer[:end]
        return line.decode("iso-8859-1")

    def bytes_available(self) -> int:
        pending = self._sock.pending() if self._sock is not None else 0
        return len(self._buffer) + pending

    def read_available(self) -> bytes:
        if not self._buffer:
            self._fill()
        data = bytes(self._buffer)
        self._buffer.clear()
        return data

    def is_connected(self) -> bool:
        return self._sock is not None and not self._eof

    def close(self) -> None:
        if self._sock is not None:
            try:
                self._sock.close()
            except OSError as exc:
                logger.debug("Error closing socket: %s", exc)
            self._sock = None
        self._eof = True
