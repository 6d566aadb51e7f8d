# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Tests for sigv4client/transport.py."""

import hashlib
import ssl
from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock, patch

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

from sigv4client.transport import (
    SocketTransport,
    certificate_dns_names,
    certificate_fingerprint,
    normalize_fingerprint,
)


def _make_cert(dns_names: list[str] | None = None) -> bytes:
    """Create a self-signed DER certificate."""
    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "test")])
    now = datetime.now(UTC)
    builder = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=1))
    )
    if dns_names:
        builder = builder.add_extension(
            x509.SubjectAlternativeName(
                [x509.DNSName(n) for n in dns_names]
            ),
            critical=False,
        )
    cert = builder.sign(key, hashes.SHA256())
    return cert.public_bytes(serialization.Encoding.DER)


def _connected_transport(
    recv_chunks: list[bytes], der: bytes | None = None
) -> tuple[SocketTransport, MagicMock]:
    """A SocketTransport whose TLS socket is a mock."""
    transport = SocketTransport()
    sock = MagicMock()
    sock.recv.side_effect = [*recv_chunks, b""]
    sock.pending.return_value = 0
    sock.getpeercert.return_value = der
    context = MagicMock()
    context.wrap_socket.return_value = sock
    transport._context = context
    with patch("socket.create_connection") as create:
        create.return_value = MagicMock()
        assert transport.connect("api.example.com", 443)
    return transport, sock


class TestNormalizeFingerprint:
    """Tests for normalize_fingerprint."""

    def test_colon_separated_sha1(self) -> None:
        """Colon-separated uppercase SHA-1 is normalized."""
        fp = ":".join(["AB"] * 20)
        assert normalize_fingerprint(fp) == "ab" * 20

    def test_space_separated_sha256(self) -> None:
        """Space-separated SHA-256 is normalized."""
        fp = " ".join(["0F"] * 32)
        assert normalize_fingerprint(fp) == "0f" * 32

    def test_wrong_length_rejected(self) -> None:
        """Lengths other than SHA-1/SHA-256 are rejected."""
        with pytest.raises(ValueError, match="SHA-1 or SHA-256"):
            normalize_fingerprint("abcd")

    def test_non_hex_rejected(self) -> None:
        """Non-hex characters are rejected."""
        with pytest.raises(ValueError):
            normalize_fingerprint("zz" * 20)


class TestCertificateHelpers:
    """Tests for certificate_fingerprint and certificate_dns_names."""

    def test_fingerprint_matches_digest_of_der(self) -> None:
        """Fingerprints are digests of the DER encoding."""
        der = _make_cert()
        assert certificate_fingerprint(der) == hashlib.sha256(der).hexdigest()
        assert certificate_fingerprint(der, "sha1") == (
            hashlib.sha1(der).hexdigest()  # noqa: S324
        )

    def test_dns_names(self) -> None:
        """SAN DNS names are extracted."""
        der = _make_cert(["api.example.com", "*.example.org"])
        assert certificate_dns_names(der) == [
            "api.example.com",
            "*.example.org",
        ]

    def test_no_san(self) -> None:
        """Certificates without SAN have no DNS names."""
        assert certificate_dns_names(_make_cert()) == []


class TestVerifyIdentity:
    """Tests for SocketTransport.verify_identity."""

    def test_matching_sha256(self) -> None:
        """A matching SHA-256 fingerprint verifies."""
        der = _make_cert(["api.example.com"])
        transport, _ = _connected_transport([], der)
        fp = hashlib.sha256(der).hexdigest().upper()
        assert transport.verify_identity(fp, "api.example.com")

    def test_matching_sha1_with_colons(self) -> None:
        """SHA-1 fingerprints with separators verify."""
        der = _make_cert()
        transport, _ = _connected_transport([], der)
        digest = hashlib.sha1(der).hexdigest()  # noqa: S324
        fp = ":".join(digest[i : i + 2] for i in range(0, 40, 2))
        assert transport.verify_identity(fp, "api.example.com")

    def test_mismatch(self) -> None:
        """A different fingerprint fails."""
        transport, _ = _connected_transport([], _make_cert())
        assert not transport.verify_identity("00" * 32, "api.example.com")

    def test_host_not_covered(self) -> None:
        """A matching fingerprint for another host fails."""
        der = _make_cert(["other.example.com"])
        transport, _ = _connected_transport([], der)
        fp = hashlib.sha256(der).hexdigest()
        assert not transport.verify_identity(fp, "api.example.com")

    def test_wildcard_host(self) -> None:
        """Wildcard SAN entries cover matching hosts."""
        der = _make_cert(["*.example.com"])
        transport, _ = _connected_transport([], der)
        fp = hashlib.sha256(der).hexdigest()
        assert transport.verify_identity(fp, "api.example.com")

    def test_unparseable_certificate(self) -> None:
        """A certificate that cannot be parsed fails verification."""
        der = b"not a certificate"
        transport, _ = _connected_transport([], der)
        fp = hashlib.sha256(der).hexdigest()
        assert not transport.verify_identity(fp, "api.example.com")

    def test_no_peer_certificate(self) -> None:
        """Missing peer certificate fails."""
        transport, _ = _connected_transport([], None)
        assert not transport.verify_identity("00" * 32, "api.example.com")

    def test_invalid_pinned_value(self) -> None:
        """A malformed pinned fingerprint fails instead of raising."""
        transport, _ = _connected_transport([], _make_cert())
        assert not transport.verify_identity("nope", "api.example.com")

    def test_not_connected(self) -> None:
        """Verification before connecting fails."""
        assert not SocketTransport().verify_identity("00" * 32, "x")


class TestSocketTransportIO:
    """Tests for connect, buffered reads, and close."""

    def test_connect_failure(self) -> None:
        """Socket errors make connect return False."""
        transport = SocketTransport()
        with patch(
            "socket.create_connection", side_effect=OSError("refused")
        ):
            assert not transport.connect("api.example.com", 443)
        assert not transport.is_connected()

    def test_tls_failure_closes_socket(self) -> None:
        """Handshake errors close the raw socket and return False."""
        transport = SocketTransport()
        raw = MagicMock()
        context = MagicMock()
        context.wrap_socket.side_effect = ssl.SSLError("bad handshake")
        transport._context = context
        with patch("socket.create_connection", return_value=raw):
            assert not transport.connect("api.example.com", 443)
        raw.close.assert_called_once()

    def test_sni_uses_host(self) -> None:
        """The TLS server name is the connection host."""
        transport, _ = _connected_transport([])
        transport._context.wrap_socket.assert_called_once()
        _, kwargs = transport._context.wrap_socket.call_args
        assert kwargs["server_hostname"] == "api.example.com"

    def test_read_lines_across_chunks(self) -> None:
        """Lines split across recv() calls are reassembled."""
        transport, _ = _connected_transport(
            [b"HTTP/1.1 2", b"00 OK\r\nA: b\r\n", b"\r\nbody"]
        )
        assert transport.read_line() == "HTTP/1.1 200 OK\r\n"
        assert transport.read_line() == "A: b\r\n"
        assert transport.read_line() == "\r\n"
        assert transport.bytes_available() == 4
        assert transport.read_available() == b"body"
        assert transport.read_available() == b""
        assert not transport.is_connected()

    def test_read_line_at_eof_returns_remainder(self) -> None:
        """An unterminated final line is returned, then empty strings."""
        transport, _ = _connected_transport([b"partial"])
        assert transport.read_line() == "partial"
        assert transport.read_line() == ""

    def test_write_sends_all(self) -> None:
        """write() uses sendall."""
        transport, sock = _connected_transport([])
        transport.write(b"data")
        sock.sendall.assert_called_once_with(b"data")

    def test_write_when_closed_raises(self) -> None:
        """Writing without a connection raises ConnectionError."""
        with pytest.raises(ConnectionError):
            SocketTransport().write(b"x")

    def test_close_idempotent(self) -> None:
        """close() may be called repeatedly."""
        transport, sock = _connected_transport([])
        transport.close()
        transport.close()
        sock.close.assert_called_once()
        assert not transport.is_connected()

    def test_unverified_context(self) -> None:
        """verify_certificates=False disables chain validation."""
        transport = SocketTransport(verify_certificates=False)
        assert transport._context.verify_mode == ssl.CERT_NONE
        assert transport._context.check_hostname is False
