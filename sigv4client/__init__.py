# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""AWS Signature Version 4 request signing client.

Signs HTTP requests for a regional endpoint, sends them over a pluggable
transport, and captures responses according to a configurable mask.
"""

from sigv4client.client import AWSClient
from sigv4client.response import CaptureMask, SignedResponse
from sigv4client.signing import RequestSigner, SignedRequest
from sigv4client.transport import SocketTransport, Transport
from sigv4client.types import Credentials, Timestamp


__all__ = [
    "AWSClient",
    "CaptureMask",
    "Credentials",
    "RequestSigner",
    "SignedRequest",
    "SignedResponse",
    "SocketTransport",
    "Timestamp",
    "Transport",
]
