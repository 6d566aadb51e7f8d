# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Core value types shared by the signing pipeline.

Provides Credentials (account and endpoint identity) and Timestamp (the
single UTC instant that feeds every date-bearing field of a signature).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime


@dataclass(frozen=True)
class Credentials:
    """Account credentials and endpoint coordinates.

    Attributes:
        service: Service name used in the credential scope and FQDN
            (e.g. ``execute-api``).
        access_key: Access key ID.
        secret_key: Secret access key.
        host: Leftmost FQDN label (e.g. an API Gateway ID).
        region: Region name.
        tld: Top-level domain of the endpoint.
    """

    service: str
    access_key: str
    secret_key: str
    host: str
    region: str = "us-east-1"
    tld: str = "amazonaws.com"

    @property
    def fqdn(self) -> str:
        """Derived ``host.service.region.tld`` endpoint name."""
        return f"{self.host}.{self.service}.{self.region}.{self.tld}"

    def __repr__(self) -> str:
        return (
            f"Credentials(service={self.service!r}, "
            f"access_key={self.access_key!r}, secret_key='***', "
            f"host={self.host!r}, region={self.region!r}, tld={self.tld!r})"
        )


@dataclass(frozen=True)
class Timestamp:
    """A UTC instant split into SigV4 date and time components.

    Attributes:
        date: Eight-digit ``YYYYMMDD``.
        time: Six-digit ``HHMMSS``.
    """

    date: str
    time: str

    @classmethod
    def from_datetime(cls, instant: datetime) -> Timestamp:
        """Build from one instant so date and time can never disagree.

        Naive datetimes are taken to already be UTC.
        """
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=UTC)
        else:
            instant = instant.astimezone(UTC)
        return cls(
            date=instant.strftime("%Y%m%d"),
            time=instant.strftime("%H%M%S"),
        )

    @property
    def amz_date(self) -> str:
        """ISO8601 basic format used by ``x-amz-date``."""
        return f"{self.date}T{self.time}Z"


def system_clock() -> datetime:
    """Current time from the system clock, in UTC."""
    return datetime.now(UTC)
