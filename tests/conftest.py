# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Shared pytest fixtures."""

from collections.abc import Iterator

import pytest

from sigv4client.logging import SecretFilter
from sigv4client.types import Credentials


@pytest.fixture
def credentials() -> Credentials:
    """Credentials for the ``execute-api`` example endpoint."""
    return Credentials(
        service="execute-api",
        access_key="AKIAEXAMPLE",
        secret_key="SECRET",
        host="abc123",
        region="us-east-1",
        tld="amazonaws.com",
    )


@pytest.fixture(autouse=True)
def _clear_secrets() -> Iterator[None]:
    """Keep registered secrets from leaking between tests."""
    SecretFilter.clear_secrets()
    yield
    SecretFilter.clear_secrets()
