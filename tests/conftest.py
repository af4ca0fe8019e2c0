"""
Pytest Configuration

Shared fixtures for the suite.  Every test runs against ``httpx.MockTransport``
clients; the shared default client and cached settings are reset around each
test so environment overrides never leak between cases.
"""

from __future__ import annotations

from typing import Generator

import pytest

from HttpAgent.network import reset_http_client
from HttpAgent.settings import reset_settings

# Make HTTP mocking fixtures globally available
from tests.fixtures.http_mocking import (  # noqa: F401
    http_mock,
    mock_client,
)


@pytest.fixture(autouse=True)
def _isolated_defaults() -> Generator[None, None, None]:
    reset_settings()
    reset_http_client()
    yield
    reset_http_client()
    reset_settings()
