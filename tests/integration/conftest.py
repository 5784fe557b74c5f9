"""Pytest configuration and fixtures for integration tests."""

from __future__ import annotations

import asyncio
import os
from pathlib import Path
from typing import TYPE_CHECKING

import pytest
from dotenv import load_dotenv


if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from pyvesynccloud import VeSyncClient


# Load .env file from project root
env_path = Path(__file__).parents[2] / ".env"
load_dotenv(env_path)


@pytest.fixture(scope="session")
def integration_config() -> dict[str, str | None]:
    """Load integration test configuration from environment.

    Skips the requesting test when credentials are missing.

    Returns:
        Dictionary with account credentials and optional region hints.
    """
    username = os.getenv("VESYNC_USERNAME")
    password = os.getenv("VESYNC_PASSWORD")

    if not username or not password:
        pytest.skip("VeSync credentials not available, set VESYNC_USERNAME and VESYNC_PASSWORD in .env")

    return {
        "username": username,
        "password": password,
        "region": os.getenv("VESYNC_REGION") or None,
        "country_code": os.getenv("VESYNC_COUNTRY_CODE") or None,
    }


@pytest.fixture
async def integration_client(integration_config: dict[str, str | None]) -> AsyncGenerator[VeSyncClient]:
    """Create a logged-in client for one test."""
    from pyvesynccloud import VeSyncClient

    async with VeSyncClient(
        integration_config["username"] or "",
        integration_config["password"] or "",
        region=integration_config["region"],
        country_code=integration_config["country_code"],
    ) as client:
        assert await client.login(), "Login should succeed with valid credentials"
        yield client


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for integration tests."""
    config.addinivalue_line("markers", "integration: Integration tests requiring real API access")


@pytest.fixture(autouse=True)
async def rate_limit_delay(request: pytest.FixtureRequest) -> AsyncGenerator[None]:
    """Pause after each integration test so the cloud does not throttle the account."""
    yield
    if "integration" in request.keywords:
        await asyncio.sleep(2.0)
