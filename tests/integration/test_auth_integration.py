"""Integration tests for the login protocol against the live VeSync cloud."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from aiohttp import ClientSession

from pyvesynccloud import AuthenticationHandler, AuthFailure, Region, VeSyncAPI, endpoint_for


if TYPE_CHECKING:
    from collections.abc import AsyncGenerator


pytestmark = pytest.mark.integration


@pytest.fixture
async def api() -> AsyncGenerator[VeSyncAPI]:
    """Create a transport on a fresh aiohttp session."""
    async with ClientSession() as session:
        yield VeSyncAPI(session=session)


class TestAuthenticationIntegration:
    """Integration tests for AuthenticationHandler with the real API."""

    async def test_login_with_valid_credentials(
        self, integration_config: dict[str, str | None], api: VeSyncAPI
    ) -> None:
        handler = AuthenticationHandler(
            api,
            integration_config["username"] or "",
            integration_config["password"] or "",
        )

        result = await handler.login(
            integration_config["region"] or Region.US,
            country_code=integration_config["country_code"],
        )

        assert result.success, f"Login should succeed, got {result.failure}: {result.message}"
        assert result.token
        assert result.account_id
        assert result.api_base_url in {endpoint_for(Region.US), endpoint_for(Region.EU)}

    async def test_login_with_wrong_password(
        self, integration_config: dict[str, str | None], api: VeSyncAPI
    ) -> None:
        handler = AuthenticationHandler(
            api,
            integration_config["username"] or "",
            "definitely-not-the-password",
        )

        result = await handler.login(
            integration_config["region"] or Region.US,
            country_code=integration_config["country_code"],
            retry_attempts=1,
        )

        assert result.success is False
        assert result.failure is AuthFailure.CREDENTIALS
