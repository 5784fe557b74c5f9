"""Authentication handler for the VeSync API."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from pyvesynccloud.const import (
    DEFAULT_LOGIN_BACKOFF,
    DEFAULT_LOGIN_RETRY_ATTEMPTS,
    DEFAULT_TZ,
    ENDPOINT_AUTH_STEP1,
    ENDPOINT_AUTH_STEP2,
    ENDPOINT_LEGACY_LOGIN,
)
from pyvesynccloud.models import AuthFailure, AuthFlow, LoginResult
from pyvesynccloud.parsers import parse_auth_step1, parse_login_response
from pyvesynccloud.regions import Region, alternate_region, default_country_code, endpoint_for, parse_region
from pyvesynccloud.resilience import ExponentialBackoff
from pyvesynccloud.serializers import (
    APP_INSTANCE_ID,
    build_auth_step1_body,
    build_auth_step2_body,
    build_legacy_login_body,
    req_header_bypass,
)


if TYPE_CHECKING:
    from pyvesynccloud.api import VeSyncAPI

_LOGGER = logging.getLogger(__name__)


class AuthenticationHandler:
    """Run the VeSync login protocol and report the outcome.

    The handler owns no session state. Each call to :meth:`login` walks the
    protocol from scratch and returns a :class:`LoginResult`; the client
    decides what to do with it.

    Protocol, for one attempt:
        1. New flow step 1: exchange the credentials for an authorization code.
        2. New flow step 2: exchange the code for a token on the same host. A
           cross-region answer carrying a continuation token is retried once
           in place with ``regionChange`` before anything else.
        3. On a cross-region answer, run the whole new flow once more against
           the alternate primary region. If that region was already tried the
           attempt stops with AMBIGUOUS_REGION.
        4. If the new flow failed for any other non-fatal reason, try the
           single-call legacy login once.

    Bad credentials stop everything immediately. Other failures are retried
    with exponential backoff.

    Example:
        ```python
        api = VeSyncAPI(session=session)
        handler = AuthenticationHandler(api, "user@example.com", "password")

        result = await handler.login(Region.US)
        if result.success:
            print(result.token, result.account_id, result.api_base_url)
        ```

    Attributes:
        username: Account email.
        time_zone: Time zone sent with login requests.
        terminal_id: App instance id sent with login requests.
    """

    def __init__(
        self,
        api: VeSyncAPI,
        username: str,
        password: str,
        *,
        time_zone: str = DEFAULT_TZ,
        terminal_id: str = APP_INSTANCE_ID,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize the authentication handler.

        Args:
            api: Transport used for every login request.
            username: Account email.
            password: Account password.
            time_zone: Time zone sent with login requests.
            terminal_id: App instance id sent with login requests.
            logger: Optional logger replacing the module logger.
        """
        self._api = api
        self.username = username
        self._password = password
        self.time_zone = time_zone
        self.terminal_id = terminal_id
        self._logger = logger or _LOGGER

    async def login(
        self,
        region: Region | str | None = Region.US,
        *,
        retry_attempts: int = DEFAULT_LOGIN_RETRY_ATTEMPTS,
        initial_backoff: float = DEFAULT_LOGIN_BACKOFF,
        base_url_override: str | None = None,
        country_code: str | None = None,
    ) -> LoginResult:
        """Log in, retrying non-fatal failures with exponential backoff.

        Never raises: unexpected errors inside an attempt are logged and count
        as a failed attempt.

        Args:
            region: Region to try first.
            retry_attempts: Total number of attempts.
            initial_backoff: Seconds to wait after the first failed attempt;
                doubled after every further failure.
            base_url_override: Fixed host to log in against. Disables region
                switching.
            country_code: Country code to send instead of the region default.

        Returns:
            LoginResult of the successful attempt, or of the last failed one.
        """
        backoff = ExponentialBackoff(base_delay=initial_backoff, max_retries=retry_attempts)
        result = LoginResult.failed(AuthFailure.NETWORK, "No login attempt was made")

        for attempt in range(backoff.max_retries):
            try:
                result = await self._login_attempt(
                    region,
                    base_url_override=base_url_override,
                    country_code=country_code,
                )
            except Exception as exc:
                self._logger.exception("Unexpected error during login attempt %d", attempt + 1)
                result = LoginResult.failed(AuthFailure.API_ERROR, str(exc))

            if result.success:
                self._logger.info(
                    "Login successful via %s flow on %s",
                    result.auth_flow.value if result.auth_flow else "unknown",
                    result.api_base_url,
                )
                return result

            if result.is_fatal:
                return result

            if attempt < backoff.max_retries - 1:
                delay = backoff.calculate_delay(attempt)
                self._logger.warning(
                    "Login attempt %d failed (%s), retrying in %.2fs",
                    attempt + 1,
                    result.message or result.failure,
                    delay,
                )
                await asyncio.sleep(delay)

        self._logger.error(
            "Unable to login with supplied credentials after %d attempts: %s",
            backoff.max_retries,
            result.message or result.failure,
        )
        return result

    async def _login_attempt(
        self,
        region: Region | str | None,
        *,
        base_url_override: str | None,
        country_code: str | None,
    ) -> LoginResult:
        """Run one full attempt: new flow with region recovery, then legacy."""
        current_region = parse_region(region) or Region.US
        base_url = (base_url_override or endpoint_for(current_region)).rstrip("/")
        user_country_code = country_code or default_country_code(current_region)
        attempted_urls = {base_url}

        while True:
            result = await self._new_flow(base_url, user_country_code)

            if result.success:
                return self._finish(result, base_url, current_region)

            if result.failure is AuthFailure.CREDENTIALS:
                self._logger.error("Login rejected: invalid username or password (%s)", result.message)
                return result

            if result.failure is not AuthFailure.CROSS_REGION:
                break

            if base_url_override:
                self._logger.warning(
                    "Cross-region error on overridden API URL %s, region switching is disabled",
                    base_url,
                )
                break

            next_region = alternate_region(current_region)
            next_url = endpoint_for(next_region)
            if next_url in attempted_urls:
                self._logger.error(
                    "Login failed with cross-region errors on every region tried (%s). "
                    "The account region is ambiguous: pass the account's country_code explicitly",
                    ", ".join(sorted(attempted_urls)),
                )
                return LoginResult.failed(
                    AuthFailure.AMBIGUOUS_REGION,
                    "Ambiguous region: country code required",
                )

            self._logger.info(
                "Cross-region error on %s, retrying login against %s",
                current_region.value,
                next_region.value,
            )
            if result.suggested_country_code:
                user_country_code = result.suggested_country_code
            elif not country_code:
                user_country_code = default_country_code(next_region)
            current_region = next_region
            base_url = next_url
            attempted_urls.add(next_url)

        if result.failure is AuthFailure.APP_VERSION:
            self._logger.error("VeSync rejected the app version used for login: %s", result.message)

        self._logger.info("New login flow failed (%s), falling back to legacy login", result.failure)
        legacy = await self._legacy_login(base_url)
        if legacy.success:
            return self._finish(legacy, base_url, current_region)

        if legacy.failure is AuthFailure.CREDENTIALS:
            self._logger.error("Legacy login rejected: invalid username or password (%s)", legacy.message)
        return legacy

    def _finish(self, result: LoginResult, base_url: str, region: Region) -> LoginResult:
        """Stamp the host and region that issued the token onto a successful result."""
        result.api_base_url = base_url
        result.region = region.value
        return result

    async def _new_flow(self, base_url: str, country_code: str) -> LoginResult:
        """Run both steps of the authorization-code flow against one host."""
        payload, status = await self._api.call_api(
            ENDPOINT_AUTH_STEP1,
            "post",
            base_url=base_url,
            json_data=build_auth_step1_body(
                self.username,
                self._password,
                time_zone=self.time_zone,
                country_code=country_code,
                terminal_id=self.terminal_id,
            ),
            headers=req_header_bypass(),
        )
        step1 = parse_auth_step1(payload, status)
        if not step1.success:
            self._logger.debug("Authorization step failed on %s: %s", base_url, step1.failure)
            return step1

        step2 = await self._exchange_code(
            base_url,
            country_code=country_code,
            authorize_code=step1.authorize_code,
            biz_token=step1.biz_token,
        )

        if step2.failure is AuthFailure.CROSS_REGION and step2.biz_token:
            retry_country_code = step2.suggested_country_code or country_code
            self._logger.info(
                "Token exchange reported a region change, retrying with country code %s",
                retry_country_code,
            )
            retried = await self._exchange_code(
                base_url,
                country_code=retry_country_code,
                biz_token=step2.biz_token,
                region_change=True,
            )
            if not retried.success and retried.suggested_country_code is None:
                retried.suggested_country_code = step2.suggested_country_code
            step2 = retried

        return step2

    async def _exchange_code(
        self,
        base_url: str,
        *,
        country_code: str,
        authorize_code: str | None = None,
        biz_token: str | None = None,
        region_change: bool = False,
    ) -> LoginResult:
        """Exchange an authorization code, or a continuation token, for a session token."""
        payload, status = await self._api.call_api(
            ENDPOINT_AUTH_STEP2,
            "post",
            base_url=base_url,
            json_data=build_auth_step2_body(
                time_zone=self.time_zone,
                country_code=country_code,
                authorize_code=authorize_code,
                biz_token=biz_token,
                region_change=region_change,
                terminal_id=self.terminal_id,
            ),
            headers=req_header_bypass(),
        )
        result = parse_login_response(payload, status, flow=AuthFlow.NEW)
        if not result.success:
            self._logger.debug("Token exchange failed on %s: %s", base_url, result.failure)
        return result

    async def _legacy_login(self, base_url: str) -> LoginResult:
        """Single-call username/password login."""
        payload, status = await self._api.call_api(
            ENDPOINT_LEGACY_LOGIN,
            "post",
            base_url=base_url,
            json_data=build_legacy_login_body(self.username, self._password, time_zone=self.time_zone),
        )
        result = parse_login_response(payload, status, flow=AuthFlow.LEGACY)
        if not result.success:
            self._logger.debug("Legacy login failed on %s: %s", base_url, result.failure)
        return result
