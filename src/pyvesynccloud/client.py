"""Account manager and device coordinator for the VeSync cloud.

This module provides the high-level client: it owns the session state, runs
logins through the authentication handler, wraps every business call in the
token-expiry and cross-region recovery protocol, and keeps the device
collections current.
"""

from __future__ import annotations

import asyncio
import logging
import re
import time
from typing import TYPE_CHECKING, Any

from aiohttp import ClientSession  # noqa: TC002 - Used at runtime for type hints

from pyvesynccloud.api import VeSyncAPI
from pyvesynccloud.auth import AuthenticationHandler
from pyvesynccloud.const import (
    DEFAULT_LOGIN_BACKOFF,
    DEFAULT_LOGIN_RETRY_ATTEMPTS,
    DEFAULT_TIMEOUT,
    DEFAULT_TZ,
    DEFAULT_UPDATE_INTERVAL,
    DEVICE_CATEGORY_BULBS,
    DEVICE_CATEGORY_FANS,
    DEVICE_CATEGORY_OUTLETS,
    DEVICE_CATEGORY_SWITCHES,
    ENDPOINT_DEVICE_LIST,
    LIBRARY_VERSION,
)
from pyvesynccloud.devices import VeSyncDevice
from pyvesynccloud.exceptions import AuthenticationError, DeviceError, InvalidParameterError
from pyvesynccloud.models import ExclusionConfig, Session
from pyvesynccloud.parsers import (
    is_cross_region_error,
    is_success,
    is_token_expired,
    parse_device_list,
    response_code,
    suggested_region,
)
from pyvesynccloud.regions import (
    Region,
    alternate_region,
    endpoint_for,
    is_known_endpoint,
    parse_region,
    resolve_active_base_url,
    resolve_region_from_api_base_url,
    resolve_region_from_country_code,
)
from pyvesynccloud.serializers import APP_INSTANCE_ID, req_body, req_headers
from pyvesynccloud.session import decode_jwt_timestamps


if TYPE_CHECKING:
    from types import TracebackType

    from pyvesynccloud.models import AuthFailure, AuthFlow, DeviceInfo, LoginResult
    from pyvesynccloud.session import SessionStore

_LOGGER = logging.getLogger(__name__)

_INVALID_TZ_CHARS = re.compile(r"[^a-zA-Z/_]")


def _now_ms() -> int:
    return int(time.time() * 1000)


class VeSyncClient:
    """Account manager and device coordinator for VeSync.

    The client holds one authenticated session at a time. Session fields are
    exposed as flat attributes and are only ever replaced as a whole, by a
    successful login or by rehydrating a stored session.

    Example:
        Basic usage with automatic session management:

        ```python
        from pyvesynccloud import VeSyncClient

        async with VeSyncClient("user@example.com", "password", country_code="DE") as client:
            if not await client.login():
                raise SystemExit("login failed")

            await client.update()
            for device in client.outlets:
                print(device.name, device.connection_status)
        ```

        Reusing a stored session:

        ```python
        from pyvesynccloud import FileSessionStore, VeSyncClient

        store = FileSessionStore("~/.vesync-session.json")
        async with VeSyncClient("user@example.com", "password", session_store=store) as client:
            if not await client.restore_session():
                await client.login()
            await client.get_devices()
        ```

    Attributes:
        time_zone: Time zone sent with every request.
        token: Current bearer token, or None when logged out.
        account_id: Current account id, or None when logged out.
        country_code: Country code of the account, if known.
        region: Region code whose endpoint issued the current token.
        api_base_url: Base URL every request goes to.
        api_url_override: Caller-supplied or hydrated custom base URL; never
            changed by region switching.
        auth_flow_used: Login protocol variant that produced the session.
        issued_at: Token issue time in epoch seconds (hint only).
        expires_at: Token expiry in epoch seconds (hint only).
        last_validated_at: Epoch milliseconds of the last successful call.
        enabled: True while the client holds a usable session.
        update_interval: Minimum seconds between two full updates.
        terminal_id: App instance id sent with login requests.
    """

    def __init__(
        self,
        username: str,
        password: str,
        time_zone: str = DEFAULT_TZ,
        *,
        region: Region | str | None = None,
        country_code: str | None = None,
        api_url: str | None = None,
        logger: logging.Logger | None = None,
        session_store: SessionStore | None = None,
        exclude: ExclusionConfig | None = None,
        session: ClientSession | None = None,
        redact: bool = True,
        update_interval: float = DEFAULT_UPDATE_INTERVAL,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        """Initialize the VeSync client.

        Args:
            username: Account email.
            password: Account password.
            time_zone: IANA time zone name. Values with characters outside
                letters, ``/`` and ``_`` fall back to America/New_York.
            region: Region to log in to first.
            country_code: Account country code. Picks the login region and is
                sent as ``userCountryCode``.
            api_url: Custom base URL. Disables region switching.
            logger: Optional logger replacing the module logger.
            session_store: Optional store the session is loaded from and
                saved to.
            exclude: Rules for devices skipped during detail refresh.
            session: Optional aiohttp ClientSession. If not provided, one is
                created on first request and closed with the client.
            redact: Mask credentials in debug logs.
            update_interval: Minimum seconds between two full updates.
            timeout: Per-request timeout in seconds.

        Raises:
            InvalidParameterError: If region is unknown or update_interval is
                not positive.
        """
        self._logger = logger or _LOGGER

        parsed_region = parse_region(region)
        if region is not None and parsed_region is None:
            msg = f"Unknown region {region!r}, expected one of {', '.join(r.value for r in Region)}"
            raise InvalidParameterError(msg, parameter_name="region", value=region)

        if update_interval <= 0:
            msg = "update_interval must be positive"
            raise InvalidParameterError(msg, parameter_name="update_interval", value=update_interval)

        self._username = username
        self._password = password
        self.time_zone = self._validate_time_zone(time_zone)
        self.terminal_id = APP_INSTANCE_ID

        self._api = VeSyncAPI(session=session, timeout=timeout, redact=redact)
        self._auth_handler = AuthenticationHandler(
            self._api,
            username,
            password,
            time_zone=self.time_zone,
            terminal_id=self.terminal_id,
            logger=self._logger,
        )
        self._session_store = session_store
        self._exclude = exclude or ExclusionConfig()
        self.update_interval = update_interval

        # Session state
        self._country_code_override = country_code.strip().upper() if country_code else None
        self.token: str | None = None
        self.account_id: str | None = None
        self.country_code: str | None = self._country_code_override
        self.api_url_override: str | None = api_url.rstrip("/") if api_url else None
        if parsed_region is None and self._country_code_override:
            parsed_region = resolve_region_from_country_code(self._country_code_override)
        self.region: str = (parsed_region or Region.US).value
        self.api_base_url: str = resolve_active_base_url(
            api_url_override=self.api_url_override,
            country_code_override=self._country_code_override,
            region=self.region,
        )
        self.auth_flow_used: AuthFlow | None = None
        self.issued_at: int | None = None
        self.expires_at: int | None = None
        self.last_validated_at: int | None = None
        self.enabled = False

        self._login_task: asyncio.Task[bool] | None = None
        self._last_login_failure: AuthFailure | None = None
        self._last_update: float | None = None
        self._devices: dict[str, VeSyncDevice] = {}

    def _validate_time_zone(self, time_zone: Any) -> str:
        if isinstance(time_zone, str) and time_zone and not _INVALID_TZ_CHARS.search(time_zone):
            return time_zone
        self._logger.debug("Invalid time zone %r, using %s", time_zone, DEFAULT_TZ)
        return DEFAULT_TZ

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def username(self) -> str:
        """Get the account email."""
        return self._username

    @property
    def password(self) -> str:
        """Get the account password."""
        return self._password

    @property
    def api(self) -> VeSyncAPI:
        """Get the underlying transport."""
        return self._api

    @property
    def exclusion(self) -> ExclusionConfig:
        """Get the device exclusion rules."""
        return self._exclude

    @property
    def session(self) -> Session | None:
        """Get a snapshot of the current session, or None when logged out."""
        if not self.token or not self.account_id:
            return None
        return Session(
            token=self.token,
            account_id=self.account_id,
            region=self.region,
            api_base_url=self.api_base_url,
            country_code=self.country_code,
            auth_flow_used=self.auth_flow_used,
            issued_at=self.issued_at,
            expires_at=self.expires_at,
            last_validated_at=self.last_validated_at,
            library_version=LIBRARY_VERSION,
        )

    @property
    def devices(self) -> list[VeSyncDevice]:
        """Get every discovered device."""
        return list(self._devices.values())

    @property
    def fans(self) -> list[VeSyncDevice]:
        """Get air purifiers, humidifiers and fans."""
        return self._by_category(DEVICE_CATEGORY_FANS)

    @property
    def outlets(self) -> list[VeSyncDevice]:
        """Get smart plugs."""
        return self._by_category(DEVICE_CATEGORY_OUTLETS)

    @property
    def switches(self) -> list[VeSyncDevice]:
        """Get wall switches."""
        return self._by_category(DEVICE_CATEGORY_SWITCHES)

    @property
    def bulbs(self) -> list[VeSyncDevice]:
        """Get bulbs."""
        return self._by_category(DEVICE_CATEGORY_BULBS)

    def _by_category(self, category: str) -> list[VeSyncDevice]:
        return [device for device in self._devices.values() if device.category == category]

    # -------------------------------------------------------------------------
    # Region selection
    # -------------------------------------------------------------------------

    def set_region(self, region: Region | str) -> None:
        """Point the client at another region.

        An active API URL override stays in place and keeps serving requests.
        A country code passed earlier no longer decides the host.

        Raises:
            InvalidParameterError: If region is unknown.
        """
        parsed = parse_region(region)
        if parsed is None:
            msg = f"Unknown region {region!r}, expected one of {', '.join(r.value for r in Region)}"
            raise InvalidParameterError(msg, parameter_name="region", value=region)

        self._country_code_override = None
        self.region = parsed.value
        self.api_base_url = resolve_active_base_url(api_url_override=self.api_url_override, region=parsed)
        self._logger.debug("Region set to %s, using %s", self.region, self.api_base_url)

    def set_country_code(self, country_code: str) -> None:
        """Set the account country code and move to the region it maps to.

        An active API URL override stays in place and keeps serving requests.

        Raises:
            InvalidParameterError: If country_code is empty.
        """
        code = country_code.strip().upper() if isinstance(country_code, str) else ""
        if not code:
            msg = "country_code must be a non-empty string"
            raise InvalidParameterError(msg, parameter_name="country_code", value=country_code)

        self._country_code_override = code
        self.country_code = code
        self.region = resolve_region_from_country_code(code).value
        self.api_base_url = resolve_active_base_url(
            api_url_override=self.api_url_override,
            country_code_override=code,
            region=self.region,
        )
        self._logger.debug("Country code set to %s, using %s", code, self.api_base_url)

    # -------------------------------------------------------------------------
    # Context manager
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> VeSyncClient:
        """Enter the context manager, creating an HTTP session if needed."""
        await self._api.__aenter__()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit the context manager, closing the HTTP session if the client owns it."""
        await self.close()

    async def close(self) -> None:
        """Cancel a pending login and close the HTTP session if owned."""
        if self._login_task is not None and not self._login_task.done():
            self._login_task.cancel()
        await self._api.close()

    # -------------------------------------------------------------------------
    # Authentication
    # -------------------------------------------------------------------------

    async def login(
        self,
        retry_attempts: int = DEFAULT_LOGIN_RETRY_ATTEMPTS,
        initial_backoff: float = DEFAULT_LOGIN_BACKOFF,
    ) -> bool:
        """Log in to VeSync.

        Concurrent calls share a single login: every caller awaits the same
        result and only one sequence of requests goes out.

        Args:
            retry_attempts: Total number of login attempts.
            initial_backoff: Seconds to wait after the first failed attempt.

        Returns:
            True if a session was established, False otherwise.
        """
        if self._login_task is None or self._login_task.done():
            self._login_task = asyncio.create_task(self._login(retry_attempts, initial_backoff))
        else:
            self._logger.debug("Login already in progress, waiting for it")
        return await asyncio.shield(self._login_task)

    async def _login(self, retry_attempts: int, initial_backoff: float) -> bool:
        result = await self._auth_handler.login(
            self._login_region(),
            retry_attempts=retry_attempts,
            initial_backoff=initial_backoff,
            base_url_override=self.api_url_override,
            country_code=self._country_code_override or self.country_code,
        )
        if not result.success:
            self.enabled = False
            self._last_login_failure = result.failure
            self._logger.error("Login failed: %s", result.message or result.failure)
            return False

        self._apply_login(result)
        await self._save_session()
        return True

    def _login_region(self) -> Region:
        """Region the next login starts from."""
        if self._country_code_override:
            return resolve_region_from_country_code(self._country_code_override)
        region = parse_region(self.region) or Region.US
        if self.api_base_url and endpoint_for(region) != self.api_base_url:
            return resolve_region_from_api_base_url(self.api_base_url) or region
        return region

    def _apply_login(self, result: LoginResult) -> None:
        """Replace session state from a successful login in one step."""
        issued_at, expires_at = decode_jwt_timestamps(result.token)
        self.token = result.token
        self.account_id = result.account_id
        self.country_code = result.country_code or self.country_code
        self.region = result.region or self.region
        self.api_base_url = result.api_base_url or self.api_base_url
        self.auth_flow_used = result.auth_flow
        self.issued_at = issued_at
        self.expires_at = expires_at
        self.last_validated_at = _now_ms()
        self.enabled = True
        self._last_login_failure = None

        if self.country_code:
            expected = resolve_region_from_country_code(self.country_code)
            if endpoint_for(expected) != self.api_base_url:
                self._logger.info(
                    "Account country code %s maps to region %s but the session was issued by %s, keeping %s",
                    self.country_code,
                    expected.value,
                    self.api_base_url,
                    self.api_base_url,
                )

    async def _save_session(self) -> None:
        session = self.session
        if self._session_store is None or session is None:
            return
        try:
            await self._session_store.save(session)
        except Exception as exc:
            self._logger.warning("Failed to save session: %s", exc)

    async def ensure_logged_in(self) -> None:
        """Log in unless a session is already held.

        Raises:
            AuthenticationError: If login fails. Its ``failure`` names the reason.
        """
        if self.enabled and self.token and self.account_id:
            return
        if not await self.login():
            msg = "Unable to log in to VeSync"
            raise AuthenticationError(msg, failure=self._last_login_failure)

    def hydrate_session(self, session: Session) -> bool:
        """Adopt a previously stored session without contacting the server.

        Region comes from the session's region, then its country code, then
        its base URL, then US. A stored VeSync host is kept, and the region is
        corrected to match it when the two disagree. A stored base URL that is
        not a VeSync host becomes the API URL override and is kept verbatim.

        Returns:
            True if the session was adopted, False if it lacks a token or
            account id.
        """
        if not session.is_valid:
            self._logger.warning("Stored session is missing token or account id, not restoring it")
            return False

        stored_url = session.api_base_url.rstrip("/") if session.api_base_url else None
        region = (
            parse_region(session.region)
            or (resolve_region_from_country_code(session.country_code) if session.country_code else None)
            or resolve_region_from_api_base_url(stored_url)
            or Region.US
        )

        if not self.api_url_override and stored_url and not is_known_endpoint(stored_url):
            self._logger.info("Stored session uses custom API URL %s, keeping it as override", stored_url)
            self.api_url_override = stored_url

        if self.api_url_override:
            api_base_url = self.api_url_override
        elif stored_url:
            api_base_url = stored_url
        else:
            api_base_url = endpoint_for(region)

        # Region must name the host actually in use
        if not self.api_url_override and endpoint_for(region) != api_base_url:
            region = resolve_region_from_api_base_url(api_base_url) or region

        self.token = session.token
        self.account_id = session.account_id
        self.country_code = session.country_code or self.country_code
        self.region = region.value
        self.api_base_url = api_base_url
        self.auth_flow_used = session.auth_flow_used
        self.issued_at = session.issued_at
        self.expires_at = session.expires_at
        self.last_validated_at = session.last_validated_at
        self.enabled = True

        self._logger.debug("Restored session for region %s on %s", self.region, self.api_base_url)
        return True

    async def restore_session(self) -> bool:
        """Load the session from the configured store and adopt it.

        Returns:
            True if a stored session was adopted.
        """
        if self._session_store is None:
            return False
        try:
            session = await self._session_store.load()
        except Exception as exc:
            self._logger.warning("Failed to load session: %s", exc)
            return False
        if session is None:
            self._logger.debug("No stored session found")
            return False
        return self.hydrate_session(session)

    async def logout(self) -> None:
        """Forget the session and clear the store."""
        self.token = None
        self.account_id = None
        self.auth_flow_used = None
        self.issued_at = None
        self.expires_at = None
        self.last_validated_at = None
        self.enabled = False
        self._devices.clear()
        self._last_update = None

        if self._session_store is None:
            return
        try:
            await self._session_store.clear()
        except Exception as exc:
            self._logger.warning("Failed to clear stored session: %s", exc)

    # -------------------------------------------------------------------------
    # Authenticated requests
    # -------------------------------------------------------------------------

    async def call_api(
        self,
        endpoint: str,
        method: str = "post",
        json_data: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        *,
        retry_on_token_expiry: bool = False,
        retry_on_cross_region: bool = True,
    ) -> tuple[dict[str, Any] | None, int]:
        """Call an endpoint on the current base URL with error recovery.

        Token expiry, when opted in, triggers exactly one login followed by one
        replay with the new credentials. A cross-region answer moves the client
        to the region the server names, or else to the other primary region,
        and replays once; a blind move that does not help is undone.

        Returns:
            Tuple of (payload, status) of the last request sent.
        """
        payload, status = await self._api.call_api(
            endpoint,
            method,
            base_url=self.api_base_url,
            json_data=json_data,
            headers=headers,
        )

        if retry_on_token_expiry and is_token_expired(payload):
            self._logger.info("Token expired on %s, logging in again", endpoint)
            if not await self.login():
                return payload, status

            json_data, headers = self._with_fresh_credentials(json_data, headers)
            payload, status = await self._api.call_api(
                endpoint,
                method,
                base_url=self.api_base_url,
                json_data=json_data,
                headers=headers,
            )
            if is_token_expired(payload):
                self._logger.error("Token rejected again after re-login on %s", endpoint)
                return payload, status

        if retry_on_cross_region and is_cross_region_error(response_code(payload)):
            payload, status = await self._replay_cross_region(endpoint, method, json_data, headers, payload, status)

        if is_success(payload):
            self.last_validated_at = _now_ms()
        return payload, status

    def _with_fresh_credentials(
        self,
        json_data: dict[str, Any] | None,
        headers: dict[str, str] | None,
    ) -> tuple[dict[str, Any] | None, dict[str, str] | None]:
        if json_data is not None:
            json_data = dict(json_data)
            if "token" in json_data:
                json_data["token"] = self.token
            if "accountID" in json_data:
                json_data["accountID"] = self.account_id
        if headers is not None:
            headers = dict(headers)
            if "tk" in headers and self.token:
                headers["tk"] = self.token
            if "accountId" in headers and self.account_id:
                headers["accountId"] = self.account_id
        return json_data, headers

    async def _replay_cross_region(
        self,
        endpoint: str,
        method: str,
        json_data: dict[str, Any] | None,
        headers: dict[str, str] | None,
        payload: dict[str, Any] | None,
        status: int,
    ) -> tuple[dict[str, Any] | None, int]:
        if self.api_url_override:
            self._logger.warning(
                "Cross-region error on %s with API URL override %s, not switching region",
                endpoint,
                self.api_url_override,
            )
            return payload, status

        target = suggested_region(payload)
        blind = target is None
        if target is None:
            target = alternate_region(resolve_region_from_api_base_url(self.api_base_url) or self.region)

        target_url = endpoint_for(target)
        if target_url == self.api_base_url:
            self._logger.warning("Cross-region error on %s points at the current host %s", endpoint, target_url)
            return payload, status

        original_region, original_url = self.region, self.api_base_url
        self._logger.info(
            "Cross-region error on %s, switching from %s to %s%s",
            endpoint,
            original_region,
            target.value,
            " (guessed)" if blind else "",
        )
        self.region = target.value
        self.api_base_url = target_url

        new_payload, new_status = await self._api.call_api(
            endpoint,
            method,
            base_url=self.api_base_url,
            json_data=json_data,
            headers=headers,
        )

        if blind and not is_success(new_payload):
            self._logger.warning("Switching to %s did not help, reverting to %s", target.value, original_region)
            self.region = original_region
            self.api_base_url = original_url
            return payload, status

        if is_success(new_payload):
            await self._save_session()
        return new_payload, new_status

    # -------------------------------------------------------------------------
    # Devices
    # -------------------------------------------------------------------------

    async def get_devices(self) -> bool:
        """Fetch the device list and rebuild the device collections.

        Returns:
            True if the device list was fetched, False otherwise.
        """
        if not self.enabled:
            self._logger.error("Not logged in to VeSync, call login() first")
            return False

        try:
            body = req_body(self, "devicelist")
            headers = req_headers(self)
        except AuthenticationError as exc:
            self._logger.error("Cannot fetch devices: %s", exc)
            return False

        payload, status = await self.call_api(
            ENDPOINT_DEVICE_LIST,
            "post",
            body,
            headers,
            retry_on_token_expiry=True,
        )

        if not is_success(payload):
            self._logger.warning(
                "Failed to get devices: HTTP %d, code %s",
                status,
                response_code(payload),
            )
            return False

        infos = parse_device_list(payload)
        if infos is None:
            self._logger.warning("Device list in response not found")
            return False

        self._process_devices(infos)
        self._logger.debug("Found %d device(s)", len(self._devices))
        return True

    def _process_devices(self, infos: list[DeviceInfo]) -> None:
        devices: dict[str, VeSyncDevice] = {}
        for info in infos:
            existing = self._devices.get(info.cid)
            if existing is not None:
                existing.update_info(info)
                devices[info.cid] = existing
            else:
                devices[info.cid] = VeSyncDevice(self, info)

        for cid in self._devices.keys() - devices.keys():
            self._logger.debug("Device %s removed from account", cid)

        self._devices = devices

    async def update_all_devices(self) -> None:
        """Refresh details of every device not excluded by the exclusion rules.

        Failures are logged per device.
        """
        targets = [
            device
            for device in self._devices.values()
            if device.uuid and not self._exclude.matches(device.info)
        ]
        if not targets:
            return

        results = await asyncio.gather(
            *[device.get_details() for device in targets],
            return_exceptions=True,
        )
        for device, result in zip(targets, results, strict=True):
            if isinstance(result, DeviceError | AuthenticationError):
                self._logger.warning("Error updating device %s: %s", device.name, result)
            elif isinstance(result, BaseException):
                self._logger.error("Unexpected error updating device %s: %s", device.name, result)

    async def update(self) -> bool:
        """Rediscover devices and refresh their details.

        Does nothing if the last full update is younger than
        ``update_interval`` seconds.

        Returns:
            True if devices are current, False if discovery failed.
        """
        now = time.monotonic()
        if self._last_update is not None and now - self._last_update < self.update_interval:
            self._logger.debug("Skipping update, last one was %.1fs ago", now - self._last_update)
            return True

        if not await self.get_devices():
            return False

        await self.update_all_devices()
        self._last_update = time.monotonic()
        return True
