"""Request builders for the VeSync API.

This module provides stateless functions that turn client state into the
headers and JSON bodies the VeSync cloud expects. Both the authentication
handler and the device layer build their requests here so the wire format
lives in one place.

Design Philosophy:
    - Stateless functions (the only process state is the app instance id)
    - Deterministic output apart from trace ids
    - Missing credentials raise instead of sending an unauthenticated body
"""

from __future__ import annotations

import hashlib
import time
import uuid
from typing import TYPE_CHECKING, Any

from pyvesynccloud.const import (
    ACCEPT_LANGUAGE,
    APP_ID,
    APP_VERSION,
    BYPASS_HEADER_UA,
    CLIENT_TYPE,
    CLIENT_VERSION,
    DEFAULT_REGION,
    DEVICE_LIST_PAGE_SIZE,
    METHOD_AUTH_STEP1,
    METHOD_AUTH_STEP2,
    MOBILE_ID,
    PHONE_BRAND,
    PHONE_OS,
    REDACTED_KEYS,
    REDACTED_VALUE,
    REGION_CHANGE_LAST_REGION,
    USER_TYPE,
)
from pyvesynccloud.exceptions import AuthenticationError


if TYPE_CHECKING:
    from pyvesynccloud.client import VeSyncClient


__all__ = [
    "APP_INSTANCE_ID",
    "build_auth_step1_body",
    "build_auth_step2_body",
    "build_legacy_login_body",
    "build_trace_id",
    "hash_password",
    "redact_payload",
    "req_body",
    "req_body_auth",
    "req_body_base",
    "req_body_details",
    "req_header_bypass",
    "req_headers",
]

# Generated once per process and sent as terminalId with every auth request
APP_INSTANCE_ID = "2" + uuid.uuid4().hex


def hash_password(password: str) -> str:
    """Hash a password the way the VeSync app does.

    The cloud expects the hex MD5 digest of the UTF-8 password. This is a wire
    format requirement, not a security measure.

    Example:
        >>> hash_password("password")
        '5f4dcc3b5aa765d61d8327deb882cf99'
    """
    return hashlib.md5(password.encode("utf-8")).hexdigest()  # noqa: S324


def build_trace_id(*, app_prefixed: bool = False) -> str:
    """Build a request trace id from the current epoch milliseconds.

    The account-auth endpoints expect ``APP<appId><millis>``; the legacy cloud
    endpoints take the bare millisecond timestamp.
    """
    millis = str(int(time.time() * 1000))
    if app_prefixed:
        return f"APP{APP_ID}{millis}"
    return millis


def _require_credentials(client: VeSyncClient) -> tuple[str, str]:
    if not client.account_id or not client.token:
        msg = "Client account_id and token must be set"
        raise AuthenticationError(msg)
    return client.account_id, client.token


def req_headers(client: VeSyncClient) -> dict[str, str]:
    """Build headers for authenticated cloud requests.

    Raises:
        AuthenticationError: If the client has no token or account id.
    """
    account_id, token = _require_credentials(client)
    return {
        "accept-language": ACCEPT_LANGUAGE,
        "accountId": account_id,
        "appVersion": APP_VERSION,
        "content-type": "application/json",
        "tk": token,
        "tz": client.time_zone,
    }


def req_header_bypass() -> dict[str, str]:
    """Build headers for the bypass and account-auth endpoints."""
    return {
        "Content-Type": "application/json; charset=UTF-8",
        "User-Agent": BYPASS_HEADER_UA,
    }


def req_body_base(client: VeSyncClient) -> dict[str, Any]:
    """Return the keys every request body carries."""
    return {
        "timeZone": client.time_zone,
        "acceptLanguage": ACCEPT_LANGUAGE,
    }


def req_body_auth(client: VeSyncClient) -> dict[str, Any]:
    """Return the keys that authenticate a request body.

    Raises:
        AuthenticationError: If the client has no token or account id.
    """
    account_id, token = _require_credentials(client)
    return {
        "accountID": account_id,
        "token": token,
    }


def req_body_details() -> dict[str, Any]:
    """Return the app detail keys."""
    return {
        "appVersion": APP_VERSION,
        "phoneBrand": PHONE_BRAND,
        "phoneOS": PHONE_OS,
        "traceId": build_trace_id(),
    }


def build_legacy_login_body(email: str, password: str, *, time_zone: str) -> dict[str, Any]:
    """Build the body of the single-call legacy login."""
    return {
        "timeZone": time_zone,
        "acceptLanguage": ACCEPT_LANGUAGE,
        **req_body_details(),
        "email": email,
        "password": hash_password(password),
        "devToken": "",
        "userType": USER_TYPE,
        "method": "login",
    }


def _auth_client_fields(*, time_zone: str, terminal_id: str) -> dict[str, Any]:
    return {
        "acceptLanguage": ACCEPT_LANGUAGE,
        "accountID": "",
        "authProtocolType": "generic",
        "clientInfo": PHONE_BRAND,
        "clientType": CLIENT_TYPE,
        "clientVersion": CLIENT_VERSION,
        "debugMode": False,
        "osInfo": PHONE_OS,
        "terminalId": terminal_id,
        "timeZone": time_zone,
        "token": "",
    }


def build_auth_step1_body(
    email: str,
    password: str,
    *,
    time_zone: str,
    country_code: str,
    terminal_id: str = APP_INSTANCE_ID,
) -> dict[str, Any]:
    """Build the authorization-code request (new flow, step 1).

    Args:
        email: Account email.
        password: Plaintext password; only its digest is sent.
        time_zone: Client time zone.
        country_code: Value for ``userCountryCode``.
        terminal_id: App instance id.

    Returns:
        JSON body for the authByPWDOrOTM endpoint.
    """
    return {
        **_auth_client_fields(time_zone=time_zone, terminal_id=terminal_id),
        "email": email,
        "method": METHOD_AUTH_STEP1,
        "password": hash_password(password),
        "userCountryCode": country_code,
        "appID": APP_ID,
        "sourceAppID": APP_ID,
        "traceId": build_trace_id(app_prefixed=True),
    }


def build_auth_step2_body(
    *,
    time_zone: str,
    country_code: str,
    authorize_code: str | None = None,
    biz_token: str | None = None,
    region_change: bool = False,
    terminal_id: str = APP_INSTANCE_ID,
) -> dict[str, Any]:
    """Build the token exchange request (new flow, step 2).

    When ``region_change`` is set the body asks the server to move the login to
    the account's last region, using ``biz_token`` as the continuation token.
    """
    body: dict[str, Any] = {
        **_auth_client_fields(time_zone=time_zone, terminal_id=terminal_id),
        "emailSubscriptions": False,
        "method": METHOD_AUTH_STEP2,
        "userCountryCode": country_code,
        "traceId": build_trace_id(app_prefixed=True),
    }
    if authorize_code is not None:
        body["authorizeCode"] = authorize_code
    if biz_token is not None:
        body["bizToken"] = biz_token
    if region_change:
        body["regionChange"] = REGION_CHANGE_LAST_REGION
    return body


def req_body(client: VeSyncClient, request_type: str) -> dict[str, Any]:
    """Build the body for a cloud request of the given type.

    Supported types: ``login``, ``devicestatus``, ``devicelist``,
    ``devicedetail``, ``bypass``, ``bypassV2``, ``bypass_config``. Any other
    type returns the authenticated base body with app details.

    Raises:
        AuthenticationError: For authenticated types when the client has no
            token or account id.
    """
    if request_type == "login":
        return build_legacy_login_body(client.username, client.password, time_zone=client.time_zone)

    auth_body = {**req_body_base(client), **req_body_auth(client)}
    if request_type == "devicestatus":
        return auth_body

    full_body = {**auth_body, **req_body_details()}
    if request_type == "devicelist":
        return {**full_body, "method": "devices", "pageNo": "1", "pageSize": DEVICE_LIST_PAGE_SIZE}
    if request_type == "devicedetail":
        return {**full_body, "method": "devicedetail", "mobileId": MOBILE_ID}
    if request_type == "bypass":
        return {**full_body, "method": "bypass"}
    if request_type == "bypassV2":
        return {**full_body, "deviceRegion": DEFAULT_REGION, "method": "bypassV2"}
    if request_type == "bypass_config":
        return {**full_body, "method": "firmwareUpdateInfo"}
    return full_body


def redact_payload(data: Any, *, enabled: bool = True) -> Any:
    """Return a copy of a request or response with credentials masked.

    Nested dicts and lists are walked; the input is never modified.
    """
    if not enabled:
        return data
    if isinstance(data, dict):
        return {
            key: REDACTED_VALUE if key in REDACTED_KEYS and value else redact_payload(value)
            for key, value in data.items()
        }
    if isinstance(data, list):
        return [redact_payload(item) for item in data]
    return data
