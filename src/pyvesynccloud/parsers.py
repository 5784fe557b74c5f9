"""Parsing utilities for VeSync API responses.

Every VeSync response is a JSON object with a numeric ``code`` (zero means
success), an optional ``msg`` and an optional ``result`` object. The helpers
here classify error codes and turn raw payloads into models so the auth
handler and the client never poke at raw dicts themselves.
"""

from __future__ import annotations

import logging
from typing import Any

from pyvesynccloud.const import (
    APP_VERSION_ERROR_CODES,
    CREDENTIAL_ERROR_CODES,
    CROSS_REGION_ERROR_CODES,
    DEVICE_CATEGORY_PREFIXES,
    TOKEN_ERROR_CODES,
    TOKEN_ERROR_MESSAGES,
)
from pyvesynccloud.models import AuthFailure, AuthFlow, DeviceInfo, LoginResult
from pyvesynccloud.regions import Region, parse_region, resolve_region_from_country_code


__all__ = [
    "classify_error",
    "device_category",
    "is_app_version_error",
    "is_credential_error",
    "is_cross_region_error",
    "is_success",
    "is_token_error",
    "is_token_expired",
    "parse_auth_step1",
    "parse_device_list",
    "parse_login_response",
    "payload_shape",
    "response_code",
    "response_message",
    "suggested_region",
]

_LOGGER = logging.getLogger(__name__)


def response_code(payload: dict[str, Any] | None) -> int | None:
    """Return the numeric ``code`` of a response, or None if absent or not numeric."""
    if not isinstance(payload, dict):
        return None
    code = payload.get("code")
    if code is None or isinstance(code, bool):
        return None
    try:
        return int(code)
    except (TypeError, ValueError):
        return None


def response_message(payload: dict[str, Any] | None) -> str:
    """Return the server message of a response, or an empty string."""
    if not isinstance(payload, dict):
        return ""
    return str(payload.get("msg") or "")


def _result(payload: dict[str, Any] | None) -> dict[str, Any]:
    if not isinstance(payload, dict):
        return {}
    result = payload.get("result")
    return result if isinstance(result, dict) else {}


def is_success(payload: dict[str, Any] | None) -> bool:
    """Check if a response signals success (``code == 0``)."""
    return response_code(payload) == 0


def is_credential_error(code: int | None) -> bool:
    """Check if an error code means the username or password is wrong."""
    return code in CREDENTIAL_ERROR_CODES


def is_cross_region_error(code: int | None) -> bool:
    """Check if an error code means the account lives on another cluster."""
    return code in CROSS_REGION_ERROR_CODES


def is_token_error(code: int | None) -> bool:
    """Check if an error code means the token is expired or invalid."""
    return code in TOKEN_ERROR_CODES


def is_app_version_error(code: int | None) -> bool:
    """Check if an error code means the advertised app version is too old."""
    return code in APP_VERSION_ERROR_CODES


def is_token_expired(payload: dict[str, Any] | None) -> bool:
    """Check whether a response carries the token-expiry signature.

    Matches the token error code, or a message naming an expired or invalid
    token for responses that only carry text.
    """
    if is_token_error(response_code(payload)):
        return True
    message = response_message(payload).lower()
    return any(signature in message for signature in TOKEN_ERROR_MESSAGES)


def classify_error(payload: dict[str, Any] | None) -> AuthFailure:
    """Map a failed response to the failure taxonomy."""
    if payload is None:
        return AuthFailure.NETWORK
    code = response_code(payload)
    if is_credential_error(code):
        return AuthFailure.CREDENTIALS
    if is_cross_region_error(code):
        return AuthFailure.CROSS_REGION
    if is_token_expired(payload):
        return AuthFailure.TOKEN
    if is_app_version_error(code):
        return AuthFailure.APP_VERSION
    return AuthFailure.API_ERROR


def payload_shape(payload: Any) -> Any:
    """Describe a payload by its keys only, for logging malformed responses."""
    if isinstance(payload, dict):
        return {key: payload_shape(value) for key, value in payload.items()}
    if isinstance(payload, list):
        return [payload_shape(payload[0])] if payload else []
    return type(payload).__name__


def suggested_region(payload: dict[str, Any] | None) -> Region | None:
    """Return the region a cross-region response points at, if it names one.

    ``result.currentRegion`` wins over a region derived from ``result.countryCode``.
    """
    result = _result(payload)
    region = parse_region(result.get("currentRegion"))
    if region is not None:
        return region
    country_code = result.get("countryCode")
    if country_code:
        return resolve_region_from_country_code(country_code)
    return None


def _failure_from(payload: dict[str, Any] | None, status: int) -> LoginResult:
    failure = classify_error(payload)
    result = _result(payload)
    message = response_message(payload) or f"HTTP {status}"
    return LoginResult.failed(
        failure,
        message,
        suggested_country_code=result.get("countryCode"),
        biz_token=result.get("bizToken"),
    )


def parse_auth_step1(payload: dict[str, Any] | None, status: int) -> LoginResult:
    """Parse the authorization-code response of the new login flow.

    Returns:
        A successful LoginResult carrying ``authorize_code`` (and ``biz_token``
        when the server sent one), or a failed one with the classified reason.
    """
    if not is_success(payload):
        return _failure_from(payload, status)

    result = _result(payload)
    authorize_code = result.get("authorizeCode")
    if not authorize_code:
        _LOGGER.warning("Authorization response has no authorizeCode: %s", payload_shape(payload))
        return LoginResult.failed(AuthFailure.MALFORMED, "Missing authorizeCode in response")

    return LoginResult(
        success=True,
        authorize_code=authorize_code,
        biz_token=result.get("bizToken"),
    )


def parse_login_response(payload: dict[str, Any] | None, status: int, *, flow: AuthFlow) -> LoginResult:
    """Parse a token-bearing login response (new flow step 2 or legacy login).

    A response that reports success but lacks ``token`` or ``accountID`` is a
    MALFORMED failure, not an exception.
    """
    if not is_success(payload):
        return _failure_from(payload, status)

    result = _result(payload)
    token = result.get("token")
    account_id = result.get("accountID")
    if not token or not account_id:
        _LOGGER.warning("Login response is missing token or accountID: %s", payload_shape(payload))
        return LoginResult.failed(AuthFailure.MALFORMED, "Missing token or accountID in response")

    return LoginResult(
        success=True,
        token=token,
        account_id=str(account_id),
        country_code=result.get("countryCode"),
        auth_flow=flow,
    )


def _optional_int(value: Any) -> int | None:
    try:
        return int(value) if value not in (None, "") else None
    except (TypeError, ValueError):
        return None


def device_category(device_type: str) -> str:
    """Return the collection a device type belongs to, by model prefix."""
    for prefix, category in DEVICE_CATEGORY_PREFIXES:
        if device_type.startswith(prefix):
            return category
    return "unknown"


def parse_device_list(payload: dict[str, Any] | None) -> list[DeviceInfo] | None:
    """Parse the device list response.

    Entries without ``cid`` take their ``macID`` or ``uuid`` instead; entries
    with none of the three are dropped.

    Returns:
        List of DeviceInfo, or None when the payload has no ``result.list``.
    """
    result = _result(payload)
    entries = result.get("list")
    if not isinstance(entries, list):
        return None

    devices: list[DeviceInfo] = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue

        cid = entry.get("cid") or entry.get("macID") or entry.get("uuid")
        if not cid:
            _LOGGER.warning("Device with no ID - %s", entry.get("deviceName", ""))
            continue

        device_type = str(entry.get("deviceType") or "")
        sub_device_no = _optional_int(entry.get("subDeviceNo"))
        devices.append(
            DeviceInfo(
                cid=str(cid),
                name=str(entry.get("deviceName") or cid),
                device_type=device_type,
                uuid=entry.get("uuid"),
                type=entry.get("type"),
                category=device_category(device_type),
                status=entry.get("deviceStatus"),
                connection_status=entry.get("connectionStatus"),
                mac_id=entry.get("macID"),
                config_module=entry.get("configModule"),
                sub_device_no=sub_device_no,
                raw_data=entry,
            )
        )

    return devices
