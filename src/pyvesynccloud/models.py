"""Data models for VeSync sessions, login outcomes and devices."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


__all__ = [
    "AuthFailure",
    "AuthFlow",
    "DeviceInfo",
    "ExclusionConfig",
    "LoginResult",
    "Session",
]

_LOGGER = logging.getLogger(__name__)


class AuthFlow(str, Enum):
    """Login protocol variant that produced a session."""

    LEGACY = "legacy"
    NEW = "new"


class AuthFailure(str, Enum):
    """Reason a login step did not produce a session."""

    CREDENTIALS = "credentials"
    CROSS_REGION = "cross_region"
    AMBIGUOUS_REGION = "ambiguous_region"
    APP_VERSION = "app_version"
    TOKEN = "token"
    NETWORK = "network"
    MALFORMED = "malformed"
    API_ERROR = "api_error"


@dataclass
class Session:
    """Authenticated identity bound to one account.

    Attributes:
        token: Opaque bearer credential.
        account_id: Opaque account identifier.
        region: Region code whose endpoint issued the token.
        api_base_url: Exact base URL that authenticated. The token only works there.
        country_code: Country code returned by the server, if any.
        auth_flow_used: Protocol variant that produced this session.
        issued_at: Token ``iat`` in epoch seconds (hint only).
        expires_at: Token ``exp`` in epoch seconds (hint only).
        last_validated_at: Epoch milliseconds of the last successful use.
        library_version: Version of the library that wrote the record.
    """

    token: str
    account_id: str
    region: str
    api_base_url: str
    country_code: str | None = None
    auth_flow_used: AuthFlow | None = None
    issued_at: int | None = None
    expires_at: int | None = None
    last_validated_at: int | None = None
    library_version: str | None = None

    @property
    def is_valid(self) -> bool:
        """Check that both token and account id are present."""
        return bool(self.token) and bool(self.account_id)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the persisted camelCase record."""
        return {
            "token": self.token,
            "accountId": self.account_id,
            "countryCode": self.country_code,
            "region": self.region,
            "apiBaseUrl": self.api_base_url,
            "authFlowUsed": self.auth_flow_used.value if self.auth_flow_used else None,
            "issuedAt": self.issued_at,
            "expiresAt": self.expires_at,
            "lastValidatedAt": self.last_validated_at,
            "libraryVersion": self.library_version,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Session:
        """Build a session from a persisted record.

        Unknown ``authFlowUsed`` values are dropped rather than rejected.
        """
        flow_value = data.get("authFlowUsed")
        try:
            auth_flow = AuthFlow(flow_value) if flow_value else None
        except ValueError:
            _LOGGER.debug("Ignoring unknown auth flow %r in stored session", flow_value)
            auth_flow = None

        return cls(
            token=data.get("token") or "",
            account_id=data.get("accountId") or "",
            region=data.get("region") or "",
            api_base_url=data.get("apiBaseUrl") or "",
            country_code=data.get("countryCode"),
            auth_flow_used=auth_flow,
            issued_at=data.get("issuedAt"),
            expires_at=data.get("expiresAt"),
            last_validated_at=data.get("lastValidatedAt"),
            library_version=data.get("libraryVersion"),
        )


@dataclass
class LoginResult:
    """Outcome of a login step, a login attempt, or a whole login run.

    Exactly one of ``success`` or ``failure`` is meaningful: a successful result
    carries the token fields, a failed one carries the reason and, for
    cross-region errors, whatever the server suggested for the retry.
    """

    success: bool
    failure: AuthFailure | None = None
    token: str | None = None
    account_id: str | None = None
    country_code: str | None = None
    api_base_url: str | None = None
    region: str | None = None
    auth_flow: AuthFlow | None = None
    message: str | None = None
    suggested_country_code: str | None = None
    biz_token: str | None = None
    authorize_code: str | None = None

    @property
    def is_fatal(self) -> bool:
        """Check whether retrying the login cannot change this outcome."""
        return self.failure in (AuthFailure.CREDENTIALS, AuthFailure.AMBIGUOUS_REGION)

    @classmethod
    def failed(cls, failure: AuthFailure, message: str | None = None, **kwargs: Any) -> LoginResult:
        """Build a failed result."""
        return cls(success=False, failure=failure, message=message, **kwargs)


@dataclass
class DeviceInfo:
    """Device entry from the device list endpoint.

    Attributes:
        cid: Cloud identifier (falls back to macID or uuid).
        uuid: Device uuid used by the detail endpoints.
        name: User-assigned device name.
        device_type: Model string (e.g. "Core200S", "ESW15-USA").
        type: Connection family reported by the cloud (e.g. "wifi-air").
        category: One of fans, outlets, switches, bulbs, or unknown.
        status: Power state string ("on" / "off").
        connection_status: "online" or "offline".
        mac_id: Device MAC address.
        config_module: Cloud configuration module name.
        sub_device_no: Outlet number for multi-outlet plugs.
        raw_data: Original list entry.
    """

    cid: str
    name: str
    device_type: str
    uuid: str | None = None
    type: str | None = None
    category: str = "unknown"
    status: str | None = None
    connection_status: str | None = None
    mac_id: str | None = None
    config_module: str | None = None
    sub_device_no: int | None = None
    raw_data: dict[str, Any] = field(default_factory=dict)

    @property
    def is_online(self) -> bool:
        """Check if device is online."""
        return self.connection_status == "online"


@dataclass
class ExclusionConfig:
    """Rules that skip devices during the detail-refresh step of an update.

    Discovery itself is never filtered.
    """

    type: list[str] = field(default_factory=list)
    model: list[str] = field(default_factory=list)
    name: list[str] = field(default_factory=list)
    name_pattern: list[str] = field(default_factory=list)
    id: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self._patterns: list[re.Pattern[str]] = []
        for pattern in self.name_pattern:
            try:
                self._patterns.append(re.compile(pattern, re.IGNORECASE))
            except re.error as exc:
                _LOGGER.warning("Ignoring invalid exclusion pattern %r: %s", pattern, exc)

    def matches(self, info: DeviceInfo) -> bool:
        """Check whether a device is excluded by any rule."""
        if info.type and info.type.lower() in {t.lower() for t in self.type}:
            return True

        device_type = info.device_type.lower()
        if any(device_type.startswith(model.lower()) for model in self.model if model):
            return True

        name = info.name.strip().lower()
        if name in {n.strip().lower() for n in self.name}:
            return True

        if any(pattern.search(info.name) for pattern in self._patterns):
            return True

        return info.cid in self.id or (info.uuid is not None and info.uuid in self.id)
