"""Python client library for the VeSync cloud.

This package provides an async client that logs in to a VeSync account,
keeps the session on the right regional endpoint, and discovers the devices
registered to the account.

The library is organized into three layers:
1. **API Layer** (pyvesynccloud.api): One HTTP exchange per call, no state
2. **Auth Layer** (pyvesynccloud.auth): The login protocol with region recovery
3. **Client Layer** (pyvesynccloud.client): Session state, request recovery
   and device collections

Example:
    Basic usage:

    ```python
    from pyvesynccloud import VeSyncClient

    async with VeSyncClient("user@example.com", "password") as client:
        if await client.login():
            await client.update()
            for device in client.devices:
                print(device.name, device.device_type, device.connection_status)
    ```

    Persisting the session between runs:

    ```python
    from pyvesynccloud import FileSessionStore, VeSyncClient

    store = FileSessionStore("session.json")
    async with VeSyncClient("user@example.com", "password", session_store=store) as client:
        if not await client.restore_session():
            await client.login()
    ```
"""

from __future__ import annotations

from pyvesynccloud.api import VeSyncAPI
from pyvesynccloud.auth import AuthenticationHandler
from pyvesynccloud.client import VeSyncClient
from pyvesynccloud.const import LIBRARY_VERSION
from pyvesynccloud.devices import VeSyncDevice
from pyvesynccloud.exceptions import (
    AuthenticationError,
    DeviceError,
    InvalidParameterError,
    VeSyncConnectionError,
    VeSyncError,
    VeSyncTimeoutError,
)
from pyvesynccloud.models import (
    AuthFailure,
    AuthFlow,
    DeviceInfo,
    ExclusionConfig,
    LoginResult,
    Session,
)
from pyvesynccloud.regions import (
    Region,
    endpoint_for,
    resolve_region_from_api_base_url,
    resolve_region_from_country_code,
)
from pyvesynccloud.resilience import ExponentialBackoff
from pyvesynccloud.session import FileSessionStore, SessionStore, decode_jwt_timestamps


__version__ = LIBRARY_VERSION

__all__ = [
    "AuthFailure",
    "AuthFlow",
    "AuthenticationError",
    "AuthenticationHandler",
    "DeviceError",
    "DeviceInfo",
    "ExclusionConfig",
    "ExponentialBackoff",
    "FileSessionStore",
    "InvalidParameterError",
    "LoginResult",
    "Region",
    "Session",
    "SessionStore",
    "VeSyncAPI",
    "VeSyncClient",
    "VeSyncConnectionError",
    "VeSyncDevice",
    "VeSyncError",
    "VeSyncTimeoutError",
    "__version__",
    "decode_jwt_timestamps",
    "endpoint_for",
    "resolve_region_from_api_base_url",
    "resolve_region_from_country_code",
]
