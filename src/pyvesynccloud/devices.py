"""Device objects for VeSync accounts.

Devices here are generic: they carry what the device list reports and can
refresh their cloud details through the client's authenticated request
primitive. Model-specific commands are out of scope.
"""

from __future__ import annotations

import logging
from collections.abc import Callable  # noqa: TC003 - Used at runtime for type hints
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from pyvesynccloud.const import ENDPOINT_DEVICE_DETAIL
from pyvesynccloud.exceptions import DeviceError
from pyvesynccloud.parsers import is_success, response_code
from pyvesynccloud.serializers import req_body, req_headers


if TYPE_CHECKING:
    from pyvesynccloud.client import VeSyncClient
    from pyvesynccloud.models import DeviceInfo

_LOGGER = logging.getLogger(__name__)

# Envelope keys that are not device details
_ENVELOPE_KEYS = frozenset({"code", "msg", "traceId", "result"})


class VeSyncDevice:
    """A device registered to a VeSync account.

    Example:
        ```python
        async with VeSyncClient("user@example.com", "password") as client:
            await client.login()
            await client.get_devices()

            for device in client.outlets:
                await device.get_details()
                print(device.name, device.connection_status, device.details)
        ```

    Attributes:
        details: Last detail payload returned by the cloud.
    """

    def __init__(self, client: VeSyncClient, info: DeviceInfo) -> None:
        """Initialize the device.

        Args:
            client: Logged-in client used for every request.
            info: Device entry from the device list.
        """
        self._client = client
        self._info = info
        self._last_refresh: datetime = datetime.now(UTC)
        self.details: dict[str, Any] = {}

        self._listeners: list[Callable[[VeSyncDevice], None]] = []

    # -------------------------------------------------------------------------
    # Device Info Properties
    # -------------------------------------------------------------------------

    @property
    def info(self) -> DeviceInfo:
        """Get the device list entry."""
        return self._info

    @property
    def cid(self) -> str:
        """Get device cloud id."""
        return self._info.cid

    @property
    def uuid(self) -> str | None:
        """Get device uuid."""
        return self._info.uuid

    @property
    def name(self) -> str:
        """Get device name."""
        return self._info.name

    @property
    def device_type(self) -> str:
        """Get device model string."""
        return self._info.device_type

    @property
    def category(self) -> str:
        """Get the collection this device belongs to."""
        return self._info.category

    @property
    def status(self) -> str | None:
        """Get power state string."""
        return self._info.status

    @property
    def connection_status(self) -> str | None:
        """Get connection status string."""
        return self._info.connection_status

    @property
    def is_online(self) -> bool:
        """Check if the device is connected to the cloud."""
        return self._info.is_online

    @property
    def last_refresh(self) -> datetime:
        """Get timestamp of last info or detail refresh."""
        return self._last_refresh

    @property
    def state_age_seconds(self) -> float:
        """Get the age of the cached state in seconds."""
        return (datetime.now(UTC) - self._last_refresh).total_seconds()

    # -------------------------------------------------------------------------
    # State Management
    # -------------------------------------------------------------------------

    async def get_details(self) -> bool:
        """Refresh device details from the cloud.

        Token expiry during the request triggers one re-login and replay.

        Returns:
            True if successful, False otherwise.

        Raises:
            DeviceError: If the device has no uuid.
            AuthenticationError: If the client is not logged in.
        """
        if not self.uuid:
            msg = f"Device {self.name} has no uuid, cannot fetch details"
            raise DeviceError(msg, device_id=self.cid)

        body = req_body(self._client, "devicedetail")
        body["uuid"] = self.uuid

        payload, status = await self._client.call_api(
            ENDPOINT_DEVICE_DETAIL,
            "post",
            body,
            req_headers(self._client),
            retry_on_token_expiry=True,
        )

        if payload is None or not is_success(payload):
            _LOGGER.warning(
                "Failed to get details for device %s: HTTP %d, code %s",
                self.name,
                status,
                response_code(payload),
            )
            return False

        result = payload.get("result")
        if isinstance(result, dict):
            details = result
        else:
            details = {key: value for key, value in payload.items() if key not in _ENVELOPE_KEYS}

        self.details = details
        if "connectionStatus" in details:
            self._info.connection_status = details["connectionStatus"]
        if "deviceStatus" in details:
            self._info.status = details["deviceStatus"]

        self._mark_updated()
        return True

    def update_info(self, info: DeviceInfo) -> None:
        """Replace the device list entry after a rediscovery."""
        self._info = info
        self._mark_updated()

    def _mark_updated(self) -> None:
        self._last_refresh = datetime.now(UTC)
        self._notify_listeners()

    def _notify_listeners(self) -> None:
        """Notify all registered listeners of state change.

        A listener that raises is logged and does not affect the others.
        """
        for listener in self._listeners:
            try:
                listener(self)
            except Exception:
                _LOGGER.exception("Error in state change listener for device %s", self.cid)

    def add_listener(self, callback: Callable[[VeSyncDevice], None]) -> None:
        """Register a callback to be called when device state changes.

        Args:
            callback: Callable that takes a VeSyncDevice instance.
        """
        if callback not in self._listeners:
            self._listeners.append(callback)
            _LOGGER.debug("Added state change listener for device %s", self.cid)

    def remove_listener(self, callback: Callable[[VeSyncDevice], None]) -> None:
        """Unregister a state change callback."""
        if callback in self._listeners:
            self._listeners.remove(callback)
            _LOGGER.debug("Removed state change listener for device %s", self.cid)

    # -------------------------------------------------------------------------
    # String Representation
    # -------------------------------------------------------------------------

    def __str__(self) -> str:
        """Return string representation of device."""
        return f"{self.name} ({self.cid})"

    def __repr__(self) -> str:
        """Return detailed string representation of device."""
        return f"VeSyncDevice(cid='{self.cid}', name='{self.name}', device_type='{self.device_type}')"
