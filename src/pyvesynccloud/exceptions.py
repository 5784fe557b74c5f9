"""Custom exceptions for pyvesynccloud library."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any


if TYPE_CHECKING:
    from pyvesynccloud.models import AuthFailure


class VeSyncError(Exception):
    """Base exception for all VeSync errors."""


class AuthenticationError(VeSyncError):
    """Exception raised when an operation needs credentials the client does not have.

    Attributes:
        failure: Why the last login failed, when a login was tried.
    """

    def __init__(self, message: str = "", failure: AuthFailure | None = None) -> None:
        super().__init__(message)
        self.failure = failure


class VeSyncConnectionError(VeSyncError):
    """Exception raised for connection failures."""


class VeSyncTimeoutError(VeSyncError):
    """Exception raised when API requests timeout."""


class DeviceError(VeSyncError):
    """Exception raised for device-related errors.

    Attributes:
        device_id: Optional device ID associated with the error.
    """

    def __init__(self, message: str = "", device_id: str | None = None) -> None:
        """Initialize DeviceError.

        Args:
            message: Error message.
            device_id: Optional device ID associated with the error.
        """
        super().__init__(message)
        self.device_id = device_id


class InvalidParameterError(VeSyncError):
    """Exception raised for invalid parameter values.

    Attributes:
        parameter_name: Optional name of the invalid parameter.
        value: Optional value that was invalid.
    """

    def __init__(
        self,
        message: str = "",
        parameter_name: str | None = None,
        value: Any = None,
    ) -> None:
        """Initialize InvalidParameterError.

        Args:
            message: Error message.
            parameter_name: Optional name of the invalid parameter.
            value: Optional value that was invalid.
        """
        super().__init__(message)
        self.parameter_name = parameter_name
        self.value = value
