"""Low-level HTTP transport for the VeSync cloud.

This module performs exactly one HTTP exchange per call and normalizes the
outcome to a ``(payload, status)`` tuple. It holds no base URL of its own:
the caller passes the endpoint host on every call, so several clients with
different regions can share one transport.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from aiohttp import ClientError, ClientSession, ClientTimeout

from pyvesynccloud.const import DEFAULT_TIMEOUT
from pyvesynccloud.exceptions import VeSyncConnectionError, VeSyncTimeoutError
from pyvesynccloud.serializers import redact_payload


if TYPE_CHECKING:
    from types import TracebackType

_LOGGER = logging.getLogger(__name__)


class VeSyncAPI:
    """HTTP transport for VeSync cloud endpoints.

    Network failures never escape :meth:`call_api`: timeouts, refused
    connections and DNS errors come back as ``(None, 0)``, which callers treat
    as "no answer, assume transient failure". HTTP error statuses come back
    with whatever JSON body the server sent.

    Example:
        ```python
        from aiohttp import ClientSession
        from pyvesynccloud.api import VeSyncAPI

        async with ClientSession() as session:
            api = VeSyncAPI(session=session)
            payload, status = await api.call_api(
                "/cloud/v1/user/login",
                base_url="https://smartapi.vesync.com",
                json_data=body,
            )
        ```

    Attributes:
        timeout: Per-request timeout in seconds.
    """

    def __init__(
        self,
        *,
        session: ClientSession | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        redact: bool = True,
    ) -> None:
        """Initialize the transport.

        Args:
            session: Optional aiohttp ClientSession. If not provided, one is
                created on first use and closed by :meth:`close`.
            timeout: Per-request timeout in seconds.
            redact: Mask credentials in debug logs.
        """
        self._session = session
        self._owns_session = session is None
        self.timeout = timeout
        self.redact = redact

    def set_session(self, session: ClientSession) -> None:
        """Use an externally managed aiohttp session.

        The transport will not close this session.
        """
        self._session = session
        self._owns_session = False

    async def __aenter__(self) -> VeSyncAPI:
        """Enter the context manager, creating a session if needed."""
        self._ensure_session()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit the context manager, closing the session if this transport owns it."""
        await self.close()

    async def close(self) -> None:
        """Close the session if it was created by this transport."""
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        if self._owns_session:
            self._session = None

    def _ensure_session(self) -> ClientSession:
        if self._session is None or (self._owns_session and self._session.closed):
            self._session = ClientSession()
            self._owns_session = True
        return self._session

    async def _request(
        self,
        method: str,
        url: str,
        *,
        json_data: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> tuple[dict[str, Any] | None, int]:
        """Perform one HTTP request.

        Returns:
            Tuple of (payload, status). Payload is None when the body is empty
            or not JSON.

        Raises:
            VeSyncTimeoutError: If the request times out.
            VeSyncConnectionError: If the connection fails.
        """
        session = self._ensure_session()
        if session.closed:
            msg = "Session is closed. Cannot make request."
            raise VeSyncConnectionError(msg)

        timeout = ClientTimeout(total=self.timeout)

        try:
            async with session.request(
                method.upper(),
                url,
                json=json_data,
                headers=headers or {},
                timeout=timeout,
            ) as response:
                try:
                    payload = await response.json(content_type=None)
                except ValueError:
                    _LOGGER.debug("Non-JSON response from %s (HTTP %d)", url, response.status)
                    payload = None

                return payload, response.status

        except TimeoutError as exc:
            msg = f"Request to {url} timed out"
            raise VeSyncTimeoutError(msg) from exc

        except ClientError as exc:
            msg = f"Failed to connect to {url}: {exc}"
            raise VeSyncConnectionError(msg) from exc

    async def call_api(
        self,
        endpoint: str,
        method: str = "post",
        *,
        base_url: str,
        json_data: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> tuple[dict[str, Any] | None, int]:
        """Call a VeSync endpoint.

        Args:
            endpoint: Path beginning with a slash (e.g. "/cloud/v1/user/login").
            method: HTTP method.
            base_url: Regional host to send the request to.
            json_data: Optional JSON body.
            headers: Optional request headers.

        Returns:
            Tuple of (payload, status). ``(None, 0)`` means the request never got
            an answer.
        """
        url = base_url.rstrip("/") + endpoint
        _LOGGER.debug("%s %s body=%s", method.upper(), url, redact_payload(json_data, enabled=self.redact))

        try:
            payload, status = await self._request(method, url, json_data=json_data, headers=headers)
        except (VeSyncTimeoutError, VeSyncConnectionError) as exc:
            _LOGGER.warning("API call failed: %s", exc)
            return None, 0

        _LOGGER.debug(
            "Response from %s (HTTP %d): %s",
            endpoint,
            status,
            redact_payload(payload, enabled=self.redact),
        )
        if not isinstance(payload, dict):
            payload = None
        return payload, status
