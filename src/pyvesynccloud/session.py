"""Session persistence for VeSync logins.

The client never stores sessions itself: it talks to any object that
implements :class:`SessionStore`. :class:`FileSessionStore` is a ready-made
JSON file implementation.
"""

from __future__ import annotations

import asyncio
import base64
import json
import logging
import os
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from pyvesynccloud.const import BASE64_PADDING_MODULO, JWT_PARTS_COUNT, MILLISECOND_TIMESTAMP_THRESHOLD
from pyvesynccloud.models import Session


__all__ = ["FileSessionStore", "SessionStore", "decode_jwt_payload", "decode_jwt_timestamps"]

_LOGGER = logging.getLogger(__name__)


@runtime_checkable
class SessionStore(Protocol):
    """Persistence interface for a single Session record.

    The client treats every method as best-effort: failures are logged and
    never surfaced to the caller of ``login()``.
    """

    async def load(self) -> Session | None:
        """Return the stored session, or None if there is none."""

    async def save(self, session: Session) -> None:
        """Persist a session, replacing any previous one."""

    async def clear(self) -> None:
        """Remove the stored session."""


class FileSessionStore:
    """Store a session as JSON in a file readable only by its owner.

    Blocking file I/O runs in a worker thread so the event loop is never held.

    Example:
        ```python
        store = FileSessionStore(Path.home() / ".config" / "vesync" / "session.json")
        client = VeSyncClient("user@example.com", "password", session_store=store)

        if not await client.restore_session():
            await client.login()
        ```
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        """Initialize the store.

        Args:
            path: File that holds the session record.
        """
        self.path = Path(path)

    async def load(self) -> Session | None:
        """Load the stored session.

        Returns:
            The stored Session, or None if the file is missing or unreadable.
        """
        return await asyncio.to_thread(self._read)

    async def save(self, session: Session) -> None:
        """Write the session to disk atomically with mode 0600."""
        await asyncio.to_thread(self._write, session.to_dict())

    async def clear(self) -> None:
        """Delete the session file if present."""
        await asyncio.to_thread(self.path.unlink, missing_ok=True)

    def _read(self) -> Session | None:
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            _LOGGER.warning("Could not read session file %s: %s", self.path, exc)
            return None
        if not isinstance(data, dict):
            _LOGGER.warning("Ignoring session file %s: not a JSON object", self.path)
            return None
        return Session.from_dict(data)

    def _write(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        tmp_path.chmod(0o600)
        tmp_path.replace(self.path)


def decode_jwt_payload(jwt_token: str) -> dict[str, Any]:
    """Decode a JWT payload without verifying it.

    Args:
        jwt_token: Token in ``header.payload.signature`` form.

    Returns:
        The decoded payload, or an empty dict if the token is not a JWT.
    """
    try:
        parts = jwt_token.split(".")
        if len(parts) != JWT_PARTS_COUNT:
            _LOGGER.debug(
                "Invalid JWT format: expected %d parts, got %d",
                JWT_PARTS_COUNT,
                len(parts),
            )
            return {}

        payload = parts[1]
        padding = BASE64_PADDING_MODULO - len(payload) % BASE64_PADDING_MODULO
        if padding != BASE64_PADDING_MODULO:
            payload += "=" * padding

        decoded = json.loads(base64.urlsafe_b64decode(payload).decode("utf-8"))
    except (ValueError, UnicodeDecodeError, AttributeError) as exc:
        _LOGGER.debug("Failed to decode JWT payload: %s", exc)
        return {}

    return decoded if isinstance(decoded, dict) else {}


def _epoch_seconds(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    if value > MILLISECOND_TIMESTAMP_THRESHOLD:
        return int(value // 1000)
    return int(value)


def decode_jwt_timestamps(token: str | None) -> tuple[int | None, int | None]:
    """Read ``iat`` and ``exp`` from a token as epoch seconds.

    Millisecond values are normalized to seconds. These are hints only and are
    never used to reject a token.

    Returns:
        Tuple of (issued_at, expires_at); either may be None.
    """
    if not token:
        return None, None
    payload = decode_jwt_payload(token)
    return _epoch_seconds(payload.get("iat")), _epoch_seconds(payload.get("exp"))
