"""Example showing session injection and session persistence."""

import asyncio
from pathlib import Path

from aiohttp import ClientSession

from pyvesynccloud import FileSessionStore, VeSyncClient


SESSION_FILE = Path.home() / ".config" / "pyvesynccloud" / "session.json"


async def main() -> None:
    """Reuse a stored login and an application-managed aiohttp session."""
    store = FileSessionStore(SESSION_FILE)

    async with ClientSession() as session:
        client = VeSyncClient(
            username="your@email.com",
            password="your_password",
            session=session,  # Inject existing session
            session_store=store,
        )

        async with client:
            if await client.restore_session():
                print(f"Restored stored session for region {client.region.value}")
            elif await client.login():
                print(f"Logged in and saved session to {SESSION_FILE}")
            else:
                print("Login failed")
                return

            # Token expiry and region moves are recovered transparently
            await client.get_devices()
            for device in client.devices:
                print(f"  - {device}")

        # Session remains open after client exits
        print("\nClient closed, but session still available for other requests")


if __name__ == "__main__":
    asyncio.run(main())
