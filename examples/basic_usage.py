"""Basic usage example for pyvesynccloud library."""

import asyncio

from pyvesynccloud import VeSyncClient


async def main() -> None:
    """Log in, list devices and refresh their details."""
    async with VeSyncClient(
        username="your@email.com",
        password="your_password",
        country_code="US",
    ) as client:
        if not await client.login():
            print("Login failed")
            return

        print(f"Logged in against {client.api_base_url} (region {client.region.value})")

        await client.update()
        print(f"Found {len(client.devices)} device(s)")

        for device in client.devices:
            print(f"\nDevice: {device.name}")
            print(f"  CID: {device.cid}")
            print(f"  Model: {device.device_type}")
            print(f"  Category: {device.category}")
            print(f"  Online: {device.is_online}")
            print(f"  Status: {device.status}")
            if device.details:
                print(f"  Details: {device.details}")


if __name__ == "__main__":
    asyncio.run(main())
