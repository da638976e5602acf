#!/usr/bin/env python3
"""
Realtime example for the PocketBase Python client.

Subscribes to every change of the ``posts`` collection, creates a record and
prints the notifications pushed by the server.
"""

import asyncio
import logging
import os

from pocketbase_client import AsyncPocketBase, RecordSubscriptionEvent


async def main() -> None:
    """Run realtime example."""
    logging.basicConfig(level=logging.INFO)
    base_url = os.environ.get("POCKETBASE_URL", "http://127.0.0.1:8090")

    async with AsyncPocketBase(base_url) as pb:
        received = asyncio.Event()

        def on_change(event: RecordSubscriptionEvent) -> None:
            print(f"  {event.action}: {event.record.id} {event.record.get('title')}")
            received.set()

        def on_disconnect(subscriptions: dict) -> None:
            print(f"  Disconnected, {len(subscriptions)} subscription(s) will be restored")

        pb.realtime.on_disconnect = on_disconnect

        print("Subscribing to posts...")
        unsubscribe = await pb.collection("posts").subscribe("*", on_change)
        print(f"  Client id: {pb.realtime.client_id}")

        print("\nCreating a post...")
        post = await pb.collection("posts").create({"title": "Realtime hello"})

        await asyncio.wait_for(received.wait(), timeout=10)

        await pb.collection("posts").delete(post.id)
        await unsubscribe()
        print("\nDone!")


if __name__ == "__main__":
    asyncio.run(main())
