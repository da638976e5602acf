#!/usr/bin/env python3
"""
Basic usage example for the PocketBase Python client.

Demonstrates authenticating, creating, listing and deleting records.
"""

import os

from pocketbase_client import PocketBase


def main() -> None:
    """Run basic usage example."""
    base_url = os.environ.get("POCKETBASE_URL", "http://127.0.0.1:8090")
    email = os.environ.get("POCKETBASE_EMAIL")
    password = os.environ.get("POCKETBASE_PASSWORD")
    if not email or not password:
        print("Please set POCKETBASE_EMAIL and POCKETBASE_PASSWORD environment variables")
        return

    with PocketBase(base_url) as pb:
        # Check health
        print("Checking API health...")
        health = pb.health.check()
        print(f"  {health.code}: {health.message}")

        # Authenticate
        print("\nAuthenticating...")
        auth = pb.collection("users").auth_with_password(email, password)
        print(f"  Logged in as {auth.record.id}")

        # Create a record
        print("\nCreating a post...")
        post = pb.collection("posts").create({"title": "Hello from Python"})
        print(f"  Post ID: {post.id}")

        # List records
        print("\nListing recent posts...")
        result = pb.collection("posts").get_list(1, 5, sort="-created")
        for item in result.items:
            print(f"  - {item.id}: {item.get('title')}")

        # Find by filter
        found = pb.collection("posts").get_first_list_item(
            pb.filter("id = {:id}", {"id": post.id})
        )
        print(f"\nFound {found.id} by filter")

        # Delete (for cleanup)
        print(f"\nDeleting post {post.id}...")
        pb.collection("posts").delete(post.id)
        print("  Done!")


if __name__ == "__main__":
    main()
