"""Internal helpers for the PocketBase client."""
