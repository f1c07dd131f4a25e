"""Database access with timeouts and error translation (see stores.base)."""
