"""ID generation utilities."""
import secrets
from uuid import UUID
from uuid6 import uuid7


def generate_uuid7() -> UUID:
    """Generate a UUIDv7 (time-sortable UUID)."""
    return uuid7()


def generate_storage_key(prefix: str, filename: str) -> str:
    """Build an opaque blob key that keeps the original file extension."""
    _, dot, extension = filename.rpartition(".")
    suffix = f".{extension.lower()}" if dot and extension else ""
    return f"{prefix}/{secrets.token_hex(16)}{suffix}"
