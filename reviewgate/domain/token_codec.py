"""Bearer secret generation and digesting."""
import hashlib
import hmac
import secrets
from dataclasses import dataclass
from datetime import datetime

from reviewgate.common.clock import ensure_utc, utc_now


# 32 random bytes, hex encoded (256 bits of entropy)
SECRET_NUM_BYTES = 32
SECRET_LENGTH = SECRET_NUM_BYTES * 2
DIGEST_LENGTH = 64


@dataclass
class SecretInfo:
    """A freshly generated secret and its digest (the secret is shown only once)."""

    secret: str
    digest: str


def generate_secret() -> str:
    """Generate a new bearer secret.

    Uses the operating system CSPRNG through ``secrets``; never derived from
    caller input.

    Returns:
        64 character lowercase hex string
    """
    return secrets.token_hex(SECRET_NUM_BYTES)


def digest_secret(secret: str) -> str:
    """Hash a secret using SHA-256.

    Args:
        secret: The raw secret

    Returns:
        Hexadecimal string of the hash (64 characters)
    """
    return hashlib.sha256(secret.encode()).hexdigest()


def secrets_match(candidate: str, expected: str) -> bool:
    """Constant-time comparison of two secrets or digests."""
    return hmac.compare_digest(candidate.encode(), expected.encode())


def is_token_expired(expires_at: datetime | None, now: datetime | None = None) -> bool:
    """Check if a token has expired.

    Args:
        expires_at: Expiry timestamp, or None for tokens that never expire
        now: Reference time (defaults to current UTC time)

    Returns:
        True if the token has expired, False otherwise
    """
    if expires_at is None:
        return False
    now = ensure_utc(now) if now is not None else utc_now()
    return ensure_utc(expires_at) <= now


def create_secret_info() -> SecretInfo:
    """Generate a secret together with the digest that gets stored."""
    secret = generate_secret()
    return SecretInfo(secret=secret, digest=digest_secret(secret))
