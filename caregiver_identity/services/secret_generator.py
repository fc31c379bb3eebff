"""
Opaque secret generation.

Secrets are ``<prefix>_<hex>`` strings drawn from the OS CSPRNG. The prefix
tells a reader what kind of credential they are holding.
"""

import hashlib
import secrets

API_KEY_PREFIX = "bnk"
INVITATION_TOKEN_PREFIX = "inv"
DEFAULT_SECRET_BYTES = 24


def new_secret(prefix: str, byte_length: int = DEFAULT_SECRET_BYTES) -> str:
    """
    Generate a purpose-prefixed opaque secret.

    Args:
        prefix: Purpose tag, e.g. ``bnk`` or ``inv``
        byte_length: Number of random bytes (hex doubles the length)

    Returns:
        str: ``<prefix>_<hex>``
    """
    return f"{prefix}_{secrets.token_hex(byte_length)}"


def new_api_key() -> str:
    """Generate an API key secret."""
    return new_secret(API_KEY_PREFIX)


def new_invitation_token() -> str:
    """Generate an invitation token."""
    return new_secret(INVITATION_TOKEN_PREFIX)


def hash_secret(secret: str) -> str:
    """SHA-256 hex digest used to store and look up API keys."""
    return hashlib.sha256(secret.encode("utf-8")).hexdigest()
