"""
Cryptographic helpers — password hashing and API key material.

Uses argon2 for passwords (via argon2-cffi) and SHA-256 for API key hashing.
API keys are high-entropy random strings, so a fast digest is enough and it
lets the validator look keys up by hash instead of comparing every stored key.
"""

from __future__ import annotations

import hashlib
import secrets

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

API_KEY_PREFIX = "pk_"

# "pk_" plus the first 8 characters of the secret, shown in key listings
_DISPLAY_PREFIX_LENGTH = len(API_KEY_PREFIX) + 8

_password_hasher = PasswordHasher()


def hash_password(plain_password: str) -> str:
    """Hash *plain_password* with argon2id."""
    return _password_hasher.hash(plain_password)


def verify_password(plain_password: str, password_hash: str) -> bool:
    """Return ``True`` if *plain_password* matches the argon2 *password_hash*.

    Wrong passwords and unparseable hashes both return ``False``.
    """
    try:
        return _password_hasher.verify(password_hash, plain_password)
    except (VerificationError, InvalidHashError):
        return False


def hash_api_key(api_key: str) -> str:
    """Return the hex-encoded SHA-256 digest of the full ``pk_...`` key."""
    return hashlib.sha256(api_key.encode("utf-8")).hexdigest()


def generate_api_key() -> str:
    """Generate a new plaintext API key: ``pk_`` + 32 random bytes (base64url)."""
    return f"{API_KEY_PREFIX}{secrets.token_urlsafe(32)}"


def display_prefix(api_key: str) -> str:
    """Return the non-secret label stored alongside the hash, e.g. ``pk_AbCdEfGh...``."""
    return api_key[:_DISPLAY_PREFIX_LENGTH] + "..."
