"""
Security utilities for the session middleware

This module provides session identifier generation, cookie signing secrets
and HMAC signatures for the session-id cookie.
"""

import base64
import hashlib
import hmac
import logging
import secrets
import string
from typing import Optional

logger = logging.getLogger(__name__)

# 24 bytes of entropy per session identifier (32 URL-safe characters)
SESSION_ID_BYTES = 24

SIGNATURE_SUFFIX = ".sig"

INSECURE_DEFAULTS = [
    "your-secret-key-here-change-in-production",
    "change-me",
    "secret",
    "password",
    "123456",
    "admin",
]


def generate_session_id(nbytes: int = SESSION_ID_BYTES) -> str:
    """
    Generate a new unpredictable fixed-length session identifier.

    Args:
        nbytes: Bytes of entropy (default: 24)

    Returns:
        URL-safe text token, safe to use as a cookie value and store key
    """
    return secrets.token_urlsafe(nbytes)


def generate_secure_secret_key(length: int = 64) -> str:
    """
    Generate a cryptographically secure secret key.

    Args:
        length: Length of the secret key (default: 64 characters)

    Returns:
        A secure random string suitable for signing cookies
    """
    alphabet = string.ascii_letters + string.digits + "-_"
    return ''.join(secrets.choice(alphabet) for _ in range(length))


def validate_secret_key(secret_key: str) -> None:
    """
    Validate that a cookie signing key meets security requirements.

    Args:
        secret_key: The secret key to validate

    Raises:
        ValueError: If the secret key doesn't meet requirements
    """
    if not secret_key:
        raise ValueError("Session secret key cannot be empty")

    if len(secret_key) < 32:
        raise ValueError("Session secret key must be at least 32 characters long")

    if secret_key.lower() in [default.lower() for default in INSECURE_DEFAULTS]:
        raise ValueError("Session secret key appears to be an insecure default value")

    # At least 8 different characters
    unique_chars = len(set(secret_key.lower()))
    if unique_chars < 8:
        raise ValueError("Session secret key has insufficient entropy (too repetitive)")

    logger.debug("Session secret key validation passed")


def get_or_create_secret_key(configured: Optional[str]) -> str:
    """
    Return the configured signing key, or generate one for this process.

    A generated key lives in memory only, so signed cookies issued before a
    restart stop verifying and those clients get fresh sessions.
    """
    if configured:
        validate_secret_key(configured)
        return configured

    logger.warning(
        "No SESSION_SECRET_KEY configured, generating a process-local signing key"
    )
    secret_key = generate_secure_secret_key()
    validate_secret_key(secret_key)
    return secret_key


def sign_cookie(name: str, value: str, secret_key: str) -> str:
    """Compute the signature stored in the ``<name>.sig`` companion cookie."""
    digest = hmac.new(
        secret_key.encode('utf-8'),
        f"{name}={value}".encode('utf-8'),
        hashlib.sha256,
    ).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode('ascii')


def verify_cookie_signature(name: str, value: str, signature: Optional[str], secret_key: str) -> bool:
    """Check a cookie value against its companion signature."""
    if not signature:
        return False
    expected = sign_cookie(name, value, secret_key)
    return hmac.compare_digest(signature, expected)


def mask_session_id(session_id: Optional[str]) -> str:
    """Truncate a session identifier for safe logging"""
    if not session_id:
        return "<none>"
    return session_id[:6] + "****"
