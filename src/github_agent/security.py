"""
Secret handling helpers.

- Fernet encryption for secrets stored in the database (SMTP password,
  Slack tokens, webhook secrets)
- API key generation and hashing for the /api/v1 surface
- Constant-time comparisons for passwords and Slack request signatures
"""

import hashlib
import hmac
import logging
import secrets
import time
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from github_agent.config import settings
from github_agent.exceptions import CredentialEncryptionError

logger = logging.getLogger(__name__)

API_KEY_PREFIX = "gha_"
MASK_PREFIX = "***"

# Slack rejects requests older than five minutes
SLACK_SIGNATURE_MAX_AGE = 60 * 5


def _get_cipher() -> Fernet:
    """
    Get Fernet cipher for encryption/decryption.

    Returns:
        Fernet cipher instance

    Raises:
        CredentialEncryptionError: If ENCRYPTION_KEY is not set or malformed
    """
    if not settings.encryption_key:
        raise CredentialEncryptionError(
            "ENCRYPTION_KEY environment variable must be set. "
            "Generate one with: github-agent generate-encryption-key"
        )

    try:
        return Fernet(settings.encryption_key.encode())
    except (ValueError, TypeError) as e:
        raise CredentialEncryptionError(f"Invalid encryption key format: {e}") from e


def generate_encryption_key() -> str:
    return Fernet.generate_key().decode()


def encrypt_secret(value: Optional[str]) -> Optional[str]:
    """Encrypt a secret for storage. Empty values are stored as None."""
    if not value:
        return None
    return _get_cipher().encrypt(value.encode()).decode()


def decrypt_secret(token: Optional[str]) -> Optional[str]:
    """
    Decrypt a stored secret.

    Raises:
        CredentialEncryptionError: If the token was encrypted with another key
    """
    if not token:
        return None
    try:
        return _get_cipher().decrypt(token.encode()).decode()
    except InvalidToken as e:
        raise CredentialEncryptionError(
            "Failed to decrypt stored secret (was ENCRYPTION_KEY rotated?)"
        ) from e


def mask_secret(value: Optional[str]) -> Optional[str]:
    """Mask a secret for display: '***' followed by its last four characters."""
    if not value:
        return None
    return f"{MASK_PREFIX}{value[-4:]}"


def is_masked(value: Optional[str]) -> bool:
    """True when a client echoed back a masked value instead of a new secret."""
    return bool(value) and value.startswith(MASK_PREFIX)


def generate_api_key() -> tuple[str, str, str]:
    """
    Generate a new API key.

    Returns:
        Tuple of (full_key, key_prefix, key_hash). The full key is only
        shown once; the hash is what gets stored.
    """
    full_key = f"{API_KEY_PREFIX}{secrets.token_hex(32)}"
    key_prefix = full_key[:12]
    return full_key, key_prefix, hash_api_key(full_key)


def hash_api_key(api_key: str) -> str:
    return hashlib.sha256(api_key.encode()).hexdigest()


def verify_password(candidate: str, expected: str) -> bool:
    return hmac.compare_digest(candidate.encode(), expected.encode())


def verify_slack_signature(
    signing_secret: str,
    timestamp: str,
    body: str,
    signature: str,
    now: Optional[float] = None,
) -> bool:
    """
    Verify a Slack request signature.

    Args:
        signing_secret: App signing secret
        timestamp: X-Slack-Request-Timestamp header
        body: Raw request body
        signature: X-Slack-Signature header ("v0=<hex>")
        now: Current unix time (for tests)

    Returns:
        True if the signature matches and the timestamp is fresh
    """
    try:
        request_time = int(timestamp)
    except (TypeError, ValueError):
        return False

    current = now if now is not None else time.time()
    if abs(current - request_time) > SLACK_SIGNATURE_MAX_AGE:
        logger.warning("Rejecting stale Slack request (timestamp=%s)", timestamp)
        return False

    base_string = f"v0:{timestamp}:{body}"
    expected = (
        "v0="
        + hmac.new(
            signing_secret.encode(), base_string.encode(), hashlib.sha256
        ).hexdigest()
    )
    return hmac.compare_digest(expected, signature)


def sign_payload(secret: str, body: bytes) -> str:
    """Signature header value for outbound webhooks."""
    return "sha256=" + hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()
