"""Identifier and message hashing for logs.

Session identifiers and message text never appear in application logs in
clear form. Identifiers are hashed with a deployment salt, message text is
fingerprinted so an audit reviewer can match a log line to the stored
crisis event.
"""
import hashlib
import logging
from typing import Optional, Union

logger = logging.getLogger(__name__)


_PII_SALT: Optional[str] = None

MIN_SALT_LENGTH = 32


def configure_pii_salt(salt: str) -> None:
    """Configure the identifier hashing salt.

    Must be called during application startup before any hashing.

    Args:
        salt: Secret salt value (PII_HASH_SALT)

    Raises:
        ValueError: If salt is empty or too short
    """
    global _PII_SALT
    if not salt or len(salt) < MIN_SALT_LENGTH:
        logger.critical(
            "PII_SALT_CONFIGURATION_FAILED",
            extra={"reason": "Salt too short or empty", "min_length": MIN_SALT_LENGTH}
        )
        raise ValueError(f"PII salt must be at least {MIN_SALT_LENGTH} characters")

    _PII_SALT = salt
    logger.info("PII_SALT_CONFIGURED", extra={"salt_length": len(salt)})


def hash_pii(value: Union[str, int]) -> str:
    """Hash an identifier for safe logging.

    Session and user ids are integers in storage; they are hashed as their
    decimal string so the same id always yields the same hash.

    Args:
        value: Identifier to hash

    Returns:
        64-char hex SHA-256 digest

    Raises:
        RuntimeError: If the salt has not been configured
    """
    if _PII_SALT is None:
        logger.critical(
            "PII_HASH_FAILED",
            extra={"reason": "Salt not configured", "action": "call configure_pii_salt()"}
        )
        raise RuntimeError("PII salt not configured. Call configure_pii_salt() first.")

    salted = f"{_PII_SALT}{value}"
    return hashlib.sha256(salted.encode()).hexdigest()


def hash_text_for_audit(text: str) -> str:
    """Fingerprint message text without exposing content."""
    return hashlib.sha256(text.encode("utf-8", errors="surrogatepass")).hexdigest()
