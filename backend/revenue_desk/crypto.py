"""
Encryption of API key material at rest (``api_keys.encrypted_key``).

Fernet symmetric encryption from the `cryptography` package, keyed by the
ENCRYPTION_KEY setting. Without a key (development only) values pass through
unchanged so a fresh checkout works without extra setup.
"""

import logging
from functools import lru_cache
from cryptography.fernet import Fernet, InvalidToken

from revenue_desk.config import get_settings

logger = logging.getLogger(__name__)


@lru_cache
def _cipher_for(key: str) -> Fernet | None:
    if not key:
        logger.warning("ENCRYPTION_KEY not set; API keys are stored in plaintext (development only).")
        return None
    try:
        return Fernet(key.encode())
    except ValueError as exc:
        raise RuntimeError(f"Invalid ENCRYPTION_KEY: {exc}") from exc


def _get_fernet() -> Fernet | None:
    settings = get_settings()
    if not settings.encryption_key and settings.is_production:
        raise RuntimeError("ENCRYPTION_KEY must be set in production.")
    return _cipher_for(settings.encryption_key)


def reset_cipher() -> None:
    """Forget cached ciphers so the next call re-reads settings."""
    _cipher_for.cache_clear()


def encrypt_value(plaintext: str | None) -> str | None:
    """Encrypt an API key. Returns it unchanged when no key is configured."""
    if plaintext is None:
        return None
    fernet = _get_fernet()
    if fernet is None:
        return plaintext
    return fernet.encrypt(plaintext.encode()).decode()


def decrypt_value(ciphertext: str | None) -> str | None:
    if ciphertext is None:
        return None
    fernet = _get_fernet()
    if fernet is None:
        return ciphertext
    try:
        return fernet.decrypt(ciphertext.encode()).decode()
    except InvalidToken:
        # Seeded sample keys and rows written before encryption was enabled are plaintext
        logger.warning("API key is not a Fernet token; returning it as stored.")
        return ciphertext
