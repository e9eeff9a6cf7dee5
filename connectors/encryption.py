"""
Token encryption — encrypt / decrypt OAuth tokens at rest.

Uses Fernet (AES-128-CBC + HMAC-SHA256) from the ``cryptography`` library.
The encryption key is loaded from ``config.token_encryption_key``
(env var: ``TOKEN_ENCRYPTION_KEY``).

If no key is configured, encryption is **disabled** and tokens are kept
as plaintext in the session store (with a startup warning).  Generate a key with::

    python -c "from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())"
"""

from __future__ import annotations

import logging
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from config.settings import config

logger = logging.getLogger(__name__)

_fernet: Optional[Fernet] = None
_enabled = False
_initialised = False


class TokenDecryptError(Exception):
    """Stored ciphertext could not be decrypted (tampered, or key rotated)."""


def _init_fernet() -> None:
    """Lazy-initialise the Fernet cipher once."""
    global _fernet, _enabled, _initialised

    _initialised = True
    key = config.token_encryption_key
    if not key:
        logger.warning(
            "TOKEN_ENCRYPTION_KEY not set — OAuth tokens will be stored as plaintext. "
            "Generate a key: python -c \"from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())\""
        )
        _enabled = False
        return

    try:
        _fernet = Fernet(key.encode() if isinstance(key, str) else key)
        _enabled = True
        logger.info("Token encryption enabled (Fernet/AES-128-CBC)")
    except (ValueError, TypeError) as exc:
        logger.error("Failed to initialise Fernet with provided key: %s", exc)
        _enabled = False


def configure(key: Optional[str]) -> None:
    """Re-initialise with an explicit key (``None`` disables encryption)."""
    global _fernet, _enabled, _initialised
    _fernet = None
    _enabled = False
    _initialised = False
    if key is not None:
        config.token_encryption_key = key
    else:
        config.token_encryption_key = ""
    _init_fernet()


def encrypt_token(plaintext: str) -> str:
    """
    Encrypt a token string for session storage.

    Returns the Fernet ciphertext (URL-safe base64).
    If encryption is disabled, returns the plaintext unchanged.
    """
    if not _initialised:
        _init_fernet()

    if not _enabled or _fernet is None:
        return plaintext

    return _fernet.encrypt(plaintext.encode()).decode()


def decrypt_token(ciphertext: str) -> str:
    """
    Decrypt a token string read from the session store.

    If encryption is disabled, returns the input unchanged.

    Raises
    ------
    TokenDecryptError
        The value is not a valid Fernet token for the configured key.
    """
    if not _initialised:
        _init_fernet()

    if not _enabled or _fernet is None:
        return ciphertext

    try:
        return _fernet.decrypt(ciphertext.encode()).decode()
    except (InvalidToken, ValueError, TypeError) as exc:
        raise TokenDecryptError("Stored token could not be decrypted") from exc


def is_encryption_enabled() -> bool:
    """Check whether token encryption is active."""
    if not _initialised:
        _init_fernet()
    return _enabled
