"""
Encryption utilities for drivehandoff
Handles encryption/decryption of the cached OAuth refresh token
"""
import os
import base64
import binascii
import json
from typing import Optional
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.exceptions import InvalidTag
import logging

from ..utils.errors import ConfigurationError

logger = logging.getLogger(__name__)

ENCRYPTED_CACHE_TYPE = "encrypted_authorized_user"


def get_encryption_key(key_b64: Optional[str] = None) -> bytes:
    """Get encryption key from argument or environment"""
    # Read fresh from environment each time (for testing)
    encryption_key_b64 = key_b64 or os.getenv("DH_TOKEN_ENCRYPTION_KEY")

    if not encryption_key_b64:
        raise ConfigurationError("DH_TOKEN_ENCRYPTION_KEY not configured", setting="DH_TOKEN_ENCRYPTION_KEY")

    try:
        key = base64.b64decode(encryption_key_b64, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ConfigurationError(f"Invalid DH_TOKEN_ENCRYPTION_KEY: {e}", setting="DH_TOKEN_ENCRYPTION_KEY")
    if len(key) != 32:  # AES-256 requires 32 bytes
        raise ConfigurationError(
            "DH_TOKEN_ENCRYPTION_KEY must be 32 bytes (base64 encoded)",
            setting="DH_TOKEN_ENCRYPTION_KEY",
        )
    return key


def encrypt_token(plaintext: str, key_b64: Optional[str] = None) -> str:
    """
    Encrypt a token using AES-256-GCM

    Args:
        plaintext: Token payload to encrypt (authorized-user JSON)
        key_b64: Base64 key; falls back to DH_TOKEN_ENCRYPTION_KEY

    Returns:
        Base64-encoded encrypted token: nonce + ciphertext + tag
    """
    if not plaintext:
        return ""

    aesgcm = AESGCM(get_encryption_key(key_b64))

    # Generate random nonce (12 bytes for GCM)
    nonce = os.urandom(12)
    ciphertext = aesgcm.encrypt(nonce, plaintext.encode('utf-8'), None)

    return base64.b64encode(nonce + ciphertext).decode('ascii')


def decrypt_token(encrypted: Optional[str], key_b64: Optional[str] = None) -> Optional[str]:
    """
    Decrypt a token using AES-256-GCM

    Returns:
        Decrypted plaintext, or None if decryption fails
    """
    if not encrypted:
        return None

    aesgcm = AESGCM(get_encryption_key(key_b64))

    try:
        encrypted_bytes = base64.b64decode(encrypted)
        nonce = encrypted_bytes[:12]
        ciphertext = encrypted_bytes[12:]
        plaintext = aesgcm.decrypt(nonce, ciphertext, None)
        return plaintext.decode('utf-8')

    except InvalidTag:
        logger.error("Token decryption failed: Invalid authentication tag (tampered data or wrong key)")
        return None
    except (binascii.Error, ValueError) as e:
        logger.error(f"Decryption failed: {e}")
        return None


def wrap_cache(plaintext: str, key_b64: Optional[str] = None) -> str:
    """Serialize an encrypted token cache file."""
    return json.dumps({"type": ENCRYPTED_CACHE_TYPE, "payload": encrypt_token(plaintext, key_b64)})


def is_encrypted(cache: dict) -> bool:
    """Check whether a parsed token cache holds an encrypted payload"""
    return isinstance(cache, dict) and cache.get("type") == ENCRYPTED_CACHE_TYPE
