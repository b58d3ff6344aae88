"""SSN encryption at rest.

AES-256-CBC with PKCS7 padding. The key is the SHA-256 digest of
``SSN_ENCRYPTION_KEY``; ciphertext is stored as ``iv_hex:cipher_hex``.
Hyphens are stripped before encryption.
"""

import hashlib
import logging
import os
from typing import Optional

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from app.core.config import settings
from app.utils.formatters import format_ssn

logger = logging.getLogger(__name__)

IV_SIZE = 16


def _key() -> bytes:
    return hashlib.sha256(settings.SSN_ENCRYPTION_KEY.encode("utf-8")).digest()


def encrypt_ssn(ssn: str) -> str:
    """Encrypt an SSN, returning ``iv_hex:cipher_hex``."""
    iv = os.urandom(IV_SIZE)
    padder = padding.PKCS7(algorithms.AES.block_size).padder()
    data = padder.update(ssn.replace("-", "").encode("utf-8")) + padder.finalize()
    encryptor = Cipher(algorithms.AES(_key()), modes.CBC(iv)).encryptor()
    encrypted = encryptor.update(data) + encryptor.finalize()
    return f"{iv.hex()}:{encrypted.hex()}"


def decrypt_ssn(encrypted_ssn: Optional[str]) -> Optional[str]:
    """Decrypt a value produced by :func:`encrypt_ssn`.

    Returns the SSN formatted as ``XXX-XX-XXXX`` (or the raw plaintext when it
    is not nine digits), and None when the value is missing or unreadable.
    """
    if not encrypted_ssn or ":" not in encrypted_ssn:
        return None
    iv_hex, _, cipher_hex = encrypted_ssn.partition(":")
    if not iv_hex or not cipher_hex:
        return None

    try:
        decryptor = Cipher(algorithms.AES(_key()), modes.CBC(bytes.fromhex(iv_hex))).decryptor()
        padded = decryptor.update(bytes.fromhex(cipher_hex)) + decryptor.finalize()
        unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
        plain = (unpadder.update(padded) + unpadder.finalize()).decode("utf-8")
    except ValueError as e:
        logger.error(f"Could not decrypt SSN: {e}")
        return None

    if len(plain) == 9 and plain.isdigit():
        return format_ssn(plain)
    return plain


def last_four(ssn: Optional[str]) -> Optional[str]:
    digits = (ssn or "").replace("-", "")
    return digits[-4:] if digits else None
