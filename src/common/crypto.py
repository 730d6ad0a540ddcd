from __future__ import annotations

import hashlib
from typing import Union

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from .errors import ConfigurationError, DecryptionError, EncryptionError


BLOCK_SIZE = 16
KEY_SIZES = (16, 24, 32)
IV_SIZE = 16
TRUNCATED_SIZE = 16

Secret = Union[str, int]


def derive_key_material(text: str, full_strength: bool) -> bytes:
    """SHA-256 of the UTF-8 encoded text.

    The digest is truncated to its first 16 bytes unless `full_strength`
    is set, in which case all 32 bytes are returned.
    """
    digest = hashlib.sha256(text.encode("utf-8")).digest()
    if not full_strength:
        return digest[:TRUNCATED_SIZE]
    return digest


def _secret_text(secret: Secret) -> str:
    # bool is an int subclass but never a meaningful secret
    if isinstance(secret, bool) or not isinstance(secret, (str, int)):
        raise TypeError(f"secret must be str or int, got {type(secret).__name__}")
    return str(secret)


def derive_key(secret: Secret, super_secure: bool = False) -> bytes:
    """Derive an AES key from a password-like string or integer.

    16 bytes (AES-128) by default, 32 bytes (AES-256) in super secure mode.
    """
    return derive_key_material(_secret_text(secret), super_secure)


def derive_iv(secret: Secret) -> bytes:
    """Derive a 16-byte IV. Always truncated, regardless of key strength."""
    return derive_key_material(_secret_text(secret), False)


class AesCbcCipher:
    """
    AES in CBC mode with PKCS7 padding.

    Notes
    - Key and IV lengths are checked on every encrypt/decrypt call rather
      than at construction, so a misconfigured serializer fails on use.
    - There is no authentication tag. Ciphertext produced under another
      key/IV can decrypt to garbage without an error when its final block
      happens to carry valid padding. Callers that need tamper detection
      must layer it themselves.
    """

    def __init__(self, key: bytes, iv: bytes) -> None:
        self._key = bytes(key)
        self._iv = bytes(iv)

    def _cipher(self) -> Cipher:
        if len(self._key) not in KEY_SIZES:
            raise ConfigurationError(
                f"AES key must be 16, 24 or 32 bytes, got {len(self._key)}"
            )
        if len(self._iv) != IV_SIZE:
            raise ConfigurationError(f"AES IV must be {IV_SIZE} bytes, got {len(self._iv)}")
        return Cipher(algorithms.AES(self._key), modes.CBC(self._iv))

    def encrypt(self, data: bytes) -> bytes:
        cipher = self._cipher()
        try:
            padder = padding.PKCS7(BLOCK_SIZE * 8).padder()
            padded = padder.update(data) + padder.finalize()
            encryptor = cipher.encryptor()
            return encryptor.update(padded) + encryptor.finalize()
        except (TypeError, ValueError) as ex:
            raise EncryptionError(f"AES encryption failed: {ex}") from ex

    def decrypt(self, data: bytes) -> bytes:
        cipher = self._cipher()
        if not data or len(data) % BLOCK_SIZE:
            raise DecryptionError(
                f"Ciphertext length {len(data)} is not a positive multiple of {BLOCK_SIZE}"
            )
        try:
            decryptor = cipher.decryptor()
            padded = decryptor.update(data) + decryptor.finalize()
            unpadder = padding.PKCS7(BLOCK_SIZE * 8).unpadder()
            return unpadder.update(padded) + unpadder.finalize()
        except ValueError as ex:
            raise DecryptionError("Failed to decrypt data: invalid padding") from ex


# -------- Convenience top-level helpers --------
def encrypt_bytes(data: bytes, key: bytes, iv: bytes) -> bytes:
    return AesCbcCipher(key, iv).encrypt(data)


def decrypt_bytes(data: bytes, key: bytes, iv: bytes) -> bytes:
    return AesCbcCipher(key, iv).decrypt(data)
