from __future__ import annotations


class SerializerError(Exception):
    """Base error for the serialization pipeline."""


class ConfigurationError(SerializerError):
    """AES key or IV does not have a length the cipher accepts."""


class EncryptionError(SerializerError):
    """The cipher failed to encrypt the payload."""


class DecryptionError(SerializerError):
    """Ciphertext has a bad length, bad padding, or was made with another key/IV."""


class StorageError(SerializerError):
    """Filesystem failure: missing file, permissions, directory creation."""


class EncodingError(SerializerError):
    """Value cannot be represented as JSON."""


class DecodingError(SerializerError):
    """Bytes are not valid JSON or do not match the target shape."""
