from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Generic, NamedTuple, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from common.crypto import Secret, derive_iv, derive_key
from common.errors import SerializerError


# Environment variable names for convenience configuration
ENV_AES_KEY = "EAZY_AES_KEY"
ENV_AES_IV = "EAZY_AES_IV"
ENV_SUPER_SECURE = "EAZY_SUPER_SECURE"
ENV_PRETTY_PRINT = "EAZY_PRETTY_PRINT"
ENV_INCLUDE_FIELDS = "EAZY_INCLUDE_FIELDS"
ENV_CASE_INSENSITIVE = "EAZY_CASE_INSENSITIVE"
ENV_IGNORE_READ_ONLY = "EAZY_IGNORE_READ_ONLY"

_TRUTHY = {"1", "true", "yes", "on"}

T = TypeVar("T")


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in _TRUTHY


class JsonOptions(BaseModel):
    """
    JSON formatting and mapping switches.

    Fields
    - pretty_print: indent output by two spaces instead of compact separators.
    - include_fields: also write non-property fields (pydantic extras,
      undeclared instance attributes).
    - case_insensitive: match incoming JSON keys to field names ignoring case.
    - ignore_read_only: skip read-only members (computed fields, frozen
      fields, properties without a setter) when writing.
    """

    model_config = ConfigDict(frozen=True)

    pretty_print: bool = False
    include_fields: bool = False
    case_insensitive: bool = False
    ignore_read_only: bool = False


class SerializerConfig(BaseModel):
    """
    Immutable serializer configuration.

    Key and IV lengths are deliberately not validated here; a wrong length is
    reported as a ConfigurationError when the cipher is first used.
    """

    model_config = ConfigDict(frozen=True)

    use_encryption: bool = False
    aes_key: bytes = b""
    aes_iv: bytes = b""
    json_options: JsonOptions = Field(default_factory=JsonOptions)

    # -------- Construction helpers --------
    @classmethod
    def plain(cls, **json_options: bool) -> "SerializerConfig":
        return cls(json_options=JsonOptions(**json_options))

    @classmethod
    def encrypted(cls, aes_key: bytes, aes_iv: bytes, **json_options: bool) -> "SerializerConfig":
        return cls(
            use_encryption=True,
            aes_key=aes_key,
            aes_iv=aes_iv,
            json_options=JsonOptions(**json_options),
        )

    @classmethod
    def from_secrets(
        cls, key: Secret, iv: Secret, *, super_secure: bool = False, **json_options: bool
    ) -> "SerializerConfig":
        """Encrypted config with key and IV derived from password-like values."""
        return cls.encrypted(derive_key(key, super_secure), derive_iv(iv), **json_options)

    @classmethod
    def from_env(cls) -> "SerializerConfig":
        json_options = dict(
            pretty_print=_env_flag(ENV_PRETTY_PRINT),
            include_fields=_env_flag(ENV_INCLUDE_FIELDS),
            case_insensitive=_env_flag(ENV_CASE_INSENSITIVE),
            ignore_read_only=_env_flag(ENV_IGNORE_READ_ONLY),
        )
        key = os.environ.get(ENV_AES_KEY)
        iv = os.environ.get(ENV_AES_IV)
        if not key and not iv:
            return cls.plain(**json_options)
        if not key or not iv:
            missing = [name for name, val in [(ENV_AES_KEY, key), (ENV_AES_IV, iv)] if not val]
            raise RuntimeError(
                f"Missing required environment variables for encryption: {', '.join(missing)}"
            )
        return cls.from_secrets(key, iv, super_secure=_env_flag(ENV_SUPER_SECURE), **json_options)


class LogEntry(NamedTuple):
    message: str
    error: Optional[Exception] = None


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of a read or write: either a value or the error that stopped it."""

    ok: bool
    value: Optional[T] = None
    error: Optional[SerializerError] = None

    def __bool__(self) -> bool:
        return self.ok

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]

    @classmethod
    def success(cls, value: Optional[T] = None) -> "Result[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: SerializerError, default: Optional[T] = None) -> "Result[T]":
        return cls(ok=False, value=default, error=error)
