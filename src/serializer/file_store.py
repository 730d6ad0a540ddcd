from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, List, Optional, Tuple, Type, TypeVar, Union

from common import hostos
from common.crypto import AesCbcCipher
from common.errors import SerializerError, StorageError

from . import codec
from .models import JsonOptions, LogEntry, Result, SerializerConfig


logger = logging.getLogger(__name__)

T = TypeVar("T")
PathLike = Union[str, os.PathLike]


class EazySerializer:
    """
    Writes values to files as JSON, optionally AES-CBC encrypted, and reads them back.

    Usage
    - Build a `SerializerConfig` (plain, encrypted with raw key/IV bytes, derived
      from secrets via `common.crypto`, or from the environment).
    - `write(value, path)` returns a `Result`; falsy on failure.
    - `read(path, target)` returns a `Result` whose `value` is the decoded object,
      or `default` when anything failed.
    - Every operation appends a `LogEntry` to `log`; failures carry the error.

    Notes
    - Single owner, single thread: the log is a plain list with no locking.
      Run separate instances from separate threads if needed.
    - Files carry no header. A reader must be configured the same way as the
      writer (encryption on/off, same key and IV).
    - Writes are not atomic; a failure while writing can leave a partial file.
    """

    def __init__(self, config: Optional[SerializerConfig] = None) -> None:
        self._config = config or SerializerConfig()
        self._cipher = AesCbcCipher(self._config.aes_key, self._config.aes_iv)
        self._log: List[LogEntry] = []

    @classmethod
    def from_env(cls) -> "EazySerializer":
        return cls(SerializerConfig.from_env())

    @property
    def config(self) -> SerializerConfig:
        return self._config

    @property
    def log(self) -> Tuple[LogEntry, ...]:
        return tuple(self._log)

    def _record(self, message: str, error: Optional[Exception] = None) -> None:
        self._log.append(LogEntry(message, error))
        if error is None:
            logger.info(message)
        else:
            logger.warning("%s: %s", message, error, exc_info=error)

    def _options(self, options: Optional[JsonOptions]) -> JsonOptions:
        return options if options is not None else self._config.json_options

    # -------- Core operations --------
    def write(self, value: Any, path: PathLike, options: Optional[JsonOptions] = None) -> Result[None]:
        """Encode, optionally encrypt, and write `value` to `path`.

        A failure to create missing parent directories is logged on its own and
        the write is still attempted; the write then fails with StorageError.
        """
        self.ensure_directory_exists(path)
        try:
            payload = codec.encode(value, self._options(options))
            if self._config.use_encryption:
                payload = self._cipher.encrypt(payload)
            try:
                with open(path, "wb") as fh:
                    fh.write(payload)
            except OSError as ex:
                raise StorageError(f"Failed to write {path}: {ex}") from ex
        except SerializerError as ex:
            self._record(f"An error occurred while serializing data to {path}", ex)
            return Result.failure(ex)

        if self._config.use_encryption:
            self._record(f"Data successfully encrypted and serialized to {path}")
        else:
            self._record(f"Data successfully serialized to {path}")
        return Result.success()

    def read(
        self,
        path: PathLike,
        target: Union[Type[T], Any] = Any,
        options: Optional[JsonOptions] = None,
        default: Optional[T] = None,
    ) -> Result[T]:
        """Read `path`, optionally decrypt, and decode into `target`.

        On failure the Result carries the error and `default` as its value.
        """
        try:
            try:
                with open(path, "rb") as fh:
                    payload = fh.read()
            except OSError as ex:
                raise StorageError(f"Failed to read {path}: {ex}") from ex
            if self._config.use_encryption:
                payload = self._cipher.decrypt(payload)
            value = codec.decode(payload, target, self._options(options))
        except SerializerError as ex:
            self._record(f"An error occurred while deserializing data from {path}", ex)
            return Result.failure(ex, default)

        if self._config.use_encryption:
            self._record(f"Data successfully decrypted and deserialized from {path}")
        else:
            self._record(f"Data successfully deserialized from {path}")
        return Result.success(value)

    # -------- File and directory utilities --------
    def file_exists(self, path: PathLike) -> bool:
        """Check for a file at `path`, resolved against the per-user data directory."""
        return self.get_writable_absolute_path(path).is_file()

    def ensure_directory_exists(self, path: PathLike) -> None:
        """Create any missing parent directories of `path`. Failures are logged, not raised."""
        parent = Path(path).parent
        if parent == Path("") or parent.is_dir():
            return
        try:
            parent.mkdir(parents=True, exist_ok=True)
        except OSError as ex:
            err = StorageError(f"Failed to create {parent}: {ex}")
            err.__cause__ = ex
            self._record(f"An error occurred while ensuring directory existence for {path}", err)
            return
        self._record(f"Created missing directories: {parent}")

    def get_writable_absolute_path(self, path: PathLike = "", use_current: bool = False) -> Path:
        return hostos.get_writable_absolute_path(path, use_current)

    def get_operating_system(self) -> hostos.HostOS:
        return hostos.classify_host_os()

    def is_desktop_os(self) -> bool:
        return hostos.is_desktop_os()


# -------- Convenience top-level helpers --------
def save_to_file(value: Any, path: PathLike, *, config: Optional[SerializerConfig] = None) -> Result[None]:
    return EazySerializer(config).write(value, path)


def load_from_file(
    path: PathLike,
    target: Union[Type[T], Any] = Any,
    *,
    config: Optional[SerializerConfig] = None,
    default: Optional[T] = None,
) -> Result[T]:
    return EazySerializer(config).read(path, target, default=default)
