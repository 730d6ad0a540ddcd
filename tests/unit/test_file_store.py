from __future__ import annotations

import json
import logging
from typing import List

import pytest
from pydantic import BaseModel

from common import hostos
from common.crypto import decrypt_bytes, derive_iv, derive_key
from common.errors import (
    ConfigurationError,
    DecodingError,
    DecryptionError,
    EncodingError,
    StorageError,
)
from common.hostos import HostOS
from serializer import EazySerializer, JsonOptions, SerializerConfig, load_from_file, save_to_file


class Thing(BaseModel):
    number: int
    tags: List[str]


class Gadget:
    def __init__(self, name: str) -> None:
        self.name = name


THING = Thing(number=423, tags=["Thing", "Other Thing"])

CONFIGS = {
    "plain": SerializerConfig.plain(),
    "plain-pretty": SerializerConfig.plain(pretty_print=True),
    "encrypted": SerializerConfig.from_secrets("secret", "vector", super_secure=True),
    "encrypted-pretty": SerializerConfig.from_secrets("secret", "vector", pretty_print=True),
}


@pytest.fixture
def data_path(tmp_path):
    return tmp_path / "data" / "thing.json"


@pytest.mark.parametrize("name", sorted(CONFIGS))
def test_write_and_read_roundtrip(name, data_path):
    ser = EazySerializer(CONFIGS[name])

    assert ser.write(THING, data_path)
    result = ser.read(data_path, Thing)
    assert result.ok
    assert result.error is None
    assert result.value == THING


def test_pretty_plain_file_contents(data_path):
    ser = EazySerializer(SerializerConfig.plain(pretty_print=True))

    assert ser.write(THING, data_path)
    assert data_path.read_text(encoding="utf-8") == (
        '{\n  "number": 423,\n  "tags": [\n    "Thing",\n    "Other Thing"\n  ]\n}'
    )
    assert ser.read(data_path).value == {"number": 423, "tags": ["Thing", "Other Thing"]}


def test_encrypted_file_is_not_json(data_path):
    ser = EazySerializer(SerializerConfig.from_secrets("secret", "vector", super_secure=True))
    assert ser.write(THING, data_path)

    raw = data_path.read_bytes()
    assert len(raw) % 16 == 0
    with pytest.raises(ValueError):
        json.loads(raw)

    plaintext = decrypt_bytes(raw, derive_key("secret", super_secure=True), derive_iv("vector"))
    assert Thing.model_validate_json(plaintext) == THING


def test_read_with_wrong_key_fails(data_path):
    EazySerializer(SerializerConfig.from_secrets("secret", "vector", super_secure=True)).write(THING, data_path)

    wrong = EazySerializer(SerializerConfig.from_secrets("wrong", "vector", super_secure=True))
    result = wrong.read(data_path, Thing)
    assert not result
    assert isinstance(result.error, (DecryptionError, DecodingError))
    assert result.value is None


def test_plain_reader_cannot_parse_encrypted_file(data_path):
    EazySerializer(SerializerConfig.from_secrets("secret", "vector")).write(THING, data_path)

    result = EazySerializer().read(data_path, Thing)
    assert isinstance(result.error, DecodingError)


def test_read_missing_file_returns_default(tmp_path):
    ser = EazySerializer()
    fallback = Thing(number=0, tags=[])

    result = ser.read(tmp_path / "missing.json", Thing, default=fallback)
    assert not result.ok
    assert isinstance(result.error, StorageError)
    assert isinstance(result.error.__cause__, FileNotFoundError)
    assert result.value is fallback
    assert ser.log[-1].message.startswith("An error occurred while deserializing data from")
    assert ser.log[-1].error is result.error


def test_unwrap_raises_the_recorded_error(tmp_path):
    result = EazySerializer().read(tmp_path / "missing.json")
    with pytest.raises(StorageError):
        result.unwrap()


def test_shape_mismatch_is_a_decoding_failure(data_path):
    ser = EazySerializer()
    ser.write({"tags": ["only"]}, data_path)

    result = ser.read(data_path, Thing)
    assert isinstance(result.error, DecodingError)


def test_log_accumulates_in_order(data_path):
    ser = EazySerializer(SerializerConfig.from_secrets("secret", "vector"))

    ser.write(THING, data_path)
    ser.read(data_path, Thing)

    messages = [entry.message for entry in ser.log]
    assert messages == [
        f"Created missing directories: {data_path.parent}",
        f"Data successfully encrypted and serialized to {data_path}",
        f"Data successfully decrypted and deserialized from {data_path}",
    ]
    assert all(entry.error is None for entry in ser.log)


def test_log_is_read_only_snapshot(data_path):
    ser = EazySerializer()
    snapshot = ser.log
    ser.write(THING, data_path)

    assert snapshot == ()
    assert isinstance(ser.log, tuple)
    assert len(ser.log) == 2


def test_log_entries_are_mirrored_to_logger(caplog, data_path):
    caplog.set_level(logging.INFO, logger="serializer.file_store")
    ser = EazySerializer()

    ser.write(THING, data_path)
    ser.read(data_path.with_name("nope.json"))

    assert f"Data successfully serialized to {data_path}" in caplog.messages
    warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
    assert len(warnings) == 1
    assert warnings[0].exc_info is not None


def test_write_into_directory_path_fails(tmp_path):
    ser = EazySerializer()

    result = ser.write(THING, tmp_path)
    assert not result
    assert isinstance(result.error, StorageError)
    assert ser.log[-1].message == f"An error occurred while serializing data to {tmp_path}"


def test_directory_creation_failure_is_logged_and_write_still_attempted(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    target = blocker / "sub" / "thing.json"
    ser = EazySerializer()

    result = ser.write(THING, target)
    assert not result
    assert [entry.message for entry in ser.log] == [
        f"An error occurred while ensuring directory existence for {target}",
        f"An error occurred while serializing data to {target}",
    ]
    assert all(isinstance(entry.error, StorageError) for entry in ser.log)


def test_encoding_failure_leaves_existing_file_untouched(data_path):
    ser = EazySerializer()
    ser.write(THING, data_path)
    before = data_path.read_bytes()

    result = ser.write({"x": float("nan")}, data_path)
    assert isinstance(result.error, EncodingError)
    assert data_path.read_bytes() == before


class Meter:
    def __init__(self, reading: float) -> None:
        self.reading = reading

    @property
    def unit(self) -> str:
        raise KeyError("unit")


def test_failing_getter_fails_the_write(data_path):
    ser = EazySerializer()

    result = ser.write(Meter(1.5), data_path)
    assert not result
    assert isinstance(result.error, EncodingError)
    assert ser.log[-1].message == f"An error occurred while serializing data to {data_path}"
    assert ser.log[-1].error is result.error
    assert not data_path.exists()


def test_read_into_plain_class_fails_without_raising(data_path):
    ser = EazySerializer(SerializerConfig.plain(include_fields=True))
    assert ser.write(Gadget("t1"), data_path)

    result = ser.read(data_path, Gadget)
    assert not result
    assert isinstance(result.error, DecodingError)
    assert result.value is None
    assert ser.log[-1].message == f"An error occurred while deserializing data from {data_path}"


def test_deeply_nested_file_fails_without_raising(data_path):
    data_path.parent.mkdir(parents=True)
    data_path.write_bytes(b"[" * 100_000 + b"]" * 100_000)
    ser = EazySerializer()

    result = ser.read(data_path, default=[])
    assert isinstance(result.error, DecodingError)
    assert result.value == []


def test_bad_key_length_surfaces_on_write(data_path):
    ser = EazySerializer(SerializerConfig.encrypted(b"short", b"\0" * 16))

    result = ser.write(THING, data_path)
    assert isinstance(result.error, ConfigurationError)
    assert not data_path.exists()


def test_per_call_options_override_config(data_path):
    ser = EazySerializer()

    ser.write(THING, data_path, JsonOptions(pretty_print=True))
    assert "\n" in data_path.read_text(encoding="utf-8")

    ser.write(THING, data_path)
    assert "\n" not in data_path.read_text(encoding="utf-8")


def test_case_insensitive_config_applies_on_read(data_path):
    data_path.parent.mkdir(parents=True)
    data_path.write_text('{"Number":5,"TAGS":["a"]}', encoding="utf-8")

    assert not EazySerializer().read(data_path, Thing)
    ser = EazySerializer(SerializerConfig.plain(case_insensitive=True))
    assert ser.read(data_path, Thing).value == Thing(number=5, tags=["a"])


def test_file_exists_resolves_against_user_data_root(monkeypatch, tmp_path):
    monkeypatch.setattr(hostos, "user_data_dir", lambda **_: str(tmp_path))
    ser = EazySerializer()

    assert ser.get_writable_absolute_path("saves/a.json") == tmp_path / "saves" / "a.json"
    assert ser.write(THING, ser.get_writable_absolute_path("saves/a.json"))
    assert ser.file_exists("saves/a.json")
    assert not ser.file_exists("saves/none.json")
    assert not ser.file_exists("saves")


def test_os_helpers_delegate_to_hostos(monkeypatch):
    ser = EazySerializer()
    assert ser.get_operating_system() is hostos.classify_host_os()
    assert ser.is_desktop_os() is hostos.is_desktop_os()

    monkeypatch.setattr(hostos, "classify_host_os", lambda platform=None: HostOS.OTHER)
    assert ser.get_operating_system() is HostOS.OTHER
    assert ser.is_desktop_os() is False


def test_module_helpers_roundtrip(data_path):
    config = SerializerConfig.from_secrets(1234, 5678)

    assert save_to_file(THING, data_path, config=config)
    assert load_from_file(data_path, Thing, config=config).value == THING
    assert not load_from_file(data_path, Thing)


# -------- Configuration --------
ENV_NAMES = (
    "EAZY_AES_KEY",
    "EAZY_AES_IV",
    "EAZY_SUPER_SECURE",
    "EAZY_PRETTY_PRINT",
    "EAZY_INCLUDE_FIELDS",
    "EAZY_CASE_INSENSITIVE",
    "EAZY_IGNORE_READ_ONLY",
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_from_env_without_secrets_is_plain(clean_env):
    config = SerializerConfig.from_env()
    assert not config.use_encryption
    assert config.aes_key == b""
    assert config.json_options == JsonOptions()


def test_from_env_missing_iv_raises(clean_env):
    clean_env.setenv("EAZY_AES_KEY", "secret")
    with pytest.raises(RuntimeError, match="EAZY_AES_IV"):
        SerializerConfig.from_env()


def test_from_env_derives_key_and_flags(clean_env):
    clean_env.setenv("EAZY_AES_KEY", "secret")
    clean_env.setenv("EAZY_AES_IV", "vector")
    clean_env.setenv("EAZY_SUPER_SECURE", "Yes")
    clean_env.setenv("EAZY_PRETTY_PRINT", "1")
    clean_env.setenv("EAZY_CASE_INSENSITIVE", "off")

    ser = EazySerializer.from_env()
    assert ser.config.use_encryption
    assert ser.config.aes_key == derive_key("secret", super_secure=True)
    assert ser.config.aes_iv == derive_iv("vector")
    assert ser.config.json_options == JsonOptions(pretty_print=True)


def test_config_is_immutable():
    config = SerializerConfig.plain()
    with pytest.raises(ValueError):
        config.use_encryption = True  # type: ignore[misc]
