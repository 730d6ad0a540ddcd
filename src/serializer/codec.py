from __future__ import annotations

import dataclasses
import json
import types
import typing
from collections.abc import Mapping
from typing import Any, Callable, Dict, Optional, Union

from pydantic import BaseModel, TypeAdapter, ValidationError
from pydantic.errors import PydanticUserError

from common.errors import DecodingError, EncodingError

from .models import JsonOptions


_SCALARS = (str, int, float, bool, type(None))
_UNION_ORIGINS = (Union, types.UnionType)
_ANY_ADAPTER: TypeAdapter[Any] = TypeAdapter(Any)


def _public(name: str) -> bool:
    return not name.startswith("_")


# -------- Encoding --------
def _class_properties(cls: type) -> Dict[str, property]:
    """Public `property` descriptors in declaration order, base classes first."""
    props: Dict[str, property] = {}
    for klass in reversed(cls.__mro__):
        for name, attr in vars(klass).items():
            if isinstance(attr, property) and _public(name):
                props[name] = attr
    return props


def _model_members(model: BaseModel, options: JsonOptions) -> Dict[str, Any]:
    cls = type(model)
    out: Dict[str, Any] = {}
    for name, info in cls.model_fields.items():
        if options.ignore_read_only and info.frozen:
            continue
        out[info.serialization_alias or info.alias or name] = getattr(model, name)
    if not options.ignore_read_only:
        for name, cinfo in cls.model_computed_fields.items():
            out[cinfo.alias or name] = getattr(model, name)
    if options.include_fields and model.model_extra:
        for name, value in model.model_extra.items():
            out.setdefault(name, value)
    return out


def _dataclass_members(obj: Any, options: JsonOptions) -> Dict[str, Any]:
    out = {f.name: getattr(obj, f.name) for f in dataclasses.fields(obj)}
    if options.include_fields:
        for name, value in getattr(obj, "__dict__", {}).items():
            if _public(name):
                out.setdefault(name, value)
    return out


def _object_members(obj: Any, options: JsonOptions) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for name, prop in _class_properties(type(obj)).items():
        if options.ignore_read_only and prop.fset is None:
            continue
        out[name] = getattr(obj, name)
    if options.include_fields:
        for name, value in getattr(obj, "__dict__", {}).items():
            if _public(name):
                out.setdefault(name, value)
    return out


def _read_members(reader: Callable[..., Dict[str, Any]], value: Any, *args: Any) -> Dict[str, Any]:
    try:
        return reader(value, *args)
    except Exception as ex:
        # getters, computed fields and custom mappings can raise anything
        raise EncodingError(
            f"Reading members of {type(value).__name__} failed: {type(ex).__name__}: {ex}"
        ) from ex


def _to_data(value: Any, options: JsonOptions) -> Any:
    if isinstance(value, _SCALARS):
        return value
    if isinstance(value, BaseModel):
        members = _read_members(_model_members, value, options)
    elif dataclasses.is_dataclass(value) and not isinstance(value, type):
        members = _read_members(_dataclass_members, value, options)
    elif isinstance(value, Mapping):
        members = _read_members(dict, value)
    elif isinstance(value, (list, tuple, set, frozenset)):
        return [_to_data(item, options) for item in value]
    else:
        try:
            # datetime, UUID, Enum, Decimal, Path, bytes, ...
            return _ANY_ADAPTER.dump_python(value, mode="json")
        except ValueError:
            if not hasattr(value, "__dict__") and not _class_properties(type(value)):
                raise
        members = _read_members(_object_members, value, options)
    return {key: _to_data(item, options) for key, item in members.items()}


def encode(value: Any, options: Optional[JsonOptions] = None) -> bytes:
    """Encode `value` as UTF-8 JSON bytes.

    Compact separators by default, two-space indentation with pretty_print.
    Keys keep declaration order. NaN and infinities are rejected.
    """
    options = options or JsonOptions()
    try:
        data = _to_data(value, options)
        if options.pretty_print:
            text = json.dumps(data, ensure_ascii=False, allow_nan=False, indent=2)
        else:
            text = json.dumps(data, ensure_ascii=False, allow_nan=False, separators=(",", ":"))
        return text.encode("utf-8")
    except (TypeError, ValueError, RecursionError) as ex:
        raise EncodingError(
            f"Value of type {type(value).__name__} cannot be encoded as JSON: {ex}"
        ) from ex


# -------- Decoding --------
def _strip_annotated(tp: Any) -> Any:
    while typing.get_origin(tp) is typing.Annotated:
        tp = typing.get_args(tp)[0]
    return tp


def _schema_fields(target: Any) -> Dict[str, Any]:
    """Map of JSON key -> annotation for models and dataclasses, else empty."""
    if isinstance(target, type) and issubclass(target, BaseModel):
        fields: Dict[str, Any] = {}
        for name, info in target.model_fields.items():
            alias = info.validation_alias if isinstance(info.validation_alias, str) else None
            fields[alias or info.alias or name] = info.annotation
        return fields
    if isinstance(target, type) and dataclasses.is_dataclass(target):
        try:
            hints = typing.get_type_hints(target)
        except NameError:
            hints = {}
        return {f.name: hints.get(f.name, Any) for f in dataclasses.fields(target)}
    return {}


def _fold_object(data: Dict[str, Any], fields: Dict[str, Any]) -> Dict[str, Any]:
    lookup = {key.lower(): key for key in fields}
    out: Dict[str, Any] = {key: value for key, value in data.items() if key in fields}
    for key, value in data.items():
        if key in fields:
            continue
        canonical = lookup.get(key.lower(), key) if isinstance(key, str) else key
        # exact matches win over case variants
        if canonical not in out:
            out[canonical] = value
    return {
        key: _fold_keys(value, fields[key]) if key in fields else value
        for key, value in out.items()
    }


def _fold_keys(data: Any, target: Any) -> Any:
    """Rename JSON object keys to the target schema's field names, ignoring case."""
    target = _strip_annotated(target)
    origin = typing.get_origin(target)
    args = typing.get_args(target)

    if origin in _UNION_ORIGINS:
        for arg in args:
            if arg is not type(None):
                data = _fold_keys(data, arg)
        return data

    if isinstance(data, list):
        if origin is tuple and args and not (len(args) == 2 and args[1] is Ellipsis):
            return [
                _fold_keys(item, args[i]) if i < len(args) else item
                for i, item in enumerate(data)
            ]
        if origin is not None and args:
            return [_fold_keys(item, args[0]) for item in data]
        return data

    if isinstance(data, dict):
        if isinstance(origin, type) and issubclass(origin, Mapping):
            if len(args) == 2:
                return {key: _fold_keys(value, args[1]) for key, value in data.items()}
            return data
        fields = _schema_fields(target)
        if fields:
            return _fold_object(data, fields)
    return data


def decode(data: bytes, target: Any = Any, options: Optional[JsonOptions] = None) -> Any:
    """Parse UTF-8 JSON bytes and validate them into `target` with pydantic.

    `target=Any` returns plain JSON data (dicts, lists, scalars). Unknown keys
    follow the target model's `extra` policy (ignored by default); missing
    required fields raise DecodingError.
    """
    options = options or JsonOptions()
    try:
        raw = json.loads(data)
    except (ValueError, RecursionError) as ex:
        raise DecodingError(f"Invalid JSON: {ex}") from ex

    if options.case_insensitive:
        raw = _fold_keys(raw, target)

    try:
        adapter: TypeAdapter[Any] = TypeAdapter(target)
        return adapter.validate_python(raw)
    except ValidationError as ex:
        raise DecodingError(f"JSON does not match {target!r}: {ex}") from ex
    except (TypeError, PydanticUserError) as ex:
        # pydantic cannot build a schema for the target
        raise DecodingError(f"Cannot decode into {target!r}: {ex}") from ex
