"""In-memory dynamic message implementing the reflection capability."""
from __future__ import annotations

import base64
import math
from typing import Any, Iterator, Mapping, Protocol, runtime_checkable

from ..errors import RecursionDepthError
from ..settings import settings
from .descriptor import (
    FLOAT_KINDS,
    INTEGER_KINDS,
    INTEGER_RANGES,
    MESSAGE_KINDS,
    Cardinality,
    FieldDescriptor,
    Kind,
    MessageDescriptor,
    to_float32,
)


@runtime_checkable
class ProtoMessage(Protocol):
    """What the encoder needs from a message value."""

    @property
    def descriptor(self) -> MessageDescriptor: ...

    def has(self, field: FieldDescriptor) -> bool: ...

    def get(self, field: FieldDescriptor) -> Any: ...

    def list_fields(self) -> Iterator[tuple[FieldDescriptor, Any]]: ...

    def is_initialized(self) -> bool: ...

    def find_initialization_errors(self) -> list[str]: ...


def _is_populated_scalar(value: Any) -> bool:
    if isinstance(value, float):
        # -0.0 is distinct from the zero value.
        return value != 0 or math.copysign(1.0, value) < 0
    return bool(value)


def check_value(fd: FieldDescriptor, value: Any) -> Any:
    """Validate a singular value for ``fd`` and return its stored form."""
    kind = fd.kind
    if kind is Kind.BOOL:
        if not isinstance(value, bool):
            raise TypeError(f"{fd.full_name}: expected bool, got {type(value).__name__}")
        return value
    if kind is Kind.STRING:
        if not isinstance(value, str):
            raise TypeError(f"{fd.full_name}: expected str, got {type(value).__name__}")
        return value
    if kind is Kind.BYTES:
        if not isinstance(value, (bytes, bytearray, memoryview)):
            raise TypeError(f"{fd.full_name}: expected bytes, got {type(value).__name__}")
        return bytes(value)
    if kind in FLOAT_KINDS:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TypeError(f"{fd.full_name}: expected float, got {type(value).__name__}")
        if kind is Kind.FLOAT:
            return to_float32(float(value))
        return float(value)
    if kind in INTEGER_KINDS or kind is Kind.ENUM:
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"{fd.full_name}: expected int, got {type(value).__name__}")
        lo, hi = INTEGER_RANGES.get(kind, INTEGER_RANGES[Kind.INT32])
        if not lo <= value <= hi:
            raise ValueError(f"{fd.full_name}: value {value} out of range for {kind.name}")
        return value
    if kind in MESSAGE_KINDS:
        if not isinstance(value, ProtoMessage):
            raise TypeError(f"{fd.full_name}: expected message, got {type(value).__name__}")
        if value.descriptor.full_name != fd.message.full_name:
            raise TypeError(
                f"{fd.full_name}: expected {fd.message.full_name}, got {value.descriptor.full_name}"
            )
        return value
    raise TypeError(f"{fd.full_name}: unsupported kind {kind!r}")


class Message:
    """A message whose shape is given entirely by its descriptor.

    Fields can be addressed by descriptor or by proto name. Extensions are
    kept apart from declared fields and keyed by their full name.
    """

    def __init__(self, descriptor: MessageDescriptor, **values: Any):
        self._descriptor = descriptor
        self._fields: dict[int, Any] = {}
        self._extensions: dict[str, tuple[FieldDescriptor, Any]] = {}
        for name, value in values.items():
            self.set(name, value)

    @property
    def descriptor(self) -> MessageDescriptor:
        return self._descriptor

    def _field(self, field: FieldDescriptor | str) -> FieldDescriptor:
        if isinstance(field, FieldDescriptor):
            if field.is_extension:
                return field
            fd = self._descriptor.fields_by_number.get(field.number)
            if fd is not field:
                raise KeyError(f"{field.full_name} is not a field of {self._descriptor.full_name}")
            return fd
        fd = self._descriptor.fields_by_name.get(field)
        if fd is None:
            raise KeyError(f"{self._descriptor.full_name} has no field named {field!r}")
        return fd

    def _check_extension(self, fd: FieldDescriptor) -> None:
        if fd.extendee is None or fd.extendee.full_name != self._descriptor.full_name:
            raise KeyError(f"{fd.full_name} does not extend {self._descriptor.full_name}")

    def _stored(self, fd: FieldDescriptor) -> tuple[bool, Any]:
        if fd.is_extension:
            entry = self._extensions.get(fd.full_name)
            return (entry is not None, entry[1] if entry else None)
        if fd.number in self._fields:
            return True, self._fields[fd.number]
        return False, None

    def has(self, field: FieldDescriptor | str) -> bool:
        fd = self._field(field)
        if fd.is_extension:
            self._check_extension(fd)
        stored, value = self._stored(fd)
        if not stored:
            return False
        if fd.cardinality is Cardinality.REPEATED:
            return len(value) > 0
        if fd.has_presence:
            return True
        return _is_populated_scalar(value)

    def get(self, field: FieldDescriptor | str) -> Any:
        fd = self._field(field)
        if fd.is_extension:
            self._check_extension(fd)
        stored, value = self._stored(fd)
        if stored:
            return value
        if fd.is_map:
            return {}
        if fd.cardinality is Cardinality.REPEATED:
            return []
        return fd.default_value

    def set(self, field: FieldDescriptor | str, value: Any) -> None:
        fd = self._field(field)
        if fd.is_extension:
            self._check_extension(fd)
        if value is None:
            self.clear(fd)
            return
        if fd.is_map:
            if not isinstance(value, Mapping):
                raise TypeError(f"{fd.full_name}: expected a mapping, got {type(value).__name__}")
            key_fd, value_fd = fd.map_key, fd.map_value
            stored: Any = {check_value(key_fd, k): check_value(value_fd, v) for k, v in value.items()}
        elif fd.cardinality is Cardinality.REPEATED:
            if isinstance(value, (str, bytes, Mapping)) or not hasattr(value, "__iter__"):
                raise TypeError(f"{fd.full_name}: expected a sequence, got {type(value).__name__}")
            stored = [check_value(fd, v) for v in value]
        else:
            stored = check_value(fd, value)
        if fd.is_extension:
            self._extensions[fd.full_name] = (fd, stored)
            return
        if fd.containing_oneof is not None:
            for sibling in fd.containing_oneof.fields:
                self._fields.pop(sibling.number, None)
        self._fields[fd.number] = stored

    def clear(self, field: FieldDescriptor | str) -> None:
        fd = self._field(field)
        if fd.is_extension:
            self._extensions.pop(fd.full_name, None)
        else:
            self._fields.pop(fd.number, None)

    def which_oneof(self, name: str) -> FieldDescriptor | None:
        oneof = self._descriptor.oneofs[name]
        for fd in oneof.fields:
            if fd.number in self._fields:
                return fd
        return None

    def set_extension(self, fd: FieldDescriptor, value: Any) -> None:
        if not fd.is_extension:
            raise KeyError(f"{fd.full_name} is not an extension")
        self.set(fd, value)

    def list_fields(self) -> Iterator[tuple[FieldDescriptor, Any]]:
        """Yield populated fields, declared ones first, then extensions."""
        for number, value in self._fields.items():
            fd = self._descriptor.fields_by_number[number]
            if self.has(fd):
                yield fd, value
        for fd, value in self._extensions.values():
            if self.has(fd):
                yield fd, value

    def is_initialized(self) -> bool:
        return not self.find_initialization_errors()

    def find_initialization_errors(self) -> list[str]:
        """Return the paths of all unset required fields, recursively."""
        errors: list[str] = []
        self._collect_missing("", errors, 1)
        return errors

    def _collect_missing(self, prefix: str, errors: list[str], depth: int) -> None:
        if depth > settings.protojson_max_depth:
            raise RecursionDepthError(settings.protojson_max_depth)
        for fd in self._descriptor.fields:
            if fd.cardinality is Cardinality.REQUIRED and not self.has(fd):
                errors.append(prefix + fd.name)
        for fd, value in self.list_fields():
            name = f"({fd.full_name})" if fd.is_extension else fd.name
            if fd.is_map:
                if fd.map_value.kind in MESSAGE_KINDS:
                    for key, sub in value.items():
                        _collect(sub, f"{prefix}{name}[{key}].", errors, depth + 1)
            elif fd.kind in MESSAGE_KINDS:
                if fd.cardinality is Cardinality.REPEATED:
                    for i, sub in enumerate(value):
                        _collect(sub, f"{prefix}{name}[{i}].", errors, depth + 1)
                else:
                    _collect(value, f"{prefix}{name}.", errors, depth + 1)

    @classmethod
    def from_dict(
        cls,
        descriptor: MessageDescriptor,
        data: Mapping[str, Any],
        resolver: Any = None,
    ) -> Message:
        """Build a message from plain Python data.

        Keys are proto or JSON field names, or ``[full.name]`` for
        extensions (looked up through ``resolver``). Enum names, base64
        text for bytes and decimal strings for integers are accepted.
        """
        msg = cls(descriptor)
        for key, raw in data.items():
            if key.startswith("[") and key.endswith("]"):
                if resolver is None:
                    raise KeyError(f"cannot resolve extension {key} without a resolver")
                fd = resolver.find_extension_by_name(key[1:-1])
                if fd is None:
                    raise KeyError(f"unknown extension {key}")
            else:
                fd = descriptor.fields_by_name.get(key) or descriptor.fields_by_json_name.get(key)
                if fd is None:
                    raise KeyError(f"{descriptor.full_name} has no field named {key!r}")
            if raw is None:
                continue
            if fd.is_map:
                key_fd, value_fd = fd.map_key, fd.map_value
                value = {
                    _coerce_key(key_fd, k): _coerce(value_fd, v, resolver) for k, v in raw.items()
                }
            elif fd.cardinality is Cardinality.REPEATED:
                value = [_coerce(fd, v, resolver) for v in raw]
            else:
                value = _coerce(fd, raw, resolver)
            msg.set(fd, value)
        return msg

    def __repr__(self) -> str:
        populated = ", ".join(f"{fd.name}={value!r}" for fd, value in self.list_fields())
        return f"{self._descriptor.name}({populated})"


def _collect(sub: Any, prefix: str, errors: list[str], depth: int) -> None:
    if isinstance(sub, Message):
        sub._collect_missing(prefix, errors, depth)
    else:
        errors.extend(prefix + path for path in sub.find_initialization_errors())


def _coerce_key(fd: FieldDescriptor, key: Any) -> Any:
    if isinstance(key, str):
        if fd.kind is Kind.BOOL:
            if key not in ("true", "false"):
                raise ValueError(f"invalid bool map key {key!r}")
            return key == "true"
        if fd.kind in INTEGER_KINDS:
            return int(key)
    return key


def _coerce(fd: FieldDescriptor, raw: Any, resolver: Any) -> Any:
    kind = fd.kind
    if kind in MESSAGE_KINDS:
        if isinstance(raw, Mapping):
            return Message.from_dict(fd.message, raw, resolver)
        return raw
    if kind is Kind.ENUM and isinstance(raw, str):
        value = fd.enum.by_name(raw)
        if value is None:
            raise ValueError(f"{fd.full_name}: unknown enum value {raw!r} for {fd.enum.full_name}")
        return value.number
    if kind is Kind.BYTES and isinstance(raw, str):
        return base64.b64decode(raw, validate=True)
    if kind in INTEGER_KINDS and isinstance(raw, str):
        return int(raw)
    if kind in FLOAT_KINDS and isinstance(raw, str):
        return float(raw)
    return raw


__all__ = ["Message", "ProtoMessage", "check_value"]
