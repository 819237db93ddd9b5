"""Schema descriptors: kinds, cardinalities, fields, enums and messages.

Descriptors are built once and then only read. Message descriptors may be
self-referencing, so fields are attached after construction with
``MessageDescriptor.add_field``.
"""
from __future__ import annotations

import enum
import math
import struct
from typing import Any, Iterable


class Kind(enum.IntEnum):
    DOUBLE = 1
    FLOAT = 2
    INT64 = 3
    UINT64 = 4
    INT32 = 5
    FIXED64 = 6
    FIXED32 = 7
    BOOL = 8
    STRING = 9
    GROUP = 10
    MESSAGE = 11
    BYTES = 12
    UINT32 = 13
    ENUM = 14
    SFIXED32 = 15
    SFIXED64 = 16
    SINT32 = 17
    SINT64 = 18


class Cardinality(enum.IntEnum):
    OPTIONAL = 1
    REQUIRED = 2
    REPEATED = 3


class Syntax(str, enum.Enum):
    PROTO2 = "proto2"
    PROTO3 = "proto3"


SIGNED_32 = frozenset({Kind.INT32, Kind.SINT32, Kind.SFIXED32})
UNSIGNED_32 = frozenset({Kind.UINT32, Kind.FIXED32})
SIGNED_64 = frozenset({Kind.INT64, Kind.SINT64, Kind.SFIXED64})
UNSIGNED_64 = frozenset({Kind.UINT64, Kind.FIXED64})
INTEGER_KINDS = SIGNED_32 | UNSIGNED_32 | SIGNED_64 | UNSIGNED_64
FLOAT_KINDS = frozenset({Kind.FLOAT, Kind.DOUBLE})
MESSAGE_KINDS = frozenset({Kind.MESSAGE, Kind.GROUP})
# Kinds allowed as map keys
MAP_KEY_KINDS = INTEGER_KINDS | {Kind.BOOL, Kind.STRING}

INTEGER_RANGES = {
    **{k: (-(2**31), 2**31 - 1) for k in SIGNED_32},
    **{k: (0, 2**32 - 1) for k in UNSIGNED_32},
    **{k: (-(2**63), 2**63 - 1) for k in SIGNED_64},
    **{k: (0, 2**64 - 1) for k in UNSIGNED_64},
}

MESSAGE_SET_EXTENSION_NAME = "message_set_extension"


def to_float32(n: float) -> float:
    """Round a double to single precision; out-of-range values become infinite."""
    try:
        return struct.unpack("<f", struct.pack("<f", n))[0]
    except OverflowError:
        return math.copysign(math.inf, n)


def json_camel_case(name: str) -> str:
    """Return the lowerCamelCase JSON name protoc derives from a field name."""
    out = []
    after_underscore = False
    for ch in name:
        if ch == "_":
            after_underscore = True
            continue
        if after_underscore and "a" <= ch <= "z":
            ch = ch.upper()
        out.append(ch)
        after_underscore = False
    return "".join(out)


def _camel_case(name: str) -> str:
    return "".join(part[:1].upper() + part[1:] for part in name.split("_"))


class EnumValueDescriptor:
    def __init__(self, name: str, number: int, parent: EnumDescriptor):
        self.name = name
        self.number = number
        self.enum = parent

    @property
    def full_name(self) -> str:
        # Enum values are scoped as siblings of their enum type.
        scope = self.enum.full_name.rpartition(".")[0]
        return f"{scope}.{self.name}" if scope else self.name

    def __repr__(self) -> str:
        return f"EnumValueDescriptor({self.name}={self.number})"


class EnumDescriptor:
    def __init__(self, full_name: str, values: Iterable[tuple[str, int]] = ()):
        self.full_name = full_name
        self.values: list[EnumValueDescriptor] = []
        self._by_number: dict[int, EnumValueDescriptor] = {}
        self._by_name: dict[str, EnumValueDescriptor] = {}
        for name, number in values:
            self.add_value(name, number)

    @property
    def name(self) -> str:
        return self.full_name.rpartition(".")[2]

    def add_value(self, name: str, number: int) -> EnumValueDescriptor:
        if name in self._by_name:
            raise ValueError(f"duplicate enum value name {name!r} in {self.full_name}")
        value = EnumValueDescriptor(name, number, self)
        self.values.append(value)
        self._by_name[name] = value
        # With aliases, the first declared name wins.
        self._by_number.setdefault(number, value)
        return value

    def by_number(self, number: int) -> EnumValueDescriptor | None:
        return self._by_number.get(number)

    def by_name(self, name: str) -> EnumValueDescriptor | None:
        return self._by_name.get(name)

    def __repr__(self) -> str:
        return f"EnumDescriptor({self.full_name})"


class OneofDescriptor:
    def __init__(self, name: str, parent: MessageDescriptor):
        self.name = name
        self.containing_message = parent
        self.fields: list[FieldDescriptor] = []

    @property
    def full_name(self) -> str:
        return f"{self.containing_message.full_name}.{self.name}"

    def __repr__(self) -> str:
        return f"OneofDescriptor({self.full_name})"


class FieldDescriptor:
    """One field of a message, or an extension when ``extendee`` is set."""

    def __init__(
        self,
        name: str,
        number: int,
        kind: Kind,
        cardinality: Cardinality = Cardinality.OPTIONAL,
        *,
        json_name: str | None = None,
        default: Any = None,
        message: MessageDescriptor | None = None,
        enum: EnumDescriptor | None = None,
        oneof: str | None = None,
        full_name: str | None = None,
        extendee: MessageDescriptor | None = None,
        syntax: Syntax | None = None,
    ):
        self.name = name
        self.number = number
        self.kind = Kind(kind)
        self.cardinality = Cardinality(cardinality)
        self.json_name = json_name if json_name is not None else json_camel_case(name)
        self.default = default
        self.message = message
        self.enum = enum
        self.oneof_name = oneof
        self.extendee = extendee
        self._full_name = full_name
        self._syntax = Syntax(syntax) if syntax is not None else None
        self.containing_message: MessageDescriptor | None = None
        self.containing_oneof: OneofDescriptor | None = None

        if self.kind in MESSAGE_KINDS and message is None:
            raise ValueError(f"field {name!r} of kind {self.kind.name} needs a message descriptor")
        if self.kind is Kind.ENUM and enum is None:
            raise ValueError(f"enum field {name!r} needs an enum descriptor")
        if default is not None and (self.cardinality is Cardinality.REPEATED or self.kind in MESSAGE_KINDS):
            raise ValueError(f"field {name!r} cannot declare a default value")
        if extendee is not None and oneof is not None:
            raise ValueError(f"extension {name!r} cannot be a oneof member")

    @property
    def full_name(self) -> str:
        if self._full_name:
            return self._full_name
        if self.containing_message is not None:
            return f"{self.containing_message.full_name}.{self.name}"
        return self.name

    @property
    def syntax(self) -> Syntax:
        if self._syntax is not None:
            return self._syntax
        if self.containing_message is not None:
            return self.containing_message.syntax
        return Syntax.PROTO2

    @property
    def is_extension(self) -> bool:
        return self.extendee is not None

    @property
    def is_map(self) -> bool:
        return (
            self.cardinality is Cardinality.REPEATED
            and self.message is not None
            and self.message.map_entry
        )

    @property
    def is_list(self) -> bool:
        return self.cardinality is Cardinality.REPEATED and not self.is_map

    @property
    def map_key(self) -> FieldDescriptor | None:
        return self.message.fields_by_number[1] if self.is_map else None

    @property
    def map_value(self) -> FieldDescriptor | None:
        return self.message.fields_by_number[2] if self.is_map else None

    @property
    def has_presence(self) -> bool:
        if self.cardinality is Cardinality.REPEATED:
            return False
        return (
            self.kind in MESSAGE_KINDS
            or self.containing_oneof is not None
            or self.is_extension
            or self.syntax is Syntax.PROTO2
        )

    @property
    def default_value(self) -> Any:
        """Declared default, or the zero value of the kind."""
        if self.cardinality is Cardinality.REPEATED or self.kind in MESSAGE_KINDS:
            return None
        if self.default is not None:
            return self.default
        if self.kind is Kind.ENUM:
            return self.enum.values[0].number if self.enum.values else 0
        return _ZERO_VALUES[self.kind]

    def __repr__(self) -> str:
        return f"FieldDescriptor({self.full_name}={self.number}, {self.kind.name})"


_ZERO_VALUES: dict[Kind, Any] = {
    Kind.BOOL: False,
    Kind.STRING: "",
    Kind.BYTES: b"",
    Kind.FLOAT: 0.0,
    Kind.DOUBLE: 0.0,
    **{k: 0 for k in INTEGER_KINDS},
}


class MessageDescriptor:
    def __init__(
        self,
        full_name: str,
        fields: Iterable[FieldDescriptor] = (),
        *,
        syntax: Syntax = Syntax.PROTO3,
        map_entry: bool = False,
        message_set_wire_format: bool = False,
    ):
        self.full_name = full_name
        self.syntax = Syntax(syntax)
        self.map_entry = map_entry
        self.message_set_wire_format = message_set_wire_format
        self.fields: list[FieldDescriptor] = []
        self.fields_by_name: dict[str, FieldDescriptor] = {}
        self.fields_by_json_name: dict[str, FieldDescriptor] = {}
        self.fields_by_number: dict[int, FieldDescriptor] = {}
        self.oneofs: dict[str, OneofDescriptor] = {}
        for fd in fields:
            self.add_field(fd)

    @property
    def name(self) -> str:
        return self.full_name.rpartition(".")[2]

    @property
    def is_message_set(self) -> bool:
        return self.message_set_wire_format

    def add_field(self, fd: FieldDescriptor) -> FieldDescriptor:
        if fd.is_extension:
            raise ValueError(f"{fd.name!r} is an extension; register it instead of adding it")
        if fd.name in self.fields_by_name:
            raise ValueError(f"duplicate field name {fd.name!r} in {self.full_name}")
        if fd.number in self.fields_by_number:
            raise ValueError(f"duplicate field number {fd.number} in {self.full_name}")
        if fd.cardinality is Cardinality.REQUIRED and self.syntax is Syntax.PROTO3:
            raise ValueError(f"required field {fd.name!r} is not allowed in proto3")
        fd.containing_message = self
        if fd.oneof_name is not None:
            oneof = self.oneofs.get(fd.oneof_name)
            if oneof is None:
                oneof = self.oneofs[fd.oneof_name] = OneofDescriptor(fd.oneof_name, self)
            oneof.fields.append(fd)
            fd.containing_oneof = oneof
        self.fields.append(fd)
        self.fields_by_name[fd.name] = fd
        self.fields_by_json_name[fd.json_name] = fd
        self.fields_by_number[fd.number] = fd
        return fd

    def add_map_field(
        self,
        name: str,
        number: int,
        key_kind: Kind,
        value_kind: Kind,
        *,
        message: MessageDescriptor | None = None,
        enum: EnumDescriptor | None = None,
        json_name: str | None = None,
    ) -> FieldDescriptor:
        """Add a map field, synthesising its ``<Name>Entry`` message."""
        if Kind(key_kind) not in MAP_KEY_KINDS:
            raise ValueError(f"map key kind {Kind(key_kind).name} is not allowed")
        entry = MessageDescriptor(
            f"{self.full_name}.{_camel_case(name)}Entry", syntax=self.syntax, map_entry=True
        )
        entry.add_field(FieldDescriptor("key", 1, key_kind))
        entry.add_field(FieldDescriptor("value", 2, value_kind, message=message, enum=enum))
        return self.add_field(
            FieldDescriptor(name, number, Kind.MESSAGE, Cardinality.REPEATED, message=entry, json_name=json_name)
        )

    def __repr__(self) -> str:
        return f"MessageDescriptor({self.full_name})"


def is_message_set_extension(fd: FieldDescriptor) -> bool:
    if fd.name != MESSAGE_SET_EXTENSION_NAME or fd.extendee is None:
        return False
    if not fd.extendee.is_message_set or fd.message is None:
        return False
    return fd.full_name.rpartition(".")[0] == fd.message.full_name


__all__ = [
    "Kind",
    "Cardinality",
    "Syntax",
    "EnumValueDescriptor",
    "EnumDescriptor",
    "OneofDescriptor",
    "FieldDescriptor",
    "MessageDescriptor",
    "is_message_set_extension",
    "json_camel_case",
]
