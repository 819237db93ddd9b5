from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, model_validator

from .reflect.descriptor import (
    Cardinality,
    EnumDescriptor,
    FieldDescriptor,
    Kind,
    MessageDescriptor,
    Syntax,
)
from .reflect.registry import TypeRegistry

FieldType = Literal[
    "double", "float", "int64", "uint64", "int32", "fixed64", "fixed32", "bool",
    "string", "group", "message", "bytes", "uint32", "enum", "sfixed32",
    "sfixed64", "sint32", "sint64",
]
KeyType = Literal[
    "int64", "uint64", "int32", "fixed64", "fixed32", "bool", "string",
    "uint32", "sfixed32", "sfixed64", "sint32", "sint64",
]
NAMED_TYPES = ("message", "group", "enum")


class EnumValueSpec(BaseModel):
    name: str
    number: int


class EnumSpec(BaseModel):
    name: str  # relative to the package, dots for nesting
    values: list[EnumValueSpec] = Field(default_factory=list)


class MapSpec(BaseModel):
    key_type: KeyType
    value_type: FieldType
    type_name: str | None = None  # for message/enum values

    @model_validator(mode="after")
    def _named_value(self) -> MapSpec:
        if self.value_type == "group":
            raise ValueError("map values cannot be groups")
        if self.value_type in NAMED_TYPES and not self.type_name:
            raise ValueError(f"map value of type {self.value_type} needs type_name")
        return self


class FieldSpec(BaseModel):
    name: str
    number: int = Field(gt=0, lt=2**29)
    type: FieldType | None = None
    label: Literal["optional", "required", "repeated"] = "optional"
    type_name: str | None = None
    json_name: str | None = None
    default: Any = None
    oneof: str | None = None
    map: MapSpec | None = None

    @model_validator(mode="after")
    def _shape(self) -> FieldSpec:
        if self.map is not None:
            if self.type is not None or self.label != "optional":
                raise ValueError(f"map field {self.name!r} takes no type or label")
        elif self.type is None:
            raise ValueError(f"field {self.name!r} needs a type or a map spec")
        elif self.type in NAMED_TYPES and not self.type_name:
            raise ValueError(f"field {self.name!r} of type {self.type} needs type_name")
        return self


class MessageSpec(BaseModel):
    name: str  # relative to the package, dots for nesting
    fields: list[FieldSpec] = Field(default_factory=list)
    message_set_wire_format: bool = False


class ExtensionSpec(FieldSpec):
    extendee: str
    scope: str | None = None  # enclosing message for nested extension declarations

    @model_validator(mode="after")
    def _no_map(self) -> ExtensionSpec:
        if self.map is not None:
            raise ValueError(f"extension {self.name!r} cannot be a map")
        return self


class SchemaDoc(BaseModel):
    """A self-contained schema: enums, messages and extensions of one package."""

    package: str = ""
    syntax: Literal["proto2", "proto3"] = "proto3"
    enums: list[EnumSpec] = Field(default_factory=list)
    messages: list[MessageSpec] = Field(default_factory=list)
    extensions: list[ExtensionSpec] = Field(default_factory=list)

    def qualify(self, name: str) -> str:
        return f"{self.package}.{name}" if self.package else name

    def build(self, registry: TypeRegistry | None = None) -> TypeRegistry:
        """Create descriptors for everything in the document and register them."""
        registry = registry if registry is not None else TypeRegistry()
        syntax = Syntax(self.syntax)
        enums = {}
        for spec in self.enums:
            desc = EnumDescriptor(self.qualify(spec.name), [(v.name, v.number) for v in spec.values])
            enums[desc.full_name] = desc
        messages = {}
        for spec in self.messages:
            desc = MessageDescriptor(
                self.qualify(spec.name),
                syntax=syntax,
                message_set_wire_format=spec.message_set_wire_format,
            )
            messages[desc.full_name] = desc

        def resolve(type_name: str, table: dict, what: str) -> Any:
            candidates = [type_name[1:]] if type_name.startswith(".") else [self.qualify(type_name), type_name]
            for name in candidates:
                if name in table:
                    return table[name]
                found = (
                    registry.find_message_by_name(name) if what == "message" else registry.find_enum_by_name(name)
                )
                if found is not None:
                    return found
            raise ValueError(f"unknown {what} type {type_name!r}")

        def make_field(spec: FieldSpec, **extra: Any) -> FieldDescriptor:
            kind = Kind[spec.type.upper()]
            message = resolve(spec.type_name, messages, "message") if spec.type in ("message", "group") else None
            enum = resolve(spec.type_name, enums, "enum") if spec.type == "enum" else None
            default = spec.default
            if default is not None and kind is Kind.ENUM and isinstance(default, str):
                value = enum.by_name(default)
                if value is None:
                    raise ValueError(f"unknown default {default!r} for enum {enum.full_name}")
                default = value.number
            elif default is not None and kind is Kind.BYTES and isinstance(default, str):
                default = default.encode("utf-8")
            return FieldDescriptor(
                spec.name,
                spec.number,
                kind,
                Cardinality[spec.label.upper()],
                json_name=spec.json_name,
                default=default,
                message=message,
                enum=enum,
                oneof=spec.oneof,
                **extra,
            )

        for spec in self.messages:
            desc = messages[self.qualify(spec.name)]
            for fspec in spec.fields:
                if fspec.map is not None:
                    m = fspec.map
                    desc.add_map_field(
                        fspec.name,
                        fspec.number,
                        Kind[m.key_type.upper()],
                        Kind[m.value_type.upper()],
                        message=resolve(m.type_name, messages, "message") if m.value_type == "message" else None,
                        enum=resolve(m.type_name, enums, "enum") if m.value_type == "enum" else None,
                        json_name=fspec.json_name,
                    )
                else:
                    desc.add_field(make_field(fspec))

        for desc in enums.values():
            registry.register_enum(desc)
        for desc in messages.values():
            registry.register_message(desc)
        for spec in self.extensions:
            scope = self.qualify(spec.scope) if spec.scope else self.package
            full_name = f"{scope}.{spec.name}" if scope else spec.name
            registry.register_extension(
                make_field(
                    spec,
                    full_name=full_name,
                    extendee=resolve(spec.extendee, messages, "message"),
                    syntax=syntax,
                )
            )
        return registry


def load_schema(path: str | Path) -> SchemaDoc:
    return SchemaDoc.model_validate_json(Path(path).read_text())


__all__ = ["SchemaDoc", "MessageSpec", "FieldSpec", "EnumSpec", "ExtensionSpec", "MapSpec", "load_schema"]
