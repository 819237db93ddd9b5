"""Encode reflective messages to the canonical protobuf JSON mapping.

The encoder walks a message through its descriptor: declared fields in
declaration order, then extensions sorted by their bracketed name. Map
entries are sorted by key, so the output depends only on message content
and never on container iteration order.
"""
from __future__ import annotations

import base64
import logging
from typing import Any

from .errors import IncompleteMessageError, RecursionDepthError, SchemaIntegrityError, UnsupportedSchemaError
from .options import MarshalOptions
from .reflect.descriptor import (
    MESSAGE_KINDS,
    SIGNED_32,
    SIGNED_64,
    UNSIGNED_32,
    UNSIGNED_64,
    Cardinality,
    FieldDescriptor,
    Kind,
    Syntax,
    is_message_set_extension,
)
from .reflect.message import ProtoMessage
from .reflect.registry import global_types
from .settings import settings
from .writer import JSONWriter

NULL_VALUE_ENUM = "google.protobuf.NullValue"

_INTEGER_KEYS = SIGNED_32 | SIGNED_64 | UNSIGNED_32 | UNSIGNED_64


def encode(message: ProtoMessage) -> bytes:
    """Encode ``message`` with default options."""
    return marshal_with_options(MarshalOptions(), message)


def encode_with(options: MarshalOptions, message: ProtoMessage) -> bytes:
    return marshal_with_options(options, message)


def marshal_with_options(options: MarshalOptions, message: ProtoMessage) -> bytes:
    encoder = MessageEncoder(options)
    encoder.marshal_message(message)
    data = encoder.writer.getvalue()
    if options.allow_partial:
        return data
    missing = message.find_initialization_errors()
    if missing:
        name = message.descriptor.full_name
        logging.debug("Message %s is missing required fields: %s", name, missing)
        raise IncompleteMessageError(name, missing, data)
    return data


def _map_key_text(key: Any) -> str:
    if isinstance(key, bool):
        return "true" if key else "false"
    return str(key)


class MessageEncoder:
    """Writes one message graph into a fresh ``JSONWriter``."""

    def __init__(self, options: MarshalOptions):
        self.options = options
        self.writer = JSONWriter(options.indent)
        self.resolver = options.resolver if options.resolver is not None else global_types()
        self.custom_types = options.custom_types or {}
        self.max_depth = settings.protojson_max_depth
        self._depth = 0

    def marshal_message(self, message: ProtoMessage) -> None:
        if self._depth >= self.max_depth:
            raise RecursionDepthError(self.max_depth)
        self._depth += 1
        try:
            desc = message.descriptor
            renderer = self.custom_types.get(desc.full_name)
            if renderer is not None:
                logging.debug("Rendering %s with custom renderer %r", desc.full_name, renderer)
                renderer(self, message)
                return
            self.writer.start_object()
            self.marshal_fields(message)
            self.writer.end_object()
        finally:
            self._depth -= 1

    def marshal_fields(self, message: ProtoMessage) -> None:
        desc = message.descriptor
        if desc.is_message_set and not settings.protojson_legacy:
            logging.debug("Refusing to encode MessageSet %s", desc.full_name)
            raise UnsupportedSchemaError(f"no support for proto1 MessageSets ({desc.full_name})")

        for fd in desc.fields:
            value = message.get(fd)
            if not message.has(fd):
                if not self.options.emit_unpopulated or fd.containing_oneof is not None:
                    continue
                proto2_scalar = (
                    fd.syntax is Syntax.PROTO2
                    and fd.cardinality is not Cardinality.REPEATED
                    and fd.kind not in MESSAGE_KINDS
                )
                singular_message = fd.cardinality is not Cardinality.REPEATED and fd.kind in MESSAGE_KINDS
                if proto2_scalar or singular_message:
                    # None renders as null
                    value = None
            self.writer.write_name(self.field_name(fd))
            self.marshal_value(value, fd)

        self.marshal_extensions(message)

    def field_name(self, fd: FieldDescriptor) -> str:
        if not self.options.use_proto_names:
            return fd.json_name
        if fd.kind is Kind.GROUP:
            return fd.message.name
        return fd.name

    def marshal_value(self, value: Any, fd: FieldDescriptor) -> None:
        if fd.is_map:
            self.marshal_map(value, fd)
        elif fd.is_list:
            self.marshal_list(value, fd)
        else:
            self.marshal_singular(value, fd)

    def marshal_singular(self, value: Any, fd: FieldDescriptor) -> None:
        """Write one non-repeated value: a scalar, an enum or a message."""
        w = self.writer
        if value is None:
            w.write_null()
            return

        kind = fd.kind
        if kind is Kind.BOOL:
            w.write_bool(value)
        elif kind is Kind.STRING:
            w.write_string(value)
        elif kind in SIGNED_32:
            w.write_int(value)
        elif kind in UNSIGNED_32:
            w.write_uint(value)
        elif kind in SIGNED_64 or kind in UNSIGNED_64:
            # JSON numbers cannot hold 64-bit integers exactly.
            w.write_string(str(value))
        elif kind is Kind.FLOAT:
            w.write_float(value, 32)
        elif kind is Kind.DOUBLE:
            w.write_float(value, 64)
        elif kind is Kind.BYTES:
            w.write_string(base64.b64encode(value).decode("ascii"))
        elif kind is Kind.ENUM:
            self.marshal_enum(value, fd)
        elif kind in MESSAGE_KINDS:
            self.marshal_message(value)
        else:
            raise SchemaIntegrityError(f"{fd.full_name} has unknown kind: {kind!r}")

    def marshal_enum(self, number: int, fd: FieldDescriptor) -> None:
        if fd.enum.full_name == NULL_VALUE_ENUM:
            self.writer.write_null()
            return
        value = fd.enum.by_number(number)
        if self.options.use_enum_numbers or value is None:
            if value is None:
                logging.debug("No name for %s value %d; writing number", fd.enum.full_name, number)
            self.writer.write_int(number)
        else:
            self.writer.write_string(value.name)

    def marshal_list(self, items: list[Any], fd: FieldDescriptor) -> None:
        self.writer.start_array()
        for item in items:
            self.marshal_singular(item, fd)
        self.writer.end_array()

    def marshal_map(self, entries: dict[Any, Any], fd: FieldDescriptor) -> None:
        key_fd, value_fd = fd.map_key, fd.map_value
        ordered = list(entries.items())
        if key_fd.kind in _INTEGER_KEYS:
            ordered.sort(key=lambda kv: kv[0])
        else:
            ordered.sort(key=lambda kv: _map_key_text(kv[0]))

        self.writer.start_object()
        for key, value in ordered:
            self.writer.write_name(_map_key_text(key))
            self.marshal_singular(value, value_fd)
        self.writer.end_object()

    def marshal_extensions(self, message: ProtoMessage) -> None:
        entries = []
        for fd, value in message.list_fields():
            if not fd.is_extension:
                continue
            name = fd.full_name
            # MessageSet extensions are named after the message they carry.
            if is_message_set_extension(fd):
                name = name.rpartition(".")[0]
            entries.append((f"[{name}]", value, fd))

        entries.sort(key=lambda e: e[0])
        for name, value, fd in entries:
            self.writer.write_name(name)
            self.marshal_value(value, fd)


__all__ = ["MessageEncoder", "encode", "encode_with", "marshal_with_options"]
