from .descriptor import (
    Cardinality,
    EnumDescriptor,
    EnumValueDescriptor,
    FieldDescriptor,
    Kind,
    MessageDescriptor,
    OneofDescriptor,
    Syntax,
    is_message_set_extension,
    json_camel_case,
)
from .message import Message, ProtoMessage
from .registry import TypeRegistry, global_types

__all__ = [
    "Cardinality",
    "EnumDescriptor",
    "EnumValueDescriptor",
    "FieldDescriptor",
    "Kind",
    "MessageDescriptor",
    "OneofDescriptor",
    "Syntax",
    "is_message_set_extension",
    "json_camel_case",
    "Message",
    "ProtoMessage",
    "TypeRegistry",
    "global_types",
]
