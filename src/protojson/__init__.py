"""
protojson: canonical JSON encoding for schema-described protobuf messages.
"""

from protojson.encode import MessageEncoder, encode, encode_with
from protojson.errors import (
    EncodeError,
    IncompleteMessageError,
    RecursionDepthError,
    SchemaIntegrityError,
    UnsupportedSchemaError,
    WriterError,
)
from protojson.options import MarshalOptions, MarshalResult
from protojson.reflect import (
    Cardinality,
    EnumDescriptor,
    FieldDescriptor,
    Kind,
    Message,
    MessageDescriptor,
    Syntax,
    TypeRegistry,
    global_types,
)

__version__ = "0.1.0"
__all__ = [
    "encode",
    "encode_with",
    "MessageEncoder",
    "MarshalOptions",
    "MarshalResult",
    "EncodeError",
    "IncompleteMessageError",
    "RecursionDepthError",
    "SchemaIntegrityError",
    "UnsupportedSchemaError",
    "WriterError",
    "Cardinality",
    "EnumDescriptor",
    "FieldDescriptor",
    "Kind",
    "Message",
    "MessageDescriptor",
    "Syntax",
    "TypeRegistry",
    "global_types",
]
