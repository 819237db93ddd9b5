from types import SimpleNamespace

import pytest

from protojson.reflect import (
    Cardinality,
    EnumDescriptor,
    FieldDescriptor,
    Kind,
    MessageDescriptor,
    Syntax,
    TypeRegistry,
)

OPT, REQ, REP = Cardinality.OPTIONAL, Cardinality.REQUIRED, Cardinality.REPEATED


def build_schema():
    color = EnumDescriptor("example.Color", [("COLOR_UNSPECIFIED", 0), ("RED", 1), ("GREEN", 2)])
    null_value = EnumDescriptor("google.protobuf.NullValue", [("NULL_VALUE", 0)])

    address = MessageDescriptor("example.Address", [
        FieldDescriptor("street", 1, Kind.STRING),
        FieldDescriptor("number", 2, Kind.UINT32),
    ])
    simple = MessageDescriptor("example.Simple", [
        FieldDescriptor("name", 1, Kind.STRING),
        FieldDescriptor("tags", 2, Kind.STRING, REP),
    ])

    person = MessageDescriptor("example.Person")
    person.add_field(FieldDescriptor("name", 1, Kind.STRING))
    person.add_field(FieldDescriptor("tags", 2, Kind.STRING, REP))
    person.add_field(FieldDescriptor("age", 3, Kind.INT32))
    person.add_field(FieldDescriptor("id", 4, Kind.INT64))
    person.add_field(FieldDescriptor("score", 5, Kind.DOUBLE))
    person.add_field(FieldDescriptor("ratio", 6, Kind.FLOAT))
    person.add_field(FieldDescriptor("avatar", 7, Kind.BYTES))
    person.add_field(FieldDescriptor("color", 8, Kind.ENUM, enum=color))
    person.add_field(FieldDescriptor("address", 9, Kind.MESSAGE, message=address))
    person.add_map_field("attrs", 10, Kind.STRING, Kind.STRING)
    person.add_map_field("counts", 11, Kind.INT32, Kind.INT64)
    person.add_field(FieldDescriptor("email", 12, Kind.STRING, oneof="contact"))
    person.add_field(FieldDescriptor("phone", 13, Kind.STRING, oneof="contact"))
    person.add_field(FieldDescriptor("active", 14, Kind.BOOL))
    person.add_field(FieldDescriptor("big_count", 15, Kind.UINT64))
    person.add_field(FieldDescriptor("fixed", 16, Kind.FIXED32))
    person.add_field(FieldDescriptor("null_value", 17, Kind.ENUM, enum=null_value))
    person.add_field(FieldDescriptor("friends", 18, Kind.MESSAGE, REP, message=address))
    person.add_map_field("flags", 19, Kind.BOOL, Kind.INT32)

    node = MessageDescriptor("example.Node")
    node.add_field(FieldDescriptor("label", 1, Kind.STRING))
    node.add_field(FieldDescriptor("child", 2, Kind.MESSAGE, message=node))

    # proto2
    child = MessageDescriptor("example.legacy.Child", syntax=Syntax.PROTO2)
    child.add_field(FieldDescriptor("key", 1, Kind.STRING, REQ))
    result = MessageDescriptor("example.legacy.Record.Result", syntax=Syntax.PROTO2)
    result.add_field(FieldDescriptor("url", 1, Kind.STRING))
    record = MessageDescriptor("example.legacy.Record", syntax=Syntax.PROTO2)
    record.add_field(FieldDescriptor("id", 1, Kind.INT32, REQ))
    record.add_field(FieldDescriptor("label", 2, Kind.STRING, default="none"))
    record.add_field(FieldDescriptor("count", 3, Kind.INT32))
    record.add_field(FieldDescriptor("child", 4, Kind.MESSAGE, message=child))
    record.add_field(FieldDescriptor("items", 5, Kind.INT32, REP))
    record.add_field(FieldDescriptor("result", 6, Kind.GROUP, message=result))
    record.add_map_field("children", 7, Kind.STRING, Kind.MESSAGE, message=child)

    priority = FieldDescriptor(
        "priority", 100, Kind.INT32, full_name="example.legacy.priority", extendee=record
    )
    note = FieldDescriptor(
        "note", 101, Kind.STRING, full_name="example.legacy.Annotation.note", extendee=record
    )
    alias = FieldDescriptor(
        "alias", 102, Kind.STRING, REP, full_name="example.legacy.alias", extendee=record
    )
    sub = FieldDescriptor(
        "sub", 103, Kind.MESSAGE, message=child, full_name="example.legacy.sub", extendee=record
    )

    bag = MessageDescriptor("example.legacy.Bag", syntax=Syntax.PROTO2, message_set_wire_format=True)
    payload = MessageDescriptor("example.legacy.Payload", syntax=Syntax.PROTO2)
    payload.add_field(FieldDescriptor("text", 1, Kind.STRING))
    payload_ext = FieldDescriptor(
        "message_set_extension",
        10,
        Kind.MESSAGE,
        message=payload,
        full_name="example.legacy.Payload.message_set_extension",
        extendee=bag,
    )

    registry = TypeRegistry()
    for enum in (color, null_value):
        registry.register_enum(enum)
    for desc in (address, simple, person, node, child, result, record, bag, payload):
        registry.register_message(desc)
    for ext in (priority, note, alias, sub, payload_ext):
        registry.register_extension(ext)

    return SimpleNamespace(
        color=color,
        address=address,
        simple=simple,
        person=person,
        node=node,
        child=child,
        result=result,
        record=record,
        priority=priority,
        note=note,
        alias=alias,
        sub=sub,
        bag=bag,
        payload=payload,
        payload_ext=payload_ext,
        registry=registry,
    )


@pytest.fixture
def schema():
    return build_schema()
