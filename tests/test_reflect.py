import base64
import math

import pytest

from protojson.errors import RecursionDepthError
from protojson.reflect import (
    Cardinality,
    FieldDescriptor,
    Kind,
    Message,
    MessageDescriptor,
    ProtoMessage,
    Syntax,
    TypeRegistry,
    global_types,
    is_message_set_extension,
    json_camel_case,
)
from protojson.settings import settings


def test_json_camel_case():
    assert json_camel_case("foo_bar_baz") == "fooBarBaz"
    assert json_camel_case("foo__bar") == "fooBar"
    assert json_camel_case("_foo") == "Foo"
    assert json_camel_case("foo_1") == "foo1"
    assert json_camel_case("already") == "already"


def test_map_field_synthesises_entry(schema):
    attrs = schema.person.fields_by_name["attrs"]
    assert attrs.is_map and not attrs.is_list
    assert attrs.message.full_name == "example.Person.AttrsEntry"
    assert attrs.map_key.kind is Kind.STRING
    assert attrs.map_value.kind is Kind.STRING
    assert schema.person.fields_by_name["tags"].is_list


def test_descriptor_validation():
    desc = MessageDescriptor("example.Bad")
    desc.add_field(FieldDescriptor("a", 1, Kind.INT32))
    with pytest.raises(ValueError):
        desc.add_field(FieldDescriptor("a", 2, Kind.INT32))
    with pytest.raises(ValueError):
        desc.add_field(FieldDescriptor("b", 1, Kind.INT32))
    with pytest.raises(ValueError):
        desc.add_field(FieldDescriptor("c", 3, Kind.INT32, Cardinality.REQUIRED))
    with pytest.raises(ValueError):
        FieldDescriptor("m", 4, Kind.MESSAGE)
    with pytest.raises(ValueError):
        desc.add_map_field("f", 5, Kind.DOUBLE, Kind.STRING)


def test_proto3_presence_follows_zero_value(schema):
    msg = Message(schema.person, age=0, name="", score=0.0)
    assert not msg.has("age")
    assert not msg.has("name")
    assert not msg.has("score")
    msg.set("score", -0.0)
    assert msg.has("score")
    assert msg.get("color") == 0
    assert msg.get("tags") == []
    assert msg.get("attrs") == {}
    assert msg.get("address") is None


def test_proto2_presence_is_explicit(schema):
    msg = Message(schema.record)
    assert msg.get("label") == "none"
    assert not msg.has("label")
    msg.set("label", "")
    assert msg.has("label")
    msg.set("label", None)
    assert not msg.has("label")


def test_oneof_set_clears_siblings(schema):
    msg = Message(schema.person, email="a")
    assert msg.which_oneof("contact").name == "email"
    msg.set("phone", "1")
    assert msg.which_oneof("contact").name == "phone"
    assert not msg.has("email")


def test_value_checks(schema):
    msg = Message(schema.person)
    with pytest.raises(TypeError):
        msg.set("age", "1")
    with pytest.raises(TypeError):
        msg.set("age", True)
    with pytest.raises(ValueError):
        msg.set("age", 2**31)
    with pytest.raises(ValueError):
        msg.set("big_count", -1)
    with pytest.raises(TypeError):
        msg.set("tags", "abc")
    with pytest.raises(TypeError):
        msg.set("address", Message(schema.person))
    with pytest.raises(KeyError):
        msg.set("nope", 1)
    with pytest.raises(KeyError):
        msg.get(schema.record.fields_by_name["id"])


def test_list_fields_includes_extensions(schema):
    msg = Message(schema.record, id=1)
    msg.set_extension(schema.priority, 3)
    names = [fd.full_name for fd, _ in msg.list_fields()]
    assert sorted(names) == ["example.legacy.Record.id", "example.legacy.priority"]
    assert isinstance(msg, ProtoMessage)


def test_initialization_errors(schema):
    msg = Message(schema.record, children={"a": Message(schema.child)})
    assert not msg.is_initialized()
    assert msg.find_initialization_errors() == ["id", "children[a].key"]
    msg.set("id", 1)
    msg.get("children")["a"].set("key", "k")
    assert msg.is_initialized()


def test_from_dict_converts_plain_values(schema):
    data = {
        "name": "Ada",
        "bigCount": "18446744073709551615",
        "avatar": base64.b64encode(b"\x01\x02").decode(),
        "color": "GREEN",
        "address": {"street": "Main"},
        "counts": {"5": "10"},
        "flags": {"true": 1},
        "score": "NaN",
        "friends": [{"number": 2}],
    }
    msg = Message.from_dict(schema.person, data)
    assert msg.get("big_count") == 2**64 - 1
    assert msg.get("avatar") == b"\x01\x02"
    assert msg.get("color") == 2
    assert msg.get("address").get("street") == "Main"
    assert msg.get("counts") == {5: 10}
    assert msg.get("flags") == {True: 1}
    assert msg.get("friends")[0].get("number") == 2


def test_from_dict_extensions_need_resolver(schema):
    data = {"id": 1, "[example.legacy.priority]": 4}
    msg = Message.from_dict(schema.record, data, resolver=schema.registry)
    assert msg.get(schema.priority) == 4
    with pytest.raises(KeyError):
        Message.from_dict(schema.record, data)
    with pytest.raises(ValueError):
        Message.from_dict(schema.person, {"color": "PURPLE"})


def test_registry_lookups_and_conflicts(schema):
    reg = schema.registry
    assert reg.find_message_by_name("example.Person") is schema.person
    assert reg.find_message_by_name(".example.Person") is schema.person
    assert reg.find_message_by_url("type.googleapis.com/example.Address") is schema.address
    assert reg.find_enum_by_name("example.Color") is schema.color
    assert reg.find_extension_by_name("example.legacy.alias") is schema.alias
    assert reg.find_extension_by_number("example.legacy.Record", 100) is schema.priority
    assert [fd.number for fd in reg.extensions_of("example.legacy.Record")] == [100, 101, 102, 103]
    reg.register_message(schema.person)  # same descriptor again is fine
    with pytest.raises(ValueError):
        reg.register_message(MessageDescriptor("example.Person"))
    clash = FieldDescriptor("other", 100, Kind.INT32, full_name="example.legacy.other", extendee=schema.record)
    with pytest.raises(ValueError):
        reg.register_extension(clash)


def test_global_registry_is_shared():
    assert global_types() is global_types()
    assert isinstance(global_types(), TypeRegistry)


def test_message_set_extension_detection(schema):
    assert schema.bag.is_message_set
    assert is_message_set_extension(schema.payload_ext)
    assert not is_message_set_extension(schema.priority)


def test_syntax_defaults():
    desc = MessageDescriptor("example.Plain")
    fd = desc.add_field(FieldDescriptor("x", 1, Kind.INT32))
    assert fd.syntax is Syntax.PROTO3
    assert not fd.has_presence
    ext = FieldDescriptor("e", 5, Kind.INT32, full_name="example.e", extendee=desc)
    assert ext.syntax is Syntax.PROTO2
    assert ext.has_presence


def test_float_fields_store_single_precision(schema):
    msg = Message(schema.person, ratio=0.1, score=0.1)
    assert msg.get("ratio") == 0.10000000149011612
    assert msg.get("score") == 0.1
    msg.set("ratio", 1e-50)
    assert not msg.has("ratio")
    msg.set("ratio", 1e39)
    assert msg.get("ratio") == math.inf


def test_initialization_walk_is_depth_bounded(schema, monkeypatch):
    node = Message(schema.node)
    node.set("child", node)
    with pytest.raises(RecursionDepthError):
        node.find_initialization_errors()
    monkeypatch.setattr(settings, "protojson_max_depth", 2)
    record = Message(schema.record, id=1, child=Message(schema.child, key="k"))
    assert record.is_initialized()
    record.get("child").set("key", None)
    assert record.find_initialization_errors() == ["child.key"]
