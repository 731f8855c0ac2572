"""Tests for the pydantic serialization bridge."""

import json
import math

import pytest
from pydantic import BaseModel, ValidationError

import typeproxy
from typeproxy import SinkUnavailable, deserialize, from_dict, is_proxy, serialize, to_dict
from typeproxy.testing import RecordingSink, SinkCall
from sample_contracts import Address, Customer, Greeting, Member, State, StateWithWatch, Team, TreeNode

STATE_JSON = (
    '{"string_value":"hello","int_value":2147483647,"double_value":3.141592653589793,'
    '"string_list":["Alpha","Omega"],"int_list":[-2147483648,2147483647]}'
)


def _populated_state():
    obj = typeproxy.create(State)
    obj.string_value = "hello"
    obj.int_value = 2**31 - 1
    obj.double_value = math.pi
    obj.string_list = ["Alpha", "Omega"]
    obj.int_list = [-(2**31), 2**31 - 1]
    return obj


class Envelope(BaseModel):
    customer: Customer
    tag: str = ""


class TestEncode:
    def test_serialize_populated_instance(self):
        assert serialize(_populated_state()) == STATE_JSON

    def test_unset_properties_encode_as_defaults(self):
        obj = typeproxy.create(Greeting)
        obj.name = "hello"
        assert serialize(obj) == '{"name":"hello","count":0}'

    def test_defaults_for_every_type(self):
        data = json.loads(serialize(typeproxy.create(State)))
        assert data == {
            "string_value": None,
            "int_value": 0,
            "double_value": 0.0,
            "string_list": None,
            "int_list": None,
        }

    def test_sink_is_not_encoded(self):
        sink = RecordingSink()
        obj = typeproxy.create(StateWithWatch)
        obj.dispatch_sink = sink
        obj.string_value = "hello"
        assert json.loads(serialize(obj)) == {"string_value": "hello", "plain_value": 0}

    def test_nested_contracts(self):
        customer = typeproxy.create(Customer)
        customer.name = "Ada"
        customer.address = typeproxy.create(Address)
        customer.address.street = "Main St"
        assert to_dict(customer) == {
            "name": "Ada",
            "active": False,
            "address": {"street": "Main St", "number": 0},
            "nickname": None,
        }


class TestDecode:
    def test_deserialize(self):
        obj = deserialize(State, STATE_JSON)
        assert is_proxy(obj)
        assert obj.string_value == "hello"
        assert obj.int_value == 2**31 - 1
        assert obj.double_value == math.pi
        assert list(obj.string_list) == ["Alpha", "Omega"]
        assert list(obj.int_list) == [-(2**31), 2**31 - 1]

    def test_missing_fields_keep_defaults(self):
        obj = deserialize(Greeting, '{"name": "hi"}')
        assert obj.name == "hi"
        assert obj.count == 0

    def test_unknown_fields_are_ignored(self):
        obj = deserialize(Greeting, '{"name": "hi", "extra": 1}')
        assert obj.name == "hi"

    def test_type_errors_raise_validation_error(self):
        with pytest.raises(ValidationError):
            deserialize(Greeting, '{"count": "many"}')

    def test_nested_and_listed_contracts(self):
        customers = deserialize(
            list[Customer],
            '[{"name": "Ada", "address": {"street": "Main St", "number": 4}}, {"name": "Bob"}]',
        )
        assert [c.name for c in customers] == ["Ada", "Bob"]
        assert is_proxy(customers[0].address)
        assert customers[0].address.number == 4
        assert customers[1].address is None

    def test_contract_as_model_field(self):
        envelope = Envelope.model_validate_json('{"customer": {"name": "Ada"}, "tag": "x"}')
        assert is_proxy(envelope.customer)
        assert envelope.customer.name == "Ada"
        assert json.loads(envelope.model_dump_json()) == {
            "customer": {"name": "Ada", "active": False, "address": None, "nickname": None},
            "tag": "x",
        }

    def test_existing_proxy_passes_through_python_validation(self):
        obj = typeproxy.create(Greeting)
        assert from_dict(Greeting, obj) is obj

    def test_from_dict(self):
        obj = from_dict(Greeting, {"name": "hi", "count": 2})
        assert (obj.name, obj.count) == ("hi", 2)


class TestWatchedDecode:
    def test_decode_without_sink_raises(self):
        with pytest.raises(SinkUnavailable):
            deserialize(StateWithWatch, '{"string_value": "hello"}')

    def test_decode_with_sink_notifies(self):
        sink = RecordingSink()
        obj = deserialize(StateWithWatch, '{"string_value": "hello", "plain_value": 2}', sink=sink)
        assert obj.dispatch_sink is sink
        assert obj.string_value == "hello"
        assert sink.calls == [SinkCall("notify_change", ("string_value", "hello"))]

    def test_decode_without_watched_field_needs_no_sink(self):
        obj = deserialize(StateWithWatch, '{"plain_value": 2}')
        assert obj.plain_value == 2


def test_round_trip_preserves_every_property():
    source = _populated_state()
    decoded = deserialize(State, serialize(source))
    assert decoded is not source
    for name in typeproxy.introspect(State).property_names:
        original = getattr(source, name)
        restored = getattr(decoded, name)
        if isinstance(original, (list, tuple)):
            assert list(restored) == list(original)
        else:
            assert restored == original


class TestRecursiveContracts:
    def test_self_referencing_contract_round_trips(self):
        root = typeproxy.create(TreeNode)
        root.label = "root"
        root.child = typeproxy.create(TreeNode)
        root.child.label = "leaf"

        text = serialize(root)
        assert json.loads(text) == {"label": "root", "child": {"label": "leaf", "child": None}}

        decoded = deserialize(TreeNode, text)
        assert is_proxy(decoded.child)
        assert decoded.child.label == "leaf"
        assert decoded.child.child is None

    def test_deep_chain(self):
        data = {"label": "0", "child": None}
        for depth in range(1, 5):
            data = {"label": str(depth), "child": data}
        node = from_dict(TreeNode, data)
        labels = []
        while node is not None:
            labels.append(node.label)
            node = node.child
        assert labels == ["4", "3", "2", "1", "0"]

    def test_mutually_referencing_contracts(self):
        team = deserialize(Team, '{"name": "core", "lead": {"name": "Ada", "team": {"name": "core"}}}')
        assert team.lead.name == "Ada"
        assert team.lead.team.name == "core"
        assert team.lead.team.lead is None
        assert to_dict(team.lead) == {
            "name": "Ada",
            "team": {"name": "core", "lead": None},
        }
