"""Unit tests for ValueStore."""

from typeproxy import ValueStore


def test_unset_name_returns_default():
    store = ValueStore({"count": 0, "name": None})
    assert store.get("count") == 0
    assert store.get("name") is None
    assert store.is_set("count") is False


def test_set_then_get_returns_same_object():
    store = ValueStore({"items": None})
    items = ["a", "b"]
    store.set("items", items)
    assert store.get("items") is items
    assert store.is_set("items") is True


def test_set_overwrites():
    store = ValueStore({"count": 0})
    store.set("count", 1)
    store.set("count", 2)
    assert store.get("count") == 2


def test_none_is_a_real_value():
    store = ValueStore({"count": 0})
    store.set("count", None)
    assert store.get("count") is None


def test_snapshot_merges_defaults_and_writes():
    store = ValueStore({"count": 0, "name": None})
    store.set("name", "hello")
    assert store.snapshot() == {"count": 0, "name": "hello"}
