import pytest

from kvcore.consistenthash import HashRing, get_partition_key


def test_hash():
    ring = HashRing(3)
    ring.add_node("a", "b", "c", "d")
    assert ring.pick_node("zxc") == "a"
    assert ring.pick_node("123{abc}") == "b"
    assert ring.pick_node("abc") == "b"


def test_empty_ring():
    ring = HashRing(3)
    assert ring.is_empty() is True
    assert ring.pick_node("anything") is None
    ring.add_node("")
    assert ring.is_empty() is True
    ring.add_node("a")
    assert ring.is_empty() is False
    assert ring.pick_node("anything") == "a"


@pytest.mark.parametrize(
    "key, expected",
    [
        ("123{abc}", "abc"),
        ("{user}:1", "user"),
        ("plain", "plain"),
        ("a{}b", "a{}b"),
        ("a{b", "a{b"),
        ("}a{b", "}a{b"),
    ],
)
def test_get_partition_key(key, expected):
    assert get_partition_key(key) == expected


def test_custom_hash_and_wraparound():
    ring = HashRing(1, lambda data: int(data))
    ring.add_node("1", "5")
    assert ring.pick_node("3") == "5"
    assert ring.pick_node("5") == "5"
    assert ring.pick_node("1") == "1"
    assert ring.pick_node("7") == "1"


def test_hash_tag_routes_together():
    ring = HashRing(3)
    ring.add_node("a", "b", "c", "d")
    assert ring.pick_node("x{abc}") == ring.pick_node("y{abc}") == ring.pick_node("abc")