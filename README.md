# kvcore

Building blocks for a Redis-compatible key-value server, in pure Python with
no third-party dependencies.

## Modules

- `kvcore.protocol`: RESP reply types that serialise with `to_bytes()`:
  `StatusReply`, `IntReply`, `BulkReply`, `MultiBulkReply`, `MultiRawReply`,
  fixed replies such as `OkReply`, `PongReply`, `NullBulkReply`,
  `EmptyMultiBulkReply`, `NoReply`, `QueuedReply`, and error replies
  (`StandardErrReply`, `ArgNumErrReply`, `SyntaxErrReply`,
  `WrongTypeErrReply`, `UnknownErrReply`, `ProtocolErrReply`), which are also
  exceptions. Helpers: `is_ok_reply`, `is_error_reply`,
  `is_empty_multi_bulk_reply`.
- `kvcore.parser`: `parse_stream(reader)` yields `Payload` objects from a
  binary stream; `parse_bytes` and `parse_one` parse bytes and raise the first
  error met. Inline text commands (`set a a\r\n`) become a `MultiBulkReply`.
  Malformed items are reported as `ProtocolError`.
- `kvcore.utils`: `to_cmd_line`, `to_cmd_line2`, `to_cmd_line3` build command
  lines; `equals`, `bytes_equals`; `convert_range` turns an inclusive range
  with negative indices into a half-open one, or `(-1, -1)`.
- `kvcore.lockmap`: `RWLock`, and `Locks`, a table of reader-writer locks
  picked by the FNV-1 hash (`fnv32`) of a key. Locking several keys takes the
  slots in a fixed order; `locked(*keys)` is a context manager.
- `kvcore.dicts`: `SimpleDict` and the sharded, thread-safe `ConcurrentDict`,
  both returning counts from `put`, `put_if_absent`, `put_if_exists` and
  `remove`. `ConcurrentDict` has `*_with_lock` variants for use under
  `rw_locks` / `rw_unlocks`.
- `kvcore.sets`: `Set` of strings with `intersect`, `union` and `diff`.
- `kvcore.wildcard`: `compile_pattern` for glob patterns with `*`, `?`,
  `[...]`, `[^...]` and backslash escapes; returns a `Pattern` with
  `is_match`.
- `kvcore.geohash`: `encode`, `decode`, `to_string`, `to_int`, `from_int`,
  `distance` (metres), `to_range` and `get_neighbours` (nine code ranges
  around a point).
- `kvcore.consistenthash`: `HashRing` with replica points, CRC-32 by default,
  and `{hash tag}` support via `get_partition_key`.
- `kvcore.connection`: `Wait` (a counter that can be waited on with a
  timeout), `Connection` (a client socket with subscription and transaction
  state) and `FakeConn`, an in-memory connection for tests.

## Install

    pip install .

## Examples

Serialise and parse a reply:

    from kvcore.protocol import MultiBulkReply
    from kvcore.parser import parse_one

    data = MultiBulkReply([b"SET", b"key", b"value"]).to_bytes()
    reply = parse_one(data)
    assert reply.args == [b"SET", b"key", b"value"]

A thread-safe dictionary with key locks:

    from kvcore.dicts import ConcurrentDict

    d = ConcurrentDict()
    assert d.put("k", 1) == 1
    assert d.put("k", 2) == 0
    d.rw_locks(["k"], None)
    try:
        d.put_if_exists_with_lock("k", 3)
    finally:
        d.rw_unlocks(["k"], None)
    assert d.get("k") == 3

Key patterns:

    from kvcore.wildcard import compile_pattern

    pattern = compile_pattern("user:*")
    assert pattern.is_match("user:42")

Geohash:

    from kvcore import geohash

    code = geohash.encode(48.669, -4.32913)
    assert geohash.to_string(geohash.from_int(code)) == "gbsuv7zt7zntw"
    lat, lng = geohash.decode(code)

Consistent hashing:

    from kvcore.consistenthash import HashRing

    ring = HashRing(3)
    ring.add_node("a", "b", "c", "d")
    node = ring.pick_node("user:{42}")

## What it does not do

This package holds parts, not a running server. It opens no listening
socket and executes no commands: there is no command table, no keyspace with
expiry, no persistence or replication. List, sorted-set and bitmap types are
not included, and although `Connection` records the channels a client
subscribes to, nothing here delivers published messages.

## Tests

    pip install ".[test]"
    pytest