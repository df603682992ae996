import io

import pytest

from kvcore.parser import Payload, ProtocolError, parse_bytes, parse_one, parse_stream
from kvcore.protocol import (
    CRLF,
    BulkReply,
    EmptyMultiBulkReply,
    IntReply,
    MultiBulkReply,
    NullBulkReply,
    StandardErrReply,
    StatusReply,
)


def _sample_replies():
    return [
        IntReply(1),
        StatusReply("OK"),
        StandardErrReply("ERR unknown"),
        BulkReply(b"a\r\nb"),
        NullBulkReply(),
        MultiBulkReply([b"a", b"\r\n"]),
        EmptyMultiBulkReply(),
    ]


def test_parse_stream():
    replies = _sample_replies()
    data = b"".join(r.to_bytes() for r in replies) + b"set a a" + CRLF
    expected = replies + [MultiBulkReply([b"set", b"a", b"a"])]

    payloads = list(parse_stream(io.BytesIO(data)))

    assert [p.err for p in payloads] == [None] * len(expected)
    assert [p.data.to_bytes() for p in payloads] == [e.to_bytes() for e in expected]


@pytest.mark.parametrize("reply", _sample_replies())
def test_parse_one(reply):
    result = parse_one(reply.to_bytes())
    assert result.to_bytes() == reply.to_bytes()


def test_parse_bytes_returns_all():
    replies = _sample_replies()
    data = b"".join(r.to_bytes() for r in replies)
    assert [r.to_bytes() for r in parse_bytes(data)] == [r.to_bytes() for r in replies]


def test_empty_lines_are_skipped():
    assert parse_bytes(b"\r\n" + IntReply(7).to_bytes()) == [IntReply(7)]


def test_illegal_number_is_reported_and_parsing_continues():
    payloads = list(parse_stream(io.BytesIO(b":abc\r\n:2\r\n")))
    assert isinstance(payloads[0].err, ProtocolError)
    assert str(payloads[0].err) == "protocol error: illegal number abc"
    assert payloads[1] == Payload(data=IntReply(2))


def test_illegal_bulk_header_continues():
    payloads = list(parse_stream(io.BytesIO(b"$x\r\n:2\r\n")))
    assert isinstance(payloads[0].err, ProtocolError)
    assert payloads[1].data == IntReply(2)


def test_bad_array_element_keeps_parsed_part():
    payloads = list(parse_stream(io.BytesIO(b"*2\r\n$1\r\na\r\nxx\r\n")))
    assert isinstance(payloads[0].err, ProtocolError)
    assert payloads[1].data == MultiBulkReply([b"a"])


def test_null_array_element_becomes_empty():
    reply = parse_one(b"*1\r\n$-1\r\n")
    assert reply == MultiBulkReply([b""])


def test_truncated_body_ends_stream_with_eof():
    payloads = list(parse_stream(io.BytesIO(b"$5\r\nab")))
    assert len(payloads) == 1
    assert isinstance(payloads[0].err, EOFError)


def test_parse_bytes_raises_on_truncated_body():
    with pytest.raises(EOFError):
        parse_bytes(b"$5\r\nab")


def test_parse_one_raises_on_empty_input():
    with pytest.raises(EOFError):
        parse_one(b"")


def test_parse_one_raises_protocol_error():
    with pytest.raises(ProtocolError):
        parse_one(b"*x\r\n")


def test_fullresync_reads_rdb_body_without_crlf():
    data = b"+FULLRESYNC abc 0\r\n$5\r\nhello" + IntReply(3).to_bytes()
    replies = parse_bytes(data)
    assert replies == [StatusReply("FULLRESYNC abc 0"), BulkReply(b"hello"), IntReply(3)]


def test_fullresync_with_bad_header_is_fatal():
    with pytest.raises(ProtocolError):
        parse_bytes(b"+FULLRESYNC abc 0\r\n$0\r\n")