import threading
import time

import pytest

from kvcore.connection import Connection, FakeConn, Wait


class _StubSocket:
    def __init__(self):
        self.sent = bytearray()
        self.closed = False

    def sendall(self, data):
        self.sent.extend(data)

    def close(self):
        self.closed = True

    def getpeername(self):
        return ("127.0.0.1", 6399)


def test_wait_times_out_while_counter_positive():
    w = Wait()
    w.add(1)
    assert w.wait_with_timeout(0.05) is True


def test_wait_returns_when_counter_zero():
    w = Wait()
    assert w.wait_with_timeout(0.05) is False


def test_wait_released_by_other_thread():
    w = Wait()
    w.add(1)
    threading.Timer(0.05, w.done).start()
    assert w.wait_with_timeout(5) is False


def test_wait_negative_counter_raises():
    w = Wait()
    with pytest.raises(ValueError):
        w.done()


def test_connection_write_and_address():
    sock = _StubSocket()
    conn = Connection(sock)
    assert conn.write(b"+PONG\r\n") == 7
    assert bytes(sock.sent) == b"+PONG\r\n"
    assert conn.write(b"") == 0
    assert conn.remote_addr() == "127.0.0.1:6399"
    assert conn.name() == conn.remote_addr()


def test_connection_subscriptions():
    conn = Connection(_StubSocket())
    conn.subscribe("a")
    conn.subscribe("b")
    conn.subscribe("a")
    assert conn.subs_count() == 2
    assert sorted(conn.get_channels()) == ["a", "b"]
    conn.unsubscribe("a")
    assert conn.get_channels() == ["b"]


def test_connection_close_resets_state():
    sock = _StubSocket()
    conn = Connection(sock)
    conn.subscribe("a")
    conn.password = "password"
    conn.db_index = 3
    conn.add_tx_error(ValueError("x"))
    conn.close()
    assert sock.closed
    assert conn.subs_count() == 0
    assert conn.password == ""
    assert conn.db_index == 0
    assert conn.tx_errors == []


def test_multi_state():
    conn = Connection(_StubSocket())
    assert not conn.in_multi_state
    conn.set_multi_state(True)
    assert conn.in_multi_state
    conn.enqueue_cmd([b"set", b"k", b"v"])
    conn.get_watching()["k"] = 1
    assert conn.queued_cmd_lines == [[b"set", b"k", b"v"]]
    conn.set_multi_state(False)
    assert not conn.in_multi_state
    assert conn.queued_cmd_lines == []
    assert conn.get_watching() == {}


def test_clear_queued_cmds_keeps_multi():
    conn = Connection(_StubSocket())
    conn.set_multi_state(True)
    conn.enqueue_cmd([b"get", b"k"])
    conn.clear_queued_cmds()
    assert conn.queued_cmd_lines == []
    assert conn.in_multi_state


def test_slave_and_master_flags():
    conn = Connection(_StubSocket())
    assert not conn.is_slave and not conn.is_master
    conn.set_slave()
    assert conn.is_slave and not conn.is_master
    conn.set_master()
    assert conn.is_master


def test_fake_conn_buffer_roundtrip():
    conn = FakeConn()
    conn.write(b"abc")
    conn.write(b"def")
    assert conn.data() == b"abcdef"
    assert conn.read(4) == b"abcd"
    assert conn.read(10) == b"ef"
    conn.clean()
    assert conn.data() == b""
    assert conn.remote_addr() == ""
    assert conn.name() == ""


def test_fake_conn_read_blocks_until_write():
    conn = FakeConn()

    def later():
        time.sleep(0.05)
        conn.write(b"hello")

    threading.Thread(target=later).start()
    assert conn.read(16) == b"hello"


def test_fake_conn_close():
    conn = FakeConn()
    conn.close()
    assert conn.read(16) == b""
    with pytest.raises(BrokenPipeError):
        conn.write(b"x")