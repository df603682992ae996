import threading

import pytest

from kvcore.lockmap import Locks, RWLock, fnv32


def _start(fn):
    done = threading.Event()

    def run():
        fn()
        done.set()

    thread = threading.Thread(target=run, daemon=True)
    thread.start()
    return thread, done


def test_fnv32_empty_is_offset_basis():
    assert fnv32("") == 2166136261


def test_fnv32_range_and_determinism():
    value = fnv32("hello")
    assert 0 <= value < 2**32
    assert fnv32("hello") == value
    assert fnv32("a") != fnv32("b")


def test_zero_table_size_rejected():
    with pytest.raises(ValueError):
        Locks(0)


def test_rwlock_release_without_acquire_raises():
    lock = RWLock()
    with pytest.raises(RuntimeError):
        lock.release_write()
    with pytest.raises(RuntimeError):
        lock.release_read()


def test_rwlock_write_blocks_read():
    lock = RWLock()
    lock.acquire_write()
    _, done = _start(lock.acquire_read)
    assert not done.wait(0.2)
    lock.release_write()
    assert done.wait(2)
    lock.release_read()


def test_exclusive_lock_blocks_second_writer():
    locks = Locks(16)
    locks.lock("a")
    _, done = _start(lambda: locks.lock("a"))
    assert not done.wait(0.2)
    locks.unlock("a")
    assert done.wait(2)
    locks.unlock("a")


def test_readers_share_and_block_writer():
    locks = Locks(16)
    locks.rlock("a")
    _, reader_done = _start(lambda: locks.rlock("a"))
    assert reader_done.wait(2)
    _, writer_done = _start(lambda: locks.lock("a"))
    assert not writer_done.wait(0.2)
    locks.runlock("a")
    locks.runlock("a")
    assert writer_done.wait(2)
    locks.unlock("a")


def test_unlock_of_unlocked_key_raises():
    locks = Locks(16)
    with pytest.raises(RuntimeError):
        locks.unlock("k")
    with pytest.raises(RuntimeError):
        locks.runlock("k")


def test_locks_with_keys_sharing_a_slot():
    locks = Locks(1)
    locks.locks("a", "b", "c")
    _, done = _start(lambda: locks.lock("z"))
    assert not done.wait(0.2)
    locks.unlocks("a", "b", "c")
    assert done.wait(2)
    locks.unlock("z")


def test_rlocks_and_runlocks():
    locks = Locks(8)
    locks.rlocks("x", "y", "x")
    _, done = _start(lambda: locks.locks("x", "y"))
    assert not done.wait(0.2)
    locks.runlocks("x", "y", "x")
    assert done.wait(2)
    locks.unlocks("x", "y")


def test_rw_locks_write_wins_on_shared_slot():
    locks = Locks(1)
    locks.rw_locks(["a"], ["b"])
    _, done = _start(lambda: locks.rlock("b"))
    assert not done.wait(0.2)
    locks.rw_unlocks(["a"], ["b"])
    assert done.wait(2)
    locks.runlock("b")


def test_rw_locks_accepts_missing_read_keys():
    locks = Locks(16)
    locks.rw_locks(["k"], None)
    _, done = _start(lambda: locks.rlock("k"))
    assert not done.wait(0.2)
    locks.rw_unlocks(["k"], None)
    assert done.wait(2)
    locks.runlock("k")


def test_locked_context_releases_on_error():
    locks = Locks(16)
    with pytest.raises(KeyError):
        with locks.locked("x", "y"):
            _, done = _start(lambda: locks.lock("x"))
            assert not done.wait(0.2)
            raise KeyError("boom")
    assert done.wait(2)
    locks.unlock("x")


def test_many_keys_in_opposite_order_do_not_deadlock():
    locks = Locks(16)
    keys = [f"key{i}" for i in range(20)]
    state = {"count": 0}
    rounds = 200

    def worker(order):
        for _ in range(rounds):
            locks.locks(*order)
            current = state["count"]
            state["count"] = current + 1
            locks.unlocks(*order)

    threads = [
        threading.Thread(target=worker, args=(keys,), daemon=True),
        threading.Thread(target=worker, args=(list(reversed(keys)),), daemon=True),
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(10)
    assert not any(thread.is_alive() for thread in threads)
    assert state["count"] == 2 * rounds

    _, done = _start(lambda: locks.locks(*keys))
    assert done.wait(2)
    locks.unlocks(*keys)