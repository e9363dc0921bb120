"""Tests for the reader/writer gate."""

import threading
import time

import pytest

from sparktop.gate import ReadWriteGate


def test_readers_share_the_gate():
    """Test several readers can hold the gate at once."""
    gate = ReadWriteGate()
    inside = threading.Barrier(3, timeout=2.0)

    def reader():
        with gate.read():
            inside.wait()

    threads = [threading.Thread(target=reader) for _ in range(3)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=2.0)

    assert not any(thread.is_alive() for thread in threads)
    assert gate.readers == 0


def test_writer_excludes_readers():
    """Test a reader waits until the writer leaves."""
    gate = ReadWriteGate()
    events = []

    gate.acquire_write()
    reader = threading.Thread(target=lambda: (gate.acquire_read(), events.append("read"), gate.release_read()))
    reader.start()
    time.sleep(0.1)
    assert events == []

    events.append("write done")
    gate.release_write()
    reader.join(timeout=2.0)

    assert events == ["write done", "read"]


def test_writer_excludes_writers():
    """Test writers never overlap."""
    gate = ReadWriteGate()
    active = 0
    overlaps = 0
    lock = threading.Lock()

    def writer():
        nonlocal active, overlaps
        for _ in range(50):
            with gate.write():
                with lock:
                    active += 1
                    if active > 1:
                        overlaps += 1
                time.sleep(0.0005)
                with lock:
                    active -= 1

    threads = [threading.Thread(target=writer) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=10.0)

    assert overlaps == 0


def test_writer_waits_for_readers():
    """Test a writer blocks until every reader has left."""
    gate = ReadWriteGate()
    acquired = threading.Event()

    gate.acquire_read()
    writer = threading.Thread(target=lambda: (gate.acquire_write(), acquired.set(), gate.release_write()))
    writer.start()

    assert not acquired.wait(timeout=0.1)
    gate.release_read()
    assert acquired.wait(timeout=2.0)
    writer.join(timeout=2.0)


def test_waiting_writer_blocks_new_readers():
    """Test new readers queue behind a waiting writer."""
    gate = ReadWriteGate()
    order = []

    gate.acquire_read()
    writer = threading.Thread(target=lambda: (gate.acquire_write(), order.append("writer"), gate.release_write()))
    writer.start()
    time.sleep(0.1)

    reader = threading.Thread(target=lambda: (gate.acquire_read(), order.append("reader"), gate.release_read()))
    reader.start()
    time.sleep(0.1)
    assert order == []

    gate.release_read()
    writer.join(timeout=2.0)
    reader.join(timeout=2.0)

    assert order == ["writer", "reader"]


def test_readers_never_see_half_written_state():
    """Test a reader only ever observes a pair written together."""
    gate = ReadWriteGate()
    state = {"a": 0, "b": 0}
    stop = threading.Event()
    torn = []

    def writer():
        n = 0
        while not stop.is_set():
            n += 1
            with gate.write():
                state["a"] = n
                time.sleep(0)
                state["b"] = n

    def reader():
        while not stop.is_set():
            with gate.read():
                if state["a"] != state["b"]:
                    torn.append((state["a"], state["b"]))

    threads = [threading.Thread(target=writer)] + [threading.Thread(target=reader) for _ in range(3)]
    for thread in threads:
        thread.start()
    time.sleep(0.5)
    stop.set()
    for thread in threads:
        thread.join(timeout=2.0)

    assert torn == []


def test_unbalanced_release_raises():
    """Test releasing a side that is not held is an error."""
    gate = ReadWriteGate()

    with pytest.raises(RuntimeError):
        gate.release_read()
    with pytest.raises(RuntimeError):
        gate.release_write()


def test_write_released_on_exception():
    """Test the write side is released when the block raises."""
    gate = ReadWriteGate()

    with pytest.raises(ValueError):
        with gate.write():
            raise ValueError("boom")

    assert not gate.writing
    with gate.read():
        assert gate.readers == 1
