"""Reader/writer gate shared by the samplers and the renderer."""

import threading
from collections.abc import Iterator
from contextlib import contextmanager


class ReadWriteGate:
    """
    Many-readers, single-writer lock.

    Readers proceed together while no writer holds the gate. A writer
    excludes every reader and every other writer. Once a writer is waiting,
    new readers queue behind it so a steady stream of frames cannot starve
    the samplers.
    """

    def __init__(self) -> None:
        """Initialize an open gate with no readers or writers."""
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @property
    def readers(self) -> int:
        """Number of readers currently inside the gate."""
        with self._cond:
            return self._readers

    @property
    def writing(self) -> bool:
        """Whether a writer currently holds the gate."""
        with self._cond:
            return self._writer

    def acquire_read(self) -> None:
        """Block until no writer holds or waits for the gate, then enter as a reader."""
        with self._cond:
            self._cond.wait_for(lambda: not self._writer and self._writers_waiting == 0)
            self._readers += 1

    def release_read(self) -> None:
        """Leave as a reader; the last reader out wakes waiting writers."""
        with self._cond:
            if self._readers <= 0:
                raise RuntimeError("release_read() called without a matching acquire_read()")
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        """Block until the gate is empty, then hold it exclusively."""
        with self._cond:
            self._writers_waiting += 1
            try:
                self._cond.wait_for(lambda: not self._writer and self._readers == 0)
            finally:
                self._writers_waiting -= 1
            self._writer = True

    def release_write(self) -> None:
        """Release exclusive hold and wake everyone waiting."""
        with self._cond:
            if not self._writer:
                raise RuntimeError("release_write() called without a matching acquire_write()")
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def read(self) -> Iterator[None]:
        """Hold the gate's read side for the duration of the block."""
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write(self) -> Iterator[None]:
        """Hold the gate exclusively for the duration of the block."""
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()
