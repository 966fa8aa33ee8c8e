"""
Shared State Locks

Multiple-reader / single-writer lock and a small container that pairs a
value with its own lock. Session progress and media metadata are each kept
in a separate Guarded value so status readers never contend on unrelated
state.

The lock is thread based so that it can be used both from the event loop
running a session and from the worker threads FastAPI uses for sync code.
Critical sections must stay short and must never contain an await.
"""

import threading
from contextlib import contextmanager
from typing import Generic, Iterator, TypeVar

T = TypeVar("T")


class RWLock:
    """
    Writer-preferring readers/writer lock.

    Any number of readers may hold the lock at once. A writer waits for the
    active readers to leave and blocks new readers while it is waiting, so a
    steady stream of status polls cannot starve a progress update.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

    def acquire_read(self) -> None:
        with self._cond:
            while self._writer or self._waiting_writers:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        with self._cond:
            self._waiting_writers += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._waiting_writers -= 1
            self._writer = True

    def release_write(self) -> None:
        with self._cond:
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def read(self) -> Iterator[None]:
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write(self) -> Iterator[None]:
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()


class Guarded(Generic[T]):
    """
    A value only reachable through its own RWLock.

    Usage:
        info = Guarded(media_info)
        with info.read() as media:
            duration = media.duration
    """

    def __init__(self, value: T) -> None:
        self._value = value
        self._lock = RWLock()

    @contextmanager
    def read(self) -> Iterator[T]:
        with self._lock.read():
            yield self._value

    @contextmanager
    def write(self) -> Iterator[T]:
        with self._lock.write():
            yield self._value
