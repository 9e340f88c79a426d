"""Thread coordination helpers: keyed locks and single-flight calls."""

from concurrent.futures import Future
from contextlib import contextmanager
from threading import Lock
from typing import Callable, Generic, Hashable, Iterator, TypeVar

T = TypeVar("T")


class _KeyedLock:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = Lock()
        self.users = 0


class KeyedLocks:
    """
    One mutex per key, created on demand.

    Holding the lock for one key never blocks callers using another key.
    A key's mutex is dropped once no caller holds or waits on it.
    """

    def __init__(self) -> None:
        self._guard = Lock()
        self._locks: dict[Hashable, _KeyedLock] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        """Acquire the lock for ``key`` for the duration of the block."""
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = self._locks[key] = _KeyedLock()
            entry.users += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._guard:
                entry.users -= 1
                if entry.users == 0:
                    del self._locks[key]


class SingleFlight(Generic[T]):
    """
    Collapse concurrent calls for the same key into one execution.

    The first caller for a key (the leader) runs the function; callers that
    arrive while it is in flight wait on the same future and receive the
    same result or exception. The leader always runs to completion, so a
    waiter that gives up never cancels the shared call.
    """

    def __init__(self) -> None:
        self._guard = Lock()
        self._calls: dict[Hashable, Future] = {}

    def do(self, key: Hashable, fn: Callable[[], T]) -> T:
        with self._guard:
            future = self._calls.get(key)
            leader = future is None
            if leader:
                future = Future()
                self._calls[key] = future

        if leader:
            try:
                future.set_result(fn())
            except BaseException as exc:  # handed to every waiter
                future.set_exception(exc)
            finally:
                with self._guard:
                    self._calls.pop(key, None)

        return future.result()

    def in_flight(self, key: Hashable) -> bool:
        with self._guard:
            return key in self._calls
