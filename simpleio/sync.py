"""Synchronisation primitives: mutexes, locks, conditions, semaphores and atomics."""

from __future__ import annotations

import threading
import time
import weakref
from collections import deque
from typing import Any, Callable

from .errors import ErrorCode, SioError

_INT32_MIN = -(1 << 31)
_INT32_RANGE = 1 << 32


def _lock_timeout(timeout_ms: int) -> float:
    """Timeout for ``Lock.acquire``: -1 waits forever."""
    return -1 if timeout_ms < 0 else timeout_ms / 1000.0


def _wait_timeout(timeout_ms: int) -> float | None:
    """Timeout for condition waits: None waits forever."""
    return None if timeout_ms < 0 else timeout_ms / 1000.0


class Mutex:
    """A mutual-exclusion lock, optionally recursive."""

    def __init__(self, recursive: bool = False) -> None:
        self._recursive = bool(recursive)
        self._lock = threading.RLock() if recursive else threading.Lock()

    @property
    def recursive(self) -> bool:
        return self._recursive

    def lock(self) -> None:
        """Block until the mutex is held."""
        self._lock.acquire()

    def trylock(self) -> bool:
        """Take the mutex if it is free; False when it is busy."""
        return self._lock.acquire(blocking=False)

    def timedlock(self, timeout_ms: int) -> bool:
        """Wait up to ``timeout_ms`` (negative: forever); False on timeout."""
        return self._lock.acquire(True, _lock_timeout(timeout_ms))

    def unlock(self) -> None:
        """Release the mutex."""
        try:
            self._lock.release()
        except RuntimeError as exc:
            raise SioError(ErrorCode.MUTEX_UNLOCK, "mutex is not locked") from exc

    def __enter__(self) -> Mutex:
        self.lock()
        return self

    def __exit__(self, *args) -> None:
        self.unlock()


class RWLock:
    """A readers-writer lock; waiting writers keep new readers out."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

    def _read_blocked(self) -> bool:
        return self._writer or self._waiting_writers > 0

    def read_lock(self) -> None:
        with self._cond:
            while self._read_blocked():
                self._cond.wait()
            self._readers += 1

    def try_read_lock(self) -> bool:
        with self._cond:
            if self._read_blocked():
                return False
            self._readers += 1
            return True

    def write_lock(self) -> None:
        with self._cond:
            self._waiting_writers += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._waiting_writers -= 1
            self._writer = True

    def try_write_lock(self) -> bool:
        with self._cond:
            if self._writer or self._readers:
                return False
            self._writer = True
            return True

    def read_unlock(self) -> None:
        with self._cond:
            if self._readers == 0:
                raise SioError(ErrorCode.MUTEX_UNLOCK, "no read lock is held")
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def write_unlock(self) -> None:
        with self._cond:
            if not self._writer:
                raise SioError(ErrorCode.MUTEX_UNLOCK, "no write lock is held")
            self._writer = False
            self._cond.notify_all()


class Condition:
    """A condition variable usable with any Mutex."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._waiters: deque[threading.Lock] = deque()

    def _wait(self, mutex: Mutex, timeout: float) -> bool:
        waiter = threading.Lock()
        waiter.acquire()
        with self._guard:
            self._waiters.append(waiter)
        try:
            mutex.unlock()
        except SioError:
            with self._guard:
                self._waiters.remove(waiter)
            raise
        try:
            signalled = waiter.acquire(True, timeout)
        finally:
            mutex.lock()
        if not signalled:
            with self._guard:
                try:
                    self._waiters.remove(waiter)
                except ValueError:
                    signalled = True
        return signalled

    def wait(self, mutex: Mutex) -> None:
        """Release ``mutex``, wait for a signal, then take ``mutex`` again."""
        self._wait(mutex, -1)

    def timedwait(self, mutex: Mutex, timeout_ms: int) -> bool:
        """Like wait, giving up after ``timeout_ms``; False on timeout."""
        return self._wait(mutex, _lock_timeout(timeout_ms))

    def signal(self) -> None:
        """Wake one waiter."""
        with self._guard:
            if self._waiters:
                self._waiters.popleft().release()

    def broadcast(self) -> None:
        """Wake every waiter."""
        with self._guard:
            while self._waiters:
                self._waiters.popleft().release()


class Semaphore:
    """A counting semaphore with an optional maximum (0 means unlimited)."""

    def __init__(self, initial_count: int = 0, max_count: int = 0) -> None:
        if initial_count < 0 or max_count < 0:
            raise ValueError("counts must not be negative")
        if max_count and initial_count > max_count:
            raise ValueError("initial count exceeds the maximum")
        self._cond = threading.Condition(threading.Lock())
        self._count = initial_count
        self._max = max_count

    def wait(self) -> None:
        """Block until the count is positive, then decrement it."""
        self.timedwait(-1)

    def trywait(self) -> bool:
        """Decrement the count if positive; False when it is zero."""
        return self.timedwait(0)

    def timedwait(self, timeout_ms: int) -> bool:
        """Wait up to ``timeout_ms`` (negative: forever); False on timeout."""
        with self._cond:
            if not self._cond.wait_for(lambda: self._count > 0, _wait_timeout(timeout_ms)):
                return False
            self._count -= 1
            return True

    def post(self) -> None:
        """Increment the count and wake one waiter."""
        with self._cond:
            if self._max and self._count >= self._max:
                raise SioError(ErrorCode.SYS_LIMIT, "semaphore is at its maximum count")
            self._count += 1
            self._cond.notify()

    def value(self) -> int:
        with self._cond:
            return self._count


class Barrier:
    """Holds threads until ``count`` of them have arrived."""

    def __init__(self, count: int) -> None:
        if count <= 0:
            raise ValueError("barrier count must be positive")
        self._cond = threading.Condition(threading.Lock())
        self._threshold = count
        self._count = 0
        self._generation = 0

    def wait(self) -> bool:
        """Wait for the others; True for exactly one thread of each round."""
        with self._cond:
            generation = self._generation
            self._count += 1
            if self._count == self._threshold:
                self._generation += 1
                self._count = 0
                self._cond.notify_all()
                return True
            while generation == self._generation:
                self._cond.wait()
            return False


class SpinLock:
    """A busy-waiting lock for very short critical sections."""

    def __init__(self) -> None:
        self._flag = threading.Lock()

    def lock(self) -> None:
        while not self._flag.acquire(blocking=False):
            time.sleep(0)

    def trylock(self) -> bool:
        return self._flag.acquire(blocking=False)

    def unlock(self) -> None:
        try:
            self._flag.release()
        except RuntimeError as exc:
            raise SioError(ErrorCode.MUTEX_UNLOCK, "spinlock is not locked") from exc

    def __enter__(self) -> SpinLock:
        self.lock()
        return self

    def __exit__(self, *args) -> None:
        self.unlock()


class _Slot:
    __slots__ = ("value", "finalizer", "__weakref__")

    def __init__(self, value: Any) -> None:
        self.value = value
        self.finalizer: weakref.finalize | None = None


class ThreadLocal:
    """A per-thread value; the destructor gets each thread's value when it exits."""

    def __init__(self, destructor: Callable[[Any], object] | None = None) -> None:
        self._destructor = destructor
        self._local = threading.local()
        self._finalizers: list[weakref.finalize] = []
        self._guard = threading.Lock()
        self._deleted = False

    def _check(self) -> None:
        if self._deleted:
            raise SioError(ErrorCode.PARAM, "thread-local key has been deleted")

    def set(self, value: Any) -> None:
        self._check()
        old = getattr(self._local, "slot", None)
        if old is not None and old.finalizer is not None:
            old.finalizer.detach()
        slot = _Slot(value)
        if self._destructor is not None and value is not None:
            finalizer = weakref.finalize(slot, self._destructor, value)
            finalizer.atexit = False
            slot.finalizer = finalizer
            with self._guard:
                self._finalizers = [f for f in self._finalizers if f.alive]
                self._finalizers.append(finalizer)
        self._local.slot = slot

    def get(self) -> Any:
        """This thread's value, or None when it has not set one."""
        self._check()
        slot = getattr(self._local, "slot", None)
        return None if slot is None else slot.value

    def delete(self) -> None:
        """Drop the key; destructors are not run for remaining values."""
        with self._guard:
            for finalizer in self._finalizers:
                finalizer.detach()
            self._finalizers.clear()
        self._deleted = True
        self._local = threading.local()


class Once:
    """Runs a function exactly once, however many threads ask."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._done = False

    def call(self, func: Callable[[], object]) -> bool:
        """Run ``func`` if no earlier call has; True when this call ran it."""
        if self._done:
            return False
        with self._lock:
            if self._done:
                return False
            func()
            self._done = True
            return True


class AtomicInt:
    """A 32-bit signed integer updated atomically; arithmetic wraps around."""

    def __init__(self, value: int = 0) -> None:
        self._lock = threading.Lock()
        self._value = self._wrap(value)

    @staticmethod
    def _wrap(value: int) -> int:
        return (value - _INT32_MIN) % _INT32_RANGE + _INT32_MIN

    def add(self, value: int) -> int:
        """Add and return the new value."""
        with self._lock:
            self._value = self._wrap(self._value + value)
            return self._value

    def sub(self, value: int) -> int:
        """Subtract and return the new value."""
        return self.add(-value)

    def inc(self) -> int:
        return self.add(1)

    def dec(self) -> int:
        return self.add(-1)

    def cas(self, expected: int, new: int) -> bool:
        """Store ``new`` if the value equals ``expected``; True on success."""
        with self._lock:
            if self._value != self._wrap(expected):
                return False
            self._value = self._wrap(new)
            return True

    def store(self, value: int) -> None:
        with self._lock:
            self._value = self._wrap(value)

    def load(self) -> int:
        with self._lock:
            return self._value