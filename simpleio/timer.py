"""Timer streams: readable objects that report how often a timer has expired."""

from __future__ import annotations

import threading
import time
from enum import Enum, IntFlag

from .errors import ErrorCode, SioError

_NS_PER_MS = 1_000_000
_UINT64_MAX = (1 << 64) - 1
_INT32_MIN = -(1 << 31)
_INT32_RANGE = 1 << 32
_EXPIRATION_SIZE = 8


class StreamFlags(IntFlag):
    """Access modes a stream is opened with."""

    READ = 1 << 0
    WRITE = 1 << 1
    RDWR = READ | WRITE


class StreamType(Enum):
    """Kinds of stream."""

    TIMER = "timer"
    SIGNAL = "signal"


def _to_int32(value: int) -> int:
    return (value - _INT32_MIN) % _INT32_RANGE + _INT32_MIN


def _check_ms(value: int, name: str) -> int:
    value = int(value)
    if not 0 <= value <= _UINT64_MAX:
        raise SioError(ErrorCode.PARAM, f"{name} must be a non-negative 64-bit value")
    return value


class TimerStream:
    """A monotonic timer that fires once or periodically.

    Reading returns the number of expirations since the last read; with
    ``nonblocking`` set a read before the next expiry raises WOULDBLOCK.
    Writing re-arms the timer.  A value of zero disarms it.
    """

    def __init__(
        self,
        interval_ms: int,
        oneshot: bool = False,
        flags: StreamFlags = StreamFlags.RDWR,
    ) -> None:
        interval_ms = _check_ms(interval_ms, "interval")
        self._flags = StreamFlags(flags)
        self._cond = threading.Condition(threading.Lock())
        self._closed = False
        self._deadline: int | None = None
        self._period_ns = 0
        with self._cond:
            self._settime(interval_ms * _NS_PER_MS, 0 if oneshot else interval_ms * _NS_PER_MS)

    # -- internal timer state (all under self._cond) -------------------------

    def _settime(self, value_ns: int, period_ns: int) -> None:
        self._period_ns = period_ns
        self._deadline = time.monotonic_ns() + value_ns if value_ns > 0 else None
        self._cond.notify_all()

    def _gettime(self) -> tuple[int, int]:
        """Remaining time to the next expiry and the period, in nanoseconds."""
        if self._deadline is None:
            return 0, self._period_ns
        remaining = max(self._deadline - time.monotonic_ns(), 1)
        return remaining, self._period_ns

    def _collect(self) -> int:
        """Consume and return the expirations that have happened so far."""
        if self._deadline is None:
            return 0
        now = time.monotonic_ns()
        if now < self._deadline:
            return 0
        if self._period_ns:
            count = 1 + (now - self._deadline) // self._period_ns
            self._deadline += count * self._period_ns
        else:
            count = 1
            self._deadline = None
        return count

    def _check_open(self) -> None:
        if self._closed:
            raise SioError(ErrorCode.FILE_CLOSED, "timer stream is closed")

    # -- stream operations ----------------------------------------------------

    def read(self, nonblocking: bool = False) -> int:
        """Wait for the timer and return the number of expirations."""
        if StreamFlags.READ not in self._flags:
            raise SioError(ErrorCode.PERM, "timer stream is not readable")
        with self._cond:
            while True:
                self._check_open()
                count = self._collect()
                if count:
                    return count
                if nonblocking:
                    raise SioError(ErrorCode.WOULDBLOCK, "timer has not expired yet")
                if self._deadline is None:
                    self._cond.wait()
                else:
                    wait_ns = self._deadline - time.monotonic_ns()
                    if wait_ns > 0:
                        self._cond.wait(wait_ns / 1e9)

    def write(self, value_ms: int, period_ms: int = 0) -> int:
        """Re-arm the timer: first expiry after ``value_ms``, then every ``period_ms``.

        Returns the number of bytes the request occupies (8, or 16 with a period).
        """
        if StreamFlags.WRITE not in self._flags:
            raise SioError(ErrorCode.PERM, "timer stream is not writable")
        value_ms = _check_ms(value_ms, "value")
        period_ms = _check_ms(period_ms, "period")
        with self._cond:
            self._check_open()
            self._settime(value_ms * _NS_PER_MS, period_ms * _NS_PER_MS)
        return _EXPIRATION_SIZE * (2 if period_ms > 0 else 1)

    def close(self) -> None:
        """Stop the timer; closing twice is harmless."""
        with self._cond:
            if self._closed:
                return
            self._closed = True
            self._deadline = None
            self._cond.notify_all()

    def __enter__(self) -> TimerStream:
        return self

    def __exit__(self, *args) -> None:
        self.close()

    # -- information and options ----------------------------------------------

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def flags(self) -> StreamFlags:
        return self._flags

    def stream_type(self) -> StreamType:
        return StreamType.TIMER

    def readable(self) -> bool:
        return StreamFlags.READ in self._flags

    def writable(self) -> bool:
        return StreamFlags.WRITE in self._flags

    def seekable(self) -> bool:
        return False

    def interval(self) -> int:
        """The repeat interval in milliseconds; 0 for a one-shot timer."""
        with self._cond:
            self._check_open()
            _, period_ns = self._gettime()
        return _to_int32(period_ns // _NS_PER_MS)

    def set_interval(self, interval_ms: int) -> None:
        """Change the repeat interval; an armed timer restarts with it."""
        interval_ms = _to_int32(int(interval_ms))
        with self._cond:
            self._check_open()
            value_ns, _ = self._gettime()
            period_ns = max(interval_ms, 0) * _NS_PER_MS
            if value_ns:
                value_ns = period_ns
            self._settime(value_ns, period_ns)

    def oneshot(self) -> bool:
        """True when the timer does not repeat."""
        with self._cond:
            self._check_open()
            _, period_ns = self._gettime()
        return period_ns == 0

    def set_oneshot(self, oneshot: bool) -> None:
        """Make the timer one-shot, or keep its current interval when False."""
        with self._cond:
            self._check_open()
            value_ns, period_ns = self._gettime()
            interval_ms = _to_int32(period_ns // _NS_PER_MS)
            period_ns = 0 if oneshot else max(interval_ms, 0) * _NS_PER_MS
            self._settime(value_ns, period_ns)