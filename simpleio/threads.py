"""Threads, thread identity helpers and a bounded worker pool."""

from __future__ import annotations

import os
import threading
import time
from collections import deque
from enum import IntFlag
from typing import Any, Callable

import psutil

from .errors import ErrorCode, SioError, from_os_error

_LOW_NICE = 10
_HIGH_NICE = -10


class ThreadAttr(IntFlag):
    """Attributes requested when a thread is created."""

    DEFAULT = 0
    DETACHED = 1 << 0
    REALTIME = 1 << 1
    HIGH_PRIO = 1 << 2
    LOW_PRIO = 1 << 3
    AFFINITY = 1 << 4


def _apply_scheduling(attr: ThreadAttr) -> None:
    """Best-effort scheduling requests for the calling thread."""
    tid = threading.get_native_id()
    if ThreadAttr.REALTIME in attr and hasattr(os, "sched_setscheduler"):
        try:
            policy = os.SCHED_FIFO
            param = os.sched_param(os.sched_get_priority_min(policy))
            os.sched_setscheduler(0, policy, param)
        except OSError:
            pass
    if hasattr(os, "setpriority"):
        nice = None
        if ThreadAttr.HIGH_PRIO in attr:
            nice = _HIGH_NICE
        elif ThreadAttr.LOW_PRIO in attr:
            nice = _LOW_NICE
        if nice is not None:
            try:
                os.setpriority(os.PRIO_PROCESS, tid, nice)
            except OSError:
                pass


class Thread:
    """A started thread running ``func(arg)``; join returns what it returned."""

    def __init__(
        self,
        func: Callable[[Any], Any],
        arg: Any = None,
        attr: ThreadAttr = ThreadAttr.DEFAULT,
    ) -> None:
        if not callable(func):
            raise ValueError("thread function must be callable")
        self._func = func
        self._arg = arg
        self._attr = ThreadAttr(attr)
        self._result: Any = None
        self._exc: BaseException | None = None
        self._detached = ThreadAttr.DETACHED in self._attr
        self._joined = False
        self._thread = threading.Thread(target=self._run, daemon=self._detached)
        try:
            self._thread.start()
        except RuntimeError as exc:
            raise SioError(ErrorCode.THREAD_CREATE, str(exc)) from exc

    def _run(self) -> None:
        if self._attr & (ThreadAttr.REALTIME | ThreadAttr.HIGH_PRIO | ThreadAttr.LOW_PRIO):
            _apply_scheduling(self._attr)
        try:
            self._result = self._func(self._arg)
        except BaseException as exc:  # re-raised in join
            self._exc = exc

    @property
    def running(self) -> bool:
        return self._thread.is_alive()

    @property
    def detached(self) -> bool:
        return self._detached

    @property
    def native_id(self) -> int | None:
        return self._thread.native_id

    def join(self) -> Any:
        """Wait for the thread and return its result, re-raising its exception."""
        if self._detached:
            raise SioError(ErrorCode.THREAD_JOIN, "thread is detached")
        if self._joined:
            raise SioError(ErrorCode.THREAD_JOIN, "thread has already been joined")
        if threading.current_thread() is self._thread:
            raise SioError(ErrorCode.DEADLOCK, "a thread cannot join itself")
        self._thread.join()
        self._joined = True
        if self._exc is not None:
            raise self._exc
        return self._result

    def detach(self) -> None:
        """Give up the right to join; the thread finishes on its own."""
        if self._detached:
            raise SioError(ErrorCode.THREAD_DETACH, "thread is already detached")
        if self._joined:
            raise SioError(ErrorCode.THREAD_DETACH, "thread has already been joined")
        self._detached = True

    def _live_id(self) -> int:
        tid = self._thread.native_id
        if tid is None or not self._thread.is_alive():
            raise SioError(ErrorCode.SYS_NOPROC, "thread is not running")
        return tid

    def set_affinity(self, cpu_id: int) -> None:
        """Bind the thread to one CPU."""
        count = hardware_threads()
        if cpu_id < 0 or (count and cpu_id >= count):
            raise ValueError(f"cpu {cpu_id} outside 0..{max(count - 1, 0)}")
        if not hasattr(os, "sched_setaffinity"):
            raise SioError(ErrorCode.UNSUPPORTED, "thread affinity is not supported")
        tid = self._live_id()
        try:
            os.sched_setaffinity(tid, {cpu_id})
        except OSError as exc:
            raise from_os_error(exc) from exc

    def set_priority(self, priority: int) -> None:
        """Set the thread's scheduling priority (a nice value)."""
        if not hasattr(os, "setpriority"):
            raise SioError(ErrorCode.UNSUPPORTED, "thread priority is not supported")
        tid = self._live_id()
        try:
            os.setpriority(os.PRIO_PROCESS, tid, priority)
        except OSError as exc:
            raise from_os_error(exc) from exc


def get_thread_id() -> int:
    """The operating-system identifier of the calling thread."""
    return threading.get_native_id()


def thread_id_equal(a: int, b: int) -> bool:
    return a == b


def yield_thread() -> None:
    """Let another thread run."""
    if hasattr(os, "sched_yield"):
        os.sched_yield()
    else:
        time.sleep(0)


def sleep(milliseconds: int) -> None:
    """Pause the calling thread."""
    if milliseconds < 0:
        raise ValueError("sleep time must not be negative")
    time.sleep(milliseconds / 1000.0)


def hardware_threads() -> int:
    """Number of logical CPUs, or 0 if unknown."""
    return psutil.cpu_count(logical=True) or os.cpu_count() or 0


class ThreadPool:
    """Worker threads taking tasks from a bounded queue."""

    def __init__(self, thread_count: int, task_capacity: int) -> None:
        if thread_count <= 0:
            raise ValueError("a pool needs at least one thread")
        if task_capacity <= 0:
            raise ValueError("task capacity must be positive")
        self._capacity = task_capacity
        self._tasks: deque[tuple[Callable[[Any], Any], Any]] = deque()
        self._lock = threading.Lock()
        self._not_empty = threading.Condition(self._lock)
        self._not_full = threading.Condition(self._lock)
        self._shutdown = False
        self._paused = False
        self._errors: list[BaseException] = []
        self._threads = [
            threading.Thread(target=self._worker, daemon=True) for _ in range(thread_count)
        ]
        for worker in self._threads:
            try:
                worker.start()
            except RuntimeError as exc:
                self.close(False)
                raise SioError(ErrorCode.THREAD_CREATE, str(exc)) from exc

    def _worker(self) -> None:
        while True:
            with self._lock:
                while not self._shutdown and (self._paused or not self._tasks):
                    self._not_empty.wait()
                if not self._tasks:
                    return
                func, arg = self._tasks.popleft()
                self._not_full.notify()
            try:
                func(arg)
            except Exception as exc:
                with self._lock:
                    self._errors.append(exc)

    @property
    def errors(self) -> list[BaseException]:
        """Exceptions raised by tasks so far."""
        with self._lock:
            return list(self._errors)

    @property
    def paused(self) -> bool:
        return self._paused

    def add_task(self, func: Callable[[Any], Any], arg: Any = None, wait_if_full: bool = True) -> None:
        """Queue ``func(arg)``; when full, wait or raise BUSY."""
        if not callable(func):
            raise ValueError("task must be callable")
        with self._lock:
            while not self._shutdown and len(self._tasks) >= self._capacity:
                if not wait_if_full:
                    raise SioError(ErrorCode.BUSY, "task queue is full")
                self._not_full.wait()
            if self._shutdown:
                raise SioError(ErrorCode.SHUTDOWN if hasattr(ErrorCode, "SHUTDOWN") else ErrorCode.BUSY,
                               "thread pool is shut down")
            self._tasks.append((func, arg))
            self._not_empty.notify()

    def pause(self) -> None:
        """Stop workers from taking new tasks."""
        with self._lock:
            self._paused = True

    def resume(self) -> None:
        """Let workers take tasks again."""
        with self._lock:
            self._paused = False
            self._not_empty.notify_all()

    def close(self, finish_tasks: bool = True) -> None:
        """Shut down, running the queued tasks first or discarding them."""
        with self._lock:
            if self._shutdown:
                return
            self._shutdown = True
            self._paused = False
            if not finish_tasks:
                self._tasks.clear()
            self._not_empty.notify_all()
            self._not_full.notify_all()
        current = threading.current_thread()
        for worker in self._threads:
            if worker is not current and worker.is_alive():
                worker.join()

    def __enter__(self) -> ThreadPool:
        return self

    def __exit__(self, *args) -> None:
        self.close(True)

    def thread_count(self) -> int:
        return len(self._threads)

    def pending_tasks(self) -> int:
        with self._lock:
            return len(self._tasks)