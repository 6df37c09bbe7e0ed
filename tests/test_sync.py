import gc
import threading
import time

import pytest

from simpleio.errors import ErrorCode, SioError
from simpleio.sync import (
    AtomicInt,
    Barrier,
    Condition,
    Mutex,
    Once,
    RWLock,
    Semaphore,
    SpinLock,
    ThreadLocal,
)


# -- mutexes -----------------------------------------------------------------


def test_mutex_lock_trylock_timedlock():
    mutex = Mutex(False)
    mutex.lock()
    assert mutex.trylock() is False
    assert mutex.timedlock(100) is False
    mutex.unlock()
    assert mutex.trylock() is True
    mutex.unlock()
    assert mutex.timedlock(100) is True
    mutex.unlock()


def test_timedlock_waits_roughly_the_timeout():
    mutex = Mutex()
    mutex.lock()
    start = time.monotonic()
    assert mutex.timedlock(100) is False
    assert time.monotonic() - start >= 0.09
    mutex.unlock()


def test_recursive_mutex_locks_twice():
    mutex = Mutex(True)
    mutex.lock()
    assert mutex.trylock() is True
    mutex.unlock()
    mutex.unlock()
    with pytest.raises(SioError) as info:
        mutex.unlock()
    assert info.value.code == ErrorCode.MUTEX_UNLOCK


def test_unlock_unlocked_mutex_raises():
    with pytest.raises(SioError) as info:
        Mutex().unlock()
    assert info.value.code == ErrorCode.MUTEX_UNLOCK


def test_mutex_counter_across_threads():
    mutex = Mutex()
    counter = [0]

    def work():
        for _ in range(1000):
            with mutex:
                counter[0] += 1

    workers = [threading.Thread(target=work) for _ in range(5)]
    for worker in workers:
        worker.start()
    for worker in workers:
        worker.join()
    assert counter[0] == 5000
    assert mutex.trylock() is True
    mutex.unlock()


# -- condition variables -----------------------------------------------------


def _cond_waiter(cond, mutex, state, wait_time_ms, results):
    mutex.lock()
    while not state["flag"]:
        if wait_time_ms < 0:
            cond.wait(mutex)
        elif not cond.timedwait(mutex, wait_time_ms):
            mutex.unlock()
            results.append(ErrorCode.TIMEOUT)
            return
    state["flag"] = False
    mutex.unlock()
    results.append(1)


def test_condition_signal_wakes_waiter():
    mutex, cond = Mutex(), Condition()
    state, results = {"flag": False}, []
    waiter = threading.Thread(target=_cond_waiter, args=(cond, mutex, state, 1000, results))
    waiter.start()
    time.sleep(0.2)
    mutex.lock()
    state["flag"] = True
    cond.signal()
    mutex.unlock()
    waiter.join()
    assert results == [1]
    assert state["flag"] is False
    assert mutex.trylock() is True
    mutex.unlock()


def test_condition_timedwait_times_out():
    mutex, cond = Mutex(), Condition()
    state, results = {"flag": False}, []
    waiter = threading.Thread(target=_cond_waiter, args=(cond, mutex, state, 200, results))
    waiter.start()
    waiter.join()
    assert results == [ErrorCode.TIMEOUT]
    mutex.lock()
    assert cond.timedwait(mutex, 20) is False
    mutex.unlock()


def test_condition_broadcast_wakes_all():
    mutex, cond = Mutex(), Condition()
    state, results = {"flag": False}, []
    ready = Semaphore(0)

    def waiter():
        mutex.lock()
        ready.post()
        while not state["flag"]:
            cond.wait(mutex)
        results.append(1)
        mutex.unlock()

    workers = [threading.Thread(target=waiter) for _ in range(3)]
    for worker in workers:
        worker.start()
    for _ in workers:
        ready.wait()
    mutex.lock()
    state["flag"] = True
    cond.broadcast()
    mutex.unlock()
    for worker in workers:
        worker.join(5)
    assert results == [1, 1, 1]
    assert ready.value() == 0
    assert mutex.trylock() is True
    mutex.unlock()


def test_condition_wait_requires_held_recursive_mutex():
    with pytest.raises(SioError) as info:
        Condition().timedwait(Mutex(True), 10)
    assert info.value.code == ErrorCode.MUTEX_UNLOCK


# -- barriers ----------------------------------------------------------------


def test_barrier_releases_all_threads():
    num_threads = 5
    barrier = Barrier(num_threads + 1)
    mutex = Mutex()
    passed, serial = [], []

    def work(thread_id):
        time.sleep((thread_id + 1) * 0.02)
        is_serial = barrier.wait()
        with mutex:
            passed.append(thread_id)
            serial.append(is_serial)

    workers = [threading.Thread(target=work, args=(i,)) for i in range(num_threads)]
    for worker in workers:
        worker.start()
    main_serial = barrier.wait()
    for worker in workers:
        worker.join()
    assert main_serial in (True, False)
    assert sorted(passed) == list(range(num_threads))
    assert (serial + [main_serial]).count(True) == 1
    assert mutex.trylock() is True
    mutex.unlock()


def test_single_thread_barrier_is_serial():
    assert Barrier(1).wait() is True


def test_barrier_rejects_zero():
    with pytest.raises(ValueError):
        Barrier(0)


# -- semaphores --------------------------------------------------------------


def test_semaphore_sequence():
    sem = Semaphore(2, 2)
    sem.wait()
    sem.wait()
    assert sem.trywait() is False
    sem.post()
    assert sem.trywait() is True
    assert sem.timedwait(100) is False
    sem.post()
    assert sem.value() == 1


def test_semaphore_post_beyond_max_raises():
    sem = Semaphore(1, 1)
    with pytest.raises(SioError) as info:
        sem.post()
    assert info.value.code == ErrorCode.SYS_LIMIT


def test_semaphore_unlimited():
    sem = Semaphore(0, 0)
    for _ in range(10):
        sem.post()
    assert sem.value() == 10


def test_semaphore_initial_above_max_rejected():
    with pytest.raises(ValueError):
        Semaphore(3, 2)


# -- read-write locks --------------------------------------------------------


def test_rwlock_readers_share_writers_exclude():
    rw = RWLock()
    rw.read_lock()
    assert rw.try_read_lock() is True
    assert rw.try_write_lock() is False
    rw.read_unlock()
    rw.read_unlock()
    assert rw.try_write_lock() is True
    assert rw.try_read_lock() is False
    assert rw.try_write_lock() is False
    rw.write_unlock()
    assert rw.try_read_lock() is True
    rw.read_unlock()


def test_rwlock_unlock_without_lock_raises():
    rw = RWLock()
    with pytest.raises(SioError):
        rw.read_unlock()
    with pytest.raises(SioError) as info:
        rw.write_unlock()
    assert info.value.code == ErrorCode.MUTEX_UNLOCK


def test_rwlock_writer_waits_for_reader():
    rw = RWLock()
    rw.read_lock()
    order = []

    def writer():
        rw.write_lock()
        order.append("write")
        rw.write_unlock()

    thread = threading.Thread(target=writer)
    thread.start()
    time.sleep(0.1)
    order.append("read-done")
    rw.read_unlock()
    thread.join(5)
    assert order == ["read-done", "write"]
    assert rw.try_write_lock() is True
    rw.write_unlock()


# -- spinlocks ---------------------------------------------------------------


def test_spinlock():
    spin = SpinLock()
    spin.lock()
    assert spin.trylock() is False
    spin.unlock()
    assert spin.trylock() is True
    spin.unlock()
    with pytest.raises(SioError):
        spin.unlock()


def test_spinlock_counter():
    spin = SpinLock()
    counter = [0]

    def work():
        for _ in range(500):
            with spin:
                counter[0] += 1

    workers = [threading.Thread(target=work) for _ in range(4)]
    for worker in workers:
        worker.start()
    for worker in workers:
        worker.join()
    assert counter[0] == 2000
    assert spin.trylock() is True
    spin.unlock()


# -- thread-local storage ----------------------------------------------------


def test_thread_local_values_are_per_thread():
    tls = ThreadLocal()
    tls.set(1)
    seen = []

    def work():
        seen.append(tls.get())
        tls.set(2)
        seen.append(tls.get())

    thread = threading.Thread(target=work)
    thread.start()
    thread.join()
    assert seen == [None, 2]
    assert tls.get() == 1


def test_thread_local_destructor_runs_on_thread_exit():
    destroyed = []
    tls = ThreadLocal(destroyed.append)

    thread = threading.Thread(target=lambda: tls.set("value"))
    thread.start()
    thread.join()
    deadline = time.monotonic() + 2
    while not destroyed and time.monotonic() < deadline:
        gc.collect()
        time.sleep(0.01)
    assert destroyed == ["value"]


def test_thread_local_delete():
    destroyed = []
    tls = ThreadLocal(destroyed.append)
    tls.set("value")
    tls.delete()
    gc.collect()
    assert destroyed == []
    with pytest.raises(SioError) as info:
        tls.get()
    assert info.value.code == ErrorCode.PARAM


# -- once --------------------------------------------------------------------


def test_once_runs_function_once():
    once = Once()
    calls = []
    results = []
    mutex = Mutex()

    def work():
        ran = once.call(lambda: calls.append(1))
        with mutex:
            results.append(ran)

    workers = [threading.Thread(target=work) for _ in range(8)]
    for worker in workers:
        worker.start()
    for worker in workers:
        worker.join()
    assert calls == [1]
    assert results.count(True) == 1
    assert once.call(lambda: calls.append(2)) is False
    assert calls == [1]


# -- atomics -----------------------------------------------------------------


def test_atomic_operations():
    value = AtomicInt(0)
    assert value.inc() == 1
    assert value.load() == 1
    assert value.dec() == 0
    assert value.add(5) == 5
    assert value.sub(2) == 3
    assert value.load() == 3
    assert value.cas(3, 10) is True
    assert value.load() == 10
    assert value.cas(3, 20) is False
    assert value.load() == 10
    value.store(42)
    assert value.load() == 42


def test_atomic_wraps_at_32_bits():
    value = AtomicInt(2**31 - 1)
    assert value.inc() == -(2**31)
    assert value.dec() == 2**31 - 1


def test_atomic_concurrent_increments():
    value = AtomicInt()

    def work():
        for _ in range(1000):
            value.inc()

    workers = [threading.Thread(target=work) for _ in range(4)]
    for worker in workers:
        worker.start()
    for worker in workers:
        worker.join()
    assert value.load() == 4000