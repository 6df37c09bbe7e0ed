# simpleio

A small library of I/O and concurrency building blocks.

- `simpleio.errors`: the `ErrorCode` enumeration, the `SioError` exception
  (its `code` is an `ErrorCode` and its `message` a description), and
  `strerror`, `from_errno` and `from_os_error` for turning operating-system
  failures into codes.
- `simpleio.buffer`: `Buffer`, a byte buffer with a size, a capacity and a
  read/write position. It grows by a `GrowthStrategy` (`FIXED`, `DOUBLE`,
  `LINEAR`, `OPTIMAL`), reads and writes unsigned 8/16/32/64-bit integers in
  little-endian order, can wrap existing memory (`Buffer.from_memory`, which
  never grows) or a memory-mapped file (`Buffer.mmap_file`). `BufferPool`
  hands out equally sized buffers; `acquire` returns `None` when all are in use.
- `simpleio.address`: `Address`, an immutable IPv4/IPv6 socket address with
  `from_parts`, `from_string` (`host:port` or `[host]:port`, numeric hosts
  only), `loopback`, `any`, `matches` (selected by `CompareFlags`),
  `is_loopback`, `is_multicast` and `sockaddr`; plus `getaddrinfo`,
  `gai_strerror`, `inet_pton` and `inet_ntop`.
- `simpleio.fs`: path helpers (`path_normalize`, `path_join`, `path_dirname`,
  `path_basename`, `path_extension`, `path_absolute`), file operations
  (`file_info`, `file_copy`, `file_move`, `file_delete`, `file_chmod`,
  `file_symlink`, `file_readlink`, `file_temp`), directory operations
  (`dir_create`, `dir_create_recursive`, `dir_entries`, `dir_enumerate`,
  `dir_enumerate_recursive`, `dir_delete`, `dir_delete_recursive`,
  `dir_getcwd`, `dir_chdir`), `disk_space` and `drives`.
- `simpleio.sync`: `Mutex` (optionally recursive), `RWLock`, `Condition`,
  `Semaphore` (with an optional maximum count), `Barrier`, `SpinLock`,
  `ThreadLocal` (with an optional per-thread destructor), `Once` and
  `AtomicInt` (a wrapping 32-bit integer).
- `simpleio.threads`: `Thread` (join returns the function's result),
  `ThreadAttr`, `ThreadPool` with a bounded task queue that can be paused and
  resumed, and the helpers `get_thread_id`, `thread_id_equal`,
  `yield_thread`, `sleep` and `hardware_threads`.
- `simpleio.timer`: `TimerStream`, a one-shot or periodic monotonic timer.
  `read()` returns the number of expirations since the last read;
  `read(nonblocking=True)` raises `SioError` with `ErrorCode.WOULDBLOCK`
  before the next expiry. `write()` re-arms it, and `interval`,
  `set_interval`, `oneshot` and `set_oneshot` inspect and change it.

Failures raise `SioError`; invalid arguments raise `ValueError`. Lock-style
"try" and timed operations return `False` rather than raising when they
cannot proceed.

## Installation

```
pip install simpleio
```

## Examples

Buffers:

```python
from simpleio.buffer import Buffer

with Buffer() as buf:
    buf.write(b"hello")
    buf.write_uint32(42)
    buf.seek(0)
    assert buf.read(5) == b"hello"
    assert buf.read_uint32() == 42
```

Addresses:

```python
from simpleio.address import Address

addr = Address.from_string("[::1]:8080")
print(addr, addr.is_loopback())   # [::1]:8080 True
```

Synchronization and thread pools:

```python
from simpleio.sync import Semaphore
from simpleio.threads import ThreadPool

sem = Semaphore(2, 2)
sem.wait()
sem.post()

with ThreadPool(3, 10) as pool:
    pool.add_task(print, "task ran", True)
```

Timers:

```python
from simpleio.timer import TimerStream

with TimerStream(100, False) as timer:
    expirations = timer.read()
    print(expirations, timer.interval())   # e.g. 1 100
```

## What it does not do

The timer is the only stream: there are no file, socket, pipe or signal
streams (`StreamType.SIGNAL` is named but nothing opens one). There is no
process creation, no named inter-process semaphores and no futex or raw
operating-system timer access. The package is a library only and installs no
command.

## Running the tests

```
pip install -e ".[test]"
pytest
```