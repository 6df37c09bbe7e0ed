"""Growable byte buffers with a read/write position, and a pool of them."""

from __future__ import annotations

import mmap
import os
import struct
from enum import Enum
from typing import Union

from .errors import ErrorCode, SioError, from_os_error

DEFAULT_SIZE = 4096

_Storage = Union[bytearray, memoryview]


class GrowthStrategy(Enum):
    """How an owned buffer grows when a write needs more room."""

    FIXED = "fixed"
    DOUBLE = "double"
    LINEAR = "linear"
    OPTIMAL = "optimal"


class Buffer:
    """A byte buffer with size, capacity and a current position.

    Integers are written and read in little-endian order.
    """

    def __init__(
        self,
        initial_capacity: int = 0,
        growth_strategy: GrowthStrategy = GrowthStrategy.DOUBLE,
        growth_factor: int = 0,
    ) -> None:
        if initial_capacity < 0:
            raise ValueError("initial capacity must not be negative")
        if growth_factor < 0:
            raise ValueError("growth factor must not be negative")
        capacity = initial_capacity or DEFAULT_SIZE
        self._setup(bytearray(capacity), size=0, owns_memory=True)
        self._growth_strategy = GrowthStrategy(growth_strategy)
        self._growth_factor = growth_factor or DEFAULT_SIZE

    def _setup(
        self,
        data: _Storage,
        *,
        size: int,
        owns_memory: bool,
        mapping: mmap.mmap | None = None,
    ) -> None:
        self._data: _Storage = data
        self._size = size
        self._position = 0
        self._owns_memory = owns_memory
        self._mapping = mapping
        self._readonly = isinstance(data, memoryview) and data.readonly
        self._growth_strategy = GrowthStrategy.FIXED
        self._growth_factor = DEFAULT_SIZE
        self._closed = False

    @classmethod
    def from_memory(cls, data) -> Buffer:
        """Wrap existing memory without copying it; the buffer cannot grow."""
        view = memoryview(data).cast("B")
        buffer = cls.__new__(cls)
        buffer._setup(view, size=len(view), owns_memory=False)
        return buffer

    @classmethod
    def mmap_file(cls, path, read_only: bool = True) -> Buffer:
        """Map a file into memory and wrap it as a buffer."""
        try:
            with open(path, "rb" if read_only else "r+b") as handle:
                length = os.fstat(handle.fileno()).st_size
                if length == 0:
                    raise SioError(ErrorCode.FILE_MMAP, "cannot map an empty file")
                access = mmap.ACCESS_READ if read_only else mmap.ACCESS_WRITE
                mapping = mmap.mmap(handle.fileno(), 0, access=access)
        except OSError as exc:
            raise from_os_error(exc) from exc
        buffer = cls.__new__(cls)
        buffer._setup(memoryview(mapping), size=length, owns_memory=False, mapping=mapping)
        return buffer

    # -- lifecycle ---------------------------------------------------------

    def close(self) -> None:
        """Release the buffer's memory; closing twice is harmless."""
        if self._closed:
            return
        if isinstance(self._data, memoryview):
            self._data.release()
        if self._mapping is not None:
            self._mapping.close()
            self._mapping = None
        self._data = bytearray()
        self._size = 0
        self._position = 0
        self._closed = True

    def __enter__(self) -> Buffer:
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def _check_open(self) -> None:
        if self._closed:
            raise SioError(ErrorCode.FILE_CLOSED, "buffer is closed")

    # -- properties --------------------------------------------------------

    def __len__(self) -> int:
        return self._size

    @property
    def size(self) -> int:
        return self._size

    @property
    def capacity(self) -> int:
        return len(self._data)

    @property
    def growth_strategy(self) -> GrowthStrategy:
        return self._growth_strategy

    @property
    def growth_factor(self) -> int:
        return self._growth_factor

    @property
    def owns_memory(self) -> bool:
        return self._owns_memory

    @property
    def is_mmap(self) -> bool:
        return self._mapping is not None

    @property
    def readonly(self) -> bool:
        return self._readonly

    @property
    def closed(self) -> bool:
        return self._closed

    # -- capacity management -----------------------------------------------

    def _set_capacity(self, new_capacity: int) -> None:
        if not self._owns_memory:
            raise SioError(ErrorCode.UNSUPPORTED, "buffer does not own its memory")
        current = len(self._data)
        if new_capacity < current:
            del self._data[new_capacity:]
        elif new_capacity > current:
            self._data.extend(bytes(new_capacity - current))

    def _grow_to(self, needed: int) -> None:
        capacity = len(self._data)
        if needed <= capacity:
            return
        if not self._owns_memory or self._growth_strategy is GrowthStrategy.FIXED:
            raise SioError(ErrorCode.BUFFER_TOO_SMALL)
        if self._growth_strategy is GrowthStrategy.LINEAR:
            steps = -(-(needed - capacity) // self._growth_factor)
            capacity += steps * self._growth_factor
        elif self._growth_strategy is GrowthStrategy.DOUBLE:
            capacity = max(capacity, 1)
            while capacity < needed:
                capacity *= 2
        else:
            capacity = max(capacity * 2, needed)
            capacity = -(-capacity // DEFAULT_SIZE) * DEFAULT_SIZE
        self._set_capacity(capacity)

    def reserve(self, additional_capacity: int) -> None:
        """Make room for at least that many bytes beyond the current size."""
        if additional_capacity < 0:
            raise ValueError("additional capacity must not be negative")
        self.ensure_capacity(self._size + additional_capacity)

    def ensure_capacity(self, min_capacity: int) -> None:
        """Grow the buffer to at least ``min_capacity`` bytes."""
        self._check_open()
        if min_capacity < 0:
            raise ValueError("capacity must not be negative")
        if min_capacity > len(self._data):
            self._set_capacity(min_capacity)

    def resize(self, new_capacity: int) -> None:
        """Set the capacity exactly, truncating content that no longer fits."""
        self._check_open()
        if new_capacity < 0:
            raise ValueError("capacity must not be negative")
        self._set_capacity(new_capacity)
        self._size = min(self._size, new_capacity)
        self._position = min(self._position, new_capacity)

    def shrink_to_fit(self) -> None:
        """Reduce the capacity to the current size."""
        self.resize(self._size)

    # -- raw I/O -----------------------------------------------------------

    def write(self, data) -> int:
        """Write bytes at the current position and return how many were written."""
        self._check_open()
        if self._readonly:
            raise SioError(ErrorCode.FILE_READONLY)
        view = memoryview(data).cast("B")
        end = self._position + len(view)
        self._grow_to(end)
        self._data[self._position:end] = view
        self._position = end
        self._size = max(self._size, end)
        return len(view)

    def read(self, size: int = -1) -> bytes:
        """Read up to ``size`` bytes (all remaining if negative)."""
        self._check_open()
        available = self._size - self._position
        count = available if size < 0 else min(size, available)
        start = self._position
        self._position += count
        return bytes(self._data[start:start + count])

    def seek(self, position: int) -> None:
        """Move to an absolute position within the content."""
        self._check_open()
        if not 0 <= position <= self._size:
            raise ValueError(f"position {position} outside 0..{self._size}")
        self._position = position

    def seek_relative(self, offset: int) -> None:
        """Move the position by ``offset`` bytes, forwards or backwards."""
        self.seek(self._position + offset)

    def tell(self) -> int:
        return self._position

    def clear(self) -> None:
        """Forget the content; capacity is kept."""
        self._check_open()
        self._size = 0
        self._position = 0

    def remaining(self) -> int:
        return self._size - self._position

    def at_end(self) -> bool:
        return self._position >= self._size

    def copy(self) -> Buffer:
        """Return an owned copy with the same content, position and strategy."""
        self._check_open()
        clone = Buffer(
            max(len(self._data), self._size, 1),
            self._growth_strategy,
            self._growth_factor,
        )
        clone._data[: self._size] = self._data[: self._size]
        clone._size = self._size
        clone._position = self._position
        return clone

    def getvalue(self) -> bytes:
        """Return the whole content as bytes."""
        self._check_open()
        return bytes(self._data[: self._size])

    # -- typed I/O ---------------------------------------------------------

    def _write_struct(self, fmt: str, value: int) -> None:
        try:
            packed = struct.pack(fmt, value)
        except struct.error as exc:
            raise ValueError(f"value {value!r} does not fit: {exc}") from exc
        self.write(packed)

    def _read_struct(self, fmt: str) -> int:
        self._check_open()
        needed = struct.calcsize(fmt)
        if self._size - self._position < needed:
            raise SioError(ErrorCode.EOF)
        (value,) = struct.unpack_from(fmt, self._data, self._position)
        self._position += needed
        return value

    def write_uint8(self, value: int) -> None:
        self._write_struct("<B", value)

    def write_uint16(self, value: int) -> None:
        self._write_struct("<H", value)

    def write_uint32(self, value: int) -> None:
        self._write_struct("<I", value)

    def write_uint64(self, value: int) -> None:
        self._write_struct("<Q", value)

    def read_uint8(self) -> int:
        return self._read_struct("<B")

    def read_uint16(self) -> int:
        return self._read_struct("<H")

    def read_uint32(self) -> int:
        return self._read_struct("<I")

    def read_uint64(self) -> int:
        return self._read_struct("<Q")


class BufferPool:
    """A fixed set of equally sized buffers handed out and taken back."""

    def __init__(self, buffer_count: int, buffer_size: int = 0) -> None:
        if buffer_count <= 0:
            raise ValueError("a pool needs at least one buffer")
        if buffer_size < 0:
            raise ValueError("buffer size must not be negative")
        self._buffer_size = buffer_size or DEFAULT_SIZE
        self._buffers = [Buffer(self._buffer_size) for _ in range(buffer_count)]
        self._used = [False] * buffer_count
        self._closed = False

    @property
    def capacity(self) -> int:
        """Number of buffers in the pool."""
        return len(self._buffers)

    @property
    def size(self) -> int:
        """Number of buffers currently handed out."""
        return sum(self._used)

    @property
    def buffer_size(self) -> int:
        return self._buffer_size

    def _check_open(self) -> None:
        if self._closed:
            raise SioError(ErrorCode.FILE_CLOSED, "buffer pool is closed")

    def acquire(self) -> Buffer | None:
        """Hand out a free buffer, or None when all are in use."""
        self._check_open()
        for index, used in enumerate(self._used):
            if not used:
                self._used[index] = True
                buffer = self._buffers[index]
                buffer.clear()
                return buffer
        return None

    def _index_of(self, buffer: Buffer) -> int:
        for index, candidate in enumerate(self._buffers):
            if candidate is buffer:
                return index
        raise ValueError("buffer does not belong to this pool")

    def release(self, buffer: Buffer) -> None:
        """Take a buffer back into the pool."""
        self._check_open()
        index = self._index_of(buffer)
        if not self._used[index]:
            raise ValueError("buffer is not in use")
        self._used[index] = False
        buffer.clear()

    def resize(self, new_buffer_count: int) -> None:
        """Change the number of buffers; buffers in use are never dropped."""
        self._check_open()
        if new_buffer_count <= 0:
            raise ValueError("a pool needs at least one buffer")
        current = len(self._buffers)
        if new_buffer_count < current:
            if any(self._used[new_buffer_count:]):
                raise SioError(ErrorCode.BUSY, "buffers beyond the new size are in use")
            for buffer in self._buffers[new_buffer_count:]:
                buffer.close()
            del self._buffers[new_buffer_count:]
            del self._used[new_buffer_count:]
        else:
            extra = new_buffer_count - current
            self._buffers.extend(Buffer(self._buffer_size) for _ in range(extra))
            self._used.extend([False] * extra)

    def close(self) -> None:
        """Close every buffer in the pool."""
        if self._closed:
            return
        for buffer in self._buffers:
            buffer.close()
        self._buffers.clear()
        self._used.clear()
        self._closed = True

    def __enter__(self) -> BufferPool:
        return self

    def __exit__(self, *args) -> None:
        self.close()