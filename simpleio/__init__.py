"""Buffers, socket addresses, filesystem helpers, synchronization primitives, thread pools and timer streams."""

__version__ = "0.1.0"
__all__ = ["errors", "buffer", "address", "fs", "sync", "threads", "timer"]