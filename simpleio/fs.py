"""Path manipulation and file-system queries and operations."""

from __future__ import annotations

import os
import shutil
import stat
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass
from enum import IntEnum
from typing import Callable, Iterator

import psutil

from .errors import ErrorCode, SioError, from_os_error

MAX_FILENAME_LEN = 260 if os.name == "nt" else 256

_SEPS = os.sep + (os.altsep or "")

_DRIVE_TYPES = ("cdrom", "removable", "remote", "ramdisk", "fixed")


class FileType(IntEnum):
    UNKNOWN = 0
    REGULAR = 1
    DIRECTORY = 2
    SYMLINK = 3
    PIPE = 4
    SOCKET = 5
    CHAR_DEVICE = 6
    BLOCK_DEVICE = 7


@dataclass(frozen=True)
class FileInfo:
    """What is known about one file-system entry."""

    type: FileType
    size: int
    access_time: int
    modify_time: int
    create_time: int
    permissions: int
    name: str


@dataclass(frozen=True)
class DiskSpace:
    total_bytes: int
    free_bytes: int
    available_bytes: int


@dataclass(frozen=True)
class DriveInfo:
    name: str
    type: str
    filesystem: str
    mount_point: str


EntryCallback = Callable[[str, FileInfo], object]


@contextmanager
def _os_errors() -> Iterator[None]:
    try:
        yield
    except OSError as exc:
        raise from_os_error(exc) from exc


def _require(path: str) -> str:
    path = os.fspath(path)
    if not path:
        raise ValueError("path must not be empty")
    return path


def _file_type(mode: int) -> FileType:
    for check, kind in (
        (stat.S_ISLNK, FileType.SYMLINK),
        (stat.S_ISREG, FileType.REGULAR),
        (stat.S_ISDIR, FileType.DIRECTORY),
        (stat.S_ISFIFO, FileType.PIPE),
        (stat.S_ISSOCK, FileType.SOCKET),
        (stat.S_ISCHR, FileType.CHAR_DEVICE),
        (stat.S_ISBLK, FileType.BLOCK_DEVICE),
    ):
        if check(mode):
            return kind
    return FileType.UNKNOWN


def _info_from_stat(name: str, st: os.stat_result) -> FileInfo:
    return FileInfo(
        type=_file_type(st.st_mode),
        size=st.st_size,
        access_time=int(st.st_atime),
        modify_time=int(st.st_mtime),
        create_time=int(getattr(st, "st_birthtime", st.st_ctime)),
        permissions=stat.S_IMODE(st.st_mode),
        name=name,
    )


# -- paths -------------------------------------------------------------------


def path_normalize(path: str) -> str:
    """Use the platform separator, collapse separators and resolve . and .."""
    path = _require(path)
    if os.sep == "/":
        path = path.replace("\\", "/")
    normalized = os.path.normpath(path)
    if os.sep == "/" and normalized.startswith("//"):
        normalized = "/" + normalized.lstrip("/")
    return normalized


def path_join(base: str, component: str) -> str:
    """Join two path components."""
    return os.path.join(os.fspath(base), os.fspath(component))


def path_dirname(path: str) -> str:
    """The directory part of a path, ``.`` when there is none."""
    path = _require(path)
    stripped = path.rstrip(_SEPS)
    if not stripped:
        return os.sep
    drive, rest = os.path.splitdrive(stripped)
    if not rest:
        return stripped
    parent = os.path.dirname(stripped)
    if not parent:
        return "."
    trimmed = parent.rstrip(_SEPS)
    if not trimmed or trimmed == drive:
        return parent
    return trimmed


def path_basename(path: str) -> str:
    """The last component of a path, ignoring trailing separators."""
    path = _require(path)
    stripped = path.rstrip(_SEPS)
    if not stripped:
        return os.sep
    return os.path.basename(stripped)


def path_extension(path: str) -> str:
    """The extension of the last component including its dot, or ''."""
    return os.path.splitext(path_basename(path))[1]


def path_absolute(path: str) -> str:
    """The absolute form of a path."""
    return os.path.abspath(_require(path))


# -- files -------------------------------------------------------------------


def file_exists(path: str) -> bool:
    return bool(path) and os.path.exists(path)


def file_info(path: str) -> FileInfo:
    """Information about a path; a symbolic link is described, not followed."""
    path = _require(path)
    with _os_errors():
        st = os.lstat(path)
    return _info_from_stat(path_basename(path), st)


def file_copy(src: str, dst: str, overwrite: bool = False) -> None:
    """Copy a file's content, permissions and times."""
    src, dst = _require(src), _require(dst)
    if os.path.isdir(src):
        raise SioError(ErrorCode.FILE_ISDIR, f"{src} is a directory")
    if os.path.isdir(dst):
        raise SioError(ErrorCode.FILE_ISDIR, f"{dst} is a directory")
    if os.path.lexists(dst) and not overwrite:
        raise SioError(ErrorCode.EXISTS, f"{dst} already exists")
    with _os_errors():
        shutil.copy2(src, dst)


def file_move(src: str, dst: str) -> None:
    """Move or rename a file, replacing the destination."""
    with _os_errors():
        os.replace(_require(src), _require(dst))


def file_delete(path: str) -> None:
    path = _require(path)
    if os.path.isdir(path) and not os.path.islink(path):
        raise SioError(ErrorCode.FILE_ISDIR, f"{path} is a directory")
    with _os_errors():
        os.remove(path)


def file_chmod(path: str, permissions: int) -> None:
    with _os_errors():
        os.chmod(_require(path), permissions)


def file_symlink(target: str, link: str) -> None:
    with _os_errors():
        os.symlink(_require(target), _require(link))


def file_readlink(link: str) -> str:
    with _os_errors():
        return os.readlink(_require(link))


def file_temp(prefix: str = "sio") -> str:
    """Create an empty temporary file with a unique name and return its path."""
    with _os_errors():
        fd, path = tempfile.mkstemp(prefix=prefix)
        os.close(fd)
    return path


# -- directories -------------------------------------------------------------


def dir_create(path: str, permissions: int = 0o755) -> None:
    with _os_errors():
        os.mkdir(_require(path), permissions)


def dir_create_recursive(path: str, permissions: int = 0o755) -> None:
    """Create a directory and any missing parents; existing ones are fine."""
    with _os_errors():
        os.makedirs(_require(path), permissions, exist_ok=True)


def dir_entries(path: str) -> list[FileInfo]:
    """Information about every entry of a directory, sorted by name."""
    path = _require(path)
    with _os_errors():
        with os.scandir(path) as scan:
            entries = [
                _info_from_stat(entry.name, entry.stat(follow_symlinks=False))
                for entry in scan
            ]
    return sorted(entries, key=lambda info: info.name)


def dir_delete(path: str) -> None:
    """Delete an empty directory."""
    with _os_errors():
        os.rmdir(_require(path))


def dir_delete_recursive(path: str) -> None:
    """Delete a directory and everything below it."""
    path = _require(path)
    if not os.path.lexists(path):
        raise SioError(ErrorCode.NOTFOUND, f"{path} does not exist")
    if os.path.islink(path) or not os.path.isdir(path):
        raise SioError(ErrorCode.FILE_NOT_DIR, f"{path} is not a directory")
    with _os_errors():
        shutil.rmtree(path)


def dir_enumerate(path: str, callback: EntryCallback) -> bool:
    """Call ``callback(full_path, info)`` per entry; a truthy return stops.

    Returns True when every entry was visited, False when stopped early.
    """
    for info in dir_entries(path):
        if callback(os.path.join(path, info.name), info):
            return False
    return True


def dir_enumerate_recursive(path: str, callback: EntryCallback) -> bool:
    """Like dir_enumerate, descending into subdirectories (not links)."""
    for info in dir_entries(path):
        full = os.path.join(path, info.name)
        if callback(full, info):
            return False
        if info.type is FileType.DIRECTORY and not dir_enumerate_recursive(full, callback):
            return False
    return True


def dir_getcwd() -> str:
    with _os_errors():
        return os.getcwd()


def dir_chdir(path: str) -> None:
    with _os_errors():
        os.chdir(_require(path))


# -- disks -------------------------------------------------------------------


def disk_space(path: str) -> DiskSpace:
    """Total, free and available-to-this-user space of the disk holding ``path``."""
    path = _require(path)
    with _os_errors():
        if hasattr(os, "statvfs"):
            vfs = os.statvfs(path)
            return DiskSpace(
                total_bytes=vfs.f_blocks * vfs.f_frsize,
                free_bytes=vfs.f_bfree * vfs.f_frsize,
                available_bytes=vfs.f_bavail * vfs.f_frsize,
            )
        usage = shutil.disk_usage(path)
    return DiskSpace(usage.total, usage.free, usage.free)


def _drive_type(opts: str) -> str:
    options = set(opts.split(","))
    return next((kind for kind in _DRIVE_TYPES if kind in options), "fixed")


def drives() -> list[DriveInfo]:
    """The mounted drives and volumes."""
    with _os_errors():
        partitions = psutil.disk_partitions(all=False)
    return [
        DriveInfo(
            name=part.device,
            type=_drive_type(part.opts),
            filesystem=part.fstype,
            mount_point=part.mountpoint,
        )
        for part in partitions
    ]