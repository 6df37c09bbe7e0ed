"""Error codes and the exception raised throughout the package."""

from __future__ import annotations

import errno
from enum import IntEnum


class ErrorCode(IntEnum):
    """Numeric error codes, grouped by subsystem."""

    SUCCESS = 0
    GENERIC = -1
    PARAM = -2
    MEM = -3
    IO = -4
    EOF = -5
    NET = -6
    DNS = -7
    TIMEOUT = -8
    BUSY = -9
    PERM = -10
    EXISTS = -11
    NOTFOUND = -12
    BUFFER_TOO_SMALL = -13
    BAD_PATH = -14
    INTERRUPTED = -15
    WOULDBLOCK = -16
    SYSTEM = -17
    UNSUPPORTED = -18

    FILE_ISDIR = -20
    FILE_NOT_DIR = -21
    FILE_READONLY = -22
    FILE_TOO_LARGE = -23
    FILE_NOSPACE = -24
    FILE_CLOSED = -25
    FILE_OPEN = -26
    FILE_LOCKED = -27
    FILE_CORRUPT = -28
    FILE_SEEK = -29
    FILE_NAME_TOO_LONG = -30
    FILE_MMAP = -31
    FILE_FORMAT = -32
    FILE_LOOP = -33
    FILE_INVLPATH = -34

    NET_CONN_REFUSED = -40
    NET_CONN_ABORTED = -41
    NET_CONN_RESET = -42
    NET_HOST_UNREACHABLE = -43
    NET_HOST_DOWN = -44
    NET_UNKNOWN_HOST = -45
    NET_ADDR_IN_USE = -46
    NET_NOT_CONN = -47
    NET_SHUTDOWN = -48
    NET_MSG_TOO_LARGE = -49
    NET_CONN_TIMEOUT = -50
    NET_PROTO = -51
    NET_INVALID_ADDR = -52
    NET_ADDR_REQUIRED = -53
    NET_INPROGRESS = -54
    NET_ALREADY = -55
    NET_NOT_SOCK = -56
    NET_NO_PROTO_OPT = -57

    THREAD_CREATE = -60
    MUTEX_INIT = -61
    MUTEX_LOCK = -62
    MUTEX_UNLOCK = -63
    COND_INIT = -64
    COND_WAIT = -65
    COND_SIGNAL = -66
    THREAD_JOIN = -67
    THREAD_DETACH = -68
    DEADLOCK = -69

    SEC_CERT = -70
    SEC_AUTH = -71
    SEC_VERIFICATION = -72
    SEC_ENCRYPTION = -73
    SEC_DECRYPTION = -74
    SEC_BAD_KEY = -75
    SEC_BAD_SIGNATURE = -76
    SEC_KEY_EXPIRED = -77
    SEC_REVOKED = -78
    SEC_UNTRUSTED = -79

    PROC_FORK = -80
    PROC_EXEC = -81
    PROC_PIPE = -82
    PROC_WAITPID = -83
    PROC_KILL = -84
    PROC_SIGNAL = -85
    PROC_NOTFOUND = -86
    PROC_PERM = -87
    PROC_RESOURCES = -88
    PROC_ZOMBIE = -89

    SYS_LIMIT = -90
    SYS_RESOURCES = -91
    SYS_NOSUPPORT = -92
    SYS_NOTIMPLEMENTED = -93
    SYS_CALL = -94
    SYS_OVERFLOW = -95
    SYS_NOPROC = -96
    SYS_INVALID = -97
    SYS_DEVICE = -98
    SYS_NOTSUP = -99


_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.SUCCESS: "Operation completed successfully",
    ErrorCode.GENERIC: "Generic error",
    ErrorCode.PARAM: "Invalid parameter",
    ErrorCode.MEM: "Memory allocation failure",
    ErrorCode.IO: "I/O error",
    ErrorCode.EOF: "End of file or stream",
    ErrorCode.NET: "Network error",
    ErrorCode.DNS: "DNS resolution error",
    ErrorCode.TIMEOUT: "Operation timed out",
    ErrorCode.BUSY: "Resource busy",
    ErrorCode.PERM: "Permission denied",
    ErrorCode.EXISTS: "Resource already exists",
    ErrorCode.NOTFOUND: "Resource not found",
    ErrorCode.BUFFER_TOO_SMALL: "Destination buffer too small",
    ErrorCode.BAD_PATH: "Invalid path format",
    ErrorCode.INTERRUPTED: "Operation interrupted",
    ErrorCode.WOULDBLOCK: "Operation would block",
    ErrorCode.SYSTEM: "System error",
    ErrorCode.UNSUPPORTED: "Unsupported operation",
    ErrorCode.FILE_ISDIR: "File is a directory",
    ErrorCode.FILE_NOT_DIR: "Path is not a directory",
    ErrorCode.FILE_READONLY: "File is read-only",
    ErrorCode.FILE_TOO_LARGE: "File too large",
    ErrorCode.FILE_NOSPACE: "No space left on device",
    ErrorCode.FILE_CLOSED: "File is already closed",
    ErrorCode.FILE_OPEN: "File already open",
    ErrorCode.FILE_LOCKED: "File is locked",
    ErrorCode.FILE_CORRUPT: "File is corrupted",
    ErrorCode.FILE_SEEK: "File seek error",
    ErrorCode.FILE_NAME_TOO_LONG: "Filename too long",
    ErrorCode.FILE_MMAP: "Memory mapping error",
    ErrorCode.FILE_FORMAT: "Invalid file format",
    ErrorCode.FILE_LOOP: "Too many symbolic links",
    ErrorCode.FILE_INVLPATH: "Invalid Path",
    ErrorCode.NET_CONN_REFUSED: "Connection refused",
    ErrorCode.NET_CONN_ABORTED: "Connection aborted",
    ErrorCode.NET_CONN_RESET: "Connection reset",
    ErrorCode.NET_HOST_UNREACHABLE: "Host unreachable",
    ErrorCode.NET_HOST_DOWN: "Host is down",
    ErrorCode.NET_UNKNOWN_HOST: "Unknown host",
    ErrorCode.NET_ADDR_IN_USE: "Address already in use",
    ErrorCode.NET_NOT_CONN: "Socket not connected",
    ErrorCode.NET_SHUTDOWN: "Socket shutdown",
    ErrorCode.NET_MSG_TOO_LARGE: "Message too large",
    ErrorCode.NET_CONN_TIMEOUT: "Connection timeout",
    ErrorCode.NET_PROTO: "Protocol error",
    ErrorCode.NET_INVALID_ADDR: "Invalid address",
    ErrorCode.NET_ADDR_REQUIRED: "Destination address required",
    ErrorCode.NET_INPROGRESS: "Operation now in progress",
    ErrorCode.NET_ALREADY: "Operation already in progress",
    ErrorCode.NET_NOT_SOCK: "Socket operation on non-socket",
    ErrorCode.NET_NO_PROTO_OPT: "Protocol not available",
    ErrorCode.THREAD_CREATE: "Cannot create thread",
    ErrorCode.MUTEX_INIT: "Cannot initialize mutex",
    ErrorCode.MUTEX_LOCK: "Cannot lock mutex",
    ErrorCode.MUTEX_UNLOCK: "Cannot unlock mutex",
    ErrorCode.COND_INIT: "Cannot initialize condition",
    ErrorCode.COND_WAIT: "Error in condition wait",
    ErrorCode.COND_SIGNAL: "Error in condition signal",
    ErrorCode.THREAD_JOIN: "Error in thread join",
    ErrorCode.THREAD_DETACH: "Error in thread detach",
    ErrorCode.DEADLOCK: "Resource deadlock would occur",
    ErrorCode.SEC_CERT: "Certificate error",
    ErrorCode.SEC_AUTH: "Authentication error",
    ErrorCode.SEC_VERIFICATION: "Verification failed",
    ErrorCode.SEC_ENCRYPTION: "Encryption error",
    ErrorCode.SEC_DECRYPTION: "Decryption error",
    ErrorCode.SEC_BAD_KEY: "Bad key",
    ErrorCode.SEC_BAD_SIGNATURE: "Bad signature",
    ErrorCode.SEC_KEY_EXPIRED: "Key expired",
    ErrorCode.SEC_REVOKED: "Certificate revoked",
    ErrorCode.SEC_UNTRUSTED: "Untrusted certificate",
    ErrorCode.PROC_FORK: "Fork error",
    ErrorCode.PROC_EXEC: "Exec error",
    ErrorCode.PROC_PIPE: "Pipe error",
    ErrorCode.PROC_WAITPID: "Wait error",
    ErrorCode.PROC_KILL: "Kill error",
    ErrorCode.PROC_SIGNAL: "Signal error",
    ErrorCode.PROC_NOTFOUND: "Process not found",
    ErrorCode.PROC_PERM: "Process permission denied",
    ErrorCode.PROC_RESOURCES: "Insufficient resources",
    ErrorCode.PROC_ZOMBIE: "Zombie process",
    ErrorCode.SYS_LIMIT: "System limit reached",
    ErrorCode.SYS_RESOURCES: "System resources exhausted",
    ErrorCode.SYS_NOSUPPORT: "System does not support",
    ErrorCode.SYS_NOTIMPLEMENTED: "Not implemented on this system",
    ErrorCode.SYS_CALL: "System call error",
    ErrorCode.SYS_OVERFLOW: "Value too large for system",
    ErrorCode.SYS_NOPROC: "No such process",
    ErrorCode.SYS_INVALID: "Invalid system state",
    ErrorCode.SYS_DEVICE: "Device error",
    ErrorCode.SYS_NOTSUP: "Not supported",
}

_UNKNOWN_MESSAGE = "Unknown error"

# Ordered so that the first name to claim an errno value wins where the
# platform aliases two names to one number (EAGAIN/EWOULDBLOCK and the like).
_ERRNO_NAMES: tuple[tuple[str, ErrorCode], ...] = (
    ("EINVAL", ErrorCode.PARAM),
    ("ENOMEM", ErrorCode.MEM),
    ("EIO", ErrorCode.IO),
    ("ETIMEDOUT", ErrorCode.TIMEOUT),
    ("EBUSY", ErrorCode.BUSY),
    ("ETXTBSY", ErrorCode.BUSY),
    ("EACCES", ErrorCode.PERM),
    ("EPERM", ErrorCode.PERM),
    ("EEXIST", ErrorCode.EXISTS),
    ("ENOENT", ErrorCode.NOTFOUND),
    ("EINTR", ErrorCode.INTERRUPTED),
    ("EAGAIN", ErrorCode.WOULDBLOCK),
    ("EWOULDBLOCK", ErrorCode.WOULDBLOCK),
    ("ENOSYS", ErrorCode.SYS_NOTIMPLEMENTED),
    ("EOPNOTSUPP", ErrorCode.UNSUPPORTED),
    ("ENOTSUP", ErrorCode.UNSUPPORTED),
    ("EISDIR", ErrorCode.FILE_ISDIR),
    ("ENOTDIR", ErrorCode.FILE_NOT_DIR),
    ("EROFS", ErrorCode.FILE_READONLY),
    ("EFBIG", ErrorCode.FILE_TOO_LARGE),
    ("ENOSPC", ErrorCode.FILE_NOSPACE),
    ("EBADF", ErrorCode.FILE_CLOSED),
    ("ESPIPE", ErrorCode.FILE_SEEK),
    ("ENAMETOOLONG", ErrorCode.FILE_NAME_TOO_LONG),
    ("ELOOP", ErrorCode.FILE_LOOP),
    ("ECONNREFUSED", ErrorCode.NET_CONN_REFUSED),
    ("ECONNABORTED", ErrorCode.NET_CONN_ABORTED),
    ("ECONNRESET", ErrorCode.NET_CONN_RESET),
    ("EHOSTUNREACH", ErrorCode.NET_HOST_UNREACHABLE),
    ("ENETUNREACH", ErrorCode.NET_HOST_UNREACHABLE),
    ("EHOSTDOWN", ErrorCode.NET_HOST_DOWN),
    ("ENETDOWN", ErrorCode.NET),
    ("EADDRINUSE", ErrorCode.NET_ADDR_IN_USE),
    ("ENOTCONN", ErrorCode.NET_NOT_CONN),
    ("ESHUTDOWN", ErrorCode.NET_SHUTDOWN),
    ("EPIPE", ErrorCode.NET_SHUTDOWN),
    ("EMSGSIZE", ErrorCode.NET_MSG_TOO_LARGE),
    ("EPROTO", ErrorCode.NET_PROTO),
    ("EPROTONOSUPPORT", ErrorCode.NET_PROTO),
    ("EADDRNOTAVAIL", ErrorCode.NET_INVALID_ADDR),
    ("EAFNOSUPPORT", ErrorCode.NET_INVALID_ADDR),
    ("EDESTADDRREQ", ErrorCode.NET_ADDR_REQUIRED),
    ("EINPROGRESS", ErrorCode.NET_INPROGRESS),
    ("EALREADY", ErrorCode.NET_ALREADY),
    ("ENOTSOCK", ErrorCode.NET_NOT_SOCK),
    ("ENOPROTOOPT", ErrorCode.NET_NO_PROTO_OPT),
    ("EDEADLK", ErrorCode.DEADLOCK),
    ("ESRCH", ErrorCode.SYS_NOPROC),
    ("ECHILD", ErrorCode.PROC_WAITPID),
    ("EMFILE", ErrorCode.SYS_LIMIT),
    ("ENFILE", ErrorCode.SYS_LIMIT),
    ("E2BIG", ErrorCode.SYS_LIMIT),
    ("EOVERFLOW", ErrorCode.SYS_OVERFLOW),
    ("ENODEV", ErrorCode.SYS_DEVICE),
    ("ENXIO", ErrorCode.SYS_DEVICE),
    ("ERANGE", ErrorCode.SYS_OVERFLOW),
)


def _build_errno_table() -> dict[int, ErrorCode]:
    table: dict[int, ErrorCode] = {}
    for name, code in _ERRNO_NAMES:
        value = getattr(errno, name, None)
        if value is not None:
            table.setdefault(value, code)
    return table


_ERRNO_TABLE = _build_errno_table()


def strerror(code: int) -> str:
    """Return the description of an error code."""
    try:
        return _MESSAGES[ErrorCode(code)]
    except ValueError:
        return _UNKNOWN_MESSAGE


class SioError(Exception):
    """An error carrying one of the package's error codes."""

    def __init__(self, code: int, message: str | None = None) -> None:
        try:
            self.code: ErrorCode | int = ErrorCode(code)
        except ValueError:
            self.code = code
        self.message = message if message is not None else strerror(code)
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.code!r}, {self.message!r})"


def from_errno(errno_value: int) -> ErrorCode:
    """Map an operating-system errno value to an error code."""
    if errno_value == 0:
        return ErrorCode.SUCCESS
    return _ERRNO_TABLE.get(errno_value, ErrorCode.SYSTEM)


def from_os_error(exc: BaseException) -> SioError:
    """Build a SioError describing an operating-system exception."""
    err_value = getattr(exc, "errno", None)
    if err_value:
        code = from_errno(err_value)
    elif isinstance(exc, TimeoutError):
        code = ErrorCode.TIMEOUT
    elif isinstance(exc, InterruptedError):
        code = ErrorCode.INTERRUPTED
    elif isinstance(exc, BlockingIOError):
        code = ErrorCode.WOULDBLOCK
    else:
        code = ErrorCode.IO
    text = str(exc) or strerror(code)
    return SioError(code, text)