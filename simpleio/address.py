"""Socket addresses, name resolution and IP text/binary conversion."""

from __future__ import annotations

import socket
from dataclasses import dataclass
from enum import IntFlag
from typing import Union

from .errors import ErrorCode, SioError

AF_INET = socket.AF_INET
AF_INET6 = socket.AF_INET6
AF_UNSPEC = socket.AF_UNSPEC

SOCK_STREAM = socket.SOCK_STREAM
SOCK_DGRAM = socket.SOCK_DGRAM

IPPROTO_TCP = socket.IPPROTO_TCP
IPPROTO_UDP = socket.IPPROTO_UDP

AI_PASSIVE = socket.AI_PASSIVE
AI_CANONNAME = socket.AI_CANONNAME
AI_NUMERICHOST = socket.AI_NUMERICHOST
AI_NUMERICSERV = getattr(socket, "AI_NUMERICSERV", 0)
AI_V4MAPPED = getattr(socket, "AI_V4MAPPED", 0)
AI_ALL = getattr(socket, "AI_ALL", 0)
AI_ADDRCONFIG = getattr(socket, "AI_ADDRCONFIG", 0)

_IP_LENGTHS = {AF_INET: 4, AF_INET6: 16}
_V4_MAPPED_PREFIX = bytes(10) + b"\xff\xff"
_V6_LOOPBACK = bytes(15) + b"\x01"

_GAI_MESSAGES = (
    ("EAI_ADDRFAMILY", "Address family for hostname not supported"),
    ("EAI_AGAIN", "Temporary failure in name resolution"),
    ("EAI_BADFLAGS", "Bad value for ai_flags"),
    ("EAI_FAIL", "Non-recoverable failure in name resolution"),
    ("EAI_FAMILY", "ai_family not supported"),
    ("EAI_MEMORY", "Memory allocation failure"),
    ("EAI_NODATA", "No address associated with hostname"),
    ("EAI_NONAME", "Name or service not known"),
    ("EAI_SERVICE", "Servname not supported for ai_socktype"),
    ("EAI_SOCKTYPE", "ai_socktype not supported"),
    ("EAI_SYSTEM", "System error"),
    ("EAI_OVERFLOW", "Argument buffer overflow"),
)


def _build_gai_table() -> dict[int, str]:
    table: dict[int, str] = {}
    for name, text in _GAI_MESSAGES:
        value = getattr(socket, name, None)
        if value is not None:
            table.setdefault(value, text)
    return table


_GAI_TABLE = _build_gai_table()


class CompareFlags(IntFlag):
    """Which parts of two addresses a comparison looks at."""

    FAMILY = 1 << 0
    IP = 1 << 1
    PORT = 1 << 2
    ALL = FAMILY | IP | PORT


def _check_family(family: int) -> socket.AddressFamily:
    if family not in _IP_LENGTHS:
        raise ValueError(f"unsupported address family {family!r}")
    return socket.AddressFamily(family)


def _invalid(text: str) -> SioError:
    return SioError(ErrorCode.NET_INVALID_ADDR, f"invalid address {text!r}")


def inet_pton(family: int, text: str) -> bytes:
    """Convert an IP address in text form to its packed binary form."""
    family = _check_family(family)
    try:
        return socket.inet_pton(family, text)
    except (OSError, ValueError) as exc:
        raise _invalid(text) from exc


def inet_ntop(family: int, packed: bytes) -> str:
    """Convert a packed binary IP address to its text form."""
    family = _check_family(family)
    packed = bytes(packed)
    if len(packed) != _IP_LENGTHS[family]:
        raise ValueError(
            f"a {family.name} address is {_IP_LENGTHS[family]} bytes, not {len(packed)}"
        )
    return socket.inet_ntop(family, packed)


def gai_strerror(errcode: int) -> str:
    """Describe an address-resolution error code."""
    return _GAI_TABLE.get(errcode, "Unknown error")


@dataclass(frozen=True)
class Address:
    """An IPv4 or IPv6 socket address: family, packed IP and port."""

    family: int
    ip: bytes
    port: int = 0
    flowinfo: int = 0
    scope_id: int = 0

    def __post_init__(self) -> None:
        family = _check_family(self.family)
        ip = bytes(self.ip)
        if len(ip) != _IP_LENGTHS[family]:
            raise ValueError(
                f"a {family.name} address is {_IP_LENGTHS[family]} bytes, not {len(ip)}"
            )
        if not 0 <= self.port <= 0xFFFF:
            raise ValueError(f"port {self.port} outside 0..65535")
        object.__setattr__(self, "family", family)
        object.__setattr__(self, "ip", ip)

    @classmethod
    def from_parts(cls, family: int, ip: Union[bytes, str], port: int = 0) -> Address:
        """Build an address from a family, an IP (packed or text) and a port."""
        if isinstance(ip, str):
            ip = inet_pton(family, ip)
        return cls(family, ip, port)

    @classmethod
    def from_string(cls, text: str) -> Address:
        """Parse ``host:port`` or ``[host]:port`` with a numeric host."""
        if text.startswith("["):
            end = text.find("]")
            if end < 0 or text[end + 1:end + 2] != ":":
                raise _invalid(text)
            host, port_text, family = text[1:end], text[end + 2:], AF_INET6
        else:
            host, sep, port_text = text.rpartition(":")
            if not sep or ":" in host:
                raise _invalid(text)
            family = AF_INET
        if not host or not (port_text.isascii() and port_text.isdigit()):
            raise _invalid(text)
        port = int(port_text)
        if port > 0xFFFF:
            raise _invalid(text)
        return cls(family, inet_pton(family, host), port)

    @classmethod
    def loopback(cls, family: int = AF_INET, port: int = 0) -> Address:
        """The loopback address (127.0.0.1 or ::1) of a family."""
        family = _check_family(family)
        ip = b"\x7f\x00\x00\x01" if family == AF_INET else _V6_LOOPBACK
        return cls(family, ip, port)

    @classmethod
    def any(cls, family: int = AF_INET, port: int = 0) -> Address:
        """The wildcard address (0.0.0.0 or ::) of a family."""
        family = _check_family(family)
        return cls(family, bytes(_IP_LENGTHS[family]), port)

    def parts(self) -> tuple[int, bytes, int]:
        """Return (family, packed IP, port)."""
        return self.family, self.ip, self.port

    @property
    def host(self) -> str:
        return inet_ntop(self.family, self.ip)

    def __str__(self) -> str:
        if self.family == AF_INET6:
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"

    def matches(self, other: Address, comp: int = CompareFlags.ALL) -> bool:
        """Compare the parts of two addresses selected by ``comp``."""
        comp = CompareFlags(comp)
        if CompareFlags.FAMILY in comp and self.family != other.family:
            return False
        if CompareFlags.IP in comp and (self.family != other.family or self.ip != other.ip):
            return False
        if CompareFlags.PORT in comp and self.port != other.port:
            return False
        return True

    def _embedded_v4(self) -> bytes | None:
        if self.family == AF_INET:
            return self.ip
        if self.ip.startswith(_V4_MAPPED_PREFIX):
            return self.ip[12:]
        return None

    def is_loopback(self) -> bool:
        v4 = self._embedded_v4()
        if v4 is not None:
            return v4[0] == 127
        return self.ip == _V6_LOOPBACK

    def is_multicast(self) -> bool:
        v4 = self._embedded_v4()
        if v4 is not None:
            return v4[0] & 0xF0 == 0xE0
        return self.ip[0] == 0xFF

    def sockaddr(self) -> tuple:
        """The address as a tuple the socket module accepts."""
        if self.family == AF_INET6:
            return (self.host, self.port, self.flowinfo, self.scope_id)
        return (self.host, self.port)


def _from_sockaddr(family: int, sockaddr: tuple) -> Address:
    host = sockaddr[0].split("%", 1)[0]
    if family == AF_INET6:
        _, port, flowinfo, scope_id = sockaddr
        return Address(AF_INET6, inet_pton(AF_INET6, host), port, flowinfo, scope_id)
    return Address(AF_INET, inet_pton(AF_INET, host), sockaddr[1])


def getaddrinfo(
    node: str | None,
    service: Union[str, int, None] = None,
    family: int = AF_UNSPEC,
    socktype: int = 0,
    protocol: int = 0,
    flags: int = 0,
) -> list[tuple[int, int, int, str, Address]]:
    """Resolve a host and service to (family, socktype, proto, canonname, Address)."""
    try:
        infos = socket.getaddrinfo(node, service, family, socktype, protocol, flags)
    except socket.gaierror as exc:
        if exc.errno == getattr(socket, "EAI_NONAME", None):
            code = ErrorCode.NET_UNKNOWN_HOST
        else:
            code = ErrorCode.DNS
        raise SioError(code, str(exc) or gai_strerror(exc.errno or 0)) from exc
    except UnicodeError as exc:
        raise SioError(ErrorCode.PARAM, str(exc)) from exc
    results = []
    for fam, stype, proto, canonname, sockaddr in infos:
        if fam not in _IP_LENGTHS:
            continue
        results.append(
            (socket.AddressFamily(fam), stype, proto, canonname, _from_sockaddr(fam, sockaddr))
        )
    return results