"""IP address value type."""

import ipaddress
import socket
from typing import Tuple, Union

from dgramsock.errors import UdpArgError, UdpIOError

IPAddressType = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


class IpAddress:
    """
    Immutable IPv4 or IPv6 address.

    Wraps ``ipaddress.IPv4Address``/``IPv6Address`` and converts to and
    from the tuples the ``socket`` module uses.
    """

    __slots__ = ("_ip", "_scope_id")

    def __init__(
        self,
        value: Union[str, bytes, int, "IpAddress", IPAddressType],
    ):
        """
        Initialize address.

        Args:
            value: Numeric address text ("127.0.0.1", "::1", "fe80::1%2"),
                   packed bytes, integer, or another address

        Raises:
            UdpArgError: If value is not a numeric IP address
        """
        scope_id = 0
        if isinstance(value, IpAddress):
            self._ip = value._ip
            self._scope_id = value._scope_id
            return
        if isinstance(value, str) and "%" in value:
            value, _, scope = value.partition("%")
            scope_id = int(scope) if scope.isdigit() else socket.if_nametoindex(scope)
        try:
            self._ip = ipaddress.ip_address(value)
        except ValueError as e:
            raise UdpArgError(f"Invalid IP address: {value!r}") from e
        self._scope_id = scope_id

    @classmethod
    def resolve(cls, host: str) -> "IpAddress":
        """
        Resolve a hostname to its first IP address.

        Raises:
            UdpIOError: If the name cannot be resolved
        """
        try:
            infos = socket.getaddrinfo(host, None, type=socket.SOCK_DGRAM)
        except OSError as e:
            raise UdpIOError.wrap(e) from e
        return cls.from_sockaddr(infos[0][4])[0]

    @classmethod
    def from_sockaddr(cls, sockaddr: tuple) -> Tuple["IpAddress", int]:
        """
        Convert a socket module address tuple to (address, port).

        IPv4-mapped IPv6 addresses are reported as IPv4.
        """
        addr = cls(sockaddr[0])
        mapped = getattr(addr._ip, "ipv4_mapped", None)
        if mapped is not None:
            addr = cls(mapped)
        elif len(sockaddr) >= 4:
            addr._scope_id = sockaddr[3]
        return addr, sockaddr[1]

    def to_sockaddr(self, port: int, family: int = socket.AF_INET) -> tuple:
        """
        Convert to the address tuple expected by the socket module.

        Args:
            port: Port number
            family: Family of the socket the tuple is for; IPv4 addresses
                    are mapped into IPv6 for AF_INET6 sockets

        Raises:
            UdpArgError: If an IPv6 address is used with an AF_INET socket
        """
        if family == socket.AF_INET6:
            if self._ip.version == 4:
                return (f"::ffff:{self._ip}", port, 0, 0)
            return (str(self._ip), port, 0, self._scope_id)
        if self._ip.version != 4:
            raise UdpArgError(f"IPv6 address {self} used with an IPv4 socket")
        return (str(self._ip), port)

    @property
    def numeric(self) -> str:
        """Numeric text form without scope."""
        return str(self._ip)

    @property
    def packed(self) -> bytes:
        return self._ip.packed

    @property
    def is_ipv4(self) -> bool:
        return self._ip.version == 4

    @property
    def is_ipv6(self) -> bool:
        return self._ip.version == 6

    @property
    def is_loopback(self) -> bool:
        return self._ip.is_loopback

    @property
    def is_unspecified(self) -> bool:
        return self._ip.is_unspecified

    def __eq__(self, other) -> bool:
        if not isinstance(other, IpAddress):
            return NotImplemented
        return self._ip == other._ip and self._scope_id == other._scope_id

    def __hash__(self) -> int:
        return hash((self._ip, self._scope_id))

    def __str__(self) -> str:
        if self._scope_id:
            return f"{self._ip}%{self._scope_id}"
        return str(self._ip)

    def __repr__(self) -> str:
        return f"IpAddress({str(self)!r})"
