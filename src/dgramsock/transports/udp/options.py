"""Socket options view for UDP sockets."""

import logging
import socket
from datetime import timedelta
from typing import TYPE_CHECKING, Any, Callable, Optional

from dgramsock.errors import UdpArgError, UdpIOError

if TYPE_CHECKING:
    from dgramsock.transports.udp.sync_socket import UdpSocket

logger = logging.getLogger("dgramsock.udp.options")

_MILLISECOND = timedelta(milliseconds=1)


def _to_millis(duration: Optional[timedelta]) -> int:
    """Truncate a duration to whole milliseconds, None counting as zero."""
    if duration is None:
        return 0
    return int(duration / _MILLISECOND)


class SocketOptions:
    """
    Delegating view of the options of a UdpSocket.

    Holds no option state: every property reads or writes the OS socket.
    Obtain it through ``UdpSocket.options``; it stops working once the
    socket is closed.

    Usage:
        sock.options.receive_timeout = timedelta(milliseconds=250)
        sock.options.broadcast = True
    """

    def __init__(self, owner: "UdpSocket"):
        self._owner = owner

    def _apply(self, fn: Callable[[socket.socket], Any]) -> Any:
        """Run fn against the OS socket, translating OS failures."""
        sock = self._owner._os_socket()
        try:
            return fn(sock)
        except OSError as e:
            raise UdpIOError.wrap(e) from e

    def _get_flag(self, level: int, name: int) -> int:
        return self._apply(lambda s: s.getsockopt(level, name))

    def _set_flag(self, level: int, name: int, value: int) -> None:
        self._apply(lambda s: s.setsockopt(level, name, value))

    @property
    def broadcast(self) -> bool:
        """Permit sending to broadcast addresses."""
        return bool(self._get_flag(socket.SOL_SOCKET, socket.SO_BROADCAST))

    @broadcast.setter
    def broadcast(self, value: bool) -> None:
        self._set_flag(socket.SOL_SOCKET, socket.SO_BROADCAST, int(bool(value)))

    @property
    def receive_buffer_size(self) -> int:
        """Kernel receive buffer size in bytes."""
        return self._get_flag(socket.SOL_SOCKET, socket.SO_RCVBUF)

    @receive_buffer_size.setter
    def receive_buffer_size(self, value: int) -> None:
        if value <= 0:
            raise UdpArgError(f"Receive buffer size must be positive: {value}")
        self._set_flag(socket.SOL_SOCKET, socket.SO_RCVBUF, int(value))

    @property
    def send_buffer_size(self) -> int:
        """Kernel send buffer size in bytes."""
        return self._get_flag(socket.SOL_SOCKET, socket.SO_SNDBUF)

    @send_buffer_size.setter
    def send_buffer_size(self, value: int) -> None:
        if value <= 0:
            raise UdpArgError(f"Send buffer size must be positive: {value}")
        self._set_flag(socket.SOL_SOCKET, socket.SO_SNDBUF, int(value))

    @property
    def reuse_address(self) -> bool:
        """Allow binding to an address still in use."""
        return bool(self._get_flag(socket.SOL_SOCKET, socket.SO_REUSEADDR))

    @reuse_address.setter
    def reuse_address(self, value: bool) -> None:
        self._set_flag(socket.SOL_SOCKET, socket.SO_REUSEADDR, int(bool(value)))

    @property
    def receive_timeout(self) -> Optional[timedelta]:
        """
        Maximum time receive blocks, None meaning forever.

        Values are truncated to whole milliseconds; None or anything
        under one millisecond disables the timeout. Negative durations
        are rejected.

        The timeout is the socket module timeout, so it also bounds a
        send() that cannot hand its datagram to the OS in time. Such a
        send fails with a UdpIOError wrapping TimeoutError rather than
        with ReceiveTimeoutError.
        """
        timeout = self._apply(lambda s: s.gettimeout())
        if timeout is None:
            return None
        millis = int(round(timeout * 1000))
        if millis <= 0:
            return None
        return timedelta(milliseconds=millis)

    @receive_timeout.setter
    def receive_timeout(self, value: Optional[timedelta]) -> None:
        if value is not None and value < timedelta(0):
            raise UdpArgError(f"Receive timeout must not be negative: {value}")
        millis = _to_millis(value)
        seconds = millis / 1000 if millis > 0 else None
        self._apply(lambda s: s.settimeout(seconds))

    @property
    def traffic_class(self) -> int:
        """IP type of service / traffic class byte."""
        level, name = self._traffic_class_option()
        return self._get_flag(level, name) & 0xFF

    @traffic_class.setter
    def traffic_class(self, value: int) -> None:
        if not 0 <= value <= 0xFF:
            raise UdpArgError(f"Traffic class must be 0-255: {value}")
        level, name = self._traffic_class_option()
        self._set_flag(level, name, int(value))

    def _traffic_class_option(self):
        if self._owner.family == socket.AF_INET6:
            tclass = getattr(socket, "IPV6_TCLASS", None)
            if tclass is None:
                raise UdpIOError("IPV6_TCLASS is not supported on this platform")
            return socket.IPPROTO_IPV6, tclass
        return socket.IPPROTO_IP, socket.IP_TOS

    def copy_from(self, other: "SocketOptions") -> "SocketOptions":
        """
        Copy every option value from another options view.

        Returns:
            self
        """
        self.broadcast = other.broadcast
        self.receive_buffer_size = other.receive_buffer_size
        self.send_buffer_size = other.send_buffer_size
        self.reuse_address = other.reuse_address
        self.receive_timeout = other.receive_timeout
        self.traffic_class = other.traffic_class
        logger.debug("Copied socket options from %r", other._owner)
        return self
