"""Synchronous UDP socket implementation."""

import ctypes
import ctypes.util
import errno
import functools
import logging
import socket
import sys
from typing import Optional, Union

from dgramsock.address import IpAddress
from dgramsock.buffers.mem_buf import MemBuf
from dgramsock.config.settings import SocketConfig
from dgramsock.errors import ReceiveTimeoutError, UdpArgError, UdpIOError
from dgramsock.packet import UdpPacket
from dgramsock.transports.udp.options import SocketOptions

logger = logging.getLogger("dgramsock.udp")

_FAMILIES = {"ipv4": socket.AF_INET, "ipv6": socket.AF_INET6}


class _LinuxSockaddr(ctypes.Structure):
    _fields_ = [("sa_family", ctypes.c_ushort), ("sa_data", ctypes.c_char * 14)]


class _BsdSockaddr(ctypes.Structure):
    _fields_ = [
        ("sa_len", ctypes.c_ubyte),
        ("sa_family", ctypes.c_ubyte),
        ("sa_data", ctypes.c_char * 14),
    ]


@functools.lru_cache(maxsize=None)
def _libc() -> ctypes.CDLL:
    """Load the C library once."""
    return ctypes.CDLL(ctypes.util.find_library("c"), use_errno=True)


def _clear_peer(sock: socket.socket) -> None:
    """
    Dissolve the peer association of a connected datagram socket.

    POSIX does this with a connect() to an AF_UNSPEC address, which the
    socket module cannot express, so the call goes through libc. Windows
    uses a connect() to the unspecified address instead.

    Raises:
        OSError: If the OS refuses
    """
    if sys.platform == "win32":
        if sock.family == socket.AF_INET6:
            sock.connect(("::", 0, 0, 0))
        else:
            sock.connect(("0.0.0.0", 0))
        return

    libc = _libc()
    if sys.platform.startswith("linux"):
        addr = _LinuxSockaddr(sa_family=socket.AF_UNSPEC)
    else:
        addr = _BsdSockaddr(
            sa_len=ctypes.sizeof(_BsdSockaddr), sa_family=socket.AF_UNSPEC
        )
    if libc.connect(sock.fileno(), ctypes.byref(addr), ctypes.sizeof(addr)) == 0:
        return
    err = ctypes.get_errno()
    # BSD kernels dissolve the association and still report EAFNOSUPPORT
    if err == errno.EAFNOSUPPORT:
        return
    raise OSError(err, f"disconnect failed: {errno.errorcode.get(err, err)}")


def _coerce_address(addr: Union[IpAddress, str]) -> IpAddress:
    return addr if isinstance(addr, IpAddress) else IpAddress(addr)


class UdpSocket:
    """
    Synchronous UDP socket.

    A socket starts Unbound, becomes Bound through bind() (or implicitly
    through connect() or the first send), Connected through connect(),
    and Closed through close(). Closed is terminal: every operation but
    close() and the endpoint queries then raises UdpIOError.

    Payloads travel in UdpPacket buffers. send() transmits
    ``buf[pos:size]`` and advances pos past it; receive() deposits the
    datagram at ``buf[pos:]`` and advances both pos and size, so one
    buffer can collect several datagrams back to back.

    Usage:
        with UdpSocket() as sock:
            sock.bind(port=9999)
            packet = sock.receive()
    """

    def __init__(self, config: Optional[SocketConfig] = None):
        """
        Initialize UDP socket.

        Args:
            config: Optional SocketConfig. If None, uses defaults.

        Raises:
            UdpArgError: If config.family is unknown
            UdpIOError: If the OS socket cannot be created or configured
        """
        self.config = config if config is not None else SocketConfig()
        family = _FAMILIES.get(self.config.family)
        if family is None:
            raise UdpArgError(f"Unknown address family: {self.config.family!r}")
        self.family = family

        try:
            self._socket = socket.socket(family, socket.SOCK_DGRAM)
        except OSError as e:
            raise UdpIOError.wrap(e) from e

        self._bound = False
        self._connected = False
        self._closed = False
        self._remote_addr: Optional[IpAddress] = None
        self._remote_port = -1
        self._options: Optional[SocketOptions] = None

        try:
            if family == socket.AF_INET6:
                self._socket.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_V6ONLY, 0)
            self._apply_config()
        except OSError as e:
            self._socket.close()
            raise UdpIOError.wrap(e) from e
        except (UdpIOError, UdpArgError):
            self._socket.close()
            raise

    def _apply_config(self) -> None:
        """Set the initial options named in the config."""
        opts = self.options
        opts.receive_timeout = self.config.receive_timeout
        for name in (
            "broadcast",
            "reuse_address",
            "receive_buffer_size",
            "send_buffer_size",
            "traffic_class",
        ):
            value = getattr(self.config, name)
            if value is not None:
                setattr(opts, name, value)

    def _os_socket(self) -> socket.socket:
        """Return the OS socket, failing if closed."""
        if self._closed:
            raise UdpIOError.closed()
        return self._socket

    def _wildcard(self, port: int) -> tuple:
        if self.family == socket.AF_INET6:
            return ("::", port, 0, 0)
        return ("0.0.0.0", port)

    # State

    @property
    def is_bound(self) -> bool:
        """True once a local address has been assigned."""
        return self._bound and not self._closed

    @property
    def is_connected(self) -> bool:
        """True while a peer is recorded."""
        return self._connected

    @property
    def is_closed(self) -> bool:
        return self._closed

    # End points

    @property
    def local_address(self) -> Optional[IpAddress]:
        """Bound local address, or None if unbound."""
        if not self.is_bound:
            return None
        try:
            return IpAddress.from_sockaddr(self._socket.getsockname())[0]
        except OSError:
            return None

    @property
    def local_port(self) -> Optional[int]:
        """Bound local port, or None if unbound."""
        if not self.is_bound:
            return None
        try:
            port = self._socket.getsockname()[1]
        except OSError:
            return None
        return port if port > 0 else None

    @property
    def remote_address(self) -> Optional[IpAddress]:
        """Connected peer address, or None if not connected."""
        if not self._connected:
            return None
        return self._remote_addr

    @property
    def remote_port(self) -> Optional[int]:
        """Connected peer port, or None if not connected."""
        if not self._connected:
            return None
        return self._remote_port

    # Communication

    def bind(
        self, addr: Optional[Union[IpAddress, str]] = None, port: Optional[int] = None
    ) -> "UdpSocket":
        """
        Bind socket to a local address.

        Args:
            addr: Local address, None for the wildcard address
            port: Local port, None or 0 for automatic assignment

        Returns:
            self

        Raises:
            UdpIOError: If the OS refuses the bind or the socket is closed
        """
        sock = self._os_socket()
        port = port or 0
        try:
            if addr is None:
                sockaddr = self._wildcard(port)
            else:
                sockaddr = _coerce_address(addr).to_sockaddr(port, self.family)
            sock.bind(sockaddr)
        except OverflowError as e:
            raise UdpArgError(f"Port out of range: {port}") from e
        except OSError as e:
            raise UdpIOError.wrap(e) from e

        self._bound = True
        logger.debug("UDP socket bound to %s:%s", self.local_address, self.local_port)
        return self

    def connect(self, addr: Union[IpAddress, str], port: int) -> "UdpSocket":
        """
        Connect socket to a peer.

        Sends without an explicit destination go to the peer, and only
        datagrams from the peer are received. Binds implicitly if needed.

        Args:
            addr: Peer address
            port: Peer port

        Returns:
            self

        Raises:
            UdpArgError: If addr or port is None
            UdpIOError: If the OS refuses the connect or the socket is closed
        """
        if addr is None or port is None:
            raise UdpArgError("Address or port is null")
        sock = self._os_socket()
        addr = _coerce_address(addr)
        try:
            sock.connect(addr.to_sockaddr(port, self.family))
        except OverflowError as e:
            raise UdpArgError(f"Port out of range: {port}") from e
        except OSError as e:
            raise UdpIOError.wrap(e) from e

        self._bound = True
        self._connected = True
        self._remote_addr = addr
        self._remote_port = port
        logger.debug("UDP socket connected to %s:%d", addr, port)
        return self

    def disconnect(self) -> "UdpSocket":
        """
        Drop the connected peer, if any.

        Returns:
            self

        Raises:
            UdpIOError: If the OS refuses or the socket is closed
        """
        sock = self._os_socket()
        if not self._connected:
            return self

        try:
            port = sock.getsockname()[1]
            _clear_peer(sock)
        except OSError as e:
            raise UdpIOError.wrap(e) from e

        logger.debug(
            "UDP socket disconnected from %s:%d",
            self._remote_addr,
            self._remote_port,
        )
        self._connected = False
        self._remote_addr = None
        self._remote_port = -1

        try:
            # Linux releases an ephemeral port on disconnect; take it back
            # on the address the OS reports now, which is the bound one
            after = sock.getsockname()
            if after[1] == 0 and port != 0:
                sock.bind((after[0], port) + tuple(after[2:]))
        except OSError as e:
            raise UdpIOError.wrap(e) from e
        return self

    def send(self, packet: UdpPacket) -> None:
        """
        Send the readable bytes of packet.data as one datagram.

        The payload is ``buf[pos:size]``. On success pos advances to size;
        on failure the buffer is left untouched.

        Args:
            packet: Packet to send; address and port must be None when
                    connected and both set otherwise

        Raises:
            UdpArgError: If address/port do not match the connection state
            UdpIOError: If the OS send fails or the socket is closed
        """
        sock = self._os_socket()
        data = packet.data
        off = data.pos
        length = data.size - off

        if self._connected:
            if packet.address is not None or packet.port is not None:
                raise UdpArgError(
                    "Address and port must be null to send while connected"
                )
            dest = None
        else:
            if packet.address is None or packet.port is None:
                raise UdpArgError("Address or port is null")
            dest = _coerce_address(packet.address).to_sockaddr(packet.port, self.family)

        try:
            with memoryview(data.buf)[off : off + length] as payload:
                if dest is None:
                    sock.send(payload)
                else:
                    sock.sendto(payload, dest)
        except OverflowError as e:
            raise UdpArgError(f"Port out of range: {packet.port}") from e
        except OSError as e:
            raise UdpIOError.wrap(e) from e

        self._bound = True
        # drain
        data.pos = off + length

    def receive(self, packet: Optional[UdpPacket] = None) -> UdpPacket:
        """
        Block until a datagram arrives and append it to packet.data.

        The datagram is written at ``buf[pos:]``, truncated to the space
        left in the backing storage; pos and size then advance by the
        number of bytes received.

        Args:
            packet: Packet to fill. If None, a packet with an empty buffer
                    of config.default_packet_size bytes is created.

        Returns:
            The filled packet, with address and port set to the sender

        Raises:
            ReceiveTimeoutError: If the receive timeout elapsed
            UdpIOError: If the OS receive fails or the socket is closed
        """
        sock = self._os_socket()
        if packet is None:
            packet = UdpPacket(None, None, MemBuf(self.config.default_packet_size))

        data = packet.data
        off = data.pos
        try:
            with memoryview(data.buf)[off:] as window:
                nbytes, sockaddr = sock.recvfrom_into(window)
        except socket.timeout as e:
            if self._closed:
                raise UdpIOError.closed() from e
            raise ReceiveTimeoutError(cause=e) from e
        except OSError as e:
            if self._closed:
                raise UdpIOError.closed() from e
            raise UdpIOError.wrap(e) from e

        # close() from another thread wakes the receiver with an empty read
        if self._closed or sockaddr is None:
            raise UdpIOError.closed()

        packet.address, packet.port = IpAddress.from_sockaddr(sockaddr)
        data.size = min(data.size + nbytes, len(data.buf))
        data.pos = off + nbytes
        return packet

    def close(self) -> bool:
        """
        Close socket.

        Never raises. A thread blocked in receive() is woken and fails
        with UdpIOError.

        Returns:
            True if the socket is closed, False if closing failed
        """
        if self._closed:
            return True
        self._closed = True
        self._connected = False
        self._remote_addr = None
        self._remote_port = -1
        try:
            try:
                self._socket.shutdown(socket.SHUT_RDWR)
            except OSError:
                # unconnected datagram sockets report ENOTCONN but still wake readers
                pass
            self._socket.close()
        except Exception as e:
            logger.warning("Failed to close UDP socket: %s", e)
            return False
        logger.debug("UDP socket closed")
        return True

    # Socket options

    @property
    def options(self) -> SocketOptions:
        """Options view, created on first access."""
        if self._options is None:
            self._options = SocketOptions(self)
        return self._options

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()

    def __repr__(self) -> str:
        if self._closed:
            state = "closed"
        elif self._connected:
            state = f"connected to {self._remote_addr}:{self._remote_port}"
        elif self._bound:
            state = "bound"
        else:
            state = "unbound"
        return f"<UdpSocket {state}>"
