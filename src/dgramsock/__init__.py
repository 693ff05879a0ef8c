"""Synchronous UDP datagram sockets with packet buffers."""

from dgramsock.address import IpAddress
from dgramsock.buffers import BaseBuffer, MemBuf
from dgramsock.config.settings import SocketConfig
from dgramsock.errors import ReceiveTimeoutError, UdpArgError, UdpIOError
from dgramsock.packet import UdpPacket
from dgramsock.transports.udp.options import SocketOptions
from dgramsock.transports.udp.sync_socket import UdpSocket

__version__ = "0.1.0"
__all__ = [
    "UdpSocket",
    "SocketOptions",
    "UdpPacket",
    "IpAddress",
    "BaseBuffer",
    "MemBuf",
    "SocketConfig",
    "UdpIOError",
    "ReceiveTimeoutError",
    "UdpArgError",
    "__version__",
]
