"""UDP packet record."""

from dataclasses import dataclass, field
from typing import Optional

from dgramsock.address import IpAddress
from dgramsock.buffers.base import BaseBuffer
from dgramsock.buffers.mem_buf import MemBuf


@dataclass
class UdpPacket:
    """
    Datagram payload plus its remote endpoint.

    On send, address and port name the destination (both None when the
    socket is connected). On receive the socket fills them with the
    sender's endpoint and appends the payload to data.
    """

    address: Optional[IpAddress] = None
    port: Optional[int] = None
    data: BaseBuffer = field(default_factory=MemBuf)
