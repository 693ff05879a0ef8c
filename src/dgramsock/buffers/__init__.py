"""Byte buffers used as datagram payloads."""

from dgramsock.buffers.base import BaseBuffer
from dgramsock.buffers.mem_buf import MemBuf

__all__ = ["BaseBuffer", "MemBuf"]
