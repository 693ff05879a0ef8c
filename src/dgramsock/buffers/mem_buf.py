"""In-memory byte buffer."""

from typing import Optional, Union

from dgramsock.buffers.base import BaseBuffer


class MemBuf(BaseBuffer):
    """
    Growable in-memory buffer with a position cursor.

    Usage:
        buf = MemBuf.from_bytes(b"ping")   # pos=0, size=4
        sock.send(UdpPacket(addr, port, buf))
        assert buf.pos == 4
    """

    def __init__(self, capacity: int = 1024):
        """
        Initialize empty buffer.

        Args:
            capacity: Initial length of the backing storage
        """
        if capacity < 0:
            raise ValueError("Capacity must not be negative")
        self._buf = bytearray(capacity)
        self._pos = 0
        self._size = 0

    @classmethod
    def from_bytes(
        cls, data: Union[bytes, bytearray, str], capacity: Optional[int] = None
    ) -> "MemBuf":
        """
        Create a buffer holding data, positioned at the start.

        Strings are encoded as UTF-8.
        """
        if isinstance(data, str):
            data = data.encode("utf-8")
        mem = cls(max(len(data), capacity or 0))
        mem._buf[: len(data)] = data
        mem._size = len(data)
        return mem

    @property
    def buf(self) -> bytearray:
        return self._buf

    @property
    def pos(self) -> int:
        return self._pos

    @pos.setter
    def pos(self, value: int) -> None:
        if value < 0 or value > self._size:
            raise ValueError(f"Position {value} out of range 0..{self._size}")
        self._pos = value

    @property
    def size(self) -> int:
        return self._size

    @size.setter
    def size(self, value: int) -> None:
        if value < 0 or value > len(self._buf):
            raise ValueError(f"Size {value} out of range 0..{len(self._buf)}")
        self._size = value
        if self._pos > value:
            self._pos = value

    def seek(self, pos: int) -> "MemBuf":
        """Move the cursor to pos."""
        self.pos = pos
        return self

    def flip(self) -> "MemBuf":
        """Make the bytes written so far readable from the start."""
        self._size = self._pos
        self._pos = 0
        return self

    def clear(self) -> "MemBuf":
        """Reset pos and size to zero, keeping the backing storage."""
        self._pos = 0
        self._size = 0
        return self

    def write(self, data: Union[bytes, bytearray, memoryview]) -> "MemBuf":
        """
        Write data at pos, growing the backing storage if needed.

        Advances pos and extends size when writing past it.
        """
        end = self._pos + len(data)
        if end > len(self._buf):
            self._buf.extend(bytes(end - len(self._buf)))
        self._buf[self._pos : end] = data
        self._pos = end
        if end > self._size:
            self._size = end
        return self

    def read_all(self) -> bytes:
        """Return the bytes from pos to size and advance pos to size."""
        data = bytes(self._buf[self._pos : self._size])
        self._pos = self._size
        return data

    def to_bytes(self) -> bytes:
        """Return bytes 0..size without moving the cursor."""
        return bytes(self._buf[: self._size])

    def __len__(self) -> int:
        return self._size

    def __repr__(self) -> str:
        return f"MemBuf(pos={self._pos}, size={self._size}, capacity={len(self._buf)})"
