"""Base buffer interface."""

from abc import ABC, abstractmethod


class BaseBuffer(ABC):
    """
    Mutable byte window consumed by the socket.

    A buffer exposes its backing storage and a cursor pair obeying
    ``0 <= pos <= size <= len(buf)``. Sending reads ``buf[pos:size]``;
    receiving writes at ``buf[pos:]``.
    """

    @property
    @abstractmethod
    def buf(self) -> bytearray:
        """Writable backing storage."""
        pass

    @property
    @abstractmethod
    def pos(self) -> int:
        """Read/write position."""
        pass

    @pos.setter
    @abstractmethod
    def pos(self, value: int) -> None:
        pass

    @property
    @abstractmethod
    def size(self) -> int:
        """Logical size in bytes."""
        pass

    @size.setter
    @abstractmethod
    def size(self, value: int) -> None:
        pass

    @property
    def capacity(self) -> int:
        """Length of the backing storage."""
        return len(self.buf)

    @property
    def remaining(self) -> int:
        """Number of readable bytes between pos and size."""
        return self.size - self.pos
