"""Exception types raised by dgramsock."""

from typing import Optional


class UdpIOError(OSError):
    """
    Failure reported by the OS datagram endpoint.

    The underlying exception, when there is one, is kept as ``cause`` and
    chained as ``__cause__``.

    Attributes:
        kind: "os" for a failed OS call, "closed" when the socket is
              closed, "timeout" when a receive timed out
        cause: Original exception or None
    """

    def __init__(
        self, message: str, cause: Optional[BaseException] = None, kind: str = "os"
    ):
        super().__init__(message)
        self.cause = cause
        self.kind = kind

    @classmethod
    def wrap(cls, err: BaseException) -> "UdpIOError":
        """Build a UdpIOError describing an OS exception."""
        return cls(str(err) or err.__class__.__name__, cause=err)

    @classmethod
    def closed(cls) -> "UdpIOError":
        """Build the error raised for operations on a closed socket."""
        return cls("Socket is closed", kind="closed")


class ReceiveTimeoutError(UdpIOError, TimeoutError):
    """Receive timeout elapsed before a datagram arrived."""

    def __init__(self, message: str = "Receive timed out", cause=None):
        super().__init__(message, cause=cause, kind="timeout")


class UdpArgError(ValueError):
    """Argument is invalid for the current socket state."""
