"""Unit tests for transports.udp.options module."""

import pytest
import socket
from datetime import timedelta
from unittest.mock import Mock, patch

from dgramsock.config.settings import SocketConfig
from dgramsock.errors import UdpArgError, UdpIOError
from dgramsock.transports.udp.sync_socket import UdpSocket


@pytest.fixture
def mock_socket():
    """Patch socket.socket and yield the mock OS socket."""
    with patch("socket.socket") as mock_socket_class:
        os_socket = Mock()
        os_socket.gettimeout.return_value = None
        mock_socket_class.return_value = os_socket
        yield os_socket


class TestSocketOptions:
    """Test suite for SocketOptions."""

    def test_broadcast(self, mock_socket):
        """Test broadcast round-trips SO_BROADCAST."""
        mock_socket.getsockopt.return_value = 1
        opts = UdpSocket().options

        opts.broadcast = True

        mock_socket.setsockopt.assert_called_once_with(
            socket.SOL_SOCKET, socket.SO_BROADCAST, 1
        )
        assert opts.broadcast is True
        mock_socket.getsockopt.assert_called_with(socket.SOL_SOCKET, socket.SO_BROADCAST)

    def test_reuse_address(self, mock_socket):
        """Test reuse_address round-trips SO_REUSEADDR."""
        mock_socket.getsockopt.return_value = 0
        opts = UdpSocket().options

        opts.reuse_address = False

        mock_socket.setsockopt.assert_called_once_with(
            socket.SOL_SOCKET, socket.SO_REUSEADDR, 0
        )
        assert opts.reuse_address is False

    def test_buffer_sizes(self, mock_socket):
        """Test buffer sizes map to SO_RCVBUF and SO_SNDBUF."""
        mock_socket.getsockopt.return_value = 212992
        opts = UdpSocket().options

        opts.receive_buffer_size = 65536
        opts.send_buffer_size = 32768

        mock_socket.setsockopt.assert_any_call(socket.SOL_SOCKET, socket.SO_RCVBUF, 65536)
        mock_socket.setsockopt.assert_any_call(socket.SOL_SOCKET, socket.SO_SNDBUF, 32768)
        assert opts.receive_buffer_size == 212992
        assert opts.send_buffer_size == 212992

    @pytest.mark.parametrize("name", ["receive_buffer_size", "send_buffer_size"])
    @pytest.mark.parametrize("value", [0, -1])
    def test_buffer_size_must_be_positive(self, mock_socket, name, value):
        """Test non-positive buffer sizes are rejected."""
        opts = UdpSocket().options

        with pytest.raises(UdpArgError, match="must be positive"):
            setattr(opts, name, value)
        mock_socket.setsockopt.assert_not_called()

    def test_receive_timeout_set(self, mock_socket):
        """Test durations are truncated to whole milliseconds."""
        opts = UdpSocket().options

        opts.receive_timeout = timedelta(microseconds=50900)

        mock_socket.settimeout.assert_called_with(0.05)

    @pytest.mark.parametrize(
        "value", [None, timedelta(0), timedelta(microseconds=999)]
    )
    def test_receive_timeout_infinite(self, mock_socket, value):
        """Test None and sub-millisecond durations disable the timeout."""
        opts = UdpSocket().options
        mock_socket.settimeout.reset_mock()

        opts.receive_timeout = value

        mock_socket.settimeout.assert_called_once_with(None)

    @pytest.mark.parametrize(
        "value", [timedelta(milliseconds=-5), timedelta(microseconds=-500)]
    )
    def test_receive_timeout_negative(self, mock_socket, value):
        """Test negative durations are rejected, even below a millisecond."""
        opts = UdpSocket().options
        mock_socket.settimeout.reset_mock()

        with pytest.raises(UdpArgError, match="must not be negative"):
            opts.receive_timeout = value
        mock_socket.settimeout.assert_not_called()

    def test_receive_timeout_get(self, mock_socket):
        """Test the timeout reads back in milliseconds."""
        opts = UdpSocket().options

        mock_socket.gettimeout.return_value = 0.05
        assert opts.receive_timeout == timedelta(milliseconds=50)

        mock_socket.gettimeout.return_value = None
        assert opts.receive_timeout is None

        mock_socket.gettimeout.return_value = 0.0
        assert opts.receive_timeout is None

    def test_traffic_class_ipv4(self, mock_socket):
        """Test traffic_class maps to IP_TOS on IPv4."""
        mock_socket.getsockopt.return_value = 0x10
        opts = UdpSocket().options

        opts.traffic_class = 0x10

        mock_socket.setsockopt.assert_called_once_with(
            socket.IPPROTO_IP, socket.IP_TOS, 0x10
        )
        assert opts.traffic_class == 0x10

    @pytest.mark.skipif(
        not hasattr(socket, "IPV6_TCLASS"), reason="IPV6_TCLASS not available"
    )
    def test_traffic_class_ipv6(self, mock_socket):
        """Test traffic_class maps to IPV6_TCLASS on IPv6."""
        opts = UdpSocket(SocketConfig(family="ipv6")).options

        opts.traffic_class = 0x20

        mock_socket.setsockopt.assert_called_with(
            socket.IPPROTO_IPV6, socket.IPV6_TCLASS, 0x20
        )

    @pytest.mark.parametrize("value", [-1, 256])
    def test_traffic_class_range(self, mock_socket, value):
        """Test traffic class outside a byte is rejected."""
        opts = UdpSocket().options

        with pytest.raises(UdpArgError, match="0-255"):
            opts.traffic_class = value

    def test_os_error_wrapped(self, mock_socket):
        """Test OS failures surface as UdpIOError."""
        mock_socket.getsockopt.side_effect = OSError("Bad file descriptor")
        opts = UdpSocket().options

        with pytest.raises(UdpIOError, match="Bad file descriptor") as exc_info:
            opts.broadcast
        assert isinstance(exc_info.value.__cause__, OSError)

    def test_options_after_close(self, mock_socket):
        """Test the view refuses access once the socket is closed."""
        sock = UdpSocket()
        opts = sock.options
        sock.close()

        with pytest.raises(UdpIOError, match="Socket is closed"):
            opts.receive_timeout
        with pytest.raises(UdpIOError, match="Socket is closed"):
            opts.broadcast = True

    def test_copy_from(self, mock_socket):
        """Test copy_from transfers every option."""
        source = Mock()
        source.broadcast = True
        source.receive_buffer_size = 8192
        source.send_buffer_size = 4096
        source.reuse_address = True
        source.receive_timeout = timedelta(milliseconds=250)
        source.traffic_class = 0x08
        opts = UdpSocket().options

        assert opts.copy_from(source) is opts

        mock_socket.setsockopt.assert_any_call(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
        mock_socket.setsockopt.assert_any_call(socket.SOL_SOCKET, socket.SO_RCVBUF, 8192)
        mock_socket.setsockopt.assert_any_call(socket.SOL_SOCKET, socket.SO_SNDBUF, 4096)
        mock_socket.setsockopt.assert_any_call(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        mock_socket.setsockopt.assert_any_call(socket.IPPROTO_IP, socket.IP_TOS, 0x08)
        mock_socket.settimeout.assert_called_with(0.25)
