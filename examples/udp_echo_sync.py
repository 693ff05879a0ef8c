"""Example: Synchronous UDP echo server and client."""

import sys
from datetime import timedelta
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from dgramsock import MemBuf, ReceiveTimeoutError, SocketConfig, UdpPacket, UdpSocket


def run_server():
    """Run the UDP echo server."""
    with UdpSocket() as sock:
        sock.bind("127.0.0.1", 9999)
        print(f"UDP server listening on {sock.local_address}:{sock.local_port}")
        try:
            while True:
                packet = sock.receive()
                text = packet.data.to_bytes().decode()
                print(f"Received from {packet.address}:{packet.port}: {text}")
                # rewind so the whole datagram is sent back
                packet.data.seek(0)
                sock.send(packet)
        except KeyboardInterrupt:
            print("\nShutting down server...")


def run_client():
    """Run the UDP echo client."""
    config = SocketConfig(receive_timeout=timedelta(seconds=2))
    with UdpSocket(config) as sock:
        sock.connect("127.0.0.1", 9999)
        message = MemBuf.from_bytes(b"Hello, UDP Server!")
        print(f"Sending: {message.to_bytes().decode()}")
        sock.send(UdpPacket(data=message))
        try:
            response = sock.receive()
        except ReceiveTimeoutError:
            print("No response from server")
            return
        print(f"Received: {response.data.to_bytes().decode()}")


if __name__ == "__main__":
    if len(sys.argv) > 1 and sys.argv[1] == "client":
        run_client()
    else:
        run_server()
