"""Socket configuration settings."""

from dataclasses import dataclass
from datetime import timedelta
from typing import Optional


@dataclass
class SocketConfig:
    """UDP socket configuration."""

    family: str = "ipv4"  # ipv4 or ipv6
    default_packet_size: int = 1024

    # Initial socket options, None keeps the OS default
    receive_timeout: Optional[timedelta] = None
    broadcast: Optional[bool] = None
    reuse_address: Optional[bool] = None
    receive_buffer_size: Optional[int] = None
    send_buffer_size: Optional[int] = None
    traffic_class: Optional[int] = None
