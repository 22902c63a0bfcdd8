# pinger/transport/base.py
from abc import ABC, abstractmethod
from ipaddress import IPv4Address
from typing import Optional


class Transport(ABC):
    """The ICMP socket seam used by the sender and the listener."""

    @abstractmethod
    def send(self, packet: bytes, target: IPv4Address) -> None:
        """Transmit one ICMP packet to target. Raises OSError on failure."""
        raise NotImplementedError

    @abstractmethod
    def wait_readable(self, timeout: float) -> bool:
        """Block up to timeout seconds; True once a datagram can be read."""
        raise NotImplementedError

    @abstractmethod
    def recv(self, bufsize: int) -> Optional[tuple[bytes, IPv4Address]]:
        """Non-blocking read of one datagram with its source, None if drained."""
        raise NotImplementedError

    def close(self) -> None:
        pass
