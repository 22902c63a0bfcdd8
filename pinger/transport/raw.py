# pinger/transport/raw.py
import logging
import select
import socket
from ipaddress import IPv4Address
from typing import Optional

from pinger.errors import SocketSetupError
from pinger.transport.base import Transport

logger = logging.getLogger(__name__)


class RawSocketTransport(Transport):
    """
    Raw-socket transport. Opens a raw IP socket and a non-blocking raw ICMP
    socket; probes go out and replies come back on the ICMP one. Both need
    root or CAP_NET_RAW, and failing to open either is fatal.
    """

    def __init__(self):
        self.raw_sock: Optional[socket.socket] = None
        self.icmp_sock: Optional[socket.socket] = None

        try:
            self.raw_sock = socket.socket(socket.AF_INET, socket.SOCK_RAW, socket.IPPROTO_RAW)
        except OSError as e:
            raise SocketSetupError(f"cannot create raw socket, are you root ? ({e})") from e

        try:
            self.icmp_sock = socket.socket(socket.AF_INET, socket.SOCK_RAW, socket.IPPROTO_ICMP)
        except OSError as e:
            self.close()
            raise SocketSetupError(f"cannot create icmp socket, are you root ? ({e})") from e

        try:
            self.icmp_sock.setblocking(False)
        except OSError as e:
            self.close()
            raise SocketSetupError(f"cannot set icmp socket non blocking: {e}") from e

        logger.debug("raw sockets ready (icmp fd=%d)", self.icmp_sock.fileno())

    def send(self, packet: bytes, target: IPv4Address) -> None:
        self.icmp_sock.sendto(packet, (str(target), 0))

    def wait_readable(self, timeout: float) -> bool:
        readable, _, _ = select.select([self.icmp_sock], [], [], max(0.0, timeout))
        return bool(readable)

    def recv(self, bufsize: int) -> Optional[tuple[bytes, IPv4Address]]:
        try:
            data, addr = self.icmp_sock.recvfrom(bufsize)
        except BlockingIOError:
            return None
        return data, IPv4Address(addr[0])

    def close(self) -> None:
        for sock in (self.icmp_sock, self.raw_sock):
            if sock is not None:
                sock.close()
        self.icmp_sock = None
        self.raw_sock = None
