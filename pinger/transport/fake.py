# pinger/transport/fake.py
import heapq
import itertools
import struct
import threading
import time
from ipaddress import IPv4Address
from typing import Optional

from pinger.engine.packets import ICMP_ECHO_REPLY, checksum, decode_echo_request
from pinger.transport.base import Transport


def encode_ipv4_datagram(source: IPv4Address, dest: IPv4Address, payload: bytes,
                         options: bytes = b"", proto: int = 1, ttl: int = 64) -> bytes:
    """IPv4 header (plus optional, 4-byte aligned options) in front of payload."""
    ihl = 5 + len(options) // 4
    header = struct.pack(
        "!BBHHHBBH4s4s",
        (4 << 4) | ihl, 0, ihl * 4 + len(payload), 0, 0, ttl, proto, 0,
        source.packed, dest.packed,
    ) + options
    csum = checksum(header)
    header = header[:10] + struct.pack("!H", csum) + header[12:]
    return header + payload


def encode_echo_reply(identifier: int, sequence: int, icmp_type: int = ICMP_ECHO_REPLY,
                      payload: bytes = b"") -> bytes:
    header = struct.pack("!BBHHH", icmp_type, 0, 0, identifier, sequence)
    csum = checksum(header + payload)
    return struct.pack("!BBHHH", icmp_type, 0, csum, identifier, sequence) + payload


class FakeTransport(Transport):
    """
    In-memory transport that answers probes from a script.

    script: dict[(target, seq)] -> list of scripted replies, one datagram each.
    Each reply is a dict with optional keys:
      delay       seconds between the request going out and the reply arriving
      identifier  overrides the identifier echoed back
      type        ICMP type of the reply (default Echo Reply)
      options     IP options bytes, to exercise variable header lengths
    Targets may be given as text or IPv4Address. Probes with no script entry
    are never answered.

    fail_sends: set of (target, seq) whose send raises OSError.
    fail_wait: when True, wait_readable raises OSError.
    """

    def __init__(self, script=None, fail_sends=None, fail_wait: bool = False,
                 local_addr: str = "192.0.2.1"):
        self.script = {}
        for (target, seq), replies in (script or {}).items():
            self.script[(IPv4Address(target), seq)] = list(replies)
        self.fail_sends = {(IPv4Address(t), s) for t, s in (fail_sends or ())}
        self.fail_wait = fail_wait
        self.local_addr = IPv4Address(local_addr)

        self.sent: list[tuple[IPv4Address, int, int, float]] = []   # target, id, seq, when
        self.waits: list[float] = []
        self.closed = False

        self._pending: list = []       # heap of (due, n, datagram, source)
        self._counter = itertools.count()
        self._cond = threading.Condition()

    def inject(self, datagram: bytes, source, delay: float = 0.0) -> None:
        """Queue an arbitrary datagram, as if it arrived from source."""
        with self._cond:
            due = time.monotonic() + delay
            heapq.heappush(self._pending, (due, next(self._counter), datagram, IPv4Address(source)))
            self._cond.notify_all()

    def send(self, packet: bytes, target: IPv4Address) -> None:
        decoded = decode_echo_request(packet)
        if decoded is None:
            raise OSError(22, "fake transport only carries echo requests")
        identifier, seq = decoded

        if (target, seq) in self.fail_sends:
            raise OSError(101, "Network is unreachable")

        with self._cond:
            self.sent.append((target, identifier, seq, time.monotonic()))

        for scripted in self.script.get((target, seq), ()):
            reply = encode_echo_reply(
                scripted.get("identifier", identifier), seq,
                icmp_type=scripted.get("type", ICMP_ECHO_REPLY),
            )
            datagram = encode_ipv4_datagram(target, self.local_addr, reply,
                                            options=scripted.get("options", b""))
            self.inject(datagram, target, delay=scripted.get("delay", 0.0))

    def wait_readable(self, timeout: float) -> bool:
        if self.fail_wait:
            raise OSError(9, "Bad file descriptor")

        self.waits.append(timeout)
        deadline = time.monotonic() + max(0.0, timeout)
        with self._cond:
            while True:
                now = time.monotonic()
                if self._pending and self._pending[0][0] <= now:
                    return True
                if now >= deadline or self.closed:
                    return False
                wake = deadline
                if self._pending:
                    wake = min(wake, self._pending[0][0])
                self._cond.wait(wake - now)

    def recv(self, bufsize: int) -> Optional[tuple[bytes, IPv4Address]]:
        with self._cond:
            if not self._pending or self._pending[0][0] > time.monotonic():
                return None
            _due, _n, datagram, source = heapq.heappop(self._pending)
        return datagram[:bufsize], source

    def close(self) -> None:
        with self._cond:
            self.closed = True
            self._cond.notify_all()
