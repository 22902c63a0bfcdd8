# pinger/engine/ledger.py
import threading
from dataclasses import dataclass
from ipaddress import IPv4Address


@dataclass
class Probe:
    target: IPv4Address
    seq: int
    sent_at: int                      # time.monotonic_ns() just before sendto
    received_at: int | None = None    # first matching reply only
    error: str | None = None          # transmission failure, if any


class ProbeLedger:
    """
    Pre-sized table of outstanding probes shared by the sender and the listener.

    The sender appends in send order with record_sent(); the listener only ever
    looks at the published prefix through mark_received(). Every access goes
    through one lock, so a slot is fully written before it is visible and a
    received_at is set at most once.
    """

    def __init__(self, capacity: int):
        self.capacity = capacity
        self._slots: list[Probe | None] = [None] * capacity
        self._sent = 0
        # (target, seq) -> slot positions in send order
        self._index: dict[tuple[IPv4Address, int], list[int]] = {}
        self._lock = threading.Lock()

    @property
    def sent_count(self) -> int:
        with self._lock:
            return self._sent

    def record_sent(self, target: IPv4Address, seq: int, sent_at: int) -> int:
        with self._lock:
            if self._sent >= self.capacity:
                raise IndexError(f"ledger is full ({self.capacity} probes)")
            pos = self._sent
            self._slots[pos] = Probe(target=target, seq=seq, sent_at=sent_at)
            self._index.setdefault((target, seq), []).append(pos)
            self._sent += 1
            return pos

    def record_error(self, pos: int, error: str) -> None:
        with self._lock:
            self._slots[pos].error = error

    def mark_received(self, source: IPv4Address, seq: int, received_at: int) -> bool:
        """Stamp the first unanswered probe for (source, seq); False if none."""
        with self._lock:
            for pos in self._index.get((source, seq), ()):
                probe = self._slots[pos]
                if probe.received_at is None:
                    probe.received_at = received_at
                    return True
            return False

    def probes(self) -> list[Probe]:
        """Snapshot of the sent prefix, in send order."""
        with self._lock:
            return list(self._slots[:self._sent])
