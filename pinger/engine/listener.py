# pinger/engine/listener.py
import logging
import threading
import time
from typing import Optional

from pinger.engine.ledger import ProbeLedger
from pinger.engine.packets import ICMP_ECHO_REPLY, decode_icmp
from pinger.transport.base import Transport

logger = logging.getLogger(__name__)


class EchoListener(threading.Thread):
    """
    Background reply catcher.

    Waits on the transport until the run deadline, draining every readable
    datagram and stamping the matching ledger slot. The deadline is a fixed
    monotonic instant, so the cumulative wait can never exceed the timeout
    however many times the wait wakes up early.
    """

    def __init__(self, transport: Transport, ledger: ProbeLedger, identifier: int,
                 deadline: float, poll_interval_ms: int = 100, recv_buffer: int = 1024,
                 stop: Optional[threading.Event] = None):
        super().__init__(name="icmp-reply-listener", daemon=True)
        self.transport = transport
        self.ledger = ledger
        self.identifier = identifier
        self.deadline = deadline
        self.poll_interval = poll_interval_ms / 1000.0
        self.recv_buffer = recv_buffer
        self.stop = stop or threading.Event()

        self.matched = 0
        self.ignored = 0
        self.error: Optional[str] = None

    def run(self) -> None:
        try:
            self._listen()
        except OSError as e:
            # partial results are still reported; unanswered probes stay None
            self.error = str(e)
            logger.error("listener stopped early: %s", e)

    def _listen(self) -> None:
        while not self.stop.is_set():
            remaining = self.deadline - time.monotonic()
            if remaining <= 0:
                break
            if self.transport.wait_readable(min(remaining, self.poll_interval)):
                self._drain()
        logger.debug("listener done: %d matched, %d ignored", self.matched, self.ignored)

    def _drain(self) -> None:
        while True:
            # a busy socket must not hold the listener past its budget
            if self.stop.is_set() or time.monotonic() >= self.deadline:
                return
            got = self.transport.recv(self.recv_buffer)
            if got is None:
                return
            datagram, source = got
            self.handle(datagram, source, time.monotonic_ns())

    def handle(self, datagram: bytes, source, received_at: int) -> bool:
        msg = decode_icmp(datagram)
        if msg is None:
            self.ignored += 1
            return False
        # raw ICMP sockets see all ICMP traffic, our own requests included
        if msg.type != ICMP_ECHO_REPLY or msg.identifier != self.identifier:
            self.ignored += 1
            return False

        if self.ledger.mark_received(source, msg.sequence, received_at):
            self.matched += 1
            return True

        logger.debug("no outstanding probe for %s seq=%d", source, msg.sequence)
        self.ignored += 1
        return False
