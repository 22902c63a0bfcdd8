# pinger/engine/sender.py
import logging
import threading
import time
from ipaddress import IPv4Address
from typing import Optional, Sequence

from pinger.engine.ledger import ProbeLedger
from pinger.engine.packets import build_echo_request
from pinger.transport.base import Transport

logger = logging.getLogger(__name__)


class EchoSender:
    """
    Sends count Echo Requests per target, all sequences of one target before
    the next, pausing delay_ms after each probe.
    """

    def __init__(self, transport: Transport, ledger: ProbeLedger, identifier: int,
                 count: int, delay_ms: int, payload_size: int = 20,
                 stop: Optional[threading.Event] = None):
        self.transport = transport
        self.ledger = ledger
        self.identifier = identifier
        self.count = count
        self.delay_s = delay_ms / 1000.0
        self.payload_size = payload_size
        self.stop = stop or threading.Event()
        self.errors = 0

    def run(self, targets: Sequence[IPv4Address]) -> int:
        """Send every probe; returns how many made it into the ledger."""
        for target in targets:
            for seq in range(self.count):
                if self.stop.is_set():
                    logger.info("sender cancelled after %d probes", self.ledger.sent_count)
                    return self.ledger.sent_count

                packet = build_echo_request(self.identifier, seq, self.payload_size)

                # sent_at goes in before the packet leaves so a fast reply always finds its slot
                pos = self.ledger.record_sent(target, seq, time.monotonic_ns())
                try:
                    self.transport.send(packet, target)
                except OSError as e:
                    self.errors += 1
                    self.ledger.record_error(pos, str(e))
                    logger.warning("unable to send ICMP packet to %s seq=%d: %s", target, seq, e)

                if self.delay_s > 0:
                    # wakes early on cancel
                    self.stop.wait(self.delay_s)

        return self.ledger.sent_count
