# pinger/engine/controller.py

import logging
import random
import threading
import time
from collections import Counter
from ipaddress import IPv4Address
from typing import Iterable, Optional

from pinger.config import Settings
from pinger.engine.ledger import ProbeLedger
from pinger.engine.listener import EchoListener
from pinger.engine.report import build_report
from pinger.engine.sender import EchoSender
from pinger.errors import InvalidArgumentError
from pinger.schemas import RunResult
from pinger.transport.base import Transport

logger = logging.getLogger(__name__)

# identifier -> number of runs in flight in this process holding it
_active_ids: Counter = Counter()
_active_lock = threading.Lock()


def _claim_identifier(fixed: Optional[int]) -> int:
    with _active_lock:
        if fixed is not None:
            ident = fixed
        else:
            ident = random.getrandbits(16)
            while ident in _active_ids and len(_active_ids) < 0x10000:
                ident = random.getrandbits(16)
        _active_ids[ident] += 1
        return ident


def _release_identifier(ident: int) -> None:
    with _active_lock:
        _active_ids[ident] -= 1
        if _active_ids[ident] <= 0:
            del _active_ids[ident]


def normalize_targets(targets: Iterable) -> list[IPv4Address]:
    """IPv4Address list in first-seen order, duplicates dropped."""
    out: list[IPv4Address] = []
    seen = set()
    for t in targets:
        try:
            addr = IPv4Address(t)
        except ValueError as e:
            raise InvalidArgumentError(f"not an IPv4 address: {t!r}") from e
        if addr not in seen:
            seen.add(addr)
            out.append(addr)
    return out


class PingEngine:
    def __init__(self, transport: Transport, settings: Optional[Settings] = None):
        self.transport = transport
        self.s = settings or Settings()
        self._stop = threading.Event()

    def cancel(self) -> None:
        """Stop the sender before its next probe and let the listener exit at its next wake-up."""
        self._stop.set()

    def run(self, targets: Iterable) -> RunResult:
        self.s.validate()
        addrs = normalize_targets(targets)
        self._stop.clear()

        ident = _claim_identifier(self.s.identifier)
        try:
            return self._run(addrs, ident)
        finally:
            _release_identifier(ident)

    def _run(self, addrs: list[IPv4Address], ident: int) -> RunResult:
        ledger = ProbeLedger(len(addrs) * self.s.count)

        # -------------------------------
        # 1) Listener first, so no reply can slip by
        # -------------------------------
        deadline = time.monotonic() + self.s.timeout_ms / 1000.0
        listener = EchoListener(
            self.transport, ledger, ident, deadline,
            poll_interval_ms=self.s.poll_interval_ms,
            recv_buffer=self.s.recv_buffer,
            stop=self._stop,
        )
        listener.start()

        logger.info("pinging %d target(s) x %d probe(s), id=0x%04x, timeout=%dms",
                    len(addrs), self.s.count, ident, self.s.timeout_ms)

        # -------------------------------
        # 2) Send on this thread
        # -------------------------------
        sender = EchoSender(
            self.transport, ledger, ident, self.s.count, self.s.delay_ms,
            payload_size=self.s.payload_size, stop=self._stop,
        )
        try:
            sent = sender.run(addrs)
        except BaseException:
            # don't leave the listener waiting out the budget on its own
            self._stop.set()
            raise
        finally:
            # -------------------------------
            # 3) Wait out the budget, then build the report
            # -------------------------------
            listener.join()

        probes = ledger.probes()
        report = build_report(addrs, self.s.count, probes)
        logger.info("run done: %d sent, %d send error(s), %d repl(ies) matched",
                    sent, sender.errors, listener.matched)

        return {
            "report": report,
            "identifier": ident,
            "probes_sent": sent,
            "send_errors": sender.errors,
            "failed_sends": [
                {"target": str(p.target), "seq": p.seq, "error": p.error}
                for p in probes if p.error is not None
            ],
            "replies_matched": listener.matched,
            "replies_ignored": listener.ignored,
            "listener_error": listener.error,
        }
