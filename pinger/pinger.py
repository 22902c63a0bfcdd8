# pinger/pinger.py
import dataclasses
import logging
import socket
from ipaddress import IPv4Address
from typing import Iterable, Optional

from pinger.config import Settings
from pinger.engine.controller import PingEngine
from pinger.engine.report import summarize
from pinger.errors import InvalidArgumentError
from pinger.schemas import HostSummary, Report, RunResult
from pinger.transport.base import Transport

logger = logging.getLogger(__name__)


def resolve_target(host) -> IPv4Address:
    """Dotted quad, 32-bit int or IPv4Address as is; anything else through DNS."""
    try:
        return IPv4Address(host)
    except ValueError:
        pass
    if not isinstance(host, str):
        raise InvalidArgumentError(f"not an IPv4 address: {host!r}")
    try:
        return IPv4Address(socket.gethostbyname(host))
    except OSError as e:
        raise InvalidArgumentError(f"cannot resolve {host}: {e}") from e


class ICMPPinger:
    """
    Multi-target pinger.

        with ICMPPinger() as pinger:
            pinger.add_target("127.0.0.1")
            pinger.add_target("8.8.8.8")
            results = pinger.send_pings(1000, 8, 50, [0.95, 0.99])

    Opening the default transport needs raw socket privileges; a
    SocketSetupError surfaces from the constructor.
    """

    def __init__(self, transport: Optional[Transport] = None, settings: Optional[Settings] = None):
        if transport is None:
            from pinger.transport.raw import RawSocketTransport
            transport = RawSocketTransport()
        self.transport = transport
        self.settings = settings or Settings()
        self.targets: list[IPv4Address] = []
        self.engine: Optional[PingEngine] = None

    def add_target(self, host) -> IPv4Address:
        addr = resolve_target(host)
        if addr not in self.targets:
            self.targets.append(addr)
            logger.debug("target added: %s -> %s", host, addr)
        return addr

    def set_targets(self, hosts: Iterable) -> None:
        self.targets = []
        for host in hosts:
            self.add_target(host)

    def run(self, timeout_ms: int, count: int, delay_ms: int) -> RunResult:
        s = dataclasses.replace(self.settings, timeout_ms=timeout_ms, count=count, delay_ms=delay_ms)
        self.engine = PingEngine(self.transport, s)
        return self.engine.run(self.targets)

    def ping(self, timeout_ms: int, count: int, delay_ms: int) -> Report:
        return self.run(timeout_ms, count, delay_ms)["report"]

    def send_pings(self, timeout_ms: int, count: int, delay_ms: int,
                   percentiles: Iterable[float] = ()) -> dict[str, HostSummary]:
        percentiles = list(percentiles)
        report = self.ping(timeout_ms, count, delay_ms)
        return {host: summarize(latencies, percentiles) for host, latencies in report.items()}

    def cancel(self) -> None:
        if self.engine is not None:
            self.engine.cancel()

    def close(self) -> None:
        self.transport.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
