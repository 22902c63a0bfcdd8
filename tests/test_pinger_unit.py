# tests/test_pinger_unit.py
import json
import socket
from ipaddress import IPv4Address

import pytest

from pinger.config import Settings
from pinger.errors import InvalidArgumentError, SocketSetupError
from pinger.pinger import ICMPPinger, resolve_target
from pinger.transport import raw
from pinger.transport.fake import FakeTransport
from tools import run_pings


def test_add_target_accepts_text_int_and_address():
    """Targets may be text, integers or IPv4Address, deduplicated."""
    pinger = ICMPPinger(transport=FakeTransport())
    pinger.add_target("127.0.0.1")
    pinger.add_target(0x08080808)
    pinger.add_target(IPv4Address("127.0.0.1"))
    assert pinger.targets == [IPv4Address("127.0.0.1"), IPv4Address("8.8.8.8")]


def test_set_targets_replaces_list():
    """set_targets replaces rather than extends the target list."""
    pinger = ICMPPinger(transport=FakeTransport())
    pinger.set_targets(["10.0.0.1", "10.0.0.2"])
    pinger.set_targets(["10.0.0.3"])
    assert pinger.targets == [IPv4Address("10.0.0.3")]


def test_hostnames_go_through_dns(monkeypatch):
    """Non-numeric targets are resolved with gethostbyname."""
    monkeypatch.setattr(socket, "gethostbyname", lambda host: "93.184.216.34")
    assert resolve_target("example.com") == IPv4Address("93.184.216.34")


def test_unresolvable_host(monkeypatch):
    """A failed lookup raises InvalidArgumentError."""
    def boom(host):
        raise socket.gaierror(-2, "Name or service not known")
    monkeypatch.setattr(socket, "gethostbyname", boom)
    with pytest.raises(InvalidArgumentError):
        resolve_target("nope.invalid")


def test_send_pings_summaries():
    """send_pings returns average, loss and percentiles per host."""
    script = {("10.0.0.1", s): [{"delay": 0.005}] for s in range(4)}
    script[("10.0.0.2", 0)] = [{"delay": 0.005}]
    with ICMPPinger(transport=FakeTransport(script=script)) as pinger:
        pinger.set_targets(["10.0.0.1", "10.0.0.2", "10.0.0.3"])
        results = pinger.send_pings(200, 4, 0, [0.95, 0.99])

    a, b, c = results["10.0.0.1"], results["10.0.0.2"], results["10.0.0.3"]
    assert a["loss_pct"] == 0.0
    assert a["avg_ms"] >= 5.0
    assert set(a["percentiles"]) == {0.95, 0.99}
    assert b["loss_pct"] == 75.0
    assert c == {"avg_ms": None, "loss_pct": 100.0, "percentiles": {}}


def test_ping_returns_raw_report_and_keeps_base_settings():
    """ping() returns the raw report and honors base settings like the identifier."""
    fake = FakeTransport(script={("10.0.0.1", 1): [{"delay": 0.005}]})
    pinger = ICMPPinger(transport=fake, settings=Settings(identifier=0xFFFF, payload_size=0))
    pinger.add_target("10.0.0.1")
    report = pinger.ping(150, 2, 0)
    assert report["10.0.0.1"][0] is None
    assert report["10.0.0.1"][1] is not None
    assert {ident for _t, ident, _s, _w in fake.sent} == {0xFFFF}


def test_close_closes_transport():
    """Leaving the context manager closes the transport."""
    fake = FakeTransport()
    with ICMPPinger(transport=fake):
        pass
    assert fake.closed


def test_raw_socket_permission_error(monkeypatch):
    """Missing raw socket privileges surface as SocketSetupError."""
    def denied(*args, **kwargs):
        raise PermissionError(1, "Operation not permitted")
    monkeypatch.setattr(raw.socket, "socket", denied)
    with pytest.raises(SocketSetupError, match="are you root"):
        ICMPPinger()


def test_icmp_socket_failure_closes_raw_socket(monkeypatch):
    """A failed ICMP socket closes the already opened raw socket."""
    made = []

    class StubSocket:
        def __init__(self, family, kind, proto):
            if proto == socket.IPPROTO_ICMP:
                raise PermissionError(1, "Operation not permitted")
            self.closed = False
            made.append(self)

        def close(self):
            self.closed = True

    monkeypatch.setattr(raw.socket, "socket", StubSocket)
    with pytest.raises(SocketSetupError, match="icmp socket"):
        raw.RawSocketTransport()
    assert len(made) == 1 and made[0].closed


def test_run_pings_fake(capsys):
    """The runner's fake mode prints per-host summaries as JSON."""
    assert run_pings.main(["fake", "--count", "2", "--timeout-ms", "150", "--percentiles", "0.5"]) == 0
    out = json.loads(capsys.readouterr().out)
    assert set(out) == {"192.0.2.10", "192.0.2.20", "192.0.2.30"}
    assert out["192.0.2.10"]["loss_pct"] == 0.0
    assert out["192.0.2.20"]["loss_pct"] == 50.0
    assert out["192.0.2.30"]["avg_ms"] is None


def test_run_pings_raw_report(capsys):
    """--raw prints the full run result."""
    assert run_pings.main(["fake", "10.1.1.1", "--count", "1", "--timeout-ms", "100", "--raw"]) == 0
    out = json.loads(capsys.readouterr().out)
    assert out["report"]["10.1.1.1"][0] is not None
    assert out["probes_sent"] == 1


def test_run_pings_bad_timeout(capsys):
    """A zero timeout exits 1 with an error on stderr."""
    assert run_pings.main(["fake", "--timeout-ms", "0"]) == 1
    assert "timeout" in capsys.readouterr().err
