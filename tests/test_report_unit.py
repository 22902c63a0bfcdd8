# tests/test_report_unit.py
from ipaddress import IPv4Address

import pytest

from pinger.engine.ledger import Probe
from pinger.engine.report import build_report, latency_us, percentile, summarize

A = IPv4Address("10.0.0.1")
B = IPv4Address("10.0.0.2")


def test_latency_is_microseconds():
    """Latency converts monotonic nanoseconds to microseconds."""
    assert latency_us(Probe(A, 0, sent_at=1_000_000, received_at=3_500_000)) == 2_500


def test_unanswered_and_negative_latency_are_none():
    """Unanswered probes and negative latencies give None."""
    assert latency_us(Probe(A, 0, sent_at=1_000)) is None
    assert latency_us(Probe(A, 0, sent_at=5_000_000, received_at=1_000_000)) is None


def test_build_report_indexes_by_sequence():
    """Report rows are indexed by sequence number."""
    probes = [
        Probe(A, 0, sent_at=0, received_at=10_000),
        Probe(A, 1, sent_at=0),
        Probe(A, 2, sent_at=0, received_at=30_000),
        Probe(B, 0, sent_at=0),
    ]
    report = build_report([A, B], 3, probes)
    assert report == {"10.0.0.1": [10, None, 30], "10.0.0.2": [None, None, None]}


def test_build_report_keeps_every_target():
    """Targets without probes still get a full row of None."""
    assert build_report([A, B], 2, []) == {"10.0.0.1": [None, None], "10.0.0.2": [None, None]}


def test_percentile_interpolates():
    """Percentiles interpolate linearly between closest ranks."""
    data = [10.0, 20.0, 30.0, 40.0]
    assert percentile(data, 0.0) == 10.0
    assert percentile(data, 1.0) == 40.0
    assert percentile(data, 0.5) == pytest.approx(25.0)
    assert percentile(data, 0.95) == pytest.approx(38.5)


def test_percentile_of_nothing():
    """Percentile of empty data raises ValueError."""
    with pytest.raises(ValueError):
        percentile([], 0.5)


def test_summarize_mixed_row():
    """Summary averages received latencies and counts lost ones."""
    summary = summarize([10_000, None, 30_000, 20_000], [0.5, 0.99])
    assert summary["avg_ms"] == 20.0
    assert summary["loss_pct"] == 25.0
    assert summary["percentiles"] == {0.5: 20.0, 0.99: 29.8}


def test_summarize_dark_host():
    """A host with no replies has no average and 100% loss."""
    assert summarize([None, None], [0.95]) == {"avg_ms": None, "loss_pct": 100.0, "percentiles": {}}


def test_summarize_empty_row():
    """An empty row summarizes to zero loss."""
    assert summarize([]) == {"avg_ms": None, "loss_pct": 0.0, "percentiles": {}}
