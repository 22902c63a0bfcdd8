# pinger/engine/report.py
import math
import statistics
from collections.abc import Iterable, Sequence
from ipaddress import IPv4Address
from typing import Optional

from pinger.engine.ledger import Probe
from pinger.schemas import HostSummary, Report


def latency_us(probe: Probe) -> Optional[int]:
    """Round trip in microseconds; None when unanswered or negative."""
    if probe.received_at is None:
        return None
    latency = (probe.received_at - probe.sent_at) // 1000
    if latency < 0:
        return None
    return latency


def build_report(targets: Sequence[IPv4Address], count: int, probes: Iterable[Probe]) -> Report:
    report: Report = {str(t): [None] * count for t in targets}
    for probe in probes:
        report[str(probe.target)][probe.seq] = latency_us(probe)
    return report


def percentile(sorted_values: Sequence[float], fraction: float) -> float:
    """Linear interpolation between closest ranks (fraction in [0, 1])."""
    if not sorted_values:
        raise ValueError("percentile of empty data")
    fraction = min(max(fraction, 0.0), 1.0)
    pos = (len(sorted_values) - 1) * fraction
    lo = math.floor(pos)
    hi = math.ceil(pos)
    if lo == hi:
        return sorted_values[lo]
    return sorted_values[lo] + (sorted_values[hi] - sorted_values[lo]) * (pos - lo)


def summarize(latencies: Sequence[Optional[int]], percentiles: Iterable[float] = ()) -> HostSummary:
    """
    Collapse one target's report row into average, loss and percentiles.
    Latencies come in microseconds; everything out is milliseconds.
    """
    received = sorted(v / 1000.0 for v in latencies if v is not None)
    total = len(latencies)
    loss = 100.0 * (total - len(received)) / total if total else 0.0

    if not received:
        return {"avg_ms": None, "loss_pct": round(loss, 2), "percentiles": {}}

    return {
        "avg_ms": round(statistics.mean(received), 2),
        "loss_pct": round(loss, 2),
        "percentiles": {p: round(percentile(received, p), 2) for p in percentiles},
    }
