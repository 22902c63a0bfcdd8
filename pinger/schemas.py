from typing import Dict, List, Optional, TypedDict

# dotted-quad -> latency in microseconds per sequence number (None = no reply)
Report = Dict[str, List[Optional[int]]]

class FailedSend(TypedDict):
    target: str
    seq: int
    error: str

class RunResult(TypedDict):
    report: Report
    identifier: int
    probes_sent: int
    send_errors: int
    failed_sends: List[FailedSend]
    replies_matched: int
    replies_ignored: int
    listener_error: Optional[str]

class HostSummary(TypedDict):
    avg_ms: Optional[float]
    loss_pct: float
    percentiles: Dict[float, float]
