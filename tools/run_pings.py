# tools/run_pings.py
# Usage examples:
#   sudo python3 -m tools.run_pings 127.0.0.1 8.8.8.8
#   sudo python3 -m tools.run_pings 8.8.8.8 --count 8 --delay-ms 50 --timeout-ms 2000 --percentiles 0.95 0.99
#   python3 -m tools.run_pings fake

import argparse
import json
import logging
import sys

from pinger.config import Settings
from pinger.errors import PingerError
from pinger.pinger import ICMPPinger

def fake_transport(args):
    from pinger.transport.fake import FakeTransport
    # first target answers everything, second answers even sequences, the rest are dark
    script = {}
    targets = args.targets or ["192.0.2.10", "192.0.2.20", "192.0.2.30"]
    for i, target in enumerate(targets[:2]):
        for seq in range(args.count):
            if i == 1 and seq % 2:
                continue
            script[(target, seq)] = [{"delay": 0.005 * (i + 1) + 0.001 * seq}]
    return FakeTransport(script=script), targets

def run(args) -> int:
    settings = Settings(
        payload_size=args.payload_size,
        identifier=args.identifier,
    )
    if args.fake:
        transport, targets = fake_transport(args)
    else:
        transport, targets = None, args.targets

    try:
        with ICMPPinger(transport=transport, settings=settings) as pinger:
            pinger.set_targets(targets)
            if args.raw:
                out = pinger.run(args.timeout_ms, args.count, args.delay_ms)
            else:
                out = pinger.send_pings(args.timeout_ms, args.count, args.delay_ms, args.percentiles)
    except PingerError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    print(json.dumps(out, indent=2))
    return 0

def build_argparser():
    ap = argparse.ArgumentParser(description="Multi-target ICMP pinger")
    ap.add_argument("targets", nargs="*", help="IPv4 addresses or hostnames (or 'fake' first for a scripted run)")
    ap.add_argument("--timeout-ms", type=int, default=1000, help="Total listening budget (milliseconds)")
    ap.add_argument("--count", type=int, default=3, help="Probes per target")
    ap.add_argument("--delay-ms", type=int, default=0, help="Pause after each probe (milliseconds)")
    ap.add_argument("--percentiles", type=float, nargs="*", default=[], help="Latency percentiles to report, e.g. 0.95 0.99")
    ap.add_argument("--payload-size", type=int, default=20, help="Zero bytes after the ICMP header")
    ap.add_argument("--identifier", type=lambda v: int(v, 0), default=None,
                    help="Fixed ICMP identifier (default: random per run)")
    ap.add_argument("--raw", action="store_true", help="Print the per-sequence report instead of summaries")
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return ap

def main(argv=None) -> int:
    ap = build_argparser()
    args = ap.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    args.fake = bool(args.targets) and args.targets[0] == "fake"
    if args.fake:
        args.targets = args.targets[1:]
    elif not args.targets:
        ap.error("Provide at least one target (e.g., 8.8.8.8) or 'fake'")

    return run(args)

if __name__ == "__main__":
    raise SystemExit(main())
