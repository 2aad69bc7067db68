#!/usr/bin/env python3
"""Entry point: run one scrape/score/notify cycle, or keep running on a schedule."""
from __future__ import annotations

import argparse
import signal
import sys
import threading

from careerpilot.config import PROFILE_PATH
from careerpilot.errors import ConfigurationError
from careerpilot.log import get_logger

log = get_logger(__name__)


def _check_setup() -> bool:
    """Return True if first-run setup is needed."""
    if not PROFILE_PATH.exists():
        print()
        print("  No profile found. Copy the example and edit it:")
        print("    cp config/profile.example.yaml config/profile.yaml")
        print()
        return True
    return False


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Vacancy scoring and notification agent")
    parser.add_argument("--once", action="store_true", help="Run a single cycle and exit")
    parser.add_argument("--test-channels", action="store_true", help="Check notification credentials, send nothing")
    parser.add_argument("--interval-hours", type=float, default=None, help="Hours between cycles (default from settings)")
    args = parser.parse_args(argv)

    if _check_setup():
        return 1

    from careerpilot.pipeline import Orchestrator

    try:
        orchestrator = Orchestrator.from_config()
    except ConfigurationError as exc:
        log.error("Configuration error: %s", exc)
        return 2

    if args.test_channels:
        results = orchestrator.test_channels()
        if not results:
            log.warning("No channels configured")
            return 1
        for name, ok in results.items():
            log.info("  %-10s %s", name, "OK" if ok else "FAILED")
        return 0 if all(results.values()) else 1

    if args.once:
        report = orchestrator.run_cycle()
        log.info("Run complete.")
        log.info("  Stored: %d, duplicates: %d, rejected: %d", report.succeeded, report.skipped, report.failed)
        log.info("  Matches notified: %d", len(report.ranked))
        for platform, err in report.platform_errors.items():
            log.info("  Platform %s failed: %s", platform, err)
        for d in report.deliveries:
            log.info("  %-10s %d/%d chunk(s)%s", d.channel, d.chunks_sent, d.chunks_total,
                     f" ERROR: {d.error}" if d.error else "")
        return 0

    cancel = threading.Event()

    def _stop(signum, frame) -> None:
        log.info("Signal %d received, stopping after the current step", signum)
        cancel.set()

    signal.signal(signal.SIGINT, _stop)
    signal.signal(signal.SIGTERM, _stop)
    orchestrator.run_forever(args.interval_hours, cancel)
    return 0


if __name__ == "__main__":
    sys.exit(main())
