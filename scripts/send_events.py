#!/usr/bin/env python3
"""Send a handful of sample events to a live tracking endpoint.

Useful for checking that a write key works and that events show up in the
debugger. The write key is read from ``ANALYTICS_WRITE_KEY`` unless given
with ``--write-key``.

Default behavior:
1) identify a sample user and alias the previous anonymous id,
2) track one event and record one screen,
3) flush and wait for the upload to finish.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pyanalytics import Analytics, AnalyticsConfig, AnalyticsError, LocalHost, LogLevel  # noqa: E402
from pyanalytics.dispatcher import BatchDispatcher  # noqa: E402


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Send sample pyanalytics events")
    parser.add_argument("--write-key", default=None, help="Write key. Defaults to $ANALYTICS_WRITE_KEY.")
    parser.add_argument("--endpoint", default=None, help="Override the upload endpoint base URL.")
    parser.add_argument("--user-id", default="pyanalytics-smoke-user", help="User id to identify.")
    parser.add_argument("--event", default="Smoke Test Ran", help="Name of the tracked event.")
    parser.add_argument("--verbose", action="store_true", help="Log every payload at DEBUG level.")
    parser.add_argument("--timeout", type=float, default=15.0, help="Seconds to wait for the upload.")
    return parser.parse_args()


def main() -> int:
    args = _parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    overrides: dict[str, object] = {"log_level": LogLevel.VERBOSE if args.verbose else LogLevel.NONE}
    if args.write_key:
        overrides["write_key"] = args.write_key
    if args.endpoint:
        overrides["endpoint"] = args.endpoint

    try:
        config = AnalyticsConfig.from_env(**overrides)
        analytics = Analytics.create(LocalHost(app_name="send_events"), config)
    except AnalyticsError as exc:
        print(f"Configuration error: {exc}")
        return 2

    previous_id = analytics.identify(args.user_id, {"source": "send_events.py"})
    analytics.alias(previous_id)
    analytics.track(args.event, {"argv": sys.argv[1:]})
    analytics.screen("Scripts", "send_events")
    analytics.flush()

    network = analytics._router.network  # noqa: SLF001
    if isinstance(network, BatchDispatcher) and not network.wait_idle(args.timeout):
        print("Timed out waiting for upload")
        analytics.shutdown()
        return 1

    snapshot = analytics.get_snapshot()
    analytics.shutdown()
    print(f"Events: {snapshot.event_count}, uploads: {snapshot.flush_count}, failed: {snapshot.upload_failure_count}")
    return 0 if snapshot.upload_failure_count == 0 else 1


if __name__ == "__main__":
    raise SystemExit(main())
