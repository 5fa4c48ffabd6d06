#!/usr/bin/env python3
"""
Concurrent TCP turnaround probe.

Opens N simultaneous connections to one endpoint, sends a single probe byte
on each, times the 4-byte reply and prints the aggregate statistics.
"""

import argparse
import logging
import sys

from .collector import run_probe
from .config import DEFAULT_CLIENTS, DEFAULT_TARGET, DEFAULT_TIMEOUT, PROBE_BYTE, build_config
from .errors import ConfigError, ProbeFailed
from .logger import setup_logging


def report_details(summary, logger):
    """Log the extra statistics that the summary line leaves out."""
    logger.info(
        f"Turnaround min/median/max: {summary.min_turnaround_ms}/"
        f"{summary.median_turnaround_ms}/{summary.max_turnaround_ms} ms"
    )
    rate = summary.requests_per_second
    if rate is not None:
        logger.info(f"Rate: {rate:.1f} requests/s")
    for failure in summary.failures:
        logger.warning(failure.describe())


def run(args) -> int:
    """Execute one probe run. Returns the process exit code."""
    logger = logging.getLogger("tcpprobe")

    try:
        config = build_config(
            target=args.target,
            clients=args.clients,
            probe_byte=args.probe_byte,
            timeout=args.timeout,
            allow_partial=args.allow_partial,
        )
    except ConfigError as e:
        logger.error(f"Invalid configuration: {e}")
        return 2

    try:
        summary = run_probe(config)
    except ProbeFailed as e:
        logger.error(f"Probe run failed: {e}")
        for failure in e.failures:
            logger.error(f"  {failure.describe()}")
        return 1

    print(summary.summary_line(), flush=True)
    if summary.partial:
        print(f"Partial run: {len(summary.records)}/{summary.client_count} clients succeeded")
    report_details(summary, logger)
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(description="Concurrent TCP turnaround probe")
    parser.add_argument("target", nargs="?", default=DEFAULT_TARGET,
                        help=f"Target endpoint host:port (default: {DEFAULT_TARGET})")
    parser.add_argument("clients", nargs="?", type=int, default=DEFAULT_CLIENTS,
                        help=f"Number of concurrent clients (default: {DEFAULT_CLIENTS})")
    parser.add_argument("--probe-byte", type=int, default=PROBE_BYTE,
                        help=f"Request byte value (default: {PROBE_BYTE})")
    parser.add_argument("--timeout", type=float, default=DEFAULT_TIMEOUT,
                        help="Per-operation socket timeout in seconds (default: none)")
    parser.add_argument("--allow-partial", action="store_true",
                        help="Report a summary even if some clients fail")
    parser.add_argument("--verbose", action="store_true", help="Enable DEBUG logging")

    args = parser.parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.INFO)
    sys.exit(run(args))


if __name__ == "__main__":
    main()
