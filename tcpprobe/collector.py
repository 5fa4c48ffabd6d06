"""Fan-out of client tasks, fan-in of their results, aggregate statistics."""

import logging
import statistics
import threading
import time
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from .channel import ResultChannel
from .client import client_worker
from .config import RunConfig
from .errors import ConfigError, ProbeFailed
from .record import ClientFailure, Measurement


logger = logging.getLogger("tcpprobe")


@dataclass(frozen=True)
class ProbeSummary:
    """Aggregate statistics of one run.

    ``throughput`` keeps its historical meaning: wall-clock milliseconds per
    client, not a rate. ``requests_per_second`` is the conventional rate.
    """
    total_time_ms: int
    throughput: int
    average_turnaround_ms: int
    client_count: int
    records: List[Measurement] = field(default_factory=list)
    failures: List[ClientFailure] = field(default_factory=list)

    @property
    def turnarounds(self) -> List[int]:
        return [r.turnaround_time_ms for r in self.records]

    @property
    def min_turnaround_ms(self) -> int:
        return min(self.turnarounds)

    @property
    def max_turnaround_ms(self) -> int:
        return max(self.turnarounds)

    @property
    def median_turnaround_ms(self) -> float:
        return statistics.median(self.turnarounds)

    @property
    def requests_per_second(self) -> Optional[float]:
        if self.total_time_ms == 0:
            return None
        return self.client_count * 1000 / self.total_time_ms

    @property
    def partial(self) -> bool:
        return bool(self.failures)

    def summary_line(self) -> str:
        return (
            f"Total time: {self.total_time_ms} Throughput: {self.throughput} "
            f"Average Turnaround Time {self.average_turnaround_ms}"
        )


def aggregate(
    records: Sequence[Measurement],
    client_count: int,
    total_time_ms: int,
    failures: Sequence[ClientFailure] = (),
    allow_partial: bool = False,
) -> ProbeSummary:
    """Fold per-client records into a ProbeSummary.

    On a complete run the turnaround average divides by ``client_count``.
    A partial run (``allow_partial``) averages over the successful records.
    """
    if client_count < 1:
        raise ConfigError(f"client count must be at least 1, got {client_count}")

    if failures and not allow_partial:
        raise ProbeFailed(
            f"{len(failures)} of {client_count} clients failed", failures
        )
    if not records:
        raise ProbeFailed("no client completed its exchange", failures)

    divisor = client_count if not failures else len(records)
    total_turnaround = sum(r.turnaround_time_ms for r in records)

    return ProbeSummary(
        total_time_ms=total_time_ms,
        throughput=total_time_ms // client_count,
        average_turnaround_ms=total_turnaround // divisor,
        client_count=client_count,
        records=list(records),
        failures=list(failures),
    )


def run_probe(config: RunConfig) -> ProbeSummary:
    """Run ``config.clients`` concurrent client tasks and summarize them."""
    channels = []
    threads = []

    logger.info(f"Probing {config.target} with {config.clients} concurrent clients")

    t_start = time.perf_counter()

    for client_id in range(config.clients):
        channel = ResultChannel(client_id)
        channels.append(channel)
        thread = threading.Thread(
            target=client_worker,
            args=(client_id, config, channel),
            name=f"probe-client-{client_id}",
        )
        threads.append(thread)
        thread.start()

    for thread in threads:
        thread.join()

    total_time_ms = int((time.perf_counter() - t_start) * 1000)

    records = []
    failures = []
    for channel in channels:
        result = channel.drain()
        if result.ok:
            records.append(result.measurement)
        else:
            failures.append(result.failure)

    logger.debug(
        f"All clients joined after {total_time_ms} ms: "
        f"{len(records)} succeeded, {len(failures)} failed"
    )

    return aggregate(
        records,
        config.clients,
        total_time_ms,
        failures=failures,
        allow_partial=config.allow_partial,
    )
