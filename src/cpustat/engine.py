"""Delta computation, normalization and aggregation of CPU counters.

Percentages are calculated per core and metric as::

    (counter_change / uptime_change / clock_ticks) * 100

Summaries are in irix form (summed over cores, a fully busy 4 core host
reports ~400%) until divided by the core count into solaris form.
"""

import logging

from cpustat.errors import ClockRegressionError, InsufficientData
from cpustat.models import IDLE, UTILIZATION, Delta, Snapshot

logger = logging.getLogger(__name__)


def delta(initial: Snapshot, final: Snapshot) -> Delta:
    """Return the counter change between two snapshots."""
    if final.uptime_seconds < initial.uptime_seconds:
        raise ClockRegressionError()

    per_core: dict[str, dict[str, int]] = {}
    for cpu, counters in final.per_core_counters.items():
        baseline = initial.per_core_counters.get(cpu)
        if baseline is None:
            logger.debug("No baseline for %s, skipping", cpu)
            continue
        per_core[cpu] = {
            metric: value - baseline[metric]
            for metric, value in counters.items()
            if metric in baseline
        }
    return Delta(
        uptime_delta=final.uptime_seconds - initial.uptime_seconds,
        per_core_deltas=per_core,
    )


def utilization(percentages: dict[str, float]) -> float:
    """Total utilization: the sum of every metric except idle."""
    return sum(value for metric, value in percentages.items() if metric != IDLE)


def normalize(change: Delta, ticks: int) -> dict[str, dict[str, float]]:
    """Convert a Delta into per-core percentages with a utilization entry."""
    if change.uptime_delta <= 0:
        raise InsufficientData("No time elapsed since last run. Waiting for next run")

    percentages: dict[str, dict[str, float]] = {}
    for cpu, counters in change.per_core_deltas.items():
        core = {
            metric: value / change.uptime_delta / ticks * 100
            for metric, value in counters.items()
        }
        core[UTILIZATION] = utilization(core)
        percentages[cpu] = core
    return percentages


def summarize(percentages: dict[str, dict[str, float]]) -> dict[str, float]:
    """Sum each metric over all cores; metrics missing on a core count as zero."""
    summary: dict[str, float] = {}
    for core in percentages.values():
        for metric, value in core.items():
            summary[metric] = summary.get(metric, 0.0) + value
    return summary


def to_solaris(summary: dict[str, float], core_count: int) -> dict[str, float]:
    """Divide an irix summary by the number of cores."""
    if core_count <= 0:
        raise InsufficientData("No CPU data to summarize")
    return {metric: value / core_count for metric, value in summary.items()}
