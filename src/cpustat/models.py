"""Data models for cpustat."""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any

# Order matters: kernels expose a prefix of this list, newer fields last.
METRICS = (
    "user",
    "nice",
    "system",
    "idle",
    "iowait",
    "irq",
    "softirq",
    "steal",
    "guest",
    "guest_nice",
)

IDLE = "idle"
UTILIZATION = "utilization"


class Status(IntEnum):
    """Monitoring plugin exit codes."""

    OK = 0
    WARNING = 1
    CRITICAL = 2
    UNKNOWN = 3


@dataclass(slots=True, frozen=True)
class Snapshot:
    """Immutable reading of the per-core counters at one point in time."""

    uptime_seconds: float
    per_core_counters: dict[str, dict[str, int]]

    @property
    def core_count(self) -> int:
        """Number of cores in the snapshot."""
        return len(self.per_core_counters)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-compatible dict."""
        return {
            "uptime": self.uptime_seconds,
            "cpus": {core: dict(counters) for core, counters in self.per_core_counters.items()},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Snapshot":
        """Build a Snapshot from the output of to_dict()."""
        cpus = data["cpus"]
        return cls(
            uptime_seconds=float(data["uptime"]),
            per_core_counters={
                str(core): {str(metric): int(value) for metric, value in counters.items()}
                for core, counters in cpus.items()
            },
        )


@dataclass(slots=True, frozen=True)
class Delta:
    """Counter change between two snapshots."""

    uptime_delta: float
    per_core_deltas: dict[str, dict[str, int]]


@dataclass(slots=True, frozen=True)
class CheckResult:
    """Outcome of one check run, rendered as a single plugin output line."""

    status: Status
    message: str
    perfdata: str = field(default="")

    def __str__(self) -> str:
        output = f"{self.status.name}: {self.message}"
        if self.perfdata:
            output = f"{output}|{self.perfdata}"
        return output
