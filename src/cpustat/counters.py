"""Kernel CPU counter reader for cpustat."""

import logging
import os
import re

import psutil

from cpustat.errors import SourceUnavailable
from cpustat.models import METRICS, Snapshot

logger = logging.getLogger(__name__)

# Numbered cores only; the aggregate "cpu" row would double count.
_CORE_ROW = re.compile(r"^(cpu[0-9]+)\s+(.*)$")


def clock_ticks() -> int:
    """Return USER_HZ, the number of counter ticks per second."""
    try:
        ticks = os.sysconf("SC_CLK_TCK")
    except (ValueError, OSError) as exc:
        raise SourceUnavailable(f"Cannot query clock ticks per second: {exc}") from exc
    if ticks <= 0:
        raise SourceUnavailable(f"Invalid clock ticks per second: {ticks}")
    return ticks


class CounterReader:
    """
    Reads per-core tick counters and uptime from procfs.

    The uptime is read before the counter table. Both files are read once,
    without retry; the small gap between the two reads is tolerated.
    """

    def __init__(self, procfs_path: str | None = None) -> None:
        """
        Initialize the CounterReader.

        Args:
            procfs_path: Root of the proc filesystem. Defaults to psutil's
                PROCFS_PATH, which is "/proc" unless overridden.
        """
        self._procfs_path = procfs_path or getattr(psutil, "PROCFS_PATH", "/proc")

    @property
    def procfs_path(self) -> str:
        """Get the proc filesystem root."""
        return self._procfs_path

    def read_snapshot(self) -> Snapshot:
        """Take a snapshot of uptime and per-core counters."""
        if not psutil.LINUX:
            raise SourceUnavailable("Only compatible with Linux kernels")
        uptime = self._read_uptime()
        counters = self._read_stat()
        logger.debug("Read %d cores at uptime %.2f", len(counters), uptime)
        return Snapshot(uptime_seconds=uptime, per_core_counters=counters)

    def _read(self, name: str) -> str:
        path = os.path.join(self._procfs_path, name)
        try:
            with open(path, encoding="ascii") as f:
                return f.read()
        except OSError as exc:
            raise SourceUnavailable(f"Cannot open {path}: {exc.strerror or exc}") from exc

    def _read_uptime(self) -> float:
        """Return the first field of the uptime file."""
        content = self._read("uptime").split()
        try:
            return float(content[0])
        except (IndexError, ValueError) as exc:
            raise SourceUnavailable(f"Cannot parse uptime: {content!r}") from exc

    def _read_stat(self) -> dict[str, dict[str, int]]:
        """
        Parse the per-core rows of the stat file.

        Values are zipped onto METRICS; kernels expose a variable number of
        fields, always a prefix of that list.
        """
        cpu_info: dict[str, dict[str, int]] = {}
        for row in self._read("stat").splitlines():
            match = _CORE_ROW.match(row)
            if match is None:
                continue
            cpu, metrics = match.groups()
            try:
                values = [int(value) for value in metrics.split()]
            except ValueError as exc:
                raise SourceUnavailable(f"Cannot parse counters for {cpu}: {metrics!r}") from exc
            cpu_info[cpu] = dict(zip(METRICS, values))

        if not cpu_info:
            raise SourceUnavailable("No CPU counters found")
        return cpu_info
