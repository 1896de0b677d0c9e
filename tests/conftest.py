"""Shared fixtures for cpustat tests."""

import time

import pytest

from cpustat.models import Snapshot

STAT_HEADER = "cpu  {total}\n"
STAT_FOOTER = "intr 1234 0 0\nctxt 5678\nbtime 1700000000\nprocesses 42\n"


def write_procfs(root, uptime: float, cores: dict[str, list[int]]) -> None:
    """Write fake uptime and stat files under root."""
    root.mkdir(parents=True, exist_ok=True)
    (root / "uptime").write_text(f"{uptime:.2f} {uptime * 2:.2f}\n")
    total = " ".join("0" for _ in range(10))
    rows = [f"{cpu} " + " ".join(str(v) for v in values) for cpu, values in cores.items()]
    (root / "stat").write_text(STAT_HEADER.format(total=total) + "\n".join(rows) + "\n" + STAT_FOOTER)


@pytest.fixture
def procfs(tmp_path):
    """A fake proc filesystem root."""
    root = tmp_path / "proc"
    write_procfs(root, 1000.0, {"cpu0": [100, 0, 50, 5000, 0, 0, 0, 0, 0, 0]})
    return root


@pytest.fixture
def state_dir(tmp_path):
    """An empty directory for state files."""
    directory = tmp_path / "state"
    directory.mkdir()
    return directory


def snapshot(uptime: float, **cores: dict[str, int]) -> Snapshot:
    """Build a Snapshot from keyword cores."""
    return Snapshot(uptime_seconds=uptime, per_core_counters=dict(cores))


def wait_for(predicate, timeout: float = 10.0) -> bool:
    """Poll predicate until it holds or the timeout passes."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.05)
    return predicate()
