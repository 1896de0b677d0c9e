"""Exceptions raised by cpustat.

Every error maps to an UNKNOWN result; the message is what ends up on the
plugin output line.
"""


class CheckError(Exception):
    """Base class for conditions that terminate a check with UNKNOWN."""


class ConfigError(CheckError):
    """Invalid options: bad thresholds, unknown metric, missing directory."""


class SourceUnavailable(CheckError, IOError):
    """The kernel counters or the clock tick rate could not be read."""


class StorageError(CheckError):
    """The baseline could not be read from or written to disk."""


class InsufficientData(CheckError):
    """Not enough samples to compute a utilization yet."""


class ClockRegressionError(InsufficientData):
    """Uptime went backwards between two snapshots, the host rebooted."""

    def __init__(self, message: str = "Reboot since last run. Waiting for next run") -> None:
        super().__init__(message)
