"""check_cpu_stats - CPU utilization check entry point."""

import logging
import sys
import time
from collections.abc import Callable, Sequence

from cpustat import engine
from cpustat.config import CheckConfig, parse_args
from cpustat.counters import CounterReader, clock_ticks
from cpustat.errors import CheckError, StorageError
from cpustat.models import CheckResult, Snapshot, Status
from cpustat.report import render
from cpustat.state import StateHygiene, StateStore, resolve_directory

logger = logging.getLogger(__name__)

FIRST_RUN_MESSAGE = "Cannot get CPU time on first run. Waiting for next run."


class CpuStatsCheck:
    """
    One run of the CPU utilization check.

    Interval mode diffs against the baseline stored by the previous run;
    sampling mode takes two snapshots `config.sample` seconds apart and
    never touches stored state.
    """

    def __init__(
        self,
        config: CheckConfig,
        reader: CounterReader | None = None,
        ticks: Callable[[], int] = clock_ticks,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """
        Initialize the CpuStatsCheck.

        Args:
            config: Options for this run.
            reader: Counter source. Defaults to the host's procfs.
            ticks: Returns the clock ticks per second.
            sleep: Blocks between the two snapshots in sampling mode.
        """
        self._config = config
        self._reader = reader or CounterReader()
        self._ticks = ticks
        self._sleep = sleep

    @property
    def config(self) -> CheckConfig:
        """Get the run configuration."""
        return self._config

    def run(self) -> CheckResult:
        """Run the check; every CheckError becomes an UNKNOWN result."""
        try:
            return self._run()
        except CheckError as exc:
            logger.debug("Check failed", exc_info=True)
            return CheckResult(status=Status.UNKNOWN, message=str(exc))

    def _run(self) -> CheckResult:
        if self._config.sampling:
            percentages = self._sample_percentages()
        else:
            store = self._open_store()
            try:
                initial = store.load()
            except StorageError:
                # Replace a corrupt baseline so the next run can recover
                store.save(self._reader.read_snapshot())
                raise
            if initial is None:
                store.save(self._reader.read_snapshot())
                return CheckResult(status=Status.UNKNOWN, message=FIRST_RUN_MESSAGE)
            final = self._reader.read_snapshot()
            # Stored before the reboot check so the next run has a fresh baseline
            store.save(final)
            percentages = self._percentages(initial, final)

        return self._report(percentages)

    def _open_store(self) -> StateStore:
        directory = resolve_directory(self._config.tmpdir, self._config.candidates)
        store = StateStore(directory, self._config.program, self._config.args)
        StateHygiene(store.directory, store.prefix).start()
        return store

    def _sample_percentages(self) -> dict[str, dict[str, float]]:
        initial = self._reader.read_snapshot()
        logger.debug("Sampling for %d seconds", self._config.sample)
        self._sleep(self._config.sample)
        final = self._reader.read_snapshot()
        return self._percentages(initial, final)

    def _percentages(self, initial: Snapshot, final: Snapshot) -> dict[str, dict[str, float]]:
        change = engine.delta(initial, final)
        return engine.normalize(change, self._ticks())

    def _report(self, percentages: dict[str, dict[str, float]]) -> CheckResult:
        summary = engine.summarize(percentages)
        core_count = len(percentages)
        if not self._config.expression.irix:
            summary = engine.to_solaris(summary, core_count)
        return render(summary, self._config.policy, self._config.expression, core_count)


def setup_logging(verbose: int) -> None:
    """Send debug logs to stderr when asked; silent otherwise."""
    if not verbose:
        return
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s %(threadName)s %(name)s: %(message)s"))
    package_logger = logging.getLogger("cpustat")
    package_logger.addHandler(handler)
    package_logger.setLevel(logging.DEBUG)


def main(argv: Sequence[str] | None = None, program: str | None = None) -> int:
    """Entry point for check_cpu_stats; prints one line and returns the exit code."""
    try:
        config = parse_args(argv, program=program)
    except CheckError as exc:
        result = CheckResult(status=Status.UNKNOWN, message=str(exc))
    else:
        setup_logging(config.verbose)
        result = CpuStatsCheck(config).run()

    print(result)
    return int(result.status)


if __name__ == "__main__":
    sys.exit(main())
