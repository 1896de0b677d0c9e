"""Command line options for check_cpu_stats."""

import argparse
import os
import sys
from collections.abc import Sequence
from dataclasses import dataclass

from cpustat.errors import ConfigError
from cpustat.models import UTILIZATION, Status
from cpustat.report import IRIX, Expression, ThresholdPolicy
from cpustat.state import default_candidates

PROGRAM = "check_cpu_stats"

EPILOG = """\
Standard Expression - List of available metrics
    --expression=utilization,nice,system,iowait

Additional Expressions:
    all: (default) displays all available metrics
    irix: don't divide metrics by number of CPUs - see man top(1)
    noguest: Don't display metrics for virtual CPUs
    nostat: Only display overall utilization or metric specified with [--metric]
    idle: display idle time

Examples:
Steal time for virtualised servers
    %(prog)s --metric=steal --warning=60 --critical=90
General utilization with no extra output
    %(prog)s --expression=nostat -w 60 -c 90
Omitting guest metrics for hosts with no guests
    %(prog)s --expression=noguest -w60 -c90

Available metrics vary between kernels.
For metrics available on your platform see man proc(5) - /proc/stat
"""


class PluginArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that reports bad options as UNKNOWN instead of exit 2."""

    def error(self, message: str) -> None:
        raise ConfigError(message)

    def exit(self, status: int = 0, message: str | None = None) -> None:
        # --help ends the check like any other non-result
        if message:
            sys.stdout.write(message)
        sys.exit(Status.UNKNOWN)


@dataclass(slots=True, frozen=True)
class CheckConfig:
    """Immutable options for one check run, built once at startup."""

    program: str
    args: tuple[str, ...]
    policy: ThresholdPolicy
    expression: Expression
    sample: int | None = None
    tmpdir: str | None = None
    candidates: tuple[str, ...] = ()
    verbose: int = 0

    @property
    def sampling(self) -> bool:
        """Whether both snapshots are taken within this run."""
        return self.sample is not None


def build_parser(prog: str | None = None) -> PluginArgumentParser:
    """Build the option parser."""
    parser = PluginArgumentParser(
        prog=prog,
        description="Checks and reports CPU utilisation for overall utilisation or for specific metrics.",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-w", "--warning", type=float, help="warning value")
    parser.add_argument("-c", "--critical", type=float, help="critical value")
    parser.add_argument(
        "-s",
        "--sample",
        type=int,
        metavar="SECONDS",
        help="seconds to sample CPU utilization instead of storing",
    )
    parser.add_argument(
        "-m",
        "--metric",
        default=UTILIZATION,
        help="metric to alert on (default: '%(default)s')",
    )
    parser.add_argument(
        "-e",
        "--expression",
        default="all",
        help="comma delimited list of expressions. See below",
    )
    parser.add_argument("-t", "--tmpdir", help="directory in which to store state information")
    parser.add_argument(
        "--irix",
        action="store_true",
        help="same as adding 'irix' to the expression",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="log debug information to stderr (not for use under NRPE)",
    )
    return parser


def parse_args(
    argv: Sequence[str] | None = None,
    program: str | None = None,
    environ: dict[str, str] | None = None,
) -> CheckConfig:
    """
    Parse the command line into a CheckConfig.

    Args:
        argv: Arguments without the program name. Defaults to sys.argv[1:].
        program: Program identity used for the state key. Defaults to sys.argv[0].
        environ: Environment for default directory lookup. Defaults to os.environ.
    """
    args = tuple(sys.argv[1:] if argv is None else argv)
    program = program or sys.argv[0]
    if os.path.basename(program) == "__main__.py":
        # python -m cpustat
        program = PROGRAM
    parser = build_parser(prog=os.path.basename(program))
    options = parser.parse_args(args)

    if options.sample is not None and options.sample <= 0:
        raise ConfigError("Sample seconds must be a positive integer")

    expression = Expression.parse(options.expression)
    if options.irix:
        expression = Expression(tokens=expression.tokens | {IRIX})

    return CheckConfig(
        program=program,
        args=args,
        policy=ThresholdPolicy(
            warning=options.warning,
            critical=options.critical,
            metric=options.metric,
        ),
        expression=expression,
        sample=options.sample,
        tmpdir=options.tmpdir,
        candidates=default_candidates(environ),
        verbose=options.verbose,
    )
