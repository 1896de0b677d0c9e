"""Threshold policy and plugin output rendering."""

from dataclasses import dataclass
from decimal import Decimal

from cpustat.errors import ConfigError
from cpustat.models import IDLE, UTILIZATION, CheckResult, Status

ALL = "all"
IRIX = "irix"
NOGUEST = "noguest"
NOSTAT = "nostat"


@dataclass(slots=True, frozen=True)
class ThresholdPolicy:
    """Warning and critical levels for the alert metric."""

    warning: float | None = None
    critical: float | None = None
    metric: str = UTILIZATION

    def __post_init__(self) -> None:
        if self.warning is not None and self.critical is not None and self.warning > self.critical:
            raise ConfigError("Warning value cannot exceed critical")

    def status(self, value: float) -> Status:
        """
        Status for a metric value.

        With no thresholds configured the check only collects data and is
        always OK. Zero is a valid threshold.
        """
        if self.critical is not None and value > self.critical:
            return Status.CRITICAL
        if self.warning is not None and value > self.warning:
            return Status.WARNING
        return Status.OK


@dataclass(slots=True, frozen=True)
class Expression:
    """Display filter parsed from a comma separated token list."""

    tokens: frozenset[str] = frozenset({ALL})

    @classmethod
    def parse(cls, text: str) -> "Expression":
        """Parse "utilization,nice,system" style expressions."""
        return cls(tokens=frozenset(token for token in text.split(",") if token))

    @property
    def irix(self) -> bool:
        """Whether sums stay undivided by the core count."""
        return IRIX in self.tokens

    def shows(self, metric: str, alert_metric: str) -> bool:
        """Whether a metric belongs on the output line."""
        if metric == IDLE and IDLE not in self.tokens and metric != alert_metric:
            return False
        if NOSTAT in self.tokens and metric != alert_metric:
            return False
        if NOGUEST in self.tokens and metric.startswith("guest") and metric != alert_metric:
            return False
        if ALL not in self.tokens and metric not in self.tokens and metric != alert_metric:
            return False
        return True


def _threshold(value: float | None) -> str:
    """Plain decimal, no exponent, as many digits as the value holds."""
    if value is None:
        return ""
    return format(Decimal(repr(value)), "f").removesuffix(".0")


def render(
    summary: dict[str, float],
    policy: ThresholdPolicy,
    expression: Expression,
    core_count: int,
) -> CheckResult:
    """
    Build the plugin result for a summary.

    The status line lists metrics by name with the alert metric first; the
    perfdata keeps plain name order.
    """
    if policy.metric not in summary:
        raise ConfigError(f"Cannot locate CPU metric: '{policy.metric}'")

    status = policy.status(summary[policy.metric])
    max_usage = 100 * core_count if expression.irix else 100
    warn = _threshold(policy.warning)
    crit = _threshold(policy.critical)

    message: list[str] = []
    perfdata: list[str] = []
    for metric in sorted(summary):
        if not expression.shows(metric, policy.metric):
            continue
        value = summary[metric]
        entry = f"{metric}:{value:.1f}%"
        if metric == policy.metric:
            message.insert(0, entry)
        else:
            message.append(entry)
        perfdata.append(f"'{metric}'={value:.2f}%;{warn};{crit};0;{max_usage}")

    return CheckResult(status=status, message=",".join(message), perfdata=" ".join(perfdata))
