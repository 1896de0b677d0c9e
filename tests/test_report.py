"""Tests for the threshold policy and output rendering."""

import pytest

from cpustat.errors import ConfigError
from cpustat.models import Status
from cpustat.report import Expression, ThresholdPolicy, render

SUMMARY = {
    "user": 40.0,
    "nice": 1.0,
    "system": 10.0,
    "idle": 45.0,
    "iowait": 4.0,
    "guest": 0.0,
    "guest_nice": 0.0,
    "utilization": 55.0,
}


class TestThresholdPolicy:
    """Tests for ThresholdPolicy."""

    def test_defaults(self):
        """Test the default alert metric and unset thresholds."""
        policy = ThresholdPolicy()
        assert policy.metric == "utilization"
        assert policy.warning is None
        assert policy.critical is None

    def test_warning_above_critical(self):
        """Test warning > critical is rejected at construction."""
        with pytest.raises(ConfigError, match="Warning value cannot exceed critical"):
            ThresholdPolicy(warning=90.0, critical=50.0)

    def test_equal_thresholds_allowed(self):
        """Test warning == critical is valid."""
        assert ThresholdPolicy(warning=80.0, critical=80.0).critical == 80.0

    @pytest.mark.parametrize(
        "value,expected",
        [(50.0, Status.OK), (60.0, Status.OK), (60.1, Status.WARNING), (95.0, Status.CRITICAL)],
    )
    def test_status(self, value, expected):
        """Test values are compared strictly above the thresholds."""
        assert ThresholdPolicy(warning=60.0, critical=90.0).status(value) is expected

    def test_no_thresholds_always_ok(self):
        """Test monitoring-only mode never alerts."""
        assert ThresholdPolicy().status(1000.0) is Status.OK

    def test_zero_threshold(self):
        """Test zero is a real threshold, not unset."""
        assert ThresholdPolicy(critical=0.0).status(0.5) is Status.CRITICAL
        assert ThresholdPolicy(warning=0.0).status(0.5) is Status.WARNING

    def test_only_critical(self):
        """Test a lone critical threshold."""
        policy = ThresholdPolicy(critical=90.0)
        assert policy.status(85.0) is Status.OK
        assert policy.status(91.0) is Status.CRITICAL


class TestExpression:
    """Tests for Expression parsing and filtering."""

    def test_default_shows_all_but_idle(self):
        """Test the default expression hides only idle."""
        expression = Expression()
        assert expression.shows("user", "utilization")
        assert not expression.shows("idle", "utilization")

    def test_parse_ignores_empty_tokens(self):
        """Test repeated commas are tolerated."""
        assert Expression.parse("user,,nice,").tokens == frozenset({"user", "nice"})

    def test_idle_token(self):
        """Test idle is shown when requested."""
        assert Expression.parse("all,idle").shows("idle", "utilization")

    def test_nostat(self):
        """Test nostat keeps only the alert metric."""
        expression = Expression.parse("all,nostat")
        assert expression.shows("steal", "steal")
        assert not expression.shows("user", "steal")

    def test_noguest(self):
        """Test noguest hides guest metrics unless alerting on one."""
        expression = Expression.parse("all,noguest")
        assert not expression.shows("guest", "utilization")
        assert not expression.shows("guest_nice", "utilization")
        assert expression.shows("guest", "guest")

    def test_allow_list(self):
        """Test named metrics plus the alert metric without all."""
        expression = Expression.parse("nice,system")
        assert expression.shows("nice", "utilization")
        assert expression.shows("utilization", "utilization")
        assert not expression.shows("user", "utilization")

    def test_irix_flag(self):
        """Test the irix flag."""
        assert Expression.parse("all,irix").irix
        assert not Expression().irix


class TestRender:
    """Tests for render."""

    def test_alert_metric_first(self):
        """Test the alert metric leads and the rest are sorted."""
        result = render(SUMMARY, ThresholdPolicy(), Expression(), core_count=1)

        assert result.status is Status.OK
        assert result.message == (
            "utilization:55.0%,guest:0.0%,guest_nice:0.0%,iowait:4.0%,nice:1.0%,system:10.0%,user:40.0%"
        )

    def test_perfdata_without_thresholds(self):
        """Test unset thresholds render as empty fields."""
        result = render(SUMMARY, ThresholdPolicy(), Expression.parse("nostat"), core_count=1)

        assert result.message == "utilization:55.0%"
        assert result.perfdata == "'utilization'=55.00%;;;0;100"

    def test_perfdata_with_thresholds(self):
        """Test thresholds appear in every perfdata token."""
        policy = ThresholdPolicy(warning=50.0, critical=90.5)
        result = render(SUMMARY, policy, Expression.parse("system"), core_count=1)

        assert result.status is Status.WARNING
        assert result.perfdata == (
            "'system'=10.00%;50;90.5;0;100 'utilization'=55.00%;50;90.5;0;100"
        )

    def test_perfdata_zero_threshold(self):
        """Test a zero threshold is rendered, not left empty."""
        result = render(SUMMARY, ThresholdPolicy(warning=0.0), Expression.parse("nostat"), 1)
        assert result.perfdata == "'utilization'=55.00%;0;;0;100"

    def test_irix_max(self):
        """Test perfdata max scales with cores in irix mode."""
        summary = {"user": 200.0, "idle": 0.0, "utilization": 200.0}
        result = render(summary, ThresholdPolicy(), Expression.parse("all,irix"), core_count=2)

        assert result.message == "utilization:200.0%,user:200.0%"
        assert result.perfdata.endswith(";0;200")

    def test_unknown_metric(self):
        """Test a missing alert metric is a configuration error."""
        with pytest.raises(ConfigError, match="Cannot locate CPU metric: 'bogus'"):
            render(SUMMARY, ThresholdPolicy(metric="bogus"), Expression(), core_count=1)

    def test_critical(self):
        """Test a critical result on a non-default metric."""
        policy = ThresholdPolicy(warning=2.0, critical=3.0, metric="iowait")
        result = render(SUMMARY, policy, Expression(), core_count=1)

        assert result.status is Status.CRITICAL
        assert result.message.startswith("iowait:4.0%,")

    def test_idle_as_alert_metric(self):
        """Test alerting on idle shows idle first even without the idle token."""
        policy = ThresholdPolicy(warning=10.0, critical=20.0, metric="idle")
        result = render(SUMMARY, policy, Expression(), core_count=1)

        assert result.status is Status.CRITICAL
        assert result.message.startswith("idle:45.0%,")
        assert "'idle'=45.00%;10;20;0;100" in result.perfdata

    def test_idle_as_alert_metric_nostat(self):
        """Test nostat with idle alerting keeps exactly idle."""
        policy = ThresholdPolicy(metric="idle")
        result = render(SUMMARY, policy, Expression.parse("nostat"), core_count=1)

        assert result.message == "idle:45.0%"

    @pytest.mark.parametrize(
        "warning,critical,expected",
        [
            (55.1234567, 1234567.0, ";55.1234567;1234567;"),
            (1e16, None, ";10000000000000000;;"),
            (0.0000001, 0.5, ";0.0000001;0.5;"),
            (80.0, 90.0, ";80;90;"),
        ],
    )
    def test_threshold_precision(self, warning, critical, expected):
        """Test thresholds keep every digit and never use exponents."""
        policy = ThresholdPolicy(warning=warning, critical=critical)
        result = render(SUMMARY, policy, Expression.parse("nostat"), core_count=1)

        assert expected in result.perfdata
        assert "e" not in result.perfdata.split(";", 1)[1]
