"""
Unit tests for the alert manager.
"""

import pytest

from engine.forecast import ForecastPoint
from engine.monitoring import AlertLevel, AlertManager
from engine.parameters import Channel
from engine.projection import targets_by_month
from engine.variance import ActualRecord, VarianceEngine
from store import defaults


@pytest.fixture
def manager(config):
    return AlertManager(config)


def point(values, confidence=0.75, month="2025-07"):
    return ForecastPoint(month=month, offset=1, values=values, confidence=confidence)


class TestVarianceAlerts:

    def test_critical_shortfall(self, manager, config, plan_record):
        actual = ActualRecord(new_acquisitions=100, mrr=150000, churn_count=20, expenses=620000)
        report = VarianceEngine(config).compute_variance(plan_record, actual)

        alerts = manager.check_variance(report)

        mrr_alerts = [a for a in alerts if a.metric == 'mrr']
        assert len(mrr_alerts) == 1
        assert mrr_alerts[0].level == AlertLevel.CRITICAL
        assert "behind plan" in mrr_alerts[0].message

    def test_on_plan_raises_nothing(self, manager, config, plan_record):
        actual = ActualRecord(new_acquisitions=100, mrr=300000, churn_count=20, expenses=620000)
        report = VarianceEngine(config).compute_variance(plan_record, actual)

        assert manager.check_variance(report) == []


class TestForecastAlerts:

    def test_large_change(self, manager):
        alerts = manager.check_forecast([point({'active_customers': 130})], {'active_customers': 100})

        assert len(alerts) == 1
        assert alerts[0].level == AlertLevel.WARNING
        assert alerts[0].dimension == "2025-07"

    def test_low_confidence_change_ignored(self, manager):
        alerts = manager.check_forecast([point({'active_customers': 130}, confidence=0.4)],
                                        {'active_customers': 100})

        assert alerts == []

    def test_target_deviation(self, manager):
        alerts = manager.check_forecast([point({'active_customers': 100})], {'active_customers': 100},
                                        targets={"2025-07": {'active_customers': 130}})

        assert [a.level for a in alerts] == [AlertLevel.DANGER]

    def test_target_for_other_month_ignored(self, manager):
        alerts = manager.check_forecast([point({'active_customers': 100})], {'active_customers': 100},
                                        targets={"2025-08": {'active_customers': 130}})

        assert alerts == []

    def test_store_targets_feed_forecast_check(self, manager):
        stored = defaults.default_targets(["2025-07"])
        stored.loc[stored['metric'] == 'monthly_expenses', 'value'] = 100

        alerts = manager.check_forecast([point({'expenses': 130})], {}, targets=targets_by_month(stored))

        assert [(a.metric, a.level) for a in alerts] == [('expenses', AlertLevel.DANGER)]

    def test_favorable_target_deviation_ignored(self, manager):
        alerts = manager.check_forecast([point({'active_customers': 130})], {},
                                        targets={"2025-07": {'active_customers': 100}})

        assert alerts == []

    def test_high_churn(self, manager):
        alerts = manager.check_forecast([point({'churn_rate': 12})], {})

        assert [a.metric for a in alerts] == ['churn_rate']
        assert alerts[0].level == AlertLevel.DANGER

    def test_churn_needs_higher_confidence(self, manager):
        assert manager.check_forecast([point({'churn_rate': 12}, confidence=0.55)], {}) == []

    def test_mrr_decline(self, manager):
        alerts = manager.check_forecast([point({'mrr': 95})], {'mrr': 100})

        assert [a.level for a in alerts] == [AlertLevel.CRITICAL]


class TestParameterAlerts:

    def test_ratio_warning_becomes_info(self, manager, default_params):
        params = default_params.with_channels([Channel(name="A", cpa=0, traffic_ratio=70)])

        alerts = manager.check_channel_ratios(params)

        assert len(alerts) == 1
        assert alerts[0].level == AlertLevel.INFO

    def test_clean_parameters(self, manager, default_params):
        assert manager.check_channel_ratios(default_params) == []


class TestAlertStore:

    def test_alerts_accumulate(self, manager):
        manager.check_forecast([point({'mrr': 95})], {'mrr': 100})
        manager.check_forecast([point({'churn_rate': 12})], {})

        df = manager.get_alerts_df()

        assert len(df) == 2
        assert set(df['level']) == {'critical', 'danger'}
        assert manager.counts_by_level()['critical'] == 1

    def test_empty_frame(self, manager):
        assert manager.get_alerts_df().empty

    def test_ids_are_unique(self, manager):
        manager.check_forecast([point({'mrr': 95})], {'mrr': 100})
        manager.check_forecast([point({'mrr': 95})], {'mrr': 100})

        assert len({a.id for a in manager.alerts}) == 2
