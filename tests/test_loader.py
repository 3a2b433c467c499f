"""
Unit tests for the store loader and the default dataset.

A fake connector stands in for BigQuery.
"""

import threading
import time

import pandas as pd
import pytest

from engine.cohort import Customer
from engine.parameters import GrowthParameters
from store import defaults
from store.loader import DashboardLoader, FetchResult, fetch_with_fallback


class FakeConnector:
    """In-memory connector; months listed in `slow` block, in `missing` have no data."""

    def __init__(self, online=True, slow=(), missing=(), delay=1.0, parameters=None, barrier=None):
        self.online = online
        self.slow = set(slow)
        self.missing = set(missing)
        self.delay = delay
        self.parameters = parameters or {}
        self.barrier = barrier
        self.calls = []
        self._lock = threading.Lock()

    @property
    def is_connected(self):
        return self.online

    def connect(self):
        return self.online

    def get_growth_parameters(self):
        return self.parameters

    def get_monthly_kpis(self, month):
        with self._lock:
            self.calls.append(month)
        if self.barrier is not None:
            # Only passes once every month fetch is in flight at the same time
            self.barrier.wait(timeout=1.0)
        if month in self.slow:
            time.sleep(self.delay)
        if month in self.missing:
            return {}
        return {'month': month, 'mrr': 1000, 'active_customers': 10,
                'new_acquisitions': 2, 'churn_rate': 1.0, 'expenses': 500}

    def get_customers(self):
        raise ConnectionError("customers table unavailable")


@pytest.fixture
def fast_config(config):
    config.store.fetch_timeout_seconds = 0.2
    return config


class TestFetchWithFallback:

    def test_success(self):
        result = fetch_with_fallback(lambda: 42, lambda: 0, timeout=1.0)

        assert result == FetchResult(42, 'store')
        assert not result.is_default

    def test_timeout_uses_default(self):
        def slow():
            time.sleep(1.0)
            return 42

        started = time.monotonic()
        result = fetch_with_fallback(slow, lambda: 0, timeout=0.1)

        assert result.value == 0
        assert result.is_default
        assert "timed out" in result.error
        # Did not wait for the slow fetch to finish
        assert time.monotonic() - started < 0.9

    def test_error_uses_default(self):
        def broken():
            raise RuntimeError("boom")

        result = fetch_with_fallback(broken, lambda: 'fallback', timeout=1.0)

        assert result.value == 'fallback'
        assert result.source == 'default'
        assert result.error == 'boom'


class TestDashboardLoader:

    def test_offline_uses_defaults(self, fast_config):
        loader = DashboardLoader(FakeConnector(online=False), fast_config)

        result = loader.load_history("2025-06", 3)

        assert result.is_default
        assert list(result.value['month']) == ["2025-04", "2025-05", "2025-06"]

    def test_history_in_month_order(self, fast_config):
        loader = DashboardLoader(FakeConnector(), fast_config)

        result = loader.load_history("2025-06", 6)

        assert result.source == 'store'
        assert list(result.value['month']) == ["2025-01", "2025-02", "2025-03", "2025-04", "2025-05", "2025-06"]

    def test_slow_month_falls_back_alone(self, fast_config):
        connector = FakeConnector(slow={"2025-05"}, delay=1.0)
        loader = DashboardLoader(connector, fast_config)

        result = loader.load_history("2025-06", 3)

        frame = result.value.set_index('month')
        assert result.is_default
        assert frame.loc["2025-04", 'mrr'] == 1000
        assert frame.loc["2025-05", 'mrr'] == defaults.default_monthly_kpis("2025-05")['mrr']
        assert frame.loc["2025-06", 'mrr'] == 1000

    def test_months_fetched_concurrently(self, fast_config):
        connector = FakeConnector(barrier=threading.Barrier(3))
        loader = DashboardLoader(connector, fast_config)

        result = loader.load_history("2025-06", 3)

        assert result.source == 'store'
        assert sorted(connector.calls) == ["2025-04", "2025-05", "2025-06"]

    def test_missing_month_falls_back(self, fast_config):
        loader = DashboardLoader(FakeConnector(missing={"2025-06"}), fast_config)

        result = loader.load_history("2025-06", 3)

        assert result.is_default
        assert "1 month" in result.error

    def test_parameters_from_store(self, fast_config):
        loader = DashboardLoader(FakeConnector(parameters={'churn_rate': 3.0}), fast_config)

        result = loader.load_parameters()

        assert isinstance(result.value, GrowthParameters)
        assert result.value.churn_rate == 3.0
        assert result.source == 'store'

    def test_null_stored_columns_fall_back_per_field(self, fast_config):
        stored = {'initial_acquisitions': pd.NA, 'churn_rate': 3.0, 'channels': None}
        loader = DashboardLoader(FakeConnector(parameters=stored), fast_config)

        result = loader.load_parameters()

        assert result.value.initial_acquisitions == fast_config.planning.initial_acquisitions
        assert result.value.churn_rate == 3.0
        assert result.source == 'store'

    def test_unreadable_parameters_use_defaults(self, fast_config):
        stored = {'initial_acquisitions': 'lots'}
        loader = DashboardLoader(FakeConnector(parameters=stored), fast_config)

        result = loader.load_parameters()

        assert result.is_default
        assert result.value.initial_acquisitions == fast_config.planning.initial_acquisitions

    def test_targets_offline_use_default_curve(self, fast_config):
        loader = DashboardLoader(FakeConnector(online=False), fast_config)

        result = loader.load_targets(["2025-07", "2025-08"])

        assert result.is_default
        assert sorted(set(result.value['period'])) == ["2025-07", "2025-08"]

    def test_nothing_saved_uses_config_defaults(self, fast_config):
        loader = DashboardLoader(FakeConnector(), fast_config)

        result = loader.load_parameters()

        assert result.value.churn_rate == fast_config.planning.churn_rate

    def test_failing_fetch_uses_default_customers(self, fast_config):
        loader = DashboardLoader(FakeConnector(), fast_config)

        result = loader.load_customers("2025-06")

        assert result.is_default
        assert all(isinstance(c, Customer) for c in result.value)
        assert len(result.value) == 120


class TestDefaults:

    def test_customers_are_deterministic(self):
        first = defaults.default_customers("2025-06")
        second = defaults.default_customers("2025-06")

        assert first.equals(second)

    def test_no_churn_after_end_month(self):
        roster = defaults.default_customers("2025-06")

        churned = roster.dropna(subset=['churned_at'])
        assert all(d.strftime('%Y-%m') <= "2025-06" for d in churned['churned_at'])
        assert set(roster['status']) == {'active', 'churned'}

    def test_history_grows(self):
        history = defaults.default_history("2025-06", 4)

        assert [h['month'] for h in history] == ["2025-03", "2025-04", "2025-05", "2025-06"]
        assert all(a['mrr'] < b['mrr'] for a, b in zip(history, history[1:]))

    def test_daily_acquisitions_sum_to_month(self):
        df = defaults.default_daily_actuals("2025-04")
        per_day = df.groupby('date')['new_acquisitions'].first()

        assert len(per_day) == 30
        assert per_day.sum() == defaults.default_monthly_kpis("2025-04")['new_acquisitions']

    def test_targets_shape(self):
        df = defaults.default_targets(["2025-01", "2025-02"])

        assert len(df) == 10
        assert set(df['unit']) == {'count', 'currency', 'percentage'}

    def test_daily_churns_sum_to_month(self):
        df = defaults.default_daily_actuals("2025-04")
        kpis = defaults.default_monthly_kpis("2025-04")

        per_day = df.groupby('date')['churns'].first()

        assert per_day.sum() == round(kpis['active_customers'] * kpis['churn_rate'] / 100)
