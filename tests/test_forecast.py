"""
Unit tests for trend analysis and forecasting.
"""

import pandas as pd
import pytest

from engine.errors import InsufficientHistoryError
from engine.forecast import (
    ACCELERATING,
    DECREASING,
    INCREASING,
    STABLE,
    STEADY,
    KPISnapshot,
    TrendForecaster,
    forecast_to_frame,
    history_to_frame,
)


def growing_history(months: int = 6, scale: float = 1.0):
    """MRR and customers growing 10% a month from 2025-01."""
    rows = []
    for i in range(months):
        rows.append(KPISnapshot(
            month=f"2025-{i + 1:02d}",
            mrr=100 * scale * 1.1 ** i,
            active_customers=int(50 * 1.1 ** i),
            new_acquisitions=10,
            churn_rate=5.0,
            expenses=200 * scale,
        ))
    return rows


@pytest.fixture
def forecaster(config):
    return TrendForecaster(config)


class TestPreconditions:

    @pytest.mark.parametrize("months", [0, 1, 2])
    def test_short_history_rejected(self, forecaster, months):
        with pytest.raises(InsufficientHistoryError) as exc:
            forecaster.forecast(growing_history(months), 3)

        assert exc.value.required == 3
        assert exc.value.available == months

    def test_trends_need_three_points(self, forecaster):
        with pytest.raises(InsufficientHistoryError):
            forecaster.analyze_trends(growing_history(2))

    def test_history_accepts_dicts_and_sorts(self):
        rows = [{'month': '2025-03', 'mrr': 3}, {'month': '2025-01', 'mrr': 1}, {'month': '2025-02', 'mrr': 2}]

        df = history_to_frame(rows)

        assert list(df['mrr']) == [1, 2, 3]


class TestTrends:

    def test_growing_series(self, forecaster):
        summary = forecaster.analyze_trends(growing_history())

        assert summary.direction('mrr') == INCREASING
        assert summary.metrics['mrr'].slope > 0
        assert 0.9 < summary.metrics['mrr'].r_squared <= 1.0

    def test_flat_series_is_stable_and_steady(self, forecaster):
        summary = forecaster.analyze_trends(growing_history())

        assert summary.direction('churn_rate') == STABLE
        assert summary.metrics['churn_rate'].momentum == STEADY
        assert summary.metrics['churn_rate'].slope == 0

    def test_decreasing_series(self, forecaster):
        history = pd.DataFrame({'month': ['2025-01', '2025-02', '2025-03', '2025-04'], 'mrr': [100, 90, 80, 70]})

        assert forecaster.analyze_trends(history).direction('mrr') == DECREASING

    def test_small_moves_are_stable(self, forecaster):
        history = pd.DataFrame({'month': ['2025-01', '2025-02', '2025-03', '2025-04'], 'mrr': [100, 100, 101, 101]})

        assert forecaster.analyze_trends(history).direction('mrr') == STABLE

    def test_acceleration(self, forecaster):
        history = pd.DataFrame({'month': ['2025-01', '2025-02', '2025-03', '2025-04'], 'mrr': [100, 100, 110, 130]})

        summary = forecaster.analyze_trends(history)

        assert summary.momentum == ACCELERATING

    def test_zero_earlier_half(self, forecaster):
        history = pd.DataFrame({'month': ['2025-01', '2025-02', '2025-03', '2025-04'], 'mrr': [0, 0, 5, 10]})

        assert forecaster.analyze_trends(history).direction('mrr') == INCREASING


class TestForecast:

    def test_extrapolates_recent_growth(self, forecaster):
        points = forecaster.forecast(growing_history(), 2)

        last = 100 * 1.1 ** 5
        assert points[0].values['mrr'] == pytest.approx(last * 1.1, abs=0.01)
        assert points[1].values['mrr'] == pytest.approx(last * 1.1 ** 2, abs=0.01)

    def test_only_recent_growth_is_used(self, forecaster):
        # Early jump followed by three flat months
        history = pd.DataFrame({'month': ['2025-01', '2025-02', '2025-03', '2025-04', '2025-05'],
                                'mrr': [10, 100, 100, 100, 100]})

        points = forecaster.forecast(history, 3)

        assert [p.values['mrr'] for p in points] == [100, 100, 100]

    def test_months_follow_history(self, forecaster):
        points = forecaster.forecast(growing_history(), 3)

        assert [p.month for p in points] == ["2025-07", "2025-08", "2025-09"]
        assert [p.offset for p in points] == [1, 2, 3]

    def test_values_never_negative(self, forecaster):
        history = pd.DataFrame({'month': ['2025-01', '2025-02', '2025-03'], 'mrr': [100, 20, 1]})

        points = forecaster.forecast(history, 6)

        assert all(p.values['mrr'] >= 0 for p in points)

    def test_zero_horizon(self, forecaster):
        assert forecaster.forecast(growing_history(), 0) == []


class TestConfidence:

    def test_monotonic_non_increasing(self, forecaster):
        confidences = [p.confidence for p in forecaster.forecast(growing_history(), 6)]

        assert all(a >= b for a, b in zip(confidences, confidences[1:]))

    def test_curve_for_six_months_of_history(self, forecaster):
        confidences = [p.confidence for p in forecaster.forecast(growing_history(), 6)]

        assert confidences[0] == pytest.approx(0.75)
        assert confidences[1] == pytest.approx(0.675)
        assert confidences[5] == pytest.approx(0.375)

    def test_floor(self, forecaster):
        confidences = [p.confidence for p in forecaster.forecast(growing_history(3), 12)]

        assert min(confidences) == pytest.approx(0.3)
        assert all(c > 0 for c in confidences)

    def test_independent_of_magnitude(self, forecaster):
        small = forecaster.forecast(growing_history(scale=1), 6)
        large = forecaster.forecast(growing_history(scale=1_000_000), 6)

        assert [p.confidence for p in small] == [p.confidence for p in large]

    def test_more_history_raises_baseline(self, forecaster):
        short = forecaster.forecast(growing_history(3), 1)[0].confidence
        full = forecaster.forecast(growing_history(12), 1)[0].confidence

        assert full > short
        assert full == pytest.approx(0.9)

    def test_scenarios_bracket_realistic(self, forecaster):
        point = forecaster.forecast(growing_history(), 1)[0]
        mrr = point.scenarios['mrr']

        assert mrr['pessimistic'] < mrr['realistic'] < mrr['optimistic']
        spread = mrr['realistic'] * 0.2 * (1 - point.confidence)
        assert mrr['optimistic'] == pytest.approx(mrr['realistic'] + spread, abs=0.01)


class TestAccuracy:

    def test_perfect(self):
        result = TrendForecaster.evaluate_accuracy([100, 200], [100, 200])

        assert result == {'mape': 0.0, 'rmse': 0.0, 'accuracy': 'excellent'}

    def test_grades(self):
        assert TrendForecaster.evaluate_accuracy([115], [100])['accuracy'] == 'good'
        assert TrendForecaster.evaluate_accuracy([125], [100])['accuracy'] == 'fair'
        assert TrendForecaster.evaluate_accuracy([150], [100])['accuracy'] == 'poor'

    def test_zero_actuals_skipped_for_mape(self):
        result = TrendForecaster.evaluate_accuracy([5, 110], [0, 100])

        assert result['mape'] == pytest.approx(10.0)
        assert result['rmse'] > 0

    def test_length_mismatch(self):
        with pytest.raises(ValueError):
            TrendForecaster.evaluate_accuracy([1, 2], [1])


def test_forecast_to_frame(config):
    points = TrendForecaster(config).forecast(growing_history(), 3)

    df = forecast_to_frame(points)

    assert list(df['month']) == ["2025-07", "2025-08", "2025-09"]
    assert {'mrr', 'confidence', 'mrr_optimistic', 'mrr_pessimistic'} <= set(df.columns)
