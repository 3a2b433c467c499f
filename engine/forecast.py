"""
Subscription Planning Dashboard - Trend & Forecast
Trend direction, momentum and short-horizon extrapolation of monthly KPIs

Answers: "Is MRR still accelerating, and where will it be in six months?"
"""

import logging
from dataclasses import dataclass, field, asdict
from typing import Dict, Iterable, List, Union

import numpy as np
import pandas as pd
from scipy import stats

from config import CONFIG, AppConfig
from engine.errors import InsufficientHistoryError
from engine.numeric import shift_month

logger = logging.getLogger(__name__)

KPI_METRICS = ['mrr', 'active_customers', 'new_acquisitions', 'churn_rate', 'expenses']

INCREASING = 'increasing'
DECREASING = 'decreasing'
STABLE = 'stable'
ACCELERATING = 'accelerating'
DECELERATING = 'decelerating'
STEADY = 'steady'


@dataclass(frozen=True)
class KPISnapshot:
    """Actual KPIs for one historical month"""
    month: str
    mrr: float
    active_customers: int
    new_acquisitions: int
    churn_rate: float
    expenses: float


@dataclass(frozen=True)
class MetricTrend:
    metric: str
    direction: str
    momentum: str
    relative_change: float
    slope: float
    r_squared: float


@dataclass
class TrendSummary:
    """Per-metric trends; overall momentum follows MRR"""
    metrics: Dict[str, MetricTrend]
    momentum: str

    def direction(self, metric: str) -> str:
        return self.metrics[metric].direction


@dataclass
class ForecastPoint:
    """One extrapolated month"""
    month: str
    offset: int
    values: Dict[str, float]
    confidence: float
    scenarios: Dict[str, Dict[str, float]] = field(default_factory=dict)


def history_to_frame(history: Union[pd.DataFrame, Iterable]) -> pd.DataFrame:
    """Normalise snapshots, dicts or a DataFrame into an ordered KPI frame"""
    if isinstance(history, pd.DataFrame):
        df = history.copy()
    else:
        rows = [asdict(h) if isinstance(h, KPISnapshot) else dict(h) for h in history]
        df = pd.DataFrame(rows)

    if 'month' in df.columns:
        df = df.sort_values('month').reset_index(drop=True)
    return df


def growth_rates(values: np.ndarray) -> np.ndarray:
    """Period-over-period growth as fractions; 0 where the prior value is 0"""
    prev = values[:-1]
    curr = values[1:]
    rates = np.zeros(len(curr), dtype=float)
    nonzero = prev != 0
    rates[nonzero] = (curr[nonzero] - prev[nonzero]) / np.abs(prev[nonzero])
    return rates


class TrendForecaster:
    """
    Trend/Forecast Extrapolator

    Needs at least three months of history; refuses to run below that.
    """

    def __init__(self, config: AppConfig = None):
        self.config = config or CONFIG

    def _frame(self, history) -> pd.DataFrame:
        df = history_to_frame(history)
        required = self.config.trend.min_history
        if len(df) < required:
            raise InsufficientHistoryError(required, len(df))
        return df

    def _metrics(self, df: pd.DataFrame) -> List[str]:
        return [m for m in KPI_METRICS if m in df.columns]

    # -------------------------------------------------
    # Trend analysis
    # -------------------------------------------------
    def classify_direction(self, values: np.ndarray) -> tuple:
        """Compare the recent half of a series against the earlier half"""
        mid = len(values) // 2
        earlier = float(np.mean(values[:mid]))
        recent = float(np.mean(values[mid:]))
        threshold = self.config.trend.stable_threshold

        if earlier == 0:
            change = 0.0 if recent == 0 else float(np.sign(recent))
        else:
            change = (recent - earlier) / abs(earlier)

        if change > threshold:
            return INCREASING, change
        if change < -threshold:
            return DECREASING, change
        return STABLE, change

    @staticmethod
    def classify_momentum(values: np.ndarray) -> str:
        """Latest period-over-period growth against the one before it"""
        rates = growth_rates(values)
        recent, prior = rates[-1], rates[-2]
        if np.isclose(recent, prior):
            return STEADY
        return ACCELERATING if recent > prior else DECELERATING

    def analyze_trends(self, history) -> TrendSummary:
        """
        Classify direction and momentum per KPI

        Args:
            history: Ordered monthly KPIs (>= 3 periods)

        Returns:
            TrendSummary

        Raises:
            InsufficientHistoryError: fewer than 3 periods
        """
        df = self._frame(history)
        x = np.arange(len(df))

        trends = {}
        for metric in self._metrics(df):
            values = df[metric].astype(float).to_numpy()
            direction, change = self.classify_direction(values)
            if np.ptp(values) == 0:
                slope, r_squared = 0.0, 0.0
            else:
                fit = stats.linregress(x, values)
                slope, r_squared = float(fit.slope), float(fit.rvalue ** 2)
            trends[metric] = MetricTrend(
                metric=metric,
                direction=direction,
                momentum=self.classify_momentum(values),
                relative_change=change,
                slope=slope,
                r_squared=r_squared
            )

        momentum = trends['mrr'].momentum if 'mrr' in trends else STEADY
        return TrendSummary(metrics=trends, momentum=momentum)

    # -------------------------------------------------
    # Forecast
    # -------------------------------------------------
    def baseline_confidence(self, n_periods: int) -> float:
        cfg = self.config.forecast
        quality = min(1.0, n_periods / cfg.full_quality_months)
        return min(cfg.max_confidence, cfg.base_confidence + cfg.quality_bonus * quality)

    def confidence_at(self, offset: int, n_periods: int) -> float:
        """Confidence for the offset-th future month; non-increasing in offset"""
        cfg = self.config.forecast
        decay = max(cfg.min_confidence, 1 - cfg.decay_per_month * (offset - 1))
        return round(max(cfg.min_confidence, self.baseline_confidence(n_periods) * decay), 4)

    def recent_growth_rate(self, values: np.ndarray) -> float:
        """Mean growth over the most recent periods only"""
        window = self.config.trend.recent_growth_window
        return float(np.mean(growth_rates(values)[-window:]))

    def _scenarios(self, value: float, confidence: float) -> Dict[str, float]:
        spread = value * self.config.forecast.scenario_variability * (1 - confidence)
        return {
            'optimistic': round(value + spread, 2),
            'realistic': round(value, 2),
            'pessimistic': round(max(0.0, value - spread), 2),
        }

    def forecast(self, history, horizon_months: int) -> List[ForecastPoint]:
        """
        Extrapolate each KPI from its recent growth rate

        predicted_i = last * (1 + g) ** i, g = mean of the last 3 growth rates

        Args:
            history: Ordered monthly KPIs (>= 3 periods)
            horizon_months: Future months to produce

        Returns:
            List of ForecastPoint, offsets 1..horizon_months

        Raises:
            InsufficientHistoryError: fewer than 3 periods
        """
        df = self._frame(history)
        n = len(df)
        metrics = self._metrics(df)

        rates = {}
        last = {}
        for metric in metrics:
            values = df[metric].astype(float).to_numpy()
            rates[metric] = self.recent_growth_rate(values)
            last[metric] = values[-1]

        last_month = df['month'].iloc[-1] if 'month' in df.columns else None

        points = []
        for offset in range(1, max(0, horizon_months) + 1):
            values = {
                m: round(max(0.0, last[m] * (1 + rates[m]) ** offset), 2)
                for m in metrics
            }
            confidence = self.confidence_at(offset, n)
            scenarios = {
                m: self._scenarios(values[m], confidence)
                for m in ('mrr', 'active_customers') if m in values
            }
            points.append(ForecastPoint(
                month=shift_month(last_month, offset) if last_month else str(offset),
                offset=offset,
                values=values,
                confidence=confidence,
                scenarios=scenarios
            ))

        logger.debug("Forecast %d months from %d periods, growth %s", horizon_months, n, rates)
        return points

    # -------------------------------------------------
    # Accuracy
    # -------------------------------------------------
    @staticmethod
    def evaluate_accuracy(predicted: List[float], actual: List[float]) -> Dict:
        """
        MAPE / RMSE of past predictions against what actually happened

        Zero actuals are skipped for MAPE.
        """
        if len(predicted) != len(actual):
            raise ValueError("predicted and actual must have the same length")
        if not predicted:
            return {'mape': 0.0, 'rmse': 0.0, 'accuracy': 'poor'}

        p = np.asarray(predicted, dtype=float)
        a = np.asarray(actual, dtype=float)

        valid = a != 0
        mape = float(np.mean(np.abs((a[valid] - p[valid]) / a[valid])) * 100) if valid.any() else 0.0
        rmse = float(np.sqrt(np.mean((a - p) ** 2)))

        if mape < 10:
            accuracy = 'excellent'
        elif mape < 20:
            accuracy = 'good'
        elif mape < 30:
            accuracy = 'fair'
        else:
            accuracy = 'poor'

        return {'mape': round(mape, 2), 'rmse': round(rmse, 2), 'accuracy': accuracy}


def forecast_to_frame(points: List[ForecastPoint]) -> pd.DataFrame:
    """One row per forecast month"""
    rows = []
    for p in points:
        row = {'month': p.month, 'offset': p.offset, 'confidence': p.confidence}
        row.update(p.values)
        for metric, scenario in p.scenarios.items():
            row[f'{metric}_optimistic'] = scenario['optimistic']
            row[f'{metric}_pessimistic'] = scenario['pessimistic']
        rows.append(row)
    return pd.DataFrame(rows)
