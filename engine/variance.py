"""
Subscription Planning Dashboard - Plan vs Actual Variance
Raw variance per KPI and per channel, plus the metric direction table

Answers: "Did we miss plan this month, and which channel drove it?"

The engine only computes raw differences. Whether a positive variance is good
or bad is a property of the metric (METRIC_DIRECTIONS), applied by consumers.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

import pandas as pd

from config import CONFIG, AppConfig, VarianceThresholds
from engine.numeric import safe_div, safe_pct
from engine.projection import MonthlyPlanRecord

logger = logging.getLogger(__name__)


class Direction(Enum):
    """Which way a metric should move"""
    HIGHER_IS_BETTER = "higher"
    LOWER_IS_BETTER = "lower"


METRIC_DIRECTIONS: Dict[str, Direction] = {
    'new_acquisitions': Direction.HIGHER_IS_BETTER,
    'total_customers': Direction.HIGHER_IS_BETTER,
    'active_customers': Direction.HIGHER_IS_BETTER,
    'mrr': Direction.HIGHER_IS_BETTER,
    'revenue': Direction.HIGHER_IS_BETTER,
    'profit': Direction.HIGHER_IS_BETTER,
    'acquisitions': Direction.HIGHER_IS_BETTER,
    'churn_count': Direction.LOWER_IS_BETTER,
    'churn_rate': Direction.LOWER_IS_BETTER,
    'expenses': Direction.LOWER_IS_BETTER,
    'monthly_expenses': Direction.LOWER_IS_BETTER,
    'cost': Direction.LOWER_IS_BETTER,
    'cpa': Direction.LOWER_IS_BETTER,
}

METRIC_UNITS: Dict[str, str] = {
    'new_acquisitions': 'count',
    'total_customers': 'count',
    'churn_count': 'count',
    'acquisitions': 'count',
    'mrr': 'currency',
    'expenses': 'currency',
    'profit': 'currency',
    'cost': 'currency',
    'cpa': 'currency',
}

TRACKED_METRICS = ('new_acquisitions', 'mrr', 'churn_count', 'expenses')


def direction_of(metric: str) -> Direction:
    """Direction for a metric id; unknown metrics default to higher-is-better"""
    return METRIC_DIRECTIONS.get(metric, Direction.HIGHER_IS_BETTER)


def is_favorable(metric: str, variance: float) -> Optional[bool]:
    """
    Whether a variance is good news for the metric

    Returns:
        True / False, or None when the variance is zero
    """
    if variance == 0:
        return None
    if direction_of(metric) == Direction.LOWER_IS_BETTER:
        return variance < 0
    return variance > 0


@dataclass(frozen=True)
class ChannelActual:
    """Actual acquisitions and spend for one channel"""
    name: str
    actual_acquisitions: int
    actual_cost: float
    actual_cpa: Optional[float] = None

    @property
    def cpa(self) -> float:
        if self.actual_cpa is not None:
            return self.actual_cpa
        return safe_div(self.actual_cost, self.actual_acquisitions)


@dataclass(frozen=True)
class ActualRecord:
    """Actual KPIs for a month, entered or aggregated from daily reports"""
    new_acquisitions: int
    mrr: float
    churn_count: int
    expenses: float
    channels: List[ChannelActual] = field(default_factory=list)
    total_customers: Optional[int] = None


@dataclass(frozen=True)
class VarianceResult:
    """Planned vs actual for one metric"""
    metric: str
    planned: float
    actual: float
    absolute_variance: float
    percent_variance: float

    @property
    def achievement(self) -> float:
        """actual / planned * 100, 0 when nothing was planned"""
        return safe_pct(self.actual, self.planned)

    @property
    def unit(self) -> str:
        return METRIC_UNITS.get(self.metric, 'count')


def compare(metric: str, planned: float, actual: float) -> VarianceResult:
    """Absolute and percent variance; percent is 0 when planned is 0"""
    variance = actual - planned
    percent = variance / abs(planned) * 100 if planned != 0 else 0.0
    return VarianceResult(
        metric=metric,
        planned=planned,
        actual=actual,
        absolute_variance=variance,
        percent_variance=percent
    )


@dataclass(frozen=True)
class ChannelVariance:
    name: str
    acquisitions: VarianceResult
    cpa: VarianceResult
    cost: VarianceResult


@dataclass
class VarianceReport:
    """Metric and channel variances for one month"""
    metrics: List[VarianceResult]
    channels: List[ChannelVariance]
    unmatched_planned: List[str] = field(default_factory=list)
    unmatched_actual: List[str] = field(default_factory=list)

    def metric(self, name: str) -> Optional[VarianceResult]:
        for result in self.metrics:
            if result.metric == name:
                return result
        return None

    def channel(self, name: str) -> Optional[ChannelVariance]:
        for result in self.channels:
            if result.name == name:
                return result
        return None

    def to_frame(self) -> pd.DataFrame:
        rows = []
        for r in self.metrics:
            rows.append(_result_row(r, scope='total'))
        for ch in self.channels:
            for r in (ch.acquisitions, ch.cpa, ch.cost):
                rows.append(_result_row(r, scope=ch.name))
        return pd.DataFrame(rows)


def _result_row(result: VarianceResult, scope: str) -> Dict:
    return {
        'scope': scope,
        'metric': result.metric,
        'planned': result.planned,
        'actual': result.actual,
        'variance': result.absolute_variance,
        'variance_pct': round(result.percent_variance, 2),
        'achievement_pct': round(result.achievement, 2),
        'favorable': is_favorable(result.metric, result.absolute_variance),
    }


class VarianceEngine:
    """
    Plan-vs-Actual Variance Engine

    Channels are matched by exact name. A planned channel without a reported
    actual is left out of the channel results rather than shown as a 100%
    shortfall.
    """

    def __init__(self, config: AppConfig = None):
        self.config = config or CONFIG

    def compute_variance(self, planned: MonthlyPlanRecord, actual: ActualRecord) -> VarianceReport:
        """
        Compare a planned month against actuals

        Args:
            planned: Projected month (or any object with the same KPI fields)
            actual: Actual KPIs and per-channel breakdown

        Returns:
            VarianceReport with metric and channel variances
        """
        metrics = [
            compare(name, getattr(planned, name), getattr(actual, name))
            for name in TRACKED_METRICS
        ]
        if actual.total_customers is not None:
            metrics.append(compare('total_customers', planned.total_customers, actual.total_customers))
        metrics.append(compare('profit', planned.profit, actual.mrr - actual.expenses))

        actual_by_name = {ch.name: ch for ch in actual.channels}
        planned_names = [ch.name for ch in planned.channels]

        channels = []
        unmatched_planned = []
        for plan in planned.channels:
            reported = actual_by_name.get(plan.name)
            if reported is None:
                unmatched_planned.append(plan.name)
                continue
            channels.append(ChannelVariance(
                name=plan.name,
                acquisitions=compare('acquisitions', plan.planned_acquisitions, reported.actual_acquisitions),
                cpa=compare('cpa', plan.planned_cpa, reported.cpa),
                cost=compare('cost', plan.planned_cost, reported.actual_cost)
            ))

        unmatched_actual = [name for name in actual_by_name if name not in planned_names]

        if unmatched_planned:
            logger.warning("Planned channels without actuals (excluded): %s", ", ".join(unmatched_planned))
        if unmatched_actual:
            logger.warning("Actual channels not in plan (excluded): %s", ", ".join(unmatched_actual))

        return VarianceReport(
            metrics=metrics,
            channels=channels,
            unmatched_planned=unmatched_planned,
            unmatched_actual=unmatched_actual
        )


def classify_variance(result: VarianceResult, thresholds: VarianceThresholds = None) -> str:
    """
    Severity of a variance from its achievement percentage

    Returns:
        'ok', 'warning' or 'critical'
    """
    thresholds = thresholds or CONFIG.variance
    achievement = result.achievement

    if direction_of(result.metric) == Direction.LOWER_IS_BETTER:
        if achievement <= thresholds.inverted_ok:
            return 'ok'
        return 'critical' if achievement >= thresholds.inverted_critical else 'warning'

    if result.planned <= 0:
        # Nothing (or a loss) was planned: achievement carries no signal
        return 'ok'
    if achievement >= thresholds.achievement_ok:
        return 'ok'
    return 'critical' if achievement <= thresholds.achievement_critical else 'warning'
