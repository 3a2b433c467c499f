"""
Subscription Planning Dashboard - Monitoring
Alerts raised from plan variance, forecasts and parameter checks

Answers: "Is anything off-plan enough that someone should look at it today?"
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

import pandas as pd

from config import CONFIG, AppConfig
from engine.forecast import ForecastPoint
from engine.parameters import GrowthParameters
from engine.variance import VarianceReport, classify_variance, is_favorable

logger = logging.getLogger(__name__)


class AlertLevel(Enum):
    """Alert severity levels"""
    INFO = "info"
    WARNING = "warning"
    DANGER = "danger"
    CRITICAL = "critical"


@dataclass
class Alert:
    """Alert data structure"""
    id: str
    level: AlertLevel
    metric: str
    message: str
    current_value: float
    threshold: float
    timestamp: datetime
    dimension: str = None  # Channel or forecast month

    def to_dict(self) -> Dict:
        return {
            'id': self.id,
            'level': self.level.value,
            'metric': self.metric,
            'message': self.message,
            'current_value': self.current_value,
            'threshold': self.threshold,
            'timestamp': self.timestamp.isoformat(),
            'dimension': self.dimension
        }


class AlertManager:
    """
    Alerting on plan-vs-actual and forecast results

    Every check returns only the alerts it raised and also keeps them on
    the manager for the dashboard's alert list.
    """

    def __init__(self, config: AppConfig = None):
        self.config = config or CONFIG
        self.thresholds = self.config.alerts
        self.alerts: List[Alert] = []
        self._alert_counter = 0

    def _generate_alert_id(self) -> str:
        """Generate unique alert ID"""
        self._alert_counter += 1
        return f"alert_{datetime.now().strftime('%Y%m%d%H%M%S')}_{self._alert_counter}"

    def _raise(self,
               level: AlertLevel,
               metric: str,
               message: str,
               current_value: float,
               threshold: float,
               dimension: str = None) -> Alert:
        alert = Alert(
            id=self._generate_alert_id(),
            level=level,
            metric=metric,
            message=message,
            current_value=current_value,
            threshold=threshold,
            timestamp=datetime.now(),
            dimension=dimension
        )
        self.alerts.append(alert)
        logger.info("Alert [%s] %s", level.value, message)
        return alert

    # -------------------------------------------------
    # Plan vs actual
    # -------------------------------------------------
    def check_variance(self, report: VarianceReport) -> List[Alert]:
        """
        One alert per metric whose achievement is outside the ok band

        Args:
            report: Output of VarianceEngine.compute_variance

        Returns:
            List of triggered alerts
        """
        new_alerts = []
        for result in report.metrics:
            severity = classify_variance(result, self.config.variance)
            if severity == 'ok':
                continue
            level = AlertLevel.CRITICAL if severity == 'critical' else AlertLevel.WARNING
            direction = "ahead of" if is_favorable(result.metric, result.absolute_variance) else "behind"
            new_alerts.append(self._raise(
                level=level,
                metric=result.metric,
                message=(
                    f"{result.metric} is {direction} plan: {result.actual:,.0f} vs "
                    f"{result.planned:,.0f} ({result.percent_variance:+.1f}%)"
                ),
                current_value=result.actual,
                threshold=result.planned
            ))
        return new_alerts

    # -------------------------------------------------
    # Forecast
    # -------------------------------------------------
    def check_forecast(self,
                       points: List[ForecastPoint],
                       current_values: Dict[str, float],
                       targets: Optional[Dict[str, Dict[str, float]]] = None) -> List[Alert]:
        """
        Flag large predicted moves, target gaps, high churn and shrinking MRR

        Args:
            points: Forecast points, nearest month first
            current_values: Latest actual value per metric
            targets: Optional targets keyed by month, then metric (see targets_by_month)

        Returns:
            List of triggered alerts
        """
        t = self.thresholds
        targets = targets or {}
        new_alerts = []

        for point in points:
            month_targets = targets.get(point.month, {})
            for metric, predicted in point.values.items():
                current = current_values.get(metric)
                if current:
                    change_pct = (predicted - current) / abs(current) * 100
                    if abs(change_pct) > t.large_change_pct and point.confidence > t.min_confidence:
                        new_alerts.append(self._raise(
                            level=AlertLevel.WARNING,
                            metric=metric,
                            message=(
                                f"{metric} forecast to move {change_pct:+.1f}% by {point.month} "
                                f"(confidence {point.confidence:.0%})"
                            ),
                            current_value=predicted,
                            threshold=t.large_change_pct,
                            dimension=point.month
                        ))

                target = month_targets.get(metric)
                if target:
                    deviation_pct = (predicted - target) / abs(target) * 100
                    if abs(deviation_pct) > t.target_deviation_pct and is_favorable(metric, deviation_pct) is False:
                        new_alerts.append(self._raise(
                            level=AlertLevel.DANGER,
                            metric=metric,
                            message=f"{metric} forecast misses target by {deviation_pct:+.1f}% in {point.month}",
                            current_value=predicted,
                            threshold=target,
                            dimension=point.month
                        ))

            churn = point.values.get('churn_rate')
            if churn is not None and churn > t.churn_rate_danger and point.confidence > t.churn_min_confidence:
                new_alerts.append(self._raise(
                    level=AlertLevel.DANGER,
                    metric='churn_rate',
                    message=f"Churn rate forecast at {churn:.1f}% in {point.month}",
                    current_value=churn,
                    threshold=t.churn_rate_danger,
                    dimension=point.month
                ))

        # Only the nearest month: a falling MRR shows up there first
        if points and 'mrr' in points[0].values and current_values.get('mrr'):
            first = points[0]
            if first.values['mrr'] < current_values['mrr'] and first.confidence > t.min_confidence:
                new_alerts.append(self._raise(
                    level=AlertLevel.CRITICAL,
                    metric='mrr',
                    message=f"MRR forecast to decline to {first.values['mrr']:,.0f} in {first.month}",
                    current_value=first.values['mrr'],
                    threshold=current_values['mrr'],
                    dimension=first.month
                ))

        return new_alerts

    # -------------------------------------------------
    # Parameters
    # -------------------------------------------------
    def check_channel_ratios(self, params: GrowthParameters) -> List[Alert]:
        """Surface non-blocking parameter warnings as info alerts"""
        return [
            self._raise(
                level=AlertLevel.INFO,
                metric='parameters',
                message=warning,
                current_value=params.active_ratio_total,
                threshold=100
            )
            for warning in params.channel_ratio_warnings()
        ]

    def counts_by_level(self) -> Dict[str, int]:
        counts = {level.value: 0 for level in AlertLevel}
        for alert in self.alerts:
            counts[alert.level.value] += 1
        return counts

    def get_alerts_df(self) -> pd.DataFrame:
        """Get all alerts as DataFrame"""
        if not self.alerts:
            return pd.DataFrame()
        return pd.DataFrame([a.to_dict() for a in self.alerts])
