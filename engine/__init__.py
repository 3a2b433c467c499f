"""
Subscription Planning Dashboard - Engine
Plan → Project → Compare → Forecast → Pace: the computation core behind the dashboard
"""

from .errors import PlanningError, InvalidParameterError, NoCohortDataError, InsufficientHistoryError
from .parameters import Channel, GrowthParameters, pricing_warnings
from .projection import MonthlyPlanProjector, MonthlyPlanRecord, records_to_frame, unit_economics
from .cohort import Customer, CohortResult, CohortRetentionCalculator, customers_from_frame
from .variance import (
    ActualRecord, ChannelActual, VarianceEngine, VarianceReport, VarianceResult,
    METRIC_DIRECTIONS, is_favorable, classify_variance
)
from .forecast import KPISnapshot, TrendForecaster, forecast_to_frame
from .daily import DailyActual, DailyTargetDecomposer, PacingTracker, accumulate, aggregate_monthly_actuals
from .monitoring import AlertLevel, AlertManager

__all__ = [
    'PlanningError',
    'InvalidParameterError',
    'NoCohortDataError',
    'InsufficientHistoryError',
    'Channel',
    'GrowthParameters',
    'pricing_warnings',
    'MonthlyPlanProjector',
    'MonthlyPlanRecord',
    'records_to_frame',
    'unit_economics',
    'Customer',
    'CohortResult',
    'CohortRetentionCalculator',
    'customers_from_frame',
    'ActualRecord',
    'ChannelActual',
    'VarianceEngine',
    'VarianceReport',
    'VarianceResult',
    'METRIC_DIRECTIONS',
    'is_favorable',
    'classify_variance',
    'KPISnapshot',
    'TrendForecaster',
    'forecast_to_frame',
    'DailyActual',
    'DailyTargetDecomposer',
    'PacingTracker',
    'accumulate',
    'aggregate_monthly_actuals',
    'AlertLevel',
    'AlertManager'
]
