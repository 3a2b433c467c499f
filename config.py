"""
Subscription Planning Dashboard - Configuration
Central settings for projection, cohort, variance and forecast engines

Values can be overridden from the dashboard or through a .env file
"""

import os
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

import pandas as pd
from dotenv import load_dotenv

load_dotenv()


# =====================================================
# 1. PRICING & REVENUE MIX
# =====================================================
@dataclass
class PricingConfig:
    """Subscription prices (whole yen) and plan mix"""
    monthly_price: int = 4980
    yearly_price: int = 49800
    currency: str = "JPY"

    # Share of the customer base on the yearly plan (rest is monthly)
    yearly_ratio: float = 0.30

    @property
    def yearly_monthly_equivalent(self) -> int:
        """Yearly price recognised per month"""
        return int(self.yearly_price / 12 + 0.5)


# =====================================================
# 2. GROWTH PLAN DEFAULTS
# =====================================================
@dataclass
class ChannelDefault:
    """Acquisition channel seed values"""
    name: str
    cpa: int
    traffic_ratio: float
    is_active: bool = True


@dataclass
class PlanningDefaults:
    """Starting point for a new growth plan"""
    initial_acquisitions: int = 30
    monthly_growth_rate: float = 15.0    # % per month
    churn_rate: float = 8.0              # % of last month's customers
    base_expenses: int = 300000          # Fixed operating cost (yen)
    expense_growth_rate: float = 5.0     # % per month
    planning_horizon_months: int = 12

    channels: List[ChannelDefault] = field(default_factory=lambda: [
        ChannelDefault(name="Google広告", cpa=6000, traffic_ratio=40),
        ChannelDefault(name="Facebook広告", cpa=7000, traffic_ratio=30),
        ChannelDefault(name="紹介", cpa=0, traffic_ratio=20),
        ChannelDefault(name="オーガニック検索", cpa=0, traffic_ratio=10),
    ])


# =====================================================
# 3. COHORT
# =====================================================
@dataclass
class CohortConfig:
    """Cohort retention checkpoints"""
    retention_offsets: Tuple[int, ...] = (1, 2, 3, 6, 12)
    ltv_months: int = 12    # Flat horizon used for the simplified LTV


# =====================================================
# 4. TREND & FORECAST
# =====================================================
@dataclass
class TrendConfig:
    """Trend classification settings"""
    stable_threshold: float = 0.02      # ±2% between series halves counts as stable
    recent_growth_window: int = 3       # Growth rates used for extrapolation
    min_history: int = 3


@dataclass
class ForecastConfig:
    """Forecast confidence curve"""
    base_confidence: float = 0.6
    quality_bonus: float = 0.3          # Added in full once 12 months of history exist
    full_quality_months: int = 12
    max_confidence: float = 0.95
    decay_per_month: float = 0.1
    min_confidence: float = 0.3
    scenario_variability: float = 0.2


# =====================================================
# 5. VARIANCE & ALERT THRESHOLDS
# =====================================================
@dataclass
class VarianceThresholds:
    """Achievement (%) bands for plan-vs-actual severity"""
    achievement_ok: float = 80.0        # Higher-is-better: >= 80% is fine
    achievement_critical: float = 60.0  # <= 60% is critical
    inverted_ok: float = 120.0          # Lower-is-better: <= 120% is fine
    inverted_critical: float = 150.0    # >= 150% is critical


@dataclass
class AlertThresholds:
    """Forecast alert thresholds"""
    large_change_pct: float = 20.0
    target_deviation_pct: float = 15.0
    churn_rate_danger: float = 10.0
    min_confidence: float = 0.5
    churn_min_confidence: float = 0.6


# =====================================================
# 6. STORE (BIGQUERY)
# =====================================================
@dataclass
class StoreConfig:
    """Record store connection and fetch limits"""
    project_id: str = field(default_factory=lambda: os.getenv("BQ_PROJECT_ID", ""))
    dataset_id: str = field(default_factory=lambda: os.getenv("BQ_DATASET_ID", "subscriptions"))
    credentials_path: str = field(default_factory=lambda: os.getenv("GOOGLE_APPLICATION_CREDENTIALS", ""))

    fetch_timeout_seconds: float = field(
        default_factory=lambda: float(os.getenv("STORE_FETCH_TIMEOUT", "5.0"))
    )
    max_workers: int = 6

    # Table names
    growth_parameters_table: str = "growth_parameters"
    customers_table: str = "customers"
    daily_actuals_table: str = "daily_actuals"
    targets_table: str = "targets"


# =====================================================
# MAIN CONFIG CLASS
# =====================================================
@dataclass
class AppConfig:
    """Master configuration combining all sub-configs"""
    pricing: PricingConfig = field(default_factory=PricingConfig)
    planning: PlanningDefaults = field(default_factory=PlanningDefaults)
    cohort: CohortConfig = field(default_factory=CohortConfig)
    trend: TrendConfig = field(default_factory=TrendConfig)
    forecast: ForecastConfig = field(default_factory=ForecastConfig)
    variance: VarianceThresholds = field(default_factory=VarianceThresholds)
    alerts: AlertThresholds = field(default_factory=AlertThresholds)
    store: StoreConfig = field(default_factory=StoreConfig)


# Global config instance
CONFIG = AppConfig()


# =====================================================
# HELPER FUNCTIONS
# =====================================================
def _present(record: Dict) -> Dict:
    """Drop NULL / NaN scalars so they read as missing keys"""
    return {k: v for k, v in record.items() if not (pd.api.types.is_scalar(v) and pd.isna(v))}


def channels_from_records(records: List[Dict]):
    """
    Channels from dict rows (store JSON or an edited table)

    Rows without a name are skipped; blank cpa / ratio read as 0 and a
    blank active flag as active.
    """
    from engine.parameters import Channel

    channels = []
    for row in records:
        row = _present(row)
        if not str(row.get('name', '')).strip():
            continue
        channels.append(Channel(
            name=str(row['name']),
            cpa=int(row.get('cpa', 0)),
            traffic_ratio=float(row.get('traffic_ratio', row.get('ratio', 0))),
            is_active=bool(row.get('is_active', True))
        ))
    return tuple(channels)


def params_from_dict(params: Dict, config: AppConfig = None):
    """
    Build GrowthParameters from a loosely typed record (store row or form input)

    Missing or NULL keys fall back to the configured defaults. Channels may
    be given as dicts with name/cpa/traffic_ratio (or ratio)/is_active.
    """
    from engine.parameters import Channel, GrowthParameters

    config = config or CONFIG
    params = _present(params)
    plan = config.planning
    pricing = config.pricing

    if 'channels' in params and params['channels'] is not None:
        channels = channels_from_records(params['channels'])
    else:
        channels = tuple(
            Channel(name=c.name, cpa=c.cpa, traffic_ratio=c.traffic_ratio, is_active=c.is_active)
            for c in plan.channels
        )

    return GrowthParameters(
        initial_acquisitions=int(params.get('initial_acquisitions', plan.initial_acquisitions)),
        monthly_growth_rate=float(params.get('monthly_growth_rate', plan.monthly_growth_rate)),
        churn_rate=float(params.get('churn_rate', plan.churn_rate)),
        monthly_price=int(params.get('monthly_price', pricing.monthly_price)),
        yearly_price=int(params.get('yearly_price', pricing.yearly_price)),
        base_expenses=int(params.get('base_expenses', plan.base_expenses)),
        expense_growth_rate=float(params.get('expense_growth_rate', plan.expense_growth_rate)),
        planning_horizon_months=int(params.get('planning_horizon_months', plan.planning_horizon_months)),
        channels=channels,
        yearly_ratio=float(params.get('yearly_ratio', pricing.yearly_ratio)),
    )


def default_parameters(config: AppConfig = None):
    """GrowthParameters built purely from config defaults"""
    return params_from_dict({}, config)
