"""
Subscription Planning Dashboard - Default Dataset
Static fallback data used when the record store is unreachable or slow

Every value here is a pure function of its arguments, so a dashboard
showing defaults looks the same on every reload.
"""

from typing import Dict, List

import pandas as pd

from config import CONFIG, AppConfig
from engine.numeric import month_period, round_half_up, shift_month

# Month the default history is anchored on
BASE_MONTH = "2025-01"

BASE_MRR = 450000
BASE_CUSTOMERS = 100
BASE_ACQUISITIONS = 30
BASE_EXPENSES = 520000
MONTHLY_GROWTH = 0.06


def default_growth_parameters(config: AppConfig = None) -> Dict:
    """Growth parameter record shaped like the store's growth_parameters row"""
    config = config or CONFIG
    plan = config.planning
    return {
        'initial_acquisitions': plan.initial_acquisitions,
        'monthly_growth_rate': plan.monthly_growth_rate,
        'churn_rate': plan.churn_rate,
        'monthly_price': config.pricing.monthly_price,
        'yearly_price': config.pricing.yearly_price,
        'base_expenses': plan.base_expenses,
        'expense_growth_rate': plan.expense_growth_rate,
        'planning_horizon_months': plan.planning_horizon_months,
        'channels': [
            {'name': c.name, 'cpa': c.cpa, 'traffic_ratio': c.traffic_ratio, 'is_active': c.is_active}
            for c in plan.channels
        ],
    }


def _months_since_base(month: str) -> int:
    return max(0, (month_period(month) - month_period(BASE_MONTH)).n)


def default_monthly_kpis(month: str) -> Dict:
    """KPIs for one month on a steady 6% growth curve from BASE_MONTH"""
    k = _months_since_base(month)
    growth = (1 + MONTHLY_GROWTH) ** k
    return {
        'month': month,
        'mrr': round_half_up(BASE_MRR * growth),
        'active_customers': round_half_up(BASE_CUSTOMERS * growth),
        'new_acquisitions': round_half_up(BASE_ACQUISITIONS * growth),
        'churn_rate': 5.0,
        'expenses': round_half_up(BASE_EXPENSES * (1.02 ** k)),
    }


def default_history(end_month: str, months: int) -> List[Dict]:
    """`months` consecutive monthly KPI rows ending at end_month"""
    return [default_monthly_kpis(shift_month(end_month, -offset)) for offset in reversed(range(months))]


def default_customers(end_month: str, cohorts: int = 6, per_cohort: int = 20) -> pd.DataFrame:
    """
    Deterministic roster: `per_cohort` sign-ups in each of the last `cohorts` months

    Within a cohort, member j churns mid-month (j % 5 + 1) months after
    registering when j % 4 == 0; every third member is on the yearly plan.
    """
    rows = []
    for c in range(cohorts):
        period = month_period(shift_month(end_month, -(cohorts - 1 - c)))
        for j in range(per_cohort):
            registered = period.start_time + pd.Timedelta(days=j % 28)
            churned = None
            if j % 4 == 0:
                churned = ((period + (j % 5 + 1)).start_time + pd.Timedelta(days=14)).date()
                if churned > month_period(end_month).end_time.date():
                    churned = None
            rows.append({
                'id': f"{period}-{j:03d}",
                'registered_at': registered.date(),
                'status': 'churned' if churned else 'active',
                'churned_at': churned,
                'plan_type': 'yearly' if j % 3 == 0 else 'monthly',
            })
    return pd.DataFrame(rows)


def default_daily_actuals(month: str, config: AppConfig = None) -> pd.DataFrame:
    """
    One row per day and active default channel, evenly spread month KPIs

    Acquisitions follow each channel's default traffic ratio; the month's
    churn (churn_rate of active customers) is spread over the days.
    """
    config = config or CONFIG
    kpis = default_monthly_kpis(month)
    period = month_period(month)
    days = period.days_in_month
    channels = [c for c in config.planning.channels if c.is_active]
    total_ratio = sum(c.traffic_ratio for c in channels) or 1
    month_churn = round_half_up(kpis['active_customers'] * kpis['churn_rate'] / 100)

    rows = []
    for d in range(days):
        day = (period.start_time + pd.Timedelta(days=d)).date()
        # Spread the month total so that day counts sum exactly to it
        day_acq = kpis['new_acquisitions'] * (d + 1) // days - kpis['new_acquisitions'] * d // days
        day_churn = month_churn * (d + 1) // days - month_churn * d // days
        for channel in channels:
            acquisitions = round_half_up(day_acq * channel.traffic_ratio / total_ratio)
            rows.append({
                'date': day,
                'channel': channel.name,
                'acquisitions': acquisitions,
                'cost': acquisitions * channel.cpa,
                'new_acquisitions': day_acq,
                'churns': day_churn,
                'revenue': round(kpis['mrr'] / days, 2),
                'expenses': round(kpis['expenses'] / days, 2),
            })
    return pd.DataFrame(rows)


def default_targets(periods: List[str]) -> pd.DataFrame:
    """Targets matching the default KPI curve"""
    rows = []
    for period in periods:
        kpis = default_monthly_kpis(period)
        rows.extend([
            {'period': period, 'metric': 'new_acquisitions', 'value': kpis['new_acquisitions'], 'unit': 'count'},
            {'period': period, 'metric': 'active_customers', 'value': kpis['active_customers'], 'unit': 'count'},
            {'period': period, 'metric': 'mrr', 'value': kpis['mrr'], 'unit': 'currency'},
            {'period': period, 'metric': 'monthly_expenses', 'value': kpis['expenses'], 'unit': 'currency'},
            {'period': period, 'metric': 'churn_rate', 'value': kpis['churn_rate'], 'unit': 'percentage'},
        ])
    return pd.DataFrame(rows)
