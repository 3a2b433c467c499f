"""
Subscription Planning Dashboard - Daily Targets & Pacing
Splits a planned month into daily targets and tracks month-to-date progress

Answers: "It's the 15th. Are we where the plan says we should be?"
"""

import calendar
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, Optional

import pandas as pd

from engine.numeric import ceil_div, month_period, safe_div, safe_pct
from engine.projection import MonthlyPlanRecord
from engine.variance import ActualRecord, ChannelActual

logger = logging.getLogger(__name__)


def days_in_month(month: str) -> int:
    """Calendar days in a 'YYYY-MM' month"""
    period = month_period(month)
    return calendar.monthrange(period.year, period.month)[1]


# =====================================================
# DAILY TARGETS
# =====================================================
@dataclass(frozen=True)
class ChannelDailyTarget:
    daily_target: int
    daily_budget: float


@dataclass(frozen=True)
class DailyTargets:
    """Even daily slice of one planned month"""
    month: str
    days_in_month: int
    daily_new_acquisitions: int
    daily_revenue: float
    daily_expenses: float
    channel_targets: Dict[str, ChannelDailyTarget] = field(default_factory=dict)
    # Monthly plan figures the daily slices came from
    planned_acquisitions: int = 0
    planned_revenue: float = 0.0
    planned_expenses: float = 0.0


class DailyTargetDecomposer:
    """Daily Target Decomposer"""

    def daily_targets(self, plan: MonthlyPlanRecord, days_in_month: int) -> DailyTargets:
        """
        Divide a planned month evenly across its days

        Counts round up so the daily targets never sum below the monthly plan;
        currency is divided exactly.

        Raises:
            ValueError: days_in_month is not positive
        """
        if days_in_month <= 0:
            raise ValueError(f"days_in_month must be positive (got {days_in_month})")

        channel_targets = {
            ch.name: ChannelDailyTarget(
                daily_target=ceil_div(ch.planned_acquisitions, days_in_month),
                daily_budget=ch.planned_cost / days_in_month
            )
            for ch in plan.channels
        }

        return DailyTargets(
            month=plan.month,
            days_in_month=days_in_month,
            daily_new_acquisitions=ceil_div(plan.new_acquisitions, days_in_month),
            daily_revenue=plan.mrr / days_in_month,
            daily_expenses=plan.expenses / days_in_month,
            channel_targets=channel_targets,
            planned_acquisitions=plan.new_acquisitions,
            planned_revenue=plan.mrr,
            planned_expenses=plan.expenses
        )


# =====================================================
# DAILY ACTUALS
# =====================================================
@dataclass(frozen=True)
class ChannelDay:
    acquisitions: int = 0
    cost: float = 0.0


@dataclass(frozen=True)
class DailyActual:
    """One day's reported results"""
    day: date
    new_acquisitions: int = 0
    churns: int = 0
    revenue: float = 0.0
    expenses: float = 0.0
    channel_data: Dict[str, ChannelDay] = field(default_factory=dict)


def daily_actuals_from_frame(df: pd.DataFrame) -> Dict[date, DailyActual]:
    """
    Build DailyActual records from store rows

    Rows are one per day and channel (date, channel, acquisitions, cost) with
    the day-level churns, revenue and expenses repeated; rows without a
    channel carry day totals only.
    """
    if df is None or df.empty:
        return {}

    frame = df.copy()
    frame['date'] = pd.to_datetime(frame['date']).dt.date
    for column in ('acquisitions', 'cost', 'new_acquisitions', 'churns', 'revenue', 'expenses'):
        if column in frame.columns:
            frame[column] = frame[column].fillna(0)

    actuals = {}
    for day, rows in frame.groupby('date'):
        channels = {}
        if 'channel' in rows.columns:
            for _, row in rows.dropna(subset=['channel']).iterrows():
                channels[str(row['channel'])] = ChannelDay(
                    acquisitions=int(row.get('acquisitions', 0)),
                    cost=float(row.get('cost', 0))
                )
        acquisitions = (
            int(rows['new_acquisitions'].max()) if 'new_acquisitions' in rows.columns
            else sum(ch.acquisitions for ch in channels.values())
        )
        actuals[day] = DailyActual(
            day=day,
            new_acquisitions=acquisitions,
            churns=int(rows['churns'].max()) if 'churns' in rows.columns else 0,
            revenue=float(rows['revenue'].max()) if 'revenue' in rows.columns else 0.0,
            expenses=float(rows['expenses'].max()) if 'expenses' in rows.columns else 0.0,
            channel_data=channels
        )
    return actuals


# =====================================================
# MONTH-TO-DATE
# =====================================================
@dataclass(frozen=True)
class ChannelToDate:
    actual_acquisitions: int
    target_acquisitions: int
    actual_cost: float
    budget: float
    achievement: float


@dataclass
class MonthToDate:
    """Running totals for days 1..through_day"""
    through_day: int
    actual_acquisitions: int
    actual_revenue: float
    actual_expenses: float
    target_acquisitions: int
    target_revenue: float
    target_expenses: float
    acquisition_achievement: float
    revenue_achievement: float
    expense_achievement: float
    channels: Dict[str, ChannelToDate] = field(default_factory=dict)
    progress: pd.DataFrame = field(default_factory=pd.DataFrame)


def accumulate(daily_actuals: Dict[date, DailyActual],
               through_day: int,
               targets: DailyTargets) -> MonthToDate:
    """
    Sum daily actuals for day-of-month 1..through_day against the daily targets

    Args:
        daily_actuals: Actuals keyed by date (other months and later days are ignored)
        through_day: Last day-of-month to include; clamped to the month length
        targets: Daily targets for the same month

    Returns:
        MonthToDate with achievement percentages (0 when the target is 0)
    """
    through_day = max(0, min(through_day, targets.days_in_month))
    period = month_period(targets.month)

    in_range = sorted(
        (a for d, a in daily_actuals.items()
         if d.year == period.year and d.month == period.month and d.day <= through_day),
        key=lambda a: a.day
    )

    acquisitions = sum(a.new_acquisitions for a in in_range)
    revenue = sum(a.revenue for a in in_range)
    expenses = sum(a.expenses for a in in_range)

    target_acq = targets.daily_new_acquisitions * through_day
    target_rev = targets.daily_revenue * through_day
    target_exp = targets.daily_expenses * through_day

    channels = {}
    for name, target in targets.channel_targets.items():
        ch_acq = sum(a.channel_data[name].acquisitions for a in in_range if name in a.channel_data)
        ch_cost = sum(a.channel_data[name].cost for a in in_range if name in a.channel_data)
        ch_target = target.daily_target * through_day
        channels[name] = ChannelToDate(
            actual_acquisitions=ch_acq,
            target_acquisitions=ch_target,
            actual_cost=ch_cost,
            budget=target.daily_budget * through_day,
            achievement=safe_pct(ch_acq, ch_target)
        )

    by_day = {a.day.day: a for a in in_range}
    rows = []
    running = 0
    for day in range(1, through_day + 1):
        actual = by_day.get(day)
        running += actual.new_acquisitions if actual else 0
        rows.append({
            'day': day,
            'target_cumulative': targets.daily_new_acquisitions * day,
            'actual_cumulative': running,
        })

    return MonthToDate(
        through_day=through_day,
        actual_acquisitions=acquisitions,
        actual_revenue=revenue,
        actual_expenses=expenses,
        target_acquisitions=target_acq,
        target_revenue=target_rev,
        target_expenses=target_exp,
        acquisition_achievement=safe_pct(acquisitions, target_acq),
        revenue_achievement=safe_pct(revenue, target_rev),
        expense_achievement=safe_pct(expenses, target_exp),
        channels=channels,
        progress=pd.DataFrame(rows, columns=['day', 'target_cumulative', 'actual_cumulative'])
    )


def aggregate_monthly_actuals(daily_actuals: Iterable[DailyActual],
                              total_customers: Optional[int] = None) -> ActualRecord:
    """
    Roll daily reports up into a month actual

    Revenue summed over the month stands in for MRR; churns reported on
    each day add up to the month churn count.
    """
    daily_actuals = list(daily_actuals)

    channel_acq: Dict[str, int] = {}
    channel_cost: Dict[str, float] = {}
    for actual in daily_actuals:
        for name, day in actual.channel_data.items():
            channel_acq[name] = channel_acq.get(name, 0) + day.acquisitions
            channel_cost[name] = channel_cost.get(name, 0.0) + day.cost

    channels = [
        ChannelActual(
            name=name,
            actual_acquisitions=channel_acq[name],
            actual_cost=channel_cost[name],
            actual_cpa=safe_div(channel_cost[name], channel_acq[name])
        )
        for name in channel_acq
    ]

    logger.debug("Aggregated %d daily reports across %d channels", len(daily_actuals), len(channels))
    return ActualRecord(
        new_acquisitions=sum(a.new_acquisitions for a in daily_actuals),
        mrr=sum(a.revenue for a in daily_actuals),
        churn_count=sum(a.churns for a in daily_actuals),
        expenses=sum(a.expenses for a in daily_actuals),
        channels=channels,
        total_customers=total_customers
    )


# =====================================================
# PACING
# =====================================================
class PacingTracker:
    """
    Pacing Tracker

    Projects a month-to-date value linearly to month end.
    """

    def calculate_pacing(self,
                         current_value: float,
                         target_value: float,
                         elapsed_days: int,
                         total_days: int) -> Dict:
        """
        Calculate pacing status

        Args:
            current_value: Cumulative value so far
            target_value: Target for the whole month
            elapsed_days: Days elapsed in the month
            total_days: Days in the month

        Returns:
            Dictionary with pacing ratio, projection, status and required daily rate
        """
        if total_days == 0 or target_value == 0:
            return {'pacing_ratio': 0.0, 'status': 'Unknown'}

        time_elapsed = elapsed_days / total_days
        achieved = current_value / target_value
        pacing_ratio = achieved / time_elapsed if time_elapsed > 0 else 0.0
        projected_value = current_value / time_elapsed if time_elapsed > 0 else 0.0

        if pacing_ratio >= 1.1:
            status = 'Ahead'
        elif pacing_ratio >= 0.95:
            status = 'On Track'
        elif pacing_ratio >= 0.8:
            status = 'Slightly Behind'
        else:
            status = 'Behind'

        days_remaining = total_days - elapsed_days
        return {
            'current_value': current_value,
            'target_value': target_value,
            'time_elapsed_pct': round(time_elapsed * 100, 1),
            'value_achieved_pct': round(achieved * 100, 1),
            'pacing_ratio': round(pacing_ratio, 3),
            'projected_value': round(projected_value, 2),
            'projected_pct': round(safe_pct(projected_value, target_value), 1),
            'status': status,
            'days_remaining': days_remaining,
            'required_daily': round((target_value - current_value) / max(1, days_remaining), 2)
        }

    def track(self, month_to_date: MonthToDate, targets: DailyTargets) -> pd.DataFrame:
        """Pacing table for acquisitions, revenue and expenses against the monthly plan"""
        monthly = {
            'new_acquisitions': (month_to_date.actual_acquisitions, targets.planned_acquisitions),
            'revenue': (month_to_date.actual_revenue, targets.planned_revenue),
            'expenses': (month_to_date.actual_expenses, targets.planned_expenses),
        }
        rows = []
        for name, (current, target) in monthly.items():
            pacing = self.calculate_pacing(current, target, month_to_date.through_day, targets.days_in_month)
            rows.append({
                'metric': name,
                'current': current,
                'target': target,
                'pacing_ratio': pacing['pacing_ratio'],
                'projected_pct': pacing.get('projected_pct', 0.0),
                'status': pacing['status'],
            })
        return pd.DataFrame(rows)
