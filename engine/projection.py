"""
Subscription Planning Dashboard - Monthly Plan Projector
Growth simulation with churn, revenue mix, channel spend and PL per month

Answers: "If we start with 30 sign-ups and grow 15% a month,
when does cumulative profit turn positive?"
"""

import logging
from dataclasses import dataclass, field, asdict
from typing import Dict, List, Optional

import pandas as pd

from config import CONFIG, AppConfig
from engine.numeric import current_month, round_half_up, safe_div, safe_pct, shift_month
from engine.parameters import GrowthParameters

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChannelPlan:
    """Planned acquisitions and spend for one channel in one month"""
    name: str
    planned_acquisitions: int
    planned_cpa: int
    planned_cost: int
    traffic_ratio: float = 0.0


@dataclass(frozen=True)
class RevenueBreakdown:
    monthly_subscription: int
    yearly_subscription: int
    total: int


@dataclass(frozen=True)
class CostBreakdown:
    channel_costs: int
    operating_expenses: int
    total: int


@dataclass(frozen=True)
class PLBreakdown:
    """Profit and loss for one month; margins are % of revenue.total"""
    revenue: RevenueBreakdown
    costs: CostBreakdown
    gross_profit: int
    gross_margin: float
    net_profit: int
    net_margin: float


@dataclass(frozen=True)
class MonthlyPlanRecord:
    """One projected month"""
    month: str
    month_index: int
    new_acquisitions: int
    total_customers: int
    churn_count: int
    retained_customers: int
    mrr: int
    expenses: int
    profit: int
    cumulative_profit: int
    channels: List[ChannelPlan] = field(default_factory=list)
    pl: Optional[PLBreakdown] = None

    def channel(self, name: str) -> Optional[ChannelPlan]:
        for channel in self.channels:
            if channel.name == name:
                return channel
        return None

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass(frozen=True)
class TargetRecord:
    """Monthly target row in the store's period/metric/value/unit shape"""
    period: str
    metric: str
    value: float
    unit: str


class MonthlyPlanProjector:
    """
    Monthly Plan Projector

    Produces a fresh, ordered sequence of MonthlyPlanRecord for a parameter
    snapshot. The projector holds no state between calls.
    """

    def __init__(self, config: AppConfig = None):
        self.config = config or CONFIG

    def project(self,
                params: GrowthParameters,
                start_month: str = None) -> List[MonthlyPlanRecord]:
        """
        Project the plan month by month

        Args:
            params: Growth parameters (validated before any month is computed)
            start_month: 'YYYY-MM' of month index 0 (default: current month)

        Returns:
            List of MonthlyPlanRecord, one per planning horizon month

        Raises:
            InvalidParameterError: churn rate out of range, negative prices, ...
        """
        params.validate()
        for warning in params.channel_ratio_warnings():
            logger.warning("Growth parameters: %s", warning)

        horizon = params.planning_horizon_months
        if horizon <= 0:
            return []

        start_month = start_month or current_month()
        active_channels = params.active_channels
        total_ratio = params.active_ratio_total
        yearly_monthly_price = params.yearly_price / 12

        records: List[MonthlyPlanRecord] = []
        new_acquisitions = 0
        total_customers = 0
        cumulative_profit = 0

        for i in range(horizon):
            # New acquisitions compound on the previous month, floored at 0
            if i == 0:
                new_acquisitions = params.initial_acquisitions
            else:
                new_acquisitions = round_half_up(
                    new_acquisitions * (1 + params.monthly_growth_rate / 100)
                )
            new_acquisitions = max(0, new_acquisitions)

            churn_count = round_half_up(total_customers * params.churn_rate / 100)
            retained_customers = total_customers - churn_count
            total_customers = retained_customers + new_acquisitions

            # Revenue mix over the whole surviving base
            yearly_customers = round_half_up(total_customers * params.yearly_ratio)
            monthly_customers = total_customers - yearly_customers
            monthly_revenue = monthly_customers * params.monthly_price
            yearly_revenue = round_half_up(yearly_customers * yearly_monthly_price)
            mrr = monthly_revenue + yearly_revenue

            # Channel allocation renormalised over active channels only
            channel_plans = []
            channel_costs = 0
            if total_ratio > 0:
                for channel in active_channels:
                    acquisitions = round_half_up(new_acquisitions * channel.traffic_ratio / total_ratio)
                    cost = acquisitions * channel.cpa
                    channel_costs += cost
                    channel_plans.append(ChannelPlan(
                        name=channel.name,
                        planned_acquisitions=acquisitions,
                        planned_cpa=channel.cpa,
                        planned_cost=cost,
                        traffic_ratio=channel.traffic_ratio
                    ))

            operating_expenses = round_half_up(
                params.base_expenses * (1 + params.expense_growth_rate / 100) ** i
            )
            expenses = operating_expenses + channel_costs

            profit = mrr - expenses
            cumulative_profit += profit

            gross_profit = mrr - channel_costs
            pl = PLBreakdown(
                revenue=RevenueBreakdown(
                    monthly_subscription=monthly_revenue,
                    yearly_subscription=yearly_revenue,
                    total=mrr
                ),
                costs=CostBreakdown(
                    channel_costs=channel_costs,
                    operating_expenses=operating_expenses,
                    total=expenses
                ),
                gross_profit=gross_profit,
                gross_margin=safe_pct(gross_profit, mrr),
                net_profit=gross_profit - operating_expenses,
                net_margin=safe_pct(gross_profit - operating_expenses, mrr)
            )

            records.append(MonthlyPlanRecord(
                month=shift_month(start_month, i),
                month_index=i,
                new_acquisitions=new_acquisitions,
                total_customers=total_customers,
                churn_count=churn_count,
                retained_customers=retained_customers,
                mrr=mrr,
                expenses=expenses,
                profit=profit,
                cumulative_profit=cumulative_profit,
                channels=channel_plans,
                pl=pl
            ))

        logger.debug(
            "Projected %d months from %s: final MRR %s, cumulative profit %s",
            horizon, start_month, records[-1].mrr, records[-1].cumulative_profit
        )
        return records


# =====================================================
# HELPERS
# =====================================================
def records_to_frame(records: List[MonthlyPlanRecord]) -> pd.DataFrame:
    """Flatten plan records into one row per month"""
    rows = []
    for r in records:
        rows.append({
            'month': r.month,
            'new_acquisitions': r.new_acquisitions,
            'total_customers': r.total_customers,
            'churn_count': r.churn_count,
            'retained_customers': r.retained_customers,
            'mrr': r.mrr,
            'expenses': r.expenses,
            'channel_costs': r.pl.costs.channel_costs if r.pl else 0,
            'operating_expenses': r.pl.costs.operating_expenses if r.pl else 0,
            'profit': r.profit,
            'cumulative_profit': r.cumulative_profit,
            'gross_margin': r.pl.gross_margin if r.pl else 0.0,
            'net_margin': r.pl.net_margin if r.pl else 0.0,
        })
    return pd.DataFrame(rows)


def plan_for_month(records: List[MonthlyPlanRecord], month: str) -> Optional[MonthlyPlanRecord]:
    """Record for a 'YYYY-MM' month, or None when outside the horizon"""
    for record in records:
        if record.month == month:
            return record
    return None


def unit_economics(params: GrowthParameters,
                   record: MonthlyPlanRecord,
                   trial_conversion_rate: float = 18.0) -> Dict:
    """
    CAC / LTV summary for one projected month

    LTV is ARPU divided by monthly churn (ARPU x 12 when churn is 0).

    Args:
        params: Parameters the record was projected from
        record: Projected month
        trial_conversion_rate: % of trial users converting to paid

    Returns:
        Dictionary with cac, arpu, ltv, ltv_cac_ratio, payback_months, trial_users
    """
    channel_costs = record.pl.costs.channel_costs if record.pl else 0
    cac = safe_div(channel_costs, record.new_acquisitions)
    arpu = safe_div(record.mrr, record.total_customers)

    churn = params.churn_rate / 100
    ltv = arpu / churn if churn > 0 else arpu * 12

    return {
        'cac': round(cac, 2),
        'arpu': round(arpu, 2),
        'ltv': round(ltv, 2),
        'ltv_cac_ratio': round(safe_div(ltv, cac), 2),
        'payback_months': round(safe_div(cac, arpu), 2),
        'trial_users': round_half_up(safe_div(record.new_acquisitions, trial_conversion_rate / 100)),
    }


def generate_targets(records: List[MonthlyPlanRecord], churn_rate: float) -> List[TargetRecord]:
    """Monthly targets for the store, one row per period and metric"""
    targets = []
    for r in records:
        targets.extend([
            TargetRecord(r.month, 'new_acquisitions', r.new_acquisitions, 'count'),
            TargetRecord(r.month, 'active_customers', r.total_customers, 'count'),
            TargetRecord(r.month, 'mrr', r.mrr, 'currency'),
            TargetRecord(r.month, 'monthly_expenses', r.expenses, 'currency'),
            TargetRecord(r.month, 'churn_rate', min(churn_rate, 100), 'percentage'),
        ])
    return targets


# Target rows name expenses the way the store does
TARGET_METRIC_ALIASES = {'monthly_expenses': 'expenses'}


def targets_to_frame(targets: List[TargetRecord]) -> pd.DataFrame:
    """Period x metric table of target values"""
    if not targets:
        return pd.DataFrame()
    return pd.DataFrame([asdict(t) for t in targets]).pivot(index='period', columns='metric', values='value')


def targets_by_month(targets) -> Dict[str, Dict[str, float]]:
    """
    Target values keyed by month, then by KPI name

    Accepts TargetRecords or a store frame with period/metric/value columns.
    Rows with no value are skipped.
    """
    if isinstance(targets, pd.DataFrame):
        rows = targets.to_dict('records')
    else:
        rows = [asdict(t) for t in targets]

    lookup: Dict[str, Dict[str, float]] = {}
    for row in rows:
        if pd.isna(row.get('value')):
            continue
        metric = TARGET_METRIC_ALIASES.get(row['metric'], row['metric'])
        lookup.setdefault(str(row['period']), {})[metric] = float(row['value'])
    return lookup
