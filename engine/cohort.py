"""
Subscription Planning Dashboard - Cohort Retention
Retention checkpoints and simplified LTV for a registration-month cohort

Answers: "Of the customers who signed up in January,
how many are still paying three months later?"
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional, Union

import pandas as pd

from config import CONFIG, AppConfig
from engine.errors import NoCohortDataError
from engine.numeric import month_period, round_half_up, safe_div

logger = logging.getLogger(__name__)

STATUS_ACTIVE = 'active'
STATUS_CHURNED = 'churned'
PLAN_MONTHLY = 'monthly'
PLAN_YEARLY = 'yearly'


@dataclass(frozen=True)
class Customer:
    """Customer row as read from the store"""
    id: str
    registered_at: date
    status: str
    churned_at: Optional[date] = None
    plan_type: str = PLAN_MONTHLY

    def is_retained_at(self, boundary: date) -> bool:
        """Still paying at the boundary (churn dated strictly after it)"""
        if self.status == STATUS_ACTIVE:
            return True
        if self.status == STATUS_CHURNED and self.churned_at is not None:
            return self.churned_at > boundary
        return False


@dataclass
class CohortResult:
    """Retention (%) per month offset plus estimated LTV (yen)"""
    cohort_period: str
    customer_count: int
    retention_at_month: Dict[int, Optional[int]] = field(default_factory=dict)
    estimated_ltv: int = 0

    @property
    def average_ltv(self) -> int:
        """Estimated LTV per cohort member"""
        return round_half_up(safe_div(self.estimated_ltv, self.customer_count))

    def to_dict(self) -> Dict:
        row = {
            'cohort_period': self.cohort_period,
            'customer_count': self.customer_count,
            'estimated_ltv': self.estimated_ltv,
            'average_ltv': self.average_ltv,
        }
        for offset, value in self.retention_at_month.items():
            row[f'retention_month_{offset}'] = value
        return row


def _to_date(value) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, float) and pd.isna(value):
        return None
    if value is pd.NaT:
        return None
    if isinstance(value, pd.Timestamp):
        return value.date()
    if isinstance(value, date) and not hasattr(value, 'hour'):
        return value
    ts = pd.Timestamp(value)
    if pd.isna(ts):
        return None
    return ts.date()


def customers_from_frame(data: Union[pd.DataFrame, Iterable[Dict]]) -> List[Customer]:
    """
    Build Customer records from store rows

    Args:
        data: DataFrame or iterable of dicts with id, registered_at, status,
              churned_at, plan_type (timestamps as ISO-8601 strings or dates)
    """
    if isinstance(data, pd.DataFrame):
        rows = data.to_dict('records')
    else:
        rows = list(data)

    customers = []
    for row in rows:
        customers.append(Customer(
            id=str(row.get('id')),
            registered_at=_to_date(row.get('registered_at')),
            status=str(row.get('status', STATUS_ACTIVE)),
            churned_at=_to_date(row.get('churned_at')),
            plan_type=str(row.get('plan_type', PLAN_MONTHLY))
        ))
    return customers


class CohortRetentionCalculator:
    """
    Cohort Retention Calculator

    Pure function of the roster at query time; nothing is persisted.
    """

    def __init__(self, config: AppConfig = None):
        self.config = config or CONFIG

    def monthly_value(self, plan_type: str) -> int:
        """Flat monthly revenue a member contributes for its plan type"""
        pricing = self.config.pricing
        if plan_type == PLAN_YEARLY:
            return pricing.yearly_monthly_equivalent
        if plan_type == PLAN_MONTHLY:
            return pricing.monthly_price
        return 0

    def members(self, customers: Iterable[Customer], cohort_month: str) -> List[Customer]:
        """Customers registered within the cohort's calendar month"""
        period = month_period(cohort_month)
        start = period.start_time.date()
        end = period.end_time.date()
        return [
            c for c in customers
            if c.registered_at is not None and start <= c.registered_at <= end
        ]

    def compute_cohort(self,
                       customers: Iterable[Customer],
                       cohort_month: str,
                       as_of: date = None) -> CohortResult:
        """
        Compute retention checkpoints and estimated LTV for one cohort

        Args:
            customers: Customer roster
            cohort_month: 'YYYY-MM' registration month
            as_of: Checkpoints whose boundary falls after this date are None

        Returns:
            CohortResult

        Raises:
            NoCohortDataError: when nobody registered in the cohort month
        """
        members = self.members(customers, cohort_month)
        count = len(members)
        if count == 0:
            raise NoCohortDataError(cohort_month)

        period = month_period(cohort_month)
        retention = {}
        for offset in self.config.cohort.retention_offsets:
            # Checkpoint k closes on the last day of month cohort+k
            boundary = (period + offset).end_time.date()
            if as_of is not None and boundary > as_of:
                retention[offset] = None
                continue
            retained = sum(1 for c in members if c.is_retained_at(boundary))
            retention[offset] = round_half_up(retained / count * 100)

        # Simplified LTV: flat per-plan monthly value over a fixed horizon
        estimated_ltv = sum(self.monthly_value(c.plan_type) for c in members) * self.config.cohort.ltv_months

        logger.debug("Cohort %s: %d members, retention %s", cohort_month, count, retention)
        return CohortResult(
            cohort_period=cohort_month,
            customer_count=count,
            retention_at_month=retention,
            estimated_ltv=estimated_ltv
        )

    def retention_matrix(self,
                         customers: Iterable[Customer],
                         cohort_months: List[str],
                         as_of: date = None) -> pd.DataFrame:
        """
        Cohorts as rows, retention offsets as columns

        Cohorts without members are skipped.
        """
        customers = list(customers)
        rows = {}
        for month in cohort_months:
            try:
                result = self.compute_cohort(customers, month, as_of=as_of)
            except NoCohortDataError:
                logger.info("Skipping cohort %s: no customers registered", month)
                continue
            rows[month] = result.retention_at_month

        matrix = pd.DataFrame.from_dict(rows, orient='index')
        if not matrix.empty:
            matrix.index.name = 'cohort_period'
        return matrix

    def compare_cohorts(self, cohort_a: CohortResult, cohort_b: CohortResult) -> pd.DataFrame:
        """Side-by-side retention with the difference in percentage points"""
        results = []
        for offset in self.config.cohort.retention_offsets:
            a = cohort_a.retention_at_month.get(offset)
            b = cohort_b.retention_at_month.get(offset)
            diff = a - b if a is not None and b is not None else None
            results.append({
                'offset': offset,
                cohort_a.cohort_period: a,
                cohort_b.cohort_period: b,
                'difference': diff,
                'winner': (
                    None if diff is None else
                    cohort_a.cohort_period if diff > 0 else
                    cohort_b.cohort_period if diff < 0 else 'Tie'
                )
            })
        return pd.DataFrame(results)
