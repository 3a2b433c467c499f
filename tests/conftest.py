"""
Pytest fixtures for the subscription planning engine.

Provides configuration, parameter sets, plan records and customer rosters.
"""

import logging
from datetime import date

import pytest

from config import AppConfig, default_parameters
from engine.cohort import Customer
from engine.parameters import Channel, GrowthParameters
from engine.projection import ChannelPlan, MonthlyPlanRecord

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)


# =============================================================================
# CONFIG & PARAMETERS
# =============================================================================

@pytest.fixture
def config():
    """Fresh configuration so tests can tweak it freely."""
    return AppConfig()


@pytest.fixture
def default_params(config):
    """Parameter set built from configuration defaults."""
    return default_parameters(config)


@pytest.fixture
def scenario_params():
    """100 sign-ups growing 10% a month with 5% churn over 3 months."""
    return GrowthParameters(
        initial_acquisitions=100,
        monthly_growth_rate=10,
        churn_rate=5,
        monthly_price=4980,
        yearly_price=49800,
        base_expenses=300000,
        expense_growth_rate=5,
        planning_horizon_months=3,
        channels=(
            Channel(name="Google広告", cpa=6000, traffic_ratio=60),
            Channel(name="紹介", cpa=0, traffic_ratio=40),
        ),
    )


# =============================================================================
# PLAN RECORDS
# =============================================================================

def make_plan_record(**overrides) -> MonthlyPlanRecord:
    """Hand-built plan month with two channels."""
    fields = dict(
        month="2025-04",
        month_index=0,
        new_acquisitions=100,
        total_customers=500,
        churn_count=20,
        retained_customers=400,
        mrr=300000,
        expenses=620000,
        profit=-320000,
        cumulative_profit=-320000,
        channels=[
            ChannelPlan(name="A", planned_acquisitions=40, planned_cpa=6000, planned_cost=240000, traffic_ratio=40),
            ChannelPlan(name="B", planned_acquisitions=60, planned_cpa=0, planned_cost=0, traffic_ratio=60),
        ],
    )
    fields.update(overrides)
    return MonthlyPlanRecord(**fields)


@pytest.fixture
def plan_record():
    return make_plan_record()


# =============================================================================
# CUSTOMERS
# =============================================================================

@pytest.fixture
def january_cohort():
    """20 customers registered in 2025-01: 15 active, 5 churned mid-March."""
    customers = []
    for i in range(20):
        churned = i < 5
        customers.append(Customer(
            id=f"c{i:02d}",
            registered_at=date(2025, 1, 1 + i),
            status="churned" if churned else "active",
            churned_at=date(2025, 3, 15) if churned else None,
            plan_type="monthly",
        ))
    return customers
