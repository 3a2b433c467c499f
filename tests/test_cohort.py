"""
Unit tests for the cohort retention calculator.
"""

from datetime import date

import pandas as pd
import pytest

from engine.cohort import CohortRetentionCalculator, Customer, customers_from_frame
from engine.errors import NoCohortDataError


@pytest.fixture
def calculator(config):
    return CohortRetentionCalculator(config)


class TestJanuaryCohort:
    """20 sign-ups in 2025-01, 5 of them churned on 2025-03-15."""

    def test_customer_count(self, calculator, january_cohort):
        result = calculator.compute_cohort(january_cohort, "2025-01")

        assert result.customer_count == 20

    def test_no_churn_before_march_cutoff(self, calculator, january_cohort):
        result = calculator.compute_cohort(january_cohort, "2025-01")

        assert result.retention_at_month[1] == 100

    def test_march_churn_shows_at_month_two(self, calculator, january_cohort):
        result = calculator.compute_cohort(january_cohort, "2025-01")

        assert result.retention_at_month[2] == 75
        assert result.retention_at_month[3] == 75
        assert result.retention_at_month[6] == 75
        assert result.retention_at_month[12] == 75

    def test_no_win_back(self, calculator, january_cohort):
        retention = calculator.compute_cohort(january_cohort, "2025-01").retention_at_month

        assert retention[12] <= retention[1]

    def test_estimated_ltv(self, calculator, january_cohort):
        result = calculator.compute_cohort(january_cohort, "2025-01")

        assert result.estimated_ltv == 20 * 4980 * 12
        assert result.average_ltv == 4980 * 12


class TestBoundaries:

    def test_churn_on_last_day_of_month_is_not_retained(self, calculator):
        customers = [
            Customer(id="a", registered_at=date(2025, 1, 10), status="churned", churned_at=date(2025, 2, 28)),
            Customer(id="b", registered_at=date(2025, 1, 10), status="active"),
        ]

        result = calculator.compute_cohort(customers, "2025-01")

        assert result.retention_at_month[1] == 50

    def test_churn_on_first_of_next_month_is_retained(self, calculator):
        customers = [
            Customer(id="a", registered_at=date(2025, 1, 10), status="churned", churned_at=date(2025, 3, 1)),
            Customer(id="b", registered_at=date(2025, 1, 10), status="active"),
        ]

        result = calculator.compute_cohort(customers, "2025-01")

        assert result.retention_at_month[1] == 100
        assert result.retention_at_month[2] == 50

    def test_churned_without_date_is_not_retained(self, calculator):
        customers = [
            Customer(id="a", registered_at=date(2025, 1, 10), status="churned", churned_at=None),
            Customer(id="b", registered_at=date(2025, 1, 10), status="active"),
        ]

        assert calculator.compute_cohort(customers, "2025-01").retention_at_month[1] == 50

    def test_membership_is_calendar_month_inclusive(self, calculator):
        customers = [
            Customer(id="first", registered_at=date(2025, 1, 1), status="active"),
            Customer(id="last", registered_at=date(2025, 1, 31), status="active"),
            Customer(id="before", registered_at=date(2024, 12, 31), status="active"),
            Customer(id="after", registered_at=date(2025, 2, 1), status="active"),
        ]

        members = calculator.members(customers, "2025-01")

        assert sorted(c.id for c in members) == ["first", "last"]

    def test_retention_rounds_half_up(self, calculator):
        # 1 of 8 churned: 87.5% retained
        customers = [Customer(id=str(i), registered_at=date(2025, 1, 5), status="active") for i in range(7)]
        customers.append(Customer(id="x", registered_at=date(2025, 1, 5), status="churned",
                                  churned_at=date(2025, 1, 20)))

        assert calculator.compute_cohort(customers, "2025-01").retention_at_month[1] == 88

    def test_future_checkpoints_are_none(self, calculator, january_cohort):
        result = calculator.compute_cohort(january_cohort, "2025-01", as_of=date(2025, 3, 10))

        assert result.retention_at_month[1] == 100
        assert result.retention_at_month[2] is None
        assert result.retention_at_month[12] is None

    def test_empty_cohort_raises(self, calculator, january_cohort):
        with pytest.raises(NoCohortDataError) as exc:
            calculator.compute_cohort(january_cohort, "2025-06")

        assert exc.value.cohort_month == "2025-06"


class TestLtv:

    def test_yearly_members_use_amortized_price(self, calculator):
        customers = [
            Customer(id="m", registered_at=date(2025, 1, 5), status="active", plan_type="monthly"),
            Customer(id="y", registered_at=date(2025, 1, 5), status="active", plan_type="yearly"),
        ]

        result = calculator.compute_cohort(customers, "2025-01")

        assert result.estimated_ltv == (4980 + 4150) * 12
        assert result.average_ltv == round((4980 + 4150) * 12 / 2)


class TestMatrixAndComparison:

    def test_matrix_skips_empty_cohorts(self, calculator, january_cohort):
        matrix = calculator.retention_matrix(january_cohort, ["2024-12", "2025-01", "2025-02"])

        assert list(matrix.index) == ["2025-01"]
        assert list(matrix.columns) == [1, 2, 3, 6, 12]
        assert matrix.loc["2025-01", 3] == 75

    def test_compare_cohorts(self, calculator, january_cohort):
        february = [
            Customer(id=f"f{i}", registered_at=date(2025, 2, 3), status="active") for i in range(4)
        ]
        a = calculator.compute_cohort(january_cohort, "2025-01")
        b = calculator.compute_cohort(february, "2025-02")

        table = calculator.compare_cohorts(a, b)

        row = table[table['offset'] == 3].iloc[0]
        assert row['difference'] == -25
        assert row['winner'] == "2025-02"


class TestCustomersFromFrame:

    def test_parses_iso_strings_and_missing_churn(self):
        df = pd.DataFrame([
            {'id': 1, 'registered_at': '2025-01-05T09:30:00Z', 'status': 'active',
             'churned_at': None, 'plan_type': 'monthly'},
            {'id': 2, 'registered_at': '2025-01-06', 'status': 'churned',
             'churned_at': '2025-03-02', 'plan_type': 'yearly'},
        ])

        customers = customers_from_frame(df)

        assert customers[0].registered_at == date(2025, 1, 5)
        assert customers[0].churned_at is None
        assert customers[1].churned_at == date(2025, 3, 2)
        assert customers[1].plan_type == 'yearly'
        assert customers[0].id == '1'
