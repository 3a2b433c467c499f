"""
Subscription Planning Dashboard - Engine Errors
Conditions the computation core signals to its callers
"""

from typing import List


class PlanningError(Exception):
    """Base class for engine errors"""


class InvalidParameterError(PlanningError, ValueError):
    """Growth parameters rejected before any month is computed"""

    def __init__(self, problems: List[str]):
        self.problems = list(problems)
        super().__init__("; ".join(self.problems) or "invalid parameters")


class NoCohortDataError(PlanningError):
    """No customers registered in the requested cohort month"""

    def __init__(self, cohort_month: str):
        self.cohort_month = cohort_month
        super().__init__(f"No customers registered in cohort {cohort_month}")


class InsufficientHistoryError(PlanningError):
    """Too few historical periods to classify trends or extrapolate"""

    def __init__(self, required: int, available: int):
        self.required = required
        self.available = available
        super().__init__(
            f"At least {required} months of history are required (got {available})"
        )
