"""
Subscription Planning Dashboard - Views
Streamlit page renderers
"""

from .planning_page import render_planning
from .cohort_page import render_cohorts
from .variance_page import render_variance
from .forecast_page import render_forecast
from .daily_page import render_daily

__all__ = [
    'render_planning',
    'render_cohorts',
    'render_variance',
    'render_forecast',
    'render_daily'
]
