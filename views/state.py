"""
Subscription Planning Dashboard - Session State
Loader, parameters and the current plan shared by every page
"""

import streamlit as st
from typing import List

from config import CONFIG
from engine.numeric import current_month
from engine.parameters import GrowthParameters
from engine.projection import MonthlyPlanProjector, MonthlyPlanRecord
from store.loader import DashboardLoader


@st.cache_resource
def get_loader() -> DashboardLoader:
    """One loader (and store connection) per server process"""
    return DashboardLoader(config=CONFIG)


def init_state():
    """Populate session state on first run"""
    if 'params' not in st.session_state:
        result = get_loader().load_parameters()
        st.session_state.params = result.value
        st.session_state.params_source = result.source
        st.session_state.params_error = result.error

    if 'plan_start' not in st.session_state:
        st.session_state.plan_start = current_month()


def get_params() -> GrowthParameters:
    return st.session_state.params


def set_params(params: GrowthParameters):
    """Replace the parameter set; the plan is recomputed on next access"""
    st.session_state.params = params


def get_plan() -> List[MonthlyPlanRecord]:
    """Projection of the current parameters (pure, recomputed per run)"""
    return MonthlyPlanProjector(CONFIG).project(get_params(), st.session_state.plan_start)
