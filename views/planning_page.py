"""
Subscription Planning Dashboard - Planning Page
Growth parameter controls, monthly projection and unit economics
"""

import streamlit as st
import pandas as pd

from config import CONFIG, channels_from_records
from engine.errors import InvalidParameterError
from engine.projection import generate_targets, records_to_frame, targets_to_frame, unit_economics
from engine.monitoring import AlertManager
from components.alerts import format_yen, render_alert_panel, render_source_notice
from components.charts import create_channel_allocation_chart, create_projection_chart
from views.state import get_params, get_plan, set_params


def render_parameter_controls():
    """Sidebar-free parameter form; every change yields a new parameter set"""
    params = get_params()

    tab_growth, tab_pricing, tab_channels = st.tabs(["📈 Growth", "💳 Pricing", "📢 Channels"])

    with tab_growth:
        col1, col2, col3 = st.columns(3)
        with col1:
            initial = st.number_input("Initial acquisitions", min_value=0,
                                      value=params.initial_acquisitions, step=5)
            growth = st.number_input("Monthly growth rate (%)", min_value=-100.0, max_value=500.0,
                                     value=float(params.monthly_growth_rate), step=1.0)
        with col2:
            churn = st.number_input("Churn rate (%)", min_value=0.0, max_value=100.0,
                                    value=float(params.churn_rate), step=0.5)
            horizon = st.slider("Planning horizon (months)", min_value=1, max_value=36,
                                value=params.planning_horizon_months)
        with col3:
            base_expenses = st.number_input("Base expenses (¥)", min_value=0,
                                            value=params.base_expenses, step=10000)
            expense_growth = st.number_input("Expense growth rate (%)", value=float(params.expense_growth_rate),
                                             step=0.5)

    with tab_pricing:
        col1, col2, col3 = st.columns(3)
        with col1:
            monthly_price = st.number_input("Monthly price (¥)", min_value=0, value=params.monthly_price, step=100)
        with col2:
            yearly_price = st.number_input("Yearly price (¥)", min_value=0, value=params.yearly_price, step=1000)
        with col3:
            yearly_ratio = st.slider("Yearly plan share (%)", min_value=0, max_value=100,
                                     value=int(round(params.yearly_ratio * 100))) / 100

    with tab_channels:
        edited = st.data_editor(
            pd.DataFrame([
                {'name': c.name, 'cpa': c.cpa, 'traffic_ratio': c.traffic_ratio, 'is_active': c.is_active}
                for c in params.channels
            ]),
            num_rows="dynamic",
            use_container_width=True,
            key="channel_editor"
        )
        # New rows arrive with blank cells until every column is filled in
        channels = channels_from_records(edited.to_dict('records'))

    set_params(params.with_changes(
        initial_acquisitions=int(initial),
        monthly_growth_rate=growth,
        churn_rate=churn,
        planning_horizon_months=int(horizon),
        base_expenses=int(base_expenses),
        expense_growth_rate=expense_growth,
        monthly_price=int(monthly_price),
        yearly_price=int(yearly_price),
        yearly_ratio=yearly_ratio
    ).with_channels(channels))


def render_planning():
    """Render Planning page"""
    st.markdown('<h2 class="step-header">📈 Growth Plan</h2>', unsafe_allow_html=True)
    render_source_notice(st.session_state.get('params_source', 'store'), st.session_state.get('params_error'))

    render_parameter_controls()
    params = get_params()

    try:
        records = get_plan()
    except InvalidParameterError as e:
        for problem in e.problems:
            st.error(problem)
        return

    alerts = AlertManager(CONFIG)
    alerts.check_channel_ratios(params)
    render_alert_panel(alerts.alerts)

    if not records:
        st.info("Planning horizon is empty")
        return

    last = records[-1]
    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Final MRR", format_yen(last.mrr))
    col2.metric("Total customers", f"{last.total_customers:,}")
    col3.metric("Cumulative profit", format_yen(last.cumulative_profit))
    breakeven = next((r.month for r in records if r.cumulative_profit >= 0), None)
    col4.metric("Cumulative break-even", breakeven or "Beyond horizon")

    st.plotly_chart(create_projection_chart(records), use_container_width=True)
    st.plotly_chart(create_channel_allocation_chart(records), use_container_width=True)

    st.markdown("### 🧮 Unit Economics (final month)")
    economics = unit_economics(params, last)
    col1, col2, col3, col4 = st.columns(4)
    col1.metric("CAC", format_yen(economics['cac']))
    col2.metric("ARPU", format_yen(economics['arpu']))
    col3.metric("LTV / CAC", f"{economics['ltv_cac_ratio']:.2f}x")
    col4.metric("Payback", f"{economics['payback_months']:.1f} months")

    st.markdown("### 📋 Monthly Plan")
    st.dataframe(records_to_frame(records), use_container_width=True, hide_index=True)

    st.markdown("### 🎯 Monthly Targets")
    targets = targets_to_frame(generate_targets(records, params.churn_rate))
    st.dataframe(targets, use_container_width=True)
