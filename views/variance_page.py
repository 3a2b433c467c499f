"""
Subscription Planning Dashboard - Plan vs Actual Page
Month actuals (aggregated from daily reports) against the projected plan
"""

import streamlit as st

from config import CONFIG
from engine.daily import aggregate_monthly_actuals
from engine.monitoring import AlertManager
from engine.projection import plan_for_month
from engine.variance import Direction, VarianceEngine, classify_variance, direction_of
from components.alerts import render_alert_panel, render_source_notice
from components.charts import create_channel_variance_chart, create_variance_chart
from views.state import get_loader, get_plan

SEVERITY_ICONS = {'ok': '✅', 'warning': '⚠️', 'critical': '🔴'}


def render_variance():
    """Render Plan vs Actual page"""
    st.markdown('<h2 class="step-header">⚖️ Plan vs Actual</h2>', unsafe_allow_html=True)

    records = get_plan()
    if not records:
        st.info("Planning horizon is empty")
        return

    month = st.selectbox("Month", [r.month for r in records])
    planned = plan_for_month(records, month)

    result = get_loader().load_daily_actuals(month)
    render_source_notice(result.source, result.error)
    actual = aggregate_monthly_actuals(result.value.values())

    report = VarianceEngine(CONFIG).compute_variance(planned, actual)

    if report.unmatched_planned or report.unmatched_actual:
        st.caption(
            "Unmatched channels excluded: "
            + ", ".join(report.unmatched_planned + report.unmatched_actual)
        )

    cols = st.columns(len(report.metrics))
    for col, m in zip(cols, report.metrics):
        severity = classify_variance(m, CONFIG.variance)
        col.metric(
            f"{SEVERITY_ICONS[severity]} {m.metric}",
            f"{m.actual:,.0f}",
            delta=f"{m.percent_variance:+.1f}%",
            delta_color="inverse" if direction_of(m.metric) == Direction.LOWER_IS_BETTER else "normal"
        )

    st.plotly_chart(create_variance_chart(report), use_container_width=True)
    if report.channels:
        st.plotly_chart(create_channel_variance_chart(report), use_container_width=True)

    alerts = AlertManager(CONFIG)
    alerts.check_variance(report)
    render_alert_panel(alerts.alerts)

    st.dataframe(report.to_frame(), use_container_width=True, hide_index=True)
