"""
Subscription Planning Dashboard - Forecast Page
KPI trends and short-horizon extrapolation with scenario bands
"""

import streamlit as st

from config import CONFIG
from engine.errors import InsufficientHistoryError
from engine.forecast import TrendForecaster, forecast_to_frame
from engine.monitoring import AlertManager
from engine.numeric import current_month, shift_month
from engine.projection import targets_by_month
from components.alerts import render_alert_panel, render_kpi_card, render_source_notice
from components.charts import create_forecast_chart
from views.state import get_loader

TREND_ICONS = {'increasing': '📈', 'decreasing': '📉', 'stable': '➡️'}


def render_forecast():
    """Render Forecast page"""
    st.markdown('<h2 class="step-header">🔮 Trends & Forecast</h2>', unsafe_allow_html=True)

    col1, col2 = st.columns(2)
    with col1:
        history_months = st.slider("History (months)", min_value=3, max_value=24, value=12)
    with col2:
        horizon = st.slider("Forecast horizon (months)", min_value=1, max_value=12, value=6)

    # Last complete month
    end_month = shift_month(current_month(), -1)
    result = get_loader().load_history(end_month, history_months)
    render_source_notice(result.source, result.error)
    history = result.value

    forecaster = TrendForecaster(CONFIG)
    try:
        trends = forecaster.analyze_trends(history)
        points = forecaster.forecast(history, horizon)
    except InsufficientHistoryError as e:
        st.warning(str(e))
        return

    cols = st.columns(len(trends.metrics))
    for col, (metric, trend) in zip(cols, trends.metrics.items()):
        with col:
            render_kpi_card(
                title=metric,
                value=f"{history[metric].iloc[-1]:,.0f}",
                metric=metric,
                delta=trend.relative_change * 100,
                icon=TREND_ICONS[trend.direction]
            )
    st.caption(f"MRR momentum: {trends.momentum}")

    metric = st.selectbox("Metric", list(trends.metrics), index=0)
    st.plotly_chart(create_forecast_chart(history, points, metric), use_container_width=True)

    current = {m: float(history[m].iloc[-1]) for m in trends.metrics}
    targets = get_loader().load_targets([p.month for p in points])
    render_source_notice(targets.source, targets.error)
    alerts = AlertManager(CONFIG)
    alerts.check_forecast(points, current, targets=targets_by_month(targets.value))
    render_alert_panel(alerts.alerts)

    st.dataframe(forecast_to_frame(points), use_container_width=True, hide_index=True)
