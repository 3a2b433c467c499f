"""
Subscription Planning Dashboard - Daily Page
Daily targets for the current plan month and month-to-date pacing
"""

import streamlit as st
from datetime import date

from engine.daily import DailyTargetDecomposer, PacingTracker, accumulate, days_in_month
from engine.numeric import current_month
from engine.projection import plan_for_month
from components.alerts import format_yen, render_pacing_bar, render_source_notice
from components.charts import create_daily_progress_chart
from views.state import get_loader, get_plan


def render_daily():
    """Render Daily page"""
    st.markdown('<h2 class="step-header">📅 Daily Targets</h2>', unsafe_allow_html=True)

    records = get_plan()
    months = [r.month for r in records]
    if not months:
        st.info("Planning horizon is empty")
        return

    default_month = current_month()
    month = st.selectbox("Month", months, index=months.index(default_month) if default_month in months else 0)
    plan = plan_for_month(records, month)
    total_days = days_in_month(month)

    targets = DailyTargetDecomposer().daily_targets(plan, total_days)

    col1, col2, col3 = st.columns(3)
    col1.metric("Daily new customers", f"{targets.daily_new_acquisitions:,}")
    col2.metric("Daily revenue", format_yen(targets.daily_revenue))
    col3.metric("Daily expenses", format_yen(targets.daily_expenses))

    st.dataframe(
        [{'channel': name, 'daily_target': t.daily_target, 'daily_budget': round(t.daily_budget)}
         for name, t in targets.channel_targets.items()],
        use_container_width=True,
        hide_index=True
    )

    today = date.today()
    through_default = today.day if month == default_month else total_days
    through_day = st.slider("Through day", min_value=1, max_value=total_days, value=through_default)

    result = get_loader().load_daily_actuals(month)
    render_source_notice(result.source, result.error)
    mtd = accumulate(result.value, through_day, targets)

    st.markdown("### 🏁 Month to Date")
    render_pacing_bar(mtd.actual_acquisitions, mtd.target_acquisitions, "New customers")
    render_pacing_bar(mtd.actual_revenue, mtd.target_revenue, "Revenue", currency=True)

    st.plotly_chart(create_daily_progress_chart(mtd.progress), use_container_width=True)

    st.markdown("### ⏱️ Pacing to Month End")
    st.dataframe(PacingTracker().track(mtd, targets), use_container_width=True, hide_index=True)
