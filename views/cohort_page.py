"""
Subscription Planning Dashboard - Cohort Page
Retention checkpoints and LTV per registration-month cohort
"""

import streamlit as st
from datetime import date

from config import CONFIG
from engine.cohort import CohortRetentionCalculator
from engine.errors import NoCohortDataError
from engine.numeric import current_month, shift_month
from components.alerts import format_yen, render_source_notice
from components.charts import create_cohort_retention_chart, create_retention_heatmap
from views.state import get_loader


def render_cohorts():
    """Render Cohort page"""
    st.markdown('<h2 class="step-header">👥 Cohort Retention</h2>', unsafe_allow_html=True)

    end_month = current_month()
    result = get_loader().load_customers(end_month)
    render_source_notice(result.source, result.error)
    customers = result.value

    calculator = CohortRetentionCalculator(CONFIG)
    months = [shift_month(end_month, -k) for k in reversed(range(12))]

    matrix = calculator.retention_matrix(customers, months, as_of=date.today())
    if matrix.empty:
        st.info("No customers registered in the last 12 months")
        return

    st.plotly_chart(create_retention_heatmap(matrix), use_container_width=True)

    st.markdown("### 🔍 Compare Cohorts")
    available = list(matrix.index)
    col1, col2 = st.columns(2)
    with col1:
        month_a = st.selectbox("Cohort A", available, index=0)
    with col2:
        month_b = st.selectbox("Cohort B", available, index=len(available) - 1)

    try:
        cohort_a = calculator.compute_cohort(customers, month_a, as_of=date.today())
        cohort_b = calculator.compute_cohort(customers, month_b, as_of=date.today())
    except NoCohortDataError as e:
        st.warning(str(e))
        return

    st.plotly_chart(create_cohort_retention_chart([cohort_a, cohort_b]), use_container_width=True)

    col1, col2 = st.columns(2)
    for col, cohort in ((col1, cohort_a), (col2, cohort_b)):
        col.metric(f"{cohort.cohort_period} customers", f"{cohort.customer_count:,}")
        col.metric(f"{cohort.cohort_period} LTV per customer", format_yen(cohort.average_ltv))

    st.dataframe(calculator.compare_cohorts(cohort_a, cohort_b), use_container_width=True, hide_index=True)
