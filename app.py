"""
Subscription Planning Dashboard - Streamlit Web Dashboard
Main entry point: plan, cohorts, plan vs actual, forecast and daily pacing

Run with: streamlit run app.py
"""

import logging
from datetime import datetime

import streamlit as st

from config import CONFIG
from views.state import get_loader, init_state
from views import render_planning, render_cohorts, render_variance, render_forecast, render_daily

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

# Page config
st.set_page_config(
    page_title="Subscription Planning Dashboard",
    page_icon="📊",
    layout="wide",
    initial_sidebar_state="expanded"
)

# Custom CSS
st.markdown("""
<style>
    .step-header {
        font-size: 1.5rem;
        font-weight: bold;
        margin-top: 30px;
        margin-bottom: 15px;
        padding-bottom: 10px;
        border-bottom: 2px solid #667eea;
    }
</style>
""", unsafe_allow_html=True)

PAGES = {
    "📈 Growth Plan": render_planning,
    "👥 Cohorts": render_cohorts,
    "⚖️ Plan vs Actual": render_variance,
    "🔮 Forecast": render_forecast,
    "📅 Daily": render_daily,
}


def main():
    """Main dashboard function"""
    init_state()

    with st.sidebar:
        st.markdown("## 📊 Subscription Planning")
        st.markdown("---")

        page = st.radio("Navigation", list(PAGES), label_visibility="collapsed")

        st.markdown("---")

        # Data source info
        st.markdown("### 📡 Data Source")
        if get_loader().online:
            st.success(f"BigQuery: {CONFIG.store.project_id}.{CONFIG.store.dataset_id}")
        else:
            st.info("Using default data.\nSet BQ_PROJECT_ID to connect BigQuery.")

        st.markdown(f"**Updated:** {datetime.now().strftime('%Y-%m-%d %H:%M')}")

    PAGES[page]()


if __name__ == "__main__":
    main()
