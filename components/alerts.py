"""
Subscription Planning Dashboard - Alert Components
Streamlit widgets for alerts, KPI cards, data-source notices and pacing
"""

import streamlit as st
from typing import List, Optional

from config import CONFIG
from engine.monitoring import Alert, AlertLevel
from engine.numeric import safe_pct
from engine.variance import Direction, direction_of

# Most severe first
LEVEL_STYLES = {
    AlertLevel.CRITICAL: ('#6f42c1', '🚨'),
    AlertLevel.DANGER: ('#dc3545', '🔴'),
    AlertLevel.WARNING: ('#ffc107', '⚠️'),
    AlertLevel.INFO: ('#17a2b8', 'ℹ️'),
}

SEVERITY = list(LEVEL_STYLES)


def format_yen(value: float) -> str:
    return f"¥{value:,.0f}"


def render_alert_badge(alert: Alert):
    """One alert as a colored strip; the month or channel it refers to is shown after the message"""
    color, icon = LEVEL_STYLES[alert.level]
    where = f" <small>({alert.dimension})</small>" if alert.dimension else ""

    st.markdown(
        f'<div style="border-left: 4px solid {color}; background: {color}1a; '
        f'padding: 8px 12px; margin: 4px 0;">'
        f'{icon} <b style="color: {color};">{alert.level.value.upper()}</b> '
        f'{alert.message}{where}</div>',
        unsafe_allow_html=True
    )


def render_alert_panel(alerts: List[Alert], max_alerts: int = 5):
    """
    Render alerts, most severe first

    Args:
        alerts: Alerts raised by AlertManager checks
        max_alerts: Badges shown before the rest are folded into an expander
    """
    if not alerts:
        st.info("✅ No active alerts")
        return

    ranked = sorted(alerts, key=lambda a: SEVERITY.index(a.level))
    summary = ", ".join(
        f"{sum(1 for a in alerts if a.level == level)} {level.value}"
        for level in SEVERITY if any(a.level == level for a in alerts)
    )
    st.subheader(f"🚨 Alerts: {summary}")

    for alert in ranked[:max_alerts]:
        render_alert_badge(alert)

    if len(ranked) > max_alerts:
        with st.expander(f"{len(ranked) - max_alerts} more"):
            for alert in ranked[max_alerts:]:
                render_alert_badge(alert)


def render_kpi_card(title: str, value: str, metric: Optional[str] = None,
                    delta: Optional[float] = None, icon: str = "📊"):
    """
    KPI card with a percentage delta

    The delta is green when the move is good for the metric, so a falling
    churn rate shows green and a falling MRR shows red.
    """
    inverse = metric is not None and direction_of(metric) == Direction.LOWER_IS_BETTER
    st.metric(
        label=f"{icon} {title}",
        value=value,
        delta=f"{delta:+.1f}%" if delta else None,
        delta_color="inverse" if inverse else "normal"
    )


def render_source_notice(source: str, error: str = None):
    """Tell the user when the page is showing default data"""
    if source == 'default':
        detail = f" ({error})" if error else ""
        st.warning(f"📦 Showing default data: the record store was unavailable{detail}")


def render_pacing_bar(current: float, target: float, label: str, currency: bool = False):
    """
    Progress toward the target to date, banded like plan-vs-actual achievement

    Args:
        current: Actual so far
        target: Target for the same days
        label: Row label
        currency: Format values as yen
    """
    achievement = safe_pct(current, target)
    thresholds = CONFIG.variance

    if achievement >= 100:
        status = '✅ On Track'
    elif achievement >= thresholds.achievement_ok:
        status = '⚠️ Slightly Behind'
    elif achievement > thresholds.achievement_critical:
        status = '🟠 Behind'
    else:
        status = '🔴 Far Behind'

    fmt = format_yen if currency else (lambda v: f"{v:,.0f}")

    st.progress(min(1.0, achievement / 100), text=f"{label}: {achievement:.0f}% {status}")
    st.caption(f"Actual {fmt(current)} / target {fmt(target)}")
