"""
Subscription Planning Dashboard - Chart Components
Plotly figures for the plan, cohort, variance, forecast and daily views
"""

import plotly.graph_objects as go
from plotly.subplots import make_subplots
import pandas as pd
from typing import List

from engine.cohort import CohortResult
from engine.forecast import ForecastPoint
from engine.projection import MonthlyPlanRecord
from engine.variance import VarianceReport, is_favorable

FAVORABLE_COLOR = '#28a745'
UNFAVORABLE_COLOR = '#dc3545'
NEUTRAL_COLOR = '#6c757d'
PRIMARY_COLOR = '#667eea'
SECONDARY_COLOR = '#764ba2'

CHANNEL_COLORS = ['#667eea', '#764ba2', '#f093fb', '#4facfe', '#43e97b', '#fa709a']


def variance_color(metric: str, variance: float) -> str:
    """Green when the variance is good news for the metric, red when bad"""
    favorable = is_favorable(metric, variance)
    if favorable is None:
        return NEUTRAL_COLOR
    return FAVORABLE_COLOR if favorable else UNFAVORABLE_COLOR


def create_projection_chart(records: List[MonthlyPlanRecord]) -> go.Figure:
    """
    MRR and expenses as bars, cumulative profit as a line

    Args:
        records: Projected months

    Returns:
        Plotly figure
    """
    months = [r.month for r in records]

    fig = make_subplots(specs=[[{"secondary_y": True}]])

    fig.add_trace(go.Bar(
        x=months,
        y=[r.mrr for r in records],
        name='MRR',
        marker_color=PRIMARY_COLOR
    ), secondary_y=False)

    fig.add_trace(go.Bar(
        x=months,
        y=[r.expenses for r in records],
        name='Expenses',
        marker_color=SECONDARY_COLOR,
        opacity=0.7
    ), secondary_y=False)

    fig.add_trace(go.Scatter(
        x=months,
        y=[r.cumulative_profit for r in records],
        mode='lines+markers',
        name='Cumulative Profit',
        line=dict(color=FAVORABLE_COLOR, width=3)
    ), secondary_y=True)

    fig.update_layout(
        title="Monthly Plan: MRR vs Expenses",
        template="plotly_white",
        barmode='group',
        hovermode='x unified'
    )
    fig.update_yaxes(title_text="Amount (¥)", secondary_y=False)
    fig.update_yaxes(title_text="Cumulative Profit (¥)", secondary_y=True)

    return fig


def create_channel_allocation_chart(records: List[MonthlyPlanRecord]) -> go.Figure:
    """Stacked planned acquisitions per channel and month"""
    fig = go.Figure()

    names = []
    for r in records:
        for ch in r.channels:
            if ch.name not in names:
                names.append(ch.name)

    for i, name in enumerate(names):
        values = []
        for r in records:
            ch = r.channel(name)
            values.append(ch.planned_acquisitions if ch else 0)
        fig.add_trace(go.Bar(
            x=[r.month for r in records],
            y=values,
            name=name,
            marker_color=CHANNEL_COLORS[i % len(CHANNEL_COLORS)]
        ))

    fig.update_layout(
        title="Planned Acquisitions by Channel",
        xaxis_title="Month",
        yaxis_title="New Customers",
        template="plotly_white",
        barmode='stack'
    )

    return fig


def create_cohort_retention_chart(cohorts: List[CohortResult]) -> go.Figure:
    """
    Retention checkpoints per cohort

    Checkpoints that cannot be observed yet (None) are left out.
    """
    fig = go.Figure()

    for i, cohort in enumerate(cohorts):
        offsets = [k for k, v in cohort.retention_at_month.items() if v is not None]
        fig.add_trace(go.Bar(
            x=[f"M{k}" for k in offsets],
            y=[cohort.retention_at_month[k] for k in offsets],
            name=f"{cohort.cohort_period} ({cohort.customer_count})",
            marker_color=CHANNEL_COLORS[i % len(CHANNEL_COLORS)]
        ))

    fig.update_layout(
        title="Cohort Retention",
        xaxis_title="Months Since Registration",
        yaxis_title="Retention (%)",
        template="plotly_white",
        barmode='group',
        yaxis=dict(range=[0, 100])
    )

    return fig


def create_retention_heatmap(matrix: pd.DataFrame) -> go.Figure:
    """Cohort x offset retention matrix"""
    fig = go.Figure(data=go.Heatmap(
        z=matrix.values,
        x=[f"M{c}" for c in matrix.columns],
        y=list(matrix.index),
        colorscale='Blues',
        zmin=0,
        zmax=100,
        text=matrix.values,
        texttemplate="%{text}",
        hoverongaps=False
    ))

    fig.update_layout(
        title="Retention by Cohort",
        xaxis_title="Months Since Registration",
        yaxis_title="Cohort",
        template="plotly_white"
    )

    return fig


def create_variance_chart(report: VarianceReport) -> go.Figure:
    """
    Percent variance per metric, colored by whether it is favorable

    Args:
        report: Variance report for one month

    Returns:
        Plotly figure
    """
    metrics = report.metrics

    fig = go.Figure()

    fig.add_trace(go.Bar(
        x=[m.metric for m in metrics],
        y=[m.percent_variance for m in metrics],
        marker_color=[variance_color(m.metric, m.absolute_variance) for m in metrics],
        text=[f"{m.percent_variance:+.1f}%" for m in metrics],
        textposition='outside'
    ))

    fig.add_hline(y=0, line_color="gray")

    fig.update_layout(
        title="Plan vs Actual",
        xaxis_title="Metric",
        yaxis_title="Variance (%)",
        template="plotly_white",
        showlegend=False
    )

    return fig


def create_channel_variance_chart(report: VarianceReport) -> go.Figure:
    """Planned vs actual acquisitions per matched channel"""
    fig = go.Figure()

    names = [ch.name for ch in report.channels]

    fig.add_trace(go.Bar(
        x=names,
        y=[ch.acquisitions.planned for ch in report.channels],
        name='Planned',
        marker_color=NEUTRAL_COLOR,
        opacity=0.5
    ))

    fig.add_trace(go.Bar(
        x=names,
        y=[ch.acquisitions.actual for ch in report.channels],
        name='Actual',
        marker_color=[variance_color('acquisitions', ch.acquisitions.absolute_variance)
                      for ch in report.channels]
    ))

    fig.update_layout(
        title="Acquisitions by Channel",
        template="plotly_white",
        barmode='group'
    )

    return fig


def create_forecast_chart(history: pd.DataFrame,
                          points: List[ForecastPoint],
                          metric: str = 'mrr') -> go.Figure:
    """
    Actual history followed by the forecast with its scenario band

    Args:
        history: Monthly KPI frame with 'month' and the metric column
        points: Forecast points
        metric: KPI to plot

    Returns:
        Plotly figure
    """
    fig = go.Figure()

    fig.add_trace(go.Scatter(
        x=history['month'],
        y=history[metric],
        mode='lines+markers',
        name='Actual',
        line=dict(color=PRIMARY_COLOR, width=2)
    ))

    months = [p.month for p in points]
    predicted = [p.values.get(metric) for p in points]

    with_band = [p for p in points if metric in p.scenarios]
    if with_band:
        fig.add_trace(go.Scatter(
            x=[p.month for p in with_band] + [p.month for p in reversed(with_band)],
            y=[p.scenarios[metric]['optimistic'] for p in with_band] +
              [p.scenarios[metric]['pessimistic'] for p in reversed(with_band)],
            fill='toself',
            fillcolor='rgba(118, 75, 162, 0.15)',
            line=dict(color='rgba(0,0,0,0)'),
            name='Scenario Range',
            hoverinfo='skip'
        ))

    fig.add_trace(go.Scatter(
        x=months,
        y=predicted,
        mode='lines+markers',
        name='Forecast',
        line=dict(color=SECONDARY_COLOR, width=2, dash='dash'),
        customdata=[p.confidence * 100 for p in points],
        hovertemplate="%{x}: %{y:,.0f}<br>Confidence %{customdata:.0f}%<extra></extra>"
    ))

    fig.update_layout(
        title=f"{metric} Forecast",
        xaxis_title="Month",
        yaxis_title=metric,
        template="plotly_white",
        hovermode='x unified'
    )

    return fig


def create_daily_progress_chart(progress: pd.DataFrame) -> go.Figure:
    """Cumulative daily target vs actual acquisitions"""
    fig = go.Figure()

    fig.add_trace(go.Scatter(
        x=progress['day'],
        y=progress['target_cumulative'],
        mode='lines',
        name='Target',
        line=dict(color=NEUTRAL_COLOR, dash='dash')
    ))

    fig.add_trace(go.Scatter(
        x=progress['day'],
        y=progress['actual_cumulative'],
        mode='lines+markers',
        name='Actual',
        line=dict(color=PRIMARY_COLOR, width=2)
    ))

    fig.update_layout(
        title="Month-to-Date Acquisitions",
        xaxis_title="Day of Month",
        yaxis_title="Cumulative New Customers",
        template="plotly_white"
    )

    return fig
