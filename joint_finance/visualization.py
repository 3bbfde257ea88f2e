"""Plotly figures for financial health and budget progress.

Each function takes the objects produced by :mod:`joint_finance.health`
or :mod:`joint_finance.budgets` and returns a
``plotly.graph_objects.Figure``.  Empty inputs produce a titled, empty
figure rather than raising, so callers can render whatever comes back.
"""

from __future__ import annotations

from typing import Mapping

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from .health import HEALTH_FLOOR, HEALTH_LABELS, health_score_color, health_score_label
from .models import FinancialHealth


def _empty_figure(title: str = "No data to display") -> go.Figure:
    fig = go.Figure()
    fig.update_layout(title=title)
    return fig


def create_health_gauge(health: FinancialHealth) -> go.Figure:
    """Gauge of the overall score, banded by the health labels.

    Parameters
    ----------
    health : FinancialHealth
        Snapshot returned by ``calculate_financial_health``.

    Returns
    -------
    plotly.graph_objects.Figure
        Indicator gauge from 0 to 100.
    """
    bounds = [threshold for threshold, _, _ in HEALTH_LABELS] + [0]
    colors = [color for _, _, color in HEALTH_LABELS] + [HEALTH_FLOOR[1]]
    upper = [100] + bounds[:-1]
    steps = [
        {'range': [low, high], 'color': color}
        for low, high, color in zip(bounds, upper, colors)
    ]
    fig = go.Figure(go.Indicator(
        mode='gauge+number+delta',
        value=health.overall_score,
        delta={'reference': health.overall_score - health.score_change},
        gauge={
            'axis': {'range': [0, 100]},
            'bar': {'color': health_score_color(health.overall_score)},
            'steps': steps,
        },
        title={'text': f"Financial Health: {health_score_label(health.overall_score)}"},
    ))
    return fig


def health_components_frame(health: FinancialHealth) -> pd.DataFrame:
    return pd.DataFrame({
        'Component': ['Savings Rate', 'Debt-to-Income', 'Budget Adherence', 'Emergency Fund'],
        'Score': [
            health.savings_rate_score,
            health.debt_score,
            health.budget_score,
            health.emergency_fund_score,
        ],
        'Metric': [
            f"{health.savings_rate:.1f}%",
            f"{health.debt_to_income_ratio:.1f}%",
            f"{health.budget_adherence:.1f}%",
            f"{health.emergency_fund_months:.1f} months",
        ],
    })


def create_component_scores_chart(health: FinancialHealth) -> go.Figure:
    """Bar chart of the four component sub-scores."""
    df = health_components_frame(health)
    df['Color'] = [health_score_color(score) for score in df['Score']]
    fig = px.bar(df, x='Component', y='Score', text='Metric')
    fig.update_traces(marker_color=df['Color'].tolist())
    fig.update_layout(
        title="Health Score Components",
        xaxis_title="Component",
        yaxis_title="Score",
        yaxis_range=[0, 100],
    )
    return fig


def create_budget_progress_chart(status_frame: pd.DataFrame, title: str | None = None) -> go.Figure:
    """Horizontal bars of percentage used per budget.

    ``status_frame`` is the output of ``budget_status_frame``; bars are
    coloured by status tier and a dashed line marks 100%.
    """
    if status_frame.empty:
        return _empty_figure()
    df = status_frame.sort_values('Percentage')
    fig = go.Figure(go.Bar(
        x=df['Percentage'],
        y=df['Name'],
        orientation='h',
        marker_color=df['Color'].tolist(),
        customdata=df[['Spent', 'Limit', 'Status']].to_numpy(),
        hovertemplate="%{y}<br>%{x:.1f}% used<br>Spent %{customdata[0]:,.2f} of %{customdata[1]:,.2f}<br>%{customdata[2]}<extra></extra>",
    ))
    fig.add_vline(x=100, line_dash='dash', line_color=HEALTH_FLOOR[1])
    fig.update_layout(
        title=title or "Budget Progress",
        xaxis_title="% of budget used",
        yaxis_title="Budget",
    )
    return fig


def create_group_allocation_chart(groups: Mapping[str, float], title: str | None = None) -> go.Figure:
    """Pie chart of budgeted amount per group.

    ``groups`` is the output of ``aggregate_budgets_by_group``; groups with
    nothing budgeted are left out.
    """
    df = pd.DataFrame({'Group': list(groups.keys()), 'Budgeted': list(groups.values())})
    df = df[df['Budgeted'] > 0]
    if df.empty:
        return _empty_figure()
    fig = px.pie(df, names='Group', values='Budgeted')
    fig.update_layout(title=title or "Budget Allocation by Group")
    return fig
