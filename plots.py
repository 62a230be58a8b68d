# ============================================================================
# plots.py - Plot Artifacts Module
# ============================================================================
"""
This module handles:
- Original series plots
- Level vs first difference plots for I(1) variables
- VAR residual plots by equation
- Writing figures to the plots directory
"""

import logging
from pathlib import Path

import pandas as pd
import plotly.graph_objects as go
from plotly.subplots import make_subplots

from causality_irf import plot_irf_with_ci

logger = logging.getLogger(__name__)

SERIES_COLORS = ['blue', 'red', 'darkgreen', 'purple']


def plot_original_series(panel, titles=None):
    """One panel per series, dashed zero line for the output gap"""
    titles = titles or {}
    columns = list(panel.columns)
    fig = make_subplots(rows=len(columns), cols=1, shared_xaxes=True,
                        subplot_titles=[titles.get(c, c) for c in columns])

    for i, col in enumerate(columns):
        fig.add_trace(go.Scatter(
            x=panel.index, y=panel[col], mode='lines', name=col,
            line=dict(color=SERIES_COLORS[i % len(SERIES_COLORS)])
        ), row=i + 1, col=1)
        if (panel[col] < 0).any() and (panel[col] > 0).any():
            fig.add_hline(y=0, line_dash="dash", line_color="gray", row=i + 1, col=1)

    fig.update_layout(title_text="Original Time Series", height=250 * len(columns),
                      showlegend=False, template='plotly_white')
    return fig


def plot_stationarity_transforms(panel, differenced):
    """Level next to first difference for each differenced variable"""
    series = {}
    for col in differenced:
        series[f"{col} (Level)"] = panel[col]
        series[f"{col} (Diff)"] = panel[col].diff()
    frame = pd.DataFrame(series).dropna()

    fig = make_subplots(rows=max(len(series), 1), cols=1, shared_xaxes=True,
                        subplot_titles=list(series))
    for i, name in enumerate(series):
        fig.add_trace(go.Scatter(x=frame.index, y=frame[name], mode='lines', name=name),
                      row=i + 1, col=1)

    fig.update_layout(title_text="Effect of First-Differencing on I(1) Variables",
                      height=200 * max(len(series), 1), showlegend=False, template='plotly_white')
    return fig


def plot_residuals(model):
    """Residuals of every VAR equation with a zero reference line"""
    resid = pd.DataFrame(model.results.resid, columns=model.names)
    resid.index = model.data.index[-len(resid):]

    fig = make_subplots(rows=len(resid.columns), cols=1, shared_xaxes=True,
                        subplot_titles=list(resid.columns))
    for i, col in enumerate(resid.columns):
        fig.add_trace(go.Scatter(x=resid.index, y=resid[col], mode='lines', opacity=0.8, name=col),
                      row=i + 1, col=1)
        fig.add_hline(y=0, line_dash="dash", line_color="red", row=i + 1, col=1)

    fig.update_layout(title_text=f"Residuals from VAR({model.order}) Model by Equation",
                      height=250 * len(resid.columns), showlegend=False, template='plotly_white')
    return fig


def build_figures(report, irf_steps=10):
    """Every figure the report supports, keyed by output file stem"""
    figures = {'time_series_original': plot_original_series(report.panel)}
    differenced = [name for name, trans in report.transforms.items() if trans == 'diff']
    if differenced:
        figures['stationarity_transforms'] = plot_stationarity_transforms(report.panel, differenced)
    if report.short_run is not None:
        figures['var_residuals'] = plot_residuals(report.short_run)
        figures['impulse_responses'] = plot_irf_with_ci(report.short_run, steps=irf_steps)
    return figures


def save_figures(figures, plots_dir):
    """Write each figure as standalone HTML"""
    out = Path(plots_dir)
    out.mkdir(parents=True, exist_ok=True)
    paths = []
    for stem, fig in figures.items():
        path = out / f"{stem}.html"
        fig.write_html(str(path), include_plotlyjs='cdn')
        paths.append(path)
        logger.info("Wrote %s", path)
    return paths
