# ============================================================================
# causality_irf.py - Granger Causality and IRF Module
# ============================================================================
"""
This module handles:
- Granger causality Wald tests on single VAR equations, with
  heteroskedasticity-robust covariance when diagnostics require it
- Impulse Response Functions (IRF) with confidence intervals
- Plotting IRF with confidence bands
"""

import enum
import logging
from dataclasses import dataclass

import numpy as np
import plotly.graph_objects as go
import statsmodels.api as sm
from plotly.subplots import make_subplots
from scipy import stats

from diagnostics import CovariancePolicy
from errors import DataError, TestLibraryFailure

logger = logging.getLogger(__name__)


class Decision(enum.Enum):
    CAUSAL = 'Causal'
    NOT_CAUSAL = 'NotCausal'


@dataclass(frozen=True)
class CausalityVerdict:
    cause: str
    effect: str
    excluded: tuple
    statistic: float
    df_num: int
    df_denom: int
    pvalue: float
    covariance_policy: CovariancePolicy
    alpha: float
    decision: Decision
    weak: bool = False

    @property
    def label(self):
        if self.decision is Decision.CAUSAL:
            return 'Causal'
        return 'Weak' if self.weak else 'Not causal'

    def as_row(self):
        return {
            'Cause (X)': self.cause,
            'Effect (Y)': self.effect,
            'Excluded': ', '.join(self.excluded),
            'Wald F': self.statistic,
            'df': f"({self.df_num}, {self.df_denom})",
            'p-value': self.pvalue,
            'Covariance': self.covariance_policy.value,
            'Result': self.label,
        }

# ============================================================================
# GRANGER CAUSALITY (SINGLE-EQUATION WALD)
# ============================================================================

def _resolve(name, model, working):
    if working is not None:
        name = working.column(name)
    if name not in model.equations:
        raise DataError('causality', f"Not an equation of the model {model.names}", variable=name)
    return name


def test_causality(model, covariance_policy, cause, effect, lags_to_exclude=None,
                   alpha=0.05, weak_alpha=0.10, working=None):
    """
    Does `cause` Granger-cause `effect`?

    The effect equation is refitted as a standalone OLS on the exact design
    matrix of the VAR, so HC1 covariance can be applied to the Wald test
    H0: all coefficients on the excluded lags of `cause` are zero.
    `working` (a WorkingDataset) lets callers use original variable names
    for differenced columns.
    """
    if model.kind != 'var':
        raise DataError('causality', f"Granger tests need a VAR model, got '{model.kind}'")
    cause = _resolve(cause, model, working)
    effect = _resolve(effect, model, working)
    if cause == effect:
        raise DataError('causality', "Cause and effect must differ", variable=cause)

    k_ar = model.order
    lags = list(range(1, k_ar + 1)) if lags_to_exclude is None else sorted(set(lags_to_exclude))
    if not lags or any(j < 1 or j > k_ar for j in lags):
        raise DataError('causality', f"Lags {lags} outside 1..{k_ar}", variable=cause)

    view = model.equations[effect]
    terms = [f"L{j}.{cause}" for j in lags]
    missing = [t for t in terms if t not in view.design.columns]
    if missing:
        raise DataError('causality', f"Terms not in the {effect} equation: {missing}", variable=cause)

    restriction = np.zeros((len(terms), view.design.shape[1]))
    for row, term in enumerate(terms):
        restriction[row, view.design.columns.get_loc(term)] = 1.0

    try:
        fit = sm.OLS(view.response, view.design).fit(cov_type=covariance_policy.value)
        wald = fit.wald_test(restriction, use_f=True, scalar=True)
    except (np.linalg.LinAlgError, ValueError) as e:
        raise TestLibraryFailure('causality', f"Wald test {cause} -> {effect} failed: {e}",
                                 variable=effect) from e

    pvalue = float(wald.pvalue)
    decision = Decision.CAUSAL if pvalue < alpha else Decision.NOT_CAUSAL
    verdict = CausalityVerdict(
        cause=cause,
        effect=effect,
        excluded=tuple(terms),
        statistic=float(wald.statistic),
        df_num=int(wald.df_num),
        df_denom=int(wald.df_denom),
        pvalue=pvalue,
        covariance_policy=covariance_policy,
        alpha=alpha,
        decision=decision,
        weak=decision is Decision.NOT_CAUSAL and pvalue < weak_alpha,
    )
    logger.info("%s -> %s: F=%.3f, p=%.4f (%s, %s)", cause, effect, verdict.statistic,
                pvalue, covariance_policy.value, verdict.label)
    return verdict


def test_causality_pairs(model, covariance_policy, pairs, alpha=0.05, weak_alpha=0.10, working=None):
    """Run the Wald test for each caller-supplied (cause, effect) pair"""
    return [
        test_causality(model, covariance_policy, cause, effect,
                       alpha=alpha, weak_alpha=weak_alpha, working=working)
        for cause, effect in pairs
    ]

# ============================================================================
# IRF WITH CONFIDENCE INTERVALS
# ============================================================================

def compute_irf_with_ci(model, steps=10, alpha=0.05):
    """
    Compute Impulse Response Functions with asymptotic confidence intervals.
    """
    irf = model.results.irf(steps)
    irf_se = irf.stderr()

    z_critical = stats.norm.ppf(1 - alpha / 2)
    lower_bound = irf.irfs - z_critical * irf_se
    upper_bound = irf.irfs + z_critical * irf_se

    return {
        'irf': irf.irfs,
        'lower': lower_bound,
        'upper': upper_bound,
        'stderr': irf_se,
    }


def plot_irf_with_ci(model, steps=10, alpha=0.05):
    """
    Plot every impulse -> response pair with its confidence band.
    """
    irf_ci = compute_irf_with_ci(model, steps=steps, alpha=alpha)
    variables = model.names
    n_vars = len(variables)
    periods = list(range(steps + 1))

    fig = make_subplots(
        rows=n_vars, cols=n_vars,
        subplot_titles=[f"{variables[j]} → {variables[i]}"
                        for i in range(n_vars) for j in range(n_vars)],
        vertical_spacing=0.08,
        horizontal_spacing=0.08
    )

    for i in range(n_vars):
        for j in range(n_vars):
            row = i + 1
            col = j + 1

            fig.add_trace(go.Scatter(
                x=periods + periods[::-1],
                y=np.concatenate([irf_ci['upper'][:, i, j],
                                  irf_ci['lower'][:, i, j][::-1]]),
                fill='toself',
                fillcolor='rgba(0,100,200,0.15)',
                line=dict(color='rgba(255,255,255,0)'),
                showlegend=False,
                hoverinfo='skip'
            ), row=row, col=col)

            fig.add_trace(go.Scatter(
                x=periods,
                y=irf_ci['irf'][:, i, j],
                mode='lines',
                line=dict(color='darkblue', width=1.5),
                showlegend=False,
                name=f"{variables[j]} → {variables[i]}"
            ), row=row, col=col)

            fig.add_hline(y=0, line_dash="dash", line_color="red",
                          opacity=0.3, row=row, col=col)

    fig.update_layout(
        title_text=f"Impulse Response Functions with {int((1 - alpha) * 100)}% Confidence Intervals",
        height=300 * n_vars,
        showlegend=False
    )
    fig.update_xaxes(title_text="Periods")
    fig.update_yaxes(title_text="Response")

    return fig
