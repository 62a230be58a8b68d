# ============================================================================
# cointegration.py - ARDL Bounds Testing Module
# ============================================================================
"""
This module handles:
- Exhaustive ARDL lag-order search over levels
- Unrestricted error-correction (UECM) representation of the best ARDL
- Pesaran-Shin-Smith bounds tests (F-form and t-form)
- Long-run multipliers implied by the error-correction form
"""

import enum
import itertools
import logging
from dataclasses import dataclass, field
from typing import Optional

import numpy as np
import pandas as pd
from statsmodels.tsa.ardl import ARDL, UECM

from errors import InfeasibleSpecification, TestLibraryFailure
from var_model import CandidateModel

logger = logging.getLogger(__name__)


class BoundsVerdict(enum.Enum):
    COINTEGRATED = 'Cointegrated'
    NO_COINTEGRATION = 'NoCointegration'
    INCONCLUSIVE = 'Inconclusive'


# Deterministic terms each PSS case needs in the regression
CASE_TRENDS = {1: 'n', 2: 'c', 3: 'c', 4: 'ct', 5: 'ct'}

# Pesaran, Shin & Smith (2001), Table CII: asymptotic critical values of the
# t-statistic on the lagged dependent level. Indexed by case, significance
# level, then k (number of regressors, 0..10) as (I(0) bound, I(1) bound).
PSS_T_BOUNDS = {
    1: {
        0.10: [(-1.62, -1.62), (-1.62, -2.28), (-1.62, -2.68), (-1.62, -3.00), (-1.62, -3.26),
               (-1.62, -3.49), (-1.62, -3.70), (-1.62, -3.90), (-1.62, -4.09), (-1.62, -4.26),
               (-1.62, -4.42)],
        0.05: [(-1.95, -1.95), (-1.95, -2.60), (-1.95, -3.02), (-1.95, -3.33), (-1.95, -3.60),
               (-1.95, -3.83), (-1.95, -4.04), (-1.95, -4.23), (-1.95, -4.43), (-1.95, -4.61),
               (-1.95, -4.76)],
        0.025: [(-2.24, -2.24), (-2.24, -2.90), (-2.24, -3.31), (-2.24, -3.64), (-2.24, -3.89),
                (-2.24, -4.12), (-2.24, -4.34), (-2.24, -4.54), (-2.24, -4.72), (-2.24, -4.89),
                (-2.24, -5.06)],
        0.01: [(-2.58, -2.58), (-2.58, -3.22), (-2.58, -3.66), (-2.58, -3.97), (-2.58, -4.23),
               (-2.58, -4.44), (-2.58, -4.67), (-2.58, -4.88), (-2.58, -5.07), (-2.58, -5.25),
               (-2.58, -5.41)],
    },
    3: {
        0.10: [(-2.57, -2.57), (-2.57, -2.91), (-2.57, -3.21), (-2.57, -3.46), (-2.57, -3.66),
               (-2.57, -3.86), (-2.57, -4.04), (-2.57, -4.23), (-2.57, -4.40), (-2.57, -4.56),
               (-2.57, -4.69)],
        0.05: [(-2.86, -2.86), (-2.86, -3.22), (-2.86, -3.53), (-2.86, -3.78), (-2.86, -3.99),
               (-2.86, -4.19), (-2.86, -4.38), (-2.86, -4.57), (-2.86, -4.72), (-2.86, -4.88),
               (-2.86, -5.03)],
        0.025: [(-3.13, -3.13), (-3.13, -3.50), (-3.13, -3.80), (-3.13, -4.05), (-3.13, -4.26),
                (-3.13, -4.46), (-3.13, -4.66), (-3.13, -4.85), (-3.12, -5.02), (-3.13, -5.18),
                (-3.13, -5.34)],
        0.01: [(-3.43, -3.43), (-3.43, -3.82), (-3.43, -4.10), (-3.43, -4.37), (-3.43, -4.60),
               (-3.43, -4.79), (-3.43, -4.99), (-3.43, -5.19), (-3.42, -5.37), (-3.43, -5.54),
               (-3.43, -5.68)],
    },
    5: {
        0.10: [(-3.13, -3.13), (-3.13, -3.40), (-3.13, -3.63), (-3.13, -3.84), (-3.13, -4.04),
               (-3.13, -4.21), (-3.13, -4.37), (-3.13, -4.53), (-3.13, -4.68), (-3.13, -4.82),
               (-3.13, -4.96)],
        0.05: [(-3.41, -3.41), (-3.41, -3.69), (-3.41, -3.95), (-3.41, -4.16), (-3.41, -4.36),
               (-3.41, -4.52), (-3.41, -4.69), (-3.41, -4.85), (-3.41, -5.01), (-3.41, -5.15),
               (-3.41, -5.29)],
        0.025: [(-3.65, -3.66), (-3.65, -3.96), (-3.65, -4.20), (-3.65, -4.42), (-3.65, -4.62),
                (-3.65, -4.79), (-3.65, -4.96), (-3.65, -5.12), (-3.65, -5.28), (-3.65, -5.43),
                (-3.65, -5.56)],
        0.01: [(-3.96, -3.97), (-3.96, -4.26), (-3.96, -4.53), (-3.96, -4.73), (-3.96, -4.96),
               (-3.96, -5.13), (-3.96, -5.31), (-3.96, -5.47), (-3.96, -5.62), (-3.96, -5.79),
               (-3.96, -5.94)],
    },
}


@dataclass(frozen=True)
class BoundsTestResult:
    test: str
    statistic: float
    lower_bound: float
    upper_bound: float
    significance: float
    pvalue: Optional[float]
    pvalue_lower: Optional[float]
    verdict: BoundsVerdict


@dataclass(frozen=True)
class CointegrationResult:
    model: object
    f_test: BoundsTestResult
    t_test: BoundsTestResult
    verdict: BoundsVerdict
    case: int
    top_orders: pd.DataFrame
    long_run: dict = field(default_factory=dict)

# ============================================================================
# BOUNDS DECISION RULES
# ============================================================================

def bounds_verdict(statistic, lower, upper):
    """Below the I(0) bound: no cointegration; above the I(1) bound: cointegrated"""
    if statistic < lower:
        return BoundsVerdict.NO_COINTEGRATION
    if statistic > upper:
        return BoundsVerdict.COINTEGRATED
    return BoundsVerdict.INCONCLUSIVE


def combine_bounds_verdicts(f_verdict, t_verdict):
    """Cointegrated only when both forms agree; any clean rejection wins"""
    if BoundsVerdict.NO_COINTEGRATION in (f_verdict, t_verdict):
        return BoundsVerdict.NO_COINTEGRATION
    if f_verdict is t_verdict is BoundsVerdict.COINTEGRATED:
        return BoundsVerdict.COINTEGRATED
    return BoundsVerdict.INCONCLUSIVE

# ============================================================================
# ARDL ORDER SEARCH
# ============================================================================

def _n_params(trend, lags, order):
    return len(trend.replace('n', '')) + lags + sum(q + 1 for q in order.values())


def _fit(endog, exog, lags, order, trend, hold_back=None):
    try:
        return ARDL(endog, lags, exog, order, trend=trend, hold_back=hold_back).fit()
    except (np.linalg.LinAlgError, ValueError) as e:
        spec = f"ARDL({lags}, {', '.join(str(q) for q in order.values())})"
        raise TestLibraryFailure('cointegration', f"{spec} estimation failed: {e}",
                                 variable=endog.name) from e


def search_ardl_orders(data, dependent, regressors, max_lag_order=5, trend='c', ic='aic'):
    """
    Exhaustive grid over ARDL(p, q1, ..., qk).

    p runs 1..max (the lagged dependent level anchors the error-correction
    form), each q runs 0..max. Every candidate uses the same estimation
    sample so information criteria are comparable.
    """
    endog = data[dependent]
    exog = data[list(regressors)]
    nobs = len(data) - max_lag_order

    rows = []
    skipped = 0
    for lags in range(1, max_lag_order + 1):
        for qs in itertools.product(range(max_lag_order + 1), repeat=len(regressors)):
            order = dict(zip(regressors, qs))
            n_params = _n_params(trend, lags, order)
            if n_params >= nobs:
                skipped += 1
                logger.debug("Skipping ARDL(%d, %s): %d parameters for %d observations",
                             lags, qs, n_params, nobs)
                continue
            res = _fit(endog, exog, lags, order, trend, hold_back=max_lag_order)
            rows.append({'lags': lags, **order, 'n_params': n_params, ic: getattr(res, ic)})

    if not rows:
        raise InfeasibleSpecification(
            'cointegration',
            f"no ARDL specification up to order {max_lag_order} fits in {nobs} observations",
            variable=dependent,
        )
    if skipped:
        logger.warning("Skipped %d infeasible ARDL specifications", skipped)

    table = pd.DataFrame(rows).sort_values([ic, 'n_params'], kind='mergesort')
    return table.reset_index(drop=True)

# ============================================================================
# BOUNDS TESTS
# ============================================================================

def _nearest(options, target):
    options = list(options)
    best = min(options, key=lambda o: abs(o - target))
    if not np.isclose(best, target):
        logger.warning("No critical values at %.4g; using %.4g", target, best)
    return best


def bounds_f_test(uecm_res, case=3, alpha=0.05):
    """Joint significance of the lagged levels against asymptotic PSS bounds"""
    try:
        res = uecm_res.bounds_test(case)
    except (np.linalg.LinAlgError, ValueError) as e:
        raise TestLibraryFailure('cointegration', f"F-bounds test failed: {e}") from e

    # Critical values are indexed by percentile of the null distribution
    crit = res.critical_values
    index = np.asarray(crit.index, dtype=float)
    row = int(np.argmin(np.abs(index - _nearest(index, 100 * (1 - alpha)))))
    lower = float(crit['lower'].iloc[row])
    upper = float(crit['upper'].iloc[row])
    stat = float(res.statistic)
    return BoundsTestResult(
        test='F',
        statistic=stat,
        lower_bound=lower,
        upper_bound=upper,
        significance=alpha,
        pvalue=float(res.pvalue['upper']),
        pvalue_lower=float(res.pvalue['lower']),
        verdict=bounds_verdict(stat, lower, upper),
    )


def bounds_t_test(uecm_res, dependent, n_regressors, case=3, alpha=0.05):
    """t-statistic on the lagged dependent level against PSS Table CII"""
    if case not in PSS_T_BOUNDS:
        raise InfeasibleSpecification('cointegration',
                                      f"t-bounds test is only defined for cases 1, 3 and 5, not {case}")
    levels = PSS_T_BOUNDS[case][_nearest(PSS_T_BOUNDS[case], alpha)]
    if n_regressors >= len(levels):
        raise InfeasibleSpecification('cointegration',
                                      f"no t-bounds tabulated for {n_regressors} regressors")

    term = f"{dependent}.L1"
    if term not in uecm_res.tvalues.index:
        raise TestLibraryFailure('cointegration',
                                 f"UECM has no '{term}' term: {list(uecm_res.tvalues.index)}",
                                 variable=dependent)
    stat = float(uecm_res.tvalues[term])
    lower, upper = levels[n_regressors]

    # Lower-tail test: flip signs so "more negative" reads as "larger"
    return BoundsTestResult(
        test='t',
        statistic=stat,
        lower_bound=lower,
        upper_bound=upper,
        significance=alpha,
        pvalue=None,
        pvalue_lower=None,
        verdict=bounds_verdict(-stat, -lower, -upper),
    )


def long_run_multipliers(uecm_res, dependent, regressors):
    """theta_x / -pi_y from the level terms of the error-correction form"""
    params = uecm_res.params
    pi = params[f"{dependent}.L1"]
    return {reg: float(-params[f"{reg}.L1"] / pi) for reg in regressors if f"{reg}.L1" in params.index}

# ============================================================================
# COINTEGRATION TEST
# ============================================================================

def test_cointegration(data, dependent, regressors, max_lag_order=5, case=3, alpha=0.05, ic='aic'):
    """Best ARDL by information criterion, then F- and t-bounds tests on its UECM"""
    if case not in CASE_TRENDS:
        raise InfeasibleSpecification('cointegration', f"unknown bounds-test case {case}")
    regressors = list(regressors)
    trend = CASE_TRENDS[case]

    grid = search_ardl_orders(data, dependent, regressors, max_lag_order, trend=trend, ic=ic)
    best = grid.iloc[0]
    lags = int(best['lags'])
    order = {reg: int(best[reg]) for reg in regressors}
    logger.info("Best ARDL(%d, %s) by %s", lags, ', '.join(str(q) for q in order.values()), ic.upper())

    endog = data[dependent]
    exog = data[regressors]
    ardl_res = _fit(endog, exog, lags, order, trend)

    # A zero-order regressor still enters the error-correction form as x.L1
    # and D.x.L0, which is the same ARDL with that order raised to 1
    try:
        ardl_model = ardl_res.model
        if min(order.values()) == 0:
            ardl_model = ARDL(endog, lags, exog, {reg: max(q, 1) for reg, q in order.items()},
                              trend=trend)
        uecm_res = UECM.from_ardl(ardl_model).fit()
    except (np.linalg.LinAlgError, ValueError) as e:
        raise TestLibraryFailure('cointegration', f"UECM estimation failed: {e}", variable=dependent) from e

    f_test = bounds_f_test(uecm_res, case=case, alpha=alpha)
    t_test = bounds_t_test(uecm_res, dependent, len(regressors), case=case, alpha=alpha)
    verdict = combine_bounds_verdicts(f_test.verdict, t_test.verdict)
    logger.info("Bounds F=%.3f (%s), t=%.3f (%s): %s", f_test.statistic, f_test.verdict.value,
                t_test.statistic, t_test.verdict.value, verdict.value)

    model = CandidateModel(
        kind='ardl',
        results=ardl_res,
        order={'lags': lags, 'order': order},
        data=data[[dependent] + regressors],
    )
    return CointegrationResult(
        model=model,
        f_test=f_test,
        t_test=t_test,
        verdict=verdict,
        case=case,
        top_orders=grid.head(20),
        long_run=long_run_multipliers(uecm_res, dependent, regressors),
    )
