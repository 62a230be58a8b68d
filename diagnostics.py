# ============================================================================
# diagnostics.py - VAR Residual Diagnostics Module
# ============================================================================
"""
This module handles:
- Multivariate Portmanteau test for residual autocorrelation
- Multivariate ARCH-LM test for heteroskedasticity
- Multivariate Jarque-Bera normality test
- Advisory stability checks (VAR roots, OLS-CUSUM per equation)
- The covariance policy used by downstream hypothesis tests
"""

import enum
import logging
from dataclasses import dataclass, field

import numpy as np
from scipy.stats import chi2
from statsmodels.stats.diagnostic import breaks_cusumolsresid

from errors import DataError, InfeasibleSpecification, TestLibraryFailure

logger = logging.getLogger(__name__)


class CovariancePolicy(enum.Enum):
    ORDINARY = 'nonrobust'
    ROBUST_HC = 'HC1'


@dataclass(frozen=True)
class DiagnosticReport:
    lags: int
    alpha: float
    serial_statistic: float
    serial_pvalue: float
    serial_df: int
    arch_statistic: float
    arch_pvalue: float
    arch_df: int
    normality_statistic: float
    normality_pvalue: float
    covariance_policy: CovariancePolicy
    is_stable: bool = True
    cusum: dict = field(default_factory=dict)

    @property
    def heteroskedasticity_pvalue(self):
        return self.arch_pvalue

    def violations(self):
        """Assumptions rejected at alpha (null of every test: assumption holds)"""
        checks = {
            'serial correlation': self.serial_pvalue,
            'heteroskedasticity': self.arch_pvalue,
            'non-normality': self.normality_pvalue,
        }
        return [name for name, p in checks.items() if p < self.alpha]

# ============================================================================
# DECISION RULE
# ============================================================================

def decide_covariance_policy(heteroskedasticity_pvalue, alpha=0.05):
    """
    Robust (HC1) covariance iff the ARCH test rejects homoskedasticity.
    Serial correlation and normality are reported but never change the policy.
    """
    if heteroskedasticity_pvalue < alpha:
        return CovariancePolicy.ROBUST_HC
    return CovariancePolicy.ORDINARY


def diagnostic_lags(nobs, k_ar, requested=5):
    """min(requested, nobs // 5), but above the VAR order so the Portmanteau df stays positive"""
    lags = max(1, min(requested, nobs // 5))
    if lags <= k_ar:
        lags = k_ar + 1
    return lags

# ============================================================================
# MULTIVARIATE ARCH-LM
# ============================================================================

def multivariate_arch_test(resid, lags=5):
    """
    Regress vech(u_t u_t') on a constant and `lags` lags of itself.
    Statistic 0.5 * n * K(K+1) * R2_m with R2_m = 1 - 2/(K(K+1)) tr(Omega Omega0^-1),
    chi-square with lags * K^2 (K+1)^2 / 4 degrees of freedom.
    """
    u = np.asarray(resid, dtype=float)
    t, k = u.shape
    rows, cols = np.tril_indices(k)
    vech = np.array([np.outer(r, r)[rows, cols] for r in u])

    y = vech[lags:]
    n = len(y)
    x = np.column_stack([np.ones(n)] + [vech[lags - j:t - j] for j in range(1, lags + 1)])
    if x.shape[1] >= n:
        raise InfeasibleSpecification(
            'diagnostics',
            f"ARCH test with {lags} lags needs {x.shape[1]} regressors but has {n} observations",
        )

    try:
        beta, *_ = np.linalg.lstsq(x, y, rcond=None)
        e = y - x @ beta
        omega = np.cov(e, rowvar=False)
        omega0 = np.cov(y, rowvar=False)
        r2 = 1 - (2 / (k * (k + 1))) * np.trace(omega @ np.linalg.inv(omega0))
    except np.linalg.LinAlgError as e:
        raise TestLibraryFailure('diagnostics', f"ARCH test failed: {e}") from e

    statistic = 0.5 * n * k * (k + 1) * r2
    df = lags * k ** 2 * (k + 1) ** 2 // 4
    return float(statistic), float(chi2.sf(statistic, df)), df

# ============================================================================
# DIAGNOSTIC GATE
# ============================================================================

def diagnose(model, lags=5, alpha=0.05):
    """Serial correlation, then ARCH, then normality; the ARCH p-value sets the policy"""
    if model.kind != 'var':
        raise DataError('diagnostics', f"Residual diagnostics need a VAR model, got '{model.kind}'")
    results = model.results
    h = diagnostic_lags(results.nobs, results.k_ar, requested=lags)

    try:
        # Equivalent to R's serial.test(..., type="PT.asymptotic")
        whiteness = results.test_whiteness(nlags=h, signif=alpha, adjusted=False)
        arch_stat, arch_p, arch_df = multivariate_arch_test(results.resid, lags=h)
        normality = results.test_normality(signif=alpha)
        is_stable = bool(results.is_stable(verbose=False))
    except (np.linalg.LinAlgError, ValueError) as e:
        raise TestLibraryFailure('diagnostics', f"Residual test failed: {e}") from e

    policy = decide_covariance_policy(arch_p, alpha=alpha)

    # Advisory only: nothing downstream reads these
    cusum = {}
    resid = np.asarray(results.resid)
    n_params = 1 + results.k_ar * results.neqs
    for i, name in enumerate(results.names):
        sup_b, pvalue, _ = breaks_cusumolsresid(resid[:, i], ddof=n_params)
        cusum[name] = {'statistic': float(sup_b), 'pvalue': float(pvalue)}
        if pvalue < alpha:
            logger.warning("OLS-CUSUM suggests a structural break in the %s equation", name)
    if not is_stable:
        logger.warning("VAR has roots on or outside the unit circle")

    report = DiagnosticReport(
        lags=h,
        alpha=alpha,
        serial_statistic=float(whiteness.test_statistic),
        serial_pvalue=float(whiteness.pvalue),
        serial_df=int(whiteness.df),
        arch_statistic=arch_stat,
        arch_pvalue=arch_p,
        arch_df=arch_df,
        normality_statistic=float(normality.test_statistic),
        normality_pvalue=float(normality.pvalue),
        covariance_policy=policy,
        is_stable=is_stable,
        cusum=cusum,
    )
    logger.info("Diagnostics at %d lags: serial p=%.3f, ARCH p=%.3f, normality p=%.3f -> %s",
                h, report.serial_pvalue, report.arch_pvalue, report.normality_pvalue, policy.name)
    return report
