# ============================================================================
# pipeline.py - Analysis Pipeline Module
# ============================================================================
"""
This module handles:
- Running the stages in order: classification -> path selection ->
  bounds testing -> short-run VAR -> diagnostics -> causality
- Collecting every stage's output into one immutable report
- Plain-text rendering of the report
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

import pandas as pd

from causality_irf import test_causality_pairs
from cointegration import BoundsVerdict, test_cointegration
from data_loader import add_output_gap, load_panel, prepare_panel
from diagnostics import diagnose
from errors import DataError
from statistical_tests import (
    IntegrationOrder,
    PathDecision,
    classify_panel,
    select_model_path,
    verdict_table,
)
from var_model import build_short_run_model, stability_table

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalysisReport:
    panel: pd.DataFrame
    verdicts: dict
    path: PathDecision
    stopped_at: str
    cointegration: Optional[object] = None
    working: Optional[object] = None
    lag_selection: Optional[object] = None
    short_run: Optional[object] = None
    diagnostics: Optional[object] = None
    causality: list = field(default_factory=list)

    @property
    def transforms(self):
        if self.working is not None:
            return dict(self.working.transforms)
        return {name: ('diff' if v.order is IntegrationOrder.I1 else 'level')
                for name, v in self.verdicts.items()}

# ============================================================================
# PIPELINE
# ============================================================================

def run_analysis(panel, config):
    """Run every stage on an already prepared panel"""
    verdicts = classify_panel(
        panel,
        trends={col: config.trend_for(col) for col in panel.columns},
        alpha=config.alpha,
        adf_regression=config.adf_regression,
        pp_regression=config.pp_regression,
        min_obs=config.min_obs,
    )
    path = select_model_path(verdicts)

    coint = None
    if path is PathDecision.ATTEMPT_COINTEGRATION:
        dependent = config.ardl_dependent
        if dependent not in panel.columns:
            raise DataError('cointegration', "ARDL dependent variable not in the panel", variable=dependent)
        regressors = [col for col in panel.columns if col != dependent]
        coint = test_cointegration(panel, dependent, regressors,
                                   max_lag_order=config.ardl_max_order,
                                   case=config.bounds_case, alpha=config.alpha)
        if coint.verdict is not BoundsVerdict.NO_COINTEGRATION:
            logger.info("Bounds verdict %s: keeping the long-run ARDL model, no short-run VAR",
                        coint.verdict.value)
            return AnalysisReport(panel=panel, verdicts=verdicts, path=path,
                                  stopped_at='cointegration', cointegration=coint)
        logger.info("No long-run relationship: falling back to the short-run VAR")

    model, selection, working = build_short_run_model(
        verdicts, panel, max_lag_order=config.var_max_lags, criterion=config.lag_criterion,
    )
    report = diagnose(model, lags=config.diagnostic_lags, alpha=config.alpha)
    causality = test_causality_pairs(
        model, report.covariance_policy, config.causality_pairs,
        alpha=config.alpha, weak_alpha=config.weak_alpha, working=working,
    )

    return AnalysisReport(
        panel=panel,
        verdicts=verdicts,
        path=path,
        stopped_at='causality',
        cointegration=coint,
        working=working,
        lag_selection=selection,
        short_run=model,
        diagnostics=report,
        causality=causality,
    )


def analyze_file(path, config):
    """Load the CSV, derive the output gap, and run the pipeline"""
    data = load_panel(path, config)
    data = add_output_gap(data, config)
    panel = prepare_panel(data, config)
    logger.info("Loaded %d observations from %s to %s", len(panel),
                panel.index[0].date(), panel.index[-1].date())
    return run_analysis(panel, config)

# ============================================================================
# TEXT REPORT
# ============================================================================

def _section(title):
    return f"\n{title}\n{'=' * len(title)}"


def format_report(report):
    lines = [_section("1. Integration order")]
    table = verdict_table(report.verdicts)
    lines.append(table.to_string(index=False, float_format=lambda v: f"{v:.4f}"))
    lines.append(f"\nModel path: {report.path.value}")

    coint = report.cointegration
    if coint is not None:
        lines.append(_section("2. ARDL bounds test"))
        order = coint.model.order
        lines.append(f"ARDL({order['lags']}, {', '.join(str(q) for q in order['order'].values())}), "
                     f"case {coint.case}")
        for test in (coint.f_test, coint.t_test):
            pvalue = 'n/a' if test.pvalue is None else f"{test.pvalue:.4f}"
            lines.append(f"  {test.test}-bounds: stat={test.statistic:.4f} "
                         f"I(0)={test.lower_bound:.3f} I(1)={test.upper_bound:.3f} "
                         f"p={pvalue} -> {test.verdict.value}")
        lines.append(f"Verdict: {coint.verdict.value}")
        if coint.long_run:
            lines.append("Long-run multipliers: " +
                         ', '.join(f"{k}={v:.4f}" for k, v in coint.long_run.items()))

    if report.short_run is None:
        return '\n'.join(lines)

    sel = report.lag_selection
    lines.append(_section("3. VAR lag selection"))
    lines.append(sel.table.to_string(float_format=lambda v: f"{v:.4f}"))
    lines.append(f"Selected: {sel.selected}; using {sel.criterion.upper()} -> VAR({sel.lag_order})")
    is_stable, _ = stability_table(report.short_run)
    lines.append(f"Stable: {'yes' if is_stable else 'no'}")

    diag = report.diagnostics
    lines.append(_section("4. Residual diagnostics"))
    lines.append(f"  Portmanteau({diag.lags}): stat={diag.serial_statistic:.4f} p={diag.serial_pvalue:.4f}")
    lines.append(f"  ARCH-LM({diag.lags}):     stat={diag.arch_statistic:.4f} p={diag.arch_pvalue:.4f}")
    lines.append(f"  Jarque-Bera:        stat={diag.normality_statistic:.4f} p={diag.normality_pvalue:.4f}")
    lines.append(f"Covariance policy: {diag.covariance_policy.name}")

    lines.append(_section("5. Granger causality"))
    rows = pd.DataFrame([v.as_row() for v in report.causality])
    if not rows.empty:
        lines.append(rows.to_string(index=False, float_format=lambda v: f"{v:.4f}"))
    return '\n'.join(lines)
