"""
End-to-end tests: pipeline routing, text report, CLI and plot artifacts.
"""

from dataclasses import replace
from types import SimpleNamespace

import pytest

import cli
import pipeline
from causality_irf import Decision
from cointegration import BoundsVerdict
from config import AnalysisConfig
from data_loader import add_output_gap, load_panel, prepare_panel
from diagnostics import CovariancePolicy, decide_covariance_policy
from errors import ClassificationAmbiguous, UnsupportedIntegrationOrder
from plots import build_figures, save_figures
from statistical_tests import PathDecision
from tests.fixtures.synthetic_dgp import (
    AMBIGUOUS,
    I0,
    I1,
    MACRO_PANEL_CSV,
    make_macro_csv,
    make_verdicts,
)

EXC, GAP, INF = "monthly_exc_rate", "Output_Gap", "Inflation"


@pytest.fixture
def config():
    return replace(AnalysisConfig(), var_max_lags=3)


@pytest.fixture
def panel(tmp_path, config):
    data = load_panel(make_macro_csv(tmp_path / "data.csv"), config)
    return prepare_panel(add_output_gap(data, config), config)


def _classify_as(monkeypatch, orders):
    monkeypatch.setattr(pipeline, "classify_panel", lambda data, **kw: make_verdicts(orders))


def _bounds_verdict(monkeypatch, verdict):
    monkeypatch.setattr(pipeline, "test_cointegration",
                        lambda *a, **kw: SimpleNamespace(verdict=verdict))


class TestRouting:
    def test_all_stationary_runs_every_stage(self, monkeypatch, panel, config):
        _classify_as(monkeypatch, {EXC: I0, GAP: I0, INF: I0})
        report = pipeline.run_analysis(panel, config)

        assert report.path is PathDecision.DIRECT_SHORT_RUN
        assert report.stopped_at == "causality"
        assert report.cointegration is None
        assert report.short_run.names == [EXC, GAP, INF]
        assert 1 <= report.short_run.order <= 3
        assert report.diagnostics.covariance_policy is decide_covariance_policy(
            report.diagnostics.arch_pvalue, config.alpha)
        assert [(v.cause, v.effect) for v in report.causality] == list(config.causality_pairs)
        assert all(v.covariance_policy is report.diagnostics.covariance_policy
                   for v in report.causality)

    def test_no_cointegration_falls_back_to_differenced_var(self, monkeypatch, panel, config):
        _classify_as(monkeypatch, {EXC: I1, GAP: I0, INF: I0})
        _bounds_verdict(monkeypatch, BoundsVerdict.NO_COINTEGRATION)
        report = pipeline.run_analysis(panel, config)

        assert report.path is PathDecision.ATTEMPT_COINTEGRATION
        assert report.stopped_at == "causality"
        assert report.short_run.names == [f"d_{EXC}", GAP, INF]
        assert report.transforms == {EXC: "diff", GAP: "level", INF: "level"}
        assert report.causality[0].effect == f"d_{EXC}"

    @pytest.mark.parametrize("verdict", [BoundsVerdict.COINTEGRATED, BoundsVerdict.INCONCLUSIVE])
    def test_long_run_verdicts_stop_before_the_var(self, monkeypatch, panel, config, verdict):
        _classify_as(monkeypatch, {EXC: I1, GAP: I0, INF: I0})
        _bounds_verdict(monkeypatch, verdict)
        report = pipeline.run_analysis(panel, config)

        assert report.stopped_at == "cointegration"
        assert report.short_run is None
        assert report.diagnostics is None
        assert report.causality == []

    def test_real_bounds_test_routes_consistently(self, monkeypatch, panel, config):
        _classify_as(monkeypatch, {EXC: I1, GAP: I0, INF: I0})
        report = pipeline.run_analysis(panel, replace(config, ardl_max_order=2))

        coint = report.cointegration
        assert coint.model.kind == "ardl"
        if coint.verdict is BoundsVerdict.NO_COINTEGRATION:
            assert report.stopped_at == "causality"
        else:
            assert report.stopped_at == "cointegration"
            assert report.short_run is None

    def test_all_integrated_is_unsupported(self, monkeypatch, panel, config):
        _classify_as(monkeypatch, {EXC: I1, GAP: I1, INF: I1})
        with pytest.raises(UnsupportedIntegrationOrder):
            pipeline.run_analysis(panel, config)

    def test_ambiguous_classification_stops(self, monkeypatch, panel, config):
        _classify_as(monkeypatch, {EXC: AMBIGUOUS, GAP: I0, INF: I0})
        with pytest.raises(ClassificationAmbiguous):
            pipeline.run_analysis(panel, config)

    def test_kpss_null_follows_each_series_setting(self, monkeypatch, panel, config):
        seen = {}

        def classify(data, trends=None, **kw):
            seen.update(trends)
            return make_verdicts({EXC: I0, GAP: I0, INF: I0})

        monkeypatch.setattr(pipeline, "classify_panel", classify)
        pipeline.run_analysis(panel, replace(config, kpss_trends={GAP: "ct"}))
        assert seen == {EXC: "c", GAP: "ct", INF: "c"}

    def test_rerun_is_deterministic(self, monkeypatch, panel, config):
        _classify_as(monkeypatch, {EXC: I0, GAP: I0, INF: I0})
        first = pipeline.run_analysis(panel, config)
        second = pipeline.run_analysis(panel, config)
        assert [v.pvalue for v in first.causality] == [v.pvalue for v in second.causality]
        assert first.lag_selection.selected == second.lag_selection.selected


class TestFixedPanel:
    """Every stage runs for real on the checked-in panel"""

    @pytest.fixture(scope="class")
    def report(self):
        config = AnalysisConfig()
        data = add_output_gap(load_panel(MACRO_PANEL_CSV, config), config)
        return pipeline.run_analysis(prepare_panel(data, config), config)

    def test_integration_verdicts(self, report):
        assert {name: v.order for name, v in report.verdicts.items()} == {EXC: I1, GAP: I0, INF: I1}
        assert report.verdicts[INF].trend == "ct"
        assert report.path is PathDecision.ATTEMPT_COINTEGRATION

    def test_no_long_run_relationship(self, report):
        coint = report.cointegration
        assert coint.verdict is BoundsVerdict.NO_COINTEGRATION
        assert coint.f_test.verdict is BoundsVerdict.NO_COINTEGRATION
        assert coint.f_test.statistic < coint.f_test.lower_bound
        assert coint.f_test.pvalue > 0.5
        assert coint.t_test.verdict is BoundsVerdict.NO_COINTEGRATION

    def test_short_run_var_in_differences(self, report):
        assert report.stopped_at == "causality"
        assert report.short_run.names == [f"d_{EXC}", GAP, f"d_{INF}"]
        assert report.lag_selection.lag_order == 1
        assert report.short_run.order == 1
        assert report.short_run.results.nobs == 73

    def test_homoskedastic_residuals_keep_ordinary_covariance(self, report):
        diag = report.diagnostics
        assert diag.lags == 5
        assert diag.arch_pvalue == pytest.approx(0.2896, abs=1e-3)
        assert diag.covariance_policy is CovariancePolicy.ORDINARY

    def test_causality_pvalues(self, report):
        rows = [(v.cause, v.effect, v.df_num, v.df_denom) for v in report.causality]
        assert rows == [(f"d_{INF}", f"d_{EXC}", 1, 69), (GAP, f"d_{INF}", 1, 69),
                        (f"d_{EXC}", GAP, 1, 69)]
        pvalues = [v.pvalue for v in report.causality]
        assert pvalues == pytest.approx([0.3162826, 0.3079498, 0.1761202], abs=1e-6)
        assert all(v.decision is Decision.NOT_CAUSAL and not v.weak for v in report.causality)


class TestReportAndOutputs:
    def test_text_report_lists_every_stage(self, monkeypatch, panel, config):
        _classify_as(monkeypatch, {EXC: I0, GAP: I0, INF: I0})
        text = pipeline.format_report(pipeline.run_analysis(panel, config))
        for heading in ("1. Integration order", "3. VAR lag selection",
                        "4. Residual diagnostics", "5. Granger causality"):
            assert heading in text
        assert "Covariance policy" in text

    def test_figures_are_written(self, monkeypatch, panel, config, tmp_path):
        _classify_as(monkeypatch, {EXC: I1, GAP: I0, INF: I0})
        _bounds_verdict(monkeypatch, BoundsVerdict.NO_COINTEGRATION)
        report = pipeline.run_analysis(panel, config)

        figures = build_figures(report, irf_steps=5)
        assert set(figures) == {"time_series_original", "stationarity_transforms",
                                "var_residuals", "impulse_responses"}
        paths = save_figures(figures, tmp_path / "plots")
        assert all(p.exists() and p.suffix == ".html" for p in paths)


class TestCli:
    def test_successful_run_prints_report(self, monkeypatch, tmp_path, capsys):
        _classify_as(monkeypatch, {EXC: I0, GAP: I0, INF: I0})
        data = make_macro_csv(tmp_path / "data.csv")
        cfg = tmp_path / "config.yaml"
        cfg.write_text("var_max_lags: 3\n")

        assert cli.main([str(data), "--config", str(cfg), "--no-plots"]) == 0
        assert "Granger causality" in capsys.readouterr().out

    def test_plots_directory_override(self, monkeypatch, tmp_path):
        _classify_as(monkeypatch, {EXC: I0, GAP: I0, INF: I0})
        data = make_macro_csv(tmp_path / "data.csv")
        cfg = tmp_path / "config.yaml"
        cfg.write_text("var_max_lags: 3\n")

        out = tmp_path / "figures"
        assert cli.main([str(data), "--config", str(cfg), "--plots-dir", str(out), "-q"]) == 0
        assert (out / "impulse_responses.html").exists()

    def test_analysis_error_exits_nonzero(self, tmp_path):
        assert cli.main([str(tmp_path / "missing.csv"), "--no-plots"]) == 1
