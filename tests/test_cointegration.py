"""
Tests for the ARDL order search and the F/t bounds tests.
"""

import pandas as pd
import pytest
from statsmodels.tsa.ardl import ARDL, UECM

import cointegration
from cointegration import BoundsVerdict
from errors import InfeasibleSpecification
from tests.fixtures.synthetic_dgp import make_cointegrated_system

COINT = BoundsVerdict.COINTEGRATED
NO = BoundsVerdict.NO_COINTEGRATION
INCONCLUSIVE = BoundsVerdict.INCONCLUSIVE


class TestBoundsDecision:
    @pytest.mark.parametrize("stat,expected", [
        (1.0, NO),
        (3.0, INCONCLUSIVE),
        (6.0, COINT),
    ])
    def test_f_statistic_against_bounds(self, stat, expected):
        assert cointegration.bounds_verdict(stat, 2.5, 4.0) is expected

    def test_statistic_on_a_bound_is_inconclusive(self):
        assert cointegration.bounds_verdict(2.5, 2.5, 4.0) is INCONCLUSIVE
        assert cointegration.bounds_verdict(4.0, 2.5, 4.0) is INCONCLUSIVE

    @pytest.mark.parametrize("f,t,expected", [
        (COINT, COINT, COINT),
        (COINT, INCONCLUSIVE, INCONCLUSIVE),
        (INCONCLUSIVE, COINT, INCONCLUSIVE),
        (INCONCLUSIVE, INCONCLUSIVE, INCONCLUSIVE),
        (NO, COINT, NO),
        (COINT, NO, NO),
        (NO, NO, NO),
    ])
    def test_combined_verdict(self, f, t, expected):
        assert cointegration.combine_bounds_verdicts(f, t) is expected


class TestTBoundsTable:
    def test_bounds_widen_with_regressors(self):
        for case, table in cointegration.PSS_T_BOUNDS.items():
            for alpha, rows in table.items():
                assert len(rows) == 11
                uppers = [upper for _, upper in rows]
                assert uppers == sorted(uppers, reverse=True), (case, alpha)
                assert all(upper <= lower for lower, upper in rows)

    def test_unsupported_case_raises(self):
        with pytest.raises(InfeasibleSpecification):
            cointegration.bounds_t_test(None, "y", 2, case=2)

    def test_too_many_regressors_raises(self):
        with pytest.raises(InfeasibleSpecification):
            cointegration.bounds_t_test(None, "y", 11, case=3)


class TestOrderSearch:
    def test_grid_covers_every_order_and_is_sorted(self):
        data = make_cointegrated_system(n=120)
        grid = cointegration.search_ardl_orders(data, "y", ["x"], max_lag_order=2)
        assert len(grid) == 2 * 3
        assert set(grid["lags"]) == {1, 2}
        assert set(grid["x"]) == {0, 1, 2}
        assert grid["aic"].is_monotonic_increasing

    def test_grid_is_deterministic(self):
        data = make_cointegrated_system(n=120)
        first = cointegration.search_ardl_orders(data, "y", ["x", "z"], max_lag_order=1)
        second = cointegration.search_ardl_orders(data, "y", ["x", "z"], max_lag_order=1)
        assert first.equals(second)

    def test_no_feasible_specification_raises(self):
        data = make_cointegrated_system(n=8)
        with pytest.raises(InfeasibleSpecification) as exc:
            cointegration.search_ardl_orders(data, "y", ["x", "z"], max_lag_order=5)
        assert exc.value.stage == "cointegration"


class TestFBounds:
    @pytest.fixture(scope="class")
    def uecm(self):
        data = make_cointegrated_system(n=200)
        return UECM(data["y"], 2, data[["x", "z"]], 1, trend="c").fit()

    def test_reads_statistic_bounds_and_pvalues(self, uecm):
        raw = uecm.bounds_test(3)
        f = cointegration.bounds_f_test(uecm, case=3, alpha=0.05)
        assert f.test == "F"
        assert f.statistic == pytest.approx(raw.statistic)
        row = raw.critical_values.index.get_indexer([95.0], method="nearest")[0]
        assert f.lower_bound == pytest.approx(raw.critical_values["lower"].iloc[row])
        assert f.upper_bound == pytest.approx(raw.critical_values["upper"].iloc[row])
        assert f.pvalue == pytest.approx(raw.pvalue["upper"])
        assert f.pvalue_lower == pytest.approx(raw.pvalue["lower"])
        assert f.verdict is cointegration.bounds_verdict(f.statistic, f.lower_bound, f.upper_bound)

    def test_stricter_level_widens_the_bounds(self, uecm):
        loose = cointegration.bounds_f_test(uecm, case=3, alpha=0.10)
        strict = cointegration.bounds_f_test(uecm, case=3, alpha=0.01)
        assert loose.statistic == strict.statistic
        assert loose.upper_bound < strict.upper_bound
        assert loose.lower_bound < strict.lower_bound

    def test_error_correction_form_matches_the_ardl(self):
        data = make_cointegrated_system(n=200)
        ardl = ARDL(data["y"], 2, data[["x", "z"]], {"x": 1, "z": 2}, trend="c")
        uecm = UECM.from_ardl(ardl).fit()
        assert {"y.L1", "x.L1", "z.L1"} <= set(uecm.params.index)
        assert cointegration.bounds_f_test(uecm, case=3).statistic > 0


class TestCointegration:
    @pytest.fixture(scope="class")
    def result(self):
        data = make_cointegrated_system(n=200)
        return cointegration.test_cointegration(data, "y", ["x", "z"], max_lag_order=2, case=3)

    def test_finds_the_long_run_relationship(self, result):
        assert result.f_test.verdict is COINT
        assert result.t_test.verdict is COINT
        assert result.verdict is COINT

    def test_long_run_multiplier_recovers_beta(self, result):
        assert result.long_run["x"] == pytest.approx(2.0, abs=0.3)

    def test_result_carries_ardl_model(self, result):
        assert result.model.kind == "ardl"
        assert result.model.names == ["y", "x", "z"]
        assert 1 <= result.model.order["lags"] <= 2
        assert set(result.model.order["order"]) == {"x", "z"}
        assert result.case == 3
        assert len(result.top_orders) <= 20

    def test_bounds_are_ordered(self, result):
        f, t = result.f_test, result.t_test
        assert f.lower_bound < f.upper_bound
        assert t.upper_bound < t.lower_bound < 0
        assert t.statistic < 0
        assert t.pvalue is None
        assert 0 <= f.pvalue_lower <= f.pvalue <= 1

    def test_zero_order_regressor_still_gets_an_error_correction_form(self, monkeypatch):
        data = make_cointegrated_system(n=200)
        grid = pd.DataFrame([{"lags": 1, "x": 0, "z": 1, "n_params": 5, "aic": 0.0}])
        monkeypatch.setattr(cointegration, "search_ardl_orders", lambda *a, **kw: grid)
        result = cointegration.test_cointegration(data, "y", ["x", "z"], max_lag_order=2, case=3)
        assert result.model.order == {"lags": 1, "order": {"x": 0, "z": 1}}
        assert set(result.long_run) == {"x", "z"}
        assert result.f_test.statistic > 0

    def test_unknown_case_raises(self):
        data = make_cointegrated_system(n=100)
        with pytest.raises(InfeasibleSpecification):
            cointegration.test_cointegration(data, "y", ["x"], case=7)
