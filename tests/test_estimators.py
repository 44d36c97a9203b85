"""Tests for the OLS event-study and doubly-robust estimator adapters."""

import numpy as np
import pandas as pd
import pytest

from did_simulation.dgp import generate_panel
from did_simulation.estimator import SimulationEstimator
from did_simulation.estimators import CoefficientResult, fit_doubly_robust, fit_ols
from did_simulation.estimators.doubly_robust import attgt_frame, base_year, estimated_years
from did_simulation.estimators.event_study import build_event_study_formula
from did_simulation.estimators.r_interface import build_xformla
from did_simulation.exceptions import FitFailure
from did_simulation.helpers.config import DGPConfig, SimulationConfig
from did_simulation.helpers.utils import coerce_coefficients


def _raw_did(panel, year, ref):
    """Difference of treated/control mean changes between ``year`` and ``ref``."""
    w = panel.wide("y")
    d = panel.units.set_index("unit_id").loc[w.index, "treated"] == 1
    change = w[year] - w[ref]
    return float(change[d].mean() - change[~d].mean())


class TestOLSEventStudy:
    def test_years_and_order(self, small_panel):
        res = fit_ols(small_panel)
        assert isinstance(res, CoefficientResult)
        assert list(res.coefs.index) == [1987, 1988, 1989, 1991, 1992]
        assert res.coefs.index.name == "year"
        assert np.isfinite(res.coefs).all()
        assert np.isfinite(res.se).all()
        assert res.n_obs == len(small_panel.panel)

    def test_equals_difference_in_means(self, small_panel):
        """With time-invariant covariates the interaction equals the raw DiD."""
        res = fit_ols(small_panel)
        for year in res.coefs.index:
            np.testing.assert_allclose(res.coefs[year], _raw_did(small_panel, year, 1990), rtol=1e-6, atol=1e-4)

    def test_formula(self):
        f = build_event_study_formula(["ES_tm4", "ES_t0"], ["age", "gpa"])
        assert f == "y ~ treated + C(year) + ES_tm4 + ES_t0 + age + gpa"

    def test_no_treated_units_fails(self, small_dgp):
        cfg = small_dgp.copy(variant="propensity", base_propensity=0.0,
                             age_propensity_shift=0.0, gpa_propensity_shift=0.0)
        panel = generate_panel(cfg, seed=1)
        assert panel.n_treated == 0
        with pytest.raises(FitFailure):
            fit_ols(panel)

    def test_log_formula_callback(self, small_panel):
        seen = []
        fit_ols(small_panel, ("age", "gpa"), log_formula=seen.append)
        assert len(seen) == 1
        assert seen[0].endswith("+ age + gpa")


class TestATTgtAdapter:
    def test_frame_layout(self, small_panel):
        """Entity x time index with a missing cohort for never-treated units."""
        frame = attgt_frame(small_panel, ("age", "gpa"))
        assert list(frame.index.names) == ["unit_id", "year"]
        assert list(frame.columns) == ["y", "age", "gpa", "cohort"]
        treated = frame["cohort"].notna()
        assert set(frame.loc[treated, "cohort"]) == {1991.0}
        n_units = frame.loc[treated].index.get_level_values("unit_id").nunique()
        assert n_units == small_panel.n_treated

    def test_known_values(self, small_panel):
        """ATT(g,t) on the fixed small draw, reference year dropped."""
        dr = fit_doubly_robust(small_panel)
        expected = [690.38, 808.96, 52.83, 2605.36, 2678.68]
        np.testing.assert_allclose(dr.coefs.to_numpy(), expected, atol=0.01)

    def test_no_treated_units_fails(self, small_dgp):
        cfg = small_dgp.copy(base_propensity=0.0, age_propensity_shift=0.0, gpa_propensity_shift=0.0)
        with pytest.raises(FitFailure):
            fit_doubly_robust(generate_panel(cfg, seed=1))

    def test_no_control_units_fails(self, small_dgp):
        cfg = small_dgp.copy(base_propensity=1.0, age_propensity_shift=0.0, gpa_propensity_shift=0.0)
        panel = generate_panel(cfg, seed=1)
        assert panel.n_treated == small_dgp.n_units
        with pytest.raises(FitFailure):
            fit_doubly_robust(panel)


class TestBasePeriod:
    def test_universal(self):
        assert base_year(1987, 1991, 1987, "universal") == 1990
        assert base_year(1990, 1991, 1987, "universal") is None
        assert base_year(1992, 1991, 1987, "universal") == 1990
        assert estimated_years(range(1987, 1993), 1991) == [1987, 1988, 1989, 1991, 1992]

    def test_varying(self):
        assert base_year(1987, 1991, 1987, "varying") is None
        assert base_year(1989, 1991, 1987, "varying") == 1988
        assert base_year(1990, 1991, 1987, "varying") == 1989
        assert base_year(1992, 1991, 1987, "varying") == 1990
        assert estimated_years(range(1987, 1993), 1991, "varying") == [1988, 1989, 1990, 1991, 1992]


class TestDoublyRobust:
    def test_years_match_ols(self, small_panel):
        dr = fit_doubly_robust(small_panel)
        ols = fit_ols(small_panel)
        assert list(dr.coefs.index) == list(ols.coefs.index)
        assert np.isfinite(dr.coefs).all()
        assert dr.n_obs == small_panel.config.n_units

    def test_varying_base_period(self, small_panel):
        dr = fit_doubly_robust(small_panel, base_period="varying")
        assert list(dr.coefs.index) == [1988, 1989, 1990, 1991, 1992]
        # post-period cells share the g - 1 base in both conventions
        uni = fit_doubly_robust(small_panel)
        np.testing.assert_allclose(dr.coefs.loc[[1991, 1992]], uni.coefs.loc[[1991, 1992]])

    def test_close_to_truth_on_large_draw(self):
        """On one large draw the post-period ATT is near the true ATT."""
        cfg = DGPConfig(n_states=40, units_per_state=100, noise_sd=300.0)
        panel = generate_panel(cfg, seed=99)
        dr = fit_doubly_robust(panel)
        truth = panel.true_att()
        for year in truth.index:
            assert abs(dr.coefs[year] - truth[year]) < 150.0

    def test_r_backend_formula(self):
        assert build_xformla(["age", "gpa"]) == "~ age + gpa"
        assert build_xformla([]) == "~ 1"


class TestSimulationEstimator:
    def test_adapters_follow_config(self, small_dgp):
        est = SimulationEstimator(SimulationConfig(dgp=small_dgp, estimators=("dr",)))
        assert list(est.adapters()) == ["dr"]

    def test_labels(self, small_dgp):
        est = SimulationEstimator(SimulationConfig(dgp=small_dgp, base_period="varying"))
        assert est.labels("ols") == [1987, 1988, 1989, 1991, 1992]
        assert est.labels("dr") == [1988, 1989, 1990, 1991, 1992]

    def test_bound_adapters_run(self, small_dgp, small_panel):
        est = SimulationEstimator(SimulationConfig(dgp=small_dgp))
        out = {name: fit(small_panel) for name, fit in est.adapters().items()}
        assert set(out) == {"ols", "dr"}
        assert all(isinstance(v.coefs, pd.Series) for v in out.values())

    def test_verbose_logs_formula(self, small_dgp, small_panel, capsys):
        est = SimulationEstimator(SimulationConfig(dgp=small_dgp, verbose=True))
        est.fit_ols(small_panel)
        assert "[ESTIMATOR] OLS design: y ~ treated" in capsys.readouterr().out


class TestCoefficientResult:
    def test_to_dict_plain_year_keys(self):
        res = CoefficientResult(
            estimator="ols", coefs=pd.Series([1.5, 2.0], index=np.array([1989, 1991], dtype=np.int64))
        )
        out = res.to_dict()
        assert out == {1989: 1.5, 1991: 2.0}
        assert all(type(k) is int and type(v) is float for k, v in out.items())

    def test_coerced_over_requested_years(self, small_panel):
        res = fit_ols(small_panel)
        ser = coerce_coefficients(res, [1987, 1990, 1991])
        assert list(ser.index) == [1987, 1990, 1991]
        assert np.isnan(ser.loc[1990])
        assert ser.loc[1991] == pytest.approx(res.to_dict()[1991])


@pytest.mark.slow
class TestRBackend:
    def test_matches_python(self, small_panel):
        pytest.importorskip("rpy2")
        from did_simulation.estimators.r_interface import check_r_backend
        from did_simulation.exceptions import DidSimulationError

        try:
            check_r_backend()
        except DidSimulationError as exc:
            pytest.skip(str(exc))
        r = fit_doubly_robust(small_panel, backend="r")
        py = fit_doubly_robust(small_panel)
        assert list(r.coefs.index) == list(py.coefs.index)
        np.testing.assert_allclose(r.coefs, py.coefs, rtol=1e-4, atol=1e-3)
