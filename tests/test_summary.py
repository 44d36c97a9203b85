"""Tests for the replication aggregator and the console summary."""

import warnings

import numpy as np
import pandas as pd
import pytest

from did_simulation.exceptions import UndefinedStatisticWarning
from did_simulation.reporting.summary import print_simulation_summary, summarize_replications


@pytest.fixture
def table():
    """Three replications: pre-period 1989, post-period 1991, one failed DR fit."""
    return pd.DataFrame(
        {
            "replication": [0, 1, 2],
            "true_1991": [10.0, 12.0, 14.0],
            "ols_1989": [1.0, -1.0, 0.0],
            "ols_1991": [11.0, 13.0, 15.0],
            "dr_1989": [0.5, np.nan, -0.5],
            "dr_1991": [9.0, np.nan, 15.0],
        }
    )


class TestSummarizeReplications:
    def test_layout(self, table):
        s = summarize_replications(table, ["ols", "dr"])
        assert list(s.index) == [1989, 1991]
        assert s.index.name == "year"
        assert list(s["event_time"]) == [-2, 0]
        for est in ("ols", "dr"):
            for stat in ("mean", "sd", "n", "bias", "rmse", "covers"):
                assert f"{est}_{stat}" in s.columns

    def test_truth_defined_only_after_adoption(self, table):
        s = summarize_replications(table, ["ols"])
        assert np.isnan(s.loc[1989, "true_effect"])
        assert s.loc[1991, "true_effect"] == pytest.approx(12.0)

    def test_statistics(self, table):
        s = summarize_replications(table, ["ols"])
        assert s.loc[1991, "ols_mean"] == pytest.approx(13.0)
        assert s.loc[1991, "ols_sd"] == pytest.approx(2.0)
        assert s.loc[1991, "ols_bias"] == pytest.approx(1.0)
        assert s.loc[1991, "ols_rmse"] == pytest.approx(1.0)
        assert bool(s.loc[1991, "ols_covers"])

    def test_pre_period_bias_against_zero(self, table):
        s = summarize_replications(table, ["ols"])
        assert s.loc[1989, "ols_bias"] == pytest.approx(0.0)
        assert s.loc[1989, "ols_rmse"] == pytest.approx(np.sqrt(2.0 / 3.0))

    def test_missing_values_ignored(self, table):
        s = summarize_replications(table, ["dr"])
        assert s.loc[1991, "dr_n"] == 2
        assert s.loc[1991, "dr_mean"] == pytest.approx(12.0)
        assert s.loc[1991, "dr_sd"] == pytest.approx(np.std([9.0, 15.0], ddof=1))
        # errors against each draw's own truth: 9 - 10 and 15 - 14
        assert s.loc[1991, "dr_rmse"] == pytest.approx(1.0)

    def test_failed_draw_truth_excluded_from_bias(self, table):
        """An extreme truth in a failed replication does not leak into bias."""
        table["true_1991"] = [10.0, 100.0, 14.0]
        s = summarize_replications(table, ["dr"])
        assert s.loc[1991, "true_effect"] == pytest.approx(124.0 / 3.0)
        assert s.loc[1991, "dr_bias"] == pytest.approx(0.0)
        assert s.loc[1991, "dr_rmse"] == pytest.approx(1.0)
        assert abs(s.loc[1991, "dr_bias"]) <= s.loc[1991, "dr_rmse"]
        assert bool(s.loc[1991, "dr_covers"])

    def test_all_missing_is_undefined_not_zero(self, table):
        table["dr_1991"] = np.nan
        with pytest.warns(UndefinedStatisticWarning, match="dr_1991"):
            s = summarize_replications(table, ["dr"])
        assert np.isnan(s.loc[1991, "dr_mean"])
        assert np.isnan(s.loc[1991, "dr_sd"])
        assert s.loc[1991, "dr_n"] == 0
        assert pd.isna(s.loc[1991, "dr_covers"])

    def test_single_estimate_has_no_sd(self, table):
        table = table.iloc[:1]
        with pytest.warns(UndefinedStatisticWarning):
            s = summarize_replications(table, ["ols"])
        assert s.loc[1991, "ols_mean"] == pytest.approx(11.0)
        assert np.isnan(s.loc[1991, "ols_sd"])

    def test_unreported_year_is_silent(self, table):
        """A year an estimator never reports yields NaN without a warning."""
        table = table.drop(columns=["dr_1989"])
        with warnings.catch_warnings():
            warnings.simplefilter("error", UndefinedStatisticWarning)
            s = summarize_replications(table, ["ols", "dr"])
        assert np.isnan(s.loc[1989, "dr_mean"])
        assert s.loc[1989, "dr_n"] == 0

    def test_explicit_adoption_year(self, table):
        s = summarize_replications(table, ["ols"], adoption_year=1990)
        assert list(s["event_time"]) == [-1, 1]

    def test_coverage_level(self, table):
        tight = summarize_replications(table, ["ols"], alpha=0.999)
        # z is about 0.0013 here, so a bias of 1 with sd 2 no longer covers
        assert not bool(tight.loc[1991, "ols_covers"])

    def test_empty(self):
        assert summarize_replications(pd.DataFrame({"replication": []}), ["ols"]).empty


class TestPrintSummary:
    def test_prints_table(self, table, capsys):
        s = summarize_replications(table.fillna(0.0), ["ols", "dr"])
        print_simulation_summary(s, ["ols", "dr"], n_replications=3, failures={"ols": 0, "dr": 1})
        out = capsys.readouterr().out
        assert "MONTE CARLO SUMMARY (R = 3)" in out
        assert "ols mean" in out
        assert "1991" in out
        assert "dr=1" in out

    def test_prints_empty(self, capsys):
        print_simulation_summary(pd.DataFrame(), ["ols"])
        assert "(no replications)" in capsys.readouterr().out
