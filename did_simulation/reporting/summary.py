# summary.py
from __future__ import annotations

import re
import warnings
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd
from scipy.stats import norm

from ..exceptions import UndefinedStatisticWarning
from ..helpers.utils import coef_column, true_column

_YEAR_COL = re.compile(r"^(?P<prefix>.+)_(?P<year>\d{4})$")

# ================================
# Formatting helpers
# ================================

def _fmt(x: Any, digits: int = 1) -> str:
    try:
        val = float(x)
    except (TypeError, ValueError):
        return "NA"
    if np.isnan(val) or np.isinf(val):
        return "NA"
    return f"{val:,.{digits}f}"


def _rule(title: str | None = None) -> None:
    line = "=" * 78
    if title:
        print(f"\n{line}\n{title}\n{line}")
    else:
        print(f"\n{line}")


def _years_in(replications: pd.DataFrame, prefixes: Sequence[str]) -> List[int]:
    wanted = set(prefixes)
    years = set()
    for col in replications.columns:
        m = _YEAR_COL.match(str(col))
        if m and m.group("prefix") in wanted:
            years.add(int(m.group("year")))
    return sorted(years)


# ================================
# Aggregation
# ================================

def summarize_replications(
    replications: pd.DataFrame,
    estimators: Sequence[str],
    *,
    alpha: float = 0.05,
    adoption_year: Optional[int] = None,
) -> pd.DataFrame:
    """
    Collapse the replication table into one row per year.

    Parameters
    ----------
    replications : DataFrame
        One row per replication with ``true_<year>`` and
        ``<estimator>_<year>`` columns.
    estimators : sequence of str
        Estimator names to summarise.
    alpha : float
        Coverage level; ``<est>_covers`` is ``|bias| <= z_{1-alpha/2} * sd``.
    adoption_year : int, optional
        Used for the ``event_time`` column.  Defaults to the first year
        with a recorded true effect.

    Returns
    -------
    DataFrame
        Indexed by ``year`` with ``event_time``, ``true_effect`` and, per
        estimator, ``_mean``, ``_sd``, ``_n``, ``_bias``, ``_rmse`` and
        ``_covers``.  Statistics are computed over non-missing estimates
        only.  Bias and RMSE pair each estimate with the true effect of its
        own replication, so a failed draw drops out of both sides.  Before
        adoption the target is zero while ``true_effect`` stays NaN.

    Notes
    -----
    A column present in the table but with no finite estimate yields NaN
    statistics and an :class:`UndefinedStatisticWarning`.  A year the
    estimator never reports (e.g. the OLS reference year) is NaN silently.
    """
    estimators = list(estimators)
    years = _years_in(replications, ["true", *estimators])
    true_years = _years_in(replications, ["true"])
    if adoption_year is None and true_years:
        adoption_year = min(true_years)
    z = float(norm.ppf(1.0 - alpha / 2.0))

    rows: List[Dict[str, Any]] = []
    for year in years:
        row: Dict[str, Any] = {
            "year": year,
            "event_time": (year - int(adoption_year)) if adoption_year is not None else np.nan,
        }

        tcol = true_column(year)
        if tcol in replications:
            truth = replications[tcol].astype(float)
            row["true_effect"] = float(truth.mean())
        else:
            truth = None
            row["true_effect"] = np.nan
        pre_period = adoption_year is not None and year < int(adoption_year)

        for est in estimators:
            col = coef_column(est, year)
            stats = {"mean": np.nan, "sd": np.nan, "n": 0, "bias": np.nan, "rmse": np.nan}
            covers: Any = pd.NA
            if col in replications:
                vals = replications[col].astype(float)
                ok = np.isfinite(vals)
                n = int(ok.sum())
                stats["n"] = n
                if n == 0:
                    warnings.warn(
                        f"{col}: no finite estimates; mean and sd are undefined.",
                        UndefinedStatisticWarning,
                        stacklevel=2,
                    )
                else:
                    stats["mean"] = float(vals[ok].mean())
                    if n >= 2:
                        stats["sd"] = float(vals[ok].std(ddof=1))
                    else:
                        warnings.warn(
                            f"{col}: a single finite estimate; sd is undefined.",
                            UndefinedStatisticWarning,
                            stacklevel=2,
                        )
                    if truth is not None:
                        err = vals[ok] - truth[ok]
                    elif pre_period:
                        err = vals[ok]
                    else:
                        err = None
                    if err is not None:
                        stats["bias"] = float(np.mean(err))
                        stats["rmse"] = float(np.sqrt(np.mean(np.square(err))))
                    if np.isfinite(stats["bias"]) and np.isfinite(stats["sd"]):
                        covers = bool(abs(stats["bias"]) <= z * stats["sd"])
            for key, val in stats.items():
                row[f"{est}_{key}"] = val
            row[f"{est}_covers"] = covers
        rows.append(row)

    summary = pd.DataFrame(rows)
    if summary.empty:
        return summary
    summary = summary.set_index("year")
    for est in estimators:
        summary[f"{est}_n"] = summary[f"{est}_n"].astype(int)
        summary[f"{est}_covers"] = summary[f"{est}_covers"].astype("boolean")
    return summary


# ================================
# Console output
# ================================

def print_panel_block(info: Dict[str, Any]) -> None:
    _rule("PANEL (replication 0)")
    units = info.get("units")
    ever = info.get("ever_treated")
    obs = info.get("obs")
    post_rows = info.get("post_rows")
    share = info.get("treated_share")
    print(
        f"Units: {units} | Ever-treated: {ever} ({_fmt(100.0 * share if share is not None else None)}%) "
        f"| Obs: {obs} | Treated post rows: {post_rows}"
    )
    print(f"Years: {info.get('years')} | Adoption: {info.get('adoption_year')} | Variant: {info.get('variant')}")


def print_simulation_summary(
    summary: pd.DataFrame,
    estimators: Sequence[str],
    *,
    n_replications: Optional[int] = None,
    failures: Optional[Dict[str, int]] = None,
    panel_info: Optional[Dict[str, Any]] = None,
) -> None:
    """Print a per-year table of truth vs. estimator means, sds and bias."""
    if panel_info:
        print_panel_block(panel_info)

    title = "MONTE CARLO SUMMARY"
    if n_replications is not None:
        title += f" (R = {n_replications})"
    _rule(title)
    if summary is None or summary.empty:
        print("(no replications)")
        return

    header = f"{'year':>6} {'k':>4} {'true':>10}"
    for est in estimators:
        header += f" | {est + ' mean':>11} {'sd':>9} {'bias':>9} {'cov':>4}"
    print(header)
    print("-" * len(header))
    for year, row in summary.iterrows():
        k = row.get("event_time")
        line = f"{int(year):>6} {_fmt(k, 0):>4} {_fmt(row.get('true_effect')):>10}"
        for est in estimators:
            cov = row.get(f"{est}_covers")
            cov_txt = "NA" if cov is None or pd.isna(cov) else ("yes" if cov else "no")
            line += (
                f" | {_fmt(row.get(f'{est}_mean')):>11} {_fmt(row.get(f'{est}_sd')):>9}"
                f" {_fmt(row.get(f'{est}_bias')):>9} {cov_txt:>4}"
            )
        print(line)

    if failures:
        failed = {k: v for k, v in failures.items() if v}
        if failed:
            txt = ", ".join(f"{k}={v}" for k, v in failed.items())
            print(f"\nFailed fits (excluded from the statistics): {txt}")


__all__ = ["summarize_replications", "print_simulation_summary", "print_panel_block"]
