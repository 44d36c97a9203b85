"""
Doubly-robust group-time average treatment effects.

Callaway and Sant'Anna ATT(g,t) with never-treated units as the comparison
group, each cell estimated with the Sant'Anna and Zhao (2020) doubly-robust
DiD estimator for panel data.  The estimator itself is external: the
default backend is :class:`differences.ATTgt` (``est_method="dr"``),
``backend="r"`` hands the same computation to ``did::att_gt`` through
:mod:`did_simulation.estimators.r_interface`.  This module only shapes the
simulated panel for those libraries and reads ATT(g,t) back by calendar
year.

Two base-period conventions are supported.  ``"universal"`` compares
every year with ``g - 1`` (the same indexing as the OLS event study);
``"varying"`` uses short gaps ``t - 1`` before adoption and ``g - 1``
afterwards.
"""

from __future__ import annotations

import warnings
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd
from differences import ATTgt

from ..dgp import SimulatedPanel
from ..exceptions import FitFailure
from ..helpers.config import COVARIATE_TERMS
from .base import CoefficientResult


def base_year(t: int, g: int, start_year: int, base_period: str = "universal") -> Optional[int]:
    """Comparison year of ATT(g, t), or ``None`` when the cell is not reported."""
    if base_period == "universal":
        return None if t == g - 1 else g - 1
    if t < g:
        return None if t == start_year else t - 1
    return g - 1


def estimated_years(years: Sequence[int], g: int, base_period: str = "universal") -> List[int]:
    start = int(min(years))
    return [int(t) for t in years if base_year(int(t), g, start, base_period) is not None]


def attgt_frame(panel: SimulatedPanel, covariates: Sequence[str]) -> pd.DataFrame:
    """Entity x time indexed frame in the layout ``differences.ATTgt`` expects.

    Never-treated units carry a missing cohort instead of the ``0`` used in
    the simulated panel.
    """
    df = panel.panel
    covs = [c for c in covariates if c in df.columns]
    out = df.loc[:, ["unit_id", "year", "y"] + covs].copy()
    out["cohort"] = df["first_treat"].where(df["first_treat"] > 0).astype(float)
    return out.set_index(["unit_id", "year"]).sort_index()


def _fit_python(
    panel: SimulatedPanel,
    covariates: Sequence[str],
    base_period: str,
) -> CoefficientResult:
    cfg = panel.config
    units = panel.units
    n_treated = int(units["treated"].sum())
    if n_treated == 0 or n_treated == len(units):
        raise FitFailure("[DR] need both treated and never-treated units.")

    data = attgt_frame(panel, covariates)
    covs = [c for c in covariates if c in data.columns]
    formula = "y ~ " + (" + ".join(covs) if covs else "1")

    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        try:
            att_gt = ATTgt(data=data, cohort_column="cohort", base_period=base_period)
            att_gt.fit(
                formula,
                est_method="dr",
                control_group="never_treated",
                n_jobs=1,
                progress_bar=False,
            )
            res = att_gt.results()
        except (ValueError, ZeroDivisionError, np.linalg.LinAlgError) as exc:
            raise FitFailure(f"[DR] differences.ATTgt failed: {exc}") from exc

    att = res.xs("ATT", axis=1, level=-1).iloc[:, 0]
    times = att.index.get_level_values("time").astype(int)
    ser = pd.Series(att.to_numpy(dtype=float), index=times, dtype=float)
    if base_period == "universal":
        ser = ser.drop(index=int(cfg.reference_year), errors="ignore")
    ser = ser.sort_index()
    ser.index.name = "year"

    if ser.empty or not np.all(np.isfinite(ser.to_numpy())):
        raise FitFailure("[DR] missing or non-finite ATT(g,t).")
    return CoefficientResult(estimator="dr", coefs=ser, n_obs=int(len(units)))


def fit_doubly_robust(
    panel: SimulatedPanel,
    covariates: Sequence[str] = COVARIATE_TERMS,
    *,
    base_period: str = "universal",
    backend: str = "python",
    r_lib_paths: Sequence[str] = (),
) -> CoefficientResult:
    """
    Group-time ATT(g,t) for the single adoption cohort of ``panel``.

    Returns
    -------
    CoefficientResult
        ATT(g,t) indexed by calendar year ``t`` in chronological order.

    Raises
    ------
    FitFailure
        Empty treated or control group, or the backend could not estimate
        a cell (singular outcome regression, degenerate propensity score).
    """
    if backend == "r":
        from .r_interface import att_gt_in_r

        coefs = att_gt_in_r(
            panel.panel,
            yname="y",
            tname="year",
            idname="unit_id",
            gname="first_treat",
            covariates=list(covariates),
            base_period=base_period,
            reference_year=int(panel.config.reference_year),
            lib_paths=r_lib_paths,
        )
        return CoefficientResult(estimator="dr", coefs=coefs, n_obs=int(len(panel.units)))
    return _fit_python(panel, covariates, base_period)


__all__ = ["fit_doubly_robust", "attgt_frame", "base_year", "estimated_years"]
