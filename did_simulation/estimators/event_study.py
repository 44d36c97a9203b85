from __future__ import annotations

from typing import Callable, List, Optional, Sequence

import numpy as np
import pandas as pd
import statsmodels.formula.api as smf

from ..dgp import SimulatedPanel
from ..exceptions import FitFailure
from ..helpers.config import COVARIATE_TERMS
from ..helpers.utils import es_column, tau_from_name
from .base import CoefficientResult


def build_event_study_formula(inter_cols: Sequence[str], covariates: Sequence[str]) -> str:
    rhs = ["treated", "C(year)"] + list(inter_cols) + list(covariates)
    return "y ~ " + " + ".join(rhs)


def fit_ols(
    panel: SimulatedPanel,
    covariates: Sequence[str] = COVARIATE_TERMS,
    *,
    cov_type: str = "HC1",
    log_formula: Optional[Callable[[str], None]] = None,
) -> CoefficientResult:
    """
    Event-study OLS on one simulated panel.

    Regresses the observed outcome on the treatment indicator, year dummies,
    treatment x year dummies for every year except the reference year
    (``adoption_year - 1``) and the covariate terms, with
    heteroskedasticity-robust (``HC1``) standard errors.

    Returns
    -------
    CoefficientResult
        Treatment x year coefficients indexed by calendar year.

    Raises
    ------
    FitFailure
        If there is no treatment variation or the design is rank-deficient.
    """
    cfg = panel.config
    df = panel.panel
    if df.empty:
        raise FitFailure("[OLS] empty panel.")
    if df["treated"].nunique() < 2:
        raise FitFailure("[OLS] no variation in the treatment indicator.")

    covs = [c for c in covariates if c in df.columns]
    keep = df[["y", "treated", "year"] + covs].copy()

    # ------------------------------------------------------------------
    # Treatment x year dummies (reference year omitted)
    # ------------------------------------------------------------------
    inter_cols: List[str] = []
    for year in cfg.estimated_years:
        col = es_column(int(year) - int(cfg.adoption_year))
        keep[col] = ((keep["year"] == year) & (keep["treated"] == 1)).astype(int)
        inter_cols.append(col)

    formula = build_event_study_formula(inter_cols, covs)
    if log_formula is not None:
        log_formula(formula)

    try:
        m = smf.ols(formula, data=keep).fit(cov_type=cov_type)
    except (np.linalg.LinAlgError, ValueError) as exc:
        raise FitFailure(f"[OLS] fit failed: {exc}") from exc

    exog = np.asarray(m.model.exog)
    if np.linalg.matrix_rank(exog) < exog.shape[1]:
        raise FitFailure("[OLS] design matrix is rank-deficient.")

    # ------------------------------------------------------------------
    # Coefficient table, chronological
    # ------------------------------------------------------------------
    years = [int(cfg.adoption_year) + tau_from_name(c) for c in inter_cols]
    coefs = pd.Series([float(m.params[c]) for c in inter_cols], index=years, dtype=float)
    ses = pd.Series([float(m.bse[c]) for c in inter_cols], index=years, dtype=float)
    pvals = pd.Series([float(m.pvalues[c]) for c in inter_cols], index=years, dtype=float)
    if not np.all(np.isfinite(coefs.to_numpy())):
        raise FitFailure("[OLS] non-finite coefficients.")
    for s in (coefs, ses, pvals):
        s.index.name = "year"

    return CoefficientResult(
        estimator="ols",
        coefs=coefs,
        se=ses,
        pvalues=pvals,
        n_obs=int(m.nobs),
        model=m,
    )


__all__ = ["fit_ols", "build_event_study_formula"]
