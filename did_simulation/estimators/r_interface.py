# did_simulation/estimators/r_interface.py
from __future__ import annotations

from typing import List, Optional, Sequence

import numpy as np
import pandas as pd

from ..exceptions import DidSimulationError, FitFailure


def _load_rpy2():
    """Import rpy2 lazily so the package can be imported without R installed."""

    import rpy2.robjects as ro
    from rpy2.robjects import pandas2ri
    from rpy2.robjects.conversion import localconverter
    from rpy2.robjects.packages import importr

    return ro, pandas2ri, localconverter, importr


def check_r_backend(lib_paths: Optional[Sequence[str]] = None) -> None:
    """Fail fast when rpy2 or the R package ``did`` is unavailable."""
    try:
        ro, _, _, importr = _load_rpy2()
    except ImportError as exc:
        raise DidSimulationError(
            "dr_backend='r' requires rpy2; install it with `pip install did-simulation[r]`."
        ) from exc
    _set_lib_paths(ro, lib_paths)
    try:
        importr("did")
    except Exception as exc:
        raise DidSimulationError(
            "R package 'did' is required for dr_backend='r'. Install it in R via "
            "`install.packages('did')`."
        ) from exc


def _set_lib_paths(ro, lib_paths: Optional[Sequence[str]]) -> None:
    if not lib_paths:
        return
    current = [str(p) for p in ro.r(".libPaths()")]
    wanted = [str(p) for p in lib_paths if str(p) not in current]
    if wanted:
        ro.r[".libPaths"](ro.StrVector(wanted + current))


def build_xformla(covariates: Sequence[str] | None) -> str:
    """Construct the right-hand side formula ``~ x1 + x2`` for att_gt."""
    rhs = " + ".join(map(str, covariates)) if covariates else "1"
    return f"~ {rhs}"


def att_gt_in_r(
    df: pd.DataFrame,
    *,
    yname: str,
    tname: str,
    idname: str,
    gname: str,
    covariates: Sequence[str] | None,
    base_period: str,
    reference_year: int,
    lib_paths: Optional[Sequence[str]] = None,
) -> pd.Series:
    """Run ``did::att_gt(est_method = "dr")`` in R and return ATT(g,t) by t.

    Never-treated units (``gname == 0``) form the comparison group.  With a
    universal base period R reports the normalised ATT(g, g-1) = 0; that
    cell is dropped so the index matches the OLS event study.
    """
    ro, pandas2ri, localconverter, importr = _load_rpy2()
    _set_lib_paths(ro, lib_paths)
    did = importr("did")

    covs = [c for c in (covariates or []) if c in df.columns]
    keep_cols: List[str] = []
    for col in [yname, tname, idname, gname, *covs]:
        if col not in keep_cols:
            keep_cols.append(col)
    sub = df.loc[:, keep_cols].copy()
    for col in (tname, idname, gname):
        sub[col] = sub[col].astype(int)

    with localconverter(ro.default_converter + pandas2ri.converter):
        r_df = ro.conversion.py2rpy(sub)

    try:
        res = did.att_gt(
            yname=yname,
            tname=tname,
            idname=idname,
            gname=gname,
            xformla=ro.Formula(build_xformla(covs)),
            data=r_df,
            panel=True,
            control_group="nevertreated",
            est_method="dr",
            base_period=base_period,
            bstrap=False,
            cband=False,
            print_details=False,
        )
    except Exception as exc:
        # RRuntimeError carries the R message; treat as a per-draw failure
        raise FitFailure(f"[DR/R] did::att_gt failed: {exc}") from exc

    times = np.asarray(res.rx2("t"), dtype=float).astype(int)
    att = np.asarray(res.rx2("att"), dtype=float)
    ser = pd.Series(att, index=times, dtype=float)
    if base_period == "universal":
        ser = ser.drop(index=int(reference_year), errors="ignore")
    ser = ser.sort_index()
    ser.index.name = "year"
    return ser


__all__ = ["att_gt_in_r", "check_r_backend", "build_xformla"]
