# did_simulation/dgp.py
"""
Synthetic panel generator.

One call to :func:`generate_panel` produces a balanced unit x year panel
with known potential outcomes.  Units live in states, carry a state and a
unit fixed effect and two covariates (``age`` and ``gpa``) that are centred
on the mean of the current draw.  Treatment is assigned once per unit from
a propensity that depends on the sign of the centred covariates, and every
treated unit adopts in the same calendar year.

The untreated outcome follows a covariate-specific trend (the covariate
coefficients grow every year), so parallel trends only hold conditional on
covariates.  The treatment effect is heterogeneous in ``age`` and ``gpa``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd

from .helpers.config import DGPConfig
from .helpers.utils import make_rng

UNIT_COLUMNS: List[str] = [
    "unit_id", "state", "treated", "first_treat", "propensity",
    "age", "gpa", "age_sq", "gpa_sq", "age_gpa", "state_fe", "unit_fe",
]


@dataclass
class SimulatedPanel:
    """One draw of the DGP.

    ``units`` has one row per unit, ``panel`` one row per (unit, year).
    Neither frame is modified after construction.
    """
    config: DGPConfig
    units: pd.DataFrame
    panel: pd.DataFrame
    seed: Optional[int] = None
    info: Dict[str, Any] = field(default_factory=dict)

    @property
    def n_treated(self) -> int:
        return int(self.units["treated"].sum())

    def true_att(self) -> pd.Series:
        """Mean of ``y1 - y0`` over treated units, per post-treatment year."""
        cfg = self.config
        p = self.panel
        sub = p.loc[(p["treated"] == 1) & (p["year"] >= cfg.adoption_year)]
        att = (sub["y1"] - sub["y0"]).groupby(sub["year"]).mean()
        att = att.reindex(list(cfg.post_years)).astype(float)
        att.index.name = "year"
        return att

    def wide(self, value: str = "y") -> pd.DataFrame:
        """Unit x year matrix of one panel column, columns in year order."""
        out = self.panel.pivot(index="unit_id", columns="year", values=value)
        return out.reindex(columns=list(self.config.years))


def _draw_units(cfg: DGPConfig, rng: np.random.Generator) -> pd.DataFrame:
    n = cfg.n_units
    state = np.repeat(np.arange(1, cfg.n_states + 1), cfg.units_per_state)

    state_fe = rng.normal(0.0, cfg.state_fe_sd, size=cfg.n_states)[state - 1]
    unit_fe = rng.uniform(cfg.unit_fe_low, cfg.unit_fe_high, size=n)

    # covariates, centred on this draw's sample mean
    age = rng.normal(cfg.age_mean, cfg.age_sd, size=n)
    gpa = rng.normal(cfg.gpa_mean, cfg.gpa_sd, size=n)
    age = age - age.mean()
    gpa = gpa - gpa.mean()

    propensity = (
        cfg.base_propensity
        + cfg.age_propensity_shift * (age > 0)
        + cfg.gpa_propensity_shift * (gpa > 0)
    )

    if cfg.variant == "propensity":
        treated = (rng.uniform(size=n) < propensity).astype(int)
    else:
        index = propensity + rng.uniform(size=n)
        cutoff = np.quantile(index, 1.0 - cfg.treated_share)
        treated = (index > cutoff).astype(int)

    return pd.DataFrame(
        {
            "unit_id": np.arange(1, n + 1),
            "state": state,
            "treated": treated,
            "first_treat": np.where(treated == 1, int(cfg.adoption_year), 0),
            "propensity": propensity,
            "age": age,
            "gpa": gpa,
            "age_sq": age ** 2,
            "gpa_sq": gpa ** 2,
            "age_gpa": age * gpa,
            "state_fe": state_fe,
            "unit_fe": unit_fe,
        },
        columns=UNIT_COLUMNS,
    )


def _expand_years(units: pd.DataFrame, cfg: DGPConfig, rng: np.random.Generator) -> pd.DataFrame:
    years = np.asarray(cfg.years, dtype=int)
    g = units.loc[units.index.repeat(len(years))].reset_index(drop=True)
    g.insert(2, "year", np.tile(years, len(units)))
    g.insert(3, "event_time", g["year"] - int(cfg.adoption_year))

    k = (g["year"] - int(cfg.start_year)).to_numpy(dtype=float)
    scale = 1.0 + cfg.coef_growth * k
    covariate_index = (
        cfg.age_coef * g["age"]
        + cfg.age_sq_coef * g["age_sq"]
        + cfg.gpa_coef * g["gpa"]
        + cfg.gpa_sq_coef * g["gpa_sq"]
        + cfg.age_gpa_coef * g["age_gpa"]
    ).to_numpy()
    noise = rng.normal(0.0, cfg.noise_sd, size=len(g))

    y0 = (
        cfg.baseline_level
        + cfg.level_growth * k
        + g["state_fe"].to_numpy()
        + g["unit_fe"].to_numpy()
        + scale * covariate_index
        + noise
    )

    post = (g["year"] >= int(cfg.adoption_year)).astype(int).to_numpy()
    effect = (
        cfg.effect_intercept
        + cfg.effect_age * g["age"].to_numpy()
        + cfg.effect_gpa * g["gpa"].to_numpy()
    )
    y1 = y0 + effect * post

    treated_post = g["treated"].to_numpy() * post
    g["post"] = post
    g["treated_post"] = treated_post
    g["y0"] = y0
    g["y1"] = y1
    g["y"] = np.where(treated_post == 1, y1, y0)
    return g


def generate_panel(config: DGPConfig, seed: Any = None) -> SimulatedPanel:
    """Draw one synthetic panel.

    Parameters
    ----------
    config : DGPConfig
        Structural parameters; validated before any randomness is used.
    seed : int, numpy.random.Generator or None
        Source of randomness.  The same integer seed and config always
        reproduce the same panel.

    Returns
    -------
    SimulatedPanel
    """
    config.validate()
    rng = make_rng(seed)

    units = _draw_units(config, rng)
    panel = _expand_years(units, config, rng)

    n_treated = int(units["treated"].sum())
    info = {
        "variant": config.variant,
        "units": int(len(units)),
        "obs": int(len(panel)),
        "ever_treated": n_treated,
        "treated_share": n_treated / max(len(units), 1),
        "post_rows": int(panel["treated_post"].sum()),
        "years": list(config.years),
        "adoption_year": int(config.adoption_year),
    }
    return SimulatedPanel(
        config=config,
        units=units,
        panel=panel,
        seed=seed if isinstance(seed, (int, np.integer)) else None,
        info=info,
    )


__all__ = ["SimulatedPanel", "generate_panel", "UNIT_COLUMNS"]
