# config.py
from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import Any, Literal, Tuple

from ..exceptions import InvalidParameterError

VARIANTS: Tuple[str, ...] = ("propensity", "percentile")
DR_BACKENDS: Tuple[str, ...] = ("python", "r")
BASE_PERIODS: Tuple[str, ...] = ("universal", "varying")
ESTIMATOR_NAMES: Tuple[str, ...] = ("ols", "dr")

# Covariate columns written by the generator and understood by both adapters
COVARIATE_TERMS: Tuple[str, ...] = ("age", "gpa", "age_sq", "gpa_sq", "age_gpa")


@dataclass(frozen=True)
class DGPConfig:
    # =========================
    # Panel shape
    # =========================
    n_states: int = 40
    units_per_state: int = 25
    start_year: int = 1987
    n_years: int = 6
    adoption_year: int = 1991

    # "propensity": Bernoulli draw per unit from the covariate propensity
    # "percentile": treat the units above the (1 - treated_share) quantile
    #               of propensity + U(0, 1)
    variant: Literal["propensity", "percentile"] = "propensity"

    # =========================
    # Covariates & fixed effects
    # =========================
    age_mean: float = 35.0
    age_sd: float = 10.0
    gpa_mean: float = 2.0
    gpa_sd: float = 0.5
    state_fe_sd: float = 500.0
    unit_fe_low: float = 1.0
    unit_fe_high: float = 1000.0

    # =========================
    # Assignment
    # =========================
    base_propensity: float = 0.3
    age_propensity_shift: float = 0.3
    gpa_propensity_shift: float = 0.2
    treated_share: float = 0.5  # percentile variant only

    # =========================
    # Untreated potential outcome
    # =========================
    baseline_level: float = 15000.0
    level_growth: float = 1000.0   # common level added per year
    age_coef: float = 100.0
    age_sq_coef: float = -1.0
    gpa_coef: float = 1000.0
    gpa_sq_coef: float = -500.0
    age_gpa_coef: float = 50.0
    coef_growth: float = 0.05      # covariate coefficients scale by (1 + coef_growth * k)
    noise_sd: float = 1500.0

    # =========================
    # Treatment effect (active from adoption_year onward)
    # =========================
    effect_intercept: float = 1000.0
    effect_age: float = 250.0
    effect_gpa: float = 1000.0

    @property
    def n_units(self) -> int:
        return int(self.n_states) * int(self.units_per_state)

    @property
    def end_year(self) -> int:
        return int(self.start_year) + int(self.n_years) - 1

    @property
    def years(self) -> Tuple[int, ...]:
        return tuple(range(int(self.start_year), self.end_year + 1))

    @property
    def reference_year(self) -> int:
        """The omitted period: the last year before adoption."""
        return int(self.adoption_year) - 1

    @property
    def post_years(self) -> Tuple[int, ...]:
        return tuple(y for y in self.years if y >= self.adoption_year)

    @property
    def estimated_years(self) -> Tuple[int, ...]:
        """Every year except the reference year, in chronological order."""
        return tuple(y for y in self.years if y != self.reference_year)

    def validate(self) -> "DGPConfig":
        """Raise :class:`InvalidParameterError` if the DGP cannot be simulated."""
        for name in ("n_states", "units_per_state", "n_years"):
            val = getattr(self, name)
            if int(val) != val or val < 1:
                raise InvalidParameterError(f"{name} must be a positive integer, got {val!r}.")
        if self.n_units < 2:
            raise InvalidParameterError("At least two units are required.")
        if self.variant not in VARIANTS:
            raise InvalidParameterError(f"variant must be one of {list(VARIANTS)}, got {self.variant!r}.")
        if self.reference_year < self.start_year:
            raise InvalidParameterError(
                f"adoption_year={self.adoption_year} leaves no reference year inside "
                f"[{self.start_year}, {self.end_year}]."
            )
        if self.adoption_year > self.end_year:
            raise InvalidParameterError(
                f"adoption_year={self.adoption_year} is after the last panel year {self.end_year}."
            )

        for name in ("noise_sd", "age_sd", "gpa_sd"):
            val = float(getattr(self, name))
            if not math.isfinite(val) or val <= 0:
                raise InvalidParameterError(f"{name} must be a positive finite number, got {val!r}.")
        if self.state_fe_sd < 0:
            raise InvalidParameterError("state_fe_sd must be non-negative.")
        if self.unit_fe_high < self.unit_fe_low:
            raise InvalidParameterError("unit_fe_high must not be below unit_fe_low.")

        corners = {
            "base_propensity": self.base_propensity,
            "base + age shift": self.base_propensity + self.age_propensity_shift,
            "base + gpa shift": self.base_propensity + self.gpa_propensity_shift,
            "base + both shifts": (
                self.base_propensity + self.age_propensity_shift + self.gpa_propensity_shift
            ),
        }
        for label, p in corners.items():
            if not 0.0 <= p <= 1.0:
                raise InvalidParameterError(f"Propensity ({label}) = {p} is outside [0, 1].")
        if not 0.0 < self.treated_share < 1.0:
            raise InvalidParameterError(
                f"treated_share must lie strictly between 0 and 1, got {self.treated_share}."
            )
        return self

    def copy(self, **overrides: Any) -> "DGPConfig":
        return replace(self, **overrides)


@dataclass
class SimulationConfig:
    # =========================
    # DGP
    # =========================
    dgp: DGPConfig = field(default_factory=DGPConfig)

    # =========================
    # Replications
    # =========================
    n_replications: int = 100
    master_seed: int = 12345
    n_jobs: int = 1  # joblib semantics: -1 = all cores

    # =========================
    # Estimators
    # =========================
    estimators: Tuple[str, ...] = ESTIMATOR_NAMES
    covariates: Tuple[str, ...] = COVARIATE_TERMS
    dr_backend: Literal["python", "r"] = "python"
    base_period: Literal["universal", "varying"] = "universal"

    # R bridge (dr_backend="r")
    r_lib_paths: Tuple[str, ...] = ()

    # =========================
    # Reporting
    # =========================
    alpha: float = 0.05
    verbose: bool = False

    def validate(self) -> "SimulationConfig":
        self.dgp.validate()
        if int(self.n_replications) != self.n_replications or self.n_replications < 1:
            raise InvalidParameterError(
                f"n_replications must be a positive integer, got {self.n_replications!r}."
            )
        if int(self.master_seed) != self.master_seed or self.master_seed < 0:
            raise InvalidParameterError("master_seed must be a non-negative integer.")
        if self.n_jobs == 0:
            raise InvalidParameterError("n_jobs must be non-zero (use -1 for all cores).")
        unknown = [e for e in self.estimators if e not in ESTIMATOR_NAMES]
        if unknown or not self.estimators:
            raise InvalidParameterError(
                f"estimators must be a non-empty subset of {list(ESTIMATOR_NAMES)}, got {list(self.estimators)}."
            )
        if self.dr_backend not in DR_BACKENDS:
            raise InvalidParameterError(f"dr_backend must be one of {list(DR_BACKENDS)}.")
        if self.base_period not in BASE_PERIODS:
            raise InvalidParameterError(f"base_period must be one of {list(BASE_PERIODS)}.")
        bad_covs = [c for c in self.covariates if c not in COVARIATE_TERMS]
        if bad_covs:
            raise InvalidParameterError(
                f"Unknown covariate terms {bad_covs}; available: {list(COVARIATE_TERMS)}."
            )
        if not 0.0 < self.alpha < 1.0:
            raise InvalidParameterError("alpha must lie strictly between 0 and 1.")
        return self

    def copy(self) -> "SimulationConfig":
        # DGPConfig is frozen, so sharing it is safe
        return SimulationConfig(
            dgp=self.dgp,
            n_replications=self.n_replications,
            master_seed=self.master_seed,
            n_jobs=self.n_jobs,
            estimators=tuple(self.estimators),
            covariates=tuple(self.covariates),
            dr_backend=self.dr_backend,
            base_period=self.base_period,
            r_lib_paths=tuple(self.r_lib_paths),
            alpha=self.alpha,
            verbose=self.verbose,
        )
