from __future__ import annotations

from typing import Callable, Dict, List

from did_simulation.dgp import SimulatedPanel
from did_simulation.estimators.base import BaseEstimator, CoefficientResult
from did_simulation.estimators.doubly_robust import estimated_years as dr_years
from did_simulation.estimators.doubly_robust import fit_doubly_robust
from did_simulation.estimators.event_study import fit_ols
from did_simulation.helpers.config import SimulationConfig

Adapter = Callable[[SimulatedPanel], CoefficientResult]


class SimulationEstimator(BaseEstimator):
    """
    Thin façade over the estimator adapters.

    Binds the adapters to the study configuration (covariates, DR backend,
    base period) so the replication driver can call every estimator with a
    panel only, and knows which year labels each estimator produces.
    """

    def __init__(self, config: SimulationConfig) -> None:
        super().__init__(config)
        if config.dr_backend == "r" and "dr" in config.estimators:
            from did_simulation.estimators.r_interface import check_r_backend

            check_r_backend(config.r_lib_paths)

    # ---------------------------------------------------------
    # OLS event study
    # ---------------------------------------------------------
    def fit_ols(self, panel: SimulatedPanel) -> CoefficientResult:
        return fit_ols(panel, self.config.covariates, log_formula=self._log_design)

    # ---------------------------------------------------------
    # Doubly-robust ATT(g,t)
    # ---------------------------------------------------------
    def fit_doubly_robust(self, panel: SimulatedPanel) -> CoefficientResult:
        return fit_doubly_robust(
            panel,
            self.config.covariates,
            base_period=self.config.base_period,
            backend=self.config.dr_backend,
            r_lib_paths=self.config.r_lib_paths,
        )

    # ---------------------------------------------------------
    # helpers
    # ---------------------------------------------------------
    def adapters(self) -> Dict[str, Adapter]:
        available: Dict[str, Adapter] = {
            "ols": self.fit_ols,
            "dr": self.fit_doubly_robust,
        }
        return {name: available[name] for name in self.config.estimators}

    def labels(self, name: str) -> List[int]:
        """Calendar years the named estimator reports, chronological."""
        dgp = self.config.dgp
        if name == "dr":
            return dr_years(dgp.years, int(dgp.adoption_year), self.config.base_period)
        return list(dgp.estimated_years)


__all__ = ["SimulationEstimator", "Adapter"]
