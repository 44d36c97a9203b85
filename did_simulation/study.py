# did_simulation/study.py

from __future__ import annotations

import warnings
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from joblib import Parallel, delayed

from .dgp import SimulatedPanel, generate_panel
from .estimator import Adapter, SimulationEstimator
from .exceptions import FitFailure, FitFailureWarning
from .helpers.config import DGPConfig, SimulationConfig
from .helpers.utils import (
    coef_column,
    coerce_coefficients,
    derive_seed,
    log,
    records_to_frame,
    true_column,
)
from .reporting.summary import summarize_replications


@dataclass
class SimulationResult:
    """Container for all outputs of a MonteCarloStudy run."""
    config: SimulationConfig
    replications: pd.DataFrame
    summary: pd.DataFrame
    estimators: List[str] = field(default_factory=list)
    failures: Dict[str, int] = field(default_factory=dict)


def run_replication(
    replication: int,
    dgp: DGPConfig,
    master_seed: int,
    adapters: Mapping[str, Adapter],
    labels: Mapping[str, Sequence[int]],
) -> Tuple[Dict[str, Any], List[str]]:
    """
    Run one replication: draw a panel, record the truth, fit every adapter.

    Returns the record and the list of fit-failure messages.  Failures are
    reported back instead of warned here so they surface in the parent
    process when replications run in joblib workers.
    """
    seed = derive_seed(master_seed, replication)
    panel = generate_panel(dgp, seed)

    record: Dict[str, Any] = {
        "replication": int(replication),
        "seed": seed,
        "n_treated": panel.n_treated,
    }
    for year, val in panel.true_att().items():
        record[true_column(year)] = float(val)

    failures: List[str] = []
    for name, fit in adapters.items():
        years = list(labels[name])
        failed = False
        try:
            coefs = coerce_coefficients(fit(panel), years)
        except (FitFailure, np.linalg.LinAlgError) as exc:
            failures.append(f"[{name}] replication {replication} (seed {seed}) failed: {exc}")
            coefs = pd.Series(np.nan, index=years, dtype=float)
            failed = True
        for year in years:
            record[coef_column(name, year)] = float(coefs.loc[year])
        record[f"{name}_failed"] = failed
    return record, failures


class MonteCarloStudy:
    """Orchestrates the replications of the Monte Carlo study.

    Parameters
    ----------
    config : SimulationConfig
        DGP, replication count, master seed and estimator options.
    estimators : mapping, optional
        ``{name: callable(SimulatedPanel)}`` overriding the built-in
        adapters.  Each callable returns a :class:`CoefficientResult`, a
        Series or a ``{year: coef}`` mapping and raises
        :class:`~did_simulation.exceptions.FitFailure` on a failed draw.
    labels : mapping, optional
        ``{name: years}`` for injected estimators; defaults to every year
        except the reference year.
    """

    def __init__(
        self,
        config: SimulationConfig,
        estimators: Optional[Mapping[str, Adapter]] = None,
        labels: Optional[Mapping[str, Sequence[int]]] = None,
    ) -> None:
        self.config = config
        self._custom = dict(estimators) if estimators is not None else None
        self._custom_labels = dict(labels or {})
        self._estimator: Optional[SimulationEstimator] = None

    @property
    def estimator(self) -> SimulationEstimator:
        if self._estimator is None:
            self._estimator = SimulationEstimator(self.config)
        return self._estimator

    def _log(self, message: str) -> None:
        log("STUDY", message, verbose=bool(self.config.verbose))

    def _adapters(self) -> Tuple[Dict[str, Adapter], Dict[str, List[int]]]:
        if self._custom is not None:
            default = list(self.config.dgp.estimated_years)
            labels = {
                name: [int(y) for y in self._custom_labels.get(name, default)]
                for name in self._custom
            }
            return dict(self._custom), labels
        adapters = self.estimator.adapters()
        return adapters, {name: self.estimator.labels(name) for name in adapters}

    def draw(self, replication: int) -> SimulatedPanel:
        """Regenerate the panel of one replication."""
        self.config.dgp.validate()
        return generate_panel(self.config.dgp, derive_seed(self.config.master_seed, replication))

    def run(self) -> SimulationResult:
        """
        Run all replications and aggregate them.

        Parameter validation happens first; nothing is simulated or fitted
        when it fails.

        Returns
        -------
        SimulationResult
            The per-replication table and the per-year summary table.
        """
        cfg = self.config
        cfg.validate()
        adapters, labels = self._adapters()
        R = int(cfg.n_replications)

        dgp = cfg.dgp
        self._log(
            f"{R} replications | {dgp.n_states} states x {dgp.units_per_state} units x "
            f"{dgp.n_years} years | variant={dgp.variant} | estimators={list(adapters)}"
        )

        if cfg.n_jobs == 1:
            outputs = []
            step = max(R // 10, 1)
            for r in range(R):
                outputs.append(run_replication(r, dgp, cfg.master_seed, adapters, labels))
                if (r + 1) % step == 0 or r + 1 == R:
                    self._log(f"{r + 1}/{R} replications done")
        else:
            outputs = Parallel(n_jobs=cfg.n_jobs)(
                delayed(run_replication)(r, dgp, cfg.master_seed, adapters, labels)
                for r in range(R)
            )
            self._log(f"{R}/{R} replications done (n_jobs={cfg.n_jobs})")

        records: List[Dict[str, Any]] = []
        for record, failures in outputs:
            for msg in failures:
                warnings.warn(msg, FitFailureWarning, stacklevel=2)
            records.append(record)
        table = records_to_frame(records)

        failures_by_est = {
            name: int(table[f"{name}_failed"].sum()) if f"{name}_failed" in table else 0
            for name in adapters
        }
        for name, n_fail in failures_by_est.items():
            if n_fail:
                self._log(f"{name}: {n_fail}/{R} replications failed and are excluded")

        summary = summarize_replications(
            table,
            list(adapters),
            alpha=cfg.alpha,
            adoption_year=int(dgp.adoption_year),
        )
        return SimulationResult(
            config=cfg,
            replications=table,
            summary=summary,
            estimators=list(adapters),
            failures=failures_by_est,
        )


def run_simulation(config: SimulationConfig, **kwargs: Any) -> SimulationResult:
    """Convenience wrapper: ``MonteCarloStudy(config, **kwargs).run()``."""
    return MonteCarloStudy(config, **kwargs).run()


__all__ = ["MonteCarloStudy", "SimulationResult", "run_replication", "run_simulation"]
