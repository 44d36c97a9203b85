from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

import pandas as pd

from ..helpers.config import SimulationConfig
from ..helpers.utils import log


@dataclass
class CoefficientResult:
    """
    Output of one estimator adapter on one simulated panel.

    ``coefs`` is indexed by calendar year in chronological order, earliest
    pre-period first.  ``se`` and ``pvalues`` are filled when the estimator
    reports them.
    """
    estimator: str
    coefs: pd.Series
    se: Optional[pd.Series] = None
    pvalues: Optional[pd.Series] = None
    n_obs: int = 0
    model: Any = None

    def to_dict(self) -> Dict[int, float]:
        return {int(k): float(v) for k, v in self.coefs.items()}


@dataclass
class BaseEstimator:
    """Holds the run's :class:`SimulationConfig` for the bound adapters.

    Adapter messages go through :func:`log` under the ``ESTIMATOR`` tag and
    are printed only when ``config.verbose`` is set.
    """

    config: SimulationConfig

    def _log(self, message: str) -> None:
        log("ESTIMATOR", message, verbose=bool(getattr(self.config, "verbose", False)))

    def _log_design(self, formula: str) -> None:
        self._log("OLS design: " + formula)
