"""Public API for the estimators subpackage.

This module reexports the estimator adapters and their result container
for convenience.  Users may import these names directly from
:mod:`did_simulation.estimators`.
"""

from .base import BaseEstimator, CoefficientResult
from .doubly_robust import fit_doubly_robust
from .event_study import fit_ols

__all__ = [
    "BaseEstimator",
    "CoefficientResult",
    "fit_ols",
    "fit_doubly_robust",
]
