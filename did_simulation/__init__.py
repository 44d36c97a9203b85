"""
The :mod:`did_simulation` package runs Monte Carlo experiments that compare
difference-in-differences estimators on simulated panels with a known,
heterogeneous treatment effect.  Each replication draws a fresh panel of
units nested in states, observed over consecutive years, with a single
adoption year; the effect depends on unit covariates and the covariate
coefficients of the untreated outcome drift over time, so parallel trends
hold only conditionally on covariates.

The package exposes three core pieces:

``generate_panel``
    The data-generating process.  Given a
    :class:`~did_simulation.helpers.config.DGPConfig` and a seed it returns a
    :class:`~did_simulation.dgp.SimulatedPanel` with both potential outcomes
    and the observed outcome of every unit in every year.

``SimulationEstimator``
    Binds the two estimator adapters to a study configuration: a pooled OLS
    event study with treatment x year interactions and covariates, and the
    doubly-robust group-time ATT of Callaway and Sant'Anna with the
    Sant'Anna and Zhao panel estimator (in Python, or through the R package
    ``did`` via rpy2).

``MonteCarloStudy``
    The replication driver.  Seeds every replication from the master seed,
    collects one record per replication and hands the table to
    :func:`~did_simulation.reporting.summary.summarize_replications`.

References
----------
* Callaway, B. and Sant'Anna, P. H. C. (2021). Difference-in-differences
  with multiple time periods. *Journal of Econometrics*, 225(2), 200-230.
* Sant'Anna, P. H. C. and Zhao, J. (2020). Doubly robust
  difference-in-differences estimators. *Journal of Econometrics*, 219(1),
  101-122.

"""

from .dgp import SimulatedPanel, generate_panel
from .estimator import SimulationEstimator
from .exceptions import (
    DidSimulationError,
    DidSimulationWarning,
    FitFailure,
    FitFailureWarning,
    InvalidParameterError,
    UndefinedStatisticWarning,
)
from .helpers.config import DGPConfig, SimulationConfig
from .helpers.defaults import SCENARIOS, get_scenario
from .reporting.summary import print_simulation_summary, summarize_replications
from .study import MonteCarloStudy, SimulationResult, run_simulation

__version__ = "0.1.0"

__all__ = [
    "DGPConfig",
    "SimulationConfig",
    "SCENARIOS",
    "get_scenario",
    "SimulatedPanel",
    "generate_panel",
    "SimulationEstimator",
    "MonteCarloStudy",
    "SimulationResult",
    "run_simulation",
    "summarize_replications",
    "print_simulation_summary",
    "DidSimulationError",
    "InvalidParameterError",
    "FitFailure",
    "DidSimulationWarning",
    "FitFailureWarning",
    "UndefinedStatisticWarning",
]
