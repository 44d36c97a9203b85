"""Scenario presets for the Monte Carlo study.

Two DGP scenarios are shipped.  ``many_states`` is the reference design
(40 states with 25 units each, Bernoulli assignment from the covariate
propensity).  ``few_states`` concentrates the same number of units in
five states and assigns treatment by ranking a selection index, so the
treated share is fixed by construction.  Users may pass any other
:class:`~did_simulation.helpers.config.DGPConfig` instead.
"""

from __future__ import annotations

from typing import Dict

from .config import DGPConfig

SCENARIOS: Dict[str, DGPConfig] = {
    "many_states": DGPConfig(),
    "few_states": DGPConfig(
        n_states=5,
        units_per_state=250,
        variant="percentile",
        treated_share=0.5,
    ),
}

DEFAULT_SCENARIO = "many_states"


def get_scenario(name: str) -> DGPConfig:
    try:
        return SCENARIOS[name]
    except KeyError:
        raise KeyError(f"Unknown scenario {name!r}; choose from {sorted(SCENARIOS)}.") from None


__all__ = ["SCENARIOS", "DEFAULT_SCENARIO", "get_scenario"]
