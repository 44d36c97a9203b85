"""Configuration, scenario presets and small shared helpers."""

from .config import COVARIATE_TERMS, DGPConfig, SimulationConfig
from .defaults import SCENARIOS, get_scenario

__all__ = ["COVARIATE_TERMS", "DGPConfig", "SimulationConfig", "SCENARIOS", "get_scenario"]
