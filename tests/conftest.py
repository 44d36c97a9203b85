"""
Pytest configuration file providing shared fixtures for the simulation tests.
"""
import pytest

from did_simulation.dgp import generate_panel
from did_simulation.helpers.config import DGPConfig, SimulationConfig


@pytest.fixture
def small_dgp():
    """A 6 x 20 unit panel over 1987-1992 with adoption in 1991."""
    return DGPConfig(n_states=6, units_per_state=20)


@pytest.fixture
def small_panel(small_dgp):
    """One draw of the small DGP with a fixed seed."""
    return generate_panel(small_dgp, seed=2024)


@pytest.fixture
def small_config(small_dgp):
    """Simulation config with a handful of replications on the small DGP."""
    return SimulationConfig(dgp=small_dgp, n_replications=4, master_seed=12345)
