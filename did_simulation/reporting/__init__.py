"""Reporting utilities for the ``did_simulation`` package.

The :mod:`did_simulation.reporting.summary` module collapses the
replication table into the per-year summary table
(:func:`summarize_replications`) and prints it to the console
(:func:`print_simulation_summary`).

Users may import these functions directly from this subpackage::

    from did_simulation.reporting import summarize_replications

"""

from .summary import print_panel_block, print_simulation_summary, summarize_replications

__all__ = ["summarize_replications", "print_simulation_summary", "print_panel_block"]
