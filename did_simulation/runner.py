"""CLI helper to run the Monte Carlo DiD simulation.

Builds a :class:`SimulationConfig` from a named scenario and the command
line overrides, runs the replications, prints the per-year summary and
optionally writes the replication and summary tables as CSV files.

Example::

    did-simulate --scenario many_states --replications 100 --seed 12345 --jobs -1
"""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import List, Optional

from .exceptions import DidSimulationError
from .helpers.config import BASE_PERIODS, DR_BACKENDS, ESTIMATOR_NAMES, SimulationConfig
from .helpers.defaults import DEFAULT_SCENARIO, SCENARIOS, get_scenario
from .reporting.summary import print_simulation_summary
from .study import MonteCarloStudy, SimulationResult


def build_config(args: argparse.Namespace) -> SimulationConfig:
    """Construct the SimulationConfig for the parsed command line."""
    dgp = get_scenario(args.scenario)
    if args.variant:
        dgp = dgp.copy(variant=args.variant)
    return SimulationConfig(
        dgp=dgp,
        n_replications=args.replications,
        master_seed=args.seed,
        n_jobs=args.jobs,
        estimators=tuple(args.estimators),
        dr_backend=args.dr_backend,
        base_period=args.base_period,
        r_lib_paths=tuple(args.r_lib_path or ()),
        alpha=args.alpha,
        verbose=args.verbose,
    )


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Monte Carlo comparison of DiD estimators")
    parser.add_argument(
        "--scenario",
        choices=sorted(SCENARIOS),
        default=DEFAULT_SCENARIO,
        help="DGP scenario preset",
    )
    parser.add_argument(
        "--variant",
        choices=["propensity", "percentile"],
        default=None,
        help="Override the treatment-assignment rule of the scenario",
    )
    parser.add_argument(
        "--replications",
        type=int,
        default=100,
        help="Number of Monte Carlo replications",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=12345,
        help="Master seed; replication r is seeded from (seed, r)",
    )
    parser.add_argument(
        "--jobs",
        type=int,
        default=1,
        help="Parallel workers (joblib semantics, -1 = all cores)",
    )
    parser.add_argument(
        "--estimators",
        nargs="+",
        choices=list(ESTIMATOR_NAMES),
        default=list(ESTIMATOR_NAMES),
        help="Estimators to compare",
    )
    parser.add_argument(
        "--dr-backend",
        choices=list(DR_BACKENDS),
        default="python",
        help="Doubly-robust implementation: native Python or R's did::att_gt via rpy2",
    )
    parser.add_argument(
        "--base-period",
        choices=list(BASE_PERIODS),
        default="universal",
        help="Base period of the doubly-robust ATT(g,t)",
    )
    parser.add_argument(
        "--r-lib-path",
        action="append",
        default=None,
        help="Extra R library path (repeatable), used with --dr-backend r",
    )
    parser.add_argument(
        "--alpha",
        type=float,
        default=0.05,
        help="Two-sided level for the coverage column of the summary",
    )
    parser.add_argument(
        "--output-dir",
        type=str,
        default=None,
        help="Write replications.csv and summary.csv to this directory",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Print progress and estimator formulas",
    )
    return parser.parse_args(argv)


def write_outputs(result: SimulationResult, out_dir: Path) -> List[Path]:
    out_dir.mkdir(parents=True, exist_ok=True)
    rep_path = out_dir / "replications.csv"
    sum_path = out_dir / "summary.csv"
    result.replications.to_csv(rep_path, index=False)
    result.summary.to_csv(sum_path)
    return [rep_path, sum_path]


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    try:
        cfg = build_config(args)
        study = MonteCarloStudy(cfg)
        result = study.run()
    except DidSimulationError as exc:
        print(f"[ERROR] {exc}", flush=True)
        return 2

    print_simulation_summary(
        result.summary,
        result.estimators,
        n_replications=cfg.n_replications,
        failures=result.failures,
        panel_info=study.draw(0).info,
    )
    if args.output_dir:
        for path in write_outputs(result, Path(args.output_dir)):
            print(f"Written {path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
