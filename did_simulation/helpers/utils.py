"""General utilities for the simulation toolkit.

Seeding, column naming for the replication table and the tagged console
logging used throughout the package live here because they do not belong
to any single estimator or to the driver.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional

import numpy as np
import pandas as pd


def derive_seed(master_seed: int, replication: int) -> int:
    """Return the seed of one replication.

    The seed depends only on ``(master_seed, replication)`` through a
    :class:`numpy.random.SeedSequence` spawn key, so replication ``r``
    draws the same data whatever the total number of replications and
    whichever worker runs it, and distinct replications get statistically
    independent streams.
    """
    seq = np.random.SeedSequence(int(master_seed), spawn_key=(int(replication),))
    return int(seq.generate_state(1, dtype=np.uint32)[0])


def make_rng(seed: Any) -> np.random.Generator:
    if isinstance(seed, np.random.Generator):
        return seed
    return np.random.default_rng(seed)


def es_column(event_time: int) -> str:
    """Name of the treatment x period dummy for a given event time."""
    return f"ES_tm{abs(event_time)}" if event_time < 0 else f"ES_t{event_time}"


def tau_from_name(col: str) -> Optional[int]:
    """Parse ES_t.. / ES_tm.. column names into integer event times."""
    if col.startswith("ES_tm"):
        return -int(col.replace("ES_tm", ""))
    if col.startswith("ES_t"):
        return int(col.replace("ES_t", ""))
    return None


def coef_column(estimator: str, year: int) -> str:
    return f"{estimator}_{int(year)}"


def true_column(year: int) -> str:
    return f"true_{int(year)}"


def coerce_coefficients(obj: Any, years: Iterable[int]) -> pd.Series:
    """Turn an adapter's return value into a float Series over ``years``.

    Adapters may return a :class:`CoefficientResult`, a Series or any
    ``{year: coef}`` mapping.  Years the estimator did not produce are NaN.
    """
    if hasattr(obj, "coefs") and callable(getattr(obj, "to_dict", None)):
        coefs = obj.to_dict()
    else:
        coefs = obj
    if isinstance(coefs, pd.Series):
        ser = coefs.copy()
    elif isinstance(coefs, Mapping):
        ser = pd.Series(dict(coefs), dtype=float)
    else:
        raise TypeError(f"Cannot interpret estimator output of type {type(obj).__name__}.")
    ser.index = [int(i) for i in ser.index]
    return ser.astype(float).reindex([int(y) for y in years])


def log(tag: str, message: str, verbose: bool = True) -> None:
    if verbose:
        print(f"[{tag}] {message}", flush=True)


def records_to_frame(records: List[Dict[str, Any]]) -> pd.DataFrame:
    """Stack replication records, ordered by replication index."""
    if not records:
        return pd.DataFrame()
    df = pd.DataFrame(records)
    return df.sort_values("replication").reset_index(drop=True)


__all__ = [
    "derive_seed",
    "make_rng",
    "es_column",
    "tau_from_name",
    "coef_column",
    "true_column",
    "coerce_coefficients",
    "log",
    "records_to_frame",
]
