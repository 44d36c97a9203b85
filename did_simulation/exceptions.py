"""
Exception and warning classes for the ``did_simulation`` package.

Errors are split into two kinds.  Parameter problems are fatal and raised
before any replication starts (:class:`InvalidParameterError`).  Estimator
problems inside a single replication (:class:`FitFailure`) are recovered by
the replication driver, which records missing coefficients for that draw and
emits a :class:`FitFailureWarning`.

All warnings inherit from :class:`DidSimulationWarning`, itself a
``UserWarning``, so they can be filtered in one go::

    import warnings
    from did_simulation.exceptions import DidSimulationWarning
    warnings.filterwarnings("ignore", category=DidSimulationWarning)
"""


class DidSimulationError(Exception):
    """Base class for all errors raised by ``did_simulation``."""
    pass


class InvalidParameterError(DidSimulationError, ValueError):
    """
    Raised when a DGP or simulation parameter fails validation.

    Typical triggers are non-positive counts, a non-positive noise scale,
    probabilities outside ``[0, 1]`` or an adoption year that leaves no
    reference period or no post-treatment period inside the panel.
    """
    pass


class FitFailure(DidSimulationError):
    """
    Raised by an estimator adapter when a single draw cannot be fitted.

    Covers singular or rank-deficient design matrices, empty treated or
    control groups and non-convergent propensity-score models.
    """
    pass


class DidSimulationWarning(UserWarning):
    """Base warning class for ``did_simulation``."""
    pass


class FitFailureWarning(DidSimulationWarning):
    """An estimator failed for one replication; its coefficients are NaN."""
    pass


class UndefinedStatisticWarning(DidSimulationWarning):
    """A summary statistic had too few non-missing inputs and is reported as NaN."""
    pass


__all__ = [
    "DidSimulationError",
    "InvalidParameterError",
    "FitFailure",
    "DidSimulationWarning",
    "FitFailureWarning",
    "UndefinedStatisticWarning",
]
