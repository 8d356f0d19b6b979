"""Exceptions and warnings raised by the GAG-ML pipeline."""


class GagMLError(Exception):
    """Base class for pipeline errors."""


class DataValidationError(GagMLError, ValueError):
    """Input table does not satisfy the modelling requirements."""


class NotComputableError(GagMLError):
    """A metric cannot be computed on the given subset (e.g. a single class)."""


class ConvergenceWarning(UserWarning):
    """MCMC diagnostics indicate the posterior may not have converged."""
