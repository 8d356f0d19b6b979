"""
PSIS-LOO utilities for projection predictive variable selection.

Leave-one-out predictive densities are estimated by Pareto-smoothed
importance sampling (ArviZ ``psislw``) on the reference model's pointwise log
likelihood. Submodels are evaluated with the same importance weights,
aggregated over the groups of reference draws their projections came from.
"""

import logging
from dataclasses import dataclass

import arviz as az
import numpy as np
from scipy.special import logsumexp

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ElpdSummary:
    """Sum and standard error of pointwise elpd over the valid subjects."""

    elpd: float
    se: float
    n_valid: int


def relative_efficiency(ess: dict[str, float], n_draws: int) -> float:
    """Mean relative efficiency of the draws, clipped to (0, 1]; 1 when unknown."""
    values = [v for v in ess.values() if np.isfinite(v) and v > 0]
    if not values or n_draws <= 0:
        return 1.0
    return float(min(1.0, np.mean(values) / n_draws))


def psis_log_weights(loglik: np.ndarray, reff: float = 1.0) -> tuple[np.ndarray, np.ndarray]:
    """
    Pareto-smoothed LOO importance log weights.

    Args:
        loglik: Pointwise log likelihood, shape (S, N)
        reff: Relative efficiency of the draws

    Returns:
        (log_weights, pareto_k): log weights normalised over draws for each
        subject, shape (S, N), and the Pareto shape estimate per subject (N,)
    """
    loglik = np.asarray(loglik, dtype=float)
    # psislw smooths along the last axis
    lw, pareto_k = az.psislw(-loglik.T.copy(), reff=reff)
    lw = np.asarray(lw, dtype=float).T
    lw = lw - logsumexp(lw, axis=0, keepdims=True)
    return lw, np.asarray(pareto_k, dtype=float)


def group_log_weights(log_weights: np.ndarray, labels: np.ndarray, n_groups: int) -> np.ndarray:
    """
    Aggregate per-draw importance weights into per-group weights.

    Args:
        log_weights: Per-draw log weights, shape (S, N)
        labels: Group of each draw (S,); -1 excludes a draw
        n_groups: Number of groups

    Returns:
        Log weights per group, normalised over groups, shape (G, N)
    """
    labels = np.asarray(labels)
    out = np.full((n_groups, log_weights.shape[1]), -np.inf)
    for g in range(n_groups):
        members = labels == g
        if members.any():
            out[g] = logsumexp(log_weights[members], axis=0)
    return out - logsumexp(out, axis=0, keepdims=True)


def loo_pointwise(log_weights: np.ndarray, loglik: np.ndarray) -> np.ndarray:
    """LOO log predictive density per subject: log sum_g w_gi p_g(y_i)."""
    with np.errstate(invalid="ignore"):
        return logsumexp(log_weights + loglik, axis=0)


def summarize_elpd(pointwise: np.ndarray, mask: np.ndarray | None = None) -> ElpdSummary:
    """
    Sum pointwise elpd over the subjects in *mask* (default: finite values).

    The standard error is sqrt(n * var(pointwise)).
    """
    pointwise = np.asarray(pointwise, dtype=float)
    if mask is None:
        mask = np.isfinite(pointwise)
    values = pointwise[mask]
    n = values.size
    se = float(np.sqrt(n * np.var(values, ddof=1))) if n > 1 else float("nan")
    return ElpdSummary(elpd=float(values.sum()), se=se, n_valid=int(n))


def elpd_difference(
    pointwise: np.ndarray, baseline: np.ndarray, mask: np.ndarray
) -> tuple[float, float]:
    """Paired elpd difference (pointwise - baseline) and its standard error."""
    diff = np.asarray(pointwise, dtype=float)[mask] - np.asarray(baseline, dtype=float)[mask]
    n = diff.size
    se = float(np.sqrt(n * np.var(diff, ddof=1))) if n > 1 else float("nan")
    return float(diff.sum()), se


def report_pareto_k(pareto_k: np.ndarray, threshold: float) -> int:
    """Log a warning when Pareto k exceeds *threshold*; return the count."""
    n_high = int(np.sum(pareto_k > threshold))
    if n_high:
        logger.warning(
            f"{n_high} subject(s) with Pareto k > {threshold} "
            f"(max k={np.nanmax(pareto_k):.2f}); LOO estimates may be unreliable"
        )
    return n_high
