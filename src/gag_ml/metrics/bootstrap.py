"""
Stratified bootstrap confidence intervals for binary classification metrics.

Resampling is stratified: cases and controls are resampled separately with
replacement so every resample keeps the observed case/control counts.
Intervals are percentile intervals.
"""

from collections.abc import Iterator

import numpy as np

from ..exceptions import NotComputableError
from .discrimination import compute_discrimination_metrics

# Metrics whose bootstrap distribution is summarised by a CI
BOOTSTRAP_METRICS = ("auc", "sensitivity", "specificity", "cutpoint")

# Absolute floor on the number of valid resamples for a CI
MIN_VALID_RESAMPLES = 20


def _percentile_ci(vals, ci_level: float = 0.95) -> tuple[float, float]:
    """Compute CI using simple percentile method."""
    alpha = 1.0 - ci_level
    lower_pct = 100 * (alpha / 2)
    upper_pct = 100 * (1 - alpha / 2)
    return (float(np.percentile(vals, lower_pct)), float(np.percentile(vals, upper_pct)))


def _min_valid(n_boot: int, min_valid_frac: float) -> int:
    return max(min(MIN_VALID_RESAMPLES, n_boot), int(n_boot * min_valid_frac))


def stratified_bootstrap_indices(
    y_true: np.ndarray, n_boot: int, seed: int
) -> Iterator[np.ndarray]:
    """
    Yield *n_boot* stratified resample index arrays.

    Raises:
        ValueError: If fewer than 2 cases or 2 controls in y_true
    """
    y_true = np.asarray(y_true)
    pos = np.where(y_true == 1)[0]
    neg = np.where(y_true == 0)[0]

    if len(pos) < 2 or len(neg) < 2:
        raise ValueError(
            f"Insufficient samples for stratified bootstrap: "
            f"{len(pos)} cases, {len(neg)} controls (need >= 2 each)"
        )

    rng = np.random.default_rng(seed)
    for _ in range(n_boot):
        i_pos = rng.choice(pos, size=len(pos), replace=True)
        i_neg = rng.choice(neg, size=len(neg), replace=True)
        yield np.concatenate([i_pos, i_neg])


def bootstrap_cutpoint_metrics(
    y_true: np.ndarray,
    scores: np.ndarray,
    min_specificity: float = 0.94,
    n_boot: int = 1000,
    seed: int = 0,
    min_valid_frac: float = 0.1,
    ci_level: float = 0.95,
) -> tuple[dict[str, tuple[float, float]], int]:
    """
    Percentile CIs for AUC, sensitivity, specificity and cutpoint.

    The cutpoint is re-optimised under the specificity floor in every
    resample, so the intervals include cutpoint selection uncertainty.

    Returns:
        (cis, n_valid): CI per metric in BOOTSTRAP_METRICS, and the number
        of resamples where every metric was computable. CIs are NaN when
        n_valid is below ``max(20, n_boot * min_valid_frac)``.

    Raises:
        ValueError: If fewer than 2 cases or 2 controls in y_true
    """
    y_true = np.asarray(y_true).astype(int)
    scores = np.asarray(scores).astype(float)

    draws: dict[str, list[float]] = {name: [] for name in BOOTSTRAP_METRICS}
    for idx in stratified_bootstrap_indices(y_true, n_boot, seed):
        try:
            m = compute_discrimination_metrics(y_true[idx], scores[idx], min_specificity)
        except NotComputableError:
            continue
        values = [m[name] for name in BOOTSTRAP_METRICS]
        if not np.all(np.isfinite(values)):
            continue
        for name, value in zip(BOOTSTRAP_METRICS, values, strict=True):
            draws[name].append(value)

    n_valid = len(draws["auc"])
    if n_valid < _min_valid(n_boot, min_valid_frac):
        return {name: (np.nan, np.nan) for name in BOOTSTRAP_METRICS}, n_valid

    return {name: _percentile_ci(vals, ci_level) for name, vals in draws.items()}, n_valid
