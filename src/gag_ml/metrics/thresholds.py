"""Cutpoint selection for risk scores.

The clinical operating point is the cutpoint with the highest sensitivity
among those whose specificity is at least a floor (default 0.94). A subject
is called positive when ``score >= cutpoint``.

All functions operate on true labels (y_true) and scores on any monotone
scale (probabilities or the 0-100 GAG score).
"""

from typing import Any

import numpy as np
from sklearn.metrics import confusion_matrix, roc_curve

from ..exceptions import NotComputableError


def _check_both_classes(y_true: np.ndarray, what: str) -> None:
    n_pos = int(np.sum(y_true == 1))
    n_neg = int(np.sum(y_true == 0))
    if n_pos == 0 or n_neg == 0:
        raise NotComputableError(
            f"{what} requires cases and controls; got {n_pos} cases, {n_neg} controls"
        )


def threshold_for_specificity(
    y_true: np.ndarray, p: np.ndarray, target_spec: float = 0.94
) -> float:
    """Find threshold achieving target specificity with highest sensitivity.

    Args:
        y_true: True binary labels (0/1)
        p: Scores (higher = more likely a case)
        target_spec: Minimum specificity (0-1), default 0.94

    Returns:
        Cutpoint; ``p >= cutpoint`` is a positive call

    Raises:
        NotComputableError: If y_true does not contain both classes

    Notes:
        - Among thresholds meeting the floor, the highest sensitivity wins;
          ties go to the higher threshold (higher specificity)
        - The "call nobody positive" point always meets the floor, so a
          cutpoint always exists; it is reported as max(p) + 1e-12
    """
    y_true = np.asarray(y_true).astype(int)
    p = np.asarray(p).astype(float)
    _check_both_classes(y_true, "Cutpoint selection")

    fpr, tpr, thr = roc_curve(y_true, p, drop_intermediate=False)
    spec = 1.0 - fpr
    ok = spec >= target_spec
    j = int(np.argmax(tpr[ok]))
    th = thr[ok][j]
    if not np.isfinite(th):
        th = float(np.max(p) + 1e-12)
    return float(th)


def binary_metrics_at_threshold(y_true: np.ndarray, p: np.ndarray, thr: float) -> dict[str, Any]:
    """Compute classification metrics at a specific threshold.

    Args:
        y_true: True binary labels (0/1)
        p: Scores
        thr: Classification threshold (scores >= thr -> positive)

    Returns:
        Dictionary containing:
        - threshold: Applied threshold
        - sensitivity: TP / (TP + FN)
        - specificity: TN / (TN + FP)
        - ppv: TP / (TP + FP)
        - npv: TN / (TN + FN)
        - tp, fp, tn, fn: Confusion matrix counts

    Notes:
        - Ratios with an empty denominator are NaN
    """
    y_true = np.asarray(y_true).astype(int)
    p = np.asarray(p).astype(float)
    y_hat = (p >= thr).astype(int)
    tn, fp, fn, tp = confusion_matrix(y_true, y_hat, labels=[0, 1]).ravel()

    def ratio(num, den):
        return float(num / den) if den > 0 else np.nan

    return {
        "threshold": float(thr),
        "sensitivity": ratio(tp, tp + fn),
        "specificity": ratio(tn, tn + fp),
        "ppv": ratio(tp, tp + fp),
        "npv": ratio(tn, tn + fn),
        "tp": int(tp),
        "fp": int(fp),
        "tn": int(tn),
        "fn": int(fn),
    }


def cutpoint_metrics(
    y_true: np.ndarray, p: np.ndarray, min_specificity: float = 0.94
) -> dict[str, Any]:
    """Optimise the cutpoint under a specificity floor and report metrics there.

    Raises:
        NotComputableError: If y_true does not contain both classes

    Example:
        >>> y = np.array([0, 0, 0, 1, 1])
        >>> s = np.array([10.0, 20.0, 30.0, 40.0, 50.0])
        >>> m = cutpoint_metrics(y, s, min_specificity=0.9)
        >>> m["threshold"], m["sensitivity"], m["specificity"]
        (40.0, 1.0, 1.0)
    """
    thr = threshold_for_specificity(y_true, p, min_specificity)
    return binary_metrics_at_threshold(y_true, p, thr)
