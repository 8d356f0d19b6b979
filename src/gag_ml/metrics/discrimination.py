"""
Discrimination metrics for binary risk scores.

This module computes ranking-based performance metrics:
- AUROC (Area Under ROC Curve)
- Sensitivity at a specificity floor, with the cutpoint that achieves it

Degenerate inputs (a single class) raise NotComputableError instead of
returning a number, so callers can report the subset as not computable.

References:
    - Hanley & McNeil (1982). The meaning and use of the area under a ROC curve.
"""

import numpy as np
from sklearn.metrics import roc_auc_score

from ..exceptions import NotComputableError
from .thresholds import cutpoint_metrics


def _validate_binary_labels(y_true: np.ndarray, metric_name: str) -> None:
    """
    Validate that y_true contains both positive and negative classes.

    Raises:
        NotComputableError: If only one class (or no sample) is present
    """
    unique_classes = np.unique(y_true)
    if len(unique_classes) < 2:
        raise NotComputableError(
            f"{metric_name} requires both classes (0 and 1) in y_true, "
            f"but only found {unique_classes.tolist()}"
        )


def auroc(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    """
    Compute Area Under the ROC Curve (AUROC).

    AUROC measures the probability that a randomly chosen positive case has
    a higher score than a randomly chosen negative case (ties count 1/2).

    Args:
        y_true: True binary labels (0/1), shape (n_samples,)
        y_pred: Scores for the positive class, shape (n_samples,)

    Returns:
        AUROC in [0.0, 1.0]

    Raises:
        NotComputableError: If only one class is present

    Examples:
        >>> y_true = np.array([0, 0, 1, 1])
        >>> y_pred = np.array([0.1, 0.4, 0.6, 0.9])
        >>> auroc(y_true, y_pred)
        1.0
    """
    y_true = np.asarray(y_true).astype(int)
    y_pred = np.asarray(y_pred).astype(float)

    _validate_binary_labels(y_true, "AUROC")

    return float(roc_auc_score(y_true, y_pred))


def compute_discrimination_metrics(
    y_true: np.ndarray, y_pred: np.ndarray, min_specificity: float = 0.94
) -> dict[str, float]:
    """
    AUROC plus the operating point under a specificity floor.

    Args:
        y_true: True binary labels (0/1)
        y_pred: Scores
        min_specificity: Specificity floor for the cutpoint

    Returns:
        Dict with auc, cutpoint, sensitivity, specificity, ppv, npv and the
        tp/fp/tn/fn counts at the cutpoint

    Raises:
        NotComputableError: If only one class is present
    """
    auc = auroc(y_true, y_pred)
    point = cutpoint_metrics(y_true, y_pred, min_specificity)
    return {
        "auc": auc,
        "cutpoint": point["threshold"],
        **{k: v for k, v in point.items() if k != "threshold"},
    }
