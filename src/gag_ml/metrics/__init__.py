"""Metrics module for model evaluation."""

from gag_ml.metrics.bootstrap import (
    BOOTSTRAP_METRICS,
    bootstrap_cutpoint_metrics,
    stratified_bootstrap_indices,
)
from gag_ml.metrics.discrimination import (
    auroc,
    compute_discrimination_metrics,
)
from gag_ml.metrics.thresholds import (
    binary_metrics_at_threshold,
    cutpoint_metrics,
    threshold_for_specificity,
)

__all__ = [
    # Discrimination metrics
    "auroc",
    "compute_discrimination_metrics",
    # Cutpoint selection
    "threshold_for_specificity",
    "binary_metrics_at_threshold",
    "cutpoint_metrics",
    # Bootstrap confidence intervals
    "BOOTSTRAP_METRICS",
    "bootstrap_cutpoint_metrics",
    "stratified_bootstrap_indices",
]
