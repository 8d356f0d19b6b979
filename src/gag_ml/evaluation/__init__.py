"""Evaluation module: scores, discrimination metrics and result files."""

from gag_ml.evaluation.evaluator import (
    MetricsResult,
    analysis_subsets,
    evaluate_models,
    evaluate_score,
    metrics_to_frame,
)
from gag_ml.evaluation.reports import OutputDirectories, ResultsWriter
from gag_ml.evaluation.scoring import compute_scores, score_reference, score_submodel

__all__ = [
    "MetricsResult",
    "analysis_subsets",
    "evaluate_models",
    "evaluate_score",
    "metrics_to_frame",
    "OutputDirectories",
    "ResultsWriter",
    "compute_scores",
    "score_reference",
    "score_submodel",
]
