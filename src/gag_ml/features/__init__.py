"""Projection predictive variable selection."""

from .loo import (
    ElpdSummary,
    elpd_difference,
    group_log_weights,
    loo_pointwise,
    psis_log_weights,
    summarize_elpd,
)
from .selection import (
    PATH_COLUMNS,
    VarselResult,
    select_variables,
    suggest_size,
)

__all__ = [
    # PSIS-LOO
    "ElpdSummary",
    "elpd_difference",
    "group_log_weights",
    "loo_pointwise",
    "psis_log_weights",
    "summarize_elpd",
    # Forward search
    "PATH_COLUMNS",
    "VarselResult",
    "select_variables",
    "suggest_size",
]
