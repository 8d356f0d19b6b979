"""
Default configuration values.

Single source of truth for the defaults used by the pydantic schema.
"""

from typing import Any

from gag_ml.data.schema import (
    CASE_LABEL,
    CONTROL_LABEL,
    GAGOME_FEATURES,
    GROUP_COL,
    SUBGROUP_COL,
)

DEFAULT_SEED = 1234

VALID_SEARCH_CRITERIA = ["elpd", "kl"]
VALID_SUGGEST_BASELINES = ["ref", "best"]

DEFAULT_DATA_CONFIG: dict[str, Any] = {
    "infile": None,
    "delimiter": None,  # inferred from extension
    "group_col": GROUP_COL,
    "subgroup_col": SUBGROUP_COL,
    "positive_label": CASE_LABEL,
    "negative_label": CONTROL_LABEL,
    "features": list(GAGOME_FEATURES),
    "subgroups": None,  # None = every observed subgroup label
}

# Student-t(7, 0, 2.5) on coefficients and intercept
DEFAULT_PRIOR_CONFIG: dict[str, Any] = {
    "coef_df": 7.0,
    "coef_scale": 2.5,
    "intercept_df": 7.0,
    "intercept_scale": 2.5,
}

DEFAULT_SAMPLER_CONFIG: dict[str, Any] = {
    "chains": 4,
    "draws": 1000,
    "tune": 1000,
    "target_accept": 0.95,
    "cores": 1,
    "rhat_threshold": 1.01,
}

DEFAULT_SELECTION_CONFIG: dict[str, Any] = {
    "method": "forward",
    "cv_method": "loo",
    "search_criterion": "elpd",
    "max_terms": None,
    "n_clusters_search": 20,
    "n_draws_pred": 400,
    "suggest_baseline": "ref",
    "suggest_se_multiplier": 1.0,
    "pareto_k_threshold": 0.7,
    "regularization": 1e-4,
    "n_jobs": 1,
}

DEFAULT_PROJECTION_CONFIG: dict[str, Any] = {
    "n_terms": None,  # None = suggested size
    "n_draws": 400,
    "regularization": 1e-4,
}

DEFAULT_EVALUATION_CONFIG: dict[str, Any] = {
    "min_specificity": 0.94,
    "n_boot": 1000,
    "ci_level": 0.95,
    "min_valid_frac": 0.1,
}

DEFAULT_CACHE_CONFIG: dict[str, Any] = {
    "enabled": True,
    "backend": "disk",
    "dir": ".gag_cache",
}

DEFAULT_OUTPUT_CONFIG: dict[str, Any] = {
    "outdir": "results",
    "run_name": "gagome",
    "save_scores": True,
}
