"""Configuration management for GAG-ML."""

from gag_ml.config.defaults import (
    DEFAULT_SEED,
    VALID_SEARCH_CRITERIA,
    VALID_SUGGEST_BASELINES,
)
from gag_ml.config.loader import (
    apply_overrides,
    config_to_dict,
    load_run_config,
    load_yaml,
    print_config_summary,
    save_config,
)
from gag_ml.config.schema import (
    CacheConfig,
    DataConfig,
    EvaluationConfig,
    OutputConfig,
    PriorConfig,
    ProjectionConfig,
    RunConfig,
    SamplerConfig,
    SelectionConfig,
)
from gag_ml.config.validation import (
    ConfigValidationError,
    ConfigValidationWarning,
    validate_run_config,
)

__all__ = [
    "DEFAULT_SEED",
    "VALID_SEARCH_CRITERIA",
    "VALID_SUGGEST_BASELINES",
    "apply_overrides",
    "config_to_dict",
    "load_run_config",
    "load_yaml",
    "print_config_summary",
    "save_config",
    "CacheConfig",
    "DataConfig",
    "EvaluationConfig",
    "OutputConfig",
    "PriorConfig",
    "ProjectionConfig",
    "RunConfig",
    "SamplerConfig",
    "SelectionConfig",
    "ConfigValidationError",
    "ConfigValidationWarning",
    "validate_run_config",
]
