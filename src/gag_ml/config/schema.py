"""
Configuration schema for the GAG-ML pipeline.

A single immutable :class:`RunConfig` is built once per run and passed
explicitly to every stage. Each stage reads only its own section, which is
also what its cache key hashes.
"""

from collections import Counter
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from gag_ml.config.defaults import (
    DEFAULT_CACHE_CONFIG,
    DEFAULT_DATA_CONFIG,
    DEFAULT_EVALUATION_CONFIG,
    DEFAULT_OUTPUT_CONFIG,
    DEFAULT_PRIOR_CONFIG,
    DEFAULT_PROJECTION_CONFIG,
    DEFAULT_SAMPLER_CONFIG,
    DEFAULT_SEED,
    DEFAULT_SELECTION_CONFIG,
)

_FROZEN = ConfigDict(frozen=True, extra="forbid")


# ============================================================================
# Data
# ============================================================================


class DataConfig(BaseModel):
    """Input table layout and the candidate feature set."""

    model_config = _FROZEN

    infile: Path | None = DEFAULT_DATA_CONFIG["infile"]
    delimiter: str | None = DEFAULT_DATA_CONFIG["delimiter"]
    group_col: str = DEFAULT_DATA_CONFIG["group_col"]
    subgroup_col: str = DEFAULT_DATA_CONFIG["subgroup_col"]
    positive_label: str = DEFAULT_DATA_CONFIG["positive_label"]
    negative_label: str = DEFAULT_DATA_CONFIG["negative_label"]
    features: tuple[str, ...] = Field(
        default_factory=lambda: tuple(DEFAULT_DATA_CONFIG["features"]), min_length=1
    )
    subgroups: tuple[str, ...] | None = DEFAULT_DATA_CONFIG["subgroups"]

    @field_validator("features")
    @classmethod
    def validate_features(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        """Feature identifiers must be non-blank and unique."""
        blank = [f for f in v if not str(f).strip()]
        if blank:
            raise ValueError("Feature names must be non-empty strings")
        dupes = sorted(name for name, count in Counter(v).items() if count > 1)
        if dupes:
            raise ValueError(f"Duplicate feature names: {dupes}")
        return v

    @model_validator(mode="after")
    def validate_labels(self):
        if self.positive_label == self.negative_label:
            raise ValueError(
                f"positive_label and negative_label must differ (both '{self.positive_label}')"
            )
        if self.group_col in self.features or self.subgroup_col in self.features:
            raise ValueError("Outcome/subgroup columns cannot be used as features")
        return self


# ============================================================================
# Reference model
# ============================================================================


class PriorConfig(BaseModel):
    """Student-t priors on the intercept and coefficients."""

    model_config = _FROZEN

    coef_df: float = Field(default=DEFAULT_PRIOR_CONFIG["coef_df"], gt=0)
    coef_scale: float = Field(default=DEFAULT_PRIOR_CONFIG["coef_scale"], gt=0)
    intercept_df: float = Field(default=DEFAULT_PRIOR_CONFIG["intercept_df"], gt=0)
    intercept_scale: float = Field(default=DEFAULT_PRIOR_CONFIG["intercept_scale"], gt=0)


class SamplerConfig(BaseModel):
    """NUTS sampler settings."""

    model_config = _FROZEN

    chains: int = Field(default=DEFAULT_SAMPLER_CONFIG["chains"], ge=1)
    draws: int = Field(default=DEFAULT_SAMPLER_CONFIG["draws"], ge=10)
    tune: int = Field(default=DEFAULT_SAMPLER_CONFIG["tune"], ge=0)
    target_accept: float = Field(default=DEFAULT_SAMPLER_CONFIG["target_accept"], gt=0.0, lt=1.0)
    cores: int = Field(default=DEFAULT_SAMPLER_CONFIG["cores"], ge=1)
    rhat_threshold: float = Field(default=DEFAULT_SAMPLER_CONFIG["rhat_threshold"], gt=1.0)


# ============================================================================
# Variable selection and projection
# ============================================================================


class SelectionConfig(BaseModel):
    """Projection-predictive forward search settings."""

    model_config = _FROZEN

    method: Literal["forward"] = DEFAULT_SELECTION_CONFIG["method"]
    cv_method: Literal["loo"] = DEFAULT_SELECTION_CONFIG["cv_method"]
    search_criterion: Literal["elpd", "kl"] = DEFAULT_SELECTION_CONFIG["search_criterion"]
    max_terms: int | None = Field(default=DEFAULT_SELECTION_CONFIG["max_terms"], ge=1)
    n_clusters_search: int = Field(default=DEFAULT_SELECTION_CONFIG["n_clusters_search"], ge=1)
    n_draws_pred: int = Field(default=DEFAULT_SELECTION_CONFIG["n_draws_pred"], ge=1)
    suggest_baseline: Literal["ref", "best"] = DEFAULT_SELECTION_CONFIG["suggest_baseline"]
    suggest_se_multiplier: float = Field(
        default=DEFAULT_SELECTION_CONFIG["suggest_se_multiplier"], ge=0.0
    )
    pareto_k_threshold: float = Field(default=DEFAULT_SELECTION_CONFIG["pareto_k_threshold"], gt=0)
    regularization: float = Field(default=DEFAULT_SELECTION_CONFIG["regularization"], ge=0.0)
    n_jobs: int = Field(default=DEFAULT_SELECTION_CONFIG["n_jobs"], ge=1)


class ProjectionConfig(BaseModel):
    """Final projection onto the selected submodel."""

    model_config = _FROZEN

    n_terms: int | None = Field(default=DEFAULT_PROJECTION_CONFIG["n_terms"], ge=1)
    n_draws: int = Field(default=DEFAULT_PROJECTION_CONFIG["n_draws"], ge=1)
    regularization: float = Field(default=DEFAULT_PROJECTION_CONFIG["regularization"], ge=0.0)


# ============================================================================
# Evaluation
# ============================================================================


class EvaluationConfig(BaseModel):
    """Cutpoint selection and bootstrap settings."""

    model_config = _FROZEN

    min_specificity: float = Field(
        default=DEFAULT_EVALUATION_CONFIG["min_specificity"], gt=0.0, le=1.0
    )
    n_boot: int = Field(default=DEFAULT_EVALUATION_CONFIG["n_boot"], ge=0)
    ci_level: float = Field(default=DEFAULT_EVALUATION_CONFIG["ci_level"], gt=0.0, lt=1.0)
    min_valid_frac: float = Field(
        default=DEFAULT_EVALUATION_CONFIG["min_valid_frac"], ge=0.0, le=1.0
    )


# ============================================================================
# Cache and output
# ============================================================================


class CacheConfig(BaseModel):
    """Artifact cache settings."""

    model_config = _FROZEN

    enabled: bool = DEFAULT_CACHE_CONFIG["enabled"]
    backend: Literal["disk", "memory"] = DEFAULT_CACHE_CONFIG["backend"]
    dir: Path = Field(default=Path(DEFAULT_CACHE_CONFIG["dir"]))


class OutputConfig(BaseModel):
    """Where and what to write."""

    model_config = _FROZEN

    outdir: Path = Field(default=Path(DEFAULT_OUTPUT_CONFIG["outdir"]))
    run_name: str = DEFAULT_OUTPUT_CONFIG["run_name"]
    save_scores: bool = DEFAULT_OUTPUT_CONFIG["save_scores"]


# ============================================================================
# Run configuration
# ============================================================================


class RunConfig(BaseModel):
    """Complete, immutable configuration of one pipeline run."""

    model_config = _FROZEN

    seed: int = Field(default=DEFAULT_SEED, ge=0, le=2**32 - 1)
    data: DataConfig = Field(default_factory=DataConfig)
    prior: PriorConfig = Field(default_factory=PriorConfig)
    sampler: SamplerConfig = Field(default_factory=SamplerConfig)
    selection: SelectionConfig = Field(default_factory=SelectionConfig)
    projection: ProjectionConfig = Field(default_factory=ProjectionConfig)
    evaluation: EvaluationConfig = Field(default_factory=EvaluationConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)

    @model_validator(mode="after")
    def validate_sizes(self):
        """Submodel sizes cannot exceed the number of candidate features."""
        n_features = len(self.data.features)
        if self.projection.n_terms is not None and self.projection.n_terms > n_features:
            raise ValueError(
                f"projection.n_terms ({self.projection.n_terms}) > number of features "
                f"({n_features})"
            )
        if self.selection.max_terms is not None and self.selection.max_terms > n_features:
            raise ValueError(
                f"selection.max_terms ({self.selection.max_terms}) > number of features "
                f"({n_features})"
            )
        return self

    @property
    def features(self) -> list[str]:
        return list(self.data.features)

    def updated(self, **sections) -> "RunConfig":
        """
        Return a copy with whole sections or fields replaced and re-validated.

        Example:
            >>> cfg = RunConfig().updated(seed=7)
            >>> cfg.seed
            7
        """
        payload = self.model_dump()
        for key, value in sections.items():
            if isinstance(value, BaseModel):
                value = value.model_dump()
            if isinstance(value, dict) and isinstance(payload.get(key), dict):
                payload[key] = {**payload[key], **value}
            else:
                payload[key] = value
        return RunConfig.model_validate(payload)
