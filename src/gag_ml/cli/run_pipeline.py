"""
Full pipeline orchestration: fit, select, project, score, evaluate.

Each model-building stage goes through the artifact cache. A stage's key
hashes the modelled data, the configuration section the stage reads, the
seed and the key of the artifact it consumes, so changing any upstream input
invalidates everything downstream of it.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import pandas as pd

from gag_ml.config import (
    RunConfig,
    config_to_dict,
    load_run_config,
    print_config_summary,
    save_config,
    validate_run_config,
)
from gag_ml.data.io import (
    complete_case_mask,
    log_data_summary,
    prepare_model_data,
    read_gagome_file,
    validate_required_columns,
)
from gag_ml.evaluation.evaluator import evaluate_models, metrics_to_frame
from gag_ml.evaluation.reports import OutputDirectories, ResultsWriter
from gag_ml.evaluation.scoring import compute_scores
from gag_ml.features.selection import VarselResult, select_variables
from gag_ml.models.projection import ProjectedSubmodel, project_selection
from gag_ml.models.reference import ReferenceModel, check_convergence, fit_reference_model
from gag_ml.utils.cache import (
    CacheBackend,
    CacheKey,
    build_cache,
    cached_stage,
    hash_data,
    make_cache_key,
)
from gag_ml.utils.logging import log_section, setup_logger, verbosity_to_level
from gag_ml.utils.paths import get_run_dir
from gag_ml.utils.random import set_random_seed
from gag_ml.utils.serialization import library_versions

logger = logging.getLogger(__name__)

ReferenceFitter = Callable[[pd.DataFrame, RunConfig], ReferenceModel]


@dataclass(frozen=True, eq=False)
class PipelineResult:
    """Artifacts and tables produced by one pipeline run."""

    config: RunConfig
    reference: ReferenceModel
    varsel: VarselResult
    submodel: ProjectedSubmodel
    scores: pd.DataFrame
    metrics: pd.DataFrame
    n_excluded: int = 0
    run_dir: Path | None = None
    cache_keys: dict[str, CacheKey] = field(default_factory=dict)


def cache_from_config(config: RunConfig, no_cache: bool = False) -> CacheBackend:
    """Cache backend described by the ``cache`` section (NullCache if disabled)."""
    cache_cfg = config.cache
    return build_cache(
        enabled=cache_cfg.enabled and not no_cache,
        backend=cache_cfg.backend,
        root=cache_cfg.dir,
    )


def load_input_table(config: RunConfig) -> pd.DataFrame:
    """Read ``data.infile`` and validate its columns."""
    data_cfg = config.data
    if data_cfg.infile is None:
        raise ValueError("No input file: set data.infile or pass --infile")
    return read_gagome_file(
        data_cfg.infile,
        delimiter=data_cfg.delimiter,
        features=config.features,
        group_col=data_cfg.group_col,
    )


def stage_keys(config: RunConfig, data_hash: str, n_terms: int | None = None) -> dict[str, CacheKey]:
    """
    Cache keys of the reference, selection and projection stages.

    The reference key covers the priors, the sampler and the feature list;
    selection and projection chain on the key before them.
    """
    reference_key = make_cache_key(
        "reference",
        data_hash=data_hash,
        config_section={
            "prior": config.prior.model_dump(),
            "sampler": config.sampler.model_dump(),
            "features": config.features,
        },
        seed=config.seed,
    )
    selection_key = make_cache_key(
        "selection",
        data_hash=data_hash,
        config_section=config.selection,
        seed=config.seed,
        upstream=reference_key,
    )
    projection_key = make_cache_key(
        "projection",
        data_hash=data_hash,
        config_section=config.projection,
        seed=config.seed,
        upstream=selection_key,
        extra={"n_terms": n_terms},
    )
    return {"reference": reference_key, "selection": selection_key, "projection": projection_key}


def write_outputs(result: PipelineResult, run_dir: str | Path) -> list[str]:
    """Write summaries, scores, metrics and run settings under *run_dir*."""
    config = result.config
    writer = ResultsWriter(OutputDirectories.create(run_dir))

    writer.save_reference_summary(result.reference.summary())
    writer.save_varsel_path(result.varsel.path)
    writer.save_submodel_coefficients(result.submodel.summary())
    if config.output.save_scores:
        writer.save_scores(result.scores)
    writer.save_metrics(result.metrics)

    reference = result.reference
    settings: dict[str, Any] = {
        "config": config_to_dict(config),
        "versions": library_versions(),
        "n_subjects": int(len(result.scores)),
        "n_excluded_incomplete": result.n_excluded,
        "reference": {
            "n_draws": reference.n_draws,
            "n_chains": reference.n_chains,
            "n_divergences": reference.n_divergences,
            "converged": reference.is_converged(config.sampler.rhat_threshold),
            "bayes_r2": reference.r2,
        },
        "selection": {
            "ranking": list(result.varsel.ranking),
            "suggested_size": result.varsel.suggested_size,
            "n_loo_na": result.varsel.n_loo_na,
            "n_high_pareto_k": result.varsel.n_high_pareto_k,
        },
        "submodel": {
            "features": list(result.submodel.features),
            "n_terms": result.submodel.n_terms,
            "n_draws": result.submodel.n_draws,
        },
        "cache_keys": {stage: str(key) for stage, key in result.cache_keys.items()},
    }
    writer.save_run_settings(settings)
    save_config(config, Path(run_dir) / "config.yaml")
    return writer.summarize_outputs()


def run_pipeline(
    config: RunConfig,
    df: pd.DataFrame | None = None,
    cache: CacheBackend | None = None,
    fitter: ReferenceFitter | None = None,
    n_terms: int | None = None,
    write: bool = True,
    strictness: str = "warn",
) -> PipelineResult:
    """
    Run the pipeline end to end.

    Args:
        config: Run configuration
        df: Observation table (default: read ``data.infile``)
        cache: Artifact cache (default: from the ``cache`` section)
        fitter: Reference model fitter, ``(df, config) -> ReferenceModel``
            (default: PyMC NUTS via fit_reference_model)
        n_terms: Submodel size (default: ``projection.n_terms``, then the
            suggested size)
        write: Write result files under ``output.outdir/output.run_name``
        strictness: Semantic config validation level ("off", "warn", "error")

    Returns:
        PipelineResult
    """
    validate_run_config(config, strictness=strictness)
    if fitter is None:
        fitter = fit_reference_model
    if cache is None:
        cache = cache_from_config(config)

    data_cfg = config.data
    features = config.features

    log_section(logger, "Loading data")
    if df is None:
        df = load_input_table(config)
    else:
        validate_required_columns(df, features, group_col=data_cfg.group_col)

    # Subjects missing any candidate feature are not modelled but still scored.
    complete = complete_case_mask(df, features)
    n_excluded = int((~complete).sum())
    if n_excluded:
        logger.warning(
            f"{n_excluded} subject(s) with missing features excluded from model fitting"
        )
    model_df = df.loc[complete]
    model_data = prepare_model_data(
        model_df,
        features,
        group_col=data_cfg.group_col,
        positive_label=data_cfg.positive_label,
        negative_label=data_cfg.negative_label,
    )
    log_data_summary(df, features, data_cfg.group_col, data_cfg.subgroup_col)

    keys = stage_keys(config, hash_data(model_df, features, model_data.y), n_terms=n_terms)

    log_section(logger, "Reference model")
    fitted = []

    def fit_reference():
        fitted.append(True)
        return fitter(model_df, config)

    reference = cached_stage(cache, keys["reference"], fit_reference)
    if not fitted:
        # a fresh fit reports convergence itself
        check_convergence(reference.rhat, reference.n_divergences, config.sampler.rhat_threshold)


    log_section(logger, "Variable selection")
    varsel = cached_stage(
        cache, keys["selection"], lambda: select_variables(reference, model_df, config)
    )
    logger.info(f"Ranking: {list(varsel.ranking)}")
    logger.info(f"Suggested size: {varsel.suggested_size}")

    log_section(logger, "Projection")
    submodel = cached_stage(
        cache,
        keys["projection"],
        lambda: project_selection(reference, varsel, model_df, config, n_terms=n_terms),
    )
    logger.info(f"Submodel features ({submodel.n_terms}): {list(submodel.features)}")

    log_section(logger, "Scoring and evaluation")
    scores = compute_scores(reference, submodel, df)
    metrics = metrics_to_frame(evaluate_models(scores, df, config))

    result = PipelineResult(
        config=config,
        reference=reference,
        varsel=varsel,
        submodel=submodel,
        scores=scores,
        metrics=metrics,
        n_excluded=n_excluded,
        cache_keys=keys,
    )

    if write:
        run_dir = get_run_dir(config.output.outdir, config.output.run_name)
        log_section(logger, "Writing outputs")
        write_outputs(result, run_dir)
        logger.info(f"Results written to: {run_dir}")
        result = replace(result, run_dir=run_dir)

    return result


def run_gag(
    config_file: str | Path | None = None,
    cli_args: dict[str, Any] | None = None,
    overrides: list[str] | None = None,
    no_cache: bool = False,
    n_terms: int | None = None,
    log_file: str | Path | None = None,
    verbose: int = 0,
) -> PipelineResult:
    """
    Entry point of ``gag run``: resolve the configuration and run the pipeline.

    Args:
        config_file: Path to YAML config file (optional)
        cli_args: Dotted config keys set by explicit CLI options
        overrides: List of ``key=value`` config overrides
        no_cache: Disable the artifact cache for this run
        n_terms: Submodel size (overrides ``projection.n_terms``)
        log_file: Also log to this file
        verbose: Verbosity level (0=INFO, 1+=DEBUG)
    """
    # Handlers live on the package logger so every module inherits them.
    cli_logger = setup_logger(
        "gag_ml",
        level=verbosity_to_level(verbose),
        log_file=Path(log_file) if log_file else None,
    )
    log_section(cli_logger, "GAG-ML pipeline")

    try:
        config = load_run_config(config_file=config_file, overrides=overrides, cli_args=cli_args)
        print_config_summary(config, logger=cli_logger)
        set_random_seed(config.seed)
        return run_pipeline(
            config,
            cache=cache_from_config(config, no_cache=no_cache),
            n_terms=n_terms,
        )
    except Exception as e:
        cli_logger.error(f"Pipeline failed: {e}")
        raise
