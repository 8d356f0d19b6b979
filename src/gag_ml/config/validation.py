"""
Configuration validation and safety checks.

Pydantic enforces field types and ranges when a RunConfig is built. The checks
here are semantic: combinations of settings that are legal but almost
certainly not what the user meant. They are reported according to a
strictness level ("off", "warn" or "error").
"""

import warnings

from gag_ml.config.schema import RunConfig
from gag_ml.exceptions import GagMLError

VALID_STRICTNESS = ("off", "warn", "error")


class ConfigValidationError(GagMLError):
    """Raised when configuration validation fails in strict mode."""

    pass


class ConfigValidationWarning(UserWarning):
    """Warning for potential configuration issues."""

    pass


def collect_run_config_issues(config: RunConfig) -> list[str]:
    """
    Return human-readable descriptions of suspicious settings in *config*.

    An empty list means no issues were found.
    """
    issues = []
    sampler = config.sampler
    selection = config.selection
    total_draws = sampler.chains * sampler.draws

    if sampler.chains < 2:
        issues.append(
            f"sampler.chains={sampler.chains}: R-hat needs at least 2 chains, "
            "convergence cannot be assessed."
        )

    if sampler.cores > sampler.chains:
        issues.append(
            f"sampler.cores ({sampler.cores}) > sampler.chains ({sampler.chains}). "
            "Extra cores will be idle."
        )

    if sampler.rhat_threshold > 1.1:
        issues.append(
            f"sampler.rhat_threshold={sampler.rhat_threshold} is looser than the "
            "conventional 1.01-1.05 range."
        )

    if selection.n_clusters_search > total_draws:
        issues.append(
            f"selection.n_clusters_search ({selection.n_clusters_search}) > total posterior "
            f"draws ({total_draws}). All draws will be used individually."
        )

    if selection.n_draws_pred > total_draws:
        issues.append(
            f"selection.n_draws_pred ({selection.n_draws_pred}) > total posterior "
            f"draws ({total_draws}). All draws will be used."
        )

    if config.projection.n_draws > total_draws:
        issues.append(
            f"projection.n_draws ({config.projection.n_draws}) > total posterior "
            f"draws ({total_draws}). All draws will be projected."
        )

    if config.projection.regularization != selection.regularization:
        issues.append(
            f"projection.regularization ({config.projection.regularization}) differs from "
            f"selection.regularization ({selection.regularization}). Projected coefficients "
            "will not match the ones scored during the search."
        )

    if selection.search_criterion == "kl" and selection.suggest_baseline == "best":
        issues.append(
            "search_criterion='kl' with suggest_baseline='best': the best submodel is "
            "usually the full one, so the suggested size tends to J."
        )

    evaluation = config.evaluation
    if 0 < evaluation.n_boot < 200:
        issues.append(
            f"evaluation.n_boot={evaluation.n_boot}: percentile CIs from fewer than 200 "
            "resamples are unstable."
        )

    if evaluation.min_specificity >= 1.0:
        issues.append(
            "evaluation.min_specificity=1.0: the cutpoint must exclude every control, "
            "sensitivity will usually be very low."
        )

    if config.data.subgroups is not None and len(config.data.subgroups) == 0:
        issues.append("data.subgroups is empty: only the overall subset will be evaluated.")

    return issues


def validate_run_config(config: RunConfig, strictness: str = "warn") -> list[str]:
    """
    Validate a run configuration and report issues at the given strictness.

    Args:
        config: RunConfig instance
        strictness: "off", "warn", or "error"

    Returns:
        List of issues found (also when strictness is "off")

    Raises:
        ConfigValidationError: If issues were found and strictness is "error"
        ValueError: If strictness is not a known level
    """
    if strictness not in VALID_STRICTNESS:
        raise ValueError(f"strictness must be one of {VALID_STRICTNESS}, got '{strictness}'")

    issues = collect_run_config_issues(config)
    _handle_issues(issues, strictness, "Run configuration")
    return issues


def _handle_issues(issues: list[str], strictness: str, context: str):
    """Handle validation issues based on strictness level."""
    if not issues:
        return

    message = f"{context} issues:\n" + "\n".join(f"  - {issue}" for issue in issues)

    if strictness == "error":
        raise ConfigValidationError(message)
    elif strictness == "warn":
        warnings.warn(message, ConfigValidationWarning, stacklevel=3)
    # strictness == "off": do nothing
