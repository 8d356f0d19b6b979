"""Projection predictive forward variable selection.

Ranks candidate features by how much of the reference model's predictive
performance a submodel recovers when the feature is added.

Design:
- Forward search from the intercept-only submodel; at each step every
  remaining feature is tried and the candidate projection is scored by
  PSIS-LOO elpd (or by projection KL)
- Search projections use k-means clusters of reference draws; the final
  performance path uses evenly thinned draws projected individually
- Non-finite pointwise LOO values are excluded from every size and from the
  baseline alike
- Deterministic given the run seed; ties resolve to the earlier feature in
  the configured feature order
"""

import logging
from dataclasses import dataclass, field
from typing import Any

import numpy as np
import pandas as pd
from joblib import Parallel, delayed

from ..config import RunConfig
from ..data.io import prepare_model_data
from ..models.projection import (
    cluster_draws,
    project_draws,
    submodel_design,
    thin_draw_indices,
)
from ..models.reference import ReferenceModel, bernoulli_loglik
from ..utils.random import derive_seed
from .loo import (
    elpd_difference,
    group_log_weights,
    loo_pointwise,
    psis_log_weights,
    relative_efficiency,
    report_pareto_k,
    summarize_elpd,
)

logger = logging.getLogger(__name__)

PATH_COLUMNS = ["size", "feature", "elpd", "se", "elpd_diff", "elpd_diff_se", "kl"]


@dataclass(frozen=True, eq=False)
class VarselResult:
    """
    Outcome of the forward search.

    Attributes:
        ranking: Features from most to least informative
        path: One row per size 0..len(ranking) with PATH_COLUMNS
        reference_elpd: LOO elpd of the reference model (valid subjects)
        reference_se: Standard error of reference_elpd
        suggested_size: Recommended submodel size, None if no size qualifies
        pareto_k: Pareto shape estimate per subject
        n_loo_na: Subjects excluded because their LOO value was not finite
        settings: Search settings used
    """

    ranking: tuple[str, ...]
    path: pd.DataFrame
    reference_elpd: float
    reference_se: float
    suggested_size: int | None
    pareto_k: np.ndarray
    n_loo_na: int = 0
    settings: dict[str, Any] = field(default_factory=dict)

    def selected(self, n_terms: int) -> list[str]:
        """Top *n_terms* features of the ranking."""
        if not 0 <= n_terms <= len(self.ranking):
            raise ValueError(f"n_terms must be between 0 and {len(self.ranking)}, got {n_terms}")
        return list(self.ranking[:n_terms])

    @property
    def n_high_pareto_k(self) -> int:
        threshold = self.settings.get("pareto_k_threshold", 0.7)
        return int(np.sum(self.pareto_k > threshold))


def suggest_size(path: pd.DataFrame, se_multiplier: float = 1.0) -> int | None:
    """
    Smallest size whose elpd difference to the baseline is within
    *se_multiplier* standard errors: elpd_diff + m * elpd_diff_se >= 0.

    Returns None when no size qualifies.
    """
    diff = path["elpd_diff"].to_numpy(dtype=float)
    se = np.nan_to_num(path["elpd_diff_se"].to_numpy(dtype=float), nan=0.0)
    ok = diff + se_multiplier * se >= 0
    if not ok.any():
        return None
    return int(path["size"].to_numpy()[np.argmax(ok)])


def _evaluate_candidate(
    X: np.ndarray,
    y: np.ndarray,
    columns: list[int],
    mu_groups: np.ndarray,
    group_lw: np.ndarray,
    group_weights: np.ndarray,
    w0: np.ndarray,
    regularization: float,
) -> tuple[np.ndarray, float, np.ndarray]:
    """Project one candidate submodel; return (W, weighted KL, pointwise elpd)."""
    Z = submodel_design(X, columns)
    W, kl = project_draws(mu_groups, Z, regularization=regularization, w0=w0)
    loglik = bernoulli_loglik(W @ Z.T, y)
    return W, float(np.dot(group_weights, kl)), loo_pointwise(group_lw, loglik)


def _pick_candidate(
    kls: list[float], pointwise: list[np.ndarray], valid: np.ndarray, criterion: str
) -> int:
    if criterion == "kl":
        return int(np.argmin(kls))
    # compare candidates on the subjects where every candidate is finite
    mask = valid & np.all(np.isfinite(np.vstack(pointwise)), axis=0)
    scores = [p[mask].sum() for p in pointwise]
    return int(np.argmax(scores))


def _forward_search(
    X: np.ndarray,
    y: np.ndarray,
    features: tuple[str, ...],
    initial: list[str],
    n_steps: int,
    mu_groups: np.ndarray,
    group_lw: np.ndarray,
    group_weights: np.ndarray,
    valid: np.ndarray,
    config: RunConfig,
) -> list[str]:
    sel_cfg = config.selection
    selected = list(initial)
    n_groups = mu_groups.shape[0]

    Z = submodel_design(X, [features.index(f) for f in selected])
    w_base, _ = project_draws(mu_groups, Z, regularization=sel_cfg.regularization)

    parallel = Parallel(n_jobs=sel_cfg.n_jobs) if sel_cfg.n_jobs > 1 else None

    while len(selected) < n_steps:
        remaining = [f for f in features if f not in selected]
        base_columns = [features.index(f) for f in selected]
        w0 = np.hstack([w_base, np.zeros((n_groups, 1))])
        tasks = [
            delayed(_evaluate_candidate)(
                X,
                y,
                base_columns + [features.index(f)],
                mu_groups,
                group_lw,
                group_weights,
                w0,
                sel_cfg.regularization,
            )
            for f in remaining
        ]
        if parallel is not None:
            results = parallel(tasks)
        else:
            results = [fn(*args, **kwargs) for fn, args, kwargs in tasks]

        W_all, kls, pointwise = zip(*results, strict=True)
        best = _pick_candidate(list(kls), list(pointwise), valid, sel_cfg.search_criterion)
        selected.append(remaining[best])
        w_base = W_all[best]
        logger.info(
            f"  step {len(selected)}: added '{remaining[best]}' (KL={kls[best]:.4g})"
        )

    return selected


def _evaluate_path(
    X: np.ndarray,
    y: np.ndarray,
    features: tuple[str, ...],
    ranking: list[str],
    mu_draws: np.ndarray,
    draw_lw: np.ndarray,
    regularization: float,
) -> tuple[list[np.ndarray], list[float]]:
    """Pointwise elpd and mean KL for each size 0..len(ranking)."""
    pointwise, kls = [], []
    w_prev = None
    for k in range(len(ranking) + 1):
        Z = submodel_design(X, [features.index(f) for f in ranking[:k]])
        w0 = None if w_prev is None else np.hstack([w_prev, np.zeros((w_prev.shape[0], 1))])
        W, kl = project_draws(mu_draws, Z, regularization=regularization, w0=w0)
        pointwise.append(loo_pointwise(draw_lw, bernoulli_loglik(W @ Z.T, y)))
        kls.append(float(kl.mean()))
        w_prev = W
    return pointwise, kls


def select_variables(
    reference: ReferenceModel,
    df: pd.DataFrame,
    config: RunConfig,
    initial_path: list[str] | None = None,
) -> VarselResult:
    """
    Rank features by forward search with PSIS-LOO evaluation.

    Args:
        reference: Fitted reference model; its features are the candidates
        df: Table the reference model was fitted on
        config: Run configuration (selection section, data labels, seed)
        initial_path: Already selected features to resume the search from

    Returns:
        VarselResult with ranking, performance path and suggested size
    """
    sel_cfg = config.selection
    data_cfg = config.data
    features = reference.features

    md = prepare_model_data(
        df,
        features,
        group_col=data_cfg.group_col,
        positive_label=data_cfg.positive_label,
        negative_label=data_cfg.negative_label,
    )
    X, y = md.X, md.y

    initial = list(initial_path or [])
    unknown = [f for f in initial if f not in features]
    if unknown:
        raise ValueError(f"initial_path features not in the reference model: {unknown}")
    if len(set(initial)) != len(initial):
        raise ValueError(f"initial_path has duplicate features: {initial}")

    n_steps = len(features) if sel_cfg.max_terms is None else min(sel_cfg.max_terms, len(features))
    n_steps = max(n_steps, len(initial))
    seed = derive_seed(config.seed, "selection")

    logger.info(
        f"Forward search over {len(features)} features on {md.n_obs} subjects "
        f"(criterion={sel_cfg.search_criterion}, clusters={sel_cfg.n_clusters_search}, "
        f"n_jobs={sel_cfg.n_jobs})"
    )
    if initial:
        logger.info(f"Resuming from {len(initial)} selected feature(s): {initial}")

    # Reference LOO
    reff = relative_efficiency(reference.ess_bulk, reference.n_draws)
    ref_loglik = reference.log_likelihood(X, y)
    lw, pareto_k = psis_log_weights(ref_loglik, reff=reff)
    ref_pointwise = loo_pointwise(lw, ref_loglik)
    report_pareto_k(pareto_k, sel_cfg.pareto_k_threshold)

    proba = reference.draw_proba(X)

    # Search: clustered draws
    labels, mu_clusters = cluster_draws(proba, sel_cfg.n_clusters_search, seed)
    n_clusters = mu_clusters.shape[0]
    cluster_lw = group_log_weights(lw, labels, n_clusters)
    cluster_weights = np.bincount(labels, minlength=n_clusters) / len(labels)

    ranking = _forward_search(
        X,
        y,
        features,
        initial,
        n_steps,
        mu_clusters,
        cluster_lw,
        cluster_weights,
        np.isfinite(ref_pointwise),
        config,
    )

    # Path evaluation: thinned draws projected individually
    idx = thin_draw_indices(reference.n_draws, sel_cfg.n_draws_pred)
    thin_labels = np.full(reference.n_draws, -1)
    thin_labels[idx] = np.arange(len(idx))
    draw_lw = group_log_weights(lw, thin_labels, len(idx))
    pointwise, kls = _evaluate_path(
        X, y, features, ranking, proba[idx], draw_lw, sel_cfg.regularization
    )

    valid = np.isfinite(ref_pointwise) & np.all(np.isfinite(np.vstack(pointwise)), axis=0)
    n_loo_na = int(md.n_obs - valid.sum())
    if n_loo_na:
        logger.warning(
            f"{n_loo_na} subject(s) with non-computable LOO contribution excluded "
            "from every submodel size and the baseline"
        )

    ref_summary = summarize_elpd(ref_pointwise, valid)
    summaries = [summarize_elpd(p, valid) for p in pointwise]

    if sel_cfg.suggest_baseline == "ref":
        baseline = ref_pointwise
    else:
        baseline = pointwise[int(np.argmax([s.elpd for s in summaries]))]

    rows = []
    for k, (p, s, kl) in enumerate(zip(pointwise, summaries, kls, strict=True)):
        diff, diff_se = elpd_difference(p, baseline, valid)
        rows.append(
            {
                "size": k,
                "feature": ranking[k - 1] if k > 0 else None,
                "elpd": s.elpd,
                "se": s.se,
                "elpd_diff": diff,
                "elpd_diff_se": diff_se,
                "kl": kl,
            }
        )
    path = pd.DataFrame(rows, columns=PATH_COLUMNS)
    # object dtype keeps None for the intercept-only row
    path["feature"] = pd.Series([r["feature"] for r in rows], index=path.index, dtype=object)

    suggested = suggest_size(path, sel_cfg.suggest_se_multiplier)
    if suggested is None:
        logger.warning(
            f"No submodel size within {sel_cfg.suggest_se_multiplier} SE of the "
            f"'{sel_cfg.suggest_baseline}' baseline; no size suggested"
        )
    else:
        logger.info(f"Suggested size: {suggested} ({ranking[:suggested]})")

    return VarselResult(
        ranking=tuple(ranking),
        path=path,
        reference_elpd=ref_summary.elpd,
        reference_se=ref_summary.se,
        suggested_size=suggested,
        pareto_k=pareto_k,
        n_loo_na=n_loo_na,
        settings={
            **sel_cfg.model_dump(),
            "seed": seed,
            "reff": reff,
            "initial_path": initial,
        },
    )
