"""
Projection of the reference posterior onto submodels.

A submodel with features S is fitted to the reference model's predictive
probabilities rather than to the observed outcomes: for each reference draw
(or cluster of draws) the submodel coefficients minimise

    KL(p_ref || p_sub) = mean_i [mu_i log(mu_i / p_i) + (1 - mu_i) log((1 - mu_i) / (1 - p_i))]

plus a small ridge penalty on the non-intercept coefficients. This is
logistic regression with soft targets and is solved with L-BFGS using the
analytic gradient.
"""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import numpy as np
import pandas as pd
from scipy.optimize import minimize
from scipy.special import expit
from sklearn.cluster import KMeans

from ..config import RunConfig
from .reference import INTERCEPT_NAME, ReferenceModel

if TYPE_CHECKING:
    from ..features.selection import VarselResult

logger = logging.getLogger(__name__)

_EPS = 1e-12


def submodel_design(X: np.ndarray, columns) -> np.ndarray:
    """Design matrix with a leading intercept column and the given feature columns."""
    X = np.asarray(X, dtype=float)
    columns = list(columns)
    return np.hstack([np.ones((X.shape[0], 1)), X[:, columns]])


def project_onto_submodel(
    mu: np.ndarray,
    Z: np.ndarray,
    w0: np.ndarray | None = None,
    regularization: float = 1e-4,
) -> tuple[np.ndarray, float]:
    """
    Project reference probabilities onto a logistic submodel.

    Args:
        mu: Reference predictive probabilities, shape (N,)
        Z: Submodel design matrix, shape (N, d); column 0 is the intercept
            and is not penalized
        w0: Starting coefficients, shape (d,) (default: zeros)
        regularization: Ridge penalty on the non-intercept coefficients

    Returns:
        (w, kl): fitted coefficients (d,) and mean per-observation KL
        divergence from the reference to the submodel (penalty excluded)
    """
    Z = np.asarray(Z, dtype=float)
    n, d = Z.shape
    mu = np.clip(np.asarray(mu, dtype=float), _EPS, 1.0 - _EPS)

    # negative entropy of the reference, constant in w
    neg_entropy = np.mean(mu * np.log(mu) + (1.0 - mu) * np.log1p(-mu))
    penalized = np.ones(d)
    penalized[0] = 0.0

    def objective(w):
        logits = Z @ w
        cross_ent = np.mean(-mu * logits + np.logaddexp(0.0, logits))
        penalty = 0.5 * regularization * np.sum(penalized * w**2)
        grad = Z.T @ (expit(logits) - mu) / n + regularization * penalized * w
        return cross_ent + neg_entropy + penalty, grad

    if w0 is None:
        w0 = np.zeros(d)
    res = minimize(objective, np.asarray(w0, dtype=float), method="L-BFGS-B", jac=True)

    w = res.x
    logits = Z @ w
    kl = float(np.mean(-mu * logits + np.logaddexp(0.0, logits)) + neg_entropy)
    return w, max(kl, 0.0)


def project_draws(
    mu_draws: np.ndarray,
    Z: np.ndarray,
    regularization: float = 1e-4,
    w0: np.ndarray | None = None,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Project each row of *mu_draws* independently.

    Args:
        mu_draws: Reference probabilities per draw or cluster, shape (G, N)
        Z: Submodel design matrix, shape (N, d)
        regularization: Ridge penalty
        w0: Warm start, shape (d,) shared by all rows or (G, d) per row
            (default: projection of the mean probabilities)

    Returns:
        (W, kl): coefficients (G, d) and KL per row (G,)
    """
    mu_draws = np.atleast_2d(np.asarray(mu_draws, dtype=float))
    n_groups = mu_draws.shape[0]
    d = Z.shape[1]

    if w0 is None:
        w0, _ = project_onto_submodel(mu_draws.mean(axis=0), Z, regularization=regularization)
    w0 = np.asarray(w0, dtype=float)
    if w0.ndim == 1:
        w0 = np.broadcast_to(w0, (n_groups, d))

    W = np.empty((n_groups, d))
    kl = np.empty(n_groups)
    for g in range(n_groups):
        W[g], kl[g] = project_onto_submodel(mu_draws[g], Z, w0=w0[g], regularization=regularization)
    return W, kl


def thin_draw_indices(n_total: int, n_draws: int | None) -> np.ndarray:
    """
    Evenly spaced draw indices (systematic thinning).

    Returns all indices when *n_draws* is None or not smaller than *n_total*.

    Example:
        >>> thin_draw_indices(10, 4).tolist()
        [0, 3, 6, 9]
    """
    if n_draws is None or n_draws >= n_total:
        return np.arange(n_total)
    return np.unique(np.round(np.linspace(0, n_total - 1, n_draws)).astype(int))


def cluster_draws(
    proba_draws: np.ndarray, n_clusters: int, random_state: int
) -> tuple[np.ndarray, np.ndarray]:
    """
    Group posterior draws by k-means on their predictive probabilities.

    Args:
        proba_draws: Predictive probabilities per draw, shape (S, N)
        n_clusters: Number of clusters (capped at S)
        random_state: Seed for k-means initialisation

    Returns:
        (labels, centroids): cluster label per draw (S,) and the mean
        probabilities of each cluster (C, N)
    """
    n_total = proba_draws.shape[0]
    if n_clusters >= n_total:
        return np.arange(n_total), np.asarray(proba_draws, dtype=float).copy()

    km = KMeans(n_clusters=n_clusters, n_init=10, random_state=random_state)
    labels = km.fit_predict(proba_draws)
    # centroids recomputed as member means; clusters are never empty after fit
    centroids = np.vstack([proba_draws[labels == c].mean(axis=0) for c in range(n_clusters)])
    return labels, centroids


@dataclass(frozen=True, eq=False)
class ProjectedSubmodel:
    """
    Posterior of a submodel obtained by projection.

    Attributes:
        features: Selected features, in ranking order
        intercept: Projected intercept draws, shape (D,)
        coefs: Projected coefficient draws, shape (D, K)
        kl: KL divergence of each projected draw
        draw_indices: Reference draws the projections were computed from
        regularization: Ridge penalty used
    """

    features: tuple[str, ...]
    intercept: np.ndarray
    coefs: np.ndarray
    kl: np.ndarray
    draw_indices: np.ndarray
    regularization: float = 1e-4
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        arrays = {
            "intercept": np.array(self.intercept, dtype=float).reshape(-1),
            "coefs": np.array(self.coefs, dtype=float).reshape(-1, len(self.features)),
            "kl": np.array(self.kl, dtype=float).reshape(-1),
            "draw_indices": np.array(self.draw_indices, dtype=int).reshape(-1),
        }
        n = arrays["intercept"].shape[0]
        for name, arr in arrays.items():
            if arr.shape[0] != n:
                raise ValueError(f"{name} has {arr.shape[0]} draws, expected {n}")
            arr.setflags(write=False)
            object.__setattr__(self, name, arr)
        object.__setattr__(self, "features", tuple(self.features))

    @property
    def n_terms(self) -> int:
        return len(self.features)

    @property
    def n_draws(self) -> int:
        return self.intercept.shape[0]

    def design_matrix(self, df: pd.DataFrame) -> np.ndarray:
        missing = [f for f in self.features if f not in df.columns]
        if missing:
            raise KeyError(f"Columns missing for prediction: {missing}")
        return df[list(self.features)].to_numpy(dtype=float)

    def linear_predictor(self, X: np.ndarray) -> np.ndarray:
        """Linear predictor draws, shape (D, N); X holds the selected features only."""
        X = np.asarray(X, dtype=float)
        return self.intercept[:, None] + self.coefs @ X.T

    def predict_proba(self, X: np.ndarray) -> np.ndarray:
        """Posterior-averaged predicted probability, shape (N,)."""
        return expit(self.linear_predictor(X)).mean(axis=0)

    def summary(self) -> pd.DataFrame:
        """Projected coefficient summary: mean, sd, 2.5%/97.5% quantiles."""
        names = [INTERCEPT_NAME, *self.features]
        draws = np.column_stack([self.intercept, self.coefs])
        return pd.DataFrame(
            {
                "mean": draws.mean(axis=0),
                "sd": draws.std(axis=0, ddof=1) if self.n_draws > 1 else np.nan,
                "q2.5": np.quantile(draws, 0.025, axis=0),
                "q97.5": np.quantile(draws, 0.975, axis=0),
            },
            index=pd.Index(names, name="parameter"),
        )


def _projection_rows(reference: ReferenceModel, df: pd.DataFrame) -> np.ndarray:
    X = reference.design_matrix(df)
    complete = np.isfinite(X).all(axis=1)
    if not complete.any():
        raise ValueError("No rows with complete feature values to project on")
    if not complete.all():
        logger.info(f"Projection uses {complete.sum()} of {len(complete)} rows (complete cases)")
    return X[complete]


def project_reference(
    reference: ReferenceModel,
    df: pd.DataFrame,
    features,
    n_draws: int | None,
    config: RunConfig,
) -> ProjectedSubmodel:
    """
    Project the reference posterior onto a submodel with the given features.

    Args:
        reference: Fitted reference model
        df: Table the reference model was fitted on
        features: Submodel features, 1 <= K <= J, all in the reference model
        n_draws: Number of reference draws to project (thinned evenly; all
            draws if None or larger than available)
        config: Run configuration (projection.regularization)

    Returns:
        ProjectedSubmodel with one projected draw per thinned reference draw
    """
    features = list(features)
    if not 1 <= len(features) <= reference.n_features:
        raise ValueError(
            f"Submodel size must be between 1 and {reference.n_features}, got {len(features)}"
        )
    if len(set(features)) != len(features):
        raise ValueError(f"Duplicate submodel features: {features}")
    unknown = [f for f in features if f not in reference.features]
    if unknown:
        raise ValueError(f"Features not in the reference model: {unknown}")

    regularization = config.projection.regularization
    X = _projection_rows(reference, df)
    columns = [reference.features.index(f) for f in features]
    Z = submodel_design(X, columns)

    idx = thin_draw_indices(reference.n_draws, n_draws)
    mu_draws = reference.draw_proba(X)[idx]
    W, kl = project_draws(mu_draws, Z, regularization=regularization)

    logger.info(
        f"Projected {len(idx)} draws onto {len(features)} feature(s): "
        f"mean KL={kl.mean():.4g}"
    )
    return ProjectedSubmodel(
        features=tuple(features),
        intercept=W[:, 0],
        coefs=W[:, 1:],
        kl=kl,
        draw_indices=idx,
        regularization=regularization,
        metadata={"n_obs": int(X.shape[0])},
    )


def project_selection(
    reference: ReferenceModel,
    varsel: "VarselResult",
    df: pd.DataFrame,
    config: RunConfig,
    n_terms: int | None = None,
) -> ProjectedSubmodel:
    """
    Project onto the top-K features of a variable selection ranking.

    K is resolved as: *n_terms*, then ``projection.n_terms``, then the
    suggested size. A suggested size of 0 (intercept only) is raised to 1.

    Raises:
        ValueError: If no size can be resolved or K exceeds the ranking length
    """
    k = n_terms if n_terms is not None else config.projection.n_terms
    if k is None:
        k = varsel.suggested_size
        if k is None:
            raise ValueError(
                "Variable selection did not suggest a size; set projection.n_terms explicitly"
            )
        if k == 0:
            logger.warning("Suggested size is 0 (intercept only); projecting onto 1 feature")
            k = 1
    if not 1 <= k <= len(varsel.ranking):
        raise ValueError(f"n_terms must be between 1 and {len(varsel.ranking)}, got {k}")

    features = list(varsel.ranking[:k])
    logger.info(f"Projecting onto top {k} feature(s): {features}")
    return project_reference(reference, df, features, config.projection.n_draws, config)
