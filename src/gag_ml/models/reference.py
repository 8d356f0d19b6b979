"""
Bayesian logistic regression reference model.

The reference model is the full-feature posterior that variable selection and
projection are measured against:

    y_i ~ Bernoulli(logit^-1(alpha + x_i beta))
    alpha ~ StudentT(nu_alpha, 0, s_alpha)
    beta_j ~ StudentT(nu, 0, s)

Sampling is delegated to PyMC (NUTS); diagnostics come from ArviZ. The fitted
model keeps flattened posterior draws (chains concatenated, chain-major) so
downstream stages work on plain arrays.
"""

import logging
import warnings
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import arviz as az
import numpy as np
import pandas as pd
from scipy.special import expit

from ..config import RunConfig
from ..data.io import prepare_model_data
from ..exceptions import ConvergenceWarning
from ..utils.random import derive_seed

if TYPE_CHECKING:
    from arviz import InferenceData

logger = logging.getLogger(__name__)

INTERCEPT_NAME = "Intercept"
COEF_NAME = "beta"

# Draws per chain below which split R-hat / ESS are not defined
MIN_DRAWS_FOR_DIAGNOSTICS = 4


def bayes_r2(proba_draws: np.ndarray, interval: float = 0.95) -> dict[str, float]:
    """
    Bayesian R² for a Bernoulli model (Gelman et al., 2019).

    Per draw: var(mu) / (var(mu) + mean(mu * (1 - mu))), with mu the fitted
    probabilities of that draw.

    Args:
        proba_draws: Fitted probabilities, shape (S, N)
        interval: Central interval mass for the uncertainty bounds

    Returns:
        Dict with median, lower, upper
    """
    proba_draws = np.asarray(proba_draws, dtype=float)
    var_fit = np.var(proba_draws, axis=1, ddof=1)
    var_res = np.mean(proba_draws * (1.0 - proba_draws), axis=1)
    r2 = var_fit / (var_fit + var_res)
    tail = (1.0 - interval) / 2.0
    return {
        "median": float(np.median(r2)),
        "lower": float(np.quantile(r2, tail)),
        "upper": float(np.quantile(r2, 1.0 - tail)),
    }


def bernoulli_loglik(eta: np.ndarray, y: np.ndarray) -> np.ndarray:
    """Pointwise Bernoulli log likelihood for linear predictors *eta* (G, N)."""
    y = np.asarray(y, dtype=float)
    # log p = -log(1 + exp(-eta)); log(1 - p) = -log(1 + exp(eta))
    return -(y * np.logaddexp(0.0, -eta) + (1.0 - y) * np.logaddexp(0.0, eta))


def _chain_diagnostics(draws: np.ndarray, n_chains: int) -> tuple[float, float]:
    """Split R-hat and bulk ESS of one scalar parameter from flattened draws."""
    per_chain = draws.reshape(n_chains, -1)
    if per_chain.shape[1] < MIN_DRAWS_FOR_DIAGNOSTICS:
        return float("nan"), float("nan")
    rhat = float(az.rhat(per_chain))
    ess = float(az.ess(per_chain, method="bulk"))
    return rhat, ess


def check_convergence(
    rhat: dict[str, float], n_divergences: int, threshold: float
) -> list[str]:
    """
    Report convergence problems as a WARNING log and a ConvergenceWarning.

    Never raises: a poorly converged posterior is still returned to the caller.

    Returns:
        List of problem descriptions (empty if converged)
    """
    problems = []
    high = {name: value for name, value in rhat.items() if np.isfinite(value) and value > threshold}
    if high:
        worst = max(high, key=high.get)
        problems.append(
            f"{len(high)} parameter(s) with R-hat > {threshold} "
            f"(worst: {worst}={high[worst]:.3f})"
        )
    if n_divergences > 0:
        problems.append(f"{n_divergences} divergent transition(s) after tuning")

    if problems:
        message = "Reference model may not have converged: " + "; ".join(problems)
        logger.warning(message)
        warnings.warn(message, ConvergenceWarning, stacklevel=2)
    return problems


@dataclass(frozen=True, eq=False)
class ReferenceModel:
    """
    Posterior of the full-feature logistic regression.

    Attributes:
        features: Feature names, in coefficient order
        intercept: Intercept draws, shape (S,)
        coefs: Coefficient draws, shape (S, J)
        n_chains: Number of chains the draws were concatenated from
        rhat: Split R-hat per parameter
        ess_bulk: Bulk effective sample size per parameter
        n_divergences: Divergent transitions after tuning
        r2: Bayesian R² summary (median, lower, upper)
        sampler_settings: Settings used to produce the draws
        idata: ArviZ InferenceData, when fitted with PyMC
    """

    features: tuple[str, ...]
    intercept: np.ndarray
    coefs: np.ndarray
    n_chains: int = 1
    rhat: dict[str, float] = field(default_factory=dict)
    ess_bulk: dict[str, float] = field(default_factory=dict)
    n_divergences: int = 0
    r2: dict[str, float] = field(default_factory=dict)
    sampler_settings: dict[str, Any] = field(default_factory=dict)
    idata: "InferenceData | None" = field(default=None, repr=False, compare=False)

    def __post_init__(self):
        intercept = np.array(self.intercept, dtype=float).reshape(-1)
        coefs = np.array(self.coefs, dtype=float)
        if coefs.ndim != 2:
            raise ValueError(f"coefs must be 2-D (S, J), got shape {coefs.shape}")
        if coefs.shape[0] != intercept.shape[0]:
            raise ValueError(
                f"intercept ({intercept.shape[0]}) and coefs ({coefs.shape[0]}) draw counts differ"
            )
        if coefs.shape[1] != len(self.features):
            raise ValueError(
                f"coefs has {coefs.shape[1]} columns but {len(self.features)} features"
            )
        if intercept.shape[0] % self.n_chains:
            raise ValueError(f"{intercept.shape[0]} draws cannot be split into {self.n_chains} chains")
        intercept.setflags(write=False)
        coefs.setflags(write=False)
        object.__setattr__(self, "features", tuple(self.features))
        object.__setattr__(self, "intercept", intercept)
        object.__setattr__(self, "coefs", coefs)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_draws(
        cls,
        features,
        intercept,
        coefs,
        *,
        n_chains: int = 1,
        X: np.ndarray | None = None,
        rhat_threshold: float | None = None,
        sampler_settings: dict[str, Any] | None = None,
        n_divergences: int = 0,
        idata: "InferenceData | None" = None,
    ) -> "ReferenceModel":
        """
        Build a reference model from externally produced draws.

        Draws are flattened chain-major. R-hat and bulk ESS are computed from
        the chain structure; Bayesian R² is computed when the training design
        matrix ``X`` is given. With ``rhat_threshold`` set, convergence is
        checked as for a PyMC fit.
        """
        features = tuple(features)
        intercept = np.asarray(intercept, dtype=float).reshape(-1)
        coefs = np.asarray(coefs, dtype=float)
        if coefs.ndim == 1 and len(features) == 1:
            coefs = coefs[:, None]
        if coefs.shape != (intercept.shape[0], len(features)):
            raise ValueError(
                f"coefs has shape {coefs.shape}, expected "
                f"({intercept.shape[0]}, {len(features)}) (draws x features)"
            )


        rhat, ess = {}, {}
        names = [INTERCEPT_NAME, *features]
        columns = [intercept, *coefs.T]
        for name, draws in zip(names, columns, strict=True):
            rhat[name], ess[name] = _chain_diagnostics(draws, n_chains)

        r2 = {}
        if X is not None:
            eta = intercept[:, None] + coefs @ np.asarray(X, dtype=float).T
            r2 = bayes_r2(expit(eta))

        if rhat_threshold is not None:
            check_convergence(rhat, n_divergences, rhat_threshold)

        return cls(
            features=features,
            intercept=intercept,
            coefs=coefs,
            n_chains=n_chains,
            rhat=rhat,
            ess_bulk=ess,
            n_divergences=n_divergences,
            r2=r2,
            sampler_settings=dict(sampler_settings or {}),
            idata=idata,
        )

    # ------------------------------------------------------------------
    # Shapes
    # ------------------------------------------------------------------

    @property
    def n_draws(self) -> int:
        return self.intercept.shape[0]

    @property
    def n_features(self) -> int:
        return len(self.features)

    # ------------------------------------------------------------------
    # Prediction
    # ------------------------------------------------------------------

    def design_matrix(self, df: pd.DataFrame) -> np.ndarray:
        """Feature matrix in coefficient order (missing values kept as NaN)."""
        missing = [f for f in self.features if f not in df.columns]
        if missing:
            raise KeyError(f"Columns missing for prediction: {missing}")
        return df[list(self.features)].to_numpy(dtype=float)

    def linear_predictor(self, X: np.ndarray) -> np.ndarray:
        """Linear predictor draws, shape (S, N)."""
        X = np.asarray(X, dtype=float)
        return self.intercept[:, None] + self.coefs @ X.T

    def draw_proba(self, X: np.ndarray) -> np.ndarray:
        """Predicted probability per draw, shape (S, N)."""
        return expit(self.linear_predictor(X))

    def predict_proba(self, X: np.ndarray) -> np.ndarray:
        """Posterior-averaged predicted probability, shape (N,)."""
        return self.draw_proba(X).mean(axis=0)

    def log_likelihood(self, X: np.ndarray, y: np.ndarray) -> np.ndarray:
        """Pointwise Bernoulli log likelihood per draw, shape (S, N)."""
        return bernoulli_loglik(self.linear_predictor(X), y)

    # ------------------------------------------------------------------
    # Summaries
    # ------------------------------------------------------------------

    def summary(self) -> pd.DataFrame:
        """Posterior summary: mean, sd, 2.5%/97.5% quantiles, R-hat, bulk ESS."""
        names = [INTERCEPT_NAME, *self.features]
        draws = np.column_stack([self.intercept, self.coefs])
        table = pd.DataFrame(
            {
                "mean": draws.mean(axis=0),
                "sd": draws.std(axis=0, ddof=1) if self.n_draws > 1 else np.nan,
                "q2.5": np.quantile(draws, 0.025, axis=0),
                "q97.5": np.quantile(draws, 0.975, axis=0),
                "r_hat": [self.rhat.get(n, np.nan) for n in names],
                "ess_bulk": [self.ess_bulk.get(n, np.nan) for n in names],
            },
            index=pd.Index(names, name="parameter"),
        )
        return table

    def is_converged(self, threshold: float = 1.01) -> bool:
        finite = [v for v in self.rhat.values() if np.isfinite(v)]
        return self.n_divergences == 0 and all(v <= threshold for v in finite)


def fit_reference_model(
    df: pd.DataFrame, config: RunConfig, return_idata: bool = True
) -> ReferenceModel:
    """
    Fit the reference model with PyMC NUTS.

    Args:
        df: Observation table; every row is modelled
        config: Run configuration (data, prior and sampler sections, seed)
        return_idata: Keep the ArviZ InferenceData on the result

    Returns:
        ReferenceModel with posterior draws and diagnostics

    Raises:
        DataValidationError: If the table is not fit for modelling

    Warns:
        ConvergenceWarning: If any R-hat exceeds ``sampler.rhat_threshold`` or
            any transition diverged
    """
    import pymc as pm

    data_cfg, prior, sampler = config.data, config.prior, config.sampler
    md = prepare_model_data(
        df,
        data_cfg.features,
        group_col=data_cfg.group_col,
        positive_label=data_cfg.positive_label,
        negative_label=data_cfg.negative_label,
    )
    seed = derive_seed(config.seed, "reference")

    logger.info(
        f"Fitting reference model: {md.n_obs} subjects ({md.n_cases} cases), "
        f"{len(md.features)} features"
    )
    logger.info(
        f"NUTS: chains={sampler.chains}, draws={sampler.draws}, tune={sampler.tune}, "
        f"target_accept={sampler.target_accept}, cores={sampler.cores}, seed={seed}"
    )

    with pm.Model(coords={"feature": list(md.features)}):
        alpha = pm.StudentT(
            INTERCEPT_NAME, nu=prior.intercept_df, mu=0.0, sigma=prior.intercept_scale
        )
        beta = pm.StudentT(
            COEF_NAME, nu=prior.coef_df, mu=0.0, sigma=prior.coef_scale, dims="feature"
        )
        eta = alpha + pm.math.dot(md.X, beta)
        pm.Bernoulli("y", logit_p=eta, observed=md.y)

        idata = pm.sample(
            draws=sampler.draws,
            tune=sampler.tune,
            chains=sampler.chains,
            cores=sampler.cores,
            target_accept=sampler.target_accept,
            random_seed=seed,
            progressbar=False,
            compute_convergence_checks=False,
            return_inferencedata=True,
        )

    posterior = idata.posterior
    intercept = posterior[INTERCEPT_NAME].values.reshape(-1)
    coefs = posterior[COEF_NAME].values.reshape(-1, len(md.features))
    n_divergences = int(idata.sample_stats["diverging"].values.sum())

    settings = sampler.model_dump()
    settings["random_seed"] = seed
    settings["prior"] = prior.model_dump()

    model = ReferenceModel.from_draws(
        md.features,
        intercept,
        coefs,
        n_chains=sampler.chains,
        X=md.X,
        rhat_threshold=sampler.rhat_threshold,
        sampler_settings=settings,
        n_divergences=n_divergences,
        idata=idata if return_idata else None,
    )
    logger.info(
        f"Bayes R2: {model.r2['median']:.3f} "
        f"[{model.r2['lower']:.3f}, {model.r2['upper']:.3f}]"
    )
    return model
