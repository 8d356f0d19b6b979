"""
Shared pytest fixtures for GAG-ML tests.

Fast tests never run MCMC: reference models are built from synthetic draws
(a maximum-likelihood fit plus Gaussian jitter) with ReferenceModel.from_draws.
"""

import numpy as np
import pandas as pd
import pytest
from sklearn.linear_model import LogisticRegression

from gag_ml.config import RunConfig
from gag_ml.data.schema import CASE_LABEL, GROUP_COL
from gag_ml.data.synthetic import simulate_cohort
from gag_ml.models.reference import ReferenceModel

# Small candidate set used by fast tests (the three signal features first)
SMALL_FEATURES = ["ug.ml_CS_urine", "4s CS", "0s HS_conc", "ug.ml_HS_urine", "6s CS"]


def make_reference(
    df: pd.DataFrame,
    features,
    n_draws: int = 200,
    n_chains: int = 2,
    scale: float = 0.1,
    seed: int = 0,
) -> ReferenceModel:
    """
    Reference model from jittered maximum-likelihood coefficients.

    Draws are i.i.d. around the logistic regression fit, so chains mix
    perfectly and R-hat is close to 1.
    """
    features = list(features)
    X = df[features].to_numpy(dtype=float)
    y = (df[GROUP_COL] == CASE_LABEL).to_numpy(dtype=int)
    lr = LogisticRegression(C=10.0, max_iter=2000).fit(X, y)

    rng = np.random.default_rng(seed)
    intercept = lr.intercept_[0] + scale * rng.standard_normal(n_draws)
    coefs = lr.coef_[0] + scale * rng.standard_normal((n_draws, len(features)))
    return ReferenceModel.from_draws(features, intercept, coefs, n_chains=n_chains, X=X)


def make_test_config(features=None, **sections) -> RunConfig:
    """
    RunConfig sized for fast tests.

    Keyword arguments replace whole fields or update sections, as in
    RunConfig.updated().
    """
    base = RunConfig(
        seed=2024,
        data={"features": list(features or SMALL_FEATURES)},
        sampler={"chains": 2, "draws": 100, "tune": 100},
        selection={"n_clusters_search": 5, "n_draws_pred": 20},
        projection={"n_draws": 20},
        evaluation={"n_boot": 50},
        cache={"enabled": False},
    )
    return base.updated(**sections) if sections else base


@pytest.fixture
def cohort():
    """60 cases + 60 controls with the full 17-feature panel."""
    return simulate_cohort(n_cases=60, n_controls=60, seed=3)


@pytest.fixture
def config():
    """Fast-test configuration on SMALL_FEATURES."""
    return make_test_config()


@pytest.fixture
def reference(cohort):
    """Reference model over SMALL_FEATURES (200 draws, 2 chains)."""
    return make_reference(cohort, SMALL_FEATURES)


@pytest.fixture
def fake_fitter():
    """Drop-in replacement for fit_reference_model that records its calls."""

    calls = []

    def fitter(df, config):
        calls.append(len(df))
        return make_reference(df, config.features, n_chains=config.sampler.chains)

    fitter.calls = calls
    return fitter
