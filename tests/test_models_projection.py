"""
Tests for projection of the reference posterior onto submodels.
"""

import numpy as np
import pandas as pd
import pytest
from conftest import SMALL_FEATURES
from scipy.special import expit

from gag_ml.features.selection import VarselResult
from gag_ml.models.projection import (
    ProjectedSubmodel,
    cluster_draws,
    project_draws,
    project_onto_submodel,
    project_reference,
    project_selection,
    submodel_design,
    thin_draw_indices,
)


@pytest.fixture
def logistic_problem():
    rng = np.random.default_rng(0)
    X = rng.standard_normal((300, 3))
    Z = submodel_design(X, [0, 1, 2])
    w_true = np.array([0.3, 1.0, -0.5, 0.0])
    return X, Z, w_true, expit(Z @ w_true)


def _varsel(ranking, suggested):
    path = pd.DataFrame({"size": range(len(ranking) + 1)})
    return VarselResult(
        ranking=tuple(ranking),
        path=path,
        reference_elpd=0.0,
        reference_se=0.0,
        suggested_size=suggested,
        pareto_k=np.zeros(3),
    )


class TestProjectOntoSubmodel:
    def test_recovers_generating_coefficients(self, logistic_problem):
        _, Z, w_true, mu = logistic_problem
        w, kl = project_onto_submodel(mu, Z, regularization=0.0)

        np.testing.assert_allclose(w, w_true, atol=1e-2)
        assert kl < 1e-5

    def test_kl_non_increasing_in_nested_submodels(self, logistic_problem):
        X, _, _, mu = logistic_problem
        kls = [
            project_onto_submodel(mu, submodel_design(X, cols), regularization=0.0)[1]
            for cols in ([], [0], [0, 1], [0, 1, 2])
        ]
        assert all(k >= 0 for k in kls)
        assert all(a >= b - 1e-8 for a, b in zip(kls, kls[1:]))

    def test_intercept_only_matches_mean(self, logistic_problem):
        X, _, _, mu = logistic_problem
        w, _ = project_onto_submodel(mu, submodel_design(X, []), regularization=0.0)
        assert expit(w[0]) == pytest.approx(mu.mean(), abs=1e-4)

    def test_regularization_shrinks(self, logistic_problem):
        _, Z, _, mu = logistic_problem
        w_free, _ = project_onto_submodel(mu, Z, regularization=0.0)
        w_ridge, _ = project_onto_submodel(mu, Z, regularization=1.0)
        assert np.abs(w_ridge[1:]).sum() < np.abs(w_free[1:]).sum()


def test_project_draws_rows_independent(logistic_problem):
    _, Z, _, mu = logistic_problem
    mu_draws = np.vstack([mu, np.clip(mu * 0.9, 0, 1)])

    W, kl = project_draws(mu_draws, Z, regularization=0.0)
    w1, kl1 = project_onto_submodel(mu_draws[1], Z, regularization=0.0)

    assert W.shape == (2, 4)
    np.testing.assert_allclose(W[1], w1, atol=1e-3)
    assert kl[1] == pytest.approx(kl1, abs=1e-6)


class TestThinning:
    def test_all_draws(self):
        np.testing.assert_array_equal(thin_draw_indices(10, None), np.arange(10))
        np.testing.assert_array_equal(thin_draw_indices(10, 50), np.arange(10))

    def test_evenly_spaced(self):
        idx = thin_draw_indices(1000, 40)
        assert len(idx) == 40
        assert idx[0] == 0 and idx[-1] == 999
        assert np.all(np.diff(idx) > 0)


class TestClusterDraws:
    def test_one_cluster_per_draw_when_enough(self):
        proba = np.random.default_rng(0).random((6, 10))
        labels, centroids = cluster_draws(proba, n_clusters=10, random_state=0)

        np.testing.assert_array_equal(labels, np.arange(6))
        np.testing.assert_array_equal(centroids, proba)

    def test_kmeans(self):
        rng = np.random.default_rng(0)
        proba = np.vstack([rng.normal(0.2, 0.01, (30, 8)), rng.normal(0.8, 0.01, (30, 8))])
        labels, centroids = cluster_draws(proba, n_clusters=2, random_state=0)

        assert centroids.shape == (2, 8)
        assert len(set(labels[:30])) == 1
        assert labels[0] != labels[-1]
        np.testing.assert_allclose(centroids[labels[0]], proba[:30].mean(axis=0))

    def test_seeded(self):
        proba = np.random.default_rng(1).random((50, 12))
        a, _ = cluster_draws(proba, 5, random_state=3)
        b, _ = cluster_draws(proba, 5, random_state=3)
        np.testing.assert_array_equal(a, b)


class TestProjectReference:
    def test_shapes(self, reference, cohort, config):
        sub = project_reference(reference, cohort, SMALL_FEATURES[:2], n_draws=20, config=config)

        assert isinstance(sub, ProjectedSubmodel)
        assert sub.features == tuple(SMALL_FEATURES[:2])
        assert sub.n_terms == 2
        assert sub.coefs.shape == (20, 2)
        assert sub.intercept.shape == (20,)
        assert len(sub.draw_indices) == 20
        assert np.all(sub.kl >= 0)

    def test_full_projection_close_to_reference(self, reference, cohort, config):
        """Projecting onto every feature reproduces the reference predictions."""
        sub = project_reference(
            reference, cohort, SMALL_FEATURES, n_draws=None, config=config.updated(
                projection={"regularization": 0.0}
            )
        )
        p_ref = reference.predict_proba(reference.design_matrix(cohort))
        p_sub = sub.predict_proba(sub.design_matrix(cohort))

        np.testing.assert_allclose(p_sub, p_ref, atol=1e-3)
        assert sub.kl.max() < 1e-4

    def test_submodel_predictions_use_selected_features_only(self, reference, cohort, config):
        sub = project_reference(reference, cohort, ["4s CS"], n_draws=10, config=config)
        X = sub.design_matrix(cohort)
        assert X.shape == (len(cohort), 1)

    @pytest.mark.parametrize(
        "features, match",
        [
            ([], "between"),
            (["4s CS", "4s CS"], "Duplicate"),
            (["not a feature"], "not in the reference"),
        ],
    )
    def test_invalid_features(self, reference, cohort, config, features, match):
        with pytest.raises(ValueError, match=match):
            project_reference(reference, cohort, features, n_draws=10, config=config)

    def test_summary(self, reference, cohort, config):
        sub = project_reference(reference, cohort, SMALL_FEATURES[:2], n_draws=20, config=config)
        table = sub.summary()
        assert list(table.index) == ["Intercept", *SMALL_FEATURES[:2]]
        assert list(table.columns) == ["mean", "sd", "q2.5", "q97.5"]


class TestProjectSelection:
    def test_explicit_size(self, reference, cohort, config):
        varsel = _varsel(["6s CS", "4s CS", "ug.ml_CS_urine"], suggested=1)
        sub = project_selection(reference, varsel, cohort, config, n_terms=2)
        assert sub.features == ("6s CS", "4s CS")

    def test_configured_size(self, reference, cohort, config):
        varsel = _varsel(["6s CS", "4s CS", "ug.ml_CS_urine"], suggested=1)
        sub = project_selection(
            reference, varsel, cohort, config.updated(projection={"n_terms": 3})
        )
        assert sub.n_terms == 3

    def test_suggested_size(self, reference, cohort, config):
        varsel = _varsel(["4s CS", "6s CS"], suggested=1)
        sub = project_selection(reference, varsel, cohort, config)
        assert sub.features == ("4s CS",)

    def test_suggested_zero_projects_one_feature(self, reference, cohort, config):
        varsel = _varsel(["4s CS", "6s CS"], suggested=0)
        sub = project_selection(reference, varsel, cohort, config)
        assert sub.n_terms == 1

    def test_no_size_available(self, reference, cohort, config):
        varsel = _varsel(["4s CS", "6s CS"], suggested=None)
        with pytest.raises(ValueError, match="did not suggest"):
            project_selection(reference, varsel, cohort, config)

    def test_size_beyond_ranking(self, reference, cohort, config):
        varsel = _varsel(["4s CS", "6s CS"], suggested=1)
        with pytest.raises(ValueError, match="between"):
            project_selection(reference, varsel, cohort, config, n_terms=3)
