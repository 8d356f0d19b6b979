"""
Tests for PSIS-LOO helpers.
"""

import numpy as np
import pytest
from scipy.special import logsumexp

from gag_ml.features.loo import (
    elpd_difference,
    group_log_weights,
    loo_pointwise,
    psis_log_weights,
    relative_efficiency,
    report_pareto_k,
    summarize_elpd,
)


@pytest.fixture
def loglik():
    rng = np.random.default_rng(0)
    return -0.7 + 0.05 * rng.standard_normal((400, 12))


class TestPsisLogWeights:
    def test_normalized_per_subject(self, loglik):
        lw, k = psis_log_weights(loglik)

        assert lw.shape == loglik.shape
        assert k.shape == (loglik.shape[1],)
        np.testing.assert_allclose(np.exp(logsumexp(lw, axis=0)), 1.0)

    def test_well_behaved_draws_have_small_k(self, loglik):
        _, k = psis_log_weights(loglik, reff=0.9)
        assert np.all(k < 0.7)


class TestGroupLogWeights:
    def test_sums_member_weights(self):
        lw = np.log(np.full((4, 2), 0.25))
        grouped = group_log_weights(lw, np.array([0, 0, 1, -1]), n_groups=2)

        np.testing.assert_allclose(np.exp(grouped[:, 0]), [2 / 3, 1 / 3])
        np.testing.assert_allclose(np.exp(logsumexp(grouped, axis=0)), 1.0)

    def test_empty_group_has_zero_weight(self):
        lw = np.log(np.full((3, 1), 1 / 3))
        grouped = group_log_weights(lw, np.array([0, 0, 0]), n_groups=2)
        assert grouped[1, 0] == -np.inf
        assert grouped[0, 0] == pytest.approx(0.0)


def test_loo_pointwise_uniform_weights():
    loglik = np.log(np.array([[0.2, 0.9], [0.4, 0.7]]))
    lw = np.log(np.full((2, 2), 0.5))
    np.testing.assert_allclose(np.exp(loo_pointwise(lw, loglik)), [0.3, 0.8])


class TestSummaries:
    def test_summarize_elpd(self):
        s = summarize_elpd(np.array([1.0, 2.0, 3.0]))
        assert s.elpd == 6.0
        assert s.se == pytest.approx(np.sqrt(3.0))
        assert s.n_valid == 3

    def test_summarize_elpd_skips_non_finite(self):
        s = summarize_elpd(np.array([1.0, np.nan, 3.0, -np.inf]))
        assert s.elpd == 4.0
        assert s.n_valid == 2

    def test_summarize_elpd_mask(self):
        s = summarize_elpd(np.array([1.0, 2.0, 3.0]), mask=np.array([True, False, True]))
        assert s.elpd == 4.0

    def test_single_value_has_no_se(self):
        assert np.isnan(summarize_elpd(np.array([1.0])).se)

    def test_elpd_difference(self):
        a = np.array([1.0, 2.0, 4.0])
        b = np.array([1.0, 1.0, 1.0])
        diff, se = elpd_difference(a, b, np.ones(3, dtype=bool))
        assert diff == 4.0
        assert se == pytest.approx(np.sqrt(3 * np.var([0.0, 1.0, 3.0], ddof=1)))

    def test_identical_models_differ_by_zero(self):
        a = np.array([-0.5, -0.2, -1.0])
        assert elpd_difference(a, a, np.ones(3, dtype=bool)) == (0.0, 0.0)


def test_relative_efficiency():
    assert relative_efficiency({"a": 500.0, "b": 300.0}, 1000) == pytest.approx(0.4)
    assert relative_efficiency({"a": 5000.0}, 1000) == 1.0
    assert relative_efficiency({"a": np.nan}, 1000) == 1.0
    assert relative_efficiency({}, 1000) == 1.0


def test_report_pareto_k():
    assert report_pareto_k(np.array([0.1, 0.2]), 0.7) == 0
    assert report_pareto_k(np.array([0.1, 0.9, 1.2]), 0.7) == 2
