"""Tests for metrics.thresholds module.

Coverage:
- Cutpoint selection under a specificity floor
- Binary metrics at a cutpoint
- Edge cases (single class, ties, unattainable floors)
"""

import numpy as np
import pytest

from gag_ml.exceptions import NotComputableError
from gag_ml.metrics.thresholds import (
    binary_metrics_at_threshold,
    cutpoint_metrics,
    threshold_for_specificity,
)

# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def perfect_separation():
    """Perfectly separated data (AUROC = 1.0)."""
    y = np.array([0, 0, 0, 1, 1, 1])
    p = np.array([0.1, 0.2, 0.3, 0.7, 0.8, 0.9])
    return y, p


@pytest.fixture
def noisy_scores():
    """Overlapping score distributions on the 0-100 scale."""
    rng = np.random.default_rng(0)
    y = np.array([0] * 150 + [1] * 100)
    p = np.concatenate([rng.normal(40, 10, 150), rng.normal(55, 10, 100)])
    return y, p


# ============================================================================
# threshold_for_specificity
# ============================================================================


class TestThresholdForSpecificity:
    def test_perfect_separation(self, perfect_separation):
        y, p = perfect_separation
        assert threshold_for_specificity(y, p, 0.94) == pytest.approx(0.7)

    @pytest.mark.parametrize("floor", [0.5, 0.8, 0.94, 0.99])
    def test_specificity_floor_respected(self, noisy_scores, floor):
        y, p = noisy_scores
        thr = threshold_for_specificity(y, p, floor)
        m = binary_metrics_at_threshold(y, p, thr)
        assert m["specificity"] >= floor

    def test_highest_sensitivity_wins(self, noisy_scores):
        """No lower cutpoint meets the floor with more sensitivity."""
        y, p = noisy_scores
        thr = threshold_for_specificity(y, p, 0.9)
        best = binary_metrics_at_threshold(y, p, thr)["sensitivity"]

        for candidate in np.unique(p):
            m = binary_metrics_at_threshold(y, p, candidate)
            if m["specificity"] >= 0.9:
                assert m["sensitivity"] <= best

    def test_floor_of_one_excludes_all_controls(self, noisy_scores):
        y, p = noisy_scores
        thr = threshold_for_specificity(y, p, 1.0)
        assert thr > p[y == 0].max()

    def test_single_class_not_computable(self):
        with pytest.raises(NotComputableError):
            threshold_for_specificity(np.ones(5), np.linspace(0, 1, 5), 0.9)


# ============================================================================
# binary_metrics_at_threshold
# ============================================================================


class TestBinaryMetrics:
    def test_counts(self):
        y = np.array([0, 0, 1, 1])
        p = np.array([0.1, 0.6, 0.4, 0.9])
        m = binary_metrics_at_threshold(y, p, 0.5)

        assert (m["tp"], m["fp"], m["tn"], m["fn"]) == (1, 1, 1, 1)
        assert m["sensitivity"] == m["specificity"] == m["ppv"] == m["npv"] == 0.5

    def test_ties_are_positive(self):
        y = np.array([0, 1])
        p = np.array([0.2, 0.5])
        m = binary_metrics_at_threshold(y, p, 0.5)
        assert m["tp"] == 1
        assert m["fp"] == 0

    def test_no_positive_calls(self):
        y = np.array([0, 1, 1])
        p = np.array([0.1, 0.2, 0.3])
        m = binary_metrics_at_threshold(y, p, 1.0)

        assert np.isnan(m["ppv"])
        assert m["sensitivity"] == 0.0
        assert m["specificity"] == 1.0


def test_cutpoint_metrics_on_score_scale(perfect_separation):
    y, p = perfect_separation
    m = cutpoint_metrics(y, 100 * p, min_specificity=0.94)

    assert m["threshold"] == pytest.approx(70.0)
    assert m["sensitivity"] == 1.0
    assert m["specificity"] == 1.0
