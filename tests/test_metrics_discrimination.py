"""
Tests for discrimination metrics.
"""

import numpy as np
import pytest

from gag_ml.exceptions import NotComputableError
from gag_ml.metrics.discrimination import (
    auroc,
    compute_discrimination_metrics,
)


def test_auroc_perfect():
    y = np.array([0, 0, 1, 1])
    assert auroc(y, np.array([0.1, 0.2, 0.8, 0.9])) == 1.0
    assert auroc(y, np.array([0.9, 0.8, 0.2, 0.1])) == 0.0


def test_auroc_ties_count_half():
    y = np.array([0, 1])
    assert auroc(y, np.array([0.5, 0.5])) == 0.5


def test_auroc_random_scores_near_half():
    rng = np.random.default_rng(1)
    y = rng.integers(0, 2, 5000)
    p = rng.random(5000)
    assert abs(auroc(y, p) - 0.5) < 0.05


@pytest.mark.parametrize("labels", [[1, 1, 1], [0, 0, 0], []])
def test_single_class_not_computable(labels):
    y = np.array(labels)
    with pytest.raises(NotComputableError):
        auroc(y, np.linspace(0, 1, len(y)))
    with pytest.raises(NotComputableError):
        compute_discrimination_metrics(y, np.linspace(0, 1, len(y)))


def test_not_computable_is_not_value_error():
    """Callers catch NotComputableError explicitly; it is not a ValueError."""
    assert not issubclass(NotComputableError, ValueError)


def test_compute_discrimination_metrics_keys():
    y = np.array([0, 0, 0, 1, 1, 1])
    p = np.array([10.0, 20.0, 30.0, 70.0, 80.0, 90.0])
    m = compute_discrimination_metrics(y, p, min_specificity=0.94)

    assert set(m) == {
        "auc",
        "cutpoint",
        "sensitivity",
        "specificity",
        "ppv",
        "npv",
        "tp",
        "fp",
        "tn",
        "fn",
    }
    assert m["auc"] == 1.0
    assert m["cutpoint"] == 70.0
    assert m["tp"] + m["fn"] == 3


def test_sensitivity_under_specificity_floor():
    y = np.array([0, 0, 0, 0, 1, 1, 1, 1])
    p = np.array([0.1, 0.2, 0.3, 0.65, 0.6, 0.7, 0.8, 0.9])
    # Excluding every control leaves 3 of 4 cases above the cutpoint
    assert compute_discrimination_metrics(y, p, min_specificity=1.0)["sensitivity"] == 0.75
    assert compute_discrimination_metrics(y, p, min_specificity=0.75)["sensitivity"] == 1.0
