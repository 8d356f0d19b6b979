"""
Tests for synthetic cohort generation.
"""

import numpy as np
import pandas as pd
import pytest

from gag_ml.data.schema import GAGOME_FEATURES, SUBGROUP_LABELS
from gag_ml.data.synthetic import feature_correlation, simulate_cohort


def test_shape_and_columns():
    df = simulate_cohort(n_cases=30, n_controls=20, seed=1)

    assert df.shape == (50, 2 + len(GAGOME_FEATURES))
    assert list(df.columns[:2]) == ["group", "stage"]
    assert list(df.columns[2:]) == list(GAGOME_FEATURES)
    assert (df["group"] == "case").sum() == 30
    assert (df["group"] == "control").sum() == 20


def test_stage_only_for_cases():
    df = simulate_cohort(n_cases=40, n_controls=40, seed=2)

    assert df.loc[df["group"] == "control", "stage"].isna().all()
    case_stages = df.loc[df["group"] == "case", "stage"]
    assert case_stages.notna().all()
    assert set(case_stages) <= set(SUBGROUP_LABELS)


def test_seed_determinism():
    a = simulate_cohort(25, 25, seed=9)
    b = simulate_cohort(25, 25, seed=9)
    c = simulate_cohort(25, 25, seed=10)

    pd.testing.assert_frame_equal(a, b)
    assert not a[GAGOME_FEATURES].equals(c[GAGOME_FEATURES])


def test_standardized():
    df = simulate_cohort(100, 100, seed=4)
    X = df[GAGOME_FEATURES].to_numpy()

    np.testing.assert_allclose(X.mean(axis=0), 0.0, atol=1e-10)
    np.testing.assert_allclose(X.std(axis=0, ddof=1), 1.0, atol=1e-10)


def test_signal_direction():
    """Cases are shifted up on total CS and down on 4s CS."""
    df = simulate_cohort(300, 300, seed=5)
    is_case = df["group"] == "case"

    assert df.loc[is_case, "ug.ml_CS_urine"].mean() > df.loc[~is_case, "ug.ml_CS_urine"].mean()
    assert df.loc[is_case, "4s CS"].mean() < df.loc[~is_case, "4s CS"].mean()


def test_missing_fraction():
    df = simulate_cohort(50, 50, seed=6, missing_frac=0.1)
    n_missing = df[GAGOME_FEATURES].isna().to_numpy().mean()

    assert 0.03 < n_missing < 0.2
    assert df["group"].notna().all()


def test_custom_features_and_signal():
    df = simulate_cohort(10, 10, seed=0, features=["a CS", "b HS"], signal={"a CS": 2.0})
    assert list(df.columns) == ["group", "stage", "a CS", "b HS"]


def test_invalid_arguments():
    with pytest.raises(ValueError, match="unknown features"):
        simulate_cohort(10, 10, signal={"not a feature": 1.0})
    with pytest.raises(ValueError, match="missing_frac"):
        simulate_cohort(10, 10, missing_frac=1.0)
    with pytest.raises(ValueError, match="align"):
        simulate_cohort(10, 10, subgroups=("A", "B"))


def test_feature_correlation_blocks():
    corr = feature_correlation(["ug.ml_CS_urine", "4s CS", "0s HS"], within=0.3)

    assert corr[0, 1] == pytest.approx(0.3)
    assert corr[0, 2] == 0.0
    np.testing.assert_allclose(np.diag(corr), 1.0)
