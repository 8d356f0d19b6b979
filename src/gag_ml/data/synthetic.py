"""
Synthetic GAGome cohorts.

Generates case/control tables that mimic the structure of the clinical data:
standardized features, correlation within each glycosaminoglycan class, a
sparse true signal, and case subgroups by stage/grade.
"""

import logging
from collections.abc import Mapping, Sequence

import numpy as np
import pandas as pd

from gag_ml.data.schema import (
    CASE_LABEL,
    CONTROL_LABEL,
    GAGOME_FEATURES,
    GROUP_COL,
    SUBGROUP_COL,
    SUBGROUP_LABELS,
)

logger = logging.getLogger(__name__)

# Mean shift of cases relative to controls, in control standard deviations
DEFAULT_SIGNAL: dict[str, float] = {
    "ug.ml_CS_urine": 1.2,
    "4s CS": -0.9,
    "0s HS_conc": 0.5,
}

DEFAULT_SUBGROUP_PROBS = (0.45, 0.35, 0.20)

# Cases in later subgroups carry a stronger signal
DEFAULT_SUBGROUP_STRENGTH = (0.8, 1.0, 1.3)


def _gag_class(feature: str) -> str:
    for gag in ("CS", "HS", "HA"):
        if gag in feature:
            return gag
    return "other"


def feature_correlation(features: Sequence[str], within: float = 0.4) -> np.ndarray:
    """Block correlation matrix: *within* inside a GAG class, 0 across."""
    classes = [_gag_class(f) for f in features]
    n = len(features)
    corr = np.eye(n)
    for i in range(n):
        for j in range(i + 1, n):
            if classes[i] == classes[j]:
                corr[i, j] = corr[j, i] = within
    return corr


def simulate_cohort(
    n_cases: int = 100,
    n_controls: int = 100,
    seed: int = 0,
    features: Sequence[str] | None = None,
    signal: Mapping[str, float] | None = None,
    within_corr: float = 0.4,
    subgroups: Sequence[str] = tuple(SUBGROUP_LABELS),
    subgroup_probs: Sequence[float] = DEFAULT_SUBGROUP_PROBS,
    subgroup_strength: Sequence[float] = DEFAULT_SUBGROUP_STRENGTH,
    missing_frac: float = 0.0,
    standardize: bool = True,
) -> pd.DataFrame:
    """
    Simulate a standardized case/control GAGome table.

    Args:
        n_cases: Number of cases
        n_controls: Number of controls
        seed: Random seed
        features: Feature columns (default: the 17 GAGome features)
        signal: Case mean shift per feature; unlisted features carry no signal
        within_corr: Correlation between features of the same GAG class
        subgroups: Case subgroup labels
        subgroup_probs: Probability of each subgroup among cases
        subgroup_strength: Multiplier of the signal per subgroup
        missing_frac: Fraction of feature cells set to NaN (0 = complete table)
        standardize: Center and scale each feature over the whole table

    Returns:
        DataFrame with ``group``, ``stage`` and feature columns; controls have
        no stage. Rows are shuffled.

    Example:
        >>> df = simulate_cohort(10, 10, seed=1)
        >>> df.shape
        (20, 19)
    """
    if n_cases < 0 or n_controls < 0:
        raise ValueError("n_cases and n_controls must be non-negative")
    if not 0.0 <= missing_frac < 1.0:
        raise ValueError(f"missing_frac must be in [0, 1), got {missing_frac}")
    if len(subgroups) != len(subgroup_probs) or len(subgroups) != len(subgroup_strength):
        raise ValueError("subgroups, subgroup_probs and subgroup_strength must align")

    features = list(features) if features is not None else list(GAGOME_FEATURES)
    signal = dict(DEFAULT_SIGNAL if signal is None else signal)
    unknown = sorted(set(signal) - set(features))
    if unknown:
        raise ValueError(f"Signal defined for unknown features: {unknown}")

    rng = np.random.default_rng(seed)
    n = n_cases + n_controls
    corr = feature_correlation(features, within=within_corr)
    X = rng.multivariate_normal(np.zeros(len(features)), corr, size=n)

    probs = np.asarray(subgroup_probs, dtype=float)
    stage_idx = rng.choice(len(subgroups), size=n_cases, p=probs / probs.sum())
    strength = np.asarray(subgroup_strength, dtype=float)[stage_idx]
    shift = np.array([signal.get(f, 0.0) for f in features])
    X[:n_cases] += strength[:, None] * shift[None, :]

    if standardize and n > 1:
        X = (X - X.mean(axis=0)) / X.std(axis=0, ddof=1)

    df = pd.DataFrame(X, columns=features)
    if missing_frac > 0:
        mask = rng.random(X.shape) < missing_frac
        df = df.mask(mask)

    stage = [subgroups[i] for i in stage_idx] + [None] * n_controls
    df.insert(0, SUBGROUP_COL, pd.Series(stage, dtype="object"))
    df.insert(0, GROUP_COL, [CASE_LABEL] * n_cases + [CONTROL_LABEL] * n_controls)

    order = rng.permutation(n)
    df = df.iloc[order].reset_index(drop=True)

    logger.info(
        f"Simulated cohort: {n_cases} cases, {n_controls} controls, "
        f"{len(features)} features ({len(signal)} with signal)"
    )
    return df
