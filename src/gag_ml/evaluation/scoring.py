"""
GAG scores from fitted models.

A score is 100 times the posterior-averaged predicted probability of being a
case, so it lies in [0, 100] and is monotone in the mean linear predictor for
a fixed set of draws. Subjects with a missing value in any feature a model
uses get a missing score; nothing is imputed.
"""

from __future__ import annotations

import logging

import numpy as np
import pandas as pd

from ..data.schema import FULL_SCORE, SUBMODEL_SCORE
from ..models.projection import ProjectedSubmodel
from ..models.reference import ReferenceModel

logger = logging.getLogger(__name__)

SCORE_SCALE = 100.0


def _score(model: ReferenceModel | ProjectedSubmodel, df: pd.DataFrame, name: str) -> pd.Series:
    X = model.design_matrix(df)
    complete = np.isfinite(X).all(axis=1)
    scores = np.full(len(df), np.nan)
    if complete.any():
        scores[complete] = SCORE_SCALE * model.predict_proba(X[complete])

    n_missing = int((~complete).sum())
    if n_missing:
        logger.info(f"{name}: {n_missing} subject(s) with missing features scored as NaN")
    return pd.Series(scores, index=df.index, name=name)


def score_reference(reference: ReferenceModel, df: pd.DataFrame) -> pd.Series:
    """
    Score subjects with the reference model.

    Examples:
        >>> s = score_reference(reference, df)  # doctest: +SKIP
        >>> s.between(0, 100).all()  # doctest: +SKIP
        True
    """
    return _score(reference, df, FULL_SCORE)


def score_submodel(submodel: ProjectedSubmodel, df: pd.DataFrame) -> pd.Series:
    """Score subjects with the projected submodel (only its features are required)."""
    return _score(submodel, df, SUBMODEL_SCORE)


def compute_scores(
    reference: ReferenceModel, submodel: ProjectedSubmodel | None, df: pd.DataFrame
) -> pd.DataFrame:
    """
    Scores of both models, one column per model, indexed like *df*.

    The submodel column is omitted when *submodel* is None.
    """
    columns = [score_reference(reference, df)]
    if submodel is not None:
        columns.append(score_submodel(submodel, df))
    return pd.concat(columns, axis=1)
