"""
Data I/O utilities for the GAG-ML pipeline.

This module reads delimited GAGome tables and checks that they satisfy the
modelling requirements: feature columns present and numeric, a binary
outcome with both classes, and complete feature values on modelled rows.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

from gag_ml.data.schema import (
    CASE_LABEL,
    CONTROL_LABEL,
    GROUP_COL,
    SUBGROUP_COL,
)
from gag_ml.exceptions import DataValidationError

logger = logging.getLogger(__name__)

DELIMITERS_BY_SUFFIX = {
    ".csv": ",",
    ".tsv": "\t",
    ".txt": "\t",
}


@dataclass(frozen=True)
class ModelData:
    """Design matrix and encoded outcome for the modelled rows."""

    X: np.ndarray
    y: np.ndarray
    index: pd.Index
    features: tuple[str, ...]

    @property
    def n_obs(self) -> int:
        return self.X.shape[0]

    @property
    def n_cases(self) -> int:
        return int(self.y.sum())

    @property
    def n_controls(self) -> int:
        return int(self.n_obs - self.y.sum())


def infer_delimiter(filepath: str | Path, delimiter: str | None = None) -> str:
    """
    Pick the field delimiter for a data file.

    An explicit delimiter always wins; otherwise ``,`` for ``.csv`` and tab
    for ``.tsv``/``.txt``.

    Raises:
        ValueError: If no delimiter is given and the extension is unknown

    Example:
        >>> infer_delimiter("cohort.tsv")
        '\\t'
    """
    if delimiter:
        return delimiter
    suffix = Path(filepath).suffix.lower()
    if suffix not in DELIMITERS_BY_SUFFIX:
        raise ValueError(
            f"Cannot infer delimiter for '{filepath}' (extension '{suffix}'). "
            f"Expected one of {sorted(DELIMITERS_BY_SUFFIX)} or an explicit delimiter."
        )
    return DELIMITERS_BY_SUFFIX[suffix]


def read_gagome_file(
    filepath: str | Path,
    *,
    delimiter: str | None = None,
    features: list[str] | tuple[str, ...] | None = None,
    group_col: str = GROUP_COL,
    validate: bool = True,
) -> pd.DataFrame:
    """
    Read a delimited GAGome table.

    Args:
        filepath: Path to the data file
        delimiter: Field delimiter (default: inferred from the extension)
        features: Feature columns to validate (default: no feature check)
        group_col: Outcome column
        validate: Whether to check columns and dtypes after loading

    Returns:
        DataFrame with the file contents

    Raises:
        FileNotFoundError: If filepath does not exist
        DataValidationError: If validate=True and the table is unusable
    """
    filepath = Path(filepath)
    if not filepath.exists():
        raise FileNotFoundError(f"File not found: {filepath}")

    sep = infer_delimiter(filepath, delimiter)
    logger.info(f"Reading data: {filepath}")
    df = pd.read_csv(filepath, sep=sep)
    logger.info(f"Loaded {len(df):,} rows × {len(df.columns):,} columns")

    if validate:
        validate_required_columns(df, features or [], group_col=group_col)
        if features:
            check_numeric_features(df, features)

    return df


def validate_required_columns(
    df: pd.DataFrame,
    features: list[str] | tuple[str, ...],
    group_col: str = GROUP_COL,
) -> None:
    """
    Validate that the outcome column and every feature column are present.

    Raises:
        DataValidationError: If required columns are missing
    """
    required = [group_col, *features]
    missing = [col for col in required if col not in df.columns]
    if missing:
        raise DataValidationError(
            f"Required columns missing: {missing}. Available columns: {list(df.columns)}"
        )
    logger.debug(f"Validated {len(required)} required columns")


def check_numeric_features(df: pd.DataFrame, features: list[str] | tuple[str, ...]) -> None:
    """
    Check that feature columns have a numeric dtype.

    Raises:
        DataValidationError: If any feature column is not numeric
    """
    non_numeric = [
        col
        for col in features
        if not pd.api.types.is_numeric_dtype(df[col]) or pd.api.types.is_bool_dtype(df[col])
    ]
    if non_numeric:
        raise DataValidationError(
            f"Feature columns must be numeric; non-numeric: {non_numeric} "
            f"(dtypes: {[str(df[c].dtype) for c in non_numeric]})"
        )


def encode_outcome(
    df: pd.DataFrame,
    group_col: str = GROUP_COL,
    positive_label: str = CASE_LABEL,
    negative_label: str = CONTROL_LABEL,
    require_both: bool = True,
) -> np.ndarray:
    """
    Encode the outcome column to 0/1 (1 = positive label).

    Args:
        df: Observation table
        group_col: Outcome column
        positive_label: Label encoded as 1
        negative_label: Label encoded as 0
        require_both: Require both classes to be present

    Returns:
        Integer array of shape (n_rows,)

    Raises:
        DataValidationError: If the outcome has missing values, unknown labels,
            or (with require_both) a single class

    Example:
        >>> df = pd.DataFrame({"group": ["case", "control", "case"]})
        >>> encode_outcome(df).tolist()
        [1, 0, 1]
    """
    if group_col not in df.columns:
        raise DataValidationError(f"Outcome column '{group_col}' not found")

    labels = df[group_col]
    if labels.isna().any():
        raise DataValidationError(
            f"Outcome column '{group_col}' has {int(labels.isna().sum())} missing values"
        )

    unknown = sorted(set(labels.astype(str)) - {positive_label, negative_label})
    if unknown:
        raise DataValidationError(
            f"Outcome must be binary ({positive_label!r}/{negative_label!r}); "
            f"found unexpected labels {unknown}"
        )

    y = (labels.astype(str) == positive_label).to_numpy(dtype=int)
    if require_both and (y.sum() == 0 or y.sum() == len(y)):
        only = positive_label if y.sum() else negative_label
        raise DataValidationError(f"Outcome must contain both classes; found only {only!r}")
    return y


def complete_case_mask(df: pd.DataFrame, features: list[str] | tuple[str, ...]) -> pd.Series:
    """Boolean mask of rows with every feature value present."""
    return df[list(features)].notna().all(axis=1)


def prepare_model_data(
    df: pd.DataFrame,
    features: list[str] | tuple[str, ...],
    group_col: str = GROUP_COL,
    positive_label: str = CASE_LABEL,
    negative_label: str = CONTROL_LABEL,
) -> ModelData:
    """
    Validate a table for model fitting and extract the design matrix.

    Every row is a modelled row: missing feature values are an error, not
    silently dropped. Use :func:`complete_case_mask` to subset first.

    Raises:
        DataValidationError: On empty feature list, missing or non-numeric
            columns, missing values, or a non-binary outcome
    """
    features = tuple(features)
    if not features:
        raise DataValidationError("Feature list is empty")

    validate_required_columns(df, features, group_col=group_col)
    check_numeric_features(df, features)

    n_missing = df[list(features)].isna().sum()
    n_missing = n_missing[n_missing > 0]
    if len(n_missing):
        raise DataValidationError(
            f"Missing feature values in modelled rows: {n_missing.to_dict()}"
        )

    y = encode_outcome(df, group_col, positive_label, negative_label)
    X = df[list(features)].to_numpy(dtype=float)
    if not np.isfinite(X).all():
        raise DataValidationError("Feature values must be finite")

    return ModelData(X=X, y=y, index=df.index, features=features)


def get_data_stats(
    df: pd.DataFrame,
    features: list[str] | tuple[str, ...],
    group_col: str = GROUP_COL,
    subgroup_col: str = SUBGROUP_COL,
) -> dict[str, Any]:
    """
    Compute summary statistics for loaded data.

    Returns:
        Dictionary with n_rows, n_features, n_complete, outcome_counts,
        subgroup_counts and missing_features (only features with gaps)
    """
    present = [f for f in features if f in df.columns]
    stats: dict[str, Any] = {
        "n_rows": len(df),
        "n_features": len(present),
        "n_complete": int(complete_case_mask(df, present).sum()) if present else len(df),
    }

    if group_col in df.columns:
        stats["outcome_counts"] = df[group_col].value_counts().to_dict()

    if subgroup_col in df.columns:
        stats["subgroup_counts"] = df[subgroup_col].dropna().value_counts().to_dict()

    missing = {col: int(df[col].isna().sum()) for col in present if df[col].isna().any()}
    if missing:
        stats["missing_features"] = missing

    return stats


def log_data_summary(
    df: pd.DataFrame,
    features: list[str] | tuple[str, ...],
    group_col: str = GROUP_COL,
    subgroup_col: str = SUBGROUP_COL,
) -> None:
    """Log summary of loaded data to logger."""
    stats = get_data_stats(df, features, group_col, subgroup_col)
    logger.info("Data summary:")
    logger.info(f"  Rows: {stats['n_rows']:,}")
    logger.info(f"  Features: {stats['n_features']:,}")
    logger.info(f"  Complete cases: {stats['n_complete']:,}")

    if "outcome_counts" in stats:
        logger.info("  Outcome distribution:")
        for label, count in sorted(stats["outcome_counts"].items(), key=lambda kv: str(kv[0])):
            logger.info(f"    {label}: {count:,}")

    if "subgroup_counts" in stats:
        logger.info("  Subgroups:")
        for label, count in sorted(stats["subgroup_counts"].items(), key=lambda kv: str(kv[0])):
            logger.info(f"    {label}: {count:,}")

    if "missing_features" in stats:
        logger.info("  Missing feature values:")
        for col, count in stats["missing_features"].items():
            logger.info(f"    {col}: {count:,} ({100*count/stats['n_rows']:.1f}%)")


def write_gagome_file(df: pd.DataFrame, filepath: str | Path, delimiter: str | None = None) -> Path:
    """Write a table with the delimiter implied by the extension."""
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(filepath, sep=infer_delimiter(filepath, delimiter), index=False)
    logger.info(f"Wrote {len(df):,} rows to {filepath}")
    return filepath
