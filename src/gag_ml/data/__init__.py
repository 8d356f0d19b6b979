"""Data handling and schema definitions."""

from gag_ml.data.io import (
    ModelData,
    complete_case_mask,
    encode_outcome,
    prepare_model_data,
    read_gagome_file,
    write_gagome_file,
)
from gag_ml.data.schema import (
    CASE_LABEL,
    CONTROL_LABEL,
    FULL_SCORE,
    GAGOME_FEATURES,
    GROUP_COL,
    OVERALL_SUBSET,
    SUBGROUP_COL,
    SUBGROUP_LABELS,
    SUBMODEL_SCORE,
    feature_kind,
)
from gag_ml.data.synthetic import simulate_cohort

__all__ = [
    # Schema
    "GROUP_COL",
    "SUBGROUP_COL",
    "CASE_LABEL",
    "CONTROL_LABEL",
    "SUBGROUP_LABELS",
    "GAGOME_FEATURES",
    "FULL_SCORE",
    "SUBMODEL_SCORE",
    "OVERALL_SUBSET",
    "feature_kind",
    # I/O
    "ModelData",
    "read_gagome_file",
    "write_gagome_file",
    "encode_outcome",
    "complete_case_mask",
    "prepare_model_data",
    # Synthetic
    "simulate_cohort",
]
