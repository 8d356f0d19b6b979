"""
Data schema definitions and constants.

Defines column names, labels and the GAGome feature panel used throughout the
pipeline.

Feature naming convention (pre-standardized values):
    - ``ug.ml_<GAG>_urine``: total concentration of a glycosaminoglycan class
    - ``<fraction>_conc``: concentration of a disaccharide mass fraction
    - ``<fraction>``: percentage mass fraction (bare name)
"""

# ============================================================================
# Column Names
# ============================================================================

# Outcome column (case/control)
GROUP_COL = "group"

# Clinical subgroup column (stage/grade, cases only)
SUBGROUP_COL = "stage"

# ============================================================================
# Class Labels
# ============================================================================

CASE_LABEL = "case"
CONTROL_LABEL = "control"

# Clinical subgroups of bladder cancer cases
SUBGROUP_LABELS = ["LG NMIBC", "HG NMIBC", "MIBC"]

# ============================================================================
# GAGome Feature Panel
# ============================================================================

TOTAL_SUFFIX = "_urine"
TOTAL_PREFIX = "ug.ml_"
CONC_SUFFIX = "_conc"

TOTAL_FEATURES = [
    "ug.ml_CS_urine",
    "ug.ml_HS_urine",
    "ug.ml_HA_urine",
]

CONC_FEATURES = [
    "0s CS_conc",
    "2s CS_conc",
    "4s CS_conc",
    "6s CS_conc",
    "4s6s CS_conc",
    "0s HS_conc",
    "NS HS_conc",
]

PERCENT_FEATURES = [
    "0s CS",
    "4s CS",
    "6s CS",
    "2s6s CS",
    "0s HS",
    "NS HS",
    "Charge CS",
]

GAGOME_FEATURES = TOTAL_FEATURES + CONC_FEATURES + PERCENT_FEATURES

# ============================================================================
# Score names
# ============================================================================

FULL_SCORE = "fullGAG"
SUBMODEL_SCORE = "varselGAG"

# Analysis subset covering every subject
OVERALL_SUBSET = "overall"


def feature_kind(name: str) -> str:
    """
    Classify a feature column by the naming convention.

    Returns:
        "total", "concentration" or "percentage"

    Examples:
        >>> feature_kind("ug.ml_CS_urine")
        'total'
        >>> feature_kind("4s CS_conc")
        'concentration'
        >>> feature_kind("4s CS")
        'percentage'
    """
    if name.startswith(TOTAL_PREFIX) and name.endswith(TOTAL_SUFFIX):
        return "total"
    if name.endswith(CONC_SUFFIX):
        return "concentration"
    return "percentage"
