"""
Discrimination performance of the GAG scores, overall and per subgroup.

For every score column and analysis subset the evaluator reports AUC, the
cutpoint maximising sensitivity under the specificity floor, the operating
point at that cutpoint, and stratified-bootstrap percentile CIs.

Analysis subsets:
- ``overall``: every subject
- one per clinical subgroup: the subgroup's cases plus all controls

Rows are selected by mask; scores are never recomputed per subset.
"""

import logging
from dataclasses import asdict, dataclass

import numpy as np
import pandas as pd

from ..config import RunConfig
from ..data.io import encode_outcome
from ..data.schema import OVERALL_SUBSET, SUBGROUP_LABELS
from ..exceptions import NotComputableError
from ..metrics.bootstrap import BOOTSTRAP_METRICS, bootstrap_cutpoint_metrics
from ..metrics.discrimination import compute_discrimination_metrics
from ..utils.random import derive_seed

logger = logging.getLogger(__name__)

NAN_CI = (np.nan, np.nan)


@dataclass(frozen=True)
class MetricsResult:
    """Discrimination metrics of one score on one analysis subset."""

    model: str
    subset: str
    computable: bool
    reason: str | None
    n_cases: int
    n_controls: int
    n_missing: int
    auc: float = np.nan
    auc_ci: tuple[float, float] = NAN_CI
    cutpoint: float = np.nan
    cutpoint_ci: tuple[float, float] = NAN_CI
    sensitivity: float = np.nan
    sensitivity_ci: tuple[float, float] = NAN_CI
    specificity: float = np.nan
    specificity_ci: tuple[float, float] = NAN_CI
    ppv: float = np.nan
    npv: float = np.nan
    tp: int | None = None
    fp: int | None = None
    tn: int | None = None
    fn: int | None = None
    n_boot_valid: int = 0

    def to_dict(self) -> dict:
        """Flat record: each ``<metric>_ci`` becomes ``<metric>_lower``/``<metric>_upper``."""
        record = asdict(self)
        for name in BOOTSTRAP_METRICS:
            lower, upper = record.pop(f"{name}_ci")
            record[f"{name}_lower"] = lower
            record[f"{name}_upper"] = upper
        return record


def analysis_subsets(
    df: pd.DataFrame, y: np.ndarray, config: RunConfig
) -> dict[str, np.ndarray]:
    """
    Boolean row masks of the analysis subsets, in reporting order.

    Subgroups come from ``data.subgroups`` when set; otherwise every subgroup
    label observed among cases (known clinical labels first).
    """
    data_cfg = config.data
    is_case = y == 1
    is_control = y == 0
    subsets = {OVERALL_SUBSET: np.ones(len(df), dtype=bool)}

    if data_cfg.subgroups is not None:
        labels = list(data_cfg.subgroups)
    elif data_cfg.subgroup_col in df.columns:
        observed = set(df.loc[is_case, data_cfg.subgroup_col].dropna().astype(str))
        known = [s for s in SUBGROUP_LABELS if s in observed]
        labels = known + sorted(observed - set(known))
    else:
        labels = []

    if labels and data_cfg.subgroup_col not in df.columns:
        raise KeyError(f"Subgroup column '{data_cfg.subgroup_col}' not found")

    for label in labels:
        in_group = (df[data_cfg.subgroup_col].astype(str) == label).to_numpy()
        subsets[label] = (is_case & in_group) | is_control
    return subsets


def evaluate_score(
    y: np.ndarray,
    score: np.ndarray,
    model: str,
    subset: str,
    config: RunConfig,
) -> MetricsResult:
    """
    Metrics of one score vector on one subset (already masked).

    Missing scores are dropped and counted. A single-class subset is
    reported as not computable; with fewer than 2 cases or 2 controls the
    point estimates are reported without CIs.
    """
    eval_cfg = config.evaluation
    y = np.asarray(y).astype(int)
    score = np.asarray(score, dtype=float)

    present = np.isfinite(score)
    n_missing = int((~present).sum())
    y, score = y[present], score[present]
    n_cases, n_controls = int(y.sum()), int(len(y) - y.sum())
    counts = {"n_cases": n_cases, "n_controls": n_controls, "n_missing": n_missing}

    try:
        point = compute_discrimination_metrics(y, score, eval_cfg.min_specificity)
    except NotComputableError as e:
        logger.warning(f"{model} / {subset}: not computable ({e})")
        return MetricsResult(
            model=model, subset=subset, computable=False, reason=str(e), **counts
        )

    cis = {name: NAN_CI for name in BOOTSTRAP_METRICS}
    n_valid = 0
    if eval_cfg.n_boot > 0:
        if n_cases >= 2 and n_controls >= 2:
            cis, n_valid = bootstrap_cutpoint_metrics(
                y,
                score,
                min_specificity=eval_cfg.min_specificity,
                n_boot=eval_cfg.n_boot,
                seed=derive_seed(config.seed, f"bootstrap:{subset}"),
                min_valid_frac=eval_cfg.min_valid_frac,
                ci_level=eval_cfg.ci_level,
            )
        else:
            logger.warning(
                f"{model} / {subset}: {n_cases} case(s), {n_controls} control(s); "
                "bootstrap CIs need at least 2 of each, reporting point estimates only"
            )

    return MetricsResult(
        model=model,
        subset=subset,
        computable=True,
        reason=None,
        **counts,
        auc=point["auc"],
        auc_ci=cis["auc"],
        cutpoint=point["cutpoint"],
        cutpoint_ci=cis["cutpoint"],
        sensitivity=point["sensitivity"],
        sensitivity_ci=cis["sensitivity"],
        specificity=point["specificity"],
        specificity_ci=cis["specificity"],
        ppv=point["ppv"],
        npv=point["npv"],
        tp=point["tp"],
        fp=point["fp"],
        tn=point["tn"],
        fn=point["fn"],
        n_boot_valid=n_valid,
    )


def evaluate_models(
    scores: pd.DataFrame, df: pd.DataFrame, config: RunConfig
) -> list[MetricsResult]:
    """
    Evaluate every score column on every analysis subset.

    Args:
        scores: One column per model, indexed like *df*
        df: Observation table (outcome and subgroup columns)
        config: Run configuration (data labels, evaluation section, seed)

    Returns:
        One MetricsResult per (model, subset), models in column order
    """
    if not scores.index.equals(df.index):
        raise ValueError("scores and df must share the same index")

    data_cfg = config.data
    y = encode_outcome(
        df,
        data_cfg.group_col,
        data_cfg.positive_label,
        data_cfg.negative_label,
        require_both=False,
    )
    subsets = analysis_subsets(df, y, config)

    results = []
    for model in scores.columns:
        values = scores[model].to_numpy(dtype=float)
        for subset, mask in subsets.items():
            result = evaluate_score(y[mask], values[mask], str(model), subset, config)
            if result.computable:
                logger.info(
                    f"{model} / {subset}: AUC={result.auc:.3f} "
                    f"[{result.auc_ci[0]:.3f}, {result.auc_ci[1]:.3f}], "
                    f"cutpoint={result.cutpoint:.2f}, sens={result.sensitivity:.3f}, "
                    f"spec={result.specificity:.3f} (n={result.n_cases}+{result.n_controls})"
                )
            results.append(result)
    return results


def metrics_to_frame(results: list[MetricsResult]) -> pd.DataFrame:
    """One row per (model, subset) with CI bounds as separate columns."""
    return pd.DataFrame([r.to_dict() for r in results])
