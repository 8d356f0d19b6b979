"""
Tests for per-subset evaluation of scores.
"""

import numpy as np
import pandas as pd
import pytest
from conftest import make_test_config

from gag_ml.data.io import encode_outcome
from gag_ml.data.schema import OVERALL_SUBSET, SUBGROUP_LABELS
from gag_ml.evaluation.evaluator import (
    analysis_subsets,
    evaluate_models,
    evaluate_score,
    metrics_to_frame,
)
from gag_ml.metrics.bootstrap import BOOTSTRAP_METRICS


@pytest.fixture
def scored(cohort):
    """Cohort with a noisy score that separates cases from controls."""
    rng = np.random.default_rng(0)
    is_case = (cohort["group"] == "case").to_numpy()
    score = np.where(is_case, 65.0, 35.0) + rng.normal(0, 12, len(cohort))
    return pd.DataFrame({"fullGAG": np.clip(score, 0, 100)}, index=cohort.index)


class TestAnalysisSubsets:
    def test_order_and_masks(self, cohort, config):
        y = encode_outcome(cohort, "group", "case", "control")
        subsets = analysis_subsets(cohort, y, config)

        names = list(subsets)
        assert names[0] == OVERALL_SUBSET
        assert names[1:] == [s for s in SUBGROUP_LABELS if s in names]
        assert subsets[OVERALL_SUBSET].all()
        for label in names[1:]:
            mask = subsets[label]
            assert mask[y == 0].all()
            assert (cohort.loc[mask & (y == 1), "stage"] == label).all()

    def test_configured_subgroups(self, cohort):
        config = make_test_config(data={"subgroups": ["MIBC"]})
        y = encode_outcome(cohort, "group", "case", "control")
        assert list(analysis_subsets(cohort, y, config)) == [OVERALL_SUBSET, "MIBC"]

    def test_no_subgroup_column(self, cohort, config):
        df = cohort.drop(columns=["stage"])
        y = encode_outcome(df, "group", "case", "control")
        assert list(analysis_subsets(df, y, config)) == [OVERALL_SUBSET]


class TestEvaluateScore:
    def test_single_class_not_computable(self, config):
        result = evaluate_score(np.zeros(10), np.arange(10.0), "fullGAG", "x", config)

        assert not result.computable
        assert result.reason
        assert np.isnan(result.auc)
        assert result.n_controls == 10

    def test_one_case_point_estimates_only(self, config):
        y = np.array([0] * 20 + [1])
        score = np.r_[np.linspace(0, 50, 20), 90.0]

        result = evaluate_score(y, score, "fullGAG", "x", config)

        assert result.computable
        assert result.auc == 1.0
        assert np.isnan(result.auc_ci[0])
        assert result.n_boot_valid == 0

    def test_missing_scores_counted(self, config):
        y = np.array([0, 0, 0, 1, 1, 1])
        score = np.array([1.0, 2.0, np.nan, 5.0, 6.0, 7.0])

        result = evaluate_score(y, score, "fullGAG", "x", config)

        assert result.n_missing == 1
        assert result.n_cases == 3
        assert result.n_controls == 2

    def test_confusion_counts(self, config):
        y = np.array([0] * 50 + [1] * 50)
        score = np.r_[np.linspace(0, 49, 50), np.linspace(30, 79, 50)]
        result = evaluate_score(y, score, "fullGAG", "x", config)

        assert result.tp + result.fn == 50
        assert result.tn + result.fp == 50
        assert result.specificity >= config.evaluation.min_specificity


class TestEvaluateModels:
    def test_one_result_per_model_and_subset(self, scored, cohort, config):
        scores = scored.assign(varselGAG=scored["fullGAG"] * 0.9)
        results = evaluate_models(scores, cohort, config)

        y = encode_outcome(cohort, "group", "case", "control")
        n_subsets = len(analysis_subsets(cohort, y, config))
        assert len(results) == 2 * n_subsets
        assert [r.model for r in results[:n_subsets]] == ["fullGAG"] * n_subsets

        overall = results[0]
        assert overall.subset == OVERALL_SUBSET
        assert overall.computable
        assert overall.auc > 0.8
        assert overall.auc_ci[0] <= overall.auc <= overall.auc_ci[1]

    def test_unknown_subgroup_not_computable(self, scored, cohort):
        config = make_test_config(data={"subgroups": ["MIBC", "CIS"]})
        results = evaluate_models(scored, cohort, config)

        by_subset = {r.subset: r for r in results}
        assert by_subset["MIBC"].computable
        assert not by_subset["CIS"].computable
        assert by_subset["CIS"].n_cases == 0

    def test_paired_bootstrap_across_models(self, scored, cohort, config):
        """A monotone transform of a score gets identical rank-based CIs."""
        scores = scored.assign(other=np.sqrt(scored["fullGAG"]))
        results = evaluate_models(scores, cohort, config.updated(data={"subgroups": []}))
        assert results[0].auc_ci == results[1].auc_ci

    def test_index_mismatch(self, scored, cohort, config):
        with pytest.raises(ValueError, match="same index"):
            evaluate_models(scored.reset_index(drop=True).iloc[::-1], cohort, config)

    def test_no_bootstrap(self, scored, cohort):
        config = make_test_config(evaluation={"n_boot": 0})
        result = evaluate_models(scored, cohort, config)[0]
        assert result.computable
        assert np.isnan(result.auc_ci[0])


def test_metrics_to_frame(scored, cohort, config):
    frame = metrics_to_frame(evaluate_models(scored, cohort, config))

    for name in BOOTSTRAP_METRICS:
        assert f"{name}_lower" in frame.columns
        assert f"{name}_upper" in frame.columns
        assert f"{name}_ci" not in frame.columns
    assert {"model", "subset", "computable", "auc", "ppv", "npv"} <= set(frame.columns)
