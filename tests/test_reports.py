"""
Tests for the results writer.
"""

import json
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from gag_ml.evaluation.reports import OutputDirectories, ResultsWriter


@pytest.fixture
def writer(tmp_path):
    return ResultsWriter(OutputDirectories.create(tmp_path / "run"))


def test_directory_layout(tmp_path):
    dirs = OutputDirectories.create(tmp_path / "run")

    for sub in ("core", "model", "preds"):
        assert Path(getattr(dirs, sub)).is_dir()
    assert dirs.get_path("core", "metrics.csv").endswith("core/metrics.csv")
    with pytest.raises(ValueError, match="Unknown output category"):
        dirs.get_path("plots", "roc.png")


def test_save_tables(writer):
    summary = pd.DataFrame({"mean": [0.1, 1.2]}, index=pd.Index(["Intercept", "a"], name="parameter"))
    writer.save_reference_summary(summary)
    writer.save_varsel_path(pd.DataFrame({"size": [0, 1], "feature": [None, "a"]}))
    writer.save_submodel_coefficients(summary)
    scores_path = writer.save_scores(pd.DataFrame({"fullGAG": [12.5, 80.0]}, index=[10, 11]))

    loaded = pd.read_csv(scores_path, index_col=0)
    assert list(loaded.index) == [10, 11]
    names = [Path(p).name for p in writer.summarize_outputs()]
    assert names == [
        "reference_summary.csv",
        "varsel_path.csv",
        "submodel_coefficients.csv",
        "scores.csv",
    ]


def test_save_metrics_json_uses_null_for_nan(writer):
    metrics = pd.DataFrame(
        {"model": ["fullGAG", "fullGAG"], "subset": ["overall", "MIBC"], "auc": [0.81, np.nan]}
    )
    csv_path, json_path = writer.save_metrics(metrics)

    assert Path(csv_path).exists()
    with open(json_path) as f:
        records = json.load(f)
    assert records[0]["auc"] == pytest.approx(0.81)
    assert records[1]["auc"] is None


def test_save_run_settings(writer):
    path = writer.save_run_settings({"seed": 1, "ranking": ["a", "b"]})
    with open(path) as f:
        assert json.load(f)["ranking"] == ["a", "b"]
