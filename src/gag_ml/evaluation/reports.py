"""
ResultsWriter: Structured output directory management and results serialization.

Provides:
- OutputDirectories: Directory structure creation and path management
- ResultsWriter: High-level API for saving summaries, scores and metrics

Design:
- Centralized path management (no scattered os.path.join calls)
- Consistent file naming conventions
- Plain CSV/JSON outputs; no rendering
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pandas as pd

from ..utils.paths import get_core_dir, get_model_dir, get_preds_dir
from ..utils.serialization import save_json

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OutputDirectories:
    """
    Structured output directory paths.

    Attributes:
        root: Run directory
        core: Metrics tables and run settings
        model: Reference summary, selection path, submodel coefficients
        preds: Per-subject scores
    """

    root: str
    core: str
    model: str
    preds: str

    @classmethod
    def create(cls, root: str | Path) -> "OutputDirectories":
        """
        Create the output directory structure under *root*.

        Raises:
            OSError: If directory creation fails
        """
        root_path = Path(root)
        dirs = cls(
            root=str(root_path),
            core=str(get_core_dir(root_path)),
            model=str(get_model_dir(root_path)),
            preds=str(get_preds_dir(root_path)),
        )
        logger.debug(f"Created output structure at: {root_path}")
        return dirs

    def get_path(self, category: str, filename: str) -> str:
        """
        Construct full path for a file in a specific category.

        Raises:
            ValueError: If category is invalid
        """
        if category not in ("root", "core", "model", "preds"):
            raise ValueError(f"Unknown output category: {category}")
        return os.path.join(getattr(self, category), filename)


class ResultsWriter:
    """
    High-level API for writing pipeline results.

    Usage:
        writer = ResultsWriter(OutputDirectories.create("results/gagome"))
        writer.save_metrics(metrics_df)
        writer.save_scores(scores_df)
    """

    def __init__(self, output_dirs: OutputDirectories):
        self.dirs = output_dirs
        self._written: list[str] = []

    def _csv(self, df: pd.DataFrame, category: str, filename: str, index: bool) -> str:
        path = self.dirs.get_path(category, filename)
        df.to_csv(path, index=index)
        self._written.append(path)
        logger.info(f"Saved {filename}: {path}")
        return path

    # ========== Settings ==========

    def save_run_settings(self, settings: dict[str, Any]) -> str:
        """Save resolved configuration and run metadata to core/run_settings.json."""
        path = self.dirs.get_path("core", "run_settings.json")
        save_json(settings, path)
        self._written.append(path)
        logger.info(f"Saved run settings: {path}")
        return path

    # ========== Models ==========

    def save_reference_summary(self, summary: pd.DataFrame) -> str:
        """Posterior summary of the reference model (one row per parameter)."""
        return self._csv(summary, "model", "reference_summary.csv", index=True)

    def save_varsel_path(self, path_df: pd.DataFrame) -> str:
        """Per-size performance table of the forward search."""
        return self._csv(path_df, "model", "varsel_path.csv", index=False)

    def save_submodel_coefficients(self, summary: pd.DataFrame) -> str:
        """Projected coefficient summary of the selected submodel."""
        return self._csv(summary, "model", "submodel_coefficients.csv", index=True)

    # ========== Scores and metrics ==========

    def save_scores(self, scores: pd.DataFrame) -> str:
        """Per-subject scores, indexed like the input table."""
        return self._csv(scores, "preds", "scores.csv", index=True)

    def save_metrics(self, metrics: pd.DataFrame) -> tuple[str, str]:
        """Metrics table as core/metrics.csv and core/metrics.json (records)."""
        csv_path = self._csv(metrics, "core", "metrics.csv", index=False)
        json_path = self.dirs.get_path("core", "metrics.json")
        records = metrics.astype(object).where(metrics.notna(), None).to_dict(orient="records")
        save_json(records, json_path)
        self._written.append(json_path)
        return csv_path, json_path

    def summarize_outputs(self) -> list[str]:
        """Paths written so far, in order."""
        return list(self._written)
