"""
Path utilities for standardized output directories.

Layout of a run directory::

    results/
      <run_name>/
        core/          metrics tables, run settings
        model/         reference summary, selection path, submodel coefficients
        preds/         per-subject scores
"""

from pathlib import Path


def ensure_dir(path: str | Path) -> Path:
    """Create directory if it doesn't exist, return Path object."""
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_run_dir(base_dir: str | Path, run_name: str, suffix: str = "") -> Path:
    """
    Standardized run directory: ``{base_dir}/{run_name}[__{suffix}]``.

    Example:
        >>> get_run_dir("results", "gagome", suffix="seed1234").as_posix()
        'results/gagome__seed1234'
    """
    name = f"{run_name}__{suffix}" if suffix else run_name
    return Path(base_dir) / name


def get_core_dir(run_dir: str | Path) -> Path:
    """Get core results directory."""
    return ensure_dir(Path(run_dir) / "core")


def get_model_dir(run_dir: str | Path) -> Path:
    """Get model reports directory."""
    return ensure_dir(Path(run_dir) / "model")


def get_preds_dir(run_dir: str | Path) -> Path:
    """Get predictions directory."""
    return ensure_dir(Path(run_dir) / "preds")
