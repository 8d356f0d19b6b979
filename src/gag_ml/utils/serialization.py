"""
Serialization utilities for fitted models and results.
"""

import json
import logging
import warnings
from importlib import metadata
from pathlib import Path
from typing import Any

import joblib

logger = logging.getLogger(__name__)


def library_versions() -> dict[str, str]:
    """Versions of the numerical stack that produced an artifact."""
    import numpy as np
    import pandas as pd
    import scipy
    import sklearn

    return {
        "numpy": np.__version__,
        "pandas": pd.__version__,
        "scipy": scipy.__version__,
        "sklearn": sklearn.__version__,
        # read from package metadata so recording a version does not import PyMC
        "pymc": metadata.version("pymc"),
        "arviz": metadata.version("arviz"),
    }


def save_joblib(obj: Any, path: str | Path, compress: int = 3):
    """Save object using joblib."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    joblib.dump(obj, path, compress=compress)


def load_joblib(path: str | Path, check_versions: bool = True) -> Any:
    """
    Load object using joblib with optional version checking.

    Args:
        path: Path to joblib file
        check_versions: If True and the object is a bundle carrying a "versions"
            dict, warn when library versions differ from the current environment

    Returns:
        Loaded object

    Warns:
        UserWarning if versions mismatch and check_versions=True
    """
    obj = joblib.load(path)

    if check_versions and isinstance(obj, dict) and "versions" in obj:
        saved_versions = obj["versions"] or {}
        current_versions = library_versions()

        mismatches = []
        for lib, saved_ver in saved_versions.items():
            current_ver = current_versions.get(lib)
            if current_ver and saved_ver != current_ver:
                mismatches.append(f"{lib}: saved={saved_ver}, current={current_ver}")

        if mismatches:
            warnings.warn(
                f"Artifact version mismatch in {Path(path).name}:\n"
                + "\n".join(f"  - {m}" for m in mismatches)
                + "\nResults may differ from the run that produced it.",
                UserWarning,
                stacklevel=2,
            )

    return obj


def save_json(obj: Any, path: str | Path, indent: int = 2):
    """Save object as JSON."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w") as f:
        json.dump(obj, f, indent=indent, default=str)


def load_json(path: str | Path) -> Any:
    """Load JSON file."""
    with open(path) as f:
        return json.load(f)
