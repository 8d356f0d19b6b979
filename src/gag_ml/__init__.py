"""
GAG-ML: Bayesian GAGome scores for bladder cancer detection

A reproducible pipeline that fits a Bayesian logistic reference model on
urine glycosaminoglycan profiles, selects a sparse submodel by
projection predictive inference, and evaluates both scores overall and per
clinical subgroup.
"""

# Enable pandas Copy-on-Write for pandas 3.0 compatibility and better memory efficiency
# See: https://pandas.pydata.org/docs/user_guide/copy_on_write.html
import pandas as pd

pd.options.mode.copy_on_write = True

__version__ = "0.1.0"

from gag_ml import (  # noqa: E402
    cli,
    config,
    data,
    evaluation,
    features,
    metrics,
    models,
    utils,
)

__all__ = [
    "__version__",
    "cli",
    "config",
    "data",
    "evaluation",
    "features",
    "metrics",
    "models",
    "utils",
]
