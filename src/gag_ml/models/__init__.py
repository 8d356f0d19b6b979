"""
Models package for GAG-ML.

This package contains:
- The Bayesian logistic regression reference model (PyMC)
- Projection of the reference posterior onto submodels
"""

from .projection import (
    ProjectedSubmodel,
    cluster_draws,
    project_draws,
    project_onto_submodel,
    project_reference,
    project_selection,
    thin_draw_indices,
)
from .reference import (
    ReferenceModel,
    bayes_r2,
    check_convergence,
    fit_reference_model,
)

__all__ = [
    # Reference model
    "ReferenceModel",
    "bayes_r2",
    "check_convergence",
    "fit_reference_model",
    # Projection
    "ProjectedSubmodel",
    "cluster_draws",
    "project_draws",
    "project_onto_submodel",
    "project_reference",
    "project_selection",
    "thin_draw_indices",
]
