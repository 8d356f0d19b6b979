"""Utility functions for GAG-ML."""

from gag_ml.utils.cache import (
    CacheKey,
    DiskCache,
    MemoryCache,
    NullCache,
    build_cache,
    cached_stage,
    make_cache_key,
)
from gag_ml.utils.logging import log_section, setup_logger, verbosity_to_level
from gag_ml.utils.paths import ensure_dir, get_core_dir, get_run_dir
from gag_ml.utils.random import apply_seed_global, derive_seed, set_random_seed
from gag_ml.utils.serialization import load_joblib, load_json, save_joblib, save_json

__all__ = [
    "CacheKey",
    "DiskCache",
    "MemoryCache",
    "NullCache",
    "build_cache",
    "cached_stage",
    "make_cache_key",
    "setup_logger",
    "verbosity_to_level",
    "log_section",
    "ensure_dir",
    "get_run_dir",
    "get_core_dir",
    "set_random_seed",
    "apply_seed_global",
    "derive_seed",
    "save_joblib",
    "load_joblib",
    "save_json",
    "load_json",
]
