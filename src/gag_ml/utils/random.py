"""
Random seed management for reproducibility.

Every stage derives its own seed from the run seed so that re-running a single
stage (e.g. after a cache hit upstream) draws exactly the same random numbers
as a full run. An optional SEED_GLOBAL environment variable seeds the legacy
global RNGs for debugging.
"""

import hashlib
import logging
import os
import random

import numpy as np

logger = logging.getLogger(__name__)

MAX_SEED = 2**32 - 1


def set_random_seed(seed: int):
    """
    Set random seed for Python's and NumPy's global RNGs.

    Args:
        seed: Random seed value
    """
    random.seed(seed)
    np.random.seed(seed)


def apply_seed_global() -> int | None:
    """
    Check SEED_GLOBAL environment variable and apply global seeding if set.

    Returns:
        The seed value applied, or None if SEED_GLOBAL was not set or invalid.

    Examples:
        >>> import os
        >>> os.environ["SEED_GLOBAL"] = "42"
        >>> apply_seed_global()
        42
        >>> del os.environ["SEED_GLOBAL"]
    """
    seed_str = os.environ.get("SEED_GLOBAL")
    if seed_str is None:
        return None

    seed_str = seed_str.strip()
    if not seed_str:
        return None

    try:
        seed = int(seed_str)
    except ValueError:
        logger.warning(
            "SEED_GLOBAL environment variable has non-integer value '%s'; ignoring.",
            seed_str,
        )
        return None

    if seed < 0 or seed > MAX_SEED:
        logger.warning("SEED_GLOBAL=%d out of valid range [0, 2^32-1]; ignoring.", seed)
        return None

    set_random_seed(seed)
    logger.info("SEED_GLOBAL=%d applied (global RNG seeded for reproducibility).", seed)
    return seed


def derive_seed(base_seed: int, stage: str) -> int:
    """
    Derive a deterministic per-stage seed from the run seed.

    The derivation is a hash of ``(base_seed, stage)`` so it does not depend on
    the order in which stages run.

    Args:
        base_seed: Run-level seed
        stage: Stage name (e.g. "reference", "selection", "bootstrap")

    Returns:
        Seed in [0, 2^32 - 1]
    """
    digest = hashlib.sha256(f"{int(base_seed)}:{stage}".encode()).hexdigest()
    return int(digest[:8], 16) % MAX_SEED
