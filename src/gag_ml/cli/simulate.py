"""
Write a synthetic GAGome cohort to disk.
"""

from pathlib import Path

from gag_ml.data.io import log_data_summary, write_gagome_file
from gag_ml.data.schema import GAGOME_FEATURES
from gag_ml.data.synthetic import simulate_cohort
from gag_ml.utils.logging import setup_logger, verbosity_to_level


def run_simulate(
    outfile: str | Path,
    n_cases: int = 100,
    n_controls: int = 100,
    seed: int = 0,
    missing_frac: float = 0.0,
    verbose: int = 0,
) -> Path:
    """
    Simulate a cohort and write it with the delimiter implied by *outfile*.

    Returns:
        Path of the written file
    """
    logger = setup_logger("gag_ml", level=verbosity_to_level(verbose))
    logger.info(
        f"Simulating {n_cases} case(s) and {n_controls} control(s) (seed={seed})"
    )
    df = simulate_cohort(
        n_cases=n_cases, n_controls=n_controls, seed=seed, missing_frac=missing_frac
    )
    log_data_summary(df, list(GAGOME_FEATURES))
    return write_gagome_file(df, outfile)
