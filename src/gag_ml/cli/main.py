"""
Main CLI entry point for the GAG-ML pipeline.

Provides subcommands:
  - gag run: Fit, select, project, score and evaluate
  - gag simulate: Write a synthetic cohort
  - gag config validate|show|diff: Configuration tools
"""

import click

from gag_ml import __version__


@click.group()
@click.version_option(version=__version__, prog_name="gag")
@click.option(
    "--verbose",
    "-v",
    count=True,
    help="Increase verbosity (can be repeated: -v, -vv)",
)
@click.pass_context
def cli(ctx, verbose):
    """
    GAG-ML: Bayesian GAGome scores for bladder cancer detection

    Fits a Bayesian logistic reference model on the urine GAGome,
    selects a sparse submodel by projection predictive inference, and
    evaluates both scores overall and per clinical subgroup.
    """
    from gag_ml.utils.random import apply_seed_global

    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose

    # Apply SEED_GLOBAL if set (for single-threaded reproducibility debugging)
    seed_applied = apply_seed_global()
    if seed_applied is not None:
        ctx.obj["seed_global"] = seed_applied


@cli.command("run")
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    help="Path to YAML configuration file",
)
@click.option(
    "--infile",
    type=click.Path(exists=True),
    default=None,
    help="Input table (.csv, .tsv or .txt); overrides data.infile",
)
@click.option(
    "--outdir",
    type=click.Path(),
    default=None,
    help="Results root directory; overrides output.outdir",
)
@click.option(
    "--run-name",
    default=None,
    help="Run directory name under outdir; overrides output.run_name",
)
@click.option(
    "--seed",
    type=int,
    default=None,
    help="Base random seed",
)
@click.option(
    "--n-terms",
    type=click.IntRange(min=1),
    default=None,
    help="Submodel size (default: projection.n_terms, then the suggested size)",
)
@click.option(
    "--no-cache",
    is_flag=True,
    help="Recompute every stage without reading or writing the cache",
)
@click.option(
    "--log-file",
    type=click.Path(),
    default=None,
    help="Also write the log to this file",
)
@click.option(
    "--override",
    multiple=True,
    help="Override config values (format: key=value or nested.key=value)",
)
@click.pass_context
def run(ctx, config, infile, outdir, run_name, seed, n_terms, no_cache, log_file, override):
    """Run the full pipeline on a GAGome table."""
    from gag_ml.cli.run_pipeline import run_gag

    cli_args = {
        "data.infile": infile,
        "output.outdir": outdir,
        "output.run_name": run_name,
        "seed": seed,
    }
    run_gag(
        config_file=config,
        cli_args=cli_args,
        overrides=list(override),
        no_cache=no_cache,
        n_terms=n_terms,
        log_file=log_file,
        verbose=ctx.obj.get("verbose", 0),
    )


@cli.command("simulate")
@click.option(
    "--outfile",
    "-o",
    type=click.Path(),
    required=True,
    help="Output table (.csv, .tsv or .txt)",
)
@click.option("--n-cases", type=click.IntRange(min=1), default=100, show_default=True)
@click.option("--n-controls", type=click.IntRange(min=1), default=100, show_default=True)
@click.option("--seed", type=int, default=0, show_default=True)
@click.option(
    "--missing-frac",
    type=click.FloatRange(0.0, 1.0, max_open=True),
    default=0.0,
    show_default=True,
    help="Fraction of feature values set missing at random",
)
@click.pass_context
def simulate(ctx, outfile, n_cases, n_controls, seed, missing_frac):
    """Write a synthetic cohort with a sparse true signal."""
    from gag_ml.cli.simulate import run_simulate

    path = run_simulate(
        outfile=outfile,
        n_cases=n_cases,
        n_controls=n_controls,
        seed=seed,
        missing_frac=missing_frac,
        verbose=ctx.obj.get("verbose", 0),
    )
    click.echo(f"Wrote synthetic cohort: {path}")


@cli.group("config")
@click.pass_context
def config_group(ctx):
    """Configuration management tools (validate, show, diff)."""
    pass


@config_group.command("validate")
@click.argument("config_file", type=click.Path(exists=True))
@click.option(
    "--override",
    multiple=True,
    help="Override config values (format: key=value or nested.key=value)",
)
@click.option(
    "--strict",
    is_flag=True,
    help="Treat warnings as errors",
)
@click.pass_context
def config_validate(ctx, config_file, override, strict):
    """Validate configuration file and report issues."""
    from pathlib import Path

    from gag_ml.cli.config_tools import run_config_validate

    run_config_validate(
        config_file=Path(config_file),
        overrides=list(override),
        strict=strict,
        verbose=ctx.obj.get("verbose", 0),
    )


@config_group.command("show")
@click.argument("config_file", type=click.Path(exists=True), required=False)
@click.option(
    "--override",
    multiple=True,
    help="Override config values (format: key=value or nested.key=value)",
)
def config_show(config_file, override):
    """Print the resolved configuration (defaults, file, overrides) as YAML."""
    from gag_ml.cli.config_tools import run_config_show

    try:
        run_config_show(config_file=config_file, overrides=list(override))
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        raise click.Abort() from e


@config_group.command("diff")
@click.argument("config_file1", type=click.Path(exists=True))
@click.argument("config_file2", type=click.Path(exists=True))
@click.option(
    "--output",
    "-o",
    type=click.Path(),
    help="Output file for diff report",
)
@click.pass_context
def config_diff(ctx, config_file1, config_file2, output):
    """Compare two configuration files."""
    from pathlib import Path

    from gag_ml.cli.config_tools import run_config_diff

    run_config_diff(
        config_file1=Path(config_file1),
        config_file2=Path(config_file2),
        output_file=Path(output) if output else None,
        verbose=ctx.obj.get("verbose", 0),
    )


def main():
    """Entry point for console script."""
    cli(obj={})


if __name__ == "__main__":
    main()
