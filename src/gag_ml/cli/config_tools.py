"""
Configuration tools: validate, show and diff run configurations.
"""

import logging
import sys
from pathlib import Path
from typing import Any

import yaml

from gag_ml.config.loader import config_to_dict, load_run_config
from gag_ml.config.validation import validate_run_config
from gag_ml.utils.logging import setup_logger, verbosity_to_level


def validate_config_file(
    config_file: Path | None,
    overrides: list[str] | None = None,
    strict: bool = False,
) -> tuple[bool, list[str], list[str]]:
    """
    Validate a configuration file.

    Schema errors (pydantic) are errors; semantic issues are warnings, or
    errors in strict mode.

    Returns:
        (is_valid, errors, warnings)
    """
    logger = logging.getLogger(__name__)
    errors: list[str] = []
    warnings: list[str] = []

    try:
        config = load_run_config(config_file=config_file, overrides=overrides)
    except (ValueError, FileNotFoundError, yaml.YAMLError) as e:
        errors.append(str(e))
        return False, errors, warnings

    issues = validate_run_config(config, strictness="off")
    if strict:
        errors.extend(issues)
    else:
        warnings.extend(issues)

    is_valid = not errors
    logger.debug(f"Validation finished: {len(errors)} error(s), {len(warnings)} warning(s)")
    return is_valid, errors, warnings


def diff_configs(config_file1: Path, config_file2: Path) -> dict[str, dict[str, Any]]:
    """
    Compare two resolved configurations (defaults applied to both).

    Returns:
        Dict with keys: only_in_first, only_in_second, different
    """
    first = config_to_dict(load_run_config(config_file=config_file1))
    second = config_to_dict(load_run_config(config_file=config_file2))

    result: dict[str, dict[str, Any]] = {
        "only_in_first": {},
        "only_in_second": {},
        "different": {},
    }
    _diff_dicts(first, second, "", result)
    return result


def _diff_dicts(d1: dict[str, Any], d2: dict[str, Any], prefix: str, result: dict):
    for key in sorted(set(d1) | set(d2)):
        path = f"{prefix}.{key}" if prefix else key
        if key not in d2:
            result["only_in_first"][path] = d1[key]
        elif key not in d1:
            result["only_in_second"][path] = d2[key]
        elif isinstance(d1[key], dict) and isinstance(d2[key], dict):
            _diff_dicts(d1[key], d2[key], path, result)
        elif d1[key] != d2[key]:
            result["different"][path] = {"first": d1[key], "second": d2[key]}


def run_config_validate(
    config_file: Path,
    overrides: list[str] | None = None,
    strict: bool = False,
    verbose: int = 0,
):
    """
    Run config validation command.

    Exits with status 0 when valid and 1 otherwise.
    """
    logger = setup_logger("gag_ml", level=verbosity_to_level(verbose))
    logger.info(f"Validating config: {config_file}")

    is_valid, errors, warnings = validate_config_file(config_file, overrides, strict=strict)

    print("\n" + "=" * 80)
    print(f"Validation Report: {Path(config_file).name}")
    print("=" * 80)

    if errors:
        print(f"\nERRORS ({len(errors)}):")
        for err in errors:
            print(f"  - {err}")

    if warnings:
        print(f"\nWARNINGS ({len(warnings)}):")
        for warn in warnings:
            print(f"  - {warn}")

    if is_valid:
        print("\n[OK] Config is valid")
    else:
        print("\n[FAIL] Config is invalid")
        if strict:
            print("  (strict mode: warnings treated as errors)")

    print("=" * 80)

    sys.exit(0 if is_valid else 1)


def run_config_show(config_file: Path | None = None, overrides: list[str] | None = None):
    """Print the resolved configuration as YAML."""
    config = load_run_config(config_file=config_file, overrides=overrides)
    print(yaml.safe_dump(config_to_dict(config), default_flow_style=False, sort_keys=False), end="")


def run_config_diff(
    config_file1: Path,
    config_file2: Path,
    output_file: Path | None = None,
    verbose: int = 0,
):
    """Print (and optionally save) the differences between two configs."""
    logger = setup_logger("gag_ml", level=verbosity_to_level(verbose))

    diff_result = diff_configs(config_file1, config_file2)

    lines = ["=" * 80, f"Config Diff: {Path(config_file1).name} vs {Path(config_file2).name}", "=" * 80]
    for section, title in (
        ("only_in_first", f"Only in {Path(config_file1).name}"),
        ("only_in_second", f"Only in {Path(config_file2).name}"),
    ):
        if diff_result[section]:
            lines.append(f"\n{title}:")
            for key, value in diff_result[section].items():
                lines.append(f"  {key}: {value}")

    if diff_result["different"]:
        lines.append("\nDifferent values:")
        for key, values in diff_result["different"].items():
            lines.append(f"  {key}:")
            lines.append(f"    first:  {values['first']}")
            lines.append(f"    second: {values['second']}")

    if not any(diff_result.values()):
        lines.append("\nConfigs are identical")
    lines.append("=" * 80)

    report = "\n".join(lines)
    print(report)

    if output_file is not None:
        output_file = Path(output_file)
        output_file.parent.mkdir(parents=True, exist_ok=True)
        output_file.write_text(report + "\n")
        logger.info(f"Saved diff report: {output_file}")
