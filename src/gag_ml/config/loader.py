"""
Configuration loading and merging logic.

Supports:
1. Loading from YAML files (with ``_base`` inheritance)
2. CLI argument overrides (dot-notation: e.g., sampler.draws=2000)
3. Validation into an immutable RunConfig
"""

import copy
import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from gag_ml.config.defaults import (
    DEFAULT_CACHE_CONFIG,
    DEFAULT_DATA_CONFIG,
    DEFAULT_EVALUATION_CONFIG,
    DEFAULT_OUTPUT_CONFIG,
    DEFAULT_PRIOR_CONFIG,
    DEFAULT_PROJECTION_CONFIG,
    DEFAULT_SAMPLER_CONFIG,
    DEFAULT_SEED,
    DEFAULT_SELECTION_CONFIG,
)
from gag_ml.config.schema import RunConfig

logger = logging.getLogger(__name__)

# Keys that should always be lists
LIST_KEYS = {"features", "subgroups"}

# Keys that should always be strings (not parsed as int/float/bool)
STRING_KEYS = {"run_name", "positive_label", "negative_label", "delimiter"}

# Keys holding filesystem paths, resolved relative to the config file
PATH_KEYS = {"infile", "outdir", "dir"}


def _deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge *overlay* into *base* (overlay wins on leaf conflicts).

    Returns a new dict; neither input is mutated.
    """
    merged = base.copy()
    for key, value in overlay.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def default_config_dict() -> dict[str, Any]:
    """Nested dict of all defaults (fresh copies)."""
    return {
        "seed": DEFAULT_SEED,
        "data": {**DEFAULT_DATA_CONFIG, "features": list(DEFAULT_DATA_CONFIG["features"])},
        "prior": DEFAULT_PRIOR_CONFIG.copy(),
        "sampler": DEFAULT_SAMPLER_CONFIG.copy(),
        "selection": DEFAULT_SELECTION_CONFIG.copy(),
        "projection": DEFAULT_PROJECTION_CONFIG.copy(),
        "evaluation": DEFAULT_EVALUATION_CONFIG.copy(),
        "cache": DEFAULT_CACHE_CONFIG.copy(),
        "output": DEFAULT_OUTPUT_CONFIG.copy(),
    }


def load_yaml(file_path: str | Path) -> dict[str, Any]:
    """Load configuration from YAML file.

    Supports a ``_base`` key: if present, the referenced YAML file is loaded
    first and the current file's values are deep-merged on top. The ``_base``
    path is resolved relative to the directory containing *file_path*.
    Bases can be chained (a base may itself declare ``_base``).
    """
    file_path = Path(file_path).resolve()
    if not file_path.exists():
        raise FileNotFoundError(f"Config file not found: {file_path}")

    with open(file_path) as f:
        config_dict = yaml.safe_load(f) or {}

    if not isinstance(config_dict, dict):
        raise ValueError(f"Config file must contain a mapping at top level: {file_path}")

    base_ref = config_dict.pop("_base", None)
    if base_ref is not None:
        base_path = (file_path.parent / base_ref).resolve()
        base_dict = load_yaml(base_path)
        config_dict = _deep_merge(base_dict, config_dict)

    return config_dict


def resolve_paths_relative_to_config(
    config_dict: dict[str, Any], config_file: Path
) -> dict[str, Any]:
    """
    Resolve relative path values (``infile``, ``outdir``, ``dir``) against the
    directory of the config file.

    Returns:
        New config dict with relative paths made absolute
    """
    config_dir = Path(config_file).resolve().parent

    def resolve(d: dict[str, Any]) -> dict[str, Any]:
        out = {}
        for key, value in d.items():
            if isinstance(value, dict):
                out[key] = resolve(value)
            elif key in PATH_KEYS and isinstance(value, str) and not Path(value).is_absolute():
                out[key] = str(config_dir / value)
            else:
                out[key] = value
        return out

    return resolve(config_dict)


def apply_overrides(config_dict: dict[str, Any], overrides: list[str]) -> dict[str, Any]:
    """
    Apply CLI overrides to config dictionary.

    Supports dot-notation for nested keys:
        sampler.draws=2000 -> config_dict['sampler']['draws'] = 2000
        data.features=a,b -> config_dict['data']['features'] = ['a', 'b']

    Args:
        config_dict: Base configuration dictionary
        overrides: List of "key=value" or "nested.key=value" strings

    Returns:
        Updated config dictionary (new object)
    """
    result = copy.deepcopy(config_dict)

    for override in overrides:
        if "=" not in override:
            raise ValueError(f"Invalid override format: {override}. Expected 'key=value'")

        key_path, value_str = override.split("=", 1)
        keys = key_path.strip().split(".")

        target = result
        for key in keys[:-1]:
            if not isinstance(target.get(key), dict):
                target[key] = {}
            target = target[key]

        final_key = keys[-1]
        target[final_key] = _parse_value(
            value_str.strip(),
            force_list=final_key in LIST_KEYS,
            force_string=final_key in STRING_KEYS,
        )

    return result


def _parse_value(value_str: str, force_list: bool = False, force_string: bool = False) -> Any:
    """
    Parse string value to appropriate Python type.

    Args:
        value_str: String to parse
        force_list: If True, always return a list (comma-separated values; list
            items are kept as strings because list-valued keys are names)
        force_string: If True, always return a string (skip type parsing)
    """
    if force_string:
        return value_str

    if force_list:
        if value_str.lower() in ("none", "null"):
            return None
        return [v.strip() for v in value_str.split(",") if v.strip()]

    lowered = value_str.lower()
    if lowered in ("true", "yes"):
        return True
    if lowered in ("false", "no"):
        return False
    if lowered in ("none", "null"):
        return None

    try:
        return int(value_str)
    except ValueError:
        pass

    try:
        return float(value_str)
    except ValueError:
        pass

    return value_str


def load_run_config(
    config_file: str | Path | None = None,
    overrides: list[str] | None = None,
    cli_args: dict[str, Any] | None = None,
) -> RunConfig:
    """
    Load the run configuration from defaults, a YAML file, CLI arguments and
    dot-notation overrides (in increasing precedence).

    Args:
        config_file: Path to YAML config file (optional)
        overrides: List of CLI overrides in "key=value" format (optional)
        cli_args: Mapping of dotted keys to values from explicit CLI options;
            None values are ignored

    Returns:
        Validated, immutable RunConfig

    Raises:
        ValueError: If the merged configuration is invalid
    """
    config_dict = default_config_dict()

    if config_file is not None:
        config_file_path = Path(config_file)
        file_config = load_yaml(config_file_path)
        file_config = resolve_paths_relative_to_config(file_config, config_file_path)
        config_dict = _deep_merge(config_dict, file_config)

    if cli_args:
        for dotted, value in cli_args.items():
            if value is None:
                continue
            keys = dotted.split(".")
            target = config_dict
            for key in keys[:-1]:
                target = target.setdefault(key, {})
            target[keys[-1]] = value

    if overrides:
        config_dict = apply_overrides(config_dict, overrides)

    try:
        return RunConfig.model_validate(config_dict)
    except ValidationError as e:
        raise ValueError(f"Invalid run configuration:\n{e}") from e


def config_to_dict(config: RunConfig) -> dict[str, Any]:
    """Plain, YAML-serializable dict of a RunConfig."""
    return config.model_dump(mode="json")


def save_config(config: RunConfig, output_path: str | Path):
    """Save resolved configuration to YAML file."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, "w") as f:
        yaml.safe_dump(config_to_dict(config), f, default_flow_style=False, sort_keys=False)


def print_config_summary(config: RunConfig, logger: logging.Logger | None = None):
    """Log (or print) a human-readable configuration summary."""
    lines = ["=" * 80, "Configuration Summary", "=" * 80]

    def format_dict(d, indent=0):
        result = []
        for key, value in d.items():
            if isinstance(value, dict):
                result.append(f"{'  ' * indent}{key}:")
                result.extend(format_dict(value, indent + 1))
            else:
                result.append(f"{'  ' * indent}{key}: {value}")
        return result

    lines.extend(format_dict(config_to_dict(config)))
    lines.append("=" * 80)
    summary = "\n".join(lines)

    if logger:
        logger.info(summary)
    else:
        print(summary)
