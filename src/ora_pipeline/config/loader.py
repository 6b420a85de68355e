"""YAML configuration loading and CLI overrides."""

from pathlib import Path
from typing import Any

import pydantic_yaml

from .schema import PipelineConfig


def load_config(config_path: Path | str) -> PipelineConfig:
    """
    Parse and validate a pipeline YAML file.

    Relative paths inside the file are kept as written and resolve against
    the working directory of the process that uses them.

    Args:
        config_path: YAML configuration file

    Returns:
        Validated PipelineConfig

    Raises:
        FileNotFoundError: If the file does not exist
        pydantic.ValidationError: If the content does not validate
    """
    config_path = Path(config_path)
    if not config_path.is_file():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    return pydantic_yaml.parse_yaml_raw_as(
        PipelineConfig, config_path.read_text(encoding="utf-8")
    )


def _set_dotted(config_dict: dict[str, Any], key: str, value: Any) -> None:
    """Assign value at a dotted key such as "thresholds.p_cutoff"."""
    *sections, field = key.split(".")
    target = config_dict
    for section in sections:
        if not isinstance(target.get(section), dict):
            raise KeyError(f"Unknown config section in override '{key}': {section}")
        target = target[section]
    target[field] = value


def load_config_with_overrides(
    config_path: Path | str,
    overrides: dict[str, Any],
) -> PipelineConfig:
    """
    Load a YAML config, apply overrides, and validate the result again.

    The CLI uses this for flags such as --gene-list and --max-workers.

    Args:
        config_path: YAML configuration file
        overrides: Dotted key -> value. None values are skipped so unset
            CLI options leave the file's value in place.

    Returns:
        Validated PipelineConfig with overrides applied

    Raises:
        FileNotFoundError: If the file does not exist
        KeyError: If an override names a section that does not exist
        pydantic.ValidationError: If the overridden config does not validate
    """
    config_dict = load_config(config_path).model_dump()

    for key, value in overrides.items():
        if value is not None:
            _set_dotted(config_dict, key, value)

    return PipelineConfig.model_validate(config_dict)
