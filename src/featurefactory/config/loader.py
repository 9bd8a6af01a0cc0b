"""
Configuration loading utilities.

Supports environment variable interpolation in declaration files.
A minimal file only needs a ``features`` list.
"""

import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from featurefactory.config.settings import FactoryConfig
from featurefactory.errors import DeclarationError


def _interpolate_env_vars(value: str) -> str:
    """
    Interpolate environment variables in string values.

    Supports ${VAR} and ${VAR:default} syntax.
    """
    pattern = r"\$\{([^}:]+)(?::([^}]*))?\}"

    def replacer(match: re.Match[str]) -> str:
        var_name = match.group(1)
        default = match.group(2)
        return os.environ.get(var_name, default if default is not None else "")

    return re.sub(pattern, replacer, value)


def _process_config_values(obj: Any) -> Any:
    """Recursively process config values for env var interpolation."""
    if isinstance(obj, str):
        return _interpolate_env_vars(obj)
    if isinstance(obj, dict):
        return {k: _process_config_values(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_process_config_values(item) for item in obj]
    return obj


def load_yaml(path: Path) -> dict[str, Any]:
    """Load a YAML file and process environment variables."""
    with path.open(encoding="utf-8") as f:
        data = yaml.safe_load(f)
    return _process_config_values(data) if data else {}


def load_factory_config(config_path: Path) -> FactoryConfig:
    """
    Load feature declarations from a YAML file.

    Example file:

        options:
          N/A: "_"
        mapping_store:
          directory: ${HOME}/.cache/features
        features:
          - name: length
            type: int
            range: 0 .. 5
          - name: first_char
            values: [a, b, c]

    Relative ``values_file`` entries resolve against the file's directory
    unless ``base_dir`` is given.

    Args:
        config_path: Path to the YAML file.

    Returns:
        Validated FactoryConfig.

    Raises:
        DeclarationError: If the file has an invalid structure.
    """
    config_path = Path(config_path)
    data = load_yaml(config_path)
    if not isinstance(data, dict):
        msg = f"Expected a mapping at the top of {config_path}, got {type(data).__name__}"
        raise DeclarationError(msg)

    data.setdefault("base_dir", str(config_path.parent.resolve()))
    if data.get("options") is None:
        data.pop("options", None)
    if data.get("features") is None:
        data["features"] = []

    try:
        return FactoryConfig.model_validate(data)
    except ValidationError as e:
        msg = f"Invalid configuration in {config_path}: {e}"
        raise DeclarationError(msg) from e
