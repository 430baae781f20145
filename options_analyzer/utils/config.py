"""YAML parameter loading.

Each component builds itself from its own section through ``from_dict``;
this module only reads the file.
"""

from pathlib import Path
from typing import Any, Dict

import yaml

from .error_handling import ConfigurationError
from .logging_config import get_logger

logger = get_logger("config")

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[2] / "config" / "default_params.yaml"


def load_params(path: str | Path | None = None) -> Dict[str, Any]:
    """Load analyzer parameters from a YAML file.

    Args:
        path: Path to YAML file. Defaults to config/default_params.yaml.

    Returns:
        Parameter dictionary (empty sections are returned as empty dicts)

    Raises:
        ConfigurationError: If the file is missing, unparsable, or not a mapping
    """
    config_path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    if not config_path.exists():
        raise ConfigurationError(f"Config file not found: {config_path}")

    try:
        with open(config_path) as f:
            params = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

    if params is None:
        params = {}
    if not isinstance(params, dict):
        raise ConfigurationError(f"Config root must be a mapping, got {type(params).__name__}")

    logger.debug("Loaded parameters from %s: sections=%s", config_path, sorted(params))
    return params


def section(params: Dict[str, Any], name: str) -> Dict[str, Any]:
    """Return a config section, treating a missing or null section as empty."""
    value = params.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigurationError(f"Config section '{name}' must be a mapping")
    return value
