"""Layered configuration manager (defaults, user, project, explicit file)."""

import yaml
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
from .paths import get_defaults_path, get_project_config_path, get_user_config_path
from ..utils.errors import ConfigError
from ..utils.logging import get_logger

logger = get_logger("config.manager")


def load_config(config_path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """
    Load the full config tree.

    Later layers override earlier ones: packaged defaults, user config,
    project config, then config_path if given.

    Args:
        config_path: Optional explicit config file

    Returns:
        Configuration dictionary

    Raises:
        ConfigError: If a file is unreadable or the merged config is invalid
    """
    config = _read_yaml(get_defaults_path(), required=True)

    user_config_path = get_user_config_path()
    if user_config_path.exists():
        try:
            _deep_merge(config, _read_yaml(user_config_path))
        except ConfigError as e:
            logger.warning(f"Could not load user config from {user_config_path}: {e}")

    project_config_path = get_project_config_path()
    if project_config_path:
        _deep_merge(config, _read_yaml(project_config_path))
        logger.info(f"Loaded project config from {project_config_path}")

    if config_path is not None:
        path = Path(config_path)
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")
        _deep_merge(config, _read_yaml(path))
        logger.info(f"Loaded configuration from {path}")

    problems = validate_config(config)
    if problems:
        raise ConfigError(f"Invalid configuration: {'; '.join(problems)}")
    return config


def validate_config(config: Dict[str, Any]) -> List[str]:
    """Return every structural problem found in a merged config."""
    problems = []
    for section in ("state", "executor", "provider", "tags", "logging"):
        if not isinstance(config.get(section), dict):
            problems.append(f"{section} is not a dict")

    executor = config.get("executor")
    if isinstance(executor, dict):
        workers = executor.get("max_workers")
        if not isinstance(workers, int) or isinstance(workers, bool) or workers < 1:
            problems.append("executor.max_workers must be a positive integer")

    state = config.get("state")
    if isinstance(state, dict) and not isinstance(state.get("path"), str):
        problems.append("state.path must be a string")

    provider = config.get("provider")
    if isinstance(provider, dict):
        if not isinstance(provider.get("name"), str):
            problems.append("provider.name must be a string")
        if not isinstance(provider.get("options", {}), dict):
            problems.append("provider.options must be a dict")

    tags = config.get("tags")
    if isinstance(tags, dict):
        default_tags = tags.get("default") or {}
        if not isinstance(default_tags, dict) or not all(isinstance(v, str) for v in default_tags.values()):
            problems.append("tags.default must map tag names to strings")

    logging_config = config.get("logging")
    if isinstance(logging_config, dict):
        level = logging_config.get("level")
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            problems.append(f"logging.level must be a standard level name, got {level!r}")

    return problems


def _read_yaml(path: Path, required: bool = False) -> Dict[str, Any]:
    if not path.exists():
        if required:
            raise ConfigError(f"Config file not found: {path}")
        return {}
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in config file {path}: {e}")
    except OSError as e:
        raise ConfigError(f"Error loading config file {path}: {e}")
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a dictionary")
    return data


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> None:
    """Deep merge override into base (mutates base)."""
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
