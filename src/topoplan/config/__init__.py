"""Configuration module: load layered settings and module input values."""

from typing import Any, Dict
from ..model.resources import BuildConfig
from .manager import load_config, validate_config
from .paths import get_defaults_path, get_project_config_path, get_user_config_path
from .variables import collect_variables, load_var_file, parse_var


def build_config_from(config: Dict[str, Any]) -> BuildConfig:
    """Graph-build settings (default tags, project) from a loaded config."""
    tags = dict((config.get("tags") or {}).get("default") or {})
    project = config.get("project")
    if project:
        tags.setdefault("Project", str(project))
    return BuildConfig(default_tags=tags, project=project)


__all__ = [
    "build_config_from",
    "collect_variables",
    "get_defaults_path",
    "get_project_config_path",
    "get_user_config_path",
    "load_config",
    "load_var_file",
    "parse_var",
    "validate_config",
]
