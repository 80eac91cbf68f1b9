"""Load module input values from var files and KEY=VALUE pairs."""

import json
import yaml
from pathlib import Path
from typing import Any, Dict, Iterable, Optional
from ..utils.errors import ConfigError
from ..utils.logging import get_logger

logger = get_logger("config.variables")


def load_var_file(var_file: str) -> Dict[str, Any]:
    """
    Load input values from a YAML or JSON file.
    
    Args:
        var_file: Path to the file; ``.json`` files are parsed as JSON
        
    Returns:
        Mapping of input name to value
        
    Raises:
        ConfigError: If the file is missing or not a mapping
    """
    path = Path(var_file)
    
    if not path.exists():
        raise ConfigError(f"Var file not found: {var_file}")
    
    if not path.is_file():
        raise ConfigError(f"Path is not a file: {var_file}")
    
    try:
        with open(path, 'r', encoding='utf-8') as f:
            if path.suffix == ".json":
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ConfigError(f"Invalid var file {var_file}: {e}")
    except OSError as e:
        raise ConfigError(f"Error reading var file {var_file}: {e}")
    
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Var file {var_file} must contain a mapping of input names to values")
    
    logger.info(f"Loaded {len(data)} inputs from {var_file}")
    return data


def parse_var(pair: str) -> Dict[str, Any]:
    """Parse ``name=value``; the value is read as YAML so lists and numbers work."""
    if "=" not in pair:
        raise ConfigError(f"Invalid --var '{pair}', expected NAME=VALUE")
    name, _, raw = pair.partition("=")
    name = name.strip()
    if not name:
        raise ConfigError(f"Invalid --var '{pair}', missing name")
    try:
        value = yaml.safe_load(raw) if raw.strip() else ""
    except yaml.YAMLError:
        value = raw
    return {name: value}


def collect_variables(var_files: Optional[Iterable[str]] = None, pairs: Optional[Iterable[str]] = None) -> Dict[str, Any]:
    """Merge var files in order, then KEY=VALUE pairs on top."""
    values: Dict[str, Any] = {}
    for var_file in var_files or []:
        values.update(load_var_file(var_file))
    for pair in pairs or []:
        values.update(parse_var(pair))
    return values
