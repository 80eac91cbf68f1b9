"""CLI utilities package."""

from pathlib import Path
from typing import Any, Dict, Iterable, Optional
import click
from ...config import collect_variables, load_config
from ...providers import load_provider
from ...providers.base import Provider
from ...state import FileStateStore, StateStore
from ...utils.errors import ConfigError
from ...utils.logging import get_logger, setup_logging
from .file_resolver import resolve_file_path

logger = get_logger("cli.utils")


class CliContext:
    """Everything a command needs, resolved from config and flags."""

    def __init__(self, config: Dict[str, Any], store: StateStore, provider: Provider, variables: Dict[str, Any]):
        self.config = config
        self.store = store
        self.provider = provider
        self.variables = variables

    @property
    def max_workers(self) -> int:
        return int(self.config["executor"]["max_workers"])


def common_options(func):
    """Options shared by commands that read inputs, state and a provider."""
    options = [
        click.option('--var', 'variables', multiple=True, metavar='NAME=VALUE', help='Set a module input (value parsed as YAML)'),
        click.option('--var-file', 'var_files', multiple=True, type=click.Path(), help='YAML or JSON file of module inputs'),
        click.option('--state', 'state_path', type=click.Path(), help='State file (overrides state.path)'),
        click.option('--provider', 'provider_name', help='Provider name or package.module:Class (overrides provider.name)'),
        click.option('--config', 'config_path', type=click.Path(), help='Extra config file merged last'),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def build_context(
    config_path: Optional[str] = None,
    state_path: Optional[str] = None,
    provider_name: Optional[str] = None,
    var_files: Iterable[str] = (),
    variables: Iterable[str] = (),
    verbose: bool = False,
) -> CliContext:
    """
    Load config, open the state store, resolve the provider and collect inputs.

    Raises:
        TopoPlanError: If config, state, provider or inputs cannot be loaded
    """
    config = load_config(config_path)
    setup_logging("DEBUG" if verbose else config["logging"]["level"])

    path = Path(state_path or config["state"]["path"])
    store = FileStateStore(path)

    name = provider_name or config["provider"]["name"]
    options = dict(config["provider"].get("options") or {})
    if name == "memory":
        # Identifiers from earlier runs are unknown to a fresh in-memory provider
        options.setdefault("strict", False)
    provider = load_provider(name, **options)

    resolved_files = []
    for var_file in var_files:
        try:
            resolved_files.append(str(resolve_file_path(var_file)))
        except FileNotFoundError as e:
            raise ConfigError(str(e))

    values = collect_variables(resolved_files, variables)
    logger.debug(f"Using state {path}, provider {name}, {len(values)} inputs")
    return CliContext(config, store, provider, values)


def format_error(message: str, suggestion: Optional[str] = None) -> str:
    """
    Format error message with optional suggestion.

    Args:
        message: Error message
        suggestion: Optional suggestion or help text

    Returns:
        Formatted error string
    """
    error = f"Error: {message}"
    if suggestion:
        error += f"\nTip: {suggestion}"
    return error


def echo_text(text: str) -> None:
    """Echo text, degrading to ASCII on terminals that cannot encode it."""
    try:
        click.echo(text)
    except UnicodeEncodeError:
        click.echo(text.encode('ascii', errors='replace').decode('ascii'))


__all__ = ["CliContext", "build_context", "common_options", "echo_text", "format_error", "resolve_file_path"]
