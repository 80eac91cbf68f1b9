"""Resolve a provider from a short name or a dotted import path."""

import importlib
from typing import Any, Callable, Dict
from ..utils.errors import ConfigError
from ..utils.logging import get_logger
from .base import Provider
from .memory import InMemoryProvider

logger = get_logger("providers.registry")

BUILTIN_PROVIDERS: Dict[str, Callable[..., Provider]] = {
    "memory": InMemoryProvider,
}


def load_provider(spec: str, **options: Any) -> Provider:
    """
    Instantiate a provider.

    Args:
        spec: Built-in name (``memory``) or ``package.module:ClassName``
        options: Keyword arguments passed to the provider constructor

    Returns:
        Provider instance

    Raises:
        ConfigError: If the provider cannot be found or is not a Provider
    """
    if spec in BUILTIN_PROVIDERS:
        return BUILTIN_PROVIDERS[spec](**options)

    if ":" not in spec:
        known = ", ".join(sorted(BUILTIN_PROVIDERS))
        raise ConfigError(f"Unknown provider '{spec}'. Use one of: {known}, or 'package.module:ClassName'")

    module_name, _, attr = spec.partition(":")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigError(f"Cannot import provider module '{module_name}': {e}")

    factory = getattr(module, attr, None)
    if factory is None:
        raise ConfigError(f"Provider '{attr}' not found in module '{module_name}'")

    provider = factory(**options)
    if not isinstance(provider, Provider):
        raise ConfigError(f"'{spec}' did not produce a Provider instance")

    logger.info(f"Loaded provider {spec}")
    return provider
