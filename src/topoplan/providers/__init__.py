"""Provider interface and built-in implementations."""

from .base import Provider
from .memory import InjectedFailure, InMemoryProvider
from .registry import load_provider

__all__ = ["InjectedFailure", "InMemoryProvider", "Provider", "load_provider"]
