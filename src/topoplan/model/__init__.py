"""Resource model: keys, references, resource sets and type schemas."""

from .resources import (
    UNKNOWN,
    BuildConfig,
    Ref,
    Resource,
    ResourceHandle,
    ResourceKey,
    ResourceSet,
    contains_unknown,
    find_refs,
    resolve_refs,
)
from .schemas import ResourceSchema, SchemaRegistry, default_registry

__all__ = [
    "UNKNOWN",
    "BuildConfig",
    "Ref",
    "Resource",
    "ResourceHandle",
    "ResourceKey",
    "ResourceSchema",
    "ResourceSet",
    "SchemaRegistry",
    "contains_unknown",
    "default_registry",
    "find_refs",
    "resolve_refs",
]
