"""Reusable modules and the input/output contract they follow."""

from typing import Dict, List
from ..utils.errors import ModuleError
from .base import InputSpec, Module, ModuleInstance, validate_inputs
from .cluster import CLUSTER
from .eks import EKS
from .network import NETWORK, allocate_subnets

BUILTIN_MODULES: Dict[str, Module] = {
    NETWORK.name: NETWORK,
    CLUSTER.name: CLUSTER,
    EKS.name: EKS,
}


def get_module(name: str) -> Module:
    """Look up a built-in module by name."""
    module = BUILTIN_MODULES.get(name)
    if module is None:
        raise ModuleError(f"Unknown module '{name}'. Available: {', '.join(list_modules())}")
    return module


def list_modules() -> List[str]:
    return sorted(BUILTIN_MODULES)


__all__ = [
    "BUILTIN_MODULES",
    "CLUSTER",
    "EKS",
    "NETWORK",
    "InputSpec",
    "Module",
    "ModuleInstance",
    "allocate_subnets",
    "get_module",
    "list_modules",
    "validate_inputs",
]
