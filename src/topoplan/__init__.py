"""topoplan - Declarative network and cluster topology planner."""

import threading
from typing import Any, Dict, Optional, Tuple
from .config import build_config_from, load_config
from .executor.executor import DEFAULT_MAX_WORKERS, Executor
from .executor.models import ApplyResult
from .graph.dependency_graph import DependencyGraph, build_graph
from .model.resources import Ref, ResourceSet
from .modules import ModuleInstance, get_module
from .planner.models import Plan
from .planner.planner import plan as plan_changes
from .planner.planner import plan_destroy
from .providers.base import Provider
from .state.store import StateStore
from .utils.errors import TopoPlanError
from .utils.logging import get_logger, setup_logging

__version__ = "0.1.0"

__all__ = ["Ref", "ResourceSet", "apply", "build", "destroy", "plan"]

setup_logging()
logger = get_logger("api")


def build(module_name: str, inputs: Dict[str, Any], config: Optional[Dict[str, Any]] = None) -> Tuple[ModuleInstance, DependencyGraph]:
    """Validate inputs, define the module's resources and build the dependency graph."""
    config = config if config is not None else load_config()
    module = get_module(module_name)
    resources = ResourceSet(config=build_config_from(config))
    instance = module.instantiate(inputs, resources)
    graph = build_graph(resources)
    return instance, graph


def plan(module_name: str, inputs: Dict[str, Any], store: StateStore,
         config: Optional[Dict[str, Any]] = None) -> Plan:
    """Plan the changes needed to converge state on a module's desired resources."""
    try:
        _, graph = build(module_name, inputs, config)
        return plan_changes(graph, store)
    except TopoPlanError:
        raise
    except Exception as e:
        logger.error(f"Unexpected error during planning: {e}", exc_info=True)
        raise TopoPlanError(f"Planning failed: {e}") from e


def apply(module_name: str, inputs: Dict[str, Any], store: StateStore, provider: Provider,
          config: Optional[Dict[str, Any]] = None, max_workers: Optional[int] = None,
          cancel_event: Optional[threading.Event] = None) -> ApplyResult:
    """Plan and apply a module; outputs are resolved from state afterwards."""
    config = config if config is not None else load_config()
    try:
        instance, graph = build(module_name, inputs, config)
        changes = plan_changes(graph, store, schemas=provider.schemas)
        executor = Executor(provider, store, max_workers=max_workers or _max_workers(config))
        result = executor.apply(changes, cancel_event=cancel_event)
        result.outputs = instance.resolve_outputs(store)
        return result
    except TopoPlanError:
        raise
    except Exception as e:
        logger.error(f"Unexpected error during apply: {e}", exc_info=True)
        raise TopoPlanError(f"Apply failed: {e}") from e


def destroy(store: StateStore, provider: Provider, config: Optional[Dict[str, Any]] = None,
            max_workers: Optional[int] = None, cancel_event: Optional[threading.Event] = None,
            module_name: Optional[str] = None, inputs: Optional[Dict[str, Any]] = None) -> ApplyResult:
    """
    Delete resources recorded in state, dependents first.

    With module_name, only the addresses that module defines for the given
    inputs are deleted; otherwise everything in state goes.
    """
    config = config if config is not None else load_config()
    try:
        records = store.load()
        if module_name is not None:
            _, graph = build(module_name, inputs or {}, config)
            records = {address: record for address, record in records.items() if address in graph}
        executor = Executor(provider, store, max_workers=max_workers or _max_workers(config))
        return executor.apply(plan_destroy(records), cancel_event=cancel_event)
    except TopoPlanError:
        raise
    except Exception as e:
        logger.error(f"Unexpected error during destroy: {e}", exc_info=True)
        raise TopoPlanError(f"Destroy failed: {e}") from e


def _max_workers(config: Dict[str, Any]) -> int:
    return int((config.get("executor") or {}).get("max_workers", DEFAULT_MAX_WORKERS))
