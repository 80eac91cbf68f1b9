"""Compare desired resources with prior state and produce an ordered plan."""

from typing import Any, Dict, List, Mapping, Optional, Set, Union
import networkx as nx
from ..graph.dependency_graph import DependencyGraph
from ..model.resources import UNKNOWN, Ref, contains_unknown, resolve_refs
from ..model.schemas import SchemaRegistry, default_registry
from ..state.store import StateRecord, StateStore
from ..utils.logging import get_logger
from .models import Action, Change, Plan

logger = get_logger("planner.planner")

_MISSING = object()

PreviousState = Union[StateStore, Mapping[str, StateRecord]]


def plan(desired: DependencyGraph, previous: PreviousState, schemas: Optional[SchemaRegistry] = None) -> Plan:
    """
    Produce the change-set that moves previous state to the desired graph.

    Order of the returned plan:
    1. replacement deletes (plus removals that depend on a replaced resource),
       dependents first
    2. creates, updates and no-ops in desired topological order
    3. remaining deletes, dependents first

    Args:
        desired: Validated dependency graph of desired resources
        previous: State store or mapping of address -> StateRecord
        schemas: Registry deciding which attributes force replacement

    Returns:
        Plan with deterministic ordering
    """
    schemas = schemas or default_registry()
    records = _records(previous)

    unknown_ids: Set[str] = set()
    updated: Dict[str, Set[str]] = {}
    replaced: Set[str] = set()
    main_changes: List[Change] = []
    replace_deletes: Dict[str, Change] = {}

    for address in desired.topological_order():
        resource = desired.get_resource(address)
        prior = records.get(address)
        dependencies = desired.get_dependencies(address)
        attributes = resolve_refs(resource.attributes, _plan_resolver(records, unknown_ids, updated))

        if prior is None:
            unknown_ids.add(address)
            main_changes.append(Change(
                address=address,
                type=resource.type,
                action=Action.CREATE,
                reason="not in state",
                attributes=attributes,
                changed_attributes=sorted(attributes),
                dependencies=dependencies,
                resource=resource,
            ))
            continue

        changed = diff_attributes(attributes, prior.attributes)
        if not changed:
            main_changes.append(Change(
                address=address,
                type=resource.type,
                action=Action.NO_OP,
                reason="no differences",
                attributes=attributes,
                dependencies=dependencies,
                prior=prior,
                resource=resource,
            ))
            continue

        immutable = schemas.immutable_attributes(resource.type)
        forcing = [name for name in changed if name in immutable]
        if forcing:
            reason = f"immutable attribute changed: {', '.join(forcing)} (forces replacement)"
            replaced.add(address)
            unknown_ids.add(address)
            replace_deletes[address] = Change(
                address=address,
                type=prior.type,
                action=Action.DELETE,
                reason=reason,
                attributes=dict(prior.attributes),
                changed_attributes=changed,
                prior=prior,
                replacement=True,
            )
            main_changes.append(Change(
                address=address,
                type=resource.type,
                action=Action.CREATE,
                reason=reason,
                attributes=attributes,
                changed_attributes=changed,
                dependencies=dependencies,
                prior=prior,
                replacement=True,
                resource=resource,
            ))
        else:
            updated[address] = set(changed)
            main_changes.append(Change(
                address=address,
                type=resource.type,
                action=Action.UPDATE,
                reason=f"attributes changed: {', '.join(changed)}",
                attributes=attributes,
                changed_attributes=changed,
                dependencies=dependencies,
                prior=prior,
                resource=resource,
            ))

    removed = [address for address in records if address not in desired]
    prior_graph = _prior_graph(records)
    deletion_order = _deletion_order(prior_graph, records)

    early_removals = {
        address for address in removed
        if nx.descendants(prior_graph, address) & replaced
    }
    early = [a for a in deletion_order if a in replaced or a in early_removals]
    late = [a for a in deletion_order if a in removed and a not in early_removals]

    changes: List[Change] = []
    for address in early:
        if address in replace_deletes:
            changes.append(replace_deletes[address])
        else:
            changes.append(_removal(records[address], "not in configuration"))
    changes.extend(main_changes)
    for address in late:
        changes.append(_removal(records[address], "not in configuration"))

    result = Plan(changes=changes)
    logger.info(f"Planned {len(changes)} changes: {_format_summary(result.summary())}")
    return result


def plan_destroy(previous: PreviousState) -> Plan:
    """Plan deletion of every resource in state, dependents first."""
    records = _records(previous)
    order = _deletion_order(_prior_graph(records), records)
    changes = [_removal(records[address], "destroy requested") for address in order]
    result = Plan(changes=changes, destroy=True)
    logger.info(f"Planned destroy of {len(changes)} resources")
    return result


def diff_attributes(desired: Dict[str, Any], prior: Dict[str, Any]) -> List[str]:
    """Names of attributes whose desired value differs from the prior one."""
    changed = []
    for name in list(desired) + [k for k in prior if k not in desired]:
        want = desired.get(name, _MISSING)
        have = prior.get(name, _MISSING)
        if want is _MISSING or have is _MISSING or contains_unknown(want) or want != have:
            changed.append(name)
    return sorted(changed)


def _records(previous: PreviousState) -> Dict[str, StateRecord]:
    if isinstance(previous, StateStore):
        return previous.load()
    return dict(previous)


def _plan_resolver(records: Mapping[str, StateRecord], unknown_ids: Set[str], updated: Mapping[str, Set[str]]):
    def resolve(ref: Ref) -> Any:
        target = ref.address
        if target in unknown_ids:
            return UNKNOWN
        # outputs mirroring an attribute changed by an update are only known after apply
        if ref.output in updated.get(target, ()):
            return UNKNOWN
        record = records.get(target)
        if record is None or not record.has_output(ref.output):
            return UNKNOWN
        return record.output(ref.output)
    return resolve


def _prior_graph(records: Mapping[str, StateRecord]) -> nx.DiGraph:
    """Dependency graph recorded in state: dependent -> dependency."""
    graph = nx.DiGraph()
    graph.add_nodes_from(records)
    for address, record in records.items():
        for dep in record.dependencies:
            if dep in records and dep != address:
                graph.add_edge(address, dep)
    return graph


def _deletion_order(graph: nx.DiGraph, records: Mapping[str, StateRecord]) -> List[str]:
    """Dependents before dependencies; state insertion order breaks ties."""
    index = {address: i for i, address in enumerate(records)}
    try:
        return list(nx.lexicographical_topological_sort(graph, key=lambda node: index[node]))
    except nx.NetworkXUnfeasible:
        logger.warning("State dependencies contain a cycle, deleting in reverse insertion order")
        return list(reversed(list(records)))


def _removal(record: StateRecord, reason: str) -> Change:
    return Change(
        address=record.address,
        type=record.type,
        action=Action.DELETE,
        reason=reason,
        attributes=dict(record.attributes),
        prior=record,
    )


def _format_summary(summary: Dict[str, int]) -> str:
    return ", ".join(f"{count} {name}" for name, count in summary.items() if count)
