"""Build directed dependency graph from declared resources."""

import networkx as nx
from typing import Dict, Iterable, List, Optional, Set
from ..model.resources import Resource, ResourceSet
from ..utils.errors import CyclicDependencyError, GraphConstructionError
from ..utils.logging import get_logger

logger = get_logger("graph.dependency_graph")


class DependencyGraph:
    """Directed dependency graph: nodes=resources, edges=dependent -> dependency."""

    def __init__(self):
        self.graph = nx.DiGraph()
        self._resource_map: Dict[str, Resource] = {}
        self._index: Dict[str, int] = {}

    def add_resource(self, resource: Resource) -> None:
        """Add a resource node; edges are added by build_from_resources."""
        node_id = resource.address
        if node_id not in self._index:
            self._index[node_id] = len(self._index)
        self.graph.add_node(node_id, resource=resource)
        self._resource_map[node_id] = resource

    def build_from_resources(self, resources: Iterable[Resource]) -> None:
        """Build complete dependency graph from resources, rejecting cycles."""
        resources = list(resources)
        for resource in resources:
            self.add_resource(resource)

        for resource in resources:
            node_id = resource.address
            for ref in resource.references():
                dep_node_id = ref.address
                if dep_node_id == node_id:
                    raise CyclicDependencyError([node_id, node_id])
                if dep_node_id not in self._resource_map:
                    raise GraphConstructionError(
                        f"{node_id} references {dep_node_id}.{ref.output}, which is not defined"
                    )
                if not self.graph.has_edge(node_id, dep_node_id):
                    self.graph.add_edge(node_id, dep_node_id)
                    logger.debug(f"Added dependency edge: {node_id} -> {dep_node_id}")

        cycle = self.find_cycle()
        if cycle:
            raise CyclicDependencyError(cycle)

        logger.info(f"Built dependency graph with {self.graph.number_of_nodes()} nodes and {self.graph.number_of_edges()} edges")

    def find_cycle(self) -> Optional[List[str]]:
        """Depth-first search with an in-progress marker set.

        Returns the first cycle found as a closed path of addresses, or None.
        """
        done: Set[str] = set()
        in_progress: Set[str] = set()

        for root in self._ordered(self.graph.nodes):
            if root in done:
                continue
            path = [root]
            in_progress.add(root)
            stack = [iter(self._ordered(self.graph.successors(root)))]

            while stack:
                child = next(stack[-1], None)
                if child is None:
                    stack.pop()
                    finished = path.pop()
                    in_progress.discard(finished)
                    done.add(finished)
                    continue
                if child in in_progress:
                    start = path.index(child)
                    return path[start:] + [child]
                if child in done:
                    continue
                path.append(child)
                in_progress.add(child)
                stack.append(iter(self._ordered(self.graph.successors(child))))

        return None

    def topological_order(self) -> List[str]:
        """Dependencies before dependents; insertion order breaks ties."""
        return list(nx.lexicographical_topological_sort(
            self.graph.reverse(copy=False),
            key=lambda node: self._index[node],
        ))

    def get_dependencies(self, resource_id: str) -> List[str]:
        """Direct dependencies of a resource, in insertion order."""
        if resource_id not in self.graph:
            return []
        return self._ordered(self.graph.successors(resource_id))

    def get_dependents(self, resource_id: str) -> List[str]:
        """Resources that reference the given one directly."""
        if resource_id not in self.graph:
            return []
        return self._ordered(self.graph.predecessors(resource_id))

    def get_downstream_resources(self, resource_id: str) -> Set[str]:
        """Get all resources that depend on the given resource (downstream)."""
        if resource_id not in self.graph:
            return set()
        return set(nx.ancestors(self.graph, resource_id))

    def get_upstream_resources(self, resource_id: str) -> Set[str]:
        """Get all resources that the given resource depends on (upstream)."""
        if resource_id not in self.graph:
            return set()
        return set(nx.descendants(self.graph, resource_id))

    def get_resource(self, node_id: str) -> Optional[Resource]:
        """Get resource by node ID."""
        return self._resource_map.get(node_id)

    def get_all_resources(self) -> List[Resource]:
        """Get all resources in insertion order."""
        return list(self._resource_map.values())

    def __contains__(self, node_id: str) -> bool:
        return node_id in self._resource_map

    def __len__(self) -> int:
        return len(self._resource_map)

    def _ordered(self, nodes: Iterable[str]) -> List[str]:
        return sorted(nodes, key=lambda node: self._index[node])


def build_graph(resources) -> DependencyGraph:
    """Build a validated dependency graph from a ResourceSet or list of resources."""
    if isinstance(resources, ResourceSet):
        resources = resources.resources()
    graph = DependencyGraph()
    graph.build_from_resources(resources)
    return graph
