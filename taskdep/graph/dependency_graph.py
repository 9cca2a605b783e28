"""Dependency graph construction from Task records.

This module provides the DependencyGraph class, an adjacency mapping from
task name to its outgoing "depends-on" edges. Edges point from the dependent
task to its dependency: if ``b`` depends on ``a`` the graph holds ``b -> a``.
"""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass

import structlog

from taskdep.errors import SchemaError, UnknownDependencyError
from taskdep.taskfile.parser import Task

logger = structlog.get_logger(__name__)


@dataclass
class Edge:
    """A directed "depends-on" edge.

    Attributes:
        source: The dependent task
        target: The task it depends on
        on_cycle: Whether the edge lies on at least one cycle
    """

    source: str
    target: str
    on_cycle: bool = False

    @property
    def key(self) -> tuple[str, str]:
        """Return the ``(source, target)`` pair identifying this edge."""
        return (self.source, self.target)


class DependencyGraph:
    """Directed graph of declared tasks and their dependencies.

    The graph is built once from a sequence of tasks and is read-only
    afterwards, except for the cycle annotation which is applied exactly
    once by the cycle detector before the graph is emitted.

    Example:
        >>> graph = DependencyGraph.from_tasks([Task("a"), Task("b", ("a",))])
        >>> [edge.key for edge in graph.edges()]
        [('b', 'a')]
    """

    def __init__(self):
        """Initialize an empty dependency graph."""
        self._tasks: dict[str, Task] = {}
        self._adjacency: dict[str, list[Edge]] = {}
        self._annotated = False

    @classmethod
    def from_tasks(cls, tasks: Iterable[Task]) -> "DependencyGraph":
        """Build a graph from Task records.

        Every task becomes one node and every distinct dependency one edge.
        Dependencies may refer to tasks declared later in the sequence.

        Args:
            tasks: Task records in declaration order

        Returns:
            The constructed graph

        Raises:
            SchemaError: If two tasks share the same name
            UnknownDependencyError: If a dependency names an undeclared task
        """
        graph = cls()
        tasks = list(tasks)

        for task in tasks:
            if task.name in graph._tasks:
                msg = f"duplicate task name '{task.name}'"
                raise SchemaError(msg)
            graph._tasks[task.name] = task
            graph._adjacency[task.name] = []

        for task in tasks:
            edges = graph._adjacency[task.name]
            seen: set[str] = set()
            for dependency in task.dependencies:
                if dependency not in graph._tasks:
                    logger.error(
                        "unknown_dependency",
                        task=task.name,
                        dependency=dependency,
                    )
                    raise UnknownDependencyError(task.name, dependency)
                if dependency in seen:
                    continue
                seen.add(dependency)
                edges.append(Edge(source=task.name, target=dependency))

        logger.info(
            "dependency_graph_built",
            node_count=graph.node_count,
            edge_count=graph.edge_count,
        )
        return graph

    @property
    def nodes(self) -> list[str]:
        """Task names in declaration order."""
        return list(self._adjacency)

    @property
    def node_count(self) -> int:
        return len(self._adjacency)

    @property
    def edge_count(self) -> int:
        return sum(len(edges) for edges in self._adjacency.values())

    @property
    def is_annotated(self) -> bool:
        """Check whether cycle annotation has been applied."""
        return self._annotated

    def __contains__(self, name: object) -> bool:
        return name in self._adjacency

    def task(self, name: str) -> Task:
        """Return the Task record for a node.

        Raises:
            KeyError: If no such task was declared
        """
        return self._tasks[name]

    def successors(self, name: str) -> list[str]:
        """Return the dependencies of a task in declaration order."""
        return [edge.target for edge in self._adjacency[name]]

    def out_edges(self, name: str) -> tuple[Edge, ...]:
        """Return the outgoing edges of a task in declaration order."""
        return tuple(self._adjacency[name])

    def edges(self) -> Iterator[Edge]:
        """Iterate over all edges, grouped by source in declaration order."""
        for edges in self._adjacency.values():
            yield from edges

    def cycle_edges(self) -> list[Edge]:
        """Return the edges flagged as lying on a cycle."""
        return [edge for edge in self.edges() if edge.on_cycle]

    def mark_cycle_edges(self, keys: Iterable[tuple[str, str]]) -> None:
        """Flag the given edges as lying on a cycle.

        Args:
            keys: ``(source, target)`` pairs of the edges to flag

        Raises:
            ValueError: If the graph was already annotated or a pair does not
                name an existing edge
        """
        if self._annotated:
            msg = "Cycle annotation has already been applied to this graph"
            raise ValueError(msg)

        wanted = set(keys)
        missing = wanted - {edge.key for edge in self.edges()}
        if missing:
            msg = f"Cannot mark unknown edges: {sorted(missing)}"
            raise ValueError(msg)

        for edge in self.edges():
            edge.on_cycle = edge.key in wanted

        self._annotated = True
        logger.debug("cycle_edges_marked", count=len(wanted))

    def get_stats(self) -> dict[str, int]:
        """Get statistics about the graph.

        Returns:
            Dictionary with node, edge and cycle edge counts
        """
        return {
            "node_count": self.node_count,
            "edge_count": self.edge_count,
            "cycle_edge_count": len(self.cycle_edges()),
        }
