"""Cycle detection for dependency graphs.

This module finds every edge that lies on at least one cycle so the emitter
can draw circular dependencies distinctly. It uses a depth-first traversal
with white/gray/black node colouring: an edge to a gray node (one still on
the exploration stack) is a back edge and closes a cycle. Low-link values
carried along the traversal group the nodes into strongly connected
components, and an edge lies on a cycle exactly when both of its endpoints
belong to the same component.
"""

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum

import structlog

from taskdep.graph.dependency_graph import DependencyGraph

logger = structlog.get_logger(__name__)


class NodeColor(Enum):
    """Traversal state of a node."""

    WHITE = "white"  # not visited yet
    GRAY = "gray"  # on the exploration stack
    BLACK = "black"  # fully explored


@dataclass
class CycleReport:
    """Result of cycle detection.

    Attributes:
        cycle_edges: ``(source, target)`` pairs of every edge on a cycle
        cyclic_tasks: Tasks that lie on at least one cycle
        components: Groups of tasks that reach each other, one per cycle
            cluster, members in declaration order
        back_edges: Edges that closed a cycle during the traversal
    """

    cycle_edges: frozenset[tuple[str, str]] = frozenset()
    cyclic_tasks: frozenset[str] = frozenset()
    components: list[list[str]] = field(default_factory=list)
    back_edges: list[tuple[str, str]] = field(default_factory=list)

    @property
    def has_cycles(self) -> bool:
        return bool(self.cycle_edges)

    def summary(self) -> str:
        """Generate a human-readable summary of the detected cycles."""
        lines = [f"Cycles: {len(self.components)}", f"Cycle edges: {len(self.cycle_edges)}"]
        for i, component in enumerate(self.components, 1):
            lines.append(f"  {i}. {', '.join(component)}")
        return "\n".join(lines)


class CycleDetector:
    """Detector marking the edges of a DependencyGraph that lie on cycles.

    Roots and outgoing edges are visited in declaration order, so the result
    is reproducible for the same graph. The traversal is iterative and runs
    in O(V + E).
    """

    def detect(self, graph: DependencyGraph) -> CycleReport:
        """Find all cycle edges without modifying the graph.

        Args:
            graph: The graph to inspect

        Returns:
            CycleReport describing every edge that lies on a cycle
        """
        order = {name: position for position, name in enumerate(graph.nodes)}
        color = dict.fromkeys(graph.nodes, NodeColor.WHITE)
        index: dict[str, int] = {}
        lowlink: dict[str, int] = {}
        component_of: dict[str, int] = {}
        pending: list[str] = []
        pending_set: set[str] = set()
        raw_components: list[list[str]] = []
        back_edges: list[tuple[str, str]] = []

        def enter(node: str) -> tuple[str, Iterator[str]]:
            color[node] = NodeColor.GRAY
            index[node] = lowlink[node] = len(index)
            pending.append(node)
            pending_set.add(node)
            return node, iter(graph.successors(node))

        for root in graph.nodes:
            if color[root] is not NodeColor.WHITE:
                continue

            stack = [enter(root)]
            while stack:
                node, successors = stack[-1]
                descended = False
                for successor in successors:
                    if color[successor] is NodeColor.WHITE:
                        stack.append(enter(successor))
                        descended = True
                        break
                    if color[successor] is NodeColor.GRAY:
                        back_edges.append((node, successor))
                    # Black nodes still pending belong to a component that
                    # is not closed yet, so they may share this one.
                    if successor in pending_set:
                        lowlink[node] = min(lowlink[node], index[successor])
                if descended:
                    continue

                stack.pop()
                color[node] = NodeColor.BLACK
                if stack:
                    parent = stack[-1][0]
                    lowlink[parent] = min(lowlink[parent], lowlink[node])

                if lowlink[node] == index[node]:
                    component = []
                    while True:
                        member = pending.pop()
                        pending_set.discard(member)
                        component_of[member] = len(raw_components)
                        component.append(member)
                        if member == node:
                            break
                    raw_components.append(component)

        cycle_edges = frozenset(
            edge.key
            for edge in graph.edges()
            if component_of[edge.source] == component_of[edge.target]
        )
        cyclic_tasks = frozenset(name for key in cycle_edges for name in key)
        components = sorted(
            (
                sorted(component, key=order.__getitem__)
                for component in raw_components
                if component[0] in cyclic_tasks
            ),
            key=lambda members: order[members[0]],
        )

        if cycle_edges:
            logger.info(
                "cycles_detected",
                cycle_count=len(components),
                cycle_edge_count=len(cycle_edges),
                back_edges=[f"{source} -> {target}" for source, target in back_edges],
            )
        else:
            logger.debug("no_cycles_detected", node_count=graph.node_count)

        return CycleReport(
            cycle_edges=cycle_edges,
            cyclic_tasks=cyclic_tasks,
            components=components,
            back_edges=back_edges,
        )

    def annotate(self, graph: DependencyGraph) -> CycleReport:
        """Detect cycles and flag the cycle edges on the graph.

        Args:
            graph: The graph to annotate; must not be annotated yet

        Returns:
            The CycleReport that was applied

        Raises:
            ValueError: If the graph has already been annotated
        """
        report = self.detect(graph)
        graph.mark_cycle_edges(report.cycle_edges)
        return report
