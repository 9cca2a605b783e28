"""Graphviz DOT serialization of dependency graphs.

The emitter writes one node statement per task and one edge statement per
dependency, in declaration order, so the same graph always produces the same
bytes. Edges flagged as lying on a cycle (and the tasks they connect) are
drawn in the cycle colour.
"""

import structlog

from taskdep.graph.dependency_graph import DependencyGraph

logger = structlog.get_logger(__name__)

DEFAULT_CYCLE_COLOR = "red"
RANKDIRS = ("TB", "LR", "BT", "RL")


def escape_dot_string(s: str) -> str:
    """Escape a string for a quoted DOT identifier.

    Backslashes and double quotes are escaped and newlines become ``\\n``.
    """
    return s.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


def _attributes(attrs: dict[str, str]) -> str:
    if not attrs:
        return ""
    body = ", ".join(f'{key}="{escape_dot_string(value)}"' for key, value in attrs.items())
    return f" [{body}]"


class GraphDescriptionEmitter:
    """Serializer producing Graphviz DOT text from an annotated graph.

    Example:
        >>> emitter = GraphDescriptionEmitter()
        >>> print(emitter.emit(graph))  # doctest: +SKIP
        digraph taskdep {
            rankdir=TB;
            node [shape=box, style=rounded];
            "a";
            "b";
            "b" -> "a";
        }
    """

    def __init__(
        self,
        cycle_color: str = DEFAULT_CYCLE_COLOR,
        rankdir: str = "TB",
        graph_name: str = "taskdep",
    ):
        """Initialize the emitter.

        Args:
            cycle_color: Graphviz colour used for cycle edges and tasks
            rankdir: Graphviz layout direction (TB, LR, BT or RL)
            graph_name: Name of the emitted digraph

        Raises:
            ValueError: If rankdir is not a Graphviz layout direction
        """
        rankdir = rankdir.upper().strip()
        if rankdir not in RANKDIRS:
            msg = f"Unsupported rankdir: {rankdir}. Use one of {', '.join(RANKDIRS)}."
            raise ValueError(msg)
        self.cycle_color = cycle_color
        self.rankdir = rankdir
        self.graph_name = graph_name

    def emit(self, graph: DependencyGraph) -> str:
        """Serialize the graph as DOT.

        Args:
            graph: The graph to serialize, normally already annotated by the
                cycle detector

        Returns:
            DOT source text ending with a newline
        """
        if not graph.is_annotated:
            logger.warning("emitting_unannotated_graph", node_count=graph.node_count)

        cyclic_tasks = {name for edge in graph.cycle_edges() for name in edge.key}

        lines = [f'digraph "{escape_dot_string(self.graph_name)}" {{']
        lines.append(f"    rankdir={self.rankdir};")
        lines.append("    node [shape=box, style=rounded];")

        for name in graph.nodes:
            attrs = {}
            if name in cyclic_tasks:
                attrs["color"] = self.cycle_color
            description = graph.task(name).description
            if description:
                attrs["tooltip"] = description
            lines.append(f'    "{escape_dot_string(name)}"{_attributes(attrs)};')

        for edge in graph.edges():
            attrs = {"color": self.cycle_color} if edge.on_cycle else {}
            lines.append(
                f'    "{escape_dot_string(edge.source)}" -> '
                f'"{escape_dot_string(edge.target)}"{_attributes(attrs)};',
            )

        lines.append("}")

        logger.debug(
            "graph_description_emitted",
            node_count=graph.node_count,
            edge_count=graph.edge_count,
            cycle_edge_count=len(graph.cycle_edges()),
        )
        return "\n".join(lines) + "\n"
