"""Unit tests for GraphDescriptionEmitter."""

import pytest

from taskdep.graph.cycles import CycleDetector
from taskdep.graph.dependency_graph import DependencyGraph
from taskdep.graph.emitter import GraphDescriptionEmitter, escape_dot_string
from taskdep.taskfile import Task


def annotated(*tasks: Task) -> DependencyGraph:
    graph = DependencyGraph.from_tasks(tasks)
    CycleDetector().annotate(graph)
    return graph


class TestEmit:
    """Test DOT output."""

    def test_acyclic_snapshot(self):
        """Test the exact output for a two-task chain."""
        graph = annotated(Task("A"), Task("B", ("A",)))

        assert GraphDescriptionEmitter().emit(graph) == (
            'digraph "taskdep" {\n'
            "    rankdir=TB;\n"
            "    node [shape=box, style=rounded];\n"
            '    "A";\n'
            '    "B";\n'
            '    "B" -> "A";\n'
            "}\n"
        )

    def test_cycle_snapshot(self):
        """Test that cycle edges and tasks carry the cycle colour."""
        graph = annotated(Task("A", ("B",)), Task("B", ("A", "C")), Task("C"))

        assert GraphDescriptionEmitter().emit(graph) == (
            'digraph "taskdep" {\n'
            "    rankdir=TB;\n"
            "    node [shape=box, style=rounded];\n"
            '    "A" [color="red"];\n'
            '    "B" [color="red"];\n'
            '    "C";\n'
            '    "A" -> "B" [color="red"];\n'
            '    "B" -> "A" [color="red"];\n'
            '    "B" -> "C";\n'
            "}\n"
        )

    def test_empty_graph(self):
        """Test that an empty graph is still a valid digraph."""
        output = GraphDescriptionEmitter().emit(annotated())

        assert output.startswith('digraph "taskdep" {\n')
        assert output.endswith("}\n")
        assert "->" not in output

    def test_every_node_and_edge_once(self):
        """Test that each task and dependency produces exactly one statement."""
        graph = annotated(Task("A", ("B",)), Task("B"), Task("C", ("B",)))

        output = GraphDescriptionEmitter().emit(graph)

        assert output.count('    "A";') == 1
        assert output.count('    "B";') == 1
        assert output.count('    "C";') == 1
        assert output.count("->") == 2
        assert "color" not in output

    def test_custom_settings(self):
        """Test configurable colour, rankdir and graph name."""
        graph = annotated(Task("A", ("A",)))
        emitter = GraphDescriptionEmitter(cycle_color="orange", rankdir="lr", graph_name="deps")

        output = emitter.emit(graph)

        assert output.startswith('digraph "deps" {\n    rankdir=LR;\n')
        assert '"A" -> "A" [color="orange"];' in output

    def test_invalid_rankdir(self):
        """Test that unknown layout directions are rejected."""
        with pytest.raises(ValueError, match="Unsupported rankdir"):
            GraphDescriptionEmitter(rankdir="diagonal")

    def test_description_tooltip(self):
        """Test that task descriptions become tooltips."""
        graph = annotated(Task("build", description='Build "all"'))

        output = GraphDescriptionEmitter().emit(graph)

        assert '    "build" [tooltip="Build \\"all\\""];' in output

    def test_names_are_escaped(self):
        """Test that namespaced and quoted names stay valid identifiers."""
        graph = annotated(Task('odd"name'), Task("ns:task", ('odd"name',)))

        output = GraphDescriptionEmitter().emit(graph)

        assert '    "ns:task" -> "odd\\"name";' in output

    def test_deterministic(self):
        """Test that emission is byte-for-byte reproducible."""
        tasks = [Task("a", ("c", "b")), Task("b", ("a",)), Task("c")]

        first = GraphDescriptionEmitter().emit(annotated(*tasks))
        second = GraphDescriptionEmitter().emit(annotated(*tasks))

        assert first == second


class TestEscape:
    """Test DOT string escaping."""

    @pytest.mark.parametrize(
        ("raw", "escaped"),
        [
            ("plain", "plain"),
            ('say "hi"', 'say \\"hi\\"'),
            ("back\\slash", "back\\\\slash"),
            ("two\nlines", "two\\nlines"),
        ],
    )
    def test_escape_dot_string(self, raw, escaped):
        """Test escaping of special characters."""
        assert escape_dot_string(raw) == escaped
