"""Graph module for dependency graphs, cycle detection and DOT output.

This module builds the task dependency graph, marks the edges that lie on
cycles and serializes the result for Graphviz.
"""

from taskdep.graph.cycles import CycleDetector, CycleReport
from taskdep.graph.dependency_graph import DependencyGraph, Edge
from taskdep.graph.emitter import GraphDescriptionEmitter

__all__ = ["CycleDetector", "CycleReport", "DependencyGraph", "Edge", "GraphDescriptionEmitter"]
