"""taskdep: display the dependency graph of a Taskfile.

Reads ``Taskfile.yaml``, builds the task dependency graph, highlights
circular dependencies and renders the result with Graphviz.
"""

__version__ = "0.3.0"
