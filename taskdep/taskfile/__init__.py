"""Taskfile parsing.

This module reads declarative Taskfile documents and produces the Task
records the dependency graph is built from.
"""

from taskdep.taskfile.parser import Task, TaskDefinitionParser

__all__ = ["Task", "TaskDefinitionParser"]
