"""Task graphs: node arena, graph operations and the fluent builder."""

from cronflow.graph.builder import GraphBuilder
from cronflow.graph.dag import SingleTask, TaskArena, TaskGraph, TaskNode

__all__ = ["GraphBuilder", "SingleTask", "TaskArena", "TaskGraph", "TaskNode"]
