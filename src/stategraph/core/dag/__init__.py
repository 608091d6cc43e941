# src/stategraph/core/dag/__init__.py
"""Graph construction, validation, and the compiled graph."""

from stategraph.core.dag.builder import GraphBuilder
from stategraph.core.dag.graph import CompiledGraph
from stategraph.core.dag.models import ConditionalEdge, EdgeInfo, NodeSpec

__all__ = [
    "CompiledGraph",
    "ConditionalEdge",
    "EdgeInfo",
    "GraphBuilder",
    "NodeSpec",
]
