# src/stategraph/core/dag/models.py
"""Types for graph construction and the compiled graph.

Leaf module: no intra-package imports beyond contracts (prevents import cycles).
"""

from __future__ import annotations

from dataclasses import dataclass

from stategraph.contracts.enums import EdgeKind
from stategraph.contracts.errors import GraphValidationError
from stategraph.contracts.types import RESERVED_NAMES, NodeFunction, RouterFunction


@dataclass(frozen=True, slots=True)
class NodeSpec:
    """A registered node: unique name plus its update function."""

    name: str
    func: NodeFunction

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name:
            raise GraphValidationError(f"Node name must be a non-empty string, got {self.name!r}")
        if self.name in RESERVED_NAMES:
            raise GraphValidationError(f"Node name '{self.name}' is reserved")
        if not callable(self.func):
            raise GraphValidationError(f"Node '{self.name}' function must be callable, got {type(self.func).__name__}")


@dataclass(frozen=True, slots=True)
class ConditionalEdge:
    """Router-bound edge. The router may only return a declared destination."""

    source: str
    router: RouterFunction
    destinations: frozenset[str]

    def __post_init__(self) -> None:
        if not callable(self.router):
            raise GraphValidationError(f"Router for '{self.source}' must be callable, got {type(self.router).__name__}")
        if not self.destinations:
            raise GraphValidationError(f"Conditional edge from '{self.source}' declares no destinations")
        invalid = [d for d in self.destinations if not isinstance(d, str)]
        if invalid:
            raise GraphValidationError(f"Router destinations from '{self.source}' must be node names, got {invalid!r}")


@dataclass(frozen=True, slots=True)
class EdgeInfo:
    """One possible transition, as exposed by CompiledGraph.get_edges().

    A conditional edge contributes one EdgeInfo per declared destination.
    """

    from_node: str
    to_node: str
    kind: EdgeKind


def _suggest_similar(name: str, candidates: list[str]) -> list[str]:
    """Suggest similar names for wiring validation errors."""
    import difflib

    if not isinstance(name, str):
        return []
    return difflib.get_close_matches(name, candidates, n=3, cutoff=0.6)
