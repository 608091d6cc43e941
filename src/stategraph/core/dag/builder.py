# src/stategraph/core/dag/builder.py
"""GraphBuilder: mutable graph construction, frozen by compile().

Per-call checks catch what can be detected immediately (duplicate node
names, a second edge from the same source, sentinel misuse). Whole-graph
checks (dangling edges, orphans, dead ends) run in compile(), because edges
may legitimately be declared before the nodes they mention.
"""

from __future__ import annotations

from collections.abc import Iterable

import structlog

from stategraph.contracts.errors import ConflictingEdgeError, DuplicateNodeError, GraphValidationError
from stategraph.contracts.types import END, START, NodeFunction, RouterFunction
from stategraph.core.dag.graph import CompiledGraph
from stategraph.core.dag.models import ConditionalEdge, NodeSpec
from stategraph.core.schema import StateSchema

slog = structlog.get_logger(__name__)


class GraphBuilder:
    """Collects nodes and edges, then compiles them into a CompiledGraph.

    Example:
        builder = GraphBuilder(schema)
        builder.add_node("summarize", summarize)
        builder.add_node("analyze", analyze)
        builder.add_edge(START, "summarize")
        builder.add_edge("summarize", "analyze")
        builder.add_edge("analyze", END)
        graph = builder.compile()

    Mutating methods return the builder so calls can be chained.
    """

    def __init__(self, schema: StateSchema) -> None:
        if not isinstance(schema, StateSchema):
            raise GraphValidationError(f"GraphBuilder requires a StateSchema, got {type(schema).__name__}")
        self._schema = schema
        self._nodes: dict[str, NodeSpec] = {}
        self._edges: dict[str, str] = {}
        self._branches: dict[str, ConditionalEdge] = {}

    @property
    def schema(self) -> StateSchema:
        return self._schema

    def add_node(self, name: str, func: NodeFunction) -> GraphBuilder:
        """Register a node.

        Raises:
            DuplicateNodeError: If name is already registered
            GraphValidationError: If name is empty or reserved, or func is not callable
        """
        if name in self._nodes:
            raise DuplicateNodeError(name)
        self._nodes[name] = NodeSpec(name=name, func=func)
        return self

    def add_edge(self, source: str, target: str) -> GraphBuilder:
        """Declare an unconditional transition source -> target.

        Raises:
            ConflictingEdgeError: If source already has an outgoing edge
            GraphValidationError: If an endpoint is not a non-empty string, source
                is END, or target is START
        """
        _check_endpoint(target, "Edge target")
        self._check_source(source, attempted="plain")
        if target == START:
            raise GraphValidationError(f"{START} cannot be an edge target")
        self._edges[source] = target
        return self

    def add_conditional_edge(
        self,
        source: str,
        router: RouterFunction,
        destinations: Iterable[str],
    ) -> GraphBuilder:
        """Declare a router-resolved transition from source.

        Args:
            source: Node (or START) whose successor the router selects
            router: Callable receiving the state snapshot, returning a destination
            destinations: Every name the router may return (node names or END)

        Raises:
            ConflictingEdgeError: If source already has an outgoing edge
            GraphValidationError: If destinations is empty, includes START, or
                is given as a bare string
        """
        if isinstance(destinations, str):
            raise GraphValidationError(f"destinations for '{source}' must be an iterable of names, not a string")
        self._check_source(source, attempted="conditional")
        allowed = frozenset(destinations)
        if START in allowed:
            raise GraphValidationError(f"{START} cannot be a router destination")
        self._branches[source] = ConditionalEdge(source=source, router=router, destinations=allowed)
        return self

    def set_entry_point(self, name: str) -> GraphBuilder:
        """Shorthand for add_edge(START, name)."""
        return self.add_edge(START, name)

    def set_finish_point(self, name: str) -> GraphBuilder:
        """Shorthand for add_edge(name, END)."""
        return self.add_edge(name, END)

    def compile(self) -> CompiledGraph:
        """Validate and freeze the graph.

        The compiled graph copies the builder's current nodes and edges, so
        further builder calls never affect it.

        Raises:
            GraphValidationError: If the graph is structurally invalid
        """
        graph = CompiledGraph(
            schema=self._schema,
            nodes=self._nodes,
            edges=self._edges,
            branches=self._branches,
        )
        slog.debug(
            "graph_compiled",
            nodes=graph.node_count,
            edges=len(graph.get_edges()),
            fields=len(self._schema),
        )
        return graph

    def _check_source(self, source: str, *, attempted: str) -> None:
        _check_endpoint(source, "Edge source")
        if source == END:
            raise GraphValidationError(f"{END} cannot be an edge source")
        if source in self._edges:
            raise ConflictingEdgeError(source, existing="plain", attempted=attempted)
        if source in self._branches:
            raise ConflictingEdgeError(source, existing="conditional", attempted=attempted)


def _check_endpoint(name: object, role: str) -> None:
    if not isinstance(name, str) or not name:
        raise GraphValidationError(f"{role} must be a non-empty node name, got {name!r}")
