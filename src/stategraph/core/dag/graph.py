# src/stategraph/core/dag/graph.py
"""CompiledGraph: validated, immutable, executable graph.

Construction logic lives in builder.py; this module contains the frozen
graph with its validation, query, and transition operations. A
CompiledGraph is valid by construction: __init__ validates and raises
GraphValidationError, so no invalid instance can exist.

Compiled graphs hold no per-run state and are safe to share across
concurrent runs.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

import networkx as nx
from networkx import DiGraph

from stategraph.contracts.enums import EdgeKind
from stategraph.contracts.errors import ConflictingEdgeError, GraphValidationError, RoutingError
from stategraph.contracts.types import END, START, State
from stategraph.core.dag.models import ConditionalEdge, EdgeInfo, NodeSpec, _suggest_similar

if TYPE_CHECKING:
    from stategraph.core.schema import StateSchema


class CompiledGraph:
    """Immutable graph of named nodes, plain edges, and conditional edges.

    Wraps a frozen NetworkX DiGraph for structural queries. The START and
    END sentinels are present in the NetworkX graph as ordinary vertices so
    reachability can be checked with descendants()/ancestors().
    """

    __slots__ = ("_schema", "_nodes", "_edges", "_branches", "_graph")

    def __init__(
        self,
        schema: StateSchema,
        nodes: Mapping[str, NodeSpec],
        edges: Mapping[str, str],
        branches: Mapping[str, ConditionalEdge],
    ) -> None:
        self._schema = schema
        self._nodes: MappingProxyType[str, NodeSpec] = MappingProxyType(dict(nodes))
        self._edges: MappingProxyType[str, str] = MappingProxyType(dict(edges))
        self._branches: MappingProxyType[str, ConditionalEdge] = MappingProxyType(dict(branches))

        overlap = sorted(set(self._edges) & set(self._branches))
        if overlap:
            raise ConflictingEdgeError(overlap[0], existing="plain", attempted="conditional")

        self._check_endpoints()

        graph: DiGraph[str] = nx.DiGraph()
        graph.add_nodes_from([START, *self._nodes, END])
        for info in self.get_edges():
            graph.add_edge(info.from_node, info.to_node, kind=info.kind)
        self._graph: DiGraph[str] = nx.freeze(graph)

        self._validate_structure()

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _check_endpoints(self) -> None:
        """Reject empty graphs, a missing entry edge, and dangling edges."""
        if not self._nodes:
            raise GraphValidationError("Graph has no nodes")
        if START not in self._edges and START not in self._branches:
            raise GraphValidationError(f"Graph has no entry edge from {START}")

        known = list(self._nodes)
        for source in [*self._edges, *self._branches]:
            if source != START and source not in self._nodes:
                raise GraphValidationError(_unknown_message("Edge source", source, known))

        for source, target in self._edges.items():
            if target != END and target not in self._nodes:
                raise GraphValidationError(_unknown_message(f"Edge target (from '{source}')", target, known))
        for source, branch in self._branches.items():
            for target in sorted(branch.destinations):
                if target != END and target not in self._nodes:
                    raise GraphValidationError(_unknown_message(f"Router destination (from '{source}')", target, known))

    def _validate_structure(self) -> None:
        """Validate resolution, reachability, and termination.

        Validates:
        1. Every node has exactly one outgoing resolution (plain or conditional)
        2. Every node is reachable from START (no orphans)
        3. END is reachable from every node (no dead ends)

        Cycles are allowed: loop termination is expressed through state and routing.
        """
        unresolved = [name for name in self._nodes if name not in self._edges and name not in self._branches]
        if unresolved:
            raise GraphValidationError(f"Nodes without an outgoing edge: {sorted(unresolved)}")

        reachable = nx.descendants(self._graph, START)
        orphans = [name for name in self._nodes if name not in reachable]
        if orphans:
            raise GraphValidationError(f"Nodes unreachable from {START}: {sorted(orphans)}")

        reaches_end = nx.ancestors(self._graph, END)
        dead_ends = [name for name in self._nodes if name not in reaches_end]
        if dead_ends:
            raise GraphValidationError(f"Nodes with no path to {END}: {sorted(dead_ends)}")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def schema(self) -> StateSchema:
        return self._schema

    @property
    def node_names(self) -> tuple[str, ...]:
        """Node names in registration order."""
        return tuple(self._nodes)

    @property
    def node_count(self) -> int:
        return len(self._nodes)

    def has_node(self, name: str) -> bool:
        return name in self._nodes

    def get_node(self, name: str) -> NodeSpec:
        """Return the node registered under name.

        Raises:
            KeyError: If no such node exists
        """
        return self._nodes[name]

    def get_edges(self) -> list[EdgeInfo]:
        """All possible transitions; one entry per conditional destination."""
        infos = [EdgeInfo(from_node=s, to_node=t, kind=EdgeKind.PLAIN) for s, t in self._edges.items()]
        for source, branch in self._branches.items():
            infos.extend(EdgeInfo(from_node=source, to_node=t, kind=EdgeKind.CONDITIONAL) for t in sorted(branch.destinations))
        return infos

    def get_conditional_edge(self, source: str) -> ConditionalEdge | None:
        return self._branches.get(source)

    def successors(self, name: str) -> list[str]:
        """Possible next steps from name (START allowed), sorted."""
        return sorted(self._graph.successors(name))

    def get_nx_graph(self) -> DiGraph[str]:
        """Return the frozen NetworkX graph (START and END included).

        Mutation attempts raise nx.NetworkXError.
        """
        return self._graph

    # ------------------------------------------------------------------
    # Transition rule
    # ------------------------------------------------------------------

    def next_node(self, current: str, state: Mapping[str, Any]) -> str:
        """Resolve the step after current.

        Follows the plain edge if present; otherwise calls the router with
        the state snapshot and checks its answer against the declared
        destinations.

        Raises:
            RoutingError: If the router raises or returns an undeclared destination
        """
        target = self._edges.get(current)
        if target is not None:
            return target

        branch = self._branches[current]
        try:
            destination = branch.router(state)
        except Exception as e:
            raise RoutingError(
                current,
                None,
                branch.destinations,
                reason=f"router raised {type(e).__name__}: {e}",
            ) from e

        if not isinstance(destination, str) or destination not in branch.destinations:
            raise RoutingError(current, destination, branch.destinations)
        return destination

    # ------------------------------------------------------------------
    # Presentation and execution conveniences
    # ------------------------------------------------------------------

    def to_mermaid(self) -> str:
        """Render the graph as a Mermaid flowchart.

        Conditional edges are drawn dotted. Sequential aliases (N0, N1, ...)
        keep Mermaid IDs valid whatever characters node names contain.
        """
        alias = {name: f"N{i}" for i, name in enumerate(self._nodes)}
        alias[START] = "START"
        alias[END] = "END"

        lines = ["graph TD", "    START([start])"]
        for name in self._nodes:
            lines.append(f'    {alias[name]}["{name}"]')
        lines.append("    END([end])")
        for info in self.get_edges():
            arrow = "-.->" if info.kind == EdgeKind.CONDITIONAL else "-->"
            lines.append(f"    {alias[info.from_node]} {arrow} {alias[info.to_node]}")
        return "\n".join(lines)

    async def invoke(self, initial: Mapping[str, Any] | None = None) -> State:
        """Run the graph once and return the final state.

        Shorthand for stategraph.engine.executor.invoke(self, initial).
        """
        from stategraph.engine.executor import invoke

        return await invoke(self, initial)

    def __repr__(self) -> str:
        return f"CompiledGraph(nodes={list(self._nodes)}, edges={len(self.get_edges())})"


def _unknown_message(what: str, name: str, known: list[str]) -> str:
    message = f"{what} '{name}' is not a declared node"
    suggestions = _suggest_similar(name, known)
    if suggestions:
        message += f". Did you mean: {', '.join(suggestions)}?"
    return message
