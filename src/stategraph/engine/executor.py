# src/stategraph/engine/executor.py
"""GraphExecutor: runs a compiled graph from START to END.

One run is strictly sequential. The executor keeps a pointer that starts at
START and advances by the graph's transition rule (plain edge, else router).
Each real node receives a read-only snapshot of the current state; its
partial update is validated and merged through the schema before the pointer
moves on. Reaching END returns the final state.

Failure semantics:
    - A node that raises aborts the run with NodeExecutionError. Nothing it
      produced is merged. The executor never retries.
    - A partial update that violates the schema raises SchemaError.
    - A router that raises or returns an undeclared destination raises
      RoutingError.
    - asyncio.CancelledError is not intercepted.

The executor holds no per-run state on self, so one executor (and one
compiled graph) can serve any number of concurrent runs.
"""

from __future__ import annotations

import asyncio
import inspect
import uuid
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, TypeAlias

import structlog

from stategraph.contracts.enums import RunStatus
from stategraph.contracts.errors import NodeExecutionError
from stategraph.contracts.events import (
    NodeCompleted,
    NodeFailed,
    NodeStarted,
    RouteSelected,
    RunEvent,
    RunFinished,
    RunStarted,
)
from stategraph.contracts.types import END, START, State
from stategraph.core.dag.graph import CompiledGraph
from stategraph.engine.clock import DEFAULT_CLOCK, Clock

slog = structlog.get_logger(__name__)

RunListener: TypeAlias = Callable[[RunEvent], None]


@dataclass(frozen=True, slots=True)
class StepRecord:
    """One completed node invocation.

    Attributes:
        step: 0-based position within the run
        node_name: Node that ran
        duration_ms: Time spent in the node's update function
        updated_fields: Keys of the partial update that was merged
    """

    step: int
    node_name: str
    duration_ms: float
    updated_fields: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class RunResult:
    """Outcome of a successful run."""

    run_id: str
    state: State
    steps: tuple[StepRecord, ...]
    duration_ms: float

    @property
    def path(self) -> tuple[str, ...]:
        """Node names in the order they ran (repeats included)."""
        return tuple(record.node_name for record in self.steps)


class GraphExecutor:
    """Executes a CompiledGraph.

    Example:
        executor = GraphExecutor(graph, listeners=[events.append])
        final_state = await executor.invoke({"input": "hello"})

        result = await executor.execute({"input": "hello"})
        print(result.path, result.duration_ms)
    """

    def __init__(
        self,
        graph: CompiledGraph,
        *,
        clock: Clock | None = None,
        listeners: Iterable[RunListener] = (),
    ) -> None:
        """Initialize executor.

        Args:
            graph: Compiled graph to run
            clock: Clock used for durations (defaults to the system clock)
            listeners: Callables receiving each RunEvent as it happens
        """
        self._graph = graph
        self._clock = clock or DEFAULT_CLOCK
        self._listeners: tuple[RunListener, ...] = tuple(listeners)

    @property
    def graph(self) -> CompiledGraph:
        return self._graph

    async def invoke(self, initial: Mapping[str, Any] | None = None) -> State:
        """Run once and return the final state.

        Raises:
            SchemaError: If initial values or a node's partial update violate the schema
            RoutingError: If a router fails or picks an undeclared destination
            NodeExecutionError: If a node's update function raises
        """
        result = await self.execute(initial)
        return result.state

    async def execute(self, initial: Mapping[str, Any] | None = None) -> RunResult:
        """Run once and return the final state together with the step trace.

        Raises:
            Same as invoke().
        """
        schema = self._graph.schema
        state = schema.create_initial(initial)
        run_id = uuid.uuid4().hex
        started = self._clock.monotonic()
        steps: list[StepRecord] = []

        with structlog.contextvars.bound_contextvars(run_id=run_id):
            self._emit(RunStarted(run_id=run_id, field_names=schema.field_names))
            slog.info("run_started", nodes=self._graph.node_count)

            try:
                current = START
                while True:
                    current = self._advance(run_id, current, state)
                    if current == END:
                        break
                    state, record = await self._run_node(run_id, current, len(steps), state)
                    steps.append(record)
            except Exception:
                duration_ms = self._elapsed_ms(started)
                self._emit(RunFinished(run_id=run_id, status=RunStatus.FAILED, steps=len(steps), duration_ms=duration_ms))
                slog.warning("run_failed", steps=len(steps), duration_ms=duration_ms)
                raise

            duration_ms = self._elapsed_ms(started)
            self._emit(RunFinished(run_id=run_id, status=RunStatus.COMPLETED, steps=len(steps), duration_ms=duration_ms))
            slog.info("run_finished", steps=len(steps), duration_ms=duration_ms)

        return RunResult(run_id=run_id, state=state, steps=tuple(steps), duration_ms=duration_ms)

    def _advance(self, run_id: str, current: str, state: State) -> str:
        """Apply the transition rule from current."""
        target = self._graph.next_node(current, MappingProxyType(state))
        if self._graph.get_conditional_edge(current) is not None:
            self._emit(RouteSelected(run_id=run_id, source=current, destination=target))
            slog.debug("route_selected", source=current, destination=target)
        return target

    async def _run_node(self, run_id: str, name: str, step: int, state: State) -> tuple[State, StepRecord]:
        """Invoke one node and merge its partial update.

        Sync update functions are called inline on the event loop; async ones
        are awaited. Either way the run is suspended until the node returns.
        """
        node = self._graph.get_node(name)
        self._emit(NodeStarted(run_id=run_id, node_name=name, step=step))
        node_started = self._clock.monotonic()

        try:
            partial = node.func(MappingProxyType(state))
            if inspect.isawaitable(partial):
                partial = await partial
        except Exception as e:
            duration_ms = self._elapsed_ms(node_started)
            self._emit(
                NodeFailed(
                    run_id=run_id,
                    node_name=name,
                    step=step,
                    duration_ms=duration_ms,
                    error_type=type(e).__name__,
                    error=str(e),
                )
            )
            slog.warning("node_failed", node=name, step=step, error_type=type(e).__name__, error=str(e))
            raise NodeExecutionError(name, e) from e

        duration_ms = self._elapsed_ms(node_started)
        partial = self._graph.schema.validate_partial(partial, node_name=name)
        merged = self._graph.schema.merge(state, partial, node_name=name)

        record = StepRecord(step=step, node_name=name, duration_ms=duration_ms, updated_fields=tuple(partial))
        self._emit(
            NodeCompleted(
                run_id=run_id,
                node_name=name,
                step=step,
                duration_ms=duration_ms,
                updated_fields=record.updated_fields,
            )
        )
        slog.debug("node_completed", node=name, step=step, duration_ms=duration_ms, updated=list(record.updated_fields))
        return merged, record

    def _emit(self, event: RunEvent) -> None:
        """Deliver an event to every listener.

        A failing listener is logged and skipped; observers never change
        the outcome of a run.
        """
        for listener in self._listeners:
            try:
                listener(event)
            except Exception as e:
                slog.warning(
                    "listener_failed",
                    listener=getattr(listener, "__qualname__", repr(listener)),
                    event_type=type(event).__name__,
                    error=str(e),
                )

    def _elapsed_ms(self, since: float) -> float:
        return (self._clock.monotonic() - since) * 1000.0


async def invoke(graph: CompiledGraph, initial: Mapping[str, Any] | None = None) -> State:
    """Run graph once with initial values and return the final state.

    Raises:
        SchemaError: If initial values or a node's partial update violate the schema
        RoutingError: If a router fails or picks an undeclared destination
        NodeExecutionError: If a node's update function raises
    """
    return await GraphExecutor(graph).invoke(initial)


def invoke_sync(graph: CompiledGraph, initial: Mapping[str, Any] | None = None) -> State:
    """Blocking wrapper around invoke() for scripts without an event loop.

    Must not be called from inside a running event loop.
    """
    return asyncio.run(invoke(graph, initial))
