# src/stategraph/contracts/events.py
"""Run events emitted by the executor.

Events give listeners visibility into a run as it progresses: run start and
finish, each node invocation, and each conditional routing decision. They are
ephemeral notifications; the authoritative result of a run is the returned
state (or the raised error).
"""

from dataclasses import dataclass

from stategraph.contracts.enums import RunStatus


@dataclass(frozen=True, slots=True)
class RunEvent:
    """Base for all run events.

    Attributes:
        run_id: Identifier of the run that emitted the event
    """

    run_id: str


@dataclass(frozen=True, slots=True)
class RunStarted(RunEvent):
    """Emitted after the initial state is built, before the first node runs."""

    field_names: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class NodeStarted(RunEvent):
    """Emitted immediately before a node's update function is invoked.

    Attributes:
        node_name: Node being invoked
        step: 0-based position of this invocation within the run
    """

    node_name: str
    step: int


@dataclass(frozen=True, slots=True)
class NodeCompleted(RunEvent):
    """Emitted after a node's partial update has been merged.

    Attributes:
        updated_fields: Keys present in the node's partial update
    """

    node_name: str
    step: int
    duration_ms: float
    updated_fields: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class NodeFailed(RunEvent):
    """Emitted when a node raises. The run is aborted afterwards."""

    node_name: str
    step: int
    duration_ms: float
    error_type: str
    error: str


@dataclass(frozen=True, slots=True)
class RouteSelected(RunEvent):
    """Emitted when a conditional edge's router picks a destination."""

    source: str
    destination: str


@dataclass(frozen=True, slots=True)
class RunFinished(RunEvent):
    """Emitted once per run, on success or failure."""

    status: RunStatus
    steps: int
    duration_ms: float
