"""Status codes and kinds shared across subsystem boundaries."""

from enum import StrEnum


class RunStatus(StrEnum):
    """Final status of a graph run."""

    COMPLETED = "completed"
    FAILED = "failed"


class EdgeKind(StrEnum):
    """How a source node resolves its successor.

    PLAIN edges always follow the single declared target.
    CONDITIONAL edges ask a router, restricted to declared destinations.
    """

    PLAIN = "plain"
    CONDITIONAL = "conditional"
