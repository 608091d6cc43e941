# src/stategraph/engine/__init__.py
"""Execution engine: runs compiled graphs, plus opt-in node wrappers."""

from stategraph.engine.clock import Clock, MockClock, SystemClock
from stategraph.engine.executor import GraphExecutor, RunResult, StepRecord, invoke, invoke_sync
from stategraph.engine.guards import capture_errors, with_timeout
from stategraph.engine.retry import MaxRetriesExceeded, RetryConfig, retrying
from stategraph.engine.structured import parse_structured_output, strip_code_fence, structured_node

__all__ = [
    "Clock",
    "GraphExecutor",
    "MaxRetriesExceeded",
    "MockClock",
    "RetryConfig",
    "RunResult",
    "StepRecord",
    "SystemClock",
    "capture_errors",
    "invoke",
    "invoke_sync",
    "parse_structured_output",
    "retrying",
    "strip_code_fence",
    "structured_node",
    "with_timeout",
]
