# tests/conftest.py
"""Shared test fixtures and hypothesis configuration.

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/property/
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Any

import pytest
import structlog
from hypothesis import Phase, Verbosity, settings

from stategraph.contracts import END, START
from stategraph.core.dag import CompiledGraph, GraphBuilder
from stategraph.core.reducers import append
from stategraph.core.schema import Field, StateSchema

# =============================================================================
# Hypothesis Configuration
# =============================================================================

settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))


# =============================================================================
# Logging isolation
# =============================================================================


@pytest.fixture(autouse=True)
def _reset_structlog_contextvars():
    """Keep run_id bindings from leaking between tests."""
    structlog.contextvars.clear_contextvars()
    yield
    structlog.contextvars.clear_contextvars()


# =============================================================================
# Shared schemas and graphs
# =============================================================================


@pytest.fixture
def text_schema() -> StateSchema:
    """Schema from the summarize -> analyze workflow (overwrite semantics only)."""
    return StateSchema(
        [
            Field("input", str),
            Field("summary", str),
            Field("analysis", str),
        ]
    )


@pytest.fixture
def message_schema() -> StateSchema:
    """Schema with an appending messages field and an overwrite counter."""
    return StateSchema(
        [
            Field("messages", list[str], merge=append),
            Field("count", int),
            Field("error", str | None),
        ]
    )


async def summarize(state: Mapping[str, Any]) -> dict[str, Any]:
    return {"summary": f"echo: {state['input']}"}


async def analyze(state: Mapping[str, Any]) -> dict[str, Any]:
    return {"analysis": "neutral"}


@pytest.fixture
def summarize_analyze_graph(text_schema: StateSchema) -> CompiledGraph:
    """START -> summarize -> analyze -> END."""
    builder = GraphBuilder(text_schema)
    builder.add_node("summarize", summarize)
    builder.add_node("analyze", analyze)
    builder.add_edge(START, "summarize")
    builder.add_edge("summarize", "analyze")
    builder.add_edge("analyze", END)
    return builder.compile()
