# src/stategraph/contracts/types.py
"""Semantic type aliases and graph sentinels.

The sentinels are plain strings so they can be passed anywhere a node name
is accepted (edge endpoints, router return values).
"""

from collections.abc import Awaitable, Callable, Mapping
from typing import Any, Final, TypeAlias

START: Final = "__start__"
"""Sentinel source of the entry edge. Never a real node."""

END: Final = "__end__"
"""Sentinel target that terminates a run. Never a real node."""

RESERVED_NAMES: Final = frozenset({START, END})

State: TypeAlias = dict[str, Any]
"""Complete state record: every declared field is present."""

PartialState: TypeAlias = Mapping[str, Any]
"""Subset of state fields returned by a node."""

MergeFunction: TypeAlias = Callable[[Any, Any], Any]
"""Combines (previous, incoming) into the new value for one field."""

NodeFunction: TypeAlias = Callable[[Mapping[str, Any]], Awaitable[PartialState | None] | PartialState | None]
"""Node update function. Receives a read-only state snapshot."""

RouterFunction: TypeAlias = Callable[[Mapping[str, Any]], str]
"""Selects the next node name (or END) from a read-only state snapshot."""
