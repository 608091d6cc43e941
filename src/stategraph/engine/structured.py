# src/stategraph/engine/structured.py
"""Structured LLM output: parse model text into a pydantic model.

LLM responses that are meant to be JSON often arrive wrapped in a markdown
code fence, or as an already-decoded dict when the provider enforces a JSON
response format. parse_structured_output() accepts all three shapes and
always returns a validated model instance or raises StructuredOutputError.
"""

from __future__ import annotations

import functools
import inspect
import json
from collections.abc import Mapping
from typing import Any, TypeVar

import structlog
from pydantic import BaseModel, ValidationError

from stategraph.contracts.errors import StructuredOutputError
from stategraph.contracts.types import NodeFunction, PartialState

slog = structlog.get_logger(__name__)

M = TypeVar("M", bound=BaseModel)


def strip_code_fence(content: str) -> str:
    """Remove a surrounding ```/```json fence, if present."""
    content = content.strip()
    if content.startswith("```"):
        first_newline = content.find("\n")
        if first_newline != -1:
            content = content[first_newline + 1 :]
        if content.endswith("```"):
            content = content[:-3]
    return content.strip()


def parse_structured_output(raw: str | Mapping[str, Any] | BaseModel, model: type[M]) -> M:
    """Validate raw LLM output against model.

    Args:
        raw: JSON text (optionally fenced), a decoded mapping, or a model instance
        model: Pydantic model class

    Raises:
        StructuredOutputError: If the text is not JSON or fails validation
    """
    if isinstance(raw, model):
        return raw

    if isinstance(raw, str):
        content = strip_code_fence(raw)
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise StructuredOutputError(f"invalid JSON ({e.msg} at position {e.pos})", model_name=model.__name__, raw=raw) from e
        preview = raw
    elif isinstance(raw, Mapping):
        data = dict(raw)
        preview = repr(raw)
    else:
        raise StructuredOutputError(
            f"expected str or mapping, got {type(raw).__name__}",
            model_name=model.__name__,
            raw=repr(raw),
        )

    try:
        return model.model_validate(data)
    except ValidationError as e:
        errors = "; ".join(f"{'.'.join(map(str, err['loc'])) or '<root>'}: {err['msg']}" for err in e.errors())
        raise StructuredOutputError(errors, model_name=model.__name__, raw=preview) from e


def structured_node(func: NodeFunction, model: type[BaseModel], field: str) -> NodeFunction:
    """Wrap a node that returns raw LLM output so it returns ``{field: model}``.

    The wrapped function may return a string, a mapping, or a model
    instance. A parse failure raises StructuredOutputError inside the node,
    which the executor reports as a NodeExecutionError; wrap the result with
    guards.capture_errors() to route on it instead.
    """

    @functools.wraps(func)
    async def wrapper(state: Mapping[str, Any]) -> PartialState:
        raw = func(state)
        if inspect.isawaitable(raw):
            raw = await raw
        parsed = parse_structured_output(raw, model)
        slog.debug("structured_output_parsed", model=model.__name__, field=field)
        return {field: parsed}

    return wrapper
