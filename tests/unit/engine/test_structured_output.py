# tests/unit/engine/test_structured_output.py
"""Tests for structured LLM output parsing and the structured_node wrapper."""

from collections.abc import Mapping
from typing import Any, Literal

import pytest
from pydantic import BaseModel

from stategraph.contracts import END, START, NodeExecutionError, SchemaError, StructuredOutputError
from stategraph.core.dag import GraphBuilder
from stategraph.core.schema import Field, StateSchema
from stategraph.engine.executor import invoke
from stategraph.engine.guards import capture_errors
from stategraph.engine.structured import parse_structured_output, strip_code_fence, structured_node


class Sentiment(BaseModel):
    label: Literal["positive", "neutral", "negative"]
    confidence: float


class TestStripCodeFence:
    @pytest.mark.parametrize(
        ("content", "expected"),
        [
            ('{"a": 1}', '{"a": 1}'),
            ('```json\n{"a": 1}\n```', '{"a": 1}'),
            ('```\n{"a": 1}\n```', '{"a": 1}'),
            ('  ```json\n{"a": 1}```  ', '{"a": 1}'),
        ],
    )
    def test_fences(self, content: str, expected: str) -> None:
        assert strip_code_fence(content) == expected


class TestParseStructuredOutput:
    def test_plain_json(self) -> None:
        parsed = parse_structured_output('{"label": "neutral", "confidence": 0.7}', Sentiment)
        assert parsed == Sentiment(label="neutral", confidence=0.7)

    def test_fenced_json(self) -> None:
        raw = '```json\n{"label": "positive", "confidence": 0.9}\n```'
        assert parse_structured_output(raw, Sentiment).label == "positive"

    def test_mapping(self) -> None:
        assert parse_structured_output({"label": "negative", "confidence": 1}, Sentiment).confidence == 1.0

    def test_instance_passed_through(self) -> None:
        instance = Sentiment(label="neutral", confidence=0.5)
        assert parse_structured_output(instance, Sentiment) is instance

    def test_invalid_json(self) -> None:
        with pytest.raises(StructuredOutputError, match="Sentiment: invalid JSON") as exc_info:
            parse_structured_output("I think it is positive", Sentiment)
        assert exc_info.value.raw_preview == "I think it is positive"
        assert exc_info.value.model_name == "Sentiment"

    def test_validation_failure_lists_locations(self) -> None:
        with pytest.raises(StructuredOutputError, match="label:") as exc_info:
            parse_structured_output('{"label": "ecstatic", "confidence": 0.9}', Sentiment)
        assert "confidence" not in str(exc_info.value)

    def test_missing_field(self) -> None:
        with pytest.raises(StructuredOutputError, match="confidence: Field required"):
            parse_structured_output({"label": "neutral"}, Sentiment)

    def test_unsupported_type(self) -> None:
        with pytest.raises(StructuredOutputError, match="expected str or mapping, got int"):
            parse_structured_output(42, Sentiment)  # type: ignore[arg-type]

    def test_is_schema_error(self) -> None:
        with pytest.raises(SchemaError):
            parse_structured_output("[]", Sentiment)

    def test_raw_preview_truncated(self) -> None:
        with pytest.raises(StructuredOutputError) as exc_info:
            parse_structured_output("x" * 2000, Sentiment)
        assert len(exc_info.value.raw_preview) == 500


@pytest.fixture
def sentiment_schema() -> StateSchema:
    return StateSchema(
        [
            Field("input", str),
            Field("sentiment", Sentiment | None),
            Field("error", str | None),
        ]
    )


class TestStructuredNode:
    @pytest.mark.asyncio
    async def test_node_writes_model_to_field(self, sentiment_schema: StateSchema) -> None:
        async def classify(state: Mapping[str, Any]) -> str:
            return '```json\n{"label": "positive", "confidence": 0.95}\n```'

        graph = (
            GraphBuilder(sentiment_schema)
            .add_node("classify", structured_node(classify, Sentiment, "sentiment"))
            .add_edge(START, "classify")
            .add_edge("classify", END)
            .compile()
        )

        final = await invoke(graph, {"input": "great product"})

        assert final["sentiment"] == Sentiment(label="positive", confidence=0.95)

    @pytest.mark.asyncio
    async def test_parse_failure_aborts_run(self, sentiment_schema: StateSchema) -> None:
        def classify(state: Mapping[str, Any]) -> str:
            return "not json"

        graph = (
            GraphBuilder(sentiment_schema)
            .add_node("classify", structured_node(classify, Sentiment, "sentiment"))
            .add_edge(START, "classify")
            .add_edge("classify", END)
            .compile()
        )

        with pytest.raises(NodeExecutionError) as exc_info:
            await invoke(graph)
        assert isinstance(exc_info.value.cause, StructuredOutputError)

    @pytest.mark.asyncio
    async def test_parse_failure_captured(self, sentiment_schema: StateSchema) -> None:
        def classify(state: Mapping[str, Any]) -> str:
            return "not json"

        node = capture_errors(structured_node(classify, Sentiment, "sentiment"), "error")
        graph = GraphBuilder(sentiment_schema).add_node("classify", node).add_edge(START, "classify").add_edge("classify", END).compile()

        final = await invoke(graph)

        assert final["sentiment"] is None
        assert final["error"].startswith("StructuredOutputError: Sentiment: invalid JSON")
