# tests/unit/core/test_state_schema.py
"""Tests for StateSchema: declaration, initial state, and merging."""

from __future__ import annotations

from collections.abc import Sequence
from operator import add
from typing import Annotated, NotRequired, TypedDict

import pytest
from pydantic import BaseModel

from stategraph.contracts import SchemaError
from stategraph.core.reducers import append
from stategraph.core.schema import MISSING, Field, StateSchema, zero_value


class _Verdict(BaseModel):
    label: str


class _Opaque:
    """Class pydantic cannot build a schema for."""


class TestFieldDeclaration:
    def test_both_default_and_factory_rejected(self) -> None:
        with pytest.raises(SchemaError, match="both default and default_factory"):
            Field("items", list[str], default=[], default_factory=list)

    @pytest.mark.parametrize("name", ["", "__start__", "__end__"])
    def test_invalid_names_rejected(self, name: str) -> None:
        with pytest.raises(SchemaError):
            Field(name)

    def test_non_callable_merge_rejected(self) -> None:
        with pytest.raises(SchemaError, match="merge must be callable"):
            Field("x", int, merge="sum")  # type: ignore[arg-type]

    def test_duplicate_field_rejected(self) -> None:
        with pytest.raises(SchemaError, match="declared twice") as exc_info:
            StateSchema([Field("a", int), Field("a", str)])
        assert exc_info.value.field_name == "a"

    def test_declare_returns_new_schema(self) -> None:
        base = StateSchema([Field("a", int)])
        extended = base.declare(Field("b", str))

        assert base.field_names == ("a",)
        assert extended.field_names == ("a", "b")

    def test_declare_rejects_duplicate_of_existing(self) -> None:
        base = StateSchema([Field("a", int)])
        with pytest.raises(SchemaError):
            base.declare(Field("a", int))

    def test_fields_mapping_is_read_only(self) -> None:
        schema = StateSchema([Field("a", int)])
        with pytest.raises(TypeError):
            schema.fields["b"] = Field("b")  # type: ignore[index]


class TestZeroValue:
    @pytest.mark.parametrize(
        ("annotation", "expected"),
        [
            (str, ""),
            (int, 0),
            (float, 0.0),
            (bool, False),
            (list[str], []),
            (dict[str, int], {}),
            (set[int], set()),
            (tuple[int, ...], ()),
            (Sequence[str], []),
            (str | None, None),
            (_Verdict, None),
            (Annotated[int, "non-negative"], 0),
            (Annotated[list[str], "notes"], []),
            (NotRequired[Annotated[str, "label"]], ""),
        ],
    )
    def test_zero_values(self, annotation: object, expected: object) -> None:
        assert zero_value(annotation) == expected

    def test_container_zero_is_fresh_each_time(self) -> None:
        assert zero_value(list[str]) is not zero_value(list[str])

    def test_annotated_field_starts_at_its_zero_value(self) -> None:
        schema = StateSchema([Field("retries", Annotated[int, "non-negative"])])

        state = schema.create_initial()

        assert state == {"retries": 0}
        assert schema.merge(state, {"retries": 1}) == {"retries": 1}


class TestCreateInitial:
    def test_populates_every_field(self) -> None:
        schema = StateSchema(
            [
                Field("input", str),
                Field("limit", int, default=5),
                Field("tags", list[str], default_factory=lambda: ["new"]),
                Field("note", str | None),
            ]
        )

        state = schema.create_initial({"input": "hello"})

        assert state == {"input": "hello", "limit": 5, "tags": ["new"], "note": None}

    def test_override_beats_default(self) -> None:
        schema = StateSchema([Field("limit", int, default=5)])
        assert schema.create_initial({"limit": 9}) == {"limit": 9}

    def test_none_overrides_means_defaults(self) -> None:
        schema = StateSchema([Field("limit", int, default=5)])
        assert schema.create_initial() == {"limit": 5}

    def test_undeclared_override_rejected(self) -> None:
        schema = StateSchema([Field("input", str)])
        with pytest.raises(SchemaError, match="undeclared fields") as exc_info:
            schema.create_initial({"input": "x", "extra": 1})
        assert exc_info.value.field_name == "extra"

    def test_override_type_checked(self) -> None:
        schema = StateSchema([Field("limit", int)])
        with pytest.raises(SchemaError, match="Field 'limit'"):
            schema.create_initial({"limit": "5"})

    def test_non_mapping_overrides_rejected(self) -> None:
        schema = StateSchema([Field("limit", int)])
        with pytest.raises(SchemaError, match="must be a mapping"):
            schema.create_initial([("limit", 1)])  # type: ignore[arg-type]

    def test_override_containers_are_copied(self) -> None:
        schema = StateSchema([Field("tags", list[str]), Field("meta", dict[str, list[int]])])
        overrides = {"tags": ["a"], "meta": {"ids": [1]}}

        state = schema.create_initial(overrides)
        state["tags"].append("mutated")
        state["meta"]["ids"].append(2)

        assert overrides == {"tags": ["a"], "meta": {"ids": [1]}}

    def test_mutable_default_not_shared_between_states(self) -> None:
        schema = StateSchema([Field("tags", list[str], default=["a"])])
        first = schema.create_initial()
        first["tags"].append("mutated")

        assert schema.create_initial() == {"tags": ["a"]}


class TestMerge:
    def test_overwrite_without_merge_function(self) -> None:
        schema = StateSchema([Field("summary", str)])
        state = schema.create_initial({"summary": "old"})
        assert schema.merge(state, {"summary": "new"}) == {"summary": "new"}

    def test_merge_function_applied(self) -> None:
        schema = StateSchema([Field("messages", list[str], merge=append)])
        state = schema.create_initial({"messages": ["a"]})
        assert schema.merge(state, {"messages": ["b"]}) == {"messages": ["a", "b"]}

    def test_merge_does_not_mutate_inputs(self) -> None:
        schema = StateSchema([Field("messages", list[str], merge=append), Field("n", int)])
        state = schema.create_initial({"messages": ["a"], "n": 1})
        partial = {"messages": ["b"], "n": 2}

        merged = schema.merge(state, partial)

        assert state == {"messages": ["a"], "n": 1}
        assert partial == {"messages": ["b"], "n": 2}
        assert merged is not state

    def test_empty_partial_is_noop(self) -> None:
        schema = StateSchema([Field("a", int, default=3)])
        state = schema.create_initial()
        assert schema.merge(state, {}) == state

    def test_none_partial_is_noop(self) -> None:
        schema = StateSchema([Field("a", int, default=3)])
        state = schema.create_initial()
        assert schema.merge(state, None) == state

    def test_undeclared_key_rejected_with_node_name(self) -> None:
        schema = StateSchema([Field("a", int)])
        with pytest.raises(SchemaError, match="Node 'writer'") as exc_info:
            schema.merge(schema.create_initial(), {"route": "fallback"}, node_name="writer")
        assert exc_info.value.node_name == "writer"
        assert exc_info.value.field_name == "route"

    def test_non_mapping_partial_rejected(self) -> None:
        schema = StateSchema([Field("a", int)])
        with pytest.raises(SchemaError, match="must be a mapping"):
            schema.merge(schema.create_initial(), "a=1")  # type: ignore[arg-type]

    def test_merged_value_type_checked(self) -> None:
        schema = StateSchema([Field("count", int)])
        with pytest.raises(SchemaError, match="Field 'count'"):
            schema.merge(schema.create_initial(), {"count": "three"})

    def test_type_check_is_strict(self) -> None:
        schema = StateSchema([Field("count", int)])
        with pytest.raises(SchemaError):
            schema.merge(schema.create_initial(), {"count": True})

    def test_model_field_requires_instance(self) -> None:
        schema = StateSchema([Field("verdict", _Verdict | None)])
        state = schema.create_initial()

        merged = schema.merge(state, {"verdict": _Verdict(label="ok")})
        assert merged["verdict"] == _Verdict(label="ok")

        with pytest.raises(SchemaError):
            schema.merge(state, {"verdict": {"label": "ok"}})

    def test_value_stored_as_given(self) -> None:
        schema = StateSchema([Field("ratio", float)])
        merged = schema.merge(schema.create_initial(), {"ratio": 1})
        assert merged["ratio"] == 1
        assert type(merged["ratio"]) is int

    def test_opaque_class_checked_with_isinstance(self) -> None:
        schema = StateSchema([Field("handle", _Opaque, default=None)])
        state = schema.create_initial()

        assert isinstance(schema.merge(state, {"handle": _Opaque()})["handle"], _Opaque)
        with pytest.raises(SchemaError, match="expected _Opaque"):
            schema.merge(state, {"handle": object()})

    def test_untyped_field_accepts_anything(self) -> None:
        schema = StateSchema([Field("payload")])
        merged = schema.merge(schema.create_initial(), {"payload": object})
        assert merged["payload"] is object

    def test_failing_merge_function_reported_as_schema_error(self) -> None:
        def explode(previous: object, incoming: object) -> object:
            raise ArithmeticError("boom")

        schema = StateSchema([Field("x", merge=explode)])
        with pytest.raises(SchemaError, match="Merge function for field 'x' failed") as exc_info:
            schema.merge(schema.create_initial(), {"x": 1})
        assert isinstance(exc_info.value.__cause__, ArithmeticError)


class _AgentState(TypedDict):
    query: str
    history: Annotated[list[str], add]
    issues: NotRequired[Annotated[list[str], append]]
    retries: int


class TestFromTypedDict:
    def test_reducers_taken_from_annotated_metadata(self) -> None:
        schema = StateSchema.from_typed_dict(_AgentState)

        assert schema.field_names == ("query", "history", "issues", "retries")
        assert schema.fields["history"].merge is add
        assert schema.fields["issues"].merge is append
        assert schema.fields["query"].merge is None
        assert schema.fields["issues"].annotation == list[str]

    def test_defaults_applied(self) -> None:
        schema = StateSchema.from_typed_dict(_AgentState, defaults={"retries": 2})

        assert schema.fields["retries"].default == 2
        assert schema.fields["query"].default is MISSING
        assert schema.create_initial({"query": "q"}) == {"query": "q", "history": [], "issues": [], "retries": 2}

    def test_unknown_default_rejected(self) -> None:
        with pytest.raises(SchemaError, match="undeclared fields"):
            StateSchema.from_typed_dict(_AgentState, defaults={"missing": 1})

    def test_history_accumulates(self) -> None:
        schema = StateSchema.from_typed_dict(_AgentState)
        state = schema.create_initial({"query": "q"})
        state = schema.merge(state, {"history": ["user: hi"]})
        state = schema.merge(state, {"history": ["assistant: hello"]})
        assert state["history"] == ["user: hi", "assistant: hello"]
