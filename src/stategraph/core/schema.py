# src/stategraph/core/schema.py
"""State schema: field declarations, initial state, and partial-update merging.

A StateSchema is immutable once built. It is shared read-only by every run of
every graph compiled against it, so all operations here are pure: they return
new dicts and never mutate the state or partial they are given.

Merge semantics are always explicit. A field either declares exactly one merge
function, or incoming values overwrite the previous value (last writer wins).

Unknown fields are REJECTED, never ignored: an initial override or a partial
update naming an undeclared field raises SchemaError.

Type checking:
    Each field's annotation is compiled into a pydantic TypeAdapter and values
    are validated in strict mode (no coercion). Validated values are stored
    as given; the adapter only decides pass/fail. Annotations pydantic cannot
    build a schema for fall back to an isinstance() check when they are plain
    classes, and are unchecked otherwise.
"""

from __future__ import annotations

import copy
from collections.abc import Callable, Iterable, Mapping, MutableMapping, MutableSequence, Sequence
from collections.abc import Set as AbstractSet
from dataclasses import dataclass
from types import MappingProxyType
from typing import Annotated, Any, NotRequired, Required, get_args, get_origin, get_type_hints

from pydantic import TypeAdapter, ValidationError
from pydantic.errors import PydanticSchemaGenerationError

from stategraph.contracts.errors import SchemaError
from stategraph.contracts.types import RESERVED_NAMES, MergeFunction, PartialState, State


class _Missing:
    """Marker for "no default declared" (None is a valid default)."""

    def __repr__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()

_SCALAR_ZEROS: dict[Any, Any] = {
    str: "",
    int: 0,
    float: 0.0,
    bool: False,
    bytes: b"",
}

_CONTAINER_ZEROS: dict[Any, Callable[[], Any]] = {
    list: list,
    dict: dict,
    set: set,
    frozenset: frozenset,
    tuple: tuple,
    Sequence: list,
    MutableSequence: list,
    Mapping: dict,
    MutableMapping: dict,
    AbstractSet: set,
}


def zero_value(annotation: Any) -> Any:
    """Return the zero value for an annotation.

    Scalars map to "", 0, 0.0, False, b"". Containers (including
    parameterised forms such as list[str]) map to a fresh empty container.
    Everything else, including Optional and union types, maps to None.
    Annotated, Required and NotRequired wrappers are looked through.
    """
    annotation, _ = _split_annotation(annotation)
    if annotation in _SCALAR_ZEROS:
        return _SCALAR_ZEROS[annotation]
    origin = get_origin(annotation) or annotation
    factory = _CONTAINER_ZEROS.get(origin)
    if factory is not None:
        return factory()
    return None


@dataclass(frozen=True, slots=True)
class Field:
    """Declaration of one state field.

    Attributes:
        name: Field name (key in the state dict)
        annotation: Python type used for strict validation; Any disables checks
        default: Value used when no initial override is supplied
        default_factory: Zero-argument callable producing the default
        merge: Merge function (previous, incoming) -> new; None means overwrite
    """

    name: str
    annotation: Any = Any
    default: Any = MISSING
    default_factory: Callable[[], Any] | None = None
    merge: MergeFunction | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name:
            raise SchemaError(f"Field name must be a non-empty string, got {self.name!r}")
        if self.name in RESERVED_NAMES:
            raise SchemaError(f"Field name '{self.name}' is reserved", field_name=self.name)
        if self.default is not MISSING and self.default_factory is not None:
            raise SchemaError("Field declares both default and default_factory", field_name=self.name)
        if self.merge is not None and not callable(self.merge):
            raise SchemaError(f"merge must be callable, got {type(self.merge).__name__}", field_name=self.name)

    def initial_value(self) -> Any:
        """Default, else default factory, else the annotation's zero value.

        Plain defaults are deep-copied so runs never share mutable containers.
        """
        if self.default_factory is not None:
            return self.default_factory()
        if self.default is not MISSING:
            return copy.deepcopy(self.default)
        return zero_value(self.annotation)


class _TypeCheck:
    """Strict type check for one field's annotation."""

    __slots__ = ("_adapter", "_cls", "_annotation")

    def __init__(self, annotation: Any) -> None:
        self._annotation = annotation
        self._adapter: TypeAdapter[Any] | None = None
        self._cls: type | None = None
        if annotation is Any:
            return
        try:
            self._adapter = TypeAdapter(annotation)
        except PydanticSchemaGenerationError:
            # Arbitrary classes pydantic has no schema for
            if isinstance(annotation, type):
                self._cls = annotation

    def error_for(self, value: Any) -> str | None:
        """Return a description of the mismatch, or None if value conforms."""
        if self._adapter is not None:
            try:
                self._adapter.validate_python(value, strict=True)
            except ValidationError as e:
                first = e.errors()[0]
                return f"expected {_type_name(self._annotation)}, got {type(value).__name__} ({first['msg']})"
            return None
        if self._cls is not None and not isinstance(value, self._cls):
            return f"expected {self._cls.__name__}, got {type(value).__name__}"
        return None


def _type_name(annotation: Any) -> str:
    if isinstance(annotation, type):
        return annotation.__name__
    return repr(annotation)


class StateSchema:
    """Immutable set of field declarations.

    Example:
        schema = StateSchema([
            Field("input", str),
            Field("messages", list[str], merge=append),
        ])
        state = schema.create_initial({"input": "hello"})
        state = schema.merge(state, {"messages": ["hi"]})
    """

    __slots__ = ("_fields", "_checks")

    def __init__(self, fields: Iterable[Field] = ()) -> None:
        declared: dict[str, Field] = {}
        for f in fields:
            if not isinstance(f, Field):
                raise SchemaError(f"Expected Field, got {type(f).__name__}")
            if f.name in declared:
                raise SchemaError(f"Field '{f.name}' is declared twice", field_name=f.name)
            declared[f.name] = f
        self._fields: MappingProxyType[str, Field] = MappingProxyType(declared)
        self._checks: MappingProxyType[str, _TypeCheck] = MappingProxyType(
            {name: _TypeCheck(f.annotation) for name, f in declared.items()}
        )

    def declare(self, *fields: Field) -> StateSchema:
        """Return a new schema with additional fields registered."""
        return StateSchema([*self._fields.values(), *fields])

    @classmethod
    def from_typed_dict(cls, typed_dict: type, defaults: Mapping[str, Any] | None = None) -> StateSchema:
        """Build a schema from a TypedDict declaration.

        Fields annotated as ``Annotated[T, merge_fn]`` use the last callable
        (non-class) metadata item as their merge function.

        Args:
            typed_dict: TypedDict class
            defaults: Optional default values keyed by field name

        Raises:
            SchemaError: If defaults name a field the TypedDict does not declare
        """
        hints = get_type_hints(typed_dict, include_extras=True)
        defaults = dict(defaults or {})
        unknown = sorted(set(defaults) - set(hints))
        if unknown:
            raise SchemaError(f"Defaults reference undeclared fields: {unknown}")

        fields = []
        for name, hint in hints.items():
            annotation, merge = _split_annotation(hint)
            fields.append(
                Field(
                    name,
                    annotation,
                    default=defaults.get(name, MISSING),
                    merge=merge,
                )
            )
        return cls(fields)

    @property
    def fields(self) -> Mapping[str, Field]:
        return self._fields

    @property
    def field_names(self) -> tuple[str, ...]:
        return tuple(self._fields)

    def __contains__(self, name: object) -> bool:
        return name in self._fields

    def __len__(self) -> int:
        return len(self._fields)

    def __repr__(self) -> str:
        return f"StateSchema({list(self._fields)})"

    def create_initial(self, overrides: Mapping[str, Any] | None = None) -> State:
        """Build a complete state: override, else default, else zero value.

        Override values are deep-copied, so nodes mutating containers in place
        never reach the caller's mapping or another run started from it.

        Raises:
            SchemaError: If an override names an undeclared field or fails the
                field's type check
        """
        overrides = overrides or {}
        if not isinstance(overrides, Mapping):
            raise SchemaError(f"Initial values must be a mapping, got {type(overrides).__name__}")
        self._reject_unknown(overrides, context="Initial values")

        state: State = {}
        for name, f in self._fields.items():
            if name in overrides:
                value = overrides[name]
                self._check_type(name, value)
                state[name] = copy.deepcopy(value)
            else:
                state[name] = f.initial_value()
        return state

    def validate_partial(self, partial: PartialState | None, *, node_name: str | None = None) -> PartialState:
        """Normalise and check a node's partial update.

        None is treated as an empty update. Anything that is not a mapping, or
        a mapping with undeclared keys, is rejected.
        """
        if partial is None:
            return {}
        if not isinstance(partial, Mapping):
            raise SchemaError(
                f"Partial update must be a mapping, got {type(partial).__name__}",
                node_name=node_name,
            )
        self._reject_unknown(partial, context="Partial update", node_name=node_name)
        return partial

    def merge(self, state: Mapping[str, Any], partial: PartialState | None, *, node_name: str | None = None) -> State:
        """Apply a partial update and return the new state.

        For each key: new = merge(old, incoming) if the field declares a merge
        function, else new = incoming. The resulting value is type-checked.

        Raises:
            SchemaError: On undeclared keys, a failing merge function, or a
                merged value that fails the field's type check
        """
        partial = self.validate_partial(partial, node_name=node_name)
        merged: State = dict(state)
        for name, incoming in partial.items():
            merge_fn = self._fields[name].merge
            if merge_fn is None:
                value = incoming
            else:
                try:
                    value = merge_fn(merged.get(name), incoming)
                except Exception as e:
                    raise SchemaError(
                        f"Merge function for field '{name}' failed: {type(e).__name__}: {e}",
                        field_name=name,
                        node_name=node_name,
                    ) from e
            self._check_type(name, value, node_name=node_name)
            merged[name] = value
        return merged

    def _reject_unknown(self, values: Mapping[str, Any], *, context: str, node_name: str | None = None) -> None:
        unknown = [key for key in values if key not in self._fields]
        if unknown:
            raise SchemaError(
                f"{context} reference undeclared fields: {sorted(map(str, unknown))}. Declared: {list(self._fields)}",
                field_name=str(unknown[0]),
                node_name=node_name,
            )

    def _check_type(self, name: str, value: Any, *, node_name: str | None = None) -> None:
        problem = self._checks[name].error_for(value)
        if problem is not None:
            raise SchemaError(f"Field '{name}': {problem}", field_name=name, node_name=node_name)


def _split_annotation(hint: Any) -> tuple[Any, MergeFunction | None]:
    """Strip Required/NotRequired/Annotated wrappers, extracting a merge function."""
    merge: MergeFunction | None = None
    while True:
        origin = get_origin(hint)
        if origin in (Required, NotRequired):
            hint = get_args(hint)[0]
        elif origin is Annotated:
            for item in hint.__metadata__:
                if callable(item) and not isinstance(item, type):
                    merge = item
            hint = hint.__origin__
        else:
            return hint, merge
