"""Output slots and in-place population of decoded JSON values.

A response handler never returns the decoded payload; it writes it into an
output slot the caller owns and can read back after ``Agent.do()`` returns.
Valid slots are values that can be mutated in place:

* :class:`Ref`, an explicit holder (optionally typed through pydantic);
* ``dict`` and ``list`` instances;
* non-frozen dataclass and pydantic model instances;
* any other object with an instance ``__dict__``.

:func:`populate` walks the decoded JSON into such a slot.  When an attribute of
the slot already holds another slot (an envelope whose ``data`` was attached by
``set_data``), the walk descends into it instead of overwriting it, so the
caller's payload object receives the nested value.
"""

from __future__ import annotations

import dataclasses
import inspect
import types
import typing
from functools import lru_cache
from typing import Any, Generic, Iterator, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, PydanticSchemaGenerationError, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from .errors import ConfigurationError, DecodeError

__all__ = ["Ref", "ensure_output_slot", "is_output_slot", "populate"]

T = TypeVar("T")

_IMMUTABLE_TYPES = (
    type(None),
    bool,
    int,
    float,
    complex,
    str,
    bytes,
    tuple,
    frozenset,
    range,
)


class Ref(Generic[T]):
    """Mutable holder receiving a decoded value.

    ``Ref()`` stores the raw JSON value; ``Ref(SomeType)`` validates it into
    ``SomeType`` with a pydantic ``TypeAdapter`` first.

    Examples:
        >>> ref = Ref(int)
        >>> populate(ref, "42")
        >>> ref.value
        42
    """

    def __init__(self, type_: Optional[Type[T]] = None, value: Optional[T] = None) -> None:
        self.type_ = type_
        self.value = value

    def set(self, value: Any) -> None:
        if self.type_ is None:
            self.value = value
            return
        self.value = _coerce(self.type_, value)

    def __repr__(self) -> str:
        return f"Ref({self.value!r})"


def is_output_slot(target: Any) -> bool:
    """Return ``True`` when ``target`` can receive a decoded value in place."""

    return _slot_problem(target) is None


def ensure_output_slot(target: Any, what: str = "result payload") -> None:
    """Raise :class:`ConfigurationError` unless ``target`` is a usable slot."""

    problem = _slot_problem(target)
    if problem is not None:
        raise ConfigurationError(f"{what} should be a mutable output slot: {problem}")


def populate(target: Any, value: Any) -> None:
    """Write the decoded JSON ``value`` into ``target`` in place.

    Raises:
        DecodeError: When the value does not fit the target's shape or types.
    """

    try:
        _populate(target, value, path="$")
    except PydanticValidationError as exc:
        raise DecodeError(str(exc)) from exc


def _slot_problem(target: Any) -> Optional[str]:
    if isinstance(target, _IMMUTABLE_TYPES):
        return f"{type(target).__name__} values are immutable"
    if isinstance(target, type):
        return f"got the class {target.__name__}; pass an instance or Ref({target.__name__})"
    if isinstance(target, (types.ModuleType, types.FunctionType, types.MethodType)):
        return f"{type(target).__name__} objects cannot hold a payload"
    if isinstance(target, (Ref, dict, list)):
        return None
    if isinstance(target, BaseModel):
        if type(target).model_config.get("frozen"):
            return f"{type(target).__name__} is a frozen model"
        return None
    if dataclasses.is_dataclass(target):
        params = getattr(type(target), "__dataclass_params__", None)
        if params is not None and params.frozen:
            return f"{type(target).__name__} is a frozen dataclass"
        return None
    if hasattr(target, "__dict__"):
        return None
    return f"{type(target).__name__} instances have no writable attributes"


def _populate(target: Any, value: Any, *, path: str) -> None:
    if isinstance(target, Ref):
        target.set(value)
        return
    if isinstance(target, dict):
        if not isinstance(value, dict):
            raise DecodeError(f"cannot decode {_json_kind(value)} into dict at {path}")
        target.update(value)
        return
    if isinstance(target, list):
        if not isinstance(value, list):
            raise DecodeError(f"cannot decode {_json_kind(value)} into list at {path}")
        target[:] = value
        return
    if not isinstance(value, dict):
        raise DecodeError(
            f"cannot decode {_json_kind(value)} into {type(target).__name__} at {path}"
        )
    for name, key, annotation in _fields(target):
        if key not in value:
            continue
        current = getattr(target, name, None)
        if current is not None and is_output_slot(current):
            incoming = value[key]
            if incoming is None:
                setattr(target, name, None)
                continue
            # Containers carry no element types of their own; take them from the field.
            if isinstance(current, (dict, list)) and annotation is not None:
                incoming = _coerce(annotation, incoming)
            _populate(current, incoming, path=f"{path}.{key}")
            continue
        if annotation is None:
            setattr(target, name, value[key])
        else:
            setattr(target, name, _coerce(annotation, value[key]))


def _fields(target: Any) -> Iterator[Tuple[str, str, Any]]:
    """Yield ``(attribute, json_key, annotation)`` for the known fields of ``target``."""

    cls = type(target)
    if isinstance(target, BaseModel):
        for name, info in cls.model_fields.items():
            yield name, info.alias or name, info.annotation
        return
    if dataclasses.is_dataclass(target):
        hints = _type_hints(cls)
        for field in dataclasses.fields(target):
            yield field.name, field.name, hints.get(field.name, field.type)
        return
    hints = _type_hints(cls)
    names = dict.fromkeys([*hints, *vars(target)])
    for name in names:
        if name.startswith("_"):
            continue
        yield name, name, hints.get(name)


@lru_cache(maxsize=256)
def _type_hints(cls: type) -> dict:
    try:
        return typing.get_type_hints(cls)
    except (NameError, TypeError):
        return {
            name: value
            for name, value in inspect.get_annotations(cls).items()
            if not isinstance(value, str)
        }


def _coerce(annotation: Any, value: Any) -> Any:
    """Validate ``value`` against ``annotation``; unknown types pass through unchanged."""

    try:
        adapter = _adapter(annotation)
    except PydanticSchemaGenerationError:
        return value
    return adapter.validate_python(value)


def _adapter(annotation: Any) -> TypeAdapter:
    try:
        return _cached_adapter(annotation)
    except PydanticSchemaGenerationError:
        raise
    except TypeError:  # unhashable annotation metadata
        return TypeAdapter(annotation)


@lru_cache(maxsize=256)
def _cached_adapter(annotation: Any) -> TypeAdapter:
    return TypeAdapter(annotation)


def _json_kind(value: Any) -> str:
    if isinstance(value, dict):
        return "JSON object"
    if isinstance(value, list):
        return "JSON array"
    if isinstance(value, str):
        return "JSON string"
    if isinstance(value, bool):
        return "JSON boolean"
    if isinstance(value, (int, float)):
        return "JSON number"
    if value is None:
        return "JSON null"
    return type(value).__name__
