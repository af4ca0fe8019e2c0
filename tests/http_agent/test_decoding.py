"""Tests for output slots and in-place population."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import pytest
from pydantic import BaseModel

from HttpAgent.decoding import Ref, ensure_output_slot, is_output_slot, populate
from HttpAgent.errors import ConfigurationError, DecodeError


@dataclass
class Inner:
    value: int = 0


@dataclass
class Outer:
    name: str = ""
    inner: Inner = field(default_factory=Inner)
    tags: List[str] = field(default_factory=list)
    extra: Optional[Dict[str, Any]] = None


class Profile(BaseModel):
    user: str = ""
    age: int = 0


class Plain:
    def __init__(self) -> None:
        self.title = ""
        self.payload: Any = None
        self._hidden = "keep"


@dataclass
class Opaque:
    handle: object = None


class TestSlots:
    @pytest.mark.parametrize("target", [Ref(), {}, [], Outer(), Profile(), Plain()])
    def test_mutable_targets(self, target):
        assert is_output_slot(target)

    @pytest.mark.parametrize("target", [None, 3, 2.5, "s", b"b", (1,), frozenset(), Outer, len])
    def test_rejected_targets(self, target):
        assert not is_output_slot(target)
        with pytest.raises(ConfigurationError, match="result payload should be a mutable output slot"):
            ensure_output_slot(target)

    def test_class_hint_suggests_ref(self):
        with pytest.raises(ConfigurationError, match=r"Ref\(Outer\)"):
            ensure_output_slot(Outer)


class TestPopulate:
    def test_nested_dataclass_populated_in_place(self):
        target = Outer()
        inner = target.inner

        populate(target, {"name": "n", "inner": {"value": "5"}, "tags": ["a"], "unknown": 1})

        assert target.inner is inner
        assert inner.value == 5
        assert target.tags == ["a"]
        assert target.name == "n"

    def test_absent_fields_untouched(self):
        target = Outer(name="keep")
        populate(target, {"extra": {"k": 1}})
        assert target.name == "keep"
        assert target.extra == {"k": 1}

    def test_null_clears_slot_attribute(self):
        target = Outer()
        populate(target, {"inner": None})
        assert target.inner is None

    def test_type_mismatch(self):
        with pytest.raises(DecodeError):
            populate(Outer(), {"tags": "not-a-list"})

    def test_object_target_needs_object(self):
        with pytest.raises(DecodeError, match=r"cannot decode JSON number into Outer at \$"):
            populate(Outer(), 7)

    def test_nested_path_in_error(self):
        with pytest.raises(DecodeError, match=r"at \$.inner"):
            populate(Outer(), {"inner": [1]})

    def test_pydantic_model(self):
        profile = Profile()
        populate(profile, {"user": "ann", "age": 30})
        assert (profile.user, profile.age) == ("ann", 30)

    def test_plain_object_skips_private(self):
        target = Plain()
        populate(target, {"title": "t", "payload": [1], "_hidden": "overwritten"})
        assert target.title == "t"
        assert target.payload == [1]
        assert target._hidden == "keep"

    def test_plain_object_descends_into_attached_slot(self):
        target = Plain()
        data: dict = {}
        target.payload = data
        populate(target, {"payload": {"x": 1}})
        assert target.payload is data
        assert data == {"x": 1}

    def test_unknown_annotation_passes_through(self):
        target = Opaque()
        sentinel = {"raw": True}
        populate(target, {"handle": sentinel})
        assert target.handle == sentinel

    def test_ref_validation_error(self):
        with pytest.raises(DecodeError):
            populate(Ref(int), "forty")

    def test_ref_repr(self):
        ref = Ref(value=3)
        assert repr(ref) == "Ref(3)"


@dataclass
class Point:
    x: int = 0


@dataclass
class Shape:
    points: List[Point] = field(default_factory=list)
    named: Dict[str, Point] = field(default_factory=dict)


class TestTypedContainers:
    """Container fields keep their element types and their identity."""

    def test_list_of_dataclasses(self):
        shape = Shape()
        points = shape.points

        populate(shape, {"points": [{"x": 1}, {"x": "2"}]})

        assert shape.points == [Point(1), Point(2)]
        assert shape.points is points

    def test_dict_of_dataclasses(self):
        shape = Shape()
        populate(shape, {"named": {"origin": {"x": 0}, "tip": {"x": 5}}})
        assert shape.named == {"origin": Point(0), "tip": Point(5)}

    def test_element_type_mismatch(self):
        with pytest.raises(DecodeError):
            populate(Shape(), {"points": [{"x": "far"}]})

    def test_untyped_container_kept_raw(self):
        target = Plain()
        target.payload = []
        populate(target, {"payload": [{"x": 1}]})
        assert target.payload == [{"x": 1}]
