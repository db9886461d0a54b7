"""Predicate tree for cs:if / cs:else-if tests."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Tuple

from .errors import StyleParseError
from .models import DateValue
from .numbers import is_numeric
from .vocabulary import LOCATOR_TYPES, is_known_type

CONDITION_ATTRIBUTES = ("type", "variable", "is-numeric", "is-uncertain-date", "locator", "position", "disambiguate")
MATCH_MODES = ("all", "any", "none")
POSITION_VALUES = ("first", "subsequent", "ibid", "ibid-with-locator", "near-note")


class Test:
    """A single predicate; ``ctx`` is the renderer's evaluation context."""

    def matches(self, ctx: Any) -> bool:  # pragma: no cover - interface
        raise NotImplementedError


@dataclass(frozen=True)
class TypeIs(Test):
    type_name: str

    def matches(self, ctx: Any) -> bool:
        return ctx.item.type == self.type_name


@dataclass(frozen=True)
class VariablePresent(Test):
    variable: str

    def matches(self, ctx: Any) -> bool:
        return ctx.has_variable(self.variable)


@dataclass(frozen=True)
class IsNumeric(Test):
    variable: str

    def matches(self, ctx: Any) -> bool:
        value = ctx.variable_value(self.variable)
        return value is not None and is_numeric(value)


@dataclass(frozen=True)
class IsUncertainDate(Test):
    variable: str

    def matches(self, ctx: Any) -> bool:
        value = ctx.variable_value(self.variable)
        return isinstance(value, DateValue) and value.circa


@dataclass(frozen=True)
class LocatorIs(Test):
    label: str

    def matches(self, ctx: Any) -> bool:
        cite = ctx.cite
        if cite is None or not cite.locator:
            return False
        return (cite.label or "page").replace(" ", "-") == self.label


@dataclass(frozen=True)
class PositionIs(Test):
    position: str

    def matches(self, ctx: Any) -> bool:
        if ctx.position is None:
            return False
        return ctx.position.matches(self.position)


@dataclass(frozen=True)
class Disambiguate(Test):
    expected: bool

    def matches(self, ctx: Any) -> bool:
        return bool(ctx.disambiguate) == self.expected


@dataclass(frozen=True)
class Condition:
    """All tests of one element combined with ``match``."""

    tests: Tuple[Test, ...]
    match: str = "all"

    def matches(self, ctx: Any) -> bool:
        if self.match == "any":
            return any(test.matches(ctx) for test in self.tests)
        if self.match == "none":
            return not any(test.matches(ctx) for test in self.tests)
        return all(test.matches(ctx) for test in self.tests)


def build_condition(attributes: Mapping[str, str], element: str = "if") -> Condition:
    """Turn the attributes of a cs:if/cs:else-if element into a :class:`Condition`."""
    tests = []
    for type_name in attributes.get("type", "").split():
        if not is_known_type(type_name):
            raise StyleParseError(f"unknown item type {type_name!r} in condition", element)
        tests.append(TypeIs(type_name))
    for name in attributes.get("variable", "").split():
        tests.append(VariablePresent(name))
    for name in attributes.get("is-numeric", "").split():
        tests.append(IsNumeric(name))
    for name in attributes.get("is-uncertain-date", "").split():
        tests.append(IsUncertainDate(name))
    for label in attributes.get("locator", "").split():
        if label not in LOCATOR_TYPES:
            raise StyleParseError(f"unknown locator type {label!r}", element)
        tests.append(LocatorIs(label))
    for position in attributes.get("position", "").split():
        if position not in POSITION_VALUES:
            raise StyleParseError(f"unknown position {position!r}", element)
        tests.append(PositionIs(position))
    if "disambiguate" in attributes:
        tests.append(Disambiguate(attributes["disambiguate"] == "true"))
    if not tests:
        raise StyleParseError("condition without any test", element)

    match = attributes.get("match", "all")
    if match not in MATCH_MODES:
        raise StyleParseError(f"unknown match mode {match!r}", element)
    return Condition(tuple(tests), match)
