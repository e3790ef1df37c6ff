"""Display filter deciding which update records are user-visible."""

from __future__ import annotations

from collections.abc import Iterable, Sequence  # noqa: TC003
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

from catalogview.core.models.changes import MISSING, ChangeKind, ChangeOperation, ChangeRecord
from catalogview.core.models.entities import EntityType


class ValueClass(str, Enum):
    """Symbolic classes of the value a change affects."""

    NULL = "null"
    UNDEFINED = "undefined"
    NULLISH = "either"
    NON_NULLISH = "neither"
    TRUE = "true"
    FALSE = "false"
    BOOLEAN = "boolean"
    STRING = "string"
    NUMBER = "number"
    OBJECT = "object"
    ARRAY = "array"

    def matches(self, value: Any) -> bool:
        if self is ValueClass.NULL:
            return value is None
        if self is ValueClass.UNDEFINED:
            return value is MISSING
        if self is ValueClass.NULLISH:
            return value is None or value is MISSING
        if self is ValueClass.NON_NULLISH:
            return value is not None and value is not MISSING
        if self is ValueClass.TRUE:
            return value is True
        if self is ValueClass.FALSE:
            return value is False
        if self is ValueClass.BOOLEAN:
            return isinstance(value, bool)
        if self is ValueClass.STRING:
            return isinstance(value, str)
        if self is ValueClass.NUMBER:
            return isinstance(value, int | float) and not isinstance(value, bool)
        if self is ValueClass.OBJECT:
            return isinstance(value, dict)
        return isinstance(value, list | tuple)


def affected_value(record: ChangeRecord) -> Any:
    """The value a change concerns: ``before`` for removals, ``after`` otherwise."""
    if record.operation is ChangeOperation.REMOVE:
        return record.before
    return record.after


class Predicate(Protocol):
    def matches(self, record: ChangeRecord) -> bool: ...


@dataclass(frozen=True, slots=True)
class EntityMatch:
    entity_type: EntityType

    def matches(self, record: ChangeRecord) -> bool:
        return record.entity_type is self.entity_type


@dataclass(frozen=True, slots=True)
class PathMatch:
    """Path pattern: exact, ``a*`` prefix, or ``a.*.b`` single-level wildcard."""

    pattern: str

    def matches(self, record: ChangeRecord) -> bool:
        path = record.path
        if path is None:
            return False
        if self.pattern.endswith("*"):
            return path.startswith(self.pattern[:-1]) or path == self.pattern[:-1].rstrip(".")
        if "*" in self.pattern:
            parts = self.pattern.split(".")
            segments = path.split(".")
            return len(parts) == len(segments) and all(p in ("*", s) for p, s in zip(parts, segments, strict=True))
        return path == self.pattern


@dataclass(frozen=True, slots=True)
class OperationMatch:
    operations: frozenset[ChangeOperation]

    def matches(self, record: ChangeRecord) -> bool:
        return record.operation in self.operations


@dataclass(frozen=True, slots=True)
class ValueMatch:
    value_class: ValueClass

    def matches(self, record: ChangeRecord) -> bool:
        return self.value_class.matches(affected_value(record))


@dataclass(frozen=True, slots=True)
class AllOf:
    predicates: tuple[Predicate, ...]

    def matches(self, record: ChangeRecord) -> bool:
        return all(predicate.matches(record) for predicate in self.predicates)


@dataclass(frozen=True, slots=True)
class AnyOf:
    predicates: tuple[Predicate, ...]

    def matches(self, record: ChangeRecord) -> bool:
        return any(predicate.matches(record) for predicate in self.predicates)


@dataclass(frozen=True, slots=True)
class HideRule:
    """Named predicate; a matching update record is hidden."""

    name: str
    when: Predicate

    def matches(self, record: ChangeRecord) -> bool:
        return self.when.matches(record)


def hide_rule(
    name: str,
    *,
    entity_type: EntityType | None = None,
    path: str | None = None,
    operations: Iterable[ChangeOperation] | None = None,
    value: ValueClass | None = None,
) -> HideRule:
    """Build a rule from optional predicates, all of which must match."""

    predicates: list[Predicate] = []
    if entity_type is not None:
        predicates.append(EntityMatch(entity_type))
    if path is not None:
        predicates.append(PathMatch(path))
    if operations is not None:
        predicates.append(OperationMatch(frozenset(operations)))
    if value is not None:
        predicates.append(ValueMatch(value))
    return HideRule(name=name, when=AllOf(tuple(predicates)))


_ADD_REMOVE = (ChangeOperation.ADD, ChangeOperation.REMOVE)

DEFAULT_HIDE_RULES: tuple[HideRule, ...] = (
    hide_rule("null-added", operations=[ChangeOperation.ADD], value=ValueClass.NULL),
    hide_rule("null-removed", operations=[ChangeOperation.REMOVE], value=ValueClass.NULL),
    hide_rule("model-features", entity_type=EntityType.MODEL, path="features*"),
    hide_rule("provider-adapter", entity_type=EntityType.PROVIDER, path="adapter_name"),
    hide_rule(
        "provider-policy-false-added",
        entity_type=EntityType.PROVIDER,
        path="data_policy.*",
        operations=[ChangeOperation.ADD],
        value=ValueClass.FALSE,
    ),
    hide_rule("provider-paid-models", entity_type=EntityType.PROVIDER, path="data_policy.paid_models*"),
    hide_rule("endpoint-pricing", entity_type=EntityType.ENDPOINT, path="pricing", operations=_ADD_REMOVE),
    hide_rule("endpoint-audio-pricing", entity_type=EntityType.ENDPOINT, path="pricing.audio*", operations=_ADD_REMOVE),
)


def is_displayable(record: ChangeRecord, rules: Sequence[HideRule] = DEFAULT_HIDE_RULES) -> bool:
    """Create and delete records always show; updates hide on the first matching rule."""

    if record.change_kind is not ChangeKind.UPDATE:
        return True
    return not any(rule.matches(record) for rule in rules)


def reprocess_display(
    records: Iterable[ChangeRecord],
    rules: Sequence[HideRule] = DEFAULT_HIDE_RULES,
) -> list[ChangeRecord]:
    """Recompute ``is_display`` and return only the records whose flag changed."""

    changed: list[ChangeRecord] = []
    for record in records:
        flag = is_displayable(record, rules)
        if flag != record.is_display:
            changed.append(record.with_display(flag))
    return changed


__all__ = [
    "DEFAULT_HIDE_RULES",
    "AllOf",
    "AnyOf",
    "EntityMatch",
    "HideRule",
    "OperationMatch",
    "PathMatch",
    "Predicate",
    "ValueClass",
    "ValueMatch",
    "affected_value",
    "hide_rule",
    "is_displayable",
    "reprocess_display",
]
