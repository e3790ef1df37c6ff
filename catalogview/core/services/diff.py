"""Structural diff engine producing path-scoped change drafts."""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from catalogview.core.models.changes import MISSING, ChangeKind, ChangeOperation

_MAPPING = "mapping"
_ARRAY = "array"
_SCALAR = "scalar"

Path = tuple[str, ...]


def _split(pattern: str) -> Path:
    return tuple(pattern.split("."))


def _matches_prefix(pattern: Path, path: Path) -> bool:
    if len(pattern) > len(path):
        return False
    return all(part == "*" or part == segment for part, segment in zip(pattern, path, strict=False))


@dataclass(frozen=True, slots=True)
class DiffPolicy:
    """Per-kind rules controlling what the diff engine reports.

    ``ignored_paths`` are dot paths that hide the path and all descendants;
    a ``*`` segment matches any single key. ``identity_arrays`` name arrays
    compared as order-insensitive multisets.
    """

    ignored_paths: tuple[str, ...] = ()
    identity_arrays: tuple[str, ...] = ()
    replace_on_type_change: bool = True
    _ignored: tuple[Path, ...] = field(init=False, repr=False, compare=False)
    _identity: tuple[Path, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_ignored", tuple(_split(p) for p in self.ignored_paths))
        object.__setattr__(self, "_identity", tuple(_split(p) for p in self.identity_arrays))

    def is_ignored(self, path: Path) -> bool:
        return any(_matches_prefix(pattern, path) for pattern in self._ignored)

    def is_identity_array(self, path: Path) -> bool:
        return any(len(pattern) == len(path) and _matches_prefix(pattern, path) for pattern in self._identity)


@dataclass(frozen=True, slots=True)
class ChangeDraft:
    """Change between two documents, before identity fields are attached."""

    change_kind: ChangeKind
    path: str | None = None
    path_level_1: str | None = None
    path_level_2: str | None = None
    operation: ChangeOperation | None = None
    before: Any = MISSING
    after: Any = MISSING


def _shape(value: Any) -> str:
    if isinstance(value, Mapping):
        return _MAPPING
    if isinstance(value, list | tuple):
        return _ARRAY
    return _SCALAR


def _canonical(value: Any) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), default=str)


def _scalar_equal(before: Any, after: Any) -> bool:
    # bool is an int subclass; true and 1 are different values here
    if isinstance(before, bool) or isinstance(after, bool):
        return type(before) is type(after) and before == after
    if before is None or after is None:
        return before is after
    return before == after


def _draft(path: Path, operation: ChangeOperation, before: Any, after: Any) -> ChangeDraft:
    return ChangeDraft(
        change_kind=ChangeKind.UPDATE,
        path=".".join(path),
        path_level_1=path[0] if path else None,
        path_level_2=path[1] if len(path) > 1 else None,
        operation=operation,
        before=before,
        after=after,
    )


class _Walker:
    def __init__(self, policy: DiffPolicy) -> None:
        self.policy = policy
        self.drafts: list[ChangeDraft] = []

    def walk(self, before: Any, after: Any, path: Path) -> None:
        if path and self.policy.is_ignored(path):
            return
        if before is MISSING and after is MISSING:
            return
        if before is MISSING:
            self.drafts.append(_draft(path, ChangeOperation.ADD, MISSING, after))
            return
        if after is MISSING:
            self.drafts.append(_draft(path, ChangeOperation.REMOVE, before, MISSING))
            return

        shape = _shape(before)
        if shape != _shape(after):
            self._type_change(before, after, path)
        elif shape == _MAPPING:
            for key in sorted(set(before) | set(after)):
                self.walk(before.get(key, MISSING), after.get(key, MISSING), (*path, str(key)))
        elif shape == _ARRAY:
            if not self._arrays_equal(before, after, path):
                self.drafts.append(_draft(path, ChangeOperation.REPLACE, list(before), list(after)))
        elif not _scalar_equal(before, after):
            self.drafts.append(_draft(path, ChangeOperation.REPLACE, before, after))

    def _arrays_equal(self, before: Any, after: Any, path: Path) -> bool:
        if len(before) != len(after):
            return False
        if self.policy.is_identity_array(path):
            return sorted(_canonical(v) for v in before) == sorted(_canonical(v) for v in after)
        return all(_canonical(b) == _canonical(a) for b, a in zip(before, after, strict=True))

    def _type_change(self, before: Any, after: Any, path: Path) -> None:
        if self.policy.replace_on_type_change:
            self.drafts.append(_draft(path, ChangeOperation.REPLACE, before, after))
            return

        removed = dict(self._leaves(before, path))
        added = dict(self._leaves(after, path))
        for leaf_path in sorted(set(removed) | set(added)):
            old = removed.get(leaf_path, MISSING)
            new = added.get(leaf_path, MISSING)
            if old is MISSING:
                self.drafts.append(_draft(leaf_path, ChangeOperation.ADD, MISSING, new))
            elif new is MISSING:
                self.drafts.append(_draft(leaf_path, ChangeOperation.REMOVE, old, MISSING))
            else:
                self.drafts.append(_draft(leaf_path, ChangeOperation.REPLACE, old, new))

    def _leaves(self, value: Any, path: Path) -> Iterable[tuple[Path, Any]]:
        if path and self.policy.is_ignored(path):
            return
        if _shape(value) == _MAPPING and value:
            for key in sorted(value):
                yield from self._leaves(value[key], (*path, str(key)))
        else:
            yield path, value


def diff(before: Mapping[str, Any] | None, after: Mapping[str, Any] | None, policy: DiffPolicy) -> list[ChangeDraft]:
    """Compare two entity documents.

    Absent ``before`` yields a single ``create`` carrying ``after``; absent
    ``after`` a single ``delete`` carrying ``before``. Otherwise one ``update``
    draft per changed leaf outside the ignored paths, sorted by path.
    """

    if before is None and after is None:
        return []
    if before is None:
        return [ChangeDraft(change_kind=ChangeKind.CREATE, after=dict(after))]
    if after is None:
        return [ChangeDraft(change_kind=ChangeKind.DELETE, before=dict(before))]

    walker = _Walker(policy)
    walker.walk(before, after, ())
    return sorted(walker.drafts, key=lambda draft: draft.path or "")


def documents_equal(before: Mapping[str, Any], after: Mapping[str, Any], policy: DiffPolicy) -> bool:
    """True when ``diff`` would report no update for the pair."""
    return not diff(before, after, policy)


__all__ = ["MISSING", "ChangeDraft", "DiffPolicy", "diff", "documents_equal"]
