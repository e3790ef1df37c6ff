from __future__ import annotations

from datetime import UTC, datetime

from catalogview.core.models.entities import EntityType
from catalogview.core.services.kinds import ENDPOINT
from catalogview.core.services.reconciliation import (
    LifecycleStatus,
    MaterializedStateEntry,
    ReconcileOutcome,
    reconcile,
)

T1 = datetime(2024, 6, 1, 10, tzinfo=UTC)
T2 = datetime(2024, 6, 1, 11, tzinfo=UTC)
T3 = datetime(2024, 6, 1, 12, tzinfo=UTC)


def _run(documents, previous, observed_at=T1) -> ReconcileOutcome:
    return reconcile(
        documents,
        previous,
        kind=EntityType.ENDPOINT,
        identity=ENDPOINT.identity,
        equals=ENDPOINT.equals,
        observed_at=observed_at,
        snapshot_id="s",
    )


def _apply(state: dict[str, MaterializedStateEntry], outcome: ReconcileOutcome) -> None:
    for entry in (*outcome.to_insert, *outcome.to_update, *outcome.to_retire):
        state[entry.identity] = entry


def test_first_run_inserts_everything() -> None:
    outcome = _run([{"uuid": "a"}, {"uuid": "b"}], [])

    assert outcome.counters.to_dict() == {"insert": 2, "update": 0, "stable": 0, "retire": 0}


def test_every_identity_gets_exactly_one_outcome() -> None:
    previous = [
        MaterializedStateEntry(kind=EntityType.ENDPOINT, identity="keep", document={"uuid": "keep", "name": "x"}),
        MaterializedStateEntry(kind=EntityType.ENDPOINT, identity="edit", document={"uuid": "edit", "name": "x"}),
        MaterializedStateEntry(kind=EntityType.ENDPOINT, identity="gone", document={"uuid": "gone"}),
    ]
    documents = [
        {"uuid": "keep", "name": "x", "updated_at": 5},
        {"uuid": "edit", "name": "y"},
        {"uuid": "new"},
    ]

    outcome = _run(documents, previous)

    assert [entry.identity for entry in outcome.to_insert] == ["new"]
    assert [entry.identity for entry in outcome.to_update] == ["edit"]
    assert outcome.stable_count == 1
    assert [entry.identity for entry in outcome.to_retire] == ["gone"]
    retired = outcome.to_retire[0]
    assert retired.status is LifecycleStatus.RETIRED
    assert retired.unavailable_at == T1
    assert retired.document == {"uuid": "gone"}


def test_retired_entity_reappearing_is_fresh_insert() -> None:
    state: dict[str, MaterializedStateEntry] = {}
    document = {"uuid": "X", "name": "x"}

    _apply(state, _run([document], list(state.values()), T1))
    second = _run([], list(state.values()), T2)
    _apply(state, second)
    third = _run([document], list(state.values()), T3)

    assert second.counters.retire == 1
    assert state["X"].status is LifecycleStatus.RETIRED
    assert third.counters.to_dict() == {"insert": 1, "update": 0, "stable": 0, "retire": 0}
    assert third.to_insert[0].status is LifecycleStatus.ACTIVE
    assert third.to_insert[0].unavailable_at is None


def test_already_retired_entity_is_not_retired_again() -> None:
    previous = [
        MaterializedStateEntry(
            kind=EntityType.ENDPOINT,
            identity="old",
            document={"uuid": "old"},
            status=LifecycleStatus.RETIRED,
            unavailable_at=T1,
        )
    ]

    outcome = _run([], previous, T2)

    assert outcome.to_retire == ()


def test_duplicate_input_identity_keeps_first() -> None:
    outcome = _run([{"uuid": "a", "name": "first"}, {"uuid": "a", "name": "second"}], [])

    assert len(outcome.to_insert) == 1
    assert outcome.to_insert[0].document["name"] == "first"
