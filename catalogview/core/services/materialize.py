"""Materialization orchestrator composing one catalog pass."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping, Sequence  # noqa: TC003
from dataclasses import dataclass, field
from datetime import UTC, datetime
from time import perf_counter
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from catalogview.core.config.settings import MaterializeConfig
from catalogview.core.data.ingestion.models import RawKind, RawRecord
from catalogview.core.data.ingestion.validator import ValidatedRecord, ValidationIssue, validate_batch
from catalogview.core.exceptions import MissingSnapshotError
from catalogview.core.logging import bind, log_context
from catalogview.core.models.changes import ChangeRecord
from catalogview.core.models.entities import (
    CanonicalEndpoint,
    CanonicalModel,
    CanonicalProvider,
    EntityType,
    ModelVariantRecord,
    UptimeSample,
)
from catalogview.core.services.consolidation import consolidate_variants
from catalogview.core.services.display import DEFAULT_HIDE_RULES, HideRule, is_displayable, reprocess_display
from catalogview.core.services.kinds import ENDPOINT, MODEL, PROVIDER, EntityKind
from catalogview.core.services.reconciliation import ReconcileCounters, reconcile
from catalogview.core.services.rolling_window import (
    STATS,
    UPTIME,
    RollingWindow,
    fold_window,
    hour_start,
    uptime_average,
)

if TYPE_CHECKING:
    from catalogview.core.interfaces import (
        ChangeRecordStore,
        MaterializedStateStore,
        RawSnapshotSource,
        RollingWindowStore,
    )


RunWriter = Callable[..., None]

# Reconciled and diffed in this order so endpoints follow the models they reference.
KIND_ORDER: tuple[EntityKind, ...] = (MODEL, PROVIDER, ENDPOINT)


@dataclass(frozen=True)
class CanonicalSnapshot:
    """Canonical documents built from one snapshot, keyed by entity type."""

    snapshot_id: str
    documents: Mapping[EntityType, list[dict[str, Any]]]
    windows: Mapping[tuple[str, str], RollingWindow] = field(default_factory=dict)
    issues: tuple[ValidationIssue, ...] = ()


@dataclass(frozen=True)
class MaterializeResult:
    """Outcome of a materialization pass."""

    run_id: str
    snapshot_id: str
    created_at: datetime
    counters: Mapping[EntityType, ReconcileCounters]
    issues: tuple[ValidationIssue, ...]
    duration_ms: float = 0.0

    @property
    def rejected_count(self) -> int:
        return sum(1 for issue in self.issues if issue.rejected)

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "snapshot_id": self.snapshot_id,
            "created_at": self.created_at.isoformat(),
            "counters": {kind.value: counters.to_dict() for kind, counters in self.counters.items()},
            "issue_count": len(self.issues),
            "rejected_count": self.rejected_count,
            "duration_ms": self.duration_ms,
        }


@dataclass(frozen=True)
class PassResult:
    """Live materialization plus the change records of its snapshot pair."""

    materialized: MaterializeResult
    changes: tuple[ChangeRecord, ...]
    previous_snapshot_id: str | None


def _epoch_ms(value: datetime) -> int:
    return int(value.timestamp() * 1000)


class MaterializationService:
    """Validate, consolidate, reconcile and diff catalog snapshots."""

    def __init__(
        self,
        source: RawSnapshotSource,
        state_store: MaterializedStateStore,
        change_store: ChangeRecordStore,
        window_store: RollingWindowStore | None = None,
        *,
        config: MaterializeConfig | None = None,
        hide_rules: Sequence[HideRule] = DEFAULT_HIDE_RULES,
        run_writer: RunWriter | None = None,
        clock: Callable[[], datetime] | None = None,
        run_id_factory: Callable[[], str] | None = None,
    ) -> None:
        self._source = source
        self._state_store = state_store
        self._change_store = change_store
        self._window_store = window_store
        self._config = config or MaterializeConfig()
        self._hide_rules = tuple(hide_rules)
        self._run_writer = run_writer
        self._clock = clock or (lambda: datetime.now(UTC))
        self._run_id_factory = run_id_factory or (lambda: uuid4().hex)

    def _load_bundle(self, kind: RawKind, snapshot_id: str) -> list[RawRecord]:
        try:
            return self._source.get(kind, snapshot_id)
        except MissingSnapshotError:
            if kind.value in self._config.optional_kinds:
                bind(kind=kind.value, snapshot_id=snapshot_id).info("Optional bundle absent; treated as empty")
                return []
            raise

    def _validated(self, kind: RawKind, snapshot_id: str, issues: list[ValidationIssue]) -> list[ValidatedRecord]:
        if kind.value not in self._config.required_kinds and kind.value not in self._config.optional_kinds:
            return []
        records = self._load_bundle(kind, snapshot_id)
        validated, kind_issues = validate_batch(kind, records, snapshot_id)
        issues.extend(kind_issues)
        return validated

    def build_snapshot(
        self,
        snapshot_id: str,
        *,
        now: datetime | None = None,
        with_stored_windows: bool = False,
    ) -> CanonicalSnapshot:
        """Build canonical documents for ``snapshot_id`` without persisting anything.

        Raises:
            MissingSnapshotError: If a required bundle is absent
        """

        now = now or self._clock()
        updated_at = _epoch_ms(now)
        # one stats point per snapshot, keyed by its capture hour
        captured_hour = hour_start(_epoch_ms(self._source.captured_at(snapshot_id) or now))
        issues: list[ValidationIssue] = []

        variants: list[ModelVariantRecord] = [v.entity for v in self._validated(RawKind.MODELS, snapshot_id, issues)]
        providers: list[CanonicalProvider] = [v.entity for v in self._validated(RawKind.PROVIDERS, snapshot_id, issues)]
        endpoints = self._validated(RawKind.ENDPOINTS, snapshot_id, issues)
        samples: list[UptimeSample] = [v.entity for v in self._validated(RawKind.UPTIMES, snapshot_id, issues)]

        models = [model.model_copy(update={"updated_at": updated_at}) for model in consolidate_variants(variants)]
        models_by_slug: dict[str, CanonicalModel] = {model.slug: model for model in models}
        provider_slugs = {provider.slug for provider in providers}

        uptime_points: dict[str, list[dict[str, Any]]] = {}
        for sample in samples:
            uptime_points.setdefault(sample.endpoint_uuid, []).append(
                {"timestamp": sample.timestamp, "uptime": sample.uptime}
            )

        windows: dict[tuple[str, str], RollingWindow] = {}
        built_endpoints: list[CanonicalEndpoint] = []
        for validated in endpoints:
            endpoint: CanonicalEndpoint = validated.entity
            model = models_by_slug.get(endpoint.model_slug)
            if model is None:
                issues.append(self._unresolved(snapshot_id, validated.index, endpoint, "model_slug", endpoint.model_slug))
            if endpoint.provider_slug not in provider_slugs:
                issues.append(self._unresolved(snapshot_id, validated.index, endpoint, "provider_slug", endpoint.provider_slug))

            uptime_window = self._fold(
                endpoint.uuid, UPTIME.series, uptime_points.get(endpoint.uuid, []), with_stored_windows
            )
            windows[(endpoint.uuid, UPTIME.series)] = uptime_window
            if endpoint.stats is not None:
                stats_point = {"timestamp": captured_hour, **endpoint.stats.model_dump(exclude_none=True)}
                windows[(endpoint.uuid, STATS.series)] = self._fold(
                    endpoint.uuid, STATS.series, [stats_point], with_stored_windows
                )

            update: dict[str, Any] = {
                "uptime_average": uptime_average(uptime_window),
                "updated_at": updated_at,
            }
            if model is not None:
                update["image_input"] = "image" in model.input_modalities
                update["file_input"] = "file" in model.input_modalities
                update["reasoning"] = model.reasoning
            built_endpoints.append(endpoint.model_copy(update=update))

        documents = {
            EntityType.MODEL: [model.to_document() for model in models],
            EntityType.PROVIDER: [
                provider.model_copy(update={"updated_at": updated_at}).to_document() for provider in providers
            ],
            EntityType.ENDPOINT: [endpoint.to_document() for endpoint in built_endpoints],
        }
        return CanonicalSnapshot(snapshot_id=snapshot_id, documents=documents, windows=windows, issues=tuple(issues))

    def _unresolved(
        self, snapshot_id: str, index: int, endpoint: CanonicalEndpoint, field_name: str, value: str
    ) -> ValidationIssue:
        bind(kind=RawKind.ENDPOINTS.value, identifier=endpoint.uuid, snapshot_id=snapshot_id).warning(
            f"Endpoint references unknown {field_name} {value}"
        )
        return ValidationIssue(
            kind=RawKind.ENDPOINTS.value,
            snapshot_id=snapshot_id,
            index=index,
            identifier=endpoint.uuid,
            field=field_name,
            code="UNRESOLVED_REFERENCE",
            message=f"{field_name} {value!r} not present in snapshot",
            rejected=False,
        )

    def _fold(self, endpoint_uuid: str, series: str, incoming: list[dict[str, Any]], with_stored: bool) -> RollingWindow:
        existing = None
        if with_stored and self._window_store is not None:
            existing = self._window_store.get(endpoint_uuid, series)
        spec = UPTIME if series == UPTIME.series else STATS
        return fold_window(
            existing or RollingWindow(),
            incoming,
            spec,
            hourly_cap=self._config.hourly_capacity,
            daily_cap=self._config.daily_capacity,
        )

    def materialize(self, snapshot_id: str) -> MaterializeResult:
        """Reconcile ``snapshot_id`` against the materialized state and persist the outcome."""

        started = perf_counter()
        created_at = self._clock()
        run_id = self._run_id_factory()

        with log_context(snapshot_id=snapshot_id, run_id=run_id):
            snapshot = self.build_snapshot(snapshot_id, now=created_at, with_stored_windows=True)

            counters: dict[EntityType, ReconcileCounters] = {}
            for kind in KIND_ORDER:
                outcome = reconcile(
                    snapshot.documents[kind.entity_type],
                    self._state_store.list(kind.entity_type),
                    kind=kind.entity_type,
                    identity=kind.identity,
                    equals=kind.equals,
                    observed_at=created_at,
                    snapshot_id=snapshot_id,
                )
                self._state_store.apply(kind.entity_type, outcome)
                counters[kind.entity_type] = outcome.counters

            if self._window_store is not None:
                for (endpoint_uuid, series), window in snapshot.windows.items():
                    self._window_store.put(endpoint_uuid, series, window)

            result = MaterializeResult(
                run_id=run_id,
                snapshot_id=snapshot_id,
                created_at=created_at,
                counters=counters,
                issues=snapshot.issues,
                duration_ms=(perf_counter() - started) * 1000,
            )
            if self._run_writer is not None:
                self._run_writer(
                    run_id=run_id,
                    snapshot_id=snapshot_id,
                    created_at=created_at,
                    counters={kind.value: value.to_dict() for kind, value in counters.items()},
                    issue_count=len(result.issues),
                    rejected_count=result.rejected_count,
                )

            bind(
                counters=result.to_dict()["counters"],
                issue_count=len(result.issues),
                rejected_count=result.rejected_count,
            ).info("Materialization pass complete")
        return result

    def diff_pair(self, previous_snapshot_id: str | None, snapshot_id: str) -> list[ChangeRecord]:
        """Diff two snapshots, classify display and persist the change records.

        A missing ``previous_snapshot_id`` is an empty prior snapshot, so every
        entity yields a ``create`` record.
        """

        with log_context(snapshot_id=snapshot_id, previous_snapshot_id=previous_snapshot_id):
            now = self._clock()
            current = self.build_snapshot(snapshot_id, now=now)
            if previous_snapshot_id is None:
                previous_documents: Mapping[EntityType, list[dict[str, Any]]] = {}
            else:
                previous_documents = self.build_snapshot(previous_snapshot_id, now=now).documents

            records: list[ChangeRecord] = []
            for kind in KIND_ORDER:
                records.extend(
                    self._diff_kind(
                        kind,
                        previous_documents.get(kind.entity_type, []),
                        current.documents.get(kind.entity_type, []),
                        previous_snapshot_id or "",
                        snapshot_id,
                    )
                )

            written = self._change_store.upsert(records)
            displayed = sum(1 for record in records if record.is_display)
            bind(change_count=len(records), displayed=displayed, written=written).info("Snapshot pair diffed")
        return records

    def _diff_kind(
        self,
        kind: EntityKind,
        before_documents: Sequence[Mapping[str, Any]],
        after_documents: Sequence[Mapping[str, Any]],
        previous_crawl_id: str,
        crawl_id: str,
    ) -> list[ChangeRecord]:
        before = {kind.identity(document): document for document in reversed(before_documents)}
        after = {kind.identity(document): document for document in reversed(after_documents)}

        records: list[ChangeRecord] = []
        for key in sorted(before.keys() | after.keys()):
            before_doc = before.get(key)
            after_doc = after.get(key)
            identity_fields = kind.identity_fields(after_doc if after_doc is not None else before_doc)
            for draft in kind.diff(before_doc, after_doc):
                record = ChangeRecord(
                    crawl_id=crawl_id,
                    previous_crawl_id=previous_crawl_id,
                    entity_type=kind.entity_type,
                    change_kind=draft.change_kind,
                    path=draft.path,
                    path_level_1=draft.path_level_1,
                    path_level_2=draft.path_level_2,
                    operation=draft.operation,
                    before=draft.before,
                    after=draft.after,
                    **identity_fields,
                )
                records.append(record.with_display(is_displayable(record, self._hide_rules)))
        return records

    async def run_pass(self, snapshot_id: str, previous_snapshot_id: str | None = None) -> PassResult:
        """Materialize ``snapshot_id`` and diff it against its predecessor concurrently."""

        previous = previous_snapshot_id or self._source.previous_snapshot_id(snapshot_id)
        materialized, changes = await asyncio.gather(
            asyncio.to_thread(self.materialize, snapshot_id),
            asyncio.to_thread(self.diff_pair, previous, snapshot_id),
        )
        return PassResult(materialized=materialized, changes=tuple(changes), previous_snapshot_id=previous)

    def reprocess_display(self, *, crawl_id: str | None = None) -> int:
        """Recompute display flags of stored records; returns how many changed."""

        changed = reprocess_display(self._change_store.list(crawl_id=crawl_id), self._hide_rules)
        if changed:
            self._change_store.update_display(changed)
        bind(changed=len(changed), crawl_id=crawl_id).info("Display flags reprocessed")
        return len(changed)


__all__ = [
    "KIND_ORDER",
    "CanonicalSnapshot",
    "MaterializationService",
    "MaterializeResult",
    "PassResult",
]
