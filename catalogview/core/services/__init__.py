"""Services module - change detection and materialization logic."""

from catalogview.core.services.consolidation import consolidate_variants
from catalogview.core.services.diff import ChangeDraft, DiffPolicy, diff
from catalogview.core.services.display import DEFAULT_HIDE_RULES, HideRule, is_displayable, reprocess_display
from catalogview.core.services.kinds import ENDPOINT, ENTITY_KINDS, MODEL, PROVIDER, EntityKind
from catalogview.core.services.materialize import MaterializationService, MaterializeResult, PassResult
from catalogview.core.services.reconciliation import (
    LifecycleStatus,
    MaterializedStateEntry,
    ReconcileCounters,
    ReconcileOutcome,
    reconcile,
)
from catalogview.core.services.rolling_window import RollingWindow, fold_daily, fold_hourly, fold_window

__all__ = [
    "DEFAULT_HIDE_RULES",
    "ENDPOINT",
    "ENTITY_KINDS",
    "MODEL",
    "PROVIDER",
    "ChangeDraft",
    "DiffPolicy",
    "EntityKind",
    "HideRule",
    "LifecycleStatus",
    "MaterializationService",
    "MaterializeResult",
    "MaterializedStateEntry",
    "PassResult",
    "ReconcileCounters",
    "ReconcileOutcome",
    "RollingWindow",
    "consolidate_variants",
    "diff",
    "fold_daily",
    "fold_hourly",
    "fold_window",
    "is_displayable",
    "reconcile",
    "reprocess_display",
]
