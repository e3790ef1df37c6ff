"""Data models supporting raw snapshot ingestion."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class RawKind(str, Enum):
    """Bundles that make up one upstream snapshot."""

    MODELS = "models"
    ENDPOINTS = "endpoints"
    PROVIDERS = "providers"
    UPTIMES = "uptimes"


@dataclass(slots=True)
class RawRecord:
    """Untyped upstream payload for one entity instance within a snapshot bundle."""

    kind: RawKind
    snapshot_id: str
    index: int
    payload: dict[str, Any] = field(default_factory=dict)


__all__ = ["RawKind", "RawRecord"]
