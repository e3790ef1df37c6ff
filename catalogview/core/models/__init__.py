"""Data models module."""

from catalogview.core.models.changes import MISSING, ChangeKind, ChangeOperation, ChangeRecord
from catalogview.core.models.entities import (
    CanonicalEndpoint,
    CanonicalModel,
    CanonicalProvider,
    EndpointDataPolicy,
    EndpointLimits,
    EndpointPricing,
    EndpointStats,
    EntityType,
    ModelVariantRecord,
    ProviderCapabilities,
    ProviderDataPolicy,
    UptimeSample,
)

__all__ = [
    "MISSING",
    "CanonicalEndpoint",
    "CanonicalModel",
    "CanonicalProvider",
    "ChangeKind",
    "ChangeOperation",
    "ChangeRecord",
    "EndpointDataPolicy",
    "EndpointLimits",
    "EndpointPricing",
    "EndpointStats",
    "EntityType",
    "ModelVariantRecord",
    "ProviderCapabilities",
    "ProviderDataPolicy",
    "UptimeSample",
]
