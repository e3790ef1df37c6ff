"""Canonical catalog entities produced by the validate-and-transform boundary."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class EntityType(str, Enum):
    """Catalog entity kinds."""

    MODEL = "model"
    ENDPOINT = "endpoint"
    PROVIDER = "provider"


class _Entity(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid", protected_namespaces=())

    def to_document(self) -> dict[str, Any]:
        """Plain JSON document used for diffing and persistence."""
        return self.model_dump(mode="json", exclude_none=True)


class ModelVariantRecord(_Entity):
    """One per-variant model listing, before consolidation."""

    slug: str
    base_slug: str
    version_slug: str
    variant: str | None = None
    name: str
    author_slug: str
    author_name: str
    input_modalities: list[str] = Field(default_factory=list)
    output_modalities: list[str] = Field(default_factory=list)
    context_length: int
    reasoning: bool = False
    tokenizer: str | None = None
    instruct_type: str | None = None
    hugging_face_id: str | None = None
    warning_message: str | None = None
    created_at: int


class CanonicalModel(_Entity):
    """Deduplicated model, one per base slug."""

    slug: str
    base_slug: str
    version_slug: str
    name: str
    author_slug: str
    author_name: str
    variants: list[str] = Field(default_factory=list)
    input_modalities: list[str] = Field(default_factory=list)
    output_modalities: list[str] = Field(default_factory=list)
    context_length: int
    reasoning: bool = False
    tokenizer: str | None = None
    instruct_type: str | None = None
    hugging_face_id: str | None = None
    warning_message: str | None = None
    created_at: int
    updated_at: int | None = None


class EndpointPricing(_Entity):
    text_input: float | None = None
    text_output: float | None = None
    internal_reasoning: float | None = None
    audio_input: float | None = None
    cache_read: float | None = None
    cache_write: float | None = None
    image_input: float | None = None
    image_output: float | None = None
    request: float | None = None
    web_search: float | None = None
    discount: float | None = None


class EndpointLimits(_Entity):
    text_input_tokens: int | None = None
    text_output_tokens: int | None = None
    image_input_tokens: int | None = None
    images_per_input: int | None = None
    requests_per_minute: int | None = None
    requests_per_day: int | None = None


class EndpointDataPolicy(_Entity):
    training: bool | None = None
    retains_prompts: bool | None = None
    retains_prompts_days: int | None = None
    can_publish: bool | None = None
    requires_user_ids: bool | None = None


class EndpointStats(_Entity):
    p50_latency: float
    p50_throughput: float
    request_count: int | None = None


class CanonicalEndpoint(_Entity):
    """A model served by one provider, referencing both by key."""

    uuid: str
    name: str
    model_slug: str
    provider_slug: str
    provider_tag_slug: str
    variant: str
    context_length: int
    quantization: str | None = None
    pricing: EndpointPricing = Field(default_factory=EndpointPricing)
    limits: EndpointLimits = Field(default_factory=EndpointLimits)
    data_policy: EndpointDataPolicy = Field(default_factory=EndpointDataPolicy)
    supported_parameters: list[str] = Field(default_factory=list)

    completions: bool = False
    chat_completions: bool = False
    stream_cancellation: bool = False
    tools: bool = False
    multipart: bool = False
    reasoning: bool = False
    image_input: bool = False
    file_input: bool = False

    moderated: bool = False
    deranked: bool = False
    disabled: bool = False
    status: int = 0

    stats: EndpointStats | None = None
    uptime_average: float | None = None
    updated_at: int | None = None


class ProviderCapabilities(_Entity):
    completions: bool = False
    chat_completions: bool = False
    multipart_messages: bool = False
    stream_cancellation: bool = False
    byok: bool = False


class ProviderDataPolicy(_Entity):
    training: bool | None = None
    retains_prompts: bool | None = None
    retention_days: int | None = None
    can_publish: bool | None = None
    requires_user_ids: bool | None = None
    paid_models: dict[str, Any] | None = None


class CanonicalProvider(_Entity):
    """Provider listing with capabilities and data policy."""

    slug: str
    name: str
    headquarters: str | None = None
    datacenters: list[str] | None = None
    status_page_url: str | None = None
    terms_of_service_url: str | None = None
    privacy_policy_url: str | None = None
    adapter_name: str | None = None
    moderation_required: bool = False
    capabilities: ProviderCapabilities = Field(default_factory=ProviderCapabilities)
    data_policy: ProviderDataPolicy = Field(default_factory=ProviderDataPolicy)
    updated_at: int | None = None


class UptimeSample(_Entity):
    """Hourly uptime observation for a single endpoint."""

    endpoint_uuid: str
    timestamp: int
    uptime: float | None = None


__all__ = [
    "CanonicalEndpoint",
    "CanonicalModel",
    "CanonicalProvider",
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
