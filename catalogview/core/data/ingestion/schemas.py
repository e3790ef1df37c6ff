"""Strict raw upstream schemas and their transforms into canonical entities."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import UTC, datetime
from typing import Any
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator

from catalogview.core.models.entities import (
    CanonicalEndpoint,
    CanonicalProvider,
    EndpointDataPolicy,
    EndpointLimits,
    EndpointPricing,
    EndpointStats,
    ModelVariantRecord,
    ProviderCapabilities,
    ProviderDataPolicy,
    UptimeSample,
)

STANDARD_VARIANT = "standard"


def _epoch_ms(value: datetime) -> int:
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return int(value.timestamp() * 1000)


def _non_empty(value: str | None) -> str | None:
    return value or None


def _non_zero(value: float | None) -> float | None:
    return value if value else None


class _RawSchema(BaseModel, ABC):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", protected_namespaces=())

    @abstractmethod
    def identity(self) -> str:
        """Best-effort identifier used in validation issues."""
        pass

    @abstractmethod
    def to_entity(self) -> BaseModel:
        """Transform into the canonical entity."""
        pass


class ReasoningConfig(BaseModel):
    start_token: str
    end_token: str


class EndpointRef(BaseModel):
    variant: str


class RawModel(_RawSchema):
    """Model listing as returned by the upstream frontend API."""

    slug: str
    hf_slug: str | None
    created_at: datetime
    name: str
    short_name: str
    author: str
    context_length: int
    input_modalities: list[str]
    output_modalities: list[str]
    group: str | None = None
    instruct_type: str | None = None
    warning_message: str | None = None
    permaslug: str
    reasoning_config: ReasoningConfig | None
    endpoint: EndpointRef | None = None

    @property
    def variant(self) -> str:
        return self.endpoint.variant if self.endpoint else STANDARD_VARIANT

    def identity(self) -> str:
        if self.variant != STANDARD_VARIANT:
            return f"{self.slug}:{self.variant}"
        return self.slug

    def to_entity(self) -> ModelVariantRecord:
        # "Author: Model Name" carries the author's display name
        author_name = self.name.split(":")[0].strip() if ":" in self.name else self.author
        return ModelVariantRecord(
            slug=self.identity(),
            base_slug=self.slug,
            version_slug=self.permaslug,
            variant=self.variant,
            name=self.short_name,
            author_slug=self.author,
            author_name=author_name,
            input_modalities=sorted(self.input_modalities),
            output_modalities=sorted(self.output_modalities),
            context_length=self.context_length,
            reasoning=self.reasoning_config is not None,
            tokenizer=_non_empty(self.group),
            instruct_type=_non_empty(self.instruct_type),
            hugging_face_id=_non_empty(self.hf_slug),
            warning_message=_non_empty(self.warning_message),
            created_at=_epoch_ms(self.created_at),
        )


class RawDataPolicy(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    training: bool | None = None
    retains_prompts: bool | None = Field(default=None, alias="retainsPrompts")
    can_publish: bool | None = Field(default=None, alias="canPublish")
    retention_days: int | None = Field(default=None, alias="retentionDays")
    requires_user_ids: bool | None = Field(default=None, alias="requiresUserIDs")
    terms_of_service_url: str | None = Field(default=None, alias="termsOfServiceURL")
    privacy_policy_url: str | None = Field(default=None, alias="privacyPolicyURL")
    paid_models: dict[str, Any] | None = Field(default=None, alias="paidModels")


class RawPricing(BaseModel):
    prompt: float | None = None
    completion: float | None = None
    image: float | None = None
    image_output: float | None = None
    request: float | None = None
    web_search: float | None = None
    internal_reasoning: float | None = None
    input_cache_read: float | None = None
    input_cache_write: float | None = None
    audio: float | None = None
    discount: float | None = None


class RawEndpointStats(BaseModel):
    p50_throughput: float
    p50_latency: float
    request_count: int | None = None


class RawEndpoint(_RawSchema):
    """Endpoint listing; one per (model variant, provider tag)."""

    id: str
    name: str
    context_length: int
    model_variant_slug: str
    provider_slug: str
    variant: str
    quantization: str | None = None
    supported_parameters: list[str]

    max_prompt_tokens: int | None = None
    max_completion_tokens: int | None = None
    max_prompt_images: int | None = None
    max_tokens_per_image: int | None = None
    limit_rpm: int | None = None
    limit_rpd: int | None = None

    data_policy: RawDataPolicy
    pricing: RawPricing

    can_abort: bool
    has_completions: bool
    has_chat_completions: bool
    supports_tool_parameters: bool
    supports_reasoning: bool
    supports_multipart: bool

    moderation_required: bool
    is_deranked: bool = False
    is_disabled: bool
    status: int | None = None
    stats: RawEndpointStats | None = None

    def identity(self) -> str:
        return self.id

    def to_entity(self) -> CanonicalEndpoint:
        pricing = self.pricing
        return CanonicalEndpoint(
            uuid=self.id,
            name=self.name,
            model_slug=self.model_variant_slug.split(":")[0],
            # tag slugs carry a "/suffix" per provider deployment
            provider_slug=self.provider_slug.split("/")[0],
            provider_tag_slug=self.provider_slug,
            variant=self.variant,
            context_length=self.context_length,
            quantization=_non_empty(self.quantization),
            pricing=EndpointPricing(
                text_input=_non_zero(pricing.prompt),
                text_output=_non_zero(pricing.completion),
                internal_reasoning=_non_zero(pricing.internal_reasoning),
                audio_input=_non_zero(pricing.audio),
                cache_read=_non_zero(pricing.input_cache_read),
                cache_write=_non_zero(pricing.input_cache_write),
                image_input=_non_zero(pricing.image),
                image_output=_non_zero(pricing.image_output),
                request=_non_zero(pricing.request),
                web_search=_non_zero(pricing.web_search),
                discount=_non_zero(pricing.discount),
            ),
            limits=EndpointLimits(
                text_input_tokens=self.max_prompt_tokens or None,
                text_output_tokens=self.max_completion_tokens or None,
                image_input_tokens=self.max_tokens_per_image or None,
                images_per_input=self.max_prompt_images or None,
                requests_per_minute=self.limit_rpm or None,
                requests_per_day=self.limit_rpd or None,
            ),
            data_policy=EndpointDataPolicy(
                training=self.data_policy.training,
                retains_prompts=self.data_policy.retains_prompts,
                retains_prompts_days=self.data_policy.retention_days,
                can_publish=self.data_policy.can_publish,
                requires_user_ids=self.data_policy.requires_user_ids,
            ),
            supported_parameters=sorted(self.supported_parameters),
            completions=self.has_completions,
            chat_completions=self.has_chat_completions,
            stream_cancellation=self.can_abort,
            tools=self.supports_tool_parameters,
            multipart=self.supports_multipart,
            reasoning=self.supports_reasoning,
            moderated=self.moderation_required,
            deranked=self.is_deranked,
            disabled=self.is_disabled,
            status=self.status or 0,
            stats=EndpointStats(**self.stats.model_dump()) if self.stats else None,
        )


class RawProvider(_RawSchema):
    """Provider listing; upstream uses camelCase keys."""

    slug: str
    display_name: str = Field(alias="displayName")
    headquarters: str | None = None
    datacenters: list[str] | None = None
    status_page_url: str | None = Field(default=None, alias="statusPageUrl")
    adapter_name: str | None = Field(default=None, alias="adapterName")
    has_chat_completions: bool = Field(alias="hasChatCompletions")
    has_completions: bool = Field(alias="hasCompletions")
    is_abortable: bool = Field(alias="isAbortable")
    moderation_required: bool = Field(alias="moderationRequired")
    is_multipart_supported: bool = Field(alias="isMultipartSupported")
    byok_enabled: bool = Field(default=False, alias="byokEnabled")
    data_policy: RawDataPolicy = Field(alias="dataPolicy")

    @field_validator("status_page_url")
    @classmethod
    def _check_url(cls, value: str | None) -> str | None:
        if value is None:
            return value
        parsed = urlparse(value)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            raise ValueError("status page URL must be an absolute http(s) URL")
        return value

    def identity(self) -> str:
        return self.slug

    def to_entity(self) -> CanonicalProvider:
        policy = self.data_policy
        return CanonicalProvider(
            slug=self.slug,
            name=self.display_name,
            headquarters=_non_empty(self.headquarters),
            datacenters=sorted(self.datacenters) if self.datacenters is not None else None,
            status_page_url=self.status_page_url,
            terms_of_service_url=_non_empty(policy.terms_of_service_url),
            privacy_policy_url=_non_empty(policy.privacy_policy_url),
            adapter_name=_non_empty(self.adapter_name),
            moderation_required=self.moderation_required,
            capabilities=ProviderCapabilities(
                completions=self.has_completions,
                chat_completions=self.has_chat_completions,
                multipart_messages=self.is_multipart_supported,
                stream_cancellation=self.is_abortable,
                byok=self.byok_enabled,
            ),
            data_policy=ProviderDataPolicy(
                training=policy.training,
                retains_prompts=policy.retains_prompts,
                retention_days=policy.retention_days,
                can_publish=policy.can_publish,
                requires_user_ids=policy.requires_user_ids,
                paid_models=policy.paid_models,
            ),
        )


class RawUptime(_RawSchema):
    """Hourly uptime sample for one endpoint."""

    endpoint_id: str
    date: datetime
    uptime: float | None = None

    def identity(self) -> str:
        return f"{self.endpoint_id}@{self.date.isoformat()}"

    def to_entity(self) -> UptimeSample:
        return UptimeSample(endpoint_uuid=self.endpoint_id, timestamp=_epoch_ms(self.date), uptime=self.uptime)


__all__ = ["STANDARD_VARIANT", "RawEndpoint", "RawModel", "RawProvider", "RawUptime"]
