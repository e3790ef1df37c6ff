from __future__ import annotations

import pytest

from catalogview.core.data.ingestion.schemas import RawEndpoint, RawModel, RawProvider, RawUptime, _RawSchema


def test_model_variant_identity_and_fields(raw_model) -> None:
    raw = RawModel.model_validate(
        raw_model(endpoint={"variant": "free"}, short_name="GPT-4o (free)", input_modalities=["text", "file", "image"])
    )

    record = raw.to_entity()

    assert raw.identity() == "openai/gpt-4o:free"
    assert record.slug == "openai/gpt-4o:free"
    assert record.base_slug == "openai/gpt-4o"
    assert record.variant == "free"
    assert record.input_modalities == ["file", "image", "text"]
    assert record.created_at == 1715558400000
    assert record.tokenizer == "GPT"
    assert record.hugging_face_id is None
    assert record.reasoning is False


def test_model_without_endpoint_is_standard_variant(raw_model) -> None:
    payload = raw_model(reasoning_config={"start_token": "<think>", "end_token": "</think>"}, group="")
    del payload["endpoint"]

    record = RawModel.model_validate(payload).to_entity()

    assert record.variant == "standard"
    assert record.slug == "openai/gpt-4o"
    assert record.reasoning is True
    assert record.tokenizer is None


def test_endpoint_transform_derives_slugs_and_drops_zero_prices(raw_endpoint) -> None:
    raw = RawEndpoint.model_validate(
        raw_endpoint(
            model_variant_slug="openai/gpt-4o:free",
            provider_slug="openai/fp8",
            pricing={"prompt": 0, "completion": "0.00001", "audio": 0.0},
            supported_parameters=["tools", "seed", "max_tokens"],
            status=None,
        )
    )

    endpoint = raw.to_entity()
    document = endpoint.to_document()

    assert endpoint.model_slug == "openai/gpt-4o"
    assert endpoint.provider_slug == "openai"
    assert endpoint.provider_tag_slug == "openai/fp8"
    assert document["pricing"] == {"text_output": 0.00001}
    assert document["limits"] == {"text_output_tokens": 16384}
    assert document["supported_parameters"] == ["max_tokens", "seed", "tools"]
    assert document["data_policy"] == {"training": False, "retains_prompts": True, "retains_prompts_days": 30}
    assert endpoint.status == 0
    assert endpoint.stats is not None and endpoint.stats.request_count == 1000


def test_provider_transform_reads_camel_case(raw_provider) -> None:
    provider = RawProvider.model_validate(raw_provider(datacenters=["US", "DE"], headquarters="")).to_entity()

    assert provider.name == "OpenAI"
    assert provider.headquarters is None
    assert provider.datacenters == ["DE", "US"]
    assert provider.terms_of_service_url == "https://openai.com/policies/terms"
    assert provider.capabilities.byok is False
    assert provider.capabilities.stream_cancellation is True


def test_uptime_transform(raw_uptime) -> None:
    sample = RawUptime.model_validate(raw_uptime(uptime=None)).to_entity()

    assert sample.endpoint_uuid == "ep-1"
    assert sample.timestamp % 3_600_000 == 0
    assert sample.uptime is None


def test_raw_schemas_must_define_identity_and_transform() -> None:
    class Incomplete(_RawSchema):
        slug: str

        def identity(self) -> str:
            return self.slug

    with pytest.raises(TypeError):
        Incomplete(slug="acme/foo")
