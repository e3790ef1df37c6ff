"""Pytest configuration and shared raw payload builders for catalogview tests."""

from __future__ import annotations

import copy
from collections.abc import Callable, Iterator
from typing import Any

import pytest

from catalogview.core.data.storage import CatalogViewDuckDBFactory

RawFactory = Callable[..., dict[str, Any]]

_MODEL: dict[str, Any] = {
    "slug": "openai/gpt-4o",
    "hf_slug": None,
    "created_at": "2024-05-13T00:00:00Z",
    "name": "OpenAI: GPT-4o",
    "short_name": "GPT-4o",
    "author": "openai",
    "context_length": 128000,
    "input_modalities": ["text", "image"],
    "output_modalities": ["text"],
    "group": "GPT",
    "instruct_type": None,
    "warning_message": None,
    "permaslug": "openai/gpt-4o-2024-05-13",
    "reasoning_config": None,
    "endpoint": {"variant": "standard"},
}

_ENDPOINT: dict[str, Any] = {
    "id": "ep-1",
    "name": "OpenAI | openai/gpt-4o",
    "context_length": 128000,
    "model_variant_slug": "openai/gpt-4o",
    "provider_slug": "openai",
    "variant": "standard",
    "quantization": None,
    "supported_parameters": ["tools", "max_tokens"],
    "max_prompt_tokens": None,
    "max_completion_tokens": 16384,
    "data_policy": {"training": False, "retainsPrompts": True, "retentionDays": 30},
    "pricing": {"prompt": 0.0000025, "completion": 0.00001},
    "can_abort": True,
    "has_completions": True,
    "has_chat_completions": True,
    "supports_tool_parameters": True,
    "supports_reasoning": False,
    "supports_multipart": True,
    "moderation_required": True,
    "is_disabled": False,
    "status": 0,
    "stats": {"p50_throughput": 80.0, "p50_latency": 400.0, "request_count": 1000},
}

_PROVIDER: dict[str, Any] = {
    "slug": "openai",
    "displayName": "OpenAI",
    "headquarters": "US",
    "datacenters": ["US"],
    "statusPageUrl": "https://status.openai.com",
    "adapterName": "OpenAIAdapter",
    "hasChatCompletions": True,
    "hasCompletions": True,
    "isAbortable": True,
    "moderationRequired": True,
    "isMultipartSupported": True,
    "dataPolicy": {"training": False, "termsOfServiceURL": "https://openai.com/policies/terms"},
}


def _builder(template: dict[str, Any]) -> RawFactory:
    def build(**overrides: Any) -> dict[str, Any]:
        payload = copy.deepcopy(template)
        payload.update(overrides)
        return payload

    return build


@pytest.fixture()
def raw_model() -> RawFactory:
    return _builder(_MODEL)


@pytest.fixture()
def raw_endpoint() -> RawFactory:
    return _builder(_ENDPOINT)


@pytest.fixture()
def raw_provider() -> RawFactory:
    return _builder(_PROVIDER)


@pytest.fixture()
def raw_uptime() -> RawFactory:
    return _builder({"endpoint_id": "ep-1", "date": "2024-06-01T10:00:00Z", "uptime": 99.5})


@pytest.fixture()
def duckdb_conn() -> Iterator[Any]:
    factory = CatalogViewDuckDBFactory()
    with factory.connection() as conn:
        yield conn
