from __future__ import annotations

from typing import Any

from catalogview.core.data.ingestion.models import RawKind, RawRecord
from catalogview.core.data.ingestion.validator import validate_batch


def _records(kind: RawKind, *payloads: Any) -> list[RawRecord]:
    return [RawRecord(kind=kind, snapshot_id="s1", index=index, payload=payload) for index, payload in enumerate(payloads)]


def test_validate_batch_accepts_valid_rows(raw_model) -> None:
    validated, issues = validate_batch(RawKind.MODELS, _records(RawKind.MODELS, raw_model()), "s1")

    assert not issues
    assert len(validated) == 1
    assert validated[0].identity == "openai/gpt-4o"
    assert validated[0].entity.author_name == "OpenAI"


def test_missing_required_field_rejects_record_and_batch_continues(raw_model) -> None:
    broken = raw_model(slug="broken/model")
    del broken["hf_slug"]

    validated, issues = validate_batch(RawKind.MODELS, _records(RawKind.MODELS, broken, raw_model()), "s1")

    assert [record.identity for record in validated] == ["openai/gpt-4o"]
    assert len(issues) == 1
    issue = issues[0]
    assert issue.rejected
    assert issue.code == "MISSING_FIELD"
    assert issue.field == "hf_slug"
    assert issue.identifier == "broken/model"
    assert issue.index == 0
    assert issue.snapshot_id == "s1"


def test_wrong_type_is_reported_as_invalid_type(raw_model) -> None:
    validated, issues = validate_batch(
        RawKind.MODELS, _records(RawKind.MODELS, raw_model(context_length="lots")), "s1"
    )

    assert not validated
    assert [(issue.field, issue.code) for issue in issues] == [("context_length", "INVALID_TYPE")]


def test_non_mapping_payload_is_reported_with_positional_identifier() -> None:
    validated, issues = validate_batch(RawKind.PROVIDERS, _records(RawKind.PROVIDERS, "not-an-object"), "s1")

    assert not validated
    assert issues[0].identifier == "#0"
    assert issues[0].field == "$"
    assert issues[0].code == "INVALID_TYPE"


def test_invalid_status_page_url_is_rejected(raw_provider) -> None:
    validated, issues = validate_batch(
        RawKind.PROVIDERS, _records(RawKind.PROVIDERS, raw_provider(statusPageUrl="ftp://status")), "s1"
    )

    assert not validated
    assert issues[0].code == "INVALID_VALUE"
    assert issues[0].field == "statusPageUrl"


def test_duplicate_identity_keeps_first_occurrence(raw_endpoint) -> None:
    first = raw_endpoint(name="first")
    second = raw_endpoint(name="second")

    validated, issues = validate_batch(RawKind.ENDPOINTS, _records(RawKind.ENDPOINTS, first, second), "s1")

    assert len(validated) == 1
    assert validated[0].entity.name == "first"
    assert len(issues) == 1
    assert issues[0].code == "DUPLICATE_IDENTITY"
    assert not issues[0].rejected
    assert issues[0].index == 1


def test_issue_to_dict_is_serialisable(raw_model) -> None:
    _, issues = validate_batch(RawKind.MODELS, _records(RawKind.MODELS, raw_model(name=None)), "s1")

    payload = issues[0].to_dict()

    assert payload["kind"] == "models"
    assert payload["field"] == "name"
    assert payload["rejected"] is True
