from __future__ import annotations


def test_load_reports_record_count(invoke, write_json, raw_model, parse_jsonl) -> None:
    path = write_json("models.json", [raw_model(), raw_model(slug="acme/other")])

    result = invoke("snapshot", "load", "models", "2024-06-01T12", str(path))

    assert result.exit_code == 0, result.output
    assert parse_jsonl(result.stdout) == [{"snapshot_id": "2024-06-01T12", "kind": "models", "records": 2}]


def test_load_rejects_non_array_file(invoke, write_json, error_payload) -> None:
    path = write_json("models.json", {"data": []})

    result = invoke("snapshot", "load", "models", "s1", str(path))

    assert result.exit_code == 10
    payload = error_payload(result.stderr)
    assert payload["code"] == "VALIDATION_ERROR"
    assert payload["details"]["type"] == "dict"


def test_load_rejects_invalid_json(invoke, tmp_path) -> None:
    path = tmp_path / "broken.json"
    path.write_text("[{", encoding="utf-8")

    result = invoke("snapshot", "load", "endpoints", "s1", str(path))

    assert result.exit_code == 10
    assert "VALIDATION_ERROR" in result.stderr


def test_load_rejects_unknown_kind(invoke, write_json) -> None:
    path = write_json("things.json", [])

    result = invoke("snapshot", "load", "things", "s1", str(path))

    assert result.exit_code == 2
    assert "Unsupported kind" in result.output


def test_list_shows_loaded_snapshots(invoke, write_json, raw_model, parse_jsonl) -> None:
    path = write_json("models.json", [raw_model()])
    invoke("snapshot", "load", "models", "s2", str(path))
    invoke("snapshot", "load", "models", "s1", str(path))

    result = invoke("snapshot", "list")

    assert result.exit_code == 0, result.output
    assert [row["snapshot_id"] for row in parse_jsonl(result.stdout)] == ["s1", "s2"]
