import json

from conftest import deterministic_output, deterministic_output_json
from orchestrator.response_validator import OutputValidator


def test_valid_output_passes():
    result = OutputValidator().validate(deterministic_output_json())
    assert result.ok is True
    assert result.reason == "ok"
    assert len(result.output.rows) == 2
    assert result.output.rows[0].row_id == "row-1"


def test_prose_is_invalid_json():
    result = OutputValidator().validate("Here is your research: ...")
    assert result.ok is False
    assert result.reason == "invalid_json"
    assert result.error.raw.startswith("Here is")


def test_empty_text_is_invalid_json():
    result = OutputValidator().validate("")
    assert result.ok is False
    assert result.reason == "invalid_json"


def test_array_payload_is_schema_violation():
    result = OutputValidator().validate("[]")
    assert result.ok is False
    assert result.reason == "schema_violation"


def test_unknown_intent_is_schema_violation():
    payload = deterministic_output()
    payload["rows"][0]["intent"] = "gossip"
    result = OutputValidator().validate(json.dumps(payload))
    assert result.ok is False
    assert result.reason == "schema_violation"


def test_recency_out_of_range_is_schema_violation():
    payload = deterministic_output()
    payload["rows"][1]["recencyScore"] = 1.5
    result = OutputValidator().validate(json.dumps(payload))
    assert result.reason == "schema_violation"


def test_missing_cluster_bundles_is_schema_violation():
    payload = deterministic_output()
    del payload["clusterBundles"]
    result = OutputValidator().validate(json.dumps(payload))
    assert result.reason == "schema_violation"


def test_evidence_and_keywords_are_capped():
    payload = deterministic_output()
    ref = {"url": "https://example.com/x", "title": "X"}
    payload["rows"][0]["topEvidence"] = [ref, ref, ref, ref]
    payload["clusterBundles"][0]["topKeywords"] = [f"kw {i}" for i in range(8)]
    payload["clusterBundles"][0]["topEvidence"] = [ref, ref, ref]

    result = OutputValidator().validate(json.dumps(payload))

    assert result.ok is True
    assert len(result.output.rows[0].top_evidence) == 2
    assert result.output.cluster_bundles[0].top_keywords == [f"kw {i}" for i in range(5)]
    assert len(result.output.cluster_bundles[0].top_evidence) == 2
