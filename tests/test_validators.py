"""
Tests for Payload Schema Validation

Payloads are checked against the packaged Draft 2020-12 schemas before they
are sealed.
"""

import pytest

from sigilmint.exceptions import SchemaInvalidError
from sigilmint.payload import build_position_payload
from sigilmint.validators import (
    MAX_REPORTED_ERRORS,
    SCHEMA_FILES,
    load_schema,
    schema_errors,
    validate_payload,
)


class TestLoadSchema:

    @pytest.mark.parametrize("kind", sorted(SCHEMA_FILES))
    def test_packaged_schemas_load(self, kind):
        schema = load_schema(kind)
        assert schema["$schema"].endswith("2020-12/schema")
        assert schema["properties"]["kind"]["const"] == kind

    def test_unknown_kind(self):
        with pytest.raises(SchemaInvalidError):
            load_schema("receipt")


class TestValidatePosition:

    def test_built_payload_is_valid(self, position_record, vault_record):
        payload = build_position_payload(position_record, vault_record)
        assert validate_payload(payload) == "position"

    def test_built_payload_with_proof_is_valid(self, position_record, vault_record, groth16_proof):
        position_record["zkProof"] = groth16_proof
        position_record["zkOk"] = True
        payload = build_position_payload(position_record, vault_record)
        assert validate_payload(payload) == "position"

    def test_float_micro_rejected(self, position_record, vault_record):
        payload = build_position_payload(position_record, vault_record)
        payload["feeMicro"] = 1.5
        with pytest.raises(SchemaInvalidError) as exc_info:
            validate_payload(payload)
        assert exc_info.value.details["schema"] == "position.schema.json"
        assert any(e.startswith("feeMicro:") for e in exc_info.value.details["errors"])

    def test_extra_moment_field_rejected(self, position_record, vault_record):
        payload = build_position_payload(position_record, vault_record)
        payload["openedAt"]["chakraDay"] = "Root"
        errors = schema_errors(payload, "position")
        assert len(errors) == 1
        assert errors[0].startswith("openedAt:")

    def test_missing_required_reported_at_root(self, position_record, vault_record):
        payload = build_position_payload(position_record, vault_record)
        del payload["lockId"]
        errors = schema_errors(payload, "position")
        assert errors == ["<root>: 'lockId' is a required property"]


class TestValidateResolution:

    def test_valid(self, resolution_payload):
        assert validate_payload(resolution_payload) == "resolution"

    def test_bad_outcome(self, resolution_payload):
        resolution_payload["outcome"] = "MAYBE"
        with pytest.raises(SchemaInvalidError):
            validate_payload(resolution_payload)

    def test_negative_pulse(self, resolution_payload):
        resolution_payload["finalPulse"] = -1
        with pytest.raises(SchemaInvalidError):
            validate_payload(resolution_payload)

    def test_missing_provider(self, resolution_payload):
        resolution_payload["oracle"] = {"feed": "x"}
        errors = schema_errors(resolution_payload, "resolution")
        assert errors == ["oracle: 'provider' is a required property"]

    def test_unknown_evidence_field(self, resolution_payload):
        resolution_payload["evidence"]["extra"] = True
        with pytest.raises(SchemaInvalidError):
            validate_payload(resolution_payload)


class TestValidateKind:

    @pytest.mark.parametrize("payload", [{}, {"kind": "receipt"}, None, "position", []])
    def test_unknown_or_missing_kind(self, payload):
        with pytest.raises(SchemaInvalidError):
            validate_payload(payload)

    def test_error_list_is_capped(self):
        payload = {"kind": "position", "v": 1}
        with pytest.raises(SchemaInvalidError) as exc_info:
            validate_payload(payload)
        assert len(exc_info.value.details["errors"]) <= MAX_REPORTED_ERRORS
