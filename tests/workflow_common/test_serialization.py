"""Tests for workflow_common.serialization."""

from __future__ import annotations

from pathlib import Path

import pytest

from workflow_common.errors import SchemaError
from workflow_common.serialization import (
    compute_checksum,
    deserialize_json,
    schema_path,
    serialize_json,
    validate_payload,
    verify_checksum,
)


@pytest.fixture
def meta_schema() -> Path:
    return schema_path("index_meta.v1.json")


@pytest.fixture
def segment_schema() -> Path:
    return schema_path("index_segment.v1.json")


class TestChecksum:
    def test_is_hex_sha256(self) -> None:
        value = compute_checksum(b"test data")
        assert len(value) == 64
        assert all(c in "0123456789abcdef" for c in value)

    def test_mismatch_raises(self) -> None:
        with pytest.raises(SchemaError, match="Checksum mismatch"):
            verify_checksum(b"test data", "0" * 64)


class TestValidatePayload:
    def test_bundled_meta_schema_accepts_empty_index(self, meta_schema: Path) -> None:
        validate_payload({"format": 1, "opstamp": 0, "segment": None, "num_docs": 0}, meta_schema)

    def test_rejects_bad_segment_name(self, meta_schema: Path) -> None:
        payload = {"format": 1, "opstamp": 3, "segment": "../evil.json", "num_docs": 1}
        with pytest.raises(SchemaError, match="Schema validation failed"):
            validate_payload(payload, meta_schema)


class TestSerializeJson:
    def test_round_trip_with_checksum(self, tmp_path: Path, segment_schema: Path) -> None:
        payload = {
            "opstamp": 2,
            "documents": [{"id": "echo", "body": {"name": "Echo", "command": "echo hi"}}],
        }
        target = tmp_path / "segment-0000000002.json"

        digest = serialize_json(payload, segment_schema, target)

        assert (tmp_path / "segment-0000000002.json.sha256").read_text().strip() == digest
        assert deserialize_json(target, segment_schema) == payload

    def test_invalid_payload_is_not_written(self, tmp_path: Path, segment_schema: Path) -> None:
        target = tmp_path / "segment.json"
        with pytest.raises(SchemaError):
            serialize_json({"opstamp": "x"}, segment_schema, target)
        assert not target.exists()

    def test_corrupted_file_fails_verification(
        self, tmp_path: Path, segment_schema: Path
    ) -> None:
        target = tmp_path / "segment.json"
        serialize_json({"opstamp": 1, "documents": []}, segment_schema, target)
        target.write_text('{"opstamp": 9, "documents": []}')

        with pytest.raises(SchemaError, match="Checksum verification failed"):
            deserialize_json(target, segment_schema)

    def test_missing_checksum_file_is_tolerated(
        self, tmp_path: Path, segment_schema: Path
    ) -> None:
        target = tmp_path / "segment.json"
        target.write_text('{"opstamp": 1, "documents": []}')
        assert deserialize_json(target, segment_schema) == {"opstamp": 1, "documents": []}
