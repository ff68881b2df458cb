"""
Tests for boundary validation.
"""

from datetime import datetime

import pytest
from examguard.schema import validate_exam_code, validate_threshold, validate_corpus_entry


@pytest.fixture
def valid_record():
    return {
        "id": "q-1",
        "exam_code": "CS101",
        "raw_text": "Define entropy.",
        "image_url": "/uploads/q-1.png",
        "timestamp": datetime(2024, 5, 1, 9, 0),
    }


class TestValidateExamCode:
    """Test exam code checks."""

    def test_valid(self):
        assert validate_exam_code("CS101-2024") == []

    @pytest.mark.parametrize("code", [None, "", "   ", 42])
    def test_required(self, code):
        assert validate_exam_code(code) == ["examCode is required"]

    def test_too_long(self):
        errors = validate_exam_code("X" * 65)
        assert any("at most" in e for e in errors)

    def test_slash_rejected(self):
        assert validate_exam_code("CS/101") == ["examCode must not contain '/'"]


class TestValidateThreshold:
    """Test threshold checks."""

    @pytest.mark.parametrize("value", [0, 0.0, 0.55, 1, 1.0])
    def test_valid(self, value):
        assert validate_threshold(value) == []

    @pytest.mark.parametrize("value", [-0.01, 1.01])
    def test_out_of_range(self, value):
        assert validate_threshold(value) == ["Text threshold must be between 0 and 1"]

    @pytest.mark.parametrize("value", ["0.5", None, True])
    def test_not_a_number(self, value):
        assert validate_threshold(value) == ["Text threshold must be a number"]


class TestValidateCorpusEntry:
    """Test stored record checks."""

    def test_valid(self, valid_record):
        assert validate_corpus_entry(valid_record) == []

    def test_minimal(self):
        assert validate_corpus_entry({"id": "q-1", "exam_code": "CS101", "raw_text": ""}) == []

    def test_iso_timestamp(self, valid_record):
        valid_record["timestamp"] = "2024-05-01T09:00:00"
        assert validate_corpus_entry(valid_record) == []

    def test_missing_fields(self):
        errors = validate_corpus_entry({})
        assert "Missing required field: id" in errors
        assert "Missing required field: exam_code" in errors
        assert "Missing required field: raw_text" in errors

    def test_bad_types(self, valid_record):
        valid_record["raw_text"] = 123
        valid_record["image_url"] = 5
        valid_record["timestamp"] = "yesterday"
        errors = validate_corpus_entry(valid_record)
        assert len(errors) == 3

    def test_blank_id(self, valid_record):
        valid_record["id"] = " "
        assert validate_corpus_entry(valid_record) == ["Field 'id' must be a non-empty string"]
