"""Tests for Settings configuration model."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from sage.config import Settings


class TestGetRedactionRules:
    def test_parses_comma_separated(self):
        s = Settings(redaction_rules="email,phone")
        assert s.get_redaction_rules() == ["email", "phone"]

    def test_handles_spaces_and_case(self):
        s = Settings(redaction_rules=" Email , SSN ")
        assert s.get_redaction_rules() == ["email", "ssn"]

    def test_empty_string_returns_empty_list(self):
        s = Settings(redaction_rules="")
        assert s.get_redaction_rules() == []


class TestDefaults:
    def test_default_database_path(self):
        assert Settings().database_path == Path("data/sage.db")

    def test_default_audit_limit(self):
        assert Settings().audit_log_limit == 200

    def test_archive_off_by_default(self):
        assert Settings().archive_evicted_audit is False

    def test_default_redaction_rules(self):
        assert Settings().get_redaction_rules() == ["email", "phone", "address", "ssn", "password"]

    def test_default_export_prefix(self):
        assert Settings().export_prefix == "sage"


def test_unknown_field_rejected():
    with pytest.raises(ValidationError):
        Settings(not_a_setting="x")
