"""Tests for flag registry parsing."""

import json

import pytest

from src.errors import ParseError
from src.services.flag_parser import parse_flag_file


class TestParseFlagFile:
    """Tests for parse_flag_file."""

    def test_json_array(self):
        raw = json.dumps([
            {"key": "old_ui", "state": "enabled", "lastModified": "2024-01-01"},
            {"key": "legacy_checkout", "state": "disabled"},
        ])
        flags = parse_flag_file(raw, "config/flags.json")
        assert [f.key for f in flags] == ["old_ui", "legacy_checkout"]
        assert flags[0].last_modified == "2024-01-01"
        assert flags[1].state == "disabled"

    def test_json_object_with_flags(self):
        raw = json.dumps({"version": 2, "flags": [{"key": "old_ui", "team": "web"}]})
        flags = parse_flag_file(raw, "flags.json")
        assert flags[0].key == "old_ui"
        assert flags[0].model_extra == {"team": "web"}

    def test_single_flag_object(self):
        flags = parse_flag_file('{"key": "solo"}', "flag.json")
        assert [f.key for f in flags] == ["solo"]

    def test_string_entries(self):
        flags = parse_flag_file('["a", "b"]', "flags.json")
        assert [f.key for f in flags] == ["a", "b"]
        assert flags[0].state == "enabled"

    def test_yaml(self):
        raw = "flags:\n  - key: old_ui\n    state: enabled\n    tags: [ui, legacy]\n  - key: beta_search\n"
        flags = parse_flag_file(raw, "config/flags.yml")
        assert [f.key for f in flags] == ["old_ui", "beta_search"]
        assert flags[0].tags == ["ui", "legacy"]

    def test_unknown_extension_tries_json_then_yaml(self):
        assert parse_flag_file('[{"key": "a"}]', "flags.conf")[0].key == "a"
        assert parse_flag_file("- key: b\n", "flags.conf")[0].key == "b"

    def test_empty_list(self):
        assert parse_flag_file("[]", "flags.json") == []

    def test_invalid_json(self):
        with pytest.raises(ParseError) as exc_info:
            parse_flag_file("{not json", "config/flags.json")
        error = exc_info.value
        assert error.code == "E-2003"
        assert error.status_code == 422
        assert "config/flags.json" in error.message
        assert "invalid JSON" in error.message

    def test_invalid_yaml(self):
        with pytest.raises(ParseError):
            parse_flag_file("flags: [unclosed", "flags.yaml")

    def test_unexpected_structure(self):
        with pytest.raises(ParseError) as exc_info:
            parse_flag_file('{"settings": {"theme": "dark"}}', "flags.json")
        assert "unexpected structure" in exc_info.value.message
        assert '"flags" array' in exc_info.value.message

    def test_scalar_document(self):
        with pytest.raises(ParseError):
            parse_flag_file("just some text", "README")

    def test_non_object_entry(self):
        with pytest.raises(ParseError) as exc_info:
            parse_flag_file("[1, 2]", "flags.json")
        assert "flag #0" in exc_info.value.message

    def test_entry_without_key(self):
        with pytest.raises(ParseError):
            parse_flag_file('[{"state": "enabled"}]', "flags.json")
