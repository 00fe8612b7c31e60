"""Tests for the tagged result models and build_result."""

from src.models import AnalysisResult, RemovalResult, build_result
from src.models.results import classify_payload

ANALYSIS_PAYLOAD = {
    "flags": [
        {
            "key": "old_ui",
            "references": [{"file": "src/App.tsx", "line": 10, "context": "if (flags.old_ui)"}],
            "reference_count": 1,
            "affected_files": ["src/App.tsx"],
            "risk_level": "low",
            "confidence": 0.9,
            "recommendation": "Safe to remove",
        }
    ],
    "summary": {"total_flags": 1, "total_references": 1, "estimated_effort_hours": 2},
}

REMOVAL_PAYLOAD = {
    "pr_url": "https://github.com/acme/webapp/pull/7",
    "branch": "remove-old_ui",
    "summary": {"flags_removed": ["old_ui"], "files_modified": 3, "references_removed": 4, "tests_passed": True},
}


class TestClassifyPayload:
    """Explicit kind beats expected kind, which beats shape."""

    def test_shape_analysis(self):
        assert classify_payload(ANALYSIS_PAYLOAD) == "analysis"

    def test_shape_removal(self):
        assert classify_payload(REMOVAL_PAYLOAD) == "removal"

    def test_expected_overrides_shape(self):
        assert classify_payload(ANALYSIS_PAYLOAD, expected="removal") == "removal"

    def test_explicit_kind_wins(self):
        assert classify_payload({**REMOVAL_PAYLOAD, "kind": "removal"}, expected="analysis") == "removal"

    def test_non_dict(self):
        assert classify_payload([1, 2]) is None
        assert classify_payload({"unrelated": True}) is None


class TestBuildResult:
    """Tests for build_result."""

    def test_builds_analysis(self):
        result = build_result(ANALYSIS_PAYLOAD)
        assert isinstance(result, AnalysisResult)
        assert result.kind == "analysis"
        assert result.flags[0].key == "old_ui"
        assert result.summary.total_flags == 1

    def test_builds_removal(self):
        result = build_result(REMOVAL_PAYLOAD, expected="removal")
        assert isinstance(result, RemovalResult)
        assert result.kind == "removal"
        assert result.pr_url.endswith("/pull/7")
        assert result.summary.flags_removed == ["old_ui"]

    def test_missing_summary_is_derived(self):
        payload = {"flags": [{"key": "a", "reference_count": 2}, {"key": "b", "reference_count": 3}]}
        result = build_result(payload)
        assert result.summary.total_flags == 2
        assert result.summary.total_references == 5

    def test_analysis_payload_rejected_as_removal(self):
        assert build_result({"flags": []}, expected="removal") is None

    def test_invalid_field_rejected(self):
        payload = {"flags": [{"key": "a", "confidence": 3.5}]}
        assert build_result(payload) is None

    def test_flag_without_key_rejected(self):
        assert build_result({"flags": [{"reference_count": 1}]}) is None

    def test_none_payload(self):
        assert build_result(None) is None

    def test_removal_keeps_unknown_summary_fields(self):
        payload = {"diff": "--- a", "errors": ["boom"], "summary": {"flags_removed": [], "duration": 4}}
        result = build_result(payload)
        assert isinstance(result, RemovalResult)
        assert result.errors == ["boom"]
        assert result.summary.model_extra == {"duration": 4}
