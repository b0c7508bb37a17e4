"""
Unit Tests for draft generation helpers
Tests for: grade bands, field to section mapping, prompt building, JSON parsing
"""
import pytest
from types import SimpleNamespace

from myteacher.core.exceptions import AIResponseParseError
from myteacher.models.plan import PlanTypeCode
from myteacher.services.content_generation import build_content_prompt, grade_band, section_tag_for_field
from myteacher.utils.claude_client import parse_json_response


@pytest.mark.parametrize("grade,band", [
    ("K", "K-2"),
    ("2", "K-2"),
    ("Grade 4", "3-5"),
    ("7th", "6-8"),
    ("12", "9-12"),
    ("Pre-K", "K-2"),
    ("13", None),
    ("", None),
    (None, None),
])
def test_grade_band(grade, band):
    assert grade_band(grade) == band


def test_section_tag_for_field():
    assert section_tag_for_field(PlanTypeCode.IEP, "lre_justification") == "placement_lre"
    assert section_tag_for_field(PlanTypeCode.BEHAVIOR_PLAN, "triggers") == "antecedents"
    assert section_tag_for_field(PlanTypeCode.FIVE_OH_FOUR, "goals_list") is None


class TestBuildContentPrompt:

    def test_includes_examples_and_context(self):
        chunks = [
            SimpleNamespace(text="Student will decode CVC words.", grade_band="K-2"),
            SimpleNamespace(text="Student will read 90 wcpm.", grade_band=None),
        ]

        prompt = build_content_prompt(
            PlanTypeCode.IEP,
            "goals_reading",
            "goals_list",
            chunks,
            {"first_name": "Sam", "grade": "2", "need_description": ""},
            "Focus on decoding",
        )

        assert prompt.startswith("Generate professional, compliant content for a IEP (Individualized Education Program).")
        assert "- Student: Sam" in prompt
        assert "- Grade: 2" in prompt
        assert "- Need:" not in prompt
        assert "## Section: Goals Reading" in prompt
        assert "### Example 1 (Grade Band: K-2)\nStudent will decode CVC words." in prompt
        assert "### Example 2\nStudent will read 90 wcpm." in prompt
        assert "## Specific Request\nFocus on decoding" in prompt
        assert "Generate appropriate content for the goals list field." in prompt

    def test_without_context_or_examples(self):
        prompt = build_content_prompt(PlanTypeCode.BEHAVIOR_PLAN, "crisis_plan", "crisis_plan", [])

        assert "## Student Information" not in prompt
        assert "## Reference Examples" not in prompt
        assert "## Specific Request" not in prompt


class TestParseJsonResponse:

    def test_plain_object(self):
        assert parse_json_response('{"is_valid": true}') == {"is_valid": True}

    def test_fenced_object(self):
        content = 'Here is my review:\n```json\n{"score": 7, "issues": []}\n```'

        assert parse_json_response(content) == {"score": 7, "issues": []}

    def test_not_an_object(self):
        with pytest.raises(AIResponseParseError):
            parse_json_response("[1, 2, 3]")

    def test_garbage(self):
        with pytest.raises(AIResponseParseError):
            parse_json_response("no json here")
