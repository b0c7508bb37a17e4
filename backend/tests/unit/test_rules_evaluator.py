"""
Unit Tests for the Rules Evaluator
Tests for: business-day arithmetic, deadline calculation, scope fallback
"""
import pytest
from datetime import datetime

from myteacher.models.rule_pack import RuleScopeType
from myteacher.services.rules_evaluator import (
    DueDates,
    EnforcementResult,
    ResolvedRulePack,
    add_business_days,
    calculate_due_dates,
    evaluate_meeting,
    scope_fallback_chain,
)

# Thursday
MEETING_AT = datetime(2026, 11, 12, 14, 0)


def make_pack(**rules) -> ResolvedRulePack:
    return ResolvedRulePack(
        id="pack-1",
        name="Maryland IEP",
        version=1,
        scope_type="STATE",
        scope_id="MD",
        plan_type="IEP",
        rules=rules,
    )


def days_rule(days, enabled=True) -> dict:
    return {"config": {"days": days}, "is_enabled": enabled}


class TestAddBusinessDays:

    def test_forward_skips_weekend(self):
        assert add_business_days(MEETING_AT, 2) == datetime(2026, 11, 16, 14, 0)

    def test_backward_skips_weekend(self):
        monday = datetime(2026, 11, 16)
        assert add_business_days(monday, -1) == datetime(2026, 11, 13)

    def test_from_saturday(self):
        saturday = datetime(2026, 11, 14)
        assert add_business_days(saturday, 1) == datetime(2026, 11, 16)

    def test_zero_days_is_identity(self):
        assert add_business_days(MEETING_AT, 0) == MEETING_AT


class TestCalculateDueDates:

    def test_without_pack(self):
        assert calculate_due_dates(MEETING_AT, None) == DueDates()

    def test_all_deadlines(self):
        pack = make_pack(
            PRE_MEETING_DOCS_DAYS=days_rule(5),
            POST_MEETING_DOCS_DAYS=days_rule(5),
            US_MAIL_PRE_MEETING_DAYS=days_rule(3),
            US_MAIL_POST_MEETING_DAYS=days_rule(3),
        )

        due = calculate_due_dates(MEETING_AT, pack)

        assert due.pre_docs_deadline == datetime(2026, 11, 5, 14, 0)
        assert due.post_docs_deadline == datetime(2026, 11, 19, 14, 0)
        assert due.us_mail_pre_docs_deadline == datetime(2026, 11, 2, 14, 0)
        assert due.us_mail_post_docs_deadline == datetime(2026, 11, 16, 14, 0)

    def test_disabled_rule_is_ignored(self):
        pack = make_pack(PRE_MEETING_DOCS_DAYS=days_rule(5, enabled=False))

        assert calculate_due_dates(MEETING_AT, pack).pre_docs_deadline is None

    def test_mail_deadline_needs_base_deadline(self):
        pack = make_pack(US_MAIL_PRE_MEETING_DAYS=days_rule(3))

        assert calculate_due_dates(MEETING_AT, pack).us_mail_pre_docs_deadline is None


class TestResolvedRulePack:

    def test_rule_and_config(self):
        pack = make_pack(
            CONFERENCE_NOTES_REQUIRED={"config": {"required": True}, "is_enabled": True},
            RECORDING_POLICY={"config": None, "is_enabled": True},
        )

        assert pack.config("CONFERENCE_NOTES_REQUIRED") == {"required": True}
        assert pack.config("RECORDING_POLICY") == {}
        assert pack.rule("UNKNOWN") is None
        assert pack.config("UNKNOWN") == {}


class TestScopeFallbackChain:

    def test_school_falls_back_through_district_to_state(self):
        chain = scope_fallback_chain("SCHOOL", "MD-HCPSS-CES")

        assert chain == [
            (RuleScopeType.SCHOOL, "MD-HCPSS-CES"),
            (RuleScopeType.DISTRICT, "MD-HCPSS-CES"),
            (RuleScopeType.STATE, "MD"),
        ]

    def test_district_with_explicit_state(self):
        chain = scope_fallback_chain("DISTRICT", "HCPSS", state_code="md")

        assert chain == [(RuleScopeType.DISTRICT, "HCPSS"), (RuleScopeType.STATE, "MD")]

    def test_state_only(self):
        assert scope_fallback_chain("STATE", "md") == [(RuleScopeType.STATE, "MD")]

    def test_unknown_scope_type(self):
        with pytest.raises(ValueError):
            scope_fallback_chain("COUNTY", "MD")


class TestEnforcementResult:

    def test_to_dict_serializes_due_dates(self):
        result = EnforcementResult()
        result.due_dates.pre_docs_deadline = datetime(2026, 11, 5, 14, 0)
        result.warning("NO_RULE_PACK", "No active rule pack")

        data = result.to_dict()

        assert data["due_dates"]["pre_docs_deadline"] == "2026-11-05T14:00:00"
        assert data["due_dates"]["post_docs_deadline"] is None
        assert data["warnings"] == [{"code": "NO_RULE_PACK", "message": "No active rule pack", "rule_key": ""}]
        assert data["can_close"] is True


@pytest.mark.asyncio
async def test_missing_meeting_blocks_everything():
    result = await evaluate_meeting(None, None, make_pack())

    assert result.can_close is False
    assert result.can_implement is False
    assert [e["code"] for e in result.errors] == ["MEETING_NOT_FOUND"]
