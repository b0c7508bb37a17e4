"""
Unit Tests for the audit logger and datetime normalization
"""
import pytest
from datetime import datetime, timedelta, timezone

from sqlalchemy import func, select

from myteacher.models.audit_log import AuditActionType, AuditEntityType, AuditLog
from myteacher.models.student import Student
from myteacher.schemas import to_naive_utc
from myteacher.services.audit_service import AuditLogger


class TestAuditLogger:

    @pytest.mark.asyncio
    async def test_entry_commits_with_caller(self, db_session):
        entry = await AuditLogger(db_session, None).case_viewed("case-1", None)
        await db_session.commit()

        assert entry is not None
        stored = await db_session.get(AuditLog, entry.id)
        assert stored.action == AuditActionType.CASE_VIEWED

    @pytest.mark.asyncio
    async def test_failed_entry_keeps_caller_changes(self, db_session):
        student = Student(record_id="STU-900001", first_name="Ada", last_name="Ortiz")
        db_session.add(student)

        entry = await AuditLogger(db_session, None).log(
            AuditActionType.PLAN_VIEWED, AuditEntityType.PLAN, "plan-1", metadata={"unserializable": object()}
        )
        await db_session.commit()

        assert entry is None
        assert (await db_session.get(Student, student.id)) is not None
        assert (await db_session.execute(select(func.count()).select_from(AuditLog))).scalar() == 0


class TestNaiveUtc:

    def test_offset_converted_to_utc(self):
        aware = datetime(2030, 1, 15, 5, 0, tzinfo=timezone(timedelta(hours=5)))

        assert to_naive_utc(aware) == datetime(2030, 1, 15, 0, 0)

    def test_naive_left_alone(self):
        naive = datetime(2030, 1, 15, 12, 30)

        assert to_naive_utc(naive) is naive
