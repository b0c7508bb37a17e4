"""
In-app alert service
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import select, func, update, delete
from sqlalchemy.ext.asyncio import AsyncSession

from myteacher.core.exceptions import AlertNotFoundError, ForbiddenError
from myteacher.models.alert import AlertType, InAppAlert
from myteacher.models.user import AppUser


class AlertService:
    """Create and manage per-user alerts"""

    def create_alert(
        self,
        db: AsyncSession,
        user_id: str,
        title: str,
        message: str,
        alert_type: AlertType = AlertType.GENERAL,
        link_url: Optional[str] = None,
        related_entity_type: Optional[str] = None,
        related_entity_id: Optional[str] = None,
    ) -> InAppAlert:
        alert = InAppAlert(
            user_id=user_id,
            alert_type=alert_type,
            title=title,
            message=message,
            link_url=link_url,
            related_entity_type=related_entity_type,
            related_entity_id=related_entity_id,
        )
        db.add(alert)
        return alert

    async def bulk_create(self, db: AsyncSession, user_ids: List[str], title: str, message: str,
                          alert_type: AlertType = AlertType.GENERAL, link_url: Optional[str] = None) -> int:
        for user_id in dict.fromkeys(user_ids):
            self.create_alert(db, user_id, title, message, alert_type, link_url)
        await db.flush()
        return len(dict.fromkeys(user_ids))

    async def list_for_user(self, db: AsyncSession, user: AppUser, unread_only: bool = False,
                            limit: int = 50) -> List[InAppAlert]:
        query = select(InAppAlert).where(InAppAlert.user_id == user.id)
        if unread_only:
            query = query.where(InAppAlert.is_read == False)  # noqa: E712
        query = query.order_by(InAppAlert.created_at.desc()).limit(limit)
        result = await db.execute(query)
        return list(result.scalars().all())

    async def unread_count(self, db: AsyncSession, user: AppUser) -> int:
        result = await db.execute(
            select(func.count(InAppAlert.id)).where(
                InAppAlert.user_id == user.id,
                InAppAlert.is_read == False,  # noqa: E712
            )
        )
        return result.scalar() or 0

    async def get_owned(self, db: AsyncSession, alert_id: str, user: AppUser) -> InAppAlert:
        alert = await db.get(InAppAlert, alert_id)
        if alert is None:
            raise AlertNotFoundError(alert_id)
        if alert.user_id != user.id:
            raise ForbiddenError("You can only manage your own alerts")
        return alert

    async def mark_read(self, db: AsyncSession, alert_id: str, user: AppUser) -> InAppAlert:
        alert = await self.get_owned(db, alert_id, user)
        if not alert.is_read:
            alert.is_read = True
            alert.read_at = datetime.utcnow()
            await db.flush()
        return alert

    async def mark_all_read(self, db: AsyncSession, user: AppUser) -> int:
        result = await db.execute(
            update(InAppAlert)
            .where(InAppAlert.user_id == user.id, InAppAlert.is_read == False)  # noqa: E712
            .values(is_read=True, read_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    async def delete(self, db: AsyncSession, alert_id: str, user: AppUser) -> None:
        alert = await self.get_owned(db, alert_id, user)
        await db.delete(alert)
        await db.flush()

    async def clear_read(self, db: AsyncSession, user: AppUser) -> int:
        result = await db.execute(
            delete(InAppAlert)
            .where(InAppAlert.user_id == user.id, InAppAlert.is_read == True)  # noqa: E712
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0


alert_service = AlertService()
