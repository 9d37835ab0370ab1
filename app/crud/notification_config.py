from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.crud.base import CRUDBase
from app.models.notification_config import NotificationConfig
from app.schemas.notification_config import NotificationConfigUpdate


class NotificationConfigCRUD(CRUDBase[NotificationConfig, NotificationConfigUpdate, NotificationConfigUpdate]):
    async def get_current(self, db: AsyncSession) -> Optional[NotificationConfig]:
        """There is at most one config row"""
        result = await db.execute(select(NotificationConfig).order_by(NotificationConfig.id).limit(1))
        return result.scalar_one_or_none()


notification_config = NotificationConfigCRUD(NotificationConfig)
