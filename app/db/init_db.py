import logging

from sqlalchemy import select, func

from app.db.database import engine, async_session_maker, Base
from app.models import *  # Import all models
from app.models.notification_config import NotificationConfig

logger = logging.getLogger(__name__)

DEFAULT_NOTIFICATION_GROUP = "IT_Governance"


async def init_db() -> None:
    """Initialize database tables and seed the notification config"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session_maker() as session:
        await seed_notification_config(session)


async def seed_notification_config(session) -> None:
    result = await session.execute(select(func.count(NotificationConfig.id)))
    if result.scalar():
        return

    session.add(NotificationConfig(ad_group_name=DEFAULT_NOTIFICATION_GROUP, additional_email_recipients=""))
    await session.commit()
    logger.info("Seeded default notification config (group %s)", DEFAULT_NOTIFICATION_GROUP)
