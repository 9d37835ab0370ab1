from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.db.database import get_db
from app.services.email_service import EmailService


def get_current_username(request: Request) -> str:
    """Actor identity as forwarded by the authenticating proxy"""
    username = request.headers.get(settings.REMOTE_USER_HEADER, "").strip()
    return username or settings.DEFAULT_ACTOR


def get_notifier(db: AsyncSession = Depends(get_db)) -> EmailService:
    return EmailService(db)
