from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from app.crud.notification_config import notification_config as notification_config_crud
from app.db.database import get_db
from app.schemas.notification_config import NotificationConfig, NotificationConfigUpdate

router = APIRouter()


@router.get("/notifications", response_model=NotificationConfig)
async def get_notification_config(db: AsyncSession = Depends(get_db)):
    """Get the low stock notification recipients"""

    config = await notification_config_crud.get_current(db)
    if not config:
        raise HTTPException(status_code=404, detail="Notification config not found")
    return config


@router.put("/notifications", response_model=NotificationConfig)
async def update_notification_config(
    config_in: NotificationConfigUpdate,
    db: AsyncSession = Depends(get_db)
):
    """Create or replace the notification config"""

    config = await notification_config_crud.get_current(db)
    if config:
        return await notification_config_crud.update(db, db_obj=config, obj_in=config_in.model_dump(), commit=True)
    return await notification_config_crud.create(db, obj_in=config_in, commit=True)
