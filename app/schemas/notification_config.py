from pydantic import BaseModel, Field
from typing import Optional


class NotificationConfigUpdate(BaseModel):
    ad_group_name: str = Field(..., min_length=1, max_length=255)
    additional_email_recipients: Optional[str] = Field(None, max_length=1000, description="Comma-separated e-mail addresses")


class NotificationConfig(NotificationConfigUpdate):
    id: int

    class Config:
        from_attributes = True
