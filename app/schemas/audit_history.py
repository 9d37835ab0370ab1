from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class AuditHistory(BaseModel):
    id: str
    item_id: Optional[str] = None
    item_number: Optional[str] = None
    item_description: Optional[str] = None
    previous_quantity: int
    new_quantity: int
    changed_by: str
    change_date: Optional[datetime] = None
    service_now_ticket_url: Optional[str] = None

    class Config:
        from_attributes = True
