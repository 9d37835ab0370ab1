from sqlalchemy import Column, String, Integer, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid

from app.db.database import Base

DELETED_TICKET_SENTINEL = "ITEM DELETED"


class AuditHistory(Base):
    """One quantity transition. Rows are written once and never modified."""

    __tablename__ = "audit_history"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()), index=True)
    # Nulled when the item is deleted; the snapshot columns keep the history readable
    item_id = Column(String(36), ForeignKey("inventory.id", ondelete="SET NULL"), nullable=True, index=True)
    item_number = Column(String(100))
    item_description = Column(String(500))
    previous_quantity = Column(Integer, nullable=False)
    new_quantity = Column(Integer, nullable=False)
    changed_by = Column(String(255), nullable=False)
    change_date = Column(DateTime(timezone=True), server_default=func.now())
    service_now_ticket_url = Column(String(500))

    # Relationships
    item = relationship("InventoryItem")
