from sqlalchemy import Column, String, Integer, DateTime, DECIMAL, CheckConstraint
from sqlalchemy.sql import func
import uuid

from app.db.database import Base

QUANTITY_MAX = 999999
COST_MAX = "999999.99"


class InventoryItem(Base):
    __tablename__ = "inventory"
    __table_args__ = (
        CheckConstraint(f"current_quantity >= 0 AND current_quantity <= {QUANTITY_MAX}", name="ck_inventory_current_quantity"),
        CheckConstraint(f"minimum_threshold >= 0 AND minimum_threshold <= {QUANTITY_MAX}", name="ck_inventory_minimum_threshold"),
        CheckConstraint(f"reorder_amount >= 0 AND reorder_amount <= {QUANTITY_MAX}", name="ck_inventory_reorder_amount"),
        CheckConstraint(f"cost >= 0 AND cost <= {COST_MAX}", name="ck_inventory_cost"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()), index=True)
    item_number = Column(String(100), unique=True, nullable=False, index=True)
    asset_type = Column(String(50), nullable=False, default="Hardware")  # 'Hardware' or 'Software'
    description = Column(String(500), nullable=False)
    category = Column(String(100))  # e.g. 'Laptop', 'Monitor', 'License', 'Subscription'
    cost = Column(DECIMAL(10, 2), nullable=False, default=0)
    minimum_threshold = Column(Integer, nullable=False, default=0)
    reorder_amount = Column(Integer, nullable=False, default=0)
    current_quantity = Column(Integer, nullable=False, default=0)
    last_modified_by = Column(String(255), nullable=False)
    last_modified_date = Column(DateTime(timezone=True), server_default=func.now())

    # Legacy columns kept for older spreadsheets and reports
    hardware_description = Column(String(500))
    hardware_type = Column(String(100))

    @property
    def needs_reorder(self) -> bool:
        return (self.current_quantity or 0) < (self.minimum_threshold or 0)

    def __repr__(self) -> str:
        return f"<InventoryItem {self.item_number} qty={self.current_quantity}>"
