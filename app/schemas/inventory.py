from pydantic import BaseModel, Field, field_validator
from typing import Optional, Literal
from decimal import Decimal
from datetime import datetime

from app.models.inventory import QUANTITY_MAX

AssetType = Literal["Hardware", "Software"]
COST_MAX = Decimal("999999.99")


class InventoryItemBase(BaseModel):
    item_number: str = Field(..., min_length=1, max_length=100, description="Unique item number")
    asset_type: AssetType = Field("Hardware", description="Hardware or Software")
    description: str = Field(..., min_length=1, max_length=500)
    category: Optional[str] = Field(None, max_length=100, description="e.g. Laptop, Monitor, License")
    cost: Decimal = Field(Decimal("0"), ge=0, le=COST_MAX, decimal_places=2)
    minimum_threshold: int = Field(0, ge=0, le=QUANTITY_MAX)
    reorder_amount: int = Field(0, ge=0, le=QUANTITY_MAX)
    current_quantity: int = Field(0, ge=0, le=QUANTITY_MAX)

    @field_validator("item_number", "description")
    @classmethod
    def strip_required_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must be a non-empty string")
        return v


class InventoryItemCreate(InventoryItemBase):
    pass


class InventoryItemUpdate(BaseModel):
    """Fields a direct edit may change. Anything else is rejected."""

    asset_type: Optional[AssetType] = None
    description: Optional[str] = Field(None, min_length=1, max_length=500)
    category: Optional[str] = Field(None, max_length=100)
    cost: Optional[Decimal] = Field(None, ge=0, le=COST_MAX, decimal_places=2)
    minimum_threshold: Optional[int] = Field(None, ge=0, le=QUANTITY_MAX)
    reorder_amount: Optional[int] = Field(None, ge=0, le=QUANTITY_MAX)
    current_quantity: Optional[int] = Field(None, ge=0, le=QUANTITY_MAX)

    @field_validator("description")
    @classmethod
    def strip_description(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("description must be a non-empty string")
        return v

    @field_validator("category")
    @classmethod
    def blank_category_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return v.strip() or None

    class Config:
        extra = "forbid"


class QuantityAdjustment(BaseModel):
    item_number: str = Field(..., min_length=1)
    quantity_change: int
    service_now_ticket_url: Optional[str] = Field(None, max_length=500)
    assigned_to_user: Optional[str] = None


class InventoryItem(BaseModel):
    id: str
    item_number: str
    asset_type: str
    description: str
    category: Optional[str] = None
    cost: Decimal
    minimum_threshold: int
    reorder_amount: int
    current_quantity: int
    last_modified_by: str
    last_modified_date: Optional[datetime] = None
    hardware_description: Optional[str] = None
    hardware_type: Optional[str] = None
    needs_reorder: bool = False

    class Config:
        from_attributes = True
