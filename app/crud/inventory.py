from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_

from app.crud.base import CRUDBase
from app.models.inventory import InventoryItem
from app.schemas.inventory import InventoryItemCreate, InventoryItemUpdate

SORTABLE_COLUMNS = {
    "item_number",
    "asset_type",
    "description",
    "category",
    "cost",
    "minimum_threshold",
    "reorder_amount",
    "current_quantity",
    "last_modified_date",
}


class InventoryCRUD(CRUDBase[InventoryItem, InventoryItemCreate, InventoryItemUpdate]):
    async def get_by_item_number(
        self,
        db: AsyncSession,
        item_number: str
    ) -> Optional[InventoryItem]:
        """Exact, case-sensitive lookup by item number"""
        stmt = select(InventoryItem).where(InventoryItem.item_number == item_number)
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def search(
        self,
        db: AsyncSession,
        *,
        search: Optional[str] = None,
        asset_type: Optional[str] = None,
        category: Optional[str] = None,
        needs_reorder: Optional[bool] = None,
        sort_by: str = "item_number",
        sort_desc: bool = False
    ) -> List[InventoryItem]:
        """Filtered, sorted inventory listing"""
        stmt = select(InventoryItem)

        if search:
            pattern = f"%{search.lower()}%"
            stmt = stmt.where(
                or_(
                    func.lower(InventoryItem.item_number).like(pattern),
                    func.lower(InventoryItem.description).like(pattern),
                    func.lower(InventoryItem.hardware_description).like(pattern),
                )
            )
        if asset_type:
            stmt = stmt.where(InventoryItem.asset_type == asset_type)
        if category:
            stmt = stmt.where(
                or_(InventoryItem.category == category, InventoryItem.hardware_type == category)
            )
        if needs_reorder is True:
            stmt = stmt.where(InventoryItem.current_quantity < InventoryItem.minimum_threshold)
        elif needs_reorder is False:
            stmt = stmt.where(InventoryItem.current_quantity >= InventoryItem.minimum_threshold)

        if sort_by not in SORTABLE_COLUMNS:
            raise ValueError(f"Cannot sort by {sort_by}")
        column = getattr(InventoryItem, sort_by)
        stmt = stmt.order_by(column.desc() if sort_desc else column.asc())

        result = await db.execute(stmt)
        return result.scalars().all()

    async def get_categories(self, db: AsyncSession) -> List[str]:
        """Distinct categories, legacy hardware types included"""
        result = await db.execute(select(InventoryItem.category, InventoryItem.hardware_type))
        types = set()
        for category, hardware_type in result.all():
            if category:
                types.add(category)
            if hardware_type:
                types.add(hardware_type)
        return sorted(types)

    async def get_asset_types(self, db: AsyncSession) -> List[str]:
        result = await db.execute(select(InventoryItem.asset_type).distinct())
        return sorted(t for t in result.scalars().all() if t)


inventory = InventoryCRUD(InventoryItem)
