from datetime import datetime, timezone
from typing import List, Optional, Dict, Any
import logging

from sqlalchemy import select, update, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.crud.inventory import inventory as inventory_crud
from app.crud.audit_history import audit_history as audit_crud
from app.models.inventory import InventoryItem, QUANTITY_MAX
from app.models.audit_history import AuditHistory, DELETED_TICKET_SENTINEL
from app.schemas.inventory import InventoryItemCreate, InventoryItemUpdate
from app.services.csv_processing_service import LowStockNotifier

logger = logging.getLogger(__name__)

# Columns an edit must never set to NULL
NON_NULLABLE_FIELDS = {"asset_type", "description", "cost", "minimum_threshold", "reorder_amount", "current_quantity"}


class InventoryNotFoundError(LookupError):
    pass


def _now() -> datetime:
    return datetime.now(timezone.utc)


class InventoryService:
    def __init__(
        self,
        db: AsyncSession,
        notifier: Optional[LowStockNotifier] = None,
        base_url: Optional[str] = None
    ):
        self.db = db
        self.notifier = notifier
        self.base_url = base_url or settings.BASE_URL

    async def list_items(
        self,
        search: Optional[str] = None,
        asset_type: Optional[str] = None,
        category: Optional[str] = None,
        needs_reorder: Optional[bool] = None,
        sort_by: str = "item_number",
        sort_desc: bool = False
    ) -> List[InventoryItem]:
        return await inventory_crud.search(
            self.db,
            search=search,
            asset_type=asset_type,
            category=category,
            needs_reorder=needs_reorder,
            sort_by=sort_by,
            sort_desc=sort_desc
        )

    async def get_item(self, item_id: str) -> InventoryItem:
        item = await inventory_crud.get(self.db, item_id)
        if not item:
            raise InventoryNotFoundError(f"Inventory item {item_id} not found")
        return item

    async def create_item(self, data: InventoryItemCreate, actor: str) -> InventoryItem:
        """Create an item directly; initial stock is audited as 0 -> quantity"""
        if await inventory_crud.get_by_item_number(self.db, data.item_number):
            raise ValueError(f"Item number {data.item_number} already exists")

        fields = data.model_dump()
        fields.update(
            hardware_description=data.description,
            hardware_type=data.category,
            last_modified_by=actor,
            last_modified_date=_now(),
        )

        try:
            item = await inventory_crud.create(self.db, obj_in=fields)
            if item.current_quantity > 0:
                self._add_audit_entry(item, 0, item.current_quantity, actor)
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise ValueError(f"Item number {data.item_number} already exists") from e

        return item

    async def update_item(self, item_id: str, data: InventoryItemUpdate, actor: str) -> InventoryItem:
        """Edit whitelisted fields; a quantity change is audited"""
        item = await self.get_item(item_id)
        previous_quantity = item.current_quantity
        previous_threshold = item.minimum_threshold

        fields = {
            k: v for k, v in data.model_dump(exclude_unset=True).items()
            if v is not None or k not in NON_NULLABLE_FIELDS
        }
        if "description" in fields:
            fields["hardware_description"] = fields["description"]
        if "category" in fields:
            fields["hardware_type"] = fields["category"]
        fields.update(last_modified_by=actor, last_modified_date=_now())

        item = await inventory_crud.update(self.db, db_obj=item, obj_in=fields)

        if item.current_quantity != previous_quantity:
            self._add_audit_entry(item, previous_quantity, item.current_quantity, actor)
        await self.db.commit()

        if item.current_quantity != previous_quantity and item.needs_reorder and previous_quantity >= previous_threshold:
            await self._notify(item)
        return item

    async def adjust_quantity(
        self,
        item_number: str,
        quantity_change: int,
        actor: str,
        ticket_url: Optional[str] = None
    ) -> InventoryItem:
        """Apply a relative stock change, e.g. -1 when a laptop is issued"""
        item = await inventory_crud.get_by_item_number(self.db, item_number)
        if not item:
            raise InventoryNotFoundError(f"Inventory item {item_number} not found")

        previous_quantity = item.current_quantity
        new_quantity = previous_quantity + quantity_change
        if new_quantity < 0:
            raise ValueError("Resulting quantity cannot be negative")
        if new_quantity > QUANTITY_MAX:
            raise ValueError(f"Resulting quantity cannot exceed {QUANTITY_MAX}")

        item = await inventory_crud.update(
            self.db,
            db_obj=item,
            obj_in={
                "current_quantity": new_quantity,
                "last_modified_by": actor,
                "last_modified_date": _now(),
            }
        )
        self._add_audit_entry(item, previous_quantity, new_quantity, actor, ticket_url)
        await self.db.commit()

        if new_quantity < item.minimum_threshold <= previous_quantity:
            await self._notify(item)
        return item

    async def delete_item(self, item_id: str, actor: str) -> Dict[str, Any]:
        """Delete an item; its audit history survives with item_id nulled"""
        item = await self.get_item(item_id)
        snapshot = {
            "id": item.id,
            "item_number": item.item_number,
            "description": item.description,
            "current_quantity": item.current_quantity,
        }

        self._add_audit_entry(item, item.current_quantity, 0, actor, DELETED_TICKET_SENTINEL)
        await self.db.flush()
        await self.db.execute(
            update(AuditHistory).where(AuditHistory.item_id == item.id).values(item_id=None)
        )
        await self.db.delete(item)
        await self.db.commit()

        logger.info("Inventory item %s deleted by %s", snapshot["item_number"], actor)
        return snapshot

    async def get_audit_history(self, search: Optional[str] = None, limit: Optional[int] = None) -> List[AuditHistory]:
        return await audit_crud.get_recent(self.db, search=search, limit=limit)

    async def get_item_audit_history(self, item_id: str) -> List[AuditHistory]:
        return await audit_crud.get_by_item(self.db, item_id)

    async def get_categories(self) -> List[str]:
        return await inventory_crud.get_categories(self.db)

    async def get_asset_types(self) -> List[str]:
        return await inventory_crud.get_asset_types(self.db)

    async def get_low_stock_count(self) -> int:
        result = await self.db.execute(
            select(func.count(InventoryItem.id)).where(InventoryItem.current_quantity < InventoryItem.minimum_threshold)
        )
        return result.scalar() or 0

    async def get_dashboard_stats(self) -> Dict[str, Any]:
        """Totals for the dashboard plus the ten most recent changes"""
        totals = await self.db.execute(
            select(
                func.coalesce(func.sum(InventoryItem.current_quantity), 0),
                func.coalesce(func.sum(InventoryItem.cost * InventoryItem.current_quantity), 0),
            )
        )
        total_items, total_value = totals.one()

        return {
            "total_items": int(total_items),
            "low_stock_count": await self.get_low_stock_count(),
            "total_value": float(total_value),
            "recent_changes": await audit_crud.get_recent(self.db, limit=10),
        }

    def _add_audit_entry(
        self,
        item: InventoryItem,
        previous_quantity: int,
        new_quantity: int,
        actor: str,
        ticket_url: Optional[str] = None
    ) -> None:
        self.db.add(AuditHistory(
            item_id=item.id,
            item_number=item.item_number,
            item_description=item.description or item.hardware_description or "No description",
            previous_quantity=previous_quantity,
            new_quantity=new_quantity,
            changed_by=actor,
            change_date=_now(),
            service_now_ticket_url=ticket_url,
        ))

    async def _notify(self, item: InventoryItem) -> None:
        if self.notifier is None:
            return
        try:
            await self.notifier.send_low_stock_alerts([item], self.base_url)
        except Exception:
            # The edit is already committed
            logger.exception("Error sending low stock alert for %s", item.item_number)
