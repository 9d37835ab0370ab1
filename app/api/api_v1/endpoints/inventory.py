from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional, Dict, Any
import logging

from app.api.deps import get_current_username, get_notifier
from app.db.database import get_db
from app.schemas.audit_history import AuditHistory
from app.schemas.inventory import InventoryItem, InventoryItemCreate, InventoryItemUpdate, QuantityAdjustment
from app.services.inventory_service import InventoryService, InventoryNotFoundError

logger = logging.getLogger(__name__)

router = APIRouter()


def get_inventory_service(
    db: AsyncSession = Depends(get_db),
    notifier=Depends(get_notifier)
) -> InventoryService:
    return InventoryService(db, notifier)


@router.get("", response_model=List[InventoryItem])
async def list_inventory(
    search: Optional[str] = None,
    asset_type: Optional[str] = None,
    category: Optional[str] = None,
    needs_reorder: Optional[bool] = None,
    sort_by: str = "item_number",
    sort_desc: bool = False,
    service: InventoryService = Depends(get_inventory_service)
):
    """Get inventory items with filtering and sorting"""

    try:
        return await service.list_items(search, asset_type, category, needs_reorder, sort_by, sort_desc)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("", response_model=InventoryItem, status_code=201)
async def create_inventory_item(
    item_in: InventoryItemCreate,
    service: InventoryService = Depends(get_inventory_service),
    actor: str = Depends(get_current_username)
):
    """Create an inventory item"""

    try:
        return await service.create_item(item_in, actor)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/audit-history", response_model=List[AuditHistory])
async def get_all_audit_history(
    search: Optional[str] = None,
    limit: Optional[int] = None,
    service: InventoryService = Depends(get_inventory_service)
):
    """Get audit history, newest first"""

    return await service.get_audit_history(search, limit)


@router.get("/types", response_model=List[str])
async def get_types(service: InventoryService = Depends(get_inventory_service)):
    """Get all categories, legacy hardware types included"""

    return await service.get_categories()


@router.get("/asset-types", response_model=List[str])
async def get_asset_types(service: InventoryService = Depends(get_inventory_service)):
    return await service.get_asset_types()


@router.get("/low-stock-count")
async def get_low_stock_count(service: InventoryService = Depends(get_inventory_service)):
    """Get count of items below threshold"""

    return {"count": await service.get_low_stock_count()}


@router.get("/dashboard-stats")
async def get_dashboard_stats(service: InventoryService = Depends(get_inventory_service)) -> Dict[str, Any]:
    stats = await service.get_dashboard_stats()
    stats["recent_changes"] = [AuditHistory.model_validate(a) for a in stats["recent_changes"]]
    return stats


@router.post("/update-quantity", response_model=InventoryItem)
async def update_quantity(
    adjustment: QuantityAdjustment,
    service: InventoryService = Depends(get_inventory_service),
    actor: str = Depends(get_current_username)
):
    """Apply a relative quantity change to an item"""

    try:
        return await service.adjust_quantity(
            adjustment.item_number,
            adjustment.quantity_change,
            actor,
            adjustment.service_now_ticket_url
        )
    except InventoryNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/{item_id}", response_model=InventoryItem)
async def get_inventory_item(
    item_id: str,
    service: InventoryService = Depends(get_inventory_service)
):
    try:
        return await service.get_item(item_id)
    except InventoryNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/{item_id}/audit-history", response_model=List[AuditHistory])
async def get_item_audit_history(
    item_id: str,
    service: InventoryService = Depends(get_inventory_service)
):
    return await service.get_item_audit_history(item_id)


@router.put("/{item_id}", response_model=InventoryItem)
async def update_inventory_item(
    item_id: str,
    item_in: InventoryItemUpdate,
    service: InventoryService = Depends(get_inventory_service),
    actor: str = Depends(get_current_username)
):
    """Update whitelisted fields of an inventory item"""

    try:
        return await service.update_item(item_id, item_in, actor)
    except InventoryNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/{item_id}")
async def delete_inventory_item(
    item_id: str,
    service: InventoryService = Depends(get_inventory_service),
    actor: str = Depends(get_current_username)
):
    """Delete an inventory item; its audit history is kept"""

    try:
        deleted = await service.delete_item(item_id, actor)
    except InventoryNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return {"message": "Inventory item deleted successfully", "deleted_item": deleted}
