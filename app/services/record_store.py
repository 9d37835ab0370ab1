from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.crud.inventory import inventory as inventory_crud
from app.models.inventory import InventoryItem
from app.models.audit_history import AuditHistory


class RecordStoreError(Exception):
    """A persistence failure, as opposed to invalid input"""


class RecordStore(ABC):
    """Inventory records and their audit trail, as seen by CSV ingestion.

    Writes made between two `commit` calls form one unit of work;
    `rollback` discards them.
    """

    @abstractmethod
    async def find_by_item_number(self, item_number: str) -> Optional[InventoryItem]:
        ...

    @abstractmethod
    async def create(self, fields: Dict[str, Any]) -> InventoryItem:
        ...

    @abstractmethod
    async def update(self, item: InventoryItem, fields: Dict[str, Any]) -> InventoryItem:
        ...

    @abstractmethod
    async def append_audit_entry(self, entry: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    async def commit(self) -> None:
        ...

    @abstractmethod
    async def rollback(self) -> None:
        ...


class SQLAlchemyRecordStore(RecordStore):
    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_by_item_number(self, item_number: str) -> Optional[InventoryItem]:
        try:
            return await inventory_crud.get_by_item_number(self.db, item_number)
        except SQLAlchemyError as e:
            raise RecordStoreError(f"Lookup of {item_number} failed: {e}") from e

    async def create(self, fields: Dict[str, Any]) -> InventoryItem:
        try:
            return await inventory_crud.create(self.db, obj_in=fields)
        except SQLAlchemyError as e:
            raise RecordStoreError(f"Could not create {fields.get('item_number')}: {e}") from e

    async def update(self, item: InventoryItem, fields: Dict[str, Any]) -> InventoryItem:
        try:
            return await inventory_crud.update(self.db, db_obj=item, obj_in=fields)
        except SQLAlchemyError as e:
            raise RecordStoreError(f"Could not update {item.item_number}: {e}") from e

    async def append_audit_entry(self, entry: Dict[str, Any]) -> None:
        entry = dict(entry)
        entry.setdefault("change_date", datetime.now(timezone.utc))
        try:
            self.db.add(AuditHistory(**entry))
            await self.db.flush()
        except SQLAlchemyError as e:
            raise RecordStoreError(f"Could not record audit entry: {e}") from e

    async def commit(self) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            raise RecordStoreError(f"Commit failed: {e}") from e

    async def rollback(self) -> None:
        await self.db.rollback()
