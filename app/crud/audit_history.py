from typing import List, Optional
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_

from app.crud.base import CRUDBase
from app.models.audit_history import AuditHistory


class AuditHistoryCRUD(CRUDBase[AuditHistory, BaseModel, BaseModel]):
    """Audit rows are append-only: only create and read are exposed."""

    async def update(self, *args, **kwargs):
        raise NotImplementedError("Audit history entries are immutable")

    async def get_recent(
        self,
        db: AsyncSession,
        *,
        search: Optional[str] = None,
        limit: Optional[int] = None
    ) -> List[AuditHistory]:
        stmt = select(AuditHistory)

        if search:
            pattern = f"%{search.lower()}%"
            stmt = stmt.where(
                or_(
                    func.lower(AuditHistory.item_number).like(pattern),
                    func.lower(AuditHistory.item_description).like(pattern),
                )
            )

        stmt = stmt.order_by(AuditHistory.change_date.desc())
        if limit:
            stmt = stmt.limit(limit)

        result = await db.execute(stmt)
        return result.scalars().all()

    async def get_by_item(self, db: AsyncSession, item_id: str) -> List[AuditHistory]:
        stmt = (
            select(AuditHistory)
            .where(AuditHistory.item_id == item_id)
            .order_by(AuditHistory.change_date.desc())
        )
        result = await db.execute(stmt)
        return result.scalars().all()


audit_history = AuditHistoryCRUD(AuditHistory)
