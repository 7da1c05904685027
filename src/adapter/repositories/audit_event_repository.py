from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, func
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from src.app.repositories.audit_event_repository import IAuditEventRepository
from src.domain.entities import AuditEvent

FILTERABLE_COLUMNS = ("type", "client_id", "address", "action", "status")
GROUPABLE_COLUMNS = ("type", "status", "action")


class AuditEventRepository(IAuditEventRepository):
    """AuditEvent repository implementation using SQLModel"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, audit_event: AuditEvent) -> AuditEvent:
        """Create a new audit event (immutable)"""
        self.session.add(audit_event)
        await self.session.flush()
        await self.session.refresh(audit_event)
        return audit_event

    async def list(
        self,
        filters: Dict[str, Any],
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[AuditEvent]:
        stmt = select(AuditEvent)
        for column in FILTERABLE_COLUMNS:
            value = filters.get(column)
            if value is not None:
                stmt = stmt.where(getattr(AuditEvent, column) == value)
        if start_date is not None:
            stmt = stmt.where(AuditEvent.created_at >= start_date)
        if end_date is not None:
            stmt = stmt.where(AuditEvent.created_at <= end_date)

        # Order by created_at DESC (newest first)
        stmt = stmt.order_by(AuditEvent.created_at.desc()).offset(offset).limit(limit)
        result = await self.session.exec(stmt)
        return list(result.all())

    async def count_total(self) -> int:
        result = await self.session.exec(select(func.count()).select_from(AuditEvent))
        return result.one()

    async def count_grouped_by(self, column: str) -> Dict[str, int]:
        if column not in GROUPABLE_COLUMNS:
            raise ValueError(f"Cannot group audit events by {column}")
        field = getattr(AuditEvent, column)
        stmt = select(field, func.count()).group_by(field)
        result = await self.session.exec(stmt)
        return {key: count for key, count in result.all()}

    async def delete_older_than(self, cutoff: datetime) -> int:
        stmt = delete(AuditEvent).where(AuditEvent.created_at < cutoff)
        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount
