from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

from src.domain.entities import AuditEvent


class IAuditEventRepository(ABC):
    """AuditEvent repository interface - application layer"""

    @abstractmethod
    async def create(self, audit_event: AuditEvent) -> AuditEvent:
        """Create a new audit event (immutable)"""
        pass

    @abstractmethod
    async def list(
        self,
        filters: Dict[str, Any],
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[AuditEvent]:
        """
        List audit events newest first.

        filters holds exact-match column values (type, client_id, address,
        action, status); None values are ignored.
        """
        pass

    @abstractmethod
    async def count_total(self) -> int:
        """Total number of stored events"""
        pass

    @abstractmethod
    async def count_grouped_by(self, column: str) -> Dict[str, int]:
        """Event counts grouped by one of: type, status, action"""
        pass

    @abstractmethod
    async def delete_older_than(self, cutoff: datetime) -> int:
        """Retention cleanup. Returns number of deleted events."""
        pass
