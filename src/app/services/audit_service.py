"""
Audit Service

Records security-relevant events without ever failing the request that
produced them. Writes use their own unit of work, so an audit failure cannot
roll back authentication state.
"""

import asyncio
import contextlib
import logging
from datetime import datetime, timedelta
from typing import AsyncContextManager, Callable, Dict, List, Optional

import sentry_sdk
from pydantic import BaseModel

from src.app.services.unit_of_work import UnitOfWork
from src.domain.base import Clock, utcnow
from src.domain.entities import AuditEvent

logger = logging.getLogger(__name__)

UnitOfWorkFactory = Callable[[], AsyncContextManager[UnitOfWork]]

MAX_QUERY_LIMIT = 1000
DEFAULT_RETENTION_DAYS = 90


class AuditLogFilters(BaseModel):
    type: Optional[str] = None
    client_id: Optional[str] = None
    address: Optional[str] = None
    action: Optional[str] = None
    status: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class AuditStats(BaseModel):
    total: int
    by_type: Dict[str, int]
    by_status: Dict[str, int]
    by_action: Dict[str, int]


class AuditService:
    """
    Audit log writer and query facade.

    With start() called (application lifespan) events are queued and written in
    order by a single background task; otherwise log() writes inline. Either way
    log() never raises: failures go to the logger and Sentry.
    """

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        clock: Clock = utcnow,
        queue_size: int = 10000,
    ):
        self.uow_factory = uow_factory
        self.clock = clock
        self.queue_size = queue_size
        self._queue: Optional[asyncio.Queue] = None
        self._writer: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._writer is not None and not self._writer.done()

    async def start(self) -> None:
        if self.running:
            return
        self._queue = asyncio.Queue(maxsize=self.queue_size)
        self._writer = asyncio.create_task(self._drain())
        logger.info("Audit writer started")

    async def flush(self) -> None:
        """Wait until every queued event has been written"""
        if self._queue is not None and self.running:
            await self._queue.join()

    async def stop(self) -> None:
        if self._writer is None:
            return
        await self.flush()
        self._writer.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._writer
        self._writer = None
        self._queue = None
        logger.info("Audit writer stopped")

    async def log(self, event: AuditEvent) -> None:
        if event.created_at is None:
            event.created_at = self.clock()

        if self.running:
            try:
                self._queue.put_nowait(event)
                return
            except asyncio.QueueFull:
                logger.warning("Audit queue is full, writing inline")

        await self._write(event)

    async def get_audit_logs(
        self, filters: Optional[AuditLogFilters] = None, limit: int = 100, offset: int = 0
    ) -> List[AuditEvent]:
        filters = filters or AuditLogFilters()
        limit = min(max(limit, 1), MAX_QUERY_LIMIT)
        offset = max(offset, 0)

        async with self.uow_factory() as uow:
            async with uow:
                return await uow.audit_events.list(
                    filters.model_dump(exclude={"start_date", "end_date"}),
                    start_date=filters.start_date,
                    end_date=filters.end_date,
                    limit=limit,
                    offset=offset,
                )

    async def get_audit_stats(self) -> AuditStats:
        async with self.uow_factory() as uow:
            async with uow:
                return AuditStats(
                    total=await uow.audit_events.count_total(),
                    by_type=await uow.audit_events.count_grouped_by("type"),
                    by_status=await uow.audit_events.count_grouped_by("status"),
                    by_action=await uow.audit_events.count_grouped_by("action"),
                )

    async def cleanup_old_audit_logs(self, retention_days: int = DEFAULT_RETENTION_DAYS) -> int:
        cutoff = self.clock() - timedelta(days=retention_days)
        async with self.uow_factory() as uow:
            async with uow:
                deleted = await uow.audit_events.delete_older_than(cutoff)
                await uow.commit()
        if deleted:
            logger.info(f"Deleted {deleted} audit event(s) older than {retention_days} days")
        return deleted

    async def _drain(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                await self._write(event)
            finally:
                self._queue.task_done()

    async def _write(self, event: AuditEvent) -> None:
        try:
            async with self.uow_factory() as uow:
                async with uow:
                    await uow.audit_events.create(event)
                    await uow.commit()
        except Exception as e:
            logger.exception(
                f"Failed to write audit event: action={event.action} client_id={event.client_id}"
            )
            sentry_sdk.capture_exception(e)
