from contextlib import asynccontextmanager
from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest

from src.app.services.audit_service import AuditLogFilters, AuditService
from src.domain.entities import AuditAction, AuditEventType, AuditStatus


def factory_for(uow):
    @asynccontextmanager
    async def factory():
        yield uow

    return factory


def make_event(context, action=AuditAction.CHALLENGE_ISSUED):
    return context.audit_event(
        AuditEventType.AUTH_ATTEMPT, action, AuditStatus.success, client_id="demo-client"
    )


@pytest.mark.asyncio
async def test_log_writes_inline_when_writer_not_started(mock_uow, context, clock):
    service = AuditService(factory_for(mock_uow), clock=clock)
    event = make_event(context)

    await service.log(event)

    mock_uow.audit_events.create.assert_awaited_once_with(event)
    mock_uow.commit.assert_awaited_once()
    assert event.request_id == "req-1"
    assert event.ip_address == "203.0.113.7"


@pytest.mark.asyncio
async def test_log_swallows_write_failures(mock_uow, context, clock):
    mock_uow.audit_events.create.side_effect = RuntimeError("database is locked")
    service = AuditService(factory_for(mock_uow), clock=clock)

    with patch("src.app.services.audit_service.sentry_sdk.capture_exception") as capture:
        await service.log(make_event(context))

    capture.assert_called_once()
    mock_uow.commit.assert_not_awaited()


@pytest.mark.asyncio
async def test_background_writer_preserves_order(mock_uow, context, clock):
    service = AuditService(factory_for(mock_uow), clock=clock)
    await service.start()
    events = [
        make_event(context, AuditAction.CHALLENGE_ISSUED),
        make_event(context, AuditAction.VERIFY_FAILED),
        make_event(context, AuditAction.VERIFY_SUCCESS),
    ]

    for event in events:
        await service.log(event)
    await service.flush()
    await service.stop()

    written = [call.args[0] for call in mock_uow.audit_events.create.await_args_list]
    assert written == events
    assert service.running is False


@pytest.mark.asyncio
async def test_background_writer_survives_a_failed_write(mock_uow, context, clock):
    mock_uow.audit_events.create.side_effect = [RuntimeError("boom"), None]
    service = AuditService(factory_for(mock_uow), clock=clock)
    await service.start()

    with patch("src.app.services.audit_service.sentry_sdk.capture_exception"):
        await service.log(make_event(context))
        await service.log(make_event(context, AuditAction.LOGOUT))
        await service.flush()

    assert service.running is True
    assert mock_uow.audit_events.create.await_count == 2
    await service.stop()


@pytest.mark.asyncio
async def test_get_audit_logs_clamps_limit(mock_uow, clock):
    mock_uow.audit_events.list = AsyncMock(return_value=[])
    service = AuditService(factory_for(mock_uow), clock=clock)

    await service.get_audit_logs(AuditLogFilters(action="LOGOUT"), limit=5000, offset=-3)

    args, kwargs = mock_uow.audit_events.list.await_args
    assert args[0]["action"] == "LOGOUT"
    assert kwargs["limit"] == 1000
    assert kwargs["offset"] == 0


@pytest.mark.asyncio
async def test_cleanup_uses_retention_cutoff(mock_uow, clock):
    mock_uow.audit_events.delete_older_than = AsyncMock(return_value=7)
    service = AuditService(factory_for(mock_uow), clock=clock)

    deleted = await service.cleanup_old_audit_logs(retention_days=30)

    assert deleted == 7
    mock_uow.audit_events.delete_older_than.assert_awaited_once_with(clock() - timedelta(days=30))
    mock_uow.commit.assert_awaited_once()
