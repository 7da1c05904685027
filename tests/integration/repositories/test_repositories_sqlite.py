import asyncio
from datetime import datetime, timedelta

import pytest
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.domain.entities import AuditEvent, Challenge, Session

NOW = datetime(2025, 1, 15, 12, 0, 0)


def make_challenge(**overrides) -> Challenge:
    fields = dict(
        client_id="demo-client",
        message="wallet-auth.localhost wants you to sign in with your Polkadot account:\n0x...",
        nonce="ab" * 32,
        code_challenge="E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM",
        state="s" * 32,
        created_at=NOW,
        expires_at=NOW + timedelta(minutes=5),
    )
    fields.update(overrides)
    return Challenge(**fields)


def make_session(**overrides) -> Session:
    fields = dict(
        address="5GrwvaEF5zXb26Fz9rcQpDWS57CtERHpNehXCPcNoHGKutQY",
        client_id="demo-client",
        access_token_id="access-1",
        refresh_token_id="refresh-1",
        fingerprint="f" * 64,
        access_token_expires_at=NOW + timedelta(minutes=15),
        refresh_token_expires_at=NOW + timedelta(days=7),
        created_at=NOW,
        last_used_at=NOW,
    )
    fields.update(overrides)
    return Session(**fields)


async def persist(engine, *entities):
    session_factory = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        session.add_all(entities)
        await session.commit()


@pytest.mark.asyncio
async def test_concurrent_consumers_single_winner(engine):
    """Two requests racing on the same challenge: exactly one marks it used"""
    challenge = make_challenge()
    await persist(engine, challenge)
    session_factory = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def consume():
        async with session_factory() as session:
            uow = SqlAlchemyUnitOfWork(session)
            async with uow:
                won = await uow.challenges.mark_used(challenge.id)
                await uow.commit()
            return won

    results = await asyncio.gather(consume(), consume())

    assert sorted(results) == [False, True]


@pytest.mark.asyncio
async def test_challenge_cleanup_and_counts(engine, db_session):
    await persist(
        engine,
        make_challenge(),
        make_challenge(expires_at=NOW - timedelta(seconds=1)),
        make_challenge(used=True),
    )
    uow = SqlAlchemyUnitOfWork(db_session)

    async with uow:
        counts = await uow.challenges.count_by_state(NOW)
    assert counts == {"active": 1, "expired": 1, "used": 1}

    async with uow:
        deleted = await uow.challenges.delete_expired(NOW)
        await uow.commit()
    assert deleted == 1


@pytest.mark.asyncio
async def test_rotate_tokens_requires_current_refresh_id(engine, db_session):
    session = make_session()
    await persist(engine, session)
    uow = SqlAlchemyUnitOfWork(db_session)
    rotation = dict(
        access_token_id="access-2",
        refresh_token_id="refresh-2",
        access_token_expires_at=NOW + timedelta(minutes=30),
        refresh_token_expires_at=NOW + timedelta(days=8),
        last_used_at=NOW,
    )

    async with uow:
        first = await uow.sessions.rotate_tokens(session.id, "refresh-1", **rotation)
        stale = await uow.sessions.rotate_tokens(session.id, "refresh-1", **rotation)
        await uow.commit()

    async with uow:
        stored = await uow.sessions.get_by_id(session.id)

    assert first is True
    assert stale is False
    assert stored.refresh_token_id == "refresh-2"


@pytest.mark.asyncio
async def test_session_deactivation(engine, db_session):
    live = make_session()
    other_client = make_session(client_id="partner-app")
    stale = make_session(address="other", refresh_token_expires_at=NOW - timedelta(seconds=1))
    await persist(engine, live, other_client, stale)
    uow = SqlAlchemyUnitOfWork(db_session)

    async with uow:
        superseded = await uow.sessions.deactivate_for_address_and_client(
            live.address, "demo-client", "superseded", NOW
        )
        expired = await uow.sessions.deactivate_expired(NOW)
        again = await uow.sessions.deactivate(live.id, "logout", NOW)
        await uow.commit()

    async with uow:
        stored = await uow.sessions.get_by_id(live.id)
        untouched = await uow.sessions.get_by_id(other_client.id)

    assert superseded == 1
    assert expired == 1
    assert again is False
    assert stored.is_active is False
    assert stored.revocation_reason == "superseded"
    assert untouched.is_active is True


@pytest.mark.asyncio
async def test_audit_retention_delete(engine, db_session):
    def event(created_at):
        return AuditEvent(
            type="AUTH_ATTEMPT",
            client_id="demo-client",
            action="CHALLENGE_ISSUED",
            status="success",
            details={},
            ip_address="203.0.113.7",
            user_agent="pytest",
            created_at=created_at,
        )

    await persist(engine, event(NOW - timedelta(days=31)), event(NOW - timedelta(days=1)))
    uow = SqlAlchemyUnitOfWork(db_session)

    async with uow:
        deleted = await uow.audit_events.delete_older_than(NOW - timedelta(days=30))
        await uow.commit()
        remaining = await uow.audit_events.count_total()

    assert deleted == 1
    assert remaining == 1
