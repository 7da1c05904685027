import pytest
from unittest.mock import AsyncMock, MagicMock

from src.adapter.services.token_denylist import InMemoryTokenDenylist
from src.app.services.challenge_service import ChallengeSettings
from src.app.services.token_service import TokenService
from src.app.use_cases.auth import RequestContext
from tests.fixtures.clock import FrozenClock
from tests.fixtures.wallet import Wallet

ACCESS_SECRET = "Zq8vN3kLp2Wx7RmB4tYh9cJd6FgS1aUe"
REFRESH_SECRET = "Hb5Qw9Er2Ty7Ui4Op1As8Df3Gh6Jk0Lz"


@pytest.fixture
def mock_uow():
    uow = MagicMock()
    uow.__aenter__ = AsyncMock(return_value=uow)
    uow.__aexit__ = AsyncMock(return_value=False)  # Must return False to not suppress exceptions
    uow.commit = AsyncMock()
    uow.rollback = AsyncMock()

    uow.challenges = MagicMock()
    uow.challenges.create = AsyncMock()
    uow.challenges.get_by_id = AsyncMock(return_value=None)
    uow.challenges.mark_used = AsyncMock(return_value=True)
    uow.challenges.delete_expired = AsyncMock(return_value=0)
    uow.challenges.count_by_state = AsyncMock()

    uow.sessions = MagicMock()
    uow.sessions.create = AsyncMock()
    uow.sessions.get_by_id = AsyncMock(return_value=None)
    uow.sessions.update = AsyncMock()
    uow.sessions.rotate_tokens = AsyncMock(return_value=True)
    uow.sessions.deactivate = AsyncMock(return_value=True)
    uow.sessions.deactivate_for_address_and_client = AsyncMock(return_value=0)
    uow.sessions.deactivate_expired = AsyncMock(return_value=0)

    uow.audit_events = MagicMock()
    uow.audit_events.create = AsyncMock()
    return uow


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def denylist():
    return InMemoryTokenDenylist()


@pytest.fixture
def token_service(denylist, clock):
    return TokenService(ACCESS_SECRET, REFRESH_SECRET, denylist, clock=clock)


@pytest.fixture
def challenge_settings():
    return ChallengeSettings(
        ttl_seconds=300,
        domain="wallet-auth.localhost",
        uri="http://localhost:8000",
        statement="Sign this message to authenticate with Wallet Auth",
        chain_id="polkadot",
    )


@pytest.fixture
def mock_audit_service():
    audit_service = MagicMock()
    audit_service.log = AsyncMock()
    return audit_service


@pytest.fixture
def context():
    return RequestContext(ip_address="203.0.113.7", user_agent="pytest", request_id="req-1")


@pytest.fixture
def wallet():
    return Wallet()
