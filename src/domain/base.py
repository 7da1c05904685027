import uuid
from datetime import UTC, datetime
from typing import Callable

Clock = Callable[[], datetime]


def generate_uuid() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Naive UTC now; the DateTime columns store naive UTC values."""
    return datetime.now(UTC).replace(tzinfo=None)


def to_iso_z(value: datetime) -> str:
    """Render a naive UTC datetime as ISO-8601 with millisecond precision and a Z suffix."""
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def to_epoch(value: datetime) -> int:
    """Seconds since the epoch for a naive UTC datetime."""
    return int(value.replace(tzinfo=UTC).timestamp())


def from_epoch(seconds: int) -> datetime:
    return datetime.fromtimestamp(seconds, UTC).replace(tzinfo=None)
