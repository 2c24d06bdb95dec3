"""Timestamp helpers.

Cassandra stores TIMESTAMP values with millisecond precision and hands them
back as naive UTC datetimes. Entities are created with already-truncated
timestamps so that an in-memory record equals its stored copy, and cursors
carry integer epoch milliseconds so that no float rounding creeps in.
"""

from datetime import UTC, datetime, timedelta


EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
_ONE_MS = timedelta(milliseconds=1)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes returned by the driver."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def utc_now() -> datetime:
    """Current UTC time truncated to whole milliseconds."""
    now = datetime.now(UTC)
    return now.replace(microsecond=now.microsecond - now.microsecond % 1000)


def to_epoch_ms(value: datetime) -> int:
    """Convert a datetime to integer epoch milliseconds."""
    return (as_utc(value) - EPOCH) // _ONE_MS


def from_epoch_ms(value: int) -> datetime:
    """Convert integer epoch milliseconds back to an aware datetime."""
    return EPOCH + timedelta(milliseconds=int(value))
