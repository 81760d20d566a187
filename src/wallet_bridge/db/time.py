"""Time utilities for ledger bookkeeping."""

from datetime import UTC, datetime


def utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(UTC)


def unix_now() -> int:
    """Return the current UTC time as whole unix seconds."""
    return int(utcnow().timestamp())
