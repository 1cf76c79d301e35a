"""Time utility functions for ledger data."""

from datetime import datetime, timezone
from typing import Union


def to_utc_timestamp(timestamp: Union[int, float, datetime]) -> datetime:
    """Convert various timestamp formats to UTC datetime."""
    if isinstance(timestamp, datetime):
        # Ensure timezone awareness
        if timestamp.tzinfo is None:
            return timestamp.replace(tzinfo=timezone.utc)
        return timestamp.astimezone(timezone.utc)

    elif isinstance(timestamp, (int, float)):
        # Unix timestamp
        return datetime.fromtimestamp(timestamp, tz=timezone.utc)

    else:
        raise ValueError(f"Unsupported timestamp type: {type(timestamp)}")


def format_block_time(block_time: Union[int, datetime]) -> str:
    """Format a block time as an ISO-8601 UTC string with a Z suffix."""
    dt = to_utc_timestamp(block_time)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def get_current_utc() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string."""
    return format_block_time(get_current_utc())
