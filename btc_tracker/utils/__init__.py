"""Utility functions and helpers."""

from btc_tracker.utils.logging import setup_logging, get_logger
from btc_tracker.utils.bitcoin import (
    satoshi_to_btc,
    btc_to_satoshi,
    is_valid_address,
)
from btc_tracker.utils.time import to_utc_timestamp, format_block_time, utc_now_iso

__all__ = [
    "setup_logging",
    "get_logger",
    "satoshi_to_btc",
    "btc_to_satoshi",
    "is_valid_address",
    "to_utc_timestamp",
    "format_block_time",
    "utc_now_iso",
]
