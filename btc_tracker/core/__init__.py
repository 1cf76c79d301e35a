"""Ledger client and aggregation components."""

from btc_tracker.core.errors import (
    TrackerError,
    ValidationError,
    NotFoundError,
    AddressExistsError,
    UpstreamError,
    StorageError,
    InternalError,
)
from btc_tracker.core.ledger_client import BlockchainInfoClient
from btc_tracker.core.aggregator import LedgerAggregator

__all__ = [
    "TrackerError",
    "ValidationError",
    "NotFoundError",
    "AddressExistsError",
    "UpstreamError",
    "StorageError",
    "InternalError",
    "BlockchainInfoClient",
    "LedgerAggregator",
]
