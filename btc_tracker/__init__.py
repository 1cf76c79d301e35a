"""
BTC Address Tracker

Per-user Bitcoin address bookkeeping with live balance and transaction
lookups from a public ledger explorer. Only (user, address, label) tuples
are stored; all ledger data is fetched on demand.
"""

__version__ = "1.0.0"
__description__ = "Per-user Bitcoin address tracker backed by live ledger data"

from btc_tracker.core.aggregator import LedgerAggregator
from btc_tracker.core.ledger_client import BlockchainInfoClient
from btc_tracker.database.repository import AddressRepository, SqlAddressRepository
from btc_tracker.models.config import TrackerConfig

__all__ = [
    "LedgerAggregator",
    "BlockchainInfoClient",
    "AddressRepository",
    "SqlAddressRepository",
    "TrackerConfig",
]
