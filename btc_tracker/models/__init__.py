"""Data models and configuration."""

from btc_tracker.models.config import TrackerConfig
from btc_tracker.models.ledger import (
    AddressRef,
    AddressRecord,
    BalanceSnapshot,
    DisplayBalance,
    ChainTip,
    AddressInfo,
    AddressSummary,
    MultiAddressInfo,
    TxInput,
    TxOutput,
    TransactionView,
    AddressView,
    AddressBalance,
    MultiAddressView,
    BalancesView,
    StatusView,
)

__all__ = [
    "TrackerConfig",
    "AddressRef",
    "AddressRecord",
    "BalanceSnapshot",
    "DisplayBalance",
    "ChainTip",
    "AddressInfo",
    "AddressSummary",
    "MultiAddressInfo",
    "TxInput",
    "TxOutput",
    "TransactionView",
    "AddressView",
    "AddressBalance",
    "MultiAddressView",
    "BalancesView",
    "StatusView",
]
