"""Ledger data models for tracked Bitcoin addresses."""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Dict, Any
from dataclasses import dataclass, field

from btc_tracker.utils.time import format_block_time


def _amount(value: Optional[Decimal]) -> Optional[float]:
    """Render a BTC amount for JSON output."""
    return float(value) if value is not None else None


def _satoshis(value: Any) -> int:
    """Read an upstream satoshi field, clamping missing or negative values to 0."""
    if value is None:
        return 0
    return max(0, int(value))


@dataclass(frozen=True)
class AddressRef:
    """A watched address and its optional label."""
    address: str
    label: Optional[str] = None


@dataclass
class AddressRecord:
    """Stored (user, address, label) row."""
    id: int
    user_id: str
    address: str
    label: Optional[str]
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_ref(self) -> AddressRef:
        return AddressRef(address=self.address, label=self.label)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "address": self.address,
            "label": self.label,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass
class BalanceSnapshot:
    """Address balance in satoshis, as returned upstream."""
    final_balance: int
    total_received: int
    total_sent: int
    n_tx: int

    @classmethod
    def from_upstream(cls, data: Dict[str, Any]) -> "BalanceSnapshot":
        """
        Build a snapshot from an upstream balance record.

        The /balance endpoint does not report total_sent, so it is derived
        from total_received and final_balance when missing.
        """
        final_balance = _satoshis(data.get("final_balance"))
        total_received = _satoshis(data.get("total_received"))
        if data.get("total_sent") is not None:
            total_sent = _satoshis(data["total_sent"])
        else:
            total_sent = max(0, total_received - final_balance)

        return cls(
            final_balance=final_balance,
            total_received=total_received,
            total_sent=total_sent,
            n_tx=_satoshis(data.get("n_tx")),
        )


@dataclass
class DisplayBalance:
    """Address balance in BTC."""
    final_balance: Decimal
    total_received: Decimal
    total_sent: Decimal
    n_tx: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "final_balance": _amount(self.final_balance),
            "total_received": _amount(self.total_received),
            "total_sent": _amount(self.total_sent),
            "n_tx": self.n_tx,
        }


@dataclass
class ChainTip:
    """Point-in-time read of the ledger's best block."""
    height: int
    hash: str
    time: int

    @classmethod
    def from_upstream(cls, data: Dict[str, Any]) -> "ChainTip":
        return cls(
            height=int(data["height"]),
            hash=data["hash"],
            time=int(data.get("time") or 0),
        )

    @property
    def timestamp(self) -> str:
        """Block time as an ISO-8601 UTC string."""
        return format_block_time(self.time)


@dataclass
class AddressInfo:
    """Parsed /rawaddr payload: balance plus a page of raw transactions."""
    address: str
    balance: BalanceSnapshot
    transactions: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_upstream(cls, address: str, data: Dict[str, Any]) -> "AddressInfo":
        return cls(
            address=data.get("address") or address,
            balance=BalanceSnapshot.from_upstream(data),
            transactions=list(data.get("txs") or []),
        )


@dataclass
class AddressSummary:
    """One address entry of a /multiaddr payload."""
    address: str
    balance: BalanceSnapshot


@dataclass
class MultiAddressInfo:
    """Parsed /multiaddr payload: per-address balances plus a combined feed."""
    addresses: List[AddressSummary] = field(default_factory=list)
    transactions: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_upstream(cls, data: Dict[str, Any]) -> "MultiAddressInfo":
        summaries = [
            AddressSummary(
                address=entry["address"],
                balance=BalanceSnapshot.from_upstream(entry),
            )
            for entry in data.get("addresses") or []
        ]
        return cls(addresses=summaries, transactions=list(data.get("txs") or []))


@dataclass
class TxInput:
    """Normalized transaction input (previous output being spent)."""
    from_address: Optional[str]
    amount: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {"from_address": self.from_address, "amount": _amount(self.amount)}


@dataclass
class TxOutput:
    """Normalized transaction output."""
    to_address: Optional[str]
    amount: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {"to_address": self.to_address, "amount": _amount(self.amount)}


@dataclass
class TransactionView:
    """Normalized transaction with BTC amounts and confirmations."""
    hash: str
    block_height: Optional[int]
    time: Optional[int]
    fee: Decimal
    confirmations: int
    inputs: List[Optional[TxInput]] = field(default_factory=list)
    outputs: List[TxOutput] = field(default_factory=list)
    is_incoming: Optional[bool] = None
    value: Optional[Decimal] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hash": self.hash,
            "block_height": self.block_height,
            "time": self.time,
            "fee": _amount(self.fee),
            "confirmations": self.confirmations,
            "is_incoming": self.is_incoming,
            "value": _amount(self.value),
            "inputs": [tx_in.to_dict() if tx_in is not None else None for tx_in in self.inputs],
            "outputs": [tx_out.to_dict() for tx_out in self.outputs],
        }


@dataclass
class AddressView:
    """Single-address view."""
    address: str
    balance: DisplayBalance
    total_transactions: int
    transactions: List[TransactionView] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "balance": self.balance.to_dict(),
            "total_transactions": self.total_transactions,
            "transactions": [tx.to_dict() for tx in self.transactions],
        }


@dataclass
class AddressBalance:
    """Address paired with its BTC balance, None when unknown upstream."""
    address: str
    balance: Optional[DisplayBalance]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "balance": self.balance.to_dict() if self.balance else None,
        }


@dataclass
class MultiAddressView:
    """Multi-address view: per-address balances plus a combined feed."""
    addresses: List[AddressBalance] = field(default_factory=list)
    transactions: List[TransactionView] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "addresses": [entry.to_dict() for entry in self.addresses],
            "transactions": [tx.to_dict() for tx in self.transactions],
        }


@dataclass
class BalancesView:
    """Balances-only view keyed by address, in request order."""
    balances: Dict[str, Optional[DisplayBalance]] = field(default_factory=dict)

    def get(self, address: str) -> Optional[DisplayBalance]:
        return self.balances.get(address)

    def to_dict(self) -> Dict[str, Any]:
        return {
            address: balance.to_dict() if balance else None
            for address, balance in self.balances.items()
        }


@dataclass
class StatusView:
    """Chain tip status."""
    height: int
    hash: str
    time: int
    timestamp: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "height": self.height,
            "hash": self.hash,
            "time": self.time,
            "timestamp": self.timestamp,
        }
