"""Aggregation of live ledger data into normalized address views."""

from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence
import structlog

from btc_tracker.core.errors import UpstreamError
from btc_tracker.core.ledger_client import BlockchainInfoClient, MAX_ADDRESS_LIMIT
from btc_tracker.models.ledger import (
    AddressBalance, AddressView, BalanceSnapshot, BalancesView, DisplayBalance,
    MultiAddressView, StatusView, TransactionView, TxInput, TxOutput
)
from btc_tracker.utils.bitcoin import satoshi_to_btc

logger = structlog.get_logger(__name__)


def to_display_balance(snapshot: BalanceSnapshot) -> DisplayBalance:
    """Convert a satoshi balance snapshot to BTC."""
    return DisplayBalance(
        final_balance=satoshi_to_btc(snapshot.final_balance),
        total_received=satoshi_to_btc(snapshot.total_received),
        total_sent=satoshi_to_btc(snapshot.total_sent),
        n_tx=snapshot.n_tx,
    )


def calculate_confirmations(block_height: Optional[int], tip_height: Optional[int]) -> int:
    """
    Confirmations for a transaction relative to the chain tip.

    Unconfirmed transactions and an unknown tip give 0. A tip below the
    transaction's block (stale tip or reorg) also gives 0.
    """
    if block_height is None or tip_height is None:
        return 0
    return max(0, tip_height - block_height + 1)


def transaction_direction(raw_tx: Dict[str, Any], addresses: Iterable[str]) -> Dict[str, Any]:
    """
    Direction and net satoshi value of a transaction for a set of addresses.

    Incoming when any output pays one of the addresses, the value being the
    total paid to them. Otherwise outgoing, the value being the total of the
    inputs they spent.
    """
    watched = set(addresses)

    received = [
        output.get("value") or 0
        for output in raw_tx.get("out") or []
        if output.get("addr") in watched
    ]
    if received:
        return {"is_incoming": True, "value": sum(received)}

    spent = sum(
        (tx_in.get("prev_out") or {}).get("value") or 0
        for tx_in in raw_tx.get("inputs") or []
        if (tx_in.get("prev_out") or {}).get("addr") in watched
    )
    return {"is_incoming": False, "value": spent}


class LedgerAggregator:
    """
    Builds normalized address, multi-address, balance and status views.

    The ledger client is injected so that tests can substitute a fake.
    Primary fetch failures propagate as UpstreamError. The chain tip used for
    confirmations is fetched at most once per view, and a failure there only
    zeroes the confirmations.
    """

    def __init__(self, client: BlockchainInfoClient):
        self.client = client
        self.logger = logger.bind(component="aggregator")

    # ==================== Views ====================

    async def address_view(self, address: str,
                           limit: int = MAX_ADDRESS_LIMIT,
                           offset: int = 0) -> AddressView:
        """Balance and a page of transactions for one address."""
        info = await self.client.fetch_address(address, limit, offset)
        transactions = await self.normalize_transactions(info.transactions, [address])

        self.logger.debug("Built address view",
                          address=address,
                          transactions=len(transactions))

        return AddressView(
            address=address,
            balance=to_display_balance(info.balance),
            total_transactions=info.balance.n_tx,
            transactions=transactions,
        )

    async def multi_address_view(self, addresses: Sequence[str],
                                 limit: int = MAX_ADDRESS_LIMIT,
                                 offset: int = 0) -> MultiAddressView:
        """
        Per-address balances plus the combined transaction feed.

        Uses a single multi-address request. The feed is truncated to limit
        after fetching.
        """
        if not addresses:
            return MultiAddressView()

        info = await self.client.fetch_multi_address(list(addresses), limit, offset)
        page = info.transactions[:max(0, int(limit))]
        transactions = await self.normalize_transactions(page, addresses)

        self.logger.debug("Built multi-address view",
                          addresses=len(addresses),
                          transactions=len(transactions))

        return MultiAddressView(
            addresses=[
                AddressBalance(address=entry.address, balance=to_display_balance(entry.balance))
                for entry in info.addresses
            ],
            transactions=transactions,
        )

    async def balances_view(self, addresses: Sequence[str]) -> BalancesView:
        """
        BTC balances keyed by address.

        An address missing from the upstream result maps to None: an address
        with no activity may legitimately be unknown to the balance endpoint.
        """
        snapshots = await self.client.fetch_balances(list(addresses))

        balances: Dict[str, Optional[DisplayBalance]] = {}
        for address in addresses:
            snapshot = snapshots.get(address)
            balances[address] = to_display_balance(snapshot) if snapshot else None

        return BalancesView(balances=balances)

    async def status_view(self) -> StatusView:
        """Latest block height, hash and time."""
        tip = await self.client.fetch_chain_tip()
        return StatusView(
            height=tip.height,
            hash=tip.hash,
            time=tip.time,
            timestamp=tip.timestamp,
        )

    # ==================== Normalization ====================

    async def normalize_transactions(self, raw_txs: List[Dict[str, Any]],
                                     perspective: Optional[Iterable[str]] = None) -> List[TransactionView]:
        """Normalize a page of upstream transactions sharing one chain tip read."""
        tip_height = await self._tip_height_for(raw_txs)
        watched = list(perspective) if perspective is not None else None

        return [self.normalize_transaction(raw_tx, tip_height, watched) for raw_tx in raw_txs]

    def normalize_transaction(self, raw_tx: Dict[str, Any],
                              tip_height: Optional[int],
                              perspective: Optional[Iterable[str]] = None) -> TransactionView:
        """Convert one upstream transaction record into a TransactionView."""
        inputs: List[Optional[TxInput]] = []
        for tx_in in raw_tx.get("inputs") or []:
            prev_out = tx_in.get("prev_out")
            if prev_out is None:
                # Coinbase or unknown previous output
                inputs.append(None)
                continue
            inputs.append(TxInput(
                from_address=prev_out.get("addr"),
                amount=satoshi_to_btc(prev_out.get("value") or 0),
            ))

        outputs = [
            TxOutput(
                to_address=output.get("addr"),
                amount=satoshi_to_btc(output.get("value") or 0),
            )
            for output in raw_tx.get("out") or []
        ]

        block_height = raw_tx.get("block_height")
        fee = raw_tx.get("fee")

        is_incoming = None
        value = None
        if perspective is not None:
            direction = transaction_direction(raw_tx, perspective)
            is_incoming = direction["is_incoming"]
            value = satoshi_to_btc(direction["value"])

        return TransactionView(
            hash=raw_tx.get("hash"),
            block_height=block_height,
            time=raw_tx.get("time"),
            fee=satoshi_to_btc(fee) if fee else Decimal(0),
            confirmations=calculate_confirmations(block_height, tip_height),
            inputs=inputs,
            outputs=outputs,
            is_incoming=is_incoming,
            value=value,
        )

    async def _tip_height_for(self, raw_txs: List[Dict[str, Any]]) -> Optional[int]:
        """
        Fetch the chain tip once for a page of transactions.

        Skipped when every transaction is unconfirmed. Returns None when the
        fetch fails, which yields 0 confirmations downstream.
        """
        if not any(raw_tx.get("block_height") is not None for raw_tx in raw_txs):
            return None

        try:
            tip = await self.client.fetch_chain_tip()
        except UpstreamError as e:
            self.logger.warning("Chain tip unavailable, reporting 0 confirmations",
                                error=str(e),
                                status_code=e.status_code,
                                transactions=len(raw_txs))
            return None

        return tip.height
