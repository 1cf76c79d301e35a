"""Live ledger endpoints. Nothing fetched here is stored locally."""

import asyncio
from typing import Optional

from fastapi import APIRouter, Depends, Query
from starlette.concurrency import run_in_threadpool
import structlog

from btc_tracker.api.dependencies import (
    get_aggregator, get_config, get_repository, get_user_id
)
from btc_tracker.core.aggregator import LedgerAggregator
from btc_tracker.core.errors import NotFoundError
from btc_tracker.database.repository import AddressRepository
from btc_tracker.models.config import TrackerConfig
from btc_tracker.utils.time import utc_now_iso

router = APIRouter()
logger = structlog.get_logger(__name__)


def _labelled_balances(records, balances) -> list:
    """Pair each stored address with its label and live balance."""
    results = []
    for record in records:
        balance = balances.get(record.address)
        results.append({
            "address": record.address,
            "label": record.label,
            "balance": balance.to_dict() if balance else None,
        })
    return results


@router.get("/address/{address}")
async def sync_address(
    address: str,
    limit: Optional[int] = Query(default=None, ge=0, description="Transactions to return"),
    offset: int = Query(default=0, ge=0, description="Transactions to skip"),
    user_id: str = Depends(get_user_id),
    config: TrackerConfig = Depends(get_config),
    repository: AddressRepository = Depends(get_repository),
    aggregator: LedgerAggregator = Depends(get_aggregator),
):
    """Live balance and transactions for one tracked address."""
    record = await run_in_threadpool(repository.get_address, user_id, address)
    if record is None:
        raise NotFoundError("Address not found for this user")

    view = await aggregator.address_view(
        address,
        limit if limit is not None else config.default_tx_limit,
        offset
    )

    data = view.to_dict()
    data.update({
        "user_id": user_id,
        "label": record.label,
        "fetched_at": utc_now_iso(),
    })
    return {"success": True, "data": data}


@router.get("/user")
async def sync_user(
    limit: Optional[int] = Query(default=None, ge=0, description="Recent transactions to return"),
    user_id: str = Depends(get_user_id),
    config: TrackerConfig = Depends(get_config),
    repository: AddressRepository = Depends(get_repository),
    aggregator: LedgerAggregator = Depends(get_aggregator),
):
    """Live balances and recent transactions for every address of the user."""
    records = await run_in_threadpool(repository.list_addresses, user_id)
    if not records:
        return {
            "success": True,
            "data": {"user_id": user_id, "total_addresses": 0, "addresses": []}
        }

    addresses = [r.address for r in records]
    limit = limit if limit is not None else config.default_tx_limit

    # Independent fetches, issued concurrently
    multi_view, balances = await asyncio.gather(
        aggregator.multi_address_view(addresses, limit),
        aggregator.balances_view(addresses),
    )

    logger.info("User sync completed",
                user_id=user_id,
                addresses=len(addresses),
                transactions=len(multi_view.transactions))

    return {
        "success": True,
        "data": {
            "user_id": user_id,
            "total_addresses": len(records),
            "addresses": _labelled_balances(records, balances),
            "recent_transactions": [tx.to_dict() for tx in multi_view.transactions],
            "fetched_at": utc_now_iso(),
        }
    }


@router.get("/user/balances")
async def sync_user_balances(
    user_id: str = Depends(get_user_id),
    repository: AddressRepository = Depends(get_repository),
    aggregator: LedgerAggregator = Depends(get_aggregator),
):
    """Live balances for every address of the user."""
    records = await run_in_threadpool(repository.list_addresses, user_id)
    if not records:
        return {
            "success": True,
            "data": {"user_id": user_id, "total_addresses": 0, "balances": []}
        }

    balances = await aggregator.balances_view([r.address for r in records])

    return {
        "success": True,
        "data": {
            "user_id": user_id,
            "total_addresses": len(records),
            "balances": _labelled_balances(records, balances),
            "fetched_at": utc_now_iso(),
        }
    }


@router.get("/status")
async def sync_status(
    config: TrackerConfig = Depends(get_config),
    aggregator: LedgerAggregator = Depends(get_aggregator),
):
    """Latest block and explorer status."""
    status_view = await aggregator.status_view()

    return {
        "success": True,
        "data": {
            "latest_block": status_view.to_dict(),
            "api_status": "operational",
            "blockchain_api": config.ledger_base_url,
            "note": "All data is fetched live from blockchain API - no local storage",
            "checked_at": utc_now_iso(),
        }
    }
