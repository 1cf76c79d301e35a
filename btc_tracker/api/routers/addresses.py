"""Tracked address endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool
import structlog

from btc_tracker.api.dependencies import (
    get_aggregator, get_config, get_repository, get_user_id
)
from btc_tracker.core.aggregator import LedgerAggregator
from btc_tracker.core.errors import NotFoundError, UpstreamError, ValidationError
from btc_tracker.database.repository import AddressRepository
from btc_tracker.models.config import TrackerConfig
from btc_tracker.models.ledger import BalancesView
from btc_tracker.utils.bitcoin import is_valid_address

router = APIRouter()
logger = structlog.get_logger(__name__)


class AddAddressRequest(BaseModel):
    """Body of POST /api/addresses."""
    address: Optional[str] = None
    label: Optional[str] = None


async def _balances_or_empty(aggregator: LedgerAggregator, addresses, request_logger) -> BalancesView:
    """Live balances, or an empty view when the explorer is unavailable."""
    try:
        return await aggregator.balances_view(addresses)
    except UpstreamError as e:
        request_logger.warning("Could not fetch balances from ledger", error=str(e))
        return BalancesView()


@router.get("")
async def list_addresses(
    user_id: str = Depends(get_user_id),
    repository: AddressRepository = Depends(get_repository),
    aggregator: LedgerAggregator = Depends(get_aggregator),
):
    """All addresses of the user with live balances."""
    request_logger = logger.bind(endpoint="list_addresses", user_id=user_id)

    records = await run_in_threadpool(repository.list_addresses, user_id)
    if not records:
        return {"success": True, "data": []}

    balances = await _balances_or_empty(aggregator, [r.address for r in records], request_logger)

    data = []
    for record in records:
        balance = balances.get(record.address)
        entry = record.to_dict()
        entry["balance"] = balance.to_dict() if balance else None
        data.append(entry)

    return {"success": True, "data": data}


@router.post("", status_code=status.HTTP_201_CREATED)
async def add_address(
    body: AddAddressRequest,
    user_id: str = Depends(get_user_id),
    repository: AddressRepository = Depends(get_repository),
    aggregator: LedgerAggregator = Depends(get_aggregator),
):
    """Start tracking an address."""
    request_logger = logger.bind(endpoint="add_address", user_id=user_id)

    if not body.address:
        raise ValidationError("Address is required")

    if not is_valid_address(body.address):
        raise ValidationError("Invalid Bitcoin address format", details={"address": body.address})

    record = await run_in_threadpool(repository.add_address, user_id, body.address, body.label)
    request_logger.info("Address tracked", address=record.address)

    balances = await _balances_or_empty(aggregator, [record.address], request_logger)
    balance = balances.get(record.address)

    data = record.to_dict()
    data["balance"] = balance.to_dict() if balance else None

    return {"success": True, "data": data}


# Declared before the /{address} routes so that "user" is not read as an address
@router.get("/user/transactions")
async def list_user_transactions(
    limit: Optional[int] = Query(default=None, ge=0, description="Transactions to return"),
    offset: int = Query(default=0, ge=0, description="Transactions to skip"),
    user_id: str = Depends(get_user_id),
    config: TrackerConfig = Depends(get_config),
    repository: AddressRepository = Depends(get_repository),
    aggregator: LedgerAggregator = Depends(get_aggregator),
):
    """Combined transaction feed across every address of the user."""
    records = await run_in_threadpool(repository.list_addresses, user_id)
    if not records:
        return {
            "success": True,
            "data": {"user_id": user_id, "total_addresses": 0, "transactions": []}
        }

    view = await aggregator.multi_address_view(
        [r.address for r in records],
        limit if limit is not None else config.default_tx_limit,
        offset
    )

    return {
        "success": True,
        "data": {
            "user_id": user_id,
            "total_addresses": len(records),
            "transactions": [tx.to_dict() for tx in view.transactions],
        }
    }


@router.get("/{address}")
async def get_address(
    address: str,
    user_id: str = Depends(get_user_id),
    repository: AddressRepository = Depends(get_repository),
    aggregator: LedgerAggregator = Depends(get_aggregator),
):
    """One tracked address with its live balance."""
    request_logger = logger.bind(endpoint="get_address", user_id=user_id, address=address)

    record = await run_in_threadpool(repository.get_address, user_id, address)
    if record is None:
        raise NotFoundError("Address not found for this user")

    balances = await _balances_or_empty(aggregator, [address], request_logger)
    balance = balances.get(address)

    data = record.to_dict()
    data["balance"] = balance.to_dict() if balance else None
    return {"success": True, "data": data}


@router.delete("/{address}")
async def remove_address(
    address: str,
    user_id: str = Depends(get_user_id),
    repository: AddressRepository = Depends(get_repository),
):
    """Stop tracking an address."""
    removed = await run_in_threadpool(repository.remove_address, user_id, address)
    if not removed:
        raise NotFoundError("Address not found for this user")

    return {"success": True, "message": "Address removed successfully"}


@router.get("/{address}/transactions")
async def get_address_transactions(
    address: str,
    limit: Optional[int] = Query(default=None, ge=0, description="Transactions to return"),
    offset: int = Query(default=0, ge=0, description="Transactions to skip"),
    user_id: str = Depends(get_user_id),
    config: TrackerConfig = Depends(get_config),
    repository: AddressRepository = Depends(get_repository),
    aggregator: LedgerAggregator = Depends(get_aggregator),
):
    """Live transactions of one tracked address."""
    record = await run_in_threadpool(repository.get_address, user_id, address)
    if record is None:
        raise NotFoundError("Address not found for this user")

    view = await aggregator.address_view(
        address,
        limit if limit is not None else config.default_tx_limit,
        offset
    )

    return {
        "success": True,
        "data": {
            "address": address,
            "total_transactions": view.total_transactions,
            "transactions": [tx.to_dict() for tx in view.transactions],
        }
    }
