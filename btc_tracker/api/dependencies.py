"""FastAPI dependencies resolving per-app collaborators."""

from typing import Optional

from fastapi import Header, Query, Request

from btc_tracker.core.aggregator import LedgerAggregator
from btc_tracker.core.errors import ValidationError
from btc_tracker.database.repository import AddressRepository
from btc_tracker.models.config import TrackerConfig


def get_config(request: Request) -> TrackerConfig:
    return request.app.state.config


def get_repository(request: Request) -> AddressRepository:
    return request.app.state.repository


def get_aggregator(request: Request) -> LedgerAggregator:
    return request.app.state.aggregator


def get_user_id(
    user_id_header: Optional[str] = Header(default=None, alias="user-id"),
    user_id_query: Optional[str] = Query(default=None, alias="user_id"),
) -> str:
    """Caller identity from the user-id header or the user_id query parameter."""
    user_id = user_id_header or user_id_query
    if not user_id:
        raise ValidationError(
            "User ID is required. Provide it in headers (user-id) or query parameter (user_id)"
        )
    return user_id
