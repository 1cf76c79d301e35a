"""Address storage."""

from btc_tracker.database.models import Base, TrackedAddress
from btc_tracker.database.repository import AddressRepository, SqlAddressRepository

__all__ = [
    "Base",
    "TrackedAddress",
    "AddressRepository",
    "SqlAddressRepository",
]
