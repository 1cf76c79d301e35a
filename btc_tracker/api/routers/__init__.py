"""API routers."""

from btc_tracker.api.routers import addresses, sync

__all__ = ["addresses", "sync"]
