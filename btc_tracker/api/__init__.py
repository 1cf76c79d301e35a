"""HTTP API for the BTC address tracker."""

from btc_tracker.api.app import create_app

__all__ = ["create_app"]
