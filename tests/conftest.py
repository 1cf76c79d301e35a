"""Pytest configuration and fixtures for BTC tracker tests."""

from collections import defaultdict
from typing import Any, Dict, List, Optional

import pytest

from btc_tracker.core.errors import UpstreamError
from btc_tracker.models.config import TrackerConfig
from btc_tracker.models.ledger import (
    AddressInfo, BalanceSnapshot, ChainTip, MultiAddressInfo
)


# ============================================================================
# SAMPLE ADDRESSES
# ============================================================================

GENESIS_ADDRESS = "1A1zP1eP5QGefi2DMPTfTL5SLmv7DivfNa"
P2SH_ADDRESS = "3J98t1WpEZ73CNmQviecrnyiWrnqRhWNLy"
SEGWIT_ADDRESS = "bc1qar0srrr7xfkvy5l643lydnw9re59gtzzwf5mdq"
TESTNET_ADDRESS = "mipcBbFg9gMiCh81Kj8tqqdgoZub1ZJRfn"
TESTNET_SEGWIT_ADDRESS = "tb1qw508d6qejxtdg4y5r3zarvary0c5xw7kxpjzsx"


def make_raw_tx(tx_hash: str,
                block_height: Optional[int] = 100,
                inputs: Optional[List[Dict[str, Any]]] = None,
                outputs: Optional[List[Dict[str, Any]]] = None,
                fee: Optional[int] = 1000,
                time: int = 1700000000) -> Dict[str, Any]:
    """Build an upstream transaction record in blockchain.info shape."""
    tx = {
        "hash": tx_hash,
        "time": time,
        "fee": fee,
        "inputs": inputs if inputs is not None else [
            {"prev_out": {"addr": P2SH_ADDRESS, "value": 100001000}}
        ],
        "out": outputs if outputs is not None else [
            {"addr": GENESIS_ADDRESS, "value": 100000000}
        ],
    }
    if block_height is not None:
        tx["block_height"] = block_height
    return tx


# ============================================================================
# FAKE LEDGER CLIENT
# ============================================================================

class FakeLedgerClient:
    """In-memory stand-in for BlockchainInfoClient that records every call."""

    def __init__(self):
        self.address_payloads: Dict[str, Dict[str, Any]] = {}
        self.multi_payload: Dict[str, Any] = {"addresses": [], "txs": []}
        self.balance_payload: Dict[str, Dict[str, Any]] = {}
        self.chain_tip = ChainTip(height=105, hash="00000000000000000001tip", time=1700000000)
        self.failing: set = set()
        self.calls: Dict[str, List[Any]] = defaultdict(list)
        self.closed = False

    def _check(self, name: str) -> None:
        if name in self.failing:
            raise UpstreamError(f"{name} failed: upstream unavailable", status_code=503)

    async def fetch_address(self, address, limit=50, offset=0) -> AddressInfo:
        self.calls["fetch_address"].append((address, limit, offset))
        self._check("fetch_address")
        return AddressInfo.from_upstream(address, self.address_payloads[address])

    async def fetch_multi_address(self, addresses, limit=50, offset=0) -> MultiAddressInfo:
        self.calls["fetch_multi_address"].append((list(addresses), limit, offset))
        self._check("fetch_multi_address")
        return MultiAddressInfo.from_upstream(self.multi_payload)

    async def fetch_balances(self, addresses) -> Dict[str, BalanceSnapshot]:
        if not addresses:
            return {}
        self.calls["fetch_balances"].append(list(addresses))
        self._check("fetch_balances")
        return {
            address: BalanceSnapshot.from_upstream(entry)
            for address, entry in self.balance_payload.items()
            if address in addresses
        }

    async def fetch_chain_tip(self) -> ChainTip:
        self.calls["fetch_chain_tip"].append(())
        self._check("fetch_chain_tip")
        return self.chain_tip

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def fake_ledger():
    """Fake ledger client with empty canned responses."""
    return FakeLedgerClient()


# ============================================================================
# CONFIG & STORAGE FIXTURES
# ============================================================================

@pytest.fixture
def test_config(tmp_path):
    """Tracker configuration pointing at a temporary SQLite file."""
    return TrackerConfig(
        database_url=f"sqlite:///{tmp_path / 'tracker.db'}",
        log_level="WARNING",
        log_format="text",
    )


@pytest.fixture
def repository(test_config):
    """SQL address repository with its schema created."""
    from btc_tracker.database.repository import SqlAddressRepository

    repo = SqlAddressRepository(test_config.database_url)
    repo.create_tables()
    yield repo
    repo.dispose()


# ============================================================================
# API FIXTURES
# ============================================================================

@pytest.fixture
def api_client(test_config, fake_ledger, repository):
    """FastAPI test client wired to the fake ledger and a temporary store."""
    from fastapi.testclient import TestClient
    from btc_tracker.api.app import create_app

    app = create_app(test_config, ledger_client=fake_ledger, repository=repository)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def user_headers():
    """Headers identifying the test user."""
    return {"user-id": "alice"}
