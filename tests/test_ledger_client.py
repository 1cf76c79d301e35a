"""Unit tests for the blockchain.info ledger client."""

import httpx
import pytest

from btc_tracker.core.errors import UpstreamError, ValidationError
from btc_tracker.core.ledger_client import BlockchainInfoClient
from conftest import GENESIS_ADDRESS, P2SH_ADDRESS, SEGWIT_ADDRESS, make_raw_tx


class RecordingHandler:
    """MockTransport handler returning one canned response and recording requests."""

    def __init__(self, json_body=None, status_code=200, text=None, exc=None):
        self.json_body = json_body
        self.status_code = status_code
        self.text = text
        self.exc = exc
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.exc is not None:
            raise self.exc
        if self.text is not None:
            return httpx.Response(self.status_code, text=self.text)
        return httpx.Response(self.status_code, json=self.json_body)


def make_client(handler) -> BlockchainInfoClient:
    return BlockchainInfoClient(timeout=5.0, transport=httpx.MockTransport(handler))


class TestFetchAddress:
    """Tests for single-address queries."""

    @pytest.mark.asyncio
    async def test_parses_balance_and_transactions(self):
        """Test /rawaddr payload is parsed into AddressInfo."""
        handler = RecordingHandler({
            "address": GENESIS_ADDRESS,
            "n_tx": 2,
            "total_received": 7000000000,
            "total_sent": 2000000000,
            "final_balance": 5000000000,
            "txs": [make_raw_tx("a"), make_raw_tx("b")],
        })

        async with make_client(handler) as client:
            info = await client.fetch_address(GENESIS_ADDRESS, limit=10, offset=5)

        assert info.address == GENESIS_ADDRESS
        assert info.balance.final_balance == 5000000000
        assert info.balance.total_sent == 2000000000
        assert info.balance.n_tx == 2
        assert [tx["hash"] for tx in info.transactions] == ["a", "b"]

        request = handler.requests[0]
        assert request.method == "GET"
        assert request.url.path == f"/rawaddr/{GENESIS_ADDRESS}"
        assert request.url.params["limit"] == "10"
        assert request.url.params["offset"] == "5"
        assert request.url.params["cors"] == "true"
        assert request.headers["User-Agent"] == "BTC-Tracker/1.0"

    @pytest.mark.asyncio
    async def test_limit_is_clamped_not_rejected(self):
        """Test limits above 50 and negative offsets are clamped."""
        handler = RecordingHandler({"final_balance": 0, "txs": []})

        async with make_client(handler) as client:
            await client.fetch_address(GENESIS_ADDRESS, limit=500, offset=-3)

        params = handler.requests[0].url.params
        assert params["limit"] == "50"
        assert params["offset"] == "0"


class TestFetchMultiAddress:
    """Tests for multi-address queries."""

    @pytest.mark.asyncio
    async def test_joins_addresses_and_clamps_limit(self):
        """Test addresses are pipe-joined and n is clamped to 100."""
        handler = RecordingHandler({
            "addresses": [
                {"address": GENESIS_ADDRESS, "final_balance": 100, "total_received": 300,
                 "total_sent": 200, "n_tx": 3},
                {"address": SEGWIT_ADDRESS, "final_balance": 0, "total_received": 0,
                 "total_sent": 0, "n_tx": 0},
            ],
            "txs": [make_raw_tx("a")],
        })

        async with make_client(handler) as client:
            info = await client.fetch_multi_address([GENESIS_ADDRESS, SEGWIT_ADDRESS], limit=250)

        assert [entry.address for entry in info.addresses] == [GENESIS_ADDRESS, SEGWIT_ADDRESS]
        assert info.addresses[0].balance.final_balance == 100
        assert len(info.transactions) == 1

        request = handler.requests[0]
        assert request.url.path == "/multiaddr"
        assert request.url.params["active"] == f"{GENESIS_ADDRESS}|{SEGWIT_ADDRESS}"
        assert request.url.params["n"] == "100"
        assert request.url.params["offset"] == "0"
        assert request.url.params["cors"] == "true"

    @pytest.mark.asyncio
    async def test_empty_address_list_is_rejected(self):
        """Test an empty list fails before any request."""
        handler = RecordingHandler({})

        async with make_client(handler) as client:
            with pytest.raises(ValidationError):
                await client.fetch_multi_address([])

        assert handler.requests == []


class TestFetchBalances:
    """Tests for balance queries."""

    @pytest.mark.asyncio
    async def test_empty_list_makes_no_request(self):
        """Test an empty address list returns {} without calling upstream."""
        handler = RecordingHandler({})

        async with make_client(handler) as client:
            result = await client.fetch_balances([])

        assert result == {}
        assert handler.requests == []

    @pytest.mark.asyncio
    async def test_parses_balances_and_derives_total_sent(self):
        """Test /balance entries are parsed and total_sent is derived."""
        handler = RecordingHandler({
            GENESIS_ADDRESS: {"final_balance": 5000000000, "n_tx": 10, "total_received": 8000000000},
        })

        async with make_client(handler) as client:
            result = await client.fetch_balances([GENESIS_ADDRESS, P2SH_ADDRESS])

        assert set(result) == {GENESIS_ADDRESS}
        snapshot = result[GENESIS_ADDRESS]
        assert snapshot.final_balance == 5000000000
        assert snapshot.total_sent == 3000000000
        assert snapshot.n_tx == 10

        request = handler.requests[0]
        assert request.url.path == "/balance"
        assert request.url.params["active"] == f"{GENESIS_ADDRESS}|{P2SH_ADDRESS}"


class TestFetchChainTip:
    """Tests for chain tip queries."""

    @pytest.mark.asyncio
    async def test_parses_latest_block(self):
        """Test /latestblock payload is parsed into ChainTip."""
        handler = RecordingHandler({
            "hash": "0000000000000000000abc",
            "time": 1700000000,
            "block_index": 1,
            "height": 820000,
        })

        async with make_client(handler) as client:
            tip = await client.fetch_chain_tip()

        assert tip.height == 820000
        assert tip.hash == "0000000000000000000abc"
        assert tip.timestamp == "2023-11-14T22:13:20.000Z"
        assert handler.requests[0].url.path == "/latestblock"


class TestUpstreamFailures:
    """Tests that every failure surfaces as UpstreamError without retrying."""

    @pytest.mark.asyncio
    async def test_error_status(self):
        """Test a non-2xx status raises UpstreamError with the status code."""
        handler = RecordingHandler(status_code=500, text="Internal error")

        async with make_client(handler) as client:
            with pytest.raises(UpstreamError) as exc_info:
                await client.fetch_chain_tip()

        assert exc_info.value.status_code == 500
        assert "Internal error" in exc_info.value.message
        assert len(handler.requests) == 1

    @pytest.mark.asyncio
    async def test_rate_limited_is_not_retried(self):
        """Test a 429 response fails immediately."""
        handler = RecordingHandler(status_code=429, text="Too Many Requests")

        async with make_client(handler) as client:
            with pytest.raises(UpstreamError) as exc_info:
                await client.fetch_balances([GENESIS_ADDRESS])

        assert exc_info.value.status_code == 429
        assert len(handler.requests) == 1

    @pytest.mark.asyncio
    async def test_timeout(self):
        """Test a timeout raises UpstreamError."""
        handler = RecordingHandler(exc=httpx.ReadTimeout("timed out"))

        async with make_client(handler) as client:
            with pytest.raises(UpstreamError) as exc_info:
                await client.fetch_address(GENESIS_ADDRESS)

        assert "timed out" in exc_info.value.message
        assert exc_info.value.status_code is None
        assert isinstance(exc_info.value.__cause__, httpx.ReadTimeout)

    @pytest.mark.asyncio
    async def test_transport_failure(self):
        """Test a connection failure raises UpstreamError."""
        handler = RecordingHandler(exc=httpx.ConnectError("connection refused"))

        async with make_client(handler) as client:
            with pytest.raises(UpstreamError) as exc_info:
                await client.fetch_multi_address([GENESIS_ADDRESS])

        assert "connection refused" in exc_info.value.message
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        """Test a non-JSON body raises UpstreamError."""
        handler = RecordingHandler(text="<html>maintenance</html>")

        async with make_client(handler) as client:
            with pytest.raises(UpstreamError):
                await client.fetch_chain_tip()

    @pytest.mark.asyncio
    async def test_unexpected_payload_shape(self):
        """Test a payload missing required fields raises UpstreamError."""
        handler = RecordingHandler({"hash": "abc"})

        async with make_client(handler) as client:
            with pytest.raises(UpstreamError) as exc_info:
                await client.fetch_chain_tip()

        assert isinstance(exc_info.value.__cause__, KeyError)

    @pytest.mark.asyncio
    async def test_chain_tip_without_hash(self):
        """Test a latest block payload lacking its hash raises UpstreamError."""
        handler = RecordingHandler({"height": 820000, "time": 1700000000})

        async with make_client(handler) as client:
            with pytest.raises(UpstreamError) as exc_info:
                await client.fetch_chain_tip()

        assert "hash" in exc_info.value.message


class TestClientLifecycle:
    """Tests for client ownership of the HTTP session."""

    @pytest.mark.asyncio
    async def test_injected_http_client_is_not_closed(self):
        """Test aclose leaves an injected httpx client open."""
        http_client = httpx.AsyncClient(
            base_url="https://blockchain.info",
            transport=httpx.MockTransport(RecordingHandler({"height": 1, "hash": "h", "time": 0})),
        )

        client = BlockchainInfoClient(http_client=http_client)
        await client.aclose()

        assert http_client.is_closed is False
        tip = await client.fetch_chain_tip()
        assert tip.height == 1
        await http_client.aclose()
