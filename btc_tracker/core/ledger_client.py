"""
Blockchain.info API client for live address and chain data.

All data is fetched on demand; nothing is cached or persisted here.

API Documentation: https://www.blockchain.com/explorer/api
"""

from typing import Dict, Any, Optional, List
import httpx
import structlog

from btc_tracker.core.errors import UpstreamError, ValidationError
from btc_tracker.models.config import TrackerConfig
from btc_tracker.models.ledger import (
    AddressInfo, BalanceSnapshot, ChainTip, MultiAddressInfo
)

logger = structlog.get_logger(__name__)

# Upstream page size maxima; larger requests are clamped, never rejected
MAX_ADDRESS_LIMIT = 50
MAX_MULTI_ADDRESS_LIMIT = 100

ADDRESS_DELIMITER = "|"


def _clamp(value: int, maximum: int) -> int:
    return max(0, min(int(value), maximum))


class BlockchainInfoClient:
    """
    Async blockchain.info client for read-only ledger queries.

    Every call is bounded by a fixed timeout and fails with UpstreamError on
    timeout, non-2xx status or transport failure. There are no retries; the
    caller decides whether to try again.
    """

    BASE_URL = "https://blockchain.info"

    def __init__(self,
                 base_url: Optional[str] = None,
                 timeout: float = 10.0,
                 user_agent: str = "BTC-Tracker/1.0",
                 http_client: Optional[httpx.AsyncClient] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Initialize the client.

        Args:
            base_url: Explorer base URL
            timeout: Request timeout in seconds
            user_agent: User-Agent header sent upstream
            http_client: Pre-built client to use instead of creating one
            transport: Transport for the created client (tests use MockTransport)
        """
        self.base_url = (base_url or self.BASE_URL).rstrip('/')
        self.timeout = timeout
        self.logger = logger.bind(component="ledger_client")

        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={
                'User-Agent': user_agent,
                'Accept': 'application/json'
            }
        )

        self.logger.info("Ledger client initialized",
                         base_url=self.base_url,
                         timeout=timeout)

    @classmethod
    def from_config(cls, config: TrackerConfig) -> "BlockchainInfoClient":
        return cls(
            base_url=config.ledger_base_url,
            timeout=config.ledger_timeout,
            user_agent=config.ledger_user_agent,
        )

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "BlockchainInfoClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def _get(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """Issue a GET request and return the decoded JSON body."""
        query = dict(params or {})
        query['cors'] = 'true'

        try:
            response = await self._client.get(endpoint, params=query, timeout=self.timeout)
            response.raise_for_status()
            return response.json()

        except httpx.TimeoutException as e:
            self.logger.error("Ledger request timed out", endpoint=endpoint, error=str(e))
            raise UpstreamError(f"Request to {endpoint} timed out: {e}") from e

        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            self.logger.error("Ledger request returned error status",
                              endpoint=endpoint,
                              status_code=status_code,
                              body=e.response.text[:200])
            raise UpstreamError(
                f"Request to {endpoint} failed with status {status_code}: {e.response.text[:200]}",
                status_code=status_code
            ) from e

        except httpx.HTTPError as e:
            self.logger.error("Ledger request failed", endpoint=endpoint, error=str(e))
            raise UpstreamError(f"Request to {endpoint} failed: {e}") from e

        except ValueError as e:
            # Body was not JSON
            self.logger.error("Ledger response was not valid JSON", endpoint=endpoint, error=str(e))
            raise UpstreamError(f"Invalid JSON from {endpoint}: {e}") from e

    def _parse(self, endpoint: str, parser, *args) -> Any:
        """Run an upstream payload parser, turning shape errors into UpstreamError."""
        try:
            return parser(*args)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            self.logger.error("Unexpected ledger payload", endpoint=endpoint, error=str(e))
            raise UpstreamError(f"Unexpected payload from {endpoint}: {e}") from e

    # ==================== Address Methods ====================

    async def fetch_address(self, address: str,
                            limit: int = MAX_ADDRESS_LIMIT,
                            offset: int = 0) -> AddressInfo:
        """
        Get balance and a page of transactions for one address.

        Args:
            address: Bitcoin address
            limit: Max transactions to return (clamped to 50)
            offset: Pagination offset

        Upstream payload:
            {
                "address": "...",
                "n_tx": 100,
                "total_received": 1000000000,
                "total_sent": 500000000,
                "final_balance": 500000000,
                "txs": [...]
            }
        """
        endpoint = f"/rawaddr/{address}"
        data = await self._get(endpoint, {
            "limit": _clamp(limit, MAX_ADDRESS_LIMIT),
            "offset": max(0, int(offset))
        })
        return self._parse(endpoint, AddressInfo.from_upstream, address, data)

    async def fetch_multi_address(self, addresses: List[str],
                                  limit: int = MAX_ADDRESS_LIMIT,
                                  offset: int = 0) -> MultiAddressInfo:
        """
        Get balances and one combined transaction feed for several addresses.

        Args:
            addresses: Non-empty list of Bitcoin addresses
            limit: Max transactions in the combined feed (clamped to 100)
            offset: Pagination offset
        """
        if not addresses:
            raise ValidationError("At least one address is required for a multi-address query")

        endpoint = "/multiaddr"
        data = await self._get(endpoint, {
            "active": ADDRESS_DELIMITER.join(addresses),
            "n": _clamp(limit, MAX_MULTI_ADDRESS_LIMIT),
            "offset": max(0, int(offset))
        })
        return self._parse(endpoint, MultiAddressInfo.from_upstream, data)

    async def fetch_balances(self, addresses: List[str]) -> Dict[str, BalanceSnapshot]:
        """
        Get balances for several addresses.

        Returns an empty mapping for an empty list without calling upstream.
        Addresses unknown upstream are absent from the result.

        Upstream payload:
            {
                "<address>": {
                    "final_balance": 500000000,
                    "n_tx": 100,
                    "total_received": 1000000000
                }
            }
        """
        if not addresses:
            return {}

        endpoint = "/balance"
        data = await self._get(endpoint, {"active": ADDRESS_DELIMITER.join(addresses)})
        return self._parse(endpoint, self._parse_balances, data)

    @staticmethod
    def _parse_balances(data: Dict[str, Any]) -> Dict[str, BalanceSnapshot]:
        return {
            address: BalanceSnapshot.from_upstream(entry)
            for address, entry in data.items()
        }

    # ==================== Block Methods ====================

    async def fetch_chain_tip(self) -> ChainTip:
        """
        Get the latest block.

        Upstream payload:
            {
                "hash": "...",
                "time": 1234567890,
                "block_index": 123456,
                "height": 879500,
                "txIndexes": [...]
            }
        """
        endpoint = "/latestblock"
        data = await self._get(endpoint)
        return self._parse(endpoint, ChainTip.from_upstream, data)
