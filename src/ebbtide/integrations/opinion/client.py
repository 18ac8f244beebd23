"""Async HTTP client for the Opinion exchange API.

Every endpoint answers with the same envelope:

    {"errno": 0, "errmsg": "", "result": {...}}

A non-zero errno is an API-level failure. The client only speaks HTTP and
unwraps envelopes; deciding what a failure means (fall back, abort the
cycle, log and continue) is left to the services that call it.
"""

from typing import Any, Optional

import httpx
import structlog

from ebbtide.core.errors import TransientIOError
from ebbtide.integrations.opinion.types import (
    CURRENT_ORDERS_QUERY_TYPE,
    DEPTH_SYMBOL_TYPE,
    OpinionSettings,
)

log = structlog.get_logger()


class OpinionClientError(TransientIOError):
    """Error from the Opinion API client."""

    pass


class OpinionApiError(OpinionClientError):
    """The API answered with a non-zero errno."""

    def __init__(self, errno: Any, errmsg: str, endpoint: str):
        super().__init__(f"{endpoint} failed: {errmsg or 'unknown error'} (errno: {errno})")
        self.errno = errno
        self.errmsg = errmsg
        self.endpoint = endpoint


class MalformedResponseError(OpinionClientError):
    """The response body was not the expected JSON shape."""

    pass


class OpinionClient:
    """Async HTTP client for the Opinion API.

    Provides:
    - Portfolio holdings for a wallet under a parent topic
    - Parent topic tree with child markets
    - Order book depth per outcome token
    - Current orders for a wallet and order cancellation

    No retries are performed here; callers decide how to degrade.
    """

    def __init__(
        self,
        settings: Optional[OpinionSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the Opinion client.

        Args:
            settings: Connection settings.
            transport: Optional transport override (proxy routing or tests).
        """
        self._settings = settings or OpinionSettings()
        self._base_url = self._settings.base_url.rstrip("/")
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._log = log.bind(component="opinion_client")

    @property
    def chain_id(self) -> int:
        return self._settings.chain_id

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    async def connect(self) -> None:
        """Initialize the HTTP client."""
        if self._client is not None:
            return

        transport = self._transport
        if transport is None and self._settings.http_proxy:
            transport = httpx.AsyncHTTPTransport(proxy=self._settings.http_proxy)

        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._settings.timeout_seconds,
            transport=transport,
            headers={
                "Accept": "application/json",
                "Content-Type": "application/json",
            },
        )
        self._log.info("opinion_client_connected", base_url=self._base_url)

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            self._log.info("opinion_client_closed")

    async def __aenter__(self) -> "OpinionClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _ensure_connected(self) -> httpx.AsyncClient:
        """Ensure client is connected and return it."""
        if self._client is None:
            raise OpinionClientError("Client not connected. Call connect() first.")
        return self._client

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict[str, Any]] = None,
        json_body: Optional[dict[str, Any]] = None,
    ) -> Any:
        """Send a request and return the unwrapped `result` field.

        Raises:
            OpinionApiError: errno was non-zero or missing.
            MalformedResponseError: body was not a JSON envelope.
            TransientIOError: transport failure, timeout or HTTP error status.
        """
        client = self._ensure_connected()
        try:
            response = await client.request(method, path, params=params, json=json_body)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            raise TransientIOError(f"{path} timed out", cause=e) from e
        except httpx.HTTPStatusError as e:
            raise TransientIOError(
                f"{path} returned HTTP {e.response.status_code}", cause=e
            ) from e
        except httpx.HTTPError as e:
            raise TransientIOError(f"{path} request failed", cause=e) from e

        try:
            payload = response.json()
        except ValueError as e:
            preview = response.text[:200]
            self._log.warning("opinion_response_not_json", path=path, preview=preview)
            raise MalformedResponseError(f"{path} returned non-JSON body", cause=e) from e

        if not isinstance(payload, dict):
            raise MalformedResponseError(f"{path} returned {type(payload).__name__}, not an object")

        errno = payload.get("errno")
        if errno != 0:
            raise OpinionApiError(errno, payload.get("errmsg", ""), path)

        return payload.get("result")

    async def get_portfolio(
        self,
        wallet_address: str,
        parent_topic_id: str,
        limit: int = 100,
    ) -> list[dict]:
        """Get holdings for a wallet under a parent topic.

        Args:
            wallet_address: Full 0x wallet address.
            parent_topic_id: Parent market (topic) id.
            limit: Page size.

        Returns:
            List of holding dictionaries (topicTitle, outcome, value, ...).
        """
        result = await self._request(
            "GET",
            "/v2/portfolio",
            params={
                "page": 1,
                "limit": limit,
                "walletAddress": wallet_address,
                "parentTopicId": parent_topic_id,
            },
        )
        if not isinstance(result, dict):
            raise MalformedResponseError("portfolio result is not an object")
        holdings = result.get("list")
        if not isinstance(holdings, list):
            raise MalformedResponseError("portfolio list is not an array")
        return holdings

    async def get_topic(self, topic_id: str) -> dict:
        """Get a parent topic with its child markets.

        Returns:
            The topic `data` object; child markets are under `childList`.
        """
        result = await self._request("GET", f"/v2/topic/mutil/{topic_id}")
        if not isinstance(result, dict) or not isinstance(result.get("data"), dict):
            raise MalformedResponseError("topic result has no data object")
        return result["data"]

    async def get_depth(self, symbol: str, question_id: str) -> dict:
        """Get order book depth for an outcome token.

        Args:
            symbol: Outcome token identifier.
            question_id: Child market question id.

        Returns:
            Dictionary with `asks` and `bids`, each a list of [price, size],
            best level first.
        """
        result = await self._request(
            "GET",
            "/v2/order/market/depth",
            params={
                "symbol": symbol,
                "chainId": self._settings.chain_id,
                "question_id": question_id,
                "symbol_types": DEPTH_SYMBOL_TYPE,
            },
        )
        if not isinstance(result, dict):
            raise MalformedResponseError("depth result is not an object")
        return {
            "asks": result.get("asks") or [],
            "bids": result.get("bids") or [],
        }

    async def get_orders(
        self,
        wallet_address: str,
        parent_topic_id: str,
        limit: int = 10,
    ) -> list[dict]:
        """Get the most recent orders for a wallet under a parent topic."""
        result = await self._request(
            "GET",
            "/v2/order",
            params={
                "page": 1,
                "limit": limit,
                "walletAddress": wallet_address,
                "parentTopicId": parent_topic_id,
                "queryType": CURRENT_ORDERS_QUERY_TYPE,
            },
        )
        if not isinstance(result, dict) or not isinstance(result.get("list"), list):
            raise MalformedResponseError("order result has no list")
        return result["list"]

    async def cancel_order(self, trans_no: str, chain_id: Optional[int] = None) -> None:
        """Cancel an order by its transaction reference.

        Raises:
            OpinionApiError: The exchange refused the cancellation.
        """
        await self._request(
            "POST",
            "/v1/order/cancel/order",
            json_body={
                "trans_no": trans_no,
                "chainId": chain_id if chain_id is not None else self._settings.chain_id,
            },
        )
