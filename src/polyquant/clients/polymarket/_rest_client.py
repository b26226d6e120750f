"""Async HTTP client for the public Polymarket CLOB REST endpoints.

Cover the unauthenticated reads the agent needs: the cursor-paginated
``/markets`` listing, single-market lookup and the ``/book`` snapshot.
Signed order submission lives in ``_clob_adapter``.
"""

from typing import Any, cast

import httpx

from polyquant.clients.polymarket._constants import HTTP_BAD_REQUEST, HTTP_NOT_FOUND
from polyquant.clients.polymarket.exceptions import PolymarketAPIError


class ClobRestClient:
    """Async HTTP client for CLOB market listings and order books.

    Args:
        base_url: Base URL for the CLOB API.
        timeout: Request timeout in seconds.

    """

    BASE_URL = "https://clob.polymarket.com"

    def __init__(
        self,
        base_url: str = BASE_URL,
        timeout: float = 30.0,
    ) -> None:
        """Initialize the CLOB REST client.

        Args:
            base_url: Base URL for the CLOB API.
            timeout: Request timeout in seconds.

        """
        self.base_url = base_url.rstrip("/")
        self._http_client = httpx.AsyncClient(timeout=timeout)

    async def get_markets(self, next_cursor: str = "") -> dict[str, Any]:
        """Fetch one page of the market listing.

        The endpoint normally answers ``{"data": [...], "next_cursor": "..."}``.
        A bare JSON list is also accepted and treated as a final page.

        Args:
            next_cursor: Cursor from the previous page, empty for the first.

        Returns:
            Dictionary with ``data`` (list of market dicts) and ``next_cursor``.

        Raises:
            PolymarketAPIError: When the API returns an error response.

        """
        params: dict[str, str] = {"next_cursor": next_cursor} if next_cursor else {}
        payload: Any = await self._get("/markets", params=params)
        if isinstance(payload, list):
            return {"data": cast("list[dict[str, Any]]", payload), "next_cursor": ""}
        if not isinstance(payload, dict):
            raise PolymarketAPIError(
                msg=f"Unexpected /markets payload: {type(payload).__name__}",
                status_code=HTTP_BAD_REQUEST,
            )
        page = cast("dict[str, Any]", payload)
        return {
            "data": list(page.get("data") or []),
            "next_cursor": str(page.get("next_cursor") or ""),
        }

    async def get_market(self, condition_id: str) -> dict[str, Any]:
        """Fetch a single market by its condition ID.

        Args:
            condition_id: Unique identifier for the market condition.

        Returns:
            Market dictionary from the CLOB API.

        Raises:
            PolymarketAPIError: When the market is not found or the API fails.

        """
        market: Any = await self._get(f"/markets/{condition_id}")
        if not market:
            raise PolymarketAPIError(
                msg=f"Market not found: {condition_id}",
                status_code=HTTP_NOT_FOUND,
            )
        return cast("dict[str, Any]", market)

    async def get_order_book(self, token_id: str) -> dict[str, Any]:
        """Fetch the raw order book for an outcome token.

        Args:
            token_id: CLOB token identifier.

        Returns:
            Dictionary with ``bids`` and ``asks`` lists of string price/size levels.

        Raises:
            PolymarketAPIError: When the API returns an error response.

        """
        book: Any = await self._get("/book", params={"token_id": token_id})
        return cast("dict[str, Any]", book or {})

    async def _get(
        self,
        path: str,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Send a GET request and return parsed JSON.

        Args:
            path: Request path relative to base_url.
            params: Query parameters.

        Returns:
            Parsed JSON response.

        Raises:
            PolymarketAPIError: When the transport fails, the API returns an
                error response, or the body is not JSON.

        """
        url = f"{self.base_url}{path}"
        try:
            response = await self._http_client.request("GET", url, params=params)
        except httpx.HTTPError as exc:
            raise PolymarketAPIError(
                msg=f"HTTP request failed: {exc}",
                status_code=HTTP_BAD_REQUEST,
            ) from exc

        if response.status_code >= HTTP_BAD_REQUEST:
            self._handle_error(response)

        try:
            result: Any = response.json()
        except ValueError as exc:
            raise PolymarketAPIError(
                msg=f"Response from {path} is not valid JSON",
                status_code=response.status_code,
            ) from exc
        return result

    @staticmethod
    def _handle_error(response: httpx.Response) -> None:
        """Raise a PolymarketAPIError from an error response.

        Args:
            response: HTTP response with a non-2xx status code.

        Raises:
            PolymarketAPIError: Always raised with status code and message.

        """
        try:
            data = response.json()
            msg: str = data.get("error") or data.get("message") or f"HTTP {response.status_code}"
        except Exception:
            msg = f"HTTP {response.status_code}"
        raise PolymarketAPIError(msg=msg, status_code=response.status_code)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._http_client.aclose()

    async def __aenter__(self) -> "ClobRestClient":
        """Enter async context manager."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Exit async context manager."""
        await self.close()
