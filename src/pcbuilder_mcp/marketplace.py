"""Marketplace product search client (RapidAPI real-time Amazon data)."""

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from .config import (
    MARKETPLACE_API_HOST,
    MARKETPLACE_COUNTRY,
    RAPIDAPI_KEY,
    REQUEST_TIMEOUT,
)

logger = logging.getLogger(__name__)


class MarketplaceError(Exception):
    """A search page could not be fetched or understood."""

    def __init__(self, code: str, message: str):
        self.code = code
        super().__init__(f"Marketplace API error [{code}]: {message}")


class RateLimitedError(MarketplaceError):
    """The marketplace answered with HTTP 429; the quota is spent."""

    def __init__(self, message: str = "rate limit exceeded"):
        super().__init__("rate_limited", message)


@dataclass
class RawResult:
    """One unprocessed product listing as returned by the search API."""
    source_id: str
    title: str
    price: str | int | float | None = None  # Raw price, e.g. "₹32,999.00"
    original_price: str | int | float | None = None
    url: str = ""
    image_url: str | None = None
    rating: float | None = None
    review_count: int = 0
    is_best_seller: bool = False
    is_choice: bool = False
    is_prime: bool = False


@dataclass
class SearchResponse:
    items: list[RawResult]
    total_count: int
    page: int


def _parse_rating(value: Any) -> float | None:
    if value in (None, ""):
        return None
    try:
        return float(value)
    except (ValueError, TypeError):
        return None


def _parse_count(value: Any) -> int:
    if value in (None, ""):
        return 0
    try:
        return int(str(value).replace(",", ""))
    except (ValueError, TypeError):
        return 0


def _raw_price(value: Any) -> str | int | float | None:
    # Anything but text or a plain number is an unknown price
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        return None
    return value


def _text(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None


def _normalize_product(product: dict[str, Any]) -> RawResult | None:
    """Normalize a product object into a RawResult. None if it lacks an id or title."""
    asin = product.get("asin")
    title = _text(product.get("product_title"))
    if not asin or not title or not title.strip():
        return None
    return RawResult(
        source_id=str(asin),
        title=title.strip(),
        price=_raw_price(product.get("product_price")),
        original_price=_raw_price(product.get("product_original_price")),
        url=_text(product.get("product_url")) or "",
        image_url=_text(product.get("product_photo")),
        rating=_parse_rating(product.get("product_star_rating")),
        review_count=_parse_count(product.get("product_num_ratings")),
        is_best_seller=bool(product.get("is_best_seller")),
        is_choice=bool(product.get("is_amazon_choice")),
        is_prime=bool(product.get("is_prime")),
    )


class MarketplaceClient:
    """Async client for the marketplace product search endpoint."""

    def __init__(
        self,
        api_key: str = RAPIDAPI_KEY,
        host: str = MARKETPLACE_API_HOST,
        country: str = MARKETPLACE_COUNTRY,
        timeout: float = REQUEST_TIMEOUT,
    ):
        self._api_key = api_key
        self._host = host
        self._country = country
        self._timeout = timeout
        self._client: httpx.AsyncClient | None = None

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def search(self, query: str, page: int = 1) -> SearchResponse:
        """Fetch one page of search results.

        Raises:
            RateLimitedError: HTTP 429
            MarketplaceError: network failure, timeout, other HTTP error or
                a payload without the expected shape
        """
        url = f"https://{self._host}/search"
        params = {"query": query, "page": str(page), "country": self._country}
        headers = {"X-RapidAPI-Key": self._api_key, "X-RapidAPI-Host": self._host}
        try:
            response = await self._get_client().get(url, params=params, headers=headers)
        except httpx.TimeoutException:
            raise MarketplaceError("timeout", f"page {page} timed out after {self._timeout}s")
        except httpx.HTTPError:
            # Sanitize: httpx exceptions may echo request headers
            raise MarketplaceError("network_error", "request failed (network/connection error)")

        if response.status_code == 429:
            raise RateLimitedError(f"HTTP 429 on page {page}")
        if response.status_code >= 400:
            raise MarketplaceError("http_error", f"HTTP {response.status_code}")

        try:
            payload = response.json()
        except ValueError:
            raise MarketplaceError("malformed_payload", "response is not JSON")

        if not isinstance(payload, dict):
            raise MarketplaceError("malformed_payload", "response is not an object")
        if payload.get("status") == "ERROR":
            error = payload.get("error") or {}
            message = error.get("message", "unknown error") if isinstance(error, dict) else str(error)
            raise MarketplaceError("api_error", message)

        data = payload.get("data")
        if not isinstance(data, dict):
            raise MarketplaceError("malformed_payload", "missing data object")
        products = data.get("products") or []
        if not isinstance(products, list):
            raise MarketplaceError("malformed_payload", "products is not a list")

        items: list[RawResult] = []
        for product in products:
            if not isinstance(product, dict):
                continue
            item = _normalize_product(product)
            if item is None:
                logger.debug(f"Skipping product without asin/title on page {page}")
                continue
            items.append(item)

        return SearchResponse(
            items=items,
            total_count=_parse_count(data.get("total_products")),
            page=page,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None
