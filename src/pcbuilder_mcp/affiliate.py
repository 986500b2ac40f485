"""Affiliate link conversion client (EarnKaro converter API)."""

import logging
from typing import Any

import httpx

from .cache import TTLCache
from .config import (
    AFFILIATE_API_TOKEN,
    AFFILIATE_API_URL,
    AFFILIATE_CACHE_MAX_SIZE,
    AFFILIATE_CACHE_TTL,
    AFFILIATE_REQUEST_TIMEOUT,
)

logger = logging.getLogger(__name__)


class AffiliateError(Exception):
    """Affiliate conversion failed with a code and message."""

    def __init__(self, code: str, message: str):
        self.code = code
        super().__init__(f"Affiliate API error [{code}]: {message}")


def _parse_converted_links(data: dict[str, Any]) -> dict[str, str]:
    """Extract {original_url: converted_url} from a converter response.

    Raises:
        AffiliateError: the payload does not carry a converted_links list
    """
    body = data.get("data")
    if body is None:
        return {}
    if not isinstance(body, dict):
        raise AffiliateError("malformed_payload", "data is not an object")
    links = body.get("converted_links") or []
    if not isinstance(links, list):
        raise AffiliateError("malformed_payload", "converted_links is not a list")
    result: dict[str, str] = {}
    for link in links:
        if not isinstance(link, dict):
            continue
        original = link.get("original_url")
        converted = link.get("converted_url")
        if isinstance(original, str) and isinstance(converted, str) and original and converted:
            result[original] = converted
    return result


class AffiliateClient:
    """Async client that rewrites product URLs into affiliate links.

    Conversion is best-effort. Callers keep the original URL for any entry
    missing from the returned mapping.
    """

    def __init__(
        self,
        api_token: str = AFFILIATE_API_TOKEN,
        base_url: str = AFFILIATE_API_URL,
        timeout: float = AFFILIATE_REQUEST_TIMEOUT,
    ):
        self._api_token = api_token
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._client: httpx.AsyncClient | None = None
        self._cache = TTLCache(ttl=AFFILIATE_CACHE_TTL, max_size=AFFILIATE_CACHE_MAX_SIZE, prefix="aff:")

    @property
    def configured(self) -> bool:
        return bool(self._api_token)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def convert(self, urls: list[str]) -> dict[str, str]:
        """Convert a batch of URLs in one request.

        Returns a mapping from original to converted URL. Cached conversions
        are served without a request. An unconfigured client returns {}.

        Raises:
            AffiliateError: network failure, HTTP error or unreadable response
        """
        if not self.configured:
            return {}

        result: dict[str, str] = {}
        pending: list[str] = []
        for url in dict.fromkeys(u for u in urls if u):
            cached = self._cache.get(url)
            if cached is not None:
                result[url] = cached
            else:
                pending.append(url)
        if not pending:
            return result

        body = {"deal": "\n".join(pending), "convert_option": "convert_only"}
        headers = {"Authorization": f"Bearer {self._api_token}"}
        try:
            response = await self._get_client().post(
                f"{self._base_url}/api/converter/public", json=body, headers=headers,
            )
        except httpx.HTTPError:
            # Sanitize: never surface the bearer token
            raise AffiliateError("network_error", "request failed (network/connection error)")
        if response.status_code >= 400:
            raise AffiliateError("http_error", f"HTTP {response.status_code}")
        try:
            data = response.json()
        except ValueError:
            raise AffiliateError("malformed_payload", "response is not JSON")
        if not isinstance(data, dict):
            raise AffiliateError("malformed_payload", "response is not an object")

        converted = _parse_converted_links(data)
        for original, affiliate_url in converted.items():
            self._cache.set(original, affiliate_url)
        result.update(converted)
        logger.debug(f"Converted {len(converted)}/{len(pending)} affiliate links")
        return result

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None
