"""Marketplace ingestion: search pages in, deduplicated catalog components out.

Per query the pipeline walks result pages in order, filters listings down to
PC parts, extracts specs from titles, merges listings that name the same part
and attaches one offer per retailer. It degrades instead of failing:

- quota exceeded: no network call, empty result
- HTTP 429 on any page: quota marked, paging stops, partial result returned
- any other page failure: logged, next page
- affiliate conversion failure: original URLs kept
- storage failure: logged, components still returned
"""

import asyncio
import logging
import math
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

import httpx

from .affiliate import AffiliateClient, AffiliateError
from .cache import QuotaState
from .config import (
    DEFAULT_MAX_PAGES,
    FUZZY_MATCH_THRESHOLD,
    LOAD_MORE_MAX_PAGES,
    MARKETPLACE_RETAILER,
    MAX_QUERY_LENGTH,
    PAGE_DELAY,
    PRIME_SHIPPING_DAYS,
    RESULTS_PER_PAGE,
    STANDARD_SHIPPING_COST,
    STANDARD_SHIPPING_DAYS,
)
from .db import CatalogDatabase, StorageError
from .extract import ExtractedSpec, is_relevant, parse_title
from .fuzzy import similarity
from .marketplace import MarketplaceClient, MarketplaceError, RateLimitedError, RawResult
from .models import Component, Offer, Shipping, normalize_category
from .pricing import parse_price

logger = logging.getLogger(__name__)


@dataclass
class SearchPage:
    """One page of "load more" results."""
    components: list[Component] = field(default_factory=list)
    total_count: int = 0
    has_more: bool = False
    page: int = 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "components": [c.to_dict() for c in self.components],
            "total_count": self.total_count,
            "has_more": self.has_more,
            "page": self.page,
        }


def _log_safe(text: str) -> str:
    """Escape control characters so user queries cannot forge log lines."""
    if text.isprintable():
        return text
    return "".join(c if c.isprintable() or c == " " else f"\\x{ord(c):02x}" for c in text)


def _badges(item: RawResult) -> list[str]:
    badges: list[str] = []
    if item.is_best_seller:
        badges.append("Best Seller")
    if item.is_choice:
        badges.append("Amazon's Choice")
    if item.is_prime:
        badges.append("Prime")
    return badges


def _shipping(item: RawResult) -> Shipping:
    if item.is_prime:
        return Shipping(cost=0, estimated_days=PRIME_SHIPPING_DAYS, free=True)
    return Shipping(cost=STANDARD_SHIPPING_COST, estimated_days=STANDARD_SHIPPING_DAYS, free=False)


class IngestionPipeline:
    """Turns marketplace search queries into catalog components."""

    def __init__(
        self,
        client: MarketplaceClient,
        affiliate: AffiliateClient | None = None,
        store: CatalogDatabase | None = None,
        quota: QuotaState | None = None,
        page_delay: float = PAGE_DELAY,
        match_threshold: float = FUZZY_MATCH_THRESHOLD,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.time,
        retailer: str = MARKETPLACE_RETAILER,
    ):
        self.client = client
        self.affiliate = affiliate
        self.store = store
        self.quota = quota or QuotaState(retailer)
        self.page_delay = page_delay
        self.match_threshold = match_threshold
        self.retailer = retailer
        self._source = retailer.lower()
        self._sleep = sleep
        self._clock = clock

    async def ingest(
        self,
        query: str,
        category: str | None = None,
        max_pages: int = DEFAULT_MAX_PAGES,
    ) -> list[Component]:
        """Run a query across up to max_pages pages (capped at 20).

        Returns the components produced or updated by this call, in first-seen
        order. Never raises for marketplace, affiliate or storage failures.
        """
        query = (query or "").strip()[:MAX_QUERY_LENGTH]
        if not query:
            return []
        category = normalize_category(category)
        log_query = _log_safe(query)

        if self.quota.is_exceeded(self._clock()):
            logger.warning(f"Marketplace quota exceeded, skipping search: {log_query}")
            return []

        pages = max(1, min(max_pages, LOAD_MORE_MAX_PAGES))
        gathered: list[Component] = []
        candidates: dict[str, list[Component]] = {}

        for page in range(1, pages + 1):
            if page > 1 and self.page_delay > 0:
                await self._sleep(self.page_delay)
            # Another query may have spent the quota since the last page
            if page > 1 and self.quota.is_exceeded(self._clock()):
                logger.warning(f"Marketplace quota exceeded before page {page}, stopping: {log_query}")
                break
            try:
                response = await self.client.search(query, page)
            except RateLimitedError:
                self.quota.mark_exceeded(self._clock())
                logger.warning(f"Marketplace rate limited on page {page}, stopping: {log_query}")
                break
            except MarketplaceError as e:
                logger.warning(f"Page {page} failed for {log_query}: {e}")
                continue

            if not response.items:
                logger.info(f"No products on page {page}, stopping: {log_query}")
                break

            touched = await self._process_items(response.items, category, gathered, candidates)
            logger.info(
                f"Page {page}/{pages}: {len(response.items)} listings, "
                f"{len(touched)} PC components ({len(gathered)} total): {log_query}"
            )

        self._persist(gathered)
        return gathered

    async def load_page(self, query: str, page: int = 1, category: str | None = None) -> SearchPage:
        """Fetch a single page for incremental "load more" browsing (pages 1-20)."""
        query = (query or "").strip()[:MAX_QUERY_LENGTH]
        page = max(1, page)
        empty = SearchPage(page=page)
        if not query or page > LOAD_MORE_MAX_PAGES:
            return empty
        category = normalize_category(category)
        log_query = _log_safe(query)

        if self.quota.is_exceeded(self._clock()):
            logger.warning(f"Marketplace quota exceeded, skipping page {page}: {log_query}")
            return empty
        try:
            response = await self.client.search(query, page)
        except RateLimitedError:
            self.quota.mark_exceeded(self._clock())
            logger.warning(f"Marketplace rate limited on page {page}: {log_query}")
            return empty
        except MarketplaceError as e:
            logger.warning(f"Page {page} failed for {log_query}: {e}")
            return empty

        gathered: list[Component] = []
        await self._process_items(response.items, category, gathered, {})
        self._persist(gathered)

        total_pages = math.ceil(response.total_count / RESULTS_PER_PAGE)
        return SearchPage(
            components=gathered,
            total_count=response.total_count,
            has_more=page < total_pages and page < LOAD_MORE_MAX_PAGES,
            page=page,
        )

    async def _process_items(
        self,
        items: list[RawResult],
        category: str | None,
        gathered: list[Component],
        candidates: dict[str, list[Component]],
    ) -> list[Component]:
        """Filter, extract and merge one page of listings into gathered."""
        relevant = [item for item in items if is_relevant(item.title, category)]
        if not relevant:
            return []
        affiliate_urls = await self._convert_urls([item.url for item in relevant if item.url])

        touched: list[Component] = []
        for item in relevant:
            extracted = parse_title(item.title, category_hint=category)
            offer = self._make_offer(item, affiliate_urls.get(item.url, item.url))

            component = self._find_existing(item, extracted, gathered, candidates)
            if component is None:
                component = self._make_component(item, extracted)
            if all(c.id != component.id for c in gathered):
                gathered.append(component)
            component.add_offer(offer)
            if all(c.id != component.id for c in touched):
                touched.append(component)
        return touched

    def _find_existing(
        self,
        item: RawResult,
        extracted: ExtractedSpec,
        gathered: list[Component],
        candidates: dict[str, list[Component]],
    ) -> Component | None:
        """Same listing id, else the most similar same-category name at or above the threshold."""
        component_id = Component.make_id(self._source, item.source_id)
        pool = [c for c in gathered if c.category == extracted.category]
        seen = {c.id for c in pool}
        pool += [c for c in self._candidates(extracted.category, candidates) if c.id not in seen]

        best: Component | None = None
        best_score = 0.0
        for candidate in pool:
            if candidate.id == component_id:
                return candidate
            score = similarity(item.title, candidate.name)
            if score >= self.match_threshold and score > best_score:
                best, best_score = candidate, score
        if best is not None:
            logger.debug(f"Merged listing {item.source_id} into {best.id} (similarity {best_score:.2f})")
        return best

    def _candidates(self, category: str, cache: dict[str, list[Component]]) -> list[Component]:
        """Catalog components in a category, loaded once per call."""
        if self.store is None:
            return []
        if category not in cache:
            try:
                cache[category] = self.store.find_similar_by_category(category)
            except StorageError as e:
                logger.warning(f"Could not load {category} candidates for dedup: {e}")
                cache[category] = []
        return cache[category]

    async def _convert_urls(self, urls: list[str]) -> dict[str, str]:
        """Affiliate-convert a page of URLs. Any failure means originals are kept."""
        if self.affiliate is None or not urls:
            return {}
        try:
            return await self.affiliate.convert(urls)
        except (AffiliateError, httpx.HTTPError) as e:
            logger.warning(f"Affiliate conversion failed for {len(urls)} URLs, keeping originals: {e}")
            return {}

    def _make_offer(self, item: RawResult, url: str) -> Offer:
        price = parse_price(item.price)
        return Offer(
            id=f"{self._source}-offer-{item.source_id}",
            component_id="",
            retailer=self.retailer,
            price=price,
            original_price=parse_price(item.original_price) or price,
            availability="in_stock",
            url=url,
            shipping=_shipping(item),
            badges=_badges(item),
        )

    def _make_component(self, item: RawResult, extracted: ExtractedSpec) -> Component:
        return Component(
            id=Component.make_id(self._source, item.source_id),
            name=item.title,
            category=extracted.category,
            brand=extracted.brand,
            model=extracted.model,
            specifications=dict(extracted.specifications),
            rating=item.rating,
            review_count=item.review_count,
            image_url=item.image_url,
            source=self._source,
            source_id=item.source_id,
        )

    def _persist(self, components: list[Component]) -> None:
        if self.store is None:
            return
        for component in components:
            try:
                self.store.upsert_component(component)
            except StorageError as e:
                logger.warning(f"Failed to store component {component.id}: {e}")
