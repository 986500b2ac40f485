"""PC Builder MCP Server - search PC parts, assemble builds, check compatibility."""

import json
import logging
import time
from collections import deque
from contextlib import asynccontextmanager
from typing import Any, Literal

from fastmcp import FastMCP
from mcp.types import ToolAnnotations
from starlette.middleware import Middleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse
from starlette.routing import Route

from . import __version__
from .affiliate import AffiliateClient
from .builds import BuildNotFoundError, BuildService, BuildValidationError
from .cache import QuotaState
from .config import (
    DEALS_SCAN_LIMIT,
    DEFAULT_CURRENCY,
    DEFAULT_MAX_PAGES,
    HTTP_PORT,
    LOAD_MORE_MAX_PAGES,
    MARKETPLACE_RETAILER,
    MAX_QUERY_LENGTH,
    RATE_LIMIT_REQUESTS,
)
from .db import CatalogDatabase, StorageError, close_db, get_db
from .ingestion import IngestionPipeline
from .marketplace import MarketplaceClient
from .models import Component, normalize_category
from .pricing import best_offer, rank_deals

logger = logging.getLogger(__name__)

# Global state
_marketplace: MarketplaceClient | None = None
_affiliate: AffiliateClient | None = None
_pipeline: IngestionPipeline | None = None
_builds: BuildService | None = None
_catalog: CatalogDatabase | None = None
_quota = QuotaState(MARKETPLACE_RETAILER)  # Process-wide, survives pipeline rebuilds


@asynccontextmanager
async def lifespan(app):
    """Open the catalog and wire clients into the pipeline and build service."""
    global _marketplace, _affiliate, _pipeline, _builds, _catalog
    db = _catalog = get_db()
    db._ensure_db()
    logger.info(f"Catalog ready: {db.count_components()} components")

    _marketplace = MarketplaceClient()
    if not _marketplace.configured:
        logger.warning("RAPIDAPI_KEY not set, marketplace search disabled")

    _affiliate = AffiliateClient()
    if _affiliate.configured:
        logger.info("Affiliate link conversion enabled")

    _pipeline = IngestionPipeline(_marketplace, affiliate=_affiliate, store=db, quota=_quota)
    _builds = BuildService(db)

    yield

    if _affiliate:
        await _affiliate.close()
    if _marketplace:
        await _marketplace.close()
    _catalog = None
    close_db()


# Create MCP server
mcp = FastMCP(
    name="pcbuilder",
    instructions="PC part search and build assembly. Use pc_search_components to find parts (marketplace results are merged into one entry per part), pc_get_component and pc_best_deals to browse stored parts, pc_create_build to start a build, and pc_update_build to add or remove parts. Every build response includes totals and a compatibility report.",
    lifespan=lifespan,
)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Sliding one-minute window of requests per client IP.

    /health is exempt. At most MAX_TRACKED_CLIENTS clients are tracked; when
    the table is full and nothing is stale, new clients are refused.
    """

    WINDOW = 60.0
    MAX_TRACKED_CLIENTS = 10_000

    def __init__(self, app, requests_per_minute: int = RATE_LIMIT_REQUESTS, clock=time.monotonic):
        super().__init__(app)
        self.requests_per_minute = requests_per_minute
        self._clock = clock
        self._hits: dict[str, deque[float]] = {}

    @staticmethod
    def _client_ip(request) -> str:
        # Rightmost X-Forwarded-For entry is the one our proxy appended
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",")[-1].strip() or "unknown"
        return request.client.host if request.client else "unknown"

    def _prune(self, now: float) -> None:
        cutoff = now - self.WINDOW
        for ip in [ip for ip, hits in self._hits.items() if not hits or hits[-1] <= cutoff]:
            del self._hits[ip]

    def is_limited(self, client_ip: str) -> bool:
        now = self._clock()
        hits = self._hits.get(client_ip)
        if hits is None:
            if len(self._hits) >= self.MAX_TRACKED_CLIENTS:
                self._prune(now)
                if len(self._hits) >= self.MAX_TRACKED_CLIENTS:
                    return True
            hits = self._hits[client_ip] = deque()

        while hits and hits[0] <= now - self.WINDOW:
            hits.popleft()
        if len(hits) >= self.requests_per_minute:
            return True
        hits.append(now)
        return False

    async def dispatch(self, request, call_next):
        if request.url.path == "/health":
            return await call_next(request)
        if self.is_limited(self._client_ip(request)):
            return JSONResponse(
                status_code=429,
                content={"error": "Rate limit exceeded", "retry_after": int(self.WINDOW)},
                headers={"Retry-After": str(int(self.WINDOW))},
            )
        return await call_next(request)


def _parse_object_param(value: dict[str, Any] | str | None) -> dict[str, Any] | None:
    """Parse an object parameter that may arrive as a JSON string from some MCP clients."""
    if value is None:
        return None
    if isinstance(value, dict):
        return value
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
            if isinstance(parsed, dict):
                return parsed
        except json.JSONDecodeError:
            logger.debug(f"Failed to parse object parameter as JSON: {value[:100]!r}")
    return None


def _quota_status() -> dict[str, Any]:
    return {"quota_exceeded": True, "retry_after": int(_quota.retry_after())}


# Tools

@mcp.tool(
    annotations=ToolAnnotations(
        title="Search PC Components",
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=True,
    )
)
async def pc_search_components(
    query: str,
    category: str | None = None,
    max_pages: int = DEFAULT_MAX_PAGES,
) -> dict:
    """Search marketplaces for PC parts and merge listings into catalog components.

    Args:
        query: Search keywords (e.g., "Ryzen 7 7800X3D", "RTX 4070 graphics card")
        category: Optional category hint: CPU, GPU, RAM, Motherboard, Storage,
                  PSU, Case, Cooling
        max_pages: Result pages to fetch (default 3, max 20)

    Returns:
        results: Components with specifications and one offer per retailer
                 (prices in the smallest currency unit)
        total: Number of components
        quota_exceeded/retry_after: Present when the marketplace quota is spent
    """
    if not _marketplace or not _marketplace.configured:
        return {"error": "Marketplace search not configured. Set RAPIDAPI_KEY to enable it."}
    if not _pipeline:
        raise RuntimeError("Pipeline not initialized")
    if not query or not query.strip():
        return {"error": "Query is required"}
    if len(query) > MAX_QUERY_LENGTH:
        return {"error": f"Query too long (max {MAX_QUERY_LENGTH} characters)"}
    if category and normalize_category(category) is None:
        return {"error": f"Unknown category: '{category}'", "code": "invalid_category"}

    if _quota.is_exceeded():
        return {"results": [], "total": 0, **_quota_status()}

    components = await _pipeline.ingest(query, category=category, max_pages=max(1, min(max_pages, LOAD_MORE_MAX_PAGES)))
    result: dict[str, Any] = {
        "results": [c.to_dict() for c in components],
        "total": len(components),
        "currency": DEFAULT_CURRENCY,
    }
    if _quota.is_exceeded():
        result.update(_quota_status())
    return result


@mcp.tool(
    annotations=ToolAnnotations(
        title="Load More Results",
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=True,
    )
)
async def pc_load_more(
    query: str,
    page: int = 1,
    category: str | None = None,
) -> dict:
    """Fetch one more page of marketplace results for infinite scrolling.

    Args:
        query: Same keywords as the original search
        page: Page number (1-20)
        category: Optional category hint

    Returns:
        components, total_count, has_more, page
    """
    if not _marketplace or not _marketplace.configured:
        return {"error": "Marketplace search not configured. Set RAPIDAPI_KEY to enable it."}
    if not _pipeline:
        raise RuntimeError("Pipeline not initialized")
    if not query or not query.strip():
        return {"error": "Query is required"}
    if len(query) > MAX_QUERY_LENGTH:
        return {"error": f"Query too long (max {MAX_QUERY_LENGTH} characters)"}
    if category and normalize_category(category) is None:
        return {"error": f"Unknown category: '{category}'", "code": "invalid_category"}

    result = (await _pipeline.load_page(query, page=page, category=category)).to_dict()
    if _quota.is_exceeded():
        result.update(_quota_status())
    return result


@mcp.tool(
    annotations=ToolAnnotations(
        title="Get Component",
        readOnlyHint=True,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    )
)
async def pc_get_component(component_id: str) -> dict:
    """Get a stored catalog component with all of its offers.

    Args:
        component_id: Component id from pc_search_components (e.g., "amazon-B0BCF57FL5")

    Returns:
        The component plus best_offer (cheapest orderable offer, or null)
    """
    if not _catalog:
        raise RuntimeError("Catalog not initialized")
    if not component_id or not component_id.strip():
        return {"error": "component_id is required", "code": "missing_field"}
    try:
        component = _catalog.find_component(component_id.strip())
    except StorageError as e:
        logger.error(f"Get component failed: {e}")
        return {"error": "Could not load component. Check server logs for details."}
    if component is None:
        return {"error": f"Component not found: {component_id}", "code": "component_not_found"}

    offer = best_offer(component)
    return {**component.to_dict(), "best_offer": offer.to_dict() if offer else None}


@mcp.tool(
    annotations=ToolAnnotations(
        title="Best Deals",
        readOnlyHint=True,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    )
)
async def pc_best_deals(category: str | None = None, limit: int = 20) -> dict:
    """List stored components with the biggest discounts on their best offer.

    Only components already in the catalog are ranked; run pc_search_components
    first to pull in fresh listings.

    Args:
        category: Optional category: CPU, GPU, RAM, Motherboard, Storage,
                  PSU, Case, Cooling, Other
        limit: Max deals to return (1-100, default 20)

    Returns:
        deals: [{component, best_offer, discount}], biggest discount first
    """
    if not _catalog:
        raise RuntimeError("Catalog not initialized")
    canonical = normalize_category(category) if category else None
    if category and canonical is None:
        return {"error": f"Unknown category: '{category}'", "code": "invalid_category"}

    try:
        components = _catalog.find_components(canonical, limit=DEALS_SCAN_LIMIT)
    except StorageError as e:
        logger.error(f"Best deals failed: {e}")
        return {"error": "Could not load components. Check server logs for details."}

    deals = rank_deals(components, limit=max(1, min(limit, 100)))
    return {
        "deals": [
            {"component": c.to_dict(), "best_offer": offer.to_dict(), "discount": offer.discount}
            for c, offer in deals
        ],
        "total": len(deals),
        "currency": DEFAULT_CURRENCY,
    }


@mcp.tool(
    annotations=ToolAnnotations(
        title="Create Build",
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=False,
        openWorldHint=False,
    )
)
async def pc_create_build(name: str, description: str = "") -> dict:
    """Create a new, empty PC build.

    Args:
        name: Build name (e.g., "1440p gaming rig")
        description: Optional notes

    Returns:
        The build with zero totals and a compatibility report listing the
        missing core components.
    """
    if not _builds:
        raise RuntimeError("Build service not initialized")
    try:
        return _builds.create_build(name, description).to_dict()
    except BuildValidationError as e:
        return e.to_dict()
    except StorageError as e:
        logger.error(f"Create build failed: {e}")
        return {"error": "Could not save build. Check server logs for details."}


@mcp.tool(
    annotations=ToolAnnotations(
        title="Get Build",
        readOnlyHint=True,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    )
)
async def pc_get_build(build_id: str) -> dict:
    """Get a build with freshly computed totals and compatibility report.

    Args:
        build_id: Build id from pc_create_build
    """
    if not _builds:
        raise RuntimeError("Build service not initialized")
    try:
        return _builds.get_build(build_id).to_dict()
    except BuildNotFoundError as e:
        return e.to_dict()
    except StorageError as e:
        logger.error(f"Get build failed: {e}")
        return {"error": "Could not load build. Check server logs for details."}


@mcp.tool(
    annotations=ToolAnnotations(
        title="List Builds",
        readOnlyHint=True,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    )
)
async def pc_list_builds(limit: int = 20) -> dict:
    """List saved builds, most recently updated first.

    Args:
        limit: Max builds to return (1-100, default 20)
    """
    if not _builds:
        raise RuntimeError("Build service not initialized")
    try:
        builds = _builds.list_builds(max(1, min(limit, 100)))
    except StorageError as e:
        logger.error(f"List builds failed: {e}")
        return {"error": "Could not load builds. Check server logs for details."}
    return {
        "builds": [
            {
                "id": b.id,
                "name": b.name,
                "total_price": b.totals.total_price,
                "has_unknown_prices": b.totals.has_unknown_prices,
                "is_compatible": b.compatibility.is_compatible,
                "completion_percentage": b.completion_percentage,
                "updated_at": b.updated_at,
            }
            for b in builds
        ],
        "total": len(builds),
    }


@mcp.tool(
    annotations=ToolAnnotations(
        title="Update Build",
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    )
)
async def pc_update_build(
    build_id: str,
    action: Literal["add", "remove"],
    category: str,
    component: dict[str, Any] | str | None = None,
) -> dict:
    """Add a component to a build slot or remove one. One component per category.

    Args:
        build_id: Build id
        action: "add" or "remove"
        category: CPU, GPU, RAM, Motherboard, Storage, PSU, Case, Cooling or Other
        component: For "add": a component object from pc_search_components,
                   or {"id": "<catalog id>"} to reference a stored component

    Returns:
        The full build with recomputed totals and compatibility. Incompatible
        builds are still returned; only malformed requests return an error
        with a machine-readable code.
    """
    if not _builds:
        raise RuntimeError("Build service not initialized")
    payload: dict[str, Any] = {"buildId": build_id, "action": action, "category": category}
    if component is not None:
        parsed = _parse_object_param(component)
        payload["component"] = parsed if parsed is not None else component
    try:
        return _builds.apply(payload).to_dict()
    except (BuildValidationError, BuildNotFoundError) as e:
        return e.to_dict()
    except StorageError as e:
        logger.error(f"Update build failed: {e}")
        return {"error": "Could not save build. Check server logs for details."}


@mcp.tool(
    annotations=ToolAnnotations(
        title="Delete Build",
        readOnlyHint=False,
        destructiveHint=True,
        idempotentHint=True,
        openWorldHint=False,
    )
)
async def pc_delete_build(build_id: str) -> dict:
    """Delete a saved build.

    Args:
        build_id: Build id
    """
    if not _builds:
        raise RuntimeError("Build service not initialized")
    try:
        _builds.delete_build(build_id)
    except BuildNotFoundError as e:
        return e.to_dict()
    except StorageError as e:
        logger.error(f"Delete build failed: {e}")
        return {"error": "Could not delete build. Check server logs for details."}
    return {"deleted": build_id}


@mcp.tool(
    annotations=ToolAnnotations(
        title="Check Compatibility",
        readOnlyHint=True,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    )
)
async def pc_check_compatibility(components: dict[str, Any] | str) -> dict:
    """Check a set of parts for compatibility without saving a build.

    Args:
        components: Mapping of category to component object, e.g.
            {"CPU": {"name": "...", "specifications": {"socket": "AM5", "tdp": 120}},
             "Motherboard": {"name": "...", "specifications": {"socket": "AM5", "memoryType": "DDR5"}}}

    Returns:
        is_compatible, errors, warnings, estimated_wattage, checked_at
    """
    if not _builds:
        raise RuntimeError("Build service not initialized")
    parsed = _parse_object_param(components)
    if parsed is None:
        return {"error": "components must be an object of category -> component", "code": "missing_field"}

    selection: dict[str, Component] = {}
    for raw_category, data in parsed.items():
        category = normalize_category(raw_category)
        if category is None:
            return {"error": f"Unknown category: '{raw_category}'", "code": "invalid_category"}
        if not isinstance(data, dict):
            return {"error": f"Component for {category} must be an object", "code": "invalid_component"}
        try:
            selection[category] = Component.from_dict({**data, "category": category})
        except (AttributeError, TypeError, ValueError) as e:
            return {"error": f"Malformed {category} component: {e}", "code": "invalid_component"}

    return _builds.check(selection).to_dict()


# Health check endpoint
async def health(request):
    return JSONResponse({
        "status": "healthy",
        "service": "pcbuilder-mcp",
        "version": __version__,
        "currency": DEFAULT_CURRENCY,
        "marketplace_quota_exceeded": _quota.is_exceeded(),
    })


# Create ASGI app
def create_app():
    """Create the ASGI application."""
    # stateless_http=True: MCP clients may not forward session cookies
    app = mcp.http_app(
        path="/mcp",
        middleware=[Middleware(RateLimitMiddleware, requests_per_minute=RATE_LIMIT_REQUESTS)],
        transport="streamable-http",
        stateless_http=True,
    )
    app.routes.append(Route("/health", health))
    return app


app = create_app()


class _HealthFilterLog(logging.Filter):
    """Suppress noisy /health access logs from container healthchecks."""

    def filter(self, record: logging.LogRecord) -> bool:
        return "/health" not in record.getMessage()


def main():
    """Run the server."""
    import uvicorn

    logging.getLogger("uvicorn.access").addFilter(_HealthFilterLog())

    uvicorn.run(
        "pcbuilder_mcp.server:app",
        host="0.0.0.0",
        port=HTTP_PORT,
        lifespan="on",
    )


if __name__ == "__main__":
    main()
