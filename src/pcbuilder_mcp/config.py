"""Configuration for PC Builder MCP server."""

import os
from pathlib import Path

# Server settings
HTTP_PORT = int(os.getenv("HTTP_PORT", "8080"))
RATE_LIMIT_REQUESTS = int(os.getenv("RATE_LIMIT_REQUESTS", "60"))  # Per client IP per minute

# Marketplace search API (RapidAPI real-time Amazon data)
RAPIDAPI_KEY = os.getenv("RAPIDAPI_KEY", "")
MARKETPLACE_API_HOST = os.getenv("MARKETPLACE_API_HOST", "real-time-amazon-data.p.rapidapi.com")
MARKETPLACE_COUNTRY = os.getenv("MARKETPLACE_COUNTRY", "IN")
MARKETPLACE_RETAILER = "Amazon"

# Affiliate link conversion API (EarnKaro)
AFFILIATE_API_TOKEN = os.getenv("AFFILIATE_API_TOKEN", "")
AFFILIATE_API_URL = os.getenv("AFFILIATE_API_URL", "https://ekaro-api.affiliaters.in")
AFFILIATE_REQUEST_TIMEOUT = 5.0  # Shorter timeout, conversion is best-effort
AFFILIATE_CACHE_TTL = 60 * 60 * 24  # Converted links are stable for a day
AFFILIATE_CACHE_MAX_SIZE = 10000

# Request settings
REQUEST_TIMEOUT = 15.0

# Ingestion settings
DEFAULT_MAX_PAGES = 3
LOAD_MORE_MAX_PAGES = 20  # Hard upper bound on pages for any query
RESULTS_PER_PAGE = 16  # Marketplace returns ~16 products per page
PAGE_DELAY = 0.5  # Seconds between page requests
QUOTA_COOLDOWN = 60 * 60 * 24  # Quota flag resets 24 hours after a 429
FUZZY_MATCH_THRESHOLD = 0.85
MAX_QUERY_LENGTH = 200
CANDIDATE_LIMIT = 200  # Max catalog candidates loaded per category for dedup
DEALS_SCAN_LIMIT = 1000  # Most recent catalog entries considered for best deals

# Shipping defaults applied to marketplace offers (smallest currency unit)
STANDARD_SHIPPING_COST = 5000
STANDARD_SHIPPING_DAYS = 3
PRIME_SHIPPING_DAYS = 1

# Compatibility settings
PSU_SAFETY_MARGIN = 1.5

# Currency (prices are stored in the smallest unit, e.g. paise)
DEFAULT_CURRENCY = os.getenv("DEFAULT_CURRENCY", "INR")

# Database path - configurable via environment variable
_PACKAGE_DATA_DIR = Path(__file__).parent.parent.parent / "data"
DEFAULT_DB_PATH = Path(os.getenv("PCBUILDER_DB_PATH", str(_PACKAGE_DATA_DIR / "catalog.db")))
