#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
config.py

Configuration constants and defaults for the Azure price index.

Every value can be overridden through an environment variable so the same code
runs against the public Retail Prices API, a proxy, or a local fixture server
without code changes.

Key idea: the service config vs these defaults
----------------------------------------------
The values below are only *defaults*. The live settings (currency, region
filtering, configured regions) belong to a ServiceConfig instance owned by the
price service and can change at runtime through its setters.
"""

import os  # Standard library: access environment variables (os.getenv).


def _env_list(name: str, default: str) -> list:
    raw = os.getenv(name, default)
    return [part.strip() for part in raw.split(",") if part.strip()]


# ---------------------------------------------------------------------
# Azure Retail Prices API
# ---------------------------------------------------------------------
# Base address and path are kept apart so that relative NextPageLink values
# can be resolved against the base address.
RETAIL_API_BASE_URL = os.getenv("AZUREPRICES_API_BASE_URL", "https://prices.azure.com")
RETAIL_API_PATH = "/api/retail/prices"

# API_VERSION:
# - The preview version exposes savingsPlan on each item.
API_VERSION = os.getenv("AZUREPRICES_API_VERSION", "2023-01-01-preview")

# ---------------------------------------------------------------------
# Defaults: currency / regions
# ---------------------------------------------------------------------
# DEFAULT_CURRENCY:
# - Used when the host does not pass a currency to initialize().
DEFAULT_CURRENCY = os.getenv("AZUREPRICES_DEFAULT_CURRENCY", "USD")

# DEFAULT_REGIONS:
# - Ordered list of armRegionName codes used for region filtering.
# - Order matters: cache snapshots are only reused for the exact same order.
DEFAULT_REGIONS = _env_list("AZUREPRICES_DEFAULT_REGIONS", "westeurope,northeurope,swedencentral")

# DEFAULT_FILTER_BY_REGION:
# - When false, the whole (very large) catalog is paged in.
DEFAULT_FILTER_BY_REGION = os.getenv("AZUREPRICES_FILTER_BY_REGION", "true").strip().lower() not in {
    "0",
    "false",
    "no",
}

# FALLBACK_REGION:
# - Filter token used for region codes we do not recognise.
# - Unknown input never aborts initialization; it is mapped here instead.
FALLBACK_REGION = "northeurope"

# ---------------------------------------------------------------------
# Pagination / HTTP
# ---------------------------------------------------------------------
# MAX_PAGES:
# - Safety ceiling for NextPageLink following (cycle safety).
MAX_PAGES = int(os.getenv("AZUREPRICES_MAX_PAGES", "50"))

# PAGE_SIZE:
# - Valid $top range for the Retail API is 1..1000.
PAGE_SIZE = 1000

HTTP_TIMEOUT_SECONDS = float(os.getenv("AZUREPRICES_HTTP_TIMEOUT", "60"))
HTTP_CONNECT_TIMEOUT_SECONDS = float(os.getenv("AZUREPRICES_HTTP_CONNECT_TIMEOUT", "10"))

# HTTP_MAX_RETRIES:
# - Retries for throttled (429) or unavailable (503) responses only.
HTTP_MAX_RETRIES = int(os.getenv("AZUREPRICES_HTTP_MAX_RETRIES", "3"))

# ---------------------------------------------------------------------
# Cache file (local price snapshot)
# ---------------------------------------------------------------------
# CACHE_FILE:
# - JSON snapshot {metadata, pricesByService} of the last full fetch.
CACHE_FILE = os.getenv("AZUREPRICES_CACHE_FILE", "cachedPricesList.json")

# CACHE_VALIDITY_HOURS:
# - Snapshots older than this are ignored even when the metadata matches.
CACHE_VALIDITY_HOURS = float(os.getenv("AZUREPRICES_CACHE_VALIDITY_HOURS", "24"))

# ---------------------------------------------------------------------
# User preferences
# ---------------------------------------------------------------------
# SETTINGS_FILE:
# - Where the CLI keeps currency/region preferences between runs.
SETTINGS_FILE = os.getenv("AZUREPRICES_SETTINGS_FILE", "azure_prices_settings.json")
