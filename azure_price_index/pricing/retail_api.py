# azure_price_index/pricing/retail_api.py
from __future__ import annotations

import logging
import re
from typing import Any, FrozenSet, List, Optional
from urllib.parse import quote, urljoin

import httpx

from ..config import (
    API_VERSION,
    HTTP_CONNECT_TIMEOUT_SECONDS,
    HTTP_TIMEOUT_SECONDS,
    MAX_PAGES,
    PAGE_SIZE,
    RETAIL_API_BASE_URL,
    RETAIL_API_PATH,
)
from ..utils.regions import format_region_for_filter, normalize_region, normalize_regions
from .errors import MalformedResponseError, PartialFetchError, TransientFetchError
from .http_policy import HttpRetryPolicy
from .index import PriceIndex, PriceIndexBuilder
from .models import CatalogPage, PriceEntry

_LOGGER = logging.getLogger(__name__)

# Failures that end a page fetch: transport/status errors from httpx and bodies
# we cannot parse.
_PAGE_ERRORS = (httpx.HTTPError, MalformedResponseError, ValueError)


# --------------------------------------------------------------------
# URL helpers
# --------------------------------------------------------------------
def region_filter_tokens(settings: Any) -> List[str]:
    """
    Filter tokens for the configured regions, in configured order.

    Empty when region filtering is disabled or no region is configured.
    """
    if not settings.filter_by_region:
        return []
    tokens: List[str] = []
    for region in normalize_regions(settings.configured_regions):
        token = format_region_for_filter(region)
        if token not in tokens:
            tokens.append(token)
    return tokens


def build_region_filter(tokens: List[str]) -> str:
    return " or ".join(f"armRegionName eq '{t}'" for t in tokens)


def sanitize_next_link(next_link: str, page_size: int = PAGE_SIZE) -> str:
    """
    Replace a non-positive or oversized $top in a next link with page_size.

    The API has been seen returning links like `$top=-1000`, which it then
    rejects on the following request.
    """
    if not next_link:
        return ""

    def _fix(m):
        try:
            val = int(m.group(2))
        except ValueError:
            val = page_size
        if val < 1 or val > 1000:
            val = page_size
        return f"{m.group(1)}{val}"

    return re.sub(r"([?&]\$top=)(-?\d+)", _fix, next_link)


def normalize_next_link(
    next_link: Optional[str],
    base_url: str,
    currency: Optional[str],
    page_size: int = PAGE_SIZE,
) -> str:
    """
    Turn a NextPageLink into the absolute URL of the next request.

    - relative links are resolved against base_url
    - invalid $top values are clamped
    - currencyCode is re-added if the link dropped it
    """
    if not next_link:
        return ""

    url = urljoin(base_url.rstrip("/") + "/", next_link.strip())
    url = sanitize_next_link(url, page_size)

    if currency and "currencyCode=" not in url:
        sep = "&" if "?" in url else "?"
        url = f"{url}{sep}currencyCode={quote(currency, safe='')}"
    return url


def _status_of(ex: BaseException) -> Optional[int]:
    if isinstance(ex, httpx.HTTPStatusError):
        return ex.response.status_code
    return None


# --------------------------------------------------------------------
# Client
# --------------------------------------------------------------------
class RetailPricesClient:
    """
    Pages through the Azure Retail Prices API and builds a PriceIndex.

    `settings` arguments are anything exposing currency_code, filter_by_region
    and configured_regions (ServiceConfig or its AppliedSettings snapshot).
    """

    def __init__(
        self,
        base_url: str = RETAIL_API_BASE_URL,
        *,
        api_version: str = API_VERSION,
        max_pages: int = MAX_PAGES,
        timeout: Optional[httpx.Timeout] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        retry_policy: Optional[HttpRetryPolicy] = None,
    ) -> None:
        if max_pages < 1:
            raise ValueError("max_pages must be >= 1")
        self.base_url = base_url.rstrip("/")
        self.api_version = api_version
        self.max_pages = max_pages
        self._timeout = timeout or httpx.Timeout(HTTP_TIMEOUT_SECONDS, connect=HTTP_CONNECT_TIMEOUT_SECONDS)
        self._transport = transport
        self._retry = retry_policy or HttpRetryPolicy()

    def build_initial_url(self, settings: Any) -> str:
        url = (
            f"{self.base_url}{RETAIL_API_PATH}"
            f"?api-version={quote(self.api_version, safe='')}"
            f"&currencyCode={quote(settings.currency_code, safe='')}"
        )
        tokens = region_filter_tokens(settings)
        if tokens:
            filter_query = build_region_filter(tokens)
            url += f"&$filter={quote(filter_query, safe='')}"
            _LOGGER.info("Using region filter: %s", filter_query)
        return url

    async def fetch_all(self, settings: Any) -> PriceIndex:
        """
        Fetch every page for the given settings.

        Raises TransientFetchError when the first page fails. A failure on a
        later page stops pagination and returns what was gathered
        (index.partial is set). Hitting max_pages is a soft stop
        (index.truncated is set).
        """
        allowed = frozenset(region_filter_tokens(settings))
        builder = PriceIndexBuilder()
        dropped = 0
        partial = False
        truncated = False

        url = self.build_initial_url(settings)
        _LOGGER.info("Loading Azure retail prices (currency=%s)", settings.currency_code)

        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            try:
                page = await self._fetch_page(client, url)
            except _PAGE_ERRORS as ex:
                raise TransientFetchError(
                    f"Failed to retrieve Azure prices from {url}: {ex}",
                    url=url,
                    status_code=_status_of(ex),
                ) from ex

            pages = 1
            dropped += self._merge(builder, page, allowed)
            next_url = normalize_next_link(page.next_page_link, self.base_url, settings.currency_code)

            while next_url:
                if pages >= self.max_pages:
                    truncated = True
                    _LOGGER.warning(
                        "Stopped after %d pages (page limit); next link was %s", pages, next_url
                    )
                    break

                _LOGGER.info("Loading page %d of Azure prices", pages + 1)
                try:
                    page = await self._fetch_page(client, next_url)
                except _PAGE_ERRORS as ex:
                    err = PartialFetchError(
                        f"Failed to retrieve page {pages + 1}: {ex}", page=pages + 1, url=next_url
                    )
                    _LOGGER.warning("%s; keeping %d pages already loaded", err, pages)
                    partial = True
                    break

                pages += 1
                dropped += self._merge(builder, page, allowed)
                next_url = normalize_next_link(page.next_page_link, self.base_url, settings.currency_code)

        index = builder.build(pages_fetched=pages, partial=partial, truncated=truncated)
        if dropped:
            _LOGGER.info("Dropped %d items outside the configured regions", dropped)
        if builder.skipped:
            _LOGGER.debug("Skipped %d items without serviceName", builder.skipped)
        _LOGGER.info(
            "Loaded %d pages of Azure prices with %d items for %d services",
            pages,
            index.entry_count,
            index.service_count,
        )
        return index

    async def _fetch_page(self, client: httpx.AsyncClient, url: str) -> CatalogPage:
        attempt = 0
        while True:
            resp = await client.get(url)
            if self._retry.should_retry(resp.status_code, attempt):
                _LOGGER.info(
                    "Retail API returned %d; retrying (attempt %d/%d)",
                    resp.status_code,
                    attempt + 1,
                    self._retry.max_retries,
                )
                await self._retry.wait_async(attempt, resp.headers.get("Retry-After"))
                attempt += 1
                continue
            resp.raise_for_status()
            break

        try:
            data = resp.json()
        except ValueError as ex:
            raise MalformedResponseError(f"response body is not valid JSON: {ex}") from ex
        return CatalogPage.from_api(data)

    @staticmethod
    def _merge(builder: PriceIndexBuilder, page: CatalogPage, allowed: FrozenSet[str]) -> int:
        """Add a page to the builder; returns how many entries the region check dropped."""
        dropped = 0
        for entry in page.entries:
            if allowed and not _in_regions(entry, allowed):
                dropped += 1
                continue
            builder.add(entry)
        return dropped


def _in_regions(entry: PriceEntry, allowed: FrozenSet[str]) -> bool:
    # The server-side $filter is not trusted on its own.
    region = normalize_region(entry.arm_region_name) or normalize_region(entry.location)
    return region in allowed
