"""Wiring helpers for hosts that embed the price service."""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from .config import CACHE_FILE, DEFAULT_FILTER_BY_REGION, MAX_PAGES
from .pricing.cache import CacheStore, FileCacheStore, NullCacheStore
from .pricing.models import ServiceConfig
from .pricing.retail_api import RetailPricesClient
from .pricing.service import AzurePriceService
from .settings import SettingsService

_LOGGER = logging.getLogger(__name__)


def build_price_service(
    *,
    currency_code: Optional[str] = None,
    regions: Optional[Iterable[str]] = None,
    filter_by_region: bool = DEFAULT_FILTER_BY_REGION,
    cache_file: Optional[str] = CACHE_FILE,
    max_pages: int = MAX_PAGES,
    client: Optional[RetailPricesClient] = None,
) -> AzurePriceService:
    """
    Build a service with the file cache, or without caching when cache_file is
    empty/None.
    """
    config = ServiceConfig(filter_by_region=filter_by_region)
    if currency_code:
        config.currency_code = currency_code
    if regions is not None:
        config.configured_regions = list(regions)

    cache: CacheStore = FileCacheStore(cache_file) if cache_file else NullCacheStore()
    return AzurePriceService(
        config=config,
        client=client or RetailPricesClient(max_pages=max_pages),
        cache=cache,
    )


async def initialize_services(
    service: AzurePriceService,
    settings: Optional[SettingsService] = None,
) -> bool:
    """
    Startup hook: apply stored preferences, then initialize the price service.

    Initialization failure is logged, not raised, so the host keeps running; the
    service retries on the next query.
    """
    currency = None
    if settings is not None:
        currency = settings.get_currency_preference(service.config.currency_code)
        service.set_configured_regions(settings.get_regions_preference())

    try:
        await service.initialize(currency)
    except Exception:
        _LOGGER.exception("Azure price service failed to initialize at startup")
        return False
    return True
