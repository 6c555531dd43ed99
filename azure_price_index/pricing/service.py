# azure_price_index/pricing/service.py
"""
Price service: single-flight initialization plus read-only queries.

Lifecycle
---------
UNINITIALIZED -> INITIALIZING -> READY, and READY -> INITIALIZING again when
the currency changes. Changing region filtering or the region list moves a
READY service back to UNINITIALIZED; the next read re-initializes it.

Every read starts with the same guard (_ensure_ready). Once READY, reads do
not touch the lock: the published PriceIndex is immutable and a new one only
replaces it in a single assignment after it is fully built.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import replace
from typing import Callable, Iterable, List, Mapping, Optional, Tuple

from ..utils.regions import normalize_regions
from .cache import CacheStore, NullCacheStore
from .index import PriceIndex
from .models import AppliedSettings, PriceEntry, ServiceConfig
from .retail_api import RetailPricesClient

_LOGGER = logging.getLogger(__name__)


class ServiceState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"


StateListener = Callable[[ServiceState, ServiceState], None]


def _contains(value: Optional[str], needle: str) -> bool:
    return value is not None and needle.lower() in value.lower()


class AzurePriceService:
    """Loads Azure retail prices (cache first, then the API) and answers queries."""

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        client: Optional[RetailPricesClient] = None,
        cache: Optional[CacheStore] = None,
        on_state_change: Optional[StateListener] = None,
    ) -> None:
        self._config = config or ServiceConfig()
        self._config.configured_regions = normalize_regions(self._config.configured_regions)
        self._client = client or RetailPricesClient()
        self._cache = cache or NullCacheStore()
        self._on_state_change = on_state_change

        self._index = PriceIndex.empty()
        self._state = ServiceState.UNINITIALIZED
        self._applied: Optional[AppliedSettings] = None
        self._init_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    @property
    def state(self) -> ServiceState:
        return self._state

    @property
    def config(self) -> ServiceConfig:
        return self._config

    @property
    def applied_settings(self) -> Optional[AppliedSettings]:
        """Settings the current index was built with (None before first success)."""
        return self._applied

    @property
    def is_initialized(self) -> bool:
        return self._state is ServiceState.READY

    def _set_state(self, new_state: ServiceState) -> None:
        old_state = self._state
        if old_state is new_state:
            return
        self._state = new_state
        _LOGGER.debug("Price service state %s -> %s", old_state.value, new_state.value)
        if self._on_state_change is not None:
            self._on_state_change(old_state, new_state)

    def _is_ready_for(self, settings: AppliedSettings) -> bool:
        return self._state is ServiceState.READY and self._applied == settings

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------
    async def ensure_initialized(self, currency_code: Optional[str] = None) -> None:
        """
        Make sure the index matches the current settings.

        Concurrent callers are serialized on one lock; whoever gets it after a
        successful run finds the service READY and returns without fetching.
        On failure the state goes back to UNINITIALIZED and the error is raised
        to the caller that ran the attempt.

        A requested currency is applied to the config only once the lock is
        held, so a caller waiting with another currency cannot change the
        settings of a run already in progress.
        """
        requested = self._config.snapshot()
        if currency_code:
            requested = replace(requested, currency_code=currency_code)
        if self._is_ready_for(requested):
            return

        async with self._init_lock:
            if currency_code:
                self._config.currency_code = currency_code
            settings = self._config.snapshot()
            if self._is_ready_for(settings):
                return

            self._set_state(ServiceState.INITIALIZING)
            _LOGGER.info(
                "Initializing Azure Prices Service with currency: %s", settings.currency_code
            )
            try:
                index = await self._load(settings)
            except Exception:
                _LOGGER.exception("Failed to initialize Azure Prices Service")
                self._set_state(ServiceState.UNINITIALIZED)
                raise

            # Publish: one assignment, readers see the old or the new index.
            self._index = index
            self._applied = settings
            if self._config.snapshot() == settings:
                self._set_state(ServiceState.READY)
            else:
                # A setter ran while we were loading; the next read reloads.
                self._set_state(ServiceState.UNINITIALIZED)

    async def initialize(self, currency_code: Optional[str] = None) -> None:
        """Host entry point; same as ensure_initialized."""
        await self.ensure_initialized(currency_code)

    async def _load(self, settings: AppliedSettings) -> PriceIndex:
        cached = await self._cache.try_load(settings)
        if cached is not None:
            _LOGGER.info("Loaded Azure prices from cache file")
            return cached

        index = await self._client.fetch_all(settings)
        if index.partial:
            _LOGGER.warning("Price list is incomplete; not writing it to the cache")
        else:
            await self._cache.save(settings, index)
        return index

    async def _ensure_ready(self) -> PriceIndex:
        if not self._is_ready_for(self._config.snapshot()):
            await self.ensure_initialized()
        return self._index

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------
    def set_region_filtering(self, enable: bool) -> None:
        enable = bool(enable)
        if self._config.filter_by_region == enable:
            return
        self._config.filter_by_region = enable
        self._invalidate()

    def set_configured_regions(self, regions: Iterable[str]) -> None:
        normalized = normalize_regions(regions)
        if normalized == self._config.configured_regions:
            return
        self._config.configured_regions = normalized
        self._invalidate()

    def get_configured_regions(self) -> Tuple[str, ...]:
        return tuple(self._config.configured_regions)

    def is_region_filtering_enabled(self) -> bool:
        return self._config.filter_by_region

    def _invalidate(self) -> None:
        # The index stays readable until a new one is published; the disk
        # cache is left alone and will miss on metadata.
        if self._state is ServiceState.READY:
            self._set_state(ServiceState.UNINITIALIZED)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    async def get_prices_for_service(self, service_name: str) -> List[PriceEntry]:
        index = await self._ensure_ready()
        return list(index.get(service_name))

    async def get_service_names(self) -> List[str]:
        index = await self._ensure_ready()
        return index.service_names()

    async def get_all_prices(self) -> Mapping[str, Tuple[PriceEntry, ...]]:
        index = await self._ensure_ready()
        return index.as_mapping()

    async def search_prices(
        self,
        service_name: Optional[str] = None,
        meter_name: Optional[str] = None,
        sku_name: Optional[str] = None,
        location: Optional[str] = None,
    ) -> List[PriceEntry]:
        """
        Case-insensitive substring search; supplied filters are AND-combined.

        Empty or None filters are ignored, so no filters returns every entry.
        """
        index = await self._ensure_ready()

        filters = [
            (attr, needle)
            for attr, needle in (
                ("service_name", service_name),
                ("meter_name", meter_name),
                ("sku_name", sku_name),
                ("location", location),
            )
            if needle
        ]

        return [
            entry
            for entry in index.entries()
            if all(_contains(getattr(entry, attr), needle) for attr, needle in filters)
        ]
