from .cache import CacheStore, FileCacheStore, NullCacheStore
from .errors import (
    CachePersistError,
    MalformedResponseError,
    PartialFetchError,
    RetailPricesError,
    TransientFetchError,
)
from .index import PriceIndex, PriceIndexBuilder
from .models import CatalogPage, PriceEntry, SavingsPlanOption, ServiceConfig
from .retail_api import RetailPricesClient
from .service import AzurePriceService, ServiceState

__all__ = [
    "AzurePriceService",
    "CacheStore",
    "CachePersistError",
    "CatalogPage",
    "FileCacheStore",
    "MalformedResponseError",
    "NullCacheStore",
    "PartialFetchError",
    "PriceEntry",
    "PriceIndex",
    "PriceIndexBuilder",
    "RetailPricesClient",
    "RetailPricesError",
    "SavingsPlanOption",
    "ServiceConfig",
    "ServiceState",
    "TransientFetchError",
]
