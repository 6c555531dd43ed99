"""Azure retail price index: paginated ingestion, snapshot cache and queries."""

from .bootstrap import build_price_service, initialize_services
from .pricing import AzurePriceService, PriceEntry, ServiceConfig, ServiceState

__all__ = [
    "AzurePriceService",
    "PriceEntry",
    "ServiceConfig",
    "ServiceState",
    "build_price_service",
    "initialize_services",
]
