"""Error types raised or logged by the pricing layer.

Only TransientFetchError ever reaches the caller of initialization. The other
types describe failures that are logged and degraded around.
"""

from __future__ import annotations

from typing import Optional


class RetailPricesError(Exception):
    """Base class for pricing errors."""


class MalformedResponseError(RetailPricesError):
    """The Retail API answered with a body we cannot interpret."""


class TransientFetchError(RetailPricesError):
    """The first page could not be fetched; nothing was indexed."""

    def __init__(self, message: str, *, url: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class PartialFetchError(RetailPricesError):
    """A later page failed; the pages fetched before it are kept."""

    def __init__(self, message: str, *, page: int, url: Optional[str] = None):
        super().__init__(message)
        self.page = page
        self.url = url


class CachePersistError(RetailPricesError):
    """Writing the cache snapshot failed."""
