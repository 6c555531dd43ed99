"""In-memory price index: service name -> ordered price entries."""

from __future__ import annotations

from types import MappingProxyType
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

from .models import PriceEntry


class PriceIndex:
    """
    Read-only mapping from serviceName to its price entries.

    Built once (by the Retail API client or the cache store) and never mutated
    afterwards, so it can be handed to concurrent readers and swapped out as a
    whole on re-initialization.
    """

    __slots__ = ("_buckets", "_view", "pages_fetched", "partial", "truncated")

    def __init__(
        self,
        buckets: Optional[Mapping[str, Iterable[PriceEntry]]] = None,
        *,
        pages_fetched: int = 0,
        partial: bool = False,
        truncated: bool = False,
    ) -> None:
        self._buckets: Dict[str, Tuple[PriceEntry, ...]] = {
            name: tuple(entries) for name, entries in (buckets or {}).items() if name
        }
        self._view = MappingProxyType(self._buckets)
        self.pages_fetched = pages_fetched
        # partial: a page after the first failed and pagination stopped early.
        self.partial = partial
        # truncated: the page ceiling was hit while a next link was still present.
        self.truncated = truncated

    @classmethod
    def empty(cls) -> "PriceIndex":
        return cls()

    def get(self, service_name: str) -> Tuple[PriceEntry, ...]:
        return self._buckets.get(service_name, ())

    def service_names(self) -> List[str]:
        return sorted(self._buckets)

    def as_mapping(self) -> Mapping[str, Tuple[PriceEntry, ...]]:
        return self._view

    def entries(self) -> Iterator[PriceEntry]:
        for bucket in self._buckets.values():
            yield from bucket

    @property
    def service_count(self) -> int:
        return len(self._buckets)

    @property
    def entry_count(self) -> int:
        return sum(len(b) for b in self._buckets.values())

    def __len__(self) -> int:
        return len(self._buckets)

    def __contains__(self, service_name: object) -> bool:
        return service_name in self._buckets

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PriceIndex):
            return NotImplemented
        return self._buckets == other._buckets

    def __repr__(self) -> str:
        return f"PriceIndex(services={self.service_count}, entries={self.entry_count})"


class PriceIndexBuilder:
    """Accumulates entries page by page; build() freezes them into a PriceIndex."""

    def __init__(self) -> None:
        self._buckets: Dict[str, List[PriceEntry]] = {}
        self.skipped = 0

    def add(self, entry: PriceEntry) -> bool:
        # Entries without a service name cannot be looked up; drop them.
        if not entry.service_name:
            self.skipped += 1
            return False
        self._buckets.setdefault(entry.service_name, []).append(entry)
        return True

    def build(self, *, pages_fetched: int = 0, partial: bool = False, truncated: bool = False) -> PriceIndex:
        return PriceIndex(
            self._buckets,
            pages_fetched=pages_fetched,
            partial=partial,
            truncated=truncated,
        )
