import asyncio
import json
import logging
import os
import tempfile
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

from ..config import CACHE_FILE, CACHE_VALIDITY_HOURS
from .errors import CachePersistError, MalformedResponseError
from .index import PriceIndex
from .models import AppliedSettings, CacheMetadata, PriceEntry

_LOGGER = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_settings(config: Any) -> AppliedSettings:
    if isinstance(config, AppliedSettings):
        return config
    return config.snapshot()


class CacheStore:
    """
    Persistence for price index snapshots.

    try_load() returns None for every kind of miss; save() returns False when
    the snapshot could not be written. Neither raises: the cache only saves
    network calls.
    """

    async def try_load(self, config: Any) -> Optional[PriceIndex]:
        raise NotImplementedError

    async def save(self, config: Any, index: PriceIndex) -> bool:
        raise NotImplementedError


class NullCacheStore(CacheStore):
    """Store for the non-caching variant: always misses, never writes."""

    async def try_load(self, config: Any) -> Optional[PriceIndex]:
        return None

    async def save(self, config: Any, index: PriceIndex) -> bool:
        return False


class FileCacheStore(CacheStore):
    """
    JSON snapshot on local disk:

        {"metadata": {...}, "pricesByService": {"<serviceName>": [item, ...]}}

    A snapshot is used only when it is younger than `validity` and its metadata
    matches the currency, filter flag and region list (same order) exactly.
    """

    def __init__(
        self,
        path: str = CACHE_FILE,
        validity: timedelta = timedelta(hours=CACHE_VALIDITY_HOURS),
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.path = os.fspath(path)
        self.validity = validity
        self._clock = clock

    async def try_load(self, config: Any) -> Optional[PriceIndex]:
        return await asyncio.to_thread(self._load_sync, _as_settings(config))

    async def save(self, config: Any, index: PriceIndex) -> bool:
        return await asyncio.to_thread(self._save_sync, _as_settings(config), index)

    def clear(self) -> bool:
        try:
            os.remove(self.path)
        except FileNotFoundError:
            return False
        _LOGGER.info("Removed cache file %s", self.path)
        return True

    # ------------------------------------------------------------------
    def _load_sync(self, settings: AppliedSettings) -> Optional[PriceIndex]:
        if not os.path.exists(self.path):
            _LOGGER.info("Cache file %s does not exist", self.path)
            return None

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as ex:
            _LOGGER.warning("Failed to read cache file %s: %s", self.path, ex)
            return None

        if not isinstance(data, dict) or not isinstance(data.get("metadata"), dict):
            _LOGGER.warning("Cache file %s is missing metadata", self.path)
            return None

        try:
            meta = CacheMetadata.from_dict(data["metadata"])
        except (KeyError, TypeError, ValueError) as ex:
            _LOGGER.warning("Cache file %s has invalid metadata: %s", self.path, ex)
            return None

        age = self._clock() - meta.created_at
        if age < timedelta(0):
            _LOGGER.warning(
                "Cache file %s was created in the future (%s); ignoring it", self.path, meta.created_at.isoformat()
            )
            return None
        if age > self.validity:
            _LOGGER.info(
                "Cache file is expired (older than %s hours)", self.validity.total_seconds() / 3600
            )
            return None

        if not meta.matches(settings):
            _LOGGER.info("Cache settings don't match current settings")
            return None

        try:
            index = self._index_from_dict(data.get("pricesByService"))
        except (TypeError, ValueError, MalformedResponseError) as ex:
            _LOGGER.warning("Cache file %s contains invalid data: %s", self.path, ex)
            return None

        _LOGGER.info(
            "Loaded cache with %d items for %d services", index.entry_count, index.service_count
        )
        return index

    @staticmethod
    def _index_from_dict(raw: Any) -> PriceIndex:
        if not isinstance(raw, dict):
            raise ValueError("pricesByService is not an object")

        buckets: Dict[str, list] = {}
        for name, items in raw.items():
            if not isinstance(items, list):
                raise ValueError(f"entries for {name!r} are not a list")
            # Keep the bucket invariant even for hand-edited files.
            entries = [PriceEntry.from_api(it) for it in items]
            buckets[name] = [e for e in entries if e.service_name == name]
        return PriceIndex(buckets)

    def _save_sync(self, settings: AppliedSettings, index: PriceIndex) -> bool:
        payload = {
            "metadata": CacheMetadata.for_settings(settings, created_at=self._clock()).to_dict(),
            "pricesByService": {
                name: [e.to_dict() for e in entries] for name, entries in index.as_mapping().items()
            },
        }

        try:
            self._write_atomic(payload)
        except CachePersistError as ex:
            _LOGGER.error("Error saving to cache file: %s", ex)
            return False

        _LOGGER.info("Saved Azure prices to cache file %s", self.path)
        return True

    def _write_atomic(self, payload: Dict[str, Any]) -> None:
        # Readers see the old file or the new one, never a partial write.
        directory = os.path.dirname(os.path.abspath(self.path))
        tmp_path = None
        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(prefix=".prices-", suffix=".tmp", dir=directory)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.path)
            tmp_path = None
        except (OSError, TypeError, ValueError) as ex:
            raise CachePersistError(f"{self.path}: {ex}") from ex
        finally:
            if tmp_path and os.path.exists(tmp_path):
                try:
                    os.remove(tmp_path)
                except OSError:
                    _LOGGER.warning("Could not remove temporary cache file %s", tmp_path)
