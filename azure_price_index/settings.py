"""User preferences (currency and regions) behind a small key/value store."""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, Iterable, List, Optional

from .config import DEFAULT_CURRENCY, DEFAULT_REGIONS, SETTINGS_FILE
from .utils.regions import normalize_regions

_LOGGER = logging.getLogger(__name__)

CURRENCY_KEY = "azureprices_currency"
REGIONS_KEY = "azureprices_regions"


class PreferenceStore:
    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError


class InMemoryPreferenceStore(PreferenceStore):
    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._values: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value


class JsonFilePreferenceStore(PreferenceStore):
    """Preferences persisted as one flat JSON object. Unreadable files count as empty."""

    def __init__(self, path: str = SETTINGS_FILE) -> None:
        self.path = os.fspath(path)

    def _read(self) -> Dict[str, Any]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as ex:
            _LOGGER.warning("Failed to load settings from %s: %s", self.path, ex)
            return {}
        return data if isinstance(data, dict) else {}

    def get(self, key: str) -> Optional[str]:
        value = self._read().get(key)
        return None if value is None else str(value)

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        try:
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
        except OSError as ex:
            _LOGGER.warning("Failed to save settings to %s: %s", self.path, ex)


class SettingsService:
    """Currency/region preferences with the library defaults as fallback."""

    def __init__(self, store: Optional[PreferenceStore] = None) -> None:
        self._store = store or InMemoryPreferenceStore()

    def save_currency_preference(self, currency: str) -> None:
        self._store.set(CURRENCY_KEY, currency.strip().upper())

    def get_currency_preference(self, default_currency: str = DEFAULT_CURRENCY) -> str:
        value = self._store.get(CURRENCY_KEY)
        return value or default_currency

    def save_regions_preference(self, regions: Iterable[str]) -> None:
        self._store.set(REGIONS_KEY, json.dumps(normalize_regions(regions)))

    def get_regions_preference(self) -> List[str]:
        raw = self._store.get(REGIONS_KEY)
        if not raw:
            return list(DEFAULT_REGIONS)
        try:
            regions = json.loads(raw)
        except ValueError:
            _LOGGER.warning("Ignoring unreadable regions preference %r", raw)
            return list(DEFAULT_REGIONS)
        if not isinstance(regions, list):
            return list(DEFAULT_REGIONS)
        return normalize_regions(str(r) for r in regions)
