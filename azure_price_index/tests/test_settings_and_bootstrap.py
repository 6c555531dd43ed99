import asyncio
import json

from azure_price_index.bootstrap import build_price_service, initialize_services
from azure_price_index.pricing.cache import FileCacheStore, NullCacheStore
from azure_price_index.pricing.errors import TransientFetchError
from azure_price_index.pricing.index import PriceIndex
from azure_price_index.pricing.models import PriceEntry
from azure_price_index.pricing.service import ServiceState
from azure_price_index.settings import (
    REGIONS_KEY,
    InMemoryPreferenceStore,
    JsonFilePreferenceStore,
    SettingsService,
)


class StubClient:
    def __init__(self, error=None):
        self.error = error
        self.seen = []

    async def fetch_all(self, settings):
        self.seen.append(settings)
        if self.error is not None:
            raise self.error
        return PriceIndex({"Storage": [PriceEntry(service_name="Storage")]})


def test_settings_defaults_when_nothing_stored():
    settings = SettingsService()
    assert settings.get_currency_preference() == "USD"
    assert settings.get_currency_preference("EUR") == "EUR"
    assert settings.get_regions_preference() == ["westeurope", "northeurope", "swedencentral"]


def test_settings_round_trip_and_normalize():
    settings = SettingsService(InMemoryPreferenceStore())
    settings.save_currency_preference(" eur ")
    settings.save_regions_preference(["Sweden Central", "westeurope"])

    assert settings.get_currency_preference() == "EUR"
    assert settings.get_regions_preference() == ["swedencentral", "westeurope"]


def test_unreadable_regions_preference_falls_back_to_defaults():
    store = InMemoryPreferenceStore({REGIONS_KEY: "not-json["})
    assert SettingsService(store).get_regions_preference() == ["westeurope", "northeurope", "swedencentral"]

    store.set(REGIONS_KEY, json.dumps({"a": 1}))
    assert SettingsService(store).get_regions_preference() == ["westeurope", "northeurope", "swedencentral"]


def test_json_file_store_persists_between_instances(tmp_path):
    path = tmp_path / "settings.json"
    SettingsService(JsonFilePreferenceStore(path)).save_currency_preference("GBP")

    assert SettingsService(JsonFilePreferenceStore(path)).get_currency_preference() == "GBP"


def test_json_file_store_ignores_corrupt_file(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text("{broken", encoding="utf-8")

    store = JsonFilePreferenceStore(path)
    assert store.get("anything") is None
    store.set("k", "v")
    assert store.get("k") == "v"


def test_build_price_service_picks_cache_store(tmp_path):
    with_cache = build_price_service(cache_file=str(tmp_path / "prices.json"))
    without_cache = build_price_service(cache_file=None)

    assert isinstance(with_cache._cache, FileCacheStore)
    assert isinstance(without_cache._cache, NullCacheStore)


def test_build_price_service_applies_arguments():
    service = build_price_service(
        currency_code="EUR", regions=["West Europe"], filter_by_region=False, cache_file=None, max_pages=3
    )
    assert service.config.currency_code == "EUR"
    assert service.get_configured_regions() == ("westeurope",)
    assert service.is_region_filtering_enabled() is False
    assert service._client.max_pages == 3


def test_initialize_services_applies_preferences():
    client = StubClient()
    service = build_price_service(cache_file=None, client=client)
    settings = SettingsService()
    settings.save_currency_preference("EUR")
    settings.save_regions_preference(["swedencentral"])

    assert asyncio.run(initialize_services(service, settings)) is True
    assert service.state is ServiceState.READY
    assert client.seen[0].currency_code == "EUR"
    assert client.seen[0].configured_regions == ("swedencentral",)


def test_initialize_services_logs_and_survives_failure(caplog):
    service = build_price_service(cache_file=None, client=StubClient(error=TransientFetchError("down")))

    assert asyncio.run(initialize_services(service)) is False
    assert service.state is ServiceState.UNINITIALIZED
    assert "failed to initialize" in caplog.text
