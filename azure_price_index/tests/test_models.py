from datetime import datetime, timezone

import pytest

from azure_price_index.pricing.errors import MalformedResponseError
from azure_price_index.pricing.models import (
    AppliedSettings,
    CacheMetadata,
    CatalogPage,
    PriceEntry,
    ServiceConfig,
)

from fakes import page, price_item


def test_price_entry_reads_camel_case_api_keys():
    item = price_item(
        "Virtual Machines",
        reservationTerm="1 Year",
        savingsPlan=[{"unitPrice": 0.07, "retailPrice": 0.08, "term": "1 Year"}],
    )
    entry = PriceEntry.from_api(item)

    assert entry.service_name == "Virtual Machines"
    assert entry.arm_region_name == "westeurope"
    assert entry.is_primary_meter_region is True
    assert entry.reservation_term == "1 Year"
    assert entry.savings_plan[0].retail_price == pytest.approx(0.08)
    assert entry.savings_plan[0].term == "1 Year"


def test_price_entry_tolerates_pascal_case_and_missing_fields():
    entry = PriceEntry.from_api({"ServiceName": "Storage", "RetailPrice": "0.5"})

    assert entry.service_name == "Storage"
    assert entry.retail_price == pytest.approx(0.5)
    assert entry.meter_name is None
    assert entry.savings_plan == ()


def test_price_entry_serializes_with_api_key_names():
    data = PriceEntry.from_api(price_item("Storage")).to_dict()
    assert data["serviceName"] == "Storage"
    assert data["armSkuName"] == "Standard_D2s_v5"
    assert data["savingsPlan"] == []
    assert "service_name" not in data


def test_catalog_page_parses_envelope():
    parsed = CatalogPage.from_api(page([price_item("Storage")], next_link="https://x/next"))

    assert len(parsed.entries) == 1
    assert parsed.next_page_link == "https://x/next"
    assert parsed.billing_currency == "USD"
    assert parsed.customer_entity_type == "Retail"
    assert parsed.count == 1


def test_catalog_page_empty_next_link_means_last_page():
    parsed = CatalogPage.from_api({"Items": [], "NextPageLink": ""})
    assert parsed.next_page_link is None


@pytest.mark.parametrize(
    "body",
    [None, [], "oops", {}, {"Items": "nope"}, {"Items": [], "NextPageLink": {"href": "x"}}, {"Items": [], "NextPageLink": 2}],
)
def test_catalog_page_rejects_malformed_bodies(body):
    with pytest.raises(MalformedResponseError):
        CatalogPage.from_api(body)


def test_cache_metadata_match_is_order_sensitive():
    settings = AppliedSettings("USD", True, ("westeurope", "northeurope"))
    meta = CacheMetadata.for_settings(settings)

    assert meta.matches(settings)
    assert not meta.matches(AppliedSettings("USD", True, ("northeurope", "westeurope")))
    assert not meta.matches(AppliedSettings("EUR", True, ("westeurope", "northeurope")))
    assert not meta.matches(AppliedSettings("USD", False, ("westeurope", "northeurope")))


def test_cache_metadata_round_trips_through_dict():
    created = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    meta = CacheMetadata("EUR", False, ("swedencentral",), created)

    data = meta.to_dict()
    assert data["createdAt"].startswith("2024-05-01T12:00:00")
    assert CacheMetadata.from_dict(data) == meta


def test_cache_metadata_accepts_zulu_timestamps():
    meta = CacheMetadata.from_dict(
        {
            "currencyCode": "USD",
            "filterByRegion": True,
            "configuredRegions": ["westeurope"],
            "createdAt": "2024-05-01T12:00:00Z",
        }
    )
    assert meta.created_at == datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def test_service_config_defaults():
    config = ServiceConfig()
    assert config.currency_code == "USD"
    assert config.filter_by_region is True
    assert config.configured_regions == ["westeurope", "northeurope", "swedencentral"]
