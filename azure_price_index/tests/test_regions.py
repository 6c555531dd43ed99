import pytest

from azure_price_index.config import FALLBACK_REGION
from azure_price_index.utils.regions import (
    available_regions,
    format_region_for_filter,
    normalize_region,
    normalize_regions,
)


@pytest.mark.parametrize(
    "raw",
    ["westeurope", "WestEurope", " westeurope ", "West Europe", "WEST\tEUROPE\n"],
)
def test_normalize_region_is_stable(raw):
    assert normalize_region(raw) == "westeurope"
    assert normalize_region(normalize_region(raw)) == "westeurope"


def test_normalize_region_handles_none_and_blank():
    assert normalize_region(None) == ""
    assert normalize_region("   ") == ""


def test_normalize_regions_keeps_order_and_drops_blanks_and_duplicates():
    assert normalize_regions(["Sweden Central", "", "westeurope", "WestEurope", None]) == [
        "swedencentral",
        "westeurope",
    ]


def test_known_regions_map_to_themselves():
    assert format_region_for_filter("North Europe") == "northeurope"
    assert format_region_for_filter("swedencentral") == "swedencentral"


@pytest.mark.parametrize("raw", ["westeurpoe", "mars-north", "", None, "   "])
def test_unknown_regions_fall_back_instead_of_raising(raw):
    assert format_region_for_filter(raw) == FALLBACK_REGION


def test_available_regions_marks_selected():
    regions = available_regions(["West Europe"])
    selected = [r.code for r in regions if r.is_selected]
    assert selected == ["westeurope"]
    names = [r.display_name for r in regions]
    assert names == sorted(names)
