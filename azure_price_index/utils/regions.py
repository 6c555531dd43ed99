#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
regions.py

This module defines:
1) The canonical form of an Azure region code (armRegionName).
2) The mapping from a canonical code to the token used inside the Retail API
   `$filter` expression.

KEY IDEA
--------
Users type regions in many shapes: "West Europe", " westeurope ", "WESTEUROPE".
The Retail API only understands the armRegionName code ("westeurope").

Therefore:
- normalize_region() collapses case and whitespace.
- format_region_for_filter() is a TOTAL function: a code we do not know maps to
  FALLBACK_REGION instead of raising, so a typo in the configuration can never
  abort initialization.

NOTE:
The fallback is a leniency policy inherited from the first version of this
tool. It can hide typos (e.g. "westeurpoe" silently becomes "northeurope").
Whether that is wanted is still an open product question; do not change it
without sign-off.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from ..config import FALLBACK_REGION

_LOGGER = logging.getLogger(__name__)


# ---------------------------------------------------------------------
# Known regions: armRegionName -> display name
# ---------------------------------------------------------------------
# Display names follow the Azure portal. The Retail API `location` field uses
# its own labels ("EU West"), so it is not a reliable source for these.
KNOWN_REGIONS: Dict[str, str] = {
    "westeurope": "West Europe",
    "northeurope": "North Europe",
    "swedencentral": "Sweden Central",
    "francecentral": "France Central",
    "germanywestcentral": "Germany West Central",
    "italynorth": "Italy North",
    "norwayeast": "Norway East",
    "polandcentral": "Poland Central",
    "spaincentral": "Spain Central",
    "switzerlandnorth": "Switzerland North",
    "uksouth": "UK South",
    "ukwest": "UK West",
    "eastus": "East US",
    "eastus2": "East US 2",
    "centralus": "Central US",
    "westus": "West US",
    "westus2": "West US 2",
    "westus3": "West US 3",
    "canadacentral": "Canada Central",
    "brazilsouth": "Brazil South",
    "australiaeast": "Australia East",
    "japaneast": "Japan East",
    "koreacentral": "Korea Central",
    "southeastasia": "Southeast Asia",
    "eastasia": "East Asia",
    "centralindia": "Central India",
    "southafricanorth": "South Africa North",
    "uaenorth": "UAE North",
}


@dataclass
class AzureRegion:
    """A region as offered to a presentation layer (code + display name)."""

    code: str
    display_name: str
    is_selected: bool = False


def normalize_region(region: Optional[str]) -> str:
    """
    Normalize a region string:
    - None -> ""
    - remove every whitespace character (inner spaces included)
    - lowercase

    "West Europe" -> "westeurope"
    """
    return "".join((region or "").split()).lower()


def normalize_regions(regions: Optional[Iterable[Optional[str]]]) -> List[str]:
    """
    Normalize a list of regions.

    Output is:
    - canonical codes
    - no empty values
    - stable order (first occurrence wins)
    """
    seen = set()
    out: List[str] = []

    for r in regions or []:
        code = normalize_region(r)
        if not code or code in seen:
            continue
        seen.add(code)
        out.append(code)

    return out


def format_region_for_filter(region: Optional[str]) -> str:
    """
    Return the token the Retail API expects in `armRegionName eq '<token>'`.

    Unknown codes resolve to FALLBACK_REGION; this never raises.
    """
    code = normalize_region(region)
    if code in KNOWN_REGIONS:
        return code

    _LOGGER.debug("Unknown region '%s'; using fallback '%s' in filter.", region, FALLBACK_REGION)
    return FALLBACK_REGION


def available_regions(selected: Iterable[str] = ()) -> List[AzureRegion]:
    """All known regions, sorted by display name, with `selected` ticked."""
    chosen = set(normalize_regions(selected))
    regions = [
        AzureRegion(code=code, display_name=name, is_selected=code in chosen)
        for code, name in KNOWN_REGIONS.items()
    ]
    regions.sort(key=lambda r: r.display_name)
    return regions


__all__ = [
    "AzureRegion",
    "KNOWN_REGIONS",
    "available_regions",
    "format_region_for_filter",
    "normalize_region",
    "normalize_regions",
]
