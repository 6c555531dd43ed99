"""Typed records for Retail API items, pages, cache metadata and service config."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from ..config import DEFAULT_CURRENCY, DEFAULT_FILTER_BY_REGION, DEFAULT_REGIONS
from .errors import MalformedResponseError


def _pick(data: Dict[str, Any], key: str) -> Any:
    """Read a camelCase key, falling back to its PascalCase spelling."""
    value = data.get(key)
    if value is None:
        value = data.get(key[:1].upper() + key[1:])
    return value


def _as_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _as_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


@dataclass(frozen=True)
class SavingsPlanOption:
    unit_price: float = 0.0
    retail_price: float = 0.0
    term: Optional[str] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "SavingsPlanOption":
        return cls(
            unit_price=_as_float(_pick(data, "unitPrice")),
            retail_price=_as_float(_pick(data, "retailPrice")),
            term=_as_str(_pick(data, "term")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"unitPrice": self.unit_price, "retailPrice": self.retail_price, "term": self.term}


@dataclass(frozen=True)
class PriceEntry:
    """One priced meter/SKU combination as returned by the Retail Prices API."""

    currency_code: Optional[str] = None
    tier_minimum_units: float = 0.0
    retail_price: float = 0.0
    unit_price: float = 0.0
    arm_region_name: Optional[str] = None
    location: Optional[str] = None
    effective_start_date: Optional[str] = None
    effective_end_date: Optional[str] = None
    meter_id: Optional[str] = None
    meter_name: Optional[str] = None
    product_id: Optional[str] = None
    product_name: Optional[str] = None
    sku_id: Optional[str] = None
    sku_name: Optional[str] = None
    service_id: Optional[str] = None
    service_name: Optional[str] = None
    service_family: Optional[str] = None
    unit_of_measure: Optional[str] = None
    type: Optional[str] = None
    is_primary_meter_region: bool = False
    arm_sku_name: Optional[str] = None
    savings_plan: Tuple[SavingsPlanOption, ...] = ()
    reservation_term: Optional[str] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "PriceEntry":
        if not isinstance(data, dict):
            raise MalformedResponseError(f"price item is not an object: {type(data).__name__}")

        plans = _pick(data, "savingsPlan") or []
        if not isinstance(plans, list):
            plans = []

        return cls(
            currency_code=_as_str(_pick(data, "currencyCode")),
            tier_minimum_units=_as_float(_pick(data, "tierMinimumUnits")),
            retail_price=_as_float(_pick(data, "retailPrice")),
            unit_price=_as_float(_pick(data, "unitPrice")),
            arm_region_name=_as_str(_pick(data, "armRegionName")),
            location=_as_str(_pick(data, "location")),
            effective_start_date=_as_str(_pick(data, "effectiveStartDate")),
            effective_end_date=_as_str(_pick(data, "effectiveEndDate")),
            meter_id=_as_str(_pick(data, "meterId")),
            meter_name=_as_str(_pick(data, "meterName")),
            product_id=_as_str(_pick(data, "productId")),
            product_name=_as_str(_pick(data, "productName")),
            sku_id=_as_str(_pick(data, "skuId")),
            sku_name=_as_str(_pick(data, "skuName")),
            service_id=_as_str(_pick(data, "serviceId")),
            service_name=_as_str(_pick(data, "serviceName")),
            service_family=_as_str(_pick(data, "serviceFamily")),
            unit_of_measure=_as_str(_pick(data, "unitOfMeasure")),
            type=_as_str(_pick(data, "type")),
            is_primary_meter_region=bool(_pick(data, "isPrimaryMeterRegion") or False),
            arm_sku_name=_as_str(_pick(data, "armSkuName")),
            savings_plan=tuple(SavingsPlanOption.from_api(p) for p in plans if isinstance(p, dict)),
            reservation_term=_as_str(_pick(data, "reservationTerm")),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with the camelCase keys of the Retail API contract."""
        return {
            "currencyCode": self.currency_code,
            "tierMinimumUnits": self.tier_minimum_units,
            "retailPrice": self.retail_price,
            "unitPrice": self.unit_price,
            "armRegionName": self.arm_region_name,
            "location": self.location,
            "effectiveStartDate": self.effective_start_date,
            "effectiveEndDate": self.effective_end_date,
            "meterId": self.meter_id,
            "meterName": self.meter_name,
            "productId": self.product_id,
            "productName": self.product_name,
            "skuId": self.sku_id,
            "skuName": self.sku_name,
            "serviceId": self.service_id,
            "serviceName": self.service_name,
            "serviceFamily": self.service_family,
            "unitOfMeasure": self.unit_of_measure,
            "type": self.type,
            "isPrimaryMeterRegion": self.is_primary_meter_region,
            "armSkuName": self.arm_sku_name,
            "savingsPlan": [p.to_dict() for p in self.savings_plan],
            "reservationTerm": self.reservation_term,
        }


@dataclass(frozen=True)
class CatalogPage:
    """One page of Retail API results. Discarded once merged into an index."""

    entries: Tuple[PriceEntry, ...] = ()
    next_page_link: Optional[str] = None
    count: int = 0
    billing_currency: Optional[str] = None
    customer_entity_id: Optional[str] = None
    customer_entity_type: Optional[str] = None

    @classmethod
    def from_api(cls, data: Any) -> "CatalogPage":
        """
        Parse the response envelope.

        The envelope uses PascalCase keys ("Items", "NextPageLink"); camelCase is
        accepted too. A body that is not an object, or has no items array, is
        malformed.
        """
        if not isinstance(data, dict):
            raise MalformedResponseError(f"response body is not a JSON object: {type(data).__name__}")

        items = data.get("Items")
        if items is None:
            items = data.get("items")
        if not isinstance(items, list):
            raise MalformedResponseError("response body has no Items array")

        try:
            count = int(data.get("Count") or data.get("count") or len(items))
        except (TypeError, ValueError):
            count = len(items)

        next_link = data.get("NextPageLink") or data.get("nextPageLink") or None
        if next_link is not None and not isinstance(next_link, str):
            raise MalformedResponseError(f"NextPageLink is not a string: {type(next_link).__name__}")

        return cls(
            entries=tuple(PriceEntry.from_api(it) for it in items),
            next_page_link=next_link,
            count=count,
            billing_currency=data.get("BillingCurrency") or data.get("billingCurrency"),
            customer_entity_id=data.get("CustomerEntityId") or data.get("customerEntityId"),
            customer_entity_type=data.get("CustomerEntityType") or data.get("customerEntityType"),
        )


@dataclass(frozen=True)
class AppliedSettings:
    """Immutable copy of the settings one initialization run works with."""

    currency_code: str
    filter_by_region: bool
    configured_regions: Tuple[str, ...]


@dataclass
class ServiceConfig:
    currency_code: str = DEFAULT_CURRENCY
    filter_by_region: bool = DEFAULT_FILTER_BY_REGION
    configured_regions: List[str] = field(default_factory=lambda: list(DEFAULT_REGIONS))

    def snapshot(self) -> AppliedSettings:
        return AppliedSettings(
            currency_code=self.currency_code,
            filter_by_region=self.filter_by_region,
            configured_regions=tuple(self.configured_regions),
        )


@dataclass(frozen=True)
class CacheMetadata:
    currency_code: str
    filter_by_region: bool
    configured_regions: Tuple[str, ...]
    created_at: datetime

    @classmethod
    def for_settings(cls, settings: AppliedSettings, created_at: Optional[datetime] = None) -> "CacheMetadata":
        return cls(
            currency_code=settings.currency_code,
            filter_by_region=settings.filter_by_region,
            configured_regions=settings.configured_regions,
            created_at=created_at or datetime.now(timezone.utc),
        )

    def matches(self, settings: AppliedSettings) -> bool:
        """Exact match; region order is significant."""
        return (
            self.currency_code == settings.currency_code
            and self.filter_by_region == settings.filter_by_region
            and self.configured_regions == settings.configured_regions
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CacheMetadata":
        regions = data["configuredRegions"]
        filter_flag = data["filterByRegion"]
        if not isinstance(regions, list) or not isinstance(filter_flag, bool):
            raise ValueError("invalid cache metadata types")

        created_at = datetime.fromisoformat(str(data["createdAt"]).replace("Z", "+00:00"))
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)

        return cls(
            currency_code=str(data["currencyCode"]),
            filter_by_region=filter_flag,
            configured_regions=tuple(str(r) for r in regions),
            created_at=created_at,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "currencyCode": self.currency_code,
            "filterByRegion": self.filter_by_region,
            "configuredRegions": list(self.configured_regions),
            "createdAt": self.created_at.astimezone(timezone.utc).isoformat(),
        }
