#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Azure Price Index – CLI

Flow:
- Reads currency/region preferences (settings file) unless overridden.
- Builds the price service (file cache unless --no-cache).
- Initializes it: cache snapshot first, Azure Retail Prices API otherwise.
- Runs one query (services / prices / search / regions) and prints it as a
  rich table or as JSON.
"""

import argparse
import asyncio
import json
import logging
import os
import sys
from dataclasses import asdict
from typing import Any, List, Optional, Sequence

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .bootstrap import build_price_service, initialize_services
from .config import CACHE_FILE, DEFAULT_FILTER_BY_REGION, MAX_PAGES, SETTINGS_FILE
from .pricing.cache import FileCacheStore
from .pricing.models import PriceEntry
from .pricing.service import AzurePriceService
from .settings import InMemoryPreferenceStore, JsonFilePreferenceStore, SettingsService
from .utils.regions import available_regions, normalize_regions

console = Console()


# --------------------------------------------------------------------
# Argument parsing
# --------------------------------------------------------------------
def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="azure-prices",
        description=(
            "Browse Azure retail prices from a local, region-filtered index.\n\n"
            "The first run pages through the Azure Retail Prices API and writes a\n"
            "cache snapshot; later runs within 24 hours reuse it as long as the\n"
            "currency and region settings are unchanged."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument("--currency", type=str, default=None, help="Currency code (e.g. USD, EUR, GBP).")
    parser.add_argument(
        "--regions",
        type=str,
        default=None,
        help="Comma-separated armRegionName list, e.g. 'westeurope,northeurope'. Order matters for cache reuse.",
    )
    parser.add_argument(
        "--no-region-filter",
        action="store_true",
        default=not DEFAULT_FILTER_BY_REGION,
        help="Load prices for all regions (large download).",
    )
    parser.add_argument("--cache-file", type=str, default=CACHE_FILE, help="Path of the cache snapshot.")
    parser.add_argument("--no-cache", action="store_true", help="Do not read or write the cache snapshot.")
    parser.add_argument("--reset-cache", action="store_true", help="Delete the cache snapshot before loading.")
    parser.add_argument("--max-pages", type=int, default=MAX_PAGES, help="Maximum API pages to follow.")
    parser.add_argument("--settings-file", type=str, default=SETTINGS_FILE, help="Preferences file.")
    parser.add_argument(
        "--save-preferences",
        action="store_true",
        help="Store --currency/--regions in the preferences file for later runs.",
    )
    parser.add_argument("--limit", type=int, default=50, help="Maximum rows to print (0 = all).")
    parser.add_argument("--json", action="store_true", help="Print JSON instead of a table.")
    parser.add_argument(
        "--log-level",
        choices=["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"],
        default=os.getenv("AZUREPRICES_LOG_LEVEL", "WARNING"),
        help="Logging level for internal messages.",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("services", help="List service names in the index.")

    prices = sub.add_parser("prices", help="Show all price entries for one service (exact name).")
    prices.add_argument("service_name", type=str)

    search = sub.add_parser("search", help="Substring search (case-insensitive, all filters must match).")
    search.add_argument("--service", dest="service_name", type=str, default=None)
    search.add_argument("--meter", dest="meter_name", type=str, default=None)
    search.add_argument("--sku", dest="sku_name", type=str, default=None)
    search.add_argument("--location", type=str, default=None)

    sub.add_parser("regions", help="List known regions; configured ones are marked.")

    return parser.parse_args(argv)


# --------------------------------------------------------------------
# Rendering
# --------------------------------------------------------------------
def _money(v: Any) -> str:
    try:
        f = float(v)
    except (TypeError, ValueError):
        return ""
    return f"{f:,.4f}"


def _limited(rows: List[Any], limit: int) -> List[Any]:
    return rows if limit <= 0 else rows[:limit]


def render_entries(entries: List[PriceEntry], limit: int) -> Table:
    table = Table(title=f"{len(entries)} price entries", show_lines=False)
    for col in ("Service", "Product", "SKU", "Meter", "Region", "Unit", "Retail price", "Type"):
        table.add_column(col, justify="right" if col == "Retail price" else "left")

    for e in _limited(entries, limit):
        table.add_row(
            e.service_name or "",
            e.product_name or "",
            e.sku_name or "",
            e.meter_name or "",
            e.arm_region_name or e.location or "",
            e.unit_of_measure or "",
            f"{_money(e.retail_price)} {e.currency_code or ''}".strip(),
            e.type or "",
        )
    return table


def _print_entries(entries: List[PriceEntry], args: argparse.Namespace) -> None:
    if args.json:
        console.print_json(json.dumps([e.to_dict() for e in _limited(entries, args.limit)]))
        return
    console.print(render_entries(entries, args.limit))
    if args.limit > 0 and len(entries) > args.limit:
        console.print(f"[dim]… {len(entries) - args.limit} more (use --limit 0 to show all)[/dim]")


# --------------------------------------------------------------------
# Commands
# --------------------------------------------------------------------
async def _run(service: AzurePriceService, settings: SettingsService, args: argparse.Namespace) -> int:
    if not await initialize_services(service, settings):
        console.print("[red]Could not load Azure prices. See log output for details.[/red]")
        return 1

    if args.command == "services":
        names = await service.get_service_names()
        if args.json:
            console.print_json(json.dumps(names))
        else:
            for name in names:
                console.print(name, markup=False)
        return 0

    if args.command == "prices":
        entries = await service.get_prices_for_service(args.service_name)
        if not entries and not args.json:
            console.print(f"[yellow]No prices for service '{escape(args.service_name)}'.[/yellow]")
            return 0
        _print_entries(entries, args)
        return 0

    if args.command == "search":
        entries = await service.search_prices(
            service_name=args.service_name,
            meter_name=args.meter_name,
            sku_name=args.sku_name,
            location=args.location,
        )
        _print_entries(entries, args)
        return 0

    return 0


def _print_regions(configured: List[str], as_json: bool) -> None:
    regions = available_regions(configured)
    if as_json:
        console.print_json(json.dumps([asdict(r) for r in regions]))
        return
    table = Table(title="Azure regions")
    table.add_column("Code")
    table.add_column("Name")
    table.add_column("Configured", justify="center")
    for r in regions:
        table.add_row(r.code, r.display_name, "✓" if r.is_selected else "")
    console.print(table)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.WARNING),
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
    )
    logger = logging.getLogger("azure_price_index")
    logger.debug("CLI arguments: %s", args)

    stored = SettingsService(JsonFilePreferenceStore(args.settings_file))
    regions = normalize_regions(args.regions.split(",")) if args.regions else None
    if args.save_preferences:
        if args.currency:
            stored.save_currency_preference(args.currency)
        if regions:
            stored.save_regions_preference(regions)

    # Explicit flags win over stored preferences.
    settings = SettingsService(InMemoryPreferenceStore())
    settings.save_currency_preference(args.currency or stored.get_currency_preference())
    settings.save_regions_preference(regions or stored.get_regions_preference())

    if args.command == "regions":
        _print_regions(settings.get_regions_preference(), args.json)
        return 0

    cache_file = None if args.no_cache else args.cache_file
    if args.reset_cache and cache_file:
        FileCacheStore(cache_file).clear()

    service = build_price_service(
        filter_by_region=not args.no_region_filter,
        cache_file=cache_file,
        max_pages=args.max_pages,
    )

    return asyncio.run(_run(service, settings, args))


if __name__ == "__main__":
    sys.exit(main())
