from __future__ import annotations

import json
import os
from dataclasses import dataclass
from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

from services.checkout.app.models.pricing import ShippingZone

_DEFAULT_TABLE_PATH = Path(__file__).with_name("pricing_tables.json")


class PricingTableError(ValueError):
    """Raised when a pricing table file is malformed or ambiguous."""


@dataclass(frozen=True, slots=True)
class ZoneRate:
    base: Decimal
    per_item: Decimal
    free_threshold: Decimal


@dataclass(frozen=True, slots=True)
class ExpressRule:
    multiplier: Decimal
    surcharge: Decimal
    free_floor: Decimal
    estimated_days: int


@dataclass(frozen=True, slots=True)
class PricingTables:
    state_zones: Mapping[str, ShippingZone]
    default_zone: ShippingZone
    zone_rates: Mapping[ShippingZone, ZoneRate]
    express: ExpressRule
    zone_days: Mapping[ShippingZone, int]
    imported_days: int
    tax_rates: Mapping[str, Decimal]
    default_tax_rate: Decimal

    def zone_for(self, state: str | None) -> ShippingZone:
        return self.state_zones.get(normalize_state(state), self.default_zone)

    def tax_rate_for(self, state: str | None) -> Decimal:
        return self.tax_rates.get(normalize_state(state), self.default_tax_rate)


def normalize_state(state: str | None) -> str:
    return (state or "").strip().upper()


def _decimal(raw: Any, where: str) -> Decimal:
    try:
        value = Decimal(str(raw))
    except ArithmeticError as e:
        raise PricingTableError(f"Not a number at {where}: {raw!r}") from e
    if not value.is_finite() or value < 0:
        raise PricingTableError(f"Expected a non-negative number at {where}: {raw!r}")
    return value


def _zone(raw: Any, where: str) -> ShippingZone:
    try:
        return ShippingZone(raw)
    except ValueError as e:
        raise PricingTableError(f"Unknown shipping zone at {where}: {raw!r}") from e


def parse_pricing_tables(doc: Mapping[str, Any]) -> PricingTables:
    """Build a validated ``PricingTables`` from a decoded JSON document.

    A state listed under two zones is rejected, so the state-to-zone mapping stays total and
    unambiguous. Every zone needs a rate row.
    """

    try:
        raw_zones = doc["zones"]
        raw_rates = doc["rates"]
        raw_express = doc["express"]
        raw_days = doc["estimated_days"]
        raw_taxes = doc.get("tax_rates", {})
    except (KeyError, TypeError) as e:
        raise PricingTableError(f"Pricing table is missing a section: {e}") from e

    state_zones: dict[str, ShippingZone] = {}
    for zone_name, states in raw_zones.items():
        zone = _zone(zone_name, "zones")
        for state in states:
            code = normalize_state(state)
            if code in state_zones:
                raise PricingTableError(
                    f"State {code} is listed in both {state_zones[code].value} and {zone.value}"
                )
            state_zones[code] = zone

    zone_rates: dict[ShippingZone, ZoneRate] = {}
    for zone_name, row in raw_rates.items():
        zone = _zone(zone_name, "rates")
        zone_rates[zone] = ZoneRate(
            base=_decimal(row.get("base"), f"rates.{zone_name}.base"),
            per_item=_decimal(row.get("per_item"), f"rates.{zone_name}.per_item"),
            free_threshold=_decimal(row.get("free_threshold"), f"rates.{zone_name}.free_threshold"),
        )

    missing = [z.value for z in ShippingZone if z not in zone_rates]
    if missing:
        raise PricingTableError(f"No shipping rates for zone(s): {', '.join(missing)}")

    zone_days: dict[ShippingZone, int] = {}
    for zone in ShippingZone:
        zone_days[zone] = int(raw_days.get(zone.value, 5))

    return PricingTables(
        state_zones=MappingProxyType(state_zones),
        default_zone=_zone(doc.get("default_zone", ShippingZone.NATIONAL.value), "default_zone"),
        zone_rates=MappingProxyType(zone_rates),
        express=ExpressRule(
            multiplier=_decimal(raw_express.get("multiplier"), "express.multiplier"),
            surcharge=_decimal(raw_express.get("surcharge"), "express.surcharge"),
            free_floor=_decimal(raw_express.get("free_floor"), "express.free_floor"),
            estimated_days=int(raw_express.get("estimated_days", 3)),
        ),
        zone_days=MappingProxyType(zone_days),
        imported_days=int(raw_days.get("imported", 12)),
        tax_rates=MappingProxyType(
            {normalize_state(k): _decimal(v, f"tax_rates.{k}") for k, v in raw_taxes.items()}
        ),
        default_tax_rate=_decimal(doc.get("default_tax_rate", "0.06"), "default_tax_rate"),
    )


def load_pricing_tables(path: Path | None = None) -> PricingTables:
    table_path = path or Path(
        os.getenv("STOREFRONT_PRICING_TABLE", str(_DEFAULT_TABLE_PATH))
    ).expanduser()

    try:
        doc = json.loads(table_path.read_text(encoding="utf-8"))
    except OSError as e:
        raise PricingTableError(f"Cannot read pricing table at {table_path}: {e}") from e
    except json.JSONDecodeError as e:
        raise PricingTableError(f"Pricing table at {table_path} is not valid JSON: {e}") from e

    return parse_pricing_tables(doc)


@lru_cache(maxsize=1)
def default_pricing_tables() -> PricingTables:
    """Return the tables shipped with the service (or pointed to by env), loaded once."""

    return load_pricing_tables()
