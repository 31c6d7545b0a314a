from __future__ import annotations

import json
from decimal import Decimal
from pathlib import Path

import pytest
from services.checkout.app.models.pricing import ShippingZone
from services.checkout.app.services.pricing import PricingEngine
from services.checkout.app.services.pricing_tables import (
    PricingTableError,
    load_pricing_tables,
    parse_pricing_tables,
)

US_STATES = (
    "AL AK AZ AR CA CO CT DE FL GA HI ID IL IN IA KS KY LA ME MD MA MI MN MS MO MT NE NV NH NJ "
    "NM NY NC ND OH OK OR PA RI SC SD TN TX UT VT VA WA WV WI WY DC"
).split()


def _doc() -> dict:
    path = Path(__file__).parents[1] / "app" / "services" / "pricing_tables.json"
    return json.loads(path.read_text(encoding="utf-8"))


def test_shipped_table_maps_every_state_to_exactly_one_zone() -> None:
    doc = _doc()
    listed = [s for states in doc["zones"].values() for s in states]

    assert len(listed) == len(set(listed))
    assert set(US_STATES) <= set(listed)


def test_shipped_table_keeps_the_original_zones() -> None:
    tables = load_pricing_tables()

    assert tables.zone_for("WV") is ShippingZone.LOCAL
    assert tables.zone_for("MN") is ShippingZone.REGIONAL
    assert tables.zone_for("UT") is ShippingZone.NATIONAL
    assert tables.zone_for("ID") is ShippingZone.REMOTE
    assert tables.zone_rates[ShippingZone.REMOTE].free_threshold == Decimal("150")


def test_duplicate_state_is_rejected() -> None:
    doc = _doc()
    doc["zones"]["remote"].append("OH")

    with pytest.raises(PricingTableError, match="OH"):
        parse_pricing_tables(doc)


def test_missing_zone_rate_is_rejected() -> None:
    doc = _doc()
    del doc["rates"]["remote"]

    with pytest.raises(PricingTableError, match="remote"):
        parse_pricing_tables(doc)


def test_bad_number_is_rejected() -> None:
    doc = _doc()
    doc["tax_rates"]["OH"] = "lots"

    with pytest.raises(PricingTableError, match="tax_rates.OH"):
        parse_pricing_tables(doc)


def test_table_path_can_be_overridden_by_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    doc = _doc()
    doc["tax_rates"]["OH"] = "0.07"
    doc["default_tax_rate"] = "0.05"
    table_path = tmp_path / "rates.json"
    table_path.write_text(json.dumps(doc), encoding="utf-8")
    monkeypatch.setenv("STOREFRONT_PRICING_TABLE", str(table_path))

    engine = PricingEngine(load_pricing_tables())

    assert engine.tax_rate("OH") == Decimal("0.07")
    assert engine.tax_rate("ZZ") == Decimal("0.05")


def test_unreadable_table_is_a_configuration_error(tmp_path: Path) -> None:
    with pytest.raises(PricingTableError, match="Cannot read"):
        load_pricing_tables(tmp_path / "missing.json")

    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    with pytest.raises(PricingTableError, match="not valid JSON"):
        load_pricing_tables(broken)
