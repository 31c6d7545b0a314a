from __future__ import annotations

import argparse
from decimal import Decimal
from pathlib import Path

from services.checkout.app.models.pricing import ShippingMethod
from services.checkout.app.services.pricing import PricingEngine
from services.checkout.app.services.pricing_tables import load_pricing_tables


def main() -> int:
    parser = argparse.ArgumentParser(description="Print the price breakdown for a cart")
    parser.add_argument("--state", required=True, help="Two-letter destination state code")
    parser.add_argument("--subtotal", required=True, type=Decimal)
    parser.add_argument("--items", type=int, default=1, help="Total units in the cart")
    parser.add_argument(
        "--method",
        choices=[m.value for m in ShippingMethod],
        default=ShippingMethod.STANDARD.value,
    )
    parser.add_argument("--imported", action="store_true", help="Cart has imported items")
    parser.add_argument("--tables", type=Path, default=None, help="Alternate pricing table JSON")
    args = parser.parse_args()

    engine = PricingEngine(load_pricing_tables(args.tables) if args.tables else None)
    breakdown = engine.compute_breakdown(args.subtotal, args.state, args.items, args.method)
    quote = engine.compute_quote(
        args.state, args.subtotal, args.items, args.method, has_imported_items=args.imported
    )
    shown = breakdown.rounded()

    print(f"Zone:      {quote.zone.value} ({quote.estimated_days} days)")
    print(f"Subtotal:  {shown.subtotal}")
    print(f"Shipping:  {'FREE' if quote.free_shipping else shown.shipping}")
    print(f"Tax:       {shown.tax} ({engine.tax_rate(args.state)})")
    print(f"Total:     {shown.total}")
    if not quote.free_shipping and quote.amount_for_free_shipping > 0:
        print(f"Add {quote.amount_for_free_shipping} more for free standard shipping")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
