"""Order pricing: subtotal, shipping by method, sales tax, and the total.

Amounts are computed in `Decimal` and rounded half-up to cents, then handed
back as floats for storage.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

from protean.exceptions import ValidationError

CENTS = Decimal("0.01")

# Largest difference tolerated between a caller's total and the computed one
TOTAL_TOLERANCE = Decimal("0.01")


class ShippingMethod(Enum):
    STANDARD = "standard"
    EXPRESS = "express"

    @classmethod
    def parse(cls, value) -> "ShippingMethod":
        if isinstance(value, cls):
            return value
        try:
            return cls((value or cls.STANDARD.value).lower())
        except ValueError:
            choices = ", ".join(method.value for method in cls)
            raise ValidationError({"shipping_method": [f"Unknown shipping method '{value}'. Choose one of: {choices}"]})


SHIPPING_COSTS = {
    ShippingMethod.STANDARD: Decimal("0.00"),
    ShippingMethod.EXPRESS: Decimal("29.99"),
}


def to_cents(amount) -> Decimal:
    return Decimal(str(amount)).quantize(CENTS, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class OrderPricing:
    subtotal: float
    shipping_cost: float
    tax_total: float
    total_amount: float

    def matches(self, total_amount) -> bool:
        """True when `total_amount` is within a cent of the computed total."""
        return abs(to_cents(total_amount) - to_cents(self.total_amount)) <= TOTAL_TOLERANCE


def price_order(line_items, shipping_method=ShippingMethod.STANDARD, tax_rate=0.07) -> OrderPricing:
    """Price a list of line items (dicts with `unit_price` and `quantity`)."""
    method = ShippingMethod.parse(shipping_method)

    subtotal = sum(
        (Decimal(str(item["unit_price"])) * int(item["quantity"]) for item in line_items),
        Decimal("0"),
    )
    subtotal = subtotal.quantize(CENTS, rounding=ROUND_HALF_UP)
    shipping_cost = SHIPPING_COSTS[method]
    tax_total = (subtotal * Decimal(str(tax_rate))).quantize(CENTS, rounding=ROUND_HALF_UP)
    total_amount = subtotal + shipping_cost + tax_total

    return OrderPricing(
        subtotal=float(subtotal),
        shipping_cost=float(shipping_cost),
        tax_total=float(tax_total),
        total_amount=float(total_amount),
    )
