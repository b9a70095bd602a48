# Overview: Pure sale pricing: line subtotals, tax and totals in integer cents.

from __future__ import annotations

from dataclasses import dataclass

from ..validation import ValidationError

"""
Pricing rules (authoritative)

- All money is integer cents; tax rates are integer basis points (1900 = 19%).
- line_total = quantity * unit_price - discount   (discount is per line, not per unit)
- subtotal   = SUM(line_total)
- tax        = subtotal * tax_rate_bps / 10000, nearest cent, half-up
- total      = subtotal + tax

Integer arithmetic keeps repeated additions exact; the only rounding step
is the tax computation.
"""

DEFAULT_TAX_RATE_BPS = 1900
BPS_DENOMINATOR = 10_000


@dataclass(frozen=True)
class LineItem:
    product_id: str
    quantity: int
    unit_price_cents: int
    discount_cents: int = 0

    @property
    def gross_cents(self) -> int:
        return self.quantity * self.unit_price_cents

    @property
    def line_total_cents(self) -> int:
        return self.gross_cents - self.discount_cents


@dataclass(frozen=True)
class SaleTotals:
    subtotal_cents: int
    tax_rate_bps: int
    tax_cents: int
    total_cents: int

    def to_dict(self) -> dict:
        return {
            "subtotal_cents": self.subtotal_cents,
            "tax_rate_bps": self.tax_rate_bps,
            "tax_cents": self.tax_cents,
            "total_cents": self.total_cents,
        }


def round_half_up_div(numerator: int, denominator: int) -> int:
    """Integer division rounded to nearest, ties away from zero."""
    if denominator <= 0:
        raise ValueError("denominator must be positive")
    if numerator < 0:
        return -round_half_up_div(-numerator, denominator)
    return (numerator + denominator // 2) // denominator


def calculate_totals(lines: list[LineItem], tax_rate_bps: int = DEFAULT_TAX_RATE_BPS) -> SaleTotals:
    if tax_rate_bps < 0:
        raise ValueError("tax_rate_bps cannot be negative")
    if not lines:
        raise ValidationError("at least one line item is required")

    subtotal = 0
    for line in lines:
        if line.quantity <= 0:
            raise ValidationError(f"quantity for product {line.product_id} must be positive")
        if line.unit_price_cents < 0 or line.discount_cents < 0:
            raise ValidationError(f"price and discount for product {line.product_id} cannot be negative")
        if line.discount_cents > line.gross_cents:
            raise ValidationError(f"discount for product {line.product_id} exceeds the line amount")
        subtotal += line.line_total_cents

    tax = round_half_up_div(subtotal * tax_rate_bps, BPS_DENOMINATOR)
    return SaleTotals(
        subtotal_cents=subtotal,
        tax_rate_bps=tax_rate_bps,
        tax_cents=tax,
        total_cents=subtotal + tax,
    )


def format_cents(cents: int) -> str:
    sign = "-" if cents < 0 else ""
    cents = abs(cents)
    return f"{sign}{cents // 100}.{cents % 100:02d}"
