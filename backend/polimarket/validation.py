# Overview: Request payload validation and coercion shared by API routes.

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Any

from polimarket.time_utils import parse_iso_datetime


# Maximum price: $9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_PRICE_CENTS = 999_999_999

# Units per line or per stock movement. With MAX_PRICE_CENTS and
# MAX_LINES_PER_SALE this keeps every stored amount within a 64-bit column.
MAX_QUANTITY = 1_000_000

MAX_LINES_PER_SALE = 200
MAX_NOTES_LENGTH = 500


class ValidationError(ValueError):
    """400-level input problem."""


def coerce_int(value: Any, field: str, *, minimum: int | None = None, maximum: int | None = None) -> int:
    """
    Strict integer coercion.

    Accepts ints (not bools) and plain digit strings. Rejects floats,
    decimals and scientific notation so "2.5" units or "1e3" cents never
    sneak through as truncated values.
    """
    if value is None:
        raise ValidationError(f"{field} is required")

    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")

    if isinstance(value, int):
        result = value
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        if "e" in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        if "." in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            result = int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    elif isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    else:
        raise ValidationError(f"{field} must be an integer")

    if minimum is not None and result < minimum:
        raise ValidationError(f"{field} must be >= {minimum}")
    if maximum is not None and result > maximum:
        raise ValidationError(f"{field} must be <= {maximum}")
    return result


def clean_string(value: Any, field: str, *, max_length: int, required: bool = True) -> str | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            raise ValidationError(f"{field} is required")
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    s = value.strip()
    if len(s) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters")
    return s


def coerce_bool(value: Any, field: str) -> bool:
    if isinstance(value, bool):
        return value
    raise ValidationError(f"{field} must be true or false")


def _is_date_only(value: str) -> bool:
    try:
        date.fromisoformat(value.strip())
    except ValueError:
        return False
    return True


def parse_optional_datetime(value: Any, field: str, *, end_of_day: bool = False) -> datetime | None:
    """
    Parse an optional ISO-8601 query bound.

    With end_of_day=True a bare date ("2026-10-19") means the last instant
    of that day, so an inclusive upper bound covers the whole day.
    """
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be an ISO-8601 datetime")
    try:
        parsed = parse_iso_datetime(value)
    except ValueError:
        raise ValidationError(f"{field} must be an ISO-8601 datetime")
    if end_of_day and parsed is not None and _is_date_only(value):
        parsed = parsed + timedelta(days=1) - timedelta(microseconds=1)
    return parsed


def parse_line_items(raw: Any) -> list:
    """
    Validate the "lines" array of a sale request into LineItem objects.

    Each entry: {"product_id": str, "quantity": int >= 1,
                 "unit_price_cents": int >= 1, "discount_cents": int >= 0 (optional)}
    """
    from .services.pricing_service import LineItem

    if not isinstance(raw, list) or not raw:
        raise ValidationError("lines must be a non-empty list")
    if len(raw) > MAX_LINES_PER_SALE:
        raise ValidationError(f"a sale may have at most {MAX_LINES_PER_SALE} lines")

    items = []
    for index, entry in enumerate(raw, start=1):
        if not isinstance(entry, dict):
            raise ValidationError(f"lines[{index}] must be an object")
        prefix = f"lines[{index}]"
        items.append(
            LineItem(
                product_id=clean_string(entry.get("product_id"), f"{prefix}.product_id", max_length=50),
                quantity=coerce_int(
                    entry.get("quantity"), f"{prefix}.quantity", minimum=1, maximum=MAX_QUANTITY
                ),
                unit_price_cents=coerce_int(
                    entry.get("unit_price_cents"),
                    f"{prefix}.unit_price_cents",
                    minimum=1,
                    maximum=MAX_PRICE_CENTS,
                ),
                discount_cents=coerce_int(
                    entry.get("discount_cents", 0),
                    f"{prefix}.discount_cents",
                    minimum=0,
                    maximum=MAX_PRICE_CENTS,
                ),
            )
        )
    return items
