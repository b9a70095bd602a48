"""
Sales Service - sale orchestration across authorization, inventory and the sale ledger.

Processing a sale moves three independently owned resources together: the
seller's authorization (read), per-product stock (written through the
inventory ledger) and the sale ledger (written here, and only here).

Stock exits are applied as a saga: each line's check-and-decrement is one
atomic inventory operation; if any later step fails, the exits that already
succeeded are compensated with ENTRY movements in reverse order before the
error is reported. The sale row is written only once every exit succeeded,
so a persisted sale always has its full inventory effect.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Sale, SaleLine
from ..models.inventory import MOVEMENT_ENTRY, MOVEMENT_EXIT
from ..models.sales import SALE_PROCESSED, SALE_CANCELLED
from ..errors import (
    DomainError,
    SellerNotAuthorized,
    CustomerNotFound,
    ProductNotFound,
    InsufficientStock,
    SaleNotFound,
    InvalidSaleState,
    AlreadyCancelled,
    InternalError,
    InconsistentState,
    CancellationIncomplete,
)
from ..validation import ValidationError, MAX_NOTES_LENGTH
from polimarket.time_utils import utcnow, to_utc_z
from .authorization_service import check_authorized
from .customer_service import get_customer_by_id
from .inventory_service import check_availability, apply_movement, MovementResult
from .pricing_service import LineItem, SaleTotals, calculate_totals, format_cents, DEFAULT_TAX_RATE_BPS
from .concurrency import lock_for_update, run_with_retry

logger = logging.getLogger(__name__)

SYSTEM_ACTOR = "system"
NOTE_SEPARATOR = " | "
MAX_REASON_LENGTH = 200


@dataclass(frozen=True)
class SaleReceipt:
    sale_id: str
    total_cents: int
    status: str
    processed_at: datetime

    def to_dict(self) -> dict:
        return {
            "sale_id": self.sale_id,
            "total_cents": self.total_cents,
            "status": self.status,
            "processed_at": to_utc_z(self.processed_at),
        }


class _StockSaga:
    """
    Stock exits applied for one sale, in order, so they can be undone.

    Every movement carries an idempotency key derived from the sale id and
    line number; re-running a compensation never restores stock twice.
    """

    def __init__(self, sale_id: str, actor: str):
        self.sale_id = sale_id
        self.actor = actor
        self.applied: list[tuple[int, LineItem, MovementResult]] = []

    def exit(self, line_number: int, line: LineItem) -> MovementResult:
        result = apply_movement(
            product_id=line.product_id,
            kind=MOVEMENT_EXIT,
            quantity=line.quantity,
            reason=f"Sale {self.sale_id}",
            reference_document=self.sale_id,
            actor=self.actor,
            idempotency_key=f"sale:{self.sale_id}:{line_number}",
        )
        self.applied.append((line_number, line, result))
        return result

    def compensate(self, cause: str) -> None:
        """Return stock for every applied exit, last one first."""
        failed = []
        for line_number, line, _ in reversed(self.applied):
            try:
                apply_movement(
                    product_id=line.product_id,
                    kind=MOVEMENT_ENTRY,
                    quantity=line.quantity,
                    reason=f"Compensation sale {self.sale_id} - {cause}",
                    reference_document=self.sale_id,
                    actor=SYSTEM_ACTOR,
                    idempotency_key=f"compensate:{self.sale_id}:{line_number}",
                )
            except Exception:
                logger.exception(
                    "Compensation failed for sale %s line %d (product %s, %d units)",
                    self.sale_id, line_number, line.product_id, line.quantity,
                )
                failed.append({
                    "line_number": line_number,
                    "product_id": line.product_id,
                    "quantity": line.quantity,
                })

        if failed:
            logger.critical(
                "Sale %s left stock inconsistent; uncompensated exits: %s",
                self.sale_id, failed,
            )
            raise InconsistentState(
                f"Stock compensation incomplete for sale {self.sale_id}",
                details={"sale_id": self.sale_id, "uncompensated": failed},
            )

        if self.applied:
            logger.info("Compensated %d stock exit(s) for sale %s (%s)", len(self.applied), self.sale_id, cause)


def _tax_rate_bps() -> int:
    return int(current_app.config.get("SALES_TAX_RATE_BPS", DEFAULT_TAX_RATE_BPS))


def calculate_sale_total(lines: list[LineItem]) -> SaleTotals:
    """Preview a total with the configured tax rate. No persistence."""
    return calculate_totals(lines, _tax_rate_bps())


def _check_stock_for_lines(lines: list[LineItem]) -> None:
    """
    Read-only availability check for every product on the sale.

    Quantities are summed per product so two lines of the same product are
    checked against stock together. Every offending product is reported,
    not just the first one.
    """
    requested: dict[str, int] = {}
    for line in lines:
        requested[line.product_id] = requested.get(line.product_id, 0) + line.quantity

    missing = []
    insufficient = []
    for product_id, qty in requested.items():
        try:
            availability = check_availability(product_id, qty)
        except ProductNotFound:
            missing.append(product_id)
            continue
        if not availability.available_for_sale:
            insufficient.append({
                "product_id": product_id,
                "requested_quantity": qty,
                "available_stock": availability.available_stock,
            })

    if missing:
        raise ProductNotFound(missing)
    if insufficient:
        raise InsufficientStock(insufficient)


def _require_reason(reason: str) -> None:
    if not reason or not reason.strip():
        raise ValidationError("reason is required")
    if len(reason) > MAX_REASON_LENGTH:
        raise ValidationError(f"reason must be at most {MAX_REASON_LENGTH} characters")


def _append_note(existing: str | None, note: str) -> str:
    if not existing:
        return note
    return f"{existing}{NOTE_SEPARATOR}{note}"


def _persist_sale(
    *,
    sale_id: str,
    customer_id: str,
    seller_code: str,
    lines: list[LineItem],
    totals: SaleTotals,
    notes: str | None,
    movements: dict[int, MovementResult],
) -> Sale:
    """Write header and lines in one transaction."""
    sale = Sale(
        id=sale_id,
        sold_at=utcnow(),
        customer_id=customer_id,
        seller_code=seller_code,
        status=SALE_PROCESSED,
        subtotal_cents=totals.subtotal_cents,
        tax_rate_bps=totals.tax_rate_bps,
        tax_cents=totals.tax_cents,
        discount_cents=0,
        total_cents=totals.total_cents,
        notes=notes,
        created_by=seller_code,
    )
    for line_number, line in enumerate(lines, start=1):
        sale.lines.append(SaleLine(
            line_number=line_number,
            product_id=line.product_id,
            quantity=line.quantity,
            unit_price_cents=line.unit_price_cents,
            discount_cents=line.discount_cents,
            line_total_cents=line.line_total_cents,
            movement_id=movements[line_number].movement_id,
        ))

    db.session.add(sale)
    db.session.commit()
    return sale


def process_sale(
    *,
    customer_id: str,
    seller_code: str,
    lines: list[LineItem],
    notes: str | None = None,
) -> Sale:
    """
    Validate, price and commit a sale with its stock exits.

    Order matters and is strictly sequential:
    1. seller authorization (no side effects on failure)
    2. customer existence
    3. stock pre-check for all products (reports every shortage at once)
    4. totals
    5. per-line atomic check-and-decrement (saga; compensated on failure)
    6. sale header + lines in one transaction (compensated on failure)
    """
    if notes is not None and len(notes) > MAX_NOTES_LENGTH:
        raise ValidationError(f"notes must be at most {MAX_NOTES_LENGTH} characters")

    check = check_authorized(seller_code)
    if not check.authorized:
        logger.info("Sale rejected: seller %s not authorized (%s)", seller_code, check.reason)
        raise SellerNotAuthorized(seller_code, check.reason)

    customer = get_customer_by_id(customer_id)
    if customer is None or not customer.is_active:
        raise CustomerNotFound(customer_id)

    if not lines:
        raise ValidationError("at least one line item is required")

    _check_stock_for_lines(lines)
    totals = calculate_sale_total(lines)

    sale_id = str(uuid.uuid4())
    saga = _StockSaga(sale_id, actor=seller_code)

    try:
        for line_number, line in enumerate(lines, start=1):
            saga.exit(line_number, line)
    except (DomainError, ValidationError) as exc:
        # Typically a concurrent sale took the stock after the pre-check.
        logger.info("Sale %s aborted during stock exits: %s", sale_id, exc)
        saga.compensate("sale aborted")
        raise
    except SQLAlchemyError:
        logger.exception("Storage failure applying stock exits for sale %s", sale_id)
        db.session.rollback()
        saga.compensate("storage failure")
        raise InternalError("Failed to apply stock movements", details={"sale_id": sale_id})
    except Exception:
        logger.exception("Unexpected error applying stock exits for sale %s", sale_id)
        db.session.rollback()
        saga.compensate("unexpected error")
        raise InternalError("Failed to apply stock movements", details={"sale_id": sale_id})

    movements = {line_number: result for line_number, _, result in saga.applied}
    try:
        sale = _persist_sale(
            sale_id=sale_id,
            customer_id=customer_id,
            seller_code=seller_code,
            lines=lines,
            totals=totals,
            notes=notes,
            movements=movements,
        )
    except SQLAlchemyError:
        logger.exception("Failed to write sale %s; compensating stock exits", sale_id)
        db.session.rollback()
        saga.compensate("sale write failed")
        raise InternalError("Failed to record sale", details={"sale_id": sale_id})
    except Exception:
        logger.exception("Unexpected error writing sale %s; compensating stock exits", sale_id)
        db.session.rollback()
        saga.compensate("sale write failed")
        raise InternalError("Failed to record sale", details={"sale_id": sale_id})

    logger.info(
        "Sale %s processed: seller=%s customer=%s total=%s",
        sale.id, seller_code, customer_id, format_cents(sale.total_cents),
    )
    return sale


def receipt_for(sale: Sale) -> SaleReceipt:
    return SaleReceipt(
        sale_id=sale.id,
        total_cents=sale.total_cents,
        status=sale.status,
        processed_at=sale.sold_at,
    )


def _load_sale(sale_id: str, *, lock: bool = False) -> Sale:
    query = db.session.query(Sale).filter_by(id=sale_id)
    if lock:
        query = lock_for_update(query)
    sale = query.populate_existing().first()
    if sale is None:
        raise SaleNotFound(sale_id)
    return sale


def get_sale_by_id(sale_id: str) -> Sale:
    return _load_sale(sale_id)


def get_sales_by_seller(
    seller_code: str,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[Sale]:
    """Sales for a seller, newest first. start/end are inclusive."""
    q = db.session.query(Sale).filter(Sale.seller_code == seller_code)
    if start is not None:
        q = q.filter(Sale.sold_at >= start)
    if end is not None:
        q = q.filter(Sale.sold_at <= end)
    return q.order_by(Sale.sold_at.desc(), Sale.id.asc()).all()


def get_sales_by_customer(
    customer_id: str,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[Sale]:
    """Purchase history for a customer, newest first. start/end are inclusive."""
    q = db.session.query(Sale).filter(Sale.customer_id == customer_id)
    if start is not None:
        q = q.filter(Sale.sold_at >= start)
    if end is not None:
        q = q.filter(Sale.sold_at <= end)
    return q.order_by(Sale.sold_at.desc(), Sale.id.asc()).all()


def apply_discount(sale_id: str, amount_cents: int, reason: str) -> Sale:
    """
    Subtract a discount from a PROCESSED sale's total and note why.

    Does not touch inventory or line items.
    """
    if amount_cents <= 0:
        raise ValidationError("discount amount must be positive")
    _require_reason(reason)

    def _op():
        sale = _load_sale(sale_id, lock=True)
        if sale.status != SALE_PROCESSED:
            raise InvalidSaleState(sale_id, sale.status, "apply a discount to")
        if amount_cents > sale.total_cents:
            raise ValidationError("discount amount exceeds the sale total")

        sale.total_cents -= amount_cents
        sale.discount_cents += amount_cents
        sale.notes = _append_note(
            sale.notes,
            f"Discount applied: {format_cents(amount_cents)} - Reason: {reason}",
        )
        sale.updated_at = utcnow()
        db.session.commit()
        return sale

    try:
        sale = run_with_retry(_op)
    except (DomainError, ValidationError):
        db.session.rollback()
        raise

    logger.info("Discount of %s applied to sale %s", format_cents(amount_cents), sale_id)
    return sale


def cancel_sale(sale_id: str, reason: str) -> Sale:
    """
    Cancel a PROCESSED sale and return every line's stock.

    Stock is restored line by line with idempotent ENTRY movements; the
    status flips to CANCELLED only after all of them succeeded. If one
    fails, the sale stays PROCESSED and CancellationIncomplete is raised;
    calling cancel_sale again resumes without restoring any line twice.
    """
    _require_reason(reason)

    sale = _load_sale(sale_id)
    if sale.status == SALE_CANCELLED:
        raise AlreadyCancelled(sale_id)
    if sale.status != SALE_PROCESSED:
        raise InvalidSaleState(sale_id, sale.status, "cancel")

    # Snapshot before the inventory commits expire the loaded rows
    lines = [(line.line_number, line.product_id, line.quantity) for line in sale.lines]
    db.session.rollback()

    for line_number, product_id, quantity in lines:
        try:
            apply_movement(
                product_id=product_id,
                kind=MOVEMENT_ENTRY,
                quantity=quantity,
                reason=f"Cancellation {sale_id} - {reason}",
                reference_document=sale_id,
                actor=SYSTEM_ACTOR,
                idempotency_key=f"cancel:{sale_id}:{line_number}",
            )
        except Exception:
            logger.exception(
                "Stock restoration failed while cancelling sale %s (line %d, product %s)",
                sale_id, line_number, product_id,
            )
            db.session.rollback()
            raise CancellationIncomplete(
                f"Cancellation of sale {sale_id} could not restore all stock; retry the cancellation",
                details={"sale_id": sale_id, "line_number": line_number, "product_id": product_id},
            )

    def _op():
        current = _load_sale(sale_id, lock=True)
        if current.status == SALE_CANCELLED:
            raise AlreadyCancelled(sale_id)
        now = utcnow()
        current.status = SALE_CANCELLED
        current.cancelled_at = now
        current.cancel_reason = reason
        current.notes = _append_note(current.notes, f"Cancelled: {reason}")
        current.updated_at = now
        db.session.commit()
        return current

    try:
        sale = run_with_retry(_op)
    except DomainError:
        db.session.rollback()
        raise

    logger.info("Sale %s cancelled: %s", sale_id, reason)
    return sale
