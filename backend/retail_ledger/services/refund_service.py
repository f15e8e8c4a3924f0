"""
Refund Processing Service

WHY: A refund reverses part of a sale without rewriting it. The original
Sale keeps its totals for audit; each refund is an immutable
RefundAdjustment carrying the money, cost and profit it reverses, and the
refunded units go back on the shelf through 'return' movements.

DESIGN PRINCIPLES:
- Partial refunds by line; a line can never be refunded past its quantity
- Refund money comes from the net paid amount (price * qty - discount),
  prorated per unit with cumulative half-up rounding so successive partial
  refunds of a line add up to exactly its net amount
- COGS reversal uses cost_at_sale_cents, never the current catalog cost
- All selected lines refund and restock together or not at all
- The Sale row is locked for the unit of work and each refunded_quantity
  increment is a guarded UPDATE, so racing refunds cannot double-credit
"""

from __future__ import annotations

from sqlalchemy import func, update

from ..errors import ConcurrencyConflict, NotFoundError, OverRefundError, ValidationError
from ..extensions import db
from ..models import RefundAdjustment, RefundAdjustmentLine, Sale, SaleItem
from ..models.inventory import MOVEMENT_RETURN
from ..validation import optional_text, require_int, require_quantity
from .cash_shift_service import get_open_shift
from .concurrency import lock_for_update, run_in_transaction
from .ledger_service import record_movement
from .sales_service import next_document_number


# =============================================================================
# AMOUNTS
# =============================================================================

def _prorate_half_up(net_cents: int, units: int, quantity: int) -> int:
    """round_half_up(net_cents * units / quantity) in exact integer math."""
    return (2 * net_cents * units + quantity) // (2 * quantity)


def refund_amount_for(item: SaleItem, quantity: int) -> int:
    """
    Money returned for `quantity` more units of a line.

    Cumulative: the amount refunded after this call minus the amount
    already refunded, both rounded the same way.
    """
    before = item.refunded_quantity
    after = before + quantity
    net = item.net_amount_cents
    return _prorate_half_up(net, after, item.quantity) - _prorate_half_up(net, before, item.quantity)


# =============================================================================
# REQUEST PARSING
# =============================================================================

def _parse_request(requested_items) -> list[dict]:
    if not requested_items:
        raise ValidationError("refund request has no items")
    if not isinstance(requested_items, (list, tuple)):
        raise ValidationError("items must be a list")

    parsed = []
    for index, item in enumerate(requested_items):
        if not isinstance(item, dict):
            raise ValidationError(f"items[{index}] must be an object")
        sale_item_id = item.get("sale_item_id")
        product_id = item.get("product_id")
        if sale_item_id is None and product_id is None:
            raise ValidationError(f"items[{index}] needs a product_id or sale_item_id")
        if sale_item_id is not None:
            sale_item_id = require_int(sale_item_id, f"items[{index}].sale_item_id", minimum=1)
        if product_id is not None:
            product_id = require_int(product_id, f"items[{index}].product_id", minimum=1)
        parsed.append({
            "index": index,
            "sale_item_id": sale_item_id,
            "product_id": product_id,
            "quantity": require_quantity(item.get("quantity"), f"items[{index}].quantity"),
        })
    return parsed


def _match_lines(sale: Sale, items: list[SaleItem], requested: list[dict]) -> list[tuple[SaleItem, int]]:
    """Resolve each requested entry to exactly one line of the sale."""
    by_id = {item.id: item for item in items}
    matched = []
    seen = set()

    for req in requested:
        index = req["index"]
        if req["sale_item_id"] is not None:
            item = by_id.get(req["sale_item_id"])
            if item is None:
                raise ValidationError(
                    f"items[{index}] is not a line of sale {sale.id}",
                    details={"sale_item_id": req["sale_item_id"]},
                )
            if req["product_id"] is not None and req["product_id"] != item.product_id:
                raise ValidationError(
                    f"items[{index}].product_id does not match the sale line",
                    details={"sale_item_id": item.id, "product_id": req["product_id"]},
                )
        else:
            candidates = [item for item in items if item.product_id == req["product_id"]]
            if not candidates:
                raise ValidationError(
                    f"product {req['product_id']} is not on sale {sale.id}",
                    details={"product_id": req["product_id"]},
                )
            if len(candidates) > 1:
                raise ValidationError(
                    f"product {req['product_id']} appears on several lines; pass sale_item_id",
                    details={"sale_item_ids": [c.id for c in candidates]},
                )
            item = candidates[0]

        if item.id in seen:
            raise ValidationError(
                f"sale line {item.id} is listed more than once",
                details={"sale_item_id": item.id},
            )
        seen.add(item.id)
        matched.append((item, req["quantity"]))
    return matched


# =============================================================================
# REFUND PROCESSING
# =============================================================================

def process_refund(
    sale_id: int,
    requested_items,
    *,
    reason: str | None = None,
    actor: str | None = None,
) -> RefundAdjustment:
    """
    Refund some or all units of a sale's lines.

    Args:
        sale_id: Sale being refunded
        requested_items: [{product_id, quantity, sale_item_id?}, ...]
        reason: Free-text reason kept on the adjustment
        actor: Who processed the refund

    Returns:
        The committed RefundAdjustment with its lines

    Raises:
        NotFoundError: unknown sale
        ValidationError: malformed request (nothing written)
        OverRefundError: a line would exceed its remaining quantity
        ConcurrencyConflict: a racing refund changed the sale
    """
    requested = _parse_request(requested_items)
    reason = optional_text(reason, "reason")
    actor = optional_text(actor, "actor", max_length=128)

    def _op():
        sale = lock_for_update(Sale.query.filter_by(id=sale_id).populate_existing()).first()
        if sale is None:
            raise NotFoundError(f"Sale {sale_id} not found")

        items = (
            SaleItem.query.filter_by(sale_id=sale.id)
            .order_by(SaleItem.id)
            .populate_existing()
            .all()
        )
        matched = _match_lines(sale, items, requested)

        over = [
            {
                "sale_item_id": item.id,
                "product_id": item.product_id,
                "requested_quantity": qty,
                "remaining_quantity": item.remaining_quantity,
            }
            for item, qty in matched
            if qty > item.remaining_quantity
        ]
        if over:
            raise OverRefundError(
                "Refund exceeds the quantity remaining on the sale",
                details={"items": over},
            )

        amounts = [(item, qty, refund_amount_for(item, qty), item.cost_at_sale_cents * qty) for item, qty in matched]
        total_amount = sum(a[2] for a in amounts)
        total_cost = sum(a[3] for a in amounts)
        shift = get_open_shift(sale.business_id)

        refund = RefundAdjustment(
            sale_id=sale.id,
            business_id=sale.business_id,
            tenant_id=sale.tenant_id,
            document_number=next_document_number("R"),
            payment_method=sale.payment_method,
            cash_shift_id=shift.id if shift else None,
            amount_cents=total_amount,
            cost_reversal_cents=total_cost,
            profit_reversal_cents=total_amount - total_cost,
            reason=reason,
            actor=actor,
        )
        db.session.add(refund)
        db.session.flush()

        for item, qty, amount, cost in amounts:
            # Guarded increment: 0 <= refunded_quantity <= quantity holds even under races
            result = db.session.execute(
                update(SaleItem)
                .where(
                    SaleItem.id == item.id,
                    SaleItem.refunded_quantity + qty <= SaleItem.quantity,
                )
                .values(refunded_quantity=SaleItem.refunded_quantity + qty)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise ConcurrencyConflict(
                    "sale line was refunded by a concurrent request",
                    details={"sale_item_id": item.id},
                )

            movement = record_movement(
                item.product_id,
                qty,
                MOVEMENT_RETURN,
                f"Refund {refund.document_number}",
                actor,
                sale_id=sale.id,
                refund_id=refund.id,
                commit=False,
            )
            db.session.add(RefundAdjustmentLine(
                refund_id=refund.id,
                sale_item_id=item.id,
                product_id=item.product_id,
                quantity=qty,
                amount_cents=amount,
                cost_cents=cost,
                stock_movement_id=movement.id,
            ))

        outstanding = db.session.query(func.count(SaleItem.id)).filter(
            SaleItem.sale_id == sale.id,
            SaleItem.refunded_quantity < SaleItem.quantity,
        ).scalar()
        if outstanding == 0 and not sale.is_refunded:
            sale.is_refunded = True

        db.session.flush()
        return refund

    refund = run_in_transaction(_op)
    return get_refund(refund.id)


def get_refund(refund_id: int) -> RefundAdjustment:
    refund = db.session.get(RefundAdjustment, refund_id, populate_existing=True)
    if refund is None:
        raise NotFoundError(f"Refund {refund_id} not found")
    return refund


def list_refunds(sale_id: int) -> list[RefundAdjustment]:
    """Adjustment history of a sale, oldest first."""
    if db.session.get(Sale, sale_id) is None:
        raise NotFoundError(f"Sale {sale_id} not found")
    return (
        RefundAdjustment.query.filter_by(sale_id=sale_id)
        .order_by(RefundAdjustment.id)
        .populate_existing()
        .all()
    )
