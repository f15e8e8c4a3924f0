"""
Sales Engine - cart to immutable Sale

WHY: A sale and the stock it consumes must never disagree. Checkout writes
the Sale, its line snapshots and one 'sale' movement per line in a single
unit of work; if any decrement fails nothing is persisted.

TOTALS:
- subtotal       = SUM(price_at_sale * quantity)
- total_discount = SUM(discount)
- final_total    = max(0, subtotal - total_discount)   -> sales_amount
- total_cost     = SUM(cost_at_sale * quantity)
- profit         = final_total - total_cost
- profit_pct     = profit / final_total * 100  (0 when final_total is 0)
"""

from __future__ import annotations

import uuid

from flask import current_app

from ..errors import EmptyCartError, InsufficientStock, NotFoundError, ValidationError
from ..extensions import db
from ..models import Sale, SaleItem
from ..models.inventory import MOVEMENT_SALE
from ..validation import MAX_PRICE_CENTS, optional_text, require_int, require_quantity
from .cash_shift_service import get_open_shift
from .concurrency import run_in_transaction
from .inventory_service import ensure_product_in_business, get_business
from .ledger_service import record_movement


def next_document_number(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12].upper()}"


def allowed_payment_methods() -> tuple[str, ...]:
    return tuple(current_app.config.get("PAYMENT_METHODS") or ("CASH", "CARD"))


def normalize_payment_method(payment_method) -> str:
    if not isinstance(payment_method, str) or not payment_method.strip():
        raise ValidationError("payment_method is required")
    method = payment_method.strip().upper()
    allowed = allowed_payment_methods()
    if method not in allowed:
        raise ValidationError(
            f"unknown payment method {payment_method!r}",
            details={"allowed": list(allowed)},
        )
    return method


def compute_totals(lines) -> dict:
    """
    Pure totals for a list of line dicts with quantity, price_at_sale_cents,
    cost_at_sale_cents and discount_cents.
    """
    subtotal = sum(line["price_at_sale_cents"] * line["quantity"] for line in lines)
    total_discount = sum(line.get("discount_cents", 0) for line in lines)
    final_total = max(0, subtotal - total_discount)
    total_cost = sum(line["cost_at_sale_cents"] * line["quantity"] for line in lines)
    profit = final_total - total_cost
    profit_pct = round(profit / final_total * 100, 2) if final_total > 0 else 0.0
    return {
        "subtotal_cents": subtotal,
        "discount_cents": total_discount,
        "sales_amount_cents": final_total,
        "cost_amount_cents": total_cost,
        "profit_amount_cents": profit,
        "profit_percentage": profit_pct,
    }


def _parse_cart(items) -> list[dict]:
    if not items:
        raise EmptyCartError("Cannot check out an empty cart")
    if not isinstance(items, (list, tuple)):
        raise ValidationError("items must be a list")

    parsed = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValidationError(f"items[{index}] must be an object")
        product_id = require_int(item.get("product_id"), f"items[{index}].product_id", minimum=1)
        quantity = require_quantity(item.get("quantity"), f"items[{index}].quantity")
        discount = require_int(
            item.get("discount_cents", 0) or 0,
            f"items[{index}].discount_cents",
            minimum=0,
        )
        price = item.get("unit_price_cents")
        if price is not None:
            price = require_int(price, f"items[{index}].unit_price_cents", minimum=0, maximum=MAX_PRICE_CENTS)
        parsed.append({
            "product_id": product_id,
            "quantity": quantity,
            "discount_cents": discount,
            "unit_price_cents": price,
        })
    return parsed


def _validate_on_hand(lines: list[dict]) -> None:
    """Report every short line at once. The guarded UPDATE is the real check."""
    totals: dict[int, int] = {}
    products = {}
    for line in lines:
        product = line["product"]
        products[product.id] = product
        totals[product.id] = totals.get(product.id, 0) + line["quantity"]

    insufficient = []
    for product_id, qty in totals.items():
        product = products[product_id]
        if product.current_stock < qty:
            insufficient.append({
                "product_id": product_id,
                "sku": product.sku,
                "requested_quantity": qty,
                "current_stock": product.current_stock,
            })

    if insufficient:
        raise InsufficientStock(
            "Insufficient stock to complete checkout",
            details={"items": insufficient},
        )


def checkout(items, payment_method, business_id: int, *, actor: str | None = None) -> Sale:
    """
    Turn a cart into a committed Sale plus its stock decrements.

    Prices and costs are snapshotted from the catalog at checkout time;
    unit_price_cents on a cart line overrides the sale price for that line.

    Raises:
        EmptyCartError, ValidationError: before any write
        NotFoundError: unknown business or product
        InsufficientStock: a line would drive stock negative
        ConcurrencyConflict, PersistenceError: from the storage layer
    """
    requested = _parse_cart(items)
    method = normalize_payment_method(payment_method)
    actor = optional_text(actor, "actor", max_length=128)

    def _op():
        business = get_business(business_id)

        lines = []
        for index, req in enumerate(requested):
            product = ensure_product_in_business(business.id, req["product_id"], require_active=True)
            price = req["unit_price_cents"]
            if price is None:
                price = product.sale_price_cents
            gross = price * req["quantity"]
            if req["discount_cents"] > gross:
                raise ValidationError(
                    f"items[{index}].discount_cents exceeds the line total",
                    details={"line_total_cents": gross, "discount_cents": req["discount_cents"]},
                )
            lines.append({
                "product": product,
                "quantity": req["quantity"],
                "price_at_sale_cents": price,
                "cost_at_sale_cents": product.cost_price_cents,
                "discount_cents": req["discount_cents"],
            })

        if current_app.config.get("ENFORCE_STOCK_LEVELS", True):
            _validate_on_hand(lines)

        totals = compute_totals(lines)
        shift = get_open_shift(business.id)

        sale = Sale(
            business_id=business.id,
            tenant_id=business.tenant_id,
            document_number=next_document_number("S"),
            payment_method=method,
            cash_shift_id=shift.id if shift else None,
            actor=actor,
            is_refunded=False,
            **totals,
        )
        db.session.add(sale)
        db.session.flush()

        for line in lines:
            product = line["product"]
            db.session.add(SaleItem(
                sale_id=sale.id,
                product_id=product.id,
                sku=product.sku,
                name=product.name,
                quantity=line["quantity"],
                price_at_sale_cents=line["price_at_sale_cents"],
                cost_at_sale_cents=line["cost_at_sale_cents"],
                discount_cents=line["discount_cents"],
                refunded_quantity=0,
            ))
            record_movement(
                product.id,
                -line["quantity"],
                MOVEMENT_SALE,
                f"Sale {sale.document_number}",
                actor,
                sale_id=sale.id,
                commit=False,
            )

        db.session.flush()
        return sale

    sale = run_in_transaction(_op)
    return get_sale(sale.id)


def get_sale(sale_id: int) -> Sale:
    """Fresh snapshot of a sale and its items."""
    sale = db.session.get(Sale, sale_id, populate_existing=True)
    if sale is None:
        raise NotFoundError(f"Sale {sale_id} not found")
    return sale
