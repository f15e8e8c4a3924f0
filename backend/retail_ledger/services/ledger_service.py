# Overview: Stock ledger; append-only movements and the derived current_stock counter.

from __future__ import annotations

from flask import current_app
from sqlalchemy import func, update

from ..errors import InsufficientStock, NotFoundError, ValidationError
from ..extensions import db
from ..models import Product, StockMovement
from ..models.inventory import (
    MOVEMENT_ADJUSTMENT,
    MOVEMENT_ARRIVAL,
    MOVEMENT_DAMAGED,
    MOVEMENT_KINDS,
    MOVEMENT_RETURN,
    MOVEMENT_SALE,
)
from ..time_utils import utcnow
from ..validation import MAX_QUANTITY, require_int
from .concurrency import run_in_transaction
"""
Stock Ledger Invariants (authoritative)

- stock_movements is append-only. Rows are never updated or deleted;
  corrections are new movements.
- product.current_stock == product.opening_stock + SUM(quantity_delta)
  at every commit point.
- The movement insert and the counter update happen in the same
  transaction. The counter is changed with one conditional UPDATE
  (current_stock = current_stock + delta), never read-modify-write, so
  concurrent writers cannot lose updates.
- With ENFORCE_STOCK_LEVELS on, a negative delta only applies while
  current_stock + delta >= 0 ("decrement-if-available").
- Movements for one product are serialized by the row update, so id order
  is commit order per product. history() relies on this.
"""

# Sign rule per kind: +1 must be positive, -1 must be negative, 0 either
_SIGN_RULES = {
    MOVEMENT_ARRIVAL: 1,
    MOVEMENT_RETURN: 1,
    MOVEMENT_SALE: -1,
    MOVEMENT_DAMAGED: -1,
    MOVEMENT_ADJUSTMENT: 0,
}

_REASON_REQUIRED = (MOVEMENT_ADJUSTMENT, MOVEMENT_DAMAGED)


def validate_movement(quantity_delta, kind: str, reason: str | None = None) -> int:
    """
    Check a movement before anything is written.

    Returns the delta as an int. Raises ValidationError.
    """
    if kind not in MOVEMENT_KINDS:
        raise ValidationError(
            f"unknown movement kind {kind!r}",
            details={"allowed": list(MOVEMENT_KINDS)},
        )

    quantity_delta = require_int(
        quantity_delta,
        "quantity_delta",
        minimum=-MAX_QUANTITY,
        maximum=MAX_QUANTITY,
    )

    if quantity_delta == 0:
        raise ValidationError("quantity_delta must be non-zero")

    sign = _SIGN_RULES[kind]
    if sign > 0 and quantity_delta < 0:
        raise ValidationError(f"{kind} movements must increase stock")
    if sign < 0 and quantity_delta > 0:
        raise ValidationError(f"{kind} movements must decrease stock")

    if kind in _REASON_REQUIRED and not (reason or "").strip():
        raise ValidationError(f"{kind} movements require a reason")

    return quantity_delta


def _apply_movement(
    *,
    product_id: int,
    quantity_delta: int,
    kind: str,
    reason: str | None,
    actor: str | None,
    sale_id: int | None,
    refund_id: int | None,
) -> StockMovement:
    """Counter update + movement insert inside the caller's transaction."""
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError(f"Product {product_id} not found")

    stmt = (
        update(Product)
        .where(Product.id == product_id)
        .values(
            current_stock=Product.current_stock + quantity_delta,
            version_id=Product.version_id + 1,
            updated_at=utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    guarded = quantity_delta < 0 and current_app.config.get("ENFORCE_STOCK_LEVELS", True)
    if guarded:
        stmt = stmt.where(Product.current_stock + quantity_delta >= 0)

    result = db.session.execute(stmt)
    if result.rowcount == 0:
        db.session.refresh(product)
        raise InsufficientStock(
            f"Insufficient stock for {product.sku}",
            details={
                "product_id": product.id,
                "sku": product.sku,
                "requested_quantity": -quantity_delta,
                "current_stock": product.current_stock,
            },
        )

    # Pick up the committed counter and version written by the UPDATE
    db.session.refresh(product)

    movement = StockMovement(
        product_id=product.id,
        business_id=product.business_id,
        tenant_id=product.tenant_id,
        kind=kind,
        quantity_delta=quantity_delta,
        stock_after=product.current_stock,
        reason=reason,
        actor=actor,
        sale_id=sale_id,
        refund_id=refund_id,
    )
    db.session.add(movement)
    db.session.flush()
    return movement


def record_movement(
    product_id: int,
    quantity_delta: int,
    kind: str,
    reason: str | None = None,
    actor: str | None = None,
    *,
    sale_id: int | None = None,
    refund_id: int | None = None,
    commit: bool = True,
) -> StockMovement:
    """
    Append an immutable movement and apply it to product.current_stock.

    commit=True runs as its own unit of work. commit=False joins the
    caller's transaction (checkout, refund, reception) and leaves the
    commit to it.

    Raises:
        ValidationError: bad kind/delta/reason (before any write)
        NotFoundError: unknown product
        InsufficientStock: enforcement on and stock would go negative
    """
    quantity_delta = validate_movement(quantity_delta, kind, reason)

    def _op():
        return _apply_movement(
            product_id=product_id,
            quantity_delta=quantity_delta,
            kind=kind,
            reason=reason,
            actor=actor,
            sale_id=sale_id,
            refund_id=refund_id,
        )

    if commit:
        return run_in_transaction(_op)
    return _op()


class MovementHistory:
    """
    Newest-first view over one product's movements.

    Lazy: rows are fetched in keyset pages of batch_size as iteration
    proceeds. Restartable: every iter() starts a fresh query, so the same
    object can be walked repeatedly and always reflects committed state.
    """

    def __init__(self, product_id: int, *, kind: str | None = None, batch_size: int = 100):
        self.product_id = product_id
        self.kind = kind
        self.batch_size = batch_size

    def _page(self, before_id: int | None):
        q = StockMovement.query.filter(StockMovement.product_id == self.product_id)
        if self.kind is not None:
            q = q.filter(StockMovement.kind == self.kind)
        if before_id is not None:
            q = q.filter(StockMovement.id < before_id)
        return q.order_by(StockMovement.id.desc()).limit(self.batch_size).all()

    def __iter__(self):
        before_id = None
        while True:
            page = self._page(before_id)
            if not page:
                return
            yield from page
            if len(page) < self.batch_size:
                return
            before_id = page[-1].id


def history(product_id: int, *, kind: str | None = None, batch_size: int = 100) -> MovementHistory:
    """Movements for a product, newest first. Pure read."""
    if kind is not None and kind not in MOVEMENT_KINDS:
        raise ValidationError(f"unknown movement kind {kind!r}")
    if batch_size <= 0:
        raise ValidationError("batch_size must be positive")
    if db.session.get(Product, product_id) is None:
        raise NotFoundError(f"Product {product_id} not found")
    return MovementHistory(product_id, kind=kind, batch_size=batch_size)


def stock_from_history(product_id: int) -> int:
    """Recompute on-hand quantity from opening stock plus the ledger."""
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError(f"Product {product_id} not found")
    total = db.session.query(
        func.coalesce(func.sum(StockMovement.quantity_delta), 0)
    ).filter(StockMovement.product_id == product_id).scalar()
    return product.opening_stock + int(total or 0)


def verify_stock(business_id: int | None = None) -> list[dict]:
    """
    Report every product whose cached current_stock drifted from its ledger.

    Returns an empty list when the ledger and the counters agree.
    """
    movement_sum = (
        db.session.query(
            StockMovement.product_id.label("product_id"),
            func.sum(StockMovement.quantity_delta).label("total"),
        )
        .group_by(StockMovement.product_id)
        .subquery()
    )
    q = db.session.query(
        Product,
        func.coalesce(movement_sum.c.total, 0),
    ).outerjoin(movement_sum, movement_sum.c.product_id == Product.id)
    if business_id is not None:
        q = q.filter(Product.business_id == business_id)

    drifted = []
    for product, total in q.order_by(Product.id).all():
        expected = product.opening_stock + int(total or 0)
        if expected != product.current_stock:
            drifted.append({
                "product_id": product.id,
                "business_id": product.business_id,
                "sku": product.sku,
                "current_stock": product.current_stock,
                "ledger_stock": expected,
                "drift": product.current_stock - expected,
            })
    return drifted
