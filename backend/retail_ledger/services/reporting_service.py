# Overview: Read-only reporting over the ledger, sales, refunds and shifts; never writes.

from __future__ import annotations

from datetime import datetime

from flask import current_app
from sqlalchemy import func, or_

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import CashMovement, CashShift, Product, RefundAdjustment, Sale, StockMovement
from ..models.cash import SHIFT_STATUSES
from ..models.inventory import MOVEMENT_KINDS
from ..time_utils import parse_window, to_utc_z

MAX_REPORT_ROWS = 1000


def _parse_range(start: str | None, end: str | None) -> tuple[datetime | None, datetime | None]:
    try:
        return parse_window(start, end)
    except ValueError as exc:
        raise ValidationError(f"invalid date range: {exc}")


def _clamp_limit(limit: int | None) -> int:
    if limit is None:
        return MAX_REPORT_ROWS
    if limit <= 0:
        raise ValidationError("limit must be positive")
    return min(limit, MAX_REPORT_ROWS)


def list_movements(
    *,
    business_id: int,
    kind: str | None = None,
    product_id: int | None = None,
    search: str | None = None,
    start: str | None = None,
    end: str | None = None,
    limit: int | None = None,
) -> list[dict]:
    """
    Movement ledger for a business, newest first.

    search matches the product SKU, product description or movement reason
    (case-insensitive substring).
    """
    if kind is not None and kind not in MOVEMENT_KINDS:
        raise ValidationError(f"unknown movement kind {kind!r}", details={"allowed": list(MOVEMENT_KINDS)})
    start_dt, end_dt = _parse_range(start, end)

    query = db.session.query(StockMovement, Product).join(
        Product, Product.id == StockMovement.product_id
    ).filter(StockMovement.business_id == business_id)

    if kind:
        query = query.filter(StockMovement.kind == kind)
    if product_id is not None:
        query = query.filter(StockMovement.product_id == product_id)
    if search:
        pattern = f"%{search.strip().lower()}%"
        query = query.filter(or_(
            func.lower(Product.sku).like(pattern),
            func.lower(func.coalesce(Product.description, "")).like(pattern),
            func.lower(func.coalesce(StockMovement.reason, "")).like(pattern),
        ))
    if start_dt:
        query = query.filter(StockMovement.created_at >= start_dt)
    if end_dt:
        query = query.filter(StockMovement.created_at <= end_dt)

    rows = query.order_by(StockMovement.id.desc()).limit(_clamp_limit(limit)).all()
    results = []
    for movement, product in rows:
        data = movement.to_dict()
        data["sku"] = product.sku
        data["product_name"] = product.name
        results.append(data)
    return results


def list_sales(
    *,
    business_id: int,
    payment_method: str | None = None,
    start: str | None = None,
    end: str | None = None,
    include_refunded: bool = True,
    limit: int | None = None,
) -> list[Sale]:
    start_dt, end_dt = _parse_range(start, end)
    query = Sale.query.filter(Sale.business_id == business_id)
    if payment_method:
        query = query.filter(Sale.payment_method == payment_method.strip().upper())
    if not include_refunded:
        query = query.filter(Sale.is_refunded.is_(False))
    if start_dt:
        query = query.filter(Sale.created_at >= start_dt)
    if end_dt:
        query = query.filter(Sale.created_at <= end_dt)
    return query.order_by(Sale.id.desc()).limit(_clamp_limit(limit)).populate_existing().all()


def list_refund_adjustments(
    *,
    business_id: int,
    start: str | None = None,
    end: str | None = None,
) -> list[RefundAdjustment]:
    start_dt, end_dt = _parse_range(start, end)
    query = RefundAdjustment.query.filter(RefundAdjustment.business_id == business_id)
    if start_dt:
        query = query.filter(RefundAdjustment.created_at >= start_dt)
    if end_dt:
        query = query.filter(RefundAdjustment.created_at <= end_dt)
    return query.order_by(RefundAdjustment.id.desc()).all()


def list_shifts(
    *,
    business_id: int | None = None,
    status: str | None = None,
    limit: int | None = None,
) -> list[CashShift]:
    if status is not None:
        status = status.strip().upper()
        if status not in SHIFT_STATUSES:
            raise ValidationError(f"unknown shift status {status!r}", details={"allowed": list(SHIFT_STATUSES)})
    query = CashShift.query
    if business_id is not None:
        query = query.filter(CashShift.business_id == business_id)
    if status:
        query = query.filter(CashShift.status == status)
    return query.order_by(CashShift.id.desc()).limit(_clamp_limit(limit)).populate_existing().all()


def list_cash_movements(shift_id: int) -> list[CashMovement]:
    if db.session.get(CashShift, shift_id) is None:
        raise NotFoundError(f"Shift {shift_id} not found")
    return CashMovement.query.filter_by(shift_id=shift_id).order_by(CashMovement.id).all()


def low_stock_products(business_id: int, threshold: int | None = None) -> list[Product]:
    """Active products at or below the threshold, lowest stock first."""
    if threshold is None:
        threshold = current_app.config.get("LOW_STOCK_THRESHOLD", 10)
    if threshold < 0:
        raise ValidationError("threshold must be >= 0")
    return (
        Product.query.filter(
            Product.business_id == business_id,
            Product.is_active.is_(True),
            Product.current_stock <= threshold,
        )
        .order_by(Product.current_stock, Product.sku)
        .populate_existing()
        .all()
    )


def sales_summary(
    *,
    business_id: int,
    start: str | None = None,
    end: str | None = None,
) -> dict:
    """
    Gross sales, refunds and net figures for a business over a period.

    Refund adjustments are counted in the period they were issued, not the
    period of the sale they reverse.
    """
    start_dt, end_dt = _parse_range(start, end)

    sales_q = db.session.query(
        Sale.payment_method,
        func.count(Sale.id),
        func.coalesce(func.sum(Sale.sales_amount_cents), 0),
        func.coalesce(func.sum(Sale.cost_amount_cents), 0),
        func.coalesce(func.sum(Sale.discount_cents), 0),
    ).filter(Sale.business_id == business_id)
    if start_dt:
        sales_q = sales_q.filter(Sale.created_at >= start_dt)
    if end_dt:
        sales_q = sales_q.filter(Sale.created_at <= end_dt)

    refunds_q = db.session.query(
        RefundAdjustment.payment_method,
        func.count(RefundAdjustment.id),
        func.coalesce(func.sum(RefundAdjustment.amount_cents), 0),
        func.coalesce(func.sum(RefundAdjustment.cost_reversal_cents), 0),
    ).filter(RefundAdjustment.business_id == business_id)
    if start_dt:
        refunds_q = refunds_q.filter(RefundAdjustment.created_at >= start_dt)
    if end_dt:
        refunds_q = refunds_q.filter(RefundAdjustment.created_at <= end_dt)

    by_method: dict[str, dict] = {}

    def _bucket(method: str) -> dict:
        return by_method.setdefault(method, {
            "sales_count": 0,
            "gross_sales_cents": 0,
            "refunds_count": 0,
            "refunds_cents": 0,
            "net_sales_cents": 0,
        })

    gross = cost = discounts = sales_count = 0
    for method, count, amount, cost_sum, discount_sum in sales_q.group_by(Sale.payment_method).all():
        bucket = _bucket(method)
        bucket["sales_count"] = int(count)
        bucket["gross_sales_cents"] = int(amount)
        sales_count += int(count)
        gross += int(amount)
        cost += int(cost_sum)
        discounts += int(discount_sum)

    refunds = cost_reversed = refunds_count = 0
    for method, count, amount, cost_sum in refunds_q.group_by(RefundAdjustment.payment_method).all():
        bucket = _bucket(method)
        bucket["refunds_count"] = int(count)
        bucket["refunds_cents"] = int(amount)
        refunds_count += int(count)
        refunds += int(amount)
        cost_reversed += int(cost_sum)

    for bucket in by_method.values():
        bucket["net_sales_cents"] = bucket["gross_sales_cents"] - bucket["refunds_cents"]

    net_sales = gross - refunds
    net_cost = cost - cost_reversed
    profit = net_sales - net_cost
    return {
        "business_id": business_id,
        "start": to_utc_z(start_dt),
        "end": to_utc_z(end_dt),
        "sales_count": sales_count,
        "refunds_count": refunds_count,
        "gross_sales_cents": gross,
        "discount_cents": discounts,
        "refunds_cents": refunds,
        "net_sales_cents": net_sales,
        "cost_cents": net_cost,
        "profit_cents": profit,
        "profit_percentage": round(profit / net_sales * 100, 2) if net_sales > 0 else 0.0,
        "by_payment_method": by_method,
    }
