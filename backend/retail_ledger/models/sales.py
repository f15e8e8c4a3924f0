from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


PAYMENT_CASH = "CASH"
PAYMENT_CARD = "CARD"


class Sale(db.Model):
    """
    Completed sale, written once by sales_service.checkout.

    Totals are a point-in-time record and are never rewritten. Refunds are
    separate RefundAdjustment rows; the only fields that change after
    checkout are SaleItem.refunded_quantity and Sale.is_refunded.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.UniqueConstraint("business_id", "document_number", name="uq_sales_business_docnum"),
        db.Index("ix_sales_business_created", "business_id", "created_at"),
        db.Index("ix_sales_shift_method", "cash_shift_id", "payment_method"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False, index=True)
    tenant_id = db.Column(db.String(64), nullable=False, index=True)

    # Human-readable document number (e.g., "S-3F9A1C02B7E4")
    document_number = db.Column(db.String(64), nullable=False)

    payment_method = db.Column(db.String(16), nullable=False, index=True)

    # Register session that was OPEN for the business at checkout, if any
    cash_shift_id = db.Column(db.Integer, db.ForeignKey("cash_shifts.id"), nullable=True, index=True)

    actor = db.Column(db.String(128), nullable=True)

    # All amounts in cents
    subtotal_cents = db.Column(db.Integer, nullable=False)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    sales_amount_cents = db.Column(db.Integer, nullable=False)
    cost_amount_cents = db.Column(db.Integer, nullable=False)
    profit_amount_cents = db.Column(db.Integer, nullable=False)
    profit_percentage = db.Column(db.Float, nullable=False, default=0.0)

    is_refunded = db.Column(db.Boolean, nullable=False, default=False, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    business = db.relationship("Business", backref=db.backref("sales", lazy=True))
    items = db.relationship(
        "SaleItem",
        back_populates="sale",
        order_by="SaleItem.id",
        lazy="selectin",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Sale id={self.id} doc={self.document_number!r} amount={self.sales_amount_cents}>"

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "business_id": self.business_id,
            "tenant_id": self.tenant_id,
            "document_number": self.document_number,
            "payment_method": self.payment_method,
            "cash_shift_id": self.cash_shift_id,
            "actor": self.actor,
            "subtotal_cents": self.subtotal_cents,
            "discount_cents": self.discount_cents,
            "sales_amount_cents": self.sales_amount_cents,
            "cost_amount_cents": self.cost_amount_cents,
            "profit_amount_cents": self.profit_amount_cents,
            "profit_percentage": self.profit_percentage,
            "is_refunded": self.is_refunded,
            "created_at": to_utc_z(self.created_at),
            "version_id": self.version_id,
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class SaleItem(db.Model):
    """
    Line snapshot: price, cost and discount as they were at checkout.

    refunded_quantity is the only mutable column and is only ever raised by
    refund_service through a guarded UPDATE (0 <= refunded_quantity <= quantity).
    """
    __tablename__ = "sale_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_sale_items_quantity_positive"),
        db.CheckConstraint(
            "refunded_quantity >= 0 AND refunded_quantity <= quantity",
            name="ck_sale_items_refunded_range",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    sku = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(255), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    price_at_sale_cents = db.Column(db.Integer, nullable=False)
    cost_at_sale_cents = db.Column(db.Integer, nullable=False)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)

    refunded_quantity = db.Column(db.Integer, nullable=False, default=0)

    sale = db.relationship("Sale", back_populates="items")

    @property
    def net_amount_cents(self) -> int:
        return self.price_at_sale_cents * self.quantity - self.discount_cents

    @property
    def remaining_quantity(self) -> int:
        return self.quantity - self.refunded_quantity

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "sku": self.sku,
            "name": self.name,
            "quantity": self.quantity,
            "price_at_sale_cents": self.price_at_sale_cents,
            "cost_at_sale_cents": self.cost_at_sale_cents,
            "discount_cents": self.discount_cents,
            "net_amount_cents": self.net_amount_cents,
            "refunded_quantity": self.refunded_quantity,
        }


class RefundAdjustment(db.Model):
    """
    Immutable financial adjustment written by one process_refund call.

    WHY a separate record: the original sale's totals stay untouched for
    audit; net revenue is sales minus adjustments.
    """
    __tablename__ = "refund_adjustments"
    __table_args__ = (
        db.Index("ix_refund_adjustments_business_created", "business_id", "created_at"),
        db.Index("ix_refund_adjustments_shift_method", "cash_shift_id", "payment_method"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False, index=True)
    tenant_id = db.Column(db.String(64), nullable=False, index=True)

    document_number = db.Column(db.String(64), nullable=False, unique=True)

    # Copied from the sale: a CASH refund is paid out of the drawer
    payment_method = db.Column(db.String(16), nullable=False)
    cash_shift_id = db.Column(db.Integer, db.ForeignKey("cash_shifts.id"), nullable=True, index=True)

    amount_cents = db.Column(db.Integer, nullable=False)
    cost_reversal_cents = db.Column(db.Integer, nullable=False)
    profit_reversal_cents = db.Column(db.Integer, nullable=False)

    reason = db.Column(db.String(255), nullable=True)
    actor = db.Column(db.String(128), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    sale = db.relationship("Sale", backref=db.backref("refunds", lazy=True, order_by="RefundAdjustment.id"))
    lines = db.relationship(
        "RefundAdjustmentLine",
        back_populates="refund",
        order_by="RefundAdjustmentLine.id",
        lazy="selectin",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "business_id": self.business_id,
            "tenant_id": self.tenant_id,
            "document_number": self.document_number,
            "payment_method": self.payment_method,
            "cash_shift_id": self.cash_shift_id,
            "amount_cents": self.amount_cents,
            "cost_reversal_cents": self.cost_reversal_cents,
            "profit_reversal_cents": self.profit_reversal_cents,
            "reason": self.reason,
            "actor": self.actor,
            "created_at": to_utc_z(self.created_at),
            "lines": [line.to_dict() for line in self.lines],
        }


class RefundAdjustmentLine(db.Model):
    __tablename__ = "refund_adjustment_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    refund_id = db.Column(db.Integer, db.ForeignKey("refund_adjustments.id"), nullable=False, index=True)
    sale_item_id = db.Column(db.Integer, db.ForeignKey("sale_items.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)
    cost_cents = db.Column(db.Integer, nullable=False)

    stock_movement_id = db.Column(db.Integer, db.ForeignKey("stock_movements.id"), nullable=True)

    refund = db.relationship("RefundAdjustment", back_populates="lines")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "refund_id": self.refund_id,
            "sale_item_id": self.sale_item_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "amount_cents": self.amount_cents,
            "cost_cents": self.cost_cents,
            "stock_movement_id": self.stock_movement_id,
        }
