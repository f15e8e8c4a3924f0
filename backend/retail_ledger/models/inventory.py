from __future__ import annotations

from sqlalchemy import event

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


MOVEMENT_ARRIVAL = "arrival"
MOVEMENT_SALE = "sale"
MOVEMENT_ADJUSTMENT = "adjustment"
MOVEMENT_RETURN = "return"
MOVEMENT_DAMAGED = "damaged"

MOVEMENT_KINDS = (
    MOVEMENT_ARRIVAL,
    MOVEMENT_SALE,
    MOVEMENT_ADJUSTMENT,
    MOVEMENT_RETURN,
    MOVEMENT_DAMAGED,
)


class Product(db.Model):
    """
    Product master data with a cached stock counter.

    MULTI-TENANT: products are scoped to a business (business_id) and carry
    the business's tenant_id. SKUs are unique within a business.

    STOCK DESIGN:
    - current_stock is a cache of opening_stock + SUM(stock_movements.quantity_delta).
    - It is written ONLY by ledger_service.record_movement, in the same
      transaction as the movement row, through a conditional UPDATE.
    - opening_stock is 0 for products created by this service (their
      starting quantity is posted as an 'arrival' movement). It is non-zero
      only for catalog rows migrated in with pre-existing stock.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("business_id", "sku", name="uq_products_business_sku"),
        db.Index("ix_products_business_name", "business_id", "name"),
        db.Index("ix_products_business_stock", "business_id", "current_stock"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False, index=True)
    tenant_id = db.Column(db.String(64), nullable=False, index=True)

    sku = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(64), nullable=True)

    # Authoritative storage in cents
    cost_price_cents = db.Column(db.Integer, nullable=False, default=0)
    sale_price_cents = db.Column(db.Integer, nullable=False, default=0)

    opening_stock = db.Column(db.Integer, nullable=False, default=0)
    current_stock = db.Column(db.Integer, nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    business = db.relationship("Business", backref=db.backref("products", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} business_id={self.business_id} stock={self.current_stock}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "business_id": self.business_id,
            "tenant_id": self.tenant_id,
            "sku": self.sku,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "cost_price_cents": self.cost_price_cents,
            "sale_price_cents": self.sale_price_cents,
            "opening_stock": self.opening_stock,
            "current_stock": self.current_stock,
            "is_active": self.is_active,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class StockMovement(db.Model):
    """
    Append-only stock ledger row.

    IMMUTABLE: the mapper listeners below refuse UPDATE and DELETE through
    the ORM. Corrections are new 'adjustment' movements.

    stock_after snapshots product.current_stock right after this movement
    was applied, which makes the ledger readable as a running balance.
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.Index("ix_stock_movements_product_created", "product_id", "created_at"),
        db.Index("ix_stock_movements_business_kind_created", "business_id", "kind", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False, index=True)
    tenant_id = db.Column(db.String(64), nullable=False, index=True)

    kind = db.Column(db.String(16), nullable=False, index=True)
    quantity_delta = db.Column(db.Integer, nullable=False)
    stock_after = db.Column(db.Integer, nullable=False)

    reason = db.Column(db.String(255), nullable=True)
    actor = db.Column(db.String(128), nullable=True)

    # Source documents (nullable: arrivals and adjustments have none)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True, index=True)
    refund_id = db.Column(db.Integer, db.ForeignKey("refund_adjustments.id"), nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    product = db.relationship("Product", backref=db.backref("movements", lazy="dynamic"))

    def __repr__(self) -> str:
        return f"<StockMovement id={self.id} product_id={self.product_id} kind={self.kind} delta={self.quantity_delta}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "business_id": self.business_id,
            "tenant_id": self.tenant_id,
            "kind": self.kind,
            "quantity_delta": self.quantity_delta,
            "stock_after": self.stock_after,
            "reason": self.reason,
            "actor": self.actor,
            "sale_id": self.sale_id,
            "refund_id": self.refund_id,
            "created_at": to_utc_z(self.created_at),
        }


@event.listens_for(StockMovement, "before_update")
def _refuse_movement_update(mapper, connection, target):
    raise RuntimeError(f"stock movement {target.id} is immutable")


@event.listens_for(StockMovement, "before_delete")
def _refuse_movement_delete(mapper, connection, target):
    raise RuntimeError(f"stock movement {target.id} is immutable")
