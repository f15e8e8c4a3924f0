# Overview: Catalog and stock-in operations; every stock change goes through the ledger.

from __future__ import annotations

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Business, Product, StockMovement
from ..models.inventory import MOVEMENT_ADJUSTMENT, MOVEMENT_ARRIVAL, MOVEMENT_DAMAGED
from ..validation import (
    MAX_PRICE_CENTS,
    optional_text,
    require_int,
    require_quantity,
    require_text,
)
from .concurrency import run_in_transaction
from .ledger_service import record_movement


def create_business(tenant_id: str, name: str, location: str | None = None) -> Business:
    tenant_id = require_text(tenant_id, "tenant_id", max_length=64)
    name = require_text(name, "name", max_length=128)
    location = optional_text(location, "location")

    def _op():
        business = Business(tenant_id=tenant_id, name=name, location=location)
        db.session.add(business)
        db.session.flush()
        return business

    return run_in_transaction(_op)


def get_business(business_id: int) -> Business:
    business = db.session.get(Business, business_id)
    if business is None:
        raise NotFoundError(f"Business {business_id} not found")
    return business


def get_product(product_id: int) -> Product:
    """Fresh read of one product."""
    product = db.session.get(Product, product_id, populate_existing=True)
    if product is None:
        raise NotFoundError(f"Product {product_id} not found")
    return product


def get_products(business_id: int, *, include_inactive: bool = False) -> list[Product]:
    q = Product.query.filter(Product.business_id == business_id)
    if not include_inactive:
        q = q.filter(Product.is_active.is_(True))
    return q.order_by(Product.sku).populate_existing().all()


def find_product_by_sku(business_id: int, sku: str) -> Product | None:
    return Product.query.filter_by(business_id=business_id, sku=sku.strip().upper()).first()


def ensure_product_in_business(business_id: int, product_id: int, *, require_active: bool = False) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError(f"Product {product_id} not found")
    if product.business_id != business_id:
        raise ValidationError(
            "product does not belong to business",
            details={"product_id": product_id, "business_id": business_id},
        )
    if require_active and not product.is_active:
        raise ValidationError("product is inactive", details={"product_id": product_id})
    return product


def create_product(
    *,
    business_id: int,
    sku: str,
    name: str,
    cost_price_cents: int = 0,
    sale_price_cents: int = 0,
    initial_stock: int = 0,
    description: str | None = None,
    category: str | None = None,
    actor: str | None = None,
) -> Product:
    """
    Manual product entry.

    The starting quantity is posted as an 'arrival' movement so the
    product's stock is fully explained by its ledger from day one.
    SKUs are normalized to upper case and unique per business.
    """
    sku = require_text(sku, "sku", max_length=64).upper()
    name = require_text(name, "name")
    cost_price_cents = require_int(cost_price_cents, "cost_price_cents", minimum=0, maximum=MAX_PRICE_CENTS)
    sale_price_cents = require_int(sale_price_cents, "sale_price_cents", minimum=0, maximum=MAX_PRICE_CENTS)
    initial_stock = require_int(initial_stock, "initial_stock", minimum=0)
    description = optional_text(description, "description", max_length=2000)
    category = optional_text(category, "category", max_length=64)

    def _op():
        business = get_business(business_id)
        if find_product_by_sku(business.id, sku) is not None:
            raise ValidationError(f"SKU {sku} already exists in this business", details={"sku": sku})

        product = Product(
            business_id=business.id,
            tenant_id=business.tenant_id,
            sku=sku,
            name=name,
            description=description,
            category=category,
            cost_price_cents=cost_price_cents,
            sale_price_cents=sale_price_cents,
            opening_stock=0,
            current_stock=0,
        )
        db.session.add(product)
        db.session.flush()

        if initial_stock > 0:
            record_movement(
                product.id,
                initial_stock,
                MOVEMENT_ARRIVAL,
                "Opening stock",
                actor,
                commit=False,
            )
        return product

    return run_in_transaction(_op)


def update_product_pricing(
    product_id: int,
    *,
    cost_price_cents: int | None = None,
    sale_price_cents: int | None = None,
) -> Product:
    """Change catalog prices. Past sales keep their own snapshots."""
    if cost_price_cents is not None:
        cost_price_cents = require_int(cost_price_cents, "cost_price_cents", minimum=0, maximum=MAX_PRICE_CENTS)
    if sale_price_cents is not None:
        sale_price_cents = require_int(sale_price_cents, "sale_price_cents", minimum=0, maximum=MAX_PRICE_CENTS)

    def _op():
        product = get_product(product_id)
        if cost_price_cents is not None:
            product.cost_price_cents = cost_price_cents
        if sale_price_cents is not None:
            product.sale_price_cents = sale_price_cents
        db.session.flush()
        return product

    return run_in_transaction(_op)


def receive_stock(
    *,
    business_id: int,
    lines: list[dict],
    reference: str | None = None,
    actor: str | None = None,
) -> list[StockMovement]:
    """
    Post a supplier delivery: one 'arrival' movement per line.

    Lines are {product_id, quantity, unit_cost_cents?}. A unit cost updates
    the product's catalog cost price. All lines commit together.
    """
    if not lines:
        raise ValidationError("reception has no lines")
    reference = optional_text(reference, "reference", max_length=64)

    parsed = []
    for index, line in enumerate(lines):
        if not isinstance(line, dict):
            raise ValidationError(f"line {index} must be an object")
        product_id = require_int(line.get("product_id"), f"lines[{index}].product_id", minimum=1)
        quantity = require_quantity(line.get("quantity"), f"lines[{index}].quantity")
        unit_cost = line.get("unit_cost_cents")
        if unit_cost is not None:
            unit_cost = require_int(unit_cost, f"lines[{index}].unit_cost_cents", minimum=0, maximum=MAX_PRICE_CENTS)
        parsed.append((product_id, quantity, unit_cost))

    reason = f"Stock reception {reference}" if reference else "Stock reception"

    def _op():
        get_business(business_id)
        movements = []
        for product_id, quantity, unit_cost in parsed:
            product = ensure_product_in_business(business_id, product_id)
            movements.append(
                record_movement(product.id, quantity, MOVEMENT_ARRIVAL, reason, actor, commit=False)
            )
            # After the movement: record_movement refreshes the product row
            if unit_cost is not None:
                product.cost_price_cents = unit_cost
        db.session.flush()
        return movements

    return run_in_transaction(_op)


def adjust_stock(product_id: int, quantity_delta: int, reason: str, actor: str | None = None) -> StockMovement:
    """Manual correction (count differences, found stock). Either sign."""
    return record_movement(product_id, quantity_delta, MOVEMENT_ADJUSTMENT, reason, actor)


def record_damage(product_id: int, quantity: int, reason: str, actor: str | None = None) -> StockMovement:
    """Write off damaged units. quantity is the positive number of units lost."""
    quantity = require_quantity(quantity)
    return record_movement(product_id, -quantity, MOVEMENT_DAMAGED, reason, actor)
