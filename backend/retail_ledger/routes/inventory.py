# Overview: Flask API routes for products, stock movements and receptions; parses input and returns JSON responses.

"""
Inventory API Routes

DESIGN:
- Every stock change is posted through the ledger (arrival, adjustment,
  damaged); there is no endpoint that writes current_stock directly
- Mutations return the authoritative post-commit state
"""

from itertools import islice

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_capability
from ..errors import LedgerError
from ..services import inventory_service, ledger_service, reporting_service
from . import (
    bool_arg,
    business_id_arg,
    int_arg,
    internal_error_response,
    json_body,
    ledger_error_response,
)


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api")


# =============================================================================
# PRODUCTS
# =============================================================================

@inventory_bp.get("/products")
@require_capability("VIEW_INVENTORY")
def list_products_route():
    try:
        business_id = business_id_arg()
        products = inventory_service.get_products(
            business_id,
            include_inactive=bool_arg("include_inactive", False),
        )
        return jsonify({"products": [p.to_dict() for p in products]}), 200
    except LedgerError as e:
        return ledger_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list products")
        return internal_error_response()


@inventory_bp.post("/products")
@require_capability("MANAGE_PRODUCTS")
def create_product_route():
    """
    Manual product entry.

    Request body:
    {
        "business_id": 1,
        "sku": "COLA-330",
        "name": "Cola 330ml",
        "cost_price_cents": 60,
        "sale_price_cents": 100,
        "initial_stock": 50
    }
    """
    try:
        data = json_body()
        product = inventory_service.create_product(
            business_id=business_id_arg(data),
            sku=data.get("sku"),
            name=data.get("name"),
            cost_price_cents=data.get("cost_price_cents", 0),
            sale_price_cents=data.get("sale_price_cents", 0),
            initial_stock=data.get("initial_stock", 0),
            description=data.get("description"),
            category=data.get("category"),
            actor=g.actor,
        )
        return jsonify({"product": inventory_service.get_product(product.id).to_dict()}), 201
    except LedgerError as e:
        return ledger_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create product")
        return internal_error_response()


@inventory_bp.get("/products/low-stock")
@require_capability("VIEW_INVENTORY")
def low_stock_route():
    try:
        products = reporting_service.low_stock_products(
            business_id_arg(),
            threshold=int_arg("threshold", minimum=0),
        )
        return jsonify({"products": [p.to_dict() for p in products]}), 200
    except LedgerError as e:
        return ledger_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list low-stock products")
        return internal_error_response()


@inventory_bp.get("/products/<int:product_id>")
@require_capability("VIEW_INVENTORY")
def get_product_route(product_id: int):
    try:
        product = inventory_service.get_product(product_id)
        return jsonify({"product": product.to_dict()}), 200
    except LedgerError as e:
        return ledger_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to get product")
        return internal_error_response()


@inventory_bp.patch("/products/<int:product_id>")
@require_capability("MANAGE_PRODUCTS")
def update_product_pricing_route(product_id: int):
    try:
        data = json_body()
        product = inventory_service.update_product_pricing(
            product_id,
            cost_price_cents=data.get("cost_price_cents"),
            sale_price_cents=data.get("sale_price_cents"),
        )
        return jsonify({"product": inventory_service.get_product(product.id).to_dict()}), 200
    except LedgerError as e:
        return ledger_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update product pricing")
        return internal_error_response()


# =============================================================================
# LEDGER
# =============================================================================

@inventory_bp.get("/products/<int:product_id>/movements")
@require_capability("VIEW_MOVEMENTS")
def product_movements_route(product_id: int):
    """Newest-first movement history for one product (?kind=&limit=)."""
    try:
        limit = int_arg("limit", minimum=1) or 100
        movements = ledger_service.history(
            product_id,
            kind=request.args.get("kind") or None,
            batch_size=min(limit, 100),
        )
        return jsonify({
            "product_id": product_id,
            "movements": [m.to_dict() for m in islice(movements, limit)],
        }), 200
    except LedgerError as e:
        return ledger_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list product movements")
        return internal_error_response()


@inventory_bp.post("/products/<int:product_id>/adjustments")
@require_capability("ADJUST_STOCK")
def adjust_stock_route(product_id: int):
    """
    Manual stock correction.

    Request body:
    {
        "quantity_delta": -3,
        "reason": "Cycle count"
    }
    """
    try:
        data = json_body()
        movement = inventory_service.adjust_stock(
            product_id,
            data.get("quantity_delta"),
            data.get("reason"),
            g.actor,
        )
        product = inventory_service.get_product(product_id)
        return jsonify({"movement": movement.to_dict(), "product": product.to_dict()}), 201
    except LedgerError as e:
        return ledger_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to adjust stock")
        return internal_error_response()


@inventory_bp.post("/products/<int:product_id>/damages")
@require_capability("ADJUST_STOCK")
def record_damage_route(product_id: int):
    """
    Write off damaged units.

    Request body:
    {
        "quantity": 2,
        "reason": "Dropped pallet"
    }
    """
    try:
        data = json_body()
        movement = inventory_service.record_damage(
            product_id,
            data.get("quantity"),
            data.get("reason"),
            g.actor,
        )
        product = inventory_service.get_product(product_id)
        return jsonify({"movement": movement.to_dict(), "product": product.to_dict()}), 201
    except LedgerError as e:
        return ledger_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to record damaged stock")
        return internal_error_response()


@inventory_bp.post("/receptions")
@require_capability("RECEIVE_STOCK")
def receive_stock_route():
    """
    Post a supplier delivery.

    Request body:
    {
        "business_id": 1,
        "reference": "PO-1001",
        "lines": [{"product_id": 1, "quantity": 24, "unit_cost_cents": 55}]
    }
    """
    try:
        data = json_body()
        movements = inventory_service.receive_stock(
            business_id=business_id_arg(data),
            lines=data.get("lines"),
            reference=data.get("reference"),
            actor=g.actor,
        )
        return jsonify({"movements": [m.to_dict() for m in movements]}), 201
    except LedgerError as e:
        return ledger_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to receive stock")
        return internal_error_response()


@inventory_bp.get("/movements")
@require_capability("VIEW_MOVEMENTS")
def list_movements_route():
    """Movement ledger for a business (?kind=&product_id=&search=&start=&end=&limit=)."""
    try:
        movements = reporting_service.list_movements(
            business_id=business_id_arg(),
            kind=request.args.get("kind") or None,
            product_id=int_arg("product_id", minimum=1),
            search=request.args.get("search") or None,
            start=request.args.get("start"),
            end=request.args.get("end"),
            limit=int_arg("limit", minimum=1),
        )
        return jsonify({"movements": movements}), 200
    except LedgerError as e:
        return ledger_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list movements")
        return internal_error_response()
