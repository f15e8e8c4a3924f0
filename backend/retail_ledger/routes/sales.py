# Overview: Flask API routes for checkout and sales history; parses input and returns JSON responses.

"""
Sales API Routes

DESIGN:
- POST /api/sales is checkout: the Sale and its stock decrements commit
  together or not at all
- Sales are never edited; refunds live under /api/sales/<id>/refunds
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_capability
from ..errors import LedgerError
from ..services import reporting_service, sales_service
from . import (
    bool_arg,
    business_id_arg,
    int_arg,
    internal_error_response,
    json_body,
    ledger_error_response,
)


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("")
@sales_bp.post("/")
@require_capability("CREATE_SALE")
def checkout_route():
    """
    Check out a cart.

    Request body:
    {
        "business_id": 1,
        "payment_method": "CASH",
        "items": [{"product_id": 1, "quantity": 5, "discount_cents": 0}]
    }
    """
    try:
        data = json_body()
        sale = sales_service.checkout(
            data.get("items"),
            data.get("payment_method"),
            business_id_arg(data),
            actor=g.actor,
        )
        return jsonify({"sale": sale.to_dict()}), 201
    except LedgerError as e:
        return ledger_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to check out sale")
        return internal_error_response()


@sales_bp.get("")
@sales_bp.get("/")
@require_capability("VIEW_SALES")
def list_sales_route():
    try:
        sales = reporting_service.list_sales(
            business_id=business_id_arg(),
            payment_method=request.args.get("payment_method") or None,
            start=request.args.get("start"),
            end=request.args.get("end"),
            include_refunded=bool_arg("include_refunded", True),
            limit=int_arg("limit", minimum=1),
        )
        return jsonify({"sales": [s.to_dict(include_items=False) for s in sales]}), 200
    except LedgerError as e:
        return ledger_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list sales")
        return internal_error_response()


@sales_bp.get("/summary")
@require_capability("VIEW_REPORTS")
def sales_summary_route():
    """Gross, refunded and net sales for a business (?start=&end=)."""
    try:
        summary = reporting_service.sales_summary(
            business_id=business_id_arg(),
            start=request.args.get("start"),
            end=request.args.get("end"),
        )
        return jsonify(summary), 200
    except LedgerError as e:
        return ledger_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to build sales summary")
        return internal_error_response()


@sales_bp.get("/<int:sale_id>")
@require_capability("VIEW_SALES")
def get_sale_route(sale_id: int):
    try:
        sale = sales_service.get_sale(sale_id)
        return jsonify({"sale": sale.to_dict()}), 200
    except LedgerError as e:
        return ledger_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to get sale")
        return internal_error_response()
