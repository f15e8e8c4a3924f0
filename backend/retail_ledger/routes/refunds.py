# Overview: Flask API routes for sale refunds; parses input and returns JSON responses.

from flask import Blueprint, current_app, g, jsonify

from ..decorators import require_capability
from ..errors import LedgerError
from ..services import refund_service, sales_service
from . import internal_error_response, json_body, ledger_error_response


refunds_bp = Blueprint("refunds", __name__, url_prefix="/api/sales")


@refunds_bp.post("/<int:sale_id>/refunds")
@require_capability("PROCESS_REFUND")
def process_refund_route(sale_id: int):
    """
    Refund units of a sale and restock them.

    Request body:
    {
        "items": [{"product_id": 1, "quantity": 2}],
        "reason": "Damaged packaging"
    }

    Returns the refund adjustment and the sale as it stands afterwards.
    """
    try:
        data = json_body()
        refund = refund_service.process_refund(
            sale_id,
            data.get("items"),
            reason=data.get("reason"),
            actor=g.actor,
        )
        sale = sales_service.get_sale(sale_id)
        return jsonify({"refund": refund.to_dict(), "sale": sale.to_dict()}), 201
    except LedgerError as e:
        return ledger_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to process refund")
        return internal_error_response()


@refunds_bp.get("/<int:sale_id>/refunds")
@require_capability("VIEW_SALES")
def list_refunds_route(sale_id: int):
    try:
        refunds = refund_service.list_refunds(sale_id)
        return jsonify({"sale_id": sale_id, "refunds": [r.to_dict() for r in refunds]}), 200
    except LedgerError as e:
        return ledger_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list refunds")
        return internal_error_response()
