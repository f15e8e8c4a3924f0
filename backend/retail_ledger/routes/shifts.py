# Overview: Flask API routes for cash shifts; parses input and returns JSON responses.

"""
Cash Shift API Routes

DESIGN:
- Shift lifecycle: open -> close (immutable once closed)
- Cash movements (drops, payouts, float additions) only on OPEN shifts
- Balance is always recomputed from the ledger, never cached
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_capability
from ..errors import LedgerError
from ..services import cash_shift_service, reporting_service
from . import (
    business_id_arg,
    int_arg,
    internal_error_response,
    json_body,
    ledger_error_response,
)


shifts_bp = Blueprint("shifts", __name__, url_prefix="/api/shifts")


@shifts_bp.post("")
@shifts_bp.post("/")
@require_capability("OPEN_SHIFT")
def open_shift_route():
    """
    Open a register session.

    Request body:
    {
        "business_id": 1,
        "opening_float_cents": 500,
        "notes": "Morning shift"
    }
    """
    try:
        data = json_body()
        shift = cash_shift_service.open_shift(
            business_id_arg(data),
            data.get("user_id") or g.actor,
            data.get("opening_float_cents"),
            notes=data.get("notes"),
        )
        return jsonify({"shift": shift.to_dict()}), 201
    except LedgerError as e:
        return ledger_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to open shift")
        return internal_error_response()


@shifts_bp.get("")
@shifts_bp.get("/")
@require_capability("VIEW_SHIFTS")
def list_shifts_route():
    try:
        shifts = reporting_service.list_shifts(
            business_id=int_arg("business_id", minimum=1),
            status=request.args.get("status") or None,
            limit=int_arg("limit", minimum=1),
        )
        return jsonify({"shifts": [s.to_dict() for s in shifts]}), 200
    except LedgerError as e:
        return ledger_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list shifts")
        return internal_error_response()


@shifts_bp.get("/current")
@require_capability("VIEW_SHIFTS")
def current_shift_route():
    try:
        shift = cash_shift_service.get_open_shift(business_id_arg())
        if shift is None:
            return jsonify({"shift": None}), 200
        return jsonify({
            "shift": shift.to_dict(),
            "live_balance_cents": cash_shift_service.live_balance(shift),
        }), 200
    except LedgerError as e:
        return ledger_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to get current shift")
        return internal_error_response()


@shifts_bp.get("/<int:shift_id>")
@require_capability("VIEW_SHIFTS")
def get_shift_route(shift_id: int):
    """Shift with its cash breakdown and movements."""
    try:
        summary = cash_shift_service.shift_summary(shift_id)
        summary["movements"] = [m.to_dict() for m in reporting_service.list_cash_movements(shift_id)]
        return jsonify(summary), 200
    except LedgerError as e:
        return ledger_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to get shift")
        return internal_error_response()


@shifts_bp.post("/<int:shift_id>/movements")
@require_capability("RECORD_CASH_MOVEMENT")
def record_cash_movement_route(shift_id: int):
    """
    Record a drop, payout or float addition.

    Request body:
    {
        "kind": "DROP",
        "amount_cents": 300,
        "reason": "Safe drop"
    }
    """
    try:
        data = json_body()
        movement = cash_shift_service.record_cash_movement(
            shift_id,
            data.get("kind"),
            data.get("amount_cents"),
            data.get("reason"),
            user_id=g.actor,
        )
        return jsonify({
            "movement": movement.to_dict(),
            "live_balance_cents": cash_shift_service.live_balance(shift_id),
        }), 201
    except LedgerError as e:
        return ledger_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to record cash movement")
        return internal_error_response()


@shifts_bp.get("/<int:shift_id>/balance")
@require_capability("VIEW_SHIFTS")
def live_balance_route(shift_id: int):
    try:
        shift = cash_shift_service.get_shift(shift_id)
        return jsonify({
            "shift_id": shift.id,
            "status": shift.status,
            "live_balance_cents": cash_shift_service.live_balance(shift),
        }), 200
    except LedgerError as e:
        return ledger_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to compute live balance")
        return internal_error_response()


@shifts_bp.post("/<int:shift_id>/close")
@require_capability("CLOSE_SHIFT")
def close_shift_route(shift_id: int):
    """
    Count the drawer and close the shift.

    Request body:
    {
        "counted_cash_cents": 1200,
        "notes": "All good"
    }
    """
    try:
        data = json_body()
        shift = cash_shift_service.close_shift(
            shift_id,
            data.get("counted_cash_cents"),
            notes=data.get("notes"),
            user_id=g.actor,
        )
        return jsonify({"shift": shift.to_dict()}), 200
    except LedgerError as e:
        return ledger_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to close shift")
        return internal_error_response()
