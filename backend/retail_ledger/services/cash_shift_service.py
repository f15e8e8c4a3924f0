"""
Cash Shift Management Service

WHY: Cash accountability per register session. The drawer's expected cash
is derived from the shift's float, the cash sales and cash refunds linked
to it, and its cash movements; the counted cash at close is compared
against it.

DESIGN PRINCIPLES:
- One OPEN shift per business at a time (service check + partial unique index)
- OPEN -> CLOSED exactly once; CLOSED is terminal, never reopened
- Cash movements are immutable and only accepted while the shift is OPEN
- Close is a compare-and-set on status, so two racing closes cannot both
  persist an expected cash and variance
"""

from __future__ import annotations

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError

from ..errors import (
    NotFoundError,
    ShiftAlreadyClosedError,
    ShiftAlreadyOpenError,
    ValidationError,
)
from ..extensions import db
from ..models import Business, CashMovement, CashShift, RefundAdjustment, Sale
from ..models.cash import (
    CASH_DROP,
    CASH_FLOAT_ADD,
    CASH_MOVEMENT_KINDS,
    CASH_PAYOUT,
    SHIFT_CLOSED,
    SHIFT_OPEN,
)
from ..models.sales import PAYMENT_CASH
from ..time_utils import utcnow
from ..validation import optional_text, require_cents, require_text
from .concurrency import lock_for_update, run_in_transaction


def _normalize_user_id(user_id, field: str = "user_id", *, required: bool = True) -> str | None:
    if isinstance(user_id, int) and not isinstance(user_id, bool):
        user_id = str(user_id)
    if required:
        return require_text(user_id, field, max_length=128)
    return optional_text(user_id, field, max_length=128)


# =============================================================================
# QUERIES
# =============================================================================

def get_open_shift(business_id: int) -> CashShift | None:
    """The business's OPEN shift, if any."""
    return CashShift.query.filter_by(business_id=business_id, status=SHIFT_OPEN).first()


def get_shift(shift_id: int) -> CashShift:
    shift = db.session.get(CashShift, shift_id, populate_existing=True)
    if shift is None:
        raise NotFoundError(f"Shift {shift_id} not found")
    return shift


def _resolve_shift(shift) -> CashShift:
    if isinstance(shift, CashShift):
        return shift
    return get_shift(shift)


def cash_sales_total(shift_id: int) -> int:
    total = db.session.query(
        func.coalesce(func.sum(Sale.sales_amount_cents), 0)
    ).filter(
        Sale.cash_shift_id == shift_id,
        Sale.payment_method == PAYMENT_CASH,
    ).scalar()
    return int(total or 0)


def cash_refunds_total(shift_id: int) -> int:
    total = db.session.query(
        func.coalesce(func.sum(RefundAdjustment.amount_cents), 0)
    ).filter(
        RefundAdjustment.cash_shift_id == shift_id,
        RefundAdjustment.payment_method == PAYMENT_CASH,
    ).scalar()
    return int(total or 0)


def cash_movement_totals(shift_id: int) -> dict[str, int]:
    rows = db.session.query(
        CashMovement.kind,
        func.coalesce(func.sum(CashMovement.amount_cents), 0),
    ).filter(
        CashMovement.shift_id == shift_id,
    ).group_by(CashMovement.kind).all()
    totals = {kind: 0 for kind in CASH_MOVEMENT_KINDS}
    for kind, amount in rows:
        totals[kind] = int(amount or 0)
    return totals


def cash_sales_since_open(shift) -> int:
    """Net cash taken by the shift: cash sales minus cash refunds paid out."""
    shift = _resolve_shift(shift)
    return cash_sales_total(shift.id) - cash_refunds_total(shift.id)


def live_balance(shift) -> int:
    """
    Expected cash in the drawer right now.

    opening_float + cash_sales_since_open + FLOAT_ADD - DROP - PAYOUT

    Pure read; calling it repeatedly without new sales, refunds or cash
    movements returns the same value.
    """
    shift = _resolve_shift(shift)
    movements = cash_movement_totals(shift.id)
    return (
        shift.opening_float_cents
        + cash_sales_since_open(shift)
        + movements[CASH_FLOAT_ADD]
        - movements[CASH_DROP]
        - movements[CASH_PAYOUT]
    )


def shift_summary(shift_id: int) -> dict:
    """Float, cash in/out breakdown, live balance and (once closed) variance."""
    shift = get_shift(shift_id)
    movements = cash_movement_totals(shift.id)
    cash_sales = cash_sales_total(shift.id)
    cash_refunds = cash_refunds_total(shift.id)
    sales_count = db.session.query(func.count(Sale.id)).filter(Sale.cash_shift_id == shift.id).scalar()

    return {
        "shift": shift.to_dict(),
        "opening_float_cents": shift.opening_float_cents,
        "cash_sales_cents": cash_sales,
        "cash_refunds_cents": cash_refunds,
        "float_add_cents": movements[CASH_FLOAT_ADD],
        "drop_cents": movements[CASH_DROP],
        "payout_cents": movements[CASH_PAYOUT],
        "sales_count": int(sales_count or 0),
        "live_balance_cents": live_balance(shift),
        "is_closed": shift.status == SHIFT_CLOSED,
        "expected_cash_cents": shift.expected_cash_cents,
        "variance_cents": shift.variance_cents,
    }


# =============================================================================
# SHIFT LIFECYCLE
# =============================================================================

def open_shift(
    business_id: int,
    user_id,
    opening_float_cents: int,
    *,
    notes: str | None = None,
) -> CashShift:
    """
    Open a register session for a business.

    Raises:
        ShiftAlreadyOpenError: the business already has an OPEN shift
    """
    user_id = _normalize_user_id(user_id)
    opening_float_cents = require_cents(opening_float_cents, "opening_float_cents")
    notes = optional_text(notes, "notes", max_length=2000)

    def _op():
        business = db.session.get(Business, business_id)
        if business is None:
            raise NotFoundError(f"Business {business_id} not found")

        existing = lock_for_update(
            CashShift.query.filter_by(business_id=business.id, status=SHIFT_OPEN)
        ).first()
        if existing:
            raise ShiftAlreadyOpenError(
                f"Business already has an open shift (shift {existing.id})",
                details={"shift_id": existing.id},
            )

        shift = CashShift(
            business_id=business.id,
            tenant_id=business.tenant_id,
            user_id=user_id,
            status=SHIFT_OPEN,
            opening_float_cents=opening_float_cents,
            opened_at=utcnow(),
            notes=notes,
        )
        db.session.add(shift)
        try:
            db.session.flush()
        except IntegrityError as exc:
            # Partial unique index: a concurrent open won the race
            raise ShiftAlreadyOpenError(
                "Business already has an open shift",
                details={"reason": str(exc.orig)},
            ) from exc
        return shift

    shift = run_in_transaction(_op)
    return get_shift(shift.id)


def record_cash_movement(
    shift_id: int,
    kind: str,
    amount_cents: int,
    reason: str | None = None,
    *,
    user_id=None,
) -> CashMovement:
    """
    Record a FLOAT_ADD, DROP or PAYOUT against an OPEN shift.

    Raises:
        ValidationError: unknown kind, non-positive amount, payout without reason
        ShiftAlreadyClosedError: the shift is CLOSED
    """
    if not isinstance(kind, str) or kind.strip().upper() not in CASH_MOVEMENT_KINDS:
        raise ValidationError(
            f"unknown cash movement kind {kind!r}",
            details={"allowed": list(CASH_MOVEMENT_KINDS)},
        )
    kind = kind.strip().upper()
    amount_cents = require_cents(amount_cents, "amount_cents", allow_zero=False)
    reason = optional_text(reason, "reason")
    if kind == CASH_PAYOUT and reason is None:
        raise ValidationError("payouts require a reason")
    user_id = _normalize_user_id(user_id, required=False)

    def _op():
        shift = lock_for_update(CashShift.query.filter_by(id=shift_id).populate_existing()).first()
        if shift is None:
            raise NotFoundError(f"Shift {shift_id} not found")
        if shift.status != SHIFT_OPEN:
            raise ShiftAlreadyClosedError(
                f"Shift {shift_id} is closed",
                details={"shift_id": shift_id},
            )

        movement = CashMovement(
            shift_id=shift.id,
            business_id=shift.business_id,
            tenant_id=shift.tenant_id,
            kind=kind,
            amount_cents=amount_cents,
            reason=reason,
            user_id=user_id or shift.user_id,
            created_at=utcnow(),
        )
        db.session.add(movement)
        db.session.flush()
        return movement

    return run_in_transaction(_op)


def close_shift(
    shift_id: int,
    counted_cash_cents: int,
    *,
    notes: str | None = None,
    user_id=None,
) -> CashShift:
    """
    Close a shift: freeze expected cash and variance.

    expected_cash = live_balance(shift); variance = counted - expected.
    Positive variance is an overage, negative a shortage.

    Raises:
        ShiftAlreadyClosedError: already closed, or a concurrent close won
    """
    counted_cash_cents = require_cents(counted_cash_cents, "counted_cash_cents")
    notes = optional_text(notes, "notes", max_length=2000)
    user_id = _normalize_user_id(user_id, required=False)

    def _op():
        shift = lock_for_update(CashShift.query.filter_by(id=shift_id).populate_existing()).first()
        if shift is None:
            raise NotFoundError(f"Shift {shift_id} not found")
        if shift.status != SHIFT_OPEN:
            raise ShiftAlreadyClosedError(
                f"Shift {shift_id} is already closed",
                details={"shift_id": shift_id},
            )

        expected = live_balance(shift)
        values = {
            "status": SHIFT_CLOSED,
            "closed_at": utcnow(),
            "closing_cash_counted_cents": counted_cash_cents,
            "expected_cash_cents": expected,
            "variance_cents": counted_cash_cents - expected,
            "closed_by_user_id": user_id or shift.user_id,
            "version_id": CashShift.version_id + 1,
        }
        if notes is not None:
            values["notes"] = notes

        # Compare-and-set: only the request that still sees OPEN may close
        result = db.session.execute(
            update(CashShift)
            .where(CashShift.id == shift.id, CashShift.status == SHIFT_OPEN)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise ShiftAlreadyClosedError(
                f"Shift {shift_id} was closed by a concurrent request",
                details={"shift_id": shift_id},
            )
        return shift

    shift = run_in_transaction(_op)
    return get_shift(shift.id)
