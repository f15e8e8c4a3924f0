from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


SHIFT_OPEN = "OPEN"
SHIFT_CLOSED = "CLOSED"

SHIFT_STATUSES = (SHIFT_OPEN, SHIFT_CLOSED)

CASH_DROP = "DROP"
CASH_PAYOUT = "PAYOUT"
CASH_FLOAT_ADD = "FLOAT_ADD"

CASH_MOVEMENT_KINDS = (CASH_DROP, CASH_PAYOUT, CASH_FLOAT_ADD)


class CashShift(db.Model):
    """
    One register's open-to-close trading session.

    LIFECYCLE:
    - OPEN: trading; cash movements may be recorded
    - CLOSED: counted, expected cash and variance frozen

    CLOSED is terminal. A reconciliation mistake is fixed by opening a new
    shift, never by reopening. At most one OPEN shift per business, backed
    by the partial unique index below.
    """
    __tablename__ = "cash_shifts"
    __table_args__ = (
        db.Index(
            "uq_cash_shifts_business_open",
            "business_id",
            unique=True,
            sqlite_where=db.text("status = 'OPEN'"),
            postgresql_where=db.text("status = 'OPEN'"),
        ),
        db.Index("ix_cash_shifts_business_opened", "business_id", "opened_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False, index=True)
    tenant_id = db.Column(db.String(64), nullable=False, index=True)
    user_id = db.Column(db.String(128), nullable=False, index=True)

    status = db.Column(db.String(16), nullable=False, default=SHIFT_OPEN, index=True)

    # Cash tracking (all amounts in cents)
    opening_float_cents = db.Column(db.Integer, nullable=False, default=0)
    closing_cash_counted_cents = db.Column(db.Integer, nullable=True)
    expected_cash_cents = db.Column(db.Integer, nullable=True)
    variance_cents = db.Column(db.Integer, nullable=True)

    opened_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    closed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    closed_by_user_id = db.Column(db.String(128), nullable=True)

    notes = db.Column(db.Text, nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    business = db.relationship("Business", backref=db.backref("cash_shifts", lazy=True))
    movements = db.relationship(
        "CashMovement",
        back_populates="shift",
        order_by="CashMovement.id",
        lazy="selectin",
    )
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_open(self) -> bool:
        return self.status == SHIFT_OPEN

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "business_id": self.business_id,
            "tenant_id": self.tenant_id,
            "user_id": self.user_id,
            "status": self.status,
            "opening_float_cents": self.opening_float_cents,
            "closing_cash_counted_cents": self.closing_cash_counted_cents,
            "expected_cash_cents": self.expected_cash_cents,
            "variance_cents": self.variance_cents,
            "opened_at": to_utc_z(self.opened_at),
            "closed_at": to_utc_z(self.closed_at) if self.closed_at else None,
            "closed_by_user_id": self.closed_by_user_id,
            "notes": self.notes,
            "version_id": self.version_id,
        }


class CashMovement(db.Model):
    """
    Cash put into or taken out of the drawer outside of sales.

    KINDS:
    - FLOAT_ADD: extra change added to the drawer
    - DROP: excess cash moved to the safe
    - PAYOUT: cash paid out to cover an expense

    amount_cents is always positive; the kind carries the sign.
    """
    __tablename__ = "cash_movements"
    __table_args__ = (
        db.CheckConstraint("amount_cents > 0", name="ck_cash_movements_amount_positive"),
        db.Index("ix_cash_movements_shift_kind", "shift_id", "kind"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shift_id = db.Column(db.Integer, db.ForeignKey("cash_shifts.id"), nullable=False, index=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False, index=True)
    tenant_id = db.Column(db.String(64), nullable=False, index=True)

    kind = db.Column(db.String(16), nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.String(255), nullable=True)
    user_id = db.Column(db.String(128), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    shift = db.relationship("CashShift", back_populates="movements")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shift_id": self.shift_id,
            "business_id": self.business_id,
            "tenant_id": self.tenant_id,
            "kind": self.kind,
            "amount_cents": self.amount_cents,
            "reason": self.reason,
            "user_id": self.user_id,
            "created_at": to_utc_z(self.created_at),
        }
