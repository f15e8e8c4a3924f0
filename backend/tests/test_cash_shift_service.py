# Overview: Pytest coverage for the cash shift lifecycle and live balance.

import pytest

from retail_ledger.errors import (
    NotFoundError,
    ShiftAlreadyClosedError,
    ShiftAlreadyOpenError,
    ValidationError,
)
from retail_ledger.models import CashMovement
from retail_ledger.services import cash_shift_service
from retail_ledger.services.sales_service import checkout


@pytest.fixture
def shift(db_session, business):
    return cash_shift_service.open_shift(business.id, "alice", 500, notes="Morning")


class TestOpenShift:

    def test_open(self, db_session, business, shift):
        assert shift.status == "OPEN"
        assert shift.opening_float_cents == 500
        assert shift.user_id == "alice"
        assert shift.tenant_id == "acme"
        assert shift.closed_at is None
        assert cash_shift_service.get_open_shift(business.id).id == shift.id

    def test_second_open_rejected(self, db_session, business, shift):
        with pytest.raises(ShiftAlreadyOpenError) as exc:
            cash_shift_service.open_shift(business.id, "bob", 100)
        assert exc.value.details["shift_id"] == shift.id

    def test_one_open_shift_per_business(self, db_session, business, other_business, shift):
        other = cash_shift_service.open_shift(other_business.id, "bob", 0)
        assert other.id != shift.id

    def test_reopen_after_close(self, db_session, business, shift):
        cash_shift_service.close_shift(shift.id, 500)
        again = cash_shift_service.open_shift(business.id, "alice", 300)
        assert again.id != shift.id
        assert again.status == "OPEN"

    @pytest.mark.parametrize("float_cents", [-1, 10.5, "abc", None])
    def test_bad_float(self, db_session, business, float_cents):
        with pytest.raises(ValidationError):
            cash_shift_service.open_shift(business.id, "alice", float_cents)

    def test_user_required(self, db_session, business):
        with pytest.raises(ValidationError):
            cash_shift_service.open_shift(business.id, None, 0)

    def test_unknown_business(self, db_session):
        with pytest.raises(NotFoundError):
            cash_shift_service.open_shift(777, "alice", 0)


class TestCashMovements:

    @pytest.mark.parametrize("kind,amount,expected", [
        ("FLOAT_ADD", 200, 700),
        ("DROP", 300, 200),
        ("PAYOUT", 50, 450),
        ("drop", 100, 400),
    ])
    def test_movement_changes_balance(self, db_session, shift, kind, amount, expected):
        movement = cash_shift_service.record_cash_movement(shift.id, kind, amount, "Reason", user_id="alice")
        assert movement.kind == kind.upper()
        assert cash_shift_service.live_balance(shift.id) == expected

    @pytest.mark.parametrize("amount", [0, -10, 1.25])
    def test_amount_must_be_positive_integer(self, db_session, shift, amount):
        with pytest.raises(ValidationError):
            cash_shift_service.record_cash_movement(shift.id, "DROP", amount, "Safe")

    def test_unknown_kind(self, db_session, shift):
        with pytest.raises(ValidationError):
            cash_shift_service.record_cash_movement(shift.id, "TIP", 100, "Tip jar")

    def test_payout_needs_reason(self, db_session, shift):
        with pytest.raises(ValidationError):
            cash_shift_service.record_cash_movement(shift.id, "PAYOUT", 100, None)

    def test_closed_shift_rejects_movements(self, db_session, shift):
        cash_shift_service.close_shift(shift.id, 500)
        with pytest.raises(ShiftAlreadyClosedError):
            cash_shift_service.record_cash_movement(shift.id, "DROP", 100, "Late drop")
        assert CashMovement.query.filter_by(shift_id=shift.id).count() == 0

    def test_unknown_shift(self, db_session):
        with pytest.raises(NotFoundError):
            cash_shift_service.record_cash_movement(31337, "DROP", 100, "Safe")


class TestLiveBalance:

    def test_only_cash_sales_count(self, db_session, business, product, shift):
        checkout([{"product_id": product.id, "quantity": 2}], "CASH", business.id)
        checkout([{"product_id": product.id, "quantity": 3}], "CARD", business.id)
        assert cash_shift_service.live_balance(shift) == 700

    def test_sales_before_open_excluded(self, db_session, business, product):
        checkout([{"product_id": product.id, "quantity": 4}], "CASH", business.id)
        shift = cash_shift_service.open_shift(business.id, "alice", 100)
        assert cash_shift_service.live_balance(shift) == 100

    def test_idempotent(self, db_session, business, product, shift):
        checkout([{"product_id": product.id, "quantity": 1}], "CASH", business.id)
        cash_shift_service.record_cash_movement(shift.id, "DROP", 50, "Safe")
        values = {cash_shift_service.live_balance(shift.id) for _ in range(5)}
        assert values == {550}

    def test_summary(self, db_session, business, product, shift):
        checkout([{"product_id": product.id, "quantity": 10}], "CASH", business.id)
        cash_shift_service.record_cash_movement(shift.id, "FLOAT_ADD", 100, "Coins")
        cash_shift_service.record_cash_movement(shift.id, "DROP", 800, "Safe")
        cash_shift_service.record_cash_movement(shift.id, "PAYOUT", 25, "Milk")

        summary = cash_shift_service.shift_summary(shift.id)
        assert summary["opening_float_cents"] == 500
        assert summary["cash_sales_cents"] == 1000
        assert summary["cash_refunds_cents"] == 0
        assert summary["float_add_cents"] == 100
        assert summary["drop_cents"] == 800
        assert summary["payout_cents"] == 25
        assert summary["sales_count"] == 1
        assert summary["live_balance_cents"] == 775
        assert summary["is_closed"] is False


class TestCloseShift:

    def test_reconciliation_with_zero_variance(self, db_session, business, product, shift):
        checkout([{"product_id": product.id, "quantity": 10}], "CASH", business.id)
        cash_shift_service.record_cash_movement(shift.id, "DROP", 300, "Safe drop")

        closed = cash_shift_service.close_shift(shift.id, 1200, notes="Balanced", user_id="bob")

        assert closed.status == "CLOSED"
        assert closed.expected_cash_cents == 1200
        assert closed.closing_cash_counted_cents == 1200
        assert closed.variance_cents == 0
        assert closed.closed_at is not None
        assert closed.closed_by_user_id == "bob"
        assert closed.notes == "Balanced"
        assert cash_shift_service.get_open_shift(business.id) is None

    @pytest.mark.parametrize("counted,variance", [(450, -50), (520, 20)])
    def test_variance_sign(self, db_session, shift, counted, variance):
        closed = cash_shift_service.close_shift(shift.id, counted)
        assert closed.expected_cash_cents == 500
        assert closed.variance_cents == variance

    def test_close_twice(self, db_session, shift):
        cash_shift_service.close_shift(shift.id, 500)
        with pytest.raises(ShiftAlreadyClosedError):
            cash_shift_service.close_shift(shift.id, 900)
        assert cash_shift_service.get_shift(shift.id).closing_cash_counted_cents == 500

    def test_keeps_notes_when_none_given(self, db_session, shift):
        closed = cash_shift_service.close_shift(shift.id, 500)
        assert closed.notes == "Morning"

    def test_closed_shift_does_not_collect_new_sales(self, db_session, business, product, shift):
        cash_shift_service.close_shift(shift.id, 500)
        sale = checkout([{"product_id": product.id, "quantity": 1}], "CASH", business.id)
        assert sale.cash_shift_id is None
        assert cash_shift_service.live_balance(shift.id) == 500

    def test_negative_count_rejected(self, db_session, shift):
        with pytest.raises(ValidationError):
            cash_shift_service.close_shift(shift.id, -1)
