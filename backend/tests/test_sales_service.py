# Overview: Pytest coverage for checkout totals, atomicity and shift linkage.

import pytest

from retail_ledger.errors import EmptyCartError, InsufficientStock, NotFoundError, ValidationError
from retail_ledger.models import Sale, SaleItem, StockMovement
from retail_ledger.services import cash_shift_service, inventory_service, sales_service
from retail_ledger.services.ledger_service import verify_stock
from retail_ledger.services.sales_service import checkout, compute_totals, get_sale


class TestComputeTotals:

    def test_basic(self):
        totals = compute_totals([
            {"quantity": 5, "price_at_sale_cents": 100, "cost_at_sale_cents": 60, "discount_cents": 0},
        ])
        assert totals == {
            "subtotal_cents": 500,
            "discount_cents": 0,
            "sales_amount_cents": 500,
            "cost_amount_cents": 300,
            "profit_amount_cents": 200,
            "profit_percentage": 40.0,
        }

    def test_discount_and_multiple_lines(self):
        totals = compute_totals([
            {"quantity": 2, "price_at_sale_cents": 250, "cost_at_sale_cents": 100, "discount_cents": 50},
            {"quantity": 1, "price_at_sale_cents": 300, "cost_at_sale_cents": 310, "discount_cents": 0},
        ])
        assert totals["subtotal_cents"] == 800
        assert totals["discount_cents"] == 50
        assert totals["sales_amount_cents"] == 750
        assert totals["cost_amount_cents"] == 510
        assert totals["profit_amount_cents"] == 240
        assert totals["profit_percentage"] == 32.0

    def test_zero_total_has_zero_percentage(self):
        totals = compute_totals([
            {"quantity": 1, "price_at_sale_cents": 100, "cost_at_sale_cents": 40, "discount_cents": 100},
        ])
        assert totals["sales_amount_cents"] == 0
        assert totals["profit_amount_cents"] == -40
        assert totals["profit_percentage"] == 0.0


class TestCheckout:

    def test_single_line_sale(self, db_session, business, product):
        sale = checkout([{"product_id": product.id, "quantity": 5}], "CASH", business.id, actor="alice")

        assert inventory_service.get_product(product.id).current_stock == 45
        assert sale.sales_amount_cents == 500
        assert sale.cost_amount_cents == 300
        assert sale.profit_amount_cents == 200
        assert sale.profit_percentage == 40.0
        assert sale.payment_method == "CASH"
        assert sale.is_refunded is False
        assert sale.document_number.startswith("S-")
        assert len(sale.items) == 1

        item = sale.items[0]
        assert item.quantity == 5
        assert item.price_at_sale_cents == 100
        assert item.cost_at_sale_cents == 60
        assert item.refunded_quantity == 0

        movements = StockMovement.query.filter_by(sale_id=sale.id).all()
        assert len(movements) == 1
        assert movements[0].kind == "sale"
        assert movements[0].quantity_delta == -5
        assert movements[0].actor == "alice"

    def test_snapshot_survives_price_change(self, db_session, business, product):
        sale = checkout([{"product_id": product.id, "quantity": 1}], "CARD", business.id)
        inventory_service.update_product_pricing(product.id, sale_price_cents=999, cost_price_cents=500)

        item = get_sale(sale.id).items[0]
        assert item.price_at_sale_cents == 100
        assert item.cost_at_sale_cents == 60

    def test_unit_price_override_and_discount(self, db_session, business, product):
        sale = checkout(
            [{"product_id": product.id, "quantity": 3, "unit_price_cents": 90, "discount_cents": 20}],
            "card",
            business.id,
        )
        assert sale.payment_method == "CARD"
        assert sale.subtotal_cents == 270
        assert sale.discount_cents == 20
        assert sale.sales_amount_cents == 250
        assert sale.items[0].net_amount_cents == 250

    def test_empty_cart(self, db_session, business):
        with pytest.raises(EmptyCartError):
            checkout([], "CASH", business.id)

    def test_unknown_payment_method(self, db_session, business, product):
        with pytest.raises(ValidationError):
            checkout([{"product_id": product.id, "quantity": 1}], "BITCOIN", business.id)
        assert inventory_service.get_product(product.id).current_stock == 50

    @pytest.mark.parametrize("line", [
        {"quantity": 0},
        {"quantity": -2},
        {"quantity": 1.5},
        {"quantity": 1, "discount_cents": -1},
        {"quantity": 1, "discount_cents": 101},
    ])
    def test_invalid_lines(self, db_session, business, product, line):
        with pytest.raises(ValidationError):
            checkout([{"product_id": product.id, **line}], "CASH", business.id)
        assert Sale.query.count() == 0

    def test_unknown_product(self, db_session, business):
        with pytest.raises(NotFoundError):
            checkout([{"product_id": 4242, "quantity": 1}], "CASH", business.id)

    def test_product_from_other_business(self, db_session, other_business, product):
        with pytest.raises(ValidationError):
            checkout([{"product_id": product.id, "quantity": 1}], "CASH", other_business.id)

    def test_inactive_product(self, db_session, business, product):
        fresh = inventory_service.get_product(product.id)
        fresh.is_active = False
        db_session.commit()
        with pytest.raises(ValidationError):
            checkout([{"product_id": product.id, "quantity": 1}], "CASH", business.id)

    def test_insufficient_stock_rolls_back_everything(self, db_session, business, product, make_product):
        scarce = make_product(stock=2)

        with pytest.raises(InsufficientStock) as exc:
            checkout(
                [
                    {"product_id": product.id, "quantity": 5},
                    {"product_id": scarce.id, "quantity": 3},
                ],
                "CASH",
                business.id,
            )

        assert exc.value.details["items"][0]["product_id"] == scarce.id
        assert Sale.query.count() == 0
        assert StockMovement.query.filter_by(kind="sale").count() == 0
        assert inventory_service.get_product(product.id).current_stock == 50
        assert inventory_service.get_product(scarce.id).current_stock == 2

    def test_guarded_decrement_rolls_back_flushed_sale(self, db_session, business, product, make_product, monkeypatch):
        scarce = make_product(stock=2)
        # Skip the pre-check so the second line fails at the conditional UPDATE,
        # after the Sale and the first decrement have been flushed
        monkeypatch.setattr(sales_service, "_validate_on_hand", lambda lines: None)

        with pytest.raises(InsufficientStock) as exc:
            checkout(
                [
                    {"product_id": product.id, "quantity": 5},
                    {"product_id": scarce.id, "quantity": 3},
                ],
                "CASH",
                business.id,
            )

        assert exc.value.details["product_id"] == scarce.id
        assert Sale.query.count() == 0
        assert SaleItem.query.count() == 0
        assert StockMovement.query.filter_by(kind="sale").count() == 0
        assert inventory_service.get_product(product.id).current_stock == 50
        assert inventory_service.get_product(scarce.id).current_stock == 2
        assert verify_stock(business.id) == []

    def test_duplicate_lines_checked_against_combined_quantity(self, db_session, business, make_product):
        scarce = make_product(stock=4)
        with pytest.raises(InsufficientStock):
            checkout(
                [
                    {"product_id": scarce.id, "quantity": 3},
                    {"product_id": scarce.id, "quantity": 2},
                ],
                "CASH",
                business.id,
            )
        assert inventory_service.get_product(scarce.id).current_stock == 4

    def test_sell_last_unit(self, db_session, business, make_product):
        last = make_product(stock=1)
        checkout([{"product_id": last.id, "quantity": 1}], "CASH", business.id)
        assert inventory_service.get_product(last.id).current_stock == 0


class TestShiftLinkage:

    def test_sale_linked_to_open_shift(self, db_session, business, product):
        shift = cash_shift_service.open_shift(business.id, "alice", 500)
        sale = checkout([{"product_id": product.id, "quantity": 1}], "CASH", business.id)
        assert sale.cash_shift_id == shift.id

    def test_sale_without_shift(self, db_session, business, product):
        sale = checkout([{"product_id": product.id, "quantity": 1}], "CASH", business.id)
        assert sale.cash_shift_id is None

    def test_other_business_shift_ignored(self, db_session, business, other_business, product):
        cash_shift_service.open_shift(other_business.id, "bob", 0)
        sale = checkout([{"product_id": product.id, "quantity": 1}], "CASH", business.id)
        assert sale.cash_shift_id is None
