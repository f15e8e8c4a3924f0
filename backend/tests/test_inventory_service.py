# Overview: Pytest coverage for catalog entry, stock reception and write-offs.

import pytest

from retail_ledger.errors import InsufficientStock, NotFoundError, ValidationError
from retail_ledger.models import StockMovement
from retail_ledger.services import inventory_service
from retail_ledger.services.ledger_service import verify_stock


class TestCreateProduct:

    def test_initial_stock_posted_as_arrival(self, db_session, business):
        product = inventory_service.create_product(
            business_id=business.id,
            sku="tea-100",
            name="Green Tea",
            cost_price_cents=150,
            sale_price_cents=300,
            initial_stock=12,
            actor="bob",
        )

        fresh = inventory_service.get_product(product.id)
        assert fresh.sku == "TEA-100"
        assert fresh.current_stock == 12
        assert fresh.opening_stock == 0
        assert fresh.tenant_id == "acme"

        movements = StockMovement.query.filter_by(product_id=product.id).all()
        assert len(movements) == 1
        assert movements[0].kind == "arrival"
        assert movements[0].quantity_delta == 12
        assert movements[0].reason == "Opening stock"
        assert movements[0].actor == "bob"

    def test_zero_stock_has_no_movement(self, db_session, business):
        product = inventory_service.create_product(business_id=business.id, sku="X1", name="X")
        assert StockMovement.query.filter_by(product_id=product.id).count() == 0
        assert verify_stock() == []

    def test_duplicate_sku_rejected(self, db_session, business, product):
        with pytest.raises(ValidationError):
            inventory_service.create_product(business_id=business.id, sku="cola-330", name="Dup")

    def test_same_sku_allowed_in_other_business(self, db_session, product, other_business):
        other = inventory_service.create_product(business_id=other_business.id, sku="COLA-330", name="Cola")
        assert other.id != product.id

    @pytest.mark.parametrize("field,value", [
        ("cost_price_cents", -1),
        ("sale_price_cents", 1.99),
        ("initial_stock", -5),
        ("sku", ""),
        ("name", None),
    ])
    def test_invalid_fields(self, db_session, business, field, value):
        kwargs = {"business_id": business.id, "sku": "OK-1", "name": "Okay"}
        kwargs[field] = value
        with pytest.raises(ValidationError):
            inventory_service.create_product(**kwargs)

    def test_unknown_business(self, db_session):
        with pytest.raises(NotFoundError):
            inventory_service.create_product(business_id=404, sku="A", name="A")


class TestReceiveStock:

    def test_posts_one_arrival_per_line_and_updates_cost(self, db_session, business, make_product):
        a = make_product(stock=0, cost=50)
        b = make_product(stock=5, cost=70)

        movements = inventory_service.receive_stock(
            business_id=business.id,
            lines=[
                {"product_id": a.id, "quantity": 24, "unit_cost_cents": 55},
                {"product_id": b.id, "quantity": 6},
            ],
            reference="PO-1001",
            actor="bob",
        )

        assert [m.kind for m in movements] == ["arrival", "arrival"]
        assert movements[0].reason == "Stock reception PO-1001"
        assert inventory_service.get_product(a.id).current_stock == 24
        assert inventory_service.get_product(a.id).cost_price_cents == 55
        assert inventory_service.get_product(b.id).current_stock == 11
        assert inventory_service.get_product(b.id).cost_price_cents == 70

    def test_all_or_nothing(self, db_session, business, product, other_business):
        foreign = inventory_service.create_product(business_id=other_business.id, sku="F", name="Foreign")

        with pytest.raises(ValidationError):
            inventory_service.receive_stock(
                business_id=business.id,
                lines=[
                    {"product_id": product.id, "quantity": 10},
                    {"product_id": foreign.id, "quantity": 10},
                ],
            )

        assert inventory_service.get_product(product.id).current_stock == 50

    def test_empty_reception(self, db_session, business):
        with pytest.raises(ValidationError):
            inventory_service.receive_stock(business_id=business.id, lines=[])

    def test_zero_quantity_line(self, db_session, business, product):
        with pytest.raises(ValidationError):
            inventory_service.receive_stock(
                business_id=business.id,
                lines=[{"product_id": product.id, "quantity": 0}],
            )


class TestAdjustmentsAndDamage:

    def test_adjust_down_and_up(self, db_session, product):
        inventory_service.adjust_stock(product.id, -8, "Cycle count", "bob")
        inventory_service.adjust_stock(product.id, 3, "Found in back room", "bob")
        assert inventory_service.get_product(product.id).current_stock == 45

    def test_record_damage(self, db_session, product):
        movement = inventory_service.record_damage(product.id, 4, "Dropped crate")
        assert movement.kind == "damaged"
        assert movement.quantity_delta == -4
        assert inventory_service.get_product(product.id).current_stock == 46

    def test_damage_needs_positive_quantity(self, db_session, product):
        with pytest.raises(ValidationError):
            inventory_service.record_damage(product.id, -4, "Dropped crate")

    def test_damage_cannot_exceed_stock(self, db_session, product):
        with pytest.raises(InsufficientStock):
            inventory_service.record_damage(product.id, 51, "Fire")


class TestPricing:

    def test_update_pricing(self, db_session, product):
        inventory_service.update_product_pricing(product.id, sale_price_cents=120)
        fresh = inventory_service.get_product(product.id)
        assert fresh.sale_price_cents == 120
        assert fresh.cost_price_cents == 60

    def test_get_products_scoped_and_sorted(self, db_session, business, other_business, make_product):
        make_product(sku="B-2")
        make_product(sku="A-1")
        make_product(sku="Z-9", business_id=other_business.id)

        skus = [p.sku for p in inventory_service.get_products(business.id)]
        assert skus == ["A-1", "B-2"]

    def test_find_by_sku_is_case_insensitive(self, db_session, business, product):
        assert inventory_service.find_product_by_sku(business.id, "cola-330").id == product.id
        assert inventory_service.find_product_by_sku(business.id, "NOPE") is None
