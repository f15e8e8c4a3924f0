# Overview: Pytest coverage for the flask CLI command groups.

from sqlalchemy import update

from retail_ledger.extensions import db
from retail_ledger.models import Business, Product
from retail_ledger.services import cash_shift_service
from retail_ledger.services.sales_service import checkout


class TestSystemCommands:

    def test_create_and_list_businesses(self, app, db_session):
        runner = app.test_cli_runner()
        result = runner.invoke(args=["system", "create-business", "--tenant", "acme", "--name", "Dockside"])
        assert result.exit_code == 0
        assert "PASS Created business: Dockside" in result.output
        assert Business.query.filter_by(name="Dockside").count() == 1

        result = runner.invoke(args=["system", "businesses"])
        assert "Dockside" in result.output

    def test_create_business_needs_tenant(self, app, db_session):
        result = app.test_cli_runner().invoke(args=["system", "create-business", "--name", "Nowhere"])
        assert result.exit_code != 0

    def test_init_db_is_idempotent(self, app, db_session):
        result = app.test_cli_runner().invoke(args=["system", "init-db"])
        assert result.exit_code == 0
        assert "Schema ready" in result.output


class TestLedgerCommands:

    def test_verify_clean(self, app, db_session, business, product):
        checkout([{"product_id": product.id, "quantity": 3}], "CARD", business.id)
        result = app.test_cli_runner().invoke(args=["ledger", "verify"])
        assert result.exit_code == 0
        assert "PASS" in result.output

    def test_verify_reports_drift(self, app, db_session, business, product):
        # Simulate a write that bypassed the ledger
        db.session.execute(update(Product).where(Product.id == product.id).values(current_stock=99))
        db.session.commit()

        result = app.test_cli_runner().invoke(args=["ledger", "verify", "--business-id", str(business.id)])
        assert result.exit_code == 1
        assert "COLA-330" in result.output
        assert "FAIL 1 product(s) drifted" in result.output

    def test_history(self, app, db_session, business, product):
        checkout([{"product_id": product.id, "quantity": 2}], "CASH", business.id)
        result = app.test_cli_runner().invoke(
            args=["ledger", "history", "--product-id", str(product.id), "--limit", "1"]
        )
        assert result.exit_code == 0
        assert "sale" in result.output
        assert "arrival" not in result.output

    def test_history_unknown_product(self, app, db_session):
        result = app.test_cli_runner().invoke(args=["ledger", "history", "--product-id", "999"])
        assert result.exit_code == 1
        assert "FAIL" in result.output


class TestShiftCommands:

    def test_list_and_balance(self, app, db_session, business, product):
        shift = cash_shift_service.open_shift(business.id, "alice", 500)
        checkout([{"product_id": product.id, "quantity": 2}], "CASH", business.id)

        runner = app.test_cli_runner()
        result = runner.invoke(args=["shifts", "list", "--status", "open"])
        assert result.exit_code == 0
        assert "OPEN" in result.output

        result = runner.invoke(args=["shifts", "balance", str(shift.id)])
        assert result.exit_code == 0
        assert "Live balance:   7.00" in result.output

    def test_balance_unknown_shift(self, app, db_session):
        result = app.test_cli_runner().invoke(args=["shifts", "balance", "77"])
        assert result.exit_code == 1


class TestPermsCommands:

    def test_list_for_role(self, app):
        result = app.test_cli_runner().invoke(args=["perms", "list", "--role", "view_only"])
        assert result.exit_code == 0
        assert "Capabilities for role: VIEW_ONLY" in result.output
        assert "CATEGORY SALES" in result.output
        assert "VIEW_SALES" in result.output
        assert "CATEGORY INVENTORY" not in result.output
        assert "PROCESS_REFUND" not in result.output
        assert "Total: 3 capabilities" in result.output

    def test_list_one_category(self, app):
        result = app.test_cli_runner().invoke(args=["perms", "list", "--category", "cash"])
        assert result.exit_code == 0
        assert "CATEGORY CASH" in result.output
        assert "OPEN_SHIFT" in result.output
        assert "CATEGORY SALES" not in result.output

    def test_list_unknown_role(self, app):
        result = app.test_cli_runner().invoke(args=["perms", "list", "--role", "JANITOR"])
        assert result.exit_code == 1
        assert "Unknown role 'JANITOR'" in result.output

    def test_check_allowed(self, app):
        result = app.test_cli_runner().invoke(args=["perms", "check", "STAFF", "process_refund"])
        assert result.exit_code == 0
        assert "PASS Role 'STAFF' HAS 'PROCESS_REFUND'" in result.output

    def test_check_denied(self, app):
        result = app.test_cli_runner().invoke(args=["perms", "check", "VIEW_ONLY", "PROCESS_REFUND"])
        assert result.exit_code == 1
        assert "FAIL Role 'VIEW_ONLY' DOES NOT HAVE 'PROCESS_REFUND'" in result.output

    def test_check_unknown_capability(self, app):
        result = app.test_cli_runner().invoke(args=["perms", "check", "STAFF", "LAUNCH_ROCKETS"])
        assert result.exit_code == 1
        assert "Unknown capability 'LAUNCH_ROCKETS'" in result.output
