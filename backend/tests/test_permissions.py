# Overview: Pytest coverage for the role/capability matrix and the route guard.

import pytest

from retail_ledger.errors import PermissionDenied
from retail_ledger.permissions import (
    CAPABILITY_DEFINITIONS,
    ROLE_CAPABILITIES,
    ROLES,
    CapabilityCategory,
    check_capability,
    get_all_capability_codes,
    get_capabilities_by_category,
    get_capability_definition,
    get_role_capabilities,
    is_allowed,
    validate_capability_code,
)


WRITE_ACTIONS = [
    "MANAGE_PRODUCTS",
    "RECEIVE_STOCK",
    "ADJUST_STOCK",
    "CREATE_SALE",
    "PROCESS_REFUND",
    "OPEN_SHIFT",
    "RECORD_CASH_MOVEMENT",
    "CLOSE_SHIFT",
]


class TestDefinitions:

    def test_codes_are_unique(self):
        codes = get_all_capability_codes()
        assert len(codes) == len(set(codes)) == 13

    def test_every_role_has_an_entry(self):
        assert set(ROLES) == set(ROLE_CAPABILITIES)

    def test_role_capabilities_are_known(self):
        for role, capabilities in ROLE_CAPABILITIES.items():
            for code in capabilities:
                assert validate_capability_code(code), f"{role} grants unknown {code}"

    def test_categories(self):
        cash = [cap[0] for cap in get_capabilities_by_category(CapabilityCategory.CASH)]
        assert set(cash) == {"OPEN_SHIFT", "RECORD_CASH_MOVEMENT", "CLOSE_SHIFT", "VIEW_SHIFTS"}
        assert sum(
            len(get_capabilities_by_category(c))
            for c in CapabilityCategory.ALL
        ) == len(CAPABILITY_DEFINITIONS)

    def test_definition_lookup(self):
        definition = get_capability_definition("PROCESS_REFUND")
        assert definition["category"] == CapabilityCategory.SALES
        assert get_capability_definition("LAUNCH_ROCKETS") is None


class TestIsAllowed:

    @pytest.mark.parametrize("role", ["ADMIN", "ORG_ADMIN", "STAFF"])
    def test_operators_hold_everything(self, role):
        for code in get_all_capability_codes():
            assert is_allowed(role, code)

    @pytest.mark.parametrize("action", WRITE_ACTIONS)
    def test_view_only_never_writes(self, action):
        assert is_allowed("VIEW_ONLY", action) is False

    @pytest.mark.parametrize("action", ["VIEW_SALES", "VIEW_SHIFTS", "VIEW_REPORTS"])
    def test_view_only_reads(self, action):
        assert is_allowed("VIEW_ONLY", action) is True

    def test_super_admin_reports_only(self):
        assert get_role_capabilities("SUPER_ADMIN") == ["VIEW_REPORTS"]
        assert is_allowed("SUPER_ADMIN", "CREATE_SALE") is False

    def test_role_is_case_insensitive(self):
        assert is_allowed("staff", "CREATE_SALE")

    @pytest.mark.parametrize("role", [None, "", "CASHIER", "ROOT"])
    def test_unknown_role_denied(self, role):
        assert is_allowed(role, "VIEW_SALES") is False

    def test_unknown_action_is_an_error(self):
        with pytest.raises(ValueError):
            is_allowed("ADMIN", "LAUNCH_ROCKETS")

    def test_pure(self):
        decisions = {is_allowed("STAFF", "CLOSE_SHIFT") for _ in range(10)}
        assert decisions == {True}

    def test_check_capability_raises(self):
        check_capability("STAFF", "PROCESS_REFUND")
        with pytest.raises(PermissionDenied) as exc:
            check_capability("VIEW_ONLY", "PROCESS_REFUND")
        assert exc.value.details["required_capability"] == "PROCESS_REFUND"


class TestRouteGuard:

    def test_missing_role_is_401(self, client, db_session, business):
        resp = client.get(f"/api/products?business_id={business.id}")
        assert resp.status_code == 401

    def test_unknown_role_is_403(self, client, db_session, business):
        resp = client.get(
            f"/api/products?business_id={business.id}",
            headers={"X-Actor": "mallory", "X-Actor-Role": "CASHIER"},
        )
        assert resp.status_code == 403

    @pytest.mark.parametrize("method,path", [
        ("POST", "/api/products"),
        ("POST", "/api/receptions"),
        ("POST", "/api/sales"),
        ("POST", "/api/sales/1/refunds"),
        ("POST", "/api/shifts"),
        ("POST", "/api/shifts/1/movements"),
        ("POST", "/api/shifts/1/close"),
        ("GET", "/api/movements"),
    ])
    def test_view_only_denied(self, client, db_session, viewer_headers, method, path):
        resp = getattr(client, method.lower())(path, json={}, headers=viewer_headers)
        assert resp.status_code == 403
        body = resp.get_json()
        assert body["code"] == "PermissionDenied"
        assert body["details"]["role"] == "VIEW_ONLY"

    def test_view_only_reads_sales(self, client, db_session, business, viewer_headers):
        resp = client.get(f"/api/sales?business_id={business.id}", headers=viewer_headers)
        assert resp.status_code == 200
        assert resp.get_json()["sales"] == []

    def test_denied_write_changes_nothing(self, client, db_session, business, product, viewer_headers):
        resp = client.post(
            "/api/sales",
            json={
                "business_id": business.id,
                "payment_method": "CASH",
                "items": [{"product_id": product.id, "quantity": 1}],
            },
            headers=viewer_headers,
        )
        assert resp.status_code == 403
        stock = client.get(
            f"/api/products/{product.id}",
            headers={"X-Actor": "alice", "X-Actor-Role": "STAFF"},
        ).get_json()["product"]["current_stock"]
        assert stock == 50
