# Overview: The authorization matrix; which role may perform which action.

ROLE_SUPER_ADMIN = "SUPER_ADMIN"
ROLE_ORG_ADMIN = "ORG_ADMIN"
ROLE_ADMIN = "ADMIN"
ROLE_STAFF = "STAFF"
ROLE_VIEW_ONLY = "VIEW_ONLY"

ROLES = (ROLE_SUPER_ADMIN, ROLE_ORG_ADMIN, ROLE_ADMIN, ROLE_STAFF, ROLE_VIEW_ONLY)

_OPERATOR = [
    "VIEW_INVENTORY",
    "MANAGE_PRODUCTS",
    "RECEIVE_STOCK",
    "ADJUST_STOCK",
    "VIEW_MOVEMENTS",
    "CREATE_SALE",
    "VIEW_SALES",
    "PROCESS_REFUND",
    "OPEN_SHIFT",
    "RECORD_CASH_MOVEMENT",
    "CLOSE_SHIFT",
    "VIEW_SHIFTS",
    "VIEW_REPORTS",
]

# WHY these mappings:
# - ADMIN / ORG_ADMIN / STAFF: run the shop floor (POS, stock, cash)
# - VIEW_ONLY: read sales, shifts and reports; never writes
# - SUPER_ADMIN: platform operator working across tenants; sees reports,
#   does not trade inside a business
ROLE_CAPABILITIES = {
    ROLE_ADMIN: list(_OPERATOR),
    ROLE_ORG_ADMIN: list(_OPERATOR),
    ROLE_STAFF: list(_OPERATOR),
    ROLE_VIEW_ONLY: [
        "VIEW_SALES",
        "VIEW_SHIFTS",
        "VIEW_REPORTS",
    ],
    ROLE_SUPER_ADMIN: [
        "VIEW_REPORTS",
    ],
}
