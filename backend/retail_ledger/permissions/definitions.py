# Overview: All capability definitions organized by category.
# Each capability is defined as: (code, name, description, category)

from .categories import CapabilityCategory


# -- INVENTORY --

INVENTORY_CAPABILITIES = [
    (
        "VIEW_INVENTORY",
        "View Inventory",
        "View products and stock levels",
        CapabilityCategory.INVENTORY,
    ),
    (
        "MANAGE_PRODUCTS",
        "Manage Products",
        "Create products and change catalog prices",
        CapabilityCategory.INVENTORY,
    ),
    (
        "RECEIVE_STOCK",
        "Receive Stock",
        "Post supplier deliveries (arrival movements)",
        CapabilityCategory.INVENTORY,
    ),
    (
        "ADJUST_STOCK",
        "Adjust Stock",
        "Post adjustment and damaged movements",
        CapabilityCategory.INVENTORY,
    ),
    (
        "VIEW_MOVEMENTS",
        "View Movement Ledger",
        "Browse the stock movement history",
        CapabilityCategory.INVENTORY,
    ),
]


# -- SALES --

SALES_CAPABILITIES = [
    (
        "CREATE_SALE",
        "Create Sale",
        "Check out a cart at the point of sale",
        CapabilityCategory.SALES,
    ),
    (
        "VIEW_SALES",
        "View Sales",
        "View completed sales and their refunds",
        CapabilityCategory.SALES,
    ),
    (
        "PROCESS_REFUND",
        "Process Refund",
        "Refund sold units and restock them",
        CapabilityCategory.SALES,
    ),
]


# -- CASH --

CASH_CAPABILITIES = [
    (
        "OPEN_SHIFT",
        "Open Shift",
        "Open a register session with an opening float",
        CapabilityCategory.CASH,
    ),
    (
        "RECORD_CASH_MOVEMENT",
        "Record Cash Movement",
        "Record drops, payouts and float additions",
        CapabilityCategory.CASH,
    ),
    (
        "CLOSE_SHIFT",
        "Close Shift",
        "Count the drawer and close the register session",
        CapabilityCategory.CASH,
    ),
    (
        "VIEW_SHIFTS",
        "View Shifts",
        "View register sessions, balances and variances",
        CapabilityCategory.CASH,
    ),
]


# -- REPORTS --

REPORT_CAPABILITIES = [
    (
        "VIEW_REPORTS",
        "View Reports",
        "View sales summaries and low-stock reports",
        CapabilityCategory.REPORTS,
    ),
]


CAPABILITY_DEFINITIONS = (
    INVENTORY_CAPABILITIES
    + SALES_CAPABILITIES
    + CASH_CAPABILITIES
    + REPORT_CAPABILITIES
)
