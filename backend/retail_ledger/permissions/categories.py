# Overview: Capability category constants for grouping related actions.


class CapabilityCategory:
    """Capability categories for organization and display."""
    INVENTORY = "INVENTORY"
    SALES = "SALES"
    CASH = "CASH"
    REPORTS = "REPORTS"

    # Display order for listings
    ALL = (INVENTORY, SALES, CASH, REPORTS)
