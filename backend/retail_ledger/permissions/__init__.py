# Overview: Capability evaluator package.
# Re-exports the public API so callers import from one place.

from .categories import CapabilityCategory
from .definitions import (
    CAPABILITY_DEFINITIONS,
    INVENTORY_CAPABILITIES,
    SALES_CAPABILITIES,
    CASH_CAPABILITIES,
    REPORT_CAPABILITIES,
)
from .roles import ROLES, ROLE_CAPABILITIES
from .helpers import (
    check_capability,
    get_all_capability_codes,
    get_capabilities_by_category,
    get_capability_definition,
    get_role_capabilities,
    is_allowed,
    validate_capability_code,
)

__all__ = [
    "CapabilityCategory",
    "CAPABILITY_DEFINITIONS",
    "INVENTORY_CAPABILITIES",
    "SALES_CAPABILITIES",
    "CASH_CAPABILITIES",
    "REPORT_CAPABILITIES",
    "ROLES",
    "ROLE_CAPABILITIES",
    "check_capability",
    "get_all_capability_codes",
    "get_capabilities_by_category",
    "get_capability_definition",
    "get_role_capabilities",
    "is_allowed",
    "validate_capability_code",
]
