# Overview: The capability evaluator and lookup helpers.

from ..errors import PermissionDenied
from .definitions import CAPABILITY_DEFINITIONS
from .roles import ROLE_CAPABILITIES


def get_all_capability_codes():
    """Get list of all capability codes."""
    return [cap[0] for cap in CAPABILITY_DEFINITIONS]


def get_capabilities_by_category(category):
    """Get all capabilities in a category."""
    return [cap for cap in CAPABILITY_DEFINITIONS if cap[3] == category]


def get_capability_definition(code):
    """Get full definition for a capability code."""
    for cap in CAPABILITY_DEFINITIONS:
        if cap[0] == code:
            return {
                "code": cap[0],
                "name": cap[1],
                "description": cap[2],
                "category": cap[3],
            }
    return None


def validate_capability_code(code):
    """Check if a capability code is valid."""
    return code in get_all_capability_codes()


def get_role_capabilities(role):
    if not role:
        return []
    return list(ROLE_CAPABILITIES.get(role.strip().upper(), []))


def is_allowed(role, action) -> bool:
    """
    The single (role, action) -> allowed decision.

    Unknown roles are denied. An unknown action is a programming error.
    """
    if not validate_capability_code(action):
        raise ValueError(f"unknown capability {action!r}")
    return action in get_role_capabilities(role)


def check_capability(role, action) -> None:
    """Raise PermissionDenied unless role may perform action."""
    if not is_allowed(role, action):
        raise PermissionDenied(
            "Permission denied",
            details={"role": role, "required_capability": action},
        )
