# Overview: Request decorators for API routes.

from functools import wraps
from flask import current_app, g, jsonify, request

from .permissions import is_allowed


def _actor_from_headers():
    actor = (request.headers.get("X-Actor") or "").strip() or None
    role = (request.headers.get("X-Actor-Role") or "").strip().upper() or None
    return actor, role


def require_capability(action: str):
    """
    Require the calling role to hold a capability.

    The presentation layer authenticates users and forwards who is acting
    in X-Actor and their role in X-Actor-Role. Sets:
    - g.actor: actor id recorded on movements, sales and refunds
    - g.actor_role: the role the decision was made for

    Returns 401 without a role header and 403 when the evaluator refuses.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            actor, role = _actor_from_headers()
            if not role:
                return jsonify({"error": "Authentication required"}), 401

            if not is_allowed(role, action):
                current_app.logger.warning(
                    "Permission denied: actor=%s role=%s action=%s path=%s",
                    actor, role, action, request.path,
                )
                return jsonify({
                    "error": "Permission denied",
                    "code": "PermissionDenied",
                    "details": {"role": role, "required_capability": action},
                }), 403

            g.actor = actor
            g.actor_role = role
            return f(*args, **kwargs)

        return decorated_function
    return decorator
