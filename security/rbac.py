from functools import wraps
from flask import g, jsonify

def current_role() -> str:
    user = getattr(g, "user", None)
    if not user:
        return "guest"
    return user.role

def require_roles(*role_names: str):
    """
    Usage: @require_roles("admin", "manager")
    Admins pass every role check.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            user = getattr(g, "user", None)
            if user is None:
                return jsonify(error="Authentication required"), 401

            user_roles = {r.name for r in user.roles}
            if "admin" not in user_roles and not user_roles.intersection(set(role_names)):
                return jsonify(error="Forbidden"), 403

            return fn(*args, **kwargs)
        return wrapper
    return decorator
