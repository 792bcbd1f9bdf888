from functools import wraps
from flask import g, jsonify

def has_role(*role_names: str) -> bool:
    user = getattr(g, "user", None)
    if not user:
        return False
    names = user.role_names
    return "SUPER_ADMIN" in names or bool(names.intersection(role_names))

def is_admin() -> bool:
    return has_role("ADMIN")

def require_roles(*role_names: str):
    """
    Usage: @require_roles("ADMIN")
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            if getattr(g, "user", None) is None:
                return jsonify(error="Authentication required"), 401
            if not has_role(*role_names):
                return jsonify(error="Forbidden"), 403
            return fn(*args, **kwargs)
        return wrapper
    return decorator
