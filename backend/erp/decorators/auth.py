from functools import wraps
from flask import abort, current_app
from flask_jwt_extended import verify_jwt_in_request, get_jwt_identity
from erp.services.policy import current_permissions, is_superuser


def require_permissions(*names: str):
    """Require a valid token carrying every listed ``module.action`` permission.

    Superuser tokens pass regardless of which permission rows exist.
    """
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            verify_jwt_in_request()
            missing = [] if is_superuser() else sorted(set(names) - current_permissions())
            if missing:
                current_app.logger.warning('User %s denied %s: missing %s', get_jwt_identity(), fn.__name__, missing)
                abort(403, description=f"Missing permission: {', '.join(missing)}")
            return fn(*args, **kwargs)
        return wrapper
    return outer
