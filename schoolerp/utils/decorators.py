"""
Route decorators for authentication and permissions
"""

from functools import wraps

from schoolerp.services.auth_service import AuthService
from schoolerp.services.rbac_service import RBACService


def login_required(f):
    """Reject the request unless a user is authenticated"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        AuthService.require_auth()
        return f(*args, **kwargs)
    return decorated_function


def permission_required(*permissions):
    """Require at least one of the given permissions"""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user = AuthService.require_auth()
            RBACService.require_permission(user, *permissions)
            return f(*args, **kwargs)
        return decorated_function
    return decorator
