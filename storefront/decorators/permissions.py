"""
Permission decorators for role-based access control.
Extends require_login with role checks.
"""
from functools import wraps

from flask import g

from storefront.exceptions import ForbiddenError, UnauthorizedError


def require_role(*allowed_roles):
    """
    Decorator to restrict access to specific roles.

    Usage:
        @require_role('ADMIN')

    Args:
        *allowed_roles: Role values (USER, ADMIN)
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            ctx = g.get('ctx')
            # Must be logged in
            if ctx is None or not ctx.is_authenticated:
                raise UnauthorizedError(g.get('auth_error') or 'Authentication required')

            if ctx.role is None or ctx.role.value not in allowed_roles:
                raise ForbiddenError('You do not have permission to perform this action')

            return f(*args, **kwargs)

        return decorated_function
    return decorator
