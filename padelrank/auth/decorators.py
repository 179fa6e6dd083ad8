"""Decorators for the auth blueprint."""

from functools import wraps

from flask import session

from padelrank.constants import SESSION_IS_ADMIN, SESSION_USER_ID
from padelrank.errors import AuthenticationError, ForbiddenError


def login_required(f=None, admin_required=False):
    """Reject the request unless an operator is signed in.

    Usage:
    @login_required
    def protected_view():
        ...

    @login_required(admin_required=True)
    def admin_view():
        ...
    """

    def decorator(func):
        @wraps(func)
        def decorated_function(*args, **kwargs):
            if SESSION_USER_ID not in session:
                raise AuthenticationError("Sign in to use the migration tools.")
            if admin_required and not session.get(SESSION_IS_ADMIN):
                raise ForbiddenError()
            return func(*args, **kwargs)

        return decorated_function

    if f:
        return decorator(f)
    return decorator
