"""
Admin Authentication Middleware.

The login provider authenticates users upstream and forwards the signed-in
email in the X-User-Email header. Admin endpoints accept the request only
when that email is listed in ADMIN_EMAILS.
"""
from functools import wraps

from flask import request, g, current_app

from ..utils.errors import unauthorized, forbidden

ADMIN_EMAIL_HEADER = 'X-User-Email'


def get_admin_email() -> str | None:
    """Lower-cased email from the admin header, or None."""
    email = request.headers.get(ADMIN_EMAIL_HEADER, '').strip().lower()
    return email or None


def is_admin(email: str | None) -> bool:
    if not email:
        return False
    return email in current_app.config.get('ADMIN_EMAILS', [])


def require_admin(f):
    """
    Decorator for admin-only endpoints.

    Sets g.admin_email for use in the view.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        email = get_admin_email()
        if not email:
            return unauthorized('Admin email header is required')

        if not is_admin(email):
            current_app.logger.warning(f"Rejected admin request from {email} to {request.path}")
            return forbidden()

        g.admin_email = email
        return f(*args, **kwargs)

    return decorated_function
