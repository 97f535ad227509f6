"""
Middleware package for CulturePoints.
"""
from .admin_auth import require_admin, get_admin_email, is_admin
from .request_id import init_request_id_tracking
