"""Custom decorators for authorization."""
from collections import namedtuple
from functools import wraps
from typing import Optional

from flask import g
from flask_jwt_extended import get_jwt, get_jwt_identity, verify_jwt_in_request

from campus_attendance.models.user import UserRole
from campus_attendance.utils.helpers import error_response

Principal = namedtuple('Principal', ['id', 'role'])


def get_current_principal() -> Optional[Principal]:
    """Build the authenticated principal from the verified JWT.

    The identity provider signs ``sub`` (user id) and a ``role`` claim; both
    are trusted as-is.
    """
    identity = get_jwt_identity()
    role = get_jwt().get('role')
    try:
        user_id = int(identity)
    except (TypeError, ValueError):
        return None

    try:
        return Principal(id=user_id, role=UserRole(role))
    except ValueError:
        return None


def role_required(*roles: UserRole):
    """Require a valid JWT whose role claim is one of ``roles``.

    The principal is stored on ``flask.g.principal``.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            verify_jwt_in_request()
            principal = get_current_principal()

            if principal is None:
                return error_response("Unauthorized", 401)

            if roles and principal.role not in roles:
                names = ' or '.join(role.value for role in roles)
                return error_response(f"Only {names}s can access this endpoint", 403)

            g.principal = principal
            return f(*args, **kwargs)
        return decorated_function
    return decorator


def login_required(f):
    """Decorator to require any authenticated principal."""
    return role_required()(f)


def professor_required(f):
    """Decorator to require professor role."""
    return role_required(UserRole.PROFESSOR)(f)


def student_required(f):
    """Decorator to require student role."""
    return role_required(UserRole.STUDENT)(f)
