"""Helper functions for the application."""
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from flask import jsonify


def utcnow() -> datetime:
    """Naive UTC now, matching how timestamps are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def isoformat(value: Optional[datetime]) -> Optional[str]:
    """Render a stored (naive UTC) datetime as an ISO-8601 string."""
    if value is None:
        return None
    return value.replace(tzinfo=timezone.utc).isoformat().replace('+00:00', 'Z')


def handle_error(error, status_code: int):
    """Handle framework errors with consistent format."""
    message = getattr(error, 'description', None) or str(error)
    return jsonify({'error': message}), status_code


def success_response(data: Any = None, message: str = None, status_code: int = 200):
    """Return a JSON success response.

    Dict payloads are sent as-is with ``message`` merged in when given.
    """
    if isinstance(data, dict):
        body: Dict[str, Any] = {}
        if message is not None:
            body['message'] = message
        body.update(data)
    elif data is None:
        body = {'message': message or 'Success'}
    else:
        body = data

    return jsonify(body), status_code


def error_response(message: str, status_code: int = 400, **extra):
    """Return consistent error response."""
    body = {'error': message}
    body.update(extra)
    return jsonify(body), status_code


def attendance_error_response(error):
    """Render an ``AttendanceError``."""
    return jsonify(error.to_dict()), error.status_code
