"""Application error types.

Every rejection the attendance protocol can produce is an ``AttendanceError``
subclass carrying the HTTP status it maps to. Blueprints catch the base class
and render it with ``error_response``; nothing here is retried server side.
"""
from typing import Any, Dict


class AttendanceError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 500
    message = 'Unexpected error'
    retryable = False

    def __init__(self, message: str = None, **extra):
        self.message = message or self.message
        self.extra = extra
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Wire representation: ``{"error": message, **extra}``."""
        data = {'error': self.message}
        data.update(self.extra)
        return data


class Unauthorized(AttendanceError):
    status_code = 401
    message = 'Unauthorized'


class Forbidden(AttendanceError):
    status_code = 403
    message = 'Forbidden'


class NotFound(AttendanceError):
    status_code = 404
    message = 'Not found'


class SessionNotFound(NotFound):
    message = 'Session not found'


class Conflict(AttendanceError):
    status_code = 409
    message = 'Conflict'


class ActiveSessionExists(Conflict):
    message = 'You already have an active session'


class AlreadyMarked(Conflict):
    # Clients treat every attendance rejection as a 400
    status_code = 400
    message = 'You have already marked attendance for this session'


class ValidationError(AttendanceError):
    status_code = 400
    message = 'Validation failed'


class TokenNotFound(AttendanceError):
    status_code = 400
    message = 'Invalid or expired QR code. Please scan a fresh code.'
    retryable = True


class InvalidSignature(AttendanceError):
    status_code = 400
    message = 'Invalid QR code'


class SessionInactive(AttendanceError):
    status_code = 400
    message = 'This session has ended'


class CodeExpired(AttendanceError):
    status_code = 400
    message = 'QR code has expired. Please scan a fresh code.'
    retryable = True


class TooFar(AttendanceError):
    """Student is outside the geofence.

    The rounded distance and the configured maximum are disclosed on purpose:
    the student already knows where they are.
    """

    status_code = 400
    message = 'Too far from classroom'

    def __init__(self, distance: float, max_distance: int):
        super().__init__(distance=int(round(distance)), maxDistance=int(max_distance))
        self.distance = distance
        self.max_distance = max_distance
