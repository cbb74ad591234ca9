"""Models package with all models."""
from .base import BaseModel
from .user import User, UserRole
from .attendance_session import AttendanceSession, SESSION_DURATION
from .short_token import ShortToken
from .attendance import AttendanceRecord

__all__ = [
    'BaseModel', 'User', 'UserRole',
    'AttendanceSession', 'SESSION_DURATION',
    'ShortToken', 'AttendanceRecord'
]
