"""Attendance session anchored to the professor's location."""
import uuid
from datetime import timedelta

from campus_attendance import db
from campus_attendance.models.base import BaseModel
from campus_attendance.utils.helpers import isoformat, utcnow

# Not configurable
SESSION_DURATION = timedelta(hours=2)


def _new_session_id() -> str:
    return str(uuid.uuid4())


class AttendanceSession(BaseModel):
    """Professor-owned, time-boxed window for marking attendance."""
    
    __tablename__ = 'attendance_sessions'
    __table_args__ = (
        # At most one flagged-active session per professor
        db.Index(
            'uq_attendance_sessions_active_professor',
            'professor_id',
            unique=True,
            sqlite_where=db.text('is_active'),
            postgresql_where=db.text('is_active'),
        ),
    )
    
    id = db.Column(db.String(36), primary_key=True, default=_new_session_id)
    professor_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    subject_name = db.Column(db.String(255), nullable=False)
    
    # Geographic anchor
    latitude = db.Column(db.Float, nullable=False)
    longitude = db.Column(db.Float, nullable=False)
    
    # HMAC key for QR payloads; never leaves the server
    session_secret = db.Column(db.String(64), nullable=False)
    
    expires_at = db.Column(db.DateTime, nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    
    # Relationships
    professor = db.relationship('User', backref=db.backref('attendance_sessions', lazy='dynamic'))
    records = db.relationship('AttendanceRecord', backref='session', lazy='dynamic')
    
    def is_expired(self, now=None) -> bool:
        """Check if session is past its expiry."""
        return (now or utcnow()) > self.expires_at
    
    def is_open(self, now=None) -> bool:
        """Active flag set and not passively expired."""
        return bool(self.is_active) and not self.is_expired(now)
    
    def to_dict(self):
        """Convert to dictionary (the secret is never included)."""
        return {
            'id': self.id,
            'subjectName': self.subject_name,
            'createdAt': isoformat(self.created_at),
            'expiresAt': isoformat(self.expires_at),
            'isActive': self.is_open(),
        }
    
    def __repr__(self):
        return f'<AttendanceSession {self.id} professor={self.professor_id}>'
