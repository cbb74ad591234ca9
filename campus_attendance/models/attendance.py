"""Attendance record model."""
from campus_attendance import db
from campus_attendance.models.base import BaseModel
from campus_attendance.utils.helpers import utcnow

class AttendanceRecord(BaseModel):
    """One verified attendance mark per student per session."""
    
    __tablename__ = 'attendance_records'
    __table_args__ = (
        db.UniqueConstraint('session_id', 'student_id', name='uq_attendance_session_student'),
    )
    
    session_id = db.Column(db.String(36), db.ForeignKey('attendance_sessions.id'), nullable=False, index=True)
    student_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    
    # Location reported by the student's device
    student_latitude = db.Column(db.Float, nullable=False)
    student_longitude = db.Column(db.Float, nullable=False)
    distance_meters = db.Column(db.Float, nullable=False)
    
    marked_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    
    # Relationships
    student = db.relationship('User', backref=db.backref('attendance_records', lazy='dynamic'))
    
    def __repr__(self):
        return f'<AttendanceRecord {self.session_id}-{self.student_id}>'
