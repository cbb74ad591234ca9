"""User directory model.

Accounts are owned by the identity provider; this table only mirrors what the
attendance service needs to display (names, professor subject).
"""
from enum import Enum
from campus_attendance import db
from campus_attendance.models.base import BaseModel

class UserRole(Enum):
    """User roles enumeration."""
    STUDENT = 'student'
    PROFESSOR = 'professor'

class User(BaseModel):
    """Principal known to the attendance service."""
    
    __tablename__ = 'users'
    
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    role = db.Column(db.Enum(UserRole), nullable=False, default=UserRole.STUDENT)
    
    # Professors teach a single subject; sessions inherit its name
    subject_name = db.Column(db.String(255), nullable=True)
    
    def is_professor(self) -> bool:
        """Check if user is a professor."""
        return self.role == UserRole.PROFESSOR
    
    def __repr__(self) -> str:
        return f'<User {self.email}>'
