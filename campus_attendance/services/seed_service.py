"""Database seeding service for demo data."""
from flask_jwt_extended import create_access_token

from campus_attendance import db
from campus_attendance.models.user import User, UserRole

PROFESSORS = [
    ('Prof. Ada Lovelace', 'ada.lovelace', 'Mathematics'),
    ('Prof. Marie Curie', 'marie.curie', 'Chemistry'),
    ('Prof. Alan Turing', 'alan.turing', 'Computer Science'),
    ('Prof. Richard Feynman', 'richard.feynman', 'Physics'),
]

STUDENTS = [
    ('Aarav Shah', 'aarav.shah'),
    ('Priya Nair', 'priya.nair'),
    ('Rohan Mehta', 'rohan.mehta'),
    ('Sara Iyer', 'sara.iyer'),
    ('Kabir Das', 'kabir.das'),
]

class SeedService:
    """Service to seed database with demo users."""

    @staticmethod
    def seed_all() -> int:
        """Seed all demo data; returns the number of users created."""
        created = SeedService.seed_professors() + SeedService.seed_students()
        db.session.commit()
        return created

    @staticmethod
    def _add_user(email: str, name: str, role: UserRole, subject_name: str = None) -> bool:
        if User.query.filter_by(email=email).first():
            return False

        db.session.add(User(email=email, name=name, role=role, subject_name=subject_name))
        return True

    @staticmethod
    def seed_professors() -> int:
        """Seed demo professors, one subject each."""
        return sum(
            SeedService._add_user(f"{username}@university.edu", name, UserRole.PROFESSOR, subject)
            for name, username, subject in PROFESSORS
        )

    @staticmethod
    def seed_students() -> int:
        """Seed demo students."""
        return sum(
            SeedService._add_user(f"{username}@student.university.edu", name, UserRole.STUDENT)
            for name, username in STUDENTS
        )

    @staticmethod
    def issue_token(email: str):
        """Create an access token carrying the user's role claim."""
        user = User.query.filter_by(email=email.lower().strip()).first()
        if user is None:
            return None

        return create_access_token(
            identity=str(user.id),
            additional_claims={'role': user.role.value}
        )
