"""Shared fixtures for the attendance tests."""
import math

import pytest
from flask_jwt_extended import create_access_token

from campus_attendance import create_app, db
from campus_attendance.models.user import User, UserRole
from campus_attendance.services.gps_service import EARTH_RADIUS_METERS

# Bengaluru, used as the classroom anchor throughout
ANCHOR_LAT = 12.9716
ANCHOR_LNG = 77.5946

METERS_PER_DEGREE_LAT = EARTH_RADIUS_METERS * math.pi / 180


def north_of(lat: float, lng: float, meters: float):
    """Point ``meters`` due north; haversine along a meridian is exact."""
    return lat + meters / METERS_PER_DEGREE_LAT, lng


@pytest.fixture
def app():
    """Create test app."""
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


def _make_user(email, name, role, subject_name=None):
    user = User(email=email, name=name, role=role, subject_name=subject_name)
    user.save()
    return user


@pytest.fixture
def professor(app):
    return _make_user('ada@university.edu', 'Prof. Ada', UserRole.PROFESSOR, 'Mathematics')


@pytest.fixture
def other_professor(app):
    return _make_user('alan@university.edu', 'Prof. Alan', UserRole.PROFESSOR, 'Computer Science')


@pytest.fixture
def student(app):
    return _make_user('priya@student.university.edu', 'Priya Nair', UserRole.STUDENT)


@pytest.fixture
def other_student(app):
    return _make_user('rohan@student.university.edu', 'Rohan Mehta', UserRole.STUDENT)


@pytest.fixture
def session_service(app):
    return app.extensions['session_service']


@pytest.fixture
def attendance_service(app):
    return app.extensions['attendance_service']


@pytest.fixture
def token_store(app):
    return app.extensions['short_token_store']


@pytest.fixture
def auth_headers(app):
    """Build bearer headers for a user, as the identity provider would."""
    def _headers(user):
        token = create_access_token(
            identity=str(user.id),
            additional_claims={'role': user.role.value}
        )
        return {'Authorization': f'Bearer {token}'}
    return _headers
