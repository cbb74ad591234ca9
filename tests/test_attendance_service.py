"""Test attendance marking and its ordered checks."""
from datetime import timedelta

import pytest
from sqlalchemy import text

from campus_attendance import db
from campus_attendance.models.attendance import AttendanceRecord
from campus_attendance.services.attendance_service import AttendanceService
from campus_attendance.services.qr_service import QRService, current_millis
from campus_attendance.utils.errors import (
    AlreadyMarked, CodeExpired, InvalidSignature, NotFound, SessionInactive, SessionNotFound,
    TokenNotFound, TooFar
)
from campus_attendance.utils.helpers import utcnow
from conftest import ANCHOR_LAT, ANCHOR_LNG, north_of


@pytest.fixture
def session(session_service, professor):
    return session_service.create(professor.id, ANCHOR_LAT, ANCHOR_LNG)


@pytest.fixture
def mint(session_service, professor):
    def _mint(session):
        return session_service.mint_current_token(session.id, professor.id)['token']
    return _mint


def test_scenario_mark_then_duplicate(attendance_service, session, mint, student):
    lat, lng = north_of(ANCHOR_LAT, ANCHOR_LNG, 80)

    result = attendance_service.mark_attendance(student.id, mint(session), lat, lng)

    assert result['message'] == 'Attendance marked successfully'
    assert result['subjectName'] == 'Mathematics'
    assert result['distance'] == 80
    assert result['markedAt'].endswith('Z')

    record = AttendanceRecord.query.filter_by(session_id=session.id, student_id=student.id).one()
    assert record.distance_meters == pytest.approx(80, abs=0.01)
    assert (record.student_latitude, record.student_longitude) == (lat, lng)

    with pytest.raises(AlreadyMarked):
        attendance_service.mark_attendance(student.id, mint(session), lat, lng)
    assert AttendanceRecord.query.filter_by(session_id=session.id).count() == 1


def test_within_radius_succeeds(attendance_service, session, mint, student):
    lat, lng = north_of(ANCHOR_LAT, ANCHOR_LNG, 50)
    assert attendance_service.mark_attendance(student.id, mint(session), lat, lng)['distance'] == 50


def test_too_far_discloses_distance(attendance_service, session, mint, student):
    lat, lng = north_of(ANCHOR_LAT, ANCHOR_LNG, 150)

    with pytest.raises(TooFar) as excinfo:
        attendance_service.mark_attendance(student.id, mint(session), lat, lng)

    assert excinfo.value.to_dict() == {
        'error': 'Too far from classroom',
        'distance': 150,
        'maxDistance': 100,
    }
    assert AttendanceRecord.query.count() == 0


def test_unknown_token(attendance_service, session, student):
    with pytest.raises(TokenNotFound) as excinfo:
        attendance_service.mark_attendance(student.id, 'zzzzzzzz', ANCHOR_LAT, ANCHOR_LNG)
    assert excinfo.value.retryable


def test_unknown_session(attendance_service, student):
    payload = QRService.generate_payload('no-such-session', QRService.generate_session_secret())
    with pytest.raises(SessionNotFound):
        attendance_service.record_attendance(student.id, payload, ANCHOR_LAT, ANCHOR_LNG)


def test_forged_signature(attendance_service, session, student):
    payload = QRService.generate_payload(session.id, QRService.generate_session_secret())
    with pytest.raises(InvalidSignature):
        attendance_service.record_attendance(student.id, payload, ANCHOR_LAT, ANCHOR_LNG)


def test_signature_checked_before_session_state(attendance_service, session_service, session, professor, student):
    session_service.end(session.id, professor.id)
    payload = QRService.generate_payload(session.id, 'not-the-secret')

    with pytest.raises(InvalidSignature):
        attendance_service.record_attendance(student.id, payload, ANCHOR_LAT, ANCHOR_LNG)


def test_ended_session(attendance_service, session_service, session, mint, professor, student):
    token = mint(session)
    session_service.end(session.id, professor.id)

    with pytest.raises(SessionInactive):
        attendance_service.mark_attendance(student.id, token, ANCHOR_LAT, ANCHOR_LNG)


def test_passively_expired_session(attendance_service, session, mint, student):
    token = mint(session)
    session.expires_at = utcnow() - timedelta(seconds=1)
    db.session.commit()
    assert session.is_active

    with pytest.raises(SessionInactive):
        attendance_service.mark_attendance(student.id, token, ANCHOR_LAT, ANCHOR_LNG)


def test_stale_payload(attendance_service, session, student):
    payload = QRService.generate_payload(session.id, session.session_secret)

    with pytest.raises(CodeExpired) as excinfo:
        attendance_service.record_attendance(
            student.id, payload, ANCHOR_LAT, ANCHOR_LNG,
            now_ms=payload['timestamp'] + 300_000
        )
    assert excinfo.value.retryable


def test_freshness_checked_before_duplicate(attendance_service, session, mint, student):
    attendance_service.mark_attendance(student.id, mint(session), ANCHOR_LAT, ANCHOR_LNG)
    payload = QRService.generate_payload(session.id, session.session_secret, now_ms=current_millis() - 600_000)

    with pytest.raises(CodeExpired):
        attendance_service.record_attendance(student.id, payload, ANCHOR_LAT, ANCHOR_LNG)


def test_future_payload_accepted_by_default(attendance_service, session, student):
    payload = QRService.generate_payload(session.id, session.session_secret, now_ms=current_millis() + 3_600_000)
    result = attendance_service.record_attendance(student.id, payload, ANCHOR_LAT, ANCHOR_LNG)
    assert result['distance'] == 0


def test_future_skew_guard(token_store, session, student):
    service = AttendanceService(token_store, max_future_skew_seconds=30)
    payload = QRService.generate_payload(session.id, session.session_secret, now_ms=current_millis() + 3_600_000)

    with pytest.raises(CodeExpired):
        service.record_attendance(student.id, payload, ANCHOR_LAT, ANCHOR_LNG)


def test_duplicate_checked_before_distance(attendance_service, session, mint, student):
    attendance_service.mark_attendance(student.id, mint(session), ANCHOR_LAT, ANCHOR_LNG)
    far_lat, far_lng = north_of(ANCHOR_LAT, ANCHOR_LNG, 5000)

    with pytest.raises(AlreadyMarked):
        attendance_service.mark_attendance(student.id, mint(session), far_lat, far_lng)


def test_different_students_share_one_token(attendance_service, session, mint, student, other_student):
    token = mint(session)
    attendance_service.mark_attendance(student.id, token, ANCHOR_LAT, ANCHOR_LNG)
    attendance_service.mark_attendance(other_student.id, token, ANCHOR_LAT, ANCHOR_LNG)
    assert AttendanceRecord.query.filter_by(session_id=session.id).count() == 2


def test_unique_constraint_decides_a_race(attendance_service, session, mint, student, monkeypatch):
    real_has_record = AttendanceService.has_record
    calls = []

    def racing_has_record(session_id, student_id):
        # Both submissions pass the duplicate pre-check before either commits
        calls.append(student_id)
        if len(calls) <= 2:
            return False
        return real_has_record(session_id, student_id)

    monkeypatch.setattr(AttendanceService, 'has_record', staticmethod(racing_has_record))
    token = mint(session)

    outcomes = []
    for _ in range(2):
        try:
            attendance_service.mark_attendance(student.id, token, ANCHOR_LAT, ANCHOR_LNG)
            outcomes.append('created')
        except AlreadyMarked:
            outcomes.append('conflict')

    assert sorted(outcomes) == ['conflict', 'created']
    assert AttendanceRecord.query.filter_by(session_id=session.id, student_id=student.id).count() == 1


def test_history_for_student(attendance_service, session, mint, student, professor):
    attendance_service.mark_attendance(student.id, mint(session), ANCHOR_LAT, ANCHOR_LNG)

    history = attendance_service.history_for_student(student.id)

    assert len(history) == 1
    assert history[0]['sessionId'] == session.id
    assert history[0]['subjectName'] == 'Mathematics'
    assert history[0]['professorName'] == professor.name
    assert history[0]['distanceMeters'] == 0


@pytest.fixture
def foreign_keys(app):
    db.session.execute(text('PRAGMA foreign_keys=ON'))
    yield
    db.session.rollback()
    db.session.execute(text('PRAGMA foreign_keys=OFF'))


def test_unknown_student_is_not_reported_as_duplicate(attendance_service, session, mint, foreign_keys):
    with pytest.raises(NotFound) as exc_info:
        attendance_service.mark_attendance(9999, mint(session), ANCHOR_LAT, ANCHOR_LNG)

    assert exc_info.value.message == 'Student profile not found'
    assert AttendanceRecord.query.filter_by(session_id=session.id).count() == 0


def test_duplicate_still_detected_with_foreign_keys(attendance_service, session, mint, student, foreign_keys):
    attendance_service.mark_attendance(student.id, mint(session), ANCHOR_LAT, ANCHOR_LNG)

    with pytest.raises(AlreadyMarked):
        attendance_service.mark_attendance(student.id, mint(session), ANCHOR_LAT, ANCHOR_LNG)
