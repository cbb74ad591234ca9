"""Attendance ledger: verify a scanned QR payload and record attendance once."""
import logging
from typing import Any, Dict, List

from sqlalchemy.exc import IntegrityError

from campus_attendance import db
from campus_attendance.models.attendance import AttendanceRecord
from campus_attendance.models.attendance_session import AttendanceSession
from campus_attendance.models.user import User
from campus_attendance.services.gps_service import GPSService
from campus_attendance.services.qr_service import QRService
from campus_attendance.services.token_store import ShortTokenStore
from campus_attendance.utils.errors import (
    AlreadyMarked, CodeExpired, InvalidSignature, NotFound, SessionInactive, SessionNotFound,
    TokenNotFound, TooFar
)
from campus_attendance.utils.helpers import isoformat, utcnow

logger = logging.getLogger(__name__)


class AttendanceService:
    """Marks attendance after signature, freshness and proximity checks."""

    def __init__(
        self,
        token_store: ShortTokenStore,
        max_distance_meters: int = 100,
        freshness_seconds: int = 300,
        max_future_skew_seconds: int = 0
    ):
        self.token_store = token_store
        self.max_distance_meters = max_distance_meters
        self.freshness_ms = freshness_seconds * 1000
        self.max_future_skew_ms = max_future_skew_seconds * 1000

    def resolve_token(self, token: str) -> Dict[str, Any]:
        """Look up the signed payload behind a short token."""
        payload = self.token_store.get(token)
        if payload is None:
            raise TokenNotFound()
        return payload

    @staticmethod
    def has_record(session_id: str, student_id: int) -> bool:
        """Fast-path duplicate check; the unique constraint is authoritative."""
        return AttendanceRecord.query.filter_by(
            session_id=session_id,
            student_id=student_id
        ).first() is not None

    def mark_attendance(
        self,
        student_id: int,
        token: str,
        latitude: float,
        longitude: float
    ) -> Dict[str, Any]:
        """Resolve ``token`` and record attendance for ``student_id``."""
        payload = self.resolve_token(token)
        return self.record_attendance(student_id, payload, latitude, longitude)

    def record_attendance(
        self,
        student_id: int,
        payload: Dict[str, Any],
        latitude: float,
        longitude: float,
        now_ms: int = None
    ) -> Dict[str, Any]:
        """Verify an already-resolved payload and record attendance.

        Checks run in a fixed order so each rejection is distinguishable:
        session, signature, session state, freshness, duplicate, distance.
        """
        session = db.session.get(AttendanceSession, payload['sessionId'])
        if session is None:
            raise SessionNotFound()

        if not QRService.verify_payload(payload, session.session_secret):
            logger.info("Rejected payload with bad signature for session %s", session.id)
            raise InvalidSignature()

        if not session.is_open():
            raise SessionInactive()

        if not QRService.is_payload_fresh(
            payload['timestamp'],
            self.freshness_ms,
            now_ms=now_ms,
            max_future_skew_ms=self.max_future_skew_ms
        ):
            raise CodeExpired()

        if self.has_record(session.id, student_id):
            raise AlreadyMarked()

        distance = GPSService.calculate_distance(
            session.latitude, session.longitude, latitude, longitude
        )
        if not GPSService.is_within_proximity(distance, self.max_distance_meters):
            logger.info(
                "Student %s is %.0fm from session %s (max %dm)",
                student_id, distance, session.id, self.max_distance_meters
            )
            raise TooFar(distance, self.max_distance_meters)

        record = AttendanceRecord(
            session_id=session.id,
            student_id=student_id,
            student_latitude=latitude,
            student_longitude=longitude,
            distance_meters=distance,
            marked_at=utcnow()
        )
        db.session.add(record)

        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            if self.has_record(session.id, student_id):
                # A concurrent submission for the same student won the unique constraint
                raise AlreadyMarked()
            if db.session.get(User, student_id) is None:
                raise NotFound("Student profile not found")
            raise

        logger.info("Student %s marked present in session %s", student_id, session.id)

        return {
            'message': 'Attendance marked successfully',
            'subjectName': session.subject_name,
            'distance': int(round(distance)),
            'markedAt': isoformat(record.marked_at),
        }

    def history_for_student(self, student_id: int) -> List[Dict[str, Any]]:
        """Student's attendance, newest first."""
        records = AttendanceRecord.query.filter_by(
            student_id=student_id
        ).order_by(AttendanceRecord.marked_at.desc()).all()

        return [
            {
                'id': record.id,
                'sessionId': record.session.id,
                'subjectName': record.session.subject_name,
                'professorName': record.session.professor.name,
                'sessionDate': isoformat(record.session.created_at),
                'markedAt': isoformat(record.marked_at),
                'distanceMeters': int(round(record.distance_meters)),
            }
            for record in records
        ]
