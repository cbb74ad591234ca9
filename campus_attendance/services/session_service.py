"""Attendance session lifecycle.

A professor has at most one open session. Sessions go Active -> Ended, either
explicitly or passively once ``expires_at`` has passed, and never come back.
"""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from campus_attendance import db
from campus_attendance.models.attendance import AttendanceRecord
from campus_attendance.models.attendance_session import AttendanceSession, SESSION_DURATION
from campus_attendance.models.user import User, UserRole
from campus_attendance.services.qr_service import QRService
from campus_attendance.services.token_store import ShortTokenStore
from campus_attendance.utils.errors import (
    ActiveSessionExists, Forbidden, NotFound, SessionInactive, SessionNotFound, ValidationError
)
from campus_attendance.utils.helpers import isoformat, utcnow

logger = logging.getLogger(__name__)


class SessionService:
    """Create, serve and end attendance sessions."""

    def __init__(self, token_store: ShortTokenStore, refresh_interval_seconds: int = 30):
        self.token_store = token_store
        self.refresh_interval_seconds = refresh_interval_seconds

    def _get_professor(self, professor_id: int) -> User:
        professor = db.session.get(User, professor_id)
        if professor is None:
            raise NotFound("Professor profile not found")
        if not professor.is_professor():
            raise Forbidden("Only professors can manage sessions")
        return professor

    def _get_owned_session(self, session_id: str, professor_id: int, action: str) -> AttendanceSession:
        session = db.session.get(AttendanceSession, session_id)
        if session is None:
            raise SessionNotFound()
        if session.professor_id != professor_id:
            raise Forbidden(f"Not authorized to {action} this session")
        return session

    def _close_if_expired(self, session: AttendanceSession) -> None:
        """Flip the flag on a session that has passively expired."""
        if session.is_active and session.is_expired():
            session.is_active = False
            db.session.commit()
            logger.info("Session %s passed its expiry and was closed", session.id)

    def create(
        self,
        professor_id: int,
        latitude: float,
        longitude: float,
        subject_name: str = None
    ) -> AttendanceSession:
        """Open a new session anchored at the professor's location."""
        professor = self._get_professor(professor_id)

        subject_name = subject_name or professor.subject_name
        if not subject_name:
            raise ValidationError("subjectName is required")

        current = AttendanceSession.query.filter_by(
            professor_id=professor_id,
            is_active=True
        ).first()

        if current is not None:
            self._close_if_expired(current)
            if current.is_active:
                raise ActiveSessionExists()

        now = utcnow()
        session = AttendanceSession(
            professor_id=professor_id,
            subject_name=subject_name,
            latitude=latitude,
            longitude=longitude,
            session_secret=QRService.generate_session_secret(),
            created_at=now,
            updated_at=now,
            expires_at=now + SESSION_DURATION,
            is_active=True
        )
        db.session.add(session)

        try:
            db.session.commit()
        except IntegrityError:
            # Lost a race with a concurrent create for the same professor
            db.session.rollback()
            raise ActiveSessionExists()

        logger.info("Professor %s opened session %s", professor_id, session.id)
        return session

    def mint_current_token(self, session_id: str, professor_id: int) -> Dict[str, Any]:
        """Mint a signed payload for an open session and store it as a short token."""
        session = self._get_owned_session(session_id, professor_id, 'access')

        if not session.is_open():
            raise SessionInactive("Session is no longer active")

        payload = QRService.generate_payload(session.id, session.session_secret)
        token = self.token_store.put(payload)

        return {
            'token': token,
            'refreshInterval': self.refresh_interval_seconds,
            'expiresIn': self.token_store.ttl_seconds,
        }

    def end(self, session_id: str, professor_id: int) -> AttendanceSession:
        """End a session. Ending an ended session is a no-op."""
        session = self._get_owned_session(session_id, professor_id, 'end')

        if session.is_active:
            session.is_active = False
            db.session.commit()
            logger.info("Professor %s ended session %s", professor_id, session.id)

        return session

    def get_active(self, professor_id: int) -> Optional[AttendanceSession]:
        """Return the professor's open session, if any."""
        self._get_professor(professor_id)

        session = AttendanceSession.query.filter_by(
            professor_id=professor_id,
            is_active=True
        ).first()

        if session is not None:
            self._close_if_expired(session)
            if not session.is_active:
                return None

        return session

    @staticmethod
    def attendance_count(session: AttendanceSession) -> int:
        return session.records.count()

    def list_for_professor(self, professor_id: int) -> List[Dict[str, Any]]:
        """Professor's sessions, newest first, with attendance counts."""
        self._get_professor(professor_id)

        rows = db.session.query(
            AttendanceSession,
            func.count(AttendanceRecord.id)
        ).outerjoin(
            AttendanceRecord, AttendanceRecord.session_id == AttendanceSession.id
        ).filter(
            AttendanceSession.professor_id == professor_id
        ).group_by(
            AttendanceSession.id
        ).order_by(
            AttendanceSession.created_at.desc()
        ).all()

        sessions = []
        for session, count in rows:
            data = session.to_dict()
            data['attendanceCount'] = count
            sessions.append(data)
        return sessions

    def get_detail(self, session_id: str, principal) -> Dict[str, Any]:
        """Session detail with the students marked so far.

        Polled by the professor's dashboard to refresh the live count.
        """
        session = db.session.get(AttendanceSession, session_id)
        if session is None:
            raise SessionNotFound()

        if principal.role == UserRole.PROFESSOR and session.professor_id != principal.id:
            raise Forbidden("Not authorized to view this session")

        records = session.records.order_by(AttendanceRecord.marked_at.asc()).all()

        if principal.role == UserRole.STUDENT:
            # Students only see their own row
            records = [record for record in records if record.student_id == principal.id]

        data = session.to_dict()
        data.update({
            'professorName': session.professor.name,
            'attendanceCount': self.attendance_count(session),
            'students': [
                {
                    'id': record.student.id,
                    'name': record.student.name,
                    'email': record.student.email,
                    'markedAt': isoformat(record.marked_at),
                    'distanceMeters': int(round(record.distance_meters)),
                }
                for record in records
            ],
        })
        return data
