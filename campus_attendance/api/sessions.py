"""Attendance session API endpoints."""
from flask import Blueprint, current_app, g, request

from campus_attendance import db, limiter
from campus_attendance.models.user import UserRole
from campus_attendance.services.qr_service import QRService
from campus_attendance.utils.decorators import login_required, professor_required
from campus_attendance.utils.errors import AttendanceError
from campus_attendance.utils.helpers import (
    attendance_error_response, error_response, isoformat, success_response
)
from campus_attendance.utils.validators import Validator

sessions_bp = Blueprint('sessions', __name__)


def _session_service():
    return current_app.extensions['session_service']


def _attendance_service():
    return current_app.extensions['attendance_service']


@sessions_bp.route('', methods=['POST'])
@professor_required
def create_session():
    """Open a new attendance session at the professor's location."""
    try:
        data = Validator.validate_create_session(request.get_json(silent=True))

        session = _session_service().create(
            professor_id=g.principal.id,
            latitude=data['latitude'],
            longitude=data['longitude'],
            subject_name=data['subject_name']
        )

        return success_response(
            data={
                'id': session.id,
                'subjectName': session.subject_name,
                'createdAt': isoformat(session.created_at),
                'expiresAt': isoformat(session.expires_at),
            },
            status_code=201
        )

    except AttendanceError as e:
        return attendance_error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Create session error")
        return error_response("Failed to create session", 500)


@sessions_bp.route('', methods=['GET'])
@login_required
def list_sessions():
    """List the professor's sessions, or the sessions a student attended."""
    try:
        if g.principal.role == UserRole.PROFESSOR:
            return success_response(data=_session_service().list_for_professor(g.principal.id))

        history = _attendance_service().history_for_student(g.principal.id)
        return success_response(data=[
            {
                'id': item['sessionId'],
                'subjectName': item['subjectName'],
                'markedAt': item['markedAt'],
                'distanceMeters': item['distanceMeters'],
            }
            for item in history
        ])

    except AttendanceError as e:
        return attendance_error_response(e)
    except Exception:
        current_app.logger.exception("List sessions error")
        return error_response("Failed to fetch sessions", 500)


@sessions_bp.route('/active', methods=['GET'])
@professor_required
def get_active_session():
    """Get the professor's open session, if any."""
    try:
        service = _session_service()
        session = service.get_active(g.principal.id)

        if session is None:
            return success_response(data={'session': None})

        data = session.to_dict()
        data['attendanceCount'] = service.attendance_count(session)
        return success_response(data={'session': data})

    except AttendanceError as e:
        return attendance_error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Get active session error")
        return error_response("Failed to fetch active session", 500)


@sessions_bp.route('/<session_id>', methods=['GET'])
@login_required
def get_session(session_id):
    """Session details with attendance so far."""
    try:
        return success_response(data=_session_service().get_detail(session_id, g.principal))

    except AttendanceError as e:
        return attendance_error_response(e)
    except Exception:
        current_app.logger.exception("Get session error")
        return error_response("Failed to fetch session", 500)


@sessions_bp.route('/<session_id>', methods=['PATCH'])
@professor_required
def end_session(session_id):
    """End a session."""
    try:
        service = _session_service()
        session = service.end(session_id, g.principal.id)

        return success_response(data={
            'id': session.id,
            'subjectName': session.subject_name,
            'isActive': session.is_open(),
            'attendanceCount': service.attendance_count(session),
        })

    except AttendanceError as e:
        return attendance_error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("End session error")
        return error_response("Failed to end session", 500)


@sessions_bp.route('/<session_id>/qr', methods=['GET'])
@professor_required
@limiter.limit("20 per minute")
def get_session_qr(session_id):
    """Mint the current short token for the projector display.

    Pass ``?image=0`` to skip rendering the PNG.
    """
    try:
        result = _session_service().mint_current_token(session_id, g.principal.id)

        if request.args.get('image', '1') != '0':
            result['qrImage'] = QRService.render_qr_image(result['token'])

        return success_response(data=result)

    except AttendanceError as e:
        return attendance_error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Generate QR error")
        return error_response("Failed to generate QR code", 500)
