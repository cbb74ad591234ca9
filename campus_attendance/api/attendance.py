"""Attendance API endpoints."""
from flask import Blueprint, current_app, g, request

from campus_attendance import db, limiter
from campus_attendance.utils.decorators import student_required
from campus_attendance.utils.errors import AttendanceError
from campus_attendance.utils.helpers import attendance_error_response, error_response, success_response
from campus_attendance.utils.validators import Validator

attendance_bp = Blueprint('attendance', __name__)

@attendance_bp.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    return success_response(message='Attendance service is running')

@attendance_bp.route('', methods=['POST'])
@student_required
@limiter.limit("30 per minute")
def mark_attendance():
    """Mark attendance from a scanned QR code and the student's location.

    The body carries either the resolved payload (``sessionId``,
    ``timestamp``, ``nonce``, ``signature``) or the raw short ``token``.
    """
    try:
        data = Validator.validate_mark_attendance(request.get_json(silent=True))
        service = current_app.extensions['attendance_service']
        
        if data['token'] is not None:
            result = service.mark_attendance(
                g.principal.id, data['token'], data['latitude'], data['longitude']
            )
        else:
            result = service.record_attendance(
                g.principal.id, data['payload'], data['latitude'], data['longitude']
            )
        
        return success_response(data=result, status_code=201)
        
    except AttendanceError as e:
        return attendance_error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Mark attendance error")
        return error_response("Failed to mark attendance", 500)

@attendance_bp.route('', methods=['GET'])
@student_required
def get_my_attendance():
    """Get student's attendance history."""
    try:
        history = current_app.extensions['attendance_service'].history_for_student(g.principal.id)
        return success_response(data=history)
        
    except Exception:
        current_app.logger.exception("Get attendance error")
        return error_response("Failed to fetch attendance history", 500)
