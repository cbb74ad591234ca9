"""QR token API endpoints."""
from flask import Blueprint, current_app, request

from campus_attendance import limiter
from campus_attendance.utils.decorators import student_required
from campus_attendance.utils.errors import AttendanceError
from campus_attendance.utils.helpers import attendance_error_response, error_response, success_response
from campus_attendance.utils.validators import Validator

qr_bp = Blueprint('qr', __name__)

@qr_bp.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    return success_response(message='QR service is running')

@qr_bp.route('/resolve', methods=['POST'])
@student_required
@limiter.limit("60 per minute")
def resolve_token():
    """Resolve a scanned short token to its signed payload."""
    try:
        token = Validator.validate_resolve_token(request.get_json(silent=True))
        payload = current_app.extensions['attendance_service'].resolve_token(token)
        
        return success_response(data={
            'sessionId': payload['sessionId'],
            'timestamp': payload['timestamp'],
            'nonce': payload['nonce'],
            'signature': payload['signature'],
        })
        
    except AttendanceError as e:
        return attendance_error_response(e)
    except Exception:
        current_app.logger.exception("Token resolution error")
        return error_response("Failed to resolve QR code", 500)
