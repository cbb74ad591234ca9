"""Validation utilities for request bodies."""
import math
from typing import Any, Dict, List

from campus_attendance.services.gps_service import GPSService
from campus_attendance.utils.errors import ValidationError


class Validator:
    """Validation helper class.

    Each method raises ``ValidationError`` with the first problem found, the
    same way the API reports a single message per rejected request.
    """

    @staticmethod
    def require_json(data: Any) -> Dict:
        """Ensure the request body is a JSON object."""
        if not isinstance(data, dict):
            raise ValidationError("Request body must be JSON")
        return data

    @staticmethod
    def validate_required_fields(data: Dict, required_fields: List[str]) -> None:
        """Validate required fields in data."""
        for field in required_fields:
            if field not in data or data[field] is None:
                raise ValidationError(f"Missing required field: {field}")

    @staticmethod
    def validate_number(value: Any, field: str, minimum: float = None, maximum: float = None) -> float:
        """Validate a finite JSON number inside an optional range."""
        # bool is an int subclass; JSON true/false is not a coordinate
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValidationError(f"{field} must be a number")
        if not math.isfinite(value):
            raise ValidationError(f"{field} must be a finite number")
        if minimum is not None and value < minimum:
            raise ValidationError(f"{field} must be greater than or equal to {minimum}")
        if maximum is not None and value > maximum:
            raise ValidationError(f"{field} must be less than or equal to {maximum}")
        return value

    @staticmethod
    def validate_string(value: Any, field: str, max_length: int = 255) -> str:
        """Validate a non-empty string."""
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(f"{field} is required")
        if len(value) > max_length:
            raise ValidationError(f"{field} is too long")
        return value

    @staticmethod
    def validate_coordinates(latitude: Any, longitude: Any, prefix: str = '') -> tuple:
        """Validate a latitude/longitude pair."""
        lat_field = f"{prefix}Latitude" if prefix else 'latitude'
        lng_field = f"{prefix}Longitude" if prefix else 'longitude'
        lat = float(Validator.validate_number(latitude, lat_field))
        lng = float(Validator.validate_number(longitude, lng_field))
        GPSService.validate_coordinates(lat, lng)
        return lat, lng

    @staticmethod
    def validate_create_session(data: Any) -> Dict[str, Any]:
        """Validate the create-session body."""
        data = Validator.require_json(data)
        Validator.validate_required_fields(data, ['latitude', 'longitude'])
        latitude, longitude = Validator.validate_coordinates(data['latitude'], data['longitude'])

        subject_name = data.get('subjectName')
        if subject_name is not None:
            subject_name = Validator.validate_string(subject_name, 'subjectName').strip()

        return {'latitude': latitude, 'longitude': longitude, 'subject_name': subject_name}

    @staticmethod
    def validate_resolve_token(data: Any) -> str:
        """Validate the token-resolve body."""
        data = Validator.require_json(data)
        token = data.get('token')
        if not token or not isinstance(token, str):
            raise ValidationError("Token is required")
        return token

    @staticmethod
    def validate_mark_attendance(data: Any) -> Dict[str, Any]:
        """Validate the mark-attendance body.

        Accepts either a short ``token`` or the resolved payload fields.
        """
        data = Validator.require_json(data)
        Validator.validate_required_fields(data, ['studentLatitude', 'studentLongitude'])
        latitude, longitude = Validator.validate_coordinates(
            data['studentLatitude'], data['studentLongitude'], prefix='student'
        )

        result = {'latitude': latitude, 'longitude': longitude, 'token': None, 'payload': None}

        if data.get('token') is not None and 'signature' not in data:
            result['token'] = Validator.validate_string(data['token'], 'token', max_length=64)
            return result

        Validator.validate_required_fields(data, ['sessionId', 'timestamp', 'nonce', 'signature'])
        timestamp = Validator.validate_number(data['timestamp'], 'timestamp', minimum=0)
        if isinstance(timestamp, float):
            if not timestamp.is_integer():
                raise ValidationError("timestamp must be an integer")
            timestamp = int(timestamp)

        result['payload'] = {
            'sessionId': Validator.validate_string(data['sessionId'], 'sessionId', max_length=64),
            'timestamp': timestamp,
            'nonce': Validator.validate_string(data['nonce'], 'nonce', max_length=128),
            'signature': Validator.validate_string(data['signature'], 'signature', max_length=128),
        }
        return result
