"""GPS proximity service."""
import math

from campus_attendance.utils.errors import ValidationError

EARTH_RADIUS_METERS = 6371000
DEFAULT_MAX_DISTANCE_METERS = 100

class GPSService:
    """Great-circle distance and geofence checks."""
    
    @staticmethod
    def validate_coordinates(lat: float, lon: float) -> None:
        """Reject coordinates outside the valid latitude/longitude ranges."""
        if not -90 <= lat <= 90:
            raise ValidationError("Latitude must be between -90 and 90")
        if not -180 <= lon <= 180:
            raise ValidationError("Longitude must be between -180 and 180")
    
    @staticmethod
    def calculate_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
        """Calculate distance between two GPS points in meters (haversine)."""
        lat1_rad = math.radians(lat1)
        lat2_rad = math.radians(lat2)
        delta_lat = math.radians(lat2 - lat1)
        delta_lon = math.radians(lon2 - lon1)
        
        a = (math.sin(delta_lat/2) ** 2 + 
             math.cos(lat1_rad) * math.cos(lat2_rad) * 
             math.sin(delta_lon/2) ** 2)
        # Rounding can push a marginally above 1 for antipodal points
        a = min(1.0, a)
        c = 2 * math.atan2(math.sqrt(a), math.sqrt(1-a))
        
        return EARTH_RADIUS_METERS * c
    
    @staticmethod
    def is_within_proximity(distance: float, max_distance: float = DEFAULT_MAX_DISTANCE_METERS) -> bool:
        """Check a distance against the allowed radius."""
        return distance <= max_distance
