"""Signed QR payload service.

A payload is ``{sessionId, timestamp, nonce, signature}`` where ``signature``
is the hex HMAC-SHA256 of ``"sessionId:timestamp:nonce"`` keyed by the
session secret. Verification helpers are predicates and never raise; the
caller decides which rejection to report.
"""
import base64
import hashlib
import hmac
import io
import json
import secrets
import time
from typing import Any, Dict, Optional, Union

import qrcode

PAYLOAD_FIELDS = ('sessionId', 'timestamp', 'nonce', 'signature')


def current_millis() -> int:
    """Epoch time in milliseconds."""
    return int(time.time() * 1000)


class QRService:
    """Service for QR payload operations."""
    
    @staticmethod
    def generate_session_secret() -> str:
        """Generate a 32-byte hex secret for signing QR payloads."""
        return secrets.token_hex(32)
    
    @staticmethod
    def generate_nonce() -> str:
        """Generate a 16-byte hex nonce."""
        return secrets.token_hex(16)
    
    @staticmethod
    def sign(session_id: str, timestamp: int, nonce: str, secret: str) -> str:
        """HMAC-SHA256 over ``session_id:timestamp:nonce``."""
        message = f"{session_id}:{timestamp}:{nonce}".encode('utf-8')
        return hmac.new(secret.encode('utf-8'), message, hashlib.sha256).hexdigest()
    
    @staticmethod
    def generate_payload(session_id: str, secret: str, now_ms: int = None) -> Dict[str, Any]:
        """Mint a fresh signed payload for ``session_id``."""
        timestamp = current_millis() if now_ms is None else now_ms
        nonce = QRService.generate_nonce()
        
        return {
            'sessionId': session_id,
            'timestamp': timestamp,
            'nonce': nonce,
            'signature': QRService.sign(session_id, timestamp, nonce, secret),
        }
    
    @staticmethod
    def verify_payload(payload: Dict[str, Any], secret: str) -> bool:
        """Check the payload signature in constant time."""
        try:
            expected = QRService.sign(
                payload['sessionId'], payload['timestamp'], payload['nonce'], secret
            ).encode('ascii')
            supplied = str(payload['signature']).encode('utf-8')
        except (KeyError, TypeError, AttributeError, UnicodeError):
            return False
        
        # Digest first so both sides are 32 bytes whatever the supplied length
        return hmac.compare_digest(
            hashlib.sha256(supplied).digest(),
            hashlib.sha256(expected).digest()
        )
    
    @staticmethod
    def is_payload_fresh(
        timestamp: int,
        max_age_ms: int,
        now_ms: int = None,
        max_future_skew_ms: int = 0
    ) -> bool:
        """Check the payload timestamp is inside the freshness window.

        Timestamps ahead of the server clock pass unless
        ``max_future_skew_ms`` is positive.
        """
        now = current_millis() if now_ms is None else now_ms
        
        if max_future_skew_ms > 0 and timestamp > now + max_future_skew_ms:
            return False
        
        return now - timestamp < max_age_ms
    
    @staticmethod
    def parse_payload(data: Union[str, Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        """Parse a payload from a JSON string or dict; ``None`` if malformed."""
        if isinstance(data, str):
            try:
                data = json.loads(data)
            except json.JSONDecodeError:
                return None
        
        if not isinstance(data, dict):
            return None
        
        timestamp = data.get('timestamp')
        if (
            isinstance(data.get('sessionId'), str) and
            isinstance(timestamp, int) and not isinstance(timestamp, bool) and
            isinstance(data.get('nonce'), str) and
            isinstance(data.get('signature'), str)
        ):
            return {field: data[field] for field in PAYLOAD_FIELDS}
        
        return None
    
    @staticmethod
    def render_qr_image(text: str) -> str:
        """Render ``text`` as a PNG QR code data URI."""
        qr = qrcode.QRCode(
            version=None,  # Auto-determine size
            error_correction=qrcode.constants.ERROR_CORRECT_M,
            box_size=10,
            border=4,
        )
        qr.add_data(text)
        qr.make(fit=True)
        
        img = qr.make_image(fill_color="black", back_color="white")
        
        buffered = io.BytesIO()
        img.save(buffered, format="PNG")
        img_str = base64.b64encode(buffered.getvalue()).decode()
        
        return f"data:image/png;base64,{img_str}"
