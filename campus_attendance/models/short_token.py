"""Short token rows backing the QR indirection store."""
from campus_attendance import db
from campus_attendance.utils.helpers import utcnow


class ShortToken(db.Model):
    """Opaque QR token resolving to a signed payload until ``expires_at``."""

    __tablename__ = 'short_tokens'

    token = db.Column(db.String(16), primary_key=True)

    # Signed payload
    session_id = db.Column(db.String(36), nullable=False, index=True)
    timestamp = db.Column(db.BigInteger, nullable=False)
    nonce = db.Column(db.String(64), nullable=False)
    signature = db.Column(db.String(64), nullable=False)

    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False, index=True)

    def to_payload(self) -> dict:
        return {
            'sessionId': self.session_id,
            'timestamp': self.timestamp,
            'nonce': self.nonce,
            'signature': self.signature,
        }

    def __repr__(self):
        return f'<ShortToken {self.token}>'
