"""Short token store for QR codes.

A QR code only carries an 8-character token; the signed payload it stands for
lives in a store shared by every server instance. Tokens are never consumed by
a read, so a whole lecture hall can resolve the same code concurrently.
"""
import base64
import json
import logging
import secrets
from datetime import timedelta
from typing import Any, Dict, Optional

import redis
from sqlalchemy import insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from campus_attendance import db
from campus_attendance.models.short_token import ShortToken
from campus_attendance.services.qr_service import QRService
from campus_attendance.utils.helpers import utcnow

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300
TOKEN_BYTES = 6
MAX_PUT_ATTEMPTS = 5


def generate_short_token() -> str:
    """URL-safe base64 of 6 random bytes (8 characters)."""
    return base64.urlsafe_b64encode(secrets.token_bytes(TOKEN_BYTES)).decode('ascii').rstrip('=')


class ShortTokenStore:
    """Interface for the shared token -> signed payload mapping."""

    def __init__(self, ttl_seconds: int = DEFAULT_TTL_SECONDS):
        self.ttl_seconds = ttl_seconds

    def put(self, payload: Dict[str, Any]) -> str:
        raise NotImplementedError

    def get(self, token: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def invalidate(self, token: str) -> None:
        raise NotImplementedError

    def sweep_expired(self) -> int:
        raise NotImplementedError


class DatabaseShortTokenStore(ShortTokenStore):
    """Tokens stored in the ``short_tokens`` table of the main datastore."""

    def put(self, payload: Dict[str, Any]) -> str:
        """Persist ``payload`` under a new token and return the token."""
        for attempt in range(1, MAX_PUT_ATTEMPTS + 1):
            now = utcnow()
            token = generate_short_token()
            statement = insert(ShortToken).values(
                token=token,
                session_id=payload['sessionId'],
                timestamp=payload['timestamp'],
                nonce=payload['nonce'],
                signature=payload['signature'],
                created_at=now,
                expires_at=now + timedelta(seconds=self.ttl_seconds),
            )
            try:
                db.session.execute(statement)
                db.session.commit()
            except IntegrityError:
                # 48-bit token collided with a live one; draw again
                db.session.rollback()
                logger.warning("Short token collision on attempt %d", attempt)
                continue

            logger.debug("Stored token %s for session %s", token, payload['sessionId'])
            return token

        raise RuntimeError("Could not allocate a unique short token")

    def get(self, token: str) -> Optional[Dict[str, Any]]:
        """Resolve ``token``; expired and unknown tokens both give ``None``."""
        row = db.session.get(ShortToken, token)

        if row is None:
            logger.debug("Token not found: %s", token)
            return None

        if utcnow() >= row.expires_at:
            logger.debug("Token expired: %s", token)
            self._discard_expired(token)
            return None

        return row.to_payload()

    def _discard_expired(self, token: str) -> None:
        # Best effort; the periodic sweep catches anything left behind
        try:
            ShortToken.query.filter(
                ShortToken.token == token,
                ShortToken.expires_at <= utcnow()
            ).delete(synchronize_session=False)
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            logger.warning("Could not delete expired token %s", token, exc_info=True)

    def invalidate(self, token: str) -> None:
        """Delete ``token`` if present."""
        ShortToken.query.filter_by(token=token).delete(synchronize_session=False)
        db.session.commit()

    def sweep_expired(self) -> int:
        """Delete every expired token and return how many were removed."""
        count = ShortToken.query.filter(
            ShortToken.expires_at <= utcnow()
        ).delete(synchronize_session=False)
        db.session.commit()

        if count:
            logger.info("Swept %d expired short tokens", count)
        return count


class RedisShortTokenStore(ShortTokenStore):
    """Tokens stored as Redis keys with a native TTL."""

    KEY_PREFIX = 'short_token:'

    def __init__(self, client, ttl_seconds: int = DEFAULT_TTL_SECONDS):
        super().__init__(ttl_seconds)
        self.client = client

    def _key(self, token: str) -> str:
        return f"{self.KEY_PREFIX}{token}"

    def put(self, payload: Dict[str, Any]) -> str:
        """Persist ``payload`` under a new token and return the token."""
        value = json.dumps(payload, separators=(',', ':'))

        for attempt in range(1, MAX_PUT_ATTEMPTS + 1):
            token = generate_short_token()
            # NX so a collision never overwrites a live token
            if self.client.set(self._key(token), value, ex=self.ttl_seconds, nx=True):
                logger.debug("Stored token %s for session %s", token, payload['sessionId'])
                return token
            logger.warning("Short token collision on attempt %d", attempt)

        raise RuntimeError("Could not allocate a unique short token")

    def get(self, token: str) -> Optional[Dict[str, Any]]:
        """Resolve ``token``; Redis drops the key once its TTL elapses."""
        value = self.client.get(self._key(token))
        if value is None:
            logger.debug("Token not found: %s", token)
            return None

        if isinstance(value, bytes):
            value = value.decode('utf-8')
        return QRService.parse_payload(value)

    def invalidate(self, token: str) -> None:
        """Delete ``token`` if present."""
        self.client.delete(self._key(token))

    def sweep_expired(self) -> int:
        """Nothing to do; Redis expires keys itself."""
        return 0


def create_token_store(config) -> ShortTokenStore:
    """Build the store selected by ``SHORT_TOKEN_BACKEND``."""
    backend = config.get('SHORT_TOKEN_BACKEND', 'database')
    ttl = config.get('SHORT_TOKEN_TTL_SECONDS', DEFAULT_TTL_SECONDS)

    if backend == 'database':
        return DatabaseShortTokenStore(ttl_seconds=ttl)

    if backend == 'redis':
        redis_url = config.get('REDIS_URL')
        if not redis_url:
            raise RuntimeError("SHORT_TOKEN_BACKEND=redis requires REDIS_URL")
        return RedisShortTokenStore(redis.Redis.from_url(redis_url), ttl_seconds=ttl)

    raise RuntimeError(f"Unknown SHORT_TOKEN_BACKEND: {backend}")
