"""
Authentication Service

Password hashing with bcrypt and signed access tokens with PyJWT.

Tokens carry the user id in ``sub`` and expire after
``JWT_EXPIRE_DAYS``. Resolving a token to a user is left to the API layer;
this module only proves who the caller claims to be.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

import bcrypt
import jwt
import structlog

from spendlog.config import AuthSettings, get_settings
from spendlog.models.finance import MAX_PASSWORD_BYTES


logger = structlog.get_logger(__name__)


class AuthError(Exception):
    """Authentication failed (bad credentials, missing or invalid token)."""
    pass


class AuthService:
    """Hashes and verifies passwords, issues and decodes tokens."""

    def __init__(self, settings: Optional[AuthSettings] = None):
        self._settings = settings or get_settings().auth

    def hash_password(self, password: str) -> str:
        salt = bcrypt.gensalt(rounds=self._settings.bcrypt_rounds)
        return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")

    def verify_password(self, password: str, password_hash: str) -> bool:
        secret = password.encode("utf-8")
        if len(secret) > MAX_PASSWORD_BYTES:
            return False
        try:
            return bcrypt.checkpw(secret, password_hash.encode("utf-8"))
        except ValueError:
            # Stored hash is not a bcrypt hash
            logger.warning("invalid_password_hash")
            return False

    def create_token(self, user_id: UUID, now: Optional[datetime] = None) -> str:
        """Issue an access token for a user."""
        now = now or datetime.now(timezone.utc)
        payload = {
            "sub": str(user_id),
            "iat": now,
            "exp": now + timedelta(days=self._settings.expire_days),
        }
        return jwt.encode(payload, self._settings.secret_key, algorithm=self._settings.algorithm)

    def decode_token(self, token: str) -> UUID:
        """
        Verify a token and return the user id it was issued for.

        Raises:
            AuthError: If the token is expired, tampered with or malformed
        """
        try:
            payload = jwt.decode(
                token,
                self._settings.secret_key,
                algorithms=[self._settings.algorithm],
            )
        except jwt.ExpiredSignatureError as e:
            raise AuthError("Not authorized, token expired") from e
        except jwt.InvalidTokenError as e:
            raise AuthError("Not authorized, token failed") from e

        try:
            return UUID(payload["sub"])
        except (KeyError, TypeError, ValueError) as e:
            raise AuthError("Not authorized, token failed") from e
