"""
Account use cases: register, login, profile.

Emails are compared lowercased. The password hash never leaves this
controller; callers get a UserProfile or an AuthPayload.
"""

from typing import Optional
from uuid import UUID

from spendlog.audit import AuditLogger
from spendlog.config import AppSettings, get_settings
from spendlog.models.finance import (
    AuthPayload,
    LoginRequest,
    User,
    UserCreate,
    UserProfile,
    UserUpdate,
)
from spendlog.services.auth import AuthError, AuthService
from spendlog.services.storage import DuplicateError, NotFoundError, UserStorageInterface


DUPLICATE_EMAIL_MESSAGE = "User already exists with this email"


class AuthController:

    def __init__(
        self,
        user_storage: UserStorageInterface,
        auth_service: AuthService,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[AppSettings] = None,
    ):
        self._users = user_storage
        self._auth = auth_service
        self._audit_logger = audit_logger
        self._settings = settings or get_settings().app

    def _payload(self, user: User) -> AuthPayload:
        profile = UserProfile.from_user(user)
        return AuthPayload(**profile.model_dump(), token=self._auth.create_token(user.id))

    async def _require_user(self, user_id: UUID) -> User:
        user = await self._users.get_user_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def register(
        self,
        data: UserCreate,
        correlation_id: Optional[UUID] = None,
    ) -> AuthPayload:
        """
        Create an account and issue its first token.

        Raises:
            DuplicateError: If the email is already registered
        """
        if await self._users.get_user_by_email(data.email):
            raise DuplicateError(DUPLICATE_EMAIL_MESSAGE)

        user = User(
            name=data.name,
            email=data.email,
            password_hash=self._auth.hash_password(data.password),
            currency=data.currency or self._settings.default_currency,
            monthly_income=data.monthly_income or 0.0,
        )
        try:
            await self._users.create_user(user)
        except DuplicateError as e:
            raise DuplicateError(DUPLICATE_EMAIL_MESSAGE) from e

        if self._audit_logger:
            await self._audit_logger.log_user_registered(
                user_id=user.id,
                email=user.email,
                correlation_id=correlation_id,
            )
        return self._payload(user)

    async def login(
        self,
        data: LoginRequest,
        correlation_id: Optional[UUID] = None,
    ) -> AuthPayload:
        """
        Check credentials and issue a token.

        Unknown email and wrong password fail the same way.

        Raises:
            AuthError: If the credentials don't match
        """
        user = await self._users.get_user_by_email(data.email)
        if user is None or not self._auth.verify_password(data.password, user.password_hash):
            if self._audit_logger:
                await self._audit_logger.log_login_failed(
                    email=data.email,
                    correlation_id=correlation_id,
                )
            raise AuthError("Invalid credentials")

        if self._audit_logger:
            await self._audit_logger.log_user_logged_in(
                user_id=user.id,
                correlation_id=correlation_id,
            )
        return self._payload(user)

    async def authenticate(self, token: str) -> User:
        """
        Resolve a bearer token to its user.

        Raises:
            AuthError: If the token is invalid or its user no longer exists
        """
        user_id = self._auth.decode_token(token)
        user = await self._users.get_user_by_id(user_id)
        if user is None:
            raise AuthError("Not authorized, user not found")
        return user

    async def get_me(self, owner_id: UUID) -> UserProfile:
        return UserProfile.from_user(await self._require_user(owner_id))

    async def update_profile(
        self,
        owner_id: UUID,
        data: UserUpdate,
        correlation_id: Optional[UUID] = None,
    ) -> AuthPayload:
        """
        Change the supplied profile fields and issue a fresh token.

        Raises:
            NotFoundError: If the user no longer exists
            DuplicateError: If the new email belongs to another account
        """
        user = await self._require_user(owner_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)

        new_email = changes.get("email")
        if new_email and new_email != user.email:
            if await self._users.get_user_by_email(new_email):
                raise DuplicateError(DUPLICATE_EMAIL_MESSAGE)

        password = changes.pop("password", None)
        if password:
            changes["password_hash"] = self._auth.hash_password(password)

        updated = user.model_copy(update=changes)
        try:
            await self._users.update_user(updated)
        except DuplicateError as e:
            raise DuplicateError(DUPLICATE_EMAIL_MESSAGE) from e

        if self._audit_logger:
            fields = ["password" if name == "password_hash" else name for name in changes]
            await self._audit_logger.log_profile_updated(
                user_id=user.id,
                fields=fields,
                correlation_id=correlation_id,
            )
        return self._payload(updated)
