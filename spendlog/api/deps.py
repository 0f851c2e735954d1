"""FastAPI dependencies: components, correlation id and the current user."""

from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from spendlog.models.finance import User
from spendlog.orchestrator import AppComponents
from spendlog.services.auth import AuthError


bearer_scheme = HTTPBearer(auto_error=False)

# Period arithmetic steps a year past the request and back up to two years
# for lookbacks, so query bounds stay inside datetime.date.
MIN_YEAR = 1900
MAX_YEAR = 9998
MAX_END_DATE = date(MAX_YEAR, 12, 31)


def get_components(request: Request) -> AppComponents:
    return request.app.state.components


def get_correlation_id(request: Request) -> Optional[UUID]:
    return getattr(request.state, "correlation_id", None)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    components: AppComponents = Depends(get_components),
) -> User:
    """
    Resolve the bearer token to a user.

    Raises:
        AuthError: If the header is missing or the token doesn't resolve
    """
    if credentials is None:
        raise AuthError("Not authorized, no token")
    return await components.auth.authenticate(credentials.credentials)
