"""Account routes under /api/auth."""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status

from spendlog.api.deps import get_components, get_correlation_id, get_current_user
from spendlog.api.responses import success_response
from spendlog.models.finance import LoginRequest, User, UserCreate, UserUpdate
from spendlog.orchestrator import AppComponents


router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    body: UserCreate,
    components: AppComponents = Depends(get_components),
    correlation_id: Optional[UUID] = Depends(get_correlation_id),
):
    payload = await components.auth.register(body, correlation_id=correlation_id)
    return success_response(
        payload,
        message="User registered successfully",
        status_code=status.HTTP_201_CREATED,
    )


@router.post("/login")
async def login(
    body: LoginRequest,
    components: AppComponents = Depends(get_components),
    correlation_id: Optional[UUID] = Depends(get_correlation_id),
):
    payload = await components.auth.login(body, correlation_id=correlation_id)
    return success_response(payload, message="Login successful")


@router.get("/me")
async def get_me(
    user: User = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    return success_response(await components.auth.get_me(user.id))


@router.put("/profile")
async def update_profile(
    body: UserUpdate,
    user: User = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
    correlation_id: Optional[UUID] = Depends(get_correlation_id),
):
    payload = await components.auth.update_profile(
        user.id,
        body,
        correlation_id=correlation_id,
    )
    return success_response(payload, message="Profile updated successfully")
