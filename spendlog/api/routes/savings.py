"""Savings goal routes under /api/savings."""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status

from spendlog.api.deps import get_components, get_correlation_id, get_current_user
from spendlog.api.responses import success_response
from spendlog.models.finance import SavingsGoalCreate, SavingsGoalUpdate, User
from spendlog.orchestrator import AppComponents


router = APIRouter(prefix="/api/savings", tags=["savings"])

NO_GOAL_MESSAGE = "No savings goal set"


@router.get("")
async def get_savings_goal(
    user: User = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
    correlation_id: Optional[UUID] = Depends(get_correlation_id),
):
    goal_status = await components.savings.get_goal(user.id, correlation_id=correlation_id)
    if goal_status is None:
        return success_response(None, message=NO_GOAL_MESSAGE)
    return success_response(goal_status)


@router.post("", status_code=status.HTTP_201_CREATED)
async def set_savings_goal(
    body: SavingsGoalCreate,
    user: User = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
    correlation_id: Optional[UUID] = Depends(get_correlation_id),
):
    goal = await components.savings.set_goal(user.id, body, correlation_id=correlation_id)
    return success_response(
        goal,
        message="Savings goal set successfully",
        status_code=status.HTTP_201_CREATED,
    )


@router.put("")
async def update_savings_goal(
    body: SavingsGoalUpdate,
    user: User = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
    correlation_id: Optional[UUID] = Depends(get_correlation_id),
):
    goal = await components.savings.update_goal(user.id, body, correlation_id=correlation_id)
    return success_response(goal, message="Savings goal updated successfully")


@router.delete("")
async def delete_savings_goal(
    user: User = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
    correlation_id: Optional[UUID] = Depends(get_correlation_id),
):
    await components.savings.delete_goal(user.id, correlation_id=correlation_id)
    return success_response({}, message="Savings goal deleted successfully")


@router.get("/progress")
async def savings_progress(
    user: User = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    points = await components.savings.progress(user.id)
    if points is None:
        return success_response([], message=NO_GOAL_MESSAGE)
    return success_response(points)
