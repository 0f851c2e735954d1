"""Budget routes under /api/budgets."""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from spendlog.api.deps import (
    MAX_YEAR,
    MIN_YEAR,
    get_components,
    get_correlation_id,
    get_current_user,
)
from spendlog.api.responses import success_response
from spendlog.models.finance import BudgetCreate, User
from spendlog.orchestrator import AppComponents


router = APIRouter(prefix="/api/budgets", tags=["budgets"])


@router.get("")
async def list_budgets(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=MIN_YEAR, le=MAX_YEAR),
    user: User = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    report = await components.budgets.list_with_usage(user.id, month=month, year=year)
    return success_response(report)


@router.post("")
async def set_budget(
    body: BudgetCreate,
    user: User = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
    correlation_id: Optional[UUID] = Depends(get_correlation_id),
):
    budget = await components.budgets.set_budget(user.id, body, correlation_id=correlation_id)
    return success_response(budget, message="Budget set successfully")


@router.get("/recommendations")
async def budget_recommendations(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=MIN_YEAR, le=MAX_YEAR),
    user: User = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    recommendations = await components.budgets.recommendations(user.id, month=month, year=year)
    return success_response(recommendations)


@router.delete("/{budget_id}")
async def delete_budget(
    budget_id: UUID,
    user: User = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
    correlation_id: Optional[UUID] = Depends(get_correlation_id),
):
    await components.budgets.delete(user.id, budget_id, correlation_id=correlation_id)
    return success_response({}, message="Budget deleted successfully")
