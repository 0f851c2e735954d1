"""
Transaction routes under /api/transactions.

The fixed paths (stats, export) are declared before ``/{transaction_id}``
so they are not captured by it.
"""

from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status

from spendlog.api.deps import (
    MAX_END_DATE,
    MAX_YEAR,
    MIN_YEAR,
    get_components,
    get_correlation_id,
    get_current_user,
)
from spendlog.api.responses import success_response
from spendlog.export import ExportFormat
from spendlog.models.finance import (
    TransactionCreate,
    TransactionType,
    TransactionUpdate,
    User,
)
from spendlog.orchestrator import AppComponents


router = APIRouter(prefix="/api/transactions", tags=["transactions"])


def _parse_type(value: Optional[str]) -> Optional[TransactionType]:
    """Unknown type filters are ignored rather than rejected."""
    if not value:
        return None
    try:
        return TransactionType(value.strip().lower())
    except ValueError:
        return None


@router.get("")
async def list_transactions(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=MIN_YEAR, le=MAX_YEAR),
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate", le=MAX_END_DATE),
    type: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=1000),
    user: User = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    result = await components.transactions.list_transactions(
        user.id,
        month=month,
        year=year,
        start_date=start_date,
        end_date=end_date,
        transaction_type=_parse_type(type),
        category=category,
        page=page,
        limit=limit,
    )
    return success_response(
        result.transactions,
        count=result.count,
        total=result.total,
        pagination={"page": result.page, "pages": result.pages},
    )


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_transaction(
    body: TransactionCreate,
    user: User = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
    correlation_id: Optional[UUID] = Depends(get_correlation_id),
):
    transaction = await components.transactions.create(
        user.id,
        body,
        correlation_id=correlation_id,
    )
    return success_response(
        transaction,
        message="Transaction created successfully",
        status_code=status.HTTP_201_CREATED,
    )


@router.get("/stats/overview")
async def stats_overview(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=MIN_YEAR, le=MAX_YEAR),
    user: User = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    stats = await components.transactions.stats_overview(user.id, month=month, year=year)
    return success_response(stats)


@router.get("/stats/categories")
async def stats_categories(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=MIN_YEAR, le=MAX_YEAR),
    user: User = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    breakdown = await components.transactions.stats_categories(user.id, month=month, year=year)
    return success_response(breakdown)


@router.get("/stats/calendar")
async def stats_calendar(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=MIN_YEAR, le=MAX_YEAR),
    user: User = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    calendar = await components.transactions.calendar(user.id, month=month, year=year)
    return success_response(calendar)


@router.get("/export")
async def export_transactions(
    export_format: ExportFormat = Query(ExportFormat.CSV, alias="format"),
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate", le=MAX_END_DATE),
    user: User = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
    correlation_id: Optional[UUID] = Depends(get_correlation_id),
):
    result = await components.transactions.export(
        user.id,
        export_format=export_format,
        start_date=start_date,
        end_date=end_date,
        correlation_id=correlation_id,
    )
    return Response(
        content=result.content,
        media_type=result.media_type,
        headers={"Content-Disposition": f'attachment; filename="{result.filename}"'},
    )


@router.get("/{transaction_id}")
async def get_transaction(
    transaction_id: UUID,
    user: User = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
):
    return success_response(await components.transactions.get(user.id, transaction_id))


@router.put("/{transaction_id}")
async def update_transaction(
    transaction_id: UUID,
    body: TransactionUpdate,
    user: User = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
    correlation_id: Optional[UUID] = Depends(get_correlation_id),
):
    transaction = await components.transactions.update(
        user.id,
        transaction_id,
        body,
        correlation_id=correlation_id,
    )
    return success_response(transaction, message="Transaction updated successfully")


@router.delete("/{transaction_id}")
async def delete_transaction(
    transaction_id: UUID,
    user: User = Depends(get_current_user),
    components: AppComponents = Depends(get_components),
    correlation_id: Optional[UUID] = Depends(get_correlation_id),
):
    await components.transactions.delete(user.id, transaction_id, correlation_id=correlation_id)
    return success_response({}, message="Transaction deleted successfully")
