"""
Transaction use cases: CRUD, monthly statistics, the calendar heat-map
and export.

Every method takes the acting user's id and only ever touches that user's
transactions. Aggregates are computed by the aggregation engine over the
rows fetched for one request.
"""

from datetime import date, timedelta
from typing import Optional
from uuid import UUID

import structlog
from pydantic import BaseModel

from spendlog.aggregation import (
    category_breakdown,
    compute_calendar,
    compute_monthly_stats,
    month_window,
)
from spendlog.audit import AuditLogger
from spendlog.controllers.common import resolve_period
from spendlog.export import ExportFormat, export_filename, render_export
from spendlog.models.audit import AuditEventType
from spendlog.models.finance import (
    Transaction,
    TransactionCreate,
    TransactionPage,
    TransactionType,
    TransactionUpdate,
)
from spendlog.models.stats import CalendarMonth, CategoryTotal, MonthlyStats
from spendlog.services.storage import NotFoundError, TransactionStorageInterface
from spendlog.validation import TransactionValidator, ValidationFailedError


logger = structlog.get_logger(__name__)


class ExportResult(BaseModel):
    """A rendered export, ready to be sent as a download."""

    filename: str
    media_type: str
    content: str
    row_count: int


def _narrow(
    date_from: Optional[date],
    date_to: Optional[date],
    start: Optional[date],
    end: Optional[date],
) -> tuple[Optional[date], Optional[date]]:
    """Intersect a [date_from, date_to) window with another one."""
    if start and (date_from is None or start > date_from):
        date_from = start
    if end and (date_to is None or end < date_to):
        date_to = end
    return date_from, date_to


class TransactionController:

    def __init__(
        self,
        transaction_storage: TransactionStorageInterface,
        validator: Optional[TransactionValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._transactions = transaction_storage
        self._validator = validator or TransactionValidator()
        self._audit_logger = audit_logger

    async def _validate(
        self,
        owner_id: UUID,
        transaction: Transaction,
        correlation_id: Optional[UUID],
    ) -> None:
        """Run semantic validation; errors reject, warnings are logged."""
        try:
            result = self._validator.check(transaction)
        except ValidationFailedError as e:
            if self._audit_logger:
                await self._audit_logger.log_validation_failed(
                    user_id=owner_id,
                    entity_type="transaction",
                    issues=[issue.model_dump() for issue in e.result.issues],
                    correlation_id=correlation_id,
                )
            raise

        for issue in result.warnings:
            logger.warning(
                "transaction_validation_warning",
                owner_id=str(owner_id),
                field=issue.field,
                issue_type=issue.issue_type,
                message=issue.message,
            )

    async def list_transactions(
        self,
        owner_id: UUID,
        month: Optional[int] = None,
        year: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        transaction_type: Optional[TransactionType] = None,
        category: Optional[str] = None,
        page: int = 1,
        limit: int = 50,
    ) -> TransactionPage:
        """
        List a page of transactions, newest first.

        month and year filter only when both are given. start_date and
        end_date are inclusive; combined with a month they narrow it.
        category is a case-insensitive substring match.
        """
        date_from = date_to = None
        if month and year:
            date_from, date_to = month_window(year, month)
        date_from, date_to = _narrow(
            date_from,
            date_to,
            start_date,
            end_date + timedelta(days=1) if end_date else None,
        )

        filters = dict(
            owner_id=owner_id,
            date_from=date_from,
            date_to=date_to,
            transaction_type=transaction_type,
            category=category,
        )
        transactions = await self._transactions.list_transactions(
            **filters,
            limit=limit,
            offset=(page - 1) * limit,
        )
        total = await self._transactions.count_transactions(**filters)

        return TransactionPage(
            transactions=transactions,
            total=total,
            page=page,
            limit=limit,
        )

    async def get(self, owner_id: UUID, transaction_id: UUID) -> Transaction:
        transaction = await self._transactions.get_transaction(owner_id, transaction_id)
        if transaction is None:
            raise NotFoundError("Transaction not found")
        return transaction

    async def create(
        self,
        owner_id: UUID,
        data: TransactionCreate,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        transaction = Transaction(owner_id=owner_id, **data.model_dump())
        await self._validate(owner_id, transaction, correlation_id)

        await self._transactions.save_transaction(transaction)

        if self._audit_logger:
            await self._audit_logger.log_transaction_event(
                event_type=AuditEventType.TRANSACTION_CREATED,
                user_id=owner_id,
                transaction_id=transaction.id,
                amount=transaction.amount,
                transaction_type=transaction.type.value,
                correlation_id=correlation_id,
            )
        return transaction

    async def update(
        self,
        owner_id: UUID,
        transaction_id: UUID,
        data: TransactionUpdate,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """
        Change the supplied fields of a transaction.

        Raises:
            NotFoundError: If the user has no such transaction
            ValidationFailedError: If the merged record fails validation
        """
        existing = await self.get(owner_id, transaction_id)
        updated = existing.apply_update(data)
        await self._validate(owner_id, updated, correlation_id)

        await self._transactions.update_transaction(updated)

        if self._audit_logger:
            await self._audit_logger.log_transaction_event(
                event_type=AuditEventType.TRANSACTION_UPDATED,
                user_id=owner_id,
                transaction_id=updated.id,
                amount=updated.amount,
                transaction_type=updated.type.value,
                correlation_id=correlation_id,
            )
        return updated

    async def delete(
        self,
        owner_id: UUID,
        transaction_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        if not await self._transactions.delete_transaction(owner_id, transaction_id):
            raise NotFoundError("Transaction not found")

        if self._audit_logger:
            await self._audit_logger.log_transaction_event(
                event_type=AuditEventType.TRANSACTION_DELETED,
                user_id=owner_id,
                transaction_id=transaction_id,
                correlation_id=correlation_id,
            )

    async def stats_overview(
        self,
        owner_id: UUID,
        month: Optional[int] = None,
        year: Optional[int] = None,
    ) -> MonthlyStats:
        """Monthly statistics; month and year default to the current ones."""
        month, year = resolve_period(month, year)
        start, end = month_window(year, month)
        transactions = await self._transactions.list_transactions(
            owner_id,
            date_from=start,
            date_to=end,
        )
        return compute_monthly_stats(transactions, start, end)

    async def stats_categories(
        self,
        owner_id: UUID,
        month: Optional[int] = None,
        year: Optional[int] = None,
    ) -> list[CategoryTotal]:
        month, year = resolve_period(month, year)
        start, end = month_window(year, month)
        expenses = await self._transactions.list_transactions(
            owner_id,
            date_from=start,
            date_to=end,
            transaction_type=TransactionType.EXPENSE,
        )
        return category_breakdown(expenses)

    async def calendar(
        self,
        owner_id: UUID,
        month: Optional[int] = None,
        year: Optional[int] = None,
    ) -> CalendarMonth:
        month, year = resolve_period(month, year)
        start, end = month_window(year, month)
        transactions = await self._transactions.list_transactions(
            owner_id,
            date_from=start,
            date_to=end,
        )
        return compute_calendar(transactions, year, month)

    async def export(
        self,
        owner_id: UUID,
        export_format: ExportFormat = ExportFormat.CSV,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> ExportResult:
        """
        Render the user's transactions between two inclusive dates.

        Raises:
            NotFoundError: If nothing falls in the range
        """
        transactions = await self._transactions.list_transactions(
            owner_id,
            date_from=start_date,
            date_to=end_date + timedelta(days=1) if end_date else None,
        )
        if not transactions:
            raise NotFoundError("No data found for the selected date range")

        if self._audit_logger:
            await self._audit_logger.log_transactions_exported(
                user_id=owner_id,
                export_format=export_format.value,
                row_count=len(transactions),
                correlation_id=correlation_id,
            )

        return ExportResult(
            filename=export_filename(start_date, end_date, export_format),
            media_type=export_format.media_type,
            content=render_export(transactions, export_format),
            row_count=len(transactions),
        )
