"""
Audit Logger

Every change a user makes to their records is logged, along with logins,
exports and failures. Each event goes to the structured JSON log and,
when a storage backend is configured, to the append-only audit
collection.

A failed storage write is reported to the local log and never fails the
request that triggered it.
"""

import logging
import sys
from typing import Optional
from uuid import UUID, uuid4

import structlog

from spendlog.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from spendlog.services.storage import AuditStorageInterface, StorageError


def configure_logging(debug: bool = False) -> None:
    """Route structlog through stdlib logging with JSON output."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=logging.DEBUG if debug else logging.INFO,
        force=True,
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_logging()


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The audit collection (for persistence)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("spendlog.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except StorageError as e:
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_user_registered(
        self,
        user_id: UUID,
        email: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.user_registered(
            user_id=user_id,
            email=email,
            correlation_id=correlation_id,
        ))

    async def log_user_logged_in(
        self,
        user_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.user_logged_in(
            user_id=user_id,
            correlation_id=correlation_id,
        ))

    async def log_login_failed(
        self,
        email: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.login_failed(
            email=email,
            correlation_id=correlation_id,
        ))

    async def log_profile_updated(
        self,
        user_id: UUID,
        fields: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.profile_updated(
            user_id=user_id,
            fields=fields,
            correlation_id=correlation_id,
        ))

    async def log_transaction_event(
        self,
        event_type: AuditEventType,
        user_id: UUID,
        transaction_id: UUID,
        amount: Optional[float] = None,
        transaction_type: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a transaction create, update or delete."""
        await self.log(AuditEventBuilder.transaction_changed(
            event_type=event_type,
            user_id=user_id,
            transaction_id=transaction_id,
            amount=amount,
            transaction_type=transaction_type,
            correlation_id=correlation_id,
        ))

    async def log_transactions_exported(
        self,
        user_id: UUID,
        export_format: str,
        row_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.transactions_exported(
            user_id=user_id,
            export_format=export_format,
            row_count=row_count,
            correlation_id=correlation_id,
        ))

    async def log_budget_set(
        self,
        user_id: UUID,
        budget_id: UUID,
        category: str,
        month: int,
        year: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.budget_set(
            user_id=user_id,
            budget_id=budget_id,
            category=category,
            month=month,
            year=year,
            correlation_id=correlation_id,
        ))

    async def log_budget_deleted(
        self,
        user_id: UUID,
        budget_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.budget_deleted(
            user_id=user_id,
            budget_id=budget_id,
            correlation_id=correlation_id,
        ))

    async def log_savings_goal_event(
        self,
        event_type: AuditEventType,
        user_id: UUID,
        goal_id: UUID,
        goal_amount: Optional[float] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a savings goal set, update, delete or completion."""
        await self.log(AuditEventBuilder.savings_goal_changed(
            event_type=event_type,
            user_id=user_id,
            goal_id=goal_id,
            goal_amount=goal_amount,
            correlation_id=correlation_id,
        ))

    async def log_validation_failed(
        self,
        user_id: Optional[UUID],
        entity_type: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.validation_failed(
            user_id=user_id,
            entity_type=entity_type,
            issues=issues,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    The API assigns one per request and passes it through every
    controller call made for that request.
    """
    return uuid4()
