"""
Audit Models for Spend Log

Every significant action in the system is logged for audit purposes:
account activity, changes to transactions, budgets and the savings goal,
exports, and failures.

Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""

    # Accounts
    USER_REGISTERED = "user_registered"
    USER_LOGGED_IN = "user_logged_in"
    LOGIN_FAILED = "login_failed"
    PROFILE_UPDATED = "profile_updated"

    # Transactions
    TRANSACTION_CREATED = "transaction_created"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"
    TRANSACTIONS_EXPORTED = "transactions_exported"

    # Budgets
    BUDGET_SET = "budget_set"
    BUDGET_DELETED = "budget_deleted"

    # Savings goal
    SAVINGS_GOAL_SET = "savings_goal_set"
    SAVINGS_GOAL_UPDATED = "savings_goal_updated"
    SAVINGS_GOAL_DELETED = "savings_goal_deleted"
    SAVINGS_GOAL_COMPLETED = "savings_goal_completed"

    # Validation
    VALIDATION_FAILED = "validation_failed"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Who and what
    user_id: Optional[UUID] = Field(
        default=None,
        description="Acting user, when known"
    )
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'budget')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - ties together everything done for one request
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "user_id": str(self.user_id) if self.user_id else None,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.user_registered(user_id, email)
        event = AuditEventBuilder.budget_set(user_id, budget_id, "Food", 2, 2024)
    """

    @staticmethod
    def user_registered(
        user_id: UUID,
        email: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_REGISTERED,
            user_id=user_id,
            entity_type="user",
            entity_id=user_id,
            correlation_id=correlation_id,
            description=f"User registered: {email}",
            details={"email": email},
        )

    @staticmethod
    def user_logged_in(
        user_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_LOGGED_IN,
            user_id=user_id,
            entity_type="user",
            entity_id=user_id,
            correlation_id=correlation_id,
            description="User logged in",
        )

    @staticmethod
    def login_failed(
        email: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOGIN_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="user",
            correlation_id=correlation_id,
            description="Login failed: invalid credentials",
            details={"email": email},
        )

    @staticmethod
    def profile_updated(
        user_id: UUID,
        fields: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PROFILE_UPDATED,
            user_id=user_id,
            entity_type="user",
            entity_id=user_id,
            correlation_id=correlation_id,
            description=f"Profile updated ({len(fields)} fields)",
            details={"fields": sorted(fields)},
        )

    @staticmethod
    def transaction_changed(
        event_type: AuditEventType,
        user_id: UUID,
        transaction_id: UUID,
        amount: Optional[float] = None,
        transaction_type: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        action = event_type.value.split("_", 1)[1]
        details = {}
        if amount is not None:
            details["amount"] = amount
        if transaction_type:
            details["type"] = transaction_type
        return AuditEvent(
            event_type=event_type,
            user_id=user_id,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction {action}",
            details=details,
        )

    @staticmethod
    def transactions_exported(
        user_id: UUID,
        export_format: str,
        row_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTIONS_EXPORTED,
            user_id=user_id,
            entity_type="transaction",
            correlation_id=correlation_id,
            description=f"Exported {row_count} transactions as {export_format}",
            details={"format": export_format, "row_count": row_count},
        )

    @staticmethod
    def budget_set(
        user_id: UUID,
        budget_id: UUID,
        category: str,
        month: int,
        year: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_SET,
            user_id=user_id,
            entity_type="budget",
            entity_id=budget_id,
            correlation_id=correlation_id,
            description=f"Budget set: {category} {year}-{month:02d}",
            details={"category": category, "month": month, "year": year},
        )

    @staticmethod
    def budget_deleted(
        user_id: UUID,
        budget_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_DELETED,
            user_id=user_id,
            entity_type="budget",
            entity_id=budget_id,
            correlation_id=correlation_id,
            description="Budget deleted",
        )

    @staticmethod
    def savings_goal_changed(
        event_type: AuditEventType,
        user_id: UUID,
        goal_id: UUID,
        goal_amount: Optional[float] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        details = {}
        if goal_amount is not None:
            details["goal_amount"] = goal_amount
        return AuditEvent(
            event_type=event_type,
            user_id=user_id,
            entity_type="savings_goal",
            entity_id=goal_id,
            correlation_id=correlation_id,
            description=event_type.value.replace("_", " ").capitalize(),
            details=details,
        )

    @staticmethod
    def validation_failed(
        user_id: Optional[UUID],
        entity_type: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type=entity_type,
            correlation_id=correlation_id,
            description=f"Validation failed with {len(issues)} issues",
            details={"issues": issues},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
