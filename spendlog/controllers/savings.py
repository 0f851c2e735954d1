"""
Savings goal use cases.

Each user has at most one goal. Its current amount is recomputed from the
user's transactions of the current calendar year whenever it is read;
the manual update path is the only place a client can set it directly.
Completion is a latch: once a goal is completed it stays completed.
"""

from datetime import date, datetime
from typing import Optional
from uuid import UUID

from spendlog.aggregation import compute_savings_progress, compute_savings_series
from spendlog.audit import AuditLogger
from spendlog.config import AppSettings, get_settings
from spendlog.models.audit import AuditEventType
from spendlog.models.finance import SavingsGoal, SavingsGoalCreate, SavingsGoalUpdate
from spendlog.models.stats import SavingsGoalStatus, SavingsProgressPoint
from spendlog.models.validation import ValidationIssue, ValidationResult
from spendlog.services.storage import (
    NotFoundError,
    SavingsGoalStorageInterface,
    TransactionStorageInterface,
)
from spendlog.validation import ValidationFailedError


PAST_TARGET_DATE_MESSAGE = "Target date must be today or in the future"


class SavingsController:

    def __init__(
        self,
        goal_storage: SavingsGoalStorageInterface,
        transaction_storage: TransactionStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[AppSettings] = None,
    ):
        self._goals = goal_storage
        self._transactions = transaction_storage
        self._audit_logger = audit_logger
        self._settings = settings or get_settings().app

    async def _audit(
        self,
        event_type: AuditEventType,
        goal: SavingsGoal,
        correlation_id: Optional[UUID],
    ) -> None:
        if self._audit_logger:
            await self._audit_logger.log_savings_goal_event(
                event_type=event_type,
                user_id=goal.owner_id,
                goal_id=goal.id,
                goal_amount=goal.goal_amount,
                correlation_id=correlation_id,
            )

    async def _require_goal(self, owner_id: UUID) -> SavingsGoal:
        goal = await self._goals.get_goal(owner_id)
        if goal is None:
            raise NotFoundError("Savings goal not found")
        return goal

    async def get_goal(
        self,
        owner_id: UUID,
        now: Optional[datetime] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Optional[SavingsGoalStatus]:
        """
        Recompute, persist and return the user's goal with pace figures.

        Returns None when the user has no goal.
        """
        goal = await self._goals.get_goal(owner_id)
        if goal is None:
            return None

        now = now or datetime.utcnow()
        year_to_date = await self._transactions.list_transactions(
            owner_id,
            date_from=date(now.year, 1, 1),
        )
        status = compute_savings_progress(goal, year_to_date, now=now)

        refreshed = goal.model_copy(update={
            "current_amount": status.current_amount,
            "is_completed": status.is_completed,
            "updated_at": datetime.utcnow(),
        })
        await self._goals.save_goal(refreshed)

        if refreshed.is_completed and not goal.is_completed:
            await self._audit(AuditEventType.SAVINGS_GOAL_COMPLETED, refreshed, correlation_id)
        return status

    async def set_goal(
        self,
        owner_id: UUID,
        data: SavingsGoalCreate,
        correlation_id: Optional[UUID] = None,
    ) -> SavingsGoal:
        """Create the user's goal, replacing any existing one from scratch."""
        goal = SavingsGoal(
            owner_id=owner_id,
            goal_amount=data.goal_amount,
            target_date=data.target_date,
            name=data.name,
            description=data.description,
            color=data.color or self._settings.default_goal_color,
            current_amount=0.0,
            is_completed=False,
        )
        saved = await self._goals.upsert_goal(goal)
        await self._audit(AuditEventType.SAVINGS_GOAL_SET, saved, correlation_id)
        return saved

    async def update_goal(
        self,
        owner_id: UUID,
        data: SavingsGoalUpdate,
        now: Optional[datetime] = None,
        correlation_id: Optional[UUID] = None,
    ) -> SavingsGoal:
        """
        Change the supplied fields of the user's goal.

        Raises:
            NotFoundError: If the user has no goal
            ValidationFailedError: If the new target date is in the past
        """
        goal = await self._require_goal(owner_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)

        # Same UTC clock as get_goal
        today = (now or datetime.utcnow()).date()
        target_date = changes.get("target_date")
        if target_date is not None and target_date < today:
            raise ValidationFailedError(
                ValidationResult(issues=[ValidationIssue(
                    field="targetDate",
                    issue_type="past_date",
                    message=PAST_TARGET_DATE_MESSAGE,
                    severity="error",
                )]),
                message=PAST_TARGET_DATE_MESSAGE,
            )

        merged = goal.model_dump()
        merged.update(changes)
        merged["updated_at"] = datetime.utcnow()
        updated = SavingsGoal.model_validate(merged)
        updated.is_completed = goal.is_completed or updated.current_amount >= updated.goal_amount

        await self._goals.save_goal(updated)

        await self._audit(AuditEventType.SAVINGS_GOAL_UPDATED, updated, correlation_id)
        if updated.is_completed and not goal.is_completed:
            await self._audit(AuditEventType.SAVINGS_GOAL_COMPLETED, updated, correlation_id)
        return updated

    async def delete_goal(
        self,
        owner_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        goal = await self._require_goal(owner_id)
        await self._goals.delete_goal(owner_id)
        await self._audit(AuditEventType.SAVINGS_GOAL_DELETED, goal, correlation_id)

    async def progress(self, owner_id: UUID) -> Optional[list[SavingsProgressPoint]]:
        """
        Monthly cumulative savings since the goal was created.

        Returns None when the user has no goal.
        """
        goal = await self._goals.get_goal(owner_id)
        if goal is None:
            return None

        transactions = await self._transactions.list_transactions(
            owner_id,
            date_from=goal.created_at.date(),
        )
        return compute_savings_series(goal, transactions)
