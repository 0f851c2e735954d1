"""
Abstract Storage Interface

We define an abstract interface for storage operations. This allows us to:
1. Run against MongoDB in production
2. Use in-memory storage for testing
3. Keep controllers and the aggregation engine decoupled from the driver

Every read and write of a transaction, budget or savings goal takes the
owning user's id and must filter by it.

Uniqueness rules enforced by every backend:
- users: email
- budgets: (owner_id, category, month, year)
- savings goals: owner_id

Upserts are read-check-write (update if a row with the key exists, else
insert). An insert that still collides raises DuplicateError.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Optional
from uuid import UUID

from spendlog.models.audit import AuditEvent
from spendlog.models.finance import (
    Budget,
    SavingsGoal,
    Transaction,
    TransactionType,
    User,
)


class UserStorageInterface(ABC):
    """Storage for user accounts."""

    @abstractmethod
    async def create_user(self, user: User) -> User:
        """
        Insert a new user.

        Raises:
            DuplicateError: If the email is already registered
        """
        pass

    @abstractmethod
    async def get_user_by_id(self, user_id: UUID) -> Optional[User]:
        pass

    @abstractmethod
    async def get_user_by_email(self, email: str) -> Optional[User]:
        """Look up a user by (lowercased) email."""
        pass

    @abstractmethod
    async def update_user(self, user: User) -> User:
        """
        Replace a stored user.

        Raises:
            NotFoundError: If the user doesn't exist
            DuplicateError: If the new email belongs to another user
        """
        pass


class TransactionStorageInterface(ABC):
    """Storage for income/expense transactions."""

    @abstractmethod
    async def save_transaction(self, transaction: Transaction) -> Transaction:
        """Insert a new transaction."""
        pass

    @abstractmethod
    async def get_transaction(
        self,
        owner_id: UUID,
        transaction_id: UUID,
    ) -> Optional[Transaction]:
        """
        Retrieve one transaction.

        Returns None if it doesn't exist or belongs to another user.
        """
        pass

    @abstractmethod
    async def update_transaction(self, transaction: Transaction) -> Transaction:
        """
        Replace a stored transaction.

        Raises:
            NotFoundError: If no transaction with this id and owner exists
        """
        pass

    @abstractmethod
    async def delete_transaction(self, owner_id: UUID, transaction_id: UUID) -> bool:
        """Delete a transaction. Returns False if nothing matched."""
        pass

    @abstractmethod
    async def list_transactions(
        self,
        owner_id: UUID,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        transaction_type: Optional[TransactionType] = None,
        category: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[Transaction]:
        """
        List a user's transactions, newest first.

        Args:
            owner_id: Owning user
            date_from: Include transactions on or after this date
            date_to: Include transactions strictly before this date
            transaction_type: Only income or only expense
            category: Case-insensitive substring match on category
            limit: Maximum number of results (None for all)
            offset: Number of results to skip
        """
        pass

    @abstractmethod
    async def count_transactions(
        self,
        owner_id: UUID,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        transaction_type: Optional[TransactionType] = None,
        category: Optional[str] = None,
    ) -> int:
        """Count transactions matching the same filters as list_transactions."""
        pass


class BudgetStorageInterface(ABC):
    """Storage for monthly category budgets."""

    @abstractmethod
    async def upsert_budget(self, budget: Budget) -> Budget:
        """
        Insert a budget, or update the one with the same
        (owner_id, category, month, year).

        An updated budget keeps its id and created_at.

        Raises:
            DuplicateError: If a concurrent insert won the race
        """
        pass

    @abstractmethod
    async def get_budget(self, owner_id: UUID, budget_id: UUID) -> Optional[Budget]:
        pass

    @abstractmethod
    async def list_budgets(self, owner_id: UUID, month: int, year: int) -> list[Budget]:
        """List a user's budgets for one month."""
        pass

    @abstractmethod
    async def delete_budget(self, owner_id: UUID, budget_id: UUID) -> bool:
        """Delete a budget. Returns False if nothing matched."""
        pass


class SavingsGoalStorageInterface(ABC):
    """Storage for the single savings goal each user may have."""

    @abstractmethod
    async def get_goal(self, owner_id: UUID) -> Optional[SavingsGoal]:
        pass

    @abstractmethod
    async def upsert_goal(self, goal: SavingsGoal) -> SavingsGoal:
        """
        Insert the user's goal, or replace the existing one.

        A replaced goal keeps its id and created_at.

        Raises:
            DuplicateError: If a concurrent insert won the race
        """
        pass

    @abstractmethod
    async def save_goal(self, goal: SavingsGoal) -> SavingsGoal:
        """
        Persist changes to an existing goal.

        Raises:
            NotFoundError: If the user has no goal
        """
        pass

    @abstractmethod
    async def delete_goal(self, owner_id: UUID) -> bool:
        """Delete the user's goal. Returns False if there was none."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_for_user(
        self,
        user_id: UUID,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get a user's most recent events (newest first)."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
