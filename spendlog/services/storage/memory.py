"""
In-Memory Storage Implementation

Backs the test suite and local runs with STORAGE_BACKEND=memory.

Enforces the same uniqueness rules and owner scoping as the MongoDB
backend, and hands out copies so callers never mutate stored records.
"""

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
from spendlog.services.storage.interface import (
    AuditStorageInterface,
    BudgetStorageInterface,
    DuplicateError,
    NotFoundError,
    SavingsGoalStorageInterface,
    TransactionStorageInterface,
    UserStorageInterface,
)


class InMemoryDatabase:
    """
    Process-local collections, keyed by record id.

    One instance is shared by the storage classes below, the way a
    MongoClient is shared by the MongoDB storages.
    """

    def __init__(self):
        self.users: dict[UUID, User] = {}
        self.transactions: dict[UUID, Transaction] = {}
        self.budgets: dict[UUID, Budget] = {}
        self.savings_goals: dict[UUID, SavingsGoal] = {}
        self.audit_log: list[AuditEvent] = []


class InMemoryUserStorage(UserStorageInterface):

    def __init__(self, db: Optional[InMemoryDatabase] = None):
        self._db = db or InMemoryDatabase()

    def _email_taken(self, email: str, exclude_id: Optional[UUID] = None) -> bool:
        return any(
            user.email == email and user.id != exclude_id
            for user in self._db.users.values()
        )

    async def create_user(self, user: User) -> User:
        if self._email_taken(user.email):
            raise DuplicateError(f"User already exists with email: {user.email}")
        self._db.users[user.id] = user.model_copy(deep=True)
        return user

    async def get_user_by_id(self, user_id: UUID) -> Optional[User]:
        user = self._db.users.get(user_id)
        return user.model_copy(deep=True) if user else None

    async def get_user_by_email(self, email: str) -> Optional[User]:
        for user in self._db.users.values():
            if user.email == email.lower():
                return user.model_copy(deep=True)
        return None

    async def update_user(self, user: User) -> User:
        if user.id not in self._db.users:
            raise NotFoundError(f"User not found: {user.id}")
        if self._email_taken(user.email, exclude_id=user.id):
            raise DuplicateError(f"User already exists with email: {user.email}")
        self._db.users[user.id] = user.model_copy(deep=True)
        return user


def _matches(
    transaction: Transaction,
    owner_id: UUID,
    date_from: Optional[date],
    date_to: Optional[date],
    transaction_type: Optional[TransactionType],
    category: Optional[str],
) -> bool:
    if transaction.owner_id != owner_id:
        return False
    if date_from and transaction.date < date_from:
        return False
    if date_to and transaction.date >= date_to:
        return False
    if transaction_type and transaction.type != transaction_type:
        return False
    if category and category.lower() not in transaction.category.lower():
        return False
    return True


class InMemoryTransactionStorage(TransactionStorageInterface):

    def __init__(self, db: Optional[InMemoryDatabase] = None):
        self._db = db or InMemoryDatabase()

    async def save_transaction(self, transaction: Transaction) -> Transaction:
        if transaction.id in self._db.transactions:
            raise DuplicateError(f"Transaction already exists: {transaction.id}")
        self._db.transactions[transaction.id] = transaction.model_copy(deep=True)
        return transaction

    async def get_transaction(
        self,
        owner_id: UUID,
        transaction_id: UUID,
    ) -> Optional[Transaction]:
        transaction = self._db.transactions.get(transaction_id)
        if transaction is None or transaction.owner_id != owner_id:
            return None
        return transaction.model_copy(deep=True)

    async def update_transaction(self, transaction: Transaction) -> Transaction:
        stored = self._db.transactions.get(transaction.id)
        if stored is None or stored.owner_id != transaction.owner_id:
            raise NotFoundError(f"Transaction not found: {transaction.id}")
        self._db.transactions[transaction.id] = transaction.model_copy(deep=True)
        return transaction

    async def delete_transaction(self, owner_id: UUID, transaction_id: UUID) -> bool:
        stored = self._db.transactions.get(transaction_id)
        if stored is None or stored.owner_id != owner_id:
            return False
        del self._db.transactions[transaction_id]
        return True

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
        transactions = [
            t.model_copy(deep=True)
            for t in self._db.transactions.values()
            if _matches(t, owner_id, date_from, date_to, transaction_type, category)
        ]

        # Newest first
        transactions.sort(key=lambda t: (t.date, t.created_at), reverse=True)

        if limit is None:
            return transactions[offset:]
        return transactions[offset:offset + limit]

    async def count_transactions(
        self,
        owner_id: UUID,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        transaction_type: Optional[TransactionType] = None,
        category: Optional[str] = None,
    ) -> int:
        return sum(
            1 for t in self._db.transactions.values()
            if _matches(t, owner_id, date_from, date_to, transaction_type, category)
        )


class InMemoryBudgetStorage(BudgetStorageInterface):

    def __init__(self, db: Optional[InMemoryDatabase] = None):
        self._db = db or InMemoryDatabase()

    def _find_by_key(self, budget: Budget) -> Optional[Budget]:
        for stored in self._db.budgets.values():
            if stored.key == budget.key:
                return stored
        return None

    async def upsert_budget(self, budget: Budget) -> Budget:
        existing = self._find_by_key(budget)
        if existing is not None:
            updated = existing.model_copy(update={
                "amount": budget.amount,
                "color": budget.color,
                "updated_at": budget.updated_at,
            })
            self._db.budgets[existing.id] = updated
            return updated.model_copy(deep=True)

        if budget.id in self._db.budgets:
            raise DuplicateError(f"Budget already exists: {budget.id}")
        self._db.budgets[budget.id] = budget.model_copy(deep=True)
        return budget

    async def get_budget(self, owner_id: UUID, budget_id: UUID) -> Optional[Budget]:
        budget = self._db.budgets.get(budget_id)
        if budget is None or budget.owner_id != owner_id:
            return None
        return budget.model_copy(deep=True)

    async def list_budgets(self, owner_id: UUID, month: int, year: int) -> list[Budget]:
        budgets = [
            b.model_copy(deep=True)
            for b in self._db.budgets.values()
            if b.owner_id == owner_id and b.month == month and b.year == year
        ]
        budgets.sort(key=lambda b: b.category)
        return budgets

    async def delete_budget(self, owner_id: UUID, budget_id: UUID) -> bool:
        budget = self._db.budgets.get(budget_id)
        if budget is None or budget.owner_id != owner_id:
            return False
        del self._db.budgets[budget_id]
        return True


class InMemorySavingsGoalStorage(SavingsGoalStorageInterface):

    def __init__(self, db: Optional[InMemoryDatabase] = None):
        self._db = db or InMemoryDatabase()

    def _find(self, owner_id: UUID) -> Optional[SavingsGoal]:
        for goal in self._db.savings_goals.values():
            if goal.owner_id == owner_id:
                return goal
        return None

    async def get_goal(self, owner_id: UUID) -> Optional[SavingsGoal]:
        goal = self._find(owner_id)
        return goal.model_copy(deep=True) if goal else None

    async def upsert_goal(self, goal: SavingsGoal) -> SavingsGoal:
        existing = self._find(goal.owner_id)
        if existing is not None:
            replaced = goal.model_copy(update={
                "id": existing.id,
                "created_at": existing.created_at,
            })
            self._db.savings_goals[existing.id] = replaced
            return replaced.model_copy(deep=True)

        self._db.savings_goals[goal.id] = goal.model_copy(deep=True)
        return goal

    async def save_goal(self, goal: SavingsGoal) -> SavingsGoal:
        existing = self._find(goal.owner_id)
        if existing is None or existing.id != goal.id:
            raise NotFoundError(f"Savings goal not found for user: {goal.owner_id}")
        self._db.savings_goals[goal.id] = goal.model_copy(deep=True)
        return goal

    async def delete_goal(self, owner_id: UUID) -> bool:
        goal = self._find(owner_id)
        if goal is None:
            return False
        del self._db.savings_goals[goal.id]
        return True


class InMemoryAuditStorage(AuditStorageInterface):

    def __init__(self, db: Optional[InMemoryDatabase] = None):
        self._db = db or InMemoryDatabase()

    async def append_event(self, event: AuditEvent) -> bool:
        self._db.audit_log.append(event.model_copy(deep=True))
        return True

    async def get_events_for_user(
        self,
        user_id: UUID,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = [e for e in self._db.audit_log if e.user_id == user_id]
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
