"""
Tests for the in-memory storage backend.

Async tests run under pytest-asyncio (asyncio_mode = "auto").
"""

import pytest
from datetime import date, datetime
from uuid import uuid4

from conftest import make_transaction
from spendlog.models.audit import AuditEventBuilder
from spendlog.models.finance import Budget, SavingsGoal, TransactionType, User
from spendlog.services.storage import (
    DuplicateError,
    InMemoryAuditStorage,
    InMemoryBudgetStorage,
    InMemoryDatabase,
    InMemorySavingsGoalStorage,
    InMemoryTransactionStorage,
    InMemoryUserStorage,
    NotFoundError,
)


@pytest.fixture
def db():
    return InMemoryDatabase()


class TestUserStorage:
    """Tests for InMemoryUserStorage."""

    async def test_create_and_lookup(self, db):
        storage = InMemoryUserStorage(db)
        user = User(name="Asha", email="asha@example.com", password_hash="x")
        await storage.create_user(user)

        assert (await storage.get_user_by_id(user.id)).email == "asha@example.com"
        assert (await storage.get_user_by_email("ASHA@example.com")).id == user.id
        assert await storage.get_user_by_email("other@example.com") is None

    async def test_duplicate_email_rejected(self, db):
        """Test that two users cannot share an email."""
        storage = InMemoryUserStorage(db)
        await storage.create_user(User(name="A", email="a@example.com", password_hash="x"))

        with pytest.raises(DuplicateError):
            await storage.create_user(User(name="B", email="a@example.com", password_hash="y"))

    async def test_update_to_taken_email_rejected(self, db):
        storage = InMemoryUserStorage(db)
        await storage.create_user(User(name="A", email="a@example.com", password_hash="x"))
        other = User(name="B", email="b@example.com", password_hash="y")
        await storage.create_user(other)

        with pytest.raises(DuplicateError):
            await storage.update_user(other.model_copy(update={"email": "a@example.com"}))

    async def test_update_missing_user(self, db):
        storage = InMemoryUserStorage(db)
        with pytest.raises(NotFoundError):
            await storage.update_user(User(name="A", email="a@example.com", password_hash="x"))


class TestTransactionStorage:
    """Tests for InMemoryTransactionStorage."""

    async def test_owner_scoping(self, db):
        """Test that one user can never see or delete another user's rows."""
        storage = InMemoryTransactionStorage(db)
        owner, intruder = uuid4(), uuid4()
        transaction = make_transaction(owner, 10)
        await storage.save_transaction(transaction)

        assert await storage.get_transaction(intruder, transaction.id) is None
        assert await storage.list_transactions(intruder) == []
        assert await storage.delete_transaction(intruder, transaction.id) is False
        assert await storage.get_transaction(owner, transaction.id) is not None

    async def test_update_by_other_owner_fails(self, db):
        storage = InMemoryTransactionStorage(db)
        transaction = make_transaction(uuid4(), 10)
        await storage.save_transaction(transaction)

        with pytest.raises(NotFoundError):
            await storage.update_transaction(transaction.model_copy(update={"owner_id": uuid4()}))

    async def test_filters_and_ordering(self, db):
        """Test date window, type and category filters with newest-first order."""
        storage = InMemoryTransactionStorage(db)
        owner = uuid4()
        for transaction in [
            make_transaction(owner, 10, category="Food", on=date(2024, 1, 5)),
            make_transaction(owner, 20, category="Fast food", on=date(2024, 1, 20)),
            make_transaction(owner, 30, category="Rent", on=date(2024, 2, 1)),
            make_transaction(owner, 500, kind="income", category="Salary", on=date(2024, 1, 1)),
        ]:
            await storage.save_transaction(transaction)

        january = await storage.list_transactions(
            owner,
            date_from=date(2024, 1, 1),
            date_to=date(2024, 2, 1),
        )
        assert [t.amount for t in january] == [20, 10, 500]

        food = await storage.list_transactions(owner, category="FOOD")
        assert sorted(t.amount for t in food) == [10, 20]

        income = await storage.list_transactions(owner, transaction_type=TransactionType.INCOME)
        assert [t.category for t in income] == ["Salary"]

        assert await storage.count_transactions(owner, category="food") == 2

    async def test_pagination(self, db):
        storage = InMemoryTransactionStorage(db)
        owner = uuid4()
        for day in range(1, 6):
            await storage.save_transaction(make_transaction(owner, day, on=date(2024, 1, day)))

        page = await storage.list_transactions(owner, limit=2, offset=2)
        assert [t.amount for t in page] == [3, 2]
        assert await storage.count_transactions(owner) == 5

    async def test_returned_records_are_copies(self, db):
        """Test that mutating a returned record does not change storage."""
        storage = InMemoryTransactionStorage(db)
        owner = uuid4()
        transaction = make_transaction(owner, 10)
        await storage.save_transaction(transaction)

        fetched = await storage.get_transaction(owner, transaction.id)
        fetched.amount = 999
        assert (await storage.get_transaction(owner, transaction.id)).amount == 10


class TestBudgetStorage:
    """Tests for InMemoryBudgetStorage."""

    async def test_upsert_keeps_one_row_per_key(self, db):
        """Test that setting a budget twice updates the existing row."""
        storage = InMemoryBudgetStorage(db)
        owner = uuid4()
        first = await storage.upsert_budget(
            Budget(owner_id=owner, category="Food", amount=100, month=1, year=2024)
        )
        second = await storage.upsert_budget(
            Budget(owner_id=owner, category="Food", amount=250, month=1, year=2024)
        )

        budgets = await storage.list_budgets(owner, 1, 2024)
        assert len(budgets) == 1
        assert budgets[0].amount == 250
        assert second.id == first.id
        assert second.created_at == first.created_at

    async def test_different_months_are_separate(self, db):
        storage = InMemoryBudgetStorage(db)
        owner = uuid4()
        await storage.upsert_budget(Budget(owner_id=owner, category="Food", amount=1, month=1, year=2024))
        await storage.upsert_budget(Budget(owner_id=owner, category="Food", amount=2, month=2, year=2024))

        assert len(await storage.list_budgets(owner, 1, 2024)) == 1
        assert len(await storage.list_budgets(owner, 2, 2024)) == 1

    async def test_delete_is_owner_scoped(self, db):
        storage = InMemoryBudgetStorage(db)
        owner = uuid4()
        budget = await storage.upsert_budget(
            Budget(owner_id=owner, category="Food", amount=1, month=1, year=2024)
        )

        assert await storage.delete_budget(uuid4(), budget.id) is False
        assert await storage.get_budget(owner, budget.id) is not None
        assert await storage.delete_budget(owner, budget.id) is True
        assert await storage.get_budget(owner, budget.id) is None


class TestSavingsGoalStorage:
    """Tests for InMemorySavingsGoalStorage."""

    def goal(self, owner, amount=1000.0):
        return SavingsGoal(
            owner_id=owner,
            goal_amount=amount,
            target_date=date(2030, 1, 1),
            name="Trip",
        )

    async def test_upsert_replaces_and_keeps_identity(self, db):
        """Test that each user has at most one goal and it keeps its id."""
        storage = InMemorySavingsGoalStorage(db)
        owner = uuid4()
        first = await storage.upsert_goal(self.goal(owner, 1000))
        second = await storage.upsert_goal(self.goal(owner, 5000))

        stored = await storage.get_goal(owner)
        assert stored.goal_amount == 5000
        assert second.id == first.id
        assert second.created_at == first.created_at
        assert len(db.savings_goals) == 1

    async def test_save_requires_existing_goal(self, db):
        storage = InMemorySavingsGoalStorage(db)
        with pytest.raises(NotFoundError):
            await storage.save_goal(self.goal(uuid4()))

    async def test_delete(self, db):
        storage = InMemorySavingsGoalStorage(db)
        owner = uuid4()
        await storage.upsert_goal(self.goal(owner))

        assert await storage.delete_goal(owner) is True
        assert await storage.delete_goal(owner) is False
        assert await storage.get_goal(owner) is None


class TestAuditStorage:

    async def test_events_newest_first(self, db):
        storage = InMemoryAuditStorage(db)
        user_id = uuid4()
        older = AuditEventBuilder.user_logged_in(user_id=user_id)
        older = older.model_copy(update={"timestamp": datetime(2024, 1, 1)})
        newer = AuditEventBuilder.user_logged_in(user_id=user_id)
        await storage.append_event(older)
        await storage.append_event(newer)
        await storage.append_event(AuditEventBuilder.user_logged_in(user_id=uuid4()))

        events = await storage.get_events_for_user(user_id)
        assert [e.event_id for e in events] == [newer.event_id, older.event_id]
