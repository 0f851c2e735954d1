"""
Tests for the MongoDB storage backend.

The motor client is replaced by mongomock-motor, so the storages run their
real queries and indexes without a server.
"""

import pytest
from datetime import date, datetime, timedelta
from uuid import uuid4

from mongomock_motor import AsyncMongoMockClient
from pymongo.errors import DuplicateKeyError

from conftest import make_transaction
from spendlog.config import AppSettings, MongoSettings
from spendlog.models.audit import AuditEventBuilder
from spendlog.models.finance import Budget, SavingsGoal, TransactionType, User
from spendlog.services.storage import (
    DuplicateError,
    MongoAuditStorage,
    MongoBudgetStorage,
    MongoSavingsGoalStorage,
    MongoStoreClient,
    MongoTransactionStorage,
    MongoUserStorage,
    NotFoundError,
)


@pytest.fixture
def app_settings():
    return AppSettings(
        default_currency="$",
        default_budget_color="#123456",
        default_goal_color="#654321",
    )


@pytest.fixture
async def store():
    client = MongoStoreClient(
        MongoSettings(database_name="spend_log_test"),
        client=AsyncMongoMockClient(),
    )
    await client.ensure_indexes()
    yield client
    client.close()


class TestMongoUserStorage:

    async def test_create_and_lookup(self, store, app_settings):
        storage = MongoUserStorage(store, app_settings)
        user = User(name="Asha", email="asha@example.com", password_hash="x")
        await storage.create_user(user)

        assert (await storage.get_user_by_id(user.id)).name == "Asha"
        assert (await storage.get_user_by_email("Asha@Example.com")).id == user.id
        assert await storage.get_user_by_id(uuid4()) is None

    async def test_duplicate_email_rejected(self, store, app_settings):
        """Test that the unique email index surfaces as DuplicateError."""
        storage = MongoUserStorage(store, app_settings)
        await storage.create_user(User(name="A", email="a@example.com", password_hash="x"))

        with pytest.raises(DuplicateError):
            await storage.create_user(User(name="B", email="a@example.com", password_hash="y"))

    async def test_update_missing_user(self, store, app_settings):
        storage = MongoUserStorage(store, app_settings)
        with pytest.raises(NotFoundError):
            await storage.update_user(User(name="A", email="a@example.com", password_hash="x"))

    async def test_missing_currency_uses_configured_default(self, store, app_settings):
        user_id = uuid4()
        users = await store.collection("users")
        await users.insert_one({
            "_id": str(user_id),
            "name": "Old",
            "email": "old@example.com",
            "password_hash": "x",
            "created_at": datetime(2024, 1, 1),
        })

        user = await MongoUserStorage(store, app_settings).get_user_by_id(user_id)
        assert user.currency == "$"
        assert user.monthly_income == 0.0


class TestMongoTransactionStorage:

    async def test_date_round_trip(self, store, owner_id):
        storage = MongoTransactionStorage(store)
        transaction = make_transaction(owner_id, 40, on=date(2024, 2, 29), tags=["lunch"])
        await storage.save_transaction(transaction)

        fetched = await storage.get_transaction(owner_id, transaction.id)
        assert fetched.date == date(2024, 2, 29)
        assert fetched.type == TransactionType.EXPENSE
        assert fetched.tags == ["lunch"]

    async def test_save_same_id_twice(self, store, owner_id):
        storage = MongoTransactionStorage(store)
        transaction = make_transaction(owner_id, 40)
        await storage.save_transaction(transaction)

        with pytest.raises(DuplicateError):
            await storage.save_transaction(transaction)

    async def test_owner_scoping(self, store, owner_id):
        """Test that one user can never see or delete another user's rows."""
        storage = MongoTransactionStorage(store)
        transaction = make_transaction(owner_id, 40)
        await storage.save_transaction(transaction)
        intruder = uuid4()

        assert await storage.get_transaction(intruder, transaction.id) is None
        assert await storage.delete_transaction(intruder, transaction.id) is False
        assert await storage.list_transactions(intruder) == []
        with pytest.raises(NotFoundError):
            await storage.update_transaction(transaction.model_copy(update={"owner_id": intruder}))

        assert await storage.delete_transaction(owner_id, transaction.id) is True

    async def test_filters(self, store, owner_id):
        """Test the half-open date range, type and case-insensitive category match."""
        storage = MongoTransactionStorage(store)
        for transaction in [
            make_transaction(owner_id, 1, category="Food", on=date(2024, 1, 1)),
            make_transaction(owner_id, 2, category="Fast food", on=date(2024, 1, 15)),
            make_transaction(owner_id, 3, kind="income", category="Salary", on=date(2024, 1, 20)),
            make_transaction(owner_id, 4, category="Food", on=date(2024, 2, 1)),
            make_transaction(owner_id, 5, category="Rent (flat)", on=date(2024, 1, 5)),
        ]:
            await storage.save_transaction(transaction)

        january = await storage.list_transactions(
            owner_id, date_from=date(2024, 1, 1), date_to=date(2024, 2, 1)
        )
        assert sorted(t.amount for t in january) == [1, 2, 3, 5]

        food = await storage.list_transactions(owner_id, category="FOOD")
        assert sorted(t.amount for t in food) == [1, 2, 4]

        rent = await storage.list_transactions(owner_id, category="rent (")
        assert [t.amount for t in rent] == [5]

        expenses = await storage.count_transactions(
            owner_id,
            date_from=date(2024, 1, 1),
            date_to=date(2024, 2, 1),
            transaction_type=TransactionType.EXPENSE,
        )
        assert expenses == 3

    async def test_order_and_pagination(self, store, owner_id):
        """Test newest date first, then newest created_at within a day."""
        storage = MongoTransactionStorage(store)
        created = datetime(2024, 3, 1, 12, 0)
        for day in range(1, 6):
            await storage.save_transaction(make_transaction(
                owner_id, day, on=date(2024, 3, day), created_at=created,
            ))
        await storage.save_transaction(make_transaction(
            owner_id, 50, on=date(2024, 3, 5), created_at=created + timedelta(minutes=5),
        ))

        everything = await storage.list_transactions(owner_id)
        assert [t.amount for t in everything] == [50, 5, 4, 3, 2, 1]

        page = await storage.list_transactions(owner_id, limit=2, offset=2)
        assert [t.amount for t in page] == [4, 3]
        assert await storage.count_transactions(owner_id) == 6


class TestMongoBudgetStorage:

    async def test_upsert_keeps_one_row(self, store, owner_id, app_settings):
        storage = MongoBudgetStorage(store, app_settings)
        first = await storage.upsert_budget(
            Budget(owner_id=owner_id, category="Food", amount=100, month=1, year=2024)
        )
        second = await storage.upsert_budget(
            Budget(owner_id=owner_id, category="Food", amount=250, month=1, year=2024)
        )

        assert second.id == first.id
        budgets = await storage.list_budgets(owner_id, 1, 2024)
        assert [(b.id, b.amount) for b in budgets] == [(first.id, 250)]

    async def test_unique_key_index(self, store, owner_id, app_settings):
        """Test that a second row for the same key is refused by the index."""
        storage = MongoBudgetStorage(store, app_settings)
        budget = Budget(owner_id=owner_id, category="Food", amount=100, month=1, year=2024)
        await storage.upsert_budget(budget)

        budgets = await store.collection("budgets")
        clash = storage._budget_to_doc(budget.model_copy(update={"id": uuid4()}))
        with pytest.raises(DuplicateKeyError):
            await budgets.insert_one(clash)

    async def test_list_is_per_month_and_sorted(self, store, owner_id, app_settings):
        storage = MongoBudgetStorage(store, app_settings)
        for category, month in [("Rent", 1), ("Food", 1), ("Food", 2)]:
            await storage.upsert_budget(
                Budget(owner_id=owner_id, category=category, amount=10, month=month, year=2024)
            )

        budgets = await storage.list_budgets(owner_id, 1, 2024)
        assert [b.category for b in budgets] == ["Food", "Rent"]
        assert await storage.list_budgets(uuid4(), 1, 2024) == []

    async def test_missing_color_uses_configured_default(self, store, owner_id, app_settings):
        budget_id = uuid4()
        budgets = await store.collection("budgets")
        await budgets.insert_one({
            "_id": str(budget_id),
            "owner_id": str(owner_id),
            "category": "Food",
            "amount": 10.0,
            "month": 1,
            "year": 2024,
            "created_at": datetime(2024, 1, 1),
            "updated_at": datetime(2024, 1, 1),
        })

        budget = await MongoBudgetStorage(store, app_settings).get_budget(owner_id, budget_id)
        assert budget.color == "#123456"

    async def test_delete(self, store, owner_id, app_settings):
        storage = MongoBudgetStorage(store, app_settings)
        budget = await storage.upsert_budget(
            Budget(owner_id=owner_id, category="Food", amount=10, month=1, year=2024)
        )
        assert await storage.delete_budget(uuid4(), budget.id) is False
        assert await storage.delete_budget(owner_id, budget.id) is True
        assert await storage.get_budget(owner_id, budget.id) is None


class TestMongoSavingsGoalStorage:

    def goal(self, owner_id, amount=1000, **kwargs):
        return SavingsGoal(
            owner_id=owner_id,
            goal_amount=amount,
            target_date=date(2030, 6, 30),
            name="Trip",
            **kwargs,
        )

    async def test_upsert_keeps_id_and_created_at(self, store, owner_id, app_settings):
        storage = MongoSavingsGoalStorage(store, app_settings)
        await storage.upsert_goal(self.goal(owner_id, 1000))
        stored_first = await storage.get_goal(owner_id)

        replaced = await storage.upsert_goal(self.goal(owner_id, 5000))
        stored = await storage.get_goal(owner_id)

        assert replaced.id == stored_first.id
        assert stored.id == stored_first.id
        assert stored.created_at == stored_first.created_at
        assert stored.goal_amount == 5000
        assert stored.target_date == date(2030, 6, 30)

    async def test_save_and_delete(self, store, owner_id, app_settings):
        storage = MongoSavingsGoalStorage(store, app_settings)
        goal = await storage.upsert_goal(self.goal(owner_id))

        await storage.save_goal(goal.model_copy(update={"current_amount": 300.0}))
        assert (await storage.get_goal(owner_id)).current_amount == 300

        assert await storage.delete_goal(owner_id) is True
        assert await storage.delete_goal(owner_id) is False
        with pytest.raises(NotFoundError):
            await storage.save_goal(goal)

    async def test_missing_color_uses_configured_default(self, store, owner_id, app_settings):
        goals = await store.collection("savings_goals")
        await goals.insert_one({
            "_id": str(uuid4()),
            "owner_id": str(owner_id),
            "goal_amount": 1000.0,
            "target_date": datetime(2030, 1, 1),
            "name": "Trip",
            "created_at": datetime(2024, 1, 1),
            "updated_at": datetime(2024, 1, 1),
        })

        goal = await MongoSavingsGoalStorage(store, app_settings).get_goal(owner_id)
        assert goal.color == "#654321"
        assert goal.current_amount == 0.0


class TestMongoAuditStorage:

    async def test_events_newest_first(self, store):
        storage = MongoAuditStorage(store)
        user_id = uuid4()
        older = AuditEventBuilder.user_logged_in(user_id=user_id)
        older = older.model_copy(update={"timestamp": datetime(2024, 1, 1)})
        newer = AuditEventBuilder.user_logged_in(user_id=user_id)
        newer = newer.model_copy(update={"timestamp": datetime(2024, 1, 2)})
        await storage.append_event(older)
        await storage.append_event(newer)
        await storage.append_event(AuditEventBuilder.user_logged_in(user_id=uuid4()))

        events = await storage.get_events_for_user(user_id)
        assert [e.event_id for e in events] == [newer.event_id, older.event_id]
        assert len(await storage.get_events_for_user(user_id, limit=1)) == 1
