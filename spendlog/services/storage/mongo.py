"""
MongoDB Storage Implementation

MongoDB is the production record store. One collection per record kind:
users, transactions, budgets, savings_goals, audit_log.

Ids are stored as UUID strings in ``_id``; calendar dates are stored as
midnight datetimes so range queries work. Unique indexes back the
uniqueness rules of the storage interface, so an insert that loses a race
against a concurrent upsert surfaces as DuplicateError.

All driver calls go through motor and are awaited, so a slow query never
holds up the event loop.
"""

import re
from datetime import date, datetime, time
from typing import Any, Optional
from uuid import UUID

from motor.motor_asyncio import (
    AsyncIOMotorClient,
    AsyncIOMotorCollection,
    AsyncIOMotorDatabase,
)
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import DuplicateKeyError, PyMongoError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from spendlog.config import AppSettings, MongoSettings, get_settings
from spendlog.models.audit import AuditEvent, AuditEventType, AuditSeverity
from spendlog.models.finance import (
    Budget,
    RecurringType,
    SavingsGoal,
    Transaction,
    TransactionType,
    User,
    UserRole,
)
from spendlog.services.storage.interface import (
    AuditStorageInterface,
    BudgetStorageInterface,
    ConnectionError,
    DuplicateError,
    NotFoundError,
    SavingsGoalStorageInterface,
    StorageError,
    TransactionStorageInterface,
    UserStorageInterface,
)


USERS = "users"
TRANSACTIONS = "transactions"
BUDGETS = "budgets"
SAVINGS_GOALS = "savings_goals"
AUDIT_LOG = "audit_log"


def _to_datetime(value: date) -> datetime:
    return datetime.combine(value, time.min)


class MongoStoreClient:
    """
    Low-level MongoDB client wrapper.

    Handles connection setup (with retry) and index creation. A ready
    client can be passed in; otherwise one is created and pinged on first
    use.
    """

    def __init__(
        self,
        settings: Optional[MongoSettings] = None,
        client: Optional[AsyncIOMotorClient] = None,
    ):
        self._settings = settings or get_settings().mongo
        self._client = client
        self._db: Optional[AsyncIOMotorDatabase] = (
            client[self._settings.database_name] if client is not None else None
        )

    @retry(
        retry=retry_if_exception_type(ConnectionError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def connect(self) -> AsyncIOMotorDatabase:
        """Connect and ping the server once; later calls reuse the handle."""
        if self._db is None:
            client = AsyncIOMotorClient(
                self._settings.uri,
                serverSelectionTimeoutMS=self._settings.server_selection_timeout_ms,
            )
            try:
                await client.admin.command("ping")
            except PyMongoError as e:
                client.close()
                raise ConnectionError(f"Failed to connect to MongoDB: {e}") from e
            self._client = client
            self._db = client[self._settings.database_name]
        return self._db

    async def ensure_indexes(self) -> None:
        """Create the indexes every collection relies on."""
        db = await self.connect()
        try:
            await db[USERS].create_index("email", unique=True)
            await db[TRANSACTIONS].create_index([("owner_id", ASCENDING), ("date", DESCENDING)])
            await db[TRANSACTIONS].create_index([("owner_id", ASCENDING), ("type", ASCENDING)])
            await db[TRANSACTIONS].create_index([("owner_id", ASCENDING), ("category", ASCENDING)])
            await db[BUDGETS].create_index(
                [
                    ("owner_id", ASCENDING),
                    ("category", ASCENDING),
                    ("month", ASCENDING),
                    ("year", ASCENDING),
                ],
                unique=True,
            )
            await db[SAVINGS_GOALS].create_index("owner_id", unique=True)
            await db[AUDIT_LOG].create_index([("user_id", ASCENDING), ("timestamp", DESCENDING)])
        except PyMongoError as e:
            raise StorageError(f"Failed to create indexes: {e}") from e

    async def collection(self, name: str) -> AsyncIOMotorCollection:
        return (await self.connect())[name]

    async def ping(self) -> bool:
        try:
            db = await self.connect()
            await db.command("ping")
            return True
        except (PyMongoError, ConnectionError):
            return False

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
        self._client = None
        self._db = None


class MongoUserStorage(UserStorageInterface):
    """MongoDB implementation of user storage."""

    def __init__(
        self,
        client: Optional[MongoStoreClient] = None,
        settings: Optional[AppSettings] = None,
    ):
        self._client = client or MongoStoreClient()
        self._settings = settings or get_settings().app

    async def _users(self) -> AsyncIOMotorCollection:
        return await self._client.collection(USERS)

    def _user_to_doc(self, user: User) -> dict:
        return {
            "_id": str(user.id),
            "name": user.name,
            "email": user.email,
            "password_hash": user.password_hash,
            "currency": user.currency,
            "monthly_income": user.monthly_income,
            "role": user.role.value,
            "created_at": user.created_at,
        }

    def _doc_to_user(self, doc: dict) -> User:
        return User(
            id=UUID(doc["_id"]),
            name=doc["name"],
            email=doc["email"],
            password_hash=doc["password_hash"],
            currency=doc.get("currency", self._settings.default_currency),
            monthly_income=doc.get("monthly_income", 0.0),
            role=UserRole(doc.get("role", UserRole.USER.value)),
            created_at=doc["created_at"],
        )

    async def create_user(self, user: User) -> User:
        try:
            await (await self._users()).insert_one(self._user_to_doc(user))
            return user
        except DuplicateKeyError as e:
            raise DuplicateError(f"User already exists with email: {user.email}") from e
        except PyMongoError as e:
            raise StorageError(f"Failed to create user: {e}") from e

    async def get_user_by_id(self, user_id: UUID) -> Optional[User]:
        try:
            doc = await (await self._users()).find_one({"_id": str(user_id)})
        except PyMongoError as e:
            raise StorageError(f"Failed to get user: {e}") from e
        return self._doc_to_user(doc) if doc else None

    async def get_user_by_email(self, email: str) -> Optional[User]:
        try:
            doc = await (await self._users()).find_one({"email": email.lower()})
        except PyMongoError as e:
            raise StorageError(f"Failed to get user: {e}") from e
        return self._doc_to_user(doc) if doc else None

    async def update_user(self, user: User) -> User:
        doc = self._user_to_doc(user)
        doc.pop("_id")
        try:
            result = await (await self._users()).update_one({"_id": str(user.id)}, {"$set": doc})
        except DuplicateKeyError as e:
            raise DuplicateError(f"User already exists with email: {user.email}") from e
        except PyMongoError as e:
            raise StorageError(f"Failed to update user: {e}") from e
        if result.matched_count == 0:
            raise NotFoundError(f"User not found: {user.id}")
        return user


class MongoTransactionStorage(TransactionStorageInterface):
    """MongoDB implementation of transaction storage."""

    def __init__(self, client: Optional[MongoStoreClient] = None):
        self._client = client or MongoStoreClient()

    async def _transactions(self) -> AsyncIOMotorCollection:
        return await self._client.collection(TRANSACTIONS)

    def _transaction_to_doc(self, transaction: Transaction) -> dict:
        return {
            "_id": str(transaction.id),
            "owner_id": str(transaction.owner_id),
            "amount": transaction.amount,
            "type": transaction.type.value,
            "category": transaction.category,
            "description": transaction.description,
            "date": _to_datetime(transaction.date),
            "recurring": transaction.recurring,
            "recurring_type": transaction.recurring_type.value if transaction.recurring_type else None,
            "tags": list(transaction.tags),
            "created_at": transaction.created_at,
            "updated_at": transaction.updated_at,
        }

    def _doc_to_transaction(self, doc: dict) -> Transaction:
        recurring_type = doc.get("recurring_type")
        return Transaction(
            id=UUID(doc["_id"]),
            owner_id=UUID(doc["owner_id"]),
            amount=doc["amount"],
            type=TransactionType(doc["type"]),
            category=doc["category"],
            description=doc.get("description", ""),
            date=doc["date"].date(),
            recurring=doc.get("recurring", False),
            recurring_type=RecurringType(recurring_type) if recurring_type else None,
            tags=doc.get("tags", []),
            created_at=doc["created_at"],
            updated_at=doc["updated_at"],
        )

    def _build_query(
        self,
        owner_id: UUID,
        date_from: Optional[date],
        date_to: Optional[date],
        transaction_type: Optional[TransactionType],
        category: Optional[str],
    ) -> dict[str, Any]:
        query: dict[str, Any] = {"owner_id": str(owner_id)}

        date_range = {}
        if date_from:
            date_range["$gte"] = _to_datetime(date_from)
        if date_to:
            date_range["$lt"] = _to_datetime(date_to)
        if date_range:
            query["date"] = date_range

        if transaction_type:
            query["type"] = transaction_type.value
        if category:
            query["category"] = {"$regex": re.escape(category), "$options": "i"}
        return query

    async def save_transaction(self, transaction: Transaction) -> Transaction:
        try:
            await (await self._transactions()).insert_one(self._transaction_to_doc(transaction))
            return transaction
        except DuplicateKeyError as e:
            raise DuplicateError(f"Transaction already exists: {transaction.id}") from e
        except PyMongoError as e:
            raise StorageError(f"Failed to save transaction: {e}") from e

    async def get_transaction(
        self,
        owner_id: UUID,
        transaction_id: UUID,
    ) -> Optional[Transaction]:
        try:
            doc = await (await self._transactions()).find_one({
                "_id": str(transaction_id),
                "owner_id": str(owner_id),
            })
        except PyMongoError as e:
            raise StorageError(f"Failed to get transaction: {e}") from e
        return self._doc_to_transaction(doc) if doc else None

    async def update_transaction(self, transaction: Transaction) -> Transaction:
        doc = self._transaction_to_doc(transaction)
        doc.pop("_id")
        try:
            result = await (await self._transactions()).update_one(
                {"_id": str(transaction.id), "owner_id": str(transaction.owner_id)},
                {"$set": doc},
            )
        except PyMongoError as e:
            raise StorageError(f"Failed to update transaction: {e}") from e
        if result.matched_count == 0:
            raise NotFoundError(f"Transaction not found: {transaction.id}")
        return transaction

    async def delete_transaction(self, owner_id: UUID, transaction_id: UUID) -> bool:
        try:
            result = await (await self._transactions()).delete_one({
                "_id": str(transaction_id),
                "owner_id": str(owner_id),
            })
        except PyMongoError as e:
            raise StorageError(f"Failed to delete transaction: {e}") from e
        return result.deleted_count > 0

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
        query = self._build_query(owner_id, date_from, date_to, transaction_type, category)
        try:
            cursor = (
                (await self._transactions()).find(query)
                .sort([("date", DESCENDING), ("created_at", DESCENDING)])
                .skip(offset)
            )
            if limit is not None:
                cursor = cursor.limit(limit)
            docs = await cursor.to_list(length=None)
        except PyMongoError as e:
            raise StorageError(f"Failed to list transactions: {e}") from e
        return [self._doc_to_transaction(doc) for doc in docs]

    async def count_transactions(
        self,
        owner_id: UUID,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        transaction_type: Optional[TransactionType] = None,
        category: Optional[str] = None,
    ) -> int:
        query = self._build_query(owner_id, date_from, date_to, transaction_type, category)
        try:
            return await (await self._transactions()).count_documents(query)
        except PyMongoError as e:
            raise StorageError(f"Failed to count transactions: {e}") from e


class MongoBudgetStorage(BudgetStorageInterface):
    """MongoDB implementation of budget storage."""

    def __init__(
        self,
        client: Optional[MongoStoreClient] = None,
        settings: Optional[AppSettings] = None,
    ):
        self._client = client or MongoStoreClient()
        self._settings = settings or get_settings().app

    async def _budgets(self) -> AsyncIOMotorCollection:
        return await self._client.collection(BUDGETS)

    def _budget_to_doc(self, budget: Budget) -> dict:
        return {
            "_id": str(budget.id),
            "owner_id": str(budget.owner_id),
            "category": budget.category,
            "amount": budget.amount,
            "month": budget.month,
            "year": budget.year,
            "color": budget.color,
            "created_at": budget.created_at,
            "updated_at": budget.updated_at,
        }

    def _doc_to_budget(self, doc: dict) -> Budget:
        return Budget(
            id=UUID(doc["_id"]),
            owner_id=UUID(doc["owner_id"]),
            category=doc["category"],
            amount=doc["amount"],
            month=doc["month"],
            year=doc["year"],
            color=doc.get("color", self._settings.default_budget_color),
            created_at=doc["created_at"],
            updated_at=doc["updated_at"],
        )

    async def upsert_budget(self, budget: Budget) -> Budget:
        key = {
            "owner_id": str(budget.owner_id),
            "category": budget.category,
            "month": budget.month,
            "year": budget.year,
        }
        changes = {
            "amount": budget.amount,
            "color": budget.color,
            "updated_at": budget.updated_at,
        }
        try:
            budgets = await self._budgets()
            existing = await budgets.find_one(key)
            if existing is not None:
                await budgets.update_one({"_id": existing["_id"]}, {"$set": changes})
                existing.update(changes)
                return self._doc_to_budget(existing)

            await budgets.insert_one(self._budget_to_doc(budget))
            return budget
        except DuplicateKeyError as e:
            raise DuplicateError(
                "Budget already exists for this category and period"
            ) from e
        except PyMongoError as e:
            raise StorageError(f"Failed to set budget: {e}") from e

    async def get_budget(self, owner_id: UUID, budget_id: UUID) -> Optional[Budget]:
        try:
            doc = await (await self._budgets()).find_one({
                "_id": str(budget_id),
                "owner_id": str(owner_id),
            })
        except PyMongoError as e:
            raise StorageError(f"Failed to get budget: {e}") from e
        return self._doc_to_budget(doc) if doc else None

    async def list_budgets(self, owner_id: UUID, month: int, year: int) -> list[Budget]:
        try:
            cursor = (await self._budgets()).find({
                "owner_id": str(owner_id),
                "month": month,
                "year": year,
            }).sort("category", ASCENDING)
            docs = await cursor.to_list(length=None)
        except PyMongoError as e:
            raise StorageError(f"Failed to list budgets: {e}") from e
        return [self._doc_to_budget(doc) for doc in docs]

    async def delete_budget(self, owner_id: UUID, budget_id: UUID) -> bool:
        try:
            result = await (await self._budgets()).delete_one({
                "_id": str(budget_id),
                "owner_id": str(owner_id),
            })
        except PyMongoError as e:
            raise StorageError(f"Failed to delete budget: {e}") from e
        return result.deleted_count > 0


class MongoSavingsGoalStorage(SavingsGoalStorageInterface):
    """MongoDB implementation of savings goal storage."""

    def __init__(
        self,
        client: Optional[MongoStoreClient] = None,
        settings: Optional[AppSettings] = None,
    ):
        self._client = client or MongoStoreClient()
        self._settings = settings or get_settings().app

    async def _goals(self) -> AsyncIOMotorCollection:
        return await self._client.collection(SAVINGS_GOALS)

    def _goal_to_doc(self, goal: SavingsGoal) -> dict:
        return {
            "_id": str(goal.id),
            "owner_id": str(goal.owner_id),
            "goal_amount": goal.goal_amount,
            "current_amount": goal.current_amount,
            "target_date": _to_datetime(goal.target_date),
            "name": goal.name,
            "description": goal.description,
            "color": goal.color,
            "is_completed": goal.is_completed,
            "created_at": goal.created_at,
            "updated_at": goal.updated_at,
        }

    def _doc_to_goal(self, doc: dict) -> SavingsGoal:
        return SavingsGoal(
            id=UUID(doc["_id"]),
            owner_id=UUID(doc["owner_id"]),
            goal_amount=doc["goal_amount"],
            current_amount=doc.get("current_amount", 0.0),
            target_date=doc["target_date"].date(),
            name=doc["name"],
            description=doc.get("description", ""),
            color=doc.get("color", self._settings.default_goal_color),
            is_completed=doc.get("is_completed", False),
            created_at=doc["created_at"],
            updated_at=doc["updated_at"],
        )

    async def get_goal(self, owner_id: UUID) -> Optional[SavingsGoal]:
        try:
            doc = await (await self._goals()).find_one({"owner_id": str(owner_id)})
        except PyMongoError as e:
            raise StorageError(f"Failed to get savings goal: {e}") from e
        return self._doc_to_goal(doc) if doc else None

    async def upsert_goal(self, goal: SavingsGoal) -> SavingsGoal:
        try:
            goals = await self._goals()
            existing = await goals.find_one({"owner_id": str(goal.owner_id)})
            if existing is not None:
                replaced = goal.model_copy(update={
                    "id": UUID(existing["_id"]),
                    "created_at": existing["created_at"],
                })
                doc = self._goal_to_doc(replaced)
                doc.pop("_id")
                await goals.update_one({"_id": existing["_id"]}, {"$set": doc})
                return replaced

            await goals.insert_one(self._goal_to_doc(goal))
            return goal
        except DuplicateKeyError as e:
            raise DuplicateError("A savings goal already exists for this user") from e
        except PyMongoError as e:
            raise StorageError(f"Failed to set savings goal: {e}") from e

    async def save_goal(self, goal: SavingsGoal) -> SavingsGoal:
        doc = self._goal_to_doc(goal)
        doc.pop("_id")
        try:
            result = await (await self._goals()).update_one(
                {"_id": str(goal.id), "owner_id": str(goal.owner_id)},
                {"$set": doc},
            )
        except PyMongoError as e:
            raise StorageError(f"Failed to save savings goal: {e}") from e
        if result.matched_count == 0:
            raise NotFoundError(f"Savings goal not found for user: {goal.owner_id}")
        return goal

    async def delete_goal(self, owner_id: UUID) -> bool:
        try:
            result = await (await self._goals()).delete_one({"owner_id": str(owner_id)})
        except PyMongoError as e:
            raise StorageError(f"Failed to delete savings goal: {e}") from e
        return result.deleted_count > 0


class MongoAuditStorage(AuditStorageInterface):
    """
    MongoDB implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[MongoStoreClient] = None):
        self._client = client or MongoStoreClient()

    async def _events(self) -> AsyncIOMotorCollection:
        return await self._client.collection(AUDIT_LOG)

    def _event_to_doc(self, event: AuditEvent) -> dict:
        return {
            "_id": str(event.event_id),
            "timestamp": event.timestamp,
            "event_type": event.event_type.value,
            "severity": event.severity.value,
            "user_id": str(event.user_id) if event.user_id else None,
            "entity_type": event.entity_type,
            "entity_id": str(event.entity_id) if event.entity_id else None,
            "correlation_id": str(event.correlation_id) if event.correlation_id else None,
            "description": event.description,
            "details": event.details,
            "error_message": event.error_message,
        }

    def _doc_to_event(self, doc: dict) -> AuditEvent:
        return AuditEvent(
            event_id=UUID(doc["_id"]),
            timestamp=doc["timestamp"],
            event_type=AuditEventType(doc["event_type"]),
            severity=AuditSeverity(doc["severity"]),
            user_id=UUID(doc["user_id"]) if doc.get("user_id") else None,
            entity_type=doc.get("entity_type"),
            entity_id=UUID(doc["entity_id"]) if doc.get("entity_id") else None,
            correlation_id=UUID(doc["correlation_id"]) if doc.get("correlation_id") else None,
            description=doc["description"],
            details=doc.get("details") or {},
            error_message=doc.get("error_message"),
        )

    async def append_event(self, event: AuditEvent) -> bool:
        try:
            await (await self._events()).insert_one(self._event_to_doc(event))
            return True
        except PyMongoError as e:
            raise StorageError(f"Failed to write audit event: {e}") from e

    async def get_events_for_user(
        self,
        user_id: UUID,
        limit: int = 100,
    ) -> list[AuditEvent]:
        try:
            cursor = (
                (await self._events()).find({"user_id": str(user_id)})
                .sort("timestamp", DESCENDING)
                .limit(limit)
            )
            docs = await cursor.to_list(length=None)
        except PyMongoError as e:
            raise StorageError(f"Failed to read audit events: {e}") from e
        return [self._doc_to_event(doc) for doc in docs]
