"""
Application Wiring for Spend Log

Builds every component from settings: storage backend, auth service,
validator, audit logger and the four resource controllers.

The API layer receives an AppComponents and never constructs storage
itself, so tests can hand it an in-memory set.
"""

from dataclasses import dataclass
from typing import Optional

import structlog

from spendlog.audit import AuditLogger
from spendlog.config import get_settings
from spendlog.controllers import (
    AuthController,
    BudgetController,
    SavingsController,
    TransactionController,
)
from spendlog.services.auth import AuthService
from spendlog.services.storage import (
    InMemoryAuditStorage,
    InMemoryBudgetStorage,
    InMemoryDatabase,
    InMemorySavingsGoalStorage,
    InMemoryTransactionStorage,
    InMemoryUserStorage,
    MongoAuditStorage,
    MongoBudgetStorage,
    MongoSavingsGoalStorage,
    MongoStoreClient,
    MongoTransactionStorage,
    MongoUserStorage,
    StorageError,
)
from spendlog.validation import TransactionValidator


logger = structlog.get_logger(__name__)


@dataclass
class AppComponents:
    """Everything a request handler needs."""

    auth: AuthController
    transactions: TransactionController
    budgets: BudgetController
    savings: SavingsController
    audit_logger: AuditLogger
    backend: str
    mongo_client: Optional[MongoStoreClient] = None
    memory_db: Optional[InMemoryDatabase] = None

    async def initialize(self) -> None:
        """Create storage indexes. Must run before serving requests."""
        if self.mongo_client is None:
            return
        try:
            await self.mongo_client.ensure_indexes()
        except StorageError as e:
            logger.error("storage_init_failed", backend=self.backend, error=str(e))
            self.mongo_client.close()
            raise

    async def is_healthy(self) -> bool:
        if self.mongo_client is not None:
            return await self.mongo_client.ping()
        return True

    def close(self) -> None:
        if self.mongo_client is not None:
            self.mongo_client.close()


def create_app_components(
    backend: Optional[str] = None,
    memory_db: Optional[InMemoryDatabase] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        backend: "mongo" or "memory". Defaults to STORAGE_BACKEND.
        memory_db: Shared in-memory database (memory backend only).
                   A fresh one is created if None.

    The Mongo client connects lazily; await AppComponents.initialize()
    before serving.
    """
    settings = get_settings()
    app_settings = settings.app
    backend = backend or app_settings.storage_backend

    mongo_client = None
    if backend == "mongo":
        mongo_client = MongoStoreClient(settings.mongo)
        user_storage = MongoUserStorage(mongo_client, app_settings)
        transaction_storage = MongoTransactionStorage(mongo_client)
        budget_storage = MongoBudgetStorage(mongo_client, app_settings)
        goal_storage = MongoSavingsGoalStorage(mongo_client, app_settings)
        audit_storage = MongoAuditStorage(mongo_client)
    else:
        memory_db = memory_db or InMemoryDatabase()
        user_storage = InMemoryUserStorage(memory_db)
        transaction_storage = InMemoryTransactionStorage(memory_db)
        budget_storage = InMemoryBudgetStorage(memory_db)
        goal_storage = InMemorySavingsGoalStorage(memory_db)
        audit_storage = InMemoryAuditStorage(memory_db)

    audit_logger = AuditLogger(audit_storage)
    auth_service = AuthService(settings.auth)

    logger.info("components_created", backend=backend)

    return AppComponents(
        auth=AuthController(
            user_storage,
            auth_service,
            audit_logger=audit_logger,
            settings=app_settings,
        ),
        transactions=TransactionController(
            transaction_storage,
            validator=TransactionValidator(app_settings),
            audit_logger=audit_logger,
        ),
        budgets=BudgetController(
            budget_storage,
            transaction_storage,
            audit_logger=audit_logger,
            settings=app_settings,
        ),
        savings=SavingsController(
            goal_storage,
            transaction_storage,
            audit_logger=audit_logger,
            settings=app_settings,
        ),
        audit_logger=audit_logger,
        backend=backend,
        mongo_client=mongo_client,
        memory_db=memory_db,
    )
