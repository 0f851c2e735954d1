"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
MongoDB is the production backend; the in-memory backend serves tests and
local runs.
"""

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
from spendlog.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryBudgetStorage,
    InMemoryDatabase,
    InMemorySavingsGoalStorage,
    InMemoryTransactionStorage,
    InMemoryUserStorage,
)
from spendlog.services.storage.mongo import (
    MongoAuditStorage,
    MongoBudgetStorage,
    MongoSavingsGoalStorage,
    MongoStoreClient,
    MongoTransactionStorage,
    MongoUserStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "BudgetStorageInterface",
    "SavingsGoalStorageInterface",
    "TransactionStorageInterface",
    "UserStorageInterface",
    # Exceptions
    "ConnectionError",
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryBudgetStorage",
    "InMemoryDatabase",
    "InMemorySavingsGoalStorage",
    "InMemoryTransactionStorage",
    "InMemoryUserStorage",
    # MongoDB implementation
    "MongoAuditStorage",
    "MongoBudgetStorage",
    "MongoSavingsGoalStorage",
    "MongoStoreClient",
    "MongoTransactionStorage",
    "MongoUserStorage",
]
