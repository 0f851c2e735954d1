"""Services package."""

from spendlog.services.auth import AuthError, AuthService
from spendlog.services.storage import (
    AuditStorageInterface,
    BudgetStorageInterface,
    ConnectionError,
    DuplicateError,
    InMemoryDatabase,
    MongoStoreClient,
    NotFoundError,
    SavingsGoalStorageInterface,
    StorageError,
    TransactionStorageInterface,
    UserStorageInterface,
)

__all__ = [
    # Auth
    "AuthError",
    "AuthService",
    # Storage services
    "AuditStorageInterface",
    "BudgetStorageInterface",
    "ConnectionError",
    "DuplicateError",
    "InMemoryDatabase",
    "MongoStoreClient",
    "NotFoundError",
    "SavingsGoalStorageInterface",
    "StorageError",
    "TransactionStorageInterface",
    "UserStorageInterface",
]
