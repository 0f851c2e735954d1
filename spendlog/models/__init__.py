"""
Data Models Package

This package contains all Pydantic models used in Spend Log.
All data flowing through the system must conform to these schemas.
"""

from spendlog.models.finance import (
    AuthPayload,
    Budget,
    BudgetCreate,
    CamelModel,
    LoginRequest,
    RecurringType,
    SavingsGoal,
    SavingsGoalCreate,
    SavingsGoalUpdate,
    Transaction,
    TransactionCreate,
    TransactionPage,
    TransactionType,
    TransactionUpdate,
    User,
    UserCreate,
    UserProfile,
    UserRole,
    UserUpdate,
)
from spendlog.models.stats import (
    BudgetRecommendation,
    BudgetReport,
    BudgetSummary,
    BudgetUsage,
    CalendarDay,
    CalendarMonth,
    CategoryTotal,
    DailySpending,
    MonthlyStats,
    SavingsGoalStatus,
    SavingsProgressPoint,
)
from spendlog.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from spendlog.models.validation import ValidationIssue, ValidationResult

__all__ = [
    # Records
    "AuthPayload",
    "Budget",
    "BudgetCreate",
    "CamelModel",
    "LoginRequest",
    "RecurringType",
    "SavingsGoal",
    "SavingsGoalCreate",
    "SavingsGoalUpdate",
    "Transaction",
    "TransactionCreate",
    "TransactionPage",
    "TransactionType",
    "TransactionUpdate",
    "User",
    "UserCreate",
    "UserProfile",
    "UserRole",
    "UserUpdate",
    # Aggregation results
    "BudgetRecommendation",
    "BudgetReport",
    "BudgetSummary",
    "BudgetUsage",
    "CalendarDay",
    "CalendarMonth",
    "CategoryTotal",
    "DailySpending",
    "MonthlyStats",
    "SavingsGoalStatus",
    "SavingsProgressPoint",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
    # Validation
    "ValidationIssue",
    "ValidationResult",
]
