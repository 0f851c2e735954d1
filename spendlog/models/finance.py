"""
Core Data Models for Spend Log

These models define the strict schemas for every record the API accepts
or stores. They are designed to:
1. Enforce field bounds at the edge (schema validation stage)
2. Provide clear validation error messages
3. Be serializable for storage and JSON responses

Wire format is camelCase (``ownerId``, ``recurringType``); request bodies
may use either camelCase or snake_case.
"""

import math
from datetime import date, datetime
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    field_validator,
)
from pydantic.alias_generators import to_camel


# Alias for annotating fields that are themselves named ``date``
CalendarDate = date


class CamelModel(BaseModel):
    """Base for every model that crosses the HTTP boundary."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    def to_response(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Direction of money flow."""
    INCOME = "income"
    EXPENSE = "expense"


class RecurringType(str, Enum):
    """How often a recurring transaction repeats."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


# =============================================================================
# TRANSACTIONS
# =============================================================================

class TransactionBase(CamelModel):
    """Fields shared by transaction input and stored transactions."""

    amount: float = Field(
        ...,
        gt=0,
        description="Transaction amount, always positive"
    )
    type: TransactionType = Field(
        ...,
        description="income or expense"
    )
    category: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Free-text category (e.g., Food, Salary)"
    )
    description: str = Field(
        default="",
        max_length=200,
        description="Optional description"
    )
    recurring: bool = Field(default=False)
    recurring_type: Optional[RecurringType] = Field(default=None)
    tags: list[str] = Field(default_factory=list)
    date: CalendarDate = Field(
        default_factory=date.today,
        description="Day the transaction happened"
    )

    @field_validator('type', mode='before')
    @classmethod
    def lowercase_type(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator('tags')
    @classmethod
    def clean_tags(cls, v: list[str]) -> list[str]:
        """Trim tags and drop empty ones."""
        return [tag.strip() for tag in v if tag and tag.strip()]


class TransactionCreate(TransactionBase):
    """Body of POST /api/transactions."""


class TransactionUpdate(CamelModel):
    """
    Body of PUT /api/transactions/{id}.

    Only supplied fields are changed.
    """

    amount: Optional[float] = Field(default=None, gt=0)
    type: Optional[TransactionType] = None
    category: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=200)
    recurring: Optional[bool] = None
    recurring_type: Optional[RecurringType] = None
    tags: Optional[list[str]] = None
    date: Optional[CalendarDate] = None

    @field_validator('type', mode='before')
    @classmethod
    def lowercase_type(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v


class Transaction(TransactionBase):
    """
    A stored transaction.

    Owned by exactly one user; every query filters by owner_id.
    """

    id: UUID = Field(default_factory=uuid4)
    owner_id: UUID
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    def apply_update(self, update: TransactionUpdate) -> "Transaction":
        """Return a copy with the supplied fields changed (re-validated)."""
        changes = update.model_dump(exclude_unset=True)
        merged = self.model_dump()
        merged.update(changes)
        merged["updated_at"] = datetime.utcnow()
        return Transaction.model_validate(merged)


class TransactionPage(CamelModel):
    """One page of a filtered transaction list."""

    transactions: list[Transaction] = Field(default_factory=list)
    total: int = Field(default=0, ge=0, description="Matches across all pages")
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=50, ge=1)

    @property
    def count(self) -> int:
        return len(self.transactions)

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit)


# =============================================================================
# BUDGETS
# =============================================================================

class BudgetCreate(CamelModel):
    """
    Body of POST /api/budgets.

    (owner, category, month, year) is unique: posting again updates.
    """

    category: str = Field(..., min_length=1, max_length=100)
    amount: float = Field(..., ge=0, description="Budgeted amount for the month")
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=2020, le=2030)
    color: Optional[str] = Field(default=None, max_length=20)


class Budget(CamelModel):
    """A stored monthly category budget."""

    id: UUID = Field(default_factory=uuid4)
    owner_id: UUID
    category: str = Field(..., min_length=1, max_length=100)
    amount: float = Field(..., ge=0)
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=2020, le=2030)
    color: str = Field(default="#667eea", max_length=20)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def key(self) -> tuple:
        """The uniqueness key enforced by storage."""
        return (self.owner_id, self.category, self.month, self.year)


# =============================================================================
# SAVINGS GOAL
# =============================================================================

class SavingsGoalCreate(CamelModel):
    """Body of POST /api/savings. Replaces any existing goal."""

    goal_amount: float = Field(..., gt=0)
    target_date: date
    name: str = Field(..., min_length=1, max_length=100)
    description: str = Field(default="", max_length=500)
    color: Optional[str] = Field(default=None, max_length=20)


class SavingsGoalUpdate(CamelModel):
    """
    Body of PUT /api/savings.

    This is the only path where a client may set current_amount directly.
    """

    goal_amount: Optional[float] = Field(default=None, gt=0)
    target_date: Optional[date] = None
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    color: Optional[str] = Field(default=None, max_length=20)
    current_amount: Optional[float] = Field(default=None, ge=0)


class SavingsGoal(CamelModel):
    """
    The single savings goal of a user.

    is_completed is a latch: once set it is never cleared by a recompute.
    """

    id: UUID = Field(default_factory=uuid4)
    owner_id: UUID
    goal_amount: float = Field(..., gt=0)
    current_amount: float = Field(default=0.0, ge=0)
    target_date: date
    name: str = Field(..., min_length=1, max_length=100)
    description: str = Field(default="", max_length=500)
    color: str = Field(default="#10B981", max_length=20)
    is_completed: bool = False
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


# =============================================================================
# USERS
# =============================================================================

MAX_PASSWORD_BYTES = 72


def check_password_bytes(password: str) -> str:
    """bcrypt only accepts 72 bytes; multi-byte characters count in full."""
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password cannot be longer than {MAX_PASSWORD_BYTES} bytes")
    return password


class UserCreate(CamelModel):
    """Body of POST /api/auth/register."""

    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=72)
    currency: Optional[str] = Field(default=None, max_length=5)
    monthly_income: Optional[float] = Field(default=None, ge=0)

    @field_validator('email')
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.lower()

    @field_validator('password')
    @classmethod
    def password_fits_bcrypt(cls, v: str) -> str:
        return check_password_bytes(v)


class UserUpdate(CamelModel):
    """Body of PUT /api/auth/profile."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(default=None, min_length=6, max_length=72)
    currency: Optional[str] = Field(default=None, max_length=5)
    monthly_income: Optional[float] = Field(default=None, ge=0)

    @field_validator('email')
    @classmethod
    def lowercase_email(cls, v: Optional[str]) -> Optional[str]:
        return v.lower() if v else v

    @field_validator('password')
    @classmethod
    def password_fits_bcrypt(cls, v: Optional[str]) -> Optional[str]:
        return check_password_bytes(v) if v is not None else v


class LoginRequest(CamelModel):
    """Body of POST /api/auth/login."""

    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator('email')
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.lower()


class User(CamelModel):
    """
    A stored user.

    password_hash never leaves the server; use UserProfile for responses.
    """

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(..., min_length=1, max_length=100)
    email: str
    password_hash: str
    currency: str = Field(default="₹", max_length=5)
    monthly_income: float = Field(default=0.0, ge=0)
    role: UserRole = UserRole.USER
    created_at: datetime = Field(default_factory=datetime.utcnow)


class UserProfile(CamelModel):
    """Public view of a user."""

    id: UUID
    name: str
    email: str
    role: UserRole
    currency: str
    monthly_income: float

    @classmethod
    def from_user(cls, user: User) -> "UserProfile":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            role=user.role,
            currency=user.currency,
            monthly_income=user.monthly_income,
        )


class AuthPayload(UserProfile):
    """Returned by register, login and profile update."""

    token: str
