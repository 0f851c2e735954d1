"""Validation package."""

from spendlog.validation.validator import TransactionValidator, ValidationFailedError

__all__ = ["TransactionValidator", "ValidationFailedError"]
