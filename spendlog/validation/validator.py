"""
Two-Stage Transaction Validation

STAGE 1 - SCHEMA VALIDATION:
- Types, required fields, bounds and formats
- Done by the pydantic input models before anything reaches this module

STAGE 2 - SEMANTIC VALIDATION:
- Amounts beyond any plausible personal transaction
- Dates too far in the future
- Recurrence settings that contradict each other

Validation never silently fixes a record. Errors reject the write;
warnings are returned to the caller to log.
"""

from datetime import date, timedelta
from typing import Optional, Union

from spendlog.config import AppSettings, get_settings
from spendlog.models.finance import Transaction, TransactionCreate
from spendlog.models.validation import ValidationIssue, ValidationResult


class ValidationFailedError(Exception):
    """A record failed semantic validation."""

    def __init__(self, result: ValidationResult, message: str = "Validation failed"):
        super().__init__(message)
        self.result = result
        self.message = message

    @property
    def errors(self) -> list[dict]:
        """Error-level issues as plain dicts, for the response envelope."""
        return [
            {"field": issue.field, "type": issue.issue_type, "message": issue.message}
            for issue in self.result.issues
            if issue.severity == "error"
        ]


class TransactionValidator:
    """Semantic checks applied to a transaction before it is stored."""

    def __init__(self, settings: Optional[AppSettings] = None):
        self._settings = settings or get_settings().app

    def validate(
        self,
        transaction: Union[TransactionCreate, Transaction],
        today: Optional[date] = None,
    ) -> ValidationResult:
        """
        Run the semantic checks.

        Args:
            transaction: A new transaction, or an existing one with an
                update already merged in
            today: Reference date for the future-date check

        Returns:
            ValidationResult with all issues found
        """
        issues = []
        today = today or date.today()

        max_amount = self._settings.max_transaction_amount
        if transaction.amount > max_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount ({transaction.amount:,.2f}) exceeds the maximum of {max_amount:,.2f}",
                severity="error",
            ))

        max_future_date = today + timedelta(days=self._settings.future_date_tolerance_days)
        if transaction.date > max_future_date:
            issues.append(ValidationIssue(
                field="date",
                issue_type="future_date",
                message=f"Date ({transaction.date}) is too far in the future",
                severity="error",
            ))

        if transaction.recurring_type is not None and not transaction.recurring:
            issues.append(ValidationIssue(
                field="recurringType",
                issue_type="inconsistent",
                message="Recurring type is set but the transaction is not recurring",
                severity="error",
            ))
        elif transaction.recurring and transaction.recurring_type is None:
            issues.append(ValidationIssue(
                field="recurringType",
                issue_type="missing",
                message="Recurring transaction has no recurring type",
                severity="warning",
            ))

        return ValidationResult(issues=issues)

    def check(
        self,
        transaction: Union[TransactionCreate, Transaction],
        today: Optional[date] = None,
    ) -> ValidationResult:
        """
        Validate and raise on any error-level issue.

        Raises:
            ValidationFailedError: If the transaction has errors
        """
        result = self.validate(transaction, today=today)
        if result.has_errors:
            raise ValidationFailedError(result)
        return result
