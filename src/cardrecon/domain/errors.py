"""Shared domain error messages and error types."""

from decimal import Decimal


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling. ``status_code`` follows the
    HTTP convention callers map the category to.
    """

    status_code = 400


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested domain entity or path does not exist."""

    status_code = 404


class ConflictError(DomainError):
    """Domain conflict, such as uniqueness violations."""

    status_code = 409


class UnprocessableError(DomainError):
    """Well-formed request that cannot be applied to the current state."""

    status_code = 422


class ToleranceExceededError(UnprocessableError):
    """Amount difference beyond the reject threshold without force."""

    def __init__(self, message: str, difference: Decimal, difference_percent: Decimal):
        super().__init__(message)
        self.difference = difference
        self.difference_percent = difference_percent


class InvariantViolationError(DomainError):
    """Persisted reconciliation state contradicts itself.

    Signals data corruption or a programming error. Never repaired
    automatically.
    """

    status_code = 500


def account_not_found(account_id: int) -> str:
    """Return message for missing account."""
    return f"Account {account_id} not found"


def category_not_found(category_id: int) -> str:
    """Return message for missing category by ID."""
    return f"Category {category_id} not found"


def category_path_not_found(path: str) -> str:
    """Return message for missing category by path."""
    return f"Category '{path}' not found"


def bill_not_found(bill_id: int) -> str:
    """Return message for a missing bill payment."""
    return f"Bill payment {bill_id} not found"


def billing_cycle_not_found(cycle_key: str) -> str:
    """Return message for a missing billing cycle."""
    return f"Billing cycle {cycle_key} not found"


def bill_already_expanded(bill_id: int) -> str:
    """Return message when a bill already backs a billing cycle."""
    return f"Bill payment {bill_id} is already linked to a billing cycle"


def cycle_already_linked(cycle_key: str) -> str:
    """Return message when a billing cycle already has a bill."""
    return f"Billing cycle {cycle_key} is already linked to a bill payment"


def bill_not_expanded(bill_id: int) -> str:
    """Return message when collapsing a bill that was never expanded."""
    return f"Bill payment {bill_id} has not been expanded"


def tolerance_exceeded(
    cycle_key: str, bill_id: int, difference: Decimal, difference_percent: Decimal
) -> str:
    """Return message for an amount mismatch beyond the reject threshold."""
    return (
        f"Billing cycle {cycle_key} differs from bill payment {bill_id} by "
        f"{difference} ({difference_percent}%), above the tolerance. "
        "Use force to link anyway."
    )
