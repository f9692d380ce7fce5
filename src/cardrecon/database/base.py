"""Abstract database interface."""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import Optional, Sequence
from datetime import date
from decimal import Decimal

# Import entities directly to avoid circular import through domain/__init__.py
from cardrecon.domain.entities import (
    Account,
    BillingCycle,
    Category,
    CreditCardLineItem,
    CycleStatus,
    CycleTotals,
    Link,
    PotentialMatch,
    Transaction,
    TransactionType,
)


class Database(ABC):
    """Abstract database interface for cardrecon."""

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    @abstractmethod
    def unit_of_work(self) -> AbstractContextManager[None]:
        """Group writes into one transaction.

        Commits when the block exits normally and rolls back every write made
        inside it when the block raises. Nested units join the outermost one.
        """
        pass

    # Account operations
    @abstractmethod
    def create_account(self, name: str, bank_name: str) -> int:
        """Create a new account. Returns account ID."""
        pass

    @abstractmethod
    def get_account(self, account_id: int) -> Optional[Account]:
        """Get account by ID."""
        pass

    @abstractmethod
    def get_account_by_name(self, name: str) -> Optional[Account]:
        """Get account by name."""
        pass

    @abstractmethod
    def list_accounts(self) -> list[Account]:
        """List all accounts."""
        pass

    # Category operations
    @abstractmethod
    def create_category(self, name: str, parent_id: Optional[int] = None) -> int:
        """Create a category. Returns category ID."""
        pass

    @abstractmethod
    def get_category(self, category_id: int) -> Optional[Category]:
        """Get category by ID."""
        pass

    @abstractmethod
    def get_category_by_path(self, path: str) -> Optional[Category]:
        """Get category by path (e.g., 'Housing > Credit Card')."""
        pass

    @abstractmethod
    def list_categories(self, parent_id: Optional[int] = None) -> list[Category]:
        """List categories, optionally filtered by parent."""
        pass

    # Transaction operations
    @abstractmethod
    def create_transaction(
        self,
        unique_id: str,
        account_id: int,
        date: date,
        amount: Decimal,
        transaction_type: TransactionType = TransactionType.EXPENSE,
        description: Optional[str] = None,
        category_id: Optional[int] = None,
        notes: Optional[str] = None,
        is_credit_card_payment: bool = False,
        is_hidden: bool = False,
        original_amount: Optional[Decimal] = None,
        billing_cycle: Optional[str] = None,
        credit_card_payment_id: Optional[int] = None,
        installment_current: Optional[int] = None,
        installment_total: Optional[int] = None,
    ) -> int:
        """Create a transaction. Returns transaction ID."""
        pass

    @abstractmethod
    def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        """Get transaction by ID."""
        pass

    @abstractmethod
    def transaction_exists(self, account_id: int, unique_id: str) -> bool:
        """Check if a transaction with given unique_id exists for account."""
        pass

    @abstractmethod
    def list_transactions(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        account_id: Optional[int] = None,
        category_id: Optional[int] = None,
        billing_cycle: Optional[str] = None,
        credit_card_payment_id: Optional[int] = None,
        include_hidden: bool = False,
    ) -> list[Transaction]:
        """List transactions with optional filters, newest first.

        Args:
            start_date: Optional start date filter
            end_date: Optional end date filter
            account_id: Optional account ID filter
            category_id: Optional category ID filter
            billing_cycle: Only itemized rows of this cycle key
            credit_card_payment_id: Only itemized rows of this bill
            include_hidden: If True, include hidden rows (zeroed bills, markers)
        """
        pass

    # Aggregate bill operations
    @abstractmethod
    def list_bill_payments(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        include_expanded: bool = False,
    ) -> list[Transaction]:
        """List aggregate bill payments, newest first.

        Without include_expanded only visible, not yet expanded bills with a
        positive amount are returned.
        """
        pass

    @abstractmethod
    def mark_bill_expanded(self, bill_id: int, linked_transaction_count: int) -> None:
        """Zero and hide a bill, keeping its amount in original_amount.

        Raises:
            ConflictError: If the bill is already expanded
        """
        pass

    @abstractmethod
    def restore_bill(self, bill_id: int) -> Decimal:
        """Restore an expanded bill's amount and visibility. Returns the amount.

        Raises:
            InvariantViolationError: If the bill is not expanded
        """
        pass

    # Itemized transaction operations
    @abstractmethod
    def count_itemized_transactions(self, bill_id: int) -> int:
        """Count itemized rows referencing a bill, hidden ones included."""
        pass

    @abstractmethod
    def sum_itemized_amount(self, bill_id: int) -> Decimal:
        """Sum the amount of non-hidden itemized rows referencing a bill."""
        pass

    @abstractmethod
    def delete_itemized_transactions(self, bill_id: int) -> int:
        """Delete every itemized row referencing a bill. Returns the count."""
        pass

    # Billing cycle operations
    @abstractmethod
    def create_billing_cycle(
        self, account_id: int, totals: CycleTotals, lines: Sequence[CreditCardLineItem]
    ) -> int:
        """Create a pending billing cycle with its statement lines. Returns cycle ID.

        Raises:
            ConflictError: If the account already has a cycle with that key
        """
        pass

    @abstractmethod
    def replace_cycle_lines(
        self, cycle_id: int, totals: CycleTotals, lines: Sequence[CreditCardLineItem]
    ) -> None:
        """Replace a cycle's statement lines and totals and mark it pending."""
        pass

    @abstractmethod
    def get_billing_cycle(self, cycle_id: int) -> Optional[BillingCycle]:
        """Get billing cycle by ID."""
        pass

    @abstractmethod
    def get_billing_cycle_by_key(self, account_id: int, key: str) -> Optional[BillingCycle]:
        """Get an account's billing cycle by its YYYY-MM key."""
        pass

    @abstractmethod
    def list_billing_cycles(
        self,
        account_id: Optional[int] = None,
        statuses: Optional[Sequence[CycleStatus]] = None,
        limit: Optional[int] = None,
        offset: int = 0,
        newest_first: bool = True,
    ) -> list[BillingCycle]:
        """List billing cycles ordered by key."""
        pass

    @abstractmethod
    def count_billing_cycles(
        self,
        account_id: Optional[int] = None,
        statuses: Optional[Sequence[CycleStatus]] = None,
    ) -> int:
        """Count billing cycles."""
        pass

    @abstractmethod
    def count_cycle_months(self, account_id: Optional[int] = None) -> int:
        """Count distinct YYYY-MM keys across billing cycles."""
        pass

    @abstractmethod
    def list_cycle_lines(self, cycle_id: int) -> list[CreditCardLineItem]:
        """List a cycle's statement lines in statement order."""
        pass

    @abstractmethod
    def update_cycle_status(self, cycle_id: int, status: CycleStatus) -> None:
        """Set a billing cycle's status."""
        pass

    @abstractmethod
    def reset_examined_cycles(self, account_id: Optional[int] = None) -> int:
        """Return awaiting-selection and no-match cycles to pending, dropping their
        stored candidates. Returns the count."""
        pass

    # Candidate operations
    @abstractmethod
    def replace_cycle_candidates(
        self, cycle_id: int, candidates: Sequence[PotentialMatch]
    ) -> None:
        """Store a cycle's ranked candidate list, replacing the previous one."""
        pass

    @abstractmethod
    def list_cycle_candidates(self, cycle_id: int) -> list[PotentialMatch]:
        """List a cycle's stored candidates in rank order."""
        pass

    # Link operations
    @abstractmethod
    def create_link(
        self,
        billing_cycle_id: int,
        bill_transaction_id: int,
        amount_difference: Decimal,
        has_mismatch: bool,
        linked_transaction_count: int,
    ) -> int:
        """Create a link. Returns link ID.

        Raises:
            ConflictError: If the cycle or the bill already has a link
        """
        pass

    @abstractmethod
    def get_link_for_cycle(self, cycle_id: int) -> Optional[Link]:
        """Get the active link of a billing cycle."""
        pass

    @abstractmethod
    def get_link_for_bill(self, bill_id: int) -> Optional[Link]:
        """Get the active link of a bill payment."""
        pass

    @abstractmethod
    def delete_link(self, link_id: int) -> None:
        """Delete a link."""
        pass
