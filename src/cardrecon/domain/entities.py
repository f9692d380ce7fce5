"""Domain model entities for cardrecon.

These are pure data classes representing business concepts, independent of
database schema. Persisted concepts come first, followed by the result
contracts returned by the reconciliation operations.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Optional


class TransactionType(str, Enum):
    """Direction of a ledger transaction."""

    EXPENSE = "expense"
    INCOME = "income"


class CycleStatus(str, Enum):
    """Reconciliation state of a billing cycle."""

    PENDING = "pending"
    AWAITING_SELECTION = "awaiting_selection"
    NO_MATCH = "no_match"
    LINKED = "linked"


class Confidence(str, Enum):
    """Confidence tier of a bill candidate."""

    EXACT = "exact"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(frozen=True)
class Account:
    """Account domain entity."""

    id: int
    name: str
    bank_name: str
    created_at: datetime


@dataclass(frozen=True)
class Category:
    """Category domain entity with hierarchical structure."""

    id: int
    name: str
    parent_id: Optional[int]
    created_at: datetime


@dataclass(frozen=True)
class Transaction:
    """Ledger transaction domain entity.

    ``amount`` is never negative; ``transaction_type`` carries the direction.
    Aggregate bill payments have ``is_credit_card_payment`` set. Itemized
    rows produced by an expansion carry ``billing_cycle`` and
    ``credit_card_payment_id``.
    """

    id: int
    unique_id: str
    account_id: int
    date: date
    amount: Decimal
    transaction_type: TransactionType
    description: Optional[str]
    category_id: Optional[int]
    notes: Optional[str]
    imported_at: datetime
    is_credit_card_payment: bool = False
    is_hidden: bool = False
    original_amount: Optional[Decimal] = None
    expanded_at: Optional[datetime] = None
    linked_transaction_count: int = 0
    billing_cycle: Optional[str] = None
    credit_card_payment_id: Optional[int] = None
    installment_current: Optional[int] = None
    installment_total: Optional[int] = None

    @property
    def is_expanded(self) -> bool:
        return self.expanded_at is not None


@dataclass(frozen=True)
class CreditCardLineItem:
    """One normalized line of a card statement.

    ``amount`` keeps the issuer's sign: positive is an expense, negative is a
    payment or refund.
    """

    date: date
    description: str
    amount: Decimal
    installment_current: Optional[int] = None
    installment_total: Optional[int] = None
    is_payment_marker: bool = False

    @property
    def has_installment(self) -> bool:
        return self.installment_current is not None


@dataclass(frozen=True)
class CycleTotals:
    """Derived attributes of a group of statement lines."""

    key: str
    reference_date: Optional[date]
    total_amount: Decimal
    transaction_count: int
    oldest_date: Optional[date]
    newest_date: Optional[date]


@dataclass(frozen=True)
class BillingCycle:
    """Billing cycle domain entity."""

    id: int
    account_id: int
    key: str
    status: CycleStatus
    reference_date: Optional[date]
    total_amount: Decimal
    transaction_count: int
    oldest_date: Optional[date]
    newest_date: Optional[date]
    created_at: datetime

    @property
    def is_linked(self) -> bool:
        return self.status == CycleStatus.LINKED

    @property
    def display_name(self) -> str:
        from cardrecon.domain.billing_cycle import format_cycle_display

        return format_cycle_display(self.key)


@dataclass(frozen=True)
class PotentialMatch:
    """A bill payment scored against a billing cycle."""

    bill_id: int
    bill_date: date
    bill_description: Optional[str]
    bill_amount: Decimal
    category_name: Optional[str]
    confidence: Confidence
    amount_difference: Decimal
    difference_percent: Decimal
    days_difference: int
    score: float


@dataclass(frozen=True)
class Link:
    """Active association between a billing cycle and a bill payment."""

    id: int
    billing_cycle_id: int
    bill_transaction_id: int
    amount_difference: Decimal
    has_mismatch: bool
    linked_transaction_count: int
    created_at: datetime


@dataclass(frozen=True)
class ImportPreview:
    """Read-only analysis of a statement before import."""

    billing_cycle: str
    matches: list[PotentialMatch]
    unmatched_count: int
    total_amount: Decimal
    warnings: list[str]
    statement_summary: dict = field(default_factory=dict)


@dataclass(frozen=True)
class ConfirmedMatch:
    """A bill payment the caller confirmed for an import."""

    bill_id: int
    force: bool = False


@dataclass(frozen=True)
class ZeroedBill:
    """A bill payment hidden by an expansion."""

    transaction_id: int
    original_amount: Decimal
    linked_transactions: int


@dataclass(frozen=True)
class ImportResult:
    """Outcome of importing a statement and linking it."""

    billing_cycle: str
    imported_count: int
    matched_count: int
    unmatched_count: int
    zeroed_bills: list[ZeroedBill]
    warnings: list[str]


@dataclass(frozen=True)
class CollapseResult:
    """Outcome of collapsing an expanded bill payment."""

    restored_amount: Decimal
    deleted_transaction_count: int
    transaction_id: int


@dataclass(frozen=True)
class LinkResult:
    """Outcome of a manual link."""

    billing_cycle: str
    bill_id: int
    transactions_linked: int
    amount_difference: Decimal
    has_mismatch: bool


@dataclass(frozen=True)
class PendingCycle:
    """A not-yet-linked billing cycle with its candidate bills."""

    cycle: BillingCycle
    potential_bills: list[PotentialMatch]


@dataclass(frozen=True)
class LinkedCycle:
    """A linked billing cycle with its bill payment."""

    cycle: BillingCycle
    bill: Transaction
    link: Link
    category_name: Optional[str] = None


@dataclass(frozen=True)
class ReconciliationSummary:
    """Counts over the link registry."""

    total_pending: int
    total_linked: int
    months_covered: int


@dataclass(frozen=True)
class CycleListing:
    """One page of pending or linked cycles."""

    cycles: list
    summary: ReconciliationSummary


@dataclass(frozen=True)
class AutoLinkedCycle:
    """A cycle linked without human input during a reconciliation pass."""

    billing_cycle: str
    bill_id: int
    bill_description: Optional[str]
    transaction_count: int
    confidence: Confidence
    amount_difference: Decimal
    has_mismatch: bool


@dataclass(frozen=True)
class PendingWithMatches:
    """A cycle that needs a manual choice between candidates."""

    billing_cycle: str
    potential_bills: list[PotentialMatch]


@dataclass(frozen=True)
class NoMatchCycle:
    """A cycle with no candidate bill."""

    billing_cycle: str
    transaction_count: int
    total_amount: Decimal


@dataclass(frozen=True)
class ReconciliationResult:
    """Partitioned outcome of a reconciliation pass."""

    auto_linked: list[AutoLinkedCycle]
    requires_selection: list[PendingWithMatches]
    no_match: list[NoMatchCycle]

    @property
    def summary(self) -> dict[str, int]:
        return {
            "auto_linked": len(self.auto_linked),
            "requires_selection": len(self.requires_selection),
            "no_match": len(self.no_match),
        }

    @property
    def is_empty(self) -> bool:
        return not (self.auto_linked or self.requires_selection or self.no_match)


@dataclass(frozen=True)
class CreditCardStatus:
    """Spending overview for the card cycles of one month or all months."""

    total_spending: Decimal
    matched_amount: Decimal
    unmatched_amount: Decimal
    expanded_bills: int
    pending_bills: int
    has_mismatches: bool
