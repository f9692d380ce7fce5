"""Expansion and collapse of aggregate bill payments.

Expanding replaces a lump-sum bill payment with the itemized lines of the
billing cycle it paid: one ledger row per statement line is created, the
bill is zeroed and hidden, and a link records the pairing. Collapsing undoes
all of it. Both run in a single unit of work, so a failure leaves the ledger
as it was.
"""

from typing import Optional, Sequence

from cardrecon.config import ReconciliationConfig, load_reconciliation_config
from cardrecon.database.base import Database
from cardrecon.domain.entities import (
    BillingCycle,
    CollapseResult,
    CycleStatus,
    Link,
    PotentialMatch,
    Transaction,
    TransactionType,
)
from cardrecon.domain.errors import (
    ConflictError,
    InvariantViolationError,
    NotFoundError,
    ToleranceExceededError,
    UnprocessableError,
    bill_already_expanded,
    bill_not_expanded,
    bill_not_found,
    billing_cycle_not_found,
    cycle_already_linked,
    tolerance_exceeded,
)
from cardrecon.domain.matching import (
    amount_difference,
    difference_percent,
    exceeds_tolerance,
    has_mismatch,
)
from cardrecon.logger import get_logger

logger = get_logger(__name__)


def itemized_unique_id(cycle: BillingCycle, position: int) -> str:
    """Ledger unique_id of the itemized row for a statement line."""
    return f"cc:{cycle.key}:{cycle.id}:{position}"


class ExpansionService:
    """Expand bill payments into itemized rows and collapse them back."""

    def __init__(self, db: Database, config: Optional[ReconciliationConfig] = None):
        self.db = db
        self.config = config or load_reconciliation_config()

    def _get_bill(self, bill_id: int) -> Transaction:
        bill = self.db.get_transaction(bill_id)
        if bill is None or not bill.is_credit_card_payment:
            raise NotFoundError(bill_not_found(bill_id))
        return bill

    def _violation(self, message: str, **context) -> InvariantViolationError:
        logger.critical("reconciliation_invariant_violated", detail=message, **context)
        return InvariantViolationError(message)

    def expand(
        self,
        cycle: BillingCycle,
        bill_id: int,
        force: bool = False,
        candidates: Optional[Sequence[PotentialMatch]] = None,
    ) -> Link:
        """Expand a bill payment into the itemized lines of a billing cycle.

        Args:
            cycle: The billing cycle the bill paid
            bill_id: Aggregate bill payment ID
            force: Link even when the difference exceeds the reject threshold
            candidates: Ranked candidate list to store with the link

        Returns:
            The created link

        Raises:
            NotFoundError: If the bill or cycle doesn't exist
            ConflictError: If the cycle or the bill is already linked
            ToleranceExceededError: If the difference is too large and not forced
            InvariantViolationError: If stored state is inconsistent
        """
        bill = self._get_bill(bill_id)

        current = self.db.get_billing_cycle(cycle.id)
        if current is None:
            raise NotFoundError(billing_cycle_not_found(cycle.key))
        if current.is_linked or self.db.get_link_for_cycle(current.id) is not None:
            raise ConflictError(cycle_already_linked(current.key))
        if bill.is_expanded or self.db.get_link_for_bill(bill_id) is not None:
            raise ConflictError(bill_already_expanded(bill_id))
        if self.db.count_itemized_transactions(bill_id) > 0:
            raise self._violation(
                f"Bill payment {bill_id} has itemized transactions but no link",
                bill_id=bill_id,
            )

        difference = amount_difference(current.total_amount, bill.amount)
        percent = difference_percent(difference, bill.amount)
        if exceeds_tolerance(percent, self.config) and not force:
            raise ToleranceExceededError(
                tolerance_exceeded(current.key, bill_id, difference, percent),
                difference=difference,
                difference_percent=percent,
            )

        lines = self.db.list_cycle_lines(current.id)
        visible_count = sum(1 for line in lines if not line.is_payment_marker)

        with self.db.unit_of_work():
            for position, line in enumerate(lines):
                self.db.create_transaction(
                    unique_id=itemized_unique_id(current, position),
                    account_id=current.account_id,
                    date=line.date,
                    amount=abs(line.amount),
                    transaction_type=(
                        TransactionType.INCOME if line.amount < 0 else TransactionType.EXPENSE
                    ),
                    description=line.description,
                    is_hidden=line.is_payment_marker,
                    original_amount=bill.amount,
                    billing_cycle=current.key,
                    credit_card_payment_id=bill_id,
                    installment_current=line.installment_current,
                    installment_total=line.installment_total,
                )
            self.db.mark_bill_expanded(bill_id, visible_count)
            self.db.create_link(
                billing_cycle_id=current.id,
                bill_transaction_id=bill_id,
                amount_difference=difference,
                has_mismatch=has_mismatch(difference, self.config),
                linked_transaction_count=visible_count,
            )
            if candidates is not None:
                self.db.replace_cycle_candidates(current.id, candidates)
            self.db.update_cycle_status(current.id, CycleStatus.LINKED)

            itemized_total = self.db.sum_itemized_amount(bill_id)
            if itemized_total != current.total_amount:
                raise self._violation(
                    f"Itemized total {itemized_total} for bill payment {bill_id} does not "
                    f"match billing cycle {current.key} total {current.total_amount}",
                    billing_cycle=current.key,
                    bill_id=bill_id,
                )

        link = self.db.get_link_for_cycle(current.id)
        if link is None:
            raise self._violation(
                f"Link for billing cycle {current.key} missing after expansion",
                billing_cycle=current.key,
            )

        logger.info(
            "bill_expanded",
            billing_cycle=current.key,
            bill_id=bill_id,
            itemized=len(lines),
            amount_difference=str(difference),
            has_mismatch=link.has_mismatch,
        )
        return link

    def collapse_bill(self, bill_id: int) -> CollapseResult:
        """Collapse the expansion of a bill payment.

        Raises:
            NotFoundError: If the bill doesn't exist
            UnprocessableError: If the bill was never expanded
            InvariantViolationError: If bill, link and cycle state disagree
        """
        bill = self._get_bill(bill_id)
        link = self.db.get_link_for_bill(bill_id)

        if link is None and not bill.is_expanded:
            if self.db.count_itemized_transactions(bill_id) > 0:
                raise self._violation(
                    f"Bill payment {bill_id} has itemized transactions but no link",
                    bill_id=bill_id,
                )
            raise UnprocessableError(bill_not_expanded(bill_id))
        if link is None or not bill.is_expanded:
            raise self._violation(
                f"Bill payment {bill_id} expansion state does not match its link",
                bill_id=bill_id,
            )

        cycle = self.db.get_billing_cycle(link.billing_cycle_id)
        if cycle is None or not cycle.is_linked:
            raise self._violation(
                f"Link {link.id} points to a billing cycle that is not linked",
                bill_id=bill_id,
            )

        return self._collapse(bill, link, cycle)

    def collapse_cycle(self, cycle: BillingCycle) -> CollapseResult:
        """Collapse the expansion backing a billing cycle.

        Raises:
            NotFoundError: If the cycle doesn't exist
            UnprocessableError: If the cycle is not linked
            InvariantViolationError: If bill, link and cycle state disagree
        """
        current = self.db.get_billing_cycle(cycle.id)
        if current is None:
            raise NotFoundError(billing_cycle_not_found(cycle.key))

        link = self.db.get_link_for_cycle(current.id)
        if link is None:
            if current.is_linked:
                raise self._violation(
                    f"Billing cycle {current.key} is marked linked but has no link",
                    billing_cycle=current.key,
                )
            raise UnprocessableError(f"Billing cycle {current.key} is not linked")

        bill = self.db.get_transaction(link.bill_transaction_id)
        if bill is None or not bill.is_expanded or not current.is_linked:
            raise self._violation(
                f"Billing cycle {current.key} link does not match its bill payment state",
                billing_cycle=current.key,
            )

        return self._collapse(bill, link, current)

    def _collapse(self, bill: Transaction, link: Link, cycle: BillingCycle) -> CollapseResult:
        with self.db.unit_of_work():
            deleted = self.db.delete_itemized_transactions(bill.id)
            restored = self.db.restore_bill(bill.id)
            self.db.delete_link(link.id)
            self.db.update_cycle_status(cycle.id, CycleStatus.PENDING)
            # The freed bill is a new candidate for cycles already examined
            self.db.reset_examined_cycles()

        logger.info(
            "bill_collapsed",
            billing_cycle=cycle.key,
            bill_id=bill.id,
            restored_amount=str(restored),
            deleted=deleted,
        )
        return CollapseResult(
            restored_amount=restored,
            deleted_transaction_count=deleted,
            transaction_id=bill.id,
        )
