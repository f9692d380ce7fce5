"""Credit card statement import service."""

from datetime import date
from decimal import Decimal
from typing import Optional, Sequence

from cardrecon.config import ReconciliationConfig, load_reconciliation_config
from cardrecon.database.base import Database
from cardrecon.domain.billing_cycle import build_cycle_totals, find_payment_marker, parse_cycle_key
from cardrecon.domain.entities import (
    BillingCycle,
    CollapseResult,
    ConfirmedMatch,
    CreditCardLineItem,
    CreditCardStatus,
    CycleStatus,
    CycleTotals,
    ImportPreview,
    ImportResult,
    ZeroedBill,
)
from cardrecon.domain.errors import (
    ConflictError,
    InvariantViolationError,
    NotFoundError,
    UnprocessableError,
    ValidationError,
    account_not_found,
    cycle_already_linked,
)
from cardrecon.domain.expansion import ExpansionService
from cardrecon.domain.matching import MatchScorer
from cardrecon.domain.statement import summarize_lines
from cardrecon.logger import get_logger
from cardrecon.utils.date_parser import month_bounds

logger = get_logger(__name__)


class CreditCardService:
    """Service for importing card statements and expanding bill payments."""

    def __init__(self, db: Database, config: Optional[ReconciliationConfig] = None):
        """Initialize credit card service.

        Args:
            db: Database instance
            config: Thresholds; loaded from the environment when omitted
        """
        self.db = db
        self.config = config or load_reconciliation_config()
        self.scorer = MatchScorer(db, self.config)
        self.expansion = ExpansionService(db, self.config)

    def _require_account(self, account_id: int) -> None:
        if self.db.get_account(account_id) is None:
            raise NotFoundError(account_not_found(account_id))

    def _warnings(
        self,
        totals: CycleTotals,
        lines: Sequence[CreditCardLineItem],
        existing: Optional[BillingCycle],
    ) -> list[str]:
        warnings = []
        if not lines:
            warnings.append("Statement has no transactions")
        elif find_payment_marker(lines) is None:
            warnings.append(
                f"No payment received line found; billing cycle {totals.key} "
                "was derived from the newest transaction date"
            )
        if existing is not None:
            if existing.is_linked:
                warnings.append(cycle_already_linked(existing.key))
            else:
                warnings.append(f"Billing cycle {existing.key} has already been imported")
        return warnings

    def preview_import(
        self,
        account_id: int,
        lines: Sequence[CreditCardLineItem],
        today: Optional[date] = None,
    ) -> ImportPreview:
        """Analyze a statement without changing anything.

        Args:
            account_id: Card account the statement belongs to
            lines: Parsed statement lines
            today: Reference day for statements without dated lines

        Returns:
            ImportPreview with the derived cycle, ranked bill candidates,
            totals and warnings

        Raises:
            NotFoundError: If the account doesn't exist
        """
        self._require_account(account_id)
        totals = build_cycle_totals(lines, today)
        existing = self.db.get_billing_cycle_by_key(account_id, totals.key)

        matches = []
        if existing is None or not existing.is_linked:
            matches = self.scorer.candidates_for_totals(totals)

        return ImportPreview(
            billing_cycle=totals.key,
            matches=matches,
            unmatched_count=0 if matches else totals.transaction_count,
            total_amount=totals.total_amount,
            warnings=self._warnings(totals, lines, existing),
            statement_summary=summarize_lines(lines),
        )

    def _ingest(
        self, account_id: int, totals: CycleTotals, lines: Sequence[CreditCardLineItem]
    ) -> BillingCycle:
        """Store a statement as a pending cycle, replacing an unlinked one."""
        existing = self.db.get_billing_cycle_by_key(account_id, totals.key)
        if existing is None:
            cycle_id = self.db.create_billing_cycle(account_id, totals, lines)
        elif existing.is_linked:
            raise ConflictError(cycle_already_linked(existing.key))
        else:
            cycle_id = existing.id
            self.db.replace_cycle_lines(cycle_id, totals, lines)

        cycle = self.db.get_billing_cycle(cycle_id)
        if cycle is None:
            raise InvariantViolationError(f"Billing cycle {totals.key} missing after import")
        return cycle

    def import_statement(
        self,
        account_id: int,
        lines: Sequence[CreditCardLineItem],
        today: Optional[date] = None,
    ) -> BillingCycle:
        """Store a statement as a pending billing cycle.

        Re-importing the statement of an unlinked cycle replaces its lines
        and returns it to pending.

        Raises:
            NotFoundError: If the account doesn't exist
            ConflictError: If the cycle is already linked
        """
        self._require_account(account_id)
        totals = build_cycle_totals(lines, today)
        with self.db.unit_of_work():
            cycle = self._ingest(account_id, totals, lines)

        logger.info(
            "statement_imported",
            account_id=account_id,
            billing_cycle=cycle.key,
            lines=len(lines),
            total_amount=str(cycle.total_amount),
        )
        return cycle

    def import_and_link(
        self,
        account_id: int,
        lines: Sequence[CreditCardLineItem],
        confirmed_matches: Sequence[ConfirmedMatch],
        skip_unmatched: bool = False,
        force: bool = False,
        today: Optional[date] = None,
    ) -> ImportResult:
        """Import a statement and expand the bill payment the caller confirmed.

        Ingestion and expansion commit together. Without a confirmed match
        the cycle is stored pending for a later reconciliation pass, or not
        stored at all when skip_unmatched is set.

        Args:
            account_id: Card account the statement belongs to
            lines: Parsed statement lines
            confirmed_matches: At most one bill payment to expand
            skip_unmatched: Don't store a statement that has no confirmed match
            force: Link even when the difference exceeds the reject threshold
            today: Reference day for statements without dated lines

        Returns:
            ImportResult with counts and the zeroed bill payments

        Raises:
            NotFoundError: If the account doesn't exist
            ValidationError: If more than one match is confirmed
            ConflictError: If the cycle or the bill is already linked
            UnprocessableError: If the bill doesn't exist or the difference
                exceeds the reject threshold without force
        """
        self._require_account(account_id)
        if len(confirmed_matches) > 1:
            raise ValidationError("A billing cycle can be linked to only one bill payment")

        totals = build_cycle_totals(lines, today)
        existing = self.db.get_billing_cycle_by_key(account_id, totals.key)
        warnings = self._warnings(totals, lines, existing)

        if not confirmed_matches and skip_unmatched:
            logger.info("statement_skipped", account_id=account_id, billing_cycle=totals.key)
            return ImportResult(
                billing_cycle=totals.key,
                imported_count=0,
                matched_count=0,
                unmatched_count=totals.transaction_count,
                zeroed_bills=[],
                warnings=warnings,
            )

        zeroed_bills: list[ZeroedBill] = []
        matched_count = 0
        with self.db.unit_of_work():
            cycle = self._ingest(account_id, totals, lines)
            for match in confirmed_matches:
                try:
                    link = self.expansion.expand(
                        cycle, match.bill_id, force=force or match.force
                    )
                except NotFoundError as e:
                    raise UnprocessableError(str(e)) from e
                bill = self.db.get_transaction(match.bill_id)
                if bill is None or bill.original_amount is None:
                    raise InvariantViolationError(
                        f"Bill payment {match.bill_id} not zeroed after expansion"
                    )
                matched_count = link.linked_transaction_count
                zeroed_bills.append(
                    ZeroedBill(
                        transaction_id=bill.id,
                        original_amount=bill.original_amount,
                        linked_transactions=link.linked_transaction_count,
                    )
                )

        result = ImportResult(
            billing_cycle=cycle.key,
            imported_count=len(lines),
            matched_count=matched_count,
            unmatched_count=0 if zeroed_bills else totals.transaction_count,
            zeroed_bills=zeroed_bills,
            warnings=warnings,
        )
        logger.info(
            "statement_imported",
            account_id=account_id,
            billing_cycle=cycle.key,
            lines=len(lines),
            matched=matched_count,
        )
        return result

    def collapse(self, bill_id: int) -> CollapseResult:
        """Collapse an expanded bill payment back to its original amount.

        Raises:
            NotFoundError: If the bill doesn't exist
            UnprocessableError: If the bill was never expanded
        """
        return self.expansion.collapse_bill(bill_id)

    def get_status(self, account_id: Optional[int] = None, month: Optional[str] = None) -> CreditCardStatus:
        """Summarize card spending and its coverage by bill payments.

        Args:
            account_id: Restrict to one card account
            month: Restrict to one "YYYY-MM" cycle and the bills paid that month
        """
        cycles = self.db.list_billing_cycles(account_id=account_id)
        start_date = end_date = None
        if month is not None:
            key = parse_cycle_key(month)
            cycles = [cycle for cycle in cycles if cycle.key == key]
            start_date, end_date = month_bounds(key)

        total_spending = Decimal("0.00")
        matched_amount = Decimal("0.00")
        expanded_bills = 0
        has_mismatches = False
        for cycle in cycles:
            total_spending += cycle.total_amount
            if cycle.status != CycleStatus.LINKED:
                continue
            matched_amount += cycle.total_amount
            expanded_bills += 1
            link = self.db.get_link_for_cycle(cycle.id)
            if link is not None and link.has_mismatch:
                has_mismatches = True

        pending_bills = len(self.db.list_bill_payments(start_date=start_date, end_date=end_date))

        return CreditCardStatus(
            total_spending=total_spending,
            matched_amount=matched_amount,
            unmatched_amount=total_spending - matched_amount,
            expanded_bills=expanded_bills,
            pending_bills=pending_bills,
            has_mismatches=has_mismatches,
        )
