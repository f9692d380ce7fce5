"""Reconciliation of billing cycles against bill payments.

``ReconciliationService`` drives the batch pass over pending cycles and the
manual operations around it: listing pending and linked cycles, linking a
chosen bill, choosing among stored candidates, and unlinking.
"""

from typing import Optional

from cardrecon.config import ReconciliationConfig, load_reconciliation_config
from cardrecon.database.base import Database
from cardrecon.domain.billing_cycle import parse_cycle_key
from cardrecon.domain.category import CategoryService
from cardrecon.domain.entities import (
    AutoLinkedCycle,
    BillingCycle,
    CollapseResult,
    CycleListing,
    CycleStatus,
    LinkedCycle,
    LinkResult,
    NoMatchCycle,
    PendingCycle,
    PendingWithMatches,
    PotentialMatch,
    ReconciliationResult,
    ReconciliationSummary,
)
from cardrecon.domain.errors import (
    ConflictError,
    InvariantViolationError,
    NotFoundError,
    ValidationError,
    billing_cycle_not_found,
    cycle_already_linked,
)
from cardrecon.domain.expansion import ExpansionService
from cardrecon.domain.matching import MatchScorer
from cardrecon.domain.selection import AutoLinked, NoMatch, decide, resolve_selection
from cardrecon.logger import get_logger

logger = get_logger(__name__)

UNLINKED_STATUSES = [CycleStatus.PENDING, CycleStatus.AWAITING_SELECTION, CycleStatus.NO_MATCH]
MAX_PAGE_SIZE = 100


def _validate_page(limit: int, offset: int) -> None:
    if limit < 1 or limit > MAX_PAGE_SIZE:
        raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}, got {limit}")
    if offset < 0:
        raise ValidationError(f"offset must not be negative, got {offset}")


class ReconciliationService:
    """Service for reconciling billing cycles with bill payments."""

    def __init__(self, db: Database, config: Optional[ReconciliationConfig] = None):
        """Initialize reconciliation service.

        Args:
            db: Database instance
            config: Thresholds; loaded from the environment when omitted
        """
        self.db = db
        self.config = config or load_reconciliation_config()
        self.scorer = MatchScorer(db, self.config)
        self.expansion = ExpansionService(db, self.config)
        self.category_service = CategoryService(db)

    def _get_cycle(self, account_id: int, billing_cycle: str) -> BillingCycle:
        key = parse_cycle_key(billing_cycle)
        cycle = self.db.get_billing_cycle_by_key(account_id, key)
        if cycle is None:
            raise NotFoundError(billing_cycle_not_found(key))
        return cycle

    def _open_candidates(self, cycle: BillingCycle) -> list[PotentialMatch]:
        """Candidates for an unlinked cycle.

        The stored list is used when there is one, including the list a
        collapsed cycle kept from its last pass. Bills linked elsewhere since
        then are dropped. Pending cycles without a stored list are scored on
        the fly without storing anything.
        """
        stored = self.db.list_cycle_candidates(cycle.id)
        if not stored and cycle.status == CycleStatus.PENDING:
            return self.scorer.find_candidates(cycle)
        return [
            candidate
            for candidate in stored
            if self.db.get_link_for_bill(candidate.bill_id) is None
        ]

    def trigger_reconciliation(self, account_id: Optional[int] = None) -> ReconciliationResult:
        """Examine every pending cycle once and link the unambiguous ones.

        Cycles are processed oldest first. Each examined cycle leaves the
        pending state, so a second call without new data returns an empty
        result.

        Args:
            account_id: Restrict the pass to one account

        Returns:
            ReconciliationResult partitioned into auto-linked, requires
            selection and no match

        Raises:
            InvariantViolationError: If stored state is inconsistent
        """
        auto_linked: list[AutoLinkedCycle] = []
        requires_selection: list[PendingWithMatches] = []
        no_match: list[NoMatchCycle] = []

        cycles = self.db.list_billing_cycles(
            account_id=account_id, statuses=[CycleStatus.PENDING], newest_first=False
        )

        for cycle in cycles:
            candidates = self.scorer.find_candidates(cycle)
            decision = decide(candidates, self.config)

            if isinstance(decision, NoMatch):
                with self.db.unit_of_work():
                    self.db.replace_cycle_candidates(cycle.id, [])
                    self.db.update_cycle_status(cycle.id, CycleStatus.NO_MATCH)
                no_match.append(
                    NoMatchCycle(
                        billing_cycle=cycle.key,
                        transaction_count=cycle.transaction_count,
                        total_amount=cycle.total_amount,
                    )
                )
                continue

            if isinstance(decision, AutoLinked):
                chosen = decision.candidate
                try:
                    link = self.expansion.expand(
                        cycle, chosen.bill_id, candidates=candidates
                    )
                except ConflictError as e:
                    logger.warning(
                        "auto_link_conflict",
                        billing_cycle=cycle.key,
                        bill_id=chosen.bill_id,
                        error=str(e),
                    )
                else:
                    auto_linked.append(
                        AutoLinkedCycle(
                            billing_cycle=cycle.key,
                            bill_id=chosen.bill_id,
                            bill_description=chosen.bill_description,
                            transaction_count=link.linked_transaction_count,
                            confidence=chosen.confidence,
                            amount_difference=link.amount_difference,
                            has_mismatch=link.has_mismatch,
                        )
                    )
                    continue

            # RequiresSelection, or an auto-link that lost its bill
            with self.db.unit_of_work():
                self.db.replace_cycle_candidates(cycle.id, candidates)
                self.db.update_cycle_status(cycle.id, CycleStatus.AWAITING_SELECTION)
            requires_selection.append(
                PendingWithMatches(billing_cycle=cycle.key, potential_bills=list(candidates))
            )

        result = ReconciliationResult(
            auto_linked=auto_linked,
            requires_selection=requires_selection,
            no_match=no_match,
        )
        logger.info("reconciliation_finished", account_id=account_id, **result.summary)
        return result

    def get_summary(self, account_id: Optional[int] = None) -> ReconciliationSummary:
        """Count unlinked and linked cycles and the months they cover."""
        return ReconciliationSummary(
            total_pending=self.db.count_billing_cycles(account_id, UNLINKED_STATUSES),
            total_linked=self.db.count_billing_cycles(account_id, [CycleStatus.LINKED]),
            months_covered=self.db.count_cycle_months(account_id),
        )

    def list_pending_cycles(
        self, account_id: Optional[int] = None, limit: int = 10, offset: int = 0
    ) -> CycleListing:
        """List unlinked cycles, newest first, with their candidate bills.

        Raises:
            ValidationError: If limit or offset is out of range
        """
        _validate_page(limit, offset)
        cycles = self.db.list_billing_cycles(
            account_id=account_id, statuses=UNLINKED_STATUSES, limit=limit, offset=offset
        )
        pending = [
            PendingCycle(cycle=cycle, potential_bills=self._open_candidates(cycle))
            for cycle in cycles
        ]
        return CycleListing(cycles=pending, summary=self.get_summary(account_id))

    def list_linked_cycles(
        self, account_id: Optional[int] = None, limit: int = 10, offset: int = 0
    ) -> CycleListing:
        """List linked cycles, newest first, with the bill each one expanded.

        Raises:
            ValidationError: If limit or offset is out of range
            InvariantViolationError: If a linked cycle has no link or bill
        """
        _validate_page(limit, offset)
        cycles = self.db.list_billing_cycles(
            account_id=account_id, statuses=[CycleStatus.LINKED], limit=limit, offset=offset
        )

        linked = []
        for cycle in cycles:
            link = self.db.get_link_for_cycle(cycle.id)
            bill = self.db.get_transaction(link.bill_transaction_id) if link else None
            if link is None or bill is None:
                raise InvariantViolationError(
                    f"Billing cycle {cycle.key} is marked linked but has no bill payment"
                )
            category_name = None
            if bill.category_id is not None:
                category_name = self.category_service.format_category_path(bill.category_id)
            linked.append(
                LinkedCycle(cycle=cycle, bill=bill, link=link, category_name=category_name)
            )

        return CycleListing(cycles=linked, summary=self.get_summary(account_id))

    def link(
        self, account_id: int, billing_cycle: str, bill_id: int, force: bool = False
    ) -> LinkResult:
        """Link a billing cycle to a bill payment chosen by hand.

        Args:
            account_id: Account owning the cycle
            billing_cycle: Cycle key, "YYYY-MM"
            bill_id: Bill payment to expand
            force: Link even when the difference exceeds the reject threshold

        Raises:
            NotFoundError: If the cycle or bill doesn't exist
            ConflictError: If either side is already linked
            ToleranceExceededError: If the difference is too large and not forced
        """
        cycle = self._get_cycle(account_id, billing_cycle)
        if cycle.is_linked:
            raise ConflictError(cycle_already_linked(cycle.key))

        link = self.expansion.expand(cycle, bill_id, force=force)
        logger.info("cycle_linked", billing_cycle=cycle.key, bill_id=bill_id, forced=force)
        return LinkResult(
            billing_cycle=cycle.key,
            bill_id=bill_id,
            transactions_linked=link.linked_transaction_count,
            amount_difference=link.amount_difference,
            has_mismatch=link.has_mismatch,
        )

    def select(
        self,
        account_id: int,
        billing_cycle: str,
        bill_id: Optional[int],
        force: bool = False,
    ) -> Optional[LinkResult]:
        """Choose one of a cycle's candidates, or keep it pending.

        Returns:
            LinkResult, or None when bill_id is None

        Raises:
            NotFoundError: If the cycle doesn't exist or bill_id is not a candidate
            ConflictError: If either side is already linked
        """
        cycle = self._get_cycle(account_id, billing_cycle)
        if cycle.is_linked:
            raise ConflictError(cycle_already_linked(cycle.key))

        choice = resolve_selection(self._open_candidates(cycle), bill_id)
        if choice is None:
            logger.info("selection_deferred", billing_cycle=cycle.key)
            return None
        return self.link(account_id, cycle.key, choice.bill_id, force=force)

    def unlink(self, account_id: int, billing_cycle: str) -> CollapseResult:
        """Undo the link of a billing cycle and restore its bill payment.

        Raises:
            NotFoundError: If the cycle doesn't exist
            UnprocessableError: If the cycle is not linked
        """
        cycle = self._get_cycle(account_id, billing_cycle)
        return self.expansion.collapse_cycle(cycle)
