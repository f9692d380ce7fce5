"""Bill matching for billing cycles.

Scores recorded aggregate bill payments against a cycle's total and ranks
the plausible ones. Amount closeness dominates the score; date proximity to
the cycle's reference date breaks near-ties.
"""

from decimal import Decimal, ROUND_HALF_UP
from datetime import date, timedelta
from typing import Optional

from cardrecon.config import ReconciliationConfig, load_reconciliation_config
from cardrecon.database.base import Database
from cardrecon.domain.category import CategoryService
from cardrecon.domain.entities import (
    BillingCycle,
    Confidence,
    CycleTotals,
    PotentialMatch,
    Transaction,
)
from cardrecon.logger import get_logger
from cardrecon.utils.amount_parser import quantize_money

logger = get_logger(__name__)

HUNDRED = Decimal("100")
PERCENT_PLACES = Decimal("0.01")


def amount_difference(cycle_total: Decimal, bill_amount: Decimal) -> Decimal:
    """Signed difference between a cycle total and a bill amount."""
    return quantize_money(cycle_total - bill_amount)


def difference_percent(difference: Decimal, bill_amount: Decimal) -> Decimal:
    """Absolute difference as a percentage of the bill amount.

    Zero when both are zero; 100 when only the bill is zero.
    """
    if bill_amount == 0:
        return Decimal("0.00") if difference == 0 else Decimal("100.00")
    percent = abs(difference) / bill_amount * HUNDRED
    return percent.quantize(PERCENT_PLACES, rounding=ROUND_HALF_UP)


def classify_confidence(
    difference: Decimal, percent: Decimal, config: ReconciliationConfig
) -> Confidence:
    """Map a difference to a confidence tier."""
    if abs(difference) < config.exact_epsilon:
        return Confidence.EXACT
    if percent <= config.high_percent:
        return Confidence.HIGH
    if percent <= config.medium_percent:
        return Confidence.MEDIUM
    return Confidence.LOW


def has_mismatch(difference: Decimal, config: ReconciliationConfig) -> bool:
    """True when a link should be flagged for an amount mismatch."""
    return abs(difference) > config.mismatch_tolerance


def exceeds_tolerance(percent: Decimal, config: ReconciliationConfig) -> bool:
    """True when linking needs force."""
    return percent > config.reject_percent


def score_candidate(percent: Decimal, days: int, config: ReconciliationConfig) -> float:
    """Score a candidate in [0, 1]."""
    amount_closeness = max(Decimal("0"), 1 - percent / config.candidate_max_percent)
    date_closeness = max(Decimal("0"), 1 - Decimal(days) / Decimal(config.date_window_days))
    total = config.amount_weight * amount_closeness + config.date_weight * date_closeness
    return float(round(total, 4))


def rank_candidates(candidates: list[PotentialMatch]) -> list[PotentialMatch]:
    """Order by score, then most recent bill, then bill id."""
    return sorted(
        candidates,
        key=lambda c: (-c.score, -c.bill_date.toordinal(), c.bill_id),
    )


class MatchScorer:
    """Find candidate bill payments for billing cycles."""

    def __init__(self, db: Database, config: Optional[ReconciliationConfig] = None):
        self.db = db
        self.config = config or load_reconciliation_config()
        self.category_service = CategoryService(db)

    def evaluate(
        self, cycle_total: Decimal, reference_date: date, bill: Transaction
    ) -> PotentialMatch:
        """Score one bill payment against a cycle total."""
        difference = amount_difference(cycle_total, bill.amount)
        percent = difference_percent(difference, bill.amount)
        days = abs((bill.date - reference_date).days)
        category_name = None
        if bill.category_id is not None:
            category_name = self.category_service.format_category_path(bill.category_id) or None

        return PotentialMatch(
            bill_id=bill.id,
            bill_date=bill.date,
            bill_description=bill.description,
            bill_amount=bill.amount,
            category_name=category_name,
            confidence=classify_confidence(difference, percent, self.config),
            amount_difference=difference,
            difference_percent=percent,
            days_difference=days,
            score=score_candidate(percent, days, self.config),
        )

    def candidates_for_totals(self, totals: CycleTotals) -> list[PotentialMatch]:
        """Rank the bill payments that plausibly pay a cycle with these totals."""
        if totals.reference_date is None:
            return []
        return self._find(totals.key, totals.total_amount, totals.reference_date)

    def find_candidates(self, cycle: BillingCycle) -> list[PotentialMatch]:
        """Rank the bill payments that plausibly pay a stored cycle."""
        if cycle.reference_date is None:
            return []
        return self._find(cycle.key, cycle.total_amount, cycle.reference_date)

    def _find(
        self, cycle_key: str, cycle_total: Decimal, reference_date: date
    ) -> list[PotentialMatch]:
        window = timedelta(days=self.config.date_window_days)
        bills = self.db.list_bill_payments(
            start_date=reference_date - window,
            end_date=reference_date + window,
        )

        candidates = []
        for bill in bills:
            if bill.amount <= 0 or self.db.get_link_for_bill(bill.id) is not None:
                continue
            match = self.evaluate(cycle_total, reference_date, bill)
            if match.difference_percent > self.config.candidate_max_percent:
                continue
            candidates.append(match)

        ranked = rank_candidates(candidates)[: self.config.max_candidates]
        logger.debug(
            "candidates_found",
            billing_cycle=cycle_key,
            considered=len(bills),
            offered=len(ranked),
        )
        return ranked
