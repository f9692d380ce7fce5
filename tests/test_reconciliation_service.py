"""Tests for ReconciliationService."""

import pytest
from decimal import Decimal

from cardrecon.domain.entities import Confidence, CycleStatus, LinkedCycle, PendingCycle
from cardrecon.domain.errors import (
    ConflictError,
    NotFoundError,
    ToleranceExceededError,
    UnprocessableError,
    ValidationError,
)


@pytest.fixture
def december_cycle(credit_card_service, card_account, make_line):
    """A 2024-12 statement whose reference date is 2024-12-01."""
    lines = [
        make_line("2024-11-22", "Cinema", "400.00"),
        make_line("2024-11-28", "Mercado", "600.00"),
        make_line("2024-12-01", "Pagamento recebido", "-1000.00"),
    ]
    return credit_card_service.import_statement(card_account.id, lines)


class TestTriggerReconciliation:
    """Tests for the batch reconciliation pass."""

    def test_exact_match_auto_links(self, temp_db, reconciliation_service, november_cycle, add_bill):
        bill_id = add_bill("2024-11-10", "1000.00")

        result = reconciliation_service.trigger_reconciliation()

        assert result.summary == {"auto_linked": 1, "requires_selection": 0, "no_match": 0}
        linked = result.auto_linked[0]
        assert linked.billing_cycle == "2024-11"
        assert linked.bill_id == bill_id
        assert linked.transaction_count == 5
        assert linked.confidence == Confidence.EXACT
        assert linked.has_mismatch is False
        assert temp_db.get_billing_cycle(november_cycle.id).status == CycleStatus.LINKED

    def test_lone_close_candidate_auto_links_with_mismatch(
        self, reconciliation_service, november_cycle, add_bill
    ):
        add_bill("2024-11-10", "950.00")

        result = reconciliation_service.trigger_reconciliation()

        assert len(result.auto_linked) == 1
        assert result.auto_linked[0].has_mismatch is True
        assert result.auto_linked[0].amount_difference == Decimal("50.00")

    def test_several_candidates_require_selection(
        self, temp_db, reconciliation_service, november_cycle, add_bill
    ):
        close = add_bill("2024-11-10", "950.00")
        further = add_bill("2024-11-10", "1100.00")

        result = reconciliation_service.trigger_reconciliation()

        assert result.auto_linked == []
        assert len(result.requires_selection) == 1
        pending = result.requires_selection[0]
        assert pending.billing_cycle == "2024-11"
        assert [c.bill_id for c in pending.potential_bills] == [close, further]
        assert temp_db.get_billing_cycle(november_cycle.id).status == CycleStatus.AWAITING_SELECTION
        assert temp_db.get_link_for_cycle(november_cycle.id) is None

    def test_lone_candidate_beyond_tolerance_requires_selection(
        self, reconciliation_service, november_cycle, add_bill
    ):
        add_bill("2024-11-10", "800.00")

        result = reconciliation_service.trigger_reconciliation()

        assert result.auto_linked == []
        assert len(result.requires_selection) == 1

    def test_no_bills(self, temp_db, reconciliation_service, november_cycle):
        result = reconciliation_service.trigger_reconciliation()

        assert len(result.no_match) == 1
        assert result.no_match[0].billing_cycle == "2024-11"
        assert result.no_match[0].transaction_count == 5
        assert result.no_match[0].total_amount == Decimal("1000.00")
        assert temp_db.get_billing_cycle(november_cycle.id).status == CycleStatus.NO_MATCH

    def test_second_run_without_new_data_is_empty(
        self, reconciliation_service, november_cycle, add_bill
    ):
        add_bill("2024-11-10", "950.00")
        add_bill("2024-11-10", "1100.00")

        first = reconciliation_service.trigger_reconciliation()
        second = reconciliation_service.trigger_reconciliation()

        assert not first.is_empty
        assert second.is_empty

    def test_new_bill_reopens_examined_cycles(
        self, reconciliation_service, november_cycle, add_bill
    ):
        assert len(reconciliation_service.trigger_reconciliation().no_match) == 1

        bill_id = add_bill("2024-11-10", "1000.00")
        result = reconciliation_service.trigger_reconciliation()

        assert [linked.bill_id for linked in result.auto_linked] == [bill_id]

    def test_bill_links_only_one_cycle(
        self, temp_db, reconciliation_service, november_cycle, december_cycle, add_bill
    ):
        bill_id = add_bill("2024-11-20", "1000.00")

        result = reconciliation_service.trigger_reconciliation()

        # Oldest cycle first; the bill is gone by the time December is scored
        assert [linked.billing_cycle for linked in result.auto_linked] == ["2024-11"]
        assert [cycle.billing_cycle for cycle in result.no_match] == ["2024-12"]
        assert temp_db.get_link_for_bill(bill_id).billing_cycle_id == november_cycle.id

    def test_account_filter(self, reconciliation_service, november_cycle, sample_account):
        result = reconciliation_service.trigger_reconciliation(account_id=sample_account.id)

        assert result.is_empty

    def test_auto_link_stores_candidates(
        self, temp_db, reconciliation_service, november_cycle, add_bill
    ):
        bill_id = add_bill("2024-11-10", "1000.00")

        reconciliation_service.trigger_reconciliation()

        assert [c.bill_id for c in temp_db.list_cycle_candidates(november_cycle.id)] == [bill_id]

    def test_failed_match_step_stores_nothing(
        self, temp_db, reconciliation_service, november_cycle, add_bill, monkeypatch
    ):
        add_bill("2024-11-10", "1000.00")
        add_bill("2024-11-10", "990.00")

        def fail_status_update(cycle_id, status):
            raise RuntimeError("disk full")

        monkeypatch.setattr(temp_db, "update_cycle_status", fail_status_update)
        with pytest.raises(RuntimeError):
            reconciliation_service.trigger_reconciliation()
        monkeypatch.undo()

        assert temp_db.get_billing_cycle(november_cycle.id).status == CycleStatus.PENDING
        assert temp_db.list_cycle_candidates(november_cycle.id) == []


class TestListing:
    """Tests for pending and linked listings."""

    def test_pending_scores_unexamined_cycles(self, reconciliation_service, november_cycle, add_bill):
        bill_id = add_bill("2024-11-10", "1000.00")

        listing = reconciliation_service.list_pending_cycles()

        assert len(listing.cycles) == 1
        pending = listing.cycles[0]
        assert isinstance(pending, PendingCycle)
        assert pending.cycle.key == "2024-11"
        assert [c.bill_id for c in pending.potential_bills] == [bill_id]
        assert listing.summary.total_pending == 1
        assert listing.summary.total_linked == 0

    def test_pending_shows_stored_candidates(
        self, reconciliation_service, november_cycle, add_bill
    ):
        add_bill("2024-11-10", "950.00")
        add_bill("2024-11-10", "1100.00")
        reconciliation_service.trigger_reconciliation()

        listing = reconciliation_service.list_pending_cycles()

        assert listing.cycles[0].cycle.status == CycleStatus.AWAITING_SELECTION
        assert len(listing.cycles[0].potential_bills) == 2

    def test_new_bill_refreshes_examined_candidates(
        self, temp_db, reconciliation_service, november_cycle, add_bill
    ):
        add_bill("2024-11-10", "950.00")
        add_bill("2024-11-10", "1100.00")
        reconciliation_service.trigger_reconciliation()

        exact = add_bill("2024-11-10", "1000.00")

        assert temp_db.list_cycle_candidates(november_cycle.id) == []
        pending = reconciliation_service.list_pending_cycles().cycles[0]
        assert pending.cycle.status == CycleStatus.PENDING
        assert pending.potential_bills[0].bill_id == exact
        assert len(pending.potential_bills) == 3

    def test_linked_listing(
        self, reconciliation_service, category_service, november_cycle, add_bill
    ):
        category_service.create_category("Housing")
        category_id = category_service.create_category("Credit Card", parent_path="Housing")
        bill_id = add_bill("2024-11-10", "1000.00", category_id=category_id)
        reconciliation_service.trigger_reconciliation()

        listing = reconciliation_service.list_linked_cycles()

        assert len(listing.cycles) == 1
        linked = listing.cycles[0]
        assert isinstance(linked, LinkedCycle)
        assert linked.bill.id == bill_id
        assert linked.bill.original_amount == Decimal("1000.00")
        assert linked.link.linked_transaction_count == 5
        assert linked.category_name == "Housing > Credit Card"
        assert listing.summary.total_linked == 1
        assert listing.summary.months_covered == 1
        assert reconciliation_service.list_pending_cycles().cycles == []

    @pytest.mark.parametrize("limit,offset", [(0, 0), (101, 0), (10, -1)])
    def test_page_validation(self, reconciliation_service, limit, offset):
        with pytest.raises(ValidationError):
            reconciliation_service.list_pending_cycles(limit=limit, offset=offset)
        with pytest.raises(ValidationError):
            reconciliation_service.list_linked_cycles(limit=limit, offset=offset)

    def test_paging(self, reconciliation_service, november_cycle, december_cycle):
        first = reconciliation_service.list_pending_cycles(limit=1)
        second = reconciliation_service.list_pending_cycles(limit=1, offset=1)

        assert [p.cycle.key for p in first.cycles] == ["2024-12"]
        assert [p.cycle.key for p in second.cycles] == ["2024-11"]

    def test_summary(self, reconciliation_service, november_cycle, december_cycle, add_bill):
        add_bill("2024-11-10", "1000.00")
        reconciliation_service.trigger_reconciliation()

        summary = reconciliation_service.get_summary()

        assert summary.total_linked == 1
        assert summary.total_pending == 1
        assert summary.months_covered == 2


class TestManualOperations:
    """Tests for link, select and unlink."""

    def test_link(self, temp_db, reconciliation_service, card_account, november_cycle, add_bill):
        bill_id = add_bill("2024-11-12", "990.00")

        result = reconciliation_service.link(card_account.id, "2024-11", bill_id)

        assert result.billing_cycle == "2024-11"
        assert result.bill_id == bill_id
        assert result.transactions_linked == 5
        assert result.amount_difference == Decimal("10.00")
        assert result.has_mismatch is True
        assert temp_db.get_transaction(bill_id).amount == Decimal("0.00")

    def test_link_beyond_tolerance(self, reconciliation_service, card_account, november_cycle, add_bill):
        bill_id = add_bill("2024-11-10", "800.00")

        with pytest.raises(ToleranceExceededError):
            reconciliation_service.link(card_account.id, "2024-11", bill_id)

        result = reconciliation_service.link(card_account.id, "2024-11", bill_id, force=True)
        assert result.has_mismatch is True

    def test_link_unknown_cycle(self, reconciliation_service, card_account, add_bill):
        bill_id = add_bill("2024-11-10", "1000.00")

        with pytest.raises(NotFoundError):
            reconciliation_service.link(card_account.id, "2023-01", bill_id)

    def test_link_invalid_cycle_key(self, reconciliation_service, card_account):
        with pytest.raises(ValidationError):
            reconciliation_service.link(card_account.id, "November", 1)

    def test_link_twice(self, reconciliation_service, card_account, november_cycle, add_bill):
        first = add_bill("2024-11-10", "1000.00")
        second = add_bill("2024-11-11", "1000.00")
        reconciliation_service.link(card_account.id, "2024-11", first)

        with pytest.raises(ConflictError):
            reconciliation_service.link(card_account.id, "2024-11", second)

    def test_select_candidate(
        self, temp_db, reconciliation_service, card_account, november_cycle, add_bill
    ):
        add_bill("2024-11-10", "950.00")
        further = add_bill("2024-11-10", "1100.00")
        reconciliation_service.trigger_reconciliation()

        result = reconciliation_service.select(card_account.id, "2024-11", further)

        assert result.bill_id == further
        assert temp_db.get_billing_cycle(november_cycle.id).status == CycleStatus.LINKED

    def test_select_none_keeps_cycle_pending(
        self, temp_db, reconciliation_service, card_account, november_cycle, add_bill
    ):
        add_bill("2024-11-10", "950.00")
        add_bill("2024-11-10", "1100.00")
        reconciliation_service.trigger_reconciliation()

        assert reconciliation_service.select(card_account.id, "2024-11", None) is None
        assert temp_db.get_link_for_cycle(november_cycle.id) is None

    def test_select_bill_that_is_not_a_candidate(
        self, reconciliation_service, card_account, november_cycle, add_bill
    ):
        add_bill("2024-11-10", "950.00")
        add_bill("2024-11-10", "1100.00")
        far_away = add_bill("2024-06-01", "1000.00")
        reconciliation_service.trigger_reconciliation()

        with pytest.raises(NotFoundError):
            reconciliation_service.select(card_account.id, "2024-11", far_away)

    def test_unlink(self, temp_db, reconciliation_service, card_account, november_cycle, add_bill):
        bill_id = add_bill("2024-11-10", "1000.00")
        reconciliation_service.trigger_reconciliation()

        result = reconciliation_service.unlink(card_account.id, "2024-11")

        assert result.transaction_id == bill_id
        assert result.restored_amount == Decimal("1000.00")
        assert result.deleted_transaction_count == 6
        assert temp_db.get_billing_cycle(november_cycle.id).status == CycleStatus.PENDING

        # The next pass links the same pair again
        again = reconciliation_service.trigger_reconciliation()
        assert [linked.bill_id for linked in again.auto_linked] == [bill_id]

    def test_unlink_reopens_other_cycles(
        self, temp_db, reconciliation_service, card_account, november_cycle, december_cycle,
        add_bill,
    ):
        add_bill("2024-11-20", "1000.00")
        reconciliation_service.trigger_reconciliation()
        assert temp_db.get_billing_cycle(december_cycle.id).status == CycleStatus.NO_MATCH

        reconciliation_service.unlink(card_account.id, "2024-11")

        assert temp_db.get_billing_cycle(december_cycle.id).status == CycleStatus.PENDING

    def test_unlinked_cycle_keeps_its_candidates(
        self, reconciliation_service, card_account, november_cycle, add_bill
    ):
        close = add_bill("2024-11-10", "950.00")
        further = add_bill("2024-11-10", "1100.00")
        reconciliation_service.trigger_reconciliation()
        reconciliation_service.select(card_account.id, "2024-11", further)
        reconciliation_service.unlink(card_account.id, "2024-11")

        # A bill recorded while the cycle was pending is not offered until the next pass
        newcomer = add_bill("2024-11-12", "1000.00")

        pending = reconciliation_service.list_pending_cycles().cycles[0]
        assert [c.bill_id for c in pending.potential_bills] == [close, further]
        with pytest.raises(NotFoundError):
            reconciliation_service.select(card_account.id, "2024-11", newcomer)

        result = reconciliation_service.trigger_reconciliation()
        assert newcomer in [c.bill_id for c in result.requires_selection[0].potential_bills]

    def test_stored_candidates_drop_bills_linked_elsewhere(
        self, reconciliation_service, credit_card_service, card_account, november_cycle,
        add_bill, make_line,
    ):
        close = add_bill("2024-11-10", "950.00")
        further = add_bill("2024-11-10", "1100.00")
        reconciliation_service.trigger_reconciliation()
        reconciliation_service.select(card_account.id, "2024-11", further)
        reconciliation_service.unlink(card_account.id, "2024-11")

        credit_card_service.import_statement(
            card_account.id, [make_line("2024-12-10", "Padaria", "950.00")]
        )
        reconciliation_service.link(card_account.id, "2024-12", close)

        pending = reconciliation_service.list_pending_cycles().cycles
        assert [p.cycle.key for p in pending] == ["2024-11"]
        assert [c.bill_id for c in pending[0].potential_bills] == [further]

    def test_unlink_unlinked_cycle(self, reconciliation_service, card_account, november_cycle):
        with pytest.raises(UnprocessableError):
            reconciliation_service.unlink(card_account.id, "2024-11")
