"""Tests for bill matching."""

import pytest
from dataclasses import replace
from decimal import Decimal

from cardrecon.domain.billing_cycle import build_cycle_totals
from cardrecon.domain.entities import Confidence
from cardrecon.domain.matching import (
    MatchScorer,
    classify_confidence,
    difference_percent,
    exceeds_tolerance,
    has_mismatch,
    score_candidate,
)


class TestDifferencePercent:
    """Tests for the percentage difference."""

    def test_relative_to_bill(self):
        assert difference_percent(Decimal("50.00"), Decimal("950.00")) == Decimal("5.26")

    def test_sign_is_ignored(self):
        assert difference_percent(Decimal("-100.00"), Decimal("1100.00")) == Decimal("9.09")

    def test_both_zero(self):
        assert difference_percent(Decimal("0"), Decimal("0")) == Decimal("0.00")

    def test_zero_bill(self):
        assert difference_percent(Decimal("10.00"), Decimal("0")) == Decimal("100.00")


class TestClassifyConfidence:
    """Tests for confidence tiers."""

    def test_exact(self, config):
        assert classify_confidence(Decimal("0.00"), Decimal("0.00"), config) == Confidence.EXACT
        assert classify_confidence(Decimal("0.005"), Decimal("0.00"), config) == Confidence.EXACT

    def test_high(self, config):
        assert classify_confidence(Decimal("20.00"), Decimal("2.00"), config) == Confidence.HIGH

    def test_medium(self, config):
        assert classify_confidence(Decimal("50.00"), Decimal("5.26"), config) == Confidence.MEDIUM
        assert classify_confidence(Decimal("100.00"), Decimal("10.00"), config) == Confidence.MEDIUM

    def test_low(self, config):
        assert classify_confidence(Decimal("100.10"), Decimal("10.01"), config) == Confidence.LOW

    def test_thresholds_come_from_config(self, config):
        strict = replace(config, high_percent=Decimal("1"), medium_percent=Decimal("5"))
        assert classify_confidence(Decimal("50.00"), Decimal("5.26"), strict) == Confidence.LOW


def test_mismatch_and_tolerance(config):
    """Mismatch flags any difference; tolerance rejects large ones."""
    assert not has_mismatch(Decimal("0.00"), config)
    assert not has_mismatch(Decimal("0.01"), config)
    assert has_mismatch(Decimal("-0.02"), config)
    assert not exceeds_tolerance(Decimal("10.00"), config)
    assert exceeds_tolerance(Decimal("10.01"), config)


class TestScoreCandidate:
    """Tests for candidate scores."""

    def test_perfect(self, config):
        assert score_candidate(Decimal("0"), 0, config) == 1.0

    def test_weighted(self, config):
        assert score_candidate(Decimal("5.26"), 2, config) == pytest.approx(0.8964)

    def test_floor_at_zero(self, config):
        assert score_candidate(Decimal("60"), 25, config) == 0.0


class TestMatchScorer:
    """Tests for candidate lookup against recorded bills."""

    def test_ranks_candidates(self, temp_db, config, november_cycle, add_bill):
        exact = add_bill("2024-11-10", "1000.00")
        close = add_bill("2024-11-08", "950.00")
        over = add_bill("2024-11-12", "1100.00")

        candidates = MatchScorer(temp_db, config).find_candidates(november_cycle)

        assert [c.bill_id for c in candidates] == [exact, close, over]
        assert candidates[0].confidence == Confidence.EXACT
        assert candidates[0].score == 1.0
        assert candidates[1].confidence == Confidence.MEDIUM
        assert candidates[1].amount_difference == Decimal("50.00")
        assert candidates[1].difference_percent == Decimal("5.26")
        assert candidates[1].days_difference == 2
        assert candidates[2].amount_difference == Decimal("-100.00")

    def test_excludes_bills_outside_window(self, temp_db, config, november_cycle, add_bill):
        add_bill("2024-12-15", "1000.00")
        add_bill("2024-10-10", "1000.00")

        assert MatchScorer(temp_db, config).find_candidates(november_cycle) == []

    def test_excludes_bills_far_off_in_amount(self, temp_db, config, november_cycle, add_bill):
        add_bill("2024-11-10", "400.00")

        assert MatchScorer(temp_db, config).find_candidates(november_cycle) == []

    def test_excludes_expanded_bills(
        self, temp_db, config, november_cycle, add_bill, expansion_service
    ):
        taken = add_bill("2024-11-10", "1000.00")
        expansion_service.expand(november_cycle, taken)

        assert MatchScorer(temp_db, config).find_candidates(november_cycle) == []

    def test_tie_prefers_most_recent_bill(self, temp_db, config, november_cycle, add_bill):
        earlier = add_bill("2024-11-08", "1000.00")
        later = add_bill("2024-11-12", "1000.00")

        candidates = MatchScorer(temp_db, config).find_candidates(november_cycle)

        assert [c.bill_id for c in candidates] == [later, earlier]

    def test_caps_candidate_count(self, temp_db, config, november_cycle, add_bill):
        for day in range(1, 8):
            add_bill(f"2024-11-{day:02d}", "1000.00")

        assert len(MatchScorer(temp_db, config).find_candidates(november_cycle)) == 5
        limited = replace(config, max_candidates=2)
        assert len(MatchScorer(temp_db, limited).find_candidates(november_cycle)) == 2

    def test_candidate_category_path(
        self, temp_db, config, november_cycle, add_bill, category_service
    ):
        category_service.create_category("Housing")
        category_id = category_service.create_category("Credit Card", parent_path="Housing")
        add_bill("2024-11-10", "1000.00", category_id=category_id)

        candidates = MatchScorer(temp_db, config).find_candidates(november_cycle)

        assert candidates[0].category_name == "Housing > Credit Card"

    def test_candidates_for_totals(self, temp_db, config, november_lines, add_bill):
        bill_id = add_bill("2024-11-09", "1000.00")

        candidates = MatchScorer(temp_db, config).candidates_for_totals(
            build_cycle_totals(november_lines)
        )

        assert [c.bill_id for c in candidates] == [bill_id]
        assert candidates[0].days_difference == 1
