"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic, so schema changes stay out of the
reconciliation services.
"""

from decimal import Decimal

from cardrecon.domain import entities as domain
from cardrecon.database.models import (
    Account as ORMAccount,
    Category as ORMCategory,
    Transaction as ORMTransaction,
    BillingCycle as ORMBillingCycle,
    StatementLine as ORMStatementLine,
    CycleCandidate as ORMCycleCandidate,
    CreditCardLink as ORMCreditCardLink,
)


def _money(value) -> Decimal:
    """Normalize numeric column values to Decimal."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def account_to_domain(orm_account: ORMAccount) -> domain.Account:
    """Convert SQLAlchemy Account model to domain Account entity."""
    return domain.Account(
        id=orm_account.id,
        name=orm_account.name,
        bank_name=orm_account.bank_name,
        created_at=orm_account.created_at,
    )


def category_to_domain(orm_category: ORMCategory) -> domain.Category:
    """Convert SQLAlchemy Category model to domain Category entity."""
    return domain.Category(
        id=orm_category.id,
        name=orm_category.name,
        parent_id=orm_category.parent_id,
        created_at=orm_category.created_at,
    )


def transaction_to_domain(orm_transaction: ORMTransaction) -> domain.Transaction:
    """Convert SQLAlchemy Transaction model to domain Transaction entity."""
    original_amount = orm_transaction.original_amount
    return domain.Transaction(
        id=orm_transaction.id,
        unique_id=orm_transaction.unique_id,
        account_id=orm_transaction.account_id,
        date=orm_transaction.date,
        amount=_money(orm_transaction.amount),
        transaction_type=domain.TransactionType(orm_transaction.transaction_type),
        description=orm_transaction.description,
        category_id=orm_transaction.category_id,
        notes=orm_transaction.notes,
        imported_at=orm_transaction.imported_at,
        is_credit_card_payment=bool(orm_transaction.is_credit_card_payment),
        is_hidden=bool(orm_transaction.is_hidden),
        original_amount=_money(original_amount) if original_amount is not None else None,
        expanded_at=orm_transaction.expanded_at,
        linked_transaction_count=orm_transaction.linked_transaction_count or 0,
        billing_cycle=orm_transaction.billing_cycle,
        credit_card_payment_id=orm_transaction.credit_card_payment_id,
        installment_current=orm_transaction.installment_current,
        installment_total=orm_transaction.installment_total,
    )


def billing_cycle_to_domain(orm_cycle: ORMBillingCycle) -> domain.BillingCycle:
    """Convert SQLAlchemy BillingCycle model to domain BillingCycle entity."""
    return domain.BillingCycle(
        id=orm_cycle.id,
        account_id=orm_cycle.account_id,
        key=orm_cycle.cycle_key,
        status=domain.CycleStatus(orm_cycle.status),
        reference_date=orm_cycle.reference_date,
        total_amount=_money(orm_cycle.total_amount),
        transaction_count=orm_cycle.transaction_count,
        oldest_date=orm_cycle.oldest_date,
        newest_date=orm_cycle.newest_date,
        created_at=orm_cycle.created_at,
    )


def statement_line_to_domain(orm_line: ORMStatementLine) -> domain.CreditCardLineItem:
    """Convert SQLAlchemy StatementLine model to domain line item."""
    return domain.CreditCardLineItem(
        date=orm_line.date,
        description=orm_line.description,
        amount=_money(orm_line.amount),
        installment_current=orm_line.installment_current,
        installment_total=orm_line.installment_total,
        is_payment_marker=bool(orm_line.is_payment_marker),
    )


def candidate_to_domain(orm_candidate: ORMCycleCandidate) -> domain.PotentialMatch:
    """Convert SQLAlchemy CycleCandidate model to domain PotentialMatch."""
    return domain.PotentialMatch(
        bill_id=orm_candidate.bill_transaction_id,
        bill_date=orm_candidate.bill_date,
        bill_description=orm_candidate.bill_description,
        bill_amount=_money(orm_candidate.bill_amount),
        category_name=orm_candidate.category_name,
        confidence=domain.Confidence(orm_candidate.confidence),
        amount_difference=_money(orm_candidate.amount_difference),
        difference_percent=_money(orm_candidate.difference_percent),
        days_difference=orm_candidate.days_difference,
        score=orm_candidate.score,
    )


def link_to_domain(orm_link: ORMCreditCardLink) -> domain.Link:
    """Convert SQLAlchemy CreditCardLink model to domain Link entity."""
    return domain.Link(
        id=orm_link.id,
        billing_cycle_id=orm_link.billing_cycle_id,
        bill_transaction_id=orm_link.bill_transaction_id,
        amount_difference=_money(orm_link.amount_difference),
        has_mismatch=bool(orm_link.has_mismatch),
        linked_transaction_count=orm_link.linked_transaction_count,
        created_at=orm_link.created_at,
    )
