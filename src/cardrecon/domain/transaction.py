"""Transaction domain service."""

import uuid
from typing import Optional
from datetime import date
from decimal import Decimal
from cardrecon.database.base import Database
from cardrecon.domain.entities import Transaction as TransactionEntity, TransactionType
from cardrecon.domain.errors import (
    NotFoundError,
    ValidationError,
    account_not_found,
    category_not_found,
)
from cardrecon.logger import get_logger
from cardrecon.utils.amount_parser import quantize_money

logger = get_logger(__name__)


class TransactionService:
    """Service for ledger transactions, aggregate bill payments included."""

    def __init__(self, db: Database):
        """Initialize transaction service.

        Args:
            db: Database instance
        """
        self.db = db

    def record_bill_payment(
        self,
        account_id: int,
        date: date,
        amount: Decimal,
        description: Optional[str] = None,
        category_id: Optional[int] = None,
        unique_id: Optional[str] = None,
    ) -> int:
        """Record an aggregate credit-card bill payment.

        A new bill can match cycles that were already examined, so those
        cycles go back to pending.

        Args:
            account_id: Account the payment left from
            date: Payment date
            amount: Paid amount, must be positive
            description: Optional description
            category_id: Optional category ID
            unique_id: Optional external ID; generated when omitted

        Returns:
            Transaction ID

        Raises:
            ValidationError: If amount is not positive
            NotFoundError: If account or category doesn't exist
        """
        amount = quantize_money(amount)
        if amount <= 0:
            raise ValidationError(f"Bill payment amount must be positive, got {amount}")

        if self.db.get_account(account_id) is None:
            raise NotFoundError(account_not_found(account_id))

        if category_id is not None and self.db.get_category(category_id) is None:
            raise NotFoundError(category_not_found(category_id))

        if unique_id is None:
            unique_id = f"bill:{uuid.uuid4().hex}"

        with self.db.unit_of_work():
            bill_id = self.db.create_transaction(
                unique_id=unique_id,
                account_id=account_id,
                date=date,
                amount=amount,
                transaction_type=TransactionType.EXPENSE,
                description=description,
                category_id=category_id,
                is_credit_card_payment=True,
            )
            reopened = self.db.reset_examined_cycles()

        logger.info(
            "bill_payment_recorded",
            bill_id=bill_id,
            amount=str(amount),
            reopened_cycles=reopened,
        )
        return bill_id

    def get_transaction(self, transaction_id: int) -> Optional[TransactionEntity]:
        """Get transaction by ID.

        Args:
            transaction_id: Transaction ID

        Returns:
            Transaction entity or None if not found
        """
        return self.db.get_transaction(transaction_id)

    def list_transactions(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        category_path: Optional[str] = None,
        account_id: Optional[int] = None,
        billing_cycle: Optional[str] = None,
        credit_card_payment_id: Optional[int] = None,
        include_hidden: bool = False,
    ) -> list[TransactionEntity]:
        """List transactions with filters.

        Args:
            start_date: Optional start date filter
            end_date: Optional end date filter
            category_path: Optional category path filter
            account_id: Optional account ID filter
            billing_cycle: Only itemized rows of this cycle key
            credit_card_payment_id: Only itemized rows of this bill
            include_hidden: Include zeroed bills and payment marker rows

        Returns:
            List of transaction entities
        """
        category_id = None
        if category_path is not None:
            category = self.db.get_category_by_path(category_path)
            if category is None:
                # Category doesn't exist, return empty list
                return []
            category_id = category.id

        return self.db.list_transactions(
            start_date=start_date,
            end_date=end_date,
            account_id=account_id,
            category_id=category_id,
            billing_cycle=billing_cycle,
            credit_card_payment_id=credit_card_payment_id,
            include_hidden=include_hidden,
        )

    def list_bill_payments(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        include_expanded: bool = False,
    ) -> list[TransactionEntity]:
        """List aggregate bill payments, newest first."""
        return self.db.list_bill_payments(
            start_date=start_date, end_date=end_date, include_expanded=include_expanded
        )
