"""Shared pytest fixtures for cardrecon tests."""

import tempfile
import os
from datetime import date
from decimal import Decimal
from pathlib import Path
import pytest

from cardrecon.config import DEFAULT_CONFIG
from cardrecon.database.factories import create_sqlite_database
from cardrecon.domain.account import AccountService
from cardrecon.domain.category import CategoryService
from cardrecon.domain.credit_card import CreditCardService
from cardrecon.domain.entities import CreditCardLineItem
from cardrecon.domain.expansion import ExpansionService
from cardrecon.domain.reconciliation import ReconciliationService
from cardrecon.domain.statement import is_payment_marker, parse_installment
from cardrecon.domain.transaction import TransactionService


def _make_line(day: str, description: str, amount: str) -> CreditCardLineItem:
    """Build a statement line the way the parser would."""
    current, total = parse_installment(description)
    return CreditCardLineItem(
        date=date.fromisoformat(day),
        description=description,
        amount=Decimal(amount),
        installment_current=current,
        installment_total=total,
        is_payment_marker=is_payment_marker(description),
    )


# Statement of the 2024-11 cycle: 1000.00 of spending, one refund, one marker
_NOVEMBER_LINES = [
    _make_line("2024-10-15", "Supermercado Extra", "350.00"),
    _make_line("2024-10-20", "Loja Online - Parcela 2/6", "150.00"),
    _make_line("2024-10-28", "Restaurante Sabor", "100.00"),
    _make_line("2024-11-02", "Estorno Loja Online", "-20.00"),
    _make_line("2024-11-05", "Farmacia Central", "380.00"),
    _make_line("2024-11-10", "Pagamento recebido", "-1000.00"),
]


@pytest.fixture
def make_line():
    """Return the statement line builder."""
    return _make_line


@pytest.fixture
def november_lines():
    """Lines of the 2024-11 statement."""
    return list(_NOVEMBER_LINES)


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    # Cleanup
    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def config():
    """Default reconciliation thresholds, independent of the environment."""
    return DEFAULT_CONFIG


@pytest.fixture
def account_service(temp_db):
    """Create an AccountService with a temporary database."""
    return AccountService(temp_db)


@pytest.fixture
def category_service(temp_db):
    """Create a CategoryService with a temporary database."""
    return CategoryService(temp_db)


@pytest.fixture
def transaction_service(temp_db):
    """Create a TransactionService with a temporary database."""
    return TransactionService(temp_db)


@pytest.fixture
def expansion_service(temp_db, config):
    """Create an ExpansionService with a temporary database."""
    return ExpansionService(temp_db, config)


@pytest.fixture
def credit_card_service(temp_db, config):
    """Create a CreditCardService with a temporary database."""
    return CreditCardService(temp_db, config)


@pytest.fixture
def reconciliation_service(temp_db, config):
    """Create a ReconciliationService with a temporary database."""
    return ReconciliationService(temp_db, config)


@pytest.fixture
def sample_account(account_service):
    """Create a sample account for testing."""
    account_id = account_service.create_account(name="Test Account", bank_name="Test Bank")
    return account_service.get_account(account_id)


@pytest.fixture
def card_account(account_service):
    """Create the credit card account statements are imported into."""
    account_id = account_service.create_account(name="Nubank Card", bank_name="Nubank")
    return account_service.get_account(account_id)


@pytest.fixture
def checking_account(account_service):
    """Create the checking account bill payments leave from."""
    account_id = account_service.create_account(name="Checking", bank_name="Itau")
    return account_service.get_account(account_id)


@pytest.fixture
def add_bill(transaction_service, checking_account):
    """Return a helper that records a bill payment from the checking account."""

    def _add_bill(day: str, amount: str, description: str = "Nubank bill", category_id=None):
        return transaction_service.record_bill_payment(
            account_id=checking_account.id,
            date=date.fromisoformat(day),
            amount=Decimal(amount),
            description=description,
            category_id=category_id,
        )

    return _add_bill


@pytest.fixture
def november_cycle(credit_card_service, card_account):
    """Store the 2024-11 statement as a pending cycle."""
    return credit_card_service.import_statement(card_account.id, _NOVEMBER_LINES)


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()


@pytest.fixture
def fixtures_dir():
    """Return the path to the test fixtures directory."""
    return Path(__file__).parent / "fixtures"
