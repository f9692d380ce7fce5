"""SQLAlchemy models for cardrecon database."""

from datetime import datetime, UTC
from sqlalchemy import (
    Column,
    Integer,
    String,
    ForeignKey,
    DateTime,
    Date,
    Numeric,
    Boolean,
    Float,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()


class Account(Base):
    """Account model."""

    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True, nullable=False)
    bank_name = Column(String, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # Relationships
    transactions = relationship("Transaction", back_populates="account")
    billing_cycles = relationship("BillingCycle", back_populates="account")


class Category(Base):
    """Category model with hierarchical structure."""

    __tablename__ = "categories"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    parent_id = Column(Integer, ForeignKey("categories.id"), nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # Relationships
    parent = relationship("Category", remote_side=[id], backref="children")
    transactions = relationship("Transaction", back_populates="category")


class Transaction(Base):
    """Ledger transaction model.

    Holds both aggregate bill payments (is_credit_card_payment) and the
    itemized rows an expansion creates (credit_card_payment_id set).
    """

    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True)
    unique_id = Column(String, nullable=False)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    date = Column(Date, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    transaction_type = Column(String, nullable=False, default="expense")
    description = Column(String, nullable=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True)
    notes = Column(String, nullable=True)
    imported_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # Aggregate bill state
    is_credit_card_payment = Column(Boolean, default=False, nullable=False)
    is_hidden = Column(Boolean, default=False, nullable=False)
    original_amount = Column(Numeric(12, 2), nullable=True)
    expanded_at = Column(DateTime, nullable=True)
    linked_transaction_count = Column(Integer, default=0, nullable=False)

    # Itemized row tags
    billing_cycle = Column(String, nullable=True, index=True)
    credit_card_payment_id = Column(
        Integer, ForeignKey("transactions.id"), nullable=True, index=True
    )
    installment_current = Column(Integer, nullable=True)
    installment_total = Column(Integer, nullable=True)

    __table_args__ = (UniqueConstraint("account_id", "unique_id", name="uq_account_unique_id"),)

    # Relationships
    account = relationship("Account", back_populates="transactions")
    category = relationship("Category", back_populates="transactions")


class BillingCycle(Base):
    """Billing cycle model, one per account and YYYY-MM key."""

    __tablename__ = "billing_cycles"

    id = Column(Integer, primary_key=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    cycle_key = Column(String(7), nullable=False)
    status = Column(String, nullable=False, default="pending")
    reference_date = Column(Date, nullable=True)
    total_amount = Column(Numeric(12, 2), nullable=False)
    transaction_count = Column(Integer, nullable=False)
    oldest_date = Column(Date, nullable=True)
    newest_date = Column(Date, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    __table_args__ = (UniqueConstraint("account_id", "cycle_key", name="uq_account_cycle_key"),)

    # Relationships
    account = relationship("Account", back_populates="billing_cycles")
    lines = relationship(
        "StatementLine",
        back_populates="cycle",
        cascade="all, delete-orphan",
        order_by="StatementLine.position",
    )
    candidates = relationship(
        "CycleCandidate",
        back_populates="cycle",
        cascade="all, delete-orphan",
        order_by="CycleCandidate.rank",
    )


class StatementLine(Base):
    """Normalized statement line owned by a billing cycle."""

    __tablename__ = "statement_lines"

    id = Column(Integer, primary_key=True)
    cycle_id = Column(Integer, ForeignKey("billing_cycles.id"), nullable=False)
    position = Column(Integer, nullable=False)
    date = Column(Date, nullable=False)
    description = Column(String, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    installment_current = Column(Integer, nullable=True)
    installment_total = Column(Integer, nullable=True)
    is_payment_marker = Column(Boolean, default=False, nullable=False)

    # Relationships
    cycle = relationship("BillingCycle", back_populates="lines")


class CycleCandidate(Base):
    """Last computed candidate bill for a billing cycle."""

    __tablename__ = "cycle_candidates"

    id = Column(Integer, primary_key=True)
    cycle_id = Column(Integer, ForeignKey("billing_cycles.id"), nullable=False)
    rank = Column(Integer, nullable=False)
    bill_transaction_id = Column(Integer, ForeignKey("transactions.id"), nullable=False)
    bill_date = Column(Date, nullable=False)
    bill_description = Column(String, nullable=True)
    bill_amount = Column(Numeric(12, 2), nullable=False)
    category_name = Column(String, nullable=True)
    confidence = Column(String, nullable=False)
    amount_difference = Column(Numeric(12, 2), nullable=False)
    difference_percent = Column(Numeric(9, 2), nullable=False)
    days_difference = Column(Integer, nullable=False)
    score = Column(Float, nullable=False)

    # Relationships
    cycle = relationship("BillingCycle", back_populates="candidates")


class CreditCardLink(Base):
    """Active link between a billing cycle and the bill payment it expands."""

    __tablename__ = "credit_card_links"

    id = Column(Integer, primary_key=True)
    billing_cycle_id = Column(Integer, ForeignKey("billing_cycles.id"), nullable=False)
    bill_transaction_id = Column(Integer, ForeignKey("transactions.id"), nullable=False)
    amount_difference = Column(Numeric(12, 2), nullable=False)
    has_mismatch = Column(Boolean, default=False, nullable=False)
    linked_transaction_count = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # One bill backs at most one cycle and vice versa
    __table_args__ = (
        UniqueConstraint("billing_cycle_id", name="uq_link_billing_cycle"),
        UniqueConstraint("bill_transaction_id", name="uq_link_bill_transaction"),
    )


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
