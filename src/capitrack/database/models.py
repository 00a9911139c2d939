"""SQLAlchemy models for capitrack database."""

from datetime import datetime, UTC
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    ForeignKey,
    DateTime,
    Date,
    Numeric,
    Boolean,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()

# Money columns carry four decimals so fingerprinted amounts round-trip.
MONEY = Numeric(18, 4)
RATE = Numeric(18, 8)


class Investment(Base):
    """Investment model."""

    __tablename__ = "investments"

    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True, nullable=False)
    slug = Column(String, unique=True, nullable=True)
    investment_group = Column(String, nullable=True)
    investment_type = Column(String, nullable=True)
    product_type = Column(String, nullable=True)
    status = Column(String, default="active", nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # Relationships
    commitments = relationship("Commitment", back_populates="investment")
    transactions = relationship("Transaction", back_populates="investment")


class Commitment(Base):
    """Capital commitment model."""

    __tablename__ = "commitments"

    id = Column(Integer, primary_key=True)
    investment_id = Column(Integer, ForeignKey("investments.id"), nullable=False)
    commitment_amount = Column(MONEY, nullable=False)
    currency = Column(String, nullable=False)
    commitment_date = Column(Date, nullable=False)
    called_to_date = Column(MONEY, default=0, nullable=False)
    remaining = Column(MONEY, nullable=False)
    phase = Column(String, nullable=True)
    manual_phase = Column(Boolean, default=False, nullable=False)
    notes = Column(String, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # Relationships
    investment = relationship("Investment", back_populates="commitments")
    transactions = relationship("Transaction", back_populates="commitment")


class Transaction(Base):
    """Transaction model."""

    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True)
    fingerprint = Column(String, unique=True, nullable=False)
    date = Column(Date, nullable=True, index=True)
    description = Column(String, nullable=True)
    transaction_type_raw = Column(String, nullable=True)
    category = Column(String, nullable=True, index=True)
    cash_flow_direction = Column(Integer, nullable=True)
    amount_original = Column(MONEY, nullable=True)
    amount_normalized = Column(MONEY, nullable=True)
    original_currency = Column(String, nullable=True)
    amount_usd = Column(MONEY, nullable=True)
    amount_ils = Column(MONEY, nullable=True)
    exchange_rate_to_ils = Column(RATE, nullable=True)
    investment_id = Column(Integer, ForeignKey("investments.id"), nullable=True, index=True)
    commitment_id = Column(Integer, ForeignKey("commitments.id"), nullable=True)
    counterparty = Column(String, nullable=True)
    metadata_json = Column("metadata", Text, nullable=True)
    source_file = Column(String, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # Relationships
    investment = relationship("Investment", back_populates="transactions")
    commitment = relationship("Commitment", back_populates="transactions")


class TransactionTypeMapping(Base):
    """Raw transaction type label to category/directionality mapping."""

    __tablename__ = "transaction_type_mappings"

    id = Column(Integer, primary_key=True)
    raw_value = Column(String, nullable=False)
    lookup_key = Column(String, unique=True, nullable=False)
    category = Column(String, nullable=False)
    directionality_rule = Column(String, nullable=False)
    cash_flow_impact = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
