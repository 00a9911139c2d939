"""Shared pytest fixtures for capitrack tests."""

import tempfile
import os
from datetime import date
from decimal import Decimal
import pytest

from capitrack.database.factories import create_sqlite_database
from capitrack.domain.commitment import CommitmentService
from capitrack.domain.entities import (
    NormalizedTransaction,
    PreparedTransaction,
    TransactionCategory,
)
from capitrack.domain.fingerprint import Fingerprinter
from capitrack.domain.investment import InvestmentService
from capitrack.domain.normalize import normalize_row
from capitrack.domain.type_mapping import TypeMappingService


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    # Create a temporary file for the database
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    # Create database
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
def investment_service(temp_db):
    """Create an InvestmentService with a temporary database."""
    return InvestmentService(temp_db)


@pytest.fixture
def commitment_service(temp_db):
    """Create a CommitmentService with a temporary database."""
    return CommitmentService(temp_db)


@pytest.fixture
def mapping_service(temp_db):
    """Create a TypeMappingService with a temporary database."""
    return TypeMappingService(temp_db)


@pytest.fixture
def default_mappings(mapping_service):
    """Seed the default transaction type mappings."""
    mapping_service.seed_defaults()
    return mapping_service.registry()


@pytest.fixture
def sample_investment(investment_service):
    """Create a sample investment for testing."""
    investment_id = investment_service.create_investment(name="Faro-Point FRG-X", investment_group="Faro")
    return investment_service.get_investment(investment_id)


@pytest.fixture
def sample_commitment(commitment_service, sample_investment):
    """Create a 100,000 USD commitment on the sample investment."""
    commitment_id = commitment_service.create_commitment(
        investment_id=sample_investment.id,
        commitment_amount=Decimal("100000"),
        currency="USD",
        commitment_date=date(2022, 1, 1),
    )
    return commitment_service.get_commitment(commitment_id)


@pytest.fixture
def make_prepared(default_mappings):
    """Build prepared transactions from mapped-row keyword arguments."""
    fingerprinter = Fingerprinter()

    def _make(**fields) -> PreparedTransaction:
        row = {
            "date": "2024-01-15",
            "amount": "1000",
            "transaction_type": "Capital Call",
            "currency": "USD",
            "counterparty": "Faro",
            "investment": "Faro-Point FRG-X",
        }
        row.update(fields)
        normalized = normalize_row(row, default_mappings)
        return PreparedTransaction(
            normalized=normalized,
            fingerprint=fingerprinter.fingerprint(normalized),
            metadata=dict(row),
        )

    return _make


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()


@pytest.fixture
def make_normalized():
    """Build NormalizedTransaction objects with sensible defaults."""

    def _make(**overrides) -> NormalizedTransaction:
        values = {
            "date": date(2024, 1, 15),
            "amount_original": Decimal("1000"),
            "amount_normalized": Decimal("-1000"),
            "category": TransactionCategory.CAPITAL_CALL,
            "cash_flow_direction": -1,
            "transaction_type_raw": "Capital Call",
            "original_currency": "USD",
            "counterparty": "Faro",
            "investment_name": "Faro-Point FRG-X",
            "investment_slug": "faro-point-frg-x",
        }
        values.update(overrides)
        return NormalizedTransaction(**values)

    return _make


@pytest.fixture
def add_transaction(temp_db):
    """Store a transaction directly, bypassing the import pipeline."""
    counter = {"n": 0}

    def _add(
        investment_id,
        amount,
        category=TransactionCategory.CAPITAL_CALL,
        txn_date=date(2024, 1, 15),
        currency="USD",
        description=None,
    ) -> int:
        counter["n"] += 1
        amount = Decimal(str(amount))
        return temp_db.insert_transaction(
            fingerprint=f"test-{counter['n']}",
            date=txn_date,
            amount_original=amount,
            amount_normalized=amount,
            cash_flow_direction=-1 if amount < 0 else 1,
            category=category,
            description=description,
            original_currency=currency,
            investment_id=investment_id,
        )

    return _add
