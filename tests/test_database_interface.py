"""Tests for Database interface returning domain models."""

import pytest
from datetime import date, datetime
from decimal import Decimal

from capitrack.database.factories import create_sqlite_database, resolve_database_path
from capitrack.domain import entities
from capitrack.domain.errors import DuplicateKeyError, NotFoundError, ValidationError


def insert(db, fingerprint, **overrides):
    values = dict(
        fingerprint=fingerprint,
        date=date(2024, 1, 15),
        amount_original=Decimal("1000"),
        amount_normalized=Decimal("-1000"),
        cash_flow_direction=-1,
        category=entities.TransactionCategory.CAPITAL_CALL,
    )
    values.update(overrides)
    return db.insert_transaction(**values)


class TestInvestments:
    """Tests for investment storage."""

    def test_create_and_get_investment(self, temp_db):
        """Test that get_investment returns a domain Investment entity."""
        investment_id = temp_db.create_investment(name="Alpha Fund", slug="alpha-fund", investment_group="Alpha")

        investment = temp_db.get_investment(investment_id)

        assert isinstance(investment, entities.Investment)
        assert investment.name == "Alpha Fund"
        assert investment.slug == "alpha-fund"
        assert investment.status == entities.InvestmentStatus.ACTIVE
        assert isinstance(investment.created_at, datetime)

    def test_lookups(self, temp_db):
        """Test lookups by name and slug."""
        investment_id = temp_db.create_investment(name="Alpha Fund", slug="alpha-fund")

        assert temp_db.get_investment_by_name("Alpha Fund").id == investment_id
        assert temp_db.get_investment_by_slug("alpha-fund").id == investment_id
        assert temp_db.get_investment_by_name("alpha fund") is None
        assert temp_db.get_investment(999) is None

    def test_update_status(self, temp_db):
        """Test changing status and filtering by it."""
        investment_id = temp_db.create_investment(name="Alpha Fund")
        temp_db.create_investment(name="Beta Fund")

        temp_db.update_investment_status(investment_id, entities.InvestmentStatus.WRITTEN_OFF)

        written_off = temp_db.list_investments(entities.InvestmentStatus.WRITTEN_OFF)
        assert [i.name for i in written_off] == ["Alpha Fund"]

    def test_update_status_not_found(self, temp_db):
        """Test changing the status of a missing investment."""
        with pytest.raises(NotFoundError):
            temp_db.update_investment_status(999, entities.InvestmentStatus.EXITED)


class TestTransactions:
    """Tests for transaction storage."""

    def test_insert_and_get_transaction(self, temp_db):
        """Test that stored transactions come back as domain entities."""
        transaction_id = insert(
            temp_db,
            "abc",
            amount_ils=Decimal("3650.5"),
            exchange_rate_to_ils=Decimal("3.6505"),
            metadata={"סוג תנועה": "הפקדה"},
            source_file="export.csv",
        )

        txn = temp_db.get_transaction(transaction_id)

        assert isinstance(txn, entities.Transaction)
        assert txn.fingerprint == "abc"
        assert txn.amount_normalized == Decimal("-1000")
        assert txn.amount_ils == Decimal("3650.5")
        assert txn.exchange_rate_to_ils == Decimal("3.6505")
        assert txn.category == entities.TransactionCategory.CAPITAL_CALL
        assert txn.metadata == {"סוג תנועה": "הפקדה"}
        assert txn.source_file == "export.csv"
        assert temp_db.find_transaction_by_fingerprint("abc").id == transaction_id
        assert temp_db.find_transaction_by_fingerprint("missing") is None

    def test_duplicate_fingerprint(self, temp_db):
        """Test that the fingerprint is unique."""
        insert(temp_db, "abc")

        with pytest.raises(DuplicateKeyError):
            insert(temp_db, "abc", amount_original=Decimal("5"))

        assert len(temp_db.list_transactions()) == 1

    def test_row_without_date_or_amount(self, temp_db):
        """Test that forced rows keep their missing values as NULL."""
        insert(temp_db, "dated")
        txn_id = insert(temp_db, "abc", date=None, amount_original=None, amount_normalized=None, cash_flow_direction=None)

        txn = temp_db.get_transaction(txn_id)
        assert txn.date is None
        assert txn.amount_normalized is None
        assert txn.cash_flow_direction is None
        assert len(temp_db.list_transactions()) == 2
        assert [t.fingerprint for t in temp_db.list_transactions(start_date=date(2024, 1, 1))] == ["dated"]

    def test_missing_fingerprint(self, temp_db):
        """Test that a row without a fingerprint can't be stored."""
        with pytest.raises(ValidationError, match="Could not store transaction"):
            insert(temp_db, None)

    def test_list_filters(self, temp_db):
        """Test filtering by investment, category and date range."""
        investment_id = temp_db.create_investment(name="Alpha Fund")
        insert(temp_db, "a", investment_id=investment_id, date=date(2024, 1, 1))
        insert(
            temp_db,
            "b",
            investment_id=investment_id,
            date=date(2024, 6, 1),
            category=entities.TransactionCategory.DISTRIBUTION,
        )
        insert(temp_db, "c", date=date(2024, 3, 1))

        assert len(temp_db.list_transactions(investment_id=investment_id)) == 2
        assert [t.fingerprint for t in temp_db.list_transactions(unlinked=True)] == ["c"]
        distributions = temp_db.list_transactions(categories=[entities.TransactionCategory.DISTRIBUTION])
        assert [t.fingerprint for t in distributions] == ["b"]
        in_range = temp_db.list_transactions(start_date=date(2024, 1, 1), end_date=date(2024, 3, 1))
        assert sorted(t.fingerprint for t in in_range) == ["a", "c"]

    def test_update_transaction_links(self, temp_db):
        """Test back-filling an investment link."""
        investment_id = temp_db.create_investment(name="Alpha Fund")
        transaction_id = insert(temp_db, "abc")

        temp_db.update_transaction_links(transaction_id, investment_id)

        assert temp_db.get_transaction(transaction_id).investment_id == investment_id

    def test_update_links_not_found(self, temp_db):
        """Test linking a missing transaction."""
        with pytest.raises(NotFoundError):
            temp_db.update_transaction_links(999, None)


class TestCommitments:
    """Tests for commitment storage."""

    def test_upsert_commitment(self, temp_db):
        """Test creating then replacing a commitment."""
        investment_id = temp_db.create_investment(name="Alpha Fund")
        commitment_id = temp_db.upsert_commitment(
            investment_id=investment_id,
            commitment_amount=Decimal("100000"),
            currency="USD",
            commitment_date=date(2022, 1, 1),
            called_to_date=Decimal("0"),
            remaining=Decimal("100000"),
        )

        temp_db.upsert_commitment(
            investment_id=investment_id,
            commitment_amount=Decimal("100000"),
            currency="USD",
            commitment_date=date(2022, 1, 1),
            called_to_date=Decimal("30000"),
            remaining=Decimal("70000"),
            phase=entities.CommitmentPhase.BUILDING_UP,
            commitment_id=commitment_id,
        )

        commitment = temp_db.get_commitment(commitment_id)
        assert isinstance(commitment, entities.Commitment)
        assert commitment.called_to_date == Decimal("30000")
        assert commitment.remaining == Decimal("70000")
        assert commitment.phase == entities.CommitmentPhase.BUILDING_UP
        assert commitment.manual_phase is False
        assert len(temp_db.list_commitments(investment_id)) == 1

    def test_upsert_missing_commitment(self, temp_db):
        """Test replacing a commitment that doesn't exist."""
        investment_id = temp_db.create_investment(name="Alpha Fund")

        with pytest.raises(NotFoundError):
            temp_db.upsert_commitment(
                investment_id=investment_id,
                commitment_amount=Decimal("1"),
                currency="USD",
                commitment_date=date(2022, 1, 1),
                called_to_date=Decimal("0"),
                remaining=Decimal("1"),
                commitment_id=999,
            )

    def test_delete_commitment(self, temp_db, sample_commitment):
        """Test deleting a commitment."""
        temp_db.delete_commitment(sample_commitment.id)

        assert temp_db.get_commitment(sample_commitment.id) is None
        with pytest.raises(NotFoundError):
            temp_db.delete_commitment(sample_commitment.id)


class TestTypeMappings:
    """Tests for transaction type mapping storage."""

    def test_upsert_and_lookup(self, temp_db):
        """Test that lookups ignore case and spacing."""
        temp_db.upsert_type_mapping(
            entities.TransactionTypeMapping(
                raw_value="Capital  Call",
                category=entities.TransactionCategory.CAPITAL_CALL,
                directionality_rule=entities.DirectionalityRule.VARIABLE,
                cash_flow_impact=-1,
            )
        )

        mapping = temp_db.get_type_mapping("capital call")

        assert isinstance(mapping, entities.TransactionTypeMapping)
        assert mapping.category == entities.TransactionCategory.CAPITAL_CALL
        assert mapping.cash_flow_impact == -1

    def test_upsert_replaces(self, temp_db):
        """Test replacing an existing mapping."""
        for category in (entities.TransactionCategory.FEE, entities.TransactionCategory.INCOME):
            temp_db.upsert_type_mapping(
                entities.TransactionTypeMapping(
                    raw_value="Other",
                    category=category,
                    directionality_rule=entities.DirectionalityRule.AS_IS,
                    cash_flow_impact=None,
                )
            )

        mappings = temp_db.list_type_mappings()
        assert len(mappings) == 1
        assert mappings[0].category == entities.TransactionCategory.INCOME

    def test_delete_missing_mapping(self, temp_db):
        """Test deleting a mapping that doesn't exist."""
        with pytest.raises(NotFoundError):
            temp_db.delete_type_mapping("Nothing")


def test_factory_uses_environment(tmp_path, monkeypatch):
    """Test that the factory honours CAPITRACK_DB_PATH."""
    db_path = tmp_path / "env.db"
    monkeypatch.setenv("CAPITRACK_DB_PATH", str(db_path))

    db = create_sqlite_database()
    db.initialize_schema()
    try:
        db.create_investment(name="Alpha Fund")
    finally:
        db.disconnect()

    assert db_path.exists()


def test_resolve_database_path_creates_parent(tmp_path, monkeypatch):
    """Test that an explicit path wins and its directory is created."""
    monkeypatch.setenv("CAPITRACK_DB_PATH", str(tmp_path / "ignored.db"))
    target = tmp_path / "nested" / "ledger.db"

    assert resolve_database_path(str(target)) == target
    assert target.parent.is_dir()
