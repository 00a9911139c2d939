"""Tests for the investment service."""

import pytest
from datetime import date
from decimal import Decimal

from capitrack.domain.entities import InvestmentStatus, TransactionCategory
from capitrack.domain.errors import ConflictError, NotFoundError, ValidationError


def test_create_investment(investment_service):
    """Test creating an investment."""
    investment_id = investment_service.create_investment(
        "  Faro-Point   FRG-X ", investment_group="Faro", product_type="Private Equity"
    )
    investment = investment_service.get_investment(investment_id)

    assert investment.name == "Faro-Point FRG-X"
    assert investment.slug == "faro-point-frg-x"
    assert investment.investment_group == "Faro"
    assert investment.product_type == "Private Equity"
    assert investment.status == InvestmentStatus.ACTIVE


def test_create_investment_empty_name(investment_service):
    """Test that a blank name is rejected."""
    with pytest.raises(ValidationError):
        investment_service.create_investment("   ")


def test_create_investment_duplicate_name(investment_service, sample_investment):
    """Test that names are unique."""
    with pytest.raises(ConflictError):
        investment_service.create_investment("Faro-Point FRG-X")


def test_create_investment_slug_clash(investment_service, sample_investment):
    """Test that names sharing a slug are rejected."""
    with pytest.raises(ConflictError, match="same identity"):
        investment_service.create_investment("faro point frg x")


def test_create_investment_unknown_status(investment_service):
    """Test status validation."""
    with pytest.raises(ValidationError, match="Unknown status"):
        investment_service.create_investment("Alpha Fund", status="dormant")


def test_get_investment_not_found(investment_service):
    """Test getting an investment that doesn't exist."""
    with pytest.raises(NotFoundError):
        investment_service.get_investment(999)


def test_resolve_investment(investment_service, sample_investment):
    """Test resolving by ID, slug and name."""
    assert investment_service.resolve_investment(sample_investment.id).id == sample_investment.id
    assert investment_service.resolve_investment(str(sample_investment.id)).id == sample_investment.id
    assert investment_service.resolve_investment("faro-point-frg-x").id == sample_investment.id
    assert investment_service.resolve_investment("Faro-Point FRG-X").id == sample_investment.id


def test_resolve_investment_not_found(investment_service, sample_investment):
    """Test resolving an unknown investment."""
    with pytest.raises(NotFoundError):
        investment_service.resolve_investment("Nope Fund")


def test_list_and_update_status(investment_service):
    """Test status changes and filtering."""
    alpha_id = investment_service.create_investment("Alpha Fund")
    investment_service.create_investment("Beta Fund")

    updated = investment_service.update_status(alpha_id, "exited")

    assert updated.status == InvestmentStatus.EXITED
    assert [i.name for i in investment_service.list_investments("active")] == ["Beta Fund"]
    assert [i.name for i in investment_service.list_investments(InvestmentStatus.EXITED)] == ["Alpha Fund"]
    assert len(investment_service.list_investments()) == 2


def test_update_status_not_found(investment_service):
    """Test updating an unknown investment."""
    with pytest.raises(NotFoundError):
        investment_service.update_status(999, "exited")


def test_discover_investments(investment_service, sample_investment):
    """Test discovering investments from mapped rows."""
    rows = [
        {"investment": "Faro-Point FRG-X", "counterparty": "Faro"},
        {"investment": "Alpha  Fund", "counterparty": "Alpha Partners", "product_type": "Venture"},
        {"investment": "alpha fund", "counterparty": "Other"},
        {"investment": None},
        {"investment": "   "},
    ]

    result = investment_service.discover_investments(rows)

    assert [i.id for i in result.existing] == [sample_investment.id]
    assert len(result.new) == 1
    candidate = result.new[0]
    assert candidate.name == "Alpha Fund"
    assert candidate.counterparty == "Alpha Partners"
    assert candidate.product_type == "Venture"
    assert candidate.slug == "alpha-fund"


def test_create_investments_from_candidates(investment_service):
    """Test creating discovered investments."""
    result = investment_service.discover_investments(
        [{"investment": "Alpha Fund", "counterparty": "Alpha Partners"}]
    )

    ids = investment_service.create_investments(result.new)

    investment = investment_service.get_investment(ids[0])
    assert investment.name == "Alpha Fund"
    assert investment.investment_group == "Alpha Partners"


def test_backfill_transaction_links(temp_db, investment_service, commitment_service, sample_investment, add_transaction):
    """Test linking stored transactions by description."""
    commitment_id = commitment_service.create_commitment(
        sample_investment.id, Decimal("100000"), "USD", date(2022, 1, 1)
    )
    linked_id = add_transaction(None, "-25000", description="Faro-Point  FRG-X")
    other_id = add_transaction(None, "-1000", description="Unknown Fund")
    add_transaction(None, "-1000")

    assert investment_service.backfill_transaction_links() == 1

    assert temp_db.get_transaction(linked_id).investment_id == sample_investment.id
    assert temp_db.get_transaction(other_id).investment_id is None
    assert temp_db.get_commitment(commitment_id).called_to_date == Decimal("25000")


def test_backfill_ignores_linked_transactions(investment_service, sample_investment, add_transaction):
    """Test that already linked transactions are left alone."""
    add_transaction(sample_investment.id, "-1000", description="Faro-Point FRG-X")

    assert investment_service.backfill_transaction_links() == 0

