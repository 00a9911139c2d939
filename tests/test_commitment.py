"""Tests for commitment allocation and the commitment service."""

import pytest
from datetime import date
from decimal import Decimal

from capitrack.domain.commitment import CommitmentAllocator, distribute_called_capital
from capitrack.domain.entities import (
    AllocationPolicy,
    CommitmentPhase,
    TransactionCategory,
)
from capitrack.domain.errors import DependencyError, NotFoundError, ValidationError


@pytest.fixture
def two_commitments(commitment_service, sample_investment):
    """Create 100k (2022) and 50k (2023) commitments, added out of order."""
    later = commitment_service.create_commitment(
        sample_investment.id, Decimal("50000"), "USD", date(2023, 6, 1)
    )
    earlier = commitment_service.create_commitment(
        sample_investment.id, Decimal("100000"), "USD", date(2022, 1, 1)
    )
    return earlier, later


def test_create_commitment_starts_uncalled(commitment_service, sample_commitment):
    """Test the initial state of a commitment."""
    assert sample_commitment.called_to_date == Decimal("0")
    assert sample_commitment.remaining == Decimal("100000")
    assert sample_commitment.currency == "USD"
    assert sample_commitment.phase is None
    assert sample_commitment.manual_phase is False


def test_create_commitment_validation(commitment_service, sample_investment):
    """Test commitment validation."""
    with pytest.raises(NotFoundError):
        commitment_service.create_commitment(999, Decimal("1"), "USD", date(2024, 1, 1))
    with pytest.raises(ValidationError):
        commitment_service.create_commitment(sample_investment.id, Decimal("-1"), "USD", date(2024, 1, 1))
    with pytest.raises(ValidationError):
        commitment_service.create_commitment(sample_investment.id, Decimal("1"), " ", date(2024, 1, 1))


def test_front_load_allocation(temp_db, sample_investment, two_commitments, add_transaction):
    """Test that the earliest commitment takes all called capital."""
    earlier, later = two_commitments
    add_transaction(sample_investment.id, "-30000")
    add_transaction(sample_investment.id, "-40000")

    result = CommitmentAllocator(temp_db).allocate(sample_investment.id)

    assert [c.id for c in result] == [earlier, later]
    assert result[0].called_to_date == Decimal("70000")
    assert result[0].remaining == Decimal("30000")
    assert result[1].called_to_date == Decimal("0")
    assert result[1].remaining == Decimal("50000")
    assert temp_db.get_commitment(earlier).remaining == Decimal("30000")


def test_front_load_overdraw(temp_db, sample_investment, two_commitments, add_transaction):
    """Test that overdraw lands on the earliest commitment under front-loading."""
    earlier, _ = two_commitments
    add_transaction(sample_investment.id, "-120000")

    result = CommitmentAllocator(temp_db).allocate(sample_investment.id)

    assert result[0].remaining == Decimal("-20000")


def test_sequential_allocation(temp_db, sample_investment, two_commitments, add_transaction):
    """Test filling commitments in order, last one absorbing overdraw."""
    add_transaction(sample_investment.id, "-130000")
    allocator = CommitmentAllocator(temp_db, AllocationPolicy.SEQUENTIAL)

    result = allocator.allocate(sample_investment.id)

    assert [(c.called_to_date, c.remaining) for c in result] == [
        (Decimal("100000"), Decimal("0")),
        (Decimal("30000"), Decimal("20000")),
    ]

    add_transaction(sample_investment.id, "-40000")
    result = allocator.allocate(sample_investment.id)
    assert result[1].remaining == Decimal("-20000")


def test_allocation_conservation(temp_db, sample_investment, two_commitments, add_transaction):
    """Test that remaining always sums to committed minus called."""
    for amount in ("-12345.67", "-50000", "1000"):
        add_transaction(sample_investment.id, amount)
    called = Decimal("12345.67") + Decimal("50000") + Decimal("1000")

    for policy in AllocationPolicy:
        result = CommitmentAllocator(temp_db, policy).allocate(sample_investment.id)
        assert sum(c.remaining for c in result) == Decimal("150000") - called
        for c in result:
            assert c.remaining == c.commitment_amount - c.called_to_date


def test_allocation_is_idempotent(temp_db, sample_investment, two_commitments, add_transaction):
    """Test that re-running allocation changes nothing."""
    add_transaction(sample_investment.id, "-70000")
    allocator = CommitmentAllocator(temp_db)

    first = allocator.allocate(sample_investment.id)
    second = allocator.allocate(sample_investment.id)

    assert [(c.called_to_date, c.remaining) for c in first] == [(c.called_to_date, c.remaining) for c in second]


def test_allocation_ignores_other_categories(temp_db, sample_investment, sample_commitment, add_transaction):
    """Test that only capital calls count as called capital."""
    add_transaction(sample_investment.id, "-10000")
    add_transaction(sample_investment.id, "5000", category=TransactionCategory.DISTRIBUTION)
    add_transaction(sample_investment.id, "-500", category=TransactionCategory.FEE)

    result = CommitmentAllocator(temp_db).allocate(sample_investment.id)

    assert result[0].called_to_date == Decimal("10000")


def test_allocation_unknown_investment(temp_db):
    """Test allocation for an investment that doesn't exist."""
    with pytest.raises(NotFoundError):
        CommitmentAllocator(temp_db).allocate(999)


def test_allocation_without_commitments(temp_db, sample_investment):
    """Test allocation for an investment with no commitments."""
    assert CommitmentAllocator(temp_db).allocate(sample_investment.id) == []


def test_currency_mismatch_is_logged(temp_db, sample_investment, sample_commitment, add_transaction, caplog):
    """Test that a mismatched currency is warned about but still counted."""
    add_transaction(sample_investment.id, "-1000", currency="EUR")

    with caplog.at_level("WARNING", logger="capitrack"):
        result = CommitmentAllocator(temp_db).allocate(sample_investment.id)

    assert result[0].called_to_date == Decimal("1000")
    assert "EUR" in caplog.text


def test_distribute_called_capital_pure(two_commitments, commitment_service):
    """Test the pure distribution function, including a zero total."""
    commitments = commitment_service.list_commitments()

    result = distribute_called_capital(commitments, Decimal("0"))

    assert all(c.called_to_date == 0 for c in result)
    assert [c.remaining for c in result] == [Decimal("100000"), Decimal("50000")]


def test_update_commitment_recomputes_remaining(commitment_service, sample_commitment, sample_investment, add_transaction):
    """Test that changing the amount keeps remaining consistent."""
    add_transaction(sample_investment.id, "-40000")
    commitment_service.update_progress(sample_investment.id)

    updated = commitment_service.update_commitment(sample_commitment.id, commitment_amount=Decimal("60000"), notes="resized")

    assert updated.called_to_date == Decimal("40000")
    assert updated.remaining == Decimal("20000")
    assert commitment_service.get_commitment(sample_commitment.id).notes == "resized"


def test_allocation_skips_calls_without_amount(temp_db, sample_commitment, sample_investment, add_transaction):
    """Test that a force-imported call with no amount adds nothing."""
    add_transaction(sample_investment.id, "-30000")
    temp_db.insert_transaction(
        fingerprint="no-amount",
        date=None,
        amount_original=None,
        amount_normalized=None,
        cash_flow_direction=None,
        category=TransactionCategory.CAPITAL_CALL,
        investment_id=sample_investment.id,
    )

    result = CommitmentAllocator(temp_db).allocate(sample_investment.id)

    assert result[0].called_to_date == Decimal("30000")


def test_create_commitment_reallocates_called_capital(commitment_service, sample_commitment, sample_investment, add_transaction):
    """Test that an earlier commitment takes over front-loaded calls when added."""
    add_transaction(sample_investment.id, "-40000")
    commitment_service.update_progress(sample_investment.id)

    earlier_id = commitment_service.create_commitment(
        sample_investment.id, Decimal("80000"), "USD", date(2021, 1, 1)
    )

    earlier = commitment_service.get_commitment(earlier_id)
    assert earlier.called_to_date == Decimal("40000")
    assert earlier.remaining == Decimal("40000")
    original = commitment_service.get_commitment(sample_commitment.id)
    assert original.called_to_date == Decimal("0")
    assert original.remaining == Decimal("100000")


def test_create_first_commitment_picks_up_existing_calls(commitment_service, sample_investment, add_transaction):
    """Test that calls imported before any commitment are allocated on creation."""
    add_transaction(sample_investment.id, "-25000")

    commitment_id = commitment_service.create_commitment(
        sample_investment.id, Decimal("100000"), "USD", date(2022, 1, 1)
    )

    commitment = commitment_service.get_commitment(commitment_id)
    assert commitment.called_to_date == Decimal("25000")
    assert commitment.remaining == Decimal("75000")


def test_update_commitment_date_reallocates(commitment_service, sample_investment, two_commitments, add_transaction):
    """Test that moving a commitment's date moves the front-loaded calls with it."""
    earlier, later = two_commitments
    add_transaction(sample_investment.id, "-30000")
    commitment_service.update_progress(sample_investment.id)

    updated = commitment_service.update_commitment(later, commitment_date=date(2020, 1, 1))

    assert updated.called_to_date == Decimal("30000")
    assert updated.remaining == Decimal("20000")
    assert commitment_service.get_commitment(earlier).called_to_date == Decimal("0")


def test_delete_commitment_reallocates(commitment_service, sample_investment, two_commitments, add_transaction):
    """Test that deleting the earliest commitment hands its calls to the next one."""
    earlier, later = two_commitments
    add_transaction(sample_investment.id, "-30000")
    commitment_service.update_progress(sample_investment.id)

    commitment_service.delete_commitment(earlier)

    assert commitment_service.get_commitment(later).called_to_date == Decimal("30000")


def test_delete_commitment(commitment_service, sample_commitment, temp_db):
    """Test deleting a commitment."""
    commitment_service.delete_commitment(sample_commitment.id)

    with pytest.raises(NotFoundError):
        commitment_service.get_commitment(sample_commitment.id)


def test_delete_commitment_with_linked_transactions(commitment_service, sample_commitment, sample_investment, add_transaction, temp_db):
    """Test that a commitment with linked transactions can't be deleted."""
    txn_id = add_transaction(sample_investment.id, "-100")
    temp_db.update_transaction_links(txn_id, sample_investment.id, sample_commitment.id)

    with pytest.raises(DependencyError):
        commitment_service.delete_commitment(sample_commitment.id)


def test_set_and_clear_manual_phase(commitment_service, sample_commitment):
    """Test pinning and releasing a phase."""
    pinned = commitment_service.set_phase(sample_commitment.id, "drawing_down")

    assert pinned.phase == CommitmentPhase.DRAWING_DOWN
    assert pinned.manual_phase is True

    released = commitment_service.clear_manual_phase(sample_commitment.id)
    assert released.manual_phase is False
    assert released.phase == CommitmentPhase.DRAWING_DOWN

    with pytest.raises(ValidationError):
        commitment_service.set_phase(sample_commitment.id, "hibernating")


def test_get_summary(commitment_service, sample_investment, two_commitments, add_transaction):
    """Test the commitment roll-up."""
    add_transaction(sample_investment.id, "-75000")
    commitment_service.update_progress(sample_investment.id)

    summary = commitment_service.get_summary(sample_investment.id)

    assert summary.total_committed == Decimal("150000")
    assert summary.total_called == Decimal("75000")
    assert summary.total_remaining == Decimal("75000")
    assert summary.currency == "USD"
    assert summary.commitment_count == 2
    assert summary.percentage_called == 50.0
    assert summary.to_dict()["percentage_called"] == 50.0


def test_get_summary_zero_commitment(commitment_service, sample_investment):
    """Test that a zero committed total has no percentage."""
    commitment_service.create_commitment(sample_investment.id, Decimal("0"), "USD", date(2024, 1, 1))

    assert commitment_service.get_summary(sample_investment.id).percentage_called is None


def test_get_summary_without_commitments(commitment_service, sample_investment):
    """Test the summary of an investment with no commitments."""
    with pytest.raises(NotFoundError):
        commitment_service.get_summary(sample_investment.id)
