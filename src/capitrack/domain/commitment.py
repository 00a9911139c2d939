"""Commitment allocation and commitment domain service."""

import logging
from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import Optional, Union

from capitrack.database.base import Database
from capitrack.domain.entities import (
    AllocationPolicy,
    Commitment,
    CommitmentPhase,
    CommitmentSummary,
    TransactionCategory,
)
from capitrack.domain.errors import (
    DependencyError,
    NotFoundError,
    ValidationError,
    commitment_delete_blocked,
    commitment_not_found,
    investment_not_found,
    no_commitments,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def save_commitment(db: Database, commitment: Commitment) -> int:
    """Write every field of a commitment entity back to the store."""
    return db.upsert_commitment(
        investment_id=commitment.investment_id,
        commitment_amount=commitment.commitment_amount,
        currency=commitment.currency,
        commitment_date=commitment.commitment_date,
        called_to_date=commitment.called_to_date,
        remaining=commitment.remaining,
        phase=commitment.phase,
        manual_phase=commitment.manual_phase,
        notes=commitment.notes,
        commitment_id=commitment.id,
    )


def distribute_called_capital(
    commitments: list[Commitment],
    called_total: Decimal,
    policy: AllocationPolicy = AllocationPolicy.FRONT_LOAD,
) -> list[Commitment]:
    """Spread a called-capital total over commitments in chronological order.

    Pure function. Every commitment in the result has
    ``remaining == commitment_amount - called_to_date``; commitments that
    receive nothing are reset to ``called_to_date = 0``.

    Args:
        commitments: Commitments of one investment, in any order
        called_total: Sum of capital called so far (non-negative)
        policy: FRONT_LOAD puts the whole total on the earliest commitment,
            SEQUENTIAL fills each commitment before moving to the next

    Returns:
        Updated commitments sorted by (commitment_date, id)
    """
    ordered = sorted(commitments, key=lambda c: (c.commitment_date, c.id))
    unallocated = called_total
    result = []
    for index, commitment in enumerate(ordered):
        is_last = index == len(ordered) - 1
        if unallocated <= 0:
            called = ZERO
        elif policy == AllocationPolicy.SEQUENTIAL and not is_last:
            called = min(unallocated, max(commitment.commitment_amount, ZERO))
        else:
            called = unallocated
        unallocated -= called
        result.append(
            replace(
                commitment,
                called_to_date=called,
                remaining=commitment.commitment_amount - called,
            )
        )
    return result


class CommitmentAllocator:
    """Recomputes called-to-date and remaining for an investment's commitments."""

    def __init__(self, db: Database, policy: AllocationPolicy = AllocationPolicy.FRONT_LOAD):
        """Initialize allocator.

        Args:
            db: Database instance
            policy: Allocation policy
        """
        self.db = db
        self.policy = AllocationPolicy(policy)

    def allocate(self, investment_id: int) -> list[Commitment]:
        """Recompute and persist commitment state for one investment.

        Running it twice with no new transactions produces the same state.

        Args:
            investment_id: Investment ID

        Returns:
            Updated commitments sorted by (commitment_date, id)

        Raises:
            NotFoundError: If the investment doesn't exist
        """
        if self.db.get_investment(investment_id) is None:
            raise NotFoundError(investment_not_found(investment_id))

        commitments = self.db.list_commitments(investment_id)
        if not commitments:
            logger.debug("Investment %s has no commitments to allocate", investment_id)
            return []

        calls = self.db.list_transactions(
            investment_id=investment_id, categories=[TransactionCategory.CAPITAL_CALL]
        )
        self._warn_on_currency_mismatch(investment_id, commitments, calls)
        total = sum(
            (abs(txn.amount_normalized) for txn in calls if txn.amount_normalized is not None),
            ZERO,
        )

        updated = distribute_called_capital(commitments, total, self.policy)
        for commitment in updated:
            save_commitment(self.db, commitment)
            if commitment.remaining < 0:
                logger.warning(
                    "Commitment %s of investment %s is overdrawn by %s",
                    commitment.id,
                    investment_id,
                    -commitment.remaining,
                )
        logger.info(
            "Allocated %s called capital over %d commitment(s) of investment %s",
            total,
            len(updated),
            investment_id,
        )
        return updated

    def _warn_on_currency_mismatch(self, investment_id, commitments, calls) -> None:
        currencies = {c.currency for c in commitments}
        for txn in calls:
            if txn.original_currency and txn.original_currency not in currencies:
                logger.warning(
                    "Transaction %s of investment %s is in %s but commitments are in %s",
                    txn.id,
                    investment_id,
                    txn.original_currency,
                    ", ".join(sorted(currencies)),
                )


class CommitmentService:
    """Service for managing capital commitments."""

    def __init__(self, db: Database, policy: AllocationPolicy = AllocationPolicy.FRONT_LOAD):
        """Initialize commitment service.

        Args:
            db: Database instance
            policy: Allocation policy used by update_progress
        """
        self.db = db
        self.allocator = CommitmentAllocator(db, policy)

    def create_commitment(
        self,
        investment_id: int,
        commitment_amount: Decimal,
        currency: str,
        commitment_date: date,
        notes: Optional[str] = None,
    ) -> int:
        """Create a commitment and reallocate the investment's called capital.

        Args:
            investment_id: Investment ID
            commitment_amount: Committed amount (non-negative)
            currency: Currency code
            commitment_date: Date the commitment was signed
            notes: Optional notes

        Returns:
            Commitment ID

        Raises:
            NotFoundError: If the investment doesn't exist
            ValidationError: If the amount is negative or currency is empty
        """
        if self.db.get_investment(investment_id) is None:
            raise NotFoundError(investment_not_found(investment_id))
        if commitment_amount < 0:
            raise ValidationError("Commitment amount cannot be negative")
        if not currency or not currency.strip():
            raise ValidationError("Commitment currency cannot be empty")

        commitment_id = self.db.upsert_commitment(
            investment_id=investment_id,
            commitment_amount=commitment_amount,
            currency=currency.strip().upper(),
            commitment_date=commitment_date,
            called_to_date=ZERO,
            remaining=commitment_amount,
            notes=notes,
        )
        self.allocator.allocate(investment_id)
        return commitment_id

    def get_commitment(self, commitment_id: int) -> Commitment:
        """Get commitment by ID.

        Raises:
            NotFoundError: If the commitment doesn't exist
        """
        commitment = self.db.get_commitment(commitment_id)
        if commitment is None:
            raise NotFoundError(commitment_not_found(commitment_id))
        return commitment

    def list_commitments(self, investment_id: Optional[int] = None) -> list[Commitment]:
        """List commitments, optionally for one investment."""
        return self.db.list_commitments(investment_id)

    def update_commitment(
        self,
        commitment_id: int,
        commitment_amount: Optional[Decimal] = None,
        currency: Optional[str] = None,
        commitment_date: Optional[date] = None,
        notes: Optional[str] = None,
    ) -> Commitment:
        """Update editable commitment fields.

        Called capital is reallocated afterwards, since a new amount or date
        can move it between commitments.

        Raises:
            NotFoundError: If the commitment doesn't exist
            ValidationError: If the new amount is negative
        """
        commitment = self.get_commitment(commitment_id)
        changes = {}
        if commitment_amount is not None:
            if commitment_amount < 0:
                raise ValidationError("Commitment amount cannot be negative")
            changes["commitment_amount"] = commitment_amount
            changes["remaining"] = commitment_amount - commitment.called_to_date
        if currency is not None:
            if not currency.strip():
                raise ValidationError("Commitment currency cannot be empty")
            changes["currency"] = currency.strip().upper()
        if commitment_date is not None:
            changes["commitment_date"] = commitment_date
        if notes is not None:
            changes["notes"] = notes

        save_commitment(self.db, replace(commitment, **changes))
        self.allocator.allocate(commitment.investment_id)
        return self.get_commitment(commitment_id)

    def delete_commitment(self, commitment_id: int) -> None:
        """Delete a commitment.

        Raises:
            NotFoundError: If the commitment doesn't exist
            DependencyError: If transactions are linked to it
        """
        commitment = self.get_commitment(commitment_id)
        count = self.db.get_commitment_transaction_count(commitment_id)
        if count > 0:
            raise DependencyError(commitment_delete_blocked(commitment_id, count))
        self.db.delete_commitment(commitment_id)
        self.allocator.allocate(commitment.investment_id)

    def set_phase(self, commitment_id: int, phase: Union[CommitmentPhase, str]) -> Commitment:
        """Pin a commitment's phase so automatic detection leaves it alone.

        Raises:
            NotFoundError: If the commitment doesn't exist
            ValidationError: If the phase is unknown
        """
        try:
            phase = CommitmentPhase(phase)
        except ValueError:
            allowed = ", ".join(p.value for p in CommitmentPhase)
            raise ValidationError(f"Unknown phase '{phase}'. Expected one of: {allowed}")
        commitment = self.get_commitment(commitment_id)
        updated = replace(commitment, phase=phase, manual_phase=True)
        save_commitment(self.db, updated)
        return updated

    def clear_manual_phase(self, commitment_id: int) -> Commitment:
        """Release a pinned phase; the next detection run may overwrite it."""
        commitment = self.get_commitment(commitment_id)
        updated = replace(commitment, manual_phase=False)
        save_commitment(self.db, updated)
        return updated

    def update_progress(self, investment_id: int) -> list[Commitment]:
        """Recompute called-to-date and remaining for an investment."""
        return self.allocator.allocate(investment_id)

    def get_summary(self, investment_id: int) -> CommitmentSummary:
        """Summarize an investment's commitments.

        Raises:
            NotFoundError: If the investment has no commitments
        """
        commitments = self.db.list_commitments(investment_id)
        if not commitments:
            raise NotFoundError(no_commitments(investment_id))

        total_committed = sum((c.commitment_amount for c in commitments), ZERO)
        total_called = sum((c.called_to_date for c in commitments), ZERO)
        total_remaining = sum((c.remaining for c in commitments), ZERO)
        percentage = None
        if total_committed != 0:
            percentage = round(float(total_called / total_committed * 100), 2)
        currencies = {c.currency for c in commitments}

        return CommitmentSummary(
            total_committed=total_committed,
            total_called=total_called,
            total_remaining=total_remaining,
            currency=currencies.pop() if len(currencies) == 1 else None,
            commitment_count=len(commitments),
            percentage_called=percentage,
        )
