"""Commitment lifecycle phase detection."""

import logging
from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import Optional

from dateutil.relativedelta import relativedelta

from capitrack.database.base import Database
from capitrack.domain.commitment import save_commitment
from capitrack.domain.entities import (
    CommitmentPhase,
    Confidence,
    PhaseDetection,
    TransactionCategory,
)
from capitrack.domain.errors import NotFoundError, ValidationError, investment_not_found

logger = logging.getLogger(__name__)

DEFAULT_PHASE_THRESHOLD = 2.0
PHASE_WINDOW_MONTHS = 24
# Stand-in ratio when there are calls but no distributions
MAX_PHASE_RATIO = 999.0

HIGH_CONFIDENCE_COUNT = 10
MEDIUM_CONFIDENCE_COUNT = 5


def classify_ratio(ratio: float, threshold: float) -> CommitmentPhase:
    """Map a calls/distributions ratio to a phase."""
    if ratio > threshold:
        return CommitmentPhase.BUILDING_UP
    if ratio < 1 / threshold:
        return CommitmentPhase.DRAWING_DOWN
    return CommitmentPhase.STABLE


def confidence_for(transaction_count: int) -> Confidence:
    """Confidence grows with the number of transactions behind a detection."""
    if transaction_count >= HIGH_CONFIDENCE_COUNT:
        return Confidence.HIGH
    if transaction_count >= MEDIUM_CONFIDENCE_COUNT:
        return Confidence.MEDIUM
    return Confidence.LOW


def calls_to_distributions_ratio(calls: Decimal, distributions: Decimal) -> float:
    if calls == 0:
        return 0.0
    if distributions == 0:
        return MAX_PHASE_RATIO
    return float(calls / distributions)


class PhaseDetector:
    """Classifies an investment's phase from recent capital activity.

    Capital calls and distributions in a rolling window ending at ``as_of``
    are totalled. Calls well above distributions mean the investment is still
    building up; distributions well above calls mean it is drawing down.
    """

    def __init__(
        self,
        db: Database,
        threshold: float = DEFAULT_PHASE_THRESHOLD,
        window_months: int = PHASE_WINDOW_MONTHS,
    ):
        """Initialize phase detector.

        Args:
            db: Database instance
            threshold: Ratio above which the phase is building_up; its
                inverse is the drawing_down boundary
            window_months: Length of the analysis window

        Raises:
            ValidationError: If threshold is not above 1 or window is empty
        """
        if threshold <= 1:
            raise ValidationError(f"Phase threshold must be greater than 1, got {threshold}")
        if window_months <= 0:
            raise ValidationError(f"Analysis window must be positive, got {window_months} months")
        self.db = db
        self.threshold = threshold
        self.window_months = window_months

    def detect(self, investment_id: int, as_of: Optional[date] = None) -> PhaseDetection:
        """Detect the current phase of an investment.

        Args:
            investment_id: Investment ID
            as_of: End of the analysis window (defaults to today)

        Returns:
            PhaseDetection; ``phase`` is None when the window has no
            capital calls or distributions

        Raises:
            NotFoundError: If the investment doesn't exist
        """
        if self.db.get_investment(investment_id) is None:
            raise NotFoundError(investment_not_found(investment_id))

        end_date = as_of or date.today()
        start_date = end_date - relativedelta(months=self.window_months)
        transactions = self.db.list_transactions(
            investment_id=investment_id,
            categories=[TransactionCategory.CAPITAL_CALL, TransactionCategory.DISTRIBUTION],
            start_date=start_date,
            end_date=end_date,
        )
        # Forced imports may carry no amount
        transactions = [t for t in transactions if t.amount_normalized is not None]

        calls = [t for t in transactions if t.category == TransactionCategory.CAPITAL_CALL]
        distributions = [t for t in transactions if t.category == TransactionCategory.DISTRIBUTION]
        calls_total = sum((abs(t.amount_normalized) for t in calls), Decimal("0"))
        distributions_total = sum((abs(t.amount_normalized) for t in distributions), Decimal("0"))

        if not transactions:
            phase = None
            confidence = None
            ratio = 0.0
        else:
            ratio = calls_to_distributions_ratio(calls_total, distributions_total)
            phase = classify_ratio(ratio, self.threshold)
            confidence = confidence_for(len(transactions))

        logger.debug(
            "Investment %s: calls=%s distributions=%s ratio=%.2f phase=%s",
            investment_id,
            calls_total,
            distributions_total,
            ratio,
            phase.value if phase else "no signal",
        )
        return PhaseDetection(
            investment_id=investment_id,
            phase=phase,
            capital_calls_total=calls_total,
            distributions_total=distributions_total,
            ratio=ratio,
            threshold=self.threshold,
            analysis_period_months=self.window_months,
            analysis_start_date=start_date,
            analysis_end_date=end_date,
            capital_calls_count=len(calls),
            distributions_count=len(distributions),
            confidence=confidence,
        )

    def update_phases(self, investment_id: int, as_of: Optional[date] = None) -> PhaseDetection:
        """Detect the phase and store it on commitments that are not pinned.

        Nothing is written when there is no signal.
        """
        detection = self.detect(investment_id, as_of)
        if not detection.has_signal:
            return detection

        for commitment in self.db.list_commitments(investment_id):
            if commitment.manual_phase:
                logger.debug("Commitment %s has a pinned phase, leaving it", commitment.id)
                continue
            if commitment.phase != detection.phase:
                save_commitment(self.db, replace(commitment, phase=detection.phase))
        return detection
