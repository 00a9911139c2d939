"""Commitment alerts."""

import logging
from typing import Optional

from capitrack.database.base import Database
from capitrack.domain.entities import AlertSeverity, Commitment, CommitmentAlert

logger = logging.getLogger(__name__)

ALERT_WARNING_THRESHOLD_PCT = 10

_SEVERITY_ORDER = {
    AlertSeverity.CRITICAL: 0,
    AlertSeverity.WARNING: 1,
    AlertSeverity.UNDEFINED: 2,
}


class AlertEvaluator:
    """Raises alerts for overdrawn, exhausted and nearly exhausted commitments."""

    def __init__(self, db: Database, warning_threshold_pct: float = ALERT_WARNING_THRESHOLD_PCT):
        """Initialize alert evaluator.

        Args:
            db: Database instance
            warning_threshold_pct: Remaining percentage below which a
                commitment is reported as nearly exhausted
        """
        self.db = db
        self.warning_threshold_pct = warning_threshold_pct

    def evaluate_commitment(
        self, commitment: Commitment, investment_name: Optional[str] = None
    ) -> Optional[CommitmentAlert]:
        """Evaluate one commitment.

        Args:
            commitment: Commitment with up-to-date remaining
            investment_name: Name shown in the alert

        Returns:
            CommitmentAlert, or None when nothing is worth reporting
        """
        remaining = commitment.remaining

        def alert(severity: AlertSeverity, message: str, percentage: Optional[float]) -> CommitmentAlert:
            return CommitmentAlert(
                commitment_id=commitment.id,
                investment_id=commitment.investment_id,
                investment_name=investment_name,
                severity=severity,
                message=message,
                remaining=remaining,
                percentage_remaining=percentage,
            )

        if remaining < 0:
            return alert(
                AlertSeverity.CRITICAL,
                f"Overdrawn by {-remaining:,.2f} {commitment.currency}",
                None if commitment.commitment_amount == 0
                else float(remaining / commitment.commitment_amount * 100),
            )
        if commitment.commitment_amount == 0:
            return alert(
                AlertSeverity.UNDEFINED,
                "Commitment amount is zero; remaining percentage is undefined",
                None,
            )
        if remaining == 0:
            return alert(AlertSeverity.WARNING, "Fully called", 0.0)

        percentage = float(remaining / commitment.commitment_amount * 100)
        if percentage < self.warning_threshold_pct:
            return alert(
                AlertSeverity.WARNING,
                f"Nearly exhausted: {percentage:.1f}% remaining",
                percentage,
            )
        return None

    def evaluate(self, investment_id: Optional[int] = None) -> list[CommitmentAlert]:
        """Evaluate every commitment, or those of one investment.

        Returns:
            Alerts, critical first
        """
        names: dict[int, Optional[str]] = {}
        alerts = []
        for commitment in self.db.list_commitments(investment_id):
            if commitment.investment_id not in names:
                investment = self.db.get_investment(commitment.investment_id)
                names[commitment.investment_id] = investment.name if investment else None
            result = self.evaluate_commitment(commitment, names[commitment.investment_id])
            if result is not None:
                alerts.append(result)

        alerts.sort(key=lambda a: (_SEVERITY_ORDER[a.severity], a.investment_id, a.commitment_id))
        logger.info("Evaluated commitments: %d alert(s)", len(alerts))
        return alerts
