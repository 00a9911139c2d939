"""Domain model entities for capitrack.

These are pure data classes representing business concepts, independent of
database schema. The database layer maps its rows onto these, so the
normalization and commitment logic never touches ORM objects.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Any, Optional


class TransactionCategory(str, Enum):
    """Resolved category of a cash flow."""

    INCOME = "income"
    CAPITAL_CALL = "capital_call"
    DISTRIBUTION = "distribution"
    FEE = "fee"
    TRANSFER = "transfer"


class DirectionalityRule(str, Enum):
    """How a raw amount is turned into a signed amount."""

    AS_IS = "as_is"
    INVERT = "invert"
    VARIABLE = "variable"


class InvestmentStatus(str, Enum):
    """Lifecycle status of an investment."""

    ACTIVE = "active"
    FULLY_CALLED = "fully_called"
    EXITED = "exited"
    WRITTEN_OFF = "written_off"


class CommitmentPhase(str, Enum):
    """Lifecycle phase derived from capital activity."""

    BUILDING_UP = "building_up"
    STABLE = "stable"
    DRAWING_DOWN = "drawing_down"


class Confidence(str, Enum):
    """Confidence attached to a phase detection."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class AlertSeverity(str, Enum):
    """Severity of a commitment alert."""

    CRITICAL = "critical"
    WARNING = "warning"
    UNDEFINED = "undefined"


class AllocationPolicy(str, Enum):
    """How called capital is spread over an investment's commitments."""

    FRONT_LOAD = "front_load"
    SEQUENTIAL = "sequential"


@dataclass(frozen=True)
class Investment:
    """Investment domain entity."""

    id: int
    name: str
    slug: Optional[str]
    investment_group: Optional[str]
    investment_type: Optional[str]
    product_type: Optional[str]
    status: InvestmentStatus
    created_at: datetime


@dataclass(frozen=True)
class Commitment:
    """Capital commitment to an investment."""

    id: int
    investment_id: int
    commitment_amount: Decimal
    currency: str
    commitment_date: date
    called_to_date: Decimal
    remaining: Decimal
    phase: Optional[CommitmentPhase]
    manual_phase: bool
    notes: Optional[str]
    created_at: datetime


@dataclass(frozen=True)
class Transaction:
    """Transaction domain entity."""

    id: int
    fingerprint: str
    date: Optional[date]
    description: Optional[str]
    transaction_type_raw: Optional[str]
    category: Optional[TransactionCategory]
    cash_flow_direction: Optional[int]
    amount_original: Optional[Decimal]
    amount_normalized: Optional[Decimal]
    original_currency: Optional[str]
    amount_usd: Optional[Decimal]
    amount_ils: Optional[Decimal]
    exchange_rate_to_ils: Optional[Decimal]
    investment_id: Optional[int]
    commitment_id: Optional[int]
    counterparty: Optional[str]
    metadata: Optional[dict[str, Any]]
    source_file: Optional[str]
    created_at: datetime


@dataclass(frozen=True)
class TransactionTypeMapping:
    """Mapping from a raw transaction type label to its cash-flow semantics."""

    raw_value: str
    category: TransactionCategory
    directionality_rule: DirectionalityRule
    cash_flow_impact: Optional[int] = None


@dataclass(frozen=True)
class NormalizedTransaction:
    """A parsed and sign-normalized row, ready for fingerprinting."""

    date: Optional[date]
    amount_original: Optional[Decimal]
    amount_normalized: Optional[Decimal]
    category: Optional[TransactionCategory]
    cash_flow_direction: Optional[int]
    transaction_type_raw: Optional[str] = None
    original_currency: Optional[str] = None
    amount_usd: Optional[Decimal] = None
    amount_ils: Optional[Decimal] = None
    exchange_rate_to_ils: Optional[Decimal] = None
    counterparty: Optional[str] = None
    investment_name: Optional[str] = None
    investment_slug: Optional[str] = None
    description: Optional[str] = None


@dataclass(frozen=True)
class PreparedTransaction:
    """A normalized transaction with its dedup fingerprint."""

    normalized: NormalizedTransaction
    fingerprint: str
    metadata: Optional[dict[str, Any]] = None


@dataclass
class ImportSummary:
    """Outcome of an import batch, real or simulated."""

    total: int = 0
    imported: int = 0
    skipped: int = 0
    failed: int = 0
    transaction_ids: list[int] = field(default_factory=list)
    errors: list[dict[str, Any]] = field(default_factory=list)
    dry_run: bool = False
    skipped_duplicates: int = 0
    skipped_invalid: int = 0
    unmapped_types: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Return the transport shape of the summary."""
        return {
            "total": self.total,
            "imported": self.imported,
            "skipped": self.skipped,
            "failed": self.failed,
            "transaction_ids": list(self.transaction_ids),
            "errors": [dict(error) for error in self.errors],
            "dry_run": self.dry_run,
        }


@dataclass(frozen=True)
class CommitmentSummary:
    """Roll-up of an investment's commitments."""

    total_committed: Decimal
    total_called: Decimal
    total_remaining: Decimal
    currency: Optional[str]
    commitment_count: int
    percentage_called: Optional[float]

    def to_dict(self) -> dict[str, Any]:
        """Return the transport shape of the summary."""
        return {
            "total_committed": self.total_committed,
            "total_called": self.total_called,
            "total_remaining": self.total_remaining,
            "currency": self.currency,
            "commitment_count": self.commitment_count,
            "percentage_called": self.percentage_called,
        }


@dataclass(frozen=True)
class PhaseDetection:
    """Result of a phase detection run.

    ``phase`` is None when the window holds no capital calls or
    distributions. That is "no signal", not a phase.
    """

    investment_id: int
    phase: Optional[CommitmentPhase]
    capital_calls_total: Decimal
    distributions_total: Decimal
    ratio: float
    threshold: float
    analysis_period_months: int
    analysis_start_date: date
    analysis_end_date: date
    capital_calls_count: int
    distributions_count: int
    confidence: Optional[Confidence]

    @property
    def has_signal(self) -> bool:
        return self.phase is not None

    def to_dict(self) -> dict[str, Any]:
        """Return the transport shape of the detection."""
        return {
            "phase": self.phase.value if self.phase else None,
            "capital_calls_total": self.capital_calls_total,
            "distributions_total": self.distributions_total,
            "ratio": self.ratio,
            "threshold": self.threshold,
            "analysis_period_months": self.analysis_period_months,
            "analysis_start_date": self.analysis_start_date.isoformat(),
            "analysis_end_date": self.analysis_end_date.isoformat(),
            "capital_calls_count": self.capital_calls_count,
            "distributions_count": self.distributions_count,
            "confidence": self.confidence.value if self.confidence else None,
        }


@dataclass(frozen=True)
class CommitmentAlert:
    """Alert raised for a commitment close to or past its limit."""

    commitment_id: int
    investment_id: int
    investment_name: Optional[str]
    severity: AlertSeverity
    message: str
    remaining: Decimal
    percentage_remaining: Optional[float]

    def to_dict(self) -> dict[str, Any]:
        """Return the transport shape of the alert."""
        return {
            "commitment_id": self.commitment_id,
            "investment_id": self.investment_id,
            "investment_name": self.investment_name,
            "severity": self.severity.value,
            "message": self.message,
            "remaining": self.remaining,
            "percentage_remaining": self.percentage_remaining,
        }


@dataclass(frozen=True)
class CashFlow:
    """Dated cash flow from the investor's side: calls negative, distributions positive."""

    date: date
    amount: Decimal


@dataclass(frozen=True)
class PerformanceMetrics:
    """Return multiples and IRR of an investment or of the whole portfolio.

    Multiples are None when nothing has been called. ``xirr`` is None when
    the cash flows don't have both signs or the solver doesn't converge.
    ``residual_value`` is estimated as the unreturned called capital.
    """

    investment_id: Optional[int]
    investment_name: Optional[str]
    total_called: Decimal
    total_distributed: Decimal
    net_position: Decimal
    residual_value: Decimal
    moic: Optional[float]
    dpi: Optional[float]
    rvpi: Optional[float]
    tvpi: Optional[float]
    xirr: Optional[float]
    transaction_count: int
    as_of: date

    @property
    def is_fully_realized(self) -> bool:
        return self.total_called > 0 and self.net_position <= 0

    def to_dict(self) -> dict[str, Any]:
        """Return the transport shape of the metrics."""
        return {
            "investment_id": self.investment_id,
            "investment_name": self.investment_name,
            "total_called": self.total_called,
            "total_distributed": self.total_distributed,
            "net_position": self.net_position,
            "residual_value": self.residual_value,
            "moic": self.moic,
            "dpi": self.dpi,
            "rvpi": self.rvpi,
            "tvpi": self.tvpi,
            "xirr": self.xirr,
            "transaction_count": self.transaction_count,
            "is_fully_realized": self.is_fully_realized,
            "as_of": self.as_of.isoformat(),
        }


@dataclass(frozen=True)
class PortfolioReport:
    """Per-investment metrics plus the portfolio roll-up."""

    investments: list[PerformanceMetrics]
    portfolio: PerformanceMetrics

    def to_dict(self) -> dict[str, Any]:
        """Return the transport shape of the report."""
        return {
            "investments": [m.to_dict() for m in self.investments],
            "portfolio": self.portfolio.to_dict(),
        }
