"""Return multiples and XIRR for investments and the portfolio.

Cash flows are taken from the investor's side: capital calls are money
out (negative) and distributions money in (positive). Fees, income and
transfers are not part of either. Unreturned capital is treated as the
residual value of the position, so an investment that has not yet
distributed its called capital is valued at cost.
"""

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from capitrack.database.base import Database
from capitrack.domain.entities import (
    CashFlow,
    PerformanceMetrics,
    PortfolioReport,
    Transaction,
    TransactionCategory,
)
from capitrack.domain.errors import NotFoundError, investment_not_found

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
DAYS_PER_YEAR = 365.0

XIRR_GUESS = 0.1
XIRR_MAX_ITERATIONS = 100
XIRR_TOLERANCE = 0.0001
# Bounds on the rate between iterations, -99% to 1000%
MIN_RATE = -0.99
MAX_RATE = 10.0

PERFORMANCE_CATEGORIES = (TransactionCategory.CAPITAL_CALL, TransactionCategory.DISTRIBUTION)


@dataclass(frozen=True)
class Multiples:
    """MOIC, DPI, RVPI and TVPI of one set of totals."""

    moic: Optional[float]
    dpi: Optional[float]
    rvpi: Optional[float]
    tvpi: Optional[float]


def calculate_multiples(
    total_called: Decimal,
    total_distributed: Decimal,
    residual_value: Optional[Decimal] = None,
) -> Multiples:
    """Compute the return multiples of called and distributed totals.

    Args:
        total_called: Capital called so far (positive)
        total_distributed: Distributions received so far (positive)
        residual_value: Value of the remaining position; defaults to the
            unreturned called capital, or zero once it has all come back

    Returns:
        Multiples, all None when nothing has been called
    """
    if total_called <= 0:
        return Multiples(moic=None, dpi=None, rvpi=None, tvpi=None)
    if residual_value is None:
        residual_value = max(total_called - total_distributed, ZERO)

    moic = float((total_distributed + residual_value) / total_called)
    return Multiples(
        moic=moic,
        dpi=float(total_distributed / total_called),
        rvpi=float(residual_value / total_called),
        tvpi=moic,
    )


def _npv(amounts: list[float], years: list[float], rate: float) -> float:
    return sum(amount / (1 + rate) ** t for amount, t in zip(amounts, years))


def _npv_derivative(amounts: list[float], years: list[float], rate: float) -> float:
    return sum(-t * amount / (1 + rate) ** (t + 1) for amount, t in zip(amounts, years))


def xirr(
    cash_flows: Iterable[CashFlow],
    guess: float = XIRR_GUESS,
    max_iterations: int = XIRR_MAX_ITERATIONS,
    tolerance: float = XIRR_TOLERANCE,
) -> Optional[float]:
    """Annualized internal rate of return of irregularly dated cash flows.

    Solves ``sum(amount / (1 + r) ** (days / 365)) == 0`` by Newton-Raphson,
    with days counted from the earliest flow.

    Args:
        cash_flows: Dated flows in any order
        guess: Starting rate
        max_iterations: Iteration limit
        tolerance: Largest absolute NPV accepted as converged

    Returns:
        Rate as a fraction (0.15 is 15%), or None when there are fewer than
        two flows, they don't have both signs, they all fall on one day,
        or the iteration stalls, leaves the rate bounds or runs out
    """
    flows = sorted(cash_flows, key=lambda flow: flow.date)
    if len(flows) < 2:
        return None
    amounts = [float(flow.amount) for flow in flows]
    if not (any(a < 0 for a in amounts) and any(a > 0 for a in amounts)):
        return None
    start = flows[0].date
    if flows[-1].date == start:
        return None
    years = [(flow.date - start).days / DAYS_PER_YEAR for flow in flows]

    rate = guess
    for _ in range(max_iterations):
        npv = _npv(amounts, years, rate)
        if abs(npv) < tolerance:
            return rate
        derivative = _npv_derivative(amounts, years, rate)
        if abs(derivative) < 1e-10:
            logger.debug("XIRR stopped at rate %s: derivative too small", rate)
            return None
        rate = rate - npv / derivative
        if rate < MIN_RATE or rate > MAX_RATE:
            logger.debug("XIRR diverged to rate %s", rate)
            return None

    logger.debug("XIRR did not converge in %d iterations", max_iterations)
    return None


def transactions_to_cash_flows(
    transactions: Iterable[Transaction],
    as_of: date,
    include_position: bool = True,
) -> list[CashFlow]:
    """Turn stored transactions into investor-side cash flows.

    Rows without a date or amount are left out. With ``include_position``,
    capital still outstanding is added as a final inflow dated ``as_of``,
    as if the position were liquidated at cost on that day.
    """
    flows = []
    for txn in transactions:
        if txn.date is None or txn.amount_normalized is None:
            continue
        if txn.category == TransactionCategory.CAPITAL_CALL:
            flows.append(CashFlow(date=txn.date, amount=-abs(txn.amount_normalized)))
        elif txn.category == TransactionCategory.DISTRIBUTION:
            flows.append(CashFlow(date=txn.date, amount=abs(txn.amount_normalized)))

    net = sum((flow.amount for flow in flows), ZERO)
    if include_position and net < 0:
        flows.append(CashFlow(date=as_of, amount=-net))
    return flows


def build_metrics(
    transactions: Iterable[Transaction],
    as_of: date,
    investment_id: Optional[int] = None,
    investment_name: Optional[str] = None,
) -> PerformanceMetrics:
    """Compute the performance of a set of transactions as of a date."""
    transactions = [
        t
        for t in transactions
        if t.category in PERFORMANCE_CATEGORIES and t.date is not None and t.amount_normalized is not None
    ]
    total_called = sum(
        (abs(t.amount_normalized) for t in transactions if t.category == TransactionCategory.CAPITAL_CALL),
        ZERO,
    )
    total_distributed = sum(
        (abs(t.amount_normalized) for t in transactions if t.category == TransactionCategory.DISTRIBUTION),
        ZERO,
    )
    net_position = total_called - total_distributed
    residual_value = max(net_position, ZERO)
    multiples = calculate_multiples(total_called, total_distributed, residual_value)

    rate = None
    if len(transactions) >= 2:
        rate = xirr(transactions_to_cash_flows(transactions, as_of))

    return PerformanceMetrics(
        investment_id=investment_id,
        investment_name=investment_name,
        total_called=total_called,
        total_distributed=total_distributed,
        net_position=net_position,
        residual_value=residual_value,
        moic=multiples.moic,
        dpi=multiples.dpi,
        rvpi=multiples.rvpi,
        tvpi=multiples.tvpi,
        xirr=rate,
        transaction_count=len(transactions),
        as_of=as_of,
    )


class MetricsService:
    """Service for investment and portfolio performance reports."""

    def __init__(self, db: Database):
        """Initialize metrics service.

        Args:
            db: Database instance
        """
        self.db = db

    def _transactions(self, as_of: date, investment_id: Optional[int] = None) -> list[Transaction]:
        return self.db.list_transactions(
            investment_id=investment_id,
            categories=list(PERFORMANCE_CATEGORIES),
            end_date=as_of,
        )

    def investment_metrics(self, investment_id: int, as_of: Optional[date] = None) -> PerformanceMetrics:
        """Compute one investment's performance from its linked transactions.

        Args:
            investment_id: Investment ID
            as_of: Ignore transactions after this date and date the
                residual position on it (default: today)

        Raises:
            NotFoundError: If the investment doesn't exist
        """
        investment = self.db.get_investment(investment_id)
        if investment is None:
            raise NotFoundError(investment_not_found(investment_id))
        as_of = as_of or date.today()
        return build_metrics(self._transactions(as_of, investment_id), as_of, investment.id, investment.name)

    def portfolio_report(self, as_of: Optional[date] = None) -> PortfolioReport:
        """Compute every investment's performance and the portfolio roll-up.

        Investments without capital calls or distributions are left out of
        the per-investment list. The roll-up covers every call and
        distribution, including those not linked to an investment.
        """
        as_of = as_of or date.today()
        investments = []
        for investment in self.db.list_investments():
            metrics = build_metrics(
                self._transactions(as_of, investment.id), as_of, investment.id, investment.name
            )
            if metrics.transaction_count:
                investments.append(metrics)

        portfolio = build_metrics(self._transactions(as_of), as_of)
        logger.info(
            "Portfolio report as of %s: %d investment(s), %s called, %s distributed",
            as_of,
            len(investments),
            portfolio.total_called,
            portfolio.total_distributed,
        )
        return PortfolioReport(investments=investments, portfolio=portfolio)
