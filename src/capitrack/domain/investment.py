"""Investment domain service."""

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional, Union

from capitrack.database.base import Database
from capitrack.domain.commitment import CommitmentAllocator
from capitrack.domain.entities import Investment, InvestmentStatus, TransactionCategory
from capitrack.domain.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    duplicate_investment_name,
    investment_name_not_found,
    investment_not_found,
)
from capitrack.utils.slug import generate_slug

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InvestmentCandidate:
    """An investment named in imported rows."""

    name: str
    counterparty: Optional[str] = None
    product_type: Optional[str] = None

    @property
    def slug(self) -> str:
        return generate_slug(self.name)


@dataclass
class DiscoveryResult:
    """Investments found in a batch of rows, split by whether they exist."""

    existing: list[Investment] = field(default_factory=list)
    new: list[InvestmentCandidate] = field(default_factory=list)


class InvestmentService:
    """Service for managing investments."""

    def __init__(self, db: Database):
        """Initialize investment service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_investment(
        self,
        name: str,
        investment_group: Optional[str] = None,
        investment_type: Optional[str] = None,
        product_type: Optional[str] = None,
        status: Union[InvestmentStatus, str] = InvestmentStatus.ACTIVE,
    ) -> int:
        """Create a new investment.

        Args:
            name: Investment name
            investment_group: Optional group, usually the managing body
            investment_type: Optional type
            product_type: Optional product type from the export
            status: Lifecycle status

        Returns:
            Investment ID

        Raises:
            ValidationError: If the name is empty or status unknown
            ConflictError: If the name or its slug is already taken
        """
        name = " ".join((name or "").split())
        if not name:
            raise ValidationError("Investment name cannot be empty")
        status = self._parse_status(status)

        if self.db.get_investment_by_name(name) is not None:
            raise ConflictError(duplicate_investment_name(name))
        slug = generate_slug(name)
        clash = self.db.get_investment_by_slug(slug)
        if clash is not None:
            raise ConflictError(
                f"Investment '{name}' has the same identity ('{slug}') as '{clash.name}'"
            )

        investment_id = self.db.create_investment(
            name=name,
            slug=slug,
            investment_group=investment_group,
            investment_type=investment_type,
            product_type=product_type,
            status=status,
        )
        logger.info("Created investment %s (%s)", investment_id, name)
        return investment_id

    def get_investment(self, investment_id: int) -> Investment:
        """Get investment by ID.

        Raises:
            NotFoundError: If the investment doesn't exist
        """
        investment = self.db.get_investment(investment_id)
        if investment is None:
            raise NotFoundError(investment_not_found(investment_id))
        return investment

    def get_investment_by_name(self, name: str) -> Optional[Investment]:
        return self.db.get_investment_by_name(name)

    def get_investment_by_slug(self, slug: str) -> Optional[Investment]:
        return self.db.get_investment_by_slug(slug)

    def resolve_investment(self, identifier: Union[int, str]) -> Investment:
        """Find an investment by ID, slug or exact name.

        Args:
            identifier: Numeric ID, slug or name

        Returns:
            Investment entity

        Raises:
            NotFoundError: If nothing matches
        """
        if isinstance(identifier, int) or str(identifier).isdigit():
            investment = self.db.get_investment(int(identifier))
            if investment is not None:
                return investment
        text = str(identifier).strip()
        investment = self.db.get_investment_by_slug(generate_slug(text))
        if investment is None:
            investment = self.db.get_investment_by_name(text)
        if investment is None:
            raise NotFoundError(investment_name_not_found(text))
        return investment

    def list_investments(self, status: Optional[Union[InvestmentStatus, str]] = None) -> list[Investment]:
        """List investments, optionally filtered by status."""
        if status is not None:
            status = self._parse_status(status)
        return self.db.list_investments(status)

    def update_status(self, investment_id: int, status: Union[InvestmentStatus, str]) -> Investment:
        """Change an investment's lifecycle status.

        Raises:
            NotFoundError: If the investment doesn't exist
            ValidationError: If the status is unknown
        """
        status = self._parse_status(status)
        self.get_investment(investment_id)
        self.db.update_investment_status(investment_id, status)
        return self.get_investment(investment_id)

    def discover_investments(self, rows: Iterable[Mapping[str, Any]]) -> DiscoveryResult:
        """Find the investments named in mapped rows.

        Rows are grouped by investment slug; the first counterparty and
        product type seen for an investment are kept.

        Args:
            rows: Mapped rows with ``investment``, ``counterparty`` and
                ``product_type`` fields

        Returns:
            DiscoveryResult with existing investments and new candidates
        """
        result = DiscoveryResult()
        seen: set[str] = set()
        for row in rows:
            name = " ".join(str(row.get("investment") or "").split())
            if not name:
                continue
            candidate = InvestmentCandidate(
                name=name,
                counterparty=_text_or_none(row.get("counterparty")),
                product_type=_text_or_none(row.get("product_type")),
            )
            if candidate.slug in seen:
                continue
            seen.add(candidate.slug)

            existing = self.db.get_investment_by_slug(candidate.slug) or self.db.get_investment_by_name(name)
            if existing is not None:
                result.existing.append(existing)
            else:
                result.new.append(candidate)

        logger.info(
            "Discovered %d investment(s): %d existing, %d new",
            len(result.existing) + len(result.new),
            len(result.existing),
            len(result.new),
        )
        return result

    def create_investments(self, candidates: Iterable[InvestmentCandidate]) -> list[int]:
        """Create investments for discovered candidates.

        Returns:
            IDs of the created investments
        """
        return [
            self.create_investment(
                name=candidate.name,
                investment_group=candidate.counterparty,
                product_type=candidate.product_type,
            )
            for candidate in candidates
        ]

    def backfill_transaction_links(self) -> int:
        """Link unlinked transactions to investments by description.

        A transaction is linked when the slug of its description equals an
        investment's slug. Commitment allocation is recomputed for
        investments that gained capital calls.

        Returns:
            Number of transactions linked
        """
        by_slug = {inv.slug: inv for inv in self.db.list_investments() if inv.slug}
        linked = 0
        touched: set[int] = set()
        for txn in self.db.list_transactions(unlinked=True):
            if not txn.description:
                continue
            investment = by_slug.get(generate_slug(txn.description))
            if investment is None:
                continue
            self.db.update_transaction_links(txn.id, investment.id, txn.commitment_id)
            linked += 1
            if txn.category == TransactionCategory.CAPITAL_CALL:
                touched.add(investment.id)

        allocator = CommitmentAllocator(self.db)
        for investment_id in sorted(touched):
            allocator.allocate(investment_id)
        logger.info("Linked %d transaction(s) to investments", linked)
        return linked

    @staticmethod
    def _parse_status(status: Union[InvestmentStatus, str]) -> InvestmentStatus:
        try:
            return InvestmentStatus(status)
        except ValueError:
            allowed = ", ".join(s.value for s in InvestmentStatus)
            raise ValidationError(f"Unknown status '{status}'. Expected one of: {allowed}")


def _text_or_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = " ".join(str(value).split())
    return text or None
