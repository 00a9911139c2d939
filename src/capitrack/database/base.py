"""Abstract database interface."""

from abc import ABC, abstractmethod
from typing import Optional, Any, Iterable
from datetime import date
from decimal import Decimal

# Import entities directly to avoid circular import through domain/__init__.py
from capitrack.domain.entities import (
    Commitment,
    CommitmentPhase,
    Investment,
    InvestmentStatus,
    Transaction,
    TransactionCategory,
    TransactionTypeMapping,
)


class Database(ABC):
    """Abstract database interface for capitrack.

    Every domain service receives an instance explicitly; nothing in the
    domain layer reaches for a global handle.
    """

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    # Investment operations
    @abstractmethod
    def create_investment(
        self,
        name: str,
        slug: Optional[str] = None,
        investment_group: Optional[str] = None,
        investment_type: Optional[str] = None,
        product_type: Optional[str] = None,
        status: InvestmentStatus = InvestmentStatus.ACTIVE,
    ) -> int:
        """Create an investment. Returns investment ID."""
        pass

    @abstractmethod
    def get_investment(self, investment_id: int) -> Optional[Investment]:
        """Get investment by ID."""
        pass

    @abstractmethod
    def get_investment_by_name(self, name: str) -> Optional[Investment]:
        """Get investment by exact name."""
        pass

    @abstractmethod
    def get_investment_by_slug(self, slug: str) -> Optional[Investment]:
        """Get investment by slug."""
        pass

    @abstractmethod
    def list_investments(self, status: Optional[InvestmentStatus] = None) -> list[Investment]:
        """List investments, optionally filtered by status."""
        pass

    @abstractmethod
    def update_investment_status(self, investment_id: int, status: InvestmentStatus) -> None:
        """Update investment lifecycle status."""
        pass

    # Transaction operations
    @abstractmethod
    def find_transaction_by_fingerprint(self, fingerprint: str) -> Optional[Transaction]:
        """Get the transaction stored under a dedup fingerprint."""
        pass

    @abstractmethod
    def insert_transaction(
        self,
        fingerprint: str,
        date: Optional[date],
        amount_original: Optional[Decimal],
        amount_normalized: Optional[Decimal],
        cash_flow_direction: Optional[int],
        category: Optional[TransactionCategory] = None,
        transaction_type_raw: Optional[str] = None,
        description: Optional[str] = None,
        original_currency: Optional[str] = None,
        amount_usd: Optional[Decimal] = None,
        amount_ils: Optional[Decimal] = None,
        exchange_rate_to_ils: Optional[Decimal] = None,
        investment_id: Optional[int] = None,
        commitment_id: Optional[int] = None,
        counterparty: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
        source_file: Optional[str] = None,
    ) -> int:
        """Insert a transaction. Returns transaction ID.

        Raises:
            DuplicateKeyError: If the fingerprint is already stored
        """
        pass

    @abstractmethod
    def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        """Get transaction by ID."""
        pass

    @abstractmethod
    def list_transactions(
        self,
        investment_id: Optional[int] = None,
        categories: Optional[Iterable[TransactionCategory]] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        unlinked: bool = False,
    ) -> list[Transaction]:
        """List transactions with optional filters.

        Args:
            investment_id: Optional investment ID filter
            categories: Optional category filter
            start_date: Optional start date filter (inclusive)
            end_date: Optional end date filter (inclusive)
            unlinked: If True, only return transactions without an investment
        """
        pass

    @abstractmethod
    def update_transaction_links(
        self,
        transaction_id: int,
        investment_id: Optional[int],
        commitment_id: Optional[int] = None,
    ) -> None:
        """Back-fill investment/commitment linkage of a transaction."""
        pass

    # Commitment operations
    @abstractmethod
    def list_commitments(self, investment_id: Optional[int] = None) -> list[Commitment]:
        """List commitments, optionally for a single investment."""
        pass

    @abstractmethod
    def get_commitment(self, commitment_id: int) -> Optional[Commitment]:
        """Get commitment by ID."""
        pass

    @abstractmethod
    def upsert_commitment(
        self,
        investment_id: int,
        commitment_amount: Decimal,
        currency: str,
        commitment_date: date,
        called_to_date: Decimal,
        remaining: Decimal,
        phase: Optional[CommitmentPhase] = None,
        manual_phase: bool = False,
        notes: Optional[str] = None,
        commitment_id: Optional[int] = None,
    ) -> int:
        """Create a commitment, or replace it when commitment_id is given.

        Returns commitment ID.
        """
        pass

    @abstractmethod
    def delete_commitment(self, commitment_id: int) -> None:
        """Delete a commitment."""
        pass

    @abstractmethod
    def get_commitment_transaction_count(self, commitment_id: int) -> int:
        """Get count of transactions linked to a commitment."""
        pass

    # Transaction type mapping operations
    @abstractmethod
    def list_type_mappings(self) -> list[TransactionTypeMapping]:
        """List all transaction type mappings."""
        pass

    @abstractmethod
    def get_type_mapping(self, raw_value: str) -> Optional[TransactionTypeMapping]:
        """Get a transaction type mapping by raw label."""
        pass

    @abstractmethod
    def upsert_type_mapping(self, mapping: TransactionTypeMapping) -> None:
        """Create or replace a transaction type mapping."""
        pass

    @abstractmethod
    def delete_type_mapping(self, raw_value: str) -> None:
        """Delete a transaction type mapping."""
        pass
