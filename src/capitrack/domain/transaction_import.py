"""Transaction import orchestration.

Every prepared row goes through the same classification whether the batch is
a real import or a dry run, so a preview always predicts what the import
will do. The only difference is that a real run writes the rows it
classifies as importable.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from capitrack.database.base import Database
from capitrack.domain.commitment import CommitmentAllocator
from capitrack.domain.entities import (
    ImportSummary,
    Investment,
    PreparedTransaction,
    TransactionCategory,
)
from capitrack.domain.errors import (
    DomainError,
    DuplicateKeyError,
    duplicate_transaction_fingerprint,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImportOptions:
    """Options controlling an import batch."""

    source_file: Optional[str] = None
    skip_duplicates: bool = True
    force_import: bool = False


class RowOutcome(str, Enum):
    IMPORT = "import"
    DUPLICATE = "duplicate"
    INVALID = "invalid"
    CONFLICT = "conflict"


class ImportOrchestrator:
    """Persists prepared transactions, skipping duplicates and invalid rows."""

    def __init__(self, db: Database, allocator: Optional[CommitmentAllocator] = None):
        """Initialize import orchestrator.

        Args:
            db: Database instance
            allocator: Allocator run after real imports; defaults to front-load
        """
        self.db = db
        self.allocator = allocator or CommitmentAllocator(db)

    def import_transactions(
        self,
        prepared: Iterable[PreparedTransaction],
        options: Optional[ImportOptions] = None,
        dry_run: bool = False,
    ) -> ImportSummary:
        """Import a batch of prepared transactions.

        Rows are handled one at a time. A failing row is recorded in
        ``errors`` and the batch carries on.

        Args:
            prepared: Prepared transactions, in file order
            options: Import options
            dry_run: If True, classify rows without writing anything

        Returns:
            ImportSummary with counts, new transaction IDs and row errors
        """
        options = options or ImportOptions()
        summary = ImportSummary(dry_run=dry_run)
        seen: set[str] = set()
        touched_investments: set[int] = set()

        logger.info(
            "Starting %s of %s",
            "dry run" if dry_run else "import",
            options.source_file or "batch",
        )

        for row_index, item in enumerate(prepared):
            summary.total += 1
            try:
                outcome = self._classify(item, options, seen)
                if outcome in (RowOutcome.DUPLICATE, RowOutcome.INVALID):
                    self._count_skip(summary, outcome)
                    continue
                if outcome == RowOutcome.CONFLICT:
                    summary.failed += 1
                    summary.errors.append(
                        {"row": row_index, "error": duplicate_transaction_fingerprint(item.fingerprint)}
                    )
                    continue

                seen.add(item.fingerprint)
                if not dry_run:
                    investment = self._resolve_investment(item)
                    transaction_id = self._persist(item, investment, options)
                    summary.transaction_ids.append(transaction_id)
                    if investment is not None and item.normalized.category == TransactionCategory.CAPITAL_CALL:
                        touched_investments.add(investment.id)
                summary.imported += 1
            except DuplicateKeyError:
                logger.info("Row %d is already stored, skipping", row_index)
                self._count_skip(summary, RowOutcome.DUPLICATE)
            except DomainError as e:
                logger.warning("Row %d failed: %s", row_index, e)
                summary.failed += 1
                summary.errors.append({"row": row_index, "error": str(e)})

        if not dry_run:
            for investment_id in sorted(touched_investments):
                self.allocator.allocate(investment_id)

        logger.info(
            "%s complete: %d total, %d imported, %d skipped, %d failed",
            "Dry run" if dry_run else "Import",
            summary.total,
            summary.imported,
            summary.skipped,
            summary.failed,
        )
        return summary

    def _classify(self, item: PreparedTransaction, options: ImportOptions, seen: set[str]) -> RowOutcome:
        """Decide what happens to one row. Shared by real and dry runs."""
        exists = item.fingerprint in seen or (
            self.db.find_transaction_by_fingerprint(item.fingerprint) is not None
        )
        if exists:
            # The store keeps one row per fingerprint either way
            return RowOutcome.DUPLICATE if options.skip_duplicates else RowOutcome.CONFLICT
        txn = item.normalized
        if not options.force_import and (txn.date is None or txn.amount_normalized is None):
            return RowOutcome.INVALID
        return RowOutcome.IMPORT

    @staticmethod
    def _count_skip(summary: ImportSummary, outcome: RowOutcome) -> None:
        summary.skipped += 1
        if outcome == RowOutcome.DUPLICATE:
            summary.skipped_duplicates += 1
        else:
            summary.skipped_invalid += 1

    def _resolve_investment(self, item: PreparedTransaction) -> Optional[Investment]:
        txn = item.normalized
        if txn.investment_slug:
            investment = self.db.get_investment_by_slug(txn.investment_slug)
            if investment is not None:
                return investment
        if txn.investment_name:
            return self.db.get_investment_by_name(txn.investment_name)
        return None

    def _persist(
        self,
        item: PreparedTransaction,
        investment: Optional[Investment],
        options: ImportOptions,
    ) -> int:
        txn = item.normalized
        return self.db.insert_transaction(
            fingerprint=item.fingerprint,
            date=txn.date,
            amount_original=txn.amount_original,
            amount_normalized=txn.amount_normalized,
            cash_flow_direction=txn.cash_flow_direction,
            category=txn.category,
            transaction_type_raw=txn.transaction_type_raw,
            description=txn.description,
            original_currency=txn.original_currency,
            amount_usd=txn.amount_usd,
            amount_ils=txn.amount_ils,
            exchange_rate_to_ils=txn.exchange_rate_to_ils,
            investment_id=investment.id if investment else None,
            counterparty=txn.counterparty,
            metadata=item.metadata,
            source_file=options.source_file,
        )
