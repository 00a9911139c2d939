"""Spreadsheet export import domain service."""

import csv
import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Iterable, Optional

from capitrack.database.base import Database
from capitrack.domain.column_mapping import map_row, match_column_map
from capitrack.domain.entities import ImportSummary, PreparedTransaction
from capitrack.domain.errors import DomainError, UnmappedTransactionTypeError, ValidationError
from capitrack.domain.fingerprint import Fingerprinter
from capitrack.domain.investment import InvestmentService
from capitrack.domain.normalize import normalize_row
from capitrack.domain.transaction_import import ImportOptions, ImportOrchestrator
from capitrack.domain.type_mapping import TypeMapRegistry

logger = logging.getLogger(__name__)

MAX_FILE_SIZE = 10 * 1024 * 1024
# The custodian export puts its header on row 3; look a little further.
HEADER_SEARCH_ROWS = 20


@dataclass(frozen=True)
class SheetRow:
    """One data row of a sheet."""

    index: int
    line_number: int
    raw: dict[str, Any]
    mapped: dict[str, Any]


@dataclass
class Sheet:
    """Rows read from an export, with the column layout that was detected."""

    headers: list[str]
    column_map: dict[str, str]
    header_line: int
    rows: list[SheetRow] = field(default_factory=list)


@dataclass
class PreparationResult:
    """Prepared transactions plus the rows that could not be prepared."""

    prepared: list[PreparedTransaction] = field(default_factory=list)
    positions: list[int] = field(default_factory=list)
    errors: list[dict[str, Any]] = field(default_factory=list)
    unmapped_labels: set[str] = field(default_factory=set)


class SpreadsheetImportService:
    """Service for importing exported transaction spreadsheets."""

    def __init__(self, db: Database, fingerprinter: Optional[Fingerprinter] = None):
        """Initialize spreadsheet import service.

        Args:
            db: Database instance
            fingerprinter: Fingerprinter to use; defaults to the standard fields
        """
        self.db = db
        self.fingerprinter = fingerprinter or Fingerprinter()
        self.investment_service = InvestmentService(db)
        self.orchestrator = ImportOrchestrator(db)

    def read_rows(self, file_path: str) -> Sheet:
        """Read an exported CSV file.

        The header row is the first row whose columns cover the date and
        amount fields of a known layout. Blank rows are skipped.

        Args:
            file_path: Path to the file

        Returns:
            Sheet with mapped rows

        Raises:
            FileNotFoundError: If the file doesn't exist
            ValidationError: If the file is too large or has no known header
        """
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {file_path}")
        size = path.stat().st_size
        if size > MAX_FILE_SIZE:
            raise ValidationError(
                f"File is too large ({size / 1024 / 1024:.1f}MB); the limit is "
                f"{MAX_FILE_SIZE // 1024 // 1024}MB"
            )

        with open(path, "r", encoding="utf-8-sig", newline="") as f:
            sample = f.read(4096)
            f.seek(0)
            try:
                dialect = csv.Sniffer().sniff(sample, delimiters=",;\t|")
                delimiter = dialect.delimiter
            except csv.Error:
                delimiter = ","
            lines = list(csv.reader(f, delimiter=delimiter))

        sheet = None
        for line_number, cells in enumerate(lines[:HEADER_SEARCH_ROWS], start=1):
            headers = [cell.strip() for cell in cells]
            column_map = match_column_map(headers)
            if column_map is not None:
                sheet = Sheet(headers=headers, column_map=column_map, header_line=line_number)
                break
        if sheet is None:
            raise ValidationError(
                f"No header row with date and amount columns found in the first "
                f"{HEADER_SEARCH_ROWS} rows of {path.name}"
            )

        for line_number, cells in enumerate(lines[sheet.header_line:], start=sheet.header_line + 1):
            if not any(cell.strip() for cell in cells):
                continue
            raw = {
                header: (cells[i] if i < len(cells) else None)
                for i, header in enumerate(sheet.headers)
                if header
            }
            sheet.rows.append(
                SheetRow(
                    index=len(sheet.rows),
                    line_number=line_number,
                    raw=raw,
                    mapped=map_row(raw, sheet.column_map),
                )
            )

        logger.info(
            "Read %d row(s) from %s (header on line %d)", len(sheet.rows), path.name, sheet.header_line
        )
        return sheet

    def prepare_rows(
        self, rows: Iterable[SheetRow], registry: Optional[TypeMapRegistry] = None
    ) -> PreparationResult:
        """Normalize and fingerprint rows.

        Args:
            rows: Sheet rows
            registry: Type map registry; loaded from the database if omitted

        Returns:
            PreparationResult; rows that fail to parse are listed in
            ``errors`` and their unmapped labels in ``unmapped_labels``
        """
        registry = registry or TypeMapRegistry.from_database(self.db)
        result = PreparationResult()
        for row in rows:
            try:
                normalized = normalize_row(row.mapped, registry)
                fingerprint = self.fingerprinter.fingerprint(normalized)
            except UnmappedTransactionTypeError as e:
                result.unmapped_labels.add(e.raw_label)
                result.errors.append({"row": row.index, "error": str(e)})
                continue
            except DomainError as e:
                result.errors.append({"row": row.index, "error": str(e)})
                continue
            result.prepared.append(
                PreparedTransaction(
                    normalized=normalized,
                    fingerprint=fingerprint,
                    metadata=dict(row.raw),
                )
            )
            result.positions.append(row.index)

        if result.unmapped_labels:
            logger.warning(
                "Unmapped transaction types: %s", ", ".join(sorted(result.unmapped_labels))
            )
        return result

    def import_file(
        self,
        file_path: str,
        options: Optional[ImportOptions] = None,
        dry_run: bool = False,
        create_investments: bool = True,
    ) -> ImportSummary:
        """Import a spreadsheet export.

        Args:
            file_path: Path to the file
            options: Import options; source_file defaults to the file name
            dry_run: If True, report what would happen without writing
            create_investments: Create investments named in the file that
                don't exist yet (real runs only)

        Returns:
            ImportSummary whose row numbers are data-row positions in the file

        Raises:
            FileNotFoundError: If the file doesn't exist
            ValidationError: If the file can't be read as an export
        """
        options = options or ImportOptions()
        if options.source_file is None:
            options = replace(options, source_file=Path(file_path).name)

        sheet = self.read_rows(file_path)
        if create_investments and not dry_run:
            discovery = self.investment_service.discover_investments(row.mapped for row in sheet.rows)
            self.investment_service.create_investments(discovery.new)

        preparation = self.prepare_rows(sheet.rows)
        summary = self.orchestrator.import_transactions(preparation.prepared, options, dry_run=dry_run)

        # Orchestrator rows are positions among prepared rows; report file positions.
        for error in summary.errors:
            error["row"] = preparation.positions[error["row"]]
        summary.errors.extend(preparation.errors)
        summary.errors.sort(key=lambda error: error["row"])
        summary.total += len(preparation.errors)
        summary.failed += len(preparation.errors)
        summary.unmapped_types = sorted(preparation.unmapped_labels)
        return summary
