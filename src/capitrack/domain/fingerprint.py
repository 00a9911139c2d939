"""Deduplication fingerprints for normalized transactions.

A fingerprint is the SHA-256 of the transaction's canonical identity fields,
so the same economic record gets the same key no matter how the exporting
spreadsheet formatted it (``100`` vs ``100.00`` vs a float cell, padded or
re-cased counterparty names). There is no fuzzy matching: two records either
share every canonical component or are different transactions.
"""

import hashlib
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Callable, Iterable, Optional

from capitrack.domain.entities import NormalizedTransaction
from capitrack.domain.errors import ValidationError
from capitrack.utils.slug import normalize_label

DEFAULT_FINGERPRINT_FIELDS = ("date", "amount_original", "counterparty", "investment")

AMOUNT_QUANTUM = Decimal("0.0001")


def canonical_date(value: Optional[date]) -> str:
    return value.isoformat() if value is not None else ""


def canonical_amount(value: Optional[Decimal]) -> str:
    if value is None:
        return ""
    try:
        quantized = Decimal(value).quantize(AMOUNT_QUANTUM)
    except InvalidOperation:
        raise ValidationError(f"Amount {value} is too large to store")
    if quantized == 0:
        quantized = abs(quantized)
    return str(quantized)


def canonical_text(value: Optional[str]) -> str:
    if value is None:
        return ""
    return normalize_label(str(value))


def _investment_key(txn: NormalizedTransaction) -> str:
    if txn.investment_slug:
        return canonical_text(txn.investment_slug)
    return canonical_text(txn.investment_name)


_EXTRACTORS: dict[str, Callable[[NormalizedTransaction], str]] = {
    "date": lambda txn: canonical_date(txn.date),
    "amount_original": lambda txn: canonical_amount(txn.amount_original),
    "amount_normalized": lambda txn: canonical_amount(txn.amount_normalized),
    "counterparty": lambda txn: canonical_text(txn.counterparty),
    "investment": _investment_key,
    "currency": lambda txn: canonical_text(txn.original_currency),
    "transaction_type": lambda txn: canonical_text(txn.transaction_type_raw),
    "description": lambda txn: canonical_text(txn.description),
}

ALLOWED_FINGERPRINT_FIELDS = tuple(_EXTRACTORS)


def parse_fingerprint_fields(value: str) -> tuple[str, ...]:
    """Parse a comma-separated field list such as "date,amount_original"."""
    fields = tuple(part.strip() for part in value.split(",") if part.strip())
    if not fields:
        raise ValidationError("At least one fingerprint field is required")
    return fields


class Fingerprinter:
    """Computes dedup fingerprints over a configured list of fields."""

    def __init__(self, fields: Iterable[str] = DEFAULT_FINGERPRINT_FIELDS):
        self.fields = tuple(fields)
        if not self.fields:
            raise ValidationError("At least one fingerprint field is required")
        unknown = [name for name in self.fields if name not in _EXTRACTORS]
        if unknown:
            raise ValidationError(
                f"Unknown fingerprint field(s): {', '.join(unknown)}. "
                f"Allowed: {', '.join(ALLOWED_FINGERPRINT_FIELDS)}"
            )

    def components(self, txn: NormalizedTransaction) -> list[str]:
        """Return the ``field=value`` components in configured order."""
        return [f"{name}={_EXTRACTORS[name](txn)}" for name in self.fields]

    def fingerprint(self, txn: NormalizedTransaction) -> str:
        """Return the hex SHA-256 fingerprint of a normalized transaction."""
        canonical = "|".join(self.components(txn))
        return hashlib.sha256(canonical.encode("utf-8")).hexdigest()

    def __repr__(self) -> str:
        return f"Fingerprinter(fields={self.fields!r})"


def fingerprint(txn: NormalizedTransaction, fields: Iterable[str] = DEFAULT_FINGERPRINT_FIELDS) -> str:
    """Fingerprint a transaction with a one-off Fingerprinter."""
    return Fingerprinter(fields).fingerprint(txn)
