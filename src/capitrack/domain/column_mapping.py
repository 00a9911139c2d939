"""Column-to-field configuration for exported spreadsheets.

The custodian export has fixed Hebrew headers, so its mapping is static.
English headers cover hand-made sheets. Columns not listed are kept only in
the row metadata.
"""

from typing import Any, Iterable, Mapping, Optional

from capitrack.domain.errors import ValidationError
from capitrack.utils.slug import normalize_label

REQUIRED_FIELDS = ("date", "amount")

HEBREW_COLUMN_MAP = {
    "תאור": "investment",
    "גוף מנהל": "counterparty",
    "סוג מוצר": "product_type",
    "תאריך התנועה": "date",
    "סכום תנועה במטבע": "amount",
    "מטבע התנועה": "currency",
    "סוג תנועה": "transaction_type",
    "שער המרה לתנועה": "exchange_rate_to_ils",
    'סכום תנועה בש"ח': "amount_ils",
}

ENGLISH_COLUMN_MAP = {
    "date": "date",
    "transaction date": "date",
    "amount": "amount",
    "currency": "currency",
    "type": "transaction_type",
    "transaction type": "transaction_type",
    "investment": "investment",
    "investment name": "investment",
    "counterparty": "counterparty",
    "manager": "counterparty",
    "product type": "product_type",
    "description": "description",
    "exchange rate": "exchange_rate_to_ils",
    "exchange rate to ils": "exchange_rate_to_ils",
    "amount ils": "amount_ils",
    "amount usd": "amount_usd",
}

KNOWN_COLUMN_MAPS = (HEBREW_COLUMN_MAP, ENGLISH_COLUMN_MAP)


def _match(headers: Iterable[str], column_map: Mapping[str, str]) -> dict[str, str]:
    lookup = {normalize_label(column): field for column, field in column_map.items()}
    matched = {}
    for header in headers:
        if header is None:
            continue
        field = lookup.get(normalize_label(str(header)))
        if field is not None and field not in matched.values():
            matched[header] = field
    return matched


def match_column_map(headers: Iterable[str]) -> Optional[dict[str, str]]:
    """Return the best known column map for a header row, or None.

    A map qualifies when it covers every required field.
    """
    headers = list(headers)
    best = None
    for column_map in KNOWN_COLUMN_MAPS:
        matched = _match(headers, column_map)
        if not set(REQUIRED_FIELDS) <= set(matched.values()):
            continue
        if best is None or len(matched) > len(best):
            best = matched
    return best


def detect_column_map(headers: Iterable[str]) -> dict[str, str]:
    """Map the headers of a file to field names.

    Raises:
        ValidationError: If no known layout covers the required columns
    """
    headers = list(headers)
    column_map = match_column_map(headers)
    if column_map is None:
        raise ValidationError(
            "Unrecognized column layout; expected date and amount columns, got: "
            + ", ".join(str(h) for h in headers if h)
        )
    return column_map


def map_row(raw_row: Mapping[str, Any], column_map: Mapping[str, str]) -> dict[str, Any]:
    """Rename a raw row's columns to field names.

    Empty strings become None; unmapped columns are dropped.
    """
    mapped: dict[str, Any] = {}
    for column, field in column_map.items():
        value = raw_row.get(column)
        if isinstance(value, str):
            value = value.strip() or None
        mapped[field] = value
    return mapped
