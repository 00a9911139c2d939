"""Utility functions for capitrack."""

from capitrack.utils.date_parser import parse_date, parse_transaction_date
from capitrack.utils.amount_parser import parse_amount
from capitrack.utils.currency import currency_to_code
from capitrack.utils.slug import generate_slug, normalize_label

__all__ = [
    "parse_date",
    "parse_transaction_date",
    "parse_amount",
    "currency_to_code",
    "generate_slug",
    "normalize_label",
]
