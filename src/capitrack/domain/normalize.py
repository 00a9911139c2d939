"""Directionality normalization and row parsing."""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Mapping, Optional

from capitrack.domain.entities import (
    DirectionalityRule,
    NormalizedTransaction,
    TransactionCategory,
    TransactionTypeMapping,
)
from capitrack.domain.errors import InvalidRowError, ValidationError
from capitrack.domain.type_mapping import TypeMapRegistry
from capitrack.utils.amount_parser import parse_amount
from capitrack.utils.currency import currency_to_code
from capitrack.utils.date_parser import parse_transaction_date
from capitrack.utils.slug import generate_slug


@dataclass(frozen=True)
class NormalizedAmount:
    """Signed amount produced for one raw amount and label."""

    amount_normalized: Decimal
    cash_flow_direction: int
    category: TransactionCategory
    mapping: TransactionTypeMapping


def apply_rule(amount: Decimal, mapping: TransactionTypeMapping) -> Decimal:
    """Apply a mapping's directionality rule to a raw amount.

    Raises:
        ValidationError: If the mapping carries an unknown rule
    """
    rule = mapping.directionality_rule
    if rule == DirectionalityRule.AS_IS:
        return amount
    if rule == DirectionalityRule.INVERT:
        return -amount
    if rule == DirectionalityRule.VARIABLE:
        if mapping.cash_flow_impact is None:
            return amount
        return mapping.cash_flow_impact * abs(amount)
    raise ValidationError(f"Unknown directionality rule: {rule!r}")


def direction_of(amount: Decimal) -> int:
    """Return +1 or -1 for an amount. Zero counts as an inflow."""
    return -1 if amount < 0 else 1


class Normalizer:
    """Turns raw amounts and type labels into signed, categorized amounts."""

    def __init__(self, registry: TypeMapRegistry):
        self.registry = registry

    def normalize(self, amount: Decimal, raw_label: Optional[str]) -> NormalizedAmount:
        """Normalize one raw amount.

        Args:
            amount: Parsed raw amount, sign as exported
            raw_label: Raw transaction type label

        Returns:
            NormalizedAmount with signed amount, direction and category

        Raises:
            UnmappedTransactionTypeError: If the label has no mapping
        """
        mapping = self.registry.require(raw_label)
        normalized = apply_rule(amount, mapping)
        return NormalizedAmount(
            amount_normalized=normalized,
            cash_flow_direction=direction_of(normalized),
            category=mapping.category,
            mapping=mapping,
        )


def _clean_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = " ".join(str(value).split())
    return text or None


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _parse_optional_amount(row: Mapping[str, Any], field: str) -> Optional[Decimal]:
    value = row.get(field)
    if _is_blank(value):
        return None
    try:
        return parse_amount(value)
    except ValueError as e:
        raise InvalidRowError(field, str(e)) from e


def _parse_optional_date(
    row: Mapping[str, Any], field: str, preferred_format: Optional[str]
) -> Optional[date]:
    value = row.get(field)
    if _is_blank(value):
        return None
    if not isinstance(value, (str, int, float, date, datetime)) or isinstance(value, bool):
        raise InvalidRowError(field, f"unsupported value {value!r}")
    try:
        return parse_transaction_date(value, preferred_format)
    except ValueError as e:
        raise InvalidRowError(field, str(e)) from e


def normalize_row(
    row: Mapping[str, Any],
    registry: TypeMapRegistry,
    preferred_date_format: Optional[str] = None,
) -> NormalizedTransaction:
    """Parse and normalize one mapped row.

    The row maps field names (``date``, ``amount``, ``transaction_type``,
    ``currency``, ``amount_ils``, ``exchange_rate_to_ils``, ``amount_usd``,
    ``counterparty``, ``investment``, ``description``) to raw cell values.
    Missing optional fields become None; a present value that cannot be
    parsed raises instead of being dropped.

    Args:
        row: Mapped row
        registry: Type map registry for this operation
        preferred_date_format: DAY_FIRST or MONTH_FIRST to break ties

    Returns:
        NormalizedTransaction

    Raises:
        InvalidRowError: If a field cannot be parsed
        UnmappedTransactionTypeError: If the transaction type is unmapped
    """
    txn_date = _parse_optional_date(row, "date", preferred_date_format)
    amount = _parse_optional_amount(row, "amount")
    raw_label = _clean_text(row.get("transaction_type"))
    if raw_label is None:
        raise InvalidRowError("transaction_type", "value is required")

    currency = currency_to_code(_clean_text(row.get("currency")))
    amount_ils = _parse_optional_amount(row, "amount_ils")
    exchange_rate = _parse_optional_amount(row, "exchange_rate_to_ils")
    amount_usd = _parse_optional_amount(row, "amount_usd")

    normalizer = Normalizer(registry)
    if amount is None:
        mapping = registry.require(raw_label)
        category = mapping.category
        amount_normalized = None
        direction = None
    else:
        result = normalizer.normalize(amount, raw_label)
        category = result.category
        amount_normalized = result.amount_normalized
        direction = result.cash_flow_direction
        if amount_usd is None and currency == "USD":
            amount_usd = amount_normalized

    investment_name = _clean_text(row.get("investment"))
    return NormalizedTransaction(
        date=txn_date,
        amount_original=amount,
        amount_normalized=amount_normalized,
        category=category,
        cash_flow_direction=direction,
        transaction_type_raw=raw_label,
        original_currency=currency,
        amount_usd=amount_usd,
        amount_ils=amount_ils,
        exchange_rate_to_ils=exchange_rate,
        counterparty=_clean_text(row.get("counterparty")),
        investment_name=investment_name,
        investment_slug=generate_slug(investment_name) if investment_name else None,
        description=_clean_text(row.get("description")) or investment_name,
    )
