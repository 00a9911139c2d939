"""Transaction type mapping registry and service."""

import logging
from typing import Iterable, Iterator, Optional, Union

from capitrack.database.base import Database
from capitrack.domain.entities import (
    DirectionalityRule,
    TransactionCategory,
    TransactionTypeMapping,
)
from capitrack.domain.errors import (
    ConflictError,
    NotFoundError,
    UnmappedTransactionTypeError,
    ValidationError,
    type_mapping_not_found,
)
from capitrack.utils.slug import normalize_label

logger = logging.getLogger(__name__)

# Labels found in the Hebrew custodian export, plus their English equivalents.
DEFAULT_TYPE_MAPPINGS: tuple[TransactionTypeMapping, ...] = (
    TransactionTypeMapping("הפקדה", TransactionCategory.CAPITAL_CALL, DirectionalityRule.VARIABLE, -1),
    TransactionTypeMapping("משיכה", TransactionCategory.DISTRIBUTION, DirectionalityRule.AS_IS, None),
    TransactionTypeMapping("משיכת תשואה", TransactionCategory.INCOME, DirectionalityRule.AS_IS, None),
    TransactionTypeMapping("דמי ניהול", TransactionCategory.FEE, DirectionalityRule.VARIABLE, -1),
    TransactionTypeMapping("Capital Call", TransactionCategory.CAPITAL_CALL, DirectionalityRule.VARIABLE, -1),
    TransactionTypeMapping("Deposit", TransactionCategory.CAPITAL_CALL, DirectionalityRule.VARIABLE, -1),
    TransactionTypeMapping("Distribution", TransactionCategory.DISTRIBUTION, DirectionalityRule.VARIABLE, 1),
    TransactionTypeMapping("Withdrawal", TransactionCategory.DISTRIBUTION, DirectionalityRule.AS_IS, None),
    TransactionTypeMapping("Income Distribution", TransactionCategory.INCOME, DirectionalityRule.AS_IS, None),
    TransactionTypeMapping("Dividend", TransactionCategory.INCOME, DirectionalityRule.VARIABLE, 1),
    TransactionTypeMapping("Management Fee", TransactionCategory.FEE, DirectionalityRule.VARIABLE, -1),
    TransactionTypeMapping("Transfer", TransactionCategory.TRANSFER, DirectionalityRule.AS_IS, None),
)


def build_mapping(
    raw_value: str,
    category: Union[TransactionCategory, str],
    directionality_rule: Union[DirectionalityRule, str],
    cash_flow_impact: Optional[int] = None,
) -> TransactionTypeMapping:
    """Validate raw configuration values and build a mapping.

    Raises:
        ValidationError: If any value is outside its allowed set
    """
    if not raw_value or not raw_value.strip():
        raise ValidationError("Transaction type label cannot be empty")
    try:
        category = TransactionCategory(category)
    except ValueError:
        allowed = ", ".join(c.value for c in TransactionCategory)
        raise ValidationError(f"Unknown category '{category}'. Expected one of: {allowed}")
    try:
        rule = DirectionalityRule(directionality_rule)
    except ValueError:
        allowed = ", ".join(r.value for r in DirectionalityRule)
        raise ValidationError(f"Unknown directionality rule '{directionality_rule}'. Expected one of: {allowed}")
    if cash_flow_impact not in (None, 1, -1):
        raise ValidationError(f"Cash flow impact must be 1, -1 or empty, got {cash_flow_impact}")
    return TransactionTypeMapping(
        raw_value=raw_value.strip(),
        category=category,
        directionality_rule=rule,
        cash_flow_impact=cash_flow_impact,
    )


class TypeMapRegistry:
    """Read-only lookup of transaction type mappings by normalized label.

    Build one per operation; later edits to the stored mappings are not
    picked up by an existing registry.
    """

    def __init__(self, mappings: Iterable[TransactionTypeMapping]):
        self._mappings: dict[str, TransactionTypeMapping] = {}
        for mapping in mappings:
            key = normalize_label(mapping.raw_value)
            if key in self._mappings:
                raise ConflictError(f"Transaction type '{mapping.raw_value}' is mapped more than once")
            self._mappings[key] = mapping

    @classmethod
    def from_database(cls, db: Database) -> "TypeMapRegistry":
        """Load every stored mapping."""
        return cls(db.list_type_mappings())

    def lookup(self, raw_label: Optional[str]) -> Optional[TransactionTypeMapping]:
        """Return the mapping for a raw label, or None if unmapped."""
        if raw_label is None:
            return None
        return self._mappings.get(normalize_label(raw_label))

    def require(self, raw_label: Optional[str]) -> TransactionTypeMapping:
        """Return the mapping for a raw label.

        Raises:
            UnmappedTransactionTypeError: If the label has no mapping
        """
        mapping = self.lookup(raw_label)
        if mapping is None:
            raise UnmappedTransactionTypeError(raw_label or "")
        return mapping

    def __contains__(self, raw_label: object) -> bool:
        return isinstance(raw_label, str) and normalize_label(raw_label) in self._mappings

    def __len__(self) -> int:
        return len(self._mappings)

    def __iter__(self) -> Iterator[TransactionTypeMapping]:
        return iter(self._mappings.values())


class TypeMappingService:
    """Service for maintaining transaction type mappings."""

    def __init__(self, db: Database):
        """Initialize type mapping service.

        Args:
            db: Database instance
        """
        self.db = db

    def add_mapping(
        self,
        raw_value: str,
        category: Union[TransactionCategory, str],
        directionality_rule: Union[DirectionalityRule, str],
        cash_flow_impact: Optional[int] = None,
        replace: bool = False,
    ) -> TransactionTypeMapping:
        """Add a mapping for a raw transaction type label.

        Args:
            raw_value: Raw label as it appears in the export
            category: Resolved category
            directionality_rule: as_is, invert or variable
            cash_flow_impact: Forced sign for variable rules, or None
            replace: If True, overwrite an existing mapping for the label

        Returns:
            The stored mapping

        Raises:
            ValidationError: If any value is invalid
            ConflictError: If the label is already mapped and replace is False
        """
        mapping = build_mapping(raw_value, category, directionality_rule, cash_flow_impact)
        if not replace and self.db.get_type_mapping(mapping.raw_value) is not None:
            raise ConflictError(f"Transaction type '{mapping.raw_value}' is already mapped")
        self.db.upsert_type_mapping(mapping)
        return mapping

    def list_mappings(self) -> list[TransactionTypeMapping]:
        """List all mappings."""
        return self.db.list_type_mappings()

    def delete_mapping(self, raw_value: str) -> None:
        """Delete the mapping for a raw label.

        Raises:
            NotFoundError: If the label is not mapped
        """
        if self.db.get_type_mapping(raw_value) is None:
            raise NotFoundError(type_mapping_not_found(raw_value))
        self.db.delete_type_mapping(raw_value)

    def seed_defaults(self) -> int:
        """Store the default mappings that are not configured yet.

        Returns:
            Number of mappings added
        """
        added = 0
        for mapping in DEFAULT_TYPE_MAPPINGS:
            if self.db.get_type_mapping(mapping.raw_value) is None:
                self.db.upsert_type_mapping(mapping)
                added += 1
        logger.info("Seeded %d default transaction type mappings", added)
        return added

    def registry(self) -> TypeMapRegistry:
        """Build a registry over the stored mappings."""
        return TypeMapRegistry.from_database(self.db)
