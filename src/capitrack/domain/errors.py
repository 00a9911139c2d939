"""Shared domain error messages and error types."""


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class ConflictError(DomainError):
    """Domain conflict, such as uniqueness violations."""


class DependencyError(DomainError):
    """Operation blocked due to dependent domain data."""


class UnmappedTransactionTypeError(ValidationError):
    """Raw transaction type label has no configured mapping.

    The raw label is kept so callers can queue it for configuration.
    """

    def __init__(self, raw_label: str):
        self.raw_label = raw_label
        super().__init__(f"Unknown transaction type: '{raw_label}'")


class InvalidRowError(ValidationError):
    """A row value could not be parsed into its typed field."""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"Invalid {field}: {message}")


class DuplicateKeyError(ConflictError):
    """A transaction with the same fingerprint is already stored."""

    def __init__(self, fingerprint: str):
        self.fingerprint = fingerprint
        super().__init__(duplicate_transaction_fingerprint(fingerprint))


def investment_not_found(investment_id: int) -> str:
    """Return message for missing investment."""
    return f"Investment {investment_id} not found"


def investment_name_not_found(name: str) -> str:
    """Return message for missing investment by name or slug."""
    return f"Investment '{name}' not found"


def commitment_not_found(commitment_id: int) -> str:
    """Return message for missing commitment."""
    return f"Commitment {commitment_id} not found"


def no_commitments(investment_id: int) -> str:
    """Return message when an investment has no commitments."""
    return f"No commitments found for investment {investment_id}"


def type_mapping_not_found(raw_value: str) -> str:
    """Return message for missing transaction type mapping."""
    return f"Transaction type mapping '{raw_value}' not found"


def duplicate_investment_name(name: str) -> str:
    """Return message for duplicate investment name."""
    return f"Investment with name '{name}' already exists"


def duplicate_transaction_fingerprint(fingerprint: str) -> str:
    """Return message for duplicate transaction fingerprint."""
    return f"Transaction with fingerprint '{fingerprint[:12]}' already exists"


def commitment_delete_blocked(commitment_id: int, transaction_count: int) -> str:
    """Return message when a commitment still has linked transactions."""
    return (
        f"Cannot delete commitment {commitment_id}: it has {transaction_count} "
        f"linked transaction{'s' if transaction_count != 1 else ''}. "
        "Please unlink them first."
    )
