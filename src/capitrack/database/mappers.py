"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic, including the string columns that
back the domain enums and the JSON text that backs transaction metadata.
"""

import json

from capitrack.domain import entities as domain
from capitrack.database.models import (
    Investment as ORMInvestment,
    Commitment as ORMCommitment,
    Transaction as ORMTransaction,
    TransactionTypeMapping as ORMTransactionTypeMapping,
)


def investment_to_domain(orm_investment: ORMInvestment) -> domain.Investment:
    """Convert SQLAlchemy Investment model to domain Investment entity."""
    return domain.Investment(
        id=orm_investment.id,
        name=orm_investment.name,
        slug=orm_investment.slug,
        investment_group=orm_investment.investment_group,
        investment_type=orm_investment.investment_type,
        product_type=orm_investment.product_type,
        status=domain.InvestmentStatus(orm_investment.status),
        created_at=orm_investment.created_at,
    )


def commitment_to_domain(orm_commitment: ORMCommitment) -> domain.Commitment:
    """Convert SQLAlchemy Commitment model to domain Commitment entity."""
    return domain.Commitment(
        id=orm_commitment.id,
        investment_id=orm_commitment.investment_id,
        commitment_amount=orm_commitment.commitment_amount,
        currency=orm_commitment.currency,
        commitment_date=orm_commitment.commitment_date,
        called_to_date=orm_commitment.called_to_date,
        remaining=orm_commitment.remaining,
        phase=domain.CommitmentPhase(orm_commitment.phase) if orm_commitment.phase else None,
        manual_phase=bool(orm_commitment.manual_phase),
        notes=orm_commitment.notes,
        created_at=orm_commitment.created_at,
    )


def transaction_to_domain(orm_transaction: ORMTransaction) -> domain.Transaction:
    """Convert SQLAlchemy Transaction model to domain Transaction entity."""
    category = orm_transaction.category
    metadata = orm_transaction.metadata_json
    return domain.Transaction(
        id=orm_transaction.id,
        fingerprint=orm_transaction.fingerprint,
        date=orm_transaction.date,
        description=orm_transaction.description,
        transaction_type_raw=orm_transaction.transaction_type_raw,
        category=domain.TransactionCategory(category) if category else None,
        cash_flow_direction=orm_transaction.cash_flow_direction,
        amount_original=orm_transaction.amount_original,
        amount_normalized=orm_transaction.amount_normalized,
        original_currency=orm_transaction.original_currency,
        amount_usd=orm_transaction.amount_usd,
        amount_ils=orm_transaction.amount_ils,
        exchange_rate_to_ils=orm_transaction.exchange_rate_to_ils,
        investment_id=orm_transaction.investment_id,
        commitment_id=orm_transaction.commitment_id,
        counterparty=orm_transaction.counterparty,
        metadata=json.loads(metadata) if metadata else None,
        source_file=orm_transaction.source_file,
        created_at=orm_transaction.created_at,
    )


def type_mapping_to_domain(orm_mapping: ORMTransactionTypeMapping) -> domain.TransactionTypeMapping:
    """Convert SQLAlchemy TransactionTypeMapping model to domain entity."""
    return domain.TransactionTypeMapping(
        raw_value=orm_mapping.raw_value,
        category=domain.TransactionCategory(orm_mapping.category),
        directionality_rule=domain.DirectionalityRule(orm_mapping.directionality_rule),
        cash_flow_impact=orm_mapping.cash_flow_impact,
    )


def metadata_to_json(metadata: dict | None) -> str | None:
    """Serialize original-row metadata for storage."""
    if metadata is None:
        return None
    return json.dumps(metadata, ensure_ascii=False, default=str)
