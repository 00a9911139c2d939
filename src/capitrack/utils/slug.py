"""Canonical identities for names and labels."""

import re


def normalize_label(label: str) -> str:
    """Normalize a raw label for dictionary lookups.

    Trims, collapses internal whitespace and case-folds, so "  Capital  Call"
    and "capital call" share one key.
    """
    return " ".join(label.split()).casefold()


def generate_slug(name: str) -> str:
    """Generate a URL-safe slug from an investment name.

    Examples:
        "Faro-Point FRG-X" -> "faro-point-frg-x"
        "Migdal Insurance" -> "migdal-insurance"
        "IBI  " -> "ibi"

    Names without any ASCII letters or digits (e.g. Hebrew-only names) fall
    back to their normalized label so they still get a stable identity.

    Args:
        name: Raw investment name

    Returns:
        Slug string
    """
    slug = name.strip().lower()
    slug = re.sub(r"[^a-z0-9\s-]", "", slug)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    slug = slug.strip("-")
    if not slug:
        return normalize_label(name)
    return slug
