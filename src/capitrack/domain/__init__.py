"""Domain layer for capitrack application.

Services live in their own modules (``capitrack.domain.commitment``,
``capitrack.domain.transaction_import``, ...) and are imported from there;
the database layer depends on ``capitrack.domain.entities``.
"""
