"""
Store Protocol — Interface for the relational store behind the ledger.

Stockledger defines this protocol; the Django ORM (or any other backend)
implements it. Components receive a store handle in their constructor.

Filters use Django lookup syntax on plain column names:
    {"product_id__in": ["P-1", "P-2"], "stock_max__gt": 0, "company_id": "acme"}

Supported lookups: exact (no suffix), in, gt, gte, lt, lte, isnull, icontains.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Protocol, runtime_checkable

# Relation names
LEDGER = "stock_movements"
AGGREGATE = "product_stock"
RESERVATIONS = "stock_reservations"
PRODUCTS = "products"
THRESHOLD_LOGS = "product_stock_threshold_logs"
ORDERS = "replenishment_orders"
ORDER_LOGS = "replenishment_order_logs"

# Relations no store may update
APPEND_ONLY = frozenset({LEDGER, ORDER_LOGS, THRESHOLD_LOGS})

Row = dict[str, Any]


@runtime_checkable
class LedgerStore(Protocol):
    """
    Protocol for the relational store.

    Every method may suspend; implementations raise
    ``stockledger.exceptions.PersistenceError`` on any backend failure.
    """

    #: True when a multi-row insert is all-or-nothing.
    supports_transactions: bool

    async def select(
        self,
        relation: str,
        *,
        filters: Mapping[str, Any] | None = None,
        order_by: Sequence[str] = (),
        limit: int | None = None,
    ) -> list[Row]:
        """
        Filtered read.

        Args:
            relation: Relation name (see module constants)
            filters: Lookup -> value mapping, AND-ed together
            order_by: Column names, "-" prefix for descending
            limit: Maximum rows (None = all)

        Returns:
            List of rows as plain dicts
        """
        ...

    async def insert(self, relation: str, rows: Sequence[Mapping[str, Any]]) -> list[Row]:
        """
        Insert one or more rows.

        When ``supports_transactions`` is True the batch commits atomically.

        Returns:
            Stored rows (with generated columns filled), in input order
        """
        ...

    async def update(
        self,
        relation: str,
        values: Mapping[str, Any],
        *,
        filters: Mapping[str, Any],
    ) -> list[Row]:
        """
        Update every row matching ``filters``.

        Returns:
            Updated rows (empty when nothing matched)
        """
        ...
