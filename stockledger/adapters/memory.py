"""
In-Memory Store — LedgerStore without a database.

Intended for development and tests:
- Tables are lists of dicts keyed by relation name
- ``product_stock`` is computed on read from the ledger and reservations
- ``supports_transactions=False`` writes batch rows one at a time
- ``fail()`` injects PersistenceError on chosen operations

Usage:
    store = InMemoryStore()
    store.seed("products", [{"id": "P-1", "name": "Filtro", "stock_max": 50}])
    store.fail("insert", "replenishment_order_logs")

WARNING: Not for production. Nothing is persisted and there is no isolation
between concurrent writers beyond the event loop's.
"""

from __future__ import annotations

import asyncio
import itertools
import uuid
from collections import defaultdict
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from django.utils import timezone

from stockledger.exceptions import PersistenceError
from stockledger.protocols.store import (
    AGGREGATE,
    APPEND_ONLY,
    LEDGER,
    ORDER_LOGS,
    RESERVATIONS,
    THRESHOLD_LOGS,
    Row,
)

# Relations whose ids are sequential integers
AUTOINCREMENT = frozenset({ORDER_LOGS, THRESHOLD_LOGS, RESERVATIONS})

ZERO = Decimal('0')


def _lookup(key: str) -> tuple[str, str]:
    field, _, lookup = key.partition('__')
    return field, lookup or 'exact'


def _matches(row: Mapping[str, Any], filters: Mapping[str, Any]) -> bool:
    for key, expected in filters.items():
        field, lookup = _lookup(key)
        value = row.get(field)
        if lookup == 'exact':
            ok = value == expected
        elif lookup == 'in':
            ok = value in expected
        elif lookup == 'isnull':
            ok = (value is None) == bool(expected)
        elif lookup == 'icontains':
            ok = str(expected).lower() in str(value or '').lower()
        elif lookup in ('gt', 'gte', 'lt', 'lte'):
            if value is None:
                ok = False
            elif lookup == 'gt':
                ok = value > expected
            elif lookup == 'gte':
                ok = value >= expected
            elif lookup == 'lt':
                ok = value < expected
            else:
                ok = value <= expected
        else:
            raise PersistenceError('STORE_FAILURE', f"Unsupported lookup: {key}")
        if not ok:
            return False
    return True


def _sorted(rows: list[Row], order_by) -> list[Row]:
    for column in reversed(tuple(order_by)):
        descending = column.startswith('-')
        name = column.lstrip('-')
        rows = sorted(
            rows,
            key=lambda r: (r.get(name) is None, r.get(name) if r.get(name) is not None else 0),
            reverse=descending,
        )
    return rows


def product_stock_view(store: InMemoryStore) -> list[Row]:
    """Compute ``product_stock`` the way the SQL view does: one row per (company_id, product_id)."""
    stock: dict[tuple, Decimal] = {}
    reserved: dict[tuple, Decimal] = {}
    try:
        for row in store.tables[LEDGER]:
            key = (row.get('company_id'), row['product_id'])
            stock[key] = stock.get(key, ZERO) + Decimal(str(row['signed_qty']))
        for row in store.tables[RESERVATIONS]:
            if row.get('released_at') is None:
                key = (row.get('company_id'), row['product_id'])
                reserved[key] = reserved.get(key, ZERO) + Decimal(str(row['quantity']))
    except (InvalidOperation, KeyError) as exc:
        # A database would refuse to cast the column
        raise PersistenceError('STORE_FAILURE', f"product_stock: {exc!r}", relation=AGGREGATE) from exc
    return [
        {
            'id': f"{company_id or ''}:{pid}",
            'company_id': company_id,
            'product_id': pid,
            'stock': total,
            'reserved': reserved.get((company_id, pid), ZERO),
            'available': total - reserved.get((company_id, pid), ZERO),
        }
        for (company_id, pid), total in stock.items()
    ]


@dataclass
class _Failure:
    operation: str
    relation: str
    after: int = 0
    times: int | None = None
    message: str = 'injected failure'
    seen: int = 0
    fired: int = 0

    def trips(self, operation: str, relation: str) -> bool:
        if operation != self.operation or relation != self.relation:
            return False
        self.seen += 1
        if self.seen <= self.after:
            return False
        if self.times is not None and self.fired >= self.times:
            return False
        self.fired += 1
        return True


class InMemoryStore:
    """
    LedgerStore kept in process memory.

    Args:
        supports_transactions: When False, batch inserts are applied row by
            row and an injected failure can leave earlier rows written.
        views: Extra relation -> callable(store) computed on read
    """

    def __init__(self, *, supports_transactions: bool = True,
                 views: Mapping[str, Callable[[InMemoryStore], list[Row]]] | None = None):
        self.supports_transactions = supports_transactions
        self.tables: dict[str, list[Row]] = defaultdict(list)
        self.views = {AGGREGATE: product_stock_view, **(views or {})}
        self._failures: list[_Failure] = []
        self._sequence = itertools.count(1)

    def __repr__(self) -> str:
        sizes = {name: len(rows) for name, rows in self.tables.items()}
        return f"InMemoryStore({sizes})"

    # ══════════════════════════════════════════════════════════════
    # TEST HELPERS
    # ══════════════════════════════════════════════════════════════

    def seed(self, relation: str, rows) -> list[Row]:
        """Write rows directly, bypassing failure injection."""
        prepared = [self._prepare(relation, row) for row in rows]
        self.tables[relation].extend(prepared)
        return [dict(row) for row in prepared]

    def rows(self, relation: str) -> list[Row]:
        """Copy of every stored row of a relation."""
        return [dict(row) for row in self.tables[relation]]

    def fail(self, operation: str, relation: str, *, after: int = 0,
             times: int | None = None, message: str = 'injected failure') -> None:
        """
        Make ``operation`` on ``relation`` raise PersistenceError.

        Args:
            operation: "select", "insert" or "update"
            relation: Relation name
            after: Number of matching calls (rows, for non-transactional
                inserts) that succeed first
            times: Stop failing after this many failures (None = forever)
        """
        self._failures.append(_Failure(operation, relation, after, times, message))

    def _check(self, operation: str, relation: str) -> None:
        for failure in self._failures:
            if failure.trips(operation, relation):
                raise PersistenceError('STORE_FAILURE', failure.message, relation=relation)

    def _prepare(self, relation: str, row: Mapping[str, Any]) -> Row:
        prepared = dict(row)
        if prepared.get('id') is None:
            prepared['id'] = next(self._sequence) if relation in AUTOINCREMENT else str(uuid.uuid4())
        prepared.setdefault('created_at', timezone.now())
        return prepared

    # ══════════════════════════════════════════════════════════════
    # PROTOCOL
    # ══════════════════════════════════════════════════════════════

    async def select(self, relation, *, filters=None, order_by=(), limit=None) -> list[Row]:
        await asyncio.sleep(0)
        self._check('select', relation)
        if relation in self.views:
            source = self.views[relation](self)
        else:
            source = self.tables[relation]
        rows = [dict(row) for row in source if _matches(row, filters or {})]
        rows = _sorted(rows, order_by)
        if limit is not None:
            rows = rows[:limit]
        return rows

    async def insert(self, relation, rows) -> list[Row]:
        await asyncio.sleep(0)
        if relation in self.views:
            raise PersistenceError('STORE_FAILURE', 'cannot insert into a view', relation=relation)
        prepared = [self._prepare(relation, row) for row in rows]
        table = self.tables[relation]
        if self.supports_transactions:
            self._check('insert', relation)
            table.extend(prepared)
        else:
            for row in prepared:
                self._check('insert', relation)
                table.append(row)
        return [dict(row) for row in prepared]

    async def update(self, relation, values, *, filters) -> list[Row]:
        await asyncio.sleep(0)
        if relation in APPEND_ONLY:
            raise PersistenceError('IMMUTABLE_RELATION', relation=relation)
        if relation in self.views:
            raise PersistenceError('STORE_FAILURE', 'cannot update a view', relation=relation)
        self._check('update', relation)
        updated = []
        for row in self.tables[relation]:
            if _matches(row, filters):
                row.update(values)
                updated.append(dict(row))
        return updated
