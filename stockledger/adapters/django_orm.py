"""
Stockledger Django Store — LedgerStore over the Django ORM.

Each relation name maps to a model label. ORM work runs in
``sync_to_async`` so a transaction never spans an ``await``;
multi-row inserts commit under a single ``transaction.atomic()``.

Settings:
    STOCKLEDGER = {
        "STORE_BACKEND": "stockledger.adapters.django_orm.DjangoStore",
        "RELATIONS": {"products": "catalog.Product"},
    }
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping, Sequence
from typing import Any

from asgiref.sync import sync_to_async
from django.apps import apps
from django.core.exceptions import FieldError
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DEFAULT_DB_ALIAS, DatabaseError, transaction

from stockledger.conf import stockledger_settings
from stockledger.exceptions import PersistenceError
from stockledger.protocols.store import (
    AGGREGATE,
    APPEND_ONLY,
    LEDGER,
    ORDER_LOGS,
    ORDERS,
    PRODUCTS,
    RESERVATIONS,
    THRESHOLD_LOGS,
    Row,
)

logger = logging.getLogger('stockledger')

DEFAULT_RELATIONS = {
    LEDGER: 'stockledger.StockMovement',
    AGGREGATE: 'stockledger.ProductStock',
    RESERVATIONS: 'stockledger.StockReservation',
    PRODUCTS: 'stockledger.Product',
    THRESHOLD_LOGS: 'stockledger.ProductThresholdLog',
    ORDERS: 'stockledger.ReplenishmentOrder',
    ORDER_LOGS: 'stockledger.ReplenishmentOrderLog',
}

# Errors a bad row or a bad query can raise, including decimal conversion of stored values
_ROW_ERRORS = (DatabaseError, FieldError, DjangoValidationError, TypeError, ValueError, ArithmeticError)


def _plain(row: Mapping[str, Any]) -> Row:
    """Rows leave the store with UUIDs as strings."""
    return {k: str(v) if isinstance(v, uuid.UUID) else v for k, v in row.items()}


class DjangoStore:
    """
    LedgerStore backed by Django models.

    Args:
        using: Database alias (default: "default")
        relations: Extra relation -> model label overrides
    """

    supports_transactions = True

    def __init__(self, using: str | None = None, relations: Mapping[str, str] | None = None):
        self.using = using or DEFAULT_DB_ALIAS
        self.relations = {
            **DEFAULT_RELATIONS,
            **stockledger_settings.RELATIONS,
            **(relations or {}),
        }

    def __repr__(self) -> str:
        return f"DjangoStore(using={self.using!r})"

    # ══════════════════════════════════════════════════════════════
    # PROTOCOL
    # ══════════════════════════════════════════════════════════════

    async def select(self, relation, *, filters=None, order_by=(), limit=None) -> list[Row]:
        return await sync_to_async(self._select)(relation, dict(filters or {}), tuple(order_by), limit)

    async def insert(self, relation, rows) -> list[Row]:
        return await sync_to_async(self._insert)(relation, [dict(row) for row in rows])

    async def update(self, relation, values, *, filters) -> list[Row]:
        return await sync_to_async(self._update)(relation, dict(values), dict(filters))

    # ══════════════════════════════════════════════════════════════
    # SYNC IMPLEMENTATION
    # ══════════════════════════════════════════════════════════════

    def _model(self, relation: str):
        label = self.relations.get(relation)
        if label is None:
            raise PersistenceError('UNKNOWN_RELATION', relation=relation)
        try:
            return apps.get_model(label)
        except LookupError as exc:
            raise PersistenceError('UNKNOWN_RELATION', str(exc), relation=relation) from exc

    def _manager(self, model):
        return model._default_manager.using(self.using)

    def _select(self, relation: str, filters: dict, order_by: Sequence[str], limit: int | None) -> list[Row]:
        model = self._model(relation)
        try:
            qs = self._manager(model).filter(**filters)
            if order_by:
                qs = qs.order_by(*order_by)
            if limit is not None:
                qs = qs[:limit]
            return [_plain(row) for row in qs.values()]
        except _ROW_ERRORS as exc:
            logger.warning(
                "store.select.failed",
                extra={"relation": relation, "error": str(exc)},
            )
            raise PersistenceError('STORE_FAILURE', str(exc), relation=relation) from exc

    def _insert(self, relation: str, rows: list[dict]) -> list[Row]:
        if not rows:
            return []
        model = self._model(relation)
        pk_name = model._meta.pk.attname
        try:
            with transaction.atomic(using=self.using):
                pks = []
                for row in rows:
                    obj = model(**row)
                    obj.save(using=self.using, force_insert=True)
                    pks.append(obj.pk)
                # Read back inside the transaction: a row that cannot be
                # read back is rolled back with the batch
                stored = self._manager(model).filter(pk__in=pks).values()
                by_pk = {str(row[pk_name]): _plain(row) for row in stored}
        except _ROW_ERRORS as exc:
            logger.warning(
                "store.insert.failed",
                extra={"relation": relation, "rows": len(rows), "error": str(exc)},
            )
            raise PersistenceError('STORE_FAILURE', str(exc), relation=relation, committed=()) from exc
        return [by_pk[str(pk)] for pk in pks]

    def _update(self, relation: str, values: dict, filters: dict) -> list[Row]:
        if relation in APPEND_ONLY:
            raise PersistenceError('IMMUTABLE_RELATION', relation=relation)
        model = self._model(relation)
        try:
            with transaction.atomic(using=self.using):
                manager = self._manager(model)
                pks = list(manager.select_for_update().filter(**filters).values_list('pk', flat=True))
                if not pks:
                    return []
                manager.filter(pk__in=pks).update(**values)
                return [_plain(row) for row in manager.filter(pk__in=pks).values()]
        except _ROW_ERRORS as exc:
            logger.warning(
                "store.update.failed",
                extra={"relation": relation, "error": str(exc)},
            )
            raise PersistenceError('STORE_FAILURE', str(exc), relation=relation) from exc
