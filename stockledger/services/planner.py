"""
Replenishment planner — suggested reorder quantities and replenishment orders.

Suggestions come from product thresholds and current availability:
``missing = max(0, stock_max - available)``. Orders persist the suggested
items, stay editable by humans and keep a best-effort audit log.

Usage:
    planner = ReplenishmentPlanner(store, company_id="C-1")
    items = await planner.build_suggestions()
    order = await planner.create_order(items, notes="Semanal")
    order = await planner.update_order(order.id, {"status": "EM_PROCESSO"})
    text = planner.export_order(order)
"""

import logging
import uuid
from collections.abc import Iterable, Mapping
from decimal import Decimal

from django.utils import timezone

from stockledger.conf import stockledger_settings
from stockledger.exceptions import (
    AuditLogFailure,
    NotFoundError,
    PersistenceError,
    RowShapeError,
    ValidationError,
)
from stockledger.models.enums import OrderStatus
from stockledger.protocols.records import (
    OrderLogEntry,
    ProductThreshold,
    ReplenishmentItem,
    ReplenishmentOrder,
    StockLevel,
    parse_decimal,
)
from stockledger.protocols.store import ORDER_LOGS, ORDERS, PRODUCTS, THRESHOLD_LOGS, LedgerStore
from stockledger.services import export
from stockledger.services.aggregator import StockAggregator

logger = logging.getLogger('stockledger')

ZERO = Decimal('0')

PATCHABLE_FIELDS = frozenset({'status', 'items', 'notes'})

# forward_only policy: status -> statuses it may move to
FORWARD_TRANSITIONS = {
    OrderStatus.ABERTO.value: {OrderStatus.EM_PROCESSO.value},
    OrderStatus.EM_PROCESSO.value: {OrderStatus.FECHADO.value},
    OrderStatus.FECHADO.value: set(),
}


def _batches(values: list, size: int):
    for start in range(0, len(values), size):
        yield values[start:start + size]


def _order_id(value) -> str:
    try:
        return str(uuid.UUID(str(value).strip()))
    except (TypeError, ValueError, AttributeError):
        raise NotFoundError('ORDER_NOT_FOUND', order_id=value) from None


class ReplenishmentPlanner:
    """
    Builds replenishment suggestions and manages replenishment orders.

    Args:
        store: LedgerStore handle
        aggregator: StockAggregator sharing the store (created if omitted)
        company_id: Tenant scope (None = unscoped)
        status_policy: "permissive" or "forward_only"
            (default: ORDER_STATUS_POLICY)
    """

    def __init__(self, store: LedgerStore, aggregator: StockAggregator | None = None, *,
                 company_id: str | None = None, status_policy: str | None = None):
        self.store = store
        self.company_id = company_id
        self.aggregator = aggregator or StockAggregator(store, company_id=company_id)
        self.status_policy = status_policy or stockledger_settings.ORDER_STATUS_POLICY

    # ══════════════════════════════════════════════════════════════
    # SUGGESTIONS
    # ══════════════════════════════════════════════════════════════

    async def build_suggestions(self, *, name_filter: str | None = None) -> list[ReplenishmentItem]:
        """
        Suggested reorder lines for every product with a max threshold.

        Products with ``stock_max <= 0`` are skipped; only lines with a
        positive suggested quantity are returned, ordered by product name.

        Args:
            name_filter: Case-insensitive substring of the product name
        """
        filters = {'stock_max__gt': 0}
        if name_filter and name_filter.strip():
            filters['name__icontains'] = name_filter.strip()
        products = await self._products(filters)

        items = []
        async for product, level in self._with_levels(products):
            missing = max(ZERO, product.stock_max - level.available)
            if missing <= 0:
                continue
            items.append(ReplenishmentItem(
                product_id=product.product_id,
                code=product.code,
                name=product.name,
                stock=level.available,
                stock_min=product.stock_min,
                stock_max=product.stock_max,
                order_suggested_qty=missing,
            ))

        logger.info(
            "replenishment.suggestions.built",
            extra={"company": self.company_id, "products": len(products), "items": len(items)},
        )
        return items

    async def low_stock(self) -> list[tuple[ProductThreshold, StockLevel]]:
        """
        Products whose available quantity is below ``stock_min``.

        Returns:
            List of (threshold, level) tuples
        """
        products = await self._products({'stock_min__gt': 0})

        triggered = []
        async for product, level in self._with_levels(products):
            if level.available < product.stock_min:
                triggered.append((product, level))
                logger.warning(
                    "stock.alert.triggered",
                    extra={
                        "product": product.product_id,
                        "available": str(level.available),
                        "min": str(product.stock_min),
                    },
                )
        return triggered

    async def set_thresholds(self, product_id, *, stock_min, stock_max, reason=None) -> ProductThreshold:
        """
        Change a product's min/max thresholds and log the change.

        Raises:
            ValidationError: Negative values, or min above a positive max
            NotFoundError: Unknown product
        """
        try:
            new_min = parse_decimal(stock_min, 'stock_min')
            new_max = parse_decimal(stock_max, 'stock_max')
        except RowShapeError:
            raise ValidationError('INVALID_THRESHOLD', stock_min=stock_min, stock_max=stock_max) from None
        if new_min < 0 or new_max < 0 or (new_max > 0 and new_min > new_max):
            raise ValidationError('INVALID_THRESHOLD', stock_min=new_min, stock_max=new_max)

        current = await self._product(product_id)
        rows = await self.store.update(
            PRODUCTS,
            {'stock_min': new_min, 'stock_max': new_max, 'updated_at': timezone.now()},
            filters=self._scoped({'id': current.product_id}),
        )
        if not rows:
            raise NotFoundError('PRODUCT_NOT_FOUND', product_id=product_id)

        await self._append_audit(THRESHOLD_LOGS, {
            'product_id': current.product_id,
            'company_id': self.company_id,
            'old_stock_min': current.stock_min,
            'new_stock_min': new_min,
            'old_stock_max': current.stock_max,
            'new_stock_max': new_max,
            'reason': reason,
            'created_at': timezone.now(),
        })
        logger.info(
            "stock.thresholds.changed",
            extra={"product": current.product_id, "min": str(new_min), "max": str(new_max)},
        )
        return ProductThreshold.from_row(rows[0])

    # ══════════════════════════════════════════════════════════════
    # ORDERS
    # ══════════════════════════════════════════════════════════════

    async def create_order(self, items, *, notes: str = '') -> ReplenishmentOrder:
        """
        Persist a new order in status ABERTO.

        Args:
            items: ReplenishmentItem records or item mappings
            notes: Free text
        """
        lines = self._validate_items(items)
        now = timezone.now()
        rows = await self.store.insert(ORDERS, [{
            'id': str(uuid.uuid4()),
            'company_id': self.company_id,
            'status': OrderStatus.ABERTO.value,
            'items': [line.as_row() for line in lines],
            'notes': notes or '',
            'created_at': now,
            'updated_at': now,
            'closed_at': None,
        }])
        order = ReplenishmentOrder.from_row(rows[0])

        await self._append_log(order.id, 'CREATE', {'items': len(lines), 'notes': order.notes})
        logger.info(
            "replenishment.order.created",
            extra={"order_id": order.id, "company": self.company_id, "items": len(lines)},
        )
        return order

    async def get_order(self, order_id) -> ReplenishmentOrder:
        """
        Raises:
            NotFoundError: Unknown order
        """
        order_id = _order_id(order_id)
        rows = await self.store.select(ORDERS, filters=self._scoped({'id': order_id}), limit=1)
        if not rows:
            raise NotFoundError('ORDER_NOT_FOUND', order_id=order_id)
        return ReplenishmentOrder.from_row(rows[0])

    async def list_orders(self, *, status: str | None = None, limit: int = 200) -> list[ReplenishmentOrder]:
        """Orders in scope, newest first."""
        filters = {}
        if status is not None:
            if status not in OrderStatus.values:
                raise ValidationError('INVALID_STATUS', status=status)
            filters['status'] = status
        rows = await self.store.select(
            ORDERS,
            filters=self._scoped(filters),
            order_by=('-created_at',),
            limit=limit,
        )
        orders = []
        for row in rows:
            try:
                orders.append(ReplenishmentOrder.from_row(row))
            except RowShapeError as exc:
                logger.warning(
                    "replenishment.order.malformed",
                    extra={"order_id": str(row.get('id')), "error": str(exc)},
                )
        return orders

    async def order_logs(self, order_id) -> list[OrderLogEntry]:
        """Audit trail of an order, oldest first."""
        rows = await self.store.select(
            ORDER_LOGS,
            filters={'order_id': _order_id(order_id)},
            order_by=('created_at', 'id'),
        )
        return [OrderLogEntry.from_row(row) for row in rows]

    async def update_order(self, order_id, patch: Mapping) -> ReplenishmentOrder:
        """
        Apply a partial update to an order.

        Only ``status``, ``items`` and ``notes`` may be changed. Edited item
        quantities are stored as given. ``closed_at`` follows the status:
        set on entering FECHADO, cleared on leaving it.

        Raises:
            ValidationError: INVALID_PATCH, INVALID_STATUS, INVALID_TRANSITION
                or INVALID_ITEMS
            NotFoundError: Unknown order
        """
        if not isinstance(patch, Mapping) or not patch:
            raise ValidationError('INVALID_PATCH', patch=patch)
        unknown = sorted(set(patch) - PATCHABLE_FIELDS)
        if unknown:
            raise ValidationError('INVALID_PATCH', fields=unknown)

        values = {}
        if 'status' in patch:
            if patch['status'] not in OrderStatus.values:
                raise ValidationError('INVALID_STATUS', status=patch['status'])
            values['status'] = patch['status']
        if 'items' in patch:
            values['items'] = [line.as_row() for line in self._validate_items(patch['items'])]
        if 'notes' in patch:
            values['notes'] = patch['notes'] or ''

        current = await self.get_order(order_id)
        now = timezone.now()
        if 'status' in values:
            self._check_transition(current.status, values['status'])
            if values['status'] == OrderStatus.FECHADO and current.status != OrderStatus.FECHADO:
                values['closed_at'] = now
            elif values['status'] != OrderStatus.FECHADO:
                values['closed_at'] = None
        values['updated_at'] = now

        rows = await self.store.update(ORDERS, values, filters=self._scoped({'id': current.id}))
        if not rows:
            raise NotFoundError('ORDER_NOT_FOUND', order_id=current.id)
        order = ReplenishmentOrder.from_row(rows[0])

        logged = {k: v for k, v in values.items() if k in PATCHABLE_FIELDS}
        await self._append_log(order.id, 'UPDATE', logged)
        logger.info(
            "replenishment.order.updated",
            extra={"order_id": order.id, "fields": sorted(logged), "status": order.status},
        )
        return order

    def export_order(self, order: ReplenishmentOrder) -> str:
        """Delimited text of the order's items (see services.export)."""
        return export.export_order(order)

    # ══════════════════════════════════════════════════════════════
    # AUDIT
    # ══════════════════════════════════════════════════════════════

    def discard_audit_failure(self, failure: AuditLogFailure) -> None:
        """
        Handler for audit appends that failed after the mutation committed.

        The mutation stands; the failure is only logged.
        """
        logger.warning(
            "replenishment.audit.discarded",
            extra={"code": failure.code, **failure.as_dict()['data']},
        )

    async def _append_log(self, order_id: str, event: str, data) -> None:
        await self._append_audit(ORDER_LOGS, {
            'order_id': order_id,
            'event': event,
            'data': data,
            'created_at': timezone.now(),
        })

    async def _append_audit(self, relation: str, row: dict) -> None:
        try:
            await self.store.insert(relation, [row])
        except PersistenceError as exc:
            self.discard_audit_failure(AuditLogFailure(
                'AUDIT_LOG_FAILED',
                relation=relation,
                event=row.get('event'),
                order_id=row.get('order_id'),
                product_id=row.get('product_id'),
                error=exc.message,
            ))

    # ══════════════════════════════════════════════════════════════
    # INTERNALS
    # ══════════════════════════════════════════════════════════════

    def _scoped(self, filters: dict) -> dict:
        if self.company_id is not None:
            return {**filters, 'company_id': self.company_id}
        return filters

    def _check_transition(self, current: str, new: str) -> None:
        if self.status_policy != 'forward_only' or current == new:
            return
        if new not in FORWARD_TRANSITIONS.get(current, set()):
            raise ValidationError('INVALID_TRANSITION', current=current, requested=new)

    def _validate_items(self, items) -> list[ReplenishmentItem]:
        if isinstance(items, (str, bytes, Mapping)) or not isinstance(items, Iterable):
            raise ValidationError('INVALID_ITEMS', items=items)
        lines = []
        for index, item in enumerate(items):
            if isinstance(item, ReplenishmentItem):
                lines.append(item)
                continue
            try:
                lines.append(ReplenishmentItem.from_row(item))
            except RowShapeError as exc:
                raise ValidationError('INVALID_ITEMS', index=index, error=str(exc)) from None
        return lines

    async def _product(self, product_id) -> ProductThreshold:
        pid = str(product_id or '').strip()
        rows = await self.store.select(PRODUCTS, filters=self._scoped({'id': pid}), limit=1) if pid else []
        if not rows:
            raise NotFoundError('PRODUCT_NOT_FOUND', product_id=product_id)
        return ProductThreshold.from_row(rows[0])

    async def _products(self, filters: dict) -> list[ProductThreshold]:
        rows = await self.store.select(PRODUCTS, filters=self._scoped(filters), order_by=('name',))
        products = []
        for row in rows:
            try:
                products.append(ProductThreshold.from_row(row))
            except RowShapeError as exc:
                logger.warning(
                    "stock.product.malformed",
                    extra={"product": str(row.get('id')), "error": str(exc)},
                )
        return products

    async def _with_levels(self, products: list[ProductThreshold]):
        batch_size = stockledger_settings.SUGGESTION_BATCH_SIZE
        for batch in _batches(products, batch_size):
            levels = await self.aggregator.get_stock(p.product_id for p in batch)
            for product in batch:
                yield product, levels[product.product_id]
