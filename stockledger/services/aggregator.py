"""
Stock aggregator — read-only stock figures derived from the ledger.

Reads the ``product_stock`` view first and folds raw ledger rows when the
view is unavailable. No locking: the fallback scan is eventually consistent
under concurrent writes.
"""

import logging
import warnings
from collections.abc import AsyncIterator, Iterable
from decimal import Decimal

from stockledger.conf import stockledger_settings
from stockledger.exceptions import AggregationFallbackWarning, PersistenceError, RowShapeError
from stockledger.models.enums import MovementType
from stockledger.protocols.records import KardexLine, Movement, StockLevel
from stockledger.protocols.store import AGGREGATE, LEDGER, LedgerStore, Row

logger = logging.getLogger('stockledger')

ZERO = Decimal('0')

# Direction by type; legacy names come from rows written before signed_qty
INBOUND_TYPES = frozenset({MovementType.IN.value, MovementType.RETURN.value, 'ENTRADA'})
OUTBOUND_TYPES = frozenset({MovementType.OUT.value, MovementType.EXCHANGE.value, 'SAIDA'})


def contribution(movement: Movement) -> Decimal:
    """
    Signed effect of one movement on on-hand stock.

    IN-like types add the magnitude, OUT-like types subtract it;
    ADJUSTMENT, TRANSFER (and anything else) already carry their sign.
    """
    if movement.type in INBOUND_TYPES:
        return abs(movement.signed_qty)
    if movement.type in OUTBOUND_TYPES:
        return -abs(movement.signed_qty)
    return movement.signed_qty


def _unique_ids(product_ids: Iterable) -> list[str]:
    seen = {}
    for pid in product_ids:
        if pid is None:
            continue
        text = str(pid).strip()
        if text:
            seen.setdefault(text, None)
    return list(seen)


class StockAggregator:
    """
    Current stock/reserved/available per product.

    Args:
        store: LedgerStore handle
        company_id: Tenant scope applied to view reads and ledger scans (None = unscoped)
        use_view: Try the aggregate view first (default: USE_AGGREGATE_VIEW)
        page_size: Ledger rows per page on the fold path
            (default: FALLBACK_PAGE_SIZE)
    """

    def __init__(self, store: LedgerStore, *, company_id: str | None = None,
                 use_view: bool | None = None, page_size: int | None = None):
        self.store = store
        self.company_id = company_id
        self.use_view = stockledger_settings.USE_AGGREGATE_VIEW if use_view is None else use_view
        self.page_size = page_size or stockledger_settings.FALLBACK_PAGE_SIZE

    # ══════════════════════════════════════════════════════════════
    # QUERIES
    # ══════════════════════════════════════════════════════════════

    async def get_stock(self, product_ids: Iterable) -> dict[str, StockLevel]:
        """
        Stock triple for each requested product.

        Preferred path reads the aggregate view. When the view errors or
        returns nothing, every id is folded from the ledger with reserved=0
        and AggregationFallbackWarning is emitted. Ids the view does not
        know are folded from the ledger silently.

        Args:
            product_ids: Product ids (duplicates and blanks ignored)

        Returns:
            Dict[product_id, StockLevel], one entry per requested id
        """
        ids = _unique_ids(product_ids)
        if not ids:
            return {}

        levels: dict[str, StockLevel] = {}
        if self.use_view:
            try:
                levels = await self.read_view(ids)
            except PersistenceError as exc:
                logger.warning(
                    "stock.aggregate.view_failed",
                    extra={"products": len(ids), "error": exc.message},
                )
            if not levels:
                self._warn_fallback(ids)

        missing = [pid for pid in ids if pid not in levels]
        if missing:
            totals = await self._fold_ledger(missing)
            for pid in missing:
                levels[pid] = StockLevel.from_ledger(pid, totals.get(pid, ZERO))

        return {pid: levels[pid] for pid in ids}

    async def stock_by_location(self, product_id: str) -> dict[str | None, Decimal]:
        """
        Net stock per location for one product.

        Negative rows count against ``location_from``; positive rows against
        ``location_to``, or ``location_from`` when no destination is set.
        Rows without a location are grouped under None.
        """
        totals: dict[str | None, Decimal] = {}
        async for movement in self.iter_movements([product_id]):
            delta = contribution(movement)
            if delta < 0:
                location = movement.location_from
            else:
                location = movement.location_to or movement.location_from
            totals[location] = totals.get(location, ZERO) + delta
        return totals

    async def kardex(self, product_id: str) -> list[KardexLine]:
        """
        Ledger rows of one product, oldest first, with running balance.

        Returns:
            List of KardexLine; the last balance equals the product's stock
        """
        movements = [m async for m in self.iter_movements([product_id])]
        movements.sort(key=lambda m: (m.created_at is None, m.created_at, m.id))

        lines = []
        balance = ZERO
        for movement in movements:
            balance += contribution(movement)
            lines.append(KardexLine(movement=movement, balance=balance))
        return lines

    async def iter_movements(self, product_ids: Iterable) -> AsyncIterator[Movement]:
        """
        Page through ledger rows of the given products (keyset on id).

        Malformed rows are logged and skipped.
        """
        async for row in self._iter_rows(_unique_ids(product_ids)):
            try:
                yield Movement.from_row(row)
            except RowShapeError as exc:
                self._log_malformed(row, exc)

    async def read_view(self, ids: list[str]) -> dict[str, StockLevel]:
        """
        Stock triples from the aggregate view, keyed by product id.

        The view holds one row per (company_id, product_id). Scoped
        aggregators read their company's rows only; unscoped ones add up
        every company's row for the product.

        Raises:
            PersistenceError: The view could not be read
        """
        filters = {'product_id__in': ids}
        if self.company_id is not None:
            filters['company_id'] = self.company_id
        rows = await self.store.select(AGGREGATE, filters=filters)

        levels: dict[str, StockLevel] = {}
        for row in rows:
            try:
                level = StockLevel.from_row(row, source='view')
            except RowShapeError as exc:
                self._log_malformed(row, exc)
                continue
            seen = levels.get(level.product_id)
            if seen is not None:
                level = StockLevel(
                    product_id=level.product_id,
                    stock=seen.stock + level.stock,
                    reserved=seen.reserved + level.reserved,
                    available=seen.available + level.available,
                    source='view',
                )
            levels[level.product_id] = level
        return levels

    # ══════════════════════════════════════════════════════════════
    # INTERNALS
    # ══════════════════════════════════════════════════════════════

    async def _fold_ledger(self, ids: list[str]) -> dict[str, Decimal]:
        totals: dict[str, Decimal] = {}
        async for row in self._iter_rows(ids):
            try:
                movement = Movement.from_row(row)
            except RowShapeError as exc:
                # One bad row contributes zero; the batch goes on
                self._log_malformed(row, exc)
                continue
            totals[movement.product_id] = totals.get(movement.product_id, ZERO) + contribution(movement)
        return totals

    async def _iter_rows(self, ids: list[str]) -> AsyncIterator[Row]:
        if not ids:
            return
        filters = {'product_id__in': ids}
        if self.company_id is not None:
            filters['company_id'] = self.company_id

        last_id = None
        while True:
            page_filters = dict(filters)
            if last_id is not None:
                page_filters['id__gt'] = last_id
            page = await self.store.select(
                LEDGER,
                filters=page_filters,
                order_by=('id',),
                limit=self.page_size,
            )
            for row in page:
                yield row
            if len(page) < self.page_size:
                return
            last_id = page[-1]['id']

    def _warn_fallback(self, ids: list[str]) -> None:
        logger.warning(
            "stock.aggregate.fallback",
            extra={"products": len(ids), "reserved": "0"},
        )
        warnings.warn(
            AggregationFallbackWarning(
                f"Aggregate view unavailable; stock for {len(ids)} product(s) "
                f"folded from the ledger with reserved=0"
            ),
            stacklevel=3,
        )

    def _log_malformed(self, row: Row, exc: Exception) -> None:
        logger.warning(
            "stock.aggregate.malformed_row",
            extra={"row_id": str(row.get('id')), "error": str(exc)},
        )
