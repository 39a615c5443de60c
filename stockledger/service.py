"""
StockLedger — the single public interface over one store handle.

Usage:
    from stockledger import StockLedger

    ledger = StockLedger(company_id="C-1")
    await ledger.register("P-1", 10, "IN")
    await ledger.register("P-1", 4, "TRANSFER", location_from="A", location_to="B")
    levels = await ledger.get_stock(["P-1"])
    items = await ledger.build_suggestions()
"""

from stockledger.protocols.store import LedgerStore
from stockledger.services.aggregator import StockAggregator
from stockledger.services.planner import ReplenishmentPlanner
from stockledger.services.registrar import MovementRegistrar


class StockLedger:
    """
    Wires aggregator, registrar and planner around one store.

    Args:
        store: LedgerStore handle (default: the configured STORE_BACKEND)
        company_id: Tenant scope shared by every component
        use_view: Passed to StockAggregator
        status_policy: Passed to ReplenishmentPlanner
    """

    def __init__(self, store: LedgerStore | None = None, *, company_id: str | None = None,
                 use_view: bool | None = None, status_policy: str | None = None):
        if store is None:
            from stockledger.adapters import get_store
            store = get_store()
        self.store = store
        self.company_id = company_id
        self.aggregator = StockAggregator(store, company_id=company_id, use_view=use_view)
        self.registrar = MovementRegistrar(store, company_id=company_id)
        self.planner = ReplenishmentPlanner(
            store, self.aggregator, company_id=company_id, status_policy=status_policy,
        )

    def __repr__(self) -> str:
        return f"StockLedger({self.store!r}, company_id={self.company_id!r})"

    # ══════════════════════════════════════════════════════════════
    # STOCK
    # ══════════════════════════════════════════════════════════════

    async def get_stock(self, product_ids):
        return await self.aggregator.get_stock(product_ids)

    async def stock_by_location(self, product_id):
        return await self.aggregator.stock_by_location(product_id)

    async def kardex(self, product_id):
        return await self.aggregator.kardex(product_id)

    async def register(self, product_id, qty, type, **kwargs):
        return await self.registrar.register(product_id, qty, type, **kwargs)

    # ══════════════════════════════════════════════════════════════
    # REPLENISHMENT
    # ══════════════════════════════════════════════════════════════

    async def build_suggestions(self, **kwargs):
        return await self.planner.build_suggestions(**kwargs)

    async def low_stock(self):
        return await self.planner.low_stock()

    async def set_thresholds(self, product_id, **kwargs):
        return await self.planner.set_thresholds(product_id, **kwargs)

    async def create_order(self, items, **kwargs):
        return await self.planner.create_order(items, **kwargs)

    async def get_order(self, order_id):
        return await self.planner.get_order(order_id)

    async def list_orders(self, **kwargs):
        return await self.planner.list_orders(**kwargs)

    async def update_order(self, order_id, patch):
        return await self.planner.update_order(order_id, patch)

    async def order_logs(self, order_id):
        return await self.planner.order_logs(order_id)

    def export_order(self, order):
        return self.planner.export_order(order)
