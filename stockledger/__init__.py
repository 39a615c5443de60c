"""
Django Stockledger — Razão de estoque e reposição.

Estoque, reservado e disponível derivados de um razão imutável de
movimentos; sugestões de reposição a partir de mínimo/máximo.

Uso:
    from stockledger import StockLedger, LedgerError

    ledger = StockLedger(company_id="C-1")
    await ledger.register("P-1", 10, "IN")
    levels = await ledger.get_stock(["P-1"])
    levels["P-1"].available  # Decimal('10')
"""


def __getattr__(name):
    """Lazy import to avoid circular imports during app loading."""
    if name == 'StockLedger':
        from stockledger.service import StockLedger
        return StockLedger
    elif name == 'register_stock_movement':
        from stockledger.rpc import register_stock_movement
        return register_stock_movement
    elif name == 'LedgerError':
        from stockledger.exceptions import LedgerError
        return LedgerError
    elif name == 'AggregationFallbackWarning':
        from stockledger.exceptions import AggregationFallbackWarning
        return AggregationFallbackWarning
    elif name == 'MovementType':
        from stockledger.models.enums import MovementType
        return MovementType
    elif name == 'OrderStatus':
        from stockledger.models.enums import OrderStatus
        return OrderStatus
    elif name == 'StockMovement':
        from stockledger.models.movement import StockMovement
        return StockMovement
    elif name == 'ReplenishmentOrder':
        from stockledger.models.replenishment import ReplenishmentOrder
        return ReplenishmentOrder
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    'StockLedger',
    'register_stock_movement',
    'LedgerError',
    'AggregationFallbackWarning',
    'MovementType',
    'OrderStatus',
    'StockMovement',
    'ReplenishmentOrder',
]

__version__ = '0.1.0'
