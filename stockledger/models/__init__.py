"""
Stockledger Models.

Core models for the stock ledger:
- StockMovement: Immutable ledger of signed quantity changes
- ProductStock: Derived stock/reserved/available view (read-only)
- StockReservation: Open reservations feeding the view
- Product: Min/max replenishment thresholds
- ProductThresholdLog: History of threshold changes
- ReplenishmentOrder: Editable reorder list
- ReplenishmentOrderLog: Audit trail of order mutations
"""

from stockledger.models.aggregate import ProductStock, StockReservation
from stockledger.models.enums import MovementType, OrderStatus
from stockledger.models.movement import StockMovement
from stockledger.models.product import Product, ProductThresholdLog
from stockledger.models.replenishment import ReplenishmentOrder, ReplenishmentOrderLog

__all__ = [
    'MovementType',
    'OrderStatus',
    'StockMovement',
    'ProductStock',
    'StockReservation',
    'Product',
    'ProductThresholdLog',
    'ReplenishmentOrder',
    'ReplenishmentOrderLog',
]
