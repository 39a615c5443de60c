"""
Stock ledger services — one class per component, all sharing a store handle.

    from stockledger.services import StockAggregator, MovementRegistrar, ReplenishmentPlanner
"""

from stockledger.services.aggregator import StockAggregator
from stockledger.services.planner import ReplenishmentPlanner
from stockledger.services.registrar import MovementRegistrar

__all__ = [
    'StockAggregator',
    'MovementRegistrar',
    'ReplenishmentPlanner',
]
