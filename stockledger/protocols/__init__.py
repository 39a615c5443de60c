"""
Stockledger Protocols.

Defines the store interface and the typed records read from it.
"""

from stockledger.protocols.records import (
    KardexLine,
    Movement,
    OrderLogEntry,
    ProductThreshold,
    Registration,
    ReplenishmentItem,
    ReplenishmentOrder,
    StockLevel,
)
from stockledger.protocols.store import LedgerStore

__all__ = [
    "KardexLine",
    "LedgerStore",
    "Movement",
    "OrderLogEntry",
    "ProductThreshold",
    "Registration",
    "ReplenishmentItem",
    "ReplenishmentOrder",
    "StockLevel",
]
