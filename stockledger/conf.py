"""
Stockledger configuration.

Usage in settings.py:
    STOCKLEDGER = {
        "STORE_BACKEND": "stockledger.adapters.django_orm.DjangoStore",
        "USE_AGGREGATE_VIEW": True,
        "FALLBACK_PAGE_SIZE": 5000,
        "ORDER_STATUS_POLICY": "permissive",
    }
"""

from dataclasses import dataclass, field
from typing import Any

from django.conf import settings


@dataclass
class StockledgerSettings:
    """Stockledger configuration settings."""

    # Default store backend (dotted path)
    STORE_BACKEND: str = "stockledger.adapters.django_orm.DjangoStore"

    # Relation name -> model label overrides for the Django store
    RELATIONS: dict[str, str] = field(default_factory=dict)

    # Read product_stock before folding the ledger
    USE_AGGREGATE_VIEW: bool = True

    # Ledger rows per page when folding without the view
    FALLBACK_PAGE_SIZE: int = 5000

    # Product ids per aggregator call when building suggestions
    SUGGESTION_BATCH_SIZE: int = 500

    # Delimiter for exported orders/movements
    EXPORT_SEPARATOR: str = ";"

    # "permissive" (any status may follow any other) or "forward_only"
    ORDER_STATUS_POLICY: str = "permissive"


def get_stockledger_settings() -> StockledgerSettings:
    """Load settings from Django settings."""
    user_settings: dict[str, Any] = getattr(settings, "STOCKLEDGER", {})
    return StockledgerSettings(**{
        k: v for k, v in user_settings.items()
        if k in StockledgerSettings.__dataclass_fields__
    })


class _LazySettings:
    """Lazy proxy that re-reads settings on every attribute access."""

    def __getattr__(self, name):
        return getattr(get_stockledger_settings(), name)


stockledger_settings = _LazySettings()
