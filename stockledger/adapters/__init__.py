"""
Stockledger Adapters.

Implementations of the LedgerStore protocol, plus the settings-driven
default store used when no store handle is passed explicitly.

Usage:
    from stockledger.adapters import get_store

    store = get_store()
    rows = await store.select("products", filters={"stock_max__gt": 0})

Settings:
    STOCKLEDGER = {
        "STORE_BACKEND": "stockledger.adapters.django_orm.DjangoStore",
    }
"""

from __future__ import annotations

import logging
import threading

from django.core.exceptions import ImproperlyConfigured
from django.utils.module_loading import import_string

from stockledger.adapters.django_orm import DjangoStore
from stockledger.adapters.memory import InMemoryStore
from stockledger.conf import stockledger_settings
from stockledger.protocols.store import LedgerStore

logger = logging.getLogger(__name__)

__all__ = [
    "DjangoStore",
    "InMemoryStore",
    "get_store",
    "reset_store",
]

# Cached store instance
_lock = threading.Lock()
_store: LedgerStore | None = None


def get_store() -> LedgerStore:
    """
    Return the configured default store.

    Raises:
        ImproperlyConfigured: If STORE_BACKEND is empty or import fails
    """
    global _store

    if _store is None:
        with _lock:
            if _store is None:  # double-checked
                backend_path = stockledger_settings.STORE_BACKEND

                if not backend_path:
                    raise ImproperlyConfigured(
                        "STOCKLEDGER['STORE_BACKEND'] must be configured. "
                        "Example: 'stockledger.adapters.django_orm.DjangoStore'"
                    )

                try:
                    backend_class = import_string(backend_path)
                except ImportError as e:
                    raise ImproperlyConfigured(
                        f"Failed to import store backend '{backend_path}': {e}"
                    ) from e
                _store = backend_class()
                logger.debug("Loaded store backend: %s", backend_path)

    return _store


def reset_store() -> None:
    """Reset the cached store. Useful for testing."""
    global _store
    _store = None
