"""
Pytest fixtures for Stockledger tests.
"""

from decimal import Decimal

import pytest
from asgiref.sync import async_to_sync

from stockledger.adapters import InMemoryStore, reset_store
from stockledger.services import MovementRegistrar, ReplenishmentPlanner, StockAggregator


@pytest.fixture
def run():
    """Drive a coroutine to completion from a sync test."""
    def _run(coroutine):
        async def _await():
            return await coroutine
        return async_to_sync(_await)()
    return _run


@pytest.fixture(autouse=True)
def _reset_default_store():
    yield
    reset_store()


@pytest.fixture
def store():
    """In-memory store with two products."""
    store = InMemoryStore()
    store.seed('products', [
        {'id': 'P-1', 'code': '001', 'name': 'Filtro de óleo',
         'stock_min': Decimal('5'), 'stock_max': Decimal('20')},
        {'id': 'P-2', 'code': '002', 'name': 'Pastilha de freio',
         'stock_min': Decimal('2'), 'stock_max': Decimal('10')},
        {'id': 'P-3', 'code': '003', 'name': 'Brinde', 'stock_min': Decimal('0'), 'stock_max': Decimal('0')},
    ])
    return store


@pytest.fixture
def non_transactional_store():
    """In-memory store that writes batch rows one at a time."""
    return InMemoryStore(supports_transactions=False)


@pytest.fixture
def aggregator(store):
    return StockAggregator(store)


@pytest.fixture
def registrar(store):
    return MovementRegistrar(store)


@pytest.fixture
def planner(store, aggregator):
    return ReplenishmentPlanner(store, aggregator)


@pytest.fixture
def movement_row():
    """Factory for raw ledger rows."""
    counter = iter(range(1, 10_000))

    def _row(product_id, signed_qty, type='ADJUSTMENT', **extra):
        return {
            'id': f'm-{next(counter):05d}',
            'product_id': product_id,
            'type': type,
            'signed_qty': signed_qty,
            **extra,
        }
    return _row
