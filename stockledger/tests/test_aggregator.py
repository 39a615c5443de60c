"""
Tests for StockAggregator.
"""

import logging
from decimal import Decimal

import pytest

from stockledger.exceptions import AggregationFallbackWarning
from stockledger.services import StockAggregator
from stockledger.services.aggregator import contribution
from stockledger.protocols.records import Movement


class TestGetStockView:
    """Preferred path: product_stock view."""

    def test_view_includes_reservations(self, store, aggregator, movement_row, run):
        store.seed('stock_movements', [movement_row('P-1', Decimal('10'), 'IN')])
        store.seed('stock_reservations', [
            {'product_id': 'P-1', 'quantity': Decimal('3'), 'released_at': None},
            {'product_id': 'P-1', 'quantity': Decimal('99'), 'released_at': '2024-01-01'},
        ])

        level = run(aggregator.get_stock(['P-1']))['P-1']

        assert level.source == 'view'
        assert level.stock == Decimal('10')
        assert level.reserved == Decimal('3')
        assert level.available == Decimal('7')

    def test_empty_input_returns_empty(self, aggregator, run):
        assert run(aggregator.get_stock([])) == {}
        assert run(aggregator.get_stock([None, '', '  '])) == {}

    def test_duplicates_are_collapsed(self, store, aggregator, movement_row, run):
        store.seed('stock_movements', [movement_row('P-1', Decimal('2'))])

        levels = run(aggregator.get_stock(['P-1', 'P-1', ' P-1 ']))

        assert list(levels) == ['P-1']

    def test_ids_missing_from_view_are_folded(self, store, aggregator, movement_row, run, recwarn):
        """Partial view coverage: unknown ids get a zero ledger level, no warning."""
        store.seed('stock_movements', [movement_row('P-1', Decimal('5'))])

        levels = run(aggregator.get_stock(['P-1', 'P-9']))

        assert levels['P-1'].source == 'view'
        assert levels['P-9'].source == 'ledger'
        assert levels['P-9'].stock == Decimal('0')
        assert not [w for w in recwarn if issubclass(w.category, AggregationFallbackWarning)]

    def test_negative_available_is_kept_raw(self, store, aggregator, movement_row, run):
        store.seed('stock_movements', [movement_row('P-1', Decimal('1'))])
        store.seed('stock_reservations', [{'product_id': 'P-1', 'quantity': Decimal('4'), 'released_at': None}])

        level = run(aggregator.get_stock(['P-1']))['P-1']

        assert level.available == Decimal('-3')
        assert level.display_available == Decimal('0')


class TestGetStockFallback:
    """Fallback path: fold raw ledger rows."""

    def test_view_error_falls_back_with_zero_reserved(self, store, aggregator, movement_row, run, caplog):
        """A failing view still yields stock, with reserved=0 for every product."""
        store.seed('stock_movements', [
            movement_row('P-1', Decimal('10'), 'IN'),
            movement_row('P-2', Decimal('4'), 'IN'),
        ])
        store.seed('stock_reservations', [{'product_id': 'P-1', 'quantity': Decimal('3'), 'released_at': None}])
        store.fail('select', 'product_stock')

        with caplog.at_level(logging.WARNING, logger='stockledger'):
            with pytest.warns(AggregationFallbackWarning):
                levels = run(aggregator.get_stock(['P-1', 'P-2']))

        assert levels['P-1'].stock == Decimal('10')
        assert levels['P-2'].stock == Decimal('4')
        assert all(level.reserved == 0 for level in levels.values())
        assert all(level.source == 'ledger' for level in levels.values())
        assert levels['P-1'].available == Decimal('10')
        assert any(r.getMessage() == 'stock.aggregate.fallback' for r in caplog.records)

    def test_empty_view_falls_back(self, store, aggregator, run):
        """No view rows at all: ledger fold, zero for unknown products."""
        with pytest.warns(AggregationFallbackWarning):
            levels = run(aggregator.get_stock(['P-1']))

        assert levels['P-1'].stock == Decimal('0')
        assert levels['P-1'].source == 'ledger'

    def test_use_view_false_does_not_warn(self, store, movement_row, run, recwarn):
        store.seed('stock_movements', [movement_row('P-1', Decimal('3'))])

        levels = run(StockAggregator(store, use_view=False).get_stock(['P-1']))

        assert levels['P-1'].stock == Decimal('3')
        assert not [w for w in recwarn if issubclass(w.category, AggregationFallbackWarning)]

    def test_malformed_rows_contribute_zero(self, store, movement_row, run, caplog):
        """One bad row is logged and skipped; the batch goes on."""
        store.seed('stock_movements', [
            movement_row('P-1', Decimal('10'), 'IN'),
            movement_row('P-1', 'não-numérico', 'OUT'),
            movement_row('P-1', Decimal('2'), 'OUT'),
            {'id': 'm-bad', 'product_id': None, 'type': 'IN', 'signed_qty': Decimal('50')},
        ])

        with caplog.at_level(logging.WARNING, logger='stockledger'):
            levels = run(StockAggregator(store, use_view=False).get_stock(['P-1']))

        assert levels['P-1'].stock == Decimal('8')
        assert any(r.getMessage() == 'stock.aggregate.malformed_row' for r in caplog.records)

    def test_legacy_types_fold_by_direction(self, store, movement_row, run):
        """ENTRADA/SAIDA rows with unsigned quantities fold by type."""
        store.seed('stock_movements', [
            movement_row('P-1', Decimal('10'), 'ENTRADA'),
            movement_row('P-1', Decimal('3'), 'SAIDA'),
            movement_row('P-1', Decimal('-1'), 'AJUSTE'),
        ])

        levels = run(StockAggregator(store, use_view=False).get_stock(['P-1']))

        assert levels['P-1'].stock == Decimal('6')

    def test_fold_pages_through_ledger(self, store, movement_row, run):
        """Pages smaller than the ledger still see every row."""
        store.seed('stock_movements', [movement_row('P-1', Decimal('1'), 'IN') for _ in range(25)])

        levels = run(StockAggregator(store, use_view=False, page_size=7).get_stock(['P-1']))

        assert levels['P-1'].stock == Decimal('25')

    def test_fold_respects_company_scope(self, store, movement_row, run):
        store.seed('stock_movements', [
            movement_row('P-1', Decimal('5'), company_id='C-1'),
            movement_row('P-1', Decimal('7'), company_id='C-2'),
        ])

        levels = run(StockAggregator(store, company_id='C-1', use_view=False).get_stock(['P-1']))

        assert levels['P-1'].stock == Decimal('5')


class TestCompanyScope:
    """View rows are per (company, product); both read paths agree."""

    @pytest.fixture
    def two_companies(self, store, movement_row):
        store.seed('stock_movements', [
            movement_row('P-1', Decimal('5'), 'IN', company_id='C-1'),
            movement_row('P-1', Decimal('7'), 'IN', company_id='C-2'),
        ])
        store.seed('stock_reservations', [
            {'company_id': 'C-2', 'product_id': 'P-1', 'quantity': Decimal('4'), 'released_at': None},
        ])
        return store

    def test_view_and_fold_agree_for_company(self, two_companies, run):
        view = run(StockAggregator(two_companies, company_id='C-1').get_stock(['P-1']))['P-1']
        folded = run(StockAggregator(two_companies, company_id='C-1', use_view=False).get_stock(['P-1']))['P-1']

        assert view.source == 'view'
        assert view.stock == folded.stock == Decimal('5')

    def test_reservations_stay_in_their_company(self, two_companies, run):
        c1 = run(StockAggregator(two_companies, company_id='C-1').get_stock(['P-1']))['P-1']
        c2 = run(StockAggregator(two_companies, company_id='C-2').get_stock(['P-1']))['P-1']

        assert (c1.reserved, c1.available) == (Decimal('0'), Decimal('5'))
        assert (c2.reserved, c2.available) == (Decimal('4'), Decimal('3'))

    def test_unscoped_view_adds_up_companies(self, two_companies, run):
        level = run(StockAggregator(two_companies).get_stock(['P-1']))['P-1']

        assert level.source == 'view'
        assert level.stock == Decimal('12')
        assert level.reserved == Decimal('4')
        assert level.available == Decimal('8')

    def test_company_without_rows_falls_back(self, two_companies, run):
        with pytest.warns(AggregationFallbackWarning):
            level = run(StockAggregator(two_companies, company_id='C-9').get_stock(['P-1']))['P-1']

        assert level.stock == Decimal('0')


class TestContribution:

    @pytest.mark.parametrize('type, qty, expected', [
        ('IN', '-4', '4'),
        ('RETURN', '4', '4'),
        ('OUT', '4', '-4'),
        ('EXCHANGE', '-4', '-4'),
        ('ADJUSTMENT', '-4', '-4'),
        ('TRANSFER', '-4', '-4'),
    ])
    def test_direction_by_type(self, type, qty, expected):
        movement = Movement(id='m', product_id='P-1', type=type, signed_qty=Decimal(qty))

        assert contribution(movement) == Decimal(expected)


class TestKardex:

    def test_running_balance(self, store, aggregator, movement_row, run):
        store.seed('stock_movements', [
            movement_row('P-1', Decimal('-3'), 'OUT', created_at='2024-01-02'),
            movement_row('P-1', Decimal('10'), 'IN', created_at='2024-01-01'),
            movement_row('P-1', Decimal('2'), 'ADJUSTMENT', created_at='2024-01-03'),
            movement_row('P-2', Decimal('99'), 'IN', created_at='2024-01-01'),
        ])

        lines = run(aggregator.kardex('P-1'))

        assert [line.movement.type for line in lines] == ['IN', 'OUT', 'ADJUSTMENT']
        assert [line.balance for line in lines] == [Decimal('10'), Decimal('7'), Decimal('9')]
