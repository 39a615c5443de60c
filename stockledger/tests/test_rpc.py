"""
Tests for the register_stock_movement RPC entry point.
"""

from decimal import Decimal

from stockledger.adapters import InMemoryStore
from stockledger.rpc import register_stock_movement


class TestRegisterStockMovement:

    def test_success(self, store, run):
        result = run(register_stock_movement(store, {'product_id': 'P-1', 'qty': 3, 'type': 'IN'}))

        assert result['ok'] is True
        assert result['movement_ids'] == [result['movement_id']]
        assert result['movement_group'] is None
        assert store.rows('stock_movements')[0]['signed_qty'] == Decimal('3')

    def test_prefixed_keys_and_transfer(self, store, run):
        payload = {
            'p_product_id': 'P-1',
            'p_qty': '5',
            'p_type': 'TRANSFER',
            'p_location_from': 'Loja',
            'p_location_to': 'Depósito',
        }

        result = run(register_stock_movement(store, payload, company_id='C-1'))

        assert result['ok'] is True
        assert len(result['movement_ids']) == 2
        assert result['movement_group']
        assert {row['company_id'] for row in store.rows('stock_movements')} == {'C-1'}

    def test_validation_error_is_returned(self, store, run):
        result = run(register_stock_movement(store, {'product_id': 'P-1', 'qty': 5, 'type': 'TRANSFER',
                                                     'location_from': 'A', 'location_to': ''}))

        assert result == {'ok': False, 'code': 'LOCATION_REQUIRED', 'error': 'Transferência exige origem e destino'}
        assert store.rows('stock_movements') == []

    def test_oversized_quantity_is_returned_as_invalid(self, store, run):
        result = run(register_stock_movement(store, {'product_id': 'P-1', 'qty': '1e20', 'type': 'IN'}))

        assert result['ok'] is False
        assert result['code'] == 'INVALID_QUANTITY'
        assert store.rows('stock_movements') == []

    def test_partial_write_reports_committed(self, run):
        store = InMemoryStore(supports_transactions=False)
        store.fail('insert', 'stock_movements', after=1)

        result = run(register_stock_movement(store, {'product_id': 'P-1', 'qty': 5, 'type': 'TRANSFER',
                                                     'location_from': 'A', 'location_to': 'B'}))

        assert result['ok'] is False
        assert result['code'] == 'PARTIAL_TRANSFER'
        assert result['committed'] == [store.rows('stock_movements')[0]['id']]

    def test_invalid_payload(self, store, run):
        result = run(register_stock_movement(store, ['P-1', 5]))

        assert result['ok'] is False
        assert result['code'] == 'INVALID_PAYLOAD'
