"""
Integration tests for the Django store, models, migrations and commands.
"""

import io
import uuid
from decimal import Decimal

import pytest
from django.core.management import call_command
from django.db import connection
from django.utils import timezone

from stockledger import StockLedger
from stockledger.adapters import DjangoStore, get_store
from stockledger.exceptions import AggregationFallbackWarning, PersistenceError, ValidationError
from stockledger.models import (
    Product,
    ProductStock,
    ReplenishmentOrder,
    ReplenishmentOrderLog,
    StockMovement,
    StockReservation,
)
from stockledger.services import MovementRegistrar, StockAggregator


pytestmark = pytest.mark.django_db


@pytest.fixture
def django_store():
    return DjangoStore()


@pytest.fixture
def ledger(django_store):
    return StockLedger(django_store)


@pytest.fixture
def products(db):
    return [
        Product.objects.create(id='P-1', code='001', name='Filtro de óleo',
                               stock_min=Decimal('5'), stock_max=Decimal('50')),
        Product.objects.create(id='P-2', code='002', name='Pastilha de freio',
                               stock_min=Decimal('0'), stock_max=Decimal('10')),
    ]


class TestLedgerPersistence:

    def test_register_writes_movement(self, ledger, run):
        result = run(ledger.register('P-1', 10, 'IN', reason='Compra'))

        movement = StockMovement.objects.get()
        assert str(movement.pk) == result.movement_id
        assert movement.signed_qty == Decimal('10')
        assert movement.reason == 'Compra'

    def test_transfer_pair_shares_group(self, ledger, run):
        result = run(ledger.register('P-1', 5, 'TRANSFER', location_from='A', location_to='B'))

        legs = list(StockMovement.objects.order_by('signed_qty'))
        assert [leg.signed_qty for leg in legs] == [Decimal('-5'), Decimal('5')]
        assert {str(leg.movement_group) for leg in legs} == {result.movement_group}

    def test_batch_insert_is_atomic(self, django_store, run):
        """A failing second row leaves no first row behind."""
        duplicate = str(uuid.uuid4())
        rows = [
            {'id': duplicate, 'product_id': 'P-1', 'type': 'TRANSFER', 'signed_qty': Decimal('-5')},
            {'id': duplicate, 'product_id': 'P-1', 'type': 'TRANSFER', 'signed_qty': Decimal('5')},
        ]

        with pytest.raises(PersistenceError):
            run(django_store.insert('stock_movements', rows))

        assert StockMovement.objects.count() == 0

    def test_ledger_updates_are_refused(self, ledger, django_store, run):
        run(ledger.register('P-1', 1, 'IN'))

        with pytest.raises(PersistenceError) as exc:
            run(django_store.update('stock_movements', {'signed_qty': 100}, filters={'product_id': 'P-1'}))

        assert exc.value.code == 'IMMUTABLE_RELATION'

    def test_movement_model_is_immutable(self, ledger, run):
        run(ledger.register('P-1', 1, 'IN'))
        movement = StockMovement.objects.get()

        with pytest.raises(ValueError):
            movement.save()
        with pytest.raises(ValueError):
            movement.delete()

    def test_unknown_relation(self, django_store, run):
        with pytest.raises(PersistenceError) as exc:
            run(django_store.select('nope'))

        assert exc.value.code == 'UNKNOWN_RELATION'

    def test_bad_lookup_is_persistence_error(self, django_store, run):
        with pytest.raises(PersistenceError) as exc:
            run(django_store.select('stock_movements', filters={'no_such_field': 1}))

        assert exc.value.code == 'STORE_FAILURE'

    def test_oversized_quantity_never_reaches_the_table(self, ledger, run):
        with pytest.raises(ValidationError) as exc:
            run(ledger.register('P-1', '1e20', 'IN'))

        assert exc.value.code == 'INVALID_QUANTITY'
        assert StockMovement.objects.count() == 0

    def test_sub_step_quantity_is_not_rounded_away(self, ledger, run):
        with pytest.raises(ValidationError):
            run(ledger.register('P-1', '0.0004', 'IN'))

        assert StockMovement.objects.count() == 0

    def test_unreadable_stored_quantity_is_persistence_error(self, django_store, run):
        """A row written outside the app that overflows the column surfaces as STORE_FAILURE."""
        with connection.cursor() as cursor:
            cursor.execute(
                'INSERT INTO stock_movements (id, product_id, type, signed_qty, created_at) '
                'VALUES (%s, %s, %s, %s, %s)',
                [uuid.uuid4().hex, 'P-1', 'IN', '1e20', timezone.now()],
            )

        with pytest.raises(PersistenceError) as exc:
            run(django_store.select('stock_movements', filters={'product_id': 'P-1'}))

        assert exc.value.code == 'STORE_FAILURE'


class TestProductStockView:

    def test_view_matches_ledger(self, ledger, run):
        run(ledger.register('P-1', 10, 'IN'))
        run(ledger.register('P-1', 3, 'OUT'))
        run(ledger.register('P-1', -1, 'ADJUSTMENT'))
        StockReservation.objects.create(product_id='P-1', quantity=Decimal('2'))

        level = run(ledger.get_stock(['P-1']))['P-1']

        assert level.source == 'view'
        assert level.stock == Decimal('6')
        assert level.reserved == Decimal('2')
        assert level.available == Decimal('4')
        assert ProductStock.objects.get(product_id='P-1').available == Decimal('4')

    def test_fallback_when_view_relation_is_unavailable(self, ledger, run):
        run(ledger.register('P-1', 7, 'IN'))
        broken = DjangoStore(relations={'product_stock': 'stockledger.DoesNotExist'})

        with pytest.warns(AggregationFallbackWarning):
            level = run(StockAggregator(broken).get_stock(['P-1']))['P-1']

        assert level.stock == Decimal('7')
        assert level.reserved == Decimal('0')

    def test_keyset_paging_over_uuid_ids(self, ledger, django_store, run):
        for _ in range(5):
            run(ledger.register('P-1', 1, 'IN'))

        levels = run(StockAggregator(django_store, use_view=False, page_size=2).get_stock(['P-1']))

        assert levels['P-1'].stock == Decimal('5')

    def test_view_and_fold_agree_under_company_scope(self, django_store, run):
        run(MovementRegistrar(django_store, company_id='C-1').register('P-1', 5, 'IN'))
        run(MovementRegistrar(django_store, company_id='C-2').register('P-1', 7, 'IN'))
        StockReservation.objects.create(company_id='C-2', product_id='P-1', quantity=Decimal('2'))

        view = run(StockAggregator(django_store, company_id='C-1').get_stock(['P-1']))['P-1']
        folded = run(StockAggregator(django_store, company_id='C-1', use_view=False).get_stock(['P-1']))['P-1']

        assert view.source == 'view'
        assert view.stock == folded.stock == Decimal('5')
        assert view.reserved == Decimal('0')
        assert ProductStock.objects.filter(product_id='P-1').count() == 2

    def test_unscoped_view_adds_up_companies(self, django_store, run):
        run(MovementRegistrar(django_store, company_id='C-1').register('P-1', 5, 'IN'))
        run(MovementRegistrar(django_store, company_id='C-2').register('P-1', 7, 'IN'))
        StockReservation.objects.create(company_id='C-2', product_id='P-1', quantity=Decimal('2'))

        level = run(StockAggregator(django_store).get_stock(['P-1']))['P-1']

        assert level.source == 'view'
        assert level.stock == Decimal('12')
        assert level.available == Decimal('10')


class TestReplenishmentPersistence:

    def test_order_lifecycle(self, ledger, products, run):
        run(ledger.register('P-1', 20, 'IN'))

        items = run(ledger.build_suggestions())
        assert [(i.product_id, i.order_suggested_qty) for i in items] == [
            ('P-1', Decimal('30')),
            ('P-2', Decimal('10')),
        ]

        order = run(ledger.create_order(items, notes='Semanal'))
        updated = run(ledger.update_order(order.id, {'status': 'FECHADO'}))

        stored = ReplenishmentOrder.objects.get(pk=order.id)
        assert stored.status == 'FECHADO'
        assert stored.closed_at is not None
        assert updated.items[0].order_suggested_qty == Decimal('30')
        assert list(
            ReplenishmentOrderLog.objects.filter(order=stored).values_list('event', flat=True)
        ) == ['CREATE', 'UPDATE']
        assert [log.event for log in run(ledger.order_logs(order.id))] == ['CREATE', 'UPDATE']

    def test_set_thresholds(self, ledger, products, run):
        run(ledger.set_thresholds('P-2', stock_min=1, stock_max=12, reason='Ajuste'))

        product = Product.objects.get(pk='P-2')
        assert product.stock_max == Decimal('12')

    def test_default_store_from_settings(self, products, run):
        assert isinstance(get_store(), DjangoStore)
        assert run(StockLedger().list_orders()) == []


class TestCommands:

    def test_verify_stock(self, ledger, products, run):
        run(ledger.register('P-1', 4, 'IN'))
        out = io.StringIO()

        call_command('verify_stock', stdout=out)

        assert 'Saldos conferem' in out.getvalue()

    def test_verify_stock_for_one_company(self, django_store, run):
        run(MovementRegistrar(django_store, company_id='C-1').register('P-1', 5, 'IN'))
        run(MovementRegistrar(django_store, company_id='C-2').register('P-1', 7, 'IN'))
        out = io.StringIO()

        call_command('verify_stock', 'P-1', '--company', 'C-1', stdout=out)

        assert 'Saldos conferem' in out.getvalue()

    def test_create_replenishment_order_dry_run(self, products):
        out = io.StringIO()

        call_command('create_replenishment_order', '--dry-run', stdout=out)

        assert '2 item(ns)' in out.getvalue()
        assert ReplenishmentOrder.objects.count() == 0

    def test_create_replenishment_order_export(self, products):
        out = io.StringIO()

        call_command('create_replenishment_order', '--export', stdout=out)

        assert out.getvalue().splitlines()[0] == 'Codigo;Nome;Estoque;Min;Max;Sugerido'
        assert ReplenishmentOrder.objects.count() == 1
