"""
Management command to audit the product_stock view against the ledger.

Usage:
    python manage.py verify_stock
    python manage.py verify_stock P-1 P-2 --company C-1
"""

from decimal import Decimal

from asgiref.sync import async_to_sync
from django.core.management.base import BaseCommand, CommandError

from stockledger.adapters import get_store
from stockledger.exceptions import PersistenceError
from stockledger.protocols.records import ProductThreshold
from stockledger.protocols.store import PRODUCTS
from stockledger.services.aggregator import StockAggregator


class Command(BaseCommand):
    """Compare view stock with a full ledger fold."""

    help = 'Confere o saldo da view product_stock com a soma do razão'

    def add_arguments(self, parser):
        parser.add_argument('products', nargs='*', help='Produtos (padrão: todos)')
        parser.add_argument('--company', default=None, help='Empresa')

    def handle(self, *args, **options):
        mismatches = async_to_sync(self._verify)(options['products'], options['company'])
        if mismatches:
            raise CommandError(f'{mismatches} produto(s) com divergência')
        self.stdout.write(self.style.SUCCESS('Saldos conferem'))

    async def _verify(self, product_ids, company_id):
        store = get_store()
        if not product_ids:
            filters = {} if company_id is None else {'company_id': company_id}
            rows = await store.select(PRODUCTS, filters=filters, order_by=('id',))
            product_ids = [ProductThreshold.from_row(row).product_id for row in rows]
        if not product_ids:
            return 0

        try:
            view = await StockAggregator(store, company_id=company_id).read_view(list(product_ids))
        except PersistenceError as e:
            raise CommandError(f'View product_stock indisponível: {e.message}') from e

        ledger = await StockAggregator(store, company_id=company_id, use_view=False).get_stock(product_ids)

        mismatches = 0
        for pid, folded in ledger.items():
            in_view = view[pid].stock if pid in view else Decimal('0')
            if in_view != folded.stock:
                mismatches += 1
                self.stdout.write(f'{pid}: view={in_view} razão={folded.stock}')
        return mismatches
