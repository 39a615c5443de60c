"""
Management command to create a replenishment order from current suggestions.

Usage:
    python manage.py create_replenishment_order --company C-1
    python manage.py create_replenishment_order --dry-run
    python manage.py create_replenishment_order --export
"""

from asgiref.sync import async_to_sync
from django.core.management.base import BaseCommand

from stockledger.service import StockLedger


class Command(BaseCommand):
    """Create replenishment order command."""

    help = 'Cria pedido de reposição com as sugestões atuais'

    def add_arguments(self, parser):
        parser.add_argument('--company', default=None, help='Empresa')
        parser.add_argument('--name', default=None, help='Filtra produtos pelo nome')
        parser.add_argument('--notes', default='', help='Observações do pedido')
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Mostra as sugestões sem criar o pedido'
        )
        parser.add_argument(
            '--export',
            action='store_true',
            help='Escreve o pedido criado em CSV na saída padrão'
        )

    def handle(self, *args, **options):
        ledger = StockLedger(company_id=options['company'])
        items = async_to_sync(ledger.build_suggestions)(name_filter=options['name'])

        if not items:
            self.stdout.write('Nenhum produto precisa de reposição')
            return

        if options['dry_run']:
            for item in items:
                self.stdout.write(f'{item.code or item.product_id} {item.name}: {item.order_suggested_qty}')
            self.stdout.write(f'{len(items)} item(ns) seria(m) incluído(s)')
            return

        order = async_to_sync(ledger.create_order)(items, notes=options['notes'])
        if options['export']:
            self.stdout.write(ledger.export_order(order), ending='')
        else:
            self.stdout.write(
                self.style.SUCCESS(f'Pedido {order.id} criado com {len(order.items)} item(ns)')
            )
