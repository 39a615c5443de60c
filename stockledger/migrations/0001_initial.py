"""
Initial migration for Stockledger models.
"""

from decimal import Decimal
import uuid

import django.core.serializers.json
import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):
    """Create ledger, reservation, product and replenishment tables."""

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='StockMovement',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('company_id', models.CharField(blank=True, db_index=True, max_length=64, null=True, verbose_name='Empresa')),
                ('product_id', models.CharField(max_length=64, verbose_name='Produto')),
                ('type', models.CharField(choices=[('IN', 'Entrada'), ('OUT', 'Saída'), ('ADJUSTMENT', 'Ajuste'), ('TRANSFER', 'Transferência'), ('RETURN', 'Devolução'), ('EXCHANGE', 'Troca')], max_length=20, verbose_name='Tipo')),
                ('signed_qty', models.DecimalField(decimal_places=3, help_text='Positivo = entrada, Negativo = saída', max_digits=14, verbose_name='Quantidade')),
                ('location_from', models.CharField(blank=True, max_length=100, null=True, verbose_name='Origem')),
                ('location_to', models.CharField(blank=True, max_length=100, null=True, verbose_name='Destino')),
                ('movement_group', models.UUIDField(blank=True, db_index=True, help_text='Vincula as duas pernas de uma transferência', null=True, verbose_name='Grupo')),
                ('reason', models.CharField(blank=True, max_length=255, null=True, verbose_name='Motivo')),
                ('related_sale_id', models.CharField(blank=True, max_length=64, null=True, verbose_name='Venda relacionada')),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now, verbose_name='Data/Hora')),
            ],
            options={
                'verbose_name': 'Movimento',
                'verbose_name_plural': 'Movimentos',
                'db_table': 'stock_movements',
                'ordering': ['created_at'],
                'indexes': [models.Index(fields=['product_id', 'created_at'], name='stock_mov_product_created_idx')],
            },
        ),
        migrations.CreateModel(
            name='StockReservation',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('company_id', models.CharField(blank=True, db_index=True, max_length=64, null=True)),
                ('product_id', models.CharField(db_index=True, max_length=64, verbose_name='Produto')),
                ('quantity', models.DecimalField(decimal_places=3, max_digits=14, verbose_name='Quantidade')),
                ('reference', models.CharField(blank=True, default='', max_length=100, verbose_name='Referência')),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('released_at', models.DateTimeField(blank=True, null=True, verbose_name='Liberado em')),
            ],
            options={
                'verbose_name': 'Reserva',
                'verbose_name_plural': 'Reservas',
                'db_table': 'stock_reservations',
            },
        ),
        migrations.CreateModel(
            name='ProductStock',
            fields=[
                ('id', models.CharField(max_length=130, primary_key=True, serialize=False)),
                ('company_id', models.CharField(blank=True, max_length=64, null=True, verbose_name='Empresa')),
                ('product_id', models.CharField(max_length=64, verbose_name='Produto')),
                ('stock', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=14, verbose_name='Estoque')),
                ('reserved', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=14, verbose_name='Reservado')),
                ('available', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=14, verbose_name='Disponível')),
            ],
            options={
                'verbose_name': 'Saldo',
                'verbose_name_plural': 'Saldos',
                'db_table': 'product_stock',
                'managed': False,
            },
        ),
        migrations.CreateModel(
            name='Product',
            fields=[
                ('id', models.CharField(max_length=64, primary_key=True, serialize=False)),
                ('company_id', models.CharField(blank=True, db_index=True, max_length=64, null=True, verbose_name='Empresa')),
                ('code', models.CharField(blank=True, default='', max_length=64, verbose_name='Código')),
                ('name', models.CharField(max_length=255, verbose_name='Nome')),
                ('stock_min', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=14, verbose_name='Estoque mínimo')),
                ('stock_max', models.DecimalField(decimal_places=3, default=Decimal('0'), help_text='Quantidade alvo da reposição. 0 = sem reposição.', max_digits=14, verbose_name='Estoque máximo')),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('updated_at', models.DateTimeField(default=django.utils.timezone.now)),
            ],
            options={
                'verbose_name': 'Produto',
                'verbose_name_plural': 'Produtos',
                'db_table': 'products',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='ProductThresholdLog',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('product_id', models.CharField(db_index=True, max_length=64)),
                ('company_id', models.CharField(blank=True, max_length=64, null=True)),
                ('old_stock_min', models.DecimalField(blank=True, decimal_places=3, max_digits=14, null=True)),
                ('new_stock_min', models.DecimalField(blank=True, decimal_places=3, max_digits=14, null=True)),
                ('old_stock_max', models.DecimalField(blank=True, decimal_places=3, max_digits=14, null=True)),
                ('new_stock_max', models.DecimalField(blank=True, decimal_places=3, max_digits=14, null=True)),
                ('reason', models.CharField(blank=True, max_length=255, null=True, verbose_name='Motivo')),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
            ],
            options={
                'verbose_name': 'Histórico de limites',
                'verbose_name_plural': 'Históricos de limites',
                'db_table': 'product_stock_threshold_logs',
                'ordering': ['-id'],
            },
        ),
        migrations.CreateModel(
            name='ReplenishmentOrder',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('company_id', models.CharField(blank=True, db_index=True, max_length=64, null=True, verbose_name='Empresa')),
                ('status', models.CharField(choices=[('ABERTO', 'Aberto'), ('EM_PROCESSO', 'Em processo'), ('FECHADO', 'Fechado')], default='ABERTO', max_length=20, verbose_name='Status')),
                ('items', models.JSONField(blank=True, default=list, encoder=django.core.serializers.json.DjangoJSONEncoder, verbose_name='Itens')),
                ('notes', models.TextField(blank=True, default='', verbose_name='Observações')),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('updated_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('closed_at', models.DateTimeField(blank=True, null=True, verbose_name='Fechado em')),
            ],
            options={
                'verbose_name': 'Pedido de reposição',
                'verbose_name_plural': 'Pedidos de reposição',
                'db_table': 'replenishment_orders',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='ReplenishmentOrderLog',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('event', models.CharField(max_length=30, verbose_name='Evento')),
                ('data', models.JSONField(blank=True, default=dict, encoder=django.core.serializers.json.DjangoJSONEncoder, verbose_name='Dados')),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('order', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='logs', to='stockledger.replenishmentorder', verbose_name='Pedido')),
            ],
            options={
                'verbose_name': 'Log do pedido',
                'verbose_name_plural': 'Logs do pedido',
                'db_table': 'replenishment_order_logs',
                'ordering': ['created_at', 'id'],
            },
        ),
    ]
