"""
Replenishment models — generated, human-editable reorder lists.
"""

import uuid

from django.core.serializers.json import DjangoJSONEncoder
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from stockledger.models.enums import OrderStatus


class ReplenishmentOrder(models.Model):
    """
    Replenishment order.

    ``items`` is a JSON list of line items
    (product_id, code, name, stock, stock_min, stock_max, order_suggested_qty).
    Once a person edits ``order_suggested_qty`` the stored value is authoritative.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    company_id = models.CharField(max_length=64, null=True, blank=True, db_index=True, verbose_name=_('Empresa'))
    status = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.ABERTO,
        verbose_name=_('Status'),
    )
    items = models.JSONField(default=list, blank=True, encoder=DjangoJSONEncoder, verbose_name=_('Itens'))
    notes = models.TextField(blank=True, default='', verbose_name=_('Observações'))
    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(default=timezone.now)
    closed_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Fechado em'))

    class Meta:
        db_table = 'replenishment_orders'
        verbose_name = _('Pedido de reposição')
        verbose_name_plural = _('Pedidos de reposição')
        ordering = ['-created_at']

    def __str__(self) -> str:
        return f"Pedido {str(self.id)[:8]} [{self.status}]"


class ReplenishmentOrderLog(models.Model):
    """Append-only audit trail: one row per order mutation."""

    order = models.ForeignKey(
        ReplenishmentOrder,
        on_delete=models.CASCADE,
        related_name='logs',
        verbose_name=_('Pedido'),
    )
    event = models.CharField(max_length=30, verbose_name=_('Evento'))
    data = models.JSONField(default=dict, blank=True, encoder=DjangoJSONEncoder, verbose_name=_('Dados'))
    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        db_table = 'replenishment_order_logs'
        verbose_name = _('Log do pedido')
        verbose_name_plural = _('Logs do pedido')
        ordering = ['created_at', 'id']

    def __str__(self) -> str:
        return f"{self.event} @ {self.created_at:%Y-%m-%d %H:%M}"
