"""
Aggregate models — derived stock view and its reservation source.
"""

from decimal import Decimal

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class StockReservation(models.Model):
    """
    Quantity committed to an open sale/order but not yet shipped.

    Written by the sales side; this app only reads it through the
    ``product_stock`` view. A reservation counts while ``released_at`` is null.
    """

    company_id = models.CharField(max_length=64, null=True, blank=True, db_index=True)
    product_id = models.CharField(max_length=64, db_index=True, verbose_name=_('Produto'))
    quantity = models.DecimalField(max_digits=14, decimal_places=3, verbose_name=_('Quantidade'))
    reference = models.CharField(max_length=100, blank=True, default='', verbose_name=_('Referência'))
    created_at = models.DateTimeField(default=timezone.now)
    released_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Liberado em'))

    class Meta:
        db_table = 'stock_reservations'
        verbose_name = _('Reserva')
        verbose_name_plural = _('Reservas')

    def __str__(self) -> str:
        return f"{self.product_id}: {self.quantity} ({self.reference or '-'})"


class ProductStock(models.Model):
    """
    Read-only mapping of the ``product_stock`` SQL view.

    The view is created by migration and maintained by the database;
    nothing in this app writes or refreshes it. One row per
    (company_id, product_id); ``id`` is ``"<company_id>:<product_id>"``.
    """

    id = models.CharField(max_length=130, primary_key=True)
    company_id = models.CharField(max_length=64, null=True, blank=True, verbose_name=_('Empresa'))
    product_id = models.CharField(max_length=64, verbose_name=_('Produto'))
    stock = models.DecimalField(max_digits=14, decimal_places=3, default=Decimal('0'), verbose_name=_('Estoque'))
    reserved = models.DecimalField(max_digits=14, decimal_places=3, default=Decimal('0'), verbose_name=_('Reservado'))
    available = models.DecimalField(max_digits=14, decimal_places=3, default=Decimal('0'), verbose_name=_('Disponível'))

    class Meta:
        managed = False
        db_table = 'product_stock'
        verbose_name = _('Saldo')
        verbose_name_plural = _('Saldos')

    def __str__(self) -> str:
        return f"{self.product_id}: {self.available}/{self.stock}"
