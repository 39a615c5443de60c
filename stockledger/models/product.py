"""
Product model — replenishment thresholds per product.
"""

from decimal import Decimal

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class Product(models.Model):
    """
    Product with min/max stock thresholds.

    Only the fields the replenishment computation needs live here;
    ``stock_max = 0`` means no threshold is configured.
    """

    id = models.CharField(max_length=64, primary_key=True)
    company_id = models.CharField(max_length=64, null=True, blank=True, db_index=True, verbose_name=_('Empresa'))
    code = models.CharField(max_length=64, blank=True, default='', verbose_name=_('Código'))
    name = models.CharField(max_length=255, verbose_name=_('Nome'))
    stock_min = models.DecimalField(
        max_digits=14,
        decimal_places=3,
        default=Decimal('0'),
        verbose_name=_('Estoque mínimo'),
    )
    stock_max = models.DecimalField(
        max_digits=14,
        decimal_places=3,
        default=Decimal('0'),
        verbose_name=_('Estoque máximo'),
        help_text=_('Quantidade alvo da reposição. 0 = sem reposição.'),
    )
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'products'
        verbose_name = _('Produto')
        verbose_name_plural = _('Produtos')
        ordering = ['name']

    def __str__(self) -> str:
        return f"{self.code} {self.name}".strip()


class ProductThresholdLog(models.Model):
    """One row per change of a product's min/max thresholds."""

    product_id = models.CharField(max_length=64, db_index=True)
    company_id = models.CharField(max_length=64, null=True, blank=True)
    old_stock_min = models.DecimalField(max_digits=14, decimal_places=3, null=True, blank=True)
    new_stock_min = models.DecimalField(max_digits=14, decimal_places=3, null=True, blank=True)
    old_stock_max = models.DecimalField(max_digits=14, decimal_places=3, null=True, blank=True)
    new_stock_max = models.DecimalField(max_digits=14, decimal_places=3, null=True, blank=True)
    reason = models.CharField(max_length=255, null=True, blank=True, verbose_name=_('Motivo'))
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'product_stock_threshold_logs'
        verbose_name = _('Histórico de limites')
        verbose_name_plural = _('Históricos de limites')
        ordering = ['-id']

    def __str__(self) -> str:
        return (
            f"{self.product_id}: min {self.old_stock_min}→{self.new_stock_min}, "
            f"max {self.old_stock_max}→{self.new_stock_max}"
        )
