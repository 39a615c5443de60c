"""
StockMovement model — Immutable ledger of quantity changes.
"""

import uuid

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from stockledger.models.enums import MovementType


class StockMovement(models.Model):
    """
    Immutable record of a signed quantity change.

    Rules:
    - NEVER update() or delete()
    - Corrections are new ADJUSTMENT rows
    - Both legs of a transfer share ``movement_group``

    Stock for a product is the sum of ``signed_qty`` over its rows.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    company_id = models.CharField(
        max_length=64,
        null=True,
        blank=True,
        db_index=True,
        verbose_name=_('Empresa'),
    )
    product_id = models.CharField(max_length=64, verbose_name=_('Produto'))
    type = models.CharField(
        max_length=20,
        choices=MovementType.choices,
        verbose_name=_('Tipo'),
    )
    signed_qty = models.DecimalField(
        max_digits=14,
        decimal_places=3,
        verbose_name=_('Quantidade'),
        help_text=_('Positivo = entrada, Negativo = saída'),
    )
    location_from = models.CharField(max_length=100, null=True, blank=True, verbose_name=_('Origem'))
    location_to = models.CharField(max_length=100, null=True, blank=True, verbose_name=_('Destino'))
    movement_group = models.UUIDField(
        null=True,
        blank=True,
        db_index=True,
        verbose_name=_('Grupo'),
        help_text=_('Vincula as duas pernas de uma transferência'),
    )
    reason = models.CharField(max_length=255, null=True, blank=True, verbose_name=_('Motivo'))
    related_sale_id = models.CharField(max_length=64, null=True, blank=True, verbose_name=_('Venda relacionada'))
    created_at = models.DateTimeField(default=timezone.now, db_index=True, verbose_name=_('Data/Hora'))

    class Meta:
        db_table = 'stock_movements'
        verbose_name = _('Movimento')
        verbose_name_plural = _('Movimentos')
        ordering = ['created_at']
        indexes = [
            models.Index(fields=['product_id', 'created_at'], name='stock_mov_product_created_idx'),
        ]

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError(
                "Movimentos são imutáveis. "
                "Para corrigir, registre um novo AJUSTE."
            )
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError(
            "Movimentos são imutáveis. "
            "Para estornar, registre um novo AJUSTE."
        )

    def __str__(self) -> str:
        signal = '+' if self.signed_qty > 0 else ''
        return f"{self.product_id} {self.type} {signal}{self.signed_qty}"
