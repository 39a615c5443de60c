"""
Enums for Stockledger models.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class MovementType(models.TextChoices):
    """
    Kind of ledger movement.

    The stored sign encodes direction; the type says why stock moved.
    ADJUSTMENT is the only type whose caller supplies the sign.
    """
    IN = 'IN', _('Entrada')
    OUT = 'OUT', _('Saída')
    ADJUSTMENT = 'ADJUSTMENT', _('Ajuste')
    TRANSFER = 'TRANSFER', _('Transferência')
    RETURN = 'RETURN', _('Devolução')      # Restocking from a sale
    EXCHANGE = 'EXCHANGE', _('Troca')      # Replacement item leaving stock


class OrderStatus(models.TextChoices):
    """Replenishment order lifecycle status."""
    ABERTO = 'ABERTO', _('Aberto')
    EM_PROCESSO = 'EM_PROCESSO', _('Em processo')
    FECHADO = 'FECHADO', _('Fechado')
