"""
Exceptions for Stockledger.

All errors are LedgerError subclasses with a structured code for programmatic
handling. The aggregation fallback is signalled with a warning, not an error.
"""

from decimal import Decimal
from typing import Any


class LedgerError(Exception):
    """
    Structured exception for ledger operations.

    Usage:
        try:
            await registrar.register('P-1', 5, 'TRANSFER', location_from='A')
        except ValidationError as e:
            if e.code == 'LOCATION_REQUIRED':
                print(e.message)

    Attributes:
        code: Error code for programmatic handling
        message: Human-readable message
        data: Additional context data
    """

    _default_messages: dict[str, str] = {}

    def __init__(self, code: str, message: str | None = None, **data):
        self.code = code
        self.message = message or self._default_messages.get(code, code)
        self.data = data
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.code!r}, {self.message!r})"

    def as_dict(self) -> dict[str, Any]:
        """Serialize to dict (useful for APIs)."""
        return {
            'code': self.code,
            'message': self.message,
            'data': {
                k: str(v) if isinstance(v, Decimal) else v
                for k, v in self.data.items()
            }
        }


class ValidationError(LedgerError):
    """Caller input failed a precondition. Always raised before any write."""

    _default_messages = {
        'PRODUCT_REQUIRED': 'Produto é obrigatório',
        'INVALID_QUANTITY': 'Quantidade inválida',
        'INVALID_TYPE': 'Tipo de movimento inválido',
        'LOCATION_REQUIRED': 'Transferência exige origem e destino',
        'SAME_LOCATION': 'Origem e destino devem ser diferentes',
        'INVALID_STATUS': 'Status inválido',
        'INVALID_TRANSITION': 'Transição de status não permitida',
        'INVALID_PATCH': 'Alteração inválida para o pedido',
        'INVALID_ITEMS': 'Itens do pedido inválidos',
        'INVALID_THRESHOLD': 'Limites de estoque inválidos',
    }


class NotFoundError(LedgerError):
    """Referenced row does not exist in the store."""

    _default_messages = {
        'ORDER_NOT_FOUND': 'Pedido de reposição não encontrado',
        'PRODUCT_NOT_FOUND': 'Produto não encontrado',
    }


class PersistenceError(LedgerError):
    """
    The backing store rejected or failed a read/write.

    ``committed`` lists the ledger ids that were durably written before the
    failure (empty means nothing happened).
    """

    _default_messages = {
        'STORE_FAILURE': 'Falha no armazenamento',
        'WRITE_FAILED': 'Falha ao gravar movimento',
        'UNKNOWN_RELATION': 'Relação desconhecida',
        'IMMUTABLE_RELATION': 'Movimentos são imutáveis',
        'PARTIAL_TRANSFER': 'Transferência gravada parcialmente',
    }

    @property
    def committed(self) -> tuple:
        """Shortcut for data['committed']."""
        return tuple(self.data.get('committed', ()))


class PartialWriteError(PersistenceError):
    """
    One leg of a transfer pair was written and the other failed.

    The caller must reconcile, e.g. with a compensating ADJUSTMENT.
    """


class AuditLogFailure(LedgerError):
    """Best-effort audit log append failed. Never blocks the mutation."""

    _default_messages = {
        'AUDIT_LOG_FAILED': 'Falha ao registrar log de auditoria',
    }


class RowShapeError(ValueError):
    """A store row does not have the shape of the expected record."""


class AggregationFallbackWarning(UserWarning):
    """
    The aggregate view was unavailable; stock was folded from the ledger.

    Reserved quantities are reported as zero on that path, so available
    quantities may be overstated.
    """
