"""
Movement registrar — the only writer of the stock ledger.

Validates input before any I/O, assigns the stored sign from the movement
type, and writes transfers as a linked pair that commits all-or-nothing.
"""

import asyncio
import logging
import uuid
from decimal import Decimal

from django.utils import timezone

from stockledger.exceptions import PartialWriteError, PersistenceError, RowShapeError, ValidationError
from stockledger.models.enums import MovementType
from stockledger.protocols.records import Movement, Registration, parse_decimal
from stockledger.protocols.store import LEDGER, LedgerStore

logger = logging.getLogger('stockledger')

POSITIVE_TYPES = frozenset({MovementType.IN.value, MovementType.RETURN.value})
NEGATIVE_TYPES = frozenset({MovementType.OUT.value, MovementType.EXCHANGE.value})

# Shape of stock_movements.signed_qty (max_digits=14, decimal_places=3)
QTY_DECIMAL_PLACES = 3
QTY_MAX_DIGITS = 14
QTY_LIMIT = Decimal(10) ** (QTY_MAX_DIGITS - QTY_DECIMAL_PLACES)
QTY_STEP = Decimal(1).scaleb(-QTY_DECIMAL_PLACES)


def fits_ledger_column(quantity: Decimal) -> bool:
    """True when ``quantity`` is stored exactly by the ledger's quantity column."""
    if abs(quantity) >= QTY_LIMIT:
        return False
    return quantity == quantity.quantize(QTY_STEP)


def _clean(value) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class MovementRegistrar:
    """
    Validates and appends ledger movements.

    Callers pass a positive magnitude for every type except ADJUSTMENT,
    which takes the signed delta directly.

    Args:
        store: LedgerStore handle
        company_id: Tenant stamped on every written row
    """

    def __init__(self, store: LedgerStore, *, company_id: str | None = None):
        self.store = store
        self.company_id = company_id

    async def register(self, product_id, qty, type, *, reason=None,
                       location_from=None, location_to=None,
                       related_sale_id=None) -> Registration:
        """
        Append one movement (two for TRANSFER).

        Args:
            product_id: Product id (required)
            qty: Positive magnitude; signed delta for ADJUSTMENT
            type: One of MovementType
            reason: Free-text audit note
            location_from: Source location (required for TRANSFER)
            location_to: Destination location (required for TRANSFER)
            related_sale_id: Originating sale for returns/exchanges

        Returns:
            Registration with the written movements

        Raises:
            ValidationError: Bad input; nothing was written
            PersistenceError: Store failure; nothing was written
            PartialWriteError: Only one transfer leg was written
        """
        rows = self.build_rows(
            product_id, qty, type,
            reason=reason,
            location_from=location_from,
            location_to=location_to,
            related_sale_id=related_sale_id,
        )
        # Caller cancellation must not split a transfer pair
        write = asyncio.ensure_future(self._write(rows))
        try:
            stored = await asyncio.shield(write)
        except asyncio.CancelledError:
            write.add_done_callback(self._report_detached_write)
            raise
        registration = Registration(
            movements=tuple(Movement.from_row(row) for row in stored),
            movement_group=rows[0].get('movement_group'),
        )
        logger.info(
            "stock.transfer" if len(rows) > 1 else "stock.register",
            extra={
                "product": rows[0]['product_id'],
                "type": rows[0]['type'],
                "qty": str(rows[-1]['signed_qty']),
                "movement_ids": registration.movement_ids,
                "movement_group": registration.movement_group,
            },
        )
        return registration

    def build_rows(self, product_id, qty, type, *, reason=None,
                   location_from=None, location_to=None,
                   related_sale_id=None) -> list[dict]:
        """
        Validate input and build the ledger rows to write.

        Pure: no I/O. Raises ValidationError on bad input.
        """
        product_id = _clean(product_id)
        if product_id is None:
            raise ValidationError('PRODUCT_REQUIRED')

        movement_type = _clean(type)
        movement_type = movement_type.upper() if movement_type else None
        if movement_type not in MovementType.values:
            raise ValidationError('INVALID_TYPE', type=type)

        try:
            quantity = parse_decimal(qty, 'qty')
        except RowShapeError:
            raise ValidationError('INVALID_QUANTITY', requested=qty) from None
        if not fits_ledger_column(quantity):
            raise ValidationError(
                'INVALID_QUANTITY',
                f"Quantidade fora do formato aceito "
                f"({QTY_MAX_DIGITS - QTY_DECIMAL_PLACES} dígitos, {QTY_DECIMAL_PLACES} casas decimais)",
                requested=qty,
            )

        if movement_type == MovementType.ADJUSTMENT:
            if quantity == 0:
                raise ValidationError('INVALID_QUANTITY', requested=qty)
        elif quantity <= 0:
            raise ValidationError('INVALID_QUANTITY', requested=qty)

        location_from = _clean(location_from)
        location_to = _clean(location_to)
        base = {
            'product_id': product_id,
            'company_id': self.company_id,
            'type': movement_type,
            'location_from': location_from,
            'location_to': location_to,
            'reason': _clean(reason),
            'related_sale_id': _clean(related_sale_id),
            'created_at': timezone.now(),
        }

        if movement_type == MovementType.TRANSFER:
            if location_from is None or location_to is None:
                raise ValidationError(
                    'LOCATION_REQUIRED',
                    location_from=location_from,
                    location_to=location_to,
                )
            if location_from == location_to:
                raise ValidationError('SAME_LOCATION', location=location_from)
            group = str(uuid.uuid4())
            return [
                {**base, 'id': str(uuid.uuid4()), 'movement_group': group, 'signed_qty': -quantity},
                {**base, 'id': str(uuid.uuid4()), 'movement_group': group, 'signed_qty': quantity},
            ]

        return [{**base, 'id': str(uuid.uuid4()), 'movement_group': None,
                 'signed_qty': self.signed(movement_type, quantity)}]

    @staticmethod
    def signed(movement_type: str, quantity: Decimal) -> Decimal:
        """Stored sign for a validated type/quantity."""
        if movement_type in POSITIVE_TYPES:
            return abs(quantity)
        if movement_type in NEGATIVE_TYPES:
            return -abs(quantity)
        return quantity

    @staticmethod
    def _report_detached_write(write: asyncio.Future) -> None:
        """Outcome of a write that kept running after its caller was cancelled."""
        if write.cancelled():
            return
        exc = write.exception()
        if exc is None:
            stored = write.result()
            logger.info(
                "stock.register.detached",
                extra={"movement_ids": [str(row['id']) for row in stored]},
            )
            return
        data = exc.data if isinstance(exc, PersistenceError) else {}
        logger.error(
            "stock.register.detached_failure",
            extra={
                "code": getattr(exc, 'code', type(exc).__name__),
                "error": str(exc),
                "product": data.get('product'),
                "movement_group": data.get('movement_group'),
                "committed": list(data.get('committed', ())),
            },
        )

    async def _write(self, rows: list[dict]) -> list[dict]:
        if len(rows) == 1 or self.store.supports_transactions:
            try:
                return await self.store.insert(LEDGER, rows)
            except PersistenceError as exc:
                raise PersistenceError(
                    'WRITE_FAILED',
                    f"Falha ao gravar movimento: {exc.message}",
                    product=rows[0]['product_id'],
                    committed=(),
                ) from exc

        # Store without multi-row atomicity: write legs in order and report
        # exactly what was committed if a later leg fails.
        committed = []
        for row in rows:
            try:
                committed.extend(await self.store.insert(LEDGER, [row]))
            except PersistenceError as exc:
                ids = tuple(str(r['id']) for r in committed)
                if ids:
                    logger.error(
                        "stock.transfer.partial",
                        extra={
                            "product": row['product_id'],
                            "movement_group": row.get('movement_group'),
                            "committed": list(ids),
                        },
                    )
                    raise PartialWriteError(
                        'PARTIAL_TRANSFER',
                        product=row['product_id'],
                        movement_group=row.get('movement_group'),
                        committed=ids,
                    ) from exc
                raise PersistenceError(
                    'WRITE_FAILED',
                    f"Falha ao gravar movimento: {exc.message}",
                    product=row['product_id'],
                    committed=(),
                ) from exc
        return committed
