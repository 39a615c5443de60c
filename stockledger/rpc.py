"""
RPC entry point for stock movement registration.

Callers outside Python (database RPC, HTTP handlers) send a flat payload and
get a flat result back; ledger errors never escape as exceptions.

Payload keys (the ``p_`` prefix is also accepted):
    product_id, qty, type, reason, location_from, location_to, related_sale_id

Result:
    {"ok": True, "movement_id": ..., "movement_ids": [...], "movement_group": ...}
    {"ok": False, "code": "INVALID_QUANTITY", "error": "Quantidade inválida"}
"""

import logging
from collections.abc import Mapping
from typing import Any

from stockledger.exceptions import LedgerError, PersistenceError
from stockledger.protocols.store import LedgerStore
from stockledger.services.registrar import MovementRegistrar

logger = logging.getLogger('stockledger')

PAYLOAD_KEYS = ('product_id', 'qty', 'type', 'reason', 'location_from', 'location_to', 'related_sale_id')


def _argument(payload: Mapping, key: str):
    if key in payload:
        return payload[key]
    return payload.get(f'p_{key}')


async def register_stock_movement(store: LedgerStore, payload: Mapping, *,
                                  company_id: str | None = None) -> dict[str, Any]:
    """
    Register one movement from an RPC payload.

    Returns:
        Result dict with ``ok``; failures carry ``code`` and ``error``, and
        partial transfers also ``committed``.
    """
    if not isinstance(payload, Mapping):
        return {'ok': False, 'code': 'INVALID_PAYLOAD', 'error': 'Payload inválido'}

    args = {key: _argument(payload, key) for key in PAYLOAD_KEYS}
    registrar = MovementRegistrar(store, company_id=company_id)
    try:
        registration = await registrar.register(
            args['product_id'],
            args['qty'],
            args['type'],
            reason=args['reason'],
            location_from=args['location_from'],
            location_to=args['location_to'],
            related_sale_id=args['related_sale_id'],
        )
    except LedgerError as e:
        logger.info(
            "rpc.register_stock_movement.rejected",
            extra={"code": e.code, "product": args['product_id']},
        )
        result = {'ok': False, 'code': e.code, 'error': e.message}
        if isinstance(e, PersistenceError) and e.committed:
            result['committed'] = list(e.committed)
            result['movement_group'] = e.data.get('movement_group')
        return result

    return {
        'ok': True,
        'movement_id': registration.movement_id,
        'movement_ids': registration.movement_ids,
        'movement_group': registration.movement_group,
    }
