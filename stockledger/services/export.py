"""
Delimited-text export of replenishment orders and ledger rows.

Pure functions: no I/O. Fields containing the separator, quotes or line
breaks are quoted, so a CSV reader gets back exactly one row per item.
"""

import csv
import io
from collections.abc import Iterable
from datetime import datetime
from decimal import Decimal

from stockledger.conf import stockledger_settings
from stockledger.protocols.records import Movement, ReplenishmentOrder

ORDER_HEADER = ('Codigo', 'Nome', 'Estoque', 'Min', 'Max', 'Sugerido')
MOVEMENTS_HEADER = ('Data', 'Produto', 'Tipo', 'Quantidade', 'Origem', 'Destino', 'Grupo', 'Motivo')


def format_cell(value) -> str:
    """Deterministic text for one cell (normalized decimals, ISO datetimes)."""
    if value is None:
        return ''
    if isinstance(value, Decimal):
        if value == 0:
            return '0'
        return format(value.normalize(), 'f')
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def _render(header, rows, separator: str | None) -> str:
    buffer = io.StringIO()
    writer = csv.writer(
        buffer,
        delimiter=separator or stockledger_settings.EXPORT_SEPARATOR,
        lineterminator='\n',
        quoting=csv.QUOTE_MINIMAL,
    )
    writer.writerow(header)
    for row in rows:
        writer.writerow([format_cell(value) for value in row])
    return buffer.getvalue()


def export_order(order: ReplenishmentOrder, *, separator: str | None = None) -> str:
    """
    Render an order's items as delimited text.

    Header ``Codigo;Nome;Estoque;Min;Max;Sugerido`` followed by one row per
    item, in item order.
    """
    return _render(
        ORDER_HEADER,
        (
            (item.code, item.name, item.stock, item.stock_min,
             item.stock_max, item.order_suggested_qty)
            for item in order.items
        ),
        separator,
    )


def export_movements(movements: Iterable[Movement], *, separator: str | None = None) -> str:
    """Render ledger rows (e.g. a kardex) as delimited text."""
    return _render(
        MOVEMENTS_HEADER,
        (
            (m.created_at, m.product_id, m.type, m.signed_qty,
             m.location_from, m.location_to, m.movement_group, m.reason)
            for m in movements
        ),
        separator,
    )
