"""
Typed records — the single deserialization boundary.

Store rows are plain dicts. Every component converts them with ``from_row``
right after the store call, so the rest of the code works with validated,
typed values only. ``from_row`` raises RowShapeError on malformed rows.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from stockledger.exceptions import RowShapeError
from stockledger.models.enums import OrderStatus

ZERO = Decimal('0')


def parse_decimal(value: Any, name: str = 'value') -> Decimal:
    """
    Coerce a store/caller value to a finite Decimal.

    Raises:
        RowShapeError: For booleans, non-numeric or non-finite values
    """
    if isinstance(value, bool) or value is None:
        raise RowShapeError(f"{name}: expected a number, got {value!r}")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise RowShapeError(f"{name}: expected a number, got {value!r}") from None
    if not result.is_finite():
        raise RowShapeError(f"{name}: expected a finite number, got {value!r}")
    return result


def _optional_decimal(row: Mapping[str, Any], key: str) -> Decimal:
    value = row.get(key)
    if value is None or value == '':
        return ZERO
    return parse_decimal(value, key)


def _text(value: Any) -> str | None:
    """Normalize ids/free text: None and blank strings become None."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _required_text(row: Mapping[str, Any], key: str) -> str:
    value = _text(row.get(key))
    if value is None:
        raise RowShapeError(f"{key}: required")
    return value


@dataclass(frozen=True)
class Movement:
    """One ledger row."""

    id: str
    product_id: str
    type: str
    signed_qty: Decimal
    company_id: str | None = None
    location_from: str | None = None
    location_to: str | None = None
    movement_group: str | None = None
    reason: str | None = None
    related_sale_id: str | None = None
    created_at: datetime | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Movement:
        # Legacy rows carry an unsigned ``quantity`` instead of ``signed_qty``
        raw_qty = row.get('signed_qty')
        if raw_qty is None:
            raw_qty = row.get('quantity')
        return cls(
            id=_required_text(row, 'id'),
            product_id=_required_text(row, 'product_id'),
            type=_required_text(row, 'type').upper(),
            signed_qty=parse_decimal(raw_qty, 'signed_qty'),
            company_id=_text(row.get('company_id')),
            location_from=_text(row.get('location_from')),
            location_to=_text(row.get('location_to')),
            movement_group=_text(row.get('movement_group')),
            reason=_text(row.get('reason')),
            related_sale_id=_text(row.get('related_sale_id')),
            created_at=row.get('created_at'),
        )


@dataclass(frozen=True)
class StockLevel:
    """
    Stock triple for one product.

    ``source`` is "view" when read from the aggregate view and "ledger" when
    folded from raw movements (reserved is always zero on that path).
    ``available`` is raw and may be negative; use ``display_available``
    for presentation.
    """

    product_id: str
    stock: Decimal = ZERO
    reserved: Decimal = ZERO
    available: Decimal = ZERO
    source: str = 'view'

    @classmethod
    def from_row(cls, row: Mapping[str, Any], source: str = 'view') -> StockLevel:
        stock = _optional_decimal(row, 'stock')
        reserved = _optional_decimal(row, 'reserved')
        if row.get('available') is None:
            available = stock - reserved
        else:
            available = parse_decimal(row['available'], 'available')
        return cls(
            product_id=_required_text(row, 'product_id'),
            stock=stock,
            reserved=reserved,
            available=available,
            source=source,
        )

    @classmethod
    def from_ledger(cls, product_id: str, stock: Decimal) -> StockLevel:
        return cls(product_id=product_id, stock=stock, reserved=ZERO, available=stock, source='ledger')

    @property
    def display_available(self) -> Decimal:
        return max(ZERO, self.available)


@dataclass(frozen=True)
class ProductThreshold:
    """Product identity plus replenishment thresholds."""

    product_id: str
    code: str
    name: str
    stock_min: Decimal = ZERO
    stock_max: Decimal = ZERO
    company_id: str | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> ProductThreshold:
        return cls(
            product_id=_required_text(row, 'id'),
            code=_text(row.get('code')) or '',
            name=_text(row.get('name')) or '',
            stock_min=_optional_decimal(row, 'stock_min'),
            stock_max=_optional_decimal(row, 'stock_max'),
            company_id=_text(row.get('company_id')),
        )


@dataclass(frozen=True)
class ReplenishmentItem:
    """Line item of a replenishment order."""

    product_id: str
    code: str
    name: str
    stock: Decimal
    stock_min: Decimal
    stock_max: Decimal
    order_suggested_qty: Decimal

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> ReplenishmentItem:
        if not isinstance(row, Mapping):
            raise RowShapeError(f"item: expected a mapping, got {type(row).__name__}")
        return cls(
            product_id=_required_text(row, 'product_id'),
            code=_text(row.get('code')) or '',
            name=_text(row.get('name')) or '',
            stock=_optional_decimal(row, 'stock'),
            stock_min=_optional_decimal(row, 'stock_min'),
            stock_max=_optional_decimal(row, 'stock_max'),
            order_suggested_qty=_optional_decimal(row, 'order_suggested_qty'),
        )

    def as_row(self) -> dict[str, Any]:
        return {
            'product_id': self.product_id,
            'code': self.code,
            'name': self.name,
            'stock': self.stock,
            'stock_min': self.stock_min,
            'stock_max': self.stock_max,
            'order_suggested_qty': self.order_suggested_qty,
        }


@dataclass(frozen=True)
class ReplenishmentOrder:
    """Replenishment order with its line items."""

    id: str
    status: str
    items: tuple[ReplenishmentItem, ...] = ()
    notes: str = ''
    company_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    closed_at: datetime | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> ReplenishmentOrder:
        status = _required_text(row, 'status')
        if status not in OrderStatus.values:
            raise RowShapeError(f"status: unknown value {status!r}")
        raw_items = row.get('items') or []
        if not isinstance(raw_items, (list, tuple)):
            raise RowShapeError("items: expected a list")
        return cls(
            id=_required_text(row, 'id'),
            status=status,
            items=tuple(ReplenishmentItem.from_row(item) for item in raw_items),
            notes=row.get('notes') or '',
            company_id=_text(row.get('company_id')),
            created_at=row.get('created_at'),
            updated_at=row.get('updated_at'),
            closed_at=row.get('closed_at'),
        )


@dataclass(frozen=True)
class OrderLogEntry:
    """Audit trail row of a replenishment order."""

    id: str
    order_id: str
    event: str
    data: Any = None
    created_at: datetime | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> OrderLogEntry:
        return cls(
            id=_required_text(row, 'id'),
            order_id=_required_text(row, 'order_id'),
            event=_required_text(row, 'event'),
            data=row.get('data'),
            created_at=row.get('created_at'),
        )


@dataclass(frozen=True)
class KardexLine:
    """Ledger row with the product's running balance after it."""

    movement: Movement
    balance: Decimal


@dataclass(frozen=True)
class Registration:
    """Outcome of a successful register call."""

    movements: tuple[Movement, ...] = field(default_factory=tuple)
    movement_group: str | None = None

    @property
    def movement_id(self) -> str:
        return self.movements[0].id

    @property
    def movement_ids(self) -> list[str]:
        return [m.id for m in self.movements]
