"""
Stockledger Admin.

Provides views for day-to-day operation and production debugging:
- StockMovement: read-only ledger (movements are immutable)
- ProductStock: read-only balances from the product_stock view
- StockReservation: read-only open/released reservations
- Product: editable min/max thresholds
- ProductThresholdLog: read-only threshold history
- ReplenishmentOrder: editable, with audit log inline and CSV export action
"""

import logging

from django.contrib import admin
from django.http import HttpResponse
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from stockledger.models import (
    OrderStatus,
    Product,
    ProductStock,
    ProductThresholdLog,
    ReplenishmentOrder,
    ReplenishmentOrderLog,
    StockMovement,
    StockReservation,
)

logger = logging.getLogger(__name__)


class ReadOnlyAdminMixin:
    """Admin without add/change/delete permissions."""

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# =========================================================================
# LEDGER (read-only)
# =========================================================================

@admin.register(StockMovement)
class StockMovementAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """StockMovement admin — read-only. Corrections are new ADJUSTMENT rows."""

    list_display = ['created_at', 'product_id', 'type', 'signed_qty',
                    'location_from', 'location_to', 'reason']
    list_filter = ['type', 'created_at']
    search_fields = ['product_id', 'reason', 'related_sale_id', 'movement_group']
    date_hierarchy = 'created_at'
    ordering = ['-created_at']


@admin.register(ProductStock)
class ProductStockAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """ProductStock admin — read-only view of stock/reserved/available."""

    list_display = ['product_id', 'company_id', 'stock', 'reserved', 'available']
    search_fields = ['product_id']
    ordering = ['product_id', 'company_id']


@admin.register(StockReservation)
class StockReservationAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """StockReservation admin — read-only. Written by the sales side."""

    list_display = ['product_id', 'quantity', 'reference', 'created_at', 'released_at']
    list_filter = ['released_at']
    search_fields = ['product_id', 'reference']


# =========================================================================
# PRODUCTS
# =========================================================================

@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    """Product admin — thresholds are editable."""

    list_display = ['code', 'name', 'stock_min', 'stock_max', 'company_id']
    list_filter = ['company_id']
    search_fields = ['code', 'name']
    readonly_fields = ['created_at', 'updated_at']

    def save_model(self, request, obj, form, change):
        if change and {'stock_min', 'stock_max'} & set(form.changed_data):
            ProductThresholdLog.objects.create(
                product_id=obj.pk,
                company_id=obj.company_id,
                old_stock_min=form.initial.get('stock_min'),
                new_stock_min=obj.stock_min,
                old_stock_max=form.initial.get('stock_max'),
                new_stock_max=obj.stock_max,
                reason=_('Alterado via admin'),
            )
        super().save_model(request, obj, form, change)


@admin.register(ProductThresholdLog)
class ProductThresholdLogAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """Threshold history — read-only."""

    list_display = ['created_at', 'product_id', 'old_stock_min', 'new_stock_min',
                    'old_stock_max', 'new_stock_max', 'reason']
    search_fields = ['product_id', 'reason']
    date_hierarchy = 'created_at'


# =========================================================================
# REPLENISHMENT
# =========================================================================

class ReplenishmentOrderLogInline(ReadOnlyAdminMixin, admin.TabularInline):
    model = ReplenishmentOrderLog
    extra = 0
    fields = ['created_at', 'event', 'data']
    readonly_fields = ['created_at', 'event', 'data']


@admin.register(ReplenishmentOrder)
class ReplenishmentOrderAdmin(admin.ModelAdmin):
    """ReplenishmentOrder admin — status/items/notes editable."""

    list_display = ['id', 'status', 'items_count', 'created_at', 'updated_at', 'closed_at']
    list_filter = ['status', 'created_at']
    search_fields = ['notes']
    readonly_fields = ['company_id', 'created_at', 'updated_at', 'closed_at']
    inlines = [ReplenishmentOrderLogInline]
    actions = ['export_csv']

    def save_model(self, request, obj, form, change):
        changed = [f for f in form.changed_data if f in ('status', 'items', 'notes')]
        if change and 'status' in changed:
            if obj.status == OrderStatus.FECHADO and form.initial.get('status') != OrderStatus.FECHADO:
                obj.closed_at = timezone.now()
            elif obj.status != OrderStatus.FECHADO:
                obj.closed_at = None
        obj.updated_at = timezone.now()
        super().save_model(request, obj, form, change)
        ReplenishmentOrderLog.objects.create(
            order=obj,
            event='UPDATE' if change else 'CREATE',
            data={f: getattr(obj, f) for f in changed},
        )

    @admin.display(description=_('Itens'))
    def items_count(self, obj):
        return len(obj.items or [])

    @admin.action(description=_('Exportar pedido selecionado (CSV)'))
    def export_csv(self, request, queryset):
        from stockledger.protocols.records import ReplenishmentOrder as OrderRecord
        from stockledger.services.export import export_order

        chunks = []
        for order in queryset.order_by('created_at'):
            record = OrderRecord.from_row({
                'id': str(order.pk),
                'status': order.status,
                'items': order.items,
                'notes': order.notes,
            })
            chunks.append(export_order(record))
        logger.info("admin.export_csv: %d order(s)", len(chunks))

        response = HttpResponse(''.join(chunks), content_type='text/csv; charset=utf-8')
        response['Content-Disposition'] = 'attachment; filename="reposicao.csv"'
        return response
