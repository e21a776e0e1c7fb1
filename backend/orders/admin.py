from django.contrib import admin

from .models import Order, OrderItem


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    readonly_fields = ("menu_item_name", "quantity", "unit_price", "subtotal", "status")
    fields = ("menu_item_name", "quantity", "unit_price", "subtotal", "status")
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    """
    Read-mostly admin for orders. Money fields are owned by the services and
    are never edited here.
    """

    list_display = (
        "order_number",
        "table_name",
        "status",
        "subtotal",
        "discount_amount",
        "tax_amount",
        "total_amount",
        "created_at",
        "completed_at",
    )
    list_filter = ("status", "created_at")
    search_fields = ("order_number", "table_name")
    readonly_fields = (
        "order_number",
        "status",
        "subtotal",
        "discount_amount",
        "tax_amount",
        "tip_amount",
        "total_amount",
        "roundoff_adjustment_amt",
        "completed_at",
        "cancelled_at",
        "cancellation_reason",
        "created_at",
        "updated_at",
    )
    inlines = [OrderItemInline]
