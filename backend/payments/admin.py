from django.contrib import admin

from .models import Payment, PaymentAuditLog, PaymentMethod, SplitBill, SplitBillItem


@admin.register(PaymentMethod)
class PaymentMethodAdmin(admin.ModelAdmin):
    list_display = ("name", "display_name", "is_active", "requires_card_info", "requires_card_present")
    list_filter = ("is_active",)
    search_fields = ("name", "display_name")


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    """
    Ledger rows are append-only; status changes go through the payment
    service so the order is re-derived in the same transaction.
    """

    list_display = (
        "id",
        "order",
        "payment_method",
        "status",
        "amount",
        "tip_amount",
        "disc_amount",
        "roundoff_adjustment_amt",
        "created_at",
    )
    list_filter = ("status", "payment_method", "created_at")
    search_fields = ("id", "order__order_number", "reference_number")

    def get_readonly_fields(self, request, obj=None):
        return [field.name for field in self.model._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


class SplitBillItemInline(admin.TabularInline):
    model = SplitBillItem
    extra = 0
    readonly_fields = ("order_item", "quantity", "amount")
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(SplitBill)
class SplitBillAdmin(admin.ModelAdmin):
    list_display = ("id", "order", "status", "amount", "tax_amount", "created_at")
    list_filter = ("status",)
    readonly_fields = ("order", "status", "amount", "tax_amount", "settled_at", "voided_at", "created_at")
    inlines = [SplitBillItemInline]


@admin.register(PaymentAuditLog)
class PaymentAuditLogAdmin(admin.ModelAdmin):
    list_display = ("created_at", "action", "order", "payment", "from_status", "to_status", "amount", "actor_name")
    list_filter = ("action", "created_at")
    search_fields = ("order__order_number", "actor_name", "reason")

    def get_readonly_fields(self, request, obj=None):
        return [field.name for field in self.model._meta.fields]

    def has_add_permission(self, request):
        return False
