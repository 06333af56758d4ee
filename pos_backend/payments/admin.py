# payments/admin.py

from django.contrib import admin

from payments.models import Payment, PaymentRefund


class ReadOnlyAdmin(admin.ModelAdmin):
    """Payments and refunds are append-only; the admin only shows them."""

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Payment)
class PaymentAdmin(ReadOnlyAdmin):
    list_display = ("id", "order", "method", "amount", "change_due", "paid_at")
    list_filter = ("method",)
    search_fields = ("order__order_no", "card_intent_id", "gift_card_code")


@admin.register(PaymentRefund)
class PaymentRefundAdmin(ReadOnlyAdmin):
    list_display = ("id", "order", "payment", "amount", "status", "created_at")
    list_filter = ("status",)
    search_fields = ("order__order_no", "refund_reference")
