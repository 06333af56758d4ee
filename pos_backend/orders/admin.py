# orders/admin.py

from django.contrib import admin

from orders.models import Order, OrderItem


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    fields = ("product", "quantity", "unit_price", "notes")
    readonly_fields = ("unit_price",)


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("order_no", "business", "status", "subtotal_amount", "discount_amount", "tax_amount", "created_at")
    list_filter = ("status", "business")
    search_fields = ("order_no",)
    # status moves through the order services only
    readonly_fields = ("order_no", "status", "subtotal_amount", "discount_amount", "tax_amount")
    inlines = [OrderItemInline]
