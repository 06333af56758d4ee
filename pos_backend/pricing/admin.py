# pricing/admin.py

from django.contrib import admin

from pricing.models import Discount, Tax


@admin.register(Tax)
class TaxAdmin(admin.ModelAdmin):
    list_display = ("name", "business", "rate", "is_active", "effective_from", "effective_to")
    list_filter = ("is_active", "business")
    search_fields = ("name",)


@admin.register(Discount)
class DiscountAdmin(admin.ModelAdmin):
    list_display = ("name", "business", "discount_type", "value", "is_active", "valid_from", "valid_to")
    list_filter = ("discount_type", "is_active", "business")
    search_fields = ("name",)
