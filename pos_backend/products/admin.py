# products/admin.py

from django.contrib import admin

from products.models import InventoryItem, Product


class InventoryItemInline(admin.TabularInline):
    model = InventoryItem
    extra = 0
    fields = ("modification_values", "quantity")


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("name", "business", "price", "is_available", "created_at")
    list_filter = ("is_available", "business")
    search_fields = ("name",)
    inlines = [InventoryItemInline]


@admin.register(InventoryItem)
class InventoryItemAdmin(admin.ModelAdmin):
    list_display = ("id", "product", "modification_values", "quantity", "updated_at")
    search_fields = ("product__name",)
