# giftcards/admin.py

from django.contrib import admin

from giftcards.models import GiftCard


@admin.register(GiftCard)
class GiftCardAdmin(admin.ModelAdmin):
    list_display = ("code", "business", "balance", "original_amount", "is_active", "expires_at")
    list_filter = ("is_active", "business")
    search_fields = ("code",)
    readonly_fields = ("balance", "original_amount", "issued_at", "updated_at")
