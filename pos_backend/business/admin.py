# business/admin.py

from django.contrib import admin

from business.models import Business


@admin.register(Business)
class BusinessAdmin(admin.ModelAdmin):
    list_display = ("name", "phone", "contact_email", "is_active", "created_at")
    search_fields = ("name", "contact_email")
    list_filter = ("is_active",)
