# business/models/business.py

import uuid

from django.db import models


class Business(models.Model):
    """
    Represents one tenant (a shop, salon, restaurant...).

    Every order, product, rule and gift card is scoped to exactly one Business.
    Receipt header fields (name, address, phone, email) are read from here.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)

    address = models.TextField(blank=True)
    phone = models.CharField(max_length=50, blank=True)
    contact_email = models.EmailField(blank=True)

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        verbose_name_plural = "businesses"

    def __str__(self):
        return self.name
