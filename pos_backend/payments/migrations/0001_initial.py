import uuid
from decimal import Decimal

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("giftcards", "0001_initial"),
        ("orders", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Payment",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("amount", models.DecimalField(decimal_places=2, max_digits=12)),
                (
                    "method",
                    models.CharField(
                        choices=[
                            ("cash", "Cash"),
                            ("card", "Card"),
                            ("gift_card", "Gift card"),
                        ],
                        max_length=16,
                    ),
                ),
                (
                    "cash_received",
                    models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True),
                ),
                (
                    "change_due",
                    models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True),
                ),
                ("card_intent_id", models.CharField(blank=True, max_length=255, null=True)),
                ("card_charge_id", models.CharField(blank=True, max_length=255, null=True)),
                ("gift_card_code", models.CharField(blank=True, max_length=32, null=True)),
                (
                    "split_group",
                    models.UUIDField(
                        blank=True,
                        db_index=True,
                        help_text="Shared by every entry of one split payment request",
                        null=True,
                    ),
                ),
                ("paid_at", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="payments_taken",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "gift_card",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payments",
                        to="giftcards.giftcard",
                    ),
                ),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payments",
                        to="orders.order",
                    ),
                ),
            ],
            options={
                "ordering": ["-paid_at"],
                "indexes": [
                    models.Index(fields=["order", "paid_at"], name="payment_order_paid_idx"),
                    models.Index(fields=["method"], name="payment_method_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(amount__gt=Decimal("0.00")),
                        name="chk_payment_amount_gt_zero",
                    ),
                    models.UniqueConstraint(
                        condition=models.Q(card_intent_id__isnull=False),
                        fields=("order", "card_intent_id"),
                        name="uniq_payment_card_intent_per_order",
                    ),
                    models.UniqueConstraint(
                        condition=models.Q(gift_card_code__isnull=False),
                        fields=("order", "gift_card_code"),
                        name="uniq_payment_gift_card_per_order",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="PaymentRefund",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("refund_group", models.UUIDField(db_index=True)),
                ("amount", models.DecimalField(decimal_places=2, max_digits=12)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("succeeded", "Succeeded"),
                            ("pending", "Pending"),
                            ("failed", "Failed"),
                        ],
                        max_length=16,
                    ),
                ),
                ("refund_reference", models.CharField(blank=True, max_length=255)),
                ("reason", models.CharField(blank=True, max_length=255)),
                ("error_message", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="refunds",
                        to="orders.order",
                    ),
                ),
                (
                    "payment",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="refunds",
                        to="payments.payment",
                    ),
                ),
                (
                    "refunded_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="refunds_processed",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["order", "created_at"], name="refund_order_created_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(amount__gt=Decimal("0.00")),
                        name="chk_refund_amount_gt_zero",
                    ),
                ],
            },
        ),
    ]
