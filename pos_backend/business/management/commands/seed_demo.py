# business/management/commands/seed_demo.py

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from business.models import Business
from giftcards.models import GiftCard
from giftcards.services.gift_card_service import issue_gift_card
from permissions.roles import ROLE_CASHIER, ROLE_MANAGER, ROLE_OWNER, ROLE_STAFF
from pricing.models import Discount, Tax
from products.models import InventoryItem, Product


@dataclass(frozen=True)
class SeedUser:
    label: str
    role: str
    email: str
    name: str


USER_SEEDS = [
    SeedUser("Owner", ROLE_OWNER, "owner@example.com", "Olive Owner"),
    SeedUser("Manager", ROLE_MANAGER, "manager@example.com", "Morgan Manager"),
    SeedUser("Cashier", ROLE_CASHIER, "cashier@example.com", "Casey Cashier"),
    SeedUser("Staff", ROLE_STAFF, "staff@example.com", "Sam Staff"),
]

# name, price, stock (None = untracked)
PRODUCT_SPECS = [
    ("Haircut", Decimal("25.00"), None),
    ("Beard Trim", Decimal("12.50"), None),
    ("Shampoo 250ml", Decimal("9.99"), 40),
    ("Styling Wax", Decimal("14.00"), 25),
]

DEMO_GIFT_CARD_CODE = "DEMO-0000-0001"


class Command(BaseCommand):
    help = "Seed a demo business with staff, products, tax, discount and a gift card (idempotent)."

    def add_arguments(self, parser):
        parser.add_argument(
            "--business-name",
            type=str,
            default="Demo Barbershop",
            help="Business name (default: Demo Barbershop)",
        )
        parser.add_argument(
            "--password",
            type=str,
            default="Pass1234!",
            help="Password for seeded users (default: Pass1234!)",
        )
        parser.add_argument(
            "--force-password",
            action="store_true",
            help="Reset password for existing seeded users too.",
        )

    @transaction.atomic
    def handle(self, *args, **options):
        name = (options.get("business_name") or "").strip()
        password = options.get("password") or ""
        force_password = bool(options.get("force_password"))

        if not name:
            raise CommandError("--business-name cannot be blank.")
        if len(password) < 6:
            raise CommandError("--password must be at least 6 characters.")

        business, created = Business.objects.get_or_create(
            name=name,
            defaults={"description": "Seeded demo business", "contact_email": "hello@example.com"},
        )
        self.stdout.write(f"{'created' if created else 'exists '}: business '{business.name}'")

        User = get_user_model()
        for seed in USER_SEEDS:
            user = User.objects.filter(email=seed.email).first()
            if user is None:
                User.objects.create_user(
                    email=seed.email,
                    password=password,
                    business=business,
                    role=seed.role,
                    name=seed.name,
                )
                self.stdout.write(f"created: {seed.label} ({seed.role}) -> {seed.email}")
                continue

            if user.business_id != business.id:
                raise CommandError(f"{seed.email} already belongs to another business.")

            if force_password:
                user.set_password(password)
                user.save(update_fields=["password"])
            self.stdout.write(f"exists : {seed.label} ({seed.role}) -> {seed.email}")

        for product_name, price, stock in PRODUCT_SPECS:
            product, created = Product.objects.get_or_create(
                business=business,
                name=product_name,
                defaults={"price": price},
            )
            if created and stock is not None:
                InventoryItem.objects.create(product=product, quantity=stock)

        Tax.objects.get_or_create(business=business, name="Sales Tax", defaults={"rate": Decimal("8.000")})
        Discount.objects.get_or_create(
            business=business,
            name="Loyalty 10%",
            defaults={
                "discount_type": Discount.TYPE_PERCENTAGE,
                "value": Decimal("10.00"),
                "is_active": False,
            },
        )

        if not GiftCard.objects.filter(business=business, code=DEMO_GIFT_CARD_CODE).exists():
            issue_gift_card(business=business, original_amount=Decimal("50.00"), code=DEMO_GIFT_CARD_CODE)

        self.stdout.write("\n--- Summary ---")
        self.stdout.write(f"Products: {business.products.count()}")
        self.stdout.write(f"Staff: {business.employees.count()}")
        self.stdout.write(f"Gift card: {DEMO_GIFT_CARD_CODE}")
        self.stdout.write("\nRun example:")
        self.stdout.write("  python manage.py seed_demo --business-name 'Demo Barbershop' --password Pass1234!")
