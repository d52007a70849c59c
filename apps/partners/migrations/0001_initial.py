import django.db.models.deletion
from decimal import Decimal

from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Partner",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("is_individual", models.BooleanField(default=True)),
                ("display_name", models.CharField(max_length=255)),
                ("contact_email", models.EmailField(max_length=254, unique=True)),
                ("contact_phone", models.CharField(max_length=20)),
                (
                    "status",
                    models.CharField(
                        choices=[("active", "Active"), ("pending", "Pending review"), ("suspended", "Suspended")],
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("account_verified", models.BooleanField(default=False)),
                ("total_earnings", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("pending_payouts", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                (
                    "payout_method",
                    models.CharField(
                        choices=[("bank_transfer", "Bank transfer"), ("paypal", "PayPal"), ("crypto", "Crypto")],
                        default="bank_transfer",
                        max_length=20,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "user",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="partner_profile",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Partner",
                "verbose_name_plural": "Partners",
                "ordering": ["-created_at"],
                "indexes": [models.Index(fields=["status", "account_verified"], name="partner_status_verified_idx")],
            },
        ),
        migrations.CreateModel(
            name="PartnerActionLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("action", models.CharField(max_length=255)),
                ("idempotency_key", models.CharField(blank=True, max_length=100, null=True, unique=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "partner",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="action_logs",
                        to="partners.partner",
                    ),
                ),
            ],
            options={
                "verbose_name": "Partner action",
                "verbose_name_plural": "Partner actions",
                "ordering": ["created_at", "id"],
            },
        ),
    ]
