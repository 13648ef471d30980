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
            name="Order",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("listing_id", models.CharField(max_length=64)),
                ("quantity", models.DecimalField(decimal_places=2, max_digits=12)),
                ("total_amount", models.DecimalField(decimal_places=2, max_digits=12)),
                ("pickup_location", models.TextField(blank=True, default="")),
                ("pickup_region", models.CharField(blank=True, default="", max_length=100)),
                ("pickup_latitude", models.DecimalField(blank=True, decimal_places=6, max_digits=9, null=True)),
                ("pickup_longitude", models.DecimalField(blank=True, decimal_places=6, max_digits=9, null=True)),
                ("delivery_location", models.TextField()),
                ("delivery_region", models.CharField(blank=True, default="", max_length=100)),
                ("delivery_latitude", models.DecimalField(blank=True, decimal_places=6, max_digits=9, null=True)),
                ("delivery_longitude", models.DecimalField(blank=True, decimal_places=6, max_digits=9, null=True)),
                ("cargo_weight_kg", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=10)),
                ("cargo_volume_m3", models.DecimalField(decimal_places=3, default=Decimal("0"), max_digits=10)),
                ("uses_transport", models.BooleanField(default=True)),
                ("transport_cost", models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ("status", models.CharField(
                    choices=[
                        ("pending", "Pending"),
                        ("payment_pending", "Payment Pending"),
                        ("paid", "Paid"),
                        ("assigned", "Transport Assigned"),
                        ("in_transit", "In Transit"),
                        ("delivered", "Delivered"),
                        ("confirmed", "Confirmed"),
                        ("cancelled", "Cancelled"),
                        ("disputed", "Disputed"),
                    ],
                    default="pending",
                    max_length=20,
                )),
                ("notes", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("cancellation_reason", models.TextField(blank=True, null=True)),
                ("buyer", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="purchases",
                    to=settings.AUTH_USER_MODEL,
                )),
                ("farmer", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="sales",
                    to=settings.AUTH_USER_MODEL,
                )),
                ("transporter", models.ForeignKey(
                    blank=True,
                    null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name="transported_orders",
                    to=settings.AUTH_USER_MODEL,
                )),
            ],
            options={
                "db_table": "orders",
                "ordering": ["-created_at"],
            },
        ),
    ]
