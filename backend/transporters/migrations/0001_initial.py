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
            name="TransporterProfile",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("vehicle_number", models.CharField(max_length=20, unique=True)),
                ("vehicle_type", models.CharField(blank=True, default="", max_length=30)),
                ("vehicle_capacity_kg", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=10)),
                ("base_location", models.CharField(blank=True, default="", max_length=200)),
                ("service_areas", models.JSONField(blank=True, default=list)),
                ("rating", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=3)),
                ("completed_deliveries", models.PositiveIntegerField(default=0)),
                ("on_time_delivery_rate", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=5)),
                ("platform_score", models.IntegerField(default=0)),
                ("status", models.CharField(
                    choices=[("available", "Available"), ("busy", "Busy"), ("offline", "Offline")],
                    default="available",
                    max_length=20,
                )),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("user", models.OneToOneField(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="transporter_profile",
                    to=settings.AUTH_USER_MODEL,
                )),
            ],
            options={
                "db_table": "transporter_profiles",
            },
        ),
    ]
