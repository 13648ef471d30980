import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("orders", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="TransportCascade",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("state", models.CharField(
                    choices=[
                        ("awaiting_setup", "Awaiting Setup"),
                        ("tier1_active", "Tier 1 Active"),
                        ("tier2_active", "Tier 2 Active"),
                        ("tier3_active", "Tier 3 Active"),
                        ("resolved_accepted", "Resolved - Accepted"),
                        ("resolved_exhausted", "Resolved - Exhausted"),
                        ("cancelled", "Cancelled"),
                    ],
                    default="awaiting_setup",
                    max_length=20,
                )),
                ("version", models.PositiveIntegerField(default=0)),
                ("proposed_fee", models.DecimalField(decimal_places=2, max_digits=10)),
                ("minimum_fee", models.DecimalField(decimal_places=2, max_digits=10)),
                ("distance_km", models.DecimalField(blank=True, decimal_places=2, max_digits=8, null=True)),
                ("pickup_location", models.TextField()),
                ("delivery_location", models.TextField()),
                ("window_seconds", models.PositiveIntegerField()),
                ("sent_to_primary_at", models.DateTimeField(blank=True, null=True)),
                ("sent_to_secondary_at", models.DateTimeField(blank=True, null=True)),
                ("sent_to_tertiary_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("resolved_at", models.DateTimeField(blank=True, null=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("farmer", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="transport_cascades",
                    to=settings.AUTH_USER_MODEL,
                )),
                ("order", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="transport_cascades",
                    to="orders.order",
                )),
            ],
            options={
                "db_table": "transport_cascades",
                "ordering": ["-created_at"],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(state__in=["awaiting_setup", "tier1_active", "tier2_active", "tier3_active"]),
                        fields=("order",),
                        name="unique_open_cascade_per_order",
                    ),
                    models.UniqueConstraint(
                        condition=models.Q(state="resolved_accepted"),
                        fields=("order",),
                        name="unique_accepted_cascade_per_order",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="TransportOffer",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("tier", models.CharField(
                    choices=[("primary", "Primary"), ("secondary", "Secondary"), ("tertiary", "Tertiary")],
                    max_length=10,
                )),
                ("tier_rank", models.PositiveSmallIntegerField()),
                ("pickup_location", models.TextField()),
                ("delivery_location", models.TextField()),
                ("proposed_fee", models.DecimalField(decimal_places=2, max_digits=10)),
                ("status", models.CharField(
                    choices=[
                        ("pending", "Pending"),
                        ("accepted", "Accepted"),
                        ("declined", "Declined"),
                        ("countered", "Countered"),
                        ("expired", "Expired"),
                        ("withdrawn", "Withdrawn"),
                    ],
                    default="pending",
                    max_length=20,
                )),
                ("is_active", models.BooleanField(default=False)),
                ("sent_at", models.DateTimeField(blank=True, null=True)),
                ("responded_at", models.DateTimeField(blank=True, null=True)),
                ("decline_reason", models.TextField(blank=True, null=True)),
                ("counter_fee", models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ("countered_at", models.DateTimeField(blank=True, null=True)),
                ("agreed_fee", models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("cascade", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="offers",
                    to="transport.transportcascade",
                )),
                ("order", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="transport_offers",
                    to="orders.order",
                )),
                ("transporter", models.ForeignKey(
                    limit_choices_to={"role": "transporter"},
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="transport_offers",
                    to=settings.AUTH_USER_MODEL,
                )),
            ],
            options={
                "db_table": "transport_offers",
                "ordering": ["tier_rank"],
                "constraints": [
                    models.UniqueConstraint(fields=("cascade", "transporter"), name="unique_cascade_transporter"),
                    models.UniqueConstraint(fields=("cascade", "tier"), name="unique_cascade_tier"),
                    models.UniqueConstraint(
                        condition=models.Q(status="accepted"),
                        fields=("order",),
                        name="unique_accepted_offer_per_order",
                    ),
                ],
            },
        ),
        migrations.AddField(
            model_name="transportcascade",
            name="winning_offer",
            field=models.ForeignKey(
                blank=True,
                null=True,
                on_delete=django.db.models.deletion.SET_NULL,
                related_name="+",
                to="transport.transportoffer",
            ),
        ),
        migrations.CreateModel(
            name="TransportAssignment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("pickup_location", models.TextField()),
                ("delivery_location", models.TextField()),
                ("distance_km", models.DecimalField(blank=True, decimal_places=2, max_digits=8, null=True)),
                ("transport_cost", models.DecimalField(decimal_places=2, max_digits=10)),
                ("status", models.CharField(
                    choices=[("assigned", "Assigned"), ("in_transit", "In Transit"), ("delivered", "Delivered")],
                    default="assigned",
                    max_length=20,
                )),
                ("pickup_time", models.DateTimeField(blank=True, null=True)),
                ("delivery_time", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("offer", models.OneToOneField(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="assignment",
                    to="transport.transportoffer",
                )),
                ("order", models.OneToOneField(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="transport_assignment",
                    to="orders.order",
                )),
                ("transporter", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="transport_assignments",
                    to=settings.AUTH_USER_MODEL,
                )),
            ],
            options={
                "db_table": "transport_assignments",
                "ordering": ["-created_at"],
            },
        ),
    ]
