from decimal import Decimal

from django.db import models
from django.conf import settings


class Order(models.Model):
    """A buyer's purchase from a farmer that may need platform transport."""

    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('payment_pending', 'Payment Pending'),
        ('paid', 'Paid'),
        ('assigned', 'Transport Assigned'),
        ('in_transit', 'In Transit'),
        ('delivered', 'Delivered'),
        ('confirmed', 'Confirmed'),
        ('cancelled', 'Cancelled'),
        ('disputed', 'Disputed'),
    ]

    # Parties
    buyer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='purchases'
    )
    farmer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='sales'
    )

    # Listing lives in the catalogue service; only its id is kept here
    listing_id = models.CharField(max_length=64)
    quantity = models.DecimalField(max_digits=12, decimal_places=2)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2)

    # Pickup (farm) location
    pickup_location = models.TextField(blank=True, default='')
    pickup_region = models.CharField(max_length=100, blank=True, default='')
    pickup_latitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    pickup_longitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)

    # Delivery (buyer) location
    delivery_location = models.TextField()
    delivery_region = models.CharField(max_length=100, blank=True, default='')
    delivery_latitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    delivery_longitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)

    # Cargo
    cargo_weight_kg = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0'))
    cargo_volume_m3 = models.DecimalField(max_digits=10, decimal_places=3, default=Decimal('0'))

    # Transport outcome
    uses_transport = models.BooleanField(default=True)
    transporter = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='transported_orders'
    )
    transport_cost = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')
    notes = models.TextField(blank=True, default='')

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    cancellation_reason = models.TextField(null=True, blank=True)

    class Meta:
        db_table = 'orders'
        ordering = ['-created_at']

    def __str__(self):
        return f"Order #{self.id} - {self.farmer} -> {self.buyer} - {self.status}"
