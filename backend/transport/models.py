from django.db import models
from django.db.models import Q
from django.conf import settings

from orders.models import Order


class TransportCascade(models.Model):
    """
    One tiered offer round for an order.

    Holds the cascade clock (per-tier activation timestamps plus the window
    length captured at setup) and the optimistic-concurrency version that
    every state transition must swap.
    """

    AWAITING_SETUP = 'awaiting_setup'
    TIER1_ACTIVE = 'tier1_active'
    TIER2_ACTIVE = 'tier2_active'
    TIER3_ACTIVE = 'tier3_active'
    RESOLVED_ACCEPTED = 'resolved_accepted'
    RESOLVED_EXHAUSTED = 'resolved_exhausted'
    CANCELLED = 'cancelled'

    STATE_CHOICES = [
        (AWAITING_SETUP, 'Awaiting Setup'),
        (TIER1_ACTIVE, 'Tier 1 Active'),
        (TIER2_ACTIVE, 'Tier 2 Active'),
        (TIER3_ACTIVE, 'Tier 3 Active'),
        (RESOLVED_ACCEPTED, 'Resolved - Accepted'),
        (RESOLVED_EXHAUSTED, 'Resolved - Exhausted'),
        (CANCELLED, 'Cancelled'),
    ]

    OPEN_STATES = (AWAITING_SETUP, TIER1_ACTIVE, TIER2_ACTIVE, TIER3_ACTIVE)

    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name='transport_cascades'
    )
    farmer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='transport_cascades'
    )

    state = models.CharField(max_length=20, choices=STATE_CHOICES, default=AWAITING_SETUP)
    version = models.PositiveIntegerField(default=0)

    # Terms
    proposed_fee = models.DecimalField(max_digits=10, decimal_places=2)
    minimum_fee = models.DecimalField(max_digits=10, decimal_places=2)
    distance_km = models.DecimalField(max_digits=8, decimal_places=2, null=True, blank=True)
    pickup_location = models.TextField()
    delivery_location = models.TextField()

    # Cascade clock
    window_seconds = models.PositiveIntegerField()
    sent_to_primary_at = models.DateTimeField(null=True, blank=True)
    sent_to_secondary_at = models.DateTimeField(null=True, blank=True)
    sent_to_tertiary_at = models.DateTimeField(null=True, blank=True)

    winning_offer = models.ForeignKey(
        'transport.TransportOffer',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    resolved_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'transport_cascades'
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['order'],
                condition=Q(state__in=['awaiting_setup', 'tier1_active', 'tier2_active', 'tier3_active']),
                name='unique_open_cascade_per_order'
            ),
            models.UniqueConstraint(
                fields=['order'],
                condition=Q(state='resolved_accepted'),
                name='unique_accepted_cascade_per_order'
            ),
        ]

    @property
    def is_open(self):
        return self.state in self.OPEN_STATES

    def __str__(self):
        return f"Cascade #{self.id} - Order {self.order_id} - {self.state}"


class TransportOffer(models.Model):
    """One transporter's tier in a cascade."""

    PRIMARY = 'primary'
    SECONDARY = 'secondary'
    TERTIARY = 'tertiary'

    TIER_CHOICES = [
        (PRIMARY, 'Primary'),
        (SECONDARY, 'Secondary'),
        (TERTIARY, 'Tertiary'),
    ]

    # tier name -> rank (1 = primary)
    TIER_RANKS = {PRIMARY: 1, SECONDARY: 2, TERTIARY: 3}

    PENDING = 'pending'
    ACCEPTED = 'accepted'
    DECLINED = 'declined'
    COUNTERED = 'countered'
    EXPIRED = 'expired'
    WITHDRAWN = 'withdrawn'

    STATUS_CHOICES = [
        (PENDING, 'Pending'),
        (ACCEPTED, 'Accepted'),
        (DECLINED, 'Declined'),
        (COUNTERED, 'Countered'),
        (EXPIRED, 'Expired'),
        (WITHDRAWN, 'Withdrawn'),
    ]

    # Statuses that still await an answer
    OPEN_STATUSES = (PENDING, COUNTERED)

    cascade = models.ForeignKey(
        TransportCascade,
        on_delete=models.CASCADE,
        related_name='offers'
    )
    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name='transport_offers'
    )
    transporter = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='transport_offers',
        limit_choices_to={'role': 'transporter'}
    )

    tier = models.CharField(max_length=10, choices=TIER_CHOICES)
    tier_rank = models.PositiveSmallIntegerField()  # 1 = primary

    pickup_location = models.TextField()
    delivery_location = models.TextField()
    proposed_fee = models.DecimalField(max_digits=10, decimal_places=2)

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=PENDING)
    is_active = models.BooleanField(default=False)

    sent_at = models.DateTimeField(null=True, blank=True)
    responded_at = models.DateTimeField(null=True, blank=True)
    decline_reason = models.TextField(null=True, blank=True)

    # Counter offer
    counter_fee = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    countered_at = models.DateTimeField(null=True, blank=True)

    # Fee the winning offer was settled at (proposed or countered)
    agreed_fee = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'transport_offers'
        ordering = ['tier_rank']
        constraints = [
            models.UniqueConstraint(
                fields=['cascade', 'transporter'],
                name='unique_cascade_transporter'
            ),
            models.UniqueConstraint(
                fields=['cascade', 'tier'],
                name='unique_cascade_tier'
            ),
            models.UniqueConstraint(
                fields=['order'],
                condition=Q(status='accepted'),
                name='unique_accepted_offer_per_order'
            ),
        ]

    def __str__(self):
        return f"Offer #{self.id} - Order {self.order_id} -> {self.transporter} ({self.tier})"


class TransportAssignment(models.Model):
    """The transport job materialized from a winning offer."""

    STATUS_CHOICES = [
        ('assigned', 'Assigned'),
        ('in_transit', 'In Transit'),
        ('delivered', 'Delivered'),
    ]

    order = models.OneToOneField(
        Order,
        on_delete=models.CASCADE,
        related_name='transport_assignment'
    )
    offer = models.OneToOneField(
        TransportOffer,
        on_delete=models.PROTECT,
        related_name='assignment'
    )
    transporter = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='transport_assignments'
    )

    pickup_location = models.TextField()
    delivery_location = models.TextField()
    distance_km = models.DecimalField(max_digits=8, decimal_places=2, null=True, blank=True)
    transport_cost = models.DecimalField(max_digits=10, decimal_places=2)

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='assigned')
    pickup_time = models.DateTimeField(null=True, blank=True)
    delivery_time = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'transport_assignments'
        ordering = ['-created_at']

    def __str__(self):
        return f"Assignment #{self.id} - Order {self.order_id} -> {self.transporter} - {self.status}"
