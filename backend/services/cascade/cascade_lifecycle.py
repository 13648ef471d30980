"""
Core transport cascade operations.

A farmer offers an order's transport job to up to three transporters in
priority tiers. Tier 1 opens immediately; every later tier opens one window
after the previous one, and opened tiers stay acceptable, so the first
transporter to accept across all open tiers wins.

Every transition for an order is serialized the same way:
    1. lock the order row (select_for_update)
    2. lock and re-read the cascade and its offers
    3. bring the cascade clock up to date (_advance)
    4. apply the change through a version compare-and-swap

The swap is what guarantees a single winner when row locks are unavailable:
a transition that read a stale version changes nothing and surfaces as
OfferClosedError.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional, Dict, Any, List, Tuple

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from orders.models import Order
from transport.models import TransportAssignment, TransportCascade, TransportOffer
from realtime.notifications import notify_order_parties, notify_transporter_event, notify_user_event
from services.matching import ensure_fee_meets_floor, order_minimum_fee
from . import clock
from .binder import bind_assignment
from .exceptions import (
    OfferClosedError,
    OfferNotActiveError,
    OfferNotFoundError,
    OrderNotFoundError,
    ValidationError,
)

User = get_user_model()
logger = logging.getLogger(__name__)

TIERS = (TransportOffer.PRIMARY, TransportOffer.SECONDARY, TransportOffer.TERTIARY)
TERMINAL_OFFER_STATUSES = (TransportOffer.DECLINED, TransportOffer.EXPIRED)


@dataclass
class CascadeResult:
    """Result object for cascade operations."""
    success: bool
    cascade: Optional[TransportCascade] = None
    offer: Optional[TransportOffer] = None
    offers: Optional[List[TransportOffer]] = None
    assignment: Optional[TransportAssignment] = None
    message: str = ""
    extra: Optional[Dict[str, Any]] = None


# ===================== Locking & Clock Helpers =====================

def _lock_order(order_id: int):
    """Take the per-order lock every cascade transition is serialized on."""
    list(Order.objects.select_for_update().filter(id=order_id).values_list("id", flat=True))


def _lock_cascade(cascade_id: int) -> Tuple[TransportCascade, List[TransportOffer]]:
    cascade = TransportCascade.objects.select_for_update().select_related("order").get(id=cascade_id)
    offers = list(cascade.offers.select_for_update().order_by("tier_rank"))
    return cascade, offers


def _compare_and_set(cascade: TransportCascade, **changes) -> bool:
    """
    Apply ``changes`` only if the cascade is still open at the version we read.

    Always bumps the version, so even a change-free call fences out any
    transition that read the same version.
    """
    updated = TransportCascade.objects.filter(
        pk=cascade.pk,
        version=cascade.version,
        state__in=TransportCascade.OPEN_STATES,
    ).update(version=F("version") + 1, **changes)

    if not updated:
        return False

    for field, value in changes.items():
        setattr(cascade, field, value)
    cascade.version += 1
    return True


def _swap_or_close(cascade: TransportCascade, **changes):
    if not _compare_and_set(cascade, **changes):
        logger.info("Lost transition race on cascade %s (version %s)", cascade.id, cascade.version)
        raise OfferClosedError("This offer is no longer available")


def _advance(cascade: TransportCascade, offers: List[TransportOffer], now) -> bool:
    """
    Bring a locked cascade up to date with its clock.

    Opens tiers whose time has come and exhausts the cascade once the last
    tier's window has passed. Returns True if anything changed.
    """
    if not cascade.is_open:
        return False

    tier_count = len(offers)
    schedule = clock.activation_schedule(cascade, tier_count)

    changes = {}
    newly_open = []
    for offer in offers:
        opens_at = schedule.get(offer.tier_rank)
        if opens_at is None or now < opens_at:
            continue
        field = clock.SENT_AT_FIELDS[offer.tier_rank]
        if getattr(cascade, field) is None:
            changes[field] = opens_at
        if not offer.is_active and offer.status in TransportOffer.OPEN_STATUSES:
            newly_open.append((offer, opens_at))

    deadline = clock.cascade_deadline(cascade, tier_count)
    exhausted = deadline is not None and now >= deadline
    if exhausted:
        changes.update(state=TransportCascade.RESOLVED_EXHAUSTED, resolved_at=now)
    else:
        state = clock.derive_state(cascade, tier_count, now)
        if state != cascade.state:
            changes["state"] = state

    if not changes and not newly_open:
        return False

    _swap_or_close(cascade, **changes)

    for offer, opens_at in newly_open:
        offer.is_active = True
        offer.sent_at = offer.sent_at or opens_at
        offer.save(update_fields=["is_active", "sent_at"])
        logger.info("Opened %s tier of cascade %s for transporter %s", offer.tier, cascade.id, offer.transporter_id)
        if not exhausted:
            notify_transporter_event(
                "transport_offer",
                offer.transporter_id,
                offer,
                "A new transport job is available for you.",
            )

    if exhausted:
        _expire_open_offers(cascade, offers)

    return True


def _expire_open_offers(cascade: TransportCascade, offers: List[TransportOffer]):
    for offer in offers:
        if offer.status in TransportOffer.OPEN_STATUSES:
            offer.status = TransportOffer.EXPIRED
            offer.is_active = False
            offer.save(update_fields=["status", "is_active"])
            notify_transporter_event(
                "offer_closed",
                offer.transporter_id,
                offer,
                "This transport offer has expired.",
            )

    logger.info("Cascade %s for order %s exhausted without an accept", cascade.id, cascade.order_id)
    notify_user_event(
        "cascade_exhausted",
        cascade.farmer_id,
        cascade.order,
        "No transporter accepted your offer. Please choose transporters again.",
        extra={"cascade_id": cascade.id},
    )


def _exhaust_if_all_declined(cascade: TransportCascade, offers: List[TransportOffer], now) -> bool:
    if not all(offer.status in TERMINAL_OFFER_STATUSES for offer in offers):
        return False

    _swap_or_close(cascade, state=TransportCascade.RESOLVED_EXHAUSTED, resolved_at=now)
    _expire_open_offers(cascade, offers)
    return True


def _open_next_tier_early(cascade: TransportCascade, offers: List[TransportOffer], declined: TransportOffer, now):
    """
    Advance-on-decline: open the first still-open tier after ``declined`` right away.

    Tiers in between that were already declined are opened at the same
    instant.
    """
    tier_count = len(offers)
    opened = clock.open_tiers(cascade, tier_count, now)
    if not opened or declined.tier_rank != max(opened):
        return {}, None

    changes = {}
    for offer in offers[declined.tier_rank:]:
        changes[clock.SENT_AT_FIELDS[offer.tier_rank]] = now
        if offer.status in TransportOffer.OPEN_STATUSES:
            changes["state"] = clock.TIER_STATES[offer.tier_rank]
            return changes, offer

    # Every later tier already declined: the decline exhausts the cascade
    return {}, None


def _get_transporter_offer(transporter, offer_id: int) -> Tuple[int, int]:
    row = (
        TransportOffer.objects
        .filter(id=offer_id, transporter=transporter)
        .values_list("cascade_id", "order_id")
        .first()
    )
    if row is None:
        raise OfferNotFoundError("Transport offer not found")
    return row


def _pick(offers: List[TransportOffer], offer_id: int) -> TransportOffer:
    return next(offer for offer in offers if offer.id == offer_id)


def _resolve(
    cascade: TransportCascade,
    offers: List[TransportOffer],
    winner: TransportOffer,
    fee,
    now,
) -> CascadeResult:
    """Claim the cascade for ``winner`` and close every sibling offer."""
    _swap_or_close(
        cascade,
        state=TransportCascade.RESOLVED_ACCEPTED,
        resolved_at=now,
        winning_offer=winner,
    )

    winner.status = TransportOffer.ACCEPTED
    winner.agreed_fee = fee
    winner.responded_at = now
    winner.save(update_fields=["status", "agreed_fee", "responded_at"])

    closed = []
    for offer in offers:
        if offer.id != winner.id and offer.status in TransportOffer.OPEN_STATUSES:
            offer.status = TransportOffer.WITHDRAWN
            offer.is_active = False
            offer.save(update_fields=["status", "is_active"])
            closed.append(offer)

    assignment, _ = bind_assignment(cascade)

    for offer in closed:
        if offer.sent_at is not None:
            notify_transporter_event(
                "offer_closed",
                offer.transporter_id,
                offer,
                "This offer is no longer available.",
            )

    logger.info(
        "Cascade %s for order %s won by transporter %s (%s tier) at %s",
        cascade.id, cascade.order_id, winner.transporter_id, winner.tier, fee,
    )
    return CascadeResult(
        success=True,
        cascade=cascade,
        offer=winner,
        assignment=assignment,
        message="Transport offer accepted! Head to the pickup location.",
    )


# ===================== Farmer Operations =====================

@transaction.atomic
def create_cascade(
    farmer,
    order_id: int,
    primary_transporter_id: Optional[int],
    secondary_transporter_id: Optional[int] = None,
    tertiary_transporter_id: Optional[int] = None,
    proposed_fee=None,
    pickup_location: Optional[str] = None,
) -> CascadeResult:
    """
    Create the tiered offer set for an order.

    Args:
        farmer: User model instance (farmer who owns the order)
        order_id: ID of the paid order needing transport
        primary_transporter_id: Tier 1 transporter (required)
        secondary_transporter_id: Tier 2 transporter (required)
        tertiary_transporter_id: Tier 3 transporter (optional)
        proposed_fee: Fee offered to every tier, at least the fee floor
        pickup_location: Overrides the order's pickup location

    Returns:
        CascadeResult with the cascade and its offers

    Raises:
        OrderNotFoundError: If the order is missing or not the farmer's
        ValidationError: If the selection or fee is invalid; nothing is created
    """
    try:
        order = Order.objects.select_for_update().get(id=order_id, farmer=farmer)
    except Order.DoesNotExist:
        raise OrderNotFoundError("Order not found")

    if not order.uses_transport:
        raise ValidationError("This order does not use platform transport")
    if order.status != 'paid':
        raise ValidationError(f"Transport can only be arranged for paid orders (order is {order.status})")

    if not primary_transporter_id or not secondary_transporter_id:
        raise ValidationError("Select at least a primary and a secondary transporter")

    selections = [
        (tier, transporter_id)
        for tier, transporter_id in zip(
            TIERS, (primary_transporter_id, secondary_transporter_id, tertiary_transporter_id)
        )
        if transporter_id
    ]
    transporter_ids = [transporter_id for _, transporter_id in selections]
    if len(set(transporter_ids)) != len(transporter_ids):
        raise ValidationError("Each transporter can only be selected for one tier")

    transporters = {
        user.id: user
        for user in User.objects.select_related("transporter_profile").filter(
            id__in=transporter_ids, role="transporter", is_active=True,
            transporter_profile__status="available",
        )
    }
    for transporter_id in transporter_ids:
        transporter = transporters.get(transporter_id)
        profile = getattr(transporter, "transporter_profile", None) if transporter else None
        if profile is None:
            raise ValidationError(f"Transporter {transporter_id} is not available")
        if profile.vehicle_capacity_kg < order.cargo_weight_kg:
            raise ValidationError(f"Transporter {transporter_id} cannot carry {order.cargo_weight_kg} kg")

    if order.transport_cascades.filter(state__in=TransportCascade.OPEN_STATES).exists():
        raise ValidationError("Transport is already being arranged for this order")
    if TransportAssignment.objects.filter(order=order).exists():
        raise ValidationError("This order already has a transporter")

    if proposed_fee in (None, ""):
        raise ValidationError("Please enter a transport fee")
    minimum_fee, distance_km = order_minimum_fee(order)
    fee = ensure_fee_meets_floor(proposed_fee, minimum_fee)

    pickup = (pickup_location or order.pickup_location or "").strip()
    if not pickup:
        raise ValidationError("Pickup location is required")

    now = timezone.now()
    try:
        with transaction.atomic():
            cascade = TransportCascade.objects.create(
                order=order,
                farmer=farmer,
                state=TransportCascade.AWAITING_SETUP,
                proposed_fee=fee,
                minimum_fee=minimum_fee,
                distance_km=distance_km,
                pickup_location=pickup,
                delivery_location=order.delivery_location,
                window_seconds=getattr(settings, "TRANSPORT_CASCADE_WINDOW_SECONDS", 3600),
            )
            offers = [
                TransportOffer.objects.create(
                    cascade=cascade,
                    order=order,
                    transporter_id=transporter_id,
                    tier=tier,
                    tier_rank=TransportOffer.TIER_RANKS[tier],
                    pickup_location=pickup,
                    delivery_location=order.delivery_location,
                    proposed_fee=fee,
                    status=TransportOffer.PENDING,
                    is_active=tier == TransportOffer.PRIMARY,
                    sent_at=now if tier == TransportOffer.PRIMARY else None,
                )
                for tier, transporter_id in selections
            ]
            cascade.sent_to_primary_at = now
            cascade.state = TransportCascade.TIER1_ACTIVE
            cascade.save(update_fields=["sent_to_primary_at", "state"])
    except IntegrityError:
        logger.warning("Concurrent cascade setup rejected for order %s", order.id)
        raise ValidationError("Transport is already being arranged for this order")

    logger.info(
        "Created cascade %s for order %s: %s at %s (floor %s)",
        cascade.id, order.id, transporter_ids, fee, minimum_fee,
    )

    # Push and timers only once the offers are visible to other connections
    def after_commit():
        from transport.tasks import schedule_cascade_timers
        notify_transporter_event(
            "transport_offer",
            offers[0].transporter_id,
            offers[0],
            "You have priority on a new transport job.",
        )
        schedule_cascade_timers(cascade.id, cascade.window_seconds, len(offers))

    transaction.on_commit(after_commit)

    return CascadeResult(
        success=True,
        cascade=cascade,
        offers=offers,
        message="Offer sent to your primary transporter.",
        extra={"minimum_fee": minimum_fee},
    )


def get_order_cascade(farmer, order_id: int) -> Optional[TransportCascade]:
    """Latest cascade for a farmer's order (polling endpoint). Read-only."""
    if not Order.objects.filter(id=order_id, farmer=farmer).exists():
        raise OrderNotFoundError("Order not found")
    return (
        TransportCascade.objects
        .filter(order_id=order_id)
        .prefetch_related("offers__transporter")
        .order_by("-created_at", "-id")
        .first()
    )


def respond_to_counter(farmer, offer_id: int, accept: bool) -> CascadeResult:
    """
    Farmer accepts or rejects a transporter's counter fee.

    Accepting resolves the cascade at the counter fee; rejecting declines
    the offer.
    """
    row = (
        TransportOffer.objects
        .filter(id=offer_id, cascade__farmer=farmer)
        .values_list("cascade_id", "order_id")
        .first()
    )
    if row is None:
        raise OfferNotFoundError("Transport offer not found")
    cascade_id, order_id = row

    now = timezone.now()
    advance_cascade(cascade_id, now)

    with transaction.atomic():
        _lock_order(order_id)
        cascade, offers = _lock_cascade(cascade_id)
        offer = _pick(offers, offer_id)

        if accept and offer.status == TransportOffer.ACCEPTED:
            assignment, _ = bind_assignment(cascade)
            return CascadeResult(
                success=True, cascade=cascade, offer=offer, assignment=assignment,
                message="Counter offer already accepted", extra={"already_accepted": True},
            )

        _advance(cascade, offers, now)

        if not cascade.is_open or offer.status not in TransportOffer.OPEN_STATUSES:
            raise OfferClosedError("This offer is no longer available")
        if offer.status != TransportOffer.COUNTERED:
            raise ValidationError("This offer has no counter to respond to")

        if accept:
            return _resolve(cascade, offers, offer, offer.counter_fee, now)

        _swap_or_close(cascade)
        offer.status = TransportOffer.DECLINED
        offer.decline_reason = "Counter offer rejected by farmer"
        offer.responded_at = now
        offer.save(update_fields=["status", "decline_reason", "responded_at"])

        notify_transporter_event(
            "counter_rejected",
            offer.transporter_id,
            offer,
            "The farmer rejected your counter offer.",
        )
        exhausted = _exhaust_if_all_declined(cascade, offers, now)

    logger.info("Farmer %s rejected counter on offer %s", farmer.id, offer.id)
    return CascadeResult(
        success=True,
        cascade=cascade,
        offer=offer,
        message="Counter offer rejected.",
        extra={"cascade_exhausted": exhausted},
    )


# ===================== Transporter Operations =====================

def list_offers(transporter, status: Optional[str] = None):
    """Offers addressed to a transporter, newest first. Read-only."""
    if status and status not in dict(TransportOffer.STATUS_CHOICES):
        raise ValidationError(f"Unknown offer status: {status}")

    offers = (
        TransportOffer.objects
        .filter(transporter=transporter)
        .select_related("cascade", "order", "order__farmer")
        .order_by("-created_at", "-id")
    )
    if status:
        offers = offers.filter(status=status)
    return offers


def accept_offer(transporter, offer_id: int) -> CascadeResult:
    """
    Accept a transport offer.

    Args:
        transporter: User model instance (transporter addressed by the offer)
        offer_id: ID of the offer to accept

    Returns:
        CascadeResult with the assignment; repeating an accepted offer
        returns the same assignment

    Raises:
        OfferNotFoundError: If the offer is not addressed to this transporter
        OfferNotActiveError: If the offer's tier has not opened yet
        OfferClosedError: If another tier won or the cascade closed
    """
    cascade_id, order_id = _get_transporter_offer(transporter, offer_id)

    # Due activations and exhaustion commit even if this accept is rejected
    now = timezone.now()
    advance_cascade(cascade_id, now)

    with transaction.atomic():
        _lock_order(order_id)
        cascade, offers = _lock_cascade(cascade_id)
        offer = _pick(offers, offer_id)

        if offer.status == TransportOffer.ACCEPTED:
            assignment, _ = bind_assignment(cascade)
            return CascadeResult(
                success=True, cascade=cascade, offer=offer, assignment=assignment,
                message="Transport offer accepted! Head to the pickup location.",
                extra={"already_accepted": True},
            )

        _advance(cascade, offers, now)

        if not cascade.is_open or offer.status not in TransportOffer.OPEN_STATUSES:
            raise OfferClosedError("This offer is no longer available")
        if not clock.is_tier_open(cascade, offer.tier_rank, len(offers), now):
            raise OfferNotActiveError("This offer is not open for you yet")

        return _resolve(cascade, offers, offer, offer.proposed_fee, now)


def decline_offer(transporter, offer_id: int, reason: Optional[str] = None) -> CascadeResult:
    """
    Decline a transport offer.

    The next tier still opens on its own schedule unless
    TRANSPORT_CASCADE_ADVANCE_ON_DECLINE is enabled.
    """
    cascade_id, order_id = _get_transporter_offer(transporter, offer_id)

    now = timezone.now()
    advance_cascade(cascade_id, now)

    with transaction.atomic():
        _lock_order(order_id)
        cascade, offers = _lock_cascade(cascade_id)
        offer = _pick(offers, offer_id)

        if offer.status == TransportOffer.DECLINED:
            return CascadeResult(
                success=True, cascade=cascade, offer=offer,
                message="Offer declined.", extra={"already_declined": True},
            )

        _advance(cascade, offers, now)

        if not cascade.is_open or offer.status not in TransportOffer.OPEN_STATUSES:
            raise OfferClosedError("This offer is no longer available")

        changes, early_offer = {}, None
        if getattr(settings, "TRANSPORT_CASCADE_ADVANCE_ON_DECLINE", False):
            changes, early_offer = _open_next_tier_early(cascade, offers, offer, now)

        _swap_or_close(cascade, **changes)

        offer.status = TransportOffer.DECLINED
        offer.decline_reason = reason or None
        offer.is_active = False
        offer.responded_at = now
        offer.save(update_fields=["status", "decline_reason", "is_active", "responded_at"])

        if early_offer is not None and early_offer.status in TransportOffer.OPEN_STATUSES:
            early_offer.is_active = True
            early_offer.sent_at = now
            early_offer.save(update_fields=["is_active", "sent_at"])
            logger.info("Opened %s tier of cascade %s early after decline", early_offer.tier, cascade.id)
            notify_transporter_event(
                "transport_offer",
                early_offer.transporter_id,
                early_offer,
                "A new transport job is available for you.",
            )

        notify_user_event(
            "offer_declined",
            cascade.farmer_id,
            cascade.order,
            f"Your {offer.tier} transporter declined the offer.",
            extra={"offer_id": offer.id, "cascade_id": cascade.id, "reason": reason or ""},
        )
        exhausted = _exhaust_if_all_declined(cascade, offers, now)

    logger.info("Transporter %s declined offer %s", transporter.id, offer.id)
    return CascadeResult(
        success=True,
        cascade=cascade,
        offer=offer,
        message="Offer declined.",
        extra={"cascade_exhausted": exhausted},
    )


def counter_offer(transporter, offer_id: int, counter_fee) -> CascadeResult:
    """
    Propose a different fee for an open offer.

    Raises:
        ValidationError: If the counter fee is below the cascade's fee floor
        OfferNotActiveError: If the offer's tier has not opened yet
        OfferClosedError: If the cascade already closed
    """
    cascade_id, order_id = _get_transporter_offer(transporter, offer_id)

    now = timezone.now()
    advance_cascade(cascade_id, now)

    with transaction.atomic():
        _lock_order(order_id)
        cascade, offers = _lock_cascade(cascade_id)
        offer = _pick(offers, offer_id)

        _advance(cascade, offers, now)

        if not cascade.is_open or offer.status not in TransportOffer.OPEN_STATUSES:
            raise OfferClosedError("This offer is no longer available")
        if not clock.is_tier_open(cascade, offer.tier_rank, len(offers), now):
            raise OfferNotActiveError("This offer is not open for you yet")

        fee = ensure_fee_meets_floor(counter_fee, cascade.minimum_fee)

        _swap_or_close(cascade)
        offer.status = TransportOffer.COUNTERED
        offer.counter_fee = fee
        offer.countered_at = now
        offer.responded_at = now
        offer.save(update_fields=["status", "counter_fee", "countered_at", "responded_at"])

        notify_user_event(
            "offer_countered",
            cascade.farmer_id,
            cascade.order,
            f"Your {offer.tier} transporter proposed KES {fee:.2f}.",
            extra={"offer_id": offer.id, "cascade_id": cascade.id, "counter_fee": str(fee)},
        )

    logger.info("Transporter %s countered offer %s at %s", transporter.id, offer.id, fee)
    return CascadeResult(
        success=True,
        cascade=cascade,
        offer=offer,
        message="Counter offer sent!",
    )


# ===================== Order Subsystem Hooks =====================

def cancel_order_cascades(order: Order, now=None) -> int:
    """
    Close every open cascade of an order being cancelled.

    Must run inside the caller's transaction, with the order row locked.
    Returns the number of cascades cancelled.
    """
    now = now or timezone.now()
    cancelled = 0

    open_ids = list(
        order.transport_cascades.filter(state__in=TransportCascade.OPEN_STATES).values_list("id", flat=True)
    )
    for cascade_id in open_ids:
        cascade, offers = _lock_cascade(cascade_id)
        _swap_or_close(cascade, state=TransportCascade.CANCELLED, cancelled_at=now)

        for offer in offers:
            if offer.status not in TransportOffer.OPEN_STATUSES:
                continue
            was_sent = offer.sent_at is not None
            offer.status = TransportOffer.WITHDRAWN
            offer.is_active = False
            offer.save(update_fields=["status", "is_active"])
            if was_sent:
                notify_transporter_event(
                    "offer_closed",
                    offer.transporter_id,
                    offer,
                    "The order was cancelled.",
                )

        logger.info("Cancelled cascade %s for order %s", cascade.id, order.id)
        notify_order_parties(
            "cascade_cancelled",
            order,
            "Transport arrangement cancelled.",
            extra={"cascade_id": cascade.id},
            include_buyer=False,
        )
        cancelled += 1

    return cancelled


# ===================== Clock Sweep =====================

def advance_cascade(cascade_id: int, now=None) -> bool:
    """
    Apply due tier activations / exhaustion to one cascade.

    Idempotent and safe alongside accepts: resolved or cancelled cascades
    are left untouched. Returns True if the cascade changed.
    """
    now = now or timezone.now()
    with transaction.atomic():
        order_id = (
            TransportCascade.objects.filter(id=cascade_id).values_list("order_id", flat=True).first()
        )
        if order_id is None:
            logger.warning("Cascade %s not found for sweep", cascade_id)
            return False

        _lock_order(order_id)
        cascade, offers = _lock_cascade(cascade_id)
        try:
            return _advance(cascade, offers, now)
        except OfferClosedError:
            return False


def sweep_open_cascades(now=None) -> Tuple[int, int]:
    """
    Advance every open cascade.

    Returns a tuple of (checked_count, advanced_count).
    """
    now = now or timezone.now()
    cascade_ids = list(
        TransportCascade.objects
        .filter(state__in=TransportCascade.OPEN_STATES)
        .order_by("created_at")
        .values_list("id", flat=True)
    )

    advanced = sum(1 for cascade_id in cascade_ids if advance_cascade(cascade_id, now))
    return len(cascade_ids), advanced


def sweep_backlog(now=None, grace_seconds: int = 0) -> Tuple[int, int]:
    """
    Open cascades and how many of them the clock has left behind.

    A cascade is overdue when a tier activation or its deadline fell due more
    than ``grace_seconds`` ago and nothing recorded it. Read-only.

    Returns a tuple of (open_count, overdue_count).
    """
    now = now or timezone.now()
    cutoff = now - timedelta(seconds=grace_seconds)

    cascades = list(
        TransportCascade.objects
        .filter(state__in=TransportCascade.OPEN_STATES)
        .prefetch_related("offers")
    )
    overdue = 0
    for cascade in cascades:
        due_at = clock.next_due_at(cascade, len(cascade.offers.all()))
        if due_at is not None and due_at <= cutoff:
            overdue += 1
    return len(cascades), overdue
