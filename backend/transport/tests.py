import threading
from datetime import timedelta
from decimal import Decimal

from django.core.management import call_command
from django.db import IntegrityError, connection, transaction
from django.test import TestCase, TransactionTestCase, override_settings
from django.utils import timezone
from rest_framework.test import APIRequestFactory, force_authenticate
from unittest import skipUnless
from unittest.mock import patch

from common.testing import create_order, create_transporter, create_user
from orders.services import cancel_order
from services.cascade import (
	AssignmentNotFoundError,
	OfferClosedError,
	OfferNotActiveError,
	OfferNotFoundError,
	OrderNotFoundError,
	ValidationError,
	accept_offer,
	advance_cascade,
	bind_assignment,
	counter_offer,
	create_cascade,
	decline_offer,
	list_offers,
	mark_delivered,
	mark_picked_up,
	respond_to_counter,
	sweep_backlog,
	sweep_open_cascades,
)
from services.cascade.cascade_lifecycle import _lock_cascade, _resolve
from transporters.models import TransporterProfile
from . import views
from .models import TransportAssignment, TransportCascade, TransportOffer
from .tasks import advance_transport_cascade_task, sweep_transport_cascades_task


class CascadeTestCase(TestCase):
	def setUp(self):
		self.factory = APIRequestFactory()
		self.farmer = create_user('farmer', 'farmer')
		self.buyer = create_user('buyer', 'buyer')
		self.t1 = create_transporter('t_one', 'KBA-001A')
		self.t2 = create_transporter('t_two', 'KBA-002A')
		self.t3 = create_transporter('t_three', 'KBA-003A')
		self.order = create_order(self.farmer, self.buyer)

	def create(self, fee='200.00', tertiary=True):
		result = create_cascade(
			self.farmer,
			self.order.id,
			primary_transporter_id=self.t1.id,
			secondary_transporter_id=self.t2.id,
			tertiary_transporter_id=self.t3.id if tertiary else None,
			proposed_fee=Decimal(fee),
		)
		self.cascade = result.cascade
		self.offer_one, self.offer_two = result.offers[0], result.offers[1]
		self.offer_three = result.offers[2] if tertiary else None
		return result

	def backdate(self, minutes):
		"""Pretend tier 1 opened ``minutes`` ago."""
		started = timezone.now() - timedelta(minutes=minutes)
		TransportCascade.objects.filter(id=self.cascade.id).update(sent_to_primary_at=started)
		TransportOffer.objects.filter(id=self.offer_one.id).update(sent_at=started)
		return started

	def refresh(self):
		for obj in (self.cascade, self.offer_one, self.offer_two, self.offer_three, self.order):
			if obj is not None:
				obj.refresh_from_db()


class CascadeSetupTests(CascadeTestCase):
	def test_create_cascade_opens_primary_tier_only(self):
		result = self.create()

		self.assertTrue(result.success)
		self.assertEqual(len(result.offers), 3)
		self.refresh()

		self.assertEqual(self.cascade.state, TransportCascade.TIER1_ACTIVE)
		self.assertEqual(self.cascade.minimum_fee, Decimal('187.50'))
		self.assertEqual(self.cascade.distance_km, Decimal('10.00'))
		self.assertIsNotNone(self.cascade.sent_to_primary_at)
		self.assertIsNone(self.cascade.sent_to_secondary_at)
		self.assertIsNone(self.cascade.sent_to_tertiary_at)

		self.assertTrue(self.offer_one.is_active)
		self.assertEqual(self.offer_one.tier, TransportOffer.PRIMARY)
		self.assertFalse(self.offer_two.is_active)
		self.assertFalse(self.offer_three.is_active)
		self.assertEqual(self.offer_three.tier_rank, 3)
		self.assertEqual(self.offer_two.proposed_fee, Decimal('200.00'))

	def test_two_tiers_are_enough(self):
		result = self.create(tertiary=False)

		self.assertEqual(len(result.offers), 2)
		self.assertEqual(self.cascade.offers.count(), 2)

	def test_fee_below_floor_is_rejected_and_nothing_created(self):
		with self.assertRaises(ValidationError) as ctx:
			self.create(fee='100.00')

		self.assertEqual(ctx.exception.message, 'Fee must be at least KES 187.50')
		self.assertFalse(TransportCascade.objects.exists())
		self.assertFalse(TransportOffer.objects.exists())

	def test_fee_equal_to_floor_is_accepted(self):
		result = self.create(fee='187.50')
		self.assertTrue(result.success)

	def test_secondary_transporter_is_required(self):
		with self.assertRaises(ValidationError):
			create_cascade(
				self.farmer, self.order.id,
				primary_transporter_id=self.t1.id,
				proposed_fee=Decimal('200.00'),
			)
		self.assertFalse(TransportOffer.objects.exists())

	def test_duplicate_transporter_across_tiers_is_rejected(self):
		with self.assertRaises(ValidationError):
			create_cascade(
				self.farmer, self.order.id,
				primary_transporter_id=self.t1.id,
				secondary_transporter_id=self.t2.id,
				tertiary_transporter_id=self.t1.id,
				proposed_fee=Decimal('200.00'),
			)
		self.assertFalse(TransportCascade.objects.exists())

	def test_order_must_be_paid(self):
		self.order.status = 'payment_pending'
		self.order.save(update_fields=['status'])

		with self.assertRaises(ValidationError):
			self.create()

	def test_other_farmers_order_is_not_found(self):
		other_farmer = create_user('other_farmer', 'farmer')
		with self.assertRaises(OrderNotFoundError):
			create_cascade(
				other_farmer, self.order.id,
				primary_transporter_id=self.t1.id,
				secondary_transporter_id=self.t2.id,
				proposed_fee=Decimal('200.00'),
			)

	def test_transporter_without_capacity_is_rejected(self):
		TransporterProfile.objects.filter(user=self.t2).update(vehicle_capacity_kg=Decimal('100'))
		with self.assertRaises(ValidationError):
			self.create()

	def test_non_transporter_selection_is_rejected(self):
		with self.assertRaises(ValidationError):
			create_cascade(
				self.farmer, self.order.id,
				primary_transporter_id=self.t1.id,
				secondary_transporter_id=self.buyer.id,
				proposed_fee=Decimal('200.00'),
			)

	def test_only_one_open_cascade_per_order(self):
		self.create()
		with self.assertRaises(ValidationError):
			self.create()
		self.assertEqual(TransportCascade.objects.filter(order=self.order).count(), 1)

	def test_offline_or_busy_transporter_is_rejected(self):
		for status in ('offline', 'busy'):
			TransporterProfile.objects.filter(user=self.t2).update(status=status)

			with self.assertRaises(ValidationError) as ctx:
				self.create()

			self.assertEqual(ctx.exception.message, f'Transporter {self.t2.id} is not available')
			self.assertFalse(TransportCascade.objects.exists())
			self.assertFalse(TransportOffer.objects.exists())

	@patch('transport.tasks.schedule_cascade_timers')
	@patch('services.cascade.cascade_lifecycle.notify_transporter_event')
	def test_primary_hears_about_the_offer_after_commit(self, mock_notify, mock_timers):
		with self.captureOnCommitCallbacks() as callbacks:
			self.create()

		mock_notify.assert_not_called()
		mock_timers.assert_not_called()

		for callback in callbacks:
			callback()

		mock_notify.assert_called_once()
		self.assertEqual(mock_notify.call_args.args[:3], ('transport_offer', self.t1.id, self.offer_one))
		mock_timers.assert_called_once_with(self.cascade.id, 3600, 3)


class CascadeClockTests(CascadeTestCase):
	def setUp(self):
		super().setUp()
		self.create()

	def test_secondary_tier_is_not_acceptable_before_window(self):
		self.backdate(59)

		with self.assertRaises(OfferNotActiveError):
			accept_offer(self.t2, self.offer_two.id)

		self.refresh()
		self.assertEqual(self.cascade.state, TransportCascade.TIER1_ACTIVE)
		self.assertFalse(self.offer_two.is_active)

	def test_secondary_tier_opens_one_window_after_primary(self):
		started = self.backdate(61)

		self.assertTrue(advance_cascade(self.cascade.id))
		self.refresh()

		self.assertEqual(self.cascade.state, TransportCascade.TIER2_ACTIVE)
		self.assertEqual(self.cascade.sent_to_secondary_at, started + timedelta(hours=1))
		self.assertIsNone(self.cascade.sent_to_tertiary_at)
		self.assertTrue(self.offer_two.is_active)
		self.assertFalse(self.offer_three.is_active)
		# Tier 1 stays acceptable
		self.assertEqual(self.offer_one.status, TransportOffer.PENDING)

	def test_advance_is_idempotent(self):
		self.backdate(61)

		self.assertTrue(advance_cascade(self.cascade.id))
		version = TransportCascade.objects.get(id=self.cascade.id).version
		self.assertFalse(advance_cascade(self.cascade.id))
		self.assertEqual(TransportCascade.objects.get(id=self.cascade.id).version, version)

	def test_tertiary_tier_opens_after_second_window(self):
		started = self.backdate(125)

		advance_cascade(self.cascade.id)
		self.refresh()

		self.assertEqual(self.cascade.state, TransportCascade.TIER3_ACTIVE)
		self.assertEqual(self.cascade.sent_to_tertiary_at, started + timedelta(hours=2))
		self.assertTrue(self.offer_three.is_active)

	@patch('services.cascade.cascade_lifecycle.notify_transporter_event')
	def test_opening_a_tier_notifies_its_transporter(self, mock_notify):
		self.backdate(61)

		advance_cascade(self.cascade.id)

		notified = [(c.args[0], c.args[1]) for c in mock_notify.call_args_list]
		self.assertIn(('transport_offer', self.t2.id), notified)
		self.assertNotIn(('transport_offer', self.t3.id), notified)

	def test_secondary_accept_after_window_wins(self):
		self.backdate(65)

		result = accept_offer(self.t2, self.offer_two.id)

		self.assertTrue(result.success)
		self.refresh()
		self.assertEqual(self.cascade.state, TransportCascade.RESOLVED_ACCEPTED)
		self.assertEqual(self.cascade.winning_offer_id, self.offer_two.id)
		self.assertEqual(self.offer_two.status, TransportOffer.ACCEPTED)
		self.assertEqual(self.offer_one.status, TransportOffer.WITHDRAWN)
		self.assertEqual(self.offer_three.status, TransportOffer.WITHDRAWN)
		self.assertEqual(self.order.status, 'assigned')
		self.assertEqual(self.order.transporter_id, self.t2.id)
		self.assertEqual(self.order.transport_cost, Decimal('200.00'))

		assignment = TransportAssignment.objects.get(order=self.order)
		self.assertEqual(assignment.transporter_id, self.t2.id)
		self.assertEqual(assignment.transport_cost, Decimal('200.00'))

		# The primary lost the race
		with self.assertRaises(OfferClosedError):
			accept_offer(self.t1, self.offer_one.id)

	def test_deadline_exhausts_cascade(self):
		self.backdate(181)

		checked, advanced = sweep_open_cascades()

		self.assertEqual((checked, advanced), (1, 1))
		self.refresh()
		self.assertEqual(self.cascade.state, TransportCascade.RESOLVED_EXHAUSTED)
		self.assertIsNotNone(self.cascade.resolved_at)
		for offer in (self.offer_one, self.offer_two, self.offer_three):
			self.assertEqual(offer.status, TransportOffer.EXPIRED)
			self.assertFalse(offer.is_active)
		self.assertEqual(self.order.status, 'paid')
		self.assertFalse(TransportAssignment.objects.exists())

	def test_accept_after_deadline_is_closed_and_exhaustion_sticks(self):
		self.backdate(181)

		with self.assertRaises(OfferClosedError):
			accept_offer(self.t1, self.offer_one.id)

		self.refresh()
		self.assertEqual(self.cascade.state, TransportCascade.RESOLVED_EXHAUSTED)

	def test_sweep_leaves_resolved_cascades_alone(self):
		accept_offer(self.t1, self.offer_one.id)
		self.backdate(200)

		self.assertEqual(sweep_open_cascades(), (0, 0))
		self.refresh()
		self.assertEqual(self.cascade.state, TransportCascade.RESOLVED_ACCEPTED)
		self.assertEqual(self.offer_two.status, TransportOffer.WITHDRAWN)
		self.assertFalse(self.offer_two.is_active)

	def test_process_transport_cascades_command(self):
		self.backdate(61)

		call_command('process_transport_cascades')

		self.refresh()
		self.assertEqual(self.cascade.state, TransportCascade.TIER2_ACTIVE)

	def test_advance_task(self):
		self.backdate(61)

		self.assertTrue(advance_transport_cascade_task(self.cascade.id))
		self.assertFalse(advance_transport_cascade_task(self.cascade.id))
		self.assertFalse(advance_transport_cascade_task(999999))

	def test_sweep_task(self):
		self.backdate(181)

		self.assertEqual(sweep_transport_cascades_task(), {'checked': 1, 'advanced': 1})
		self.assertEqual(sweep_transport_cascades_task(), {'checked': 0, 'advanced': 0})

	def test_backlog_counts_cascades_the_sweep_has_not_caught_up_with(self):
		self.assertEqual(sweep_backlog(), (1, 0))

		self.backdate(61)
		self.assertEqual(sweep_backlog(), (1, 1))
		self.assertEqual(sweep_backlog(grace_seconds=120), (1, 0))

		sweep_open_cascades()
		self.assertEqual(sweep_backlog(), (1, 0))


class AcceptTests(CascadeTestCase):
	def setUp(self):
		super().setUp()
		self.create()

	def test_primary_accept_creates_assignment_and_awards_score(self):
		result = accept_offer(self.t1, self.offer_one.id)

		self.assertEqual(result.assignment.transporter_id, self.t1.id)
		self.assertEqual(result.assignment.offer_id, self.offer_one.id)
		self.assertEqual(result.assignment.distance_km, Decimal('10.00'))
		self.refresh()
		self.assertEqual(self.offer_one.agreed_fee, Decimal('200.00'))
		self.assertIsNotNone(self.offer_one.responded_at)
		self.assertEqual(TransporterProfile.objects.get(user=self.t1).platform_score, 3)

	def test_accept_is_idempotent_for_the_winner(self):
		first = accept_offer(self.t1, self.offer_one.id)
		second = accept_offer(self.t1, self.offer_one.id)

		self.assertTrue(second.success)
		self.assertTrue(second.extra['already_accepted'])
		self.assertEqual(first.assignment.id, second.assignment.id)
		self.assertEqual(TransportAssignment.objects.count(), 1)
		self.assertEqual(TransporterProfile.objects.get(user=self.t1).platform_score, 3)

	def test_offer_of_another_transporter_is_not_found(self):
		with self.assertRaises(OfferNotFoundError):
			accept_offer(self.t2, self.offer_one.id)

	def test_stale_transition_loses_the_race(self):
		stale_cascade, stale_offers = _lock_cascade(self.cascade.id)

		accept_offer(self.t1, self.offer_one.id)

		with self.assertRaises(OfferClosedError):
			_resolve(stale_cascade, stale_offers, stale_offers[1], Decimal('200.00'), timezone.now())

		self.assertEqual(
			TransportOffer.objects.filter(order=self.order, status=TransportOffer.ACCEPTED).count(), 1
		)
		self.assertEqual(TransportAssignment.objects.filter(order=self.order).count(), 1)

	def test_database_allows_one_accepted_offer_per_order(self):
		accept_offer(self.t1, self.offer_one.id)

		with self.assertRaises(IntegrityError):
			with transaction.atomic():
				TransportOffer.objects.filter(id=self.offer_two.id).update(status=TransportOffer.ACCEPTED)

	def test_binder_is_idempotent(self):
		accept_offer(self.t1, self.offer_one.id)
		self.cascade.refresh_from_db()

		assignment, created = bind_assignment(self.cascade)

		self.assertFalse(created)
		self.assertEqual(TransportAssignment.objects.filter(order=self.order).count(), 1)
		self.assertEqual(assignment.order_id, self.order.id)
		self.assertEqual(TransporterProfile.objects.get(user=self.t1).platform_score, 3)

	@patch('services.cascade.binder.notify_order_parties')
	@patch('services.cascade.binder.notify_transporter_event')
	def test_assignment_is_announced_after_commit(self, mock_transporter, mock_parties):
		with self.captureOnCommitCallbacks() as callbacks:
			result = accept_offer(self.t1, self.offer_one.id)

		mock_transporter.assert_not_called()
		mock_parties.assert_not_called()

		for callback in callbacks:
			callback()

		self.assertEqual(mock_transporter.call_args.args[:2], ('offer_accepted', self.t1.id))
		self.assertEqual(mock_parties.call_args.args[0], 'transport_assigned')
		self.assertEqual(mock_parties.call_args.kwargs['extra']['assignment_id'], result.assignment.id)


class DeclineTests(CascadeTestCase):
	def setUp(self):
		super().setUp()
		self.create()

	def test_decline_does_not_open_next_tier_early(self):
		result = decline_offer(self.t1, self.offer_one.id, 'Truck in service')

		self.assertFalse(result.extra['cascade_exhausted'])
		self.refresh()
		self.assertEqual(self.offer_one.status, TransportOffer.DECLINED)
		self.assertEqual(self.offer_one.decline_reason, 'Truck in service')
		self.assertEqual(self.cascade.state, TransportCascade.TIER1_ACTIVE)
		self.assertFalse(self.offer_two.is_active)

		with self.assertRaises(OfferNotActiveError):
			accept_offer(self.t2, self.offer_two.id)

	def test_decline_is_idempotent(self):
		decline_offer(self.t1, self.offer_one.id)
		result = decline_offer(self.t1, self.offer_one.id)

		self.assertTrue(result.extra['already_declined'])

	@override_settings(TRANSPORT_CASCADE_ADVANCE_ON_DECLINE=True)
	def test_decline_opens_next_tier_when_enabled(self):
		decline_offer(self.t1, self.offer_one.id)

		self.refresh()
		self.assertEqual(self.cascade.state, TransportCascade.TIER2_ACTIVE)
		self.assertIsNotNone(self.cascade.sent_to_secondary_at)
		self.assertTrue(self.offer_two.is_active)

		result = accept_offer(self.t2, self.offer_two.id)
		self.assertEqual(result.assignment.transporter_id, self.t2.id)

	@override_settings(TRANSPORT_CASCADE_ADVANCE_ON_DECLINE=True)
	def test_early_opening_skips_tiers_already_declined(self):
		decline_offer(self.t2, self.offer_two.id)

		result = decline_offer(self.t1, self.offer_one.id)

		self.assertFalse(result.extra['cascade_exhausted'])
		self.refresh()
		self.assertEqual(self.cascade.state, TransportCascade.TIER3_ACTIVE)
		self.assertEqual(self.cascade.sent_to_secondary_at, self.cascade.sent_to_tertiary_at)
		self.assertFalse(self.offer_two.is_active)
		self.assertTrue(self.offer_three.is_active)

		result = accept_offer(self.t3, self.offer_three.id)
		self.assertEqual(result.assignment.transporter_id, self.t3.id)

	@override_settings(TRANSPORT_CASCADE_ADVANCE_ON_DECLINE=True)
	def test_early_opening_with_every_later_tier_declined_exhausts(self):
		decline_offer(self.t2, self.offer_two.id)
		decline_offer(self.t3, self.offer_three.id)

		result = decline_offer(self.t1, self.offer_one.id)

		self.assertTrue(result.extra['cascade_exhausted'])
		self.refresh()
		self.assertEqual(self.cascade.state, TransportCascade.RESOLVED_EXHAUSTED)
		self.assertIsNone(self.cascade.sent_to_secondary_at)

	def test_declining_every_tier_exhausts_cascade(self):
		decline_offer(self.t2, self.offer_two.id)
		decline_offer(self.t3, self.offer_three.id)
		result = decline_offer(self.t1, self.offer_one.id)

		self.assertTrue(result.extra['cascade_exhausted'])
		self.refresh()
		self.assertEqual(self.cascade.state, TransportCascade.RESOLVED_EXHAUSTED)
		self.assertEqual(self.order.status, 'paid')

	def test_farmer_can_start_again_after_exhaustion(self):
		for transporter, offer in ((self.t1, self.offer_one), (self.t2, self.offer_two), (self.t3, self.offer_three)):
			decline_offer(transporter, offer.id)

		result = self.create()

		self.assertTrue(result.success)
		self.assertEqual(TransportCascade.objects.filter(order=self.order).count(), 2)

	def test_decline_after_another_tier_won_is_closed(self):
		accept_offer(self.t1, self.offer_one.id)

		with self.assertRaises(OfferClosedError):
			decline_offer(self.t2, self.offer_two.id)


class CounterOfferTests(CascadeTestCase):
	def setUp(self):
		super().setUp()
		self.create()

	def test_counter_records_fee(self):
		counter_offer(self.t1, self.offer_one.id, Decimal('250.00'))

		self.refresh()
		self.assertEqual(self.offer_one.status, TransportOffer.COUNTERED)
		self.assertEqual(self.offer_one.counter_fee, Decimal('250.00'))
		self.assertIsNotNone(self.offer_one.countered_at)
		self.assertTrue(self.cascade.is_open)

	def test_counter_below_floor_is_rejected(self):
		with self.assertRaises(ValidationError):
			counter_offer(self.t1, self.offer_one.id, Decimal('150.00'))

		self.offer_one.refresh_from_db()
		self.assertEqual(self.offer_one.status, TransportOffer.PENDING)

	def test_counter_on_inactive_tier_is_rejected(self):
		with self.assertRaises(OfferNotActiveError):
			counter_offer(self.t2, self.offer_two.id, Decimal('250.00'))

	def test_farmer_accepting_counter_resolves_at_counter_fee(self):
		counter_offer(self.t1, self.offer_one.id, Decimal('250.00'))

		result = respond_to_counter(self.farmer, self.offer_one.id, accept=True)

		self.assertEqual(result.assignment.transport_cost, Decimal('250.00'))
		self.refresh()
		self.assertEqual(self.offer_one.status, TransportOffer.ACCEPTED)
		self.assertEqual(self.offer_one.agreed_fee, Decimal('250.00'))
		self.assertEqual(self.order.transport_cost, Decimal('250.00'))
		self.assertEqual(self.order.status, 'assigned')

	def test_farmer_rejecting_counter_declines_offer(self):
		counter_offer(self.t1, self.offer_one.id, Decimal('250.00'))

		respond_to_counter(self.farmer, self.offer_one.id, accept=False)

		self.refresh()
		self.assertEqual(self.offer_one.status, TransportOffer.DECLINED)
		self.assertTrue(self.cascade.is_open)

	def test_respond_without_counter_is_rejected(self):
		with self.assertRaises(ValidationError):
			respond_to_counter(self.farmer, self.offer_one.id, accept=True)

	def test_transporter_can_accept_countered_offer_at_proposed_fee(self):
		counter_offer(self.t1, self.offer_one.id, Decimal('250.00'))

		result = accept_offer(self.t1, self.offer_one.id)

		self.assertEqual(result.assignment.transport_cost, Decimal('200.00'))


class CancellationTests(CascadeTestCase):
	def setUp(self):
		super().setUp()
		self.create()

	def test_cancelling_order_closes_cascade(self):
		cancel_order(self.farmer, self.order.id, 'Buyer changed plans')

		self.refresh()
		self.assertEqual(self.order.status, 'cancelled')
		self.assertEqual(self.cascade.state, TransportCascade.CANCELLED)
		self.assertIsNotNone(self.cascade.cancelled_at)
		for offer in (self.offer_one, self.offer_two, self.offer_three):
			self.assertEqual(offer.status, TransportOffer.WITHDRAWN)

		with self.assertRaises(OfferClosedError):
			accept_offer(self.t1, self.offer_one.id)


class AssignmentProgressTests(CascadeTestCase):
	def setUp(self):
		super().setUp()
		self.create()
		self.assignment = accept_offer(self.t1, self.offer_one.id).assignment

	def test_pickup_then_delivery(self):
		mark_picked_up(self.t1, self.assignment.id)
		self.order.refresh_from_db()
		self.assertEqual(self.order.status, 'in_transit')

		assignment = mark_delivered(self.t1, self.assignment.id)

		self.assertEqual(assignment.status, 'delivered')
		self.assertIsNotNone(assignment.pickup_time)
		self.assertIsNotNone(assignment.delivery_time)
		self.order.refresh_from_db()
		self.assertEqual(self.order.status, 'delivered')
		self.assertEqual(TransporterProfile.objects.get(user=self.t1).completed_deliveries, 1)

	def test_delivery_before_pickup_is_rejected(self):
		with self.assertRaises(ValidationError):
			mark_delivered(self.t1, self.assignment.id)

	def test_other_transporter_cannot_update_assignment(self):
		with self.assertRaises(AssignmentNotFoundError):
			mark_picked_up(self.t2, self.assignment.id)


class ListOffersTests(CascadeTestCase):
	def setUp(self):
		super().setUp()
		self.create()

	def test_lists_only_own_offers_with_status_filter(self):
		decline_offer(self.t1, self.offer_one.id)

		self.assertEqual(list(list_offers(self.t1)), [self.offer_one])
		self.assertEqual(list(list_offers(self.t1, 'declined')), [self.offer_one])
		self.assertEqual(list(list_offers(self.t1, 'pending')), [])

	def test_unknown_status_is_rejected(self):
		with self.assertRaises(ValidationError):
			list_offers(self.t1, 'bogus')


class TransportViewTests(CascadeTestCase):
	def post(self, view, user, path, data=None, **kwargs):
		request = self.factory.post(path, data or {}, format='json')
		force_authenticate(request, user=user)
		return view(request, **kwargs)

	def get(self, view, user, path, **kwargs):
		request = self.factory.get(path)
		force_authenticate(request, user=user)
		return view(request, **kwargs)

	def test_farmer_creates_cascade(self):
		response = self.post(
			views.order_cascade, self.farmer, '/api/transport/orders/%d/cascade/' % self.order.id,
			{
				'primary_transporter_id': self.t1.id,
				'secondary_transporter_id': self.t2.id,
				'proposed_fee': '200.00',
			},
			order_id=self.order.id,
		)

		self.assertEqual(response.status_code, 201)
		self.assertEqual(response.data['minimum_fee'], '187.50')
		self.assertEqual(len(response.data['offers']), 2)
		self.assertTrue(response.data['offers'][0]['is_active'])
		self.assertFalse(response.data['offers'][1]['is_active'])

	def test_low_fee_returns_validation_error(self):
		response = self.post(
			views.order_cascade, self.farmer, '/api/transport/orders/%d/cascade/' % self.order.id,
			{
				'primary_transporter_id': self.t1.id,
				'secondary_transporter_id': self.t2.id,
				'proposed_fee': '100.00',
			},
			order_id=self.order.id,
		)

		self.assertEqual(response.status_code, 400)
		self.assertFalse(response.data['success'])
		self.assertEqual(response.data['error'], 'validation_error')
		self.assertEqual(response.data['message'], 'Fee must be at least KES 187.50')

	def test_transporter_cannot_create_cascade(self):
		response = self.post(
			views.order_cascade, self.t1, '/api/transport/orders/%d/cascade/' % self.order.id,
			{}, order_id=self.order.id,
		)
		self.assertEqual(response.status_code, 403)

	def test_polling_cascade(self):
		response = self.get(
			views.order_cascade, self.farmer, '/api/transport/orders/%d/cascade/' % self.order.id,
			order_id=self.order.id,
		)
		self.assertEqual(response.status_code, 200)
		self.assertFalse(response.data['has_cascade'])

		self.create()
		self.backdate(61)

		response = self.get(
			views.order_cascade, self.farmer, '/api/transport/orders/%d/cascade/' % self.order.id,
			order_id=self.order.id,
		)
		self.assertTrue(response.data['has_cascade'])
		cascade = response.data['cascade']
		# Reads derive the clock without writing
		self.assertEqual(cascade['state'], TransportCascade.TIER1_ACTIVE)
		self.assertEqual(cascade['effective_state'], TransportCascade.TIER2_ACTIVE)
		self.assertTrue(cascade['offers'][1]['is_active'])
		self.assertFalse(cascade['offers'][2]['is_active'])

	def test_match_ranks_transporters_and_excludes_small_vehicles(self):
		TransporterProfile.objects.filter(user=self.t1).update(
			rating=Decimal('3.50'), completed_deliveries=3
		)
		TransporterProfile.objects.filter(user=self.t2).update(
			rating=Decimal('4.80'), completed_deliveries=60, service_areas=['Nakuru', 'Nairobi']
		)
		TransporterProfile.objects.filter(user=self.t3).update(
			rating=Decimal('4.00'), completed_deliveries=25, service_areas=['Nakuru']
		)
		create_transporter('t_small', 'KBA-004A', vehicle_capacity_kg=Decimal('100'))

		response = self.get(
			views.match_order_transporters, self.farmer,
			'/api/transport/orders/%d/matches/' % self.order.id,
			order_id=self.order.id,
		)

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['minimum_fee'], '187.50')
		ids = [c['transporter_id'] for c in response.data['candidates']]
		self.assertEqual(ids, [self.t2.id, self.t3.id, self.t1.id])
		self.assertTrue(response.data['candidates'][0]['match_reasons']['experienced'])

	def test_accept_view_returns_assignment(self):
		self.create()

		response = self.post(
			views.accept_offer, self.t1, '/api/transport/offers/%d/accept/' % self.offer_one.id,
			offer_id=self.offer_one.id,
		)

		self.assertEqual(response.status_code, 200)
		self.assertTrue(response.data['success'])
		self.assertEqual(response.data['assignment']['transport_cost'], '200.00')

	def test_accept_view_error_codes(self):
		self.create()

		response = self.post(
			views.accept_offer, self.t2, '/api/transport/offers/%d/accept/' % self.offer_two.id,
			offer_id=self.offer_two.id,
		)
		self.assertEqual(response.status_code, 409)
		self.assertEqual(response.data['error'], 'offer_not_active')

		self.post(
			views.accept_offer, self.t1, '/api/transport/offers/%d/accept/' % self.offer_one.id,
			offer_id=self.offer_one.id,
		)
		self.backdate(61)

		response = self.post(
			views.accept_offer, self.t2, '/api/transport/offers/%d/accept/' % self.offer_two.id,
			offer_id=self.offer_two.id,
		)
		self.assertEqual(response.status_code, 410)
		self.assertEqual(response.data['error'], 'offer_closed')
		self.assertEqual(response.data['message'], 'This offer is no longer available')

	def test_unknown_offer_returns_404(self):
		response = self.post(
			views.decline_offer, self.t1, '/api/transport/offers/999/decline/',
			offer_id=999,
		)
		self.assertEqual(response.status_code, 404)
		self.assertEqual(response.data['error'], 'offer_not_found')

	def test_counter_and_counter_response_views(self):
		self.create()

		response = self.post(
			views.counter_offer, self.t1, '/api/transport/offers/%d/counter/' % self.offer_one.id,
			{'counter_fee': '240.00'}, offer_id=self.offer_one.id,
		)
		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['offer']['status'], 'countered')

		response = self.post(
			views.respond_to_counter, self.farmer,
			'/api/transport/offers/%d/counter-response/' % self.offer_one.id,
			{'accept': True}, offer_id=self.offer_one.id,
		)
		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['cascade_state'], TransportCascade.RESOLVED_ACCEPTED)
		self.assertEqual(response.data['assignment']['transport_cost'], '240.00')

	def test_list_offers_view(self):
		self.create()

		response = self.get(views.list_offers, self.t2, '/api/transport/offers/')
		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['count'], 1)
		self.assertFalse(response.data['offers'][0]['is_active'])
		self.assertIsNone(response.data['offers'][0]['time_remaining_seconds'])

		response = self.get(views.list_offers, self.t1, '/api/transport/offers/?status=bogus')
		self.assertEqual(response.status_code, 400)

	def test_pickup_and_deliver_views(self):
		self.create()
		assignment = accept_offer(self.t1, self.offer_one.id).assignment

		response = self.post(
			views.mark_pickup, self.t1, '/api/transport/assignments/%d/pickup/' % assignment.id,
			assignment_id=assignment.id,
		)
		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['assignment']['status'], 'in_transit')

		response = self.post(
			views.mark_delivery, self.t1, '/api/transport/assignments/%d/deliver/' % assignment.id,
			assignment_id=assignment.id,
		)
		self.assertEqual(response.data['assignment']['status'], 'delivered')


@skipUnless(connection.vendor == 'postgresql', 'needs row locks shared across connections')
class ConcurrentAcceptTests(TransactionTestCase):
	def setUp(self):
		self.farmer = create_user('farmer', 'farmer')
		self.t1 = create_transporter('t_one', 'KBA-001A')
		self.t2 = create_transporter('t_two', 'KBA-002A')
		self.order = create_order(self.farmer, create_user('buyer', 'buyer'))
		result = create_cascade(
			self.farmer,
			self.order.id,
			primary_transporter_id=self.t1.id,
			secondary_transporter_id=self.t2.id,
			proposed_fee=Decimal('200.00'),
		)
		self.cascade = result.cascade
		self.offer_one, self.offer_two = result.offers

		# Both tiers open: the primary's window has passed
		started = timezone.now() - timedelta(minutes=61)
		TransportCascade.objects.filter(id=self.cascade.id).update(sent_to_primary_at=started)
		TransportOffer.objects.filter(id=self.offer_one.id).update(sent_at=started)

	def test_two_tiers_accepting_at_once_have_one_winner(self):
		barrier = threading.Barrier(2)
		outcomes = {}

		def accept(transporter, offer):
			try:
				barrier.wait()
				outcomes[transporter.id] = accept_offer(transporter, offer.id)
			except OfferClosedError as e:
				outcomes[transporter.id] = e
			finally:
				connection.close()

		threads = [
			threading.Thread(target=accept, args=(self.t1, self.offer_one)),
			threading.Thread(target=accept, args=(self.t2, self.offer_two)),
		]
		for thread in threads:
			thread.start()
		for thread in threads:
			thread.join(timeout=30)

		winners = [outcome for outcome in outcomes.values() if not isinstance(outcome, Exception)]
		losers = [outcome for outcome in outcomes.values() if isinstance(outcome, OfferClosedError)]
		self.assertEqual((len(winners), len(losers)), (1, 1))

		self.cascade.refresh_from_db()
		self.assertEqual(self.cascade.state, TransportCascade.RESOLVED_ACCEPTED)
		self.assertEqual(
			TransportOffer.objects.filter(order=self.order, status=TransportOffer.ACCEPTED).count(), 1
		)
		assignment = TransportAssignment.objects.get(order=self.order)
		self.assertEqual(assignment.transporter_id, winners[0].assignment.transporter_id)
		self.assertEqual(self.cascade.winning_offer.transporter_id, assignment.transporter_id)
