from decimal import Decimal

from django.test import TestCase
from rest_framework.test import APIRequestFactory, force_authenticate
from unittest.mock import patch

from common.testing import create_order, create_transporter, create_user
from services.cascade import ValidationError
from services.matching import (
	MatchContext,
	MatchingPolicy,
	TransporterSnapshot,
	calculate_minimum_fee,
	match_transporters,
	rank_transporters,
)
from .models import TransporterProfile
from .views import TransporterAssignmentsView, TransporterProfileView, TransporterStatusView


def snapshot(transporter_id, rating, deliveries, areas=(), capacity='1000', recent_7=0, recent_30=0):
	return TransporterSnapshot(
		transporter_id=transporter_id,
		full_name='Transporter %d' % transporter_id,
		phone='0700000000',
		vehicle_type='pickup',
		vehicle_capacity_kg=Decimal(capacity),
		base_location='',
		service_areas=tuple(areas),
		rating=Decimal(rating),
		completed_deliveries=deliveries,
		on_time_delivery_rate=Decimal('90'),
		platform_score=0,
		deliveries_last_7_days=recent_7,
		deliveries_last_30_days=recent_30,
	)


class RankTransportersTests(TestCase):
	def setUp(self):
		self.context = MatchContext(
			pickup_region='Nakuru',
			delivery_region='Nairobi',
			required_capacity_kg=Decimal('150'),
		)
		self.policy = MatchingPolicy()

	def test_scores_and_order(self):
		pool = [
			snapshot(3, '3.5', 3),
			snapshot(1, '4.8', 60, areas=['Nakuru', 'Nairobi']),
			snapshot(2, '4.0', 25, areas=['nakuru ']),
		]

		ranked = rank_transporters(self.context, pool, self.policy)

		self.assertEqual([c.transporter_id for c in ranked], [1, 2, 3])
		self.assertAlmostEqual(ranked[0].match_score, 78.4)
		self.assertAlmostEqual(ranked[1].match_score, 57.0)
		self.assertAlmostEqual(ranked[2].match_score, 33.0)

		self.assertTrue(ranked[0].match_reasons.experienced)
		self.assertTrue(ranked[0].match_reasons.good_rating)
		self.assertTrue(ranked[1].match_reasons.service_area_match)
		self.assertFalse(ranked[2].match_reasons.service_area_match)
		self.assertFalse(ranked[2].match_reasons.good_rating)

	def test_small_vehicles_are_excluded(self):
		pool = [snapshot(1, '5.0', 100, capacity='100'), snapshot(2, '1.0', 0)]

		ranked = rank_transporters(self.context, pool, self.policy)

		self.assertEqual([c.transporter_id for c in ranked], [2])

	def test_recent_activity_points(self):
		ranked = rank_transporters(
			self.context,
			[snapshot(1, '0', 0, recent_7=1), snapshot(2, '0', 0, recent_30=1)],
			self.policy,
		)

		self.assertEqual(ranked[0].match_score, 20)
		self.assertTrue(ranked[0].match_reasons.high_platform_activity)
		self.assertEqual(ranked[1].match_score, 10)
		self.assertFalse(ranked[1].match_reasons.high_platform_activity)

	def test_ties_break_on_deliveries_then_id(self):
		pool = [snapshot(5, '4.0', 5), snapshot(4, '4.0', 5), snapshot(6, '4.0', 19)]

		ranked = rank_transporters(self.context, pool, self.policy)

		# 5 and 19 deliveries fall in the same experience bucket
		self.assertEqual([c.transporter_id for c in ranked], [6, 4, 5])

	def test_empty_pool(self):
		self.assertEqual(rank_transporters(self.context, [], self.policy), [])


class MinimumFeeTests(TestCase):
	def test_default_tariff(self):
		self.assertEqual(calculate_minimum_fee(10, 150), Decimal('187.50'))

	def test_fee_is_monotonic_in_distance_and_weight(self):
		base = calculate_minimum_fee(10, 150)
		self.assertGreater(calculate_minimum_fee(20, 150), base)
		self.assertGreater(calculate_minimum_fee(10, 300), base)

	def test_negative_input_is_rejected(self):
		with self.assertRaises(ValidationError):
			calculate_minimum_fee(-1, 150)
		with self.assertRaises(ValidationError):
			calculate_minimum_fee(10, -5)

	def test_tariff_override_from_settings(self):
		with self.settings(TRANSPORT_FEE_POLICY={'base': 0, 'per_km': 10, 'per_kg': 0}):
			self.assertEqual(calculate_minimum_fee(12, 150), Decimal('120.00'))


class MatchTransportersTests(TestCase):
	def setUp(self):
		self.farmer = create_user('farmer', 'farmer')
		self.buyer = create_user('buyer', 'buyer')
		self.order = create_order(self.farmer, self.buyer)

	def test_only_available_transporters_with_capacity(self):
		ready = create_transporter('ready', 'KBA-001A', rating=Decimal('4.50'))
		create_transporter('offline', 'KBA-002A', status='offline')
		create_transporter('small', 'KBA-003A', vehicle_capacity_kg=Decimal('50'))

		result = match_transporters(self.order.id, farmer=self.farmer)

		self.assertEqual([c.transporter_id for c in result.candidates], [ready.id])
		self.assertEqual(result.minimum_fee, Decimal('187.50'))
		self.assertEqual(result.distance_km, Decimal('10'))

	def test_no_transporters_is_not_an_error(self):
		result = match_transporters(self.order.id, farmer=self.farmer)
		self.assertEqual(result.candidates, [])


class TransporterViewTests(TestCase):
	def setUp(self):
		self.factory = APIRequestFactory()
		self.transporter = create_transporter('t_one', 'KBA-001A')
		self.farmer = create_user('farmer', 'farmer')

	def test_profile_requires_transporter_role(self):
		request = self.factory.get('/api/transporter/profile/')
		force_authenticate(request, user=self.farmer)

		response = TransporterProfileView.as_view()(request)

		self.assertEqual(response.status_code, 403)

	def test_update_service_areas(self):
		request = self.factory.post(
			'/api/transporter/profile/',
			{'service_areas': [' Nakuru', 'Nairobi', ''], 'base_location': 'Nakuru'},
			format='json',
		)
		force_authenticate(request, user=self.transporter)

		response = TransporterProfileView.as_view()(request)

		self.assertEqual(response.status_code, 200)
		profile = TransporterProfile.objects.get(user=self.transporter)
		self.assertEqual(profile.service_areas, ['Nakuru', 'Nairobi'])
		self.assertEqual(profile.base_location, 'Nakuru')

	@patch('transporters.services.notify_transporter_event')
	def test_go_offline(self, mock_notify):
		request = self.factory.put('/api/transporter/status/', {'status': 'offline'}, format='json')
		force_authenticate(request, user=self.transporter)

		response = TransporterStatusView.as_view()(request)

		self.assertEqual(response.status_code, 200)
		self.assertEqual(TransporterProfile.objects.get(user=self.transporter).status, 'offline')
		mock_notify.assert_called_once()

	def test_busy_is_not_a_selectable_status(self):
		request = self.factory.put('/api/transporter/status/', {'status': 'busy'}, format='json')
		force_authenticate(request, user=self.transporter)

		response = TransporterStatusView.as_view()(request)

		self.assertEqual(response.status_code, 400)

	def test_assignments_list_is_empty_initially(self):
		request = self.factory.get('/api/transporter/assignments/')
		force_authenticate(request, user=self.transporter)

		response = TransporterAssignmentsView.as_view()(request)

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['count'], 0)
