from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIRequestFactory

from common.testing import create_order, create_transporter, create_user
from services.cascade import create_cascade
from transport.models import TransportCascade
from .views import health_check


@patch('app_backend.views.redis')
class HealthCheckTests(TestCase):
	def setUp(self):
		self.factory = APIRequestFactory()
		farmer = create_user('farmer', 'farmer')
		order = create_order(farmer, create_user('buyer', 'buyer'))
		self.cascade = create_cascade(
			farmer,
			order.id,
			primary_transporter_id=create_transporter('t_one', 'KBA-001A').id,
			secondary_transporter_id=create_transporter('t_two', 'KBA-002A').id,
			proposed_fee=Decimal('200.00'),
		).cascade

	def check(self):
		return health_check(self.factory.get('/health/'))

	def test_healthy_with_cascades_on_schedule(self, mock_redis):
		response = self.check()

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['status'], 'healthy')
		self.assertEqual(response.data['cascades'], {'open': 1, 'overdue': 0})
		self.assertEqual(response.data['services'], {
			'database': 'healthy',
			'celery': 'healthy',
			'channels': 'healthy',
		})
		mock_redis.Redis.from_url.return_value.ping.assert_called_once()

	def test_activation_within_two_sweeps_is_not_overdue(self, mock_redis):
		TransportCascade.objects.filter(id=self.cascade.id).update(
			sent_to_primary_at=timezone.now() - timedelta(minutes=61)
		)

		response = self.check()

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['cascades']['overdue'], 0)

	def test_cascade_left_behind_by_the_sweep_is_unhealthy(self, mock_redis):
		TransportCascade.objects.filter(id=self.cascade.id).update(
			sent_to_primary_at=timezone.now() - timedelta(minutes=64)
		)

		response = self.check()

		self.assertEqual(response.status_code, 503)
		self.assertEqual(response.data['status'], 'unhealthy')
		self.assertEqual(response.data['cascades']['overdue'], 1)
		self.assertIn('celery beat', response.data['cascades']['detail'])
		self.assertEqual(response.data['services']['database'], 'healthy')

	def test_unreachable_broker_is_unhealthy(self, mock_redis):
		mock_redis.Redis.from_url.return_value.ping.side_effect = ConnectionError('refused')

		response = self.check()

		self.assertEqual(response.status_code, 503)
		self.assertEqual(response.data['services']['celery'], 'unhealthy: refused')
		self.assertEqual(response.data['cascades'], {'open': 1, 'overdue': 0})
