from decimal import Decimal

from django.test import TestCase
from rest_framework.test import APIRequestFactory, force_authenticate
from unittest.mock import patch

from common.testing import create_order, create_transporter, create_user
from services.cascade import accept_offer, create_cascade, mark_delivered, mark_picked_up
from transport.models import TransportCascade
from . import views
from .models import Order


class OrderViewTests(TestCase):
	def setUp(self):
		self.factory = APIRequestFactory()
		self.farmer = create_user('farmer', 'farmer')
		self.buyer = create_user('buyer', 'buyer')
		self.stranger = create_user('stranger', 'buyer')
		self.order = create_order(self.farmer, self.buyer)

	def test_detail_visible_to_buyer_and_farmer_only(self):
		for user in (self.buyer, self.farmer):
			request = self.factory.get('/api/orders/%d/' % self.order.id)
			force_authenticate(request, user=user)
			response = views.order_detail(request, order_id=self.order.id)
			self.assertEqual(response.status_code, 200)
			self.assertEqual(response.data['status'], 'paid')

		request = self.factory.get('/api/orders/%d/' % self.order.id)
		force_authenticate(request, user=self.stranger)
		response = views.order_detail(request, order_id=self.order.id)
		self.assertEqual(response.status_code, 404)
		self.assertEqual(response.data['error'], 'order_not_found')

	@patch('orders.services.notify_order_parties')
	def test_buyer_cancels_order(self, mock_notify):
		request = self.factory.post(
			'/api/orders/%d/cancel/' % self.order.id, {'reason': 'Found a closer farm'}, format='json'
		)
		force_authenticate(request, user=self.buyer)

		response = views.cancel_order(request, order_id=self.order.id)

		self.assertEqual(response.status_code, 200)
		self.assertTrue(response.data['success'])
		self.order.refresh_from_db()
		self.assertEqual(self.order.status, 'cancelled')
		self.assertEqual(self.order.cancellation_reason, 'Found a closer farm')
		self.assertIsNotNone(self.order.cancelled_at)
		self.assertEqual(mock_notify.call_args.args[0], 'order_cancelled')

	def test_cancel_without_reason_uses_default(self):
		request = self.factory.post('/api/orders/%d/cancel/' % self.order.id, {}, format='json')
		force_authenticate(request, user=self.farmer)

		views.cancel_order(request, order_id=self.order.id)

		self.order.refresh_from_db()
		self.assertEqual(self.order.cancellation_reason, 'No reason provided')

	def test_assigned_order_cannot_be_cancelled(self):
		Order.objects.filter(id=self.order.id).update(status='assigned')
		request = self.factory.post('/api/orders/%d/cancel/' % self.order.id, {}, format='json')
		force_authenticate(request, user=self.buyer)

		response = views.cancel_order(request, order_id=self.order.id)

		self.assertEqual(response.status_code, 400)
		self.assertEqual(response.data['error'], 'validation_error')

	def test_cancel_closes_open_cascade(self):
		t1 = create_transporter('t_one', 'KBA-001A')
		t2 = create_transporter('t_two', 'KBA-002A')
		result = create_cascade(
			self.farmer, self.order.id,
			primary_transporter_id=t1.id,
			secondary_transporter_id=t2.id,
			proposed_fee=Decimal('200.00'),
		)
		request = self.factory.post('/api/orders/%d/cancel/' % self.order.id, {}, format='json')
		force_authenticate(request, user=self.buyer)

		views.cancel_order(request, order_id=self.order.id)

		cascade = TransportCascade.objects.get(id=result.cascade.id)
		self.assertEqual(cascade.state, TransportCascade.CANCELLED)
		self.assertEqual(
			sorted(cascade.offers.values_list('status', flat=True)), ['withdrawn', 'withdrawn']
		)


class ConfirmDeliveryTests(TestCase):
	def setUp(self):
		self.factory = APIRequestFactory()
		self.farmer = create_user('farmer', 'farmer')
		self.buyer = create_user('buyer', 'buyer')
		self.transporter = create_transporter('t_one', 'KBA-001A')
		self.backup = create_transporter('t_two', 'KBA-002A')
		self.order = create_order(self.farmer, self.buyer)

		result = create_cascade(
			self.farmer, self.order.id,
			primary_transporter_id=self.transporter.id,
			secondary_transporter_id=self.backup.id,
			proposed_fee=Decimal('200.00'),
		)
		self.assignment = accept_offer(self.transporter, result.offers[0].id).assignment

	def confirm(self, user):
		request = self.factory.post('/api/orders/%d/confirm-delivery/' % self.order.id)
		force_authenticate(request, user=user)
		return views.confirm_delivery(request, order_id=self.order.id)

	def test_buyer_confirms_delivered_order(self):
		mark_picked_up(self.transporter, self.assignment.id)
		mark_delivered(self.transporter, self.assignment.id)

		response = self.confirm(self.buyer)

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['order']['status'], 'confirmed')

	def test_cannot_confirm_before_delivery(self):
		response = self.confirm(self.buyer)

		self.assertEqual(response.status_code, 400)
		self.order.refresh_from_db()
		self.assertEqual(self.order.status, 'assigned')

	def test_only_buyer_can_confirm(self):
		response = self.confirm(self.farmer)
		self.assertEqual(response.status_code, 403)
